"""Media schemas: collection records, stats and TMDB payloads."""
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Nullable free-text fields where the backend may answer "" instead of null
NULLABLE_TEXT_FIELDS = (
    "director",
    "original_title",
    "country",
    "file_size",
    "loaned_to",
    "location",
    "notes",
    "quality",
    "overview",
    "poster_path",
    "backdrop_path",
    "release_date",
    "date_watched",
)

LIST_FIELDS = ("genres", "cast", "crew", "episode_details")


class MediaType(str, Enum):
    """Kind of collection entry."""
    MOVIE = "movie"
    TV_SERIES = "tv_series"


class BackupStatus(str, Enum):
    """Backup state of a collection entry."""
    NOT_BACKED_UP = "not_backed_up"
    BACKED_UP = "backed_up"
    PENDING = "pending"

    def next(self) -> "BackupStatus":
        """Next status in the not_backed_up -> backed_up -> pending cycle."""
        cycle = list(BackupStatus)
        return cycle[(cycle.index(self) + 1) % len(cycle)]


class Quality(str, Enum):
    """Video quality of the owned copy."""
    SD = "SD"
    HD = "HD"
    FHD = "FHD"
    UHD_4K = "4K"
    UHD_8K = "8K"


class CastMember(BaseModel):
    """Persisted cast entry."""
    name: str = ""
    character: Optional[str] = None
    profile_path: Optional[str] = None


class CrewMember(BaseModel):
    """Crew entry; the backend may attach extra keys (department, ...)."""
    model_config = ConfigDict(extra="allow")

    name: str = ""
    job: Optional[str] = None


class EpisodeDetail(BaseModel):
    """Episode reference of a TV series. Plot text is never kept."""
    season_number: Optional[int] = None
    episode_number: Optional[int] = None
    title: str = ""

    @field_validator("season_number", "episode_number", mode="before")
    @classmethod
    def blank_number_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("title", mode="before")
    @classmethod
    def none_title_to_blank(cls, v):
        return "" if v is None else v

    @property
    def is_empty(self) -> bool:
        return self.season_number is None and self.episode_number is None and not self.title


class MediaRecord(BaseModel):
    """A persisted collection entry, as returned by the backend."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Union[int, str]
    title: str = ""
    original_title: Optional[str] = None
    media_type: MediaType = MediaType.MOVIE
    release_date: Optional[date] = None
    runtime_minutes: Optional[int] = Field(default=None, ge=0, alias="runtime")
    genres: List[str] = Field(default_factory=list)
    director: Optional[str] = None
    country: Optional[str] = None
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None

    # TMDB
    external_id: Optional[int] = Field(default=None, alias="tmdb_id")
    external_rating: Optional[float] = Field(default=None, ge=0, le=10, alias="tmdb_rating")
    external_vote_count: Optional[int] = Field(default=None, alias="tmdb_vote_count")

    cast: List[CastMember] = Field(default_factory=list)
    cast_names: Optional[str] = None
    crew: List[CrewMember] = Field(default_factory=list)

    # TV series only
    seasons: Optional[int] = None
    episodes: Optional[int] = None
    episode_details: List[EpisodeDetail] = Field(default_factory=list)

    # Ownership
    seen: bool = False
    user_rating: Optional[float] = Field(default=None, ge=0, le=10)
    backed_up: BackupStatus = BackupStatus.NOT_BACKED_UP
    quality: Optional[Quality] = None
    location: Optional[str] = None
    file_size: Optional[str] = None
    loaned_to: Optional[str] = None
    notes: Optional[str] = None
    date_added: Optional[datetime] = None
    date_watched: Optional[date] = None

    @field_validator(*NULLABLE_TEXT_FIELDS, mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator(*LIST_FIELDS, mode="before")
    @classmethod
    def none_to_list(cls, v):
        return [] if v is None else v

    @property
    def year(self) -> Optional[int]:
        return self.release_date.year if self.release_date else None

    @property
    def is_tv_series(self) -> bool:
        return self.media_type == MediaType.TV_SERIES


class StatsItem(BaseModel):
    """Compact entry listed on the dashboard (recently added, top rated)."""
    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    title: str = ""
    media_type: Optional[MediaType] = None
    poster_path: Optional[str] = None
    user_rating: Optional[float] = None


class AggregateStats(BaseModel):
    """Collection-wide statistics computed by the backend."""
    total_media: int = 0
    total_movies: int = 0
    total_tv_series: int = 0
    seen_count: int = 0
    backed_up_count: int = 0
    total_runtime_minutes: int = 0
    quality_distribution: Dict[str, int] = Field(default_factory=dict)
    pending_by_quality: Dict[str, int] = Field(default_factory=dict)
    recently_added: List[StatsItem] = Field(default_factory=list)
    top_rated_by_user: List[StatsItem] = Field(default_factory=list)

    @field_validator("quality_distribution", "pending_by_quality", mode="before")
    @classmethod
    def none_to_dict(cls, v):
        return {} if v is None else v

    @field_validator("recently_added", "top_rated_by_user", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return [] if v is None else v

    @property
    def seen_ratio(self) -> float:
        """Share of the collection already watched (0.0 for an empty collection)."""
        return self.seen_count / self.total_media if self.total_media else 0.0

    @property
    def backed_up_ratio(self) -> float:
        return self.backed_up_count / self.total_media if self.total_media else 0.0

    @property
    def has_pending_backups(self) -> bool:
        return any(count > 0 for count in self.pending_by_quality.values())

    def runtime_breakdown(self) -> Dict[str, int]:
        """Total runtime split into whole days and remaining hours."""
        hours = self.total_runtime_minutes // 60
        return {"days": hours // 24, "hours": hours % 24}


# =========================================================================
# TMDB (proxied by the backend)
# =========================================================================

class SearchResult(BaseModel):
    """One TMDB search hit. Lives until the next search or a selection."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    external_id: int = Field(alias="tmdb_id")
    title: str = ""
    release_date: Optional[str] = None
    poster_path: Optional[str] = None
    vote_average: Optional[float] = None
    overview: Optional[str] = None

    @property
    def year(self) -> Optional[int]:
        if self.release_date and len(self.release_date) >= 4 and self.release_date[:4].isdigit():
            return int(self.release_date[:4])
        return None


class ProviderSearchResponse(BaseModel):
    """Search payload: either results or an error message."""
    results: List[SearchResult] = Field(default_factory=list)
    error: Optional[str] = None

    @field_validator("results", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return [] if v is None else v


class DetailRecord(BaseModel):
    """Full TMDB details for one movie or series."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    external_id: Optional[int] = Field(default=None, alias="tmdb_id")
    title: Optional[str] = None
    original_title: Optional[str] = None
    overview: Optional[str] = None
    release_date: Optional[str] = None
    runtime_minutes: Optional[int] = Field(default=None, alias="runtime")
    genres: List[str] = Field(default_factory=list)
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    external_rating: Optional[float] = Field(default=None, alias="tmdb_rating")
    external_vote_count: Optional[int] = Field(default=None, alias="tmdb_vote_count")
    crew: List[CrewMember] = Field(default_factory=list)
    cast_list: List[CastMember] = Field(default_factory=list)
    country: Optional[str] = None
    seasons: Optional[int] = None
    episodes: Optional[int] = None
    episode_details: List[EpisodeDetail] = Field(default_factory=list)

    @field_validator("genres", mode="before")
    @classmethod
    def coerce_genres(cls, v: Any):
        if v is None or v == "":
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("crew", "cast_list", "episode_details", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return [] if v is None else v

    @property
    def director(self) -> Optional[str]:
        """Name of the first crew member credited as Director."""
        for person in self.crew:
            if person.job == "Director" and person.name:
                return person.name
        return None
