"""Edit-time draft and the normalized wire record sent to the backend."""
from datetime import date
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .media import (
    NULLABLE_TEXT_FIELDS,
    BackupStatus,
    CastMember,
    CrewMember,
    EpisodeDetail,
    MediaRecord,
    MediaType,
    Quality,
)


class CastListEntry(BaseModel):
    """Cast row as edited in the form. Never sent to the backend as-is."""
    name: str = ""
    character: str = ""


class Draft(BaseModel):
    """
    In-progress, unsaved edit of a media record.

    Nullable text fields hold "" while empty, genres may still be the raw
    comma-separated text typed by the user and numeric fields may hold raw
    strings. `normalize()` turns a draft into a `WireRecord`.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[Union[int, str]] = None
    title: str = ""
    original_title: Optional[str] = ""
    media_type: MediaType = MediaType.MOVIE
    release_date: Optional[Union[date, str]] = ""
    runtime_minutes: Optional[Union[int, str]] = Field(default=None, alias="runtime")
    genres: Union[List[str], str] = Field(default_factory=list)
    director: Optional[str] = ""
    country: Optional[str] = ""
    overview: Optional[str] = ""
    poster_path: Optional[str] = ""
    backdrop_path: Optional[str] = ""

    external_id: Optional[int] = Field(default=None, alias="tmdb_id")
    external_rating: Optional[Union[float, str]] = Field(default=None, alias="tmdb_rating")
    external_vote_count: Optional[int] = Field(default=None, alias="tmdb_vote_count")

    cast_list: List[CastListEntry] = Field(default_factory=list)
    crew: List[CrewMember] = Field(default_factory=list)

    seasons: Optional[Union[int, str]] = None
    episodes: Optional[Union[int, str]] = None
    episode_details: List[EpisodeDetail] = Field(default_factory=list)

    seen: bool = False
    user_rating: Optional[Union[float, str]] = None
    backed_up: BackupStatus = BackupStatus.NOT_BACKED_UP
    quality: Optional[str] = ""
    location: Optional[str] = ""
    file_size: Optional[str] = ""
    loaned_to: Optional[str] = ""
    notes: Optional[str] = ""
    date_watched: Optional[Union[date, str]] = ""

    @classmethod
    def blank(cls, media_type: Union[MediaType, str] = MediaType.MOVIE) -> "Draft":
        """Empty draft for the "add" form."""
        return cls(media_type=media_type)

    @classmethod
    def from_record(cls, record: MediaRecord) -> "Draft":
        """Draft for editing an existing record: cast becomes cast_list, nulls become ""."""
        data = record.model_dump(mode="json", exclude={"cast", "cast_names", "date_added"})
        for key in NULLABLE_TEXT_FIELDS:
            if data.get(key) is None:
                data[key] = ""
        data["cast_list"] = [
            {"name": member.name or "", "character": member.character or ""}
            for member in record.cast
        ]
        return cls.model_validate(data)

    @property
    def is_new(self) -> bool:
        return self.id is None


class WireRecord(BaseModel):
    """Normalized, transport-ready media record (no editing-only keys)."""
    model_config = ConfigDict(populate_by_name=True)

    title: str
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

    external_id: Optional[int] = Field(default=None, alias="tmdb_id")
    external_rating: Optional[float] = Field(default=None, ge=0, le=10, alias="tmdb_rating")
    external_vote_count: Optional[int] = Field(default=None, alias="tmdb_vote_count")

    cast: List[CastMember] = Field(default_factory=list)
    cast_names: Optional[str] = None
    crew: List[CrewMember] = Field(default_factory=list)

    seasons: Optional[int] = None
    episodes: Optional[int] = None
    episode_details: List[EpisodeDetail] = Field(default_factory=list)

    seen: bool = False
    user_rating: Optional[float] = Field(default=None, ge=0, le=10)
    backed_up: BackupStatus = BackupStatus.NOT_BACKED_UP
    quality: Optional[Quality] = None
    location: Optional[str] = None
    file_size: Optional[str] = None
    loaned_to: Optional[str] = None
    notes: Optional[str] = None
    date_watched: Optional[date] = None

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for POST/PUT /media, using the backend's field names."""
        return self.model_dump(mode="json", by_alias=True)
