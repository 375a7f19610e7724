"""
Persistence normalizer: turns an edited draft into the wire shape.

`normalize()` is pure and deterministic. Normalizing its own output (or a
record fetched from the backend) yields the same record.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError
from ..schemas import Draft, MediaRecord, MediaType, WireRecord
from ..schemas.media import NULLABLE_TEXT_FIELDS

logger = logging.getLogger(__name__)

# Keys that never reach the backend
EDITING_ONLY_KEYS = ("cast_list",)
SERVER_SET_KEYS = ("id", "date_added")

# Backend field names accepted in plain mappings
WIRE_ALIASES = {
    "tmdb_id": "external_id",
    "tmdb_rating": "external_rating",
    "tmdb_vote_count": "external_vote_count",
    "runtime": "runtime_minutes",
}

DraftLike = Union[Draft, MediaRecord, WireRecord, Mapping[str, Any]]


def empty_to_none(value: Any) -> Any:
    """Map "" (and None) to None, keep everything else."""
    if value is None or value == "":
        return None
    return value


def to_float(value: Any) -> Optional[float]:
    """Float or None; unparsable input gives None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def to_int(value: Any) -> Optional[int]:
    """Integer or None; "42", "42.0" and 42.7 all give 42."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text))
    except ValueError:
        return None


def normalize_genres(genres: Any) -> List[str]:
    """
    Comma-separated text is split, trimmed and emptied of blanks; lists pass
    through unchanged.
    """
    if isinstance(genres, str):
        return [g.strip() for g in genres.split(",") if g.strip()]
    if isinstance(genres, (list, tuple)):
        return list(genres)
    return []


def _as_dict(item: Any) -> Dict[str, Any]:
    if isinstance(item, BaseModel):
        return item.model_dump()
    return dict(item) if item else {}


def build_cast(data: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """
    Persisted cast array.

    Built from the editing `cast_list` when present; otherwise an existing
    `cast` array is kept. `profile_path` is always cleared.
    """
    source = data.get("cast_list")
    if source is None:
        source = data.get("cast") or []
    cast = []
    for member in source:
        member = _as_dict(member)
        cast.append({
            "name": member.get("name") or "",
            "character": member.get("character"),
            "profile_path": None
        })
    return cast


def build_cast_names(cast: List[Dict[str, Any]]) -> Optional[str]:
    """Legacy comma-joined cast names, None when nobody is named."""
    names = [member["name"] for member in cast if member.get("name")]
    return ", ".join(names) or None


def clean_episode_details(media_type: Any, episodes: Any) -> List[Dict[str, Any]]:
    """
    Episode references for TV series only, reduced to season/episode/title.
    Entries with neither numbers nor title are dropped.
    """
    if getattr(media_type, "value", media_type) != MediaType.TV_SERIES.value:
        return []
    cleaned = []
    for episode in episodes or []:
        if not episode:
            continue
        episode = _as_dict(episode)
        season_number = to_int(episode.get("season_number"))
        episode_number = to_int(episode.get("episode_number"))
        title = episode.get("title") or ""
        if season_number is None and episode_number is None and not title:
            continue
        cleaned.append({
            "season_number": season_number,
            "episode_number": episode_number,
            "title": title
        })
    return cleaned


def normalize(draft: DraftLike) -> WireRecord:
    """
    Canonicalize a draft into the record sent on create/update.

    Args:
        draft: Draft being edited, a fetched MediaRecord, a WireRecord or a
            plain mapping with the same keys

    Returns:
        WireRecord without editing-only keys

    Raises:
        ValidationError: If a field cannot be represented (e.g. unknown quality)
    """
    if isinstance(draft, BaseModel):
        data = draft.model_dump()
    else:
        data = {WIRE_ALIASES.get(key, key): value for key, value in draft.items()}

    cast = build_cast(data)
    cleaned: Dict[str, Any] = {
        key: value for key, value in data.items()
        if key not in EDITING_ONLY_KEYS and key not in SERVER_SET_KEYS
    }

    for key in NULLABLE_TEXT_FIELDS:
        cleaned[key] = empty_to_none(cleaned.get(key))

    media_type = cleaned.get("media_type") or MediaType.MOVIE
    cleaned.update({
        "media_type": media_type,
        "backed_up": cleaned.get("backed_up") or "not_backed_up",
        "seen": bool(cleaned.get("seen")),
        "genres": normalize_genres(cleaned.get("genres")),
        "cast": cast,
        "cast_names": build_cast_names(cast),
        "crew": [_as_dict(member) for member in cleaned.get("crew") or []],
        "user_rating": to_float(cleaned.get("user_rating")),
        "external_rating": to_float(cleaned.get("external_rating")),
        "external_id": to_int(cleaned.get("external_id")),
        "external_vote_count": to_int(cleaned.get("external_vote_count")),
        "runtime_minutes": to_int(cleaned.get("runtime_minutes")),
        "seasons": to_int(cleaned.get("seasons")),
        "episodes": to_int(cleaned.get("episodes")),
        "episode_details": clean_episode_details(media_type, cleaned.get("episode_details")),
    })

    try:
        return WireRecord.model_validate(cleaned)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        logger.warning(f"[Normalize] Rejected draft field {field}: {first.get('msg')}")
        raise ValidationError(f"Invalid value for {field}: {first.get('msg')}", field=field)


def validate_draft(draft: Draft):
    """
    Local checks run before any network call on submit.

    Raises:
        ValidationError: If the title is blank
    """
    if not (draft.title or "").strip():
        raise ValidationError("Please enter a title", field="title")
