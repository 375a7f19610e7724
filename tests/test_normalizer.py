"""
Tests for the persistence normalizer.
"""
import pytest
from datetime import date

from cinematheque.exceptions import ValidationError
from cinematheque.schemas import Draft, MediaType, WireRecord
from cinematheque.services.normalizer import (
    build_cast_names,
    normalize,
    normalize_genres,
    to_float,
    to_int,
    validate_draft,
)

from conftest import make_record


class TestFieldHelpers:
    """Tests for the small coercion helpers."""

    def test_genres_from_text(self):
        """Comma text is split, trimmed and blanks dropped."""
        assert normalize_genres("Action,  Drama ,,") == ["Action", "Drama"]

    def test_genres_list_passes_through(self):
        assert normalize_genres(["Drama", "Crime"]) == ["Drama", "Crime"]

    def test_genres_none(self):
        assert normalize_genres(None) == []

    def test_to_float(self):
        assert to_float("7.5") == 7.5
        assert to_float("") is None
        assert to_float("abc") is None
        assert to_float(0) == 0.0

    def test_to_int(self):
        assert to_int("42") == 42
        assert to_int("42.0") == 42
        assert to_int(12.7) == 12
        assert to_int("") is None
        assert to_int("n/a") is None

    def test_cast_names_empty(self):
        assert build_cast_names([]) is None


class TestNormalize:
    """Tests for normalize()."""

    def test_genres_string_is_split(self):
        """Genre text typed in the form becomes a clean list."""
        wire = normalize(Draft(title="Heat", genres="Action,  Drama ,,"))
        assert wire.genres == ["Action", "Drama"]

    def test_empty_episode_details_are_dropped(self):
        """An episode row with no numbers and no title is removed."""
        draft = Draft(
            title="The Wire",
            media_type=MediaType.TV_SERIES,
            episode_details=[{"season_number": None, "episode_number": None, "title": ""}]
        )
        assert normalize(draft).episode_details == []

    def test_episode_details_kept_for_series(self):
        draft = Draft(
            title="The Wire",
            media_type=MediaType.TV_SERIES,
            episode_details=[
                {"season_number": "1", "episode_number": 3, "title": "The Buys"},
                {"season_number": "", "episode_number": "", "title": ""},
            ]
        )
        episodes = normalize(draft).episode_details
        assert len(episodes) == 1
        assert episodes[0].season_number == 1
        assert episodes[0].episode_number == 3

    def test_episode_details_cleared_for_movies(self):
        """Movies never carry episode references."""
        draft = Draft(title="Heat", episode_details=[{"season_number": 1, "episode_number": 1, "title": "x"}])
        assert normalize(draft).episode_details == []

    def test_empty_text_becomes_none(self):
        draft = Draft(title="Heat", director="", notes="", quality="", release_date="")
        wire = normalize(draft)
        assert wire.director is None
        assert wire.notes is None
        assert wire.quality is None
        assert wire.release_date is None

    def test_cast_list_becomes_cast(self):
        """Editing cast rows become the persisted cast plus cast_names."""
        draft = Draft(
            title="Heat",
            cast_list=[
                {"name": "Al Pacino", "character": "Vincent Hanna"},
                {"name": "Robert De Niro", "character": "Neil McCauley"},
            ]
        )
        wire = normalize(draft)
        assert [member.name for member in wire.cast] == ["Al Pacino", "Robert De Niro"]
        assert all(member.profile_path is None for member in wire.cast)
        assert wire.cast_names == "Al Pacino, Robert De Niro"
        assert "cast_list" not in wire.to_payload()

    def test_numeric_strings_are_coerced(self):
        draft = Draft(title="Heat", runtime_minutes="170", user_rating="8.5", external_rating="", seasons="")
        wire = normalize(draft)
        assert wire.runtime_minutes == 170
        assert wire.user_rating == 8.5
        assert wire.external_rating is None
        assert wire.seasons is None

    def test_zero_rating_is_kept(self):
        wire = normalize(Draft(title="Heat", user_rating=0))
        assert wire.user_rating == 0.0

    def test_defaults(self):
        wire = normalize({"title": "Heat"})
        assert wire.media_type == MediaType.MOVIE
        assert wire.backed_up.value == "not_backed_up"
        assert wire.seen is False

    def test_backend_names_in_mapping(self):
        """Plain mappings may use the backend's field names."""
        wire = normalize({"title": "Heat", "tmdb_id": "949", "runtime": 170})
        assert wire.external_id == 949
        assert wire.runtime_minutes == 170
        payload = wire.to_payload()
        assert payload["tmdb_id"] == 949
        assert payload["runtime"] == 170

    def test_server_keys_removed(self):
        record = make_record(7, "Heat", date_added="2024-01-01T10:00:00")
        payload = normalize(record).to_payload()
        assert "id" not in payload
        assert "date_added" not in payload

    def test_fetched_record_keeps_cast(self):
        record = make_record(7, "Heat", cast=[{"name": "Al Pacino", "character": "Hanna", "profile_path": "/p.jpg"}])
        wire = normalize(record)
        assert wire.cast[0].name == "Al Pacino"
        assert wire.cast[0].profile_path is None

    def test_unknown_quality_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            normalize(Draft(title="Heat", quality="VHS"))
        assert exc_info.value.field == "quality"

    def test_idempotent(self):
        """Normalizing normalized output changes nothing."""
        draft = Draft(
            title="The Wire",
            media_type=MediaType.TV_SERIES,
            genres="Crime, Drama",
            release_date="2002-06-02",
            cast_list=[{"name": "Dominic West", "character": "McNulty"}],
            episode_details=[{"season_number": 1, "episode_number": 1, "title": "The Target"}],
            user_rating="9",
            quality="HD",
            notes=""
        )
        once = normalize(draft)
        twice = normalize(once)
        assert isinstance(twice, WireRecord)
        assert twice == once
        assert once.release_date == date(2002, 6, 2)

    def test_idempotent_on_edit_round_trip(self):
        """A fetched record opened for editing normalizes to the same wire record."""
        record = make_record(
            3, "Heat", genres=["Crime"], cast=[{"name": "Al Pacino", "character": "Hanna"}],
            quality="FHD", release_date="1995-12-15"
        )
        assert normalize(Draft.from_record(record)) == normalize(record)


class TestValidateDraft:
    """Tests for local validation before submit."""

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_draft(Draft(title="   "))
        assert exc_info.value.message == "Please enter a title"
        assert exc_info.value.field == "title"

    def test_title_accepted(self):
        validate_draft(Draft(title="Heat"))
