"""
Tests for the remote media store.
"""
import asyncio

import httpx
import pytest
from unittest.mock import AsyncMock

from cinematheque.exceptions import NetworkError, NotFoundError, RateLimitedError, ValidationError
from cinematheque.schemas import AggregateStats, BackupStatus, Filter
from cinematheque.services.api_client import CinemathequeAPI
from cinematheque.services.media_store import RemoteMediaStore, build_query_params
from cinematheque.services.normalizer import normalize
from cinematheque.services.notifications import NotificationLevel

from conftest import make_record, messages


class TestQueryParams:
    """Tests for filter -> query parameter translation."""

    def test_all_is_omitted(self):
        assert build_query_params(Filter()) == {}

    def test_values(self):
        params = build_query_params(Filter(
            media_type="movie", seen="unseen", backed_up="pending", quality="4K", search_text="  heat "
        ))
        assert params == {
            "media_type": "movie",
            "seen": False,
            "backed_up": "pending",
            "quality": "4K",
            "search": "heat",
        }

    def test_seen_is_boolean(self):
        assert build_query_params(Filter(seen="seen")) == {"seen": True}


class TestReads:
    """Tests for list/stats loading."""

    @pytest.mark.asyncio
    async def test_list_media(self, store, backend, sample_records):
        backend.list_media.return_value = sample_records
        records = await store.list_media(Filter(media_type="movie"))
        assert len(records) == 4
        assert isinstance(store.records, tuple)
        backend.list_media.assert_awaited_once_with({"media_type": "movie"})
        assert store.filter.media_type == "movie"

    @pytest.mark.asyncio
    async def test_visible_failure_notifies_and_keeps_snapshot(self, store, backend, notifier, sample_records):
        backend.list_media.return_value = sample_records
        await store.list_media()

        backend.list_media.side_effect = NetworkError("Connection refused")
        records = await store.list_media()

        assert len(records) == 4
        assert messages(notifier) == ["Failed to fetch media"]
        assert not store.loading

    @pytest.mark.asyncio
    async def test_silent_failure_is_not_shown(self, store, backend, notifier):
        backend.list_media.side_effect = NetworkError("Connection refused")
        backend.get_stats.side_effect = NetworkError("Connection refused")
        await store.refresh_silent()
        assert messages(notifier) == []

    @pytest.mark.asyncio
    async def test_loading_flag_only_for_visible_calls(self, store, backend):
        seen_loading = []

        async def list_media(params):
            seen_loading.append(store.loading)
            return []

        backend.list_media = AsyncMock(side_effect=list_media)
        await store.list_media()
        await store.list_media(silent=True)

        assert seen_loading == [True, False]
        assert not store.loading

    @pytest.mark.asyncio
    async def test_refresh_halves_are_independent(self, store, backend, notifier, sample_records):
        """A failing stats call does not prevent the list from updating."""
        backend.list_media.return_value = sample_records
        backend.get_stats.side_effect = NetworkError("boom")

        await store.refresh()

        assert len(store.records) == 4
        assert store.stats is None
        assert messages(notifier) == ["Failed to fetch stats"]

    @pytest.mark.asyncio
    async def test_stats(self, store, backend):
        backend.get_stats.return_value = AggregateStats(total_media=4, seen_count=2)
        stats = await store.get_stats()
        assert stats.seen_ratio == 0.5

    @pytest.mark.asyncio
    async def test_outdated_response_is_dropped(self, store, backend):
        """Only the latest list request may replace the snapshot."""
        release = asyncio.Event()

        async def list_media(params):
            if params.get("media_type") == "movie":
                await release.wait()
                return [make_record(1, "Old")]
            return [make_record(2, "New")]

        backend.list_media = AsyncMock(side_effect=list_media)

        slow = asyncio.ensure_future(store.list_media(Filter(media_type="movie")))
        await asyncio.sleep(0)
        await store.list_media(Filter(media_type="tv_series"))
        release.set()
        await slow

        assert [r.title for r in store.records] == ["New"]

    @pytest.mark.asyncio
    async def test_logged_out_is_noop(self, guard, backend, notifier):
        store = RemoteMediaStore(backend, guard, notifier, refresh_delay=0)
        assert await store.list_media() == ()
        assert await store.delete(1, confirm=lambda media_id: True) is False
        backend.list_media.assert_not_called()
        backend.delete_media.assert_not_called()


class TestMutations:
    """Tests for create/update/delete and quick toggles."""

    @pytest.mark.asyncio
    async def test_create_refreshes(self, store, backend, notifier):
        backend.create_media.return_value = make_record(9, "Heat")
        backend.list_media.return_value = [make_record(9, "Heat")]

        created = await store.create(normalize({"title": "Heat"}))

        assert created.id == 9
        assert [r.id for r in store.records] == [9]
        backend.get_stats.assert_awaited()
        assert "Media added successfully" in messages(notifier)

    @pytest.mark.asyncio
    async def test_create_failure_surfaces_and_raises(self, store, backend, notifier):
        backend.create_media.side_effect = ValidationError("title is required")
        with pytest.raises(ValidationError):
            await store.create(normalize({"title": "Heat"}))
        assert messages(notifier) == ["title is required"]
        backend.list_media.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_stale_id(self, store, backend, notifier):
        """Updating a deleted record tells the user and refreshes the list."""
        backend.update_media.side_effect = NotFoundError(42)
        with pytest.raises(NotFoundError):
            await store.update(42, normalize({"title": "Heat"}))
        assert messages(notifier) == ["This item no longer exists in the collection"]
        backend.list_media.assert_awaited()

    @pytest.mark.asyncio
    async def test_delete_declined(self, store, backend):
        deleted = await store.delete(3, confirm=lambda media_id: False)
        assert deleted is False
        backend.delete_media.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_with_async_confirm(self, store, backend, notifier):
        async def confirm(media_id):
            return True

        deleted = await store.delete(3, confirm=confirm)

        assert deleted is True
        backend.delete_media.assert_awaited_once_with(3)
        assert "Media deleted successfully" in messages(notifier)

    @pytest.mark.asyncio
    async def test_toggle_seen_sends_full_record(self, store, backend, notifier):
        record = make_record(5, "Heat", seen=False, notes="keep me", genres=["Crime"])
        backend.update_media.return_value = record.model_copy(update={"seen": True})

        await store.toggle_seen(record)

        media_id, wire = backend.update_media.await_args.args
        assert media_id == 5
        assert wire.seen is True
        assert wire.notes == "keep me"
        assert wire.genres == ["Crime"]
        backend.list_media.assert_awaited_once()
        assert messages(notifier) == ["Updated successfully"]

    @pytest.mark.asyncio
    async def test_toggle_keeps_cast_photos(self, store, backend):
        """Toggling must not touch cast profile paths or cast_names."""
        record = make_record(
            5, "Heat", cast=[{"name": "Al Pacino", "character": "Hanna", "profile_path": "/al.jpg"}],
            cast_names="Al Pacino, Robert De Niro"
        )
        backend.update_media.return_value = record

        await store.toggle_seen(record)

        wire = backend.update_media.await_args.args[1]
        assert wire.cast[0].profile_path == "/al.jpg"
        assert wire.cast_names == "Al Pacino, Robert De Niro"
        assert wire.to_payload()["cast"][0]["profile_path"] == "/al.jpg"

    @pytest.mark.asyncio
    async def test_toggle_keeps_legacy_cast_names(self, store, backend):
        """Records with only cast_names keep it through a backup toggle."""
        record = make_record(6, "Ronin", cast=[], cast_names="A, B")
        backend.update_media.return_value = record

        await store.toggle_backup(record)

        wire = backend.update_media.await_args.args[1]
        assert wire.cast == []
        assert wire.cast_names == "A, B"
        assert wire.backed_up == BackupStatus.BACKED_UP

    @pytest.mark.asyncio
    async def test_silent_reload_survives_malformed_body(self, logged_in_guard, notifier):
        """An unreadable response during a silent reload keeps the snapshot and raises nothing."""
        def handler(request):
            if request.url.path.endswith("/media"):
                return httpx.Response(200, text="<html>proxy error</html>")
            return httpx.Response(200, json={"total_media": "lots"})

        api = CinemathequeAPI(base_url="http://backend.test/api", transport=httpx.MockTransport(handler))
        store = RemoteMediaStore(api, logged_in_guard, notifier, refresh_delay=0)

        await store.refresh_silent()

        assert store.records == ()
        assert store.stats is None
        assert messages(notifier) == []
        await api.close()

    @pytest.mark.asyncio
    async def test_toggle_backup_cycles(self, store, backend):
        """Three toggles bring the status back to where it started."""
        async def update_media(media_id, wire):
            return make_record(media_id, wire.title, backed_up=wire.backed_up)

        backend.update_media = AsyncMock(side_effect=update_media)
        record = make_record(5, "Heat")

        statuses = []
        for _ in range(3):
            record = await store.toggle_backup(record)
            statuses.append(record.backed_up)

        assert statuses == [BackupStatus.BACKED_UP, BackupStatus.PENDING, BackupStatus.NOT_BACKED_UP]

    @pytest.mark.asyncio
    async def test_toggle_failure_returns_none(self, store, backend, notifier):
        backend.update_media.side_effect = RateLimitedError()
        assert await store.toggle_seen(make_record(5, "Heat")) is None
        assert notifier.latest.level == NotificationLevel.WARNING
