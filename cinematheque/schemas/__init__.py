"""Pydantic schemas and view-state types."""
from .draft import CastListEntry, Draft, WireRecord
from .media import (
    AggregateStats,
    BackupStatus,
    CastMember,
    CrewMember,
    DetailRecord,
    EpisodeDetail,
    MediaRecord,
    MediaType,
    ProviderSearchResponse,
    Quality,
    SearchResult,
    StatsItem,
)
from .user import LoginResponse, Session
from .view import ALL, CollectionView, Filter, SortKey, ViewState

__all__ = [
    "ALL",
    "AggregateStats",
    "BackupStatus",
    "CastListEntry",
    "CastMember",
    "CollectionView",
    "CrewMember",
    "DetailRecord",
    "Draft",
    "EpisodeDetail",
    "Filter",
    "LoginResponse",
    "MediaRecord",
    "MediaType",
    "ProviderSearchResponse",
    "Quality",
    "SearchResult",
    "Session",
    "SortKey",
    "StatsItem",
    "ViewState",
    "WireRecord",
]
