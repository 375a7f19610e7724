"""Cinémathèque: client library for a personal movie and TV collection."""
from .client import CinemathequeClient, create_client
from .config import Settings, get_settings

__version__ = "1.0.0"

__all__ = ["CinemathequeClient", "create_client", "Settings", "get_settings"]
