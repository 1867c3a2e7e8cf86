"""Database models and repository."""

from .models import (
    AlbumRecord,
    ArtistRecord,
    Base,
    GenreRecord,
    ListeningEventRecord,
    SongRecord,
    UserRecord,
)
from .repository import CatalogError, Repository, StorageUnavailableError

__all__ = [
    "AlbumRecord",
    "ArtistRecord",
    "Base",
    "CatalogError",
    "GenreRecord",
    "ListeningEventRecord",
    "Repository",
    "SongRecord",
    "StorageUnavailableError",
    "UserRecord",
]
