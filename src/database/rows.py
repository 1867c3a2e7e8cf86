"""Read rows returned by catalog queries."""

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class SongSummary:
    """Song annotated with its album title and artist name.

    Album title and artist name are None when the song has no album or the
    album has no artist.
    """

    song_id: int
    title: str
    album_title: str | None = None
    artist_name: str | None = None


@dataclass(frozen=True)
class SongPlays:
    """Song with the number of plays in a time window."""

    song_id: int
    title: str
    artist_name: str | None
    play_count: int


@dataclass(frozen=True)
class AlbumSummary:
    album_id: int
    title: str
    release_date: date
    cover_art_url: str | None


@dataclass(frozen=True)
class PlaylistOwner:
    user_id: int
    username: str


@dataclass(frozen=True)
class ArtistFollowers:
    artist_id: int
    name: str
    follower_count: int


@dataclass(frozen=True)
class HistoryEntry:
    """One listening event joined with song, album and artist names."""

    song_title: str
    artist_name: str | None
    album_title: str | None
    listened_at: datetime
