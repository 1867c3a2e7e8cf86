"""Pydantic models for YAML catalog seed files."""

from datetime import date, datetime

from pydantic import BaseModel, Field


class SongSeed(BaseModel):
    """Song entry under an album."""

    title: str
    duration: int = Field(gt=0)  # seconds
    track_number: int | None = None
    genres: list[str] = Field(default_factory=list)


class AlbumSeed(BaseModel):
    """Album entry under an artist."""

    title: str
    release_date: date
    cover_art_url: str | None = None
    songs: list[SongSeed] = Field(default_factory=list)


class ArtistSeed(BaseModel):
    """Artist with discography."""

    name: str
    bio: str | None = None
    albums: list[AlbumSeed] = Field(default_factory=list)


class SongRef(BaseModel):
    """Reference to an existing song by title and artist name."""

    title: str
    artist: str | None = None

    def __str__(self) -> str:
        return f"{self.artist} - {self.title}" if self.artist else self.title


class ListenSeed(SongRef):
    """One or more plays of a song."""

    count: int = Field(default=1, ge=1)
    at: datetime | None = None


class PlaylistSeed(BaseModel):
    name: str
    public: bool = True
    songs: list[SongRef] = Field(default_factory=list)


class FollowsSeed(BaseModel):
    users: list[str] = Field(default_factory=list)
    artists: list[str] = Field(default_factory=list)


class UserSeed(BaseModel):
    """User with preferences, social graph and history."""

    username: str
    email: str
    password_hash: str = "!"  # login disabled
    favorite_genres: list[str] = Field(default_factory=list)
    favorite_artists: list[str] = Field(default_factory=list)
    follows: FollowsSeed = Field(default_factory=FollowsSeed)
    playlists: list[PlaylistSeed] = Field(default_factory=list)
    listens: list[ListenSeed] = Field(default_factory=list)


class CatalogSeed(BaseModel):
    """Top-level seed file."""

    genres: list[str] = Field(default_factory=list)
    artists: list[ArtistSeed] = Field(default_factory=list)
    users: list[UserSeed] = Field(default_factory=list)
