"""SQLAlchemy database models for the streaming catalog."""

from datetime import date, datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class PreferenceType:
    """Values of user_preferences.preference_type."""

    GENRE = "genre"
    ARTIST = "artist"


class FolloweeType:
    """Values of follows.followee_type."""

    USER = "user"
    ARTIST = "artist"


def utcnow() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class UserRecord(Base):
    """Registered listener."""

    __tablename__ = "users"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    playlists: Mapped[list["PlaylistRecord"]] = relationship("PlaylistRecord", back_populates="owner")


class ArtistRecord(Base):
    """Recording artist."""

    __tablename__ = "artists"

    artist_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    albums: Mapped[list["AlbumRecord"]] = relationship("AlbumRecord", back_populates="artist")


class AlbumRecord(Base):
    """Album released by an artist."""

    __tablename__ = "albums"

    album_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    artist_id: Mapped[int | None] = mapped_column(ForeignKey("artists.artist_id"), nullable=True)
    release_date: Mapped[date] = mapped_column(Date, nullable=False)
    cover_art_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    artist: Mapped[ArtistRecord | None] = relationship("ArtistRecord", back_populates="albums")
    songs: Mapped[list["SongRecord"]] = relationship("SongRecord", back_populates="album")


class SongRecord(Base):
    """Single track on an album."""

    __tablename__ = "songs"

    song_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    album_id: Mapped[int | None] = mapped_column(ForeignKey("albums.album_id"), nullable=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # seconds
    track_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    album: Mapped[AlbumRecord | None] = relationship("AlbumRecord", back_populates="songs")


class PlaylistRecord(Base):
    """User-owned playlist."""

    __tablename__ = "playlists"

    playlist_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.user_id"), nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    owner: Mapped[UserRecord | None] = relationship("UserRecord", back_populates="playlists")


class PlaylistSongRecord(Base):
    """Song membership in a playlist."""

    __tablename__ = "playlist_songs"

    playlist_id: Mapped[int] = mapped_column(ForeignKey("playlists.playlist_id"), primary_key=True)
    song_id: Mapped[int] = mapped_column(ForeignKey("songs.song_id"), primary_key=True)
    added_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (Index("idx_playlist_songs_song", "song_id"),)


class ListeningEventRecord(Base):
    """A single play of a song by a user. Append-only."""

    __tablename__ = "listening_history"

    history_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.user_id"), nullable=False)
    song_id: Mapped[int] = mapped_column(ForeignKey("songs.song_id"), nullable=False)
    listened_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        Index("idx_listening_history_user_id", "user_id"),
        Index("idx_listening_history_song_id", "song_id"),
        Index("idx_listening_history_listened_at", "listened_at"),
    )


class FollowRecord(Base):
    """A user following another user or an artist."""

    __tablename__ = "follows"

    follower_id: Mapped[int] = mapped_column(ForeignKey("users.user_id"), primary_key=True)
    followee_type: Mapped[str] = mapped_column(String(10), primary_key=True)  # user, artist
    followee_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    followed_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        CheckConstraint("followee_type IN ('user', 'artist')", name="ck_follows_followee_type"),
        Index("idx_follows_followee", "followee_type", "followee_id"),
    )


class UserPreferenceRecord(Base):
    """Declared preference for a genre or an artist."""

    __tablename__ = "user_preferences"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.user_id"), primary_key=True)
    preference_type: Mapped[str] = mapped_column(String(20), primary_key=True)  # genre, artist
    # genre_id or artist_id depending on preference_type
    preference_value: Mapped[int] = mapped_column(Integer, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        CheckConstraint(
            "preference_type IN ('genre', 'artist')",
            name="ck_user_preferences_type",
        ),
        Index("idx_user_preferences_user", "user_id", "preference_type"),
    )


class GenreRecord(Base):
    """Musical genre."""

    __tablename__ = "genres"

    genre_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)


class SongGenreRecord(Base):
    """Genre tag on a song."""

    __tablename__ = "song_genres"

    song_id: Mapped[int] = mapped_column(ForeignKey("songs.song_id"), primary_key=True)
    genre_id: Mapped[int] = mapped_column(ForeignKey("genres.genre_id"), primary_key=True)
