"""Database repository for catalog inserts and read queries."""

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import and_, func, select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.utils.logging import get_logger

from .models import (
    AlbumRecord,
    ArtistRecord,
    Base,
    FolloweeType,
    FollowRecord,
    GenreRecord,
    ListeningEventRecord,
    PlaylistRecord,
    PlaylistSongRecord,
    PreferenceType,
    SongGenreRecord,
    SongRecord,
    UserPreferenceRecord,
    UserRecord,
)
from .rows import (
    AlbumSummary,
    ArtistFollowers,
    HistoryEntry,
    PlaylistOwner,
    SongPlays,
    SongSummary,
)

logger = get_logger(__name__)


def as_utc(value: datetime) -> datetime:
    """Convert an aware datetime to UTC. Naive values are taken as UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc)


class CatalogError(Exception):
    """Base exception for catalog errors."""

    pass


class StorageUnavailableError(CatalogError):
    """The underlying database cannot be reached or used."""

    pass


class Repository:
    """Async repository for database operations."""

    def __init__(self, database_url: str) -> None:
        """Initialize the repository.

        Args:
            database_url: SQLAlchemy database URL (e.g., sqlite+aiosqlite:///soundbase.db)
        """
        self.engine = create_async_engine(database_url, echo=False)
        self.session_factory = async_sessionmaker(
            self.engine,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Open a session, translating connectivity failures."""
        try:
            async with self.session_factory() as session:
                yield session
        except (OperationalError, InterfaceError) as e:
            logger.error("storage_unavailable", error=str(e))
            raise StorageUnavailableError(str(e)) from e

    async def init_db(self) -> None:
        """Initialize database tables."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (OperationalError, InterfaceError) as e:
            logger.error("storage_unavailable", error=str(e))
            raise StorageUnavailableError(str(e)) from e
        logger.info("database_initialized")

    async def close(self) -> None:
        """Close database connections."""
        await self.engine.dispose()

    async def _add(self, record: Any) -> Any:
        async with self._session() as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return record

    # User operations

    async def create_user(self, username: str, email: str, password_hash: str) -> UserRecord:
        """Create a user."""
        return await self._add(
            UserRecord(username=username, email=email, password_hash=password_hash)
        )

    async def get_user(self, user_id: int) -> UserRecord | None:
        async with self._session() as session:
            return await session.get(UserRecord, user_id)

    async def get_user_by_username(self, username: str) -> UserRecord | None:
        async with self._session() as session:
            result = await session.execute(
                select(UserRecord).where(UserRecord.username == username)
            )
            return result.scalar_one_or_none()

    # Artist, album and song operations

    async def create_artist(self, name: str, bio: str | None = None) -> ArtistRecord:
        """Create an artist."""
        return await self._add(ArtistRecord(name=name, bio=bio))

    async def get_artist_by_name(self, name: str) -> ArtistRecord | None:
        """Get artist by name (case-insensitive)."""
        async with self._session() as session:
            result = await session.execute(
                select(ArtistRecord)
                .where(func.lower(ArtistRecord.name) == name.lower())
                .order_by(ArtistRecord.artist_id)
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def create_album(
        self,
        title: str,
        release_date: date,
        artist_id: int | None = None,
        cover_art_url: str | None = None,
    ) -> AlbumRecord:
        """Create an album."""
        return await self._add(
            AlbumRecord(
                title=title,
                release_date=release_date,
                artist_id=artist_id,
                cover_art_url=cover_art_url,
            )
        )

    async def create_song(
        self,
        title: str,
        duration: int,
        album_id: int | None = None,
        track_number: int | None = None,
    ) -> SongRecord:
        """Create a song. Duration is in seconds."""
        return await self._add(
            SongRecord(
                title=title,
                duration=duration,
                album_id=album_id,
                track_number=track_number,
            )
        )

    async def get_song_by_title(self, title: str, artist_name: str | None = None) -> SongRecord | None:
        """Get song by title, optionally narrowed to an artist (case-insensitive)."""
        async with self._session() as session:
            query = select(SongRecord).where(func.lower(SongRecord.title) == title.lower())
            if artist_name:
                query = (
                    query.join(AlbumRecord, SongRecord.album_id == AlbumRecord.album_id)
                    .join(ArtistRecord, AlbumRecord.artist_id == ArtistRecord.artist_id)
                    .where(func.lower(ArtistRecord.name) == artist_name.lower())
                )
            result = await session.execute(query.order_by(SongRecord.song_id).limit(1))
            return result.scalar_one_or_none()

    async def get_album_by_title(self, artist_id: int, title: str) -> AlbumRecord | None:
        """Get one of an artist's albums by title."""
        async with self._session() as session:
            result = await session.execute(
                select(AlbumRecord)
                .where(AlbumRecord.artist_id == artist_id, AlbumRecord.title == title)
                .order_by(AlbumRecord.album_id)
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def get_album_song(self, album_id: int, title: str) -> SongRecord | None:
        """Get a song on an album by title."""
        async with self._session() as session:
            result = await session.execute(
                select(SongRecord)
                .where(SongRecord.album_id == album_id, SongRecord.title == title)
                .order_by(SongRecord.song_id)
                .limit(1)
            )
            return result.scalar_one_or_none()

    # Genre operations

    async def create_genre(self, name: str) -> GenreRecord:
        """Create a genre."""
        return await self._add(GenreRecord(name=name))

    async def get_genre_by_name(self, name: str) -> GenreRecord | None:
        async with self._session() as session:
            result = await session.execute(select(GenreRecord).where(GenreRecord.name == name))
            return result.scalar_one_or_none()

    async def tag_song(self, song_id: int, genre_id: int) -> None:
        """Tag a song with a genre. Existing tags are left as they are."""
        async with self._session() as session:
            if await session.get(SongGenreRecord, (song_id, genre_id)) is None:
                session.add(SongGenreRecord(song_id=song_id, genre_id=genre_id))
                await session.commit()

    # Preference operations

    async def _add_preference(self, user_id: int, preference_type: str, value: int) -> None:
        async with self._session() as session:
            key = (user_id, preference_type, value)
            if await session.get(UserPreferenceRecord, key) is None:
                session.add(
                    UserPreferenceRecord(
                        user_id=user_id,
                        preference_type=preference_type,
                        preference_value=value,
                    )
                )
                await session.commit()

    async def add_genre_preference(self, user_id: int, genre_id: int) -> None:
        """Mark a genre as a favorite of the user."""
        await self._add_preference(user_id, PreferenceType.GENRE, genre_id)

    async def add_artist_preference(self, user_id: int, artist_id: int) -> None:
        """Mark an artist as a favorite of the user."""
        await self._add_preference(user_id, PreferenceType.ARTIST, artist_id)

    # Listening history

    async def record_listen(
        self,
        user_id: int,
        song_id: int,
        listened_at: datetime | None = None,
    ) -> ListeningEventRecord:
        """Append a listening event."""
        event = ListeningEventRecord(user_id=user_id, song_id=song_id)
        if listened_at is not None:
            event.listened_at = as_utc(listened_at)
        return await self._add(event)

    # Playlist operations

    async def create_playlist(self, user_id: int, name: str, is_public: bool = True) -> PlaylistRecord:
        """Create a playlist owned by a user."""
        return await self._add(PlaylistRecord(user_id=user_id, name=name, is_public=is_public))

    async def get_playlist_by_name(self, user_id: int, name: str) -> PlaylistRecord | None:
        """Get one of a user's playlists by name."""
        async with self._session() as session:
            result = await session.execute(
                select(PlaylistRecord)
                .where(PlaylistRecord.user_id == user_id, PlaylistRecord.name == name)
                .order_by(PlaylistRecord.playlist_id)
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def add_song_to_playlist(self, playlist_id: int, song_id: int) -> None:
        """Add a song to a playlist. Songs already present are left as they are."""
        async with self._session() as session:
            if await session.get(PlaylistSongRecord, (playlist_id, song_id)) is None:
                session.add(PlaylistSongRecord(playlist_id=playlist_id, song_id=song_id))
                await session.commit()

    # Follow operations

    async def _follow(self, follower_id: int, followee_type: str, followee_id: int) -> None:
        async with self._session() as session:
            key = (follower_id, followee_type, followee_id)
            if await session.get(FollowRecord, key) is None:
                session.add(
                    FollowRecord(
                        follower_id=follower_id,
                        followee_type=followee_type,
                        followee_id=followee_id,
                    )
                )
                await session.commit()

    async def follow_user(self, follower_id: int, user_id: int) -> None:
        await self._follow(follower_id, FolloweeType.USER, user_id)

    async def follow_artist(self, follower_id: int, artist_id: int) -> None:
        await self._follow(follower_id, FolloweeType.ARTIST, artist_id)

    # Recommendation read model

    async def genres_preferred_by(self, user_id: int) -> set[int]:
        """Get the ids of the user's favorite genres."""
        async with self._session() as session:
            result = await session.execute(
                select(UserPreferenceRecord.preference_value).where(
                    UserPreferenceRecord.user_id == user_id,
                    UserPreferenceRecord.preference_type == PreferenceType.GENRE,
                )
            )
            return set(result.scalars().all())

    async def songs_listened_by(self, user_id: int) -> set[int]:
        """Get the ids of songs the user has played at least once."""
        async with self._session() as session:
            result = await session.execute(
                select(ListeningEventRecord.song_id)
                .where(ListeningEventRecord.user_id == user_id)
                .distinct()
            )
            return set(result.scalars().all())

    async def songs_tagged_with(self, genre_ids: Iterable[int]) -> list[SongSummary]:
        """Get songs tagged with any of the genres, one entry per song."""
        genre_ids = set(genre_ids)
        if not genre_ids:
            return []

        async with self._session() as session:
            result = await session.execute(
                select(
                    SongRecord.song_id,
                    SongRecord.title,
                    AlbumRecord.title.label("album_title"),
                    ArtistRecord.name.label("artist_name"),
                )
                .join(SongGenreRecord, SongGenreRecord.song_id == SongRecord.song_id)
                .outerjoin(AlbumRecord, SongRecord.album_id == AlbumRecord.album_id)
                .outerjoin(ArtistRecord, AlbumRecord.artist_id == ArtistRecord.artist_id)
                .where(SongGenreRecord.genre_id.in_(genre_ids))
                .distinct()
                .order_by(SongRecord.song_id)
            )
            return [
                SongSummary(
                    song_id=row.song_id,
                    title=row.title,
                    album_title=row.album_title,
                    artist_name=row.artist_name,
                )
                for row in result.all()
            ]

    async def play_counts(self, song_ids: Iterable[int]) -> dict[int, int]:
        """Get total play counts across all users.

        Returns:
            Mapping of every requested song id to its play count (0 if never played)
        """
        song_ids = set(song_ids)
        if not song_ids:
            return {}

        async with self._session() as session:
            result = await session.execute(
                select(ListeningEventRecord.song_id, func.count(ListeningEventRecord.history_id))
                .where(ListeningEventRecord.song_id.in_(song_ids))
                .group_by(ListeningEventRecord.song_id)
            )
            counts = dict.fromkeys(song_ids, 0)
            counts.update({song_id: count for song_id, count in result.all()})
            return counts

    async def play_count(self, song_id: int) -> int:
        """Get total play count of a single song."""
        counts = await self.play_counts([song_id])
        return counts[song_id]

    # Analytic queries

    async def top_songs(self, since: datetime, limit: int = 10) -> list[SongPlays]:
        """Get the most played songs since a point in time."""
        play_count = func.count(ListeningEventRecord.history_id).label("play_count")
        async with self._session() as session:
            result = await session.execute(
                select(
                    SongRecord.song_id,
                    SongRecord.title,
                    ArtistRecord.name.label("artist_name"),
                    play_count,
                )
                .select_from(ListeningEventRecord)
                .join(SongRecord, ListeningEventRecord.song_id == SongRecord.song_id)
                .outerjoin(AlbumRecord, SongRecord.album_id == AlbumRecord.album_id)
                .outerjoin(ArtistRecord, AlbumRecord.artist_id == ArtistRecord.artist_id)
                .where(ListeningEventRecord.listened_at >= since)
                .group_by(SongRecord.song_id, SongRecord.title, ArtistRecord.name)
                .order_by(play_count.desc(), SongRecord.song_id)
                .limit(limit)
            )
            return [
                SongPlays(
                    song_id=row.song_id,
                    title=row.title,
                    artist_name=row.artist_name,
                    play_count=row.play_count,
                )
                for row in result.all()
            ]

    async def albums_by_artist(self, artist_id: int) -> list[AlbumSummary]:
        """Get an artist's albums, newest release first."""
        async with self._session() as session:
            result = await session.execute(
                select(AlbumRecord)
                .where(AlbumRecord.artist_id == artist_id)
                .order_by(AlbumRecord.release_date.desc(), AlbumRecord.album_id)
            )
            return [
                AlbumSummary(
                    album_id=album.album_id,
                    title=album.title,
                    release_date=album.release_date,
                    cover_art_url=album.cover_art_url,
                )
                for album in result.scalars().all()
            ]

    async def users_with_song_in_playlist(self, song_id: int) -> list[PlaylistOwner]:
        """Get users owning at least one playlist that contains the song."""
        async with self._session() as session:
            result = await session.execute(
                select(UserRecord.user_id, UserRecord.username)
                .join(PlaylistRecord, PlaylistRecord.user_id == UserRecord.user_id)
                .join(PlaylistSongRecord, PlaylistSongRecord.playlist_id == PlaylistRecord.playlist_id)
                .where(PlaylistSongRecord.song_id == song_id)
                .distinct()
                .order_by(UserRecord.user_id)
            )
            return [PlaylistOwner(user_id=row.user_id, username=row.username) for row in result.all()]

    async def most_followed_artists(self, limit: int | None = None) -> list[ArtistFollowers]:
        """Get artists ranked by number of followers."""
        follower_count = func.count(FollowRecord.follower_id).label("follower_count")
        query = (
            select(ArtistRecord.artist_id, ArtistRecord.name, follower_count)
            .join(
                FollowRecord,
                and_(
                    FollowRecord.followee_id == ArtistRecord.artist_id,
                    FollowRecord.followee_type == FolloweeType.ARTIST,
                ),
            )
            .group_by(ArtistRecord.artist_id, ArtistRecord.name)
            .order_by(follower_count.desc(), ArtistRecord.artist_id)
        )
        if limit is not None:
            query = query.limit(limit)

        async with self._session() as session:
            result = await session.execute(query)
            return [
                ArtistFollowers(
                    artist_id=row.artist_id,
                    name=row.name,
                    follower_count=row.follower_count,
                )
                for row in result.all()
            ]

    async def listening_history(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
    ) -> list[HistoryEntry]:
        """Get a user's listening events within [start, end], newest first."""
        async with self._session() as session:
            result = await session.execute(
                select(
                    SongRecord.title.label("song_title"),
                    ArtistRecord.name.label("artist_name"),
                    AlbumRecord.title.label("album_title"),
                    ListeningEventRecord.listened_at,
                )
                .select_from(ListeningEventRecord)
                .join(SongRecord, ListeningEventRecord.song_id == SongRecord.song_id)
                .outerjoin(AlbumRecord, SongRecord.album_id == AlbumRecord.album_id)
                .outerjoin(ArtistRecord, AlbumRecord.artist_id == ArtistRecord.artist_id)
                .where(
                    ListeningEventRecord.user_id == user_id,
                    ListeningEventRecord.listened_at.between(as_utc(start), as_utc(end)),
                )
                .order_by(
                    ListeningEventRecord.listened_at.desc(),
                    ListeningEventRecord.history_id.desc(),
                )
            )
            return [
                HistoryEntry(
                    song_title=row.song_title,
                    artist_name=row.artist_name,
                    album_title=row.album_title,
                    listened_at=row.listened_at,
                )
                for row in result.all()
            ]

    # Utility methods

    async def get_stats(self) -> dict[str, Any]:
        """Get database statistics."""
        async with self._session() as session:
            user_count = await session.scalar(select(func.count(UserRecord.user_id)))
            artist_count = await session.scalar(select(func.count(ArtistRecord.artist_id)))
            album_count = await session.scalar(select(func.count(AlbumRecord.album_id)))
            song_count = await session.scalar(select(func.count(SongRecord.song_id)))
            genre_count = await session.scalar(select(func.count(GenreRecord.genre_id)))
            playlist_count = await session.scalar(select(func.count(PlaylistRecord.playlist_id)))
            listen_count = await session.scalar(select(func.count(ListeningEventRecord.history_id)))

            return {
                "users": user_count or 0,
                "artists": artist_count or 0,
                "albums": album_count or 0,
                "songs": song_count or 0,
                "genres": genre_count or 0,
                "playlists": playlist_count or 0,
                "listens": listen_count or 0,
            }
