"""Load YAML catalog descriptions into the database."""

from pathlib import Path
from typing import Any

import yaml
from sqlalchemy.exc import IntegrityError

from src.database import CatalogError, Repository
from src.utils.logging import get_logger

from .models import CatalogSeed, SongRef

logger = get_logger(__name__)


class SeedError(CatalogError):
    """Seed file references something missing or conflicts with stored rows."""

    pass


def read_seed_file(path: Path | str) -> CatalogSeed:
    """Parse and validate a YAML seed file."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return CatalogSeed.model_validate(data)


class CatalogSeeder:
    """Inserts a CatalogSeed through the repository."""

    def __init__(self, repository: Repository) -> None:
        self.repository = repository
        self._genres: dict[str, int] = {}

    async def _genre_id(self, name: str) -> int:
        if name not in self._genres:
            genre = await self.repository.get_genre_by_name(name)
            if genre is None:
                raise SeedError(f"Unknown genre: {name}")
            self._genres[name] = genre.genre_id
        return self._genres[name]

    async def _song_id(self, ref: SongRef) -> int:
        song = await self.repository.get_song_by_title(ref.title, ref.artist)
        if song is None:
            raise SeedError(f"Unknown song: {ref}")
        return song.song_id

    async def _user_id(self, username: str) -> int:
        user = await self.repository.get_user_by_username(username)
        if user is None:
            raise SeedError(f"Unknown user: {username}")
        return user.user_id

    async def _artist_id(self, name: str) -> int:
        artist = await self.repository.get_artist_by_name(name)
        if artist is None:
            raise SeedError(f"Unknown artist: {name}")
        return artist.artist_id

    async def seed(self, catalog: CatalogSeed) -> dict[str, Any]:
        """Insert the whole catalog.

        Seeding is repeatable: artists, albums, songs, users and playlists
        that already exist are reused instead of inserted again. Listens are
        only recorded for users created by this run, since listening events
        cannot be told apart from earlier ones. Users are all created before
        follows are applied, so users may follow each other regardless of
        their order in the file.

        Returns:
            Counts of inserted rows by kind

        Raises:
            SeedError: On unknown references or rows violating a constraint
        """
        try:
            counts = await self._seed(catalog)
        except IntegrityError as e:
            raise SeedError(f"Seed data conflicts with existing rows: {e.orig}") from e

        logger.info("catalog_seeded", **counts)
        return counts

    async def _seed(self, catalog: CatalogSeed) -> dict[str, int]:
        counts = {"genres": 0, "artists": 0, "albums": 0, "songs": 0, "users": 0, "listens": 0}

        for name in catalog.genres:
            if await self.repository.get_genre_by_name(name) is None:
                genre = await self.repository.create_genre(name)
                self._genres[name] = genre.genre_id
                counts["genres"] += 1

        for artist_seed in catalog.artists:
            artist = await self.repository.get_artist_by_name(artist_seed.name)
            if artist is None:
                artist = await self.repository.create_artist(artist_seed.name, bio=artist_seed.bio)
                counts["artists"] += 1

            for album_seed in artist_seed.albums:
                album = await self.repository.get_album_by_title(artist.artist_id, album_seed.title)
                if album is None:
                    album = await self.repository.create_album(
                        title=album_seed.title,
                        release_date=album_seed.release_date,
                        artist_id=artist.artist_id,
                        cover_art_url=album_seed.cover_art_url,
                    )
                    counts["albums"] += 1

                for song_seed in album_seed.songs:
                    song = await self.repository.get_album_song(album.album_id, song_seed.title)
                    if song is None:
                        song = await self.repository.create_song(
                            title=song_seed.title,
                            duration=song_seed.duration,
                            album_id=album.album_id,
                            track_number=song_seed.track_number,
                        )
                        counts["songs"] += 1
                    for genre_name in song_seed.genres:
                        await self.repository.tag_song(song.song_id, await self._genre_id(genre_name))

        user_ids: dict[str, int] = {}
        new_users: set[str] = set()
        for user_seed in catalog.users:
            user = await self.repository.get_user_by_username(user_seed.username)
            if user is None:
                user = await self.repository.create_user(
                    username=user_seed.username,
                    email=user_seed.email,
                    password_hash=user_seed.password_hash,
                )
                new_users.add(user_seed.username)
                counts["users"] += 1
            user_ids[user_seed.username] = user.user_id

        for user_seed in catalog.users:
            user_id = user_ids[user_seed.username]

            for genre_name in user_seed.favorite_genres:
                await self.repository.add_genre_preference(user_id, await self._genre_id(genre_name))
            for artist_name in user_seed.favorite_artists:
                await self.repository.add_artist_preference(user_id, await self._artist_id(artist_name))

            for username in user_seed.follows.users:
                followee_id = user_ids.get(username) or await self._user_id(username)
                await self.repository.follow_user(user_id, followee_id)
            for artist_name in user_seed.follows.artists:
                await self.repository.follow_artist(user_id, await self._artist_id(artist_name))

            for playlist_seed in user_seed.playlists:
                playlist = await self.repository.get_playlist_by_name(user_id, playlist_seed.name)
                if playlist is None:
                    playlist = await self.repository.create_playlist(
                        user_id, playlist_seed.name, is_public=playlist_seed.public
                    )
                for ref in playlist_seed.songs:
                    await self.repository.add_song_to_playlist(playlist.playlist_id, await self._song_id(ref))

            if user_seed.username not in new_users:
                continue
            for listen in user_seed.listens:
                song_id = await self._song_id(listen)
                for _ in range(listen.count):
                    await self.repository.record_listen(user_id, song_id, listened_at=listen.at)
                counts["listens"] += listen.count

        return counts


async def seed_from_file(repository: Repository, path: Path | str) -> dict[str, Any]:
    """Read a seed file and insert it."""
    catalog = read_seed_file(path)
    return await CatalogSeeder(repository).seed(catalog)
