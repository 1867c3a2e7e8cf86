"""Shared fixtures."""

from datetime import date

import pytest

from src.database.repository import Repository


@pytest.fixture
async def repository():
    """Create an in-memory database for testing."""
    repo = Repository("sqlite+aiosqlite:///:memory:")
    await repo.init_db()
    yield repo
    await repo.close()


class CatalogBuilder:
    """Small helper for populating a repository in tests."""

    def __init__(self, repository: Repository) -> None:
        self.repository = repository
        self.genres: dict[str, int] = {}
        self._album_id: int | None = None
        self._user_count = 0

    async def genre(self, name: str) -> int:
        if name not in self.genres:
            genre = await self.repository.create_genre(name)
            self.genres[name] = genre.genre_id
        return self.genres[name]

    async def album_id(self) -> int:
        if self._album_id is None:
            artist = await self.repository.create_artist("Test Artist")
            album = await self.repository.create_album(
                "Test Album", date(2020, 1, 1), artist_id=artist.artist_id
            )
            self._album_id = album.album_id
        return self._album_id

    async def user(self, username: str | None = None, genres: tuple[str, ...] = ()) -> int:
        self._user_count += 1
        username = username or f"user{self._user_count}"
        user = await self.repository.create_user(username, f"{username}@example.com", "hash")
        for name in genres:
            await self.repository.add_genre_preference(user.user_id, await self.genre(name))
        return user.user_id

    async def song(self, title: str, genres: tuple[str, ...] = (), plays: int = 0) -> int:
        song = await self.repository.create_song(title, 200, album_id=await self.album_id())
        for name in genres:
            await self.repository.tag_song(song.song_id, await self.genre(name))
        if plays:
            listener = await self.user()
            for _ in range(plays):
                await self.repository.record_listen(listener, song.song_id)
        return song.song_id


@pytest.fixture
async def catalog(repository):
    return CatalogBuilder(repository)


SEED_YAML = """
genres: [rock, jazz]
artists:
  - name: The Band
    bio: Four friends
    albums:
      - title: First
        release_date: 2020-05-01
        songs:
          - {title: Opener, duration: 210, track_number: 1, genres: [rock]}
          - {title: Ballad, duration: 300, track_number: 2, genres: [rock, jazz]}
      - title: Second
        release_date: 2022-09-12
        cover_art_url: https://example.com/second.jpg
        songs:
          - {title: Comeback, duration: 190, genres: [rock]}
  - name: Trio
    albums:
      - title: Blue
        release_date: 2018-01-01
        songs:
          - {title: Swing, duration: 250, genres: [jazz]}
users:
  - username: alice
    email: alice@example.com
    favorite_genres: [rock]
    favorite_artists: [The Band]
    follows: {users: [bob], artists: [The Band, Trio]}
    playlists:
      - name: Mix
        songs: [{title: Swing, artist: Trio}]
    listens:
      - {title: Opener, artist: The Band, count: 2, at: 2024-01-01T10:00:00}
  - username: bob
    email: bob@example.com
    follows: {artists: [The Band]}
    listens:
      - {title: Comeback, count: 5}
      - {title: Ballad}
"""


@pytest.fixture
def seed_file(tmp_path):
    path = tmp_path / "catalog.yaml"
    path.write_text(SEED_YAML)
    return path
