"""Tests for YAML catalog seeding."""

import pytest
from datetime import date, datetime

from pydantic import ValidationError

from src.recommender import Recommender
from src.seed import CatalogSeed, CatalogSeeder, SeedError, read_seed_file, seed_from_file


class TestSeedModels:
    """Tests for seed file parsing."""

    def test_read_seed_file(self, seed_file):
        catalog = read_seed_file(seed_file)

        assert catalog.genres == ["rock", "jazz"]
        assert catalog.artists[0].albums[0].release_date == date(2020, 5, 1)
        assert catalog.artists[0].albums[0].songs[1].genres == ["rock", "jazz"]
        assert catalog.users[0].listens[0].at == datetime(2024, 1, 1, 10, 0)
        assert catalog.users[1].listens[1].count == 1
        assert catalog.users[1].follows.users == []

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        catalog = read_seed_file(path)

        assert catalog == CatalogSeed()

    def test_invalid_duration(self):
        with pytest.raises(ValidationError):
            CatalogSeed.model_validate(
                {"artists": [{"name": "A", "albums": [{"title": "B", "release_date": "2020-01-01",
                                                       "songs": [{"title": "C", "duration": 0}]}]}]}
            )


class TestCatalogSeeder:
    """Tests for inserting seed data."""

    @pytest.mark.asyncio
    async def test_seed_counts(self, repository, seed_file):
        counts = await seed_from_file(repository, seed_file)

        assert counts == {
            "genres": 2,
            "artists": 2,
            "albums": 3,
            "songs": 4,
            "users": 2,
            "listens": 8,
        }
        stats = await repository.get_stats()
        assert stats["songs"] == 4
        assert stats["listens"] == 8
        assert stats["playlists"] == 1

    @pytest.mark.asyncio
    async def test_seeded_relationships(self, repository, seed_file):
        await seed_from_file(repository, seed_file)

        band = await repository.get_artist_by_name("The Band")
        albums = await repository.albums_by_artist(band.artist_id)
        assert [a.title for a in albums] == ["Second", "First"]

        artists = await repository.most_followed_artists()
        assert [(a.name, a.follower_count) for a in artists] == [("The Band", 2), ("Trio", 1)]

        swing = await repository.get_song_by_title("Swing")
        owners = await repository.users_with_song_in_playlist(swing.song_id)
        assert [o.username for o in owners] == ["alice"]

    @pytest.mark.asyncio
    async def test_seeded_catalog_recommendations(self, repository, seed_file):
        await seed_from_file(repository, seed_file)
        alice = await repository.get_user_by_username("alice")

        result = await Recommender(repository).recommend(alice.user_id)

        # Opener was already played by alice
        assert [r.title for r in result] == ["Comeback", "Ballad"]
        assert [r.play_count for r in result] == [5, 1]

    @pytest.mark.asyncio
    async def test_existing_genres_not_duplicated(self, repository):
        await repository.create_genre("rock")

        counts = await CatalogSeeder(repository).seed(CatalogSeed(genres=["rock", "pop"]))

        assert counts["genres"] == 1

    @pytest.mark.asyncio
    async def test_unknown_genre(self, repository):
        catalog = CatalogSeed.model_validate(
            {"artists": [{"name": "A", "albums": [{"title": "B", "release_date": "2020-01-01",
                                                   "songs": [{"title": "C", "duration": 60,
                                                              "genres": ["polka"]}]}]}]}
        )

        with pytest.raises(SeedError, match="polka"):
            await CatalogSeeder(repository).seed(catalog)

    @pytest.mark.asyncio
    async def test_unknown_song(self, repository):
        catalog = CatalogSeed.model_validate(
            {"users": [{"username": "a", "email": "a@example.com",
                        "listens": [{"title": "Nothing", "artist": "Nobody"}]}]}
        )

        with pytest.raises(SeedError, match="Nobody - Nothing"):
            await CatalogSeeder(repository).seed(catalog)

    @pytest.mark.asyncio
    async def test_unknown_followed_user(self, repository):
        catalog = CatalogSeed.model_validate(
            {"users": [{"username": "a", "email": "a@example.com", "follows": {"users": ["ghost"]}}]}
        )

        with pytest.raises(SeedError, match="ghost"):
            await CatalogSeeder(repository).seed(catalog)

    @pytest.mark.asyncio
    async def test_seeding_twice_reuses_rows(self, repository, seed_file):
        await seed_from_file(repository, seed_file)

        counts = await seed_from_file(repository, seed_file)

        assert counts == dict.fromkeys(["genres", "artists", "albums", "songs", "users", "listens"], 0)
        stats = await repository.get_stats()
        assert stats["artists"] == 2
        assert stats["albums"] == 3
        assert stats["songs"] == 4
        assert stats["users"] == 2
        assert stats["playlists"] == 1
        assert stats["listens"] == 8

        alice = await repository.get_user_by_username("alice")
        result = await Recommender(repository).recommend(alice.user_id)
        assert [(r.title, r.play_count) for r in result] == [("Comeback", 5), ("Ballad", 1)]

    @pytest.mark.asyncio
    async def test_conflicting_user_raises_seed_error(self, repository, seed_file):
        await seed_from_file(repository, seed_file)
        catalog = CatalogSeed.model_validate(
            {"users": [{"username": "alice2", "email": "alice@example.com"}]}
        )

        with pytest.raises(SeedError, match="conflicts"):
            await CatalogSeeder(repository).seed(catalog)

    @pytest.mark.asyncio
    async def test_listen_offset_stored_as_utc(self, repository, seed_file):
        await seed_from_file(repository, seed_file)
        catalog = CatalogSeed.model_validate(
            {"users": [{"username": "carol", "email": "carol@example.com",
                        "listens": [{"title": "Swing", "at": "2024-03-01T10:00:00+02:00"}]}]}
        )

        await CatalogSeeder(repository).seed(catalog)

        carol = await repository.get_user_by_username("carol")
        entries = await repository.listening_history(
            carol.user_id, datetime(2024, 3, 1), datetime(2024, 3, 2)
        )
        assert [e.listened_at for e in entries] == [datetime(2024, 3, 1, 8, 0)]
