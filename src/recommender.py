"""Genre-based song recommendations."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol

from src.database.rows import SongSummary
from src.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_LIMIT = 10


class SongStorage(Protocol):
    """Read model the recommender depends on."""

    async def genres_preferred_by(self, user_id: int) -> set[int]: ...

    async def songs_listened_by(self, user_id: int) -> set[int]: ...

    async def songs_tagged_with(self, genre_ids: Iterable[int]) -> list[SongSummary]: ...

    async def play_counts(self, song_ids: Iterable[int]) -> dict[int, int]: ...


@dataclass(frozen=True)
class Recommendation:
    """A recommended song and its global play count."""

    song_id: int
    title: str
    album_title: str | None
    artist_name: str | None
    play_count: int


def rank_candidates(
    candidates: Iterable[SongSummary],
    play_counts: Mapping[int, int],
    limit: int = DEFAULT_LIMIT,
) -> list[Recommendation]:
    """Rank candidate songs by play count and keep the top ones.

    Ties are broken by song id ascending. Duplicate song ids are collapsed.

    Args:
        candidates: Songs eligible for recommendation
        play_counts: Global play count per song id; missing ids count as 0
        limit: Maximum number of results

    Returns:
        At most ``limit`` recommendations, most played first
    """
    unique = {song.song_id: song for song in candidates}
    ranked = sorted(
        unique.values(),
        key=lambda song: (-play_counts.get(song.song_id, 0), song.song_id),
    )
    return [
        Recommendation(
            song_id=song.song_id,
            title=song.title,
            album_title=song.album_title,
            artist_name=song.artist_name,
            play_count=play_counts.get(song.song_id, 0),
        )
        for song in ranked[:limit]
    ]


class Recommender:
    """Recommends unheard songs from a user's favorite genres."""

    def __init__(self, storage: SongStorage, limit: int = DEFAULT_LIMIT) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.storage = storage
        self.limit = limit

    async def recommend(self, user_id: int, limit: int | None = None) -> list[Recommendation]:
        """Recommend songs for a user.

        Candidates are songs tagged with any of the user's favorite genres
        that the user has never played, ranked by play count across all users.
        A user with no favorite genres gets an empty list, not an error.
        Storage errors propagate unchanged.

        Args:
            user_id: User to recommend for
            limit: Override for the configured result size

        Returns:
            Ranked recommendations, most played first
        """
        limit = self.limit if limit is None else limit
        if limit < 1:
            raise ValueError("limit must be at least 1")

        favorite_genres = await self.storage.genres_preferred_by(user_id)
        if not favorite_genres:
            logger.debug("no_favorite_genres", user_id=user_id)
            return []

        listened = await self.storage.songs_listened_by(user_id)
        tagged = await self.storage.songs_tagged_with(favorite_genres)

        candidate_ids = {song.song_id for song in tagged} - listened
        candidates = [song for song in tagged if song.song_id in candidate_ids]
        if not candidates:
            logger.info("recommendations_computed", user_id=user_id, candidates=0, returned=0)
            return []

        play_counts = await self.storage.play_counts(candidate_ids)
        recommendations = rank_candidates(candidates, play_counts, limit)

        logger.info(
            "recommendations_computed",
            user_id=user_id,
            genres=len(favorite_genres),
            candidates=len(candidate_ids),
            returned=len(recommendations),
        )

        return recommendations
