"""FastAPI web application exposing catalog reads."""

from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from src.database import Repository, StorageUnavailableError
from src.recommender import Recommender
from src.utils.config import load_config
from src.utils.logging import get_logger

logger = get_logger(__name__)


def create_app(config_path: str = "config.yaml") -> FastAPI:
    """Create the FastAPI application.

    Args:
        config_path: Path to configuration file

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Soundbase",
        description="Music streaming catalog and recommendations",
        version="1.0.0",
    )

    app.state.config_path = config_path

    @app.exception_handler(StorageUnavailableError)
    async def storage_unavailable(request: Request, exc: StorageUnavailableError) -> JSONResponse:
        logger.error("request_failed", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})

    def open_repository() -> Repository:
        settings = load_config(app.state.config_path)
        return Repository(settings.database.url)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/stats")
    async def stats() -> dict[str, Any]:
        """Row counts per table."""
        repository = open_repository()
        try:
            return await repository.get_stats()
        finally:
            await repository.close()

    @app.get("/users/{user_id}/recommendations")
    async def recommendations(
        user_id: int,
        limit: int | None = Query(None, ge=1, le=100),
    ) -> dict[str, Any]:
        """Unheard songs from the user's favorite genres, most played first."""
        settings = load_config(app.state.config_path)
        repository = Repository(settings.database.url)
        try:
            recommender = Recommender(repository, limit=settings.recommendations.limit)
            songs = await recommender.recommend(user_id, limit=limit)
        finally:
            await repository.close()

        return {"user_id": user_id, "songs": [asdict(song) for song in songs]}

    @app.get("/users/{user_id}/history")
    async def history(user_id: int, start: datetime, end: datetime) -> dict[str, Any]:
        """Listening history within a date range, newest first."""
        if start > end:
            raise HTTPException(status_code=422, detail="start must not be after end")

        repository = open_repository()
        try:
            entries = await repository.listening_history(user_id, start, end)
        finally:
            await repository.close()

        return {"user_id": user_id, "history": [asdict(entry) for entry in entries]}

    @app.get("/songs/top")
    async def top_songs(
        days: int | None = Query(None, ge=1),
        limit: int | None = Query(None, ge=1, le=100),
    ) -> dict[str, Any]:
        """Most played songs over the last N days."""
        settings = load_config(app.state.config_path)
        days = days or settings.analytics.top_songs_days
        since = datetime.now(timezone.utc) - timedelta(days=days)

        repository = Repository(settings.database.url)
        try:
            songs = await repository.top_songs(
                since, limit=limit or settings.analytics.top_songs_limit
            )
        finally:
            await repository.close()

        return {"days": days, "songs": [asdict(song) for song in songs]}

    @app.get("/songs/{song_id}/playlist-owners")
    async def playlist_owners(song_id: int) -> dict[str, Any]:
        """Users with the song in one of their playlists."""
        repository = open_repository()
        try:
            users = await repository.users_with_song_in_playlist(song_id)
        finally:
            await repository.close()

        return {"song_id": song_id, "users": [asdict(user) for user in users]}

    @app.get("/artists/top")
    async def top_artists(limit: int | None = Query(None, ge=1)) -> dict[str, Any]:
        """Artists ranked by follower count."""
        repository = open_repository()
        try:
            artists = await repository.most_followed_artists(limit=limit)
        finally:
            await repository.close()

        return {"artists": [asdict(artist) for artist in artists]}

    @app.get("/artists/{artist_id}/albums")
    async def artist_albums(artist_id: int) -> dict[str, Any]:
        """An artist's albums, newest release first."""
        repository = open_repository()
        try:
            albums = await repository.albums_by_artist(artist_id)
        finally:
            await repository.close()

        return {"artist_id": artist_id, "albums": [asdict(album) for album in albums]}

    return app


def run_server(host: str = "0.0.0.0", port: int = 8080, config_path: str = "config.yaml") -> None:
    """Run the web server.

    Args:
        host: Host to bind to
        port: Port to listen on
        config_path: Path to configuration file
    """
    import uvicorn

    app = create_app(config_path)
    uvicorn.run(app, host=host, port=port)
