"""CLI entry point for Soundbase."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Annotated, Any, Optional, TypeVar

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from src.database import CatalogError, Repository
from src.utils.config import Settings, load_config
from src.utils.logging import setup_logging_from_config

app = typer.Typer(
    name="soundbase",
    help="Soundbase - Music streaming catalog and recommendations",
    no_args_is_help=True,
)
console = Console()

T = TypeVar("T")

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to configuration file"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable verbose output"),
]


def get_config_path(config: Optional[Path]) -> Path:
    """Get the configuration file path."""
    return config or Path("config.yaml")


def load_settings(config: Optional[Path], verbose: bool = False) -> Settings:
    """Load settings and configure logging."""
    settings = load_config(get_config_path(config))
    setup_logging_from_config(settings.logging, verbose=verbose)
    return settings


def run_with_repository(
    settings: Settings,
    action: Callable[[Repository], Awaitable[T]],
    init: bool = False,
) -> T:
    """Run an async action against a repository, exiting on catalog errors."""

    async def runner() -> T:
        repository = Repository(settings.database.url)
        try:
            if init:
                await repository.init_db()
            return await action(repository)
        finally:
            await repository.close()

    try:
        return asyncio.run(runner())
    except CatalogError as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _dash(value: Any) -> str:
    return "-" if value is None else str(value)


@app.command("init-db")
def init_db(config: ConfigOption = None, verbose: VerboseOption = False) -> None:
    """Create the catalog tables."""
    settings = load_settings(config, verbose)

    async def noop(repository: Repository) -> None:
        return None

    run_with_repository(settings, noop, init=True)
    rprint(f"[green]✓[/green] Database initialized at [cyan]{settings.database.path}[/cyan]")


@app.command()
def seed(
    file: Annotated[Path, typer.Argument(help="YAML catalog file", exists=True, dir_okay=False)],
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Load a YAML catalog file into the database."""
    from pydantic import ValidationError

    from src.seed import read_seed_file, CatalogSeeder

    settings = load_settings(config, verbose)

    try:
        catalog = read_seed_file(file)
    except ValidationError as e:
        rprint(f"[red]Invalid seed file:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    counts = run_with_repository(
        settings,
        lambda repository: CatalogSeeder(repository).seed(catalog),
        init=True,
    )

    rprint(Panel(
        "\n".join(f"  {kind.capitalize()}: {count}" for kind, count in counts.items()),
        title="Catalog Seeded",
    ))


@app.command()
def recommend(
    user_id: Annotated[int, typer.Argument(help="User to recommend songs for")],
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", "-n", min=1, help="Number of songs"),
    ] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Recommend unheard songs from a user's favorite genres."""
    from src.recommender import Recommender

    settings = load_settings(config, verbose)

    songs = run_with_repository(
        settings,
        lambda repository: Recommender(
            repository, limit=settings.recommendations.limit
        ).recommend(user_id, limit=limit),
    )

    if not songs:
        rprint(f"[yellow]No recommendations for user {user_id}[/yellow]")
        return

    table = Table(title=f"Recommendations for user {user_id}")
    table.add_column("#", justify="right")
    table.add_column("Song", style="cyan")
    table.add_column("Artist")
    table.add_column("Album")
    table.add_column("Plays", justify="right")
    for position, song in enumerate(songs, start=1):
        table.add_row(
            str(position),
            song.title,
            _dash(song.artist_name),
            _dash(song.album_title),
            str(song.play_count),
        )
    console.print(table)


@app.command("top-songs")
def top_songs(
    days: Annotated[Optional[int], typer.Option("--days", "-d", min=1, help="Window in days")] = None,
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", min=1, help="Number of songs")] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show the most played songs of the last days."""
    settings = load_settings(config, verbose)
    days = days or settings.analytics.top_songs_days
    since = datetime.now(timezone.utc) - timedelta(days=days)

    songs = run_with_repository(
        settings,
        lambda repository: repository.top_songs(
            since, limit=limit or settings.analytics.top_songs_limit
        ),
    )

    table = Table(title=f"Top songs, last {days} days")
    table.add_column("ID", justify="right")
    table.add_column("Song", style="cyan")
    table.add_column("Artist")
    table.add_column("Plays", justify="right")
    for song in songs:
        table.add_row(str(song.song_id), song.title, _dash(song.artist_name), str(song.play_count))
    console.print(table)


@app.command()
def albums(
    artist_id: Annotated[int, typer.Argument(help="Artist ID")],
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """List an artist's albums, newest first."""
    settings = load_settings(config, verbose)

    rows = run_with_repository(settings, lambda repository: repository.albums_by_artist(artist_id))

    table = Table(title=f"Albums by artist {artist_id}")
    table.add_column("ID", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Released")
    table.add_column("Cover")
    for album in rows:
        table.add_row(
            str(album.album_id),
            album.title,
            album.release_date.isoformat(),
            _dash(album.cover_art_url),
        )
    console.print(table)


@app.command()
def listeners(
    song_id: Annotated[int, typer.Argument(help="Song ID")],
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """List users who have the song in one of their playlists."""
    settings = load_settings(config, verbose)

    users = run_with_repository(
        settings, lambda repository: repository.users_with_song_in_playlist(song_id)
    )

    table = Table(title=f"Playlist owners of song {song_id}")
    table.add_column("ID", justify="right")
    table.add_column("Username", style="cyan")
    for user in users:
        table.add_row(str(user.user_id), user.username)
    console.print(table)


@app.command("top-artists")
def top_artists(
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", min=1, help="Number of artists")] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show artists with the most followers."""
    settings = load_settings(config, verbose)

    artists = run_with_repository(
        settings, lambda repository: repository.most_followed_artists(limit=limit)
    )

    table = Table(title="Most followed artists")
    table.add_column("ID", justify="right")
    table.add_column("Artist", style="cyan")
    table.add_column("Followers", justify="right")
    for artist in artists:
        table.add_row(str(artist.artist_id), artist.name, str(artist.follower_count))
    console.print(table)


@app.command()
def history(
    user_id: Annotated[int, typer.Argument(help="User ID")],
    start: Annotated[datetime, typer.Option("--start", help="Range start (inclusive)")],
    end: Annotated[datetime, typer.Option("--end", help="Range end (inclusive)")],
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show a user's listening history for a date range."""
    if start > end:
        rprint("[red]Error:[/red] --start must not be after --end")
        raise typer.Exit(1)

    settings = load_settings(config, verbose)

    entries = run_with_repository(
        settings, lambda repository: repository.listening_history(user_id, start, end)
    )

    table = Table(title=f"Listening history for user {user_id}")
    table.add_column("Listened at")
    table.add_column("Song", style="cyan")
    table.add_column("Artist")
    table.add_column("Album")
    for entry in entries:
        table.add_row(
            entry.listened_at.isoformat(sep=" ", timespec="seconds"),
            entry.song_title,
            _dash(entry.artist_name),
            _dash(entry.album_title),
        )
    console.print(table)


@app.command()
def status(config: ConfigOption = None) -> None:
    """Show configuration and catalog size."""
    config_path = get_config_path(config)

    try:
        settings = load_config(config_path)
    except Exception as e:
        rprint(f"[red]Error loading config:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    rprint("\n[bold blue]Soundbase Status[/bold blue]\n")

    rprint(f"[bold]Config:[/bold] {config_path}")
    rprint(f"[bold]Database:[/bold] {settings.database.path}")
    rprint(f"[bold]Recommendation limit:[/bold] {settings.recommendations.limit}")
    rprint()

    async def get_stats(repository: Repository) -> dict[str, Any]:
        return await repository.get_stats()

    stats = run_with_repository(settings, get_stats, init=True)

    table = Table(title="Catalog")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", justify="right")
    for name, count in stats.items():
        table.add_row(name.capitalize(), str(count))
    console.print(table)


@app.command()
def serve(
    host: Annotated[Optional[str], typer.Option("--host", help="Host to bind to")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Port to listen on")] = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Run the web API."""
    config_path = get_config_path(config)
    settings = load_settings(config, verbose)

    from src.web.app import run_server

    host = host or settings.web.host
    port = port or settings.web.port
    rprint(f"\n[bold blue]Starting Soundbase API[/bold blue] on http://{host}:{port}\n")
    rprint("Press Ctrl+C to stop\n")

    run_server(host=host, port=port, config_path=str(config_path))


if __name__ == "__main__":
    app()
