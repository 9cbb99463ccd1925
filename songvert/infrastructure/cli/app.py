"""Songvert CLI - Main application entry point and commands."""

import asyncio
from importlib.metadata import version
from pathlib import Path
from typing import Annotated

from rich.console import Console
import typer

from songvert.application.use_cases import (
    DownloadTracksUseCase,
    ResolvePlaylistUseCase,
    ResolveTrackUseCase,
)
from songvert.application.utilities.results import BatchReport
from songvert.config import get_logger, setup_loguru_logger
from songvert.domain.entities import Playlist, Source, Track
from songvert.domain.exceptions import InvalidInputError
from songvert.infrastructure.cli.ui import command_error_handler, display_report
from songvert.infrastructure.cli.urls import LinkKind, parse_share_url
from songvert.infrastructure.connectors import (
    create_connector,
    create_connectors,
    create_http_client,
)
from songvert.infrastructure.download import TrackDownloadPipeline
from songvert.infrastructure.persistence import load_playlist, load_track, save_json

VERSION = version("songvert")

console = Console(width=100)
logger = get_logger(__name__)

app = typer.Typer(
    help=f"🎵 Songvert v{VERSION} - Convert tracks between music services",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
)

UrlOption = Annotated[
    str | None, typer.Option("--url", "-u", help="Spotify or Apple Music share URL")
]
InputFileOption = Annotated[
    Path | None,
    typer.Option(
        "--input-file", "-i", help="Load from a saved JSON file", dir_okay=False
    ),
]
SpotifyOption = Annotated[
    bool, typer.Option("--spotify", "-s", help="Resolve on Spotify")
]
AppleMusicOption = Annotated[
    bool, typer.Option("--apple-music", "-a", help="Resolve on Apple Music")
]
BandcampOption = Annotated[
    bool, typer.Option("--bandcamp", "-b", help="Resolve on Bandcamp")
]
YouTubeOption = Annotated[
    bool, typer.Option("--youtube", "-y", help="Resolve on YouTube Music")
]
DownloadOption = Annotated[
    Path | None,
    typer.Option(
        "--download", "-d", help="Download audio into this directory", file_okay=False
    ),
]
OutputFileOption = Annotated[
    Path | None,
    typer.Option(
        "--output-file", "-o", help="Save all metadata as JSON", dir_okay=False
    ),
]
OverwriteArtworkOption = Annotated[
    bool,
    typer.Option(
        "--overwrite-artwork", help="Replace artwork already in downloaded files"
    ),
]
SpotifyTokenOption = Annotated[
    str | None,
    typer.Option(
        "--spotify-token",
        envvar="SPOTIFY_TOKEN",
        help="Spotify bearer token",
        show_default=False,
    ),
]
AppleMusicTokenOption = Annotated[
    str | None,
    typer.Option(
        "--apple-music-token",
        envvar="APPLE_MUSIC_TOKEN",
        help="Apple Music bearer token",
        show_default=False,
    ),
]


def selected_targets(
    spotify: bool, apple_music: bool, bandcamp: bool, youtube: bool
) -> list[Source]:
    """Target services in a fixed order."""
    flags = {
        Source.SPOTIFY: spotify,
        Source.APPLE_MUSIC: apple_music,
        Source.BANDCAMP: bandcamp,
        Source.YOUTUBE: youtube,
    }
    return [source for source, enabled in flags.items() if enabled]


async def _load_input(
    kind: LinkKind,
    url: str | None,
    input_file: Path | None,
    client,
    tokens: dict[Source, str | None],
) -> Track | Playlist:
    if (url is None) == (input_file is None):
        raise InvalidInputError("Provide exactly one of --url or --input-file")

    if input_file is not None:
        if not input_file.is_file():
            raise InvalidInputError(
                f"Input file not found: {input_file}", details={"path": str(input_file)}
            )
        return load_track(input_file) if kind == "track" else load_playlist(input_file)

    link = parse_share_url(url)
    if link.kind != kind:
        raise InvalidInputError(
            f"Expected a {kind} URL, got a {link.kind} URL", details={"url": url}
        )

    connector = create_connector(link.source, client, tokens.get(link.source))
    logger.info("Loading input", source=link.source.value, kind=link.kind, id=link.id)
    match kind:
        case "track":
            return await connector.get_track(link.id)
        case "album":
            return await connector.get_album(link.id)
        case _:
            return await connector.get_playlist(link.id)


async def convert(
    kind: LinkKind,
    url: str | None,
    input_file: Path | None,
    targets: list[Source],
    download_dir: Path | None = None,
    output_file: Path | None = None,
    overwrite_artwork: bool = False,
    tokens: dict[Source, str | None] | None = None,
) -> tuple[Track | Playlist, BatchReport]:
    """Load the input, resolve it on ``targets``, then download and save.

    Returns the resolved entity and the per-track report of every step.
    """
    tokens = tokens or {}

    async with create_http_client() as client:
        entity = await _load_input(kind, url, input_file, client, tokens)
        connectors = create_connectors(targets, client, tokens)

        if isinstance(entity, Track):
            resolved = await ResolveTrackUseCase().execute(entity, connectors)
            entity, report = resolved.track, resolved.report
            tracks = [entity]
        else:
            result = await ResolvePlaylistUseCase().execute(entity, connectors)
            entity, report = result.playlist, result.report
            tracks = entity.tracks

        if download_dir is not None:
            pipeline = TrackDownloadPipeline(
                client,
                overwrite_artwork=overwrite_artwork,
                apple_music_token=tokens.get(Source.APPLE_MUSIC),
            )
            downloads = await DownloadTracksUseCase(pipeline).download_tracks(
                tracks, download_dir, numbered=isinstance(entity, Playlist)
            )
            report = report.merge(downloads.report)

    if output_file is not None:
        save_json(entity, output_file)

    return entity, report


def _run_command(
    kind: LinkKind,
    url: str | None,
    input_file: Path | None,
    targets: list[Source],
    download_dir: Path | None,
    output_file: Path | None,
    overwrite_artwork: bool,
    tokens: dict[Source, str | None],
) -> None:
    entity, report = asyncio.run(
        convert(
            kind,
            url,
            input_file,
            targets,
            download_dir=download_dir,
            output_file=output_file,
            overwrite_artwork=overwrite_artwork,
            tokens=tokens,
        )
    )

    title = entity.display_name() if isinstance(entity, Track) else entity.name
    display_report(report, title=title)
    if output_file is not None:
        console.print(f"[green]✓ Saved metadata to[/green] {output_file}")


@app.command(name="track", rich_help_panel="🎵 Convert")
@command_error_handler
def track_command(
    url: UrlOption = None,
    input_file: InputFileOption = None,
    spotify: SpotifyOption = False,
    apple_music: AppleMusicOption = False,
    bandcamp: BandcampOption = False,
    youtube: YouTubeOption = False,
    download: DownloadOption = None,
    output_file: OutputFileOption = None,
    overwrite_artwork: OverwriteArtworkOption = False,
    spotify_token: SpotifyTokenOption = None,
    apple_music_token: AppleMusicTokenOption = None,
) -> None:
    """Convert a single track."""
    _run_command(
        "track",
        url,
        input_file,
        selected_targets(spotify, apple_music, bandcamp, youtube),
        download,
        output_file,
        overwrite_artwork,
        {Source.SPOTIFY: spotify_token, Source.APPLE_MUSIC: apple_music_token},
    )


@app.command(name="playlist", rich_help_panel="🎵 Convert")
@command_error_handler
def playlist_command(
    url: UrlOption = None,
    input_file: InputFileOption = None,
    spotify: SpotifyOption = False,
    apple_music: AppleMusicOption = False,
    bandcamp: BandcampOption = False,
    youtube: YouTubeOption = False,
    download: DownloadOption = None,
    output_file: OutputFileOption = None,
    overwrite_artwork: OverwriteArtworkOption = False,
    spotify_token: SpotifyTokenOption = None,
    apple_music_token: AppleMusicTokenOption = None,
) -> None:
    """Convert every track of a playlist."""
    _run_command(
        "playlist",
        url,
        input_file,
        selected_targets(spotify, apple_music, bandcamp, youtube),
        download,
        output_file,
        overwrite_artwork,
        {Source.SPOTIFY: spotify_token, Source.APPLE_MUSIC: apple_music_token},
    )


@app.command(name="album", rich_help_panel="🎵 Convert")
@command_error_handler
def album_command(
    url: UrlOption = None,
    input_file: InputFileOption = None,
    spotify: SpotifyOption = False,
    apple_music: AppleMusicOption = False,
    bandcamp: BandcampOption = False,
    youtube: YouTubeOption = False,
    download: DownloadOption = None,
    output_file: OutputFileOption = None,
    overwrite_artwork: OverwriteArtworkOption = False,
    spotify_token: SpotifyTokenOption = None,
    apple_music_token: AppleMusicTokenOption = None,
) -> None:
    """Convert every track of an album."""
    _run_command(
        "album",
        url,
        input_file,
        selected_targets(spotify, apple_music, bandcamp, youtube),
        download,
        output_file,
        overwrite_artwork,
        {Source.SPOTIFY: spotify_token, Source.APPLE_MUSIC: apple_music_token},
    )


@app.command(name="version", rich_help_panel="⚙️ System")
def version_command() -> None:
    """Show version information."""
    console.print(
        f"[bold bright_blue]🎵 Songvert[/bold bright_blue] [dim]v{VERSION}[/dim]"
    )


@app.callback()
def init_cli(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output"),
    ] = False,
) -> None:
    """Initialize Songvert CLI."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_loguru_logger(verbose)


def main() -> int:
    """Application entry point."""
    try:
        return app() or 0
    except Exception:
        logger.exception("Unhandled exception")
        return 1
