"""
Command-line interface for spot-analyzer.

This module implements the CLI using Click, providing the commands for
analyzing the tempo and time signature of Spotify tracks.
rich-click is used for the output colors.

Commands:
    spot-analyze auth [--id ID] [--secret SECRET]
        Authorize spot-analyzer with your Spotify account (run once)

    spot-analyze analyze <playlist_id|liked> [--first N|all] [--odd-time-only] [--retry-errors]
        Print tempo and time signature of every track of a playlist

    spot-analyze watch
        Follow the currently playing track

Usage:
    # Authorize (opens the browser)
    spot-analyze auth --id <client_id> --secret <client_secret>

    # Analyze the first 50 tracks of a playlist
    spot-analyze analyze 37i9dQZF1DXcBWIGoYBM5M --first 50

    # Only show tracks in odd meters from Liked Songs
    spot-analyze analyze liked --odd-time-only

Configuration:
    An optional config.yaml in the current directory (or --config) can
    hold the client credentials, the storage directory and analysis
    defaults. Client credentials can also come from the SPOTIFY_CLIENT_ID
    and SPOTIFY_CLIENT_SECRET environment variables or a .env file.

Exit Codes:
    1   configuration error (missing credentials, invalid config.yaml)
    2   the analysis cache could not be written
    3   Spotify refused the credentials
    4   still rate limited after the whole backoff sequence
    130 interrupted by the user
"""

import sys
import time
from pathlib import Path
from typing import Optional

import requests
import rich_click as click
from click.core import ParameterSource
from dotenv import load_dotenv
from rich import get_console
from rich.markup import escape

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.OPTION_GROUPS = {
    "spot-analyze analyze": [
        {
            "name": "Selection",
            "options": ["--first", "--odd-time-only"],
        },
        {
            "name": "Cache",
            "options": ["--retry-errors"],
        },
    ],
}

from spot_analyzer import __version__
from spot_analyzer.analyzer import TrackAnalyzer
from spot_analyzer.core import (
    AnalysisCache,
    AuthProviderError,
    BackoffExhausted,
    CacheError,
    Config,
    ConfigurationError,
    CredentialStore,
    SpotAnalyzerError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from spot_analyzer.core.progress import AnalysisProgressBar, spinner
from spot_analyzer.spotify import (
    AnalysisResult,
    AuthorizationFlow,
    RequestExecutor,
    SpotifyClient,
    TokenManager,
    Track,
)

logger = get_logger(__name__)


DEFAULT_FIRST = 50
WATCH_INTERVAL = 1


class FirstType(click.ParamType):
    """
    Value of --first: a track count or "all".

    "all" means the whole playlist (None). Zero, negative and non-numeric
    values fall back to the first 50 tracks.
    """

    name = "N|all"

    def convert(self, value, param, ctx) -> Optional[int]:
        if value is None or isinstance(value, int) and value > 0:
            return value
        text = str(value).strip()
        if text.lower() == "all":
            return None
        try:
            count = int(text)
        except ValueError:
            return DEFAULT_FIRST
        return count if count > 0 else DEFAULT_FIRST


def track_link(track: Track) -> str:
    """Track ID rendered as a terminal hyperlink to the track page."""
    return f"[link={track.url}]{track.id}[/link]"


def format_track_line(
    index: int,
    total: int,
    track: Track,
    result: AnalysisResult,
    odd_time_only: bool = False
) -> str | None:
    """
    Format the report line of one analyzed track (Rich markup).

    Returns:
        The line, or None if the track is filtered out by odd_time_only.
        Errors are always reported.
    """
    name = escape(track.display_name)
    if result.is_error:
        return f"{index}/{total}: Error analyzing {name}: {escape(result.error)}"
    if odd_time_only and not result.is_odd_time:
        return None
    return f"{index}/{total}: \\[{track_link(track)}] {name} - {result.time_signature} - {result.bpm}"


def format_watch_line(track: Track, result: AnalysisResult) -> str:
    """Format the status line of the currently playing track (Rich markup)."""
    name = escape(track.name)
    if result.is_error:
        return f"\\[{track_link(track)}] {name}: Error analyzing: {escape(result.error)}"
    return (
        f"\\[{track_link(track)}] {name}: {result.signature} "
        f"(BPM: {result.tempo}, Key: {result.key})"
    )


@click.group(invoke_without_command=True)
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml if present)"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], version: bool) -> None:
    """
    spot-analyzer: Tempo and time signature of your Spotify tracks.

    Looks up the audio analysis of every track of a playlist (or of your
    Liked Songs) and remembers it in .analyzed.json, so each track is
    only requested once.

    \b
    GETTING STARTED:
        spot-analyze auth --id <client_id> --secret <client_secret>
        spot-analyze analyze <playlist_id>
        spot-analyze analyze liked --odd-time-only
        spot-analyze watch
    """
    if version:
        click.echo(f"spot-analyzer {__version__}")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
@click.option(
    "--id", "client_id",
    type=str,
    default=None,
    envvar="SPOTIFY_CLIENT_ID",
    metavar="<client-id>",
    help="Spotify application client ID"
)
@click.option(
    "--secret", "client_secret",
    type=str,
    default=None,
    envvar="SPOTIFY_CLIENT_SECRET",
    metavar="<client-secret>",
    help="Spotify application client secret"
)
@click.pass_context
def auth(ctx: click.Context, client_id: Optional[str], client_secret: Optional[str]) -> None:
    """
    Authorize spot-analyzer with your Spotify account.

    Opens the Spotify consent page and waits for the redirect on
    http://localhost:<port>/callback, which must be registered as a
    redirect URI of your Spotify app.
    """
    def run(config: Config) -> None:
        resolved_id = client_id or config.spotify.client_id
        resolved_secret = client_secret or config.spotify.client_secret
        if not resolved_id or not resolved_secret:
            raise ConfigurationError(
                "Client ID and secret are required: pass --id and --secret, set "
                "SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET, or add them to config.yaml",
                details={"field": "spotify.client_id"}
            )

        flow = AuthorizationFlow(
            _credential_store(config),
            resolved_id,
            resolved_secret,
            config.spotify.redirect_port,
        )
        launch_browser = click.confirm("Open the authorization page in your browser?", default=True)
        try:
            flow.run(launch_browser=launch_browser, announce=click.echo)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot listen on port {config.spotify.redirect_port}: {e}. "
                "Set spotify.redirect_port in config.yaml",
                details={"field": "spotify.redirect_port", "original_error": str(e)}
            ) from e
        click.echo("Authorization successful.")

    _run_command(ctx, run)


@cli.command()
@click.argument("target", metavar="<playlist_id|liked>")
@click.option(
    "--first",
    type=FirstType(),
    default=None,
    help='Analyze only the first N tracks, or "all" for the entire playlist'
)
@click.option(
    "--odd-time-only",
    is_flag=True,
    help="Only show tracks with an odd time signature"
)
@click.option(
    "--retry-errors",
    is_flag=True,
    help="Analyze again tracks whose analysis failed on an earlier run"
)
@click.pass_context
def analyze(
    ctx: click.Context,
    target: str,
    first: Optional[int],
    odd_time_only: bool,
    retry_errors: bool
) -> None:
    """
    Analyze the tracks of a playlist.

    TARGET is a playlist ID, or "liked" for your Liked Songs.
    """
    first_given = ctx.get_parameter_source("first") == ParameterSource.COMMANDLINE

    def run(config: Config) -> None:
        item_cap = first if first_given else config.analysis.first
        client = _spotify_client(config)

        with AnalysisCache(config.storage.cache_file) as cache:
            if retry_errors:
                discarded = cache.discard_errors()
                logger.info(f"Retrying {discarded} previously failed tracks")

            with spinner("Loading playlist"):
                tracks = client.list_tracks(target, first=item_cap)

            if tracks.error is not None:
                click.echo(f"Could not load the whole playlist: {tracks.error.message}", err=True)

            if not tracks:
                click.echo("No tracks found or error occurred. Please check the playlist ID and try again.")
                return

            click.echo(f"Analyzing {len(tracks)} tracks...")
            analyzer = TrackAnalyzer(client, cache, request_delay=config.analysis.request_delay)

            with AnalysisProgressBar(total=len(tracks)) as progress:
                for index, track in enumerate(tracks, start=1):
                    result, cached = analyzer.analyze(track)
                    progress.update(cached=cached, failed=result.is_error)
                    line = format_track_line(index, len(tracks), track, result, odd_time_only)
                    if line is not None:
                        progress.log(line)

        click.echo(f"Analysis complete. Results saved to {config.storage.cache_file}")

    _run_command(ctx, run)


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """
    Show the time signature and tempo of the track you are listening to.

    Polls Spotify every second. Press Ctrl-C to stop.
    """
    def run(config: Config) -> None:
        client = _spotify_client(config)
        console = get_console()

        with AnalysisCache(config.storage.cache_file) as cache:
            analyzer = TrackAnalyzer(client, cache, request_delay=0)
            current_id: str | None = None
            waiting = False

            try:
                while True:
                    try:
                        track = client.currently_playing()
                    except requests.RequestException as e:
                        logger.warning(f"Could not reach Spotify: {e}")
                        track = None

                    if track is None:
                        if not waiting:
                            click.echo("Waiting...")
                        waiting = True
                        current_id = None
                    else:
                        waiting = False
                        if track.id != current_id:
                            result, _ = analyzer.analyze(track)
                            console.print(format_watch_line(track, result), highlight=False)
                            current_id = track.id
                            cache.save()

                    time.sleep(WATCH_INTERVAL)
            except KeyboardInterrupt:
                click.echo("Bye")

    _run_command(ctx, run)


def _credential_store(config: Config) -> CredentialStore:
    return CredentialStore(config.storage.auth_file, config.storage.token_file)


def _spotify_client(config: Config) -> SpotifyClient:
    """Build the API client, with its token manager and executor, for a configuration."""
    token_manager = TokenManager(_credential_store(config))
    executor = RequestExecutor(token_manager, backoff_steps=config.analysis.backoff_steps)
    return SpotifyClient(executor, token_manager)


def _run_command(ctx: click.Context, run) -> None:
    """
    Load the configuration, set up logging and run a command body.

    Maps the error hierarchy to exit codes. The analysis cache is saved
    by its context manager inside the command body, before any of the
    handlers below run.
    """
    try:
        config = load_config(ctx.obj.get("config_path"))
        setup_logging(config.storage.logs_directory)
        logger.info(f"spot-analyzer {__version__} starting: {ctx.info_name}")

        run(config)

    except ConfigurationError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except CacheError as e:
        click.echo(f"Cache error: {e.message}", err=True)
        logger.error(f"Cache error: {e.message}", exc_info=True)
        sys.exit(2)

    except AuthProviderError as e:
        click.echo(f"Spotify authorization error: {e.message}", err=True)
        click.echo("Run `spot-analyze auth` to authorize again.", err=True)
        logger.error(f"Spotify authorization error: {e.message}", exc_info=True)
        sys.exit(3)

    except BackoffExhausted as e:
        click.echo(f"Rate limit error: {e.message}", err=True)
        logger.error(f"Rate limit error: {e.message}")
        sys.exit(4)

    except SpotAnalyzerError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(1)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except requests.RequestException as e:
        click.echo(f"Network error: {e}", err=True)
        logger.error(f"Network error: {e}", exc_info=True)
        sys.exit(1)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        shutdown_logging()


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `spot-analyze` from the command
    line. Variables from a .env file are loaded before the Click group is
    invoked, so --id/--secret can be picked up from there.
    """
    load_dotenv()
    cli()


if __name__ == "__main__":
    main()
