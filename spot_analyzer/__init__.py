"""
spot-analyzer: Tempo and time signature analysis of Spotify playlists.

This package lists the tracks of a Spotify playlist (or of the user's
Liked Songs), looks up the audio analysis of each one and prints its
time signature and tempo. Results are kept in a local JSON cache so a
track is only ever requested once.

Architecture:
    core/       - Configuration, credentials, analysis cache, logging,
                  exceptions, progress display
    spotify/    - Token lifecycle, resilient request executor, pagination,
                  catalog client and models
    analyzer.py - Per-track analysis through the cache
    cli.py      - Command-line interface

Usage:
    Command Line:
        spot-analyze auth --id <client_id> --secret <client_secret>
        spot-analyze analyze <playlist_id> --first 100
        spot-analyze analyze liked --odd-time-only
        spot-analyze watch

    Python API:
        from spot_analyzer.core import AnalysisCache, CredentialStore, load_config
        from spot_analyzer.spotify import RequestExecutor, SpotifyClient, TokenManager
        from spot_analyzer.analyzer import TrackAnalyzer

        config = load_config()
        token_manager = TokenManager(
            CredentialStore(config.storage.auth_file, config.storage.token_file)
        )
        client = SpotifyClient(RequestExecutor(token_manager), token_manager)

        with AnalysisCache(config.storage.cache_file) as cache:
            analyzer = TrackAnalyzer(client, cache)
            for track in client.list_tracks("liked", first=20):
                result, cached = analyzer.analyze(track)

Dependencies:
    - requests: HTTP client for the Web API and token endpoint
    - click: CLI framework
    - rich-click: CLI colors
    - rich: Spinner and progress bar
    - tqdm: Console logging that doesn't break progress output
    - pyyaml: Configuration file parsing
    - python-dotenv: Client credentials from a .env file
"""

__version__ = "0.1.0"
__author__ = "spot-analyzer"
__license__ = "MIT"

# Convenience imports for common usage
from spot_analyzer.core import (
    AnalysisCache,
    Config,
    ConfigurationError,
    CredentialStore,
    SpotAnalyzerError,
    get_logger,
    load_config,
    setup_logging,
)
from spot_analyzer.spotify import AnalysisResult, SpotifyClient, TokenManager, Track

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "AnalysisCache",
    "CredentialStore",
    "setup_logging",
    "get_logger",
    # Exceptions
    "SpotAnalyzerError",
    "ConfigurationError",
    # Spotify
    "SpotifyClient",
    "TokenManager",
    "Track",
    "AnalysisResult",
]
