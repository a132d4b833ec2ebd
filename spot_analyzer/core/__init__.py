"""
Core module for spot-analyzer.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with multiple outputs
    - credentials: Storage of the Spotify credentials and access token
    - cache: Persistent analysis cache (.analyzed.json)

Usage:
    from spot_analyzer.core import (
        Config, load_config,
        AnalysisCache, CredentialStore,
        setup_logging, get_logger,
        SpotAnalyzerError, ConfigurationError, CacheError
    )
"""

from spot_analyzer.core.config import (
    AnalysisConfig,
    Config,
    SpotifyConfig,
    StorageConfig,
    load_config,
)
from spot_analyzer.core.exceptions import (
    AuthProviderError,
    BackoffExhausted,
    CacheError,
    ConfigurationError,
    PartialFetchError,
    PerTrackAnalysisError,
    SpotAnalyzerError,
)
from spot_analyzer.core.logger import (
    get_logger,
    log_analysis_failure,
    setup_logging,
    shutdown_logging,
)
from spot_analyzer.core.credentials import Credentials, CredentialStore

# Imported last: the cache depends on spotify.models, which imports core.exceptions
from spot_analyzer.core.cache import AnalysisCache

__all__ = [
    # Config
    "Config",
    "SpotifyConfig",
    "StorageConfig",
    "AnalysisConfig",
    "load_config",
    # Storage
    "AnalysisCache",
    "Credentials",
    "CredentialStore",
    # Exceptions
    "SpotAnalyzerError",
    "ConfigurationError",
    "AuthProviderError",
    "BackoffExhausted",
    "PartialFetchError",
    "PerTrackAnalysisError",
    "CacheError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_analysis_failure",
    "shutdown_logging",
]
