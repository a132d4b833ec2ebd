"""
Configuration management for spot-analyzer.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file is optional. When it is absent every value falls
back to its default, which reproduces the behavior of running the tool in
a bare directory: credentials, token and analysis cache are stored next to
where the command is run.

Configuration File Location:
    config.yaml is looked up in the current working directory unless an
    explicit path is given with --config.

Example config.yaml:
    spotify:
      client_id: "your_client_id_here"        # only needed for `auth`
      client_secret: "your_client_secret_here"
      redirect_port: 4567

    storage:
      directory: "~/.spot-analyzer"

    analysis:
      first: null           # analyze the whole playlist by default
      request_delay: 0.5    # pause after each freshly analyzed track
      backoff_steps: 11     # 2, 4, 8, ... 2048 seconds on repeated 429s
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from spot_analyzer.core.exceptions import ConfigurationError


# Default configuration file name (in current working directory)
CONFIG_FILENAME = "config.yaml"

# File names inside the storage directory
AUTH_FILENAME = ".auth"
TOKEN_FILENAME = ".token"
CACHE_FILENAME = ".analyzed.json"
LOGS_DIRNAME = "logs"

DEFAULT_REDIRECT_PORT = 4567
DEFAULT_REQUEST_DELAY = 0.5
DEFAULT_BACKOFF_STEPS = 11


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify application credentials used by the `auth` command.

    These credentials are obtained from the Spotify Developer Dashboard:
    https://developer.spotify.com/dashboard

    The `analyze` and `watch` commands never read them from here: they use
    the copy stored in the credentials file by `auth`.

    Attributes:
        client_id: The Spotify application client ID, or None.
        client_secret: The Spotify application client secret, or None.
        redirect_port: Local port of the authorization callback server.
                       Must match the redirect URI registered for the app
                       (http://localhost:<port>/callback).
    """
    client_id: str | None = None
    client_secret: str | None = None
    redirect_port: int = DEFAULT_REDIRECT_PORT

    @property
    def redirect_uri(self) -> str:
        """Redirect URI registered in the Spotify Developer Dashboard."""
        return f"http://localhost:{self.redirect_port}/callback"


@dataclass(frozen=True)
class StorageConfig:
    """
    Location of the persisted state.

    Attributes:
        directory: Directory holding the credentials file, the cached
                   access token, the analysis cache and the logs folder.
    """
    directory: Path = field(default_factory=Path.cwd)

    @property
    def auth_file(self) -> Path:
        return self.directory / AUTH_FILENAME

    @property
    def token_file(self) -> Path:
        return self.directory / TOKEN_FILENAME

    @property
    def cache_file(self) -> Path:
        return self.directory / CACHE_FILENAME

    @property
    def logs_directory(self) -> Path:
        return self.directory / LOGS_DIRNAME


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Analysis run behavior.

    Attributes:
        first: Default item cap for playlist listings. None means the
               whole playlist. Overridden by --first.
        request_delay: Seconds to wait after each track that was analyzed
                       through the API (cached tracks are not delayed).
        backoff_steps: Number of doubling backoff waits (2, 4, 8, ...)
                       allowed for rate-limited requests without a
                       Retry-After header before giving up.
    """
    first: int | None = None
    request_delay: float = DEFAULT_REQUEST_DELAY
    backoff_steps: int = DEFAULT_BACKOFF_STEPS


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    This is the main configuration object that aggregates all configuration
    sections. It is created by load_config() and passed explicitly to the
    components that need it; nothing reads it from a global.

    Attributes:
        spotify: Spotify application credentials for the `auth` command.
        storage: Where state files live.
        analysis: Analysis run behavior.

    Example:
        config = load_config()
        print(f"Cache file: {config.storage.cache_file}")
    """
    spotify: SpotifyConfig = field(default_factory=SpotifyConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigurationError: If an explicit config file does not exist, the
                            file has invalid YAML syntax, or contains
                            invalid values.

    Behavior:
        1. Locate config file (explicit path or CWD/config.yaml)
        2. If the default file is missing, return defaults
        3. Read and parse YAML content (an empty file means defaults)
        4. Validate and extract each section
        5. Create and return frozen Config object
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        if explicit:
            raise ConfigurationError(
                f"Configuration file not found: {config_path}",
                details={"file_path": str(config_path)}
            )
        return Config()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if raw_config is None:
        return Config()

    if not isinstance(raw_config, dict):
        raise ConfigurationError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return Config(
        spotify=_parse_spotify_config(_section(raw_config, "spotify")),
        storage=_parse_storage_config(_section(raw_config, "storage")),
        analysis=_parse_analysis_config(_section(raw_config, "analysis")),
    )


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a config section, {} if absent. Raises if it is not a mapping."""
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigurationError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _optional_string(section: dict[str, Any], key: str, field_name: str) -> str | None:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(
            f"'{field_name}' must be a string",
            details={"field": field_name}
        )
    return value.strip() or None


def _parse_spotify_config(spotify_section: dict[str, Any]) -> SpotifyConfig:
    """
    Parse and validate the Spotify configuration section.

    Raises:
        ConfigurationError: If a credential is not a string, or the
                            redirect port is not a valid TCP port.
    """
    client_id = _optional_string(spotify_section, "client_id", "spotify.client_id")
    client_secret = _optional_string(spotify_section, "client_secret", "spotify.client_secret")

    redirect_port = spotify_section.get("redirect_port", DEFAULT_REDIRECT_PORT)
    if (
        not isinstance(redirect_port, int)
        or isinstance(redirect_port, bool)
        or not 0 < redirect_port < 65536
    ):
        raise ConfigurationError(
            "'spotify.redirect_port' must be an integer between 1 and 65535",
            details={"field": "spotify.redirect_port", "value": redirect_port}
        )

    return SpotifyConfig(
        client_id=client_id,
        client_secret=client_secret,
        redirect_port=redirect_port
    )


def _parse_storage_config(storage_section: dict[str, Any]) -> StorageConfig:
    """
    Parse and validate the storage configuration section.

    Expands ~ to home directory and converts to absolute Path.
    Does NOT create the directory (that happens when state is written).
    """
    directory = storage_section.get("directory")
    if directory is None:
        return StorageConfig()

    if not isinstance(directory, str) or not directory.strip():
        raise ConfigurationError(
            "'storage.directory' must be a non-empty string",
            details={"field": "storage.directory"}
        )

    return StorageConfig(directory=Path(directory.strip()).expanduser().resolve())


def _parse_analysis_config(analysis_section: dict[str, Any]) -> AnalysisConfig:
    """
    Parse and validate the analysis configuration section.

    Applies defaults for fields that are not specified.

    Raises:
        ConfigurationError: If first is not a positive integer or null,
                            request_delay is negative, or backoff_steps
                            is not a positive integer.
    """
    first = analysis_section.get("first")
    if first is not None:
        if not isinstance(first, int) or isinstance(first, bool) or first < 1:
            raise ConfigurationError(
                "'analysis.first' must be a positive integer or null",
                details={"field": "analysis.first", "value": first}
            )

    request_delay = analysis_section.get("request_delay", DEFAULT_REQUEST_DELAY)
    if (
        not isinstance(request_delay, (int, float))
        or isinstance(request_delay, bool)
        or request_delay < 0
    ):
        raise ConfigurationError(
            "'analysis.request_delay' must be a non-negative number",
            details={"field": "analysis.request_delay", "value": request_delay}
        )

    backoff_steps = analysis_section.get("backoff_steps", DEFAULT_BACKOFF_STEPS)
    if not isinstance(backoff_steps, int) or isinstance(backoff_steps, bool) or backoff_steps < 1:
        raise ConfigurationError(
            "'analysis.backoff_steps' must be a positive integer",
            details={"field": "analysis.backoff_steps", "value": backoff_steps}
        )

    return AnalysisConfig(
        first=first,
        request_delay=float(request_delay),
        backoff_steps=backoff_steps
    )
