"""
Exception classes for spot-analyzer.

This module defines all custom exceptions used throughout the application.
Each exception is designed to provide clear, actionable error messages
and to distinguish between different failure modes.

Exception Hierarchy:
    SpotAnalyzerError (base)
        ConfigurationError - Missing credentials or invalid config.yaml
        AuthProviderError - Token endpoint rejected a refresh or code exchange
        BackoffExhausted - Rate-limit escalation ran out of steps
        PartialFetchError - Error payload in the middle of a paged listing
        PerTrackAnalysisError - A single track could not be analyzed
        CacheError - The analysis cache could not be written
"""


class SpotAnalyzerError(Exception):
    """
    Base exception for all spot-analyzer errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all spot-analyzer errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., track id, URL).

    Example:
        try:
            # some operation
        except SpotAnalyzerError as e:
            logger.error(f"Operation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'track_id': Spotify track ID involved in the error
                     - 'url': URL that caused the error
                     - 'http_status': Status code of the offending response
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigurationError(SpotAnalyzerError):
    """
    Raised when credentials or configuration are missing or invalid.

    This is a CRITICAL error that should stop program execution. The
    message always tells the user how to fix the problem (usually by
    running `spot-analyze auth`).

    Common causes:
        - .auth file not found (authorization never completed)
        - client_id / client_secret missing from the stored credentials
        - config.yaml has invalid YAML syntax or invalid field values

    Example:
        raise ConfigurationError(
            "Credentials file not found. Run `spot-analyze auth` first.",
            details={'path': '/path/to/.auth'}
        )
    """
    pass


class AuthProviderError(SpotAnalyzerError):
    """
    Raised when the Spotify accounts service refuses to issue a token.

    This is a CRITICAL error. It covers a rejected refresh grant, a
    rejected authorization code exchange, and an API that keeps answering
    401 even with a freshly issued token.

    Example:
        raise AuthProviderError(
            "Error refreshing token: Refresh token revoked",
            details={'http_status': 400}
        )
    """
    pass


class BackoffExhausted(SpotAnalyzerError):
    """
    Raised when rate-limit retries ran through the whole backoff sequence.

    This is a CRITICAL error. Analysis results gathered before it was
    raised are still written to the cache file.
    """
    pass


class PartialFetchError(SpotAnalyzerError):
    """
    Describes an error payload returned in the middle of a paged listing.

    This is a NON-CRITICAL error and is never raised by the fetcher: it is
    attached to the returned item list so the caller can decide whether
    the partial result is usable.

    Example:
        PartialFetchError(
            "Invalid playlist Id",
            details={'url': 'https://api.spotify.com/v1/playlists/x/tracks'}
        )
    """
    pass


class PerTrackAnalysisError(SpotAnalyzerError):
    """
    Raised when the analysis of a single track fails.

    This is a NON-CRITICAL error: it is converted into an error result,
    cached, and reported for that track only. The batch continues.

    Common causes:
        - The API has no audio features for the track (error payload)
        - Network failure or undecodable response for that one call
    """
    pass


class CacheError(SpotAnalyzerError):
    """
    Raised when the analysis cache file cannot be written.

    Reading never raises: a missing or corrupt cache file is treated as
    an empty cache.

    Example:
        raise CacheError(
            "Failed to write analysis cache: Permission denied",
            details={'path': '/path/to/.analyzed.json'}
        )
    """
    pass
