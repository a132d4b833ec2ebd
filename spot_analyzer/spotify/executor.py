"""
Resilient request executor for the Spotify Web API.

Every catalog request goes through RequestExecutor.execute(), which hides
the two transient failure modes of the API from its callers:

401 Unauthorized:
    The access token expired (Spotify never tells the client when; expiry
    is only discovered this way). For refreshable requests a new token is
    obtained from the TokenManager, substituted into the Authorization
    header, and the request is retried immediately. A request is refreshed
    at most once: if the API rejects the freshly issued token too, even
    after rate-limit waits in between, AuthProviderError is raised instead
    of looping.

429 Too Many Requests:
    The request is retried after the number of seconds in the Retry-After
    header. Without a usable header the wait escalates through a doubling
    sequence (2, 4, 8, ... seconds). The sequence has a fixed number of
    steps; when it runs out BackoffExhausted is raised. The wait blocks
    the whole process and is reported second by second.

Any other status is returned to the caller as-is, including other 4xx
and 5xx errors: the payload tells the caller what went wrong.

Usage:
    executor = RequestExecutor(token_manager)
    request = requests.Request("GET", url, headers={"Authorization": f"Bearer {token}"})
    response = executor.execute(request, refreshable=True)
"""

import time
from typing import Callable, Iterator

import requests

from spot_analyzer.core.config import DEFAULT_BACKOFF_STEPS
from spot_analyzer.core.exceptions import AuthProviderError, BackoffExhausted
from spot_analyzer.core.logger import format_countdown_message, get_logger
from spot_analyzer.spotify.auth import TokenManager

logger = get_logger(__name__)


REQUEST_TIMEOUT = 30


def backoff_sequence(steps: int = DEFAULT_BACKOFF_STEPS) -> Iterator[int]:
    """Yield the escalating waits 2, 4, 8, ... 2**steps seconds."""
    for exponent in range(1, steps + 1):
        yield 2 ** exponent


def parse_retry_after(value: str | None) -> int:
    """
    Parse a Retry-After header given in seconds.

    Returns:
        The number of seconds, or 0 if the header is missing, not a
        number, or not positive (0 means "use the backoff sequence").
    """
    if value is None:
        return 0
    try:
        seconds = int(value.strip())
    except ValueError:
        return 0
    return max(seconds, 0)


def _log_countdown(remaining: int) -> None:
    logger.info(format_countdown_message(remaining), extra={"countdown_seconds": remaining})


class RequestExecutor:
    """
    Sends requests, retrying through token expiry and rate limiting.

    Attributes:
        token_manager: Source of fresh access tokens after a 401.
        backoff_steps: Number of doubling waits allowed per request.
    """

    def __init__(
        self,
        token_manager: TokenManager,
        session: requests.Session | None = None,
        backoff_steps: int = DEFAULT_BACKOFF_STEPS,
        sleep: Callable[[float], None] = time.sleep,
        countdown: Callable[[int], None] = _log_countdown,
    ) -> None:
        """
        Args:
            token_manager: TokenManager used to refresh the access token.
            session: HTTP session; a new requests.Session by default.
            backoff_steps: Length of the doubling backoff sequence.
            sleep: Blocking sleep function (replaced in tests).
            countdown: Called with the seconds remaining before each
                       one-second tick of a rate-limit wait.
        """
        self.token_manager = token_manager
        self.backoff_steps = backoff_steps
        self._session = session or requests.Session()
        self._sleep = sleep
        self._countdown = countdown

    def execute(self, request: requests.Request, refreshable: bool = False) -> requests.Response:
        """
        Send a request until it gets a definitive response.

        Args:
            request: The request to send. Its headers are updated in place
                     when the access token is replaced, so later requests
                     built from the same headers use the new token.
            refreshable: Whether a 401 should trigger a token refresh.

        Returns:
            The first response that is neither a 429 nor a refreshable 401.

        Raises:
            AuthProviderError: If the token can't be refreshed, or the API
                               rejects a token that was just refreshed.
            BackoffExhausted: If the backoff sequence runs out.
            requests.RequestException: On transport failures.
        """
        backoff = backoff_sequence(self.backoff_steps)
        refreshed = False

        while True:
            response = self._send(request)

            if response.status_code == 401 and refreshable:
                if refreshed:
                    raise AuthProviderError(
                        "Spotify rejected a freshly refreshed access token. "
                        "Run `spot-analyze auth` to re-authorize.",
                        details={"url": request.url, "http_status": 401}
                    )
                logger.info("Token expired. Refreshing...")
                token = self.token_manager.get_valid_token(force_refresh=True)
                request.headers["Authorization"] = f"Bearer {token}"
                refreshed = True
                continue

            if response.status_code != 429:
                return response

            wait = parse_retry_after(response.headers.get("Retry-After"))
            if wait == 0:
                try:
                    wait = next(backoff)
                except StopIteration:
                    logger.error("Backoff failed. Stopping...")
                    raise BackoffExhausted(
                        f"Still rate limited after {self.backoff_steps} backoff steps",
                        details={"url": request.url, "http_status": 429}
                    ) from None

            logger.warning(f"Rate limit exceeded. Retrying after {wait} seconds.")
            self._wait(wait)
            logger.info("Retrying request...")

    def _send(self, request: requests.Request) -> requests.Response:
        logger.debug(f"{request.method} {request.url}")
        response = self._session.request(
            request.method,
            request.url,
            headers=request.headers,
            params=request.params,
            data=request.data,
            timeout=REQUEST_TIMEOUT,
        )
        logger.debug(f"-> {response.status_code}")
        return response

    def _wait(self, seconds: int) -> None:
        for remaining in range(seconds, 0, -1):
            self._countdown(remaining)
            self._sleep(1)
