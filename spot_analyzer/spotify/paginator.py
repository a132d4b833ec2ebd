"""
Paginated collection fetcher.

Spotify returns collections (playlist tracks, saved tracks) in pages:

    {
      "items": [...],
      "next": "https://api.spotify.com/v1/...?offset=100&limit=100",
      ...
    }

fetch_all() follows the "next" links through the RequestExecutor until
the collection ends or enough items were collected. A failure partway
through doesn't throw away the pages already fetched: it is attached to
the result instead of being raised.
"""

from typing import Any

import requests

from spot_analyzer.core.exceptions import PartialFetchError
from spot_analyzer.core.logger import get_logger
from spot_analyzer.spotify.executor import RequestExecutor

logger = get_logger(__name__)


class FetchedItems(list):
    """
    Items collected by fetch_all().

    A plain list of the raw item objects, in API order, with one extra
    attribute:

    Attributes:
        error: PartialFetchError if the walk stopped on an error payload
               or an undecodable page, None if the collection was read
               completely (or up to the cap).
    """

    def __init__(self, items=(), error: PartialFetchError | None = None) -> None:
        super().__init__(items)
        self.error = error


def _page_error(url: str, response: requests.Response, payload: Any) -> PartialFetchError:
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        message = error.get("message") or f"HTTP {error.get('status', response.status_code)}"
    elif error:
        message = str(error)
    else:
        message = f"Unexpected response (HTTP {response.status_code})"
    return PartialFetchError(
        message,
        details={"url": url, "http_status": response.status_code}
    )


def fetch_all(
    executor: RequestExecutor,
    start_url: str,
    headers: dict[str, str],
    item_cap: int | None = None
) -> FetchedItems:
    """
    Collect the items of a paginated collection.

    Args:
        executor: Executor used for every page request (refreshable).
        start_url: URL of the first page.
        headers: Request headers, including the Authorization header.
                 The same dict is used for every page, so a token
                 refreshed on one page is reused for the next.
        item_cap: Stop following pages once at least this many items
                  were collected. None means no cap. The page that
                  reaches the cap is kept whole, so the result may hold
                  more than item_cap items.

    Returns:
        FetchedItems with the items of every page read. If a page held an
        error payload, the items before it are returned and .error is set.

    Raises:
        AuthProviderError, BackoffExhausted: From the executor.
        requests.RequestException: On transport failures.
    """
    items = FetchedItems()
    url: str | None = start_url

    while url is not None:
        response = executor.execute(requests.Request("GET", url, headers=headers), refreshable=True)

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not isinstance(payload, dict) or "error" in payload or not isinstance(payload.get("items"), list):
            items.error = _page_error(url, response, payload)
            logger.error(f"Stopped fetching at {url}: {items.error}")
            break

        items.extend(payload["items"])
        logger.debug(f"Fetched {len(payload['items'])} items (total {len(items)})")

        if item_cap is not None and len(items) >= item_cap:
            break
        url = payload.get("next")

    return items
