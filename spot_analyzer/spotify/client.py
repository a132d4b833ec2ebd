"""
Spotify Web API client for spot-analyzer.

SpotifyClient knows the catalog endpoints the analyzer needs and turns
their payloads into models. It sends nothing itself: every request goes
through the RequestExecutor, which handles token expiry and rate limits.

Endpoints:
    - GET /v1/playlists/{id}/tracks      tracks of a playlist
    - GET /v1/me/tracks                  the user's Liked Songs ("liked")
    - GET /v1/audio-features/{id}        tempo, time signature, key
    - GET /v1/me/player/currently-playing

Usage:
    client = SpotifyClient(executor, token_manager)
    tracks = client.list_tracks("37i9dQZF1DXcBWIGoYBM5M", first=50)
    result = client.audio_features(tracks[0].id)
"""

import requests

from spot_analyzer.core.exceptions import PerTrackAnalysisError
from spot_analyzer.core.logger import get_logger
from spot_analyzer.spotify.auth import TokenManager
from spot_analyzer.spotify.executor import RequestExecutor
from spot_analyzer.spotify.models import AnalysisResult, Track
from spot_analyzer.spotify.paginator import FetchedItems, fetch_all

logger = get_logger(__name__)


API_BASE_URL = "https://api.spotify.com/v1"
LIKED_TARGET = "liked"


def collection_url(target: str) -> str:
    """
    Return the first-page URL for a playlist ID or "liked".

    Example:
        collection_url("liked") -> "https://api.spotify.com/v1/me/tracks"
    """
    if target.lower() == LIKED_TARGET:
        return f"{API_BASE_URL}/me/tracks"
    return f"{API_BASE_URL}/playlists/{target}/tracks"


class SpotifyClient:
    """
    Catalog operations on top of a RequestExecutor.

    The Authorization header is built once from the TokenManager and
    shared by every request, so a token refreshed by the executor is
    used by all later requests.

    Attributes:
        executor: RequestExecutor sending the requests.
        token_manager: Source of the initial access token.
    """

    def __init__(self, executor: RequestExecutor, token_manager: TokenManager) -> None:
        self.executor = executor
        self.token_manager = token_manager
        self._headers: dict[str, str] = {}

    @property
    def headers(self) -> dict[str, str]:
        if "Authorization" not in self._headers:
            token = self.token_manager.get_valid_token()
            self._headers["Authorization"] = f"Bearer {token}"
            self._headers["Content-Type"] = "application/json"
        return self._headers

    def list_tracks(self, target: str, first: int | None = None) -> FetchedItems:
        """
        List the tracks of a playlist or of Liked Songs.

        Args:
            target: Playlist ID, or "liked" for the user's saved tracks.
            first: Stop paging once this many items were listed.
                   None lists the whole collection.

        Returns:
            FetchedItems of Track objects in playlist order. Items without
            a track (removed tracks, local files) are skipped. If listing
            stopped on an error, .error is set and the tracks listed
            before it are returned.
        """
        items = fetch_all(self.executor, collection_url(target), self.headers, item_cap=first)

        tracks = FetchedItems(error=items.error)
        skipped = 0
        for item in items:
            track = Track.from_playlist_item(item)
            if track is None:
                skipped += 1
                continue
            tracks.append(track)

        if skipped:
            logger.debug(f"Skipped {skipped} items without a playable track")
        logger.info(f"Listed {len(tracks)} tracks from {target}")
        return tracks

    def audio_features(self, track_id: str) -> AnalysisResult:
        """
        Fetch the audio analysis of one track.

        An error payload (e.g. no analysis for this track) gives a failed
        AnalysisResult rather than an exception.

        Raises:
            PerTrackAnalysisError: If the response body isn't JSON or
                                   isn't an analysis.
            requests.RequestException: On transport failures.
        """
        url = f"{API_BASE_URL}/audio-features/{track_id}"
        response = self.executor.execute(requests.Request("GET", url, headers=self.headers), refreshable=True)

        try:
            payload = response.json()
        except ValueError as e:
            raise PerTrackAnalysisError(
                f"Invalid audio features response (HTTP {response.status_code})",
                details={"track_id": track_id, "http_status": response.status_code}
            ) from e

        return AnalysisResult.from_api(payload, track_id=track_id)

    def currently_playing(self) -> Track | None:
        """
        Return the track currently playing for the user.

        Returns:
            The Track, or None when nothing is playing (204 / empty body),
            when an ad or podcast is playing, or on an error payload.
        """
        url = f"{API_BASE_URL}/me/player/currently-playing"
        response = self.executor.execute(requests.Request("GET", url, headers=self.headers), refreshable=True)

        if response.status_code == 204 or not response.content:
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.warning(f"Invalid currently-playing response (HTTP {response.status_code})")
            return None

        if not isinstance(payload, dict):
            return None
        if "error" in payload:
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else error
            logger.warning(f"Could not get the currently playing track: {message}")
            return None

        item = payload.get("item")
        if not isinstance(item, dict) or not item.get("id"):
            return None
        return Track.from_api(item)
