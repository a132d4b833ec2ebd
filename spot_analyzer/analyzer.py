"""
Per-track analysis through the cache.

TrackAnalyzer combines the AnalysisCache and the SpotifyClient: a track
already in the cache is answered from it, any other track is fetched
from the audio-features endpoint and stored, including when the fetch
fails. Failures for one track never stop the batch; they become error
results and are written to the analysis failures report.

Fatal conditions (AuthProviderError, BackoffExhausted) are not caught
here and end the run.
"""

import time
from typing import Callable

import requests

from spot_analyzer.core.cache import AnalysisCache
from spot_analyzer.core.config import DEFAULT_REQUEST_DELAY
from spot_analyzer.core.exceptions import PerTrackAnalysisError
from spot_analyzer.core.logger import get_logger, log_analysis_failure
from spot_analyzer.spotify.client import SpotifyClient
from spot_analyzer.spotify.models import AnalysisResult, Track

logger = get_logger(__name__)


class TrackAnalyzer:
    """
    Analyzes tracks, using the cache to skip known ones.

    Attributes:
        client: SpotifyClient used on cache misses.
        cache: AnalysisCache holding known results.
        request_delay: Seconds to pause after each fresh analysis, to
                       stay under the rate limit on long playlists.
    """

    def __init__(
        self,
        client: SpotifyClient,
        cache: AnalysisCache,
        request_delay: float = DEFAULT_REQUEST_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.cache = cache
        self.request_delay = request_delay
        self._sleep = sleep

    def analyze(self, track: Track) -> tuple[AnalysisResult, bool]:
        """
        Return the analysis of a track.

        Returns:
            (result, cached) where cached is True if no request was made.
        """
        if track.id in self.cache:
            return self.cache.get(track.id), True

        result = self.cache.get_or_compute(track.id, lambda: self._fetch(track))
        if result.is_error:
            log_analysis_failure(logger, track.display_name, track.id, result.error)
        if self.request_delay > 0:
            self._sleep(self.request_delay)
        return result, False

    def _fetch(self, track: Track) -> AnalysisResult:
        try:
            return self.client.audio_features(track.id)
        except PerTrackAnalysisError as e:
            return AnalysisResult.failure(e.message)
        except requests.RequestException as e:
            logger.debug(f"Request for {track.id} failed", exc_info=True)
            return AnalysisResult.failure(f"Request failed: {e}")
