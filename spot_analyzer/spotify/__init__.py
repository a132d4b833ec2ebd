"""
Spotify Web API access for spot-analyzer.

    - auth: interactive authorization and access token refresh
    - executor: request execution with 401/429 handling
    - paginator: collection of paged listings
    - client: catalog endpoints (playlists, audio features, player)
    - models: Track and AnalysisResult
"""

from spot_analyzer.spotify.models import AnalysisResult, Track
from spot_analyzer.spotify.auth import AuthorizationFlow, TokenManager
from spot_analyzer.spotify.executor import RequestExecutor
from spot_analyzer.spotify.paginator import FetchedItems, fetch_all
from spot_analyzer.spotify.client import SpotifyClient

__all__ = [
    "AnalysisResult",
    "Track",
    "AuthorizationFlow",
    "TokenManager",
    "RequestExecutor",
    "FetchedItems",
    "fetch_all",
    "SpotifyClient",
]
