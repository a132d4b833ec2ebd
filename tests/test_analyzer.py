"""Tests for per-track analysis"""

import requests
from unittest.mock import Mock, patch

from spot_analyzer.analyzer import TrackAnalyzer
from spot_analyzer.core.cache import AnalysisCache
from spot_analyzer.core.exceptions import PerTrackAnalysisError
from spot_analyzer.spotify.models import AnalysisResult, Track


TRACK = Track(id='track_1', name='Schism', artists=('Tool',))
RESULT = AnalysisResult(tempo=106.9, time_signature=5, key=9)


class TestTrackAnalyzer:
    """Test cache use and failure handling"""

    def _analyzer(self, temp_dir, client):
        sleep = Mock()
        cache = AnalysisCache(temp_dir / ".analyzed.json")
        return TrackAnalyzer(client, cache, request_delay=0.5, sleep=sleep), cache, sleep

    def test_fresh_analysis(self, temp_dir):
        """Test a miss fetches, stores and waits"""
        client = Mock()
        client.audio_features.return_value = RESULT
        analyzer, cache, sleep = self._analyzer(temp_dir, client)

        result, cached = analyzer.analyze(TRACK)

        assert result == RESULT
        assert cached is False
        assert cache.get('track_1') == RESULT
        sleep.assert_called_once_with(0.5)

    def test_cached_analysis(self, temp_dir):
        """Test a hit makes no request and doesn't wait"""
        client = Mock()
        analyzer, cache, sleep = self._analyzer(temp_dir, client)
        cache.get_or_compute('track_1', lambda: RESULT)

        result, cached = analyzer.analyze(TRACK)

        assert result == RESULT
        assert cached is True
        client.audio_features.assert_not_called()
        sleep.assert_not_called()

    @patch('spot_analyzer.analyzer.log_analysis_failure')
    def test_per_track_error_is_cached(self, mock_log, temp_dir):
        """Test an analysis error becomes a cached failed result"""
        client = Mock()
        client.audio_features.side_effect = PerTrackAnalysisError('Invalid audio features response (HTTP 500)')
        analyzer, cache, _ = self._analyzer(temp_dir, client)

        result, cached = analyzer.analyze(TRACK)

        assert result.is_error
        assert cache.get('track_1').is_error
        mock_log.assert_called_once()
        assert mock_log.call_args.args[1:3] == ('Schism (Tool)', 'track_1')

    def test_network_error_is_cached(self, temp_dir):
        """Test a transport failure for one track doesn't stop the batch"""
        client = Mock()
        client.audio_features.side_effect = requests.ConnectionError('reset')
        analyzer, cache, _ = self._analyzer(temp_dir, client)

        result, _ = analyzer.analyze(TRACK)

        assert result.error.startswith('Request failed')
        assert 'track_1' in cache

    def test_error_payload_reported(self, temp_dir):
        """Test failed results from the API are reported once"""
        client = Mock()
        client.audio_features.return_value = AnalysisResult.failure('analysis not found')
        analyzer, _, _ = self._analyzer(temp_dir, client)

        with patch('spot_analyzer.analyzer.log_analysis_failure') as mock_log:
            analyzer.analyze(TRACK)
            analyzer.analyze(TRACK)

        assert mock_log.call_count == 1
