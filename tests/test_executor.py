"""Tests for the resilient request executor"""

import pytest
import requests
from unittest.mock import Mock

from spot_analyzer.core.exceptions import AuthProviderError, BackoffExhausted
from spot_analyzer.spotify.executor import RequestExecutor, backoff_sequence, parse_retry_after
from tests.conftest import make_response


URL = 'https://api.spotify.com/v1/audio-features/abc'


def _request():
    return requests.Request('GET', URL, headers={'Authorization': 'Bearer cached_token'})


def _executor(token_manager, session, backoff_steps=11):
    sleep = Mock()
    countdown = Mock()
    executor = RequestExecutor(
        token_manager,
        session=session,
        backoff_steps=backoff_steps,
        sleep=sleep,
        countdown=countdown,
    )
    return executor, sleep, countdown


class TestBackoff:
    """Test backoff helpers"""

    def test_backoff_sequence(self):
        """Test the doubling sequence and its length"""
        steps = list(backoff_sequence(11))
        assert steps[:3] == [2, 4, 8]
        assert steps[-1] == 2048
        assert len(steps) == 11

    def test_parse_retry_after(self):
        """Test Retry-After parsing"""
        assert parse_retry_after('5') == 5
        assert parse_retry_after(' 12 ') == 12
        assert parse_retry_after(None) == 0
        assert parse_retry_after('soon') == 0
        assert parse_retry_after('0') == 0
        assert parse_retry_after('-3') == 0


class TestRequestExecutor:
    """Test 401/429 handling"""

    def test_success_returned_directly(self, token_manager, mock_session):
        """Test a 200 response needs a single request"""
        mock_session.request.return_value = make_response(200, {'tempo': 120})
        executor, sleep, _ = _executor(token_manager, mock_session)

        response = executor.execute(_request(), refreshable=True)

        assert response.status_code == 200
        assert mock_session.request.call_count == 1
        sleep.assert_not_called()
        token_manager.get_valid_token.assert_not_called()

    def test_rate_limit_waits_retry_after_then_backoff(self, token_manager, mock_session):
        """Test [429 (Retry-After=5), 429, 200] sleeps 5 then 2 seconds"""
        mock_session.request.side_effect = [
            make_response(429, headers={'Retry-After': '5'}),
            make_response(429),
            make_response(200, {'ok': True}),
        ]
        executor, sleep, countdown = _executor(token_manager, mock_session)

        response = executor.execute(_request())

        assert response.status_code == 200
        assert mock_session.request.call_count == 3
        assert sleep.call_count == 7
        assert all(call.args == (1,) for call in sleep.call_args_list)
        assert [call.args[0] for call in countdown.call_args_list] == [5, 4, 3, 2, 1, 2, 1]

    def test_zero_retry_after_uses_backoff(self, token_manager, mock_session):
        """Test Retry-After: 0 falls back to the backoff sequence"""
        mock_session.request.side_effect = [
            make_response(429, headers={'Retry-After': '0'}),
            make_response(200, {}),
        ]
        executor, sleep, _ = _executor(token_manager, mock_session)

        executor.execute(_request())

        assert sleep.call_count == 2

    def test_backoff_exhausted(self, token_manager, mock_session):
        """Test running out of backoff steps raises BackoffExhausted"""
        mock_session.request.return_value = make_response(429)
        executor, sleep, _ = _executor(token_manager, mock_session, backoff_steps=3)

        with pytest.raises(BackoffExhausted):
            executor.execute(_request())

        # 2 + 4 + 8 seconds, then a fourth 429 ends it
        assert sleep.call_count == 14
        assert mock_session.request.call_count == 4

    def test_backoff_sequence_is_per_call(self, token_manager, mock_session):
        """Test each execute() starts the backoff sequence again"""
        mock_session.request.side_effect = [
            make_response(429), make_response(200, {}),
            make_response(429), make_response(200, {}),
        ]
        executor, sleep, _ = _executor(token_manager, mock_session)

        executor.execute(_request())
        executor.execute(_request())

        assert sleep.call_count == 4

    def test_unauthorized_refreshes_once(self, token_manager, mock_session):
        """Test [401, 200] refreshes the token once and retries once"""
        mock_session.request.side_effect = [
            make_response(401, {'error': {'status': 401, 'message': 'The access token expired'}}),
            make_response(200, {'tempo': 120}),
        ]
        executor, sleep, _ = _executor(token_manager, mock_session)
        request = _request()

        response = executor.execute(request, refreshable=True)

        assert response.status_code == 200
        token_manager.get_valid_token.assert_called_once_with(force_refresh=True)
        assert mock_session.request.call_count == 2
        retried_headers = mock_session.request.call_args_list[1].kwargs['headers']
        assert retried_headers['Authorization'] == 'Bearer fresh_token'
        assert request.headers['Authorization'] == 'Bearer fresh_token'
        sleep.assert_not_called()

    def test_unauthorized_twice_raises(self, token_manager, mock_session):
        """Test a 401 right after a refresh raises AuthProviderError"""
        mock_session.request.return_value = make_response(401, {'error': {'status': 401}})
        executor, _, _ = _executor(token_manager, mock_session)

        with pytest.raises(AuthProviderError):
            executor.execute(_request(), refreshable=True)

        assert token_manager.get_valid_token.call_count == 1
        assert mock_session.request.call_count == 2

    def test_unauthorized_after_rate_limit_wait_raises(self, token_manager, mock_session):
        """Test [401, 429, 401] refreshes once, then raises instead of refreshing again"""
        mock_session.request.side_effect = [
            make_response(401, {'error': {'status': 401}}),
            make_response(429, headers={'Retry-After': '1'}),
            make_response(401, {'error': {'status': 401}}),
            make_response(429, headers={'Retry-After': '1'}),
            make_response(200, {}),
        ]
        executor, sleep, _ = _executor(token_manager, mock_session)

        with pytest.raises(AuthProviderError):
            executor.execute(_request(), refreshable=True)

        token_manager.get_valid_token.assert_called_once_with(force_refresh=True)
        assert mock_session.request.call_count == 3
        assert sleep.call_count == 1

    def test_unauthorized_without_refresh_is_returned(self, token_manager, mock_session):
        """Test a 401 is returned when the request is not refreshable"""
        mock_session.request.return_value = make_response(401, {'error': {'status': 401}})
        executor, _, _ = _executor(token_manager, mock_session)

        response = executor.execute(_request(), refreshable=False)

        assert response.status_code == 401
        token_manager.get_valid_token.assert_not_called()

    def test_other_errors_returned(self, token_manager, mock_session):
        """Test other 4xx/5xx responses are returned to the caller"""
        mock_session.request.return_value = make_response(404, {'error': {'status': 404, 'message': 'Not found'}})
        executor, _, _ = _executor(token_manager, mock_session)

        assert executor.execute(_request(), refreshable=True).status_code == 404

    def test_transport_errors_propagate(self, token_manager, mock_session):
        """Test connection errors are not swallowed"""
        mock_session.request.side_effect = requests.ConnectionError('down')
        executor, _, _ = _executor(token_manager, mock_session)

        with pytest.raises(requests.ConnectionError):
            executor.execute(_request())
