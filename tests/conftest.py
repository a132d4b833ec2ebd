"""Test configuration and fixtures"""

import json
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest

from spot_analyzer.core.credentials import CredentialStore, Credentials


def make_response(status_code=200, payload=None, headers=None, content=None):
    """Build a fake requests.Response with the attributes the code reads"""
    response = Mock()
    response.status_code = status_code
    response.headers = headers or {}
    if content is None:
        content = json.dumps(payload).encode() if payload is not None else b""
    response.content = content

    def _json():
        if not content:
            raise ValueError("No JSON body")
        return json.loads(content)

    response.json = Mock(side_effect=_json)
    return response


def make_track_item(track_id, name="Test Song", artists=("Test Artist",)):
    """A playlist item as returned by the tracks endpoints"""
    return {
        'added_at': '2023-01-01T00:00:00Z',
        'track': {
            'id': track_id,
            'name': name,
            'artists': [{'id': f'artist_{a}', 'name': a} for a in artists],
        }
    }


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def credential_store(temp_dir):
    """Credential store with valid credentials and no cached token"""
    store = CredentialStore(temp_dir / ".auth", temp_dir / ".token")
    store.write_credentials(Credentials(
        client_id='client_123',
        client_secret='secret_456',
        refresh_token='refresh_789',
    ))
    return store


@pytest.fixture
def sample_track_data():
    """Sample playlist item for testing"""
    return make_track_item('4cOdK2wGLETKBW3PvgPWqT', name='Schism', artists=('Tool',))


@pytest.fixture
def sample_audio_features():
    """Sample audio-features payload"""
    return {
        'danceability': 0.4,
        'energy': 0.8,
        'key': 9,
        'tempo': 106.9,
        'time_signature': 5,
        'id': '4cOdK2wGLETKBW3PvgPWqT',
        'type': 'audio_features',
    }


@pytest.fixture
def token_manager():
    """Token manager returning fixed tokens"""
    manager = Mock()
    manager.get_valid_token.side_effect = (
        lambda force_refresh=False: 'fresh_token' if force_refresh else 'cached_token'
    )
    return manager


@pytest.fixture
def mock_session():
    """HTTP session whose responses are set per test"""
    return Mock()
