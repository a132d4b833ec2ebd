"""Tests for the credential store"""

import json
import os
import stat

import pytest

from spot_analyzer.core.credentials import CredentialStore, Credentials
from spot_analyzer.core.exceptions import ConfigurationError


class TestCredentialStore:
    """Test .auth and .token handling"""

    def test_credentials_round_trip(self, temp_dir):
        """Test written credentials read back equal"""
        store = CredentialStore(temp_dir / ".auth", temp_dir / ".token")
        credentials = Credentials('id', 'secret', 'refresh')

        store.write_credentials(credentials)

        assert store.read_credentials() == credentials
        assert json.loads(store.auth_file.read_text()) == {
            'client_id': 'id', 'client_secret': 'secret', 'refresh_token': 'refresh'
        }

    @pytest.mark.skipif(os.name == 'nt', reason="POSIX permissions")
    def test_files_are_private(self, temp_dir):
        """Test credential files are readable by the owner only"""
        store = CredentialStore(temp_dir / ".auth", temp_dir / ".token")
        store.write_credentials(Credentials('id', 'secret', 'refresh'))
        store.write_token('token')

        for path in (store.auth_file, store.token_file):
            assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_missing_credentials(self, temp_dir):
        """Test a missing file asks the user to authorize"""
        store = CredentialStore(temp_dir / ".auth", temp_dir / ".token")

        with pytest.raises(ConfigurationError, match='spot-analyze auth'):
            store.read_credentials()

    @pytest.mark.parametrize('content', ['not json', '["a"]', ''])
    def test_unreadable_credentials(self, temp_dir, content):
        """Test malformed credential files are configuration errors"""
        store = CredentialStore(temp_dir / ".auth", temp_dir / ".token")
        store.auth_file.write_text(content)

        with pytest.raises(ConfigurationError):
            store.read_credentials()

    def test_incomplete_credentials_are_read(self, temp_dir):
        """Test missing fields come back as None"""
        store = CredentialStore(temp_dir / ".auth", temp_dir / ".token")
        store.auth_file.write_text('{"client_id": "id"}')

        credentials = store.read_credentials()

        assert credentials.client_id == 'id'
        assert credentials.refresh_token is None

    def test_token(self, temp_dir):
        """Test token write, read and clear"""
        store = CredentialStore(temp_dir / ".auth", temp_dir / ".token")
        assert store.read_token() is None

        store.write_token('abc')
        assert store.read_token() == 'abc'

        store.clear_token()
        assert store.read_token() is None
        store.clear_token()

    def test_empty_token_file(self, temp_dir):
        """Test an empty token file means no token"""
        store = CredentialStore(temp_dir / ".auth", temp_dir / ".token")
        store.token_file.write_text('\n')

        assert store.read_token() is None
