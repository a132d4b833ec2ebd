"""Tests for configuration loading"""

import pytest
from pathlib import Path
from unittest.mock import patch

from spot_analyzer.core.config import (
    DEFAULT_BACKOFF_STEPS,
    DEFAULT_REDIRECT_PORT,
    Config,
    load_config,
)
from spot_analyzer.core.exceptions import ConfigurationError


class TestLoadConfig:
    """Test config.yaml parsing and validation"""

    def test_missing_default_file_gives_defaults(self, temp_dir):
        """Test no config.yaml is fine"""
        with patch('spot_analyzer.core.config.Path.cwd', return_value=temp_dir):
            config = load_config()

        assert config.spotify.client_id is None
        assert config.spotify.redirect_port == DEFAULT_REDIRECT_PORT
        assert config.analysis.first is None
        assert config.analysis.backoff_steps == DEFAULT_BACKOFF_STEPS

    def test_missing_explicit_file(self, temp_dir):
        """Test an explicit path that doesn't exist is an error"""
        with pytest.raises(ConfigurationError):
            load_config(temp_dir / "nope.yaml")

    def test_empty_file_gives_defaults(self, temp_dir):
        """Test an empty config file"""
        path = temp_dir / "config.yaml"
        path.write_text("", encoding="utf-8")

        assert isinstance(load_config(path), Config)

    def test_full_file(self, temp_dir):
        """Test every section is read"""
        path = temp_dir / "config.yaml"
        path.write_text(
            "spotify:\n"
            "  client_id: abc\n"
            "  client_secret: def\n"
            "  redirect_port: 8888\n"
            "storage:\n"
            f"  directory: {temp_dir}\n"
            "analysis:\n"
            "  first: 25\n"
            "  request_delay: 0\n"
            "  backoff_steps: 5\n",
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.spotify.client_id == 'abc'
        assert config.spotify.client_secret == 'def'
        assert config.spotify.redirect_uri == 'http://localhost:8888/callback'
        assert config.storage.directory == temp_dir.resolve()
        assert config.storage.cache_file == temp_dir.resolve() / '.analyzed.json'
        assert config.storage.auth_file.name == '.auth'
        assert config.storage.token_file.name == '.token'
        assert config.analysis.first == 25
        assert config.analysis.request_delay == 0.0
        assert config.analysis.backoff_steps == 5

    @pytest.mark.parametrize('content, field', [
        ("spotify:\n  client_id: 123\n", 'spotify.client_id'),
        ("spotify:\n  redirect_port: 70000\n", 'spotify.redirect_port'),
        ("analysis:\n  first: 0\n", 'analysis.first'),
        ("analysis:\n  request_delay: -1\n", 'analysis.request_delay'),
        ("analysis:\n  backoff_steps: true\n", 'analysis.backoff_steps'),
    ])
    def test_invalid_values(self, temp_dir, content, field):
        """Test invalid values name the offending field"""
        path = temp_dir / "config.yaml"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path)
        assert exc_info.value.details['field'] == field

    def test_invalid_yaml(self, temp_dir):
        """Test a syntax error is reported"""
        path = temp_dir / "config.yaml"
        path.write_text("spotify: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_section_must_be_mapping(self, temp_dir):
        """Test a section given as a list is rejected"""
        path = temp_dir / "config.yaml"
        path.write_text("analysis:\n  - 1\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_config(path)
