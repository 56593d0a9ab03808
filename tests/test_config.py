"""
Configuration Test Suite
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from distwatch.core.config import (
    DEFAULT_COOLDOWN_SECONDS, HashingSettings, NotificationSettings, load_settings
)
from distwatch.core.enums import NotificationChannel
from distwatch.core.exceptions import ConfigurationError

@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Keep a developer's .env out of these tests."""
    monkeypatch.chdir(tmp_path)

class TestDefaults:
    """Out-of-the-box behaviour."""

    def test_defaults(self):
        app_settings = load_settings()

        assert app_settings.notification.cooldown_seconds == DEFAULT_COOLDOWN_SECONDS == 1296000
        assert app_settings.hashing.algorithms == ["sha256", "md5"]
        assert app_settings.download.retry_attempts == 3
        assert app_settings.download.retry_delay == 10
        assert app_settings.download.timeout == 900
        assert app_settings.download.min_file_size == 1_048_576
        assert app_settings.notification.channels == [NotificationChannel.LOG]

class TestEnvironmentOverrides:
    """Each section reads its own prefix."""

    def test_section_prefixes(self, monkeypatch):
        monkeypatch.setenv("SNAPSHOT_PREVIOUS_DIR", "/srv/dist/previous")
        monkeypatch.setenv("NOTIFY_COOLDOWN_SECONDS", "60")
        monkeypatch.setenv("HASHING_ALGORITHMS", '["SHA512", "md5"]')
        monkeypatch.setenv("DOWNLOAD_URL", "https://downloads.example.test/app.zip")

        app_settings = load_settings()

        assert app_settings.snapshot.previous_dir == Path("/srv/dist/previous")
        assert app_settings.notification.cooldown_seconds == 60
        assert app_settings.hashing.algorithms == ["sha512", "md5"]
        assert app_settings.download.url == "https://downloads.example.test/app.zip"

class TestValidation:
    """Invalid values are rejected."""

    def test_empty_algorithm_list(self):
        with pytest.raises(ValidationError):
            HashingSettings(algorithms=[])

    def test_negative_cooldown(self):
        with pytest.raises(ValidationError):
            NotificationSettings(cooldown_seconds=-1)

    def test_debug_in_production_wrapped(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(environment="production", debug=True)

        assert exc_info.value.error_code == "CONFIGURATION_ERROR"

    def test_to_dict(self):
        data = load_settings().to_dict()

        assert data["project_name"] == "DistWatch"
        assert data["notification"]["channels"] == ["log"]
