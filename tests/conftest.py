"""
Shared fixtures: snapshot trees on disk, fixed clocks and isolated settings.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Union

import pytest

from distwatch.core.config import (
    HashingSettings, NotificationSettings, Settings, SnapshotSettings
)
from distwatch.core.enums import NotificationChannel

from tests.fakes import FakeClock, FakeLockStore

FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

def write_tree(root: Path, files: Dict[str, Union[str, bytes]]) -> Path:
    """Create root and write each relative path with its content."""
    root.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root

@pytest.fixture
def make_tree(tmp_path):
    """Factory: make_tree('name', {'a.txt': 'hello'}) -> Path."""
    def _make(name: str, files: Dict[str, Union[str, bytes]]) -> Path:
        return write_tree(tmp_path / name, files)
    return _make

@pytest.fixture
def sample_files():
    """Three-file distribution used as a byte-identical pair."""
    return {
        'notepad.exe': b'MZ\x90\x00binary-payload',
        'readme.txt': 'Release notes\n',
        'plugins/config.xml': '<config version="1"/>\n'
    }

@pytest.fixture
def clock():
    return FakeClock(FIXED_NOW)

@pytest.fixture
def lock_store():
    return FakeLockStore()

@pytest.fixture
def app_settings(tmp_path):
    """Settings pointing every path into tmp_path."""
    data = tmp_path / "data"
    return Settings(
        snapshot=SnapshotSettings(
            previous_dir=data / "previous",
            current_dir=data / "current",
            report_path=data / "reports" / "comparison.log"
        ),
        hashing=HashingSettings(algorithms=["sha256", "md5"]),
        notification=NotificationSettings(
            lock_path=data / "notification.lock",
            cooldown_seconds=15 * 24 * 60 * 60,
            channels=[NotificationChannel.LOG]
        )
    )
