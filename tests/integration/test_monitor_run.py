"""
Monitor Run Integration Tests

Full runs over real directories, a real lock file and a fake clock.
"""

from datetime import datetime
from unittest.mock import Mock

import pytest

from distwatch.core.enums import Classification, DecisionType
from distwatch.core.domain.entities import Snapshot
from distwatch.services.change_detection.download_manager import DownloadManager, DownloadResult
from distwatch.services.monitor import MonitorService

from tests.conftest import write_tree

@pytest.fixture
def monitor(app_settings, clock):
    return MonitorService(app_settings=app_settings, clock=clock)

@pytest.fixture
def paths(app_settings):
    snapshot = app_settings.snapshot
    return snapshot.previous_dir, snapshot.current_dir, app_settings.notification.lock_path

class TestFirstRun:
    """No previous snapshot."""

    def test_first_run_arms_and_records_baseline(self, monitor, paths, sample_files):
        previous, current, lock_path = paths
        write_tree(current, sample_files)

        result = monitor.run()

        assert result.classification == Classification.FIRST_RUN
        assert result.exit_code == 1
        assert result.decision.decision == DecisionType.ARMED
        assert result.delivery['status'] == 'skipped'
        assert result.baseline_advanced
        assert lock_path.exists()
        assert Snapshot.at(previous).relative_paths() == Snapshot.at(current).relative_paths()
        assert "=== First Time Setup ===" in result.report_path.read_text(encoding="utf-8")

class TestCooldownCycle:
    """Multi-run sequences through the real lock file."""

    def test_quiet_rerun_is_suppressed(self, monitor, paths, sample_files, clock):
        _, current, lock_path = paths
        write_tree(current, sample_files)
        monitor.run()

        clock.advance(hours=6)
        result = monitor.run()

        assert result.classification == Classification.NO_CHANGES
        assert result.exit_code == 0
        assert result.decision.decision == DecisionType.SUPPRESSED
        assert not result.baseline_advanced
        assert lock_path.exists()

    def test_change_after_cooldown_notifies(self, monitor, paths, sample_files, clock):
        previous, current, lock_path = paths
        write_tree(current, sample_files)
        monitor.run()

        clock.advance(days=3)
        write_tree(current, {'readme.txt': 'Release notes v2\n'})
        suppressed = monitor.run()
        assert suppressed.classification == Classification.CHANGES_DETECTED
        assert suppressed.decision.decision == DecisionType.SUPPRESSED
        assert suppressed.baseline_advanced

        clock.advance(days=13)
        write_tree(current, {'plugins/new.dll': b'\x00\x01'})
        notified = monitor.run()

        assert notified.classification == Classification.CHANGES_DETECTED
        assert notified.decision.decision == DecisionType.NOTIFY
        assert notified.delivery['status'] == 'success'
        assert notified.change_set.added == ['plugins/new.dll']
        assert not lock_path.exists()
        assert (previous / 'plugins' / 'new.dll').exists()

class TestErrors:
    """Errored comparisons leave all state alone."""

    def test_missing_current_leaves_state_untouched(self, monitor, paths, sample_files, app_settings):
        previous, current, lock_path = paths
        write_tree(previous, sample_files)

        result = monitor.run()

        assert result.classification == Classification.COMPARISON_ERROR
        assert result.exit_code == 2
        assert result.decision is None
        assert not result.baseline_advanced
        assert not lock_path.exists()
        assert Snapshot.at(previous).relative_paths() == sorted(sample_files)
        assert "Result: COMPARISON_ERROR" in app_settings.snapshot.report_path.read_text(encoding="utf-8")

class TestFetch:
    """Fetching populates the current snapshot before comparing."""

    def test_fetch_populates_current(self, app_settings, clock, paths, sample_files):
        _, current, _ = paths
        write_tree(current, {'stale.txt': 'left over'})

        def extract(url, dest_dir):
            write_tree(dest_dir, sample_files)
            return DownloadResult(url=url, success=True, files_extracted=3, attempts=1)

        downloader = Mock(spec=DownloadManager)
        downloader.download_and_extract.side_effect = extract
        monitor = MonitorService(app_settings=app_settings, downloader=downloader, clock=clock)

        result = monitor.run(fetch=True, url="https://downloads.example.test/app.zip")

        downloader.download_and_extract.assert_called_once_with("https://downloads.example.test/app.zip", current)
        assert result.classification == Classification.FIRST_RUN
        assert not (current / 'stale.txt').exists()

    def test_failed_fetch_is_comparison_error(self, app_settings, clock, paths, sample_files):
        previous, _, lock_path = paths
        write_tree(previous, sample_files)
        downloader = Mock(spec=DownloadManager)
        downloader.download_and_extract.return_value = DownloadResult(
            url="https://downloads.example.test/app.zip",
            success=False,
            error_message="Download failed: all 3 attempts failed"
        )
        monitor = MonitorService(app_settings=app_settings, downloader=downloader, clock=clock)

        result = monitor.run(fetch=True, url="https://downloads.example.test/app.zip")

        assert result.classification == Classification.COMPARISON_ERROR
        assert "Fetch failed" in result.comparison.error_message
        assert result.exit_code == 2
        assert not lock_path.exists()

    def test_partial_extraction_never_becomes_baseline(self, app_settings, clock, paths, sample_files):
        previous, current, lock_path = paths
        write_tree(previous, sample_files)

        def extract_then_fail(url, dest_dir):
            write_tree(dest_dir, {'notepad.exe': b'MZ\x90\x00trunc'})
            return DownloadResult(url=url, success=False, error_message="failed to extract: disk full")

        downloader = Mock(spec=DownloadManager)
        downloader.download_and_extract.side_effect = extract_then_fail
        monitor = MonitorService(app_settings=app_settings, downloader=downloader, clock=clock)

        result = monitor.run(fetch=True, url="https://downloads.example.test/app.zip")

        assert result.classification == Classification.COMPARISON_ERROR
        assert result.exit_code == 2
        assert result.decision is None
        assert not result.baseline_advanced
        assert not lock_path.exists()
        assert Snapshot.at(previous).relative_paths() == sorted(sample_files)
        assert "failed to extract: disk full" in result.report_text

    def test_missing_url_does_not_compare_stale_snapshot(self, app_settings, clock, paths, sample_files):
        previous, current, lock_path = paths
        write_tree(previous, sample_files)
        write_tree(current, sample_files)
        downloader = Mock(spec=DownloadManager)
        monitor = MonitorService(app_settings=app_settings, downloader=downloader, clock=clock)

        result = monitor.run(fetch=True, url=None)

        downloader.download_and_extract.assert_not_called()
        assert result.classification == Classification.COMPARISON_ERROR
        assert result.exit_code == 2
        assert "no download URL configured" in result.comparison.error_message
        assert not lock_path.exists()

    def test_failed_download_over_stale_snapshot(self, app_settings, clock, paths, sample_files):
        previous, current, lock_path = paths
        write_tree(previous, sample_files)
        write_tree(current, dict(sample_files, **{'readme.txt': 'stale notes\n'}))
        downloader = Mock(spec=DownloadManager)
        downloader.download_and_extract.return_value = DownloadResult(
            url="https://downloads.example.test/app.zip", success=False
        )
        monitor = MonitorService(app_settings=app_settings, downloader=downloader, clock=clock)

        result = monitor.run(fetch=True, url="https://downloads.example.test/app.zip")

        assert result.classification == Classification.COMPARISON_ERROR
        assert "download failed" in result.comparison.error_message
        assert not result.baseline_advanced
        assert not lock_path.exists()
        assert (previous / 'readme.txt').read_text(encoding="utf-8") == sample_files['readme.txt']

class TestNaiveTimes:
    """Naive evaluation times are read as UTC against the real lock file."""

    def test_naive_now_across_runs(self, app_settings, paths, sample_files):
        _, current, lock_path = paths
        write_tree(current, sample_files)
        monitor = MonitorService(app_settings=app_settings)

        first = monitor.run(now=datetime(2026, 3, 1, 12, 0, 0))
        write_tree(current, {'readme.txt': 'Release notes v2\n'})
        second = monitor.run(now=datetime(2026, 3, 2, 12, 0, 0))

        assert first.decision.decision == DecisionType.ARMED
        assert second.decision.decision == DecisionType.SUPPRESSED
        assert second.decision.lock_age_seconds == 86400
        assert lock_path.exists()
