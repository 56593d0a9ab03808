"""
Monitor Service

One complete monitoring run: (optionally) fetch the current snapshot,
detect changes, write the report, consult the notification gate, advance
the baseline and hand the report to delivery.

Detection state (the baseline) and notification state (the lock) evolve
independently; neither is touched when the comparison fails.
"""

import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from distwatch.core.config import Settings, settings as default_settings
from distwatch.core.domain.entities import ComparisonResult, RunResult
from distwatch.core.enums import Classification
from distwatch.core.exceptions import BaselineUpdateError, DistWatchError, handle_exception
from distwatch.core.logging_config import LoggingContext, get_logger, log_performance
from distwatch.services.change_detection.download_manager import DownloadManager
from distwatch.services.change_detection.hash_indexer import HashIndexer
from distwatch.services.change_detection.report import ComparisonReport
from distwatch.services.change_detection.service import ChangeDetectionService
from distwatch.services.notification.gate import NotificationGate
from distwatch.services.notification.lock_store import Clock, FileLockStore, as_utc, utc_now
from distwatch.services.notification.service import NotificationService

class MonitorService:
    """Orchestrates detection, gating, baseline update and delivery."""

    def __init__(
        self,
        app_settings: Optional[Settings] = None,
        detector: Optional[ChangeDetectionService] = None,
        gate: Optional[NotificationGate] = None,
        notifier: Optional[NotificationService] = None,
        downloader: Optional[DownloadManager] = None,
        clock: Clock = utc_now
    ):
        self.settings = app_settings or default_settings
        self.clock = clock
        self.detector = detector or ChangeDetectionService(
            indexer=HashIndexer(config=self.settings.hashing)
        )
        self.gate = gate or NotificationGate(
            store=FileLockStore(self.settings.notification.lock_path),
            clock=clock,
            config=self.settings.notification
        )
        self.notifier = notifier or NotificationService(config=self.settings.notification)
        self.downloader = downloader
        self.logger = get_logger(__name__)

    @property
    def previous_dir(self) -> Path:
        return Path(self.settings.snapshot.previous_dir)

    @property
    def current_dir(self) -> Path:
        return Path(self.settings.snapshot.current_dir)

    @property
    def report_path(self) -> Path:
        return Path(self.settings.snapshot.report_path)

    def run(self, fetch: bool = False, url: Optional[str] = None, now: Optional[datetime] = None) -> RunResult:
        """
        Execute one monitoring run.

        Args:
            fetch: Populate the current snapshot from the download URL first
            url: Override the configured download URL
            now: Evaluation time (defaults to the injected clock)

        Returns:
            RunResult describing classification, decision and side effects
        """
        with LoggingContext():
            return self._run(fetch, url, as_utc(now or self.clock()))

    def _run(self, fetch: bool, url: Optional[str], now: datetime) -> RunResult:
        start_time = datetime.now()
        self.logger.info(f"Starting monitor run: {self.previous_dir} -> {self.current_dir}")

        if fetch:
            fetch_error = self._fetch(url or self.settings.download.url)
            if fetch_error:
                return self._fetch_failed(fetch_error, now)

        outcome = self.detector.compare(self.previous_dir, self.current_dir, generated_at=now)

        report_text = outcome.report.render()
        report_path = self._write_report(report_text)

        result = RunResult(
            comparison=outcome.result,
            change_set=outcome.change_set,
            report_path=report_path,
            report_text=report_text,
            started_at=now
        )

        if outcome.classification == Classification.COMPARISON_ERROR:
            self.logger.error(f"Comparison failed; lock and baseline left untouched: {outcome.result.error_message}")
            result.finished_at = self.clock()
            return result

        try:
            result.decision = self.gate.evaluate(outcome.classification, now)
        except DistWatchError as e:
            handle_exception(e, self.logger)
            result.delivery = {'status': 'gate_error', 'sent': 0, 'failed': 0, 'errors': [e.message]}

        if outcome.classification.is_change():
            try:
                self.advance_baseline()
                result.baseline_advanced = True
            except BaselineUpdateError as e:
                handle_exception(e, self.logger)

        if result.decision is not None:
            result.delivery = self.notifier.deliver(report_text, result.decision, outcome.result)

        result.finished_at = self.clock()
        log_performance(
            self.logger,
            "monitor_run",
            (datetime.now() - start_time).total_seconds() * 1000,
            classification=outcome.classification.value,
            decision=result.decision.decision.value if result.decision else None,
            baseline_advanced=result.baseline_advanced
        )
        return result

    # ======================== STEPS ========================

    def _fetch(self, url: Optional[str]) -> Optional[str]:
        if not self.downloader:
            self.downloader = DownloadManager(config=self.settings.download)
        if not url:
            self.logger.error("Fetch requested but no download URL configured")
            return "no download URL configured"

        try:
            if self.current_dir.exists():
                shutil.rmtree(self.current_dir)
        except OSError as e:
            self.logger.error(f"Could not clear {self.current_dir}: {e}")
            return str(e)
        download = self.downloader.download_and_extract(url, self.current_dir)
        if not download.success:
            return download.error_message or "download failed"
        self.logger.info(
            f"Fetched {download.files_extracted} files ({download.size_bytes} bytes) "
            f"in {download.download_time_ms}ms"
        )
        return None

    def _fetch_failed(self, fetch_error: str, now: datetime) -> RunResult:
        """Terminal result for a failed fetch; the current snapshot is not compared."""
        comparison = ComparisonResult(
            classification=Classification.COMPARISON_ERROR,
            previous_root=self.previous_dir,
            current_root=self.current_dir,
            error_message=f"Fetch failed: {fetch_error}"
        )
        report_text = ComparisonReport(comparison, generated_at=now).render()
        self.logger.error(f"Fetch failed; comparison skipped, lock and baseline left untouched: {fetch_error}")
        return RunResult(
            comparison=comparison,
            change_set=None,
            report_path=self._write_report(report_text),
            report_text=report_text,
            started_at=now,
            finished_at=self.clock()
        )

    def _write_report(self, report_text: str) -> Path:
        path = self.report_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(report_text, encoding="utf-8")
        self.logger.info(f"Comparison report written to {path}")
        return path

    def advance_baseline(self) -> None:
        """Replace the previous snapshot with a copy of the current one."""
        previous = self.previous_dir
        staging = previous.with_name(previous.name + ".incoming")
        try:
            if staging.exists():
                shutil.rmtree(staging)
            shutil.copytree(self.current_dir, staging, symlinks=True)
            if previous.exists():
                shutil.rmtree(previous)
            staging.rename(previous)
        except OSError as e:
            raise BaselineUpdateError(str(previous), cause=e) from e
        self.logger.info(f"Baseline advanced: {self.current_dir} -> {previous}")

__all__ = ['MonitorService']
