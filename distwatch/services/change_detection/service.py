"""
Change Detection Service

Runs the detection pipeline for one snapshot pair:
structural comparison, hash verification, change-set analysis and report
assembly. Detection errors never escape; they become COMPARISON_ERROR.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from distwatch.core.domain.entities import ChangeSet, ComparisonResult, Snapshot
from distwatch.core.enums import Classification
from distwatch.core.exceptions import (
    ChangeDetectionError, DistWatchError, PreconditionError, handle_exception
)
from distwatch.core.logging_config import get_logger, log_performance
from distwatch.services.change_detection.change_set import ChangeSetAnalyzer
from distwatch.services.change_detection.hash_indexer import HashComparison, HashIndexer
from distwatch.services.change_detection.report import ComparisonReport, combine_classification
from distwatch.services.change_detection.structural_comparator import StructuralComparator

@dataclass
class DetectionOutcome:
    """Final classification, supporting evidence and rendered report."""
    result: ComparisonResult
    change_set: Optional[ChangeSet]
    report: ComparisonReport

    @property
    def classification(self) -> Classification:
        return self.result.classification

class ChangeDetectionService:
    """
    Business service for snapshot change detection.

    Collaborators are injected so tests can substitute any stage.
    """

    def __init__(
        self,
        comparator: Optional[StructuralComparator] = None,
        indexer: Optional[HashIndexer] = None,
        analyzer: Optional[ChangeSetAnalyzer] = None
    ):
        self.comparator = comparator or StructuralComparator()
        self.indexer = indexer or HashIndexer()
        self.analyzer = analyzer or ChangeSetAnalyzer()
        self.logger = get_logger(__name__)

    def compare(self, previous_dir, current_dir, generated_at: Optional[datetime] = None) -> DetectionOutcome:
        """
        Compare two snapshot directories.

        Args:
            previous_dir: Root of the previous (baseline) snapshot
            current_dir: Root of the freshly retrieved snapshot
            generated_at: Report timestamp (defaults to now)

        Returns:
            DetectionOutcome; classification is COMPARISON_ERROR on any
            detection failure
        """
        start_time = datetime.now()
        generated_at = generated_at or datetime.now(timezone.utc)
        previous = Snapshot.at(previous_dir)
        current = Snapshot.at(current_dir)

        self.logger.info(
            "Starting snapshot comparison",
            extra={"previous": str(previous.root), "current": str(current.root)}
        )

        try:
            result = self.comparator.compare(previous, current)
        except PreconditionError as e:
            self.logger.error(f"Comparison aborted: {e.message}")
            return self._error_outcome(previous, current, e.message, generated_at)
        except Exception as e:
            error = handle_exception(ChangeDetectionError("structural_comparison", cause=e), self.logger)
            return self._error_outcome(previous, current, error.message, generated_at)

        if result.classification == Classification.COMPARISON_ERROR:
            report = ComparisonReport(result, generated_at=generated_at)
            return DetectionOutcome(result=result, change_set=None, report=report)

        hash_comparison = None
        try:
            if result.classification != Classification.FIRST_RUN:
                hash_comparison = self.indexer.verify(previous, current)
                self._apply_hash(result, hash_comparison)
                result.classification = combine_classification(
                    result.structural_classification, result.hash_verdict
                )
            change_set = self.analyzer.analyze(previous, current)
        except DistWatchError as e:
            handle_exception(e, self.logger)
            return self._error_outcome(previous, current, e.message, generated_at)
        except OSError as e:
            error = handle_exception(ChangeDetectionError("verification", cause=e), self.logger)
            return self._error_outcome(previous, current, error.message, generated_at)

        report = ComparisonReport(
            result,
            change_set=change_set,
            hash_changed_lines=hash_comparison.changed_lines if hash_comparison else None,
            generated_at=generated_at
        )

        log_performance(
            self.logger,
            "change_detection",
            (datetime.now() - start_time).total_seconds() * 1000,
            classification=result.classification.value,
            hash_verdict=result.hash_verdict.value if result.hash_verdict else None,
            files_added=len(change_set.added),
            files_removed=len(change_set.removed)
        )
        return DetectionOutcome(result=result, change_set=change_set, report=report)

    def _apply_hash(self, result: ComparisonResult, comparison: HashComparison) -> None:
        result.hash_verdict = comparison.verdict
        result.hash_algorithm = comparison.algorithm
        result.modified_paths = comparison.modified_paths
        if result.verdicts_disagree:
            self.logger.warning(
                f"Structural result {result.structural_classification.value} disagrees "
                f"with hash verdict {comparison.verdict.value}"
            )

    def _error_outcome(
        self,
        previous: Snapshot,
        current: Snapshot,
        message: str,
        generated_at: datetime
    ) -> DetectionOutcome:
        result = ComparisonResult(
            classification=Classification.COMPARISON_ERROR,
            previous_root=previous.root,
            current_root=current.root,
            error_message=message
        )
        return DetectionOutcome(
            result=result,
            change_set=None,
            report=ComparisonReport(result, generated_at=generated_at)
        )

__all__ = ['ChangeDetectionService', 'DetectionOutcome']
