"""
Structural Comparator

File-count, size and recursive tree-diff classification of two snapshots.

The tree diff compares structure (which names exist, file vs directory) and
content (byte-for-byte) and reports one line per difference in the familiar
recursive-diff wording. A failure of the diff itself is reported as an ERROR
outcome, never as "differences found".
"""

import filecmp
import os
from datetime import datetime
from pathlib import Path
from typing import List

from distwatch.core.domain.entities import ComparisonResult, Snapshot, TreeDiff
from distwatch.core.enums import Classification, DiffStatus
from distwatch.core.exceptions import DiffMechanismError, PreconditionError
from distwatch.core.logging_config import get_logger, log_performance

class TreeDiffer:
    """Recursive, deterministic directory diff."""

    def __init__(self):
        self.logger = get_logger(__name__)

    def diff(self, left: Path, right: Path) -> TreeDiff:
        lines: List[str] = []
        try:
            self._diff_dirs(Path(left), Path(right), lines)
        except DiffMechanismError as e:
            self.logger.error(str(e))
            return TreeDiff.failed(e.message, lines)
        finally:
            # filecmp caches by (size, mtime) for the life of the process
            filecmp.clear_cache()

        if lines:
            return TreeDiff.different(lines)
        return TreeDiff.equal()

    def _list(self, directory: Path) -> List[str]:
        try:
            return sorted(os.listdir(directory))
        except OSError as e:
            raise DiffMechanismError(str(directory), e.strerror or str(e), cause=e) from e

    def _diff_dirs(self, left: Path, right: Path, lines: List[str]) -> None:
        left_names = self._list(left)
        right_names = self._list(right)
        right_set = set(right_names)
        left_set = set(left_names)

        for name in sorted(left_set | right_set):
            if name not in right_set:
                lines.append(f"Only in {left}: {name}")
                continue
            if name not in left_set:
                lines.append(f"Only in {right}: {name}")
                continue

            left_path = left / name
            right_path = right / name
            left_is_dir = left_path.is_dir()
            right_is_dir = right_path.is_dir()

            if left_is_dir and right_is_dir:
                self._diff_dirs(left_path, right_path, lines)
            elif left_is_dir != right_is_dir:
                left_kind = "a directory" if left_is_dir else "a regular file"
                right_kind = "a directory" if right_is_dir else "a regular file"
                lines.append(f"File {left_path} is {left_kind} while file {right_path} is {right_kind}")
            elif not self._same_content(left_path, right_path):
                lines.append(f"Files {left_path} and {right_path} differ")

    def _same_content(self, left: Path, right: Path) -> bool:
        try:
            return filecmp.cmp(left, right, shallow=False)
        except OSError as e:
            raise DiffMechanismError(str(left), e.strerror or str(e), cause=e) from e

class StructuralComparator:
    """
    Classifies a snapshot pair from its structure and content.

    Produces a partially populated ComparisonResult (classification, counts,
    sizes and raw diff). Input snapshots are never modified.
    """

    def __init__(self, differ: TreeDiffer = None):
        self.differ = differ or TreeDiffer()
        self.logger = get_logger(__name__)

    def compare(self, previous: Snapshot, current: Snapshot) -> ComparisonResult:
        """
        Compare two snapshots.

        Raises:
            PreconditionError: neither snapshot holds any regular file, or the
                previous snapshot exists but the current one is missing/empty
        """
        start_time = datetime.now()
        self.logger.info(f"Structural comparison: {previous.root} -> {current.root}")

        if not previous.is_usable:
            if not current.is_usable:
                raise PreconditionError(
                    "Both previous and current snapshots are empty or missing",
                    context={"previous": str(previous.root), "current": str(current.root)}
                )
            return self._first_run(previous, current)

        if not current.is_usable:
            raise PreconditionError(
                "Current snapshot is empty or missing",
                context={"current": str(current.root)}
            )

        previous_files = previous.files()
        current_files = current.files()
        result = ComparisonResult(
            classification=Classification.COMPARISON_ERROR,
            previous_root=previous.root,
            current_root=current.root,
            previous_file_count=len(previous_files),
            current_file_count=len(current_files),
            previous_size=sum(p.stat().st_size for p in previous_files),
            current_size=sum(p.stat().st_size for p in current_files)
        )

        diff = self.differ.diff(previous.root, current.root)
        result.diff = diff
        result.classification = {
            DiffStatus.EQUAL: Classification.NO_CHANGES,
            DiffStatus.DIFFERENT: Classification.CHANGES_DETECTED,
            DiffStatus.ERROR: Classification.COMPARISON_ERROR
        }[diff.status]
        result.structural_classification = result.classification
        if diff.status == DiffStatus.ERROR:
            result.error_message = diff.error

        log_performance(
            self.logger,
            "structural_comparison",
            (datetime.now() - start_time).total_seconds() * 1000,
            success=diff.status != DiffStatus.ERROR,
            classification=result.classification.value,
            differences=len(diff.lines)
        )
        return result

    def _first_run(self, previous: Snapshot, current: Snapshot) -> ComparisonResult:
        listing = [str(p) for p in current.files()]
        self.logger.info(f"No previous snapshot; recording {len(listing)} current files")
        return ComparisonResult(
            classification=Classification.FIRST_RUN,
            previous_root=previous.root,
            current_root=current.root,
            current_file_count=len(listing),
            current_size=current.total_size(),
            structural_classification=Classification.FIRST_RUN,
            current_listing=listing
        )

__all__ = ['TreeDiffer', 'StructuralComparator']
