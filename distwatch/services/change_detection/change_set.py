"""
Change Set Analyzer

Added and removed relative paths between two snapshots. Renames are not
detected: a renamed file shows up as one removed and one added path.
"""

from typing import Iterable

from distwatch.core.domain.entities import ChangeSet, Snapshot
from distwatch.core.logging_config import get_logger

class ChangeSetAnalyzer:
    """Set-difference analysis over sorted relative-path listings."""

    def __init__(self):
        self.logger = get_logger(__name__)

    def analyze(self, previous: Snapshot, current: Snapshot) -> ChangeSet:
        """
        Compute the change set for a snapshot pair.

        When the previous snapshot is missing or empty every current path is
        reported as added and nothing as removed.
        """
        current_paths = current.relative_paths()

        if not previous.is_usable:
            self.logger.info(f"First run: all {len(current_paths)} files are new")
            return ChangeSet(added=current_paths, removed=[], first_run=True)

        change_set = self.from_listings(previous.relative_paths(), current_paths)
        self.logger.info(
            f"Found {len(change_set.added)} added and {len(change_set.removed)} removed files"
        )
        return change_set

    @staticmethod
    def from_listings(previous_paths: Iterable[str], current_paths: Iterable[str]) -> ChangeSet:
        """added = current - previous, removed = previous - current, both sorted."""
        previous_set = set(previous_paths)
        current_set = set(current_paths)
        return ChangeSet(
            added=sorted(current_set - previous_set),
            removed=sorted(previous_set - current_set)
        )

__all__ = ['ChangeSetAnalyzer']
