"""
Comparison Report

Pure aggregation of detection results into one ordered text artifact.
No decision logic lives here.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from distwatch.core.domain.entities import ChangeSet, ComparisonResult
from distwatch.core.enums import Classification, HashVerdict

DIFF_EXCERPT_LIMIT = 200

def combine_classification(
    structural: Classification,
    hash_verdict: Optional[HashVerdict]
) -> Classification:
    """
    Overall classification: CHANGES_DETECTED if either signal says so.

    Only NO_CHANGES / CHANGES_DETECTED structural results are combined;
    FIRST_RUN and COMPARISON_ERROR pass through unchanged.
    """
    if structural not in (Classification.NO_CHANGES, Classification.CHANGES_DETECTED):
        return structural
    if structural == Classification.CHANGES_DETECTED:
        return Classification.CHANGES_DETECTED
    if hash_verdict is not None and hash_verdict.indicates_change():
        return Classification.CHANGES_DETECTED
    return Classification.NO_CHANGES

class ComparisonReport:
    """Renders a ComparisonResult and ChangeSet as a human-readable report."""

    def __init__(
        self,
        result: ComparisonResult,
        change_set: Optional[ChangeSet] = None,
        hash_changed_lines: Optional[List[str]] = None,
        generated_at: Optional[datetime] = None,
        title: str = "Distribution Snapshot Comparison Report"
    ):
        self.result = result
        self.change_set = change_set
        self.hash_changed_lines = hash_changed_lines or []
        self.generated_at = generated_at or datetime.now(timezone.utc)
        self.title = title

    @property
    def classification(self) -> Classification:
        return self.result.classification

    def render(self) -> str:
        sections = [self._header()]
        result = self.result

        if result.classification == Classification.FIRST_RUN:
            sections.append(self._first_run_section())
        elif result.diff is not None:
            sections.append(self._count_section())
            sections.append(self._size_section())
            sections.append(self._diff_section())
            if result.hash_verdict is not None:
                sections.append(self._hash_section())

        if self.change_set is not None:
            sections.append(self._change_section())

        sections.append(self._summary_section())
        return "\n\n".join(section.rstrip("\n") for section in sections) + "\n"

    def write(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(), encoding="utf-8")
        return path

    # ======================== SECTIONS ========================

    def _header(self) -> str:
        return (
            f"{self.title}\n"
            f"Generated: {self.generated_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}\n"
            f"Previous version: {self.result.previous_root}\n"
            f"Current version: {self.result.current_root}"
        )

    def _first_run_section(self) -> str:
        lines = [
            "=== First Time Setup ===",
            "No previous version found for comparison.",
            "This appears to be the initial execution of the monitoring system.",
            "",
            "Current version file inventory:"
        ]
        lines.extend(self.result.current_listing)
        return "\n".join(lines)

    def _count_section(self) -> str:
        r = self.result
        return (
            "=== File Count Analysis ===\n"
            f"Previous version files: {r.previous_file_count}\n"
            f"Current version files: {r.current_file_count}\n"
            f"Difference: {r.file_count_delta}"
        )

    def _size_section(self) -> str:
        r = self.result
        return (
            "=== Directory Size Analysis ===\n"
            f"Previous version size: {r.previous_size} bytes\n"
            f"Current version size: {r.current_size} bytes\n"
            f"Size difference: {r.size_delta} bytes"
        )

    def _diff_section(self) -> str:
        diff = self.result.diff
        lines = ["=== Detailed File Comparison ==="]
        lines.extend(diff.lines[:DIFF_EXCERPT_LIMIT])
        if len(diff.lines) > DIFF_EXCERPT_LIMIT:
            lines.append(f"... and {len(diff.lines) - DIFF_EXCERPT_LIMIT} more differences")
        if diff.error:
            lines.append(f"ERROR: {diff.error}")
        lines.append(f"Diff outcome: {diff.status.value}")
        return "\n".join(lines)

    def _hash_section(self) -> str:
        r = self.result
        lines = ["=== Hash-Based Comparison ==="]
        if r.hash_algorithm:
            lines.append(f"Algorithm: {r.hash_algorithm}")

        verdict = r.hash_verdict
        if verdict == HashVerdict.IDENTICAL:
            lines.append("Hash comparison result: Files are identical")
        elif verdict == HashVerdict.DIFFERENT:
            lines.append("Hash comparison result: Files have changed")
            if r.modified_paths:
                lines.append("")
                lines.append("Modified files:")
                lines.extend(r.modified_paths)
            if self.hash_changed_lines:
                lines.append("")
                lines.append("Changed files:")
                lines.extend(self.hash_changed_lines[:DIFF_EXCERPT_LIMIT])
        elif verdict == HashVerdict.ALGORITHM_MISMATCH:
            lines.append("WARNING: Indexes were built with different digest algorithms")
        else:
            lines.append("WARNING: Could not generate hashes; structural result is authoritative")

        if r.verdicts_disagree:
            lines.append("")
            lines.append(
                "NOTE: Structural comparison reported "
                f"{r.structural_classification.value} but hash comparison reported {verdict.value}"
            )
        return "\n".join(lines)

    def _change_section(self) -> str:
        change_set = self.change_set
        lines = ["=== Change Analysis ==="]
        if change_set.first_run:
            lines.append("All files are new (first run):")
            lines.extend(change_set.added)
            return "\n".join(lines)

        if change_set.added:
            lines.append("New files added:")
            lines.extend(change_set.added)
        else:
            lines.append("No new files added")

        lines.append("")
        if change_set.removed:
            lines.append("Files removed:")
            lines.extend(change_set.removed)
        else:
            lines.append("No files removed")
        return "\n".join(lines)

    def _summary_section(self) -> str:
        r = self.result
        lines = [
            "=== Comparison Summary ===",
            f"Result: {r.classification.value}",
            r.classification.get_description()
        ]
        if r.error_message:
            lines.append(f"Error: {r.error_message}")
        return "\n".join(lines)

__all__ = ['ComparisonReport', 'combine_classification', 'DIFF_EXCERPT_LIMIT']
