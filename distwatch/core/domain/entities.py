"""
Domain Entities

Value objects and results passed between the detection and notification layers.
Every component receives these explicitly; none of them hold ambient state.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Iterator, Tuple
from datetime import datetime
from pathlib import Path

from distwatch.core.enums import (
    Classification, HashVerdict, DiffStatus, LockState, DecisionType
)

# ======================== FILESYSTEM HELPERS ========================

def iter_regular_files(root: Path) -> Iterator[Path]:
    """Yield every regular file under root, not following symlinks."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.is_file() and not path.is_symlink():
                yield path

def relative_posix(path: Path, root: Path) -> str:
    """Root-relative path with forward slashes on every platform."""
    return path.relative_to(root).as_posix()

# ======================== SNAPSHOT ========================

@dataclass(frozen=True)
class Snapshot:
    """
    Read-only reference to a directory tree captured at one point in time.

    Emptiness means "zero regular files": an existing directory holding only
    subdirectories is treated exactly like a missing one.
    """
    root: Path
    exists: bool
    is_empty: bool

    @classmethod
    def at(cls, root) -> 'Snapshot':
        """Inspect a directory and build its snapshot reference."""
        root = Path(root)
        exists = root.is_dir()
        is_empty = True
        if exists:
            is_empty = next(iter_regular_files(root), None) is None
        return cls(root=root, exists=exists, is_empty=is_empty)

    @property
    def is_usable(self) -> bool:
        """Present and holding at least one regular file."""
        return self.exists and not self.is_empty

    def files(self) -> List[Path]:
        """Absolute paths of all regular files, sorted by relative path."""
        if not self.exists:
            return []
        return sorted(iter_regular_files(self.root), key=lambda p: relative_posix(p, self.root))

    def relative_paths(self) -> List[str]:
        """Sorted root-relative listing of regular files."""
        return [relative_posix(p, self.root) for p in self.files()]

    def total_size(self) -> int:
        """Aggregate byte size of all regular files."""
        return sum(p.stat().st_size for p in self.files())

# ======================== HASH INDEX ========================

@dataclass(frozen=True)
class FileEntry:
    """Immutable digest record for one file."""
    relative_path: str
    digest: str
    algorithm: str
    size_bytes: int

    @property
    def tagged_digest(self) -> str:
        """Digest prefixed with its algorithm, e.g. 'sha256:ab12...'."""
        return f"{self.algorithm}:{self.digest}"

@dataclass
class HashIndex:
    """Content-hash listing for one snapshot, ordered by relative path."""
    algorithm: str
    entries: Dict[str, FileEntry] = field(default_factory=dict)

    def __post_init__(self):
        self.entries = dict(sorted(self.entries.items()))

    def __len__(self) -> int:
        return len(self.entries)

    def pairs(self) -> List[Tuple[str, str]]:
        """Ordered (path, digest) sequence used for the verdict."""
        return [(path, entry.digest) for path, entry in self.entries.items()]

    def listing(self) -> List[str]:
        """Checksum-tool style lines: '<digest>  <path>'."""
        return [f"{entry.digest}  {path}" for path, entry in self.entries.items()]

    def modified_against(self, other: 'HashIndex') -> List[str]:
        """Paths present in both indexes whose digests differ."""
        return [
            path for path, entry in self.entries.items()
            if path in other.entries and other.entries[path].digest != entry.digest
        ]

# ======================== STRUCTURAL DIFF ========================

@dataclass
class TreeDiff:
    """Tagged outcome of a recursive tree diff: EQUAL, DIFFERENT or ERROR."""
    status: DiffStatus
    lines: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def equal(cls) -> 'TreeDiff':
        return cls(status=DiffStatus.EQUAL)

    @classmethod
    def different(cls, lines: List[str]) -> 'TreeDiff':
        return cls(status=DiffStatus.DIFFERENT, lines=list(lines))

    @classmethod
    def failed(cls, error: str, lines: Optional[List[str]] = None) -> 'TreeDiff':
        return cls(status=DiffStatus.ERROR, lines=list(lines or []), error=error)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

# ======================== CHANGE SET ========================

@dataclass
class ChangeSet:
    """Disjoint added/removed relative-path lists between two snapshots."""
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    first_run: bool = False

    def __post_init__(self):
        overlap = set(self.added) & set(self.removed)
        if overlap:
            raise ValueError(f"Paths cannot be both added and removed: {sorted(overlap)}")

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.removed

# ======================== COMPARISON RESULT ========================

@dataclass
class ComparisonResult:
    """Everything the detection layer learned about one snapshot pair."""
    classification: Classification
    previous_root: Path
    current_root: Path
    previous_file_count: int = 0
    current_file_count: int = 0
    previous_size: int = 0
    current_size: int = 0
    diff: Optional[TreeDiff] = None
    structural_classification: Optional[Classification] = None
    hash_verdict: Optional[HashVerdict] = None
    hash_algorithm: Optional[str] = None
    modified_paths: List[str] = field(default_factory=list)
    current_listing: List[str] = field(default_factory=list)
    error_message: Optional[str] = None

    @property
    def file_count_delta(self) -> int:
        return self.current_file_count - self.previous_file_count

    @property
    def size_delta(self) -> int:
        return self.current_size - self.previous_size

    @property
    def verdicts_disagree(self) -> bool:
        """Structural and hash signals point in different directions."""
        if self.structural_classification is None or self.hash_verdict is None:
            return False
        if self.hash_verdict not in (HashVerdict.IDENTICAL, HashVerdict.DIFFERENT):
            return False
        structural_change = self.structural_classification == Classification.CHANGES_DETECTED
        return structural_change != self.hash_verdict.indicates_change()

# ======================== NOTIFICATION STATE ========================

@dataclass(frozen=True)
class LockRecord:
    """
    Persisted cooldown marker.

    The timestamp comes from storage metadata (modification time), never from
    the marker's content. None means the marker exists but its time is unknown.
    """
    timestamp: Optional[datetime]

    def age_seconds(self, now: datetime) -> Optional[float]:
        if self.timestamp is None:
            return None
        return (now - self.timestamp).total_seconds()

@dataclass(frozen=True)
class NotificationDecision:
    """Gate output for one run."""
    decision: DecisionType
    state_before: LockState
    state_after: LockState
    lock_age_seconds: Optional[float] = None

    @property
    def should_deliver(self) -> bool:
        return self.decision.should_deliver()

# ======================== RUN RESULT ========================

@dataclass
class RunResult:
    """Outcome of one complete monitor run."""
    comparison: ComparisonResult
    change_set: Optional[ChangeSet]
    report_path: Path
    report_text: str
    decision: Optional[NotificationDecision] = None
    baseline_advanced: bool = False
    delivery: Dict[str, object] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def classification(self) -> Classification:
        return self.comparison.classification

    @property
    def exit_code(self) -> int:
        return self.classification.get_exit_code()
