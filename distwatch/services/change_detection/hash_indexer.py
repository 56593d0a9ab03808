"""
Hash Indexer

Builds canonical content-hash listings for snapshots and compares them.

Digest algorithms are tried through an ordered provider chain, strongest
first. One index never mixes algorithms; the algorithm used is recorded on
the index so comparisons across algorithms are reported distinctly.
"""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from distwatch.core.config import HashingSettings, settings
from distwatch.core.domain.entities import (
    Snapshot, FileEntry, HashIndex, relative_posix
)
from distwatch.core.enums import HashVerdict
from distwatch.core.exceptions import HashUnavailableError
from distwatch.core.logging_config import get_logger, log_performance

# ======================== DIGEST PROVIDERS ========================

class DigestProvider:
    """A digest algorithm that may or may not be usable in this process."""

    def __init__(self, name: str):
        self.name = name

    def is_available(self) -> bool:
        """Evaluated at call time so a changed environment is picked up per run."""
        if self.name not in hashlib.algorithms_available:
            return False
        try:
            self.new()
        except (ValueError, TypeError):
            # e.g. md5 blocked by a FIPS-mode OpenSSL
            return False
        return True

    def new(self):
        return hashlib.new(self.name)

    def __repr__(self) -> str:
        return f"DigestProvider({self.name!r})"

def build_provider_chain(names: Sequence[str]) -> List[DigestProvider]:
    return [DigestProvider(name) for name in names]

# ======================== RESULT MODEL ========================

@dataclass
class HashComparison:
    """Verdict plus the evidence behind it."""
    verdict: HashVerdict
    algorithm: Optional[str] = None
    modified_paths: List[str] = field(default_factory=list)
    changed_lines: List[str] = field(default_factory=list)
    message: Optional[str] = None

# ======================== HASH INDEXER ========================

class HashIndexer:
    """Computes HashIndex listings using the first provider that works."""

    def __init__(
        self,
        providers: Optional[List[DigestProvider]] = None,
        config: Optional[HashingSettings] = None
    ):
        self.config = config or settings.hashing
        self.providers = providers if providers is not None else build_provider_chain(self.config.algorithms)
        self.logger = get_logger(__name__)

    def index(self, snapshot: Snapshot, provider: Optional[DigestProvider] = None) -> HashIndex:
        """
        Build the hash index for one snapshot.

        Args:
            snapshot: Snapshot to index (a missing/empty snapshot yields an empty index)
            provider: Force a specific provider instead of walking the chain

        Returns:
            HashIndex sorted by relative path

        Raises:
            HashUnavailableError: no provider could hash the whole snapshot
        """
        if provider is not None:
            return self._index_with(snapshot, provider)

        attempted = []
        for candidate in self.providers:
            attempted.append(candidate.name)
            if not candidate.is_available():
                self.logger.warning(f"Digest algorithm {candidate.name} unavailable, trying next")
                continue
            try:
                return self._index_with(snapshot, candidate)
            except OSError as e:
                self.logger.warning(
                    f"Hashing {snapshot.root} with {candidate.name} failed: {e}"
                )
        raise HashUnavailableError(attempted, context={"snapshot": str(snapshot.root)})

    def _index_with(self, snapshot: Snapshot, provider: DigestProvider) -> HashIndex:
        start_time = datetime.now()
        entries = {}
        for path in snapshot.files():
            rel = relative_posix(path, snapshot.root)
            entries[rel] = FileEntry(
                relative_path=rel,
                digest=self._digest_file(path, provider),
                algorithm=provider.name,
                size_bytes=path.stat().st_size
            )

        index = HashIndex(algorithm=provider.name, entries=entries)
        log_performance(
            self.logger,
            "hash_index",
            (datetime.now() - start_time).total_seconds() * 1000,
            root=str(snapshot.root),
            algorithm=provider.name,
            files=len(index)
        )
        return index

    def _digest_file(self, path, provider: DigestProvider) -> str:
        digest = provider.new()
        with open(path, 'rb') as fh:
            for chunk in iter(lambda: fh.read(self.config.chunk_size), b''):
                digest.update(chunk)
        return digest.hexdigest()

    # ======================== VERIFICATION ========================

    def verify(self, previous: Snapshot, current: Snapshot) -> HashComparison:
        """
        Index both snapshots and compare them.

        Hash unavailability is a soft failure: it is reported as the
        HASH_UNAVAILABLE verdict instead of raising.
        """
        try:
            previous_index = self.index(previous)
            current_index = self.index(current)
        except HashUnavailableError as e:
            self.logger.warning(f"Hash comparison skipped: {e}")
            return HashComparison(verdict=HashVerdict.HASH_UNAVAILABLE, message=e.message)

        return compare_indexes(previous_index, current_index)

# ======================== VERDICT ========================

def compare_indexes(previous: HashIndex, current: HashIndex) -> HashComparison:
    """
    IDENTICAL iff both indexes are equal as ordered (path, digest) sequences.

    Indexes built with different algorithms cannot be compared byte-for-byte
    and yield ALGORITHM_MISMATCH.
    """
    if previous.algorithm != current.algorithm:
        return HashComparison(
            verdict=HashVerdict.ALGORITHM_MISMATCH,
            message=(
                f"Previous index uses {previous.algorithm}, "
                f"current index uses {current.algorithm}"
            )
        )

    if previous.pairs() == current.pairs():
        return HashComparison(verdict=HashVerdict.IDENTICAL, algorithm=current.algorithm)

    previous_lines = previous.listing()
    current_lines = current.listing()
    previous_set = set(previous_lines)
    current_set = set(current_lines)
    changed = [f"< {line}" for line in previous_lines if line not in current_set]
    changed += [f"> {line}" for line in current_lines if line not in previous_set]

    return HashComparison(
        verdict=HashVerdict.DIFFERENT,
        algorithm=current.algorithm,
        modified_paths=previous.modified_against(current),
        changed_lines=changed
    )

__all__ = [
    'DigestProvider',
    'build_provider_chain',
    'HashComparison',
    'HashIndexer',
    'compare_indexes'
]
