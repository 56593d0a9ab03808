"""
Lock Store

Persistence for the single cooldown marker. Lock time is taken from the
marker's modification time; the content is advisory metadata only and is
never parsed for control decisions.
"""

import json
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from distwatch.core.domain.entities import LockRecord
from distwatch.core.exceptions import LockStateError
from distwatch.core.logging_config import get_logger

Clock = Callable[[], datetime]

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(moment: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)

class LockStore(ABC):
    """Storage interface for the cooldown lock record."""

    @abstractmethod
    def read(self) -> Optional[LockRecord]:
        """Current lock record, or None when no lock exists."""

    @abstractmethod
    def create(self, timestamp: datetime) -> LockRecord:
        """Create (or overwrite) the lock with the given creation time."""

    @abstractmethod
    def delete(self) -> None:
        """Remove the lock; a missing lock is not an error."""

class FileLockStore(LockStore):
    """Lock marker file whose mtime is the lock timestamp."""

    def __init__(self, path):
        self.path = Path(path)
        self.logger = get_logger(__name__)

    def read(self) -> Optional[LockRecord]:
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            return None
        except OSError as e:
            self.logger.warning(f"Lock {self.path} exists but its timestamp is unreadable: {e}")
            return LockRecord(timestamp=None)
        return LockRecord(timestamp=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc))

    def create(self, timestamp: datetime) -> LockRecord:
        timestamp = as_utc(timestamp)
        metadata = {
            "created_at": timestamp.isoformat(),
            "pid": os.getpid()
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(metadata) + "\n", encoding="utf-8")
            epoch = timestamp.timestamp()
            os.utime(self.path, (epoch, epoch))
        except OSError as e:
            raise LockStateError("create", str(self.path), cause=e) from e
        self.logger.info(f"Notification lock created at {self.path}")
        return LockRecord(timestamp=timestamp)

    def delete(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise LockStateError("delete", str(self.path), cause=e) from e
        self.logger.info(f"Notification lock removed from {self.path}")

__all__ = ['Clock', 'utc_now', 'as_utc', 'LockStore', 'FileLockStore']
