"""
Centralized Enums for DistWatch

All application enums in one place for:
- Consistency across detection and notification layers
- Type safety and IDE support
- Clear documentation of every state the system can report
"""

from enum import Enum

# ======================== APPLICATION ENUMS ========================

class Environment(str, Enum):
    """Application deployment environments."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"

class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

# ======================== CHANGE DETECTION ENUMS ========================

class Classification(str, Enum):
    """Detection-layer verdict for a pair of snapshots."""
    FIRST_RUN = "FIRST_RUN"
    NO_CHANGES = "NO_CHANGES"
    CHANGES_DETECTED = "CHANGES_DETECTED"
    COMPARISON_ERROR = "COMPARISON_ERROR"

    def get_exit_code(self) -> int:
        """Process exit code for standalone invocation."""
        return {
            self.NO_CHANGES: 0,
            self.CHANGES_DETECTED: 1,
            self.FIRST_RUN: 1,
            self.COMPARISON_ERROR: 2
        }[self]

    def is_change(self) -> bool:
        """Check if this classification counts as an observed change."""
        return self in (self.CHANGES_DETECTED, self.FIRST_RUN)

    def is_successful(self) -> bool:
        """Check if the comparison itself completed."""
        return self is not self.COMPARISON_ERROR

    def get_description(self) -> str:
        """Get human-readable description."""
        return {
            self.FIRST_RUN: "No previous snapshot; current snapshot recorded as baseline",
            self.NO_CHANGES: "No differences found between snapshots",
            self.CHANGES_DETECTED: "Differences detected between snapshots",
            self.COMPARISON_ERROR: "Comparison could not be completed"
        }[self]

class HashVerdict(str, Enum):
    """Result of comparing two content-hash indexes."""
    IDENTICAL = "IDENTICAL"
    DIFFERENT = "DIFFERENT"
    HASH_UNAVAILABLE = "HASH_UNAVAILABLE"
    ALGORITHM_MISMATCH = "ALGORITHM_MISMATCH"

    def indicates_change(self) -> bool:
        """Only a genuine digest difference is evidence of changed bytes."""
        return self is self.DIFFERENT

class DiffStatus(str, Enum):
    """Outcome of the recursive tree diff."""
    EQUAL = "EQUAL"
    DIFFERENT = "DIFFERENT"
    ERROR = "ERROR"

# ======================== NOTIFICATION ENUMS ========================

class LockState(str, Enum):
    """Cooldown state derived from the persisted lock record."""
    NO_LOCK = "NO_LOCK"
    LOCK_ACTIVE = "LOCK_ACTIVE"
    LOCK_EXPIRED = "LOCK_EXPIRED"

class DecisionType(str, Enum):
    """What the notification gate decided for this run."""
    SUPPRESSED = "SUPPRESSED"
    ARMED = "ARMED"
    NOTIFY = "NOTIFY"

    def should_deliver(self) -> bool:
        """Only NOTIFY decisions are handed to delivery channels."""
        return self is self.NOTIFY

class NotificationChannel(str, Enum):
    """Delivery channels for notifications."""
    LOG = "log"
    EMAIL = "email"
    WEBHOOK = "webhook"

__all__ = [
    'Environment',
    'LogLevel',
    'Classification',
    'HashVerdict',
    'DiffStatus',
    'LockState',
    'DecisionType',
    'NotificationChannel'
]
