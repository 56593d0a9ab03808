"""
Notification Gate

Cooldown state machine over the persisted lock record.

    state          NO_CHANGES            CHANGES_DETECTED / FIRST_RUN
    NO_LOCK        SUPPRESSED            create lock -> ARMED
    LOCK_ACTIVE    SUPPRESSED            SUPPRESSED (lock kept as is)
    LOCK_EXPIRED   delete -> SUPPRESSED  delete -> NOTIFY

Lock age is measured from first detection and never reset by later changes,
so a continuously changing artifact still gets notified once the cooldown
elapses. Expiry is inclusive: age == cooldown counts as expired.
"""

from datetime import datetime, timedelta
from typing import Optional

from distwatch.core.config import NotificationSettings, settings
from distwatch.core.domain.entities import LockRecord, NotificationDecision
from distwatch.core.enums import Classification, DecisionType, LockState
from distwatch.core.exceptions import BusinessLogicError
from distwatch.core.logging_config import get_logger
from distwatch.services.notification.lock_store import Clock, FileLockStore, LockStore, as_utc, utc_now

class NotificationGate:
    """Decides suppress / arm / notify for one run."""

    def __init__(
        self,
        store: Optional[LockStore] = None,
        cooldown: Optional[timedelta] = None,
        clock: Clock = utc_now,
        config: Optional[NotificationSettings] = None
    ):
        config = config or settings.notification
        self.store = store or FileLockStore(config.lock_path)
        self.cooldown = cooldown if cooldown is not None else timedelta(seconds=config.cooldown_seconds)
        self.clock = clock
        self.logger = get_logger(__name__)

    def state_of(self, record: Optional[LockRecord], now: datetime) -> LockState:
        """Classify a lock record; an unknown timestamp counts as expired."""
        if record is None:
            return LockState.NO_LOCK
        age = record.age_seconds(now)
        if age is None or age >= self.cooldown.total_seconds():
            return LockState.LOCK_EXPIRED
        return LockState.LOCK_ACTIVE

    def current_state(self, now: Optional[datetime] = None) -> NotificationDecision:
        """Inspect the lock without changing it (decision is always SUPPRESSED)."""
        now = as_utc(now or self.clock())
        record = self.store.read()
        state = self.state_of(record, now)
        return NotificationDecision(
            decision=DecisionType.SUPPRESSED,
            state_before=state,
            state_after=state,
            lock_age_seconds=record.age_seconds(now) if record else None
        )

    def evaluate(self, classification: Classification, now: Optional[datetime] = None) -> NotificationDecision:
        """
        Apply one transition.

        Raises:
            BusinessLogicError: classification is COMPARISON_ERROR; errored runs
                must not touch notification state
        """
        if not classification.is_successful():
            raise BusinessLogicError(
                "Notification gate cannot evaluate a failed comparison",
                context={"classification": classification.value}
            )

        now = as_utc(now or self.clock())
        record = self.store.read()
        state = self.state_of(record, now)
        age = record.age_seconds(now) if record else None
        changed = classification.is_change()

        if state == LockState.NO_LOCK:
            if changed:
                self.store.create(now)
                decision, state_after = DecisionType.ARMED, LockState.LOCK_ACTIVE
                age = 0.0
            else:
                decision, state_after = DecisionType.SUPPRESSED, LockState.NO_LOCK

        elif state == LockState.LOCK_ACTIVE:
            decision, state_after = DecisionType.SUPPRESSED, LockState.LOCK_ACTIVE

        else:
            if age is None:
                self.logger.warning("Lock timestamp unknown; treating lock as expired")
            self.store.delete()
            decision = DecisionType.NOTIFY if changed else DecisionType.SUPPRESSED
            state_after = LockState.NO_LOCK

        self.logger.info(
            f"Notification gate: {state.value} + {classification.value} -> "
            f"{state_after.value} ({decision.value})",
            extra={"lock_age_seconds": age, "cooldown_seconds": self.cooldown.total_seconds()}
        )
        return NotificationDecision(
            decision=decision,
            state_before=state,
            state_after=state_after,
            lock_age_seconds=age
        )

__all__ = ['NotificationGate']
