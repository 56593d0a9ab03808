"""
Notification Gate Test Suite

Transition table, cooldown boundary and multi-run sequences.
"""

from datetime import datetime, timedelta

import pytest

from distwatch.core.enums import Classification, DecisionType, LockState
from distwatch.core.exceptions import BusinessLogicError
from distwatch.services.notification.gate import NotificationGate
from distwatch.services.notification.lock_store import FileLockStore

from tests.conftest import FIXED_NOW
from tests.fakes import FakeLockStore

COOLDOWN = timedelta(days=15)
COOLDOWN_SECONDS = COOLDOWN.total_seconds()

def _gate(store, clock=None):
    kwargs = {'clock': clock} if clock is not None else {}
    return NotificationGate(store=store, cooldown=COOLDOWN, **kwargs)

# ======================== TRANSITION TABLE ========================

class TestTransitions:
    """One test per (state, classification) cell."""

    def test_no_lock_no_changes(self, lock_store):
        decision = _gate(lock_store).evaluate(Classification.NO_CHANGES, FIXED_NOW)

        assert decision.decision == DecisionType.SUPPRESSED
        assert decision.state_after == LockState.NO_LOCK
        assert lock_store.creates == 0

    @pytest.mark.parametrize("classification", [Classification.CHANGES_DETECTED, Classification.FIRST_RUN])
    def test_no_lock_change_arms(self, lock_store, classification):
        decision = _gate(lock_store).evaluate(classification, FIXED_NOW)

        assert decision.decision == DecisionType.ARMED
        assert decision.state_before == LockState.NO_LOCK
        assert decision.state_after == LockState.LOCK_ACTIVE
        assert decision.lock_age_seconds == 0.0
        assert lock_store.record.timestamp == FIXED_NOW
        assert not decision.should_deliver

    @pytest.mark.parametrize("classification", [Classification.NO_CHANGES, Classification.CHANGES_DETECTED])
    def test_active_lock_suppresses_and_is_untouched(self, classification):
        store = FakeLockStore.aged(FIXED_NOW, 3600)
        original = store.record

        decision = _gate(store).evaluate(classification, FIXED_NOW)

        assert decision.decision == DecisionType.SUPPRESSED
        assert decision.state_after == LockState.LOCK_ACTIVE
        assert decision.lock_age_seconds == 3600
        assert store.record is original
        assert store.creates == 0
        assert store.deletes == 0

    def test_expired_lock_with_change_notifies(self):
        store = FakeLockStore.aged(FIXED_NOW, COOLDOWN_SECONDS + 60)

        decision = _gate(store).evaluate(Classification.CHANGES_DETECTED, FIXED_NOW)

        assert decision.decision == DecisionType.NOTIFY
        assert decision.state_before == LockState.LOCK_EXPIRED
        assert decision.state_after == LockState.NO_LOCK
        assert decision.should_deliver
        assert store.record is None

    def test_expired_lock_without_change_clears_silently(self):
        store = FakeLockStore.aged(FIXED_NOW, COOLDOWN_SECONDS + 60)

        decision = _gate(store).evaluate(Classification.NO_CHANGES, FIXED_NOW)

        assert decision.decision == DecisionType.SUPPRESSED
        assert decision.state_after == LockState.NO_LOCK
        assert store.deletes == 1

    def test_unreadable_timestamp_counts_as_expired(self):
        store = FakeLockStore.unreadable()

        decision = _gate(store).evaluate(Classification.CHANGES_DETECTED, FIXED_NOW)

        assert decision.state_before == LockState.LOCK_EXPIRED
        assert decision.decision == DecisionType.NOTIFY
        assert decision.lock_age_seconds is None

    def test_comparison_error_rejected(self, lock_store):
        with pytest.raises(BusinessLogicError):
            _gate(lock_store).evaluate(Classification.COMPARISON_ERROR, FIXED_NOW)

        assert lock_store.creates == 0
        assert lock_store.deletes == 0

# ======================== COOLDOWN BOUNDARY ========================

class TestCooldownBoundary:
    """Expiry is inclusive at exactly the cooldown."""

    def test_one_second_before_is_active(self):
        store = FakeLockStore.aged(FIXED_NOW, COOLDOWN_SECONDS - 1)
        assert _gate(store).evaluate(Classification.CHANGES_DETECTED, FIXED_NOW).decision == DecisionType.SUPPRESSED

    def test_exactly_cooldown_is_expired(self):
        store = FakeLockStore.aged(FIXED_NOW, COOLDOWN_SECONDS)
        assert _gate(store).evaluate(Classification.CHANGES_DETECTED, FIXED_NOW).decision == DecisionType.NOTIFY

    def test_exactly_cooldown_without_change_clears_lock(self):
        store = FakeLockStore.aged(FIXED_NOW, COOLDOWN_SECONDS)

        decision = _gate(store).evaluate(Classification.NO_CHANGES, FIXED_NOW)

        assert decision.state_before == LockState.LOCK_EXPIRED
        assert decision.decision == DecisionType.SUPPRESSED
        assert decision.state_after == LockState.NO_LOCK
        assert store.deletes == 1
        assert store.record is None

    def test_zero_cooldown_expires_immediately(self, lock_store):
        gate = NotificationGate(store=lock_store, cooldown=timedelta(0))

        assert gate.evaluate(Classification.CHANGES_DETECTED, FIXED_NOW).decision == DecisionType.ARMED
        assert gate.evaluate(Classification.CHANGES_DETECTED, FIXED_NOW).decision == DecisionType.NOTIFY

# ======================== SEQUENCES ========================

class TestSequences:
    """Multi-run behaviour with a controllable clock."""

    def test_lock_age_not_reset_by_continuous_changes(self, lock_store, clock):
        gate = _gate(lock_store, clock)

        assert gate.evaluate(Classification.CHANGES_DETECTED).decision == DecisionType.ARMED
        armed_at = lock_store.record.timestamp

        for _ in range(14):
            clock.advance(days=1)
            assert gate.evaluate(Classification.CHANGES_DETECTED).decision == DecisionType.SUPPRESSED
            assert lock_store.record.timestamp == armed_at

        clock.advance(days=1)
        decision = gate.evaluate(Classification.CHANGES_DETECTED)

        assert decision.decision == DecisionType.NOTIFY
        assert decision.lock_age_seconds == COOLDOWN_SECONDS
        assert lock_store.creates == 1

    def test_quiet_period_then_change(self, lock_store, clock):
        gate = _gate(lock_store, clock)

        gate.evaluate(Classification.FIRST_RUN)
        clock.advance(days=20)
        assert gate.evaluate(Classification.NO_CHANGES).decision == DecisionType.SUPPRESSED
        assert lock_store.record is None

        clock.advance(days=1)
        assert gate.evaluate(Classification.CHANGES_DETECTED).decision == DecisionType.ARMED

    def test_notify_then_rearm_on_next_change(self, clock):
        store = FakeLockStore.aged(clock(), COOLDOWN_SECONDS + 1)
        gate = _gate(store, clock)

        assert gate.evaluate(Classification.CHANGES_DETECTED).decision == DecisionType.NOTIFY
        clock.advance(hours=1)
        assert gate.evaluate(Classification.CHANGES_DETECTED).decision == DecisionType.ARMED

    def test_no_changes_never_notifies(self, lock_store, clock):
        gate = _gate(lock_store, clock)
        decisions = []
        for _ in range(40):
            decisions.append(gate.evaluate(Classification.NO_CHANGES).decision)
            clock.advance(days=1)

        assert set(decisions) == {DecisionType.SUPPRESSED}
        assert lock_store.creates == 0

class TestCurrentState:
    """Read-only inspection."""

    def test_reports_age_without_mutation(self):
        store = FakeLockStore.aged(FIXED_NOW, 120)

        state = _gate(store).current_state(FIXED_NOW)

        assert state.state_before == LockState.LOCK_ACTIVE
        assert state.lock_age_seconds == 120
        assert store.creates == 0
        assert store.deletes == 0

class TestNaiveTimes:
    """Naive evaluation times are treated as UTC."""

    def test_naive_now_against_file_lock(self, tmp_path):
        gate = NotificationGate(store=FileLockStore(tmp_path / 'notification.lock'), cooldown=COOLDOWN)

        armed = gate.evaluate(Classification.CHANGES_DETECTED, datetime(2026, 3, 1, 12, 0, 0))
        later = gate.evaluate(Classification.CHANGES_DETECTED, datetime(2026, 3, 2, 12, 0, 0))

        assert armed.decision == DecisionType.ARMED
        assert later.decision == DecisionType.SUPPRESSED
        assert later.lock_age_seconds == 86400

    def test_mixed_naive_and_aware(self, tmp_path):
        gate = NotificationGate(store=FileLockStore(tmp_path / 'notification.lock'), cooldown=COOLDOWN)

        gate.evaluate(Classification.FIRST_RUN, datetime(2026, 3, 1, 12, 0, 0))
        decision = gate.evaluate(Classification.CHANGES_DETECTED, FIXED_NOW + COOLDOWN)

        assert decision.decision == DecisionType.NOTIFY
