"""Cooldown gating and report delivery."""

from distwatch.services.notification.gate import NotificationGate
from distwatch.services.notification.lock_store import FileLockStore, LockStore
from distwatch.services.notification.service import NotificationService

__all__ = ['NotificationGate', 'FileLockStore', 'LockStore', 'NotificationService']
