"""
Notification Service

Delivers the comparison report through the enabled channels once the gate
decides NOTIFY. A failing channel is logged and recorded but never aborts
the run.
"""

import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Any, Callable, Dict, List, Optional

import requests

from distwatch.core.config import NotificationSettings, settings
from distwatch.core.domain.entities import ComparisonResult, NotificationDecision
from distwatch.core.enums import NotificationChannel
from distwatch.core.exceptions import DeliveryError
from distwatch.core.logging_config import get_logger, log_exception

ChannelSender = Callable[[str, str, NotificationDecision, ComparisonResult], None]

class NotificationService:
    """
    Report delivery across log, email and webhook channels.

    Features:
    - Decision-gated delivery (only NOTIFY is sent)
    - Per-channel failure isolation
    - Extensible channel registry
    """

    def __init__(
        self,
        config: Optional[NotificationSettings] = None,
        channels: Optional[List[NotificationChannel]] = None,
        session: Optional[requests.Session] = None
    ):
        self.config = config or settings.notification
        self.logger = get_logger(__name__)
        self.session = session

        self.channels: Dict[NotificationChannel, ChannelSender] = {
            NotificationChannel.LOG: self._send_log_notification,
            NotificationChannel.EMAIL: self._send_email_notification,
            NotificationChannel.WEBHOOK: self._send_webhook_notification
        }
        self.enabled_channels = list(channels if channels is not None else self.config.channels)

    # ======================== MAIN DISPATCH ========================

    def deliver(
        self,
        report_text: str,
        decision: Optional[NotificationDecision],
        result: ComparisonResult
    ) -> Dict[str, Any]:
        """
        Deliver the report if the decision calls for it.

        Returns:
            Dispatch summary: status, sent/failed counts and error messages
        """
        if decision is None or not decision.should_deliver:
            reason = decision.decision.value if decision else "no decision"
            self.logger.info(f"Notification not sent ({reason})")
            return {'status': 'skipped', 'sent': 0, 'failed': 0, 'errors': []}

        subject = self._get_subject(result)
        results = {'status': 'success', 'sent': 0, 'failed': 0, 'errors': []}

        for channel in self.enabled_channels:
            sender = self.channels.get(channel)
            if sender is None:
                self.logger.warning(f"No sender registered for channel {channel.value}")
                continue
            try:
                sender(subject, report_text, decision, result)
                results['sent'] += 1
                self.logger.info(f"Sent notification via {channel.value}")
            except Exception as e:
                if isinstance(e, DeliveryError):
                    error = e
                    self.logger.error(f"Failed to send via {channel.value}: {error.message}")
                else:
                    error = DeliveryError(channel.value, str(e), cause=e)
                    log_exception(self.logger, e, {"channel": channel.value})
                results['failed'] += 1
                results['errors'].append(error.message)

        if results['failed']:
            results['status'] = 'partial' if results['sent'] else 'failed'
        return results

    def register_channel(self, channel: NotificationChannel, sender: ChannelSender) -> None:
        """Register (or replace) the sender for a channel."""
        self.channels[channel] = sender

    # ======================== MESSAGE FORMATTING ========================

    def _get_subject(self, result: ComparisonResult) -> str:
        return (
            f"{self.config.subject_prefix} {result.classification.value}: "
            f"{result.current_root.name or result.current_root}"
        ).strip()

    # ======================== CHANNEL IMPLEMENTATIONS ========================

    def _send_log_notification(self, subject, report_text, decision, result) -> None:
        self.logger.warning(f"NOTIFICATION: {subject}\n{report_text}")

    def _send_email_notification(self, subject, report_text, decision, result) -> None:
        if not self.config.recipients:
            raise DeliveryError("email", "no recipients configured")

        msg = EmailMessage()
        msg['Subject'] = subject
        msg['From'] = self.config.from_email
        msg['To'] = ', '.join(self.config.recipients)
        msg.set_content(report_text)

        try:
            with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=30) as server:
                if self.config.smtp_use_tls:
                    server.starttls()
                if self.config.smtp_username and self.config.smtp_password:
                    server.login(self.config.smtp_username, self.config.smtp_password.get_secret_value())
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError("email", str(e), cause=e) from e

    def _send_webhook_notification(self, subject, report_text, decision, result) -> None:
        if not self.config.webhook_url:
            raise DeliveryError("webhook", "no webhook URL configured")

        payload = {
            'source': 'distwatch',
            'subject': subject,
            'classification': result.classification.value,
            'decision': decision.decision.value,
            'lock_age_seconds': decision.lock_age_seconds,
            'hash_verdict': result.hash_verdict.value if result.hash_verdict else None,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'report': report_text
        }

        session = self.session or requests.Session()
        try:
            response = session.post(
                self.config.webhook_url,
                json=payload,
                timeout=self.config.webhook_timeout
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise DeliveryError("webhook", str(e), cause=e) from e

__all__ = ['NotificationService', 'ChannelSender']
