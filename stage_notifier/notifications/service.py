"""Notification service for stage status events.

Turns a StageStatusEvent into one e-mail per configured recipient. Like the
sender underneath it, the service never raises on delivery problems: every
outcome is reported as a DeliveryResult.
"""

import logging
from typing import Iterable, List, Optional

from stage_notifier.domain.models import StageStatusEvent
from stage_notifier.logging import get_logger
from stage_notifier.logging.context import log_context
from stage_notifier.mail.models import DeliveryResult, FailureReason, TemplateRenderError
from stage_notifier.mail.sender import SMTPMailSender

from .templates import TemplateRenderer

logger = get_logger(__name__, component="notification")


class NotificationService:
    """Sends stage status notifications to a fixed list of recipients.

    Flow per event:
    1. Skip the event unless its state is one of notify_states (if set)
    2. Render subject and body once
    3. Hand one message per recipient to the mail sender
    4. Log a summary of the batch
    """

    def __init__(
        self,
        sender: SMTPMailSender,
        recipients: Iterable[str],
        server_base_url: str = "http://localhost:8153",
        notify_states: Optional[Iterable[str]] = None,
        renderer: Optional[TemplateRenderer] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """Initialize notification service.

        Args:
            sender: Mail sender used for every delivery
            recipients: Addresses notified about each event
            server_base_url: Base URL for 'See details' links
            notify_states: Stage states that trigger mail (all if None)
            renderer: Template renderer (creates default if None)
            logger_instance: Logger instance (uses module logger if None)
        """
        self.sender = sender
        self.recipients = list(recipients)
        self.server_base_url = server_base_url
        self.notify_states = (
            {state.strip().lower() for state in notify_states} if notify_states else None
        )
        self.renderer = renderer or TemplateRenderer()
        self.logger = logger_instance or logger

    def should_notify(self, event: StageStatusEvent) -> bool:
        if self.notify_states is None:
            return True
        return event.state.strip().lower() in self.notify_states

    def notify(self, event: StageStatusEvent) -> List[DeliveryResult]:
        """Send notifications for one stage status event.

        Returns:
            One DeliveryResult per recipient, or an empty list when the event
            is filtered out or there is nobody to notify
        """
        with log_context(stage=event.locator, state=event.state):
            if not self.should_notify(event):
                self.logger.info(
                    f"Skipping notification for stage {event.locator} - state {event.state} not selected",
                    extra={"event": "notification.skip", "reason": "state_filtered"},
                )
                return []

            if not self.recipients:
                self.logger.warning(
                    f"No recipients configured, dropping notification for stage {event.locator}",
                    extra={"event": "notification.skip", "reason": "no_recipients"},
                )
                return []

            try:
                rendered = self.renderer.render(event, self.server_base_url)
            except TemplateRenderError as e:
                self.logger.error(
                    f"Failed to render notification for stage {event.locator}: {e}",
                    extra={"event": "notification.render.failure"},
                )
                return [
                    DeliveryResult.failed(recipient, "", FailureReason.MESSAGE, str(e))
                    for recipient in self.recipients
                ]

            results = [
                self.sender.send(rendered["subject"], rendered["body"], recipient)
                for recipient in self.recipients
            ]

            sent = sum(1 for result in results if result.is_success())
            failed = len(results) - sent
            self.logger.info(
                f"Notification batch complete for stage {event.locator}: "
                f"{sent} sent, {failed} failed (total: {len(results)})",
                extra={
                    "event": "notification.batch.complete",
                    "sent": sent,
                    "failed": failed,
                    "total": len(results),
                },
            )

            return results
