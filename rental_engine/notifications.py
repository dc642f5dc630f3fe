"""Best-effort notification collaborator.

Delivery (email templates, SMTP, ...) lives outside the engine. Managers call
``notify(event_type, payload)`` after a state change has been committed; a
failure is logged and never undoes the change.
"""
import logging
from typing import List, Tuple

logger = logging.getLogger(__name__)

BOOKING_CONFIRMED = "booking_confirmed"
SUBSCRIPTION_CREATED = "subscription_created"
SUBSCRIPTION_PAUSED = "subscription_paused"
SUBSCRIPTION_RESUMED = "subscription_resumed"
SUBSCRIPTION_CANCELLED = "subscription_cancelled"
PAYMENT_REMINDER = "payment_reminder"
LOCKER_RENTED = "locker_rented"

EVENT_TYPES = (
    BOOKING_CONFIRMED, SUBSCRIPTION_CREATED, SUBSCRIPTION_PAUSED, SUBSCRIPTION_RESUMED,
    SUBSCRIPTION_CANCELLED, PAYMENT_REMINDER, LOCKER_RENTED,
)


class Notifier:
    def notify(self, event_type: str, payload: dict) -> bool:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """Default notifier: records the event in the log only"""

    def notify(self, event_type: str, payload: dict) -> bool:
        logger.info("notify %s: %s", event_type, payload)
        return True


class RecordingNotifier(Notifier):
    """Keeps every event in memory; handy for tests and previews"""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: List[Tuple[str, dict]] = []

    def notify(self, event_type: str, payload: dict) -> bool:
        self.sent.append((event_type, dict(payload)))
        return self.succeed

    def events(self, event_type: str = None) -> List[dict]:
        return [p for t, p in self.sent if event_type is None or t == event_type]


def send(notifier: Notifier, event_type: str, payload: dict) -> bool:
    """Fire-and-forget delivery used by the managers"""
    if notifier is None:
        return False
    try:
        ok = bool(notifier.notify(event_type, payload))
    except Exception:
        logger.warning("Notification %s failed", event_type, exc_info=True)
        return False
    if not ok:
        logger.warning("Notification %s was not delivered", event_type)
    return ok
