"""Local report reminders.

Daily challenges remind every day at 20:00; weekly ones remind at 20:00 on the
weekday the reminder was switched on. Delivery belongs to the OS notification
service, reached through the ``NotificationScheduler`` protocol.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Optional, Protocol

from .i18n import translate
from .kv import KeyValueStore


logger = logging.getLogger(__name__)

REMINDER_HOUR = 20
REMINDER_MINUTE = 0
CHANNEL_ID = "reminders"


class NotificationScheduler(Protocol):
    def ensure_permissions(self) -> bool: ...

    def schedule(self, content: Dict, trigger: Dict) -> str: ...

    def cancel(self, notification_id: str) -> None: ...


def reminder_key(challenge_id: str) -> str:
    return f"todo:reminder:{challenge_id or ''}"


def reminder_trigger(frequency: str, now: datetime) -> Dict:
    if frequency == "daily":
        return {"type": "daily", "hour": REMINDER_HOUR, "minute": REMINDER_MINUTE}
    # 1 = Sunday ... 7 = Saturday
    weekday = (now.isoweekday() % 7) + 1
    return {"type": "weekly", "weekday": weekday, "hour": REMINDER_HOUR, "minute": REMINDER_MINUTE}


class ReminderBook:
    def __init__(
        self,
        store: KeyValueStore,
        scheduler: NotificationScheduler,
        clock: Callable[[], datetime] = datetime.now,
        language: str = "he",
    ) -> None:
        self.store = store
        self.scheduler = scheduler
        self.clock = clock
        self.language = language

    def cancel(self, challenge_id: str) -> None:
        key = reminder_key(challenge_id)
        existing = self.store.get(key)
        if not existing:
            return
        try:
            self.scheduler.cancel(existing)
        except Exception as e:
            logger.warning("cancel reminder %s failed: %s", existing, e)
        self.store.remove(key)

    def schedule(self, challenge_id: str, frequency: str, challenge_name: Optional[str] = None) -> Optional[str]:
        if not challenge_id:
            return None
        self.cancel(challenge_id)
        if not self.scheduler.ensure_permissions():
            logger.info("notification permission denied; reminder for %s not scheduled", challenge_id)
            return None

        body = (
            translate(self.language, "reminder.body_named", name=challenge_name)
            if challenge_name
            else translate(self.language, "reminder.body")
        )
        content = {
            "title": translate(self.language, "reminder.title"),
            "body": body,
            "sound": True,
            "channel_id": CHANNEL_ID,
            "data": {"challengeId": challenge_id},
        }
        notification_id = self.scheduler.schedule(content, reminder_trigger(frequency, self.clock()))
        self.store.set(reminder_key(challenge_id), notification_id)
        return notification_id
