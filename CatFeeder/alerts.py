import os
import logging
from dataclasses import dataclass

import pygame

from constants import SCHEDULED_ALERT_ID, IMMEDIATE_ALERT_ID

logger = logging.getLogger(__name__)


@dataclass
class Alert:
    identifier: str
    title: str
    body: str
    delay: float


class AlertCenter:
    """Capability interface the hunger engine talks to.

    Implementations never report failure back to the caller: a denied
    permission or a broken backend just means no alert shows up.
    """
    def request_permission(self) -> bool:
        raise NotImplementedError

    def cancel_all(self) -> None:
        raise NotImplementedError

    def schedule_one_shot(self, delay, title, body, identifier=SCHEDULED_ALERT_ID) -> None:
        raise NotImplementedError


class RecordingAlertCenter(AlertCenter):
    """Keeps every request in memory instead of showing anything."""
    def __init__(self, granted=True):
        self.granted = granted
        self.calls = []
        self.pending = {}

    def request_permission(self):
        self.calls.append(("request_permission",))
        return self.granted

    def cancel_all(self):
        self.calls.append(("cancel_all",))
        self.pending.clear()

    def schedule_one_shot(self, delay, title, body, identifier=SCHEDULED_ALERT_ID):
        self.calls.append(("schedule_one_shot", delay, title, body, identifier))
        if self.granted:
            self.pending[identifier] = Alert(identifier, title, body, float(delay))

    @property
    def scheduled(self):
        """Alerts ever requested, oldest first."""
        return [Alert(c[4], c[2], c[3], float(c[1])) for c in self.calls if c[0] == "schedule_one_shot"]


class PygameAlertCenter(AlertCenter):
    """One-shot alerts on top of pygame's timer events.

    Each identifier gets its own custom event type so scheduling "hunger"
    again replaces the previous "hunger" timer without touching others.
    The game loop hands incoming events to `handle_event()`.
    """
    def __init__(self):
        self.authorized = False
        self.pending = {}
        self._event_types = {}
        for identifier in (SCHEDULED_ALERT_ID, IMMEDIATE_ALERT_ID):
            self._event_type(identifier)

    def _event_type(self, identifier):
        if identifier not in self._event_types:
            self._event_types[identifier] = pygame.event.custom_type()
        return self._event_types[identifier]

    def request_permission(self):
        allowed = os.getenv("CATFEEDER_ALERTS", "1") != "0"
        self.authorized = allowed and pygame.get_init()
        if not self.authorized:
            logger.info("Alerts not permitted; hunger alarms will not be shown")
        return self.authorized

    def cancel_all(self):
        for event_type in self._event_types.values():
            pygame.time.set_timer(event_type, 0)
        self.pending.clear()

    def schedule_one_shot(self, delay, title, body, identifier=SCHEDULED_ALERT_ID):
        if not self.authorized:
            return
        event_type = self._event_type(identifier)
        millis = max(1, int(float(delay) * 1000))
        pygame.time.set_timer(event_type, 0)
        pygame.time.set_timer(pygame.event.Event(event_type, {"identifier": identifier}), millis, loops=1)
        self.pending[identifier] = Alert(identifier, title, body, float(delay))
        logger.debug("Scheduled alert %r in %.1fs", identifier, delay)

    def owns(self, event):
        return event.type in self._event_types.values()

    def handle_event(self, event):
        """Return the fired Alert for one of our timer events, else None."""
        if not self.owns(event):
            return None
        identifier = getattr(event, "identifier", None)
        if identifier is None:
            for key, event_type in self._event_types.items():
                if event_type == event.type:
                    identifier = key
                    break
        return self.pending.pop(identifier, None)
