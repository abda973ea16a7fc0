import time
import logging

from constants import (
    MAX_HUNGER, FEED_AMOUNT, TICK_DECAY, LOW_HUNGER_THRESHOLD, NOTIFY_COOLDOWN,
    BACKGROUND_STEP_SECONDS, BACKGROUND_DECAY_PER_STEP,
    ALERT_STEP_SECONDS, ALERT_DECAY_PER_STEP, IMMEDIATE_ALERT_DELAY,
    ALERT_TITLE, ALERT_BODY, ALERT_FALLBACK_NAME,
    SCHEDULED_ALERT_ID, IMMEDIATE_ALERT_ID,
)
from models import HungerState, BackgroundSnapshot

logger = logging.getLogger(__name__)


def background_alert_delay(hunger_level):
    """Seconds until hunger would reach the low threshold while backgrounded.

    Returns 0 when no alert should be scheduled.
    """
    if hunger_level <= LOW_HUNGER_THRESHOLD:
        return 0
    steps_needed = (hunger_level - LOW_HUNGER_THRESHOLD) // ALERT_DECAY_PER_STEP
    return steps_needed * ALERT_STEP_SECONDS


def reconcile_hunger(snapshot_level, elapsed, step_seconds=BACKGROUND_STEP_SECONDS):
    """Hunger after `elapsed` seconds away, starting from `snapshot_level`."""
    steps = int(max(0.0, elapsed) // step_seconds)
    return max(0, snapshot_level - steps * BACKGROUND_DECAY_PER_STEP)


class HungerEngine:
    """Owns the pet's hunger and decides when to ask for an alert.

    All methods run on the game loop thread; tick and lifecycle callbacks
    never interleave, so nothing here locks.
    """
    def __init__(self, alerts, pet=None, store=None, clock=time.time,
                 background_step_seconds=BACKGROUND_STEP_SECONDS):
        self.alerts = alerts
        self.pet = pet
        self.store = store
        self.clock = clock
        self.background_step_seconds = background_step_seconds
        self.state = HungerState()
        self._observers = []

    # --- observable value ---

    @property
    def hunger_level(self):
        return self.state.hunger_level

    @property
    def is_hungry(self):
        return self.state.hunger_level <= LOW_HUNGER_THRESHOLD

    def observe(self, callback):
        self._observers.append(callback)

    def _set_hunger(self, value):
        old = self.state.hunger_level
        new = self.state.set_hunger(value)
        if new != old:
            for callback in list(self._observers):
                callback(new)

    # --- commands ---

    def feed(self):
        self._set_hunger(min(MAX_HUNGER, self.state.hunger_level + FEED_AMOUNT))
        self.state.last_notification_timestamp = None
        self.alerts.cancel_all()
        logger.debug("Fed pet, hunger now %d", self.state.hunger_level)

    def tick(self):
        self._set_hunger(max(0, self.state.hunger_level - TICK_DECAY))
        if not self.is_hungry:
            return
        now = self.clock()
        last = self.state.last_notification_timestamp
        if last is None or now - last > NOTIFY_COOLDOWN:
            self._request_immediate_alert()
            self.state.last_notification_timestamp = now

    def enter_background(self):
        snapshot = BackgroundSnapshot(hunger_level=self.state.hunger_level, timestamp=self.clock())
        self.state.background_snapshot = snapshot
        if self.store is not None:
            self.store.save_snapshot(snapshot)
        logger.info("Entering background at hunger %d", snapshot.hunger_level)
        self.schedule_background_alert()

    def resume_foreground(self):
        snapshot = self.state.background_snapshot
        if snapshot is None:
            return
        elapsed = self.clock() - snapshot.timestamp
        self._set_hunger(reconcile_hunger(snapshot.hunger_level, elapsed, self.background_step_seconds))
        self.state.background_snapshot = None
        if self.store is not None:
            self.store.clear_snapshot()
        logger.info("Resumed after %.1fs away, hunger now %d", max(0.0, elapsed), self.state.hunger_level)
        self.schedule_background_alert()

    def restore(self):
        """Pick up a snapshot left on disk by a run that ended in the background."""
        if self.store is None:
            return
        snapshot = self.store.load_snapshot()
        if snapshot is None:
            return
        self.state.background_snapshot = snapshot
        self.resume_foreground()

    def set_pet(self, pet):
        was_enabled = self.pet is not None and self.pet.notifications_enabled
        self.pet = pet
        if was_enabled and (pet is None or not pet.notifications_enabled):
            self.alerts.cancel_all()

    # --- alerts ---

    def _alert_text(self):
        name = self.pet.name if self.pet is not None else ALERT_FALLBACK_NAME
        return ALERT_TITLE, ALERT_BODY.format(name=name)

    def _notifications_enabled(self):
        return self.pet is not None and self.pet.notifications_enabled

    def _request_immediate_alert(self):
        if not self._notifications_enabled():
            return
        title, body = self._alert_text()
        logger.info("Hunger at %d, requesting alert", self.state.hunger_level)
        self.alerts.schedule_one_shot(IMMEDIATE_ALERT_DELAY, title, body, identifier=IMMEDIATE_ALERT_ID)

    def schedule_background_alert(self):
        """Replace any pending alert with one timed to the low-hunger threshold."""
        if not self._notifications_enabled():
            return
        self.alerts.cancel_all()
        delay = background_alert_delay(self.state.hunger_level)
        if delay <= 0:
            return
        title, body = self._alert_text()
        self.alerts.schedule_one_shot(delay, title, body, identifier=SCHEDULED_ALERT_ID)
        logger.info("Scheduled hunger alert in %ds", delay)
