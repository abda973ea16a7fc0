import os
import math
import json
import logging

from constants import MAX_HUNGER
from models import Pet, BackgroundSnapshot, clamp_hunger

logger = logging.getLogger(__name__)

KEY_PET = "pet"
KEY_LAST_HUNGER = "last_hunger_level"
KEY_LAST_BACKGROUND = "last_background_date"


class SaveStore:
    """Small key-value store backed by one JSON file.

    Every write rewrites the whole file through a temp file and an atomic
    replace, so a crash never leaves a truncated save behind.
    """
    def __init__(self, path):
        self.path = str(path)
        self._data = self._read()

    def _read(self):
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read save file '%s': %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring save file '%s': top level is not an object", self.path)
            return {}
        return data

    def _write(self):
        """Persist the whole store. A failed write is logged and the old file kept."""
        tmp = self.path + ".tmp"
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.warning("Failed to write save file '%s': %s", self.path, e)
            if os.path.exists(tmp):
                os.remove(tmp)
            return False
        return True

    def get(self, key, default=None):
        return self._data.get(key, default)

    def set(self, key, value):
        self._data[key] = value
        self._write()

    def remove(self, *keys):
        changed = False
        for key in keys:
            if key in self._data:
                del self._data[key]
                changed = True
        if changed:
            self._write()

    # --- Pet record ---

    def load_pet(self):
        """Return the stored Pet, or None when absent or undecodable."""
        blob = self._data.get(KEY_PET)
        if blob is None:
            return None
        try:
            return Pet.from_json(blob)
        except ValueError as e:
            logger.warning("Stored pet record is unreadable, starting onboarding: %s", e)
            return None

    def save_pet(self, pet):
        self.set(KEY_PET, pet.to_json())

    # --- Background snapshot ---

    def save_snapshot(self, snapshot):
        self._data[KEY_LAST_HUNGER] = int(snapshot.hunger_level)
        self._data[KEY_LAST_BACKGROUND] = float(snapshot.timestamp)
        self._write()

    def load_snapshot(self):
        """Return the persisted BackgroundSnapshot, or None without a usable timestamp."""
        raw_ts = self._data.get(KEY_LAST_BACKGROUND)
        if raw_ts is None:
            return None
        try:
            timestamp = float(raw_ts)
        except (TypeError, ValueError):
            timestamp = math.nan
        if not math.isfinite(timestamp):
            logger.warning("Ignoring invalid background timestamp %r", raw_ts)
            return None
        # json accepts Infinity/NaN, which int() cannot convert
        raw_level = self._data.get(KEY_LAST_HUNGER, MAX_HUNGER)
        try:
            level = clamp_hunger(raw_level)
        except (TypeError, ValueError, OverflowError):
            logger.warning("Ignoring invalid hunger level %r", raw_level)
            level = MAX_HUNGER
        return BackgroundSnapshot(hunger_level=level, timestamp=timestamp)

    def clear_snapshot(self):
        # The last hunger level stays around like any other stored value; only
        # the timestamp marks a pending reconciliation.
        self.remove(KEY_LAST_BACKGROUND)
