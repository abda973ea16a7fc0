import os
import math
import logging

logger = logging.getLogger(__name__)


def env_positive(name, default, cast=float):
    """Read a positive number from the environment, falling back to `default`."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = cast(raw)
    except ValueError:
        value = None
    if value is None or not math.isfinite(value) or value <= 0:
        logger.warning("Ignoring %s=%r, using %r", name, raw, default)
        return default
    return value


# --- GLOBAL CONFIGURATION ---
SCREEN_WIDTH = 480
SCREEN_HEIGHT = 320
FPS = env_positive("CATFEEDER_FPS", 30, cast=int)
SAVE_FILE = os.getenv("CATFEEDER_SAVE_FILE", "catfeeder_save.json")
LOG_LEVEL = os.getenv("CATFEEDER_LOG_LEVEL", "INFO")

# --- HUNGER RULES ---
MAX_HUNGER = 100
MIN_HUNGER = 0
FEED_AMOUNT = 10
TICK_DECAY = 5
LOW_HUNGER_THRESHOLD = 20   # hunger <= this is "starving"
NOTIFY_COOLDOWN = 60.0      # seconds between immediate alerts

# Foreground tick and background catch-up are configured independently (seconds).
TICK_INTERVAL = env_positive("CATFEEDER_TICK_INTERVAL", 5.0)
BACKGROUND_STEP_SECONDS = env_positive("CATFEEDER_BACKGROUND_STEP", 5.0)
BACKGROUND_DECAY_PER_STEP = 10

# Scheduled alert: assume ALERT_DECAY_PER_STEP lost every ALERT_STEP_SECONDS
ALERT_STEP_SECONDS = 5
ALERT_DECAY_PER_STEP = 10
IMMEDIATE_ALERT_DELAY = 1

# --- ALERT TEXT ---
ALERT_TITLE = "Hunger alarm!\U0001F6A8"
ALERT_BODY = "{name} is starving!\U0001F97A"
ALERT_FALLBACK_NAME = "Your pet"
SCHEDULED_ALERT_ID = "hunger"
IMMEDIATE_ALERT_ID = "immediate_hunger"

DEFAULT_PET_NAME = "Unnamed"

# --- ANIMATION (seconds) ---
WIGGLE_DURATION = 0.5
FOOD_ANIM_DURATION = 0.7
FOOD_ANIM_RISE = 150
BANNER_DURATION = 4.0
DOUBLE_CLICK_SECONDS = 0.4

# --- RETRO UI PALETTE ---
COLOR_BG = (40, 44, 52)
COLOR_TEXT = (171, 178, 191)
COLOR_TEXT_BRIGHT = (230, 232, 236)
COLOR_UI_BAR_BG = (62, 68, 81)
COLOR_FULL = (152, 195, 121)
COLOR_STARVING = (224, 108, 117)
COLOR_BTN = (100, 100, 100)
COLOR_BTN_DISABLED = (70, 70, 70)
COLOR_SELECTED = (97, 175, 239)
COLOR_BANNER_BG = (50, 50, 50, 200)
COLOR_PET_EYES = (33, 37, 43)
COLOR_FOOD = (200, 110, 80)
