import json
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Optional

from constants import MAX_HUNGER, MIN_HUNGER, DEFAULT_PET_NAME

logger = logging.getLogger(__name__)


def clamp_hunger(value):
    return max(MIN_HUNGER, min(MAX_HUNGER, int(value)))


class AvatarSymbol(Enum):
    """
    The fixed set of pets a player can pick.
    Values are the emoji stored in the save file.
    """
    CAT = "\U0001F431"
    DOG = "\U0001F436"
    RABBIT = "\U0001F430"
    BEAR = "\U0001F43B"
    TIGER = "\U0001F42F"
    FOX = "\U0001F98A"
    HAMSTER = "\U0001F439"
    COW = "\U0001F42E"

    @classmethod
    def _missing_(cls, value):
        """
        Accepts member names ('cat', 'CAT') as well as emoji.
        Anything else falls back to CAT so an old save never fails to load.
        """
        if isinstance(value, str):
            normalized = value.strip().upper()
            for member in cls:
                if member.name == normalized:
                    return member
        logger.warning("Unknown avatar symbol %r, using CAT", value)
        return cls.CAT

    @property
    def label(self):
        return self.name.capitalize()

    @property
    def color(self):
        return AVATAR_COLORS[self]

    @property
    def ears(self):
        return AVATAR_EARS[self]


# Body tint per avatar, drawn with primitives since pygame fonts lack color emoji
AVATAR_COLORS = {
    AvatarSymbol.CAT: (255, 220, 225),
    AvatarSymbol.DOG: (222, 184, 135),
    AvatarSymbol.RABBIT: (245, 245, 245),
    AvatarSymbol.BEAR: (160, 110, 80),
    AvatarSymbol.TIGER: (255, 170, 60),
    AvatarSymbol.FOX: (235, 120, 50),
    AvatarSymbol.HAMSTER: (240, 200, 140),
    AvatarSymbol.COW: (250, 250, 240),
}

AVATAR_EARS = {
    AvatarSymbol.CAT: "pointy",
    AvatarSymbol.DOG: "floppy",
    AvatarSymbol.RABBIT: "long",
    AvatarSymbol.BEAR: "round",
    AvatarSymbol.TIGER: "pointy",
    AvatarSymbol.FOX: "pointy",
    AvatarSymbol.HAMSTER: "round",
    AvatarSymbol.COW: "horns",
}


@dataclass
class Pet:
    """The one active pet. Serialized with the camelCase keys of the save format."""
    name: str = DEFAULT_PET_NAME
    avatar_symbol: AvatarSymbol = AvatarSymbol.CAT
    notifications_enabled: bool = True

    @classmethod
    def create(cls, name, avatar_symbol=AvatarSymbol.CAT):
        """Build a fresh pet from onboarding input."""
        name = name.strip() or DEFAULT_PET_NAME
        return cls(name=name, avatar_symbol=AvatarSymbol(avatar_symbol), notifications_enabled=True)

    def to_dict(self):
        return {
            "name": self.name,
            "avatarSymbol": self.avatar_symbol.value,
            "notificationsEnabled": bool(self.notifications_enabled),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data):
        """Raises ValueError when a required field is missing or has the wrong type."""
        if not isinstance(data, dict):
            raise ValueError(f"pet record must be an object, got {type(data).__name__}")
        name = data.get("name")
        symbol = data.get("avatarSymbol")
        enabled = data.get("notificationsEnabled")
        if not isinstance(name, str):
            raise ValueError("pet record is missing 'name'")
        if not isinstance(symbol, str):
            raise ValueError("pet record is missing 'avatarSymbol'")
        if not isinstance(enabled, bool):
            raise ValueError("pet record is missing 'notificationsEnabled'")
        return cls(name=name, avatar_symbol=AvatarSymbol(symbol), notifications_enabled=enabled)

    @classmethod
    def from_json(cls, blob: str):
        try:
            data = json.loads(blob)
        except (TypeError, json.JSONDecodeError) as e:
            raise ValueError(f"pet record is not valid JSON: {e}") from e
        return cls.from_dict(data)


@dataclass
class BackgroundSnapshot:
    hunger_level: int
    timestamp: float


@dataclass
class HungerState:
    """Live hunger state. Only the background snapshot ever reaches disk."""
    hunger_level: int = MAX_HUNGER
    last_notification_timestamp: Optional[float] = None
    background_snapshot: Optional[BackgroundSnapshot] = None

    def set_hunger(self, value):
        self.hunger_level = clamp_hunger(value)
        return self.hunger_level
