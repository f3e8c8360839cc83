"""
Shared state types for the VisionFlash pipeline.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .morse import clamp_unit_duration


class AppPhase(Enum):
    SETUP = "setup"
    READY = "ready"


class OperatingMode(Enum):
    VISION = "vision"
    AUDIO = "audio"

    def toggled(self) -> "OperatingMode":
        return OperatingMode.AUDIO if self is OperatingMode.VISION else OperatingMode.VISION


class DetailLevel(Enum):
    """How much the vision describer should say. Values are the wire names."""
    LOW = "summary"
    MEDIUM = "detailed"
    HIGH = "word-for-word"

    def next(self) -> "DetailLevel":
        levels = list(DetailLevel)
        return levels[(levels.index(self) + 1) % len(levels)]

    def previous(self) -> "DetailLevel":
        levels = list(DetailLevel)
        return levels[(levels.index(self) - 1) % len(levels)]


class UserSettings:
    """User-adjustable settings shared by the controller and scheduler."""

    def __init__(self, detail: DetailLevel = DetailLevel.LOW, unit_duration_ms: int = 200):
        self.detail = detail
        self._unit_duration_ms = clamp_unit_duration(unit_duration_ms)

    @property
    def unit_duration_ms(self) -> int:
        return self._unit_duration_ms

    @unit_duration_ms.setter
    def unit_duration_ms(self, value: int) -> None:
        self._unit_duration_ms = clamp_unit_duration(value)


@dataclass
class SchedulerState:
    """Mutable flags owned by one CaptureScheduler.

    `in_flight` is the request gate; `owner` identifies the cycle holding it
    so a cycle that outlives a reset never releases a newer cycle's gate.
    """
    in_flight: bool = False
    suspended: bool = False
    owner: Optional[object] = None

    def try_acquire(self) -> Optional[object]:
        """Claim the gate. Returns a token, or None when the cycle must skip."""
        if self.suspended or self.in_flight:
            return None
        token = object()
        self.in_flight = True
        self.owner = token
        return token

    def release(self, token: object) -> None:
        if self.owner is token:
            self.in_flight = False
            self.owner = None

    def clear(self) -> None:
        self.in_flight = False
        self.suspended = False
        self.owner = None
