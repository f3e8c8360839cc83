"""
Keyboard routing for VisionFlash.
"""

import time
from enum import Enum
from typing import Dict, Iterable, Optional


class InputAction(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    ACTIVATE = "activate"
    MODE_TOGGLE = "mode_toggle"
    DIAGNOSTICS = "diagnostics"
    CONFIRM = "confirm"
    RESET = "reset"
    TEST_FLASH = "test_flash"
    QUIT = "quit"


# Arrow key codes reported by cv2.waitKeyEx (GTK/Qt, Win32).
_ARROW_CODES = {
    InputAction.LEFT: (65361, 2424832),
    InputAction.UP: (65362, 2490368),
    InputAction.RIGHT: (65363, 2555904),
    InputAction.DOWN: (65364, 2621440),
}

_SHIFT_CODES = (65505, 65506, 16)


class KeyRouter:
    """Maps raw key codes to input actions, with optional per-action cooldowns."""

    def __init__(self):
        self._bindings: Dict[int, InputAction] = {}
        self._last_run_at: Dict[InputAction, float] = {}
        self._cooldowns: Dict[InputAction, float] = {}

        for action, codes in _ARROW_CODES.items():
            self.bind(action, codes)
        self.bind(InputAction.ACTIVATE, [ord(" ")])
        self.bind(InputAction.DIAGNOSTICS, list(_SHIFT_CODES) + [ord("d")])
        self.bind(InputAction.MODE_TOGGLE, [ord("m")])
        self.bind(InputAction.CONFIRM, [13, 10])
        self.bind(InputAction.RESET, [ord("r")])
        self.bind(InputAction.TEST_FLASH, [ord("t")])
        self.bind(InputAction.QUIT, [ord("q"), 27])

    def bind(self, action: InputAction, codes: Iterable[int]) -> None:
        """Route each key code in `codes` to `action`."""
        for code in codes:
            self._bindings[int(code)] = action

    def set_cooldown(self, action: InputAction, seconds: float) -> None:
        """Ignore repeats of `action` arriving within `seconds`."""
        self._cooldowns[action] = seconds

    def should_run(self, action: InputAction) -> bool:
        cooldown = self._cooldowns.get(action, 0.0)
        last = self._last_run_at.get(action)
        return last is None or (time.monotonic() - last) >= cooldown

    def route(self, key_code: int) -> Optional[InputAction]:
        """Return the action bound to `key_code`, or None."""
        if key_code is None or key_code < 0:
            return None
        action = self._bindings.get(key_code)
        if action is None and key_code > 0xFF:
            # Some backends report letters with modifier bits set.
            action = self._bindings.get(key_code & 0xFF)
        if action is None or not self.should_run(action):
            return None
        self._last_run_at[action] = time.monotonic()
        return action


def scroll_notches(wheel_delta: int, notch: int = 120) -> int:
    """Convert a mouse wheel delta into whole notches (at least one per event)."""
    if wheel_delta == 0:
        return 0
    steps = int(wheel_delta / notch)
    if steps == 0:
        steps = 1 if wheel_delta > 0 else -1
    return steps
