"""
On-screen flash output and input window.
"""

import logging
from typing import List

import cv2
import numpy as np

from .flash import FlashState

logger = logging.getLogger(__name__)

WINDOW_NAME = "VisionFlash"

_BRIGHT = 255
_DARK = 0


class FlashWindow:
    """Full-window luminance output that also collects keys and scroll."""

    def __init__(self, width: int = 960, height: int = 540, fullscreen: bool = True):
        self.width = width
        self.height = height
        self.fullscreen = fullscreen
        self.state = FlashState.DARK
        self.overlay_lines: List[str] = []
        self._scroll_delta = 0

    def open(self) -> None:
        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
        if self.fullscreen:
            try:
                cv2.setWindowProperty(WINDOW_NAME, cv2.WND_PROP_FULLSCREEN, cv2.WINDOW_FULLSCREEN)
            except Exception:
                logger.debug("Fullscreen not supported by this OpenCV backend")
        cv2.setMouseCallback(WINDOW_NAME, self._on_mouse)
        self.render()

    def close(self) -> None:
        cv2.destroyAllWindows()

    def _on_mouse(self, event, x, y, flags, param):
        if event == cv2.EVENT_MOUSEWHEEL:
            self._scroll_delta += cv2.getMouseWheelDelta(flags)

    def take_scroll(self) -> int:
        """Return and reset the wheel delta collected since the last call."""
        delta, self._scroll_delta = self._scroll_delta, 0
        return delta

    # Flash output interface

    def apply(self, state: FlashState, duration_ms: int) -> None:
        self.state = state
        self.render()

    def restore(self, state: FlashState) -> None:
        self.state = state
        self.render()

    def poll_key(self, wait_ms: int = 1) -> int:
        """Pump the window event loop and return the key pressed, or -1."""
        return cv2.waitKeyEx(wait_ms)

    def _wrap_text(self, text: str, max_width: int, max_lines: int = 3) -> List[str]:
        """Wrap text to fit within width."""
        if not text:
            return []

        font = cv2.FONT_HERSHEY_SIMPLEX
        font_scale = 0.7
        thickness = 2

        words = text.encode('ascii', 'ignore').decode().split()
        lines = []
        current = ""

        for word in words:
            candidate = word if current == "" else current + " " + word
            (w, _), _ = cv2.getTextSize(candidate, font, font_scale, thickness)
            if w <= max_width:
                current = candidate
            else:
                if current:
                    lines.append(current)
                current = word
                if len(lines) >= max_lines:
                    break

        if current and len(lines) < max_lines:
            lines.append(current)
        return lines

    def render(self) -> None:
        """Draw the current luminance state plus the diagnostics overlay."""
        level = _BRIGHT if self.state is FlashState.BRIGHT else _DARK
        frame = np.full((self.height, self.width, 3), level, dtype=np.uint8)

        if self.overlay_lines:
            font = cv2.FONT_HERSHEY_SIMPLEX
            color = (0, 0, 0) if level == _BRIGHT else (0, 255, 0)
            y = 30
            for line in self.overlay_lines:
                for wrapped in self._wrap_text(line, self.width - 40):
                    cv2.putText(frame, wrapped, (20, y), font, 0.7, color, 2, cv2.LINE_AA)
                    y += 28

        cv2.imshow(WINDOW_NAME, frame)
