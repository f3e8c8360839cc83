"""
Camera frame source for the vision capture cycle.
"""

import logging
import threading
from typing import Optional

import cv2

from ..utils.media import is_usable_frame

logger = logging.getLogger(__name__)


class CameraSource:
    """Opens one camera and hands out single frames on demand."""

    def __init__(self, device_id: Optional[int] = None, backend: str = "ANY", probe_count: int = 3):
        self.device_id = device_id
        self.backend_name = backend
        self.backend = getattr(cv2, f"CAP_{backend}", cv2.CAP_ANY)
        self.probe_count = probe_count
        self.cap: Optional[cv2.VideoCapture] = None
        self.index = -1
        # read_frame runs on executor threads; close must not release the
        # capture in the middle of a read.
        self._lock = threading.Lock()

    def _try_index(self, idx: int) -> Optional[cv2.VideoCapture]:
        cap = cv2.VideoCapture(idx, self.backend)
        if cap.isOpened():
            ret, _ = cap.read()
            if ret:
                try:
                    cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
                except Exception:
                    pass
                return cap
        cap.release()
        return None

    def open(self) -> bool:
        """Open the selected camera, falling back to any camera that works."""
        if self.cap is not None:
            return True

        candidates = list(range(self.probe_count))
        if self.device_id is not None:
            if self.device_id in candidates:
                candidates.remove(self.device_id)
            candidates.insert(0, self.device_id)

        for idx in candidates:
            logger.info(f"… Trying camera backend={self.backend_name}, index={idx}")
            cap = self._try_index(idx)
            if cap is not None:
                self.cap = cap
                self.index = idx
                logger.info(f"✅ Camera opened using backend={self.backend_name}, index={idx}")
                return True

        logger.error("❌ Cannot access camera")
        return False

    @property
    def is_ready(self) -> bool:
        return self.cap is not None and self.cap.isOpened()

    def read_frame(self):
        """Grab one frame, or None if the camera is not ready or the frame is empty."""
        with self._lock:
            if not self.is_ready:
                return None
            ret, frame = self.cap.read()
        if not ret or not is_usable_frame(frame):
            return None
        return frame

    def close(self) -> None:
        with self._lock:
            if self.cap is None:
                return
            self.cap.release()
            self.cap = None
        logger.info("📹 Camera released")
