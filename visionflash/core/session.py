"""
Capture session: the media sources open for the current operating mode.
"""

import logging
from typing import Callable, Optional

from .devices import DeviceDescriptor
from .state import OperatingMode

logger = logging.getLogger(__name__)


def _device_index(device: Optional[DeviceDescriptor]) -> Optional[int]:
    if device is None:
        return None
    try:
        return int(device.id)
    except ValueError:
        return None


class CaptureSession:
    """Owns the camera and microphone for one operating mode.

    Vision opens the camera (and the microphone when `vision_audio` is set);
    audio prepares a recorder that starts on demand.
    """

    def __init__(self, camera_factory: Callable, recorder_factory: Callable,
                 vision_audio: bool = False):
        self.camera_factory = camera_factory
        self.recorder_factory = recorder_factory
        self.vision_audio = vision_audio
        self.mode: Optional[OperatingMode] = None
        self.camera = None
        self.recorder = None

    @property
    def is_open(self) -> bool:
        return self.mode is not None

    @property
    def is_recording(self) -> bool:
        return self.recorder is not None and self.recorder.is_active

    def open(self, mode: OperatingMode, camera: Optional[DeviceDescriptor] = None,
             microphone: Optional[DeviceDescriptor] = None) -> bool:
        """Acquire the sources for `mode`. Failures leave capture disabled."""
        self.close()
        self.mode = mode
        ok = True

        if mode is OperatingMode.VISION:
            try:
                source = self.camera_factory(_device_index(camera))
                if source.open():
                    self.camera = source
                else:
                    ok = False
            except Exception as e:
                logger.error(f"❌ Camera unavailable: {e}", exc_info=True)
                ok = False

        if mode is OperatingMode.AUDIO or self.vision_audio:
            try:
                self.recorder = self.recorder_factory(_device_index(microphone))
                if mode is OperatingMode.VISION and not self.recorder.start():
                    self.recorder = None
            except Exception as e:
                logger.error(f"❌ Microphone unavailable: {e}", exc_info=True)
                self.recorder = None
                ok = False

        logger.info(f"🎬 Capture session opened for {mode.value} mode")
        return ok

    def close(self) -> None:
        """Release every source. Buffered audio is dropped."""
        if self.recorder is not None:
            if self.recorder.is_active:
                self.recorder.discard()
            self.recorder = None
        if self.camera is not None:
            self.camera.close()
            self.camera = None
        if self.mode is not None:
            logger.info(f"🎬 Capture session closed ({self.mode.value})")
        self.mode = None
