"""
Camera and microphone discovery with default-device selection.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


class DeviceKind(Enum):
    CAMERA = "camera"
    MICROPHONE = "microphone"


@dataclass(frozen=True)
class DeviceDescriptor:
    """A capture device as reported by the host platform."""
    id: str
    label: str
    kind: DeviceKind


# Maps a descriptor to a sort key; lower keys are preferred.
PreferenceRanker = Callable[[DeviceDescriptor], int]


def label_preference(substring: str) -> PreferenceRanker:
    """Rank devices whose label contains `substring` (case-insensitive) first."""
    needle = substring.strip().lower()

    def rank(device: DeviceDescriptor) -> int:
        if needle and needle in device.label.lower():
            return 0
        return 1

    return rank


def select_default(devices: Sequence[DeviceDescriptor],
                   ranker: Optional[PreferenceRanker] = None) -> Optional[DeviceDescriptor]:
    """Pick the best-ranked device, keeping enumeration order among ties."""
    if not devices:
        return None
    if ranker is None:
        return devices[0]
    return min(enumerate(devices), key=lambda item: (ranker(item[1]), item[0]))[1]


def _camera_label(index: int) -> str:
    name_path = f"/sys/class/video4linux/video{index}/name"
    try:
        with open(name_path, "r") as f:
            name = f.read().strip()
            if name:
                return name
    except OSError:
        pass
    return f"Camera {index}"


class PlatformDeviceEnumerator:
    """Lists capture devices through OpenCV and sounddevice."""

    def __init__(self, probe_count: int = 3, backend: str = "ANY"):
        self.probe_count = probe_count
        self.backend = backend

    def cameras(self) -> List[DeviceDescriptor]:
        """Probe camera indices and return the ones that open."""
        import cv2

        backend = getattr(cv2, f"CAP_{self.backend}", cv2.CAP_ANY)
        found = []
        for idx in range(self.probe_count):
            cap = cv2.VideoCapture(idx, backend)
            try:
                if cap.isOpened():
                    found.append(DeviceDescriptor(str(idx), _camera_label(idx), DeviceKind.CAMERA))
            finally:
                cap.release()
        return found

    def microphones(self) -> List[DeviceDescriptor]:
        """List audio devices that have input channels."""
        import sounddevice as sd

        found = []
        for idx, device in enumerate(sd.query_devices()):
            if device["max_input_channels"] > 0:
                found.append(DeviceDescriptor(str(idx), device["name"], DeviceKind.MICROPHONE))
        return found


class DeviceSelector:
    """Holds the enumerated devices and the current camera/microphone choice.

    Enumeration runs once per `refresh()`; hot-plugged devices are not
    picked up until the next explicit refresh.
    """

    def __init__(self, enumerator=None,
                 camera_ranker: Optional[PreferenceRanker] = None,
                 microphone_ranker: Optional[PreferenceRanker] = None):
        self.enumerator = enumerator or PlatformDeviceEnumerator()
        self._rankers: Dict[DeviceKind, Optional[PreferenceRanker]] = {
            DeviceKind.CAMERA: camera_ranker,
            DeviceKind.MICROPHONE: microphone_ranker,
        }
        self._devices: Dict[DeviceKind, List[DeviceDescriptor]] = {kind: [] for kind in DeviceKind}
        self._selected: Dict[DeviceKind, Optional[DeviceDescriptor]] = {kind: None for kind in DeviceKind}

    def refresh(self) -> None:
        """Enumerate devices and apply the default-selection heuristic."""
        listers = {
            DeviceKind.CAMERA: self.enumerator.cameras,
            DeviceKind.MICROPHONE: self.enumerator.microphones,
        }
        for kind, lister in listers.items():
            try:
                devices = list(lister())
            except Exception as e:
                logger.error(f"❌ {kind.value} enumeration failed: {e}", exc_info=True)
                devices = []
            self._devices[kind] = devices
            self._selected[kind] = select_default(devices, self._rankers[kind])
            chosen = self._selected[kind]
            if chosen is None:
                logger.info(f"⚠️  No {kind.value} found; capture will use any available device")
            else:
                logger.info(f"✓ Found {len(devices)} {kind.value}(s), using '{chosen.label}'")

    def devices(self, kind: DeviceKind) -> List[DeviceDescriptor]:
        return list(self._devices[kind])

    def selected(self, kind: DeviceKind) -> Optional[DeviceDescriptor]:
        return self._selected[kind]

    @property
    def camera(self) -> Optional[DeviceDescriptor]:
        return self._selected[DeviceKind.CAMERA]

    @property
    def microphone(self) -> Optional[DeviceDescriptor]:
        return self._selected[DeviceKind.MICROPHONE]

    def select(self, kind: DeviceKind, device_id: str) -> bool:
        """Select a device by id. Returns False if it was not enumerated."""
        for device in self._devices[kind]:
            if device.id == device_id:
                self._selected[kind] = device
                return True
        return False

    def cycle(self, kind: DeviceKind, step: int = 1) -> Optional[DeviceDescriptor]:
        """Move the selection forward or backward through the device list."""
        devices = self._devices[kind]
        if not devices:
            return None
        current = self._selected[kind]
        if current in devices:
            self._selected[kind] = devices[(devices.index(current) + step) % len(devices)]
        else:
            self._selected[kind] = devices[0] if step > 0 else devices[-1]
        return self._selected[kind]
