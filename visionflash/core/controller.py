"""
Top-level state machine for VisionFlash.

SETUP lets the user pick capture devices and ends on confirmation or when
the countdown runs out. READY runs the capture scheduler in either VISION
or AUDIO mode and routes user input to it.
"""

import asyncio
import logging
from typing import Optional

from .devices import DeviceKind
from .morse import FlashPattern
from .state import AppPhase, DetailLevel, OperatingMode, UserSettings
from ..utils.input_router import InputAction

logger = logging.getLogger(__name__)

TEST_PATTERN = (1, 0, 1, 0, 1)


class ModeController:
    """Owns the app phase, operating mode and component lifecycles."""

    def __init__(self, scheduler, player, devices, session, settings: UserSettings,
                 countdown_seconds: float = 10.0, scroll_step_ms: int = 10):
        self.scheduler = scheduler
        self.player = player
        self.devices = devices
        self.session = session
        self.settings = settings
        self.countdown_seconds = countdown_seconds
        self.scroll_step_ms = scroll_step_ms

        self.phase = AppPhase.SETUP
        self.mode = OperatingMode.VISION
        self.diagnostics_visible = False
        self._countdown_task: Optional[asyncio.Task] = None
        self._devices_enumerated = False

    @property
    def detail(self) -> DetailLevel:
        return self.settings.detail

    @property
    def unit_duration_ms(self) -> int:
        return self.settings.unit_duration_ms

    @property
    def is_recording(self) -> bool:
        return self.session.is_recording

    @property
    def countdown_active(self) -> bool:
        return self._countdown_task is not None and not self._countdown_task.done()

    # Setup phase

    async def begin_setup(self) -> None:
        """Enter SETUP: enumerate devices once and start the auto-confirm countdown."""
        self.phase = AppPhase.SETUP
        if not self._devices_enumerated:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self.devices.refresh)
            self._devices_enumerated = True
        self._start_countdown()
        logger.info(f"🛠️  Setup: confirming automatically in {self.countdown_seconds:g}s")

    def _start_countdown(self) -> None:
        self._cancel_countdown()
        self._countdown_task = asyncio.create_task(self._countdown())

    def _cancel_countdown(self) -> None:
        task, self._countdown_task = self._countdown_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _countdown(self) -> None:
        await asyncio.sleep(self.countdown_seconds)
        logger.info("⏰ Setup countdown expired")
        self._countdown_task = None
        await self.confirm()

    def cycle_device(self, kind: DeviceKind, step: int = 1) -> None:
        """User changed a device selection; this cancels the countdown."""
        if self.phase is not AppPhase.SETUP:
            return
        if self.countdown_active:
            logger.info("🛠️  Countdown cancelled by device selection")
        self._cancel_countdown()
        device = self.devices.cycle(kind, step)
        if device is not None:
            logger.info(f"🛠️  Selected {kind.value}: {device.label}")

    async def confirm(self) -> None:
        """SETUP → READY: open the capture session and start scheduling."""
        if self.phase is AppPhase.READY:
            return
        self._cancel_countdown()
        self.phase = AppPhase.READY
        self._open_mode(self.mode)
        logger.info(f"✅ Ready ({self.mode.value} mode)")

    # Ready phase

    def _open_mode(self, mode: OperatingMode) -> None:
        self.session.open(mode, self.devices.camera, self.devices.microphone)
        self.scheduler.start(mode)

    async def toggle_mode(self) -> None:
        """Switch VISION ⇄ AUDIO. An active recording is discarded, not sent."""
        if self.phase is not AppPhase.READY:
            return
        await self.scheduler.stop()
        self.scheduler.discard_recording()
        self.session.close()
        self.mode = self.mode.toggled()
        self._open_mode(self.mode)
        logger.info(f"🔀 Switched to {self.mode.value} mode")

    def cycle_detail(self, step: int = 1) -> None:
        """Cycle LOW → MEDIUM → HIGH (wrapping). Only meaningful in VISION."""
        if self.phase is not AppPhase.READY or self.mode is not OperatingMode.VISION:
            return
        detail = self.settings.detail
        self.settings.detail = detail.next() if step > 0 else detail.previous()
        logger.info(f"🔎 Detail level: {self.settings.detail.name}")

    def adjust_unit(self, notches: int) -> int:
        """Change the unit duration by whole scroll notches (clamped)."""
        self.settings.unit_duration_ms = self.settings.unit_duration_ms + notches * self.scroll_step_ms
        logger.debug(f"Unit duration: {self.settings.unit_duration_ms}ms")
        return self.settings.unit_duration_ms

    def toggle_diagnostics(self) -> None:
        self.diagnostics_visible = not self.diagnostics_visible

    async def activate(self) -> None:
        """Capture now in VISION, start/stop recording in AUDIO."""
        if self.phase is AppPhase.SETUP:
            await self.confirm()
        elif self.mode is OperatingMode.VISION:
            self.scheduler.capture_now()
        else:
            self.scheduler.toggle_recording()

    def test_flash(self) -> bool:
        """Play a short fixed pattern to check the output."""
        pattern = FlashPattern.from_ints(TEST_PATTERN, self.settings.unit_duration_ms)
        return self.player.offer(pattern)

    async def reset(self) -> None:
        """READY → SETUP: stop capture, clear flags and restore defaults."""
        self._cancel_countdown()
        await self.scheduler.stop()
        self.scheduler.discard_recording()
        self.session.close()
        self.scheduler.reset()
        self.mode = OperatingMode.VISION
        self.settings.detail = DetailLevel.LOW
        logger.info("↩️  Reset to setup")
        await self.begin_setup()

    async def shutdown(self) -> None:
        self._cancel_countdown()
        await self.scheduler.stop()
        self.scheduler.discard_recording()
        self.session.close()
        await self.scheduler.join()
        await self.player.wait_idle()

    # Input routing

    async def handle(self, action: InputAction) -> None:
        """Route one input action according to the current phase."""
        if action is InputAction.DIAGNOSTICS:
            self.toggle_diagnostics()
        elif action is InputAction.TEST_FLASH:
            self.test_flash()
        elif action is InputAction.RESET:
            await self.reset()
        elif self.phase is AppPhase.SETUP:
            await self._handle_setup(action)
        else:
            await self._handle_ready(action)

    async def _handle_setup(self, action: InputAction) -> None:
        if action is InputAction.UP:
            self.cycle_device(DeviceKind.CAMERA, -1)
        elif action is InputAction.DOWN:
            self.cycle_device(DeviceKind.CAMERA, 1)
        elif action is InputAction.LEFT:
            self.cycle_device(DeviceKind.MICROPHONE, -1)
        elif action is InputAction.RIGHT:
            self.cycle_device(DeviceKind.MICROPHONE, 1)
        elif action in (InputAction.CONFIRM, InputAction.ACTIVATE):
            await self.confirm()

    async def _handle_ready(self, action: InputAction) -> None:
        if action in (InputAction.LEFT, InputAction.RIGHT, InputAction.MODE_TOGGLE):
            await self.toggle_mode()
        elif action is InputAction.UP:
            self.cycle_detail(1)
        elif action is InputAction.DOWN:
            self.cycle_detail(-1)
        elif action is InputAction.ACTIVATE:
            await self.activate()
