"""
Tests for the mode controller state machine.
"""

import asyncio
import unittest
from pathlib import Path
import sys

# Add the parent directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from fakes import (
    FakeCamera, FakeEnumerator, FakeRecorder, GatedDispatcher, SlowCamera, camera, microphone, no_sleep, wait_for,
)
from visionflash.core.controller import ModeController
from visionflash.core.devices import DeviceSelector, label_preference
from visionflash.core.flash import FlashPlayer, RecordingFlashOutput
from visionflash.core.scheduler import CaptureScheduler
from visionflash.core.session import CaptureSession
from visionflash.core.state import AppPhase, DetailLevel, OperatingMode, UserSettings
from visionflash.utils.input_router import InputAction


class ControllerTestCase(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.cameras = []
        self.recorders = []
        self.camera_type = FakeCamera

        def make_camera(index):
            self.cameras.append(self.camera_type())
            return self.cameras[-1]

        def make_recorder(index):
            self.recorders.append(FakeRecorder())
            return self.recorders[-1]

        self.enumerator = FakeEnumerator(
            cameras=[camera(0, "Integrated Webcam"), camera(1, "USB Camera")],
            microphones=[microphone(0, "Built-in"), microphone(3, "USB Headset")],
        )
        self.devices = DeviceSelector(
            self.enumerator,
            camera_ranker=label_preference("usb"),
            microphone_ranker=label_preference("headset"),
        )
        self.output = RecordingFlashOutput()
        self.player = FlashPlayer(self.output, sleep=no_sleep)
        self.settings = UserSettings(unit_duration_ms=200)
        self.session = CaptureSession(make_camera, make_recorder)
        self.dispatcher = GatedDispatcher()
        self.scheduler = CaptureScheduler(self.session, self.dispatcher, self.player, self.settings, period=10.0)
        self.controller = ModeController(
            self.scheduler, self.player, self.devices, self.session, self.settings,
            countdown_seconds=10.0,
        )

    async def asyncTearDown(self):
        await self.controller.shutdown()

    async def ready(self, mode=OperatingMode.VISION):
        await self.controller.begin_setup()
        await self.controller.confirm()
        if mode is not self.controller.mode:
            await self.controller.toggle_mode()


class TestSetupPhase(ControllerTestCase):
    """Test SETUP → READY transitions."""

    async def test_setup_selects_preferred_devices(self):
        await self.controller.begin_setup()

        self.assertIs(self.controller.phase, AppPhase.SETUP)
        self.assertEqual(self.devices.camera.label, "USB Camera")
        self.assertEqual(self.devices.microphone.label, "USB Headset")
        self.assertTrue(self.controller.countdown_active)

    async def test_confirm_starts_vision(self):
        await self.controller.begin_setup()
        await self.controller.handle(InputAction.CONFIRM)

        self.assertIs(self.controller.phase, AppPhase.READY)
        self.assertIs(self.controller.mode, OperatingMode.VISION)
        self.assertIs(self.session.mode, OperatingMode.VISION)
        self.assertTrue(self.scheduler.is_ticking)
        self.assertFalse(self.controller.countdown_active)

    async def test_countdown_confirms_automatically(self):
        self.controller.countdown_seconds = 0.01
        await self.controller.begin_setup()

        await wait_for(lambda: self.controller.phase is AppPhase.READY)
        self.assertTrue(self.scheduler.is_ticking)

    async def test_device_selection_cancels_countdown(self):
        self.controller.countdown_seconds = 0.05
        await self.controller.begin_setup()

        await self.controller.handle(InputAction.DOWN)
        await asyncio.sleep(0.1)

        self.assertIs(self.controller.phase, AppPhase.SETUP)
        self.assertEqual(self.devices.camera.label, "Integrated Webcam")

    async def test_devices_enumerated_once(self):
        await self.controller.begin_setup()
        await self.controller.confirm()
        await self.controller.reset()

        self.assertEqual(self.enumerator.calls, 1)


class TestReadyPhase(ControllerTestCase):
    """Test mode switching and input routing while READY."""

    async def test_left_right_toggle_mode(self):
        await self.ready()

        await self.controller.handle(InputAction.RIGHT)
        self.assertIs(self.controller.mode, OperatingMode.AUDIO)
        self.assertIs(self.session.mode, OperatingMode.AUDIO)
        self.assertIsNone(self.session.camera)
        self.assertFalse(self.scheduler.is_ticking)

        await self.controller.handle(InputAction.LEFT)
        self.assertIs(self.controller.mode, OperatingMode.VISION)
        self.assertTrue(self.scheduler.is_ticking)

    async def test_detail_cycles_and_wraps(self):
        await self.ready()

        seen = []
        for _ in range(3):
            await self.controller.handle(InputAction.UP)
            seen.append(self.controller.detail)

        self.assertEqual(seen, [DetailLevel.MEDIUM, DetailLevel.HIGH, DetailLevel.LOW])

    async def test_detail_ignored_in_audio(self):
        await self.ready(OperatingMode.AUDIO)

        await self.controller.handle(InputAction.UP)
        self.assertIs(self.controller.detail, DetailLevel.LOW)

    async def test_space_captures_in_vision(self):
        await self.ready()
        self.settings.detail = DetailLevel.MEDIUM

        await self.controller.handle(InputAction.ACTIVATE)
        await self.scheduler.join()

        self.assertEqual(len(self.dispatcher.requests), 1)
        self.assertIs(self.dispatcher.requests[0].detail, DetailLevel.MEDIUM)

    async def test_space_toggles_recording_in_audio(self):
        await self.ready(OperatingMode.AUDIO)

        await self.controller.handle(InputAction.ACTIVATE)
        self.assertTrue(self.controller.is_recording)

        await self.controller.handle(InputAction.ACTIVATE)
        await self.scheduler.join()
        self.assertFalse(self.controller.is_recording)
        self.assertIs(self.dispatcher.requests[0].mode, OperatingMode.AUDIO)

    async def test_leaving_audio_mid_recording_discards(self):
        """Switching to VISION stops the recorder without transcribing."""
        await self.ready(OperatingMode.AUDIO)
        await self.controller.handle(InputAction.ACTIVATE)
        recorder = self.session.recorder

        await self.controller.handle(InputAction.LEFT)
        await self.scheduler.join()

        self.assertFalse(recorder.is_active)
        self.assertEqual(recorder.discards, 1)
        self.assertEqual(self.dispatcher.requests, [])
        self.assertIs(self.controller.mode, OperatingMode.VISION)

    async def test_mode_switch_waits_for_frame_read(self):
        """Leaving VISION does not release the camera under a running read."""
        self.camera_type = SlowCamera
        await self.ready()
        camera = self.session.camera

        await self.controller.handle(InputAction.ACTIVATE)
        await wait_for(lambda: camera.reading)
        await self.controller.handle(InputAction.MODE_TOGGLE)
        await self.scheduler.join()

        self.assertFalse(camera.closed_during_read)
        self.assertFalse(camera.is_open)
        self.assertIs(self.controller.mode, OperatingMode.AUDIO)
        self.assertEqual(self.dispatcher.requests, [])

    async def test_reset_while_recording(self):
        """Reset discards the recording and restores defaults."""
        await self.ready()
        await self.controller.handle(InputAction.UP)
        await self.controller.toggle_mode()
        await self.controller.handle(InputAction.ACTIVATE)
        recorder = self.session.recorder

        await self.controller.handle(InputAction.RESET)
        await self.scheduler.join()

        self.assertIs(self.controller.phase, AppPhase.SETUP)
        self.assertIs(self.controller.mode, OperatingMode.VISION)
        self.assertIs(self.controller.detail, DetailLevel.LOW)
        self.assertFalse(recorder.is_active)
        self.assertEqual(self.dispatcher.requests, [])
        self.assertFalse(self.scheduler.in_flight)
        self.assertFalse(self.scheduler.suspended)
        self.assertFalse(self.session.is_open)
        self.assertFalse(self.scheduler.is_ticking)

    async def test_scroll_clamps_unit_duration(self):
        for notches in [3, 100, -7, -500, 42]:
            value = self.controller.adjust_unit(notches)
            self.assertGreaterEqual(value, 50)
            self.assertLessEqual(value, 500)

        self.assertEqual(self.controller.adjust_unit(-1000), 50)
        self.assertEqual(self.controller.adjust_unit(1), 60)

    async def test_diagnostics_toggle_any_phase(self):
        await self.controller.handle(InputAction.DIAGNOSTICS)
        self.assertTrue(self.controller.diagnostics_visible)
        await self.ready()
        await self.controller.handle(InputAction.DIAGNOSTICS)
        self.assertFalse(self.controller.diagnostics_visible)

    async def test_test_flash(self):
        self.assertTrue(self.controller.test_flash())
        self.assertFalse(self.controller.test_flash())
        await self.player.wait_idle()

        self.assertEqual(len(self.output.commands), 5)


if __name__ == "__main__":
    unittest.main()
