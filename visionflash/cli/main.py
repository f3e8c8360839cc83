"""
Main entry point for VisionFlash.
"""

import argparse
import asyncio
import logging
import sys
from typing import List

from visionflash.core.audio import AudioRecorder
from visionflash.core.camera import CameraSource
from visionflash.core.controller import ModeController
from visionflash.core.devices import DeviceSelector, PlatformDeviceEnumerator, label_preference
from visionflash.core.display import FlashWindow
from visionflash.core.flash import FlashPlayer
from visionflash.core.scheduler import CaptureScheduler
from visionflash.core.services import HttpVisionDescriber, ServiceDispatcher, build_transcriber
from visionflash.core.session import CaptureSession
from visionflash.core.state import AppPhase, UserSettings
from visionflash.utils.config import config
from visionflash.utils.input_router import InputAction, KeyRouter, scroll_notches

logger = logging.getLogger(__name__)

UI_INTERVAL = 0.02


def build_controller(cfg, output) -> ModeController:
    """Wire the pipeline components together around a flash output."""
    settings = UserSettings(unit_duration_ms=cfg.UNIT_DURATION_MS)
    player = FlashPlayer(output)
    session = CaptureSession(
        camera_factory=lambda index: CameraSource(index, cfg.CAMERA_BACKEND, cfg.CAMERA_PROBE_COUNT),
        recorder_factory=lambda index: AudioRecorder(index, cfg.MIC_SAMPLERATE, cfg.BLOCKSIZE),
        vision_audio=cfg.VISION_AUDIO,
    )
    dispatcher = ServiceDispatcher(
        HttpVisionDescriber(cfg.VISION_ENDPOINT, cfg.REQUEST_TIMEOUT),
        build_transcriber(cfg),
        cfg.JPEG_QUALITY,
    )
    scheduler = CaptureScheduler(session, dispatcher, player, settings, cfg.get_tick_period())
    devices = DeviceSelector(
        PlatformDeviceEnumerator(cfg.CAMERA_PROBE_COUNT, cfg.CAMERA_BACKEND),
        camera_ranker=label_preference(cfg.PREFERRED_CAMERA),
        microphone_ranker=label_preference(cfg.PREFERRED_MICROPHONE),
    )
    return ModeController(
        scheduler, player, devices, session, settings,
        countdown_seconds=cfg.SETUP_COUNTDOWN_SECONDS,
        scroll_step_ms=cfg.SCROLL_STEP_MS,
    )


def status_lines(controller: ModeController) -> List[str]:
    """Text shown on the setup screen and in the diagnostics overlay."""
    lines = []
    if controller.phase is AppPhase.SETUP:
        camera = controller.devices.camera
        microphone = controller.devices.microphone
        lines.append("SETUP - press Enter or Space to start")
        lines.append(f"Camera (up/down): {camera.label if camera else 'any available'}")
        lines.append(f"Microphone (left/right): {microphone.label if microphone else 'any available'}")
        if controller.countdown_active:
            lines.append("Starting automatically...")
    if controller.diagnostics_visible:
        scheduler = controller.scheduler
        lines.append(
            f"{controller.phase.name} {controller.mode.name} detail={controller.detail.name} "
            f"unit={controller.unit_duration_ms}ms"
        )
        lines.append(
            f"in_flight={scheduler.in_flight} suspended={scheduler.suspended} "
            f"recording={controller.is_recording}"
        )
        if scheduler.last_text:
            lines.append(f"text: {scheduler.last_text}")
            lines.append(f"morse: {scheduler.last_morse}")
        if scheduler.last_transcript:
            lines.append(f"heard: {scheduler.last_transcript}")
    return lines


async def run(cfg, fullscreen: bool = True) -> None:
    """Run the VisionFlash UI loop until the user quits."""
    window = FlashWindow(fullscreen=fullscreen)
    window.open()
    controller = build_controller(cfg, window)
    router = KeyRouter()

    await controller.begin_setup()
    logger.info("✅ VisionFlash started. Press 'q' to quit.")
    try:
        while True:
            action = router.route(window.poll_key(1))
            if action is InputAction.QUIT:
                break
            if action is not None:
                await controller.handle(action)

            notches = scroll_notches(window.take_scroll())
            if notches:
                controller.adjust_unit(notches)

            lines = status_lines(controller)
            if lines != window.overlay_lines:
                window.overlay_lines = lines
                window.render()

            await asyncio.sleep(UI_INTERVAL)
    finally:
        await controller.shutdown()
        window.close()
        logger.info("✅ VisionFlash stopped.")


def main():
    """Main entry point for the VisionFlash application."""
    parser = argparse.ArgumentParser(description="Flash camera and microphone descriptions as Morse light")
    parser.add_argument("--windowed", action="store_true", help="Do not switch the flash window to fullscreen")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Logging level (default: %(default)s)")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    logger.info("🚀 Starting VisionFlash...")
    try:
        asyncio.run(run(config, fullscreen=not args.windowed))
    except KeyboardInterrupt:
        logger.info("👋 Shutting down...")
    except Exception as e:
        logger.error(f"❌ Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
