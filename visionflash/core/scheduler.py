"""
Capture scheduling: sample the environment, ask the recognition services
about it and hand the resulting text to the flash player.

Runs entirely on one asyncio event loop. At most one service request is
outstanding per scheduler, and no cycle starts while a pattern is playing.
"""

import asyncio
import logging
from typing import Callable, Optional, Set

from .morse import morse_to_pattern, text_to_morse
from .services import AnalysisRequest
from .state import OperatingMode, SchedulerState, UserSettings
from ..utils.media import is_usable_frame

logger = logging.getLogger(__name__)


class CaptureScheduler:
    """Periodic vision sampler and push-to-talk audio dispatcher."""

    def __init__(self, session, dispatcher, player, settings: Optional[UserSettings] = None,
                 period: float = 0.25, on_text: Optional[Callable[[str, str], None]] = None):
        self.session = session
        self.dispatcher = dispatcher
        self.player = player
        self.settings = settings or UserSettings()
        self.period = period
        self.on_text = on_text

        self.state = SchedulerState(suspended=player.busy)
        self.mode = OperatingMode.VISION
        self.last_text = ""
        self.last_morse = ""
        # Heard alongside the last vision frame; shown, never flashed.
        self.last_transcript = ""

        # Bumped whenever the schedule starts or stops; results from an
        # older epoch are not flashed.
        self._epoch = 0
        self._tick_task: Optional[asyncio.Task] = None
        self._cycles: Set[asyncio.Task] = set()
        self._reads: Set[asyncio.Future] = set()

        player.add_busy_listener(self._on_player_busy)

    def _on_player_busy(self, busy: bool) -> None:
        self.state.suspended = busy

    @property
    def in_flight(self) -> bool:
        return self.state.in_flight

    @property
    def suspended(self) -> bool:
        return self.state.suspended

    @property
    def is_ticking(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    def start(self, mode: OperatingMode) -> None:
        """Begin scheduling for `mode`. Vision ticks; audio waits for recording."""
        self.mode = mode
        self._epoch += 1
        if mode is OperatingMode.VISION and not self.is_ticking:
            self._tick_task = asyncio.create_task(self._tick_loop())
        logger.info(f"⏱️  Scheduler started in {mode.value} mode")

    async def stop(self) -> None:
        """Stop the schedule. Dispatched calls and playback run to completion.

        Returns once no frame read is running on the executor, so the camera
        can be closed afterwards.
        """
        self._epoch += 1
        task, self._tick_task = self._tick_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info("⏱️  Scheduler stopped")
        if self._reads:
            await asyncio.wait(list(self._reads))

    def reset(self) -> None:
        """Clear the gate and suspension flags.

        Suspension follows the player, so it stays set while a pattern is
        still playing.
        """
        self._epoch += 1
        self.state.clear()
        self.state.suspended = self.player.busy
        self.last_text = ""
        self.last_morse = ""
        self.last_transcript = ""

    async def join(self) -> None:
        """Wait for every outstanding capture cycle to finish."""
        if self._cycles:
            await asyncio.gather(*list(self._cycles), return_exceptions=True)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._cycles.add(task)
        task.add_done_callback(self._cycles.discard)
        return task

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.period)
            # Each tick is its own task so ticks keep firing (and are
            # gated) while a request is outstanding.
            self._spawn(self.tick())

    async def _read_frame(self):
        camera = self.session.camera
        if camera is None:
            return None
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, camera.read_frame)
        self._reads.add(future)
        future.add_done_callback(self._reads.discard)
        return await future

    async def tick(self) -> bool:
        """Run one vision capture cycle. Returns True if a request was dispatched."""
        token = self.state.try_acquire()
        if token is None:
            logger.debug("Tick skipped (in flight or flashing)")
            return False

        epoch = self._epoch
        try:
            frame = await self._read_frame()
        except Exception as e:
            logger.debug(f"Frame capture failed: {e}")
            frame = None
        if epoch != self._epoch:
            logger.debug("Tick abandoned (schedule stopped during capture)")
            self.state.release(token)
            return False
        if not is_usable_frame(frame):
            logger.debug("Tick skipped (no frame)")
            self.state.release(token)
            return False

        recorder = self.session.recorder
        audio = recorder.drain() if recorder is not None and recorder.is_active else None
        request = AnalysisRequest(
            mode=OperatingMode.VISION,
            detail=self.settings.detail,
            frame=frame,
            audio=audio,
        )
        return await self._dispatch(token, epoch, request)

    def capture_now(self) -> asyncio.Task:
        """Schedule a one-shot vision capture through the same gate as the tick."""
        return self._spawn(self.tick())

    def start_recording(self) -> bool:
        recorder = self.session.recorder
        if recorder is None:
            logger.warning("⚠️  No microphone available; cannot record")
            return False
        if recorder.is_active:
            return True
        return recorder.start()

    async def stop_recording(self) -> bool:
        """Stop recording and send the clip for transcription."""
        recorder = self.session.recorder
        if recorder is None or not recorder.is_active:
            return False
        clip = recorder.stop()
        if not clip:
            logger.info("🎙️  Recording was empty; nothing to transcribe")
            return False

        token = self.state.try_acquire()
        if token is None:
            logger.info("⚠️  Busy; dropping recording")
            return False
        request = AnalysisRequest(mode=OperatingMode.AUDIO, detail=self.settings.detail, audio=clip)
        return await self._dispatch(token, self._epoch, request)

    def discard_recording(self) -> None:
        """Stop an active recording without transcribing it."""
        recorder = self.session.recorder
        if recorder is not None and recorder.is_active:
            recorder.discard()
            logger.info("🎙️  Recording discarded")

    def toggle_recording(self) -> None:
        """Start recording, or stop and schedule transcription of the clip."""
        recorder = self.session.recorder
        if recorder is not None and recorder.is_active:
            self._spawn(self.stop_recording())
        else:
            self.start_recording()

    async def _dispatch(self, token: object, epoch: int, request: AnalysisRequest) -> bool:
        try:
            try:
                result = await self.dispatcher.analyze(request)
            except Exception as e:
                logger.error(f"❌ {request.mode.value} analysis failed: {e}", exc_info=True)
                return True

            recorder = self.session.recorder
            if request.mode is OperatingMode.VISION and recorder is not None and recorder.is_active:
                recorder.drain()

            if epoch != self._epoch:
                logger.debug("Dropping result from a stopped schedule")
                return True

            if request.mode is OperatingMode.VISION and result.transcript:
                self.last_transcript = result.transcript
                logger.info(f"👂 Heard: {result.transcript!r}")

            text = result.text_for(request.mode)
            if text:
                self._flash(text)
            return True
        finally:
            self.state.release(token)

    def _flash(self, text: str) -> None:
        morse = text_to_morse(text)
        self.last_text = text
        self.last_morse = morse
        logger.info(f"💡 {text!r} → {morse}")
        if self.on_text is not None:
            self.on_text(text, morse)
        if morse:
            self.player.offer(morse_to_pattern(morse, self.settings.unit_duration_ms))
