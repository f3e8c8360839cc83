"""
Microphone recording and offline speech recognition for VisionFlash.
"""

import json
import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from scipy import signal

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class AudioClip:
    """Mono float32 samples in [-1, 1] at a fixed sample rate."""
    samples: np.ndarray
    sample_rate: int

    @property
    def duration(self) -> float:
        return len(self.samples) / float(self.sample_rate) if self.sample_rate else 0.0

    def __bool__(self) -> bool:
        return len(self.samples) > 0


def to_int16(samples: np.ndarray) -> np.ndarray:
    """Scale float samples to the int16 range."""
    scaled = np.clip(samples * 32767, -32768, 32767)
    return np.int16(scaled)


def resample(clip: AudioClip, target_rate: int) -> np.ndarray:
    """Resample a clip to `target_rate` Hz."""
    if clip.sample_rate == target_rate:
        return clip.samples
    num_output_samples = int(len(clip.samples) * target_rate / clip.sample_rate)
    return signal.resample(clip.samples, num_output_samples)


class AudioRecorder:
    """Buffers microphone audio in memory between start and stop."""

    def __init__(self, device_id: Optional[int] = None, sample_rate: int = 44100,
                 blocksize: int = 1024):
        self.device_id = device_id
        self.sample_rate = sample_rate
        self.blocksize = blocksize
        self.stream = None
        self.is_active = False
        self._chunks: List[np.ndarray] = []
        # The stream callback runs on the PortAudio thread.
        self._lock = threading.Lock()

    def _callback(self, indata, frames, time_info, status):
        """Audio stream callback."""
        if status:
            logger.debug(f"AudioRecorder status: {status}")
        with self._lock:
            self._chunks.append(indata[:, 0].copy())

    def start(self) -> bool:
        """Open the microphone stream and begin buffering."""
        if self.is_active:
            return True

        with self._lock:
            self._chunks = []
        try:
            import sounddevice as sd

            self.stream = sd.InputStream(
                samplerate=self.sample_rate,
                blocksize=self.blocksize,
                dtype='float32',
                channels=1,
                device=self.device_id,
                callback=self._callback,
            )
            self.stream.start()
            self.is_active = True
            logger.info("🎙️  Mic recording started")
            return True
        except Exception as e:
            logger.error(f"❌ Failed to start mic recording: {e}", exc_info=True)
            self._close_stream()
            return False

    def drain(self) -> AudioClip:
        """Take everything buffered so far without stopping the stream."""
        with self._lock:
            chunks, self._chunks = self._chunks, []
        return self._join(chunks)

    def stop(self) -> AudioClip:
        """Stop recording and return the buffered audio as one clip."""
        if self.is_active:
            self._close_stream()
            logger.info("🎙️  Mic recording stopped")
        return self.drain()

    def discard(self) -> None:
        """Stop recording and drop whatever was buffered."""
        self.stop()

    def _join(self, chunks: List[np.ndarray]) -> AudioClip:
        if not chunks:
            return AudioClip(np.zeros(0, dtype=np.float32), self.sample_rate)
        return AudioClip(np.concatenate(chunks).astype(np.float32), self.sample_rate)

    def _close_stream(self) -> None:
        try:
            if self.stream is not None:
                self.stream.stop()
                self.stream.close()
        except Exception as e:
            logger.debug(f"Ignoring error while closing mic stream: {e}")
        finally:
            self.stream = None
            self.is_active = False


class VoskTranscriber:
    """Offline speech-to-text using a local Vosk model."""

    def __init__(self, model_path: str, sample_rate: int = 16000):
        self.model_path = model_path
        self.sample_rate = sample_rate
        self.model = None
        self._model_lock = threading.Lock()

    def _load_model(self):
        with self._model_lock:
            if self.model is None:
                import vosk

                logger.info(f"📂 Loading Vosk model from {self.model_path}...")
                self.model = vosk.Model(self.model_path)
                logger.info("✓ Model loaded")
            return self.model

    def transcribe(self, clip: AudioClip) -> str:
        """Return the text spoken in `clip` (empty if nothing was recognized)."""
        if not clip:
            return ""
        import vosk

        recognizer = vosk.KaldiRecognizer(self._load_model(), self.sample_rate)
        pcm = to_int16(resample(clip, self.sample_rate))
        recognizer.AcceptWaveform(pcm.tobytes())
        result = json.loads(recognizer.FinalResult())
        text = result.get("text", "")
        if text:
            logger.info(f"🗣️  Recognized: {text}")
        return text
