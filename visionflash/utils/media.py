"""
Media encoding helpers for requests to the recognition services.
"""

import io
import logging
import wave

from ..core.audio import AudioClip, to_int16

logger = logging.getLogger(__name__)


def encode_jpeg(frame, quality: int = 80) -> bytes:
    """Encode a BGR camera frame as JPEG bytes."""
    import cv2

    ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise ValueError("JPEG encoding failed")
    return buffer.tobytes()


def encode_wav(clip: AudioClip) -> bytes:
    """Encode a clip as 16-bit mono WAV bytes."""
    out = io.BytesIO()
    with wave.open(out, 'wb') as wave_file:
        wave_file.setnchannels(1)
        wave_file.setsampwidth(2)  # 16-bit
        wave_file.setframerate(clip.sample_rate)
        wave_file.writeframes(to_int16(clip.samples).tobytes())
    logger.debug(f"Encoded {clip.duration:.2f}s of audio as WAV")
    return out.getvalue()


def is_usable_frame(frame) -> bool:
    """True if `frame` is an image with non-zero width and height."""
    if frame is None:
        return False
    shape = getattr(frame, "shape", None)
    if not shape or len(shape) < 2:
        return False
    return shape[0] > 0 and shape[1] > 0
