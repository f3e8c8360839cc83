"""
Clients for the external recognition services and the request dispatcher.

The vision describer turns a still frame into a short description; the
speech transcriber turns an audio clip into text. Both calls block, so the
dispatcher runs them on the event loop's executor.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from .audio import AudioClip, VoskTranscriber
from .state import DetailLevel, OperatingMode
from ..utils.media import encode_jpeg, encode_wav

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """A recognition service failed or returned an unusable response."""


def _post_json(session: requests.Session, url: str, timeout: float, **kwargs) -> dict:
    try:
        response = session.post(url, timeout=timeout, **kwargs)
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as e:
        raise ServiceError(f"request to {url} failed: {e}") from e
    except ValueError as e:
        raise ServiceError(f"invalid JSON from {url}") from e
    if not isinstance(data, dict):
        raise ServiceError(f"unexpected response from {url}: {data!r}")
    if data.get("success") is False:
        raise ServiceError(f"{url} reported failure: {data.get('error', 'unknown error')}")
    return data


class HttpVisionDescriber:
    """Describes an image by posting it to a vision endpoint."""

    def __init__(self, endpoint: str, timeout: float = 20.0,
                 session: Optional[requests.Session] = None):
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()

    def describe(self, image: bytes, detail: DetailLevel) -> str:
        data = _post_json(
            self.session,
            self.endpoint,
            self.timeout,
            files={"image": ("frame.jpg", image, "image/jpeg")},
            data={"detailLevel": detail.value},
        )
        return str(data.get("description") or "").strip()


class HttpSpeechTranscriber:
    """Transcribes an audio clip by posting WAV audio to a speech endpoint."""

    def __init__(self, endpoint: str, timeout: float = 20.0,
                 session: Optional[requests.Session] = None):
        self.endpoint = endpoint
        self.timeout = timeout
        self.session = session or requests.Session()

    def transcribe(self, clip: AudioClip) -> str:
        if not clip:
            return ""
        data = _post_json(
            self.session,
            self.endpoint,
            self.timeout,
            files={"audio": ("clip.wav", encode_wav(clip), "audio/wav")},
        )
        return str(data.get("transcript") or "").strip()


def build_transcriber(cfg):
    """Create the speech transcriber selected by `cfg.TRANSCRIBER`."""
    if cfg.TRANSCRIBER == "vosk":
        return VoskTranscriber(cfg.get_model_path(), cfg.VOSK_SAMPLERATE)
    return HttpSpeechTranscriber(cfg.TRANSCRIBE_ENDPOINT, cfg.REQUEST_TIMEOUT)


@dataclass(eq=False)
class AnalysisRequest:
    """One unit of work for the recognition services."""
    mode: OperatingMode
    detail: DetailLevel = DetailLevel.LOW
    frame: Any = None
    audio: Optional[AudioClip] = None


@dataclass
class AnalysisResult:
    description: str = ""
    transcript: str = ""

    def text_for(self, mode: OperatingMode) -> str:
        """The text that should be flashed in `mode`."""
        if mode is OperatingMode.AUDIO:
            return self.transcript
        return self.description


class ServiceDispatcher:
    """Sends capture requests to the describer and transcriber."""

    def __init__(self, describer, transcriber, jpeg_quality: int = 80):
        self.describer = describer
        self.transcriber = transcriber
        self.jpeg_quality = jpeg_quality

    def _describe_frame(self, frame, detail: DetailLevel) -> str:
        return self.describer.describe(encode_jpeg(frame, self.jpeg_quality), detail)

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """Run the services the request carries media for.

        Errors propagate, except a failed transcription of the audio that
        rides along with a vision frame: the description is still returned.
        """
        loop = asyncio.get_running_loop()
        result = AnalysisResult()
        if request.frame is not None:
            result.description = await loop.run_in_executor(
                None, self._describe_frame, request.frame, request.detail
            )
        if request.audio:
            try:
                result.transcript = await loop.run_in_executor(
                    None, self.transcriber.transcribe, request.audio
                )
            except Exception as e:
                if request.mode is not OperatingMode.VISION:
                    raise
                logger.warning(f"⚠️  Ambient audio transcription failed: {e}")
        logger.debug(f"Analysis result: {result}")
        return result
