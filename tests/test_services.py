"""
Tests for the recognition service clients and request dispatch.
"""

import unittest
from pathlib import Path
import sys
from unittest.mock import MagicMock, patch

import numpy as np
import requests

# Add the parent directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from visionflash.core.audio import AudioClip, VoskTranscriber, resample
from visionflash.core.services import (
    AnalysisRequest,
    AnalysisResult,
    HttpSpeechTranscriber,
    HttpVisionDescriber,
    ServiceDispatcher,
    ServiceError,
    build_transcriber,
)
from visionflash.core.state import DetailLevel, OperatingMode
from visionflash.utils.config import Config
from visionflash.utils.media import encode_wav, is_usable_frame


def mock_session(payload=None, error=None):
    session = MagicMock()
    response = session.post.return_value
    if error is not None:
        response.raise_for_status.side_effect = error
    response.json.return_value = payload
    return session


class TestHttpVisionDescriber(unittest.TestCase):
    """Test the vision describer client."""

    def test_describe(self):
        session = mock_session({"success": True, "description": "  A cat on a sofa "})
        describer = HttpVisionDescriber("http://svc/describe", timeout=5, session=session)

        text = describer.describe(b"jpeg", DetailLevel.MEDIUM)

        self.assertEqual(text, "A cat on a sofa")
        args, kwargs = session.post.call_args
        self.assertEqual(args[0], "http://svc/describe")
        self.assertEqual(kwargs["data"], {"detailLevel": "detailed"})
        self.assertEqual(kwargs["timeout"], 5)
        self.assertIn("image", kwargs["files"])

    def test_http_error(self):
        session = mock_session(error=requests.HTTPError("500 Server Error"))
        describer = HttpVisionDescriber("http://svc/describe", session=session)

        with self.assertRaises(ServiceError):
            describer.describe(b"jpeg", DetailLevel.LOW)

    def test_reported_failure(self):
        session = mock_session({"success": False, "error": "Internal Server Error"})
        describer = HttpVisionDescriber("http://svc/describe", session=session)

        with self.assertRaises(ServiceError):
            describer.describe(b"jpeg", DetailLevel.LOW)

    def test_connection_error(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")
        describer = HttpVisionDescriber("http://svc/describe", session=session)

        with self.assertRaises(ServiceError):
            describer.describe(b"jpeg", DetailLevel.LOW)


class TestHttpSpeechTranscriber(unittest.TestCase):
    """Test the speech transcriber client."""

    def test_transcribe(self):
        session = mock_session({"transcript": "hello there"})
        transcriber = HttpSpeechTranscriber("http://svc/transcribe", session=session)
        clip = AudioClip(np.zeros(1600, dtype=np.float32), 16000)

        self.assertEqual(transcriber.transcribe(clip), "hello there")
        name, body, content_type = session.post.call_args[1]["files"]["audio"]
        self.assertEqual(content_type, "audio/wav")
        self.assertTrue(body.startswith(b"RIFF"))

    def test_empty_clip_not_sent(self):
        session = mock_session({"transcript": "x"})
        transcriber = HttpSpeechTranscriber("http://svc/transcribe", session=session)

        self.assertEqual(transcriber.transcribe(AudioClip(np.zeros(0, dtype=np.float32), 16000)), "")
        session.post.assert_not_called()


class TestServiceDispatcher(unittest.IsolatedAsyncioTestCase):
    """Test request dispatch to the services."""

    async def test_vision_request(self):
        describer = MagicMock()
        describer.describe.return_value = "a door"
        transcriber = MagicMock()
        dispatcher = ServiceDispatcher(describer, transcriber)
        frame = np.zeros((4, 4, 3), dtype=np.uint8)

        with patch("visionflash.core.services.encode_jpeg", return_value=b"jpg"):
            result = await dispatcher.analyze(
                AnalysisRequest(OperatingMode.VISION, DetailLevel.HIGH, frame=frame)
            )

        describer.describe.assert_called_once_with(b"jpg", DetailLevel.HIGH)
        transcriber.transcribe.assert_not_called()
        self.assertEqual(result.text_for(OperatingMode.VISION), "a door")

    async def test_audio_request(self):
        describer = MagicMock()
        transcriber = MagicMock()
        transcriber.transcribe.return_value = "turn left"
        dispatcher = ServiceDispatcher(describer, transcriber)
        clip = AudioClip(np.ones(100, dtype=np.float32), 16000)

        result = await dispatcher.analyze(AnalysisRequest(OperatingMode.AUDIO, audio=clip))

        describer.describe.assert_not_called()
        self.assertEqual(result.text_for(OperatingMode.AUDIO), "turn left")
        self.assertEqual(result.text_for(OperatingMode.VISION), "")

    async def test_ambient_transcription_failure_keeps_description(self):
        describer = MagicMock()
        describer.describe.return_value = "a hallway"
        transcriber = MagicMock()
        transcriber.transcribe.side_effect = ServiceError("down")
        dispatcher = ServiceDispatcher(describer, transcriber)
        clip = AudioClip(np.ones(100, dtype=np.float32), 16000)

        with patch("visionflash.core.services.encode_jpeg", return_value=b"jpg"):
            result = await dispatcher.analyze(
                AnalysisRequest(OperatingMode.VISION, frame=np.zeros((2, 2, 3)), audio=clip)
            )

        self.assertEqual(result.description, "a hallway")
        self.assertEqual(result.transcript, "")

    async def test_audio_transcription_failure_propagates(self):
        transcriber = MagicMock()
        transcriber.transcribe.side_effect = ServiceError("down")
        dispatcher = ServiceDispatcher(MagicMock(), transcriber)
        clip = AudioClip(np.ones(100, dtype=np.float32), 16000)

        with self.assertRaises(ServiceError):
            await dispatcher.analyze(AnalysisRequest(OperatingMode.AUDIO, audio=clip))

    async def test_errors_propagate(self):
        describer = MagicMock()
        describer.describe.side_effect = ServiceError("down")
        dispatcher = ServiceDispatcher(describer, MagicMock())

        with patch("visionflash.core.services.encode_jpeg", return_value=b"jpg"):
            with self.assertRaises(ServiceError):
                await dispatcher.analyze(AnalysisRequest(OperatingMode.VISION, frame=np.zeros((2, 2, 3))))


class TestMediaAndAudio(unittest.TestCase):
    """Test encoding helpers and transcriber selection."""

    def test_encode_wav(self):
        clip = AudioClip(np.linspace(-1, 1, 800, dtype=np.float32), 8000)
        data = encode_wav(clip)
        self.assertTrue(data.startswith(b"RIFF"))
        # 44-byte header + 2 bytes per sample
        self.assertEqual(len(data), 44 + 800 * 2)

    def test_usable_frame(self):
        self.assertTrue(is_usable_frame(np.zeros((2, 3, 3))))
        self.assertFalse(is_usable_frame(np.zeros((0, 3, 3))))
        self.assertFalse(is_usable_frame(None))

    def test_resample(self):
        clip = AudioClip(np.zeros(44100, dtype=np.float32), 44100)
        self.assertEqual(len(resample(clip, 16000)), 16000)
        self.assertEqual(clip.duration, 1.0)

    def test_build_transcriber(self):
        config = Config()
        config.TRANSCRIBER = "vosk"
        self.assertIsInstance(build_transcriber(config), VoskTranscriber)
        config.TRANSCRIBER = "http"
        self.assertIsInstance(build_transcriber(config), HttpSpeechTranscriber)

    def test_result_text_for_mode(self):
        result = AnalysisResult(description="d", transcript="t")
        self.assertEqual(result.text_for(OperatingMode.VISION), "d")
        self.assertEqual(result.text_for(OperatingMode.AUDIO), "t")


if __name__ == "__main__":
    unittest.main()
