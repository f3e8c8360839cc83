"""
VisionFlash - Morse light output of what the camera sees and the microphone hears.

A capture-process-flash pipeline for deaf-blind users featuring:
- Periodic camera sampling sent to a vision describer
- Push-to-talk speech transcription
- Morse encoding of the returned text
- Timed screen-luminance playback
"""

__version__ = "1.0.0"
__author__ = "VisionFlash Team"

# Core modules
from . import core
from . import utils

__all__ = ["core", "utils"]
