"""
Configuration management for VisionFlash.
"""

import os
from typing import Tuple


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Configuration settings for the VisionFlash capture pipeline."""
    
    def __init__(self):
        # External services
        self.VISION_ENDPOINT = os.getenv("VISION_ENDPOINT", "http://localhost:3000/api/describe")
        self.TRANSCRIBE_ENDPOINT = os.getenv("TRANSCRIBE_ENDPOINT", "http://localhost:3000/api/transcribe")
        self.TRANSCRIBER = os.getenv("TRANSCRIBER", "http").lower()
        self.REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "20"))
        
        # Offline speech model
        self.MODEL_PATH = os.getenv("VOSK_MODEL_PATH", "./model")
        
        # Audio settings
        self.MIC_SAMPLERATE = int(os.getenv("MIC_SAMPLERATE", "44100"))
        self.VOSK_SAMPLERATE = 16000
        self.BLOCKSIZE = 1024
        self.VISION_AUDIO = _env_flag("VISION_AUDIO")
        
        # Camera settings
        self.CAMERA_BACKEND = os.getenv("CAMERA_BACKEND", "ANY")
        self.CAMERA_PROBE_COUNT = int(os.getenv("CAMERA_PROBE_COUNT", "3"))
        self.JPEG_QUALITY = int(os.getenv("JPEG_QUALITY", "80"))
        
        # Device preference (case-insensitive label substring)
        self.PREFERRED_CAMERA = os.getenv("PREFERRED_CAMERA", "")
        self.PREFERRED_MICROPHONE = os.getenv("PREFERRED_MICROPHONE", "")
        
        # Scheduling and flash timing
        self.TICK_PERIOD_MS = int(os.getenv("TICK_PERIOD_MS", "250"))
        self.UNIT_DURATION_MS = int(os.getenv("UNIT_DURATION_MS", "200"))
        self.UNIT_DURATION_MIN_MS = 50
        self.UNIT_DURATION_MAX_MS = 500
        self.SCROLL_STEP_MS = 10
        self.SETUP_COUNTDOWN_SECONDS = float(os.getenv("SETUP_COUNTDOWN_SECONDS", "10"))
        
        # Logging
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    
    def get_model_path(self) -> str:
        """Get the path to the Vosk model directory."""
        return self.MODEL_PATH
    
    def get_unit_bounds(self) -> Tuple[int, int]:
        """Get the inclusive (min, max) unit duration in milliseconds."""
        return self.UNIT_DURATION_MIN_MS, self.UNIT_DURATION_MAX_MS
    
    def get_tick_period(self) -> float:
        """Get the vision tick period in seconds."""
        return self.TICK_PERIOD_MS / 1000.0


# Global config instance
config = Config()
