"""
Utility modules for VisionFlash.

Contains configuration management, input routing, and media encoding helpers.
"""

from .config import Config
from .input_router import InputAction, KeyRouter
from .media import encode_jpeg, encode_wav

__all__ = ["Config", "InputAction", "KeyRouter", "encode_jpeg", "encode_wav"]
