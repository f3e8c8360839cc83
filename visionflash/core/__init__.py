"""
Core functionality for VisionFlash.

This module contains the pipeline components:
- Morse encoding of text into flash patterns
- Capture device discovery and capture sessions
- Capture scheduling and recognition service clients
- Flash playback and the top-level mode controller
"""

__all__ = []
