"""
Command-line entry points for VisionFlash.
"""
