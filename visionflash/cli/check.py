#!/usr/bin/env python3
"""
Hardware and service check for VisionFlash.
"""

import os
import sys
from urllib.parse import urlparse

from visionflash.core.devices import DeviceKind, DeviceSelector, PlatformDeviceEnumerator, label_preference
from visionflash.core.morse import encode_text
from visionflash.utils.config import config


def check_camera(selector: DeviceSelector) -> bool:
    """Open the default camera and grab one frame."""
    print("📹 Checking camera...")

    cameras = selector.devices(DeviceKind.CAMERA)
    if not cameras:
        print("❌ No camera found")
        return False
    for device in cameras:
        print(f"   [{device.id}] {device.label}")

    from visionflash.core.camera import CameraSource

    source = CameraSource(int(selector.camera.id), config.CAMERA_BACKEND, config.CAMERA_PROBE_COUNT)
    try:
        if not source.open():
            print("❌ Camera could not be opened")
            return False
        frame = source.read_frame()
        if frame is None:
            print("❌ Frame capture failed")
            return False
        print(f"✅ Frame capture successful ({frame.shape[1]}x{frame.shape[0]}) from '{selector.camera.label}'")
        return True
    finally:
        source.close()


def check_microphone(selector: DeviceSelector) -> bool:
    """List microphones and report the default choice."""
    print("🎙️ Checking microphones...")

    microphones = selector.devices(DeviceKind.MICROPHONE)
    if not microphones:
        print("❌ No microphone found")
        return False
    for device in microphones:
        print(f"   [{device.id}] {device.label}")
    print(f"✅ Using microphone '{selector.microphone.label}'")
    return True


def check_transcriber() -> bool:
    """Check the configured speech transcriber."""
    print("🗣️ Checking speech transcriber...")

    if config.TRANSCRIBER != "vosk":
        return check_endpoint("Transcribe", config.TRANSCRIBE_ENDPOINT)

    model_path = config.get_model_path()
    if not os.path.exists(model_path):
        print(f"❌ Vosk model not found at {model_path}")
        return False
    try:
        import vosk
        vosk.Model(model_path)
    except Exception as e:
        print(f"❌ Vosk model failed to load: {e}")
        return False
    print(f"✅ Vosk model loaded from {model_path}")
    return True


def check_endpoint(name: str, url: str) -> bool:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        print(f"❌ {name} endpoint is not a valid URL: {url!r}")
        return False
    print(f"✅ {name} endpoint: {url}")
    return True


def check_flash_timing() -> bool:
    """Encode a sample message at the configured unit duration."""
    print("⚡ Checking flash timing...")

    try:
        pattern = encode_text("SOS", config.UNIT_DURATION_MS)
    except ValueError as e:
        print(f"❌ {e}")
        return False
    print(f"✅ 'SOS' → {len(pattern)} units, {pattern.total_duration_ms / 1000:.1f}s")
    return True


def main():
    """Run all checks."""
    print("🔧 VisionFlash - Hardware Check")
    print("=" * 50)

    selector = DeviceSelector(
        PlatformDeviceEnumerator(config.CAMERA_PROBE_COUNT, config.CAMERA_BACKEND),
        camera_ranker=label_preference(config.PREFERRED_CAMERA),
        microphone_ranker=label_preference(config.PREFERRED_MICROPHONE),
    )
    selector.refresh()

    checks = [
        ("Camera", lambda: check_camera(selector)),
        ("Microphone", lambda: check_microphone(selector)),
        ("Vision Service", lambda: check_endpoint("Vision", config.VISION_ENDPOINT)),
        ("Speech Transcriber", check_transcriber),
        ("Flash Timing", check_flash_timing),
    ]

    results = {}
    for name, check in checks:
        print(f"\n--- {name} ---")
        try:
            results[name] = check()
        except Exception as e:
            print(f"❌ {name} check crashed: {e}")
            results[name] = False

    print("\n" + "=" * 50)
    print("📊 Check Results Summary:")
    for name, result in results.items():
        status = "✅ PASS" if result else "❌ FAIL"
        print(f"   {name}: {status}")

    passed = sum(1 for result in results.values() if result)
    print(f"\n🎯 Overall: {passed}/{len(checks)} checks passed")
    return passed == len(checks)


def run():
    sys.exit(0 if main() else 1)


if __name__ == "__main__":
    run()
