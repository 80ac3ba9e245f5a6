"""Audio-Modul für tbsk-receiver.

Bietet Ringpuffer-Capture, Sample-Puffer und RMS-Schätzung.

Usage:
    from audio import SoundDeviceCapture, RingBufferCapture

    device = SoundDeviceCapture()
    device.open(None, channels=1, sample_rate=8000)
    capture = RingBufferCapture(device, chunk_size=800)
    samples = capture.read_chunk()
"""

from .buffer import SharedAudioBuffer
from .capture import (
    CaptureDevice,
    DeviceError,
    RingBufferCapture,
    available_samples,
    normalize_samples,
)
from .device import SoundDeviceCapture
from .rms import RmsTracker, rms_window_size

__all__ = [
    "CaptureDevice",
    "DeviceError",
    "RingBufferCapture",
    "SharedAudioBuffer",
    "RmsTracker",
    "SoundDeviceCapture",
    "available_samples",
    "normalize_samples",
    "rms_window_size",
]
