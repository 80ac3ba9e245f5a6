"""
Gemeinsame Test-Fixtures für tbsk-receiver.

Diese Fixtures isolieren Tests von externen Abhängigkeiten:
- Audio-Hardware (simuliertes zirkuläres Aufnahmegerät)
- Demodulator (skriptbar, optional blockierend)
- Umgebungsvariablen (TBSK_*)
"""

import sys
import threading
from pathlib import Path

import numpy as np
import pytest

# Projekt-Root zum Python-Path hinzufügen
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from audio.capture import DeviceError  # noqa: E402


# =============================================================================
# Helfer
# =============================================================================


def text_to_bits(text: str) -> list[int]:
    """UTF-8 Bytes als Bitfolge, MSB-first."""
    return [(byte >> (7 - i)) & 1 for byte in text.encode("utf-8") for i in range(8)]


class FakeCaptureDevice:
    """Simuliertes Aufnahmegerät mit Ringspeicher und Wrap-Around.

    `write()` spielt die Rolle des Audio-Treibers und schiebt die
    Schreibposition weiter.
    """

    def __init__(
        self,
        capacity: int = 2000,
        dtype: str = "float32",
        ready: bool = True,
        fail_open: bool = False,
    ):
        self.capacity = capacity
        self.dtype = np.dtype(dtype)
        self.ready = ready
        self.fail_open = fail_open
        self._ring = np.zeros(capacity, dtype=self.dtype)
        self._write_pos = 0
        self.open_calls: list[tuple] = []
        self.close_calls = 0
        self.read_error: Exception | None = None
        self.overflows = 0

    def open(self, device_id, channels, sample_rate):
        self.open_calls.append((device_id, channels, sample_rate))
        if self.fail_open:
            raise DeviceError("Kein Mikrofon gefunden")

    def write(self, samples) -> None:
        samples = np.asarray(samples, dtype=self.dtype)
        for sample in samples:
            self._ring[self._write_pos] = sample
            self._write_pos = (self._write_pos + 1) % self.capacity

    def write_position(self) -> int:
        return self._write_pos if self.ready else -1

    def read(self, into, from_index):
        if self.read_error is not None:
            error, self.read_error = self.read_error, None
            raise error
        count = min(len(into), self.capacity - from_index)
        into[:count] = self._ring[from_index : from_index + count]
        return count

    def close(self):
        self.close_calls += 1


class ScriptedDemodulator:
    """Demodulator-Double: liefert feste Bits, wirft optional, kann blockieren."""

    def __init__(self, bits=None, error: Exception | None = None, gate=None):
        self.bits = bits
        self.error = error
        self.gate: threading.Event | None = gate
        self.calls: list[np.ndarray] = []
        self.started = threading.Event()
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def demodulate(self, samples):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.calls.append(np.array(samples, copy=True))
        self.started.set()
        try:
            if self.gate is not None:
                self.gate.wait(timeout=5)
            if self.error is not None:
                raise self.error
            return self.bits
        finally:
            with self._lock:
                self.active -= 1


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_device():
    """Factory für simulierte Aufnahmegeräte."""

    def _create(**kwargs):
        return FakeCaptureDevice(**kwargs)

    return _create


@pytest.fixture
def demodulator():
    """Factory für ScriptedDemodulator."""

    def _create(**kwargs):
        return ScriptedDemodulator(**kwargs)

    return _create


@pytest.fixture
def make_config():
    """
    Factory für kleine, deterministische Empfänger-Konfigurationen.

    1000Hz Samplerate, 100 Samples pro Tick (= 0.1s), synchrone Dekodierung.
    """
    from receiver.settings import ReceiverConfig

    def _create(**kwargs):
        defaults = {
            "sample_rate": 1000,
            "ring_buffer_seconds": 2.0,
            "process_chunk_size": 100,
            "use_async_decode": False,
        }
        defaults.update(kwargs)
        return ReceiverConfig(**defaults)

    return _create


@pytest.fixture
def clean_env(monkeypatch):
    """Entfernt alle TBSK_* Umgebungsvariablen für saubere Tests."""
    import os

    for key in list(os.environ.keys()):
        if key.startswith("TBSK_"):
            monkeypatch.delenv(key, raising=False)
