"""Ringpuffer-Capture: liest neue Samples aus einem zirkulären Aufnahmegerät.

Das Gerät schreibt fortlaufend in einen Ringspeicher fester Größe und meldet
seine Schreibposition. Pro Tick wird der Abschnitt zwischen Lese- und
Schreibposition abgeholt, bei Bedarf in zwei zusammenhängenden Teilen, wenn
der Bereich das physische Ende des Speichers überschreitet.
"""

from __future__ import annotations

import logging
from typing import Protocol

import numpy as np

logger = logging.getLogger("tbsk_receiver.capture")


class DeviceError(RuntimeError):
    """Aufnahmegerät konnte nicht geöffnet oder gestartet werden."""


class CaptureDevice(Protocol):
    """Schnittstelle für zirkuläre Aufnahmegeräte.

    `capacity` ist die Gesamtgröße des Ringspeichers in Samples, `dtype` das
    Rohformat, in dem `read()` liefert. `overflows` zählt vom Treiber
    gemeldete Über- und Unterläufe.
    """

    capacity: int
    dtype: np.dtype
    overflows: int

    def open(self, device_id: str | int | None, channels: int, sample_rate: int) -> None:
        """Öffnet und startet das Gerät. Wirft DeviceError bei Fehlern."""
        ...

    def write_position(self) -> int:
        """Aktuelle Schreibposition, negativ solange das Gerät nicht bereit ist."""
        ...

    def read(self, into: np.ndarray, from_index: int) -> int:
        """Kopiert ab `from_index` zusammenhängend in `into`, gibt Anzahl zurück."""
        ...

    def close(self) -> None:
        ...


def normalize_samples(raw: np.ndarray) -> np.ndarray:
    """Konvertiert Roh-PCM auf float64 im Bereich [-1, 1].

    Unterstützt 8-bit unsigned und 16-bit signed PCM; Float-Daten werden nur
    nach float64 konvertiert.
    """
    if raw.dtype == np.uint8:
        return (raw.astype(np.float64) - 128.0) / 128.0
    if raw.dtype == np.int16:
        return raw.astype(np.float64) / 32768.0
    if np.issubdtype(raw.dtype, np.floating):
        return raw.astype(np.float64, copy=False)
    raise TypeError(f"Nicht unterstütztes Sample-Format: {raw.dtype}")


def available_samples(write_position: int, read_position: int, capacity: int) -> int:
    """Anzahl ungelesener Samples zwischen Lese- und Schreibposition (wrap-aware)."""
    if write_position >= read_position:
        return write_position - read_position
    return capacity - read_position + write_position


class RingBufferCapture:
    """Lese-Cursor auf dem Ringspeicher eines CaptureDevice.

    Usage:
        capture = RingBufferCapture(device, chunk_size=800)
        samples = capture.read_chunk()  # float64 in [-1, 1]
    """

    def __init__(self, device: CaptureDevice, chunk_size: int):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size muss positiv sein: {chunk_size}")
        self.device = device
        self.chunk_size = chunk_size
        self.read_position = 0
        self.total_read = 0

    def reset(self) -> None:
        self.read_position = 0
        self.total_read = 0

    def read_chunk(self) -> np.ndarray | None:
        """Liest höchstens `chunk_size` neue Samples.

        Returns:
            Normalisierte Samples (evtl. leer) oder None, wenn das Gerät noch
            keine gültige Schreibposition meldet.
        """
        write_pos = self.device.write_position()
        if write_pos < 0:
            return None

        capacity = self.device.capacity
        to_read = min(
            available_samples(write_pos, self.read_position, capacity),
            self.chunk_size,
        )
        if to_read <= 0:
            return np.empty(0, dtype=np.float64)

        raw = np.empty(to_read, dtype=self.device.dtype)
        first = min(to_read, capacity - self.read_position)
        got = self.device.read(raw[:first], self.read_position)
        if first < to_read and got == first:
            # Bereich läuft über das Speicherende hinaus
            got += self.device.read(raw[first:], 0)

        if got < to_read:
            logger.debug(f"Kurzer Read: {got}/{to_read} Samples")

        self.read_position = (self.read_position + got) % capacity
        self.total_read += got
        return normalize_samples(raw[:got])
