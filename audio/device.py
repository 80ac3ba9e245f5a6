"""Mikrofon-Backend auf Basis von sounddevice.

Der PortAudio-Callback schreibt jeden Block in einen zirkulären numpy-Speicher
und schiebt die Schreibposition weiter. RingBufferCapture liest im Tick-Takt
hinterher.
"""

import logging
import threading

import numpy as np

from config import DEFAULT_DTYPE, RING_BUFFER_SECONDS, SUPPORTED_DTYPES
from utils.logging import get_session_id

from .capture import DeviceError

logger = logging.getLogger("tbsk_receiver.device")

CLOSE_TIMEOUT = 2.0


class SoundDeviceCapture:
    """Zirkuläres Aufnahmegerät über sd.InputStream.

    Usage:
        device = SoundDeviceCapture(ring_buffer_seconds=2.0)
        device.open(None, channels=1, sample_rate=8000)
        pos = device.write_position()
        ...
        device.close()
    """

    def __init__(
        self,
        ring_buffer_seconds: float = RING_BUFFER_SECONDS,
        dtype: str = DEFAULT_DTYPE,
        blocksize: int = 0,
    ):
        if dtype not in SUPPORTED_DTYPES:
            raise ValueError(f"Nicht unterstütztes Sample-Format: {dtype}")
        self.ring_buffer_seconds = ring_buffer_seconds
        self.dtype = np.dtype(dtype)
        self.blocksize = blocksize
        self.capacity = 0

        self._ring: np.ndarray = np.zeros(0, dtype=self.dtype)
        self._write_pos = -1
        self._lock = threading.Lock()
        self._stream = None
        self.overflows = 0

    def _audio_callback(self, indata, _frames, _time_info, status):
        """Callback: Schreibt den ersten Kanal in den Ringspeicher."""
        if status:
            self.overflows += 1
            logger.debug(f"Audio-Status: {status}")

        block = indata[:, 0] if indata.ndim > 1 else indata
        capacity = self.capacity
        if capacity == 0 or len(block) == 0:
            return
        if len(block) > capacity:
            block = block[-capacity:]

        with self._lock:
            start = max(self._write_pos, 0)
            first = min(len(block), capacity - start)
            self._ring[start : start + first] = block[:first]
            rest = len(block) - first
            if rest:
                self._ring[:rest] = block[first:]
            self._write_pos = (start + len(block)) % capacity

    def open(self, device_id, channels: int, sample_rate: int) -> None:
        """Öffnet den Input-Stream und startet die Aufnahme.

        Raises:
            DeviceError: Wenn sounddevice fehlt oder PortAudio den Stream ablehnt
        """
        try:
            import sounddevice as sd
        except (ImportError, OSError) as e:
            raise DeviceError(f"sounddevice nicht verfügbar: {e}") from e

        self.capacity = int(sample_rate * self.ring_buffer_seconds)
        if self.capacity <= 0:
            raise DeviceError(f"Ungültige Ringpuffer-Größe: {self.capacity}")

        with self._lock:
            self._ring = np.zeros(self.capacity, dtype=self.dtype)
            self._write_pos = -1
        self.overflows = 0

        try:
            stream = sd.InputStream(
                device=device_id,
                samplerate=sample_rate,
                channels=channels,
                blocksize=self.blocksize,
                dtype=self.dtype.name,
                callback=self._audio_callback,
            )
            stream.start()
        except (sd.PortAudioError, ValueError, OSError) as e:
            raise DeviceError(f"Mikrofon konnte nicht gestartet werden: {e}") from e

        self._stream = stream
        logger.info(
            f"[{get_session_id()}] Audio-Stream gestartet: "
            f"{sample_rate}Hz, {channels}ch, {self.dtype.name}, Ring={self.capacity}"
        )

    def write_position(self) -> int:
        with self._lock:
            return self._write_pos

    def read(self, into: np.ndarray, from_index: int) -> int:
        with self._lock:
            count = min(len(into), self.capacity - from_index)
            if count <= 0:
                return 0
            into[:count] = self._ring[from_index : from_index + count]
            return count

    def close(self) -> None:
        """Stoppt und schließt den Stream.

        PortAudio kann beim close() deadlocken, daher mit Timeout in eigenem Thread.
        """
        stream = self._stream
        self._stream = None
        if stream is None:
            return

        def _close_stream():
            try:
                stream.stop()
            except Exception as e:
                logger.debug(f"stream.stop() fehlgeschlagen: {e}")
            try:
                stream.close()
            except Exception as e:
                logger.debug(f"stream.close() fehlgeschlagen: {e}")

        close_thread = threading.Thread(target=_close_stream, daemon=True)
        close_thread.start()
        close_thread.join(timeout=CLOSE_TIMEOUT)

        if close_thread.is_alive():
            logger.warning(
                f"Audio-Stream Timeout beim Schließen ({CLOSE_TIMEOUT:.0f}s) – "
                "PortAudio-Deadlock vermutet, fahre fort ohne sauberes Schließen"
            )
        else:
            logger.debug("Audio-Stream sauber geschlossen")

        with self._lock:
            self._write_pos = -1

    @property
    def is_open(self) -> bool:
        return self._stream is not None
