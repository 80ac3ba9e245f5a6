"""Thread-sicherer Sample-Puffer zwischen Capture-Tick und Decode-Snapshot."""

import threading

import numpy as np


class SharedAudioBuffer:
    """Sammelt normalisierte Samples seit dem letzten Snapshot.

    Alle Zugriffe laufen unter einem Lock. `lock` ist reentrant, damit
    Aufrufer mehrere Operationen atomar bündeln können:

        with buffer.lock:
            buffer.append(samples)
            rms.update_many(samples)
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._chunks: list[np.ndarray] = []
        self._size = 0

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def append(self, samples: np.ndarray) -> int:
        """Hängt Samples an (Kopie), gibt die neue Puffergröße zurück."""
        if samples.size == 0:
            return len(self)
        chunk = np.array(samples, dtype=np.float64, copy=True)
        with self._lock:
            self._chunks.append(chunk)
            self._size += chunk.size
            return self._size

    def snapshot_and_clear(self) -> np.ndarray:
        """Kopiert alle gepufferten Samples und leert den Puffer atomar."""
        with self._lock:
            if not self._chunks:
                return np.empty(0, dtype=np.float64)
            snapshot = np.concatenate(self._chunks)
            self._chunks = []
            self._size = 0
        return snapshot

    def clear(self) -> None:
        with self._lock:
            self._chunks = []
            self._size = 0

    def duration(self, sample_rate: int) -> float:
        """Gepufferte Dauer in Sekunden."""
        return len(self) / sample_rate

    def __len__(self) -> int:
        with self._lock:
            return self._size
