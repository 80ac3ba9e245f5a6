"""Gleitender RMS-Schätzer über die letzten N Samples."""

import math

import numpy as np


def rms_window_size(sample_rate: int) -> int:
    """Fenstergröße für die Stille-Erkennung: 10ms, mindestens 10 Samples."""
    return max(sample_rate // 100, 10)


class RmsTracker:
    """Ringpuffer quadrierter Samples mit laufender Summe.

    Die laufende Summe entspricht immer der Summe der aktuell im Fenster
    liegenden Werte. Vor dem ersten vollen Umlauf wird über die bisher
    geschriebenen Slots gemittelt.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"capacity muss positiv sein: {capacity}")
        self.capacity = capacity
        self._squares = np.zeros(capacity, dtype=np.float64)
        self._sum = 0.0
        self._index = 0
        self._filled = False

    def reset(self) -> None:
        self._squares.fill(0.0)
        self._sum = 0.0
        self._index = 0
        self._filled = False

    def update(self, sample: float) -> None:
        square = float(sample) * float(sample)
        if self._filled:
            self._sum -= self._squares[self._index]
        self._squares[self._index] = square
        self._sum += square
        self._index += 1
        if self._index >= self.capacity:
            self._index = 0
            self._filled = True

    def update_many(self, samples) -> None:
        for sample in samples:
            self.update(sample)

    @property
    def count(self) -> int:
        return self.capacity if self._filled else self._index

    def current_rms(self) -> float:
        count = self.count
        if count == 0:
            return 0.0
        # Rundungsfehler der laufenden Summe können minimal negativ werden
        return math.sqrt(max(self._sum, 0.0) / count)
