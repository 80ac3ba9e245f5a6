"""Zeitmessung für tbsk-receiver.

Context Manager für Dekodier-Latenzen und ein Durchsatz-Zähler für die
Debug-Statistik des Capture-Pfads.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass

from .logging import get_logger, get_session_id


def format_duration(milliseconds: float) -> str:
    """Formatiert Dauer menschenlesbar: ms für kurze, s für längere Zeiten."""
    if milliseconds >= 1000:
        return f"{milliseconds / 1000:.2f}s"
    return f"{milliseconds:.0f}ms"


def log_preview(text: str, max_length: int = 100) -> str:
    """Kürzt Text für Log-Ausgabe mit Ellipsis wenn nötig."""
    if len(text) <= max_length:
        return text
    return f"{text[:max_length]}..."


@dataclass
class Timing:
    """Ergebnis von timed_operation(); elapsed_ms ist erst nach dem Block gesetzt."""

    name: str
    elapsed_ms: float = 0.0


@contextmanager
def timed_operation(name: str, *, logger=None):
    """Misst die Dauer eines Blocks und loggt sie auf DEBUG.

    Usage:
        with timed_operation("Demodulation") as timing:
            bits = demodulator.demodulate(samples)
        stats.append(timing.elapsed_ms)
    """
    op_logger = logger or get_logger()
    timing = Timing(name)
    start = time.perf_counter()
    try:
        yield timing
    finally:
        timing.elapsed_ms = (time.perf_counter() - start) * 1000
        op_logger.debug(
            f"[{get_session_id()}] {name}: {format_duration(timing.elapsed_ms)}"
        )


class ThroughputMeter:
    """Zählt Samples und meldet einmal pro Intervall die Rate.

    Usage:
        meter = ThroughputMeter(interval=1.0)
        meter.add(800)
        rate = meter.poll()  # None bis das Intervall abgelaufen ist
    """

    def __init__(self, interval: float = 1.0, clock=time.monotonic):
        self.interval = interval
        self._clock = clock
        self._count = 0
        self._since = clock()

    def reset(self) -> None:
        self._count = 0
        self._since = self._clock()

    def add(self, count: int) -> None:
        self._count += count

    def poll(self) -> float | None:
        """Samples pro Sekunde seit dem letzten Report oder None."""
        now = self._clock()
        elapsed = now - self._since
        if elapsed < self.interval:
            return None
        rate = self._count / elapsed
        self._count = 0
        self._since = now
        return rate
