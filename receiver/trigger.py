"""Entscheidet, wann ein Dekodier-Versuch gestartet wird.

Genau ein Modus ist aktiv: Stille-Erkennung (Standard) oder ein fester
Schwellwert für die gepufferte Dauer.
"""

from typing import Protocol

from cli.types import TriggerMode

# Toleranz für aufsummierte Tick-Dauern (8 x 0.05 ergibt 0.39999999999999997)
TIMER_EPSILON = 1e-9


class DecodeTrigger(Protocol):
    def evaluate(self, rms: float, elapsed: float, buffered_seconds: float) -> bool: ...

    def reset(self) -> None: ...


class SilenceTrigger:
    """Feuert nach `hold_time` Sekunden Stille, wenn genug Audio gepuffert ist.

    Der Stille-Timer läuft nur, solange der RMS unter dem Schwellwert liegt,
    und springt bei jedem lauteren Wert auf 0 zurück. Nach dem Feuern wird er
    ebenfalls sofort zurückgesetzt.
    """

    mode = TriggerMode.silence

    def __init__(self, rms_threshold: float, hold_time: float, min_buffer_seconds: float):
        self.rms_threshold = rms_threshold
        self.hold_time = hold_time
        self.min_buffer_seconds = min_buffer_seconds
        self.silence_timer = 0.0

    def reset(self) -> None:
        self.silence_timer = 0.0

    def evaluate(self, rms: float, elapsed: float, buffered_seconds: float) -> bool:
        if rms < self.rms_threshold:
            self.silence_timer += elapsed
        else:
            self.silence_timer = 0.0

        if (
            self.silence_timer >= self.hold_time - TIMER_EPSILON
            and buffered_seconds >= self.min_buffer_seconds
        ):
            self.silence_timer = 0.0
            return True
        return False


class ThresholdTrigger:
    """Feuert, sobald die gepufferte Dauer den Schwellwert erreicht (RMS egal)."""

    mode = TriggerMode.threshold

    def __init__(self, threshold_seconds: float):
        self.threshold_seconds = threshold_seconds

    def reset(self) -> None:
        pass

    def evaluate(self, rms: float, elapsed: float, buffered_seconds: float) -> bool:
        return buffered_seconds > 0 and buffered_seconds >= self.threshold_seconds


def create_trigger(config) -> DecodeTrigger:
    """Trigger passend zu `config.decode_on_silence`."""
    if config.decode_on_silence:
        return SilenceTrigger(
            rms_threshold=config.silence_rms_threshold,
            hold_time=config.silence_hold_time,
            min_buffer_seconds=config.min_buffer_seconds,
        )
    return ThresholdTrigger(config.decode_threshold_seconds)
