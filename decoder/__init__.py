"""Dekodierung für tbsk-receiver.

Dieses Modul stellt den Demodulator-Vertrag, den Single-Flight Scheduler und
die Bit → Text Umwandlung bereit.

Usage:
    from decoder import get_demodulator, bits_to_message

    demodulator = get_demodulator("tbsk")
    bits = demodulator.demodulate(samples)
    text = bits_to_message(bits)

Unterstützte Demodulatoren:
    - tbsk: TBSK über tbskmodem (optionale Abhängigkeit)
"""

from collections.abc import Iterable, Sequence
from typing import Protocol

from .bits import bits_to_message, bytes_to_message, pack_bits, pad_bits
from .scheduler import DecodeJob, DecodeScheduler


class Demodulator(Protocol):
    """Wandelt normalisierte Samples in Bits.

    Gibt None oder eine leere Folge zurück, wenn kein gültiger Frame gefunden
    wurde. Darf bei fehlerhaftem Input werfen. Muss von einem anderen Thread
    als dem Capture-Thread aufrufbar sein.
    """

    def demodulate(self, samples: Sequence[float]) -> Iterable[int] | None: ...


def get_demodulator(name: str) -> Demodulator:
    """Factory für Demodulatoren.

    Raises:
        ValueError: Bei unbekanntem Demodulator
        ImportError: Wenn die Backend-Bibliothek fehlt
    """
    if name == "tbsk":
        from .tbsk import TbskDemodulator

        return TbskDemodulator()
    raise ValueError(f"Unbekannter Demodulator: {name}")


__all__ = [
    "Demodulator",
    "DecodeJob",
    "DecodeScheduler",
    "get_demodulator",
    "bits_to_message",
    "bytes_to_message",
    "pack_bits",
    "pad_bits",
]
