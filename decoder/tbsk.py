"""TBSK-Demodulator auf Basis von tbskmodem.

Die Demodulations-Mathematik stammt vollständig aus tbskmodem; hier wird nur
der Träger konfiguriert und die Bit-Ausgabe vereinheitlicht.
"""

import logging
import threading

logger = logging.getLogger("tbsk_receiver.decoder.tbsk")

# Träger wie beim Sender: XPSK-Sinus (10 Ticks, 10 Wiederholungen), halbe Amplitude
TONE_POINTS = 10
TONE_CYCLE = 10
TONE_GAIN = 0.5


def _import_tbskmodem():
    """Importiert tbskmodem mit hilfreicher Fehlermeldung."""
    try:
        import tbskmodem  # type: ignore[import-not-found]
    except ModuleNotFoundError as e:
        missing = e.name or "unknown"
        raise ImportError(
            f"tbskmodem nicht gefunden ({missing}). "
            "Installiere mit `pip install tbskmodem` oder `pip install .[tbsk]`."
        ) from e
    return tbskmodem


class TbskDemodulator:
    """Adapter: demodulate(samples) → Liste von Bits oder None (kein Frame)."""

    name = "tbsk"

    def __init__(
        self,
        points: int = TONE_POINTS,
        cycle: int = TONE_CYCLE,
        gain: float = TONE_GAIN,
    ):
        tbskmodem = _import_tbskmodem()
        tone = tbskmodem.TbskTone.createXPskSin(points, cycle).mul(gain)
        self._demod = tbskmodem.TbskDemodulator(tone)
        # tbskmodem hält internen Zustand – Aufrufe serialisieren
        self._lock = threading.Lock()

    def demodulate(self, samples) -> list[int] | None:
        with self._lock:
            bits = self._demod.demodulateAsBit([float(s) for s in samples])
            if bits is None:
                return None
            return [int(bit) for bit in bits]
