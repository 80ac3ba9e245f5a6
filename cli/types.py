"""Shared CLI type definitions for tbsk-receiver.

Enums used by receive.py and the receiver settings.
"""

from enum import Enum


class TriggerMode(str, Enum):
    """Wann ein Dekodier-Versuch gestartet wird."""

    silence = "silence"
    threshold = "threshold"


class StopTailPolicy(str, Enum):
    """Umgang mit dem Pufferrest, wenn Stop während einer Dekodierung kommt."""

    discard = "discard"
    wait = "wait"


class SampleFormat(str, Enum):
    """Sample-Formate des Aufnahmegeräts."""

    float32 = "float32"
    int16 = "int16"
    uint8 = "uint8"


class DemodulatorName(str, Enum):
    """Verfügbare Demodulatoren."""

    tbsk = "tbsk"
