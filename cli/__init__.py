"""CLI module for tbsk-receiver."""

from .types import (
    TriggerMode,
    StopTailPolicy,
    SampleFormat,
    DemodulatorName,
)

__all__ = [
    "TriggerMode",
    "StopTailPolicy",
    "SampleFormat",
    "DemodulatorName",
]
