"""Laufzeit-Konfiguration des Empfängers.

Defaults kommen aus config.py, TBSK_* Umgebungsvariablen überschreiben sie,
explizite Argumente (z.B. CLI) überschreiben beides.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace

from cli.types import StopTailPolicy, TriggerMode
from config import (
    DECODE_ON_SILENCE,
    DECODE_THRESHOLD_SECONDS,
    DEFAULT_CHANNELS,
    DEFAULT_DTYPE,
    DEFAULT_SAMPLE_RATE,
    MIN_BUFFER_SECONDS,
    PROCESS_CHUNK_SIZE,
    RING_BUFFER_SECONDS,
    SILENCE_HOLD_TIME,
    SILENCE_RMS_THRESHOLD,
    STOP_TAIL_POLICY,
    STOP_WAIT_TIMEOUT,
    SUPPORTED_DTYPES,
    TICK_INTERVAL,
    USE_ASYNC_DECODE,
)
from utils.env import get_env_bool, get_env_float, get_env_int, get_env_str

logger = logging.getLogger("tbsk_receiver")

# Feld → (ENV-Name, Parser)
_ENV_FIELDS = {
    "sample_rate": ("TBSK_SAMPLE_RATE", get_env_int),
    "ring_buffer_seconds": ("TBSK_RING_BUFFER_SECONDS", get_env_float),
    "process_chunk_size": ("TBSK_PROCESS_CHUNK_SIZE", get_env_int),
    "decode_threshold_seconds": ("TBSK_DECODE_THRESHOLD_SECONDS", get_env_float),
    "use_async_decode": ("TBSK_ASYNC_DECODE", get_env_bool),
    "decode_on_silence": ("TBSK_DECODE_ON_SILENCE", get_env_bool),
    "silence_rms_threshold": ("TBSK_SILENCE_RMS_THRESHOLD", get_env_float),
    "silence_hold_time": ("TBSK_SILENCE_HOLD_TIME", get_env_float),
    "min_buffer_seconds": ("TBSK_MIN_BUFFER_SECONDS", get_env_float),
    "stop_wait_timeout": ("TBSK_STOP_WAIT_TIMEOUT", get_env_float),
    "dtype": ("TBSK_DTYPE", get_env_str),
    "device": ("TBSK_DEVICE", get_env_str),
}


def _parse_device(value: str | int | None) -> str | int | None:
    """Geräte-Index als int, Gerätename als str."""
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return value


@dataclass(frozen=True)
class ReceiverConfig:
    sample_rate: int = DEFAULT_SAMPLE_RATE
    channels: int = DEFAULT_CHANNELS
    ring_buffer_seconds: float = RING_BUFFER_SECONDS
    process_chunk_size: int = PROCESS_CHUNK_SIZE
    decode_threshold_seconds: float = DECODE_THRESHOLD_SECONDS
    use_async_decode: bool = USE_ASYNC_DECODE
    decode_on_silence: bool = DECODE_ON_SILENCE
    silence_rms_threshold: float = SILENCE_RMS_THRESHOLD
    silence_hold_time: float = SILENCE_HOLD_TIME
    min_buffer_seconds: float = MIN_BUFFER_SECONDS
    stop_tail_policy: StopTailPolicy = StopTailPolicy(STOP_TAIL_POLICY)
    stop_wait_timeout: float = STOP_WAIT_TIMEOUT
    tick_interval: float = TICK_INTERVAL
    device: str | int | None = None
    dtype: str = DEFAULT_DTYPE
    debug_stats: bool = False

    @property
    def trigger_mode(self) -> TriggerMode:
        return TriggerMode.silence if self.decode_on_silence else TriggerMode.threshold

    @property
    def ring_buffer_samples(self) -> int:
        return int(self.sample_rate * self.ring_buffer_seconds)

    def validate(self) -> "ReceiverConfig":
        """Prüft Wertebereiche.

        Raises:
            ValueError: Bei ungültigen Werten
        """
        positive = {
            "sample_rate": self.sample_rate,
            "channels": self.channels,
            "ring_buffer_seconds": self.ring_buffer_seconds,
            "process_chunk_size": self.process_chunk_size,
            "tick_interval": self.tick_interval,
        }
        for name, value in positive.items():
            if value <= 0:
                raise ValueError(f"{name} muss positiv sein: {value}")

        non_negative = {
            "decode_threshold_seconds": self.decode_threshold_seconds,
            "silence_rms_threshold": self.silence_rms_threshold,
            "silence_hold_time": self.silence_hold_time,
            "min_buffer_seconds": self.min_buffer_seconds,
            "stop_wait_timeout": self.stop_wait_timeout,
        }
        for name, value in non_negative.items():
            if value < 0:
                raise ValueError(f"{name} darf nicht negativ sein: {value}")

        if self.dtype not in SUPPORTED_DTYPES:
            raise ValueError(
                f"dtype muss einer von {', '.join(SUPPORTED_DTYPES)} sein: {self.dtype}"
            )
        if self.ring_buffer_samples < self.process_chunk_size:
            raise ValueError(
                "Ringpuffer kleiner als process_chunk_size "
                f"({self.ring_buffer_samples} < {self.process_chunk_size})"
            )
        return self

    def with_overrides(self, **overrides) -> "ReceiverConfig":
        """Kopie mit allen gesetzten (nicht-None) Overrides."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unbekannte Optionen: {', '.join(sorted(unknown))}")
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)

    @classmethod
    def from_env(cls, **overrides) -> "ReceiverConfig":
        """Baut die Konfiguration aus Defaults, TBSK_* ENV und Overrides."""
        env_values = {}
        for name, (env_name, parser) in _ENV_FIELDS.items():
            value = parser(env_name)
            if value is not None:
                env_values[name] = value

        policy = get_env_str("TBSK_STOP_TAIL_POLICY")
        if policy is not None:
            try:
                env_values["stop_tail_policy"] = StopTailPolicy(policy.lower())
            except ValueError:
                logger.warning(f"Ungültiger TBSK_STOP_TAIL_POLICY={policy!r}, ignoriere")

        config = cls().with_overrides(**env_values).with_overrides(**overrides)
        return replace(config, device=_parse_device(config.device))
