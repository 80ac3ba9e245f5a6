"""Zentrale Konfiguration für tbsk-receiver.

Gemeinsame Default-Werte für Aufnahme, Trigger und Dekodierung.
Vermeidet Duplikation zwischen Modulen.
"""

from pathlib import Path

# =============================================================================
# Audio-Konfiguration
# =============================================================================

# TBSK-Töne liegen im Sprachband – 8kHz reichen und halten die Demodulation schnell
DEFAULT_SAMPLE_RATE = 8000
DEFAULT_CHANNELS = 1
DEFAULT_DTYPE = "float32"
SUPPORTED_DTYPES = ("float32", "int16", "uint8")

# Ringpuffer des Aufnahmegeräts (Sekunden) und Samples pro Tick (0.1s bei 8kHz)
RING_BUFFER_SECONDS = 2.0
PROCESS_CHUNK_SIZE = 800

# Periodischer Treiber: Abstand zwischen zwei tick()-Aufrufen
TICK_INTERVAL = 0.02

# =============================================================================
# Dekodier-Trigger
# =============================================================================

DECODE_ON_SILENCE = True  # False → fester Schwellwert (DECODE_THRESHOLD_SECONDS)
DECODE_THRESHOLD_SECONDS = 0.5
USE_ASYNC_DECODE = True

SILENCE_RMS_THRESHOLD = 0.2  # Unterhalb gilt das Signal als Stille (RMS)
SILENCE_HOLD_TIME = 0.4  # Sekunden ununterbrochener Stille
MIN_BUFFER_SECONDS = 0.8  # Mindestmenge Audio für einen Dekodier-Versuch

# Stop während laufender Dekodierung: Rest verwerfen oder abwarten
STOP_TAIL_POLICY = "discard"
STOP_WAIT_TIMEOUT = 2.0

# Ausgabe für ungültiges UTF-8
HEX_PREFIX = "[HEX] "

# =============================================================================
# Lokale Pfade
# =============================================================================

# User-Verzeichnis für Konfiguration, Logs und Historie
USER_CONFIG_DIR = Path.home() / ".tbsk_receiver"

LOG_DIR = USER_CONFIG_DIR / "logs"
LOG_FILE = LOG_DIR / "tbsk_receiver.log"

HISTORY_FILE = USER_CONFIG_DIR / "history.jsonl"


__all__ = [
    # Audio
    "DEFAULT_SAMPLE_RATE",
    "DEFAULT_CHANNELS",
    "DEFAULT_DTYPE",
    "SUPPORTED_DTYPES",
    "RING_BUFFER_SECONDS",
    "PROCESS_CHUNK_SIZE",
    "TICK_INTERVAL",
    # Trigger
    "DECODE_ON_SILENCE",
    "DECODE_THRESHOLD_SECONDS",
    "USE_ASYNC_DECODE",
    "SILENCE_RMS_THRESHOLD",
    "SILENCE_HOLD_TIME",
    "MIN_BUFFER_SECONDS",
    "STOP_TAIL_POLICY",
    "STOP_WAIT_TIMEOUT",
    "HEX_PREFIX",
    # Paths
    "USER_CONFIG_DIR",
    "LOG_DIR",
    "LOG_FILE",
    "HISTORY_FILE",
]
