"""Logging-Setup für tbsk-receiver.

Konfiguriert Datei-Logging mit Rotation und optionalem stderr-Output.

Jede Zeile trägt den Thread-Namen (MainThread, TickLoop, DecodeWorker_N).
"""

import logging
import sys
import uuid
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Logger-Singleton
logger = logging.getLogger("tbsk_receiver")

# Session-ID für Korrelation (wird beim ersten setup_logging() generiert)
_session_id: str = ""

_FILE_FORMAT = "%(asctime)s [%(levelname)s] [%(threadName)s] %(message)s"
_STDERR_FORMAT = "[%(levelname)s] [%(threadName)s] %(message)s"

FALLBACK_LOG_FILE = Path("/tmp/tbsk_receiver.log")


def _generate_session_id() -> str:
    """Erzeugt kurze, lesbare Session-ID (8 Zeichen)."""
    return uuid.uuid4().hex[:8]


def get_session_id() -> str:
    """Gibt die aktuelle Session-ID zurück."""
    global _session_id
    if not _session_id:
        _session_id = _generate_session_id()
    return _session_id


def get_logger() -> logging.Logger:
    """Gibt den tbsk_receiver Logger zurück."""
    return logger


def _file_handler(path: Path) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, "%H:%M:%S"))
    return handler


def setup_logging(debug: bool = False, log_file: Path | None = None) -> None:
    """Konfiguriert Logging: Datei mit Rotation + optional stderr.

    Args:
        debug: Wenn True, wird auch auf stderr geloggt
        log_file: Abweichende Log-Datei (Standard: config.LOG_FILE)
    """
    from config import LOG_FILE

    log_file = log_file or LOG_FILE

    get_session_id()

    # Verhindere doppelte Handler bei mehrfachem Aufruf
    if logger.handlers:
        logger.setLevel(logging.DEBUG if debug else logging.INFO)
        return

    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    handler_added = False

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.addHandler(_file_handler(log_file))
        handler_added = True
    except PermissionError:
        # Fallback: /tmp, wenn Home-Verzeichnis nicht beschreibbar (z.B. Sandbox)
        try:
            logger.addHandler(_file_handler(FALLBACK_LOG_FILE))
            handler_added = True
        except OSError:
            pass
    except OSError:
        # Logging darf den Start nicht blockieren
        pass

    if not handler_added:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(logging.DEBUG if debug else logging.INFO)
        stderr_handler.setFormatter(logging.Formatter(_FILE_FORMAT, "%H:%M:%S"))
        logger.addHandler(stderr_handler)

    # Stderr-Handler (nur im Debug-Modus)
    if debug:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(logging.DEBUG)
        stderr_handler.setFormatter(logging.Formatter(_STDERR_FORMAT))
        logger.addHandler(stderr_handler)


def log(message: str) -> None:
    """Status-Meldung auf stderr.

    Warum stderr? Hält stdout sauber für dekodierte Nachrichten (z.B. `receive.py | tee`).
    """
    print(message, file=sys.stderr)


def error(message: str) -> None:
    """Fehlermeldung auf stderr."""
    print(f"Fehler: {message}", file=sys.stderr)
