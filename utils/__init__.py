"""Utility-Module für tbsk-receiver.

Gemeinsame Hilfsfunktionen für Logging und Zeitmessung.

Usage:
    from utils import setup_logging, log, error, timed_operation

    setup_logging(debug=True)
    with timed_operation("Demodulation"):
        do_something()
"""

# NOTE:
# Keep this package-level re-export module small. Modules that import `config`
# at module level (history) are imported directly by their users.

from .logging import setup_logging, log, error, get_logger, get_session_id
from .timing import ThroughputMeter, timed_operation, format_duration, log_preview

__all__ = [
    "setup_logging",
    "log",
    "error",
    "get_logger",
    "get_session_id",
    "timed_operation",
    "log_preview",
    "format_duration",
    "ThroughputMeter",
]
