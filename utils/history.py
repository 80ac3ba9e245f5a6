"""Nachrichten-Historie für tbsk-receiver.

Speichert dekodierte Nachrichten in ~/.tbsk_receiver/history.jsonl.
Jede Zeile ist ein JSON-Objekt mit Timestamp und Text.
"""

import json
import logging
from datetime import datetime

from config import HEX_PREFIX, HISTORY_FILE

MAX_HISTORY_SIZE_MB = 10  # Max file size before rotation

logger = logging.getLogger("tbsk_receiver.history")


def save_message(
    text: str,
    *,
    sample_rate: int | None = None,
    duration: float | None = None,
) -> bool:
    """Speichert eine dekodierte Nachricht in der Historie.

    Args:
        text: Die dekodierte Nachricht (UTF-8 Text oder "[HEX] ..." Fallback)
        sample_rate: Samplerate der Aufnahme
        duration: Länge des dekodierten Audio-Abschnitts in Sekunden

    Returns:
        True bei Erfolg, False bei Fehler
    """
    if not text:
        return False

    try:
        HISTORY_FILE.parent.mkdir(parents=True, exist_ok=True)

        _rotate_if_needed()

        entry = {
            "timestamp": datetime.now().isoformat(),
            "text": text,
        }

        # Optional fields (nur wenn gesetzt)
        if text.startswith(HEX_PREFIX):
            entry["hex"] = True
        if sample_rate:
            entry["sample_rate"] = sample_rate
        if duration is not None:
            entry["duration"] = round(duration, 3)

        with HISTORY_FILE.open("a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")

        logger.debug(f"Message saved to history: {text[:50]}")
        return True

    except OSError as e:
        logger.warning(f"Failed to save message to history: {e}")
        return False


def _rotate_if_needed() -> None:
    """Rotiert die Historie wenn sie zu groß wird."""
    if not HISTORY_FILE.exists():
        return

    try:
        size_mb = HISTORY_FILE.stat().st_size / (1024 * 1024)
        if size_mb < MAX_HISTORY_SIZE_MB:
            return

        # Rotate: Keep last 50% of entries
        lines = HISTORY_FILE.read_text(encoding="utf-8").splitlines()
        keep_count = len(lines) // 2
        if keep_count > 0:
            HISTORY_FILE.write_text(
                "\n".join(lines[-keep_count:]) + "\n",
                encoding="utf-8",
            )
            logger.info(f"History rotated: kept {keep_count} of {len(lines)} entries")

    except OSError as e:
        logger.warning(f"History rotation failed: {e}")


def get_recent_messages(count: int = 10) -> list[dict]:
    """Gibt die letzten N Nachrichten zurück (neueste zuerst)."""
    if not HISTORY_FILE.exists():
        return []

    try:
        lines = HISTORY_FILE.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        logger.warning(f"Failed to read history: {e}")
        return []

    entries = []
    for line in reversed(lines[-count:]):
        line = line.strip()
        if not line:
            continue
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError:
            continue

    return entries


def clear_history() -> bool:
    """Löscht die gesamte Historie.

    Returns:
        True bei Erfolg, False bei Fehler
    """
    try:
        if HISTORY_FILE.exists():
            HISTORY_FILE.unlink()
        logger.info("History cleared")
        return True
    except OSError as e:
        logger.warning(f"Failed to clear history: {e}")
        return False
