"""Periodischer Treiber, der controller.tick() im festen Takt aufruft."""

import logging
import threading
import time

logger = logging.getLogger("tbsk_receiver")


class TickLoop:
    """Daemon-Thread als externer Taktgeber für den RecordingController.

    Usage:
        loop = TickLoop(controller.tick, interval=0.02)
        loop.start()
        ...
        loop.stop()
    """

    def __init__(self, tick, interval: float):
        if interval <= 0:
            raise ValueError(f"interval muss positiv sein: {interval}")
        self._tick = tick
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.ticks = 0

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name="TickLoop"
        )
        self._thread.start()

    def _run(self) -> None:
        logger.debug("TickLoop gestartet")
        last = time.monotonic()
        while not self._stop_event.wait(self.interval):
            now = time.monotonic()
            try:
                self._tick(now - last)
            except Exception:
                logger.exception("Tick fehlgeschlagen")
            last = now
            self.ticks += 1
        logger.debug(f"TickLoop beendet nach {self.ticks} Ticks")

    def stop(self, timeout: float | None = 2.0) -> None:
        self._stop_event.set()
        thread = self._thread
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
