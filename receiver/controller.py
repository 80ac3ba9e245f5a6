"""RecordingController: Zustandsmaschine des Empfängers.

Komponiert Capture, Puffer, RMS, Trigger und Scheduler und stellt
start()/stop()/tick() bereit.

State-Flow:
    idle → [start] → recording → [stop] → idle

Pro tick() (nur im Zustand recording):
    Ringpuffer lesen → normalisieren → Puffer + RMS (unter Puffer-Lock)
    → Trigger auswerten → ggf. Dekodierung anstoßen
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from audio.buffer import SharedAudioBuffer
from audio.capture import CaptureDevice, DeviceError, RingBufferCapture
from audio.rms import RmsTracker, rms_window_size
from cli.types import StopTailPolicy
from decoder.scheduler import DecodeScheduler
from utils.logging import get_session_id
from utils.state import ReceiverState
from utils.timing import ThroughputMeter

from .settings import ReceiverConfig
from .trigger import create_trigger

logger = logging.getLogger("tbsk_receiver")

MessageListener = Callable[[str], None]

STATS_INTERVAL = 1.0


class RecordingController:
    """Empfänger für TBSK-Nachrichten aus einem Live-Mikrofon.

    Usage:
        controller = RecordingController(device, demodulator, config)
        controller.add_listener(print)
        controller.start()
        while running:
            controller.tick()
        controller.stop()

    Listener werden im Async-Modus auf dem Decode-Worker aufgerufen,
    beim Stop-Flush und im Sync-Modus auf dem aufrufenden Thread.
    """

    def __init__(
        self,
        device: CaptureDevice,
        demodulator,
        config: ReceiverConfig | None = None,
    ):
        self.config = (config or ReceiverConfig()).validate()
        self.device = device

        self._state = ReceiverState.IDLE
        self._state_lock = threading.RLock()
        self._listeners: list[MessageListener] = []

        self._buffer = SharedAudioBuffer()
        self._rms = RmsTracker(rms_window_size(self.config.sample_rate))
        self._capture = RingBufferCapture(device, self.config.process_chunk_size)
        self._trigger = create_trigger(self.config)
        self._scheduler = DecodeScheduler(
            self._buffer,
            demodulator,
            self._publish,
            use_async=self.config.use_async_decode,
        )

        self.last_message = ""
        self.samples_processed = 0
        self._last_tick: float | None = None
        self._throughput = ThroughputMeter(STATS_INTERVAL)

    # =========================================================================
    # Listener
    # =========================================================================

    def add_listener(self, listener: MessageListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: MessageListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _publish(self, message: str) -> None:
        self.last_message = message
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception as e:
                logger.warning(f"Listener-Fehler ignoriert ({listener!r}): {e}")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Öffnet das Gerät und wechselt nach recording.

        Raises:
            DeviceError: Wenn das Gerät nicht geöffnet werden kann (bleibt idle)
        """
        with self._state_lock:
            if self._state is ReceiverState.RECORDING:
                return

            cfg = self.config
            try:
                self.device.open(cfg.device, cfg.channels, cfg.sample_rate)
            except DeviceError as e:
                logger.error(f"[{get_session_id()}] Aufnahme-Start fehlgeschlagen: {e}")
                self._close_device()
                raise

            self._capture.reset()
            with self._buffer.lock:
                self._buffer.clear()
                self._rms.reset()
            self._trigger.reset()
            self._scheduler.reset()
            self.samples_processed = 0
            self._last_tick = None
            self._throughput.reset()

            self._state = ReceiverState.RECORDING
            logger.info(
                f"[{get_session_id()}] Aufnahme gestartet: {cfg.sample_rate}Hz, "
                f"Trigger={cfg.trigger_mode.value}, "
                f"{'async' if cfg.use_async_decode else 'sync'}"
            )

    def stop(self) -> str | None:
        """Schließt das Gerät und wechselt nach idle.

        Liegen noch Samples im Puffer und läuft keine Dekodierung, wird ein
        letzter synchroner Versuch gemacht. Läuft eine Dekodierung, entscheidet
        `stop_tail_policy`: discard verwirft den Rest, wait wartet bis zu
        `stop_wait_timeout` Sekunden und dekodiert dann. Ist der laufende Job
        nach dem Timeout noch nicht fertig, wird der Rest auch bei wait
        verworfen, damit nie zwei Demodulationen gleichzeitig laufen.

        Returns:
            Die beim Flush dekodierte Nachricht oder None
        """
        with self._state_lock:
            if self._state is not ReceiverState.RECORDING:
                return None

            self._state = ReceiverState.IDLE
            self._close_device()

            if (
                self._scheduler.is_decoding
                and self.config.stop_tail_policy is StopTailPolicy.wait
            ):
                if not self._scheduler.wait(timeout=self.config.stop_wait_timeout):
                    logger.warning(
                        f"Laufende Dekodierung nach {self.config.stop_wait_timeout:.1f}s "
                        "nicht fertig"
                    )

            result = None
            remaining = len(self._buffer)
            if remaining and not self._scheduler.is_decoding:
                result = self._scheduler.decode_now()
            elif remaining:
                self._buffer.clear()
                logger.info(
                    f"Dekodierung läuft noch – {remaining} Rest-Samples verworfen"
                )

            logger.info(
                f"[{get_session_id()}] Aufnahme gestoppt "
                f"({self.samples_processed} Samples verarbeitet, "
                f"{self.overflows} Überläufe)"
            )
            return result

    def close(self, wait: bool = False) -> None:
        """Stoppt (falls nötig) und beendet den Decode-Worker.

        Args:
            wait: Wenn True, wird ein laufender Job noch zu Ende geführt
                (inkl. Zustellung an die Listener).
        """
        self.stop()
        self._scheduler.shutdown(wait=wait)

    def _close_device(self) -> None:
        try:
            self.device.close()
        except Exception as e:
            logger.warning(f"Gerät konnte nicht sauber geschlossen werden: {e}")

    # =========================================================================
    # Tick
    # =========================================================================

    def tick(self, elapsed: float | None = None) -> None:
        """Ein Zyklus: Capture, RMS, Trigger, ggf. Dekodierung.

        Args:
            elapsed: Sekunden seit dem letzten Tick. None → gemessen per
                time.monotonic().

        Fehler eines Zyklus werden geloggt und brechen die Aufnahme nicht ab.
        """
        now = time.monotonic()
        if elapsed is None:
            elapsed = 0.0 if self._last_tick is None else now - self._last_tick
        self._last_tick = now

        with self._state_lock:
            if self._state is not ReceiverState.RECORDING:
                return
            try:
                self._process(elapsed)
            except Exception:
                logger.exception("Fehler im Tick – Zyklus übersprungen")

            if self.config.debug_stats:
                self._log_stats()

    def _process(self, elapsed: float) -> None:
        samples = self._capture.read_chunk()
        if samples is None:
            return

        if samples.size:
            with self._buffer.lock:
                self._buffer.append(samples)
                self._rms.update_many(samples)
            self.samples_processed += samples.size
            self._throughput.add(samples.size)

        if self._scheduler.is_decoding:
            return

        if self._trigger.evaluate(self.current_rms, elapsed, self.buffered_seconds):
            self._scheduler.trigger()

    def _log_stats(self) -> None:
        rate = self._throughput.poll()
        if rate is None:
            return
        logger.debug(
            f"Verarbeitet {rate:.0f} Samples/s, "
            f"Puffer: {self.buffer_size}, RMS: {self.current_rms:.3f}, "
            f"letzte Dekodierung: {self._scheduler.last_decode_ms:.0f}ms, "
            f"Überläufe: {self.overflows}"
        )

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> ReceiverState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state is ReceiverState.RECORDING

    @property
    def is_decoding(self) -> bool:
        return self._scheduler.is_decoding

    @property
    def current_rms(self) -> float:
        with self._buffer.lock:
            return self._rms.current_rms()

    @property
    def buffer_size(self) -> int:
        return len(self._buffer)

    @property
    def buffered_seconds(self) -> float:
        return self._buffer.duration(self.config.sample_rate)

    @property
    def scheduler(self) -> DecodeScheduler:
        return self._scheduler

    @property
    def overflows(self) -> int:
        return self.device.overflows

    @property
    def dropped_triggers(self) -> int:
        return self._scheduler.dropped_triggers
