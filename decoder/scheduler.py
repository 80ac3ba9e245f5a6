"""Single-Flight Dekodierung abseits des Capture-Pfads.

Ein akzeptierter Trigger kopiert den SharedAudioBuffer in einen DecodeJob,
leert ihn und übergibt den Job einem eigenen Worker-Thread. Solange ein Job
läuft, werden weitere Trigger verworfen (nicht gequeued) – das ist die
Backpressure-Strategie, kein Fehler.

Threading-Vertrag: `on_message` wird im Async-Modus auf dem Worker-Thread
aufgerufen. Nicht thread-sichere Sinks müssen selbst auf ihren Kontext
marshallen (z.B. via queue.Queue).
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field

import numpy as np

from audio.buffer import SharedAudioBuffer
from utils.timing import log_preview, timed_operation

from .bits import bits_to_message

logger = logging.getLogger("tbsk_receiver.decoder")


@dataclass(frozen=True)
class DecodeJob:
    """Unveränderlicher Snapshot des Puffers zum Trigger-Zeitpunkt."""

    job_id: int
    samples: np.ndarray
    created_at: float = field(default_factory=time.monotonic)

    def __post_init__(self):
        self.samples.setflags(write=False)

    def __len__(self) -> int:
        return int(self.samples.size)


class DecodeScheduler:
    """Führt Demodulation aus, höchstens ein Job gleichzeitig.

    Das "decoding"-Flag wird unter demselben Lock geprüft und gesetzt, der
    auch den Puffer-Snapshot schützt. Die Demodulation selbst läuft
    vollständig außerhalb des Locks.
    """

    def __init__(
        self,
        buffer: SharedAudioBuffer,
        demodulator,
        on_message: Callable[[str], None],
        *,
        use_async: bool = True,
    ):
        self._buffer = buffer
        self._demodulator = demodulator
        self._on_message = on_message
        self.use_async = use_async

        self._in_flight = False
        self._idle = threading.Event()
        self._idle.set()
        self._job_ids = itertools.count(1)
        self._executor: ThreadPoolExecutor | None = None
        self._future: Future | None = None

        self.dropped_triggers = 0
        self.completed_jobs = 0
        self.empty_jobs = 0
        self.failed_jobs = 0
        self.last_decode_ms = 0.0

    @property
    def is_decoding(self) -> bool:
        with self._buffer.lock:
            return self._in_flight

    def reset(self) -> None:
        """Setzt das decoding-Flag zurück (bei Start einer neuen Aufnahme)."""
        with self._buffer.lock:
            self._in_flight = False
        self._idle.set()

    def _begin_job(self) -> DecodeJob | None:
        with self._buffer.lock:
            if self._in_flight:
                self.dropped_triggers += 1
                logger.debug(
                    f"Trigger verworfen, Dekodierung läuft "
                    f"(verworfen gesamt: {self.dropped_triggers})"
                )
                return None
            samples = self._buffer.snapshot_and_clear()
            if samples.size == 0:
                return None
            self._in_flight = True
            self._idle.clear()
        return DecodeJob(job_id=next(self._job_ids), samples=samples)

    def _finish_job(self) -> None:
        with self._buffer.lock:
            self._in_flight = False
        self._idle.set()

    def trigger(self) -> bool:
        """Startet einen Job, falls keiner läuft.

        Returns:
            True wenn ein Job angenommen wurde, False wenn verworfen/leer
        """
        job = self._begin_job()
        if job is None:
            return False

        if not self.use_async:
            self._run_job(job)
            return True

        try:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="DecodeWorker"
                )
            self._future = self._executor.submit(self._run_job, job)
        except RuntimeError as e:
            logger.warning(f"Job {job.job_id} konnte nicht gestartet werden: {e}")
            self._finish_job()
            return False
        return True

    def decode_now(self) -> str | None:
        """Synchroner Dekodier-Versuch auf dem aufrufenden Thread."""
        job = self._begin_job()
        if job is None:
            return None
        return self._run_job(job)

    def _demodulate(self, job: DecodeJob) -> list[int]:
        with timed_operation(
            f"Demodulation Job {job.job_id} ({len(job)} Samples)", logger=logger
        ) as timing:
            bits = self._demodulator.demodulate(job.samples)
            # Lazy Bitfolgen werden hier konsumiert und zählen zur Dekodierzeit
            bits = [] if bits is None else [int(bit) for bit in bits]
        self.last_decode_ms = timing.elapsed_ms
        return bits

    def _run_job(self, job: DecodeJob) -> str | None:
        message = None
        try:
            bits = self._demodulate(job)
            if bits:
                message = bits_to_message(bits)
                self.completed_jobs += 1
            else:
                self.empty_jobs += 1
                logger.debug(f"Job {job.job_id}: kein gültiger Frame")
        except Exception as e:
            self.failed_jobs += 1
            logger.warning(f"Dekodierung fehlgeschlagen (Job {job.job_id}): {e}")
        finally:
            self._finish_job()

        if not message:
            return None

        logger.info(f"[DECODED] {log_preview(message)}")
        self._on_message(message)
        return message

    def wait(self, timeout: float | None = None) -> bool:
        """Wartet bis kein Job mehr läuft. False bei Timeout."""
        return self._idle.wait(timeout=timeout)

    def shutdown(self, wait: bool = False) -> None:
        executor = self._executor
        self._executor = None
        if executor is not None:
            executor.shutdown(wait=wait)
