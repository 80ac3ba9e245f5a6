#!/usr/bin/env python3
"""
CLI-Einstiegspunkt für tbsk-receiver.

Empfängt TBSK-Tonfolgen vom Mikrofon und gibt dekodierte Nachrichten aus.
Dieses Modul koordiniert die Sub-Module:
- audio/: Ringpuffer-Capture, Sample-Puffer, RMS
- decoder/: Demodulator, Single-Flight Scheduler, Bit → Text
- receiver/: Zustandsmaschine, Trigger, Tick-Treiber
- utils/: Logging, Timing, Historie

Nachrichten werden auf stdout ausgegeben, Status auf stderr.

Usage:
    python receive.py
    python receive.py --duration 30 --history
    python receive.py --trigger threshold --decode-threshold 0.5
"""

# Startup-Timing: Zeit erfassen BEVOR andere Imports laden
import time as _time_module  # noqa: E402 - muss vor anderen Imports sein

_PROCESS_START = _time_module.perf_counter()

import logging  # noqa: E402
import queue  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Annotated  # noqa: E402

import typer  # noqa: E402

time = _time_module  # Alias für restlichen Code

from audio import DeviceError, SoundDeviceCapture  # noqa: E402
from cli.types import (  # noqa: E402
    DemodulatorName,
    SampleFormat,
    StopTailPolicy,
    TriggerMode,
)
from decoder import get_demodulator  # noqa: E402
from receiver import ReceiverConfig, RecordingController, TickLoop  # noqa: E402
from utils.env import load_environment  # noqa: E402
from utils.history import (  # noqa: E402
    clear_history,
    get_recent_messages,
    save_message,
)
from utils.logging import (  # noqa: E402
    error,
    get_session_id as _get_session_id,
    log,
    setup_logging,
)
from utils.timing import format_duration as _format_duration  # noqa: E402

# Typer-App
app = typer.Typer(
    help="TBSK-Nachrichten vom Mikrofon empfangen und dekodieren",
    add_completion=False,
)

logger = logging.getLogger("tbsk_receiver")

POLL_INTERVAL = 0.1


def _emit(message: str, *, history: bool, sample_rate: int) -> None:
    """Gibt eine Nachricht auf stdout aus (Main-Thread)."""
    print(message, flush=True)
    if history:
        save_message(message, sample_rate=sample_rate)


def _drain_messages(
    messages: "queue.Queue[str]",
    *,
    history: bool,
    sample_rate: int,
    timeout: float = 0.0,
) -> int:
    """Holt alle wartenden Nachrichten ab. Blockiert höchstens `timeout` Sekunden."""
    count = 0
    try:
        message = messages.get(timeout=timeout) if timeout > 0 else messages.get_nowait()
        while True:
            _emit(message, history=history, sample_rate=sample_rate)
            count += 1
            message = messages.get_nowait()
    except queue.Empty:
        pass
    return count


def _history_command(count: int | None, *, clear: bool) -> None:
    """Gibt die Historie aus bzw. löscht sie, ohne ein Gerät zu öffnen."""
    if count is not None:
        for entry in get_recent_messages(count):
            print(f"{entry.get('timestamp', '?')}  {entry.get('text', '')}")
    if clear:
        if not clear_history():
            error("Historie konnte nicht gelöscht werden")
            raise typer.Exit(1)
        log("🗑  Historie gelöscht.")


@app.command()
def main(
    duration: Annotated[
        float | None,
        typer.Option(help="Nach N Sekunden automatisch stoppen"),
    ] = None,
    device: Annotated[
        str | None,
        typer.Option(help="Eingabegerät (Index oder Name)"),
    ] = None,
    sample_rate: Annotated[
        int | None,
        typer.Option("--sample-rate", help="Samplerate in Hz"),
    ] = None,
    sample_format: Annotated[
        SampleFormat | None,
        typer.Option("--format", help="Sample-Format des Geräts"),
    ] = None,
    ring_buffer_seconds: Annotated[
        float | None,
        typer.Option("--ring-buffer", help="Länge des Geräte-Ringpuffers (s)"),
    ] = None,
    chunk_size: Annotated[
        int | None,
        typer.Option("--chunk-size", help="Samples pro Tick"),
    ] = None,
    trigger: Annotated[
        TriggerMode | None,
        typer.Option(help="Dekodier-Trigger: Stille oder fester Schwellwert"),
    ] = None,
    decode_threshold: Annotated[
        float | None,
        typer.Option(help="Puffer-Dauer für --trigger threshold (s)"),
    ] = None,
    silence_threshold: Annotated[
        float | None,
        typer.Option(help="RMS unterhalb dessen Stille erkannt wird"),
    ] = None,
    silence_hold: Annotated[
        float | None,
        typer.Option(help="Benötigte Stille-Dauer (s)"),
    ] = None,
    min_buffer: Annotated[
        float | None,
        typer.Option(help="Minimale Puffer-Dauer für einen Versuch (s)"),
    ] = None,
    async_decode: Annotated[
        bool | None,
        typer.Option("--async-decode/--sync-decode", help="Dekodierung im Worker-Thread"),
    ] = None,
    stop_tail: Annotated[
        StopTailPolicy | None,
        typer.Option(help="Pufferrest bei Stop während laufender Dekodierung"),
    ] = None,
    demodulator: Annotated[
        DemodulatorName,
        typer.Option(help="Demodulator"),
    ] = DemodulatorName.tbsk,
    history: Annotated[
        bool,
        typer.Option(help="Nachrichten in ~/.tbsk_receiver/history.jsonl speichern"),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option(help="Debug-Logging und Durchsatz-Statistik aktivieren"),
    ] = False,
    log_file: Annotated[
        Path | None,
        typer.Option(help="Log-Datei (Standard: ~/.tbsk_receiver/logs/tbsk_receiver.log)"),
    ] = None,
    show_history: Annotated[
        int | None,
        typer.Option(help="Die letzten N gespeicherten Nachrichten ausgeben und beenden"),
    ] = None,
    clear_history_flag: Annotated[
        bool,
        typer.Option("--clear-history", help="Gespeicherte Nachrichten löschen und beenden"),
    ] = False,
) -> None:
    """TBSK-Nachrichten vom Mikrofon empfangen.

    Beispiele:
        receive.py
        receive.py --duration 30 --history
        receive.py --trigger threshold --decode-threshold 0.5
    """
    load_environment()
    setup_logging(debug=debug, log_file=log_file)

    if show_history is not None or clear_history_flag:
        _history_command(show_history, clear=clear_history_flag)
        return

    try:
        config = ReceiverConfig.from_env(
            sample_rate=sample_rate,
            device=device,
            dtype=sample_format.value if sample_format else None,
            ring_buffer_seconds=ring_buffer_seconds,
            process_chunk_size=chunk_size,
            decode_on_silence=(trigger is TriggerMode.silence) if trigger else None,
            decode_threshold_seconds=decode_threshold,
            silence_rms_threshold=silence_threshold,
            silence_hold_time=silence_hold,
            min_buffer_seconds=min_buffer,
            use_async_decode=async_decode,
            stop_tail_policy=stop_tail,
            debug_stats=debug or None,
        ).validate()
    except ValueError as e:
        raise typer.BadParameter(str(e))

    logger.debug(f"[{_get_session_id()}] Config: {config}")

    try:
        demod = get_demodulator(demodulator.value)
    except ImportError as e:
        error(str(e))
        raise typer.Exit(1)

    capture_device = SoundDeviceCapture(
        ring_buffer_seconds=config.ring_buffer_seconds, dtype=config.dtype
    )
    controller = RecordingController(capture_device, demod, config)

    # Listener laufen auf dem Decode-Worker → über Queue auf den Main-Thread
    messages: queue.Queue[str] = queue.Queue()
    controller.add_listener(messages.put)

    try:
        controller.start()
    except DeviceError as e:
        error(str(e))
        raise typer.Exit(1)

    tick_loop = TickLoop(controller.tick, config.tick_interval)
    tick_loop.start()

    startup_ms = (time.perf_counter() - _PROCESS_START) * 1000
    logger.info(f"[{_get_session_id()}] Startup: {_format_duration(startup_ms)}")
    log("🎧 Empfang läuft... Ctrl+C zum Beenden.")

    deadline = None if duration is None else time.monotonic() + duration
    received = 0
    try:
        while deadline is None or time.monotonic() < deadline:
            received += _drain_messages(
                messages,
                history=history,
                sample_rate=config.sample_rate,
                timeout=POLL_INTERVAL,
            )
    except KeyboardInterrupt:
        log("⏹  Abbruch – verarbeite Rest...")
    finally:
        tick_loop.stop()
        # Laufende Dekodierung noch zustellen lassen, bevor die Queue geleert wird
        controller.close(wait=True)

    received += _drain_messages(
        messages, history=history, sample_rate=config.sample_rate
    )

    log(f"✅ Empfang beendet ({received} Nachrichten).")
    logger.info(
        f"[{_get_session_id()}] ✓ Empfang beendet: {received} Nachrichten, "
        f"{controller.dropped_triggers} Trigger verworfen"
    )


if __name__ == "__main__":
    app()
