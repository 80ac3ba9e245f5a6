"""Tests für den Single-Flight DecodeScheduler."""

import threading
import time

import numpy as np
import pytest

from audio.buffer import SharedAudioBuffer
from conftest import text_to_bits
from decoder.scheduler import DecodeJob, DecodeScheduler


@pytest.fixture
def buffer():
    return SharedAudioBuffer()


@pytest.fixture
def received():
    return []


def _scheduler(buffer, demod, received, **kwargs):
    return DecodeScheduler(buffer, demod, received.append, **kwargs)


class TestSyncDecode:
    """Tests im synchronen Modus (Dekodierung auf dem Aufrufer-Thread)."""

    def test_empty_buffer_does_not_start_job(self, buffer, demodulator, received):
        demod = demodulator(bits=text_to_bits("x"))
        scheduler = _scheduler(buffer, demod, received, use_async=False)

        assert scheduler.trigger() is False
        assert demod.calls == []

    def test_publishes_decoded_message(self, buffer, demodulator, received):
        demod = demodulator(bits=text_to_bits("Hi"))
        scheduler = _scheduler(buffer, demod, received, use_async=False)
        buffer.append(np.full(50, 0.1))

        assert scheduler.trigger() is True

        assert received == ["Hi"]
        assert len(buffer) == 0
        assert len(demod.calls[0]) == 50
        assert scheduler.completed_jobs == 1
        assert scheduler.last_decode_ms >= 0
        assert not scheduler.is_decoding

    def test_lazy_bits_count_towards_decode_time(self, buffer, received):
        class LazyDemodulator:
            def demodulate(self, samples):
                for bit in text_to_bits("Hi"):
                    time.sleep(0.005)
                    yield bit

        scheduler = _scheduler(buffer, LazyDemodulator(), received, use_async=False)
        buffer.append(np.full(50, 0.1))

        scheduler.trigger()

        assert received == ["Hi"]
        # 16 Bits x 5ms
        assert scheduler.last_decode_ms >= 70

    @pytest.mark.parametrize("bits", [None, []], ids=["none", "empty"])
    def test_no_frame_publishes_nothing(self, buffer, demodulator, received, bits):
        scheduler = _scheduler(buffer, demodulator(bits=bits), received, use_async=False)
        buffer.append(np.zeros(10))

        scheduler.trigger()

        assert received == []
        assert scheduler.empty_jobs == 1

    def test_demodulator_error_is_isolated(self, buffer, demodulator, received):
        demod = demodulator(error=ValueError("kaputter Frame"))
        scheduler = _scheduler(buffer, demod, received, use_async=False)
        buffer.append(np.zeros(10))

        scheduler.trigger()

        assert received == []
        assert scheduler.failed_jobs == 1
        assert not scheduler.is_decoding

    def test_flag_cleared_before_publish(self, buffer, demodulator):
        seen = []
        scheduler = DecodeScheduler(
            buffer,
            demodulator(bits=text_to_bits("A")),
            lambda message: seen.append(scheduler.is_decoding),
            use_async=False,
        )
        buffer.append(np.zeros(10))

        scheduler.trigger()

        assert seen == [False]

    def test_decode_now(self, buffer, demodulator, received):
        scheduler = _scheduler(
            buffer, demodulator(bits=text_to_bits("tail")), received, use_async=True
        )
        buffer.append(np.zeros(10))

        assert scheduler.decode_now() == "tail"
        assert received == ["tail"]


class TestSingleFlight:
    """Höchstens ein Job gleichzeitig, weitere Trigger werden verworfen."""

    def test_second_trigger_dropped_while_in_flight(
        self, buffer, demodulator, received
    ):
        gate = threading.Event()
        demod = demodulator(bits=text_to_bits("ok"), gate=gate)
        scheduler = _scheduler(buffer, demod, received, use_async=True)

        first = np.full(30, 0.1)
        later = np.full(20, 0.2)
        buffer.append(first)
        assert scheduler.trigger() is True
        assert demod.started.wait(timeout=2)

        buffer.append(later)
        assert scheduler.trigger() is False
        assert scheduler.trigger() is False
        assert scheduler.dropped_triggers == 2
        assert scheduler.is_decoding

        gate.set()
        assert scheduler.wait(timeout=2)
        scheduler.shutdown(wait=True)

        assert demod.max_active == 1
        assert len(demod.calls) == 1
        np.testing.assert_array_equal(demod.calls[0], first)
        # Verworfene Trigger lassen die neuen Samples im Puffer
        assert len(buffer) == 20
        assert received == ["ok"]

    def test_next_job_contains_only_later_samples(
        self, buffer, demodulator, received
    ):
        demod = demodulator(bits=text_to_bits("ok"))
        scheduler = _scheduler(buffer, demod, received, use_async=True)

        buffer.append(np.full(10, 0.1))
        scheduler.trigger()
        assert scheduler.wait(timeout=2)

        buffer.append(np.full(5, 0.3))
        scheduler.trigger()
        assert scheduler.wait(timeout=2)
        scheduler.shutdown(wait=True)

        assert len(demod.calls) == 2
        np.testing.assert_array_equal(demod.calls[1], np.full(5, 0.3))

    def test_error_reenables_triggers(self, buffer, demodulator, received):
        demod = demodulator(error=RuntimeError("boom"))
        scheduler = _scheduler(buffer, demod, received, use_async=True)

        buffer.append(np.zeros(10))
        scheduler.trigger()
        assert scheduler.wait(timeout=2)

        buffer.append(np.zeros(10))
        assert scheduler.trigger() is True
        assert scheduler.wait(timeout=2)
        scheduler.shutdown(wait=True)

        assert scheduler.failed_jobs == 2
        assert scheduler.dropped_triggers == 0


class TestDecodeJob:
    def test_samples_are_read_only(self):
        job = DecodeJob(job_id=1, samples=np.zeros(4))

        with pytest.raises(ValueError):
            job.samples[0] = 1.0
        assert len(job) == 4
