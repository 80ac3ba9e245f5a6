"""Tests für die Typer-CLI (receive.py)."""

from unittest.mock import patch

import numpy as np
import pytest
from typer.testing import CliRunner

from audio.capture import DeviceError
from conftest import FakeCaptureDevice, ScriptedDemodulator, text_to_bits
from receive import app

runner = CliRunner()


@pytest.fixture
def cli_env(clean_env):
    """Verhindert .env-Laden und Log-Dateien im Home-Verzeichnis."""
    with (
        patch("receive.load_environment"),
        patch("receive.setup_logging"),
    ):
        yield


class TestCLI:
    """Tests für Typer CLI."""

    def test_receives_and_prints_message(self, cli_env):
        """Pufferrest wird beim Stop dekodiert und auf stdout ausgegeben."""
        device = FakeCaptureDevice(capacity=16000)
        device.write(np.zeros(2000))
        demod = ScriptedDemodulator(bits=text_to_bits("12345432;12345432"))

        with (
            patch("receive.SoundDeviceCapture", return_value=device),
            patch("receive.get_demodulator", return_value=demod),
        ):
            result = runner.invoke(app, ["--duration", "0.3"])

        assert result.exit_code == 0, result.output
        assert "12345432;12345432" in result.stdout
        assert len(demod.calls) == 1
        assert device.close_calls == 1

    def test_history_flag_saves_messages(self, cli_env):
        device = FakeCaptureDevice(capacity=16000)
        device.write(np.zeros(1000))
        demod = ScriptedDemodulator(bits=text_to_bits("Hi"))

        with (
            patch("receive.SoundDeviceCapture", return_value=device),
            patch("receive.get_demodulator", return_value=demod),
            patch("receive.save_message") as mock_save,
        ):
            result = runner.invoke(app, ["--duration", "0.2", "--history"])

        assert result.exit_code == 0, result.output
        mock_save.assert_called_once_with("Hi", sample_rate=8000)

    def test_device_error_exits_1(self, cli_env):
        device = FakeCaptureDevice(fail_open=True)

        with (
            patch("receive.SoundDeviceCapture", return_value=device),
            patch("receive.get_demodulator", return_value=ScriptedDemodulator()),
        ):
            result = runner.invoke(app, ["--duration", "0"])

        assert result.exit_code == 1

    def test_missing_demodulator_backend_exits_1(self, cli_env):
        with patch(
            "receive.get_demodulator",
            side_effect=ImportError("tbskmodem nicht gefunden"),
        ):
            result = runner.invoke(app, ["--duration", "0"])

        assert result.exit_code == 1

    def test_options_reach_config(self, cli_env):
        """CLI-Optionen landen in der ReceiverConfig des Controllers."""
        device = FakeCaptureDevice(capacity=32000)

        with (
            patch("receive.SoundDeviceCapture", return_value=device),
            patch("receive.get_demodulator", return_value=ScriptedDemodulator()),
            patch("receive.RecordingController") as mock_controller,
        ):
            mock_controller.return_value.dropped_triggers = 0
            runner.invoke(
                app,
                [
                    "--duration",
                    "0",
                    "--sample-rate",
                    "16000",
                    "--trigger",
                    "threshold",
                    "--decode-threshold",
                    "0.7",
                    "--sync-decode",
                    "--stop-tail",
                    "wait",
                ],
            )

        config = mock_controller.call_args.args[2]
        assert config.sample_rate == 16000
        assert config.decode_on_silence is False
        assert config.decode_threshold_seconds == 0.7
        assert config.use_async_decode is False
        assert config.stop_tail_policy.value == "wait"

    def test_log_file_option_reaches_setup_logging(self, tmp_path):
        log_path = tmp_path / "rx.log"

        with (
            patch("receive.load_environment"),
            patch("receive.setup_logging") as mock_setup,
            patch("receive.get_recent_messages", return_value=[]),
        ):
            result = runner.invoke(
                app, ["--log-file", str(log_path), "--show-history", "1"]
            )

        assert result.exit_code == 0, result.output
        mock_setup.assert_called_once_with(debug=False, log_file=log_path)

    def test_invalid_trigger(self, cli_env):
        result = runner.invoke(app, ["--trigger", "laut"])
        assert result.exit_code != 0

    def test_invalid_config_value(self, cli_env):
        result = runner.invoke(app, ["--chunk-size", "0", "--duration", "0"])
        assert result.exit_code != 0

    def test_show_history_prints_without_opening_device(self, cli_env):
        entries = [
            {"timestamp": "2026-10-16T10:00:00", "text": "zweite"},
            {"timestamp": "2026-10-16T09:59:00", "text": "erste"},
        ]

        with (
            patch("receive.get_recent_messages", return_value=entries) as mock_recent,
            patch("receive.SoundDeviceCapture") as mock_device,
        ):
            result = runner.invoke(app, ["--show-history", "2"])

        assert result.exit_code == 0, result.output
        mock_recent.assert_called_once_with(2)
        mock_device.assert_not_called()
        assert result.stdout.splitlines() == [
            "2026-10-16T10:00:00  zweite",
            "2026-10-16T09:59:00  erste",
        ]

    def test_clear_history(self, cli_env):
        with (
            patch("receive.clear_history", return_value=True) as mock_clear,
            patch("receive.SoundDeviceCapture") as mock_device,
        ):
            result = runner.invoke(app, ["--clear-history"])

        assert result.exit_code == 0, result.output
        mock_clear.assert_called_once_with()
        mock_device.assert_not_called()

    def test_clear_history_failure_exits_1(self, cli_env):
        with patch("receive.clear_history", return_value=False):
            result = runner.invoke(app, ["--clear-history"])

        assert result.exit_code == 1

    def test_device_error_is_device_error(self):
        """FakeCaptureDevice meldet Öffnungsfehler als DeviceError."""
        with pytest.raises(DeviceError):
            FakeCaptureDevice(fail_open=True).open(None, 1, 8000)
