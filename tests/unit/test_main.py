"""Unit tests for the command line entry point."""

import asyncio
import logging
import pytest

from speakwrite.main import build_parser, load_token, save_token, setup_logging, wait_for_session
from speakwrite.models.session import SessionState
from speakwrite.services.recording_session import RecordingSession


@pytest.mark.unit
class TestCommandLine:

    def test_parse_record(self):
        args = build_parser().parse_args(["record", "--duration", "5"])
        assert args.command == "record"
        assert args.duration == 5

    def test_parse_dictionary_add(self):
        args = build_parser().parse_args(["dictionary", "add", "nginx", "--pronunciation", "engine x"])
        assert args.action == "add"
        assert args.word == "nginx"
        assert args.pronunciation == "engine x"

    def test_parse_history_delete(self):
        args = build_parser().parse_args(["--config", "sw.yaml", "history", "--delete", "3"])
        assert args.config == "sw.yaml"
        assert args.delete == 3

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_token_round_trip(self, test_config, temp_data_dir):
        test_config.set('client.token_file', f"{temp_data_dir}/auth/token")

        assert load_token(test_config) is None
        save_token(test_config, "abc.def.ghi")
        assert load_token(test_config) == "abc.def.ghi"

    def test_setup_logging_writes_file(self, test_config):
        setup_logging(test_config, "DEBUG")
        logging.getLogger("speakwrite.test").debug("written to file")

        root = logging.getLogger()
        for handler in root.handlers:
            handler.flush()
        log_path = test_config.get('logging.file_path')
        with open(log_path) as f:
            assert "written to file" in f.read()

        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)


def identity(blob: bytes) -> bytes:
    return blob


@pytest.mark.unit
class TestWaitForSession:

    async def test_duration_elapses_then_stops(self, fake_capture_factory, fake_client_factory):
        capture = fake_capture_factory()
        session = RecordingSession(capture, fake_client_factory(), chunk_interval=0.01,
                                   display_interval=10, encoder=identity)
        await session.start()

        result = await wait_for_session(session, duration=0.05)

        assert session.state == SessionState.IDLE
        assert capture.stop_calls == 1
        assert result.capture_error is None

    async def test_returns_when_capture_fails(self, fake_capture_factory, fake_client_factory):
        capture = fake_capture_factory()
        session = RecordingSession(capture, fake_client_factory(), chunk_interval=0.01,
                                   display_interval=10, encoder=identity)
        await session.start()
        capture.error = OSError("Device unplugged")

        result = await asyncio.wait_for(wait_for_session(session, duration=30), timeout=2.0)

        assert session.state == SessionState.IDLE
        assert result.capture_error == "Audio capture failed: Device unplugged"
