"""Tests for the terminal game front end (no audio device needed)."""

import logging

import numpy as np
import pytest

from pitch_trainer import SAMPLE_RATE, cli
from pitch_trainer.pitch_detector import PitchDetector
from pitch_trainer.pitch_game import GameUpdate, PitchGame


class FakeAudio:
    """Replays one fixed buffer instead of a microphone."""

    def __init__(self, samples: np.ndarray, sample_rate: int = SAMPLE_RATE):
        self.samples = samples
        self.sample_rate = sample_rate
        self.reads = 0

    def read(self) -> np.ndarray:
        self.reads += 1
        return self.samples.copy()


class TestParser:
    def test_defaults(self):
        args = cli.build_parser().parse_args([])

        assert args.samplerate == 44100
        assert args.buffer_size == 2048
        assert args.min_clarity == 80.0
        assert args.min_volume_db == -60.0
        assert args.tolerance == 10.0
        assert args.device is None

    def test_device_index_or_name(self):
        parser = cli.build_parser()
        assert parser.parse_args(["--device", "3"]).device == 3
        assert parser.parse_args(["--device", "USB Mic"]).device == "USB Mic"

    def test_bad_buffer_size(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--buffer-size", "0"])
        assert exc_info.value.code == 2

    def test_bad_fps(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--fps", "0"])
        assert exc_info.value.code == 2

    @pytest.mark.parametrize("rate", ["0", "-44100"])
    def test_bad_samplerate(self, rate, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--samplerate", rate])

        assert exc_info.value.code == 2
        assert "--samplerate must be positive" in capsys.readouterr().err


class TestMain:
    """main() against a stand-in input stream."""

    def test_device_error_exits_with_one(self, failing_stream, caplog, capsys):
        with caplog.at_level(logging.ERROR, logger="pitch_trainer.audio_input"):
            assert cli.main(["--buffer-size", "256", "--duration", "0"]) == 1

        assert any(r.levelno == logging.ERROR for r in caplog.records)
        assert "Audio error" in capsys.readouterr().err

    def test_runs_and_closes_stream(self, fake_stream, capsys):
        assert cli.main(["--buffer-size", "256", "--duration", "0"]) == 0

        stream = fake_stream.instances[0]
        assert stream.started
        assert stream.closed
        assert "Final score: 0" in capsys.readouterr().out


class TestStatusLine:
    def test_voiced(self):
        update = GameUpdate(frequency=440.0, confidence=0.99, voiced=True, score=3, target=512.0)
        line = cli.format_status(update)

        assert "440.0 Hz" in line
        assert "512.0 Hz" in line
        assert "Score: 3" in line

    def test_match_marker(self):
        update = GameUpdate(voiced=True, matched=True, frequency=440.0, score=1, target=300.0)
        assert cli.format_status(update).endswith("*")

    def test_no_target(self):
        assert "Target:         --" in cli.format_status(GameUpdate())


class TestRunGame:
    def setup_method(self):
        t = np.arange(256) / SAMPLE_RATE
        self.audio = FakeAudio(0.8 * np.sin(2 * np.pi * 440.0 * t))
        self.game = PitchGame(PitchDetector(256), rng=np.random.default_rng(5))

    def test_zero_duration(self, capsys):
        score = cli.run_game(self.game, self.audio, fps=60.0, duration=0.0)

        assert score == 0
        assert self.audio.reads == 0
        assert not self.game.is_playing

    def test_interrupt_stops_game(self, monkeypatch, capsys):
        def interrupt(_seconds):
            raise KeyboardInterrupt

        monkeypatch.setattr(cli.time, "sleep", interrupt)

        score = cli.run_game(self.game, self.audio, fps=60.0)

        assert self.audio.reads == 1
        assert score == self.game.score
        assert not self.game.is_playing
        assert "Target:" in capsys.readouterr().out
