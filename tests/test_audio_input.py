"""Tests for AudioInput ring buffering (no audio device needed)."""

import logging

import numpy as np
import pytest

from pitch_trainer.audio_input import AudioInput


def block(values) -> np.ndarray:
    """Shape a block the way sounddevice delivers it: (frames, channels)."""
    return np.asarray(values, dtype=np.float32).reshape(-1, 1)


class TestAudioInput:
    def setup_method(self):
        self.audio = AudioInput(buffer_size=8, sample_rate=8000)

    def test_initial_state(self):
        assert not self.audio.is_running
        np.testing.assert_array_equal(self.audio.read(), np.zeros(8))

    def test_small_block_is_appended(self):
        self.audio._audio_callback(block([1.0, 2.0, 3.0]), 3, None, None)

        np.testing.assert_array_equal(
            self.audio.read(), [0, 0, 0, 0, 0, 1.0, 2.0, 3.0]
        )

    def test_blocks_accumulate_oldest_first(self):
        self.audio._audio_callback(block([1.0, 2.0, 3.0]), 3, None, None)
        self.audio._audio_callback(block([4.0, 5.0]), 2, None, None)

        np.testing.assert_array_equal(
            self.audio.read(), [0, 0, 0, 1.0, 2.0, 3.0, 4.0, 5.0]
        )

    def test_large_block_keeps_latest_samples(self):
        self.audio._audio_callback(block(np.arange(12)), 12, None, None)

        np.testing.assert_array_equal(self.audio.read(), np.arange(4, 12))

    def test_empty_block(self):
        self.audio._audio_callback(block([1.0]), 1, None, None)
        self.audio._audio_callback(block([]), 0, None, None)

        assert self.audio.read()[-1] == 1.0

    def test_read_returns_copy(self):
        snapshot = self.audio.read()
        snapshot[:] = 9.0
        np.testing.assert_array_equal(self.audio.read(), np.zeros(8))

    def test_reset(self):
        self.audio._audio_callback(block(np.ones(8)), 8, None, None)
        self.audio.reset()
        np.testing.assert_array_equal(self.audio.read(), np.zeros(8))

    def test_status_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="pitch_trainer.audio_input"):
            self.audio._audio_callback(block([0.5]), 1, None, "input overflow")

        assert "input overflow" in caplog.text

    def test_stop_when_not_running(self):
        self.audio.stop()
        assert not self.audio.is_running


class TestAudioInputStream:
    """Stream lifecycle against a stand-in for sounddevice.InputStream."""

    def setup_method(self):
        self.audio = AudioInput(buffer_size=256, sample_rate=8000, device=2)

    def test_start_opens_stream(self, fake_stream):
        self.audio.start()

        assert self.audio.is_running
        stream = fake_stream.instances[0]
        assert stream.started
        assert stream.kwargs["device"] == 2
        assert stream.kwargs["samplerate"] == 8000
        assert stream.kwargs["blocksize"] == 256
        assert stream.kwargs["channels"] == 1
        assert stream.kwargs["callback"] == self.audio._audio_callback

    def test_second_start_is_ignored(self, fake_stream, caplog):
        self.audio.start()
        with caplog.at_level(logging.WARNING, logger="pitch_trainer.audio_input"):
            self.audio.start()

        assert len(fake_stream.instances) == 1
        assert "already running" in caplog.text

    def test_stop_closes_stream(self, fake_stream):
        self.audio.start()
        self.audio.stop()

        stream = fake_stream.instances[0]
        assert stream.stopped
        assert stream.closed
        assert not self.audio.is_running

    def test_context_manager(self, fake_stream):
        with self.audio as audio:
            assert audio is self.audio
            assert audio.is_running

        stream = fake_stream.instances[0]
        assert stream.stopped
        assert stream.closed
        assert not self.audio.is_running

    def test_context_manager_closes_on_error(self, fake_stream):
        with pytest.raises(RuntimeError):
            with self.audio:
                raise RuntimeError("analysis failed")

        assert fake_stream.instances[0].closed
        assert not self.audio.is_running

    def test_device_error_is_logged_and_raised(self, failing_stream, caplog):
        with caplog.at_level(logging.ERROR, logger="pitch_trainer.audio_input"):
            with pytest.raises(failing_stream):
                self.audio.start()

        assert not self.audio.is_running
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert "Error querying device" in errors[0].getMessage()
