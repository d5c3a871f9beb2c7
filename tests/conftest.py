"""Shared fixtures for tests that open an input stream without a real device."""

import pytest


class FakeStream:
    """Records the calls AudioInput makes on a sounddevice.InputStream."""

    instances: list["FakeStream"] = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.started = False
        self.stopped = False
        self.closed = False
        FakeStream.instances.append(self)

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def close(self):
        self.closed = True


@pytest.fixture
def sounddevice():
    """The real sounddevice module; skipped when PortAudio cannot be loaded."""
    try:
        import sounddevice as sd
    except OSError as e:
        pytest.skip(f"PortAudio library not available: {e}")
    return sd


@pytest.fixture
def fake_stream(sounddevice, monkeypatch):
    FakeStream.instances = []
    monkeypatch.setattr(sounddevice, "InputStream", FakeStream)
    return FakeStream


@pytest.fixture
def failing_stream(sounddevice, monkeypatch):
    def open_stream(**kwargs):
        raise sounddevice.PortAudioError("Error querying device -1")

    monkeypatch.setattr(sounddevice, "InputStream", open_stream)
    return sounddevice.PortAudioError
