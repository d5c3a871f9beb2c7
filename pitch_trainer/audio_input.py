"""
Microphone capture keeping the most recent block of samples.
"""

import logging
import threading

import numpy as np

from .constants import BUFFER_SIZE, SAMPLE_RATE

logger = logging.getLogger(__name__)


def list_input_devices() -> list[tuple[int, str]]:
    """Return (index, name) for every device with input channels."""
    import sounddevice as sd

    devices = sd.query_devices()
    return [
        (index, device["name"])
        for index, device in enumerate(devices)
        if device["max_input_channels"] > 0
    ]


class AudioInput:
    """
    Audio capture from an input device.

    The PortAudio callback shifts incoming blocks into a ring buffer of
    buffer_size samples; read() returns a copy of it for analysis on the
    caller's thread.
    """

    def __init__(
        self,
        buffer_size: int = BUFFER_SIZE,
        sample_rate: int = SAMPLE_RATE,
        device: int | str | None = None,
        channels: int = 1,
    ):
        self.buffer_size = buffer_size
        self.sample_rate = sample_rate
        self.device = device
        self.channels = channels

        self._buffer = np.zeros(buffer_size, dtype=np.float64)
        self._lock = threading.Lock()
        self._stream = None

    @property
    def is_running(self) -> bool:
        return self._stream is not None

    def start(self):
        """
        Open the input stream and start capturing.

        Raises:
            sounddevice.PortAudioError: If the device cannot be opened
        """
        import sounddevice as sd

        if self._stream is not None:
            logger.warning("Audio input is already running")
            return

        try:
            stream = sd.InputStream(
                device=self.device,
                samplerate=self.sample_rate,
                blocksize=self.buffer_size,
                channels=self.channels,
                dtype=np.float32,
                callback=self._audio_callback,
            )
            stream.start()
        except sd.PortAudioError as e:
            logger.error("Failed to open audio input %r: %s", self.device, e)
            raise

        self._stream = stream
        logger.info(
            "Listening on device %r at %d Hz, %d samples per buffer",
            self.device,
            self.sample_rate,
            self.buffer_size,
        )

    def stop(self):
        """Stop and close the stream."""
        if self._stream is None:
            return
        self._stream.stop()
        self._stream.close()
        self._stream = None
        logger.info("Audio input stopped")

    def reset(self):
        with self._lock:
            self._buffer[:] = 0.0

    def read(self) -> np.ndarray:
        """Copy of the latest buffer_size samples, oldest first."""
        with self._lock:
            return self._buffer.copy()

    def _audio_callback(self, indata, frames, time, status):
        """Audio callback - shift the new block into the ring buffer."""
        if status:
            logger.warning("Audio status: %s", status)

        block = np.asarray(indata[:, 0], dtype=np.float64)
        shift = min(len(block), self.buffer_size)
        if shift == 0:
            return

        with self._lock:
            self._buffer = np.roll(self._buffer, -shift)
            self._buffer[-shift:] = block[-shift:]

    def __enter__(self) -> "AudioInput":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
