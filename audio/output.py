"""
Speaker output through PyAudio.

Buffers are played in PyAudio callback mode so playback never blocks
the event loop and stop() can halt output synchronously by closing the
stream. PyAudio is optional: without it, the first attempt to play
raises RuntimeError.
"""

import logging
import threading
from typing import Callable, Optional

try:
    import pyaudio
    PYAUDIO_AVAILABLE = True
except ImportError:
    PYAUDIO_AVAILABLE = False

from audio.pcm import AudioBuffer

logger = logging.getLogger("shadow_scan.audio.output")

CHUNK_SIZE = 1024
BYTES_PER_SAMPLE = 4  # float32


class PyAudioPlayback:
    """Handle for one buffer being played on an output stream."""

    def __init__(self, data: bytes, bytes_per_frame: int, on_done: Callable[[], None]):
        self._data = data
        self._pos = 0
        self._bytes_per_frame = bytes_per_frame
        self._on_done = on_done
        self._lock = threading.Lock()
        self._closed = False
        self.stream = None

    def callback(self, in_data, frame_count, time_info, status):
        """PyAudio stream callback; runs on the audio thread."""
        try:
            wanted = frame_count * self._bytes_per_frame
            chunk = self._data[self._pos:self._pos + wanted]
            self._pos += len(chunk)
            if len(chunk) < wanted:
                chunk += b"\x00" * (wanted - len(chunk))
                self._on_done()
                return chunk, pyaudio.paComplete
            return chunk, pyaudio.paContinue
        except Exception as e:
            logger.error("Playback callback error: %s", e)
            self._on_done()
            return b"", pyaudio.paAbort

    def stop(self, drain: bool = False):
        """Halt output and release the stream. Safe to call more than once."""
        with self._lock:
            if self._closed or self.stream is None:
                self._closed = True
                return
            self._closed = True
            stream = self.stream
        try:
            if drain and stream.is_active():
                stream.stop_stream()
        finally:
            # Closing an active stream discards pending buffers immediately.
            stream.close()


class PyAudioOutput:
    """Default audio output device."""

    def __init__(self, frames_per_buffer: int = CHUNK_SIZE):
        self.frames_per_buffer = frames_per_buffer
        self._pya = None

    def _ensure_initialized(self):
        if not PYAUDIO_AVAILABLE:
            raise RuntimeError("PyAudio is not installed; install the 'audio' extra to enable speech playback.")
        if self._pya is None:
            self._pya = pyaudio.PyAudio()
        return self._pya

    def play(self, buffer: AudioBuffer, on_done: Callable[[], None]) -> PyAudioPlayback:
        """Start playing `buffer`; `on_done` fires (audio thread) when it runs out."""
        pya = self._ensure_initialized()
        playback = PyAudioPlayback(
            buffer.to_bytes(),
            bytes_per_frame=BYTES_PER_SAMPLE * buffer.channels,
            on_done=on_done,
        )
        playback.stream = pya.open(
            format=pyaudio.paFloat32,
            channels=buffer.channels,
            rate=buffer.sample_rate,
            output=True,
            frames_per_buffer=self.frames_per_buffer,
            stream_callback=playback.callback,
        )
        logger.debug("Playing %.2fs of audio at %dHz", buffer.duration_s, buffer.sample_rate)
        return playback

    def close(self):
        if self._pya is not None:
            self._pya.terminate()
            self._pya = None
