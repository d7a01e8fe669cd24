"""
PCM16 decoding for synthesized speech.

The speech service returns base64-encoded little-endian 16-bit signed
mono PCM at 24kHz. Playback wants float samples in [-1, 1].
"""

import base64
import binascii
import logging
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger("shadow_scan.audio.pcm")

SAMPLE_RATE = 24000  # Speech output rate (model outputs at 24kHz)
CHANNELS = 1
PCM16_SCALE = 32768.0


@dataclass(frozen=True)
class AudioBuffer:
    """A playable mono float32 buffer."""
    samples: np.ndarray
    sample_rate: int = SAMPLE_RATE
    channels: int = CHANNELS

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration_s(self) -> float:
        return self.frame_count / float(self.sample_rate)

    def to_bytes(self) -> bytes:
        return self.samples.astype(np.float32).tobytes()


def decode_base64(payload: str) -> bytes:
    try:
        return base64.b64decode("".join(payload.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Speech payload is not valid base64: {e}") from e


def pcm16_to_float32(raw: bytes) -> np.ndarray:
    """Reinterpret little-endian int16 bytes and scale each sample by 1/32768."""
    if len(raw) % 2:
        logger.debug("Dropping trailing odd byte from PCM16 payload")
        raw = raw[:-1]
    ints = np.frombuffer(raw, dtype="<i2")
    return ints.astype(np.float32) / np.float32(PCM16_SCALE)


def decode_speech(payload: str, sample_rate: int = SAMPLE_RATE) -> AudioBuffer:
    """base64 PCM16 mono -> AudioBuffer of normalized float32 samples."""
    return AudioBuffer(samples=pcm16_to_float32(decode_base64(payload)), sample_rate=sample_rate)
