"""
Speech narration: PCM decoding, speaker output and single-flight playback.
"""

from audio.pcm import AudioBuffer, decode_speech
from audio.speech import SpeechPlayback, narration_script

__all__ = [
    "AudioBuffer",
    "decode_speech",
    "SpeechPlayback",
    "narration_script",
]
