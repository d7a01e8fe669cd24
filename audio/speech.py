"""
Speech Playback Pipeline

Narrates an analysis result:

    text -> speech service (base64 PCM16 @ 24kHz) -> float32 buffer -> speaker

Playback is single-flight: a new speak() stops whatever is playing, and a
speak() that is superseded while its synthesis is still in flight drops
its audio instead of playing it. Every session clears the "playing"
state exactly once, whether it ends naturally, is stopped, or the audio
device fails.
"""

import asyncio
import logging
from typing import Callable, Optional

from audio.pcm import AudioBuffer, decode_speech
from pipeline.errors import ContractViolationError, EmptyInputError, EmptyResponseError
from pipeline.executor import ResilientExecutor
from pipeline.schemas import AnalysisResult

logger = logging.getLogger("shadow_scan.audio.speech")


def narration_script(result: AnalysisResult) -> str:
    return (
        f"Analysis complete. Verdict: {result.verdict}. "
        f"Risk level: {result.risk_level.value}. "
        f"{result.summary} My advice: {result.advice}"
    )


class PlaybackSession:
    """The one live playback: its buffer, its output handle, its done callback."""

    def __init__(self, buffer: AudioBuffer, on_finished: Callable[["PlaybackSession"], None]):
        self.buffer = buffer
        self.handle = None
        self._on_finished = on_finished
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def finish(self, drain: bool = False) -> bool:
        """End the session. Returns False if it had already ended."""
        if self._finished:
            return False
        self._finished = True
        try:
            if self.handle is not None:
                self.handle.stop(drain=drain)
        except Exception as e:
            logger.error("Failed to release audio output: %s", e)
        finally:
            self._on_finished(self)
        return True


class SpeechPlayback:
    """
    Single-flight narration player.

    Args:
        synthesizer: object with `async synthesize_speech(text) -> str`
        output: object with `play(buffer, on_done) -> handle` where handle has `stop(drain=False)`
        executor: ResilientExecutor wrapping the speech call
        on_playing_changed: optional callback receiving True / False
    """

    def __init__(self, synthesizer, output, executor: Optional[ResilientExecutor] = None,
                 on_playing_changed: Optional[Callable[[bool], None]] = None):
        self.synthesizer = synthesizer
        self.output = output
        self.executor = executor or ResilientExecutor()
        self.on_playing_changed = on_playing_changed
        self._session: Optional[PlaybackSession] = None
        self._generation = 0

    @property
    def is_playing(self) -> bool:
        return self._session is not None

    @property
    def current_session(self) -> Optional[PlaybackSession]:
        return self._session

    async def speak(self, text: str) -> Optional[PlaybackSession]:
        """Synthesize `text` and start playing it.

        Returns the new session, or None if this call was superseded or the
        audio device failed. Synthesis errors propagate to the caller, and a
        payload that is not base64 PCM16 is a ContractViolationError.
        """
        self.stop()
        self._generation += 1
        generation = self._generation

        if not text or not text.strip():
            raise EmptyInputError("Nothing to speak.")

        payload = await self.executor.execute(
            lambda: self.synthesizer.synthesize_speech(text), label="speech"
        )
        if generation != self._generation:
            logger.debug("Discarding synthesized speech superseded by a newer request")
            return None

        try:
            buffer = decode_speech(payload)
        except ValueError as e:
            logger.warning("Speech response could not be decoded: %s", e)
            raise ContractViolationError(f"Speech response could not be decoded: {e}") from e
        if buffer.frame_count == 0:
            raise EmptyResponseError("Speech response carried no audio.")

        loop = asyncio.get_running_loop()
        session = PlaybackSession(buffer, on_finished=self._session_finished)
        self._session = session
        self._notify(True)

        def on_done():
            loop.call_soon_threadsafe(self._natural_end, session)

        try:
            session.handle = self.output.play(buffer, on_done)
        except Exception as e:
            logger.error("Audio playback failed: %s", e)
            session.finish()
            return None

        logger.info("Speaking %.1fs of narration", buffer.duration_s)
        return session

    async def speak_result(self, result: AnalysisResult) -> Optional[PlaybackSession]:
        return await self.speak(narration_script(result))

    def stop(self):
        """Synchronously halt any playback and cancel pending synthesis."""
        self._generation += 1
        session = self._session
        if session is not None:
            session.finish()

    def _natural_end(self, session: PlaybackSession):
        session.finish(drain=True)

    def _session_finished(self, session: PlaybackSession):
        if self._session is session:
            self._session = None
            self._notify(False)

    def _notify(self, playing: bool):
        if self.on_playing_changed is not None:
            self.on_playing_changed(playing)
