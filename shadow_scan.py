"""
Shadow Scan - caller-facing API.

Wires the analysis pipeline, the history and feedback stores and the
speech player around one Gemini client:

    scanner = ShadowScan(ScanSettings.from_env())
    result = await scanner.analyze(text="Your parcel is held, pay $1.99 here: ...")
    scanner.rate(result, "up")
    await scanner.speak(result)
"""

import logging
from typing import List, Optional

from audio.output import PyAudioOutput
from audio.speech import PlaybackSession, SpeechPlayback
from context.feedback_store import FeedbackRating, FeedbackStore
from context.history_store import HistoryStore, build_history_item
from context.kv_store import JsonFileStore
from intel.gemini_client import GeminiClient
from intel.video_metadata import VideoMetadataEnricher
from pipeline.assembler import Attachment, PayloadAssembler
from pipeline.executor import ResilientExecutor
from pipeline.orchestrator import AnalysisPipeline
from pipeline.schemas import AnalysisResult, HistoryItem, MediaClass
from scan_settings import ScanSettings

logger = logging.getLogger("shadow_scan.facade")


class ShadowScan:
    """
    One scanner instance: pipeline, history, feedback and narration.

    Args:
        settings: resolved configuration (read from the environment if None)
        client: model client exposing generate_analysis() / synthesize_speech()
        output: audio output exposing play(buffer, on_done)
        data_dir: storage directory, overriding settings.data_dir
        enricher: metadata enricher (an oEmbed-backed one if None)
        sleep: awaitable sleep used between retries
    """

    def __init__(self, settings: Optional[ScanSettings] = None, client=None, output=None,
                 data_dir: Optional[str] = None, enricher=None, sleep=None):
        self.settings = settings or ScanSettings.from_env()
        self.client = client or GeminiClient(self.settings)

        if enricher is None:
            enricher = VideoMetadataEnricher(
                endpoint=self.settings.oembed_url,
                timeout_s=self.settings.metadata_timeout_s,
            )
        self.pipeline = AnalysisPipeline(
            self.client,
            assembler=PayloadAssembler(enricher, reasoning_budget=self.settings.reasoning_budget),
            executor=self._make_executor(sleep),
        )

        self.store = JsonFileStore(data_dir or self.settings.data_dir)
        self.history = HistoryStore(self.store, limit=self.settings.history_limit)
        self.feedback = FeedbackStore(self.store)
        self.history.load()

        self.speech = SpeechPlayback(
            self.client,
            output if output is not None else PyAudioOutput(),
            executor=self._make_executor(sleep),
        )

    def _make_executor(self, sleep) -> ResilientExecutor:
        return ResilientExecutor(
            max_attempts=self.settings.max_attempts,
            base_delay_s=self.settings.retry_base_delay_s,
            sleep=sleep,
        )

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def analyze(self, text: Optional[str] = None, image: Attachment = None,
                      audio: Attachment = None, video: Attachment = None,
                      extended_reasoning: bool = False) -> AnalysisResult:
        """Run one analysis and record it in the history.

        Pipeline errors propagate unchanged; a history write failure does not.
        """
        request, result = await self.pipeline.analyze_with_request(
            text=text, image=image, audio=audio, video=video,
            extended_reasoning=extended_reasoning,
        )
        try:
            item = build_history_item(
                result, text=text,
                has_image=request.has_media(MediaClass.IMAGE),
                has_audio=request.has_media(MediaClass.AUDIO),
                has_video=request.has_media(MediaClass.VIDEO),
            )
            self.history_record(item)
        except ValueError as e:
            logger.error("Could not record analysis in history: %s", e)
        return result

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def history_record(self, item: HistoryItem) -> List[HistoryItem]:
        return self.history.record(item)

    def history_load(self) -> List[HistoryItem]:
        return self.history.load()

    def history_clear(self):
        self.history.clear()

    def history_select(self, item_id: str) -> Optional[AnalysisResult]:
        return self.history.select(item_id)

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def rate(self, result: AnalysisResult, rating) -> bool:
        return self.feedback.rate(result, rating)

    def rating(self, result: AnalysisResult) -> Optional[FeedbackRating]:
        return self.feedback.rating(result)

    # ------------------------------------------------------------------
    # Narration
    # ------------------------------------------------------------------

    @property
    def is_speaking(self) -> bool:
        return self.speech.is_playing

    async def speak(self, result: AnalysisResult) -> Optional[PlaybackSession]:
        return await self.speech.speak_result(result)

    def stop_speaking(self):
        self.speech.stop()
