"""
Analysis orchestration.

One analyze() call runs the stages strictly in order:

    Assembler (+ Enricher) -> Capability Selector -> Resilient Executor -> Contract Validator

and stamps the validated result with the local time. Concurrent calls
are independent; callers that must not overlap submissions keep their
own busy flag.
"""

import logging
import time
from typing import Callable, Optional, Tuple

from pipeline.assembler import Attachment, PayloadAssembler
from pipeline.executor import ResilientExecutor
from pipeline.schemas import AnalysisRequest, AnalysisResult
from pipeline.validator import validate_result

logger = logging.getLogger("shadow_scan.pipeline.orchestrator")


def now_ms() -> int:
    return int(time.time() * 1000)


class AnalysisPipeline:
    """Runs a single analysis end to end against an injected model client.

    Args:
        client: object with `async generate_analysis(request) -> Optional[str]`
        assembler: PayloadAssembler (one without enrichment if None)
        executor: ResilientExecutor for the inference call
        clock_ms: epoch-millisecond clock used for the result timestamp
    """

    def __init__(
        self,
        client,
        assembler: Optional[PayloadAssembler] = None,
        executor: Optional[ResilientExecutor] = None,
        clock_ms: Optional[Callable[[], int]] = None,
    ):
        self.client = client
        self.assembler = assembler or PayloadAssembler()
        self.executor = executor or ResilientExecutor()
        self.clock_ms = clock_ms or now_ms

    async def analyze(
        self,
        text: Optional[str] = None,
        image: Attachment = None,
        audio: Attachment = None,
        video: Attachment = None,
        extended_reasoning: bool = False,
    ) -> AnalysisResult:
        """Analyze the evidence and return a validated, timestamped result.

        Raises:
            EmptyInputError: nothing analyzable was supplied
            RetriesExhaustedError: the service kept failing transiently
            TerminalRequestError: the service rejected the request
            EmptyResponseError / ContractViolationError: unusable answer
        """
        _, result = await self.analyze_with_request(
            text=text, image=image, audio=audio, video=video,
            extended_reasoning=extended_reasoning,
        )
        return result

    async def analyze_with_request(
        self,
        text: Optional[str] = None,
        image: Attachment = None,
        audio: Attachment = None,
        video: Attachment = None,
        extended_reasoning: bool = False,
    ) -> Tuple[AnalysisRequest, AnalysisResult]:
        """Like analyze(), also returning the request that was actually sent."""
        request = await self.assembler.build_request(
            text=text, image=image, audio=audio, video=video,
            extended_reasoning=extended_reasoning,
        )
        logger.info("Analyzing %d segment(s) on the %s tier%s",
                    len(request.segments), request.capability_tier.value,
                    " with extended reasoning" if request.extended_reasoning else "")

        raw_text = await self.run_request(request)
        result = validate_result(raw_text)
        stamped = result.model_copy(update={"timestamp": self.clock_ms()})
        logger.info("Verdict: %s (risk=%s, scam=%.0f, vibe=%.0f)",
                    stamped.verdict, stamped.risk_level.value,
                    stamped.scam_likelihood, stamped.vibe_score)
        return request, stamped

    async def run_request(self, request: AnalysisRequest) -> Optional[str]:
        return await self.executor.execute(
            lambda: self.client.generate_analysis(request), label="inference"
        )
