"""
Gemini adapter for the analysis and speech calls.

This is the only place that knows about the google-genai SDK. It turns
assembled requests into SDK calls and turns SDK / transport exceptions
into the pipeline's structured error kinds, so nothing downstream has
to sniff error strings. Each method performs exactly one attempt;
retrying is the ResilientExecutor's job.
"""

import asyncio
import base64
import logging
from typing import List, Optional

import httpx
import requests
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from pipeline.capability import model_for_tier
from pipeline.errors import (
    EmptyResponseError,
    ShadowScanError,
    TerminalRequestError,
    TransportError,
)
from pipeline.schemas import AnalysisRequest, MediaSegment, TextSegment
from scan_settings import ScanSettings

logger = logging.getLogger("shadow_scan.intel.gemini_client")

SYSTEM_INSTRUCTION = (
    "You are 'Shadow Scan', an elite cyber-security AI agent. Your job is to detect "
    "scams, fraud, and manipulation. \n\n"
    "Follow this strict 3-phase analysis process:\n"
    "1. **Recognition Phase**: Identify EXACTLY what the user provided (e.g., 'WhatsApp "
    "Screenshot', 'Voicemail', 'Email Text', 'YouTube Video Context'). Put this in "
    "'contentAnalysis'.\n"
    "2. **Investigation Phase**: Analyze the intent, cross-reference patterns, and detect "
    "manipulation. Document this in 'thoughtProcess'.\n"
    "3. **Verdict Phase**: Calculate the 'Scam Probability' and 'Vibe Score', and fill out "
    "the rest of the report.\n\n"
    "Be sharp, cynical but fair, and very protective of the user."
)


def _string(description: str) -> types.Schema:
    return types.Schema(type=types.Type.STRING, description=description)


def _number(description: str) -> types.Schema:
    return types.Schema(type=types.Type.NUMBER, description=description)


def _string_list(description: str) -> types.Schema:
    return types.Schema(
        type=types.Type.ARRAY,
        items=types.Schema(type=types.Type.STRING),
        description=description,
    )


ANALYSIS_RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "verdict": _string("A short 2-3 word verdict (e.g., 'Likely Safe', 'High Risk Scam', 'Suspicious Activity')."),
        "scamLikelihood": _number("A number from 0 to 100 representing the probability of this being a scam."),
        "vibeScore": _number(
            "A number from 0 to 100 representing the 'vibe'. 0 is malicious/creepy/aggressive, "
            "100 is genuine/safe/friendly."
        ),
        "riskLevel": types.Schema(
            type=types.Type.STRING,
            enum=["LOW", "MEDIUM", "HIGH", "CRITICAL"],
            description="Categorical risk level.",
        ),
        "scamType": _string(
            "The specific category of scam (e.g., 'Phishing', 'Pig Butchering', 'Tech Support Fraud', "
            "'Sextortion', 'Investment Scam', 'YouTube Scam'). If not a scam, label as 'Benign' or 'N/A'."
        ),
        "senderIntent": _string(
            "A concise sentence describing what the sender/creator of the content wants the "
            "recipient to do (e.g., 'Click a malicious link', 'Send money via crypto')."
        ),
        "summary": _string("A concise paragraph explaining the analysis findings."),
        "transcription": _string(
            "If audio or video with speech was provided, provide a verbatim transcription here. "
            "Otherwise, leave empty."
        ),
        "contentAnalysis": _string(
            "A precise, 3-5 word identification of the input content (e.g., 'Instagram DM Screenshot', "
            "'Suspicious Email Header', 'Voicemail Transcription', 'YouTube Video Context')."
        ),
        "thoughtProcess": _string(
            "A transparent, step-by-step reasoning trace. Explain exactly what patterns you saw, "
            "what cross-referenced, and how you calculated the risk score."
        ),
        "redFlags": _string_list("List of specific warning signs detected."),
        "greenFlags": _string_list("List of positive indicators that suggest authenticity."),
        "advice": _string("Actionable advice for the user on what to do next."),
    },
    required=[
        "verdict", "scamLikelihood", "vibeScore", "riskLevel", "scamType", "senderIntent",
        "summary", "contentAnalysis", "thoughtProcess", "redFlags", "greenFlags", "advice",
    ],
)

_NETWORK_ERRORS = (
    httpx.TransportError,
    requests.ConnectionError,
    requests.Timeout,
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)


def classify_error(exc: BaseException) -> ShadowScanError:
    """Map an SDK or transport exception onto the pipeline's error kinds.

    Whitelist: server errors, rate limits, unknown API codes and
    network-level failures are TransportError (retryable); everything
    else is TerminalRequestError.
    """
    if isinstance(exc, ShadowScanError):
        return exc

    if isinstance(exc, genai_errors.ServerError):
        return TransportError(str(exc), status_code=exc.code, kind="server")
    if isinstance(exc, genai_errors.ClientError):
        if exc.code == 429:
            return TransportError(str(exc), status_code=429, kind="rate_limit")
        return TerminalRequestError(str(exc), status_code=exc.code)
    if isinstance(exc, genai_errors.APIError):
        return TransportError(str(exc), status_code=getattr(exc, "code", None), kind="unknown")
    if isinstance(exc, _NETWORK_ERRORS):
        return TransportError(f"{type(exc).__name__}: {exc}", kind="network")

    return TerminalRequestError(f"{type(exc).__name__}: {exc}")


def to_parts(request: AnalysisRequest) -> List[types.Part]:
    parts = []
    for segment in request.segments:
        if isinstance(segment, TextSegment):
            parts.append(types.Part.from_text(text=segment.value))
        elif isinstance(segment, MediaSegment):
            parts.append(types.Part.from_bytes(data=segment.data, mime_type=segment.mime_type))
    return parts


class GeminiClient:
    """
    Single long-lived handle to the Gemini API.

    Constructed explicitly and passed to the pipeline; tests substitute a
    fake object exposing generate_analysis() / synthesize_speech().
    """

    def __init__(self, settings: Optional[ScanSettings] = None, client: Optional[genai.Client] = None):
        self.settings = settings or ScanSettings.from_env()
        self._client = client

        if self._client is None and not self.settings.api_key:
            logger.warning("No API key found. Set GOOGLE_API_KEY (or GEMINI_API_KEY) env var.")

    def _ensure_client(self) -> genai.Client:
        if self._client is None:
            if not self.settings.api_key:
                raise TerminalRequestError("Gemini client not initialized: missing API key.", status_code=401)
            self._client = genai.Client(api_key=self.settings.api_key)
        return self._client

    def model_for(self, request: AnalysisRequest) -> str:
        return model_for_tier(
            request.capability_tier,
            self.settings.standard_model,
            self.settings.extended_model,
        )

    def build_config(self, request: AnalysisRequest) -> types.GenerateContentConfig:
        thinking_config = None
        if request.reasoning_budget is not None:
            thinking_config = types.ThinkingConfig(thinking_budget=request.reasoning_budget)
        return types.GenerateContentConfig(
            system_instruction=SYSTEM_INSTRUCTION,
            response_mime_type="application/json",
            response_schema=ANALYSIS_RESPONSE_SCHEMA,
            temperature=self.settings.temperature,
            thinking_config=thinking_config,
        )

    async def generate_analysis(self, request: AnalysisRequest) -> Optional[str]:
        """One inference attempt. Returns the raw response text (may be None)."""
        client = self._ensure_client()
        model = self.model_for(request)
        logger.debug("Analysis call: model=%s segments=%d reasoning_budget=%s",
                     model, len(request.segments), request.reasoning_budget)
        try:
            response = await client.aio.models.generate_content(
                model=model,
                contents=[types.Content(role="user", parts=to_parts(request))],
                config=self.build_config(request),
            )
        except Exception as e:
            raise classify_error(e) from e

        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise TerminalRequestError(f"Content blocked by the analysis service: {feedback.block_reason}")

        return response.text

    async def synthesize_speech(self, text: str) -> str:
        """One speech attempt. Returns base64 PCM16 mono @ 24kHz."""
        client = self._ensure_client()
        config = types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self.settings.tts_voice)
                )
            ),
        )
        try:
            response = await client.aio.models.generate_content(
                model=self.settings.tts_model,
                contents=[types.Content(role="user", parts=[types.Part.from_text(text=text)])],
                config=config,
            )
        except Exception as e:
            raise classify_error(e) from e

        audio = None
        if response.candidates and response.candidates[0].content and response.candidates[0].content.parts:
            inline = response.candidates[0].content.parts[0].inline_data
            audio = inline.data if inline is not None else None
        if not audio:
            raise EmptyResponseError("No audio generated.")

        if isinstance(audio, (bytes, bytearray)):
            return base64.b64encode(bytes(audio)).decode("ascii")
        return audio
