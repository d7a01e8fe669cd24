"""
Tests for the Gemini adapter.

Verifies that:
- SDK and transport exceptions are classified into retryable / terminal kinds
- The analysis call targets the tier's model with the strict JSON contract
- Extended reasoning attaches a thinking budget
- Speech synthesis returns base64 audio and rejects empty responses
"""

import asyncio
import os
import sys
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest
import requests
from google.genai import errors as genai_errors

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from intel.gemini_client import (
    ANALYSIS_RESPONSE_SCHEMA,
    SYSTEM_INSTRUCTION,
    GeminiClient,
    classify_error,
    to_parts,
)
from pipeline.errors import (
    EmptyInputError,
    EmptyResponseError,
    TerminalRequestError,
    TransportError,
)
from pipeline.schemas import AnalysisRequest, CapabilityTier, MediaClass, MediaSegment, TextSegment
from scan_settings import ScanSettings
from scan_test_utils import sample_result_json

SETTINGS = ScanSettings(api_key="test-key", standard_model="std-model", extended_model="ext-model",
                        tts_model="tts-model", tts_voice="Fenrir")


def api_error(cls, code, status, message="failure"):
    return cls(code, {"error": {"code": code, "status": status, "message": message}})


def text_request(extended=False):
    return AnalysisRequest(
        segments=(TextSegment(value="Analyze this"),),
        capability_tier=CapabilityTier.EXTENDED if extended else CapabilityTier.STANDARD,
        extended_reasoning=extended,
        reasoning_budget=32768 if extended else None,
    )


def fake_sdk(response=None, error=None):
    generate = AsyncMock(return_value=response, side_effect=error)
    sdk = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate)))
    return sdk, generate


def audio_response(data):
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data) if data is not None else None)
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


class TestClassifyError:
    def test_server_error_is_transport(self):
        err = classify_error(api_error(genai_errors.ServerError, 503, "UNAVAILABLE"))
        assert isinstance(err, TransportError)
        assert err.status_code == 503
        assert err.kind == "server"

    def test_rate_limit_is_transport(self):
        err = classify_error(api_error(genai_errors.ClientError, 429, "RESOURCE_EXHAUSTED"))
        assert isinstance(err, TransportError)
        assert err.kind == "rate_limit"

    @pytest.mark.parametrize("code,status", [
        (400, "INVALID_ARGUMENT"),
        (401, "UNAUTHENTICATED"),
        (403, "PERMISSION_DENIED"),
        (404, "NOT_FOUND"),
    ])
    def test_client_errors_are_terminal(self, code, status):
        err = classify_error(api_error(genai_errors.ClientError, code, status))
        assert isinstance(err, TerminalRequestError)
        assert err.status_code == code

    def test_unknown_api_code_is_transport(self):
        err = classify_error(api_error(genai_errors.APIError, 302, "MOVED"))
        assert isinstance(err, TransportError)
        assert err.kind == "unknown"

    @pytest.mark.parametrize("exc", [
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("read timed out"),
        requests.ConnectionError("dns failure"),
        ConnectionResetError("reset by peer"),
        TimeoutError("timed out"),
    ])
    def test_network_errors_are_transport(self, exc):
        err = classify_error(exc)
        assert isinstance(err, TransportError)
        assert err.kind == "network"

    def test_anything_else_is_terminal(self):
        assert isinstance(classify_error(ValueError("bad")), TerminalRequestError)

    def test_pipeline_errors_pass_through(self):
        original = EmptyInputError("nothing")
        assert classify_error(original) is original


class TestRequestMapping:
    def test_parts_follow_segment_order(self):
        request = AnalysisRequest(
            segments=(
                TextSegment(value="Analyze this"),
                MediaSegment(media_class=MediaClass.IMAGE, mime_type="image/png", data=b"\x89PNG"),
                TextSegment(value="Look at the image"),
            ),
            capability_tier=CapabilityTier.EXTENDED,
        )

        parts = to_parts(request)
        assert [p.text for p in parts] == ["Analyze this", None, "Look at the image"]
        assert parts[1].inline_data.mime_type == "image/png"
        assert parts[1].inline_data.data == b"\x89PNG"

    def test_model_follows_tier(self):
        client = GeminiClient(SETTINGS, client=object())
        assert client.model_for(text_request()) == "std-model"
        assert client.model_for(text_request(extended=True)) == "ext-model"

    def test_config_without_reasoning(self):
        config = GeminiClient(SETTINGS, client=object()).build_config(text_request())
        assert config.system_instruction == SYSTEM_INSTRUCTION
        assert config.response_mime_type == "application/json"
        assert config.response_schema == ANALYSIS_RESPONSE_SCHEMA
        assert config.temperature == pytest.approx(0.4)
        assert config.thinking_config is None

    def test_config_with_reasoning(self):
        config = GeminiClient(SETTINGS, client=object()).build_config(text_request(extended=True))
        assert config.thinking_config.thinking_budget == 32768


class TestGenerateAnalysis:
    def test_returns_response_text(self):
        sdk, generate = fake_sdk(SimpleNamespace(text=sample_result_json(), prompt_feedback=None))
        client = GeminiClient(SETTINGS, client=sdk)

        text = asyncio.run(client.generate_analysis(text_request()))

        assert text == sample_result_json()
        kwargs = generate.await_args.kwargs
        assert kwargs["model"] == "std-model"
        assert kwargs["contents"][0].role == "user"
        assert kwargs["contents"][0].parts[0].text == "Analyze this"

    def test_sdk_errors_are_classified(self):
        cause = api_error(genai_errors.ServerError, 500, "INTERNAL")
        sdk, _ = fake_sdk(error=cause)

        with pytest.raises(TransportError) as exc_info:
            asyncio.run(GeminiClient(SETTINGS, client=sdk).generate_analysis(text_request()))
        assert exc_info.value.__cause__ is cause

    def test_blocked_prompt_is_terminal(self):
        response = SimpleNamespace(text=None, prompt_feedback=SimpleNamespace(block_reason="SAFETY"))
        sdk, _ = fake_sdk(response)

        with pytest.raises(TerminalRequestError, match="SAFETY"):
            asyncio.run(GeminiClient(SETTINGS, client=sdk).generate_analysis(text_request()))

    def test_missing_api_key(self):
        client = GeminiClient(ScanSettings(api_key=None))
        with pytest.raises(TerminalRequestError) as exc_info:
            asyncio.run(client.generate_analysis(text_request()))
        assert exc_info.value.status_code == 401


class TestSynthesizeSpeech:
    def test_bytes_are_base64_encoded(self):
        sdk, generate = fake_sdk(audio_response(b"\x00\x01"))

        audio = asyncio.run(GeminiClient(SETTINGS, client=sdk).synthesize_speech("hello"))

        assert audio == "AAE="
        kwargs = generate.await_args.kwargs
        assert kwargs["model"] == "tts-model"
        assert kwargs["config"].response_modalities == ["AUDIO"]
        voice = kwargs["config"].speech_config.voice_config.prebuilt_voice_config.voice_name
        assert voice == "Fenrir"

    def test_base64_text_passes_through(self):
        sdk, _ = fake_sdk(audio_response("AAE="))
        assert asyncio.run(GeminiClient(SETTINGS, client=sdk).synthesize_speech("hello")) == "AAE="

    @pytest.mark.parametrize("response", [
        SimpleNamespace(candidates=[]),
        SimpleNamespace(candidates=None),
        audio_response(None),
        audio_response(b""),
    ])
    def test_no_audio(self, response):
        sdk, _ = fake_sdk(response)
        with pytest.raises(EmptyResponseError):
            asyncio.run(GeminiClient(SETTINGS, client=sdk).synthesize_speech("hello"))
