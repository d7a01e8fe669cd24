"""
Result Contract Validator.

The remote payload is untrusted until it passes through here. A missing
required field, a wrong type, an out-of-range score or an unknown risk
level is a ContractViolationError; nothing is ever defaulted in.
"""

import json
import logging
from typing import Optional

from pydantic import ValidationError

from pipeline.errors import ContractViolationError, EmptyResponseError
from pipeline.schemas import AnalysisResult

logger = logging.getLogger("shadow_scan.pipeline.validator")


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def validate_result(raw_text: Optional[str]) -> AnalysisResult:
    """Parse and validate the model's textual output.

    Raises:
        EmptyResponseError: the transport returned no text at all
        ContractViolationError: the text is not a JSON object matching AnalysisResult
    """
    if raw_text is None or not raw_text.strip():
        raise EmptyResponseError("Empty response from the analysis service.")

    try:
        payload = json.loads(_strip_code_fences(raw_text))
    except json.JSONDecodeError as e:
        logger.warning("Analysis response is not valid JSON: %s", e)
        raise ContractViolationError(f"Analysis response is not valid JSON: {e.msg}") from e

    if not isinstance(payload, dict):
        raise ContractViolationError(
            f"Analysis response must be a JSON object, got {type(payload).__name__}"
        )

    # The timestamp belongs to the caller, never to the remote service.
    payload.pop("timestamp", None)

    # Strict JSON mode: scores must be JSON numbers and only the wire names count.
    try:
        return AnalysisResult.model_validate_json(
            json.dumps(payload), strict=True, by_alias=True, by_name=False
        )
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        logger.warning("Analysis response violates the result contract: %s", problems)
        raise ContractViolationError(f"Analysis response violates the result contract: {problems}") from e
