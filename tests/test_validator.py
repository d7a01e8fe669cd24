"""
Tests for the Result Contract Validator.
"""

import json
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pipeline.errors import ContractViolationError, EmptyResponseError
from pipeline.schemas import RiskLevel
from pipeline.validator import validate_result
from scan_test_utils import SAMPLE_RESULT, sample_result_json


class TestValidPayloads:
    def test_full_payload(self):
        result = validate_result(sample_result_json())

        assert result.verdict == "High Risk Scam"
        assert result.scam_likelihood == 92
        assert result.vibe_score == 8
        assert result.risk_level is RiskLevel.HIGH
        assert result.red_flags == ["Urgency", "Unknown sender", "Shortened link"]
        assert result.green_flags == []
        assert result.content_analysis == "SMS Delivery Notice"
        assert result.timestamp is None

    def test_code_fenced_payload(self):
        result = validate_result("```json\n" + sample_result_json() + "\n```")
        assert result.scam_type == "Phishing"

    def test_optional_fields_may_be_missing(self):
        data = dict(SAMPLE_RESULT)
        del data["contentAnalysis"]
        del data["thoughtProcess"]

        result = validate_result(json.dumps(data))
        assert result.content_analysis is None
        assert result.thought_process is None
        assert result.transcription is None

    def test_remote_timestamp_is_discarded(self):
        result = validate_result(sample_result_json(timestamp=12345))
        assert result.timestamp is None

    def test_unknown_fields_are_ignored(self):
        result = validate_result(sample_result_json(confidence="very"))
        assert not hasattr(result, "confidence")

    def test_score_bounds_are_inclusive(self):
        result = validate_result(sample_result_json(scamLikelihood=0, vibeScore=100))
        assert result.scam_likelihood == 0
        assert result.vibe_score == 100

    def test_scores_are_independent(self):
        result = validate_result(sample_result_json(scamLikelihood=95, vibeScore=95))
        assert (result.scam_likelihood, result.vibe_score) == (95, 95)

    @pytest.mark.parametrize("level", ["LOW", "MEDIUM", "HIGH", "CRITICAL"])
    def test_risk_level_strings(self, level):
        assert validate_result(sample_result_json(riskLevel=level)).risk_level is RiskLevel(level)

    def test_fractional_scores(self):
        result = validate_result(sample_result_json(scamLikelihood=12.5))
        assert result.scam_likelihood == 12.5


class TestRejectedPayloads:
    @pytest.mark.parametrize("raw", [None, "", "   \n"])
    def test_empty_response(self, raw):
        with pytest.raises(EmptyResponseError):
            validate_result(raw)

    def test_not_json(self):
        with pytest.raises(ContractViolationError, match="not valid JSON"):
            validate_result("The message looks like a scam.")

    def test_not_an_object(self):
        with pytest.raises(ContractViolationError, match="JSON object"):
            validate_result("[1, 2, 3]")

    def test_missing_required_field(self):
        data = dict(SAMPLE_RESULT)
        del data["riskLevel"]
        with pytest.raises(ContractViolationError, match="riskLevel"):
            validate_result(json.dumps(data))

    def test_out_of_range_score(self):
        with pytest.raises(ContractViolationError, match="scamLikelihood"):
            validate_result(sample_result_json(scamLikelihood=150))

    def test_negative_score(self):
        with pytest.raises(ContractViolationError, match="vibeScore"):
            validate_result(sample_result_json(vibeScore=-1))

    def test_unknown_risk_level(self):
        with pytest.raises(ContractViolationError, match="riskLevel"):
            validate_result(sample_result_json(riskLevel="EXTREME"))

    def test_wrong_flag_type(self):
        with pytest.raises(ContractViolationError, match="redFlags"):
            validate_result(sample_result_json(redFlags="Urgency"))

    def test_python_field_names_are_not_accepted(self):
        data = dict(SAMPLE_RESULT)
        data["scam_likelihood"] = data.pop("scamLikelihood")
        data["risk_level"] = data.pop("riskLevel")
        with pytest.raises(ContractViolationError, match="scamLikelihood"):
            validate_result(json.dumps(data))

    def test_numeric_string_score_is_not_coerced(self):
        with pytest.raises(ContractViolationError, match="scamLikelihood"):
            validate_result(sample_result_json(scamLikelihood="85"))

    def test_boolean_score_is_not_coerced(self):
        with pytest.raises(ContractViolationError, match="vibeScore"):
            validate_result(sample_result_json(vibeScore=True))

    def test_nan_score(self):
        with pytest.raises(ContractViolationError):
            validate_result(sample_result_json(scamLikelihood=float("nan")))
