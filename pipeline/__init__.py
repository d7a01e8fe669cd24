"""
Pipeline module for multi-modal scam analysis.

One analysis is a single inference call against a strict result
contract:

    User -> PayloadAssembler (text + image / audio / video, optional video metadata)
                      |
                      v
            Capability Selector (standard / extended tier)
                      |
                      v
            ResilientExecutor (classified retry, exponential backoff)
                      |
                      v
            Result Contract Validator -> AnalysisResult (timestamped)
"""

from pipeline.schemas import (
    AnalysisRequest,
    AnalysisResult,
    CapabilityTier,
    HistoryItem,
    MediaClass,
    MediaSegment,
    RiskLevel,
    TextSegment,
)
from pipeline.assembler import PayloadAssembler
from pipeline.executor import ResilientExecutor
from pipeline.orchestrator import AnalysisPipeline
from pipeline.validator import validate_result

__all__ = [
    "AnalysisRequest",
    "AnalysisResult",
    "CapabilityTier",
    "HistoryItem",
    "MediaClass",
    "MediaSegment",
    "RiskLevel",
    "TextSegment",
    "PayloadAssembler",
    "ResilientExecutor",
    "AnalysisPipeline",
    "validate_result",
]
