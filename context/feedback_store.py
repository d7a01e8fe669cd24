"""
Per-result thumbs up / thumbs down feedback.

Each rating lives under its own storage key derived from the first 20
characters of the result summary plus the result timestamp.
"""

import base64
import logging
from enum import Enum
from typing import Optional

from pipeline.errors import PersistenceError
from pipeline.schemas import AnalysisResult

logger = logging.getLogger("shadow_scan.context.feedback_store")

SUMMARY_PREFIX_CHARS = 20


class FeedbackRating(str, Enum):
    UP = "up"
    DOWN = "down"


def feedback_key(result: AnalysisResult) -> str:
    seed = result.summary[:SUMMARY_PREFIX_CHARS] + (str(result.timestamp) if result.timestamp else "")
    digest = base64.urlsafe_b64encode(seed.encode("utf-8")).decode("ascii").rstrip("=")
    return f"feedback_{digest}"


class FeedbackStore:
    def __init__(self, kv_store):
        self._kv = kv_store

    def rate(self, result: AnalysisResult, rating) -> bool:
        """Store a rating. Returns False if it could not be persisted."""
        rating = FeedbackRating(rating)
        try:
            self._kv.set(feedback_key(result), rating.value)
            return True
        except PersistenceError as e:
            logger.error("Failed to save feedback: %s", e)
            return False

    def rating(self, result: AnalysisResult) -> Optional[FeedbackRating]:
        try:
            value = self._kv.get(feedback_key(result))
        except PersistenceError as e:
            logger.error("Failed to read feedback: %s", e)
            return None
        if value in (FeedbackRating.UP.value, FeedbackRating.DOWN.value):
            return FeedbackRating(value)
        return None
