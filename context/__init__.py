"""
Persistent context for Shadow Scan

Tracks the analysis history and per-result feedback on local storage.
"""

from context.kv_store import JsonFileStore
from context.history_store import HistoryStore, build_history_item
from context.feedback_store import FeedbackRating, FeedbackStore

__all__ = [
    # Storage
    "JsonFileStore",
    # History
    "HistoryStore",
    "build_history_item",
    # Feedback
    "FeedbackRating",
    "FeedbackStore",
]
