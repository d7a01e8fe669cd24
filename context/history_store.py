"""
Analysis History Store

Keeps the most recent analyses, most-recent-first, capped at 20 entries,
and persists the whole list under a single storage key after every
change. Storage problems never interrupt an analysis: they are logged
and the in-memory list carries on.
"""

import logging
import threading
from typing import List, Optional

from pydantic import ValidationError

from pipeline.errors import PersistenceError
from pipeline.schemas import AnalysisResult, HistoryItem

logger = logging.getLogger("shadow_scan.context.history_store")

HISTORY_KEY = "shadow_scan_history"
MAX_HISTORY_ITEMS = 20
SNIPPET_LIMIT = 80
ELLIPSIS = "..."


def make_snippet(text: Optional[str], has_image: bool = False, has_audio: bool = False,
                 has_video: bool = False) -> str:
    """Short label for a history entry: the input text or a modality placeholder."""
    snippet = (text or "").strip()
    if not snippet:
        if has_video:
            snippet = "Video Analysis"
        elif has_audio:
            snippet = "Audio Analysis"
        elif has_image:
            snippet = "Image Analysis"
        else:
            snippet = "Content Analysis"
    if len(snippet) > SNIPPET_LIMIT:
        snippet = snippet[:SNIPPET_LIMIT - len(ELLIPSIS)] + ELLIPSIS
    return snippet


def build_history_item(result: AnalysisResult, text: Optional[str] = None, has_image: bool = False,
                       has_audio: bool = False, has_video: bool = False) -> HistoryItem:
    """Create the history entry for a freshly stamped result."""
    if result.timestamp is None:
        raise ValueError("Result must be stamped with a timestamp before it is recorded")
    return HistoryItem(
        id=str(result.timestamp),
        timestamp=result.timestamp,
        snippet=make_snippet(text, has_image, has_audio, has_video),
        result=result,
        has_image=has_image,
        has_audio=has_audio,
        has_video=has_video,
    )


class HistoryStore:
    """
    Bounded, persisted history of analysis results.

    Features:
    - record(): prepend, truncate to the limit, persist the full list
    - load(): read the persisted list, empty on any problem
    - clear(): drop everything, including the persisted entry
    - select(): look up a stored result, back-filling legacy timestamps
    """

    def __init__(self, kv_store, key: str = HISTORY_KEY, limit: int = MAX_HISTORY_ITEMS):
        self._kv = kv_store
        self.key = key
        self.limit = limit
        self._items: List[HistoryItem] = []
        self._lock = threading.RLock()

    @property
    def items(self) -> List[HistoryItem]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def load(self) -> List[HistoryItem]:
        """Read the persisted list. Any read or parse failure yields an empty history."""
        items: List[HistoryItem] = []
        try:
            raw = self._kv.get(self.key)
        except PersistenceError as e:
            logger.error("Failed to load history: %s", e)
            raw = None

        if raw is not None:
            if not isinstance(raw, list):
                logger.error("Failed to load history: expected a list, got %s", type(raw).__name__)
            else:
                try:
                    items = [HistoryItem.model_validate(entry) for entry in raw]
                except ValidationError as e:
                    logger.error("Failed to load history: %d invalid field(s)", e.error_count())
                    items = []

        with self._lock:
            self._items = items[:self.limit]
            logger.debug("Loaded %d history item(s)", len(self._items))
            return list(self._items)

    def record(self, item: HistoryItem) -> List[HistoryItem]:
        """Prepend an item, evict the oldest beyond the limit and persist.

        Two analyses stamped in the same millisecond would share an id; the
        later one gets a numeric suffix so select() can reach both.
        """
        with self._lock:
            unique_id = self._unique_id(item.id)
            if unique_id != item.id:
                logger.debug("History id %s already taken, recording as %s", item.id, unique_id)
                item = item.model_copy(update={"id": unique_id})
            self._items = ([item] + self._items)[:self.limit]
            snapshot = list(self._items)
        self._persist(snapshot)
        return snapshot

    def clear(self):
        with self._lock:
            self._items = []
        try:
            self._kv.remove(self.key)
        except PersistenceError as e:
            logger.error("Failed to clear persisted history: %s", e)

    def select(self, item_id: str) -> Optional[AnalysisResult]:
        """Return the stored result for an entry id, or None if unknown."""
        with self._lock:
            item = next((i for i in self._items if i.id == item_id), None)
        if item is None:
            return None
        if item.result.timestamp is None:
            return item.result.model_copy(update={"timestamp": item.timestamp})
        return item.result

    def _unique_id(self, item_id: str) -> str:
        taken = {i.id for i in self._items}
        candidate, n = item_id, 1
        while candidate in taken:
            candidate = f"{item_id}-{n}"
            n += 1
        return candidate

    def _persist(self, snapshot: List[HistoryItem]):
        try:
            self._kv.set(self.key, [entry.to_json_dict() for entry in snapshot])
        except PersistenceError as e:
            logger.error("Failed to persist history (%d items kept in memory): %s", len(snapshot), e)
