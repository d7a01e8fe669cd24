"""
Tests for the analysis History Store.

Verifies that:
- The history is most-recent-first and never exceeds 20 entries
- Every change is persisted and survives a reload
- clear() removes the persisted list too
- select() is idempotent and back-fills legacy timestamps
- Unreadable storage yields an empty history instead of an error
"""

import os
import sys
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from context.history_store import (
    HISTORY_KEY,
    MAX_HISTORY_ITEMS,
    HistoryStore,
    build_history_item,
    make_snippet,
)
from context.kv_store import JsonFileStore
from pipeline.errors import PersistenceError
from scan_test_utils import make_result

BASE_TS = 1700000000000


def make_item(n, text=None):
    result = make_result(timestamp=BASE_TS + n, summary=f"Summary number {n}")
    return build_history_item(result, text=text or f"message {n}")


@pytest.fixture
def kv(tmp_path):
    return JsonFileStore(str(tmp_path))


class TestRecord:
    def test_cap_and_order(self, kv):
        store = HistoryStore(kv)
        for n in range(21):
            store.record(make_item(n))

        items = store.items
        assert len(items) == MAX_HISTORY_ITEMS == 20
        assert items[0].id == str(BASE_TS + 20)
        assert items[-1].id == str(BASE_TS + 1)
        assert str(BASE_TS) not in [i.id for i in items]

    def test_record_persists_full_list(self, kv):
        store = HistoryStore(kv)
        store.record(make_item(1))
        store.record(make_item(2))

        reloaded = HistoryStore(kv).load()
        assert [i.id for i in reloaded] == [str(BASE_TS + 2), str(BASE_TS + 1)]
        assert reloaded[0].result.summary == "Summary number 2"

    def test_persisted_format_uses_wire_names(self, kv):
        HistoryStore(kv).record(make_item(1))

        raw = kv.get(HISTORY_KEY)
        assert raw[0]["hasImage"] is False
        assert raw[0]["result"]["scamLikelihood"] == 92
        assert raw[0]["result"]["riskLevel"] == "HIGH"

    def test_persistence_failure_is_absorbed(self):
        failing_kv = MagicMock()
        failing_kv.set.side_effect = PersistenceError("disk full")
        store = HistoryStore(failing_kv)

        items = store.record(make_item(1))
        assert len(items) == 1
        assert len(store) == 1

    def test_custom_limit(self, kv):
        store = HistoryStore(kv, limit=3)
        for n in range(5):
            store.record(make_item(n))
        assert [i.id for i in store.items] == [str(BASE_TS + n) for n in (4, 3, 2)]


class TestClear:
    def test_clear_then_load_is_empty(self, kv):
        store = HistoryStore(kv)
        store.record(make_item(1))

        store.clear()

        assert store.items == []
        assert HistoryStore(kv).load() == []
        assert HISTORY_KEY not in kv.keys()

    def test_clear_when_nothing_stored(self, kv):
        store = HistoryStore(kv)
        store.clear()
        assert store.load() == []


class TestSelect:
    def test_select_is_idempotent(self, kv):
        store = HistoryStore(kv)
        store.record(make_item(7))

        first = store.select(str(BASE_TS + 7))
        second = store.select(str(BASE_TS + 7))
        assert first == second
        assert first.timestamp == BASE_TS + 7

    def test_same_millisecond_entries_stay_reachable(self, kv):
        store = HistoryStore(kv)
        first = build_history_item(make_result(timestamp=BASE_TS, verdict="First"), text="one")
        second = build_history_item(make_result(timestamp=BASE_TS, verdict="Second"), text="two")
        third = build_history_item(make_result(timestamp=BASE_TS, verdict="Third"), text="three")

        for item in (first, second, third):
            store.record(item)

        ts = str(BASE_TS)
        assert [i.id for i in store.items] == [ts + "-2", ts + "-1", ts]
        assert store.select(ts).verdict == "First"
        assert store.select(ts + "-1").verdict == "Second"
        assert store.select(ts + "-2").verdict == "Third"
        assert [i.id for i in HistoryStore(kv).load()] == [ts + "-2", ts + "-1", ts]

    def test_select_unknown_id(self, kv):
        assert HistoryStore(kv).select("42") is None

    def test_legacy_entry_gets_timestamp_backfilled(self, kv):
        legacy_result = make_result().to_json_dict()
        assert "timestamp" not in legacy_result
        kv.set(HISTORY_KEY, [{
            "id": "1600000000000",
            "timestamp": 1600000000000,
            "snippet": "old message",
            "result": legacy_result,
        }])

        store = HistoryStore(kv)
        store.load()
        selected = store.select("1600000000000")

        assert selected.timestamp == 1600000000000
        assert store.items[0].has_audio is False


class TestLoad:
    def test_missing_file(self, kv):
        assert HistoryStore(kv).load() == []

    def test_corrupt_file(self, kv, tmp_path):
        (tmp_path / f"{HISTORY_KEY}.json").write_text("{not json", encoding="utf-8")
        assert HistoryStore(kv).load() == []

    def test_wrong_shape(self, kv):
        kv.set(HISTORY_KEY, {"items": []})
        assert HistoryStore(kv).load() == []

    def test_invalid_entry(self, kv):
        kv.set(HISTORY_KEY, [{"id": "1", "snippet": "no timestamp or result"}])
        assert HistoryStore(kv).load() == []

    def test_load_truncates_oversized_list(self, kv):
        kv.set(HISTORY_KEY, [make_item(n).to_json_dict() for n in range(25)])
        assert len(HistoryStore(kv).load()) == MAX_HISTORY_ITEMS


class TestSnippet:
    def test_short_text_kept(self):
        assert make_snippet("  hello there  ") == "hello there"

    def test_long_text_truncated(self):
        snippet = make_snippet("x" * 200)
        assert len(snippet) == 80
        assert snippet.endswith("...")

    def test_exactly_limit_not_truncated(self):
        assert make_snippet("y" * 80) == "y" * 80

    def test_placeholders(self):
        assert make_snippet("", has_image=True, has_audio=True, has_video=True) == "Video Analysis"
        assert make_snippet(None, has_image=True, has_audio=True) == "Audio Analysis"
        assert make_snippet("   ", has_image=True) == "Image Analysis"
        assert make_snippet(None) == "Content Analysis"


class TestBuildHistoryItem:
    def test_id_is_timestamp(self):
        item = build_history_item(make_result(timestamp=123), text="hi", has_image=True)
        assert item.id == "123"
        assert item.timestamp == 123
        assert item.has_image is True

    def test_unstamped_result_rejected(self):
        with pytest.raises(ValueError):
            build_history_item(make_result(), text="hi")
