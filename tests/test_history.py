"""Tests for lineedit.history -- the history store, persistence and navigation."""

from __future__ import annotations

from pathlib import Path

import pytest

from lineedit.config import HistoryDuplicates
from lineedit.errors import HistoryIoError, HistoryParseError
from lineedit.history import History, HistoryNavigator, escape_entry, unescape_entry


def make_history(*texts: str, **kwargs: object) -> History:
    history = History(**kwargs)  # type: ignore[arg-type]
    for text in texts:
        history.add(text)
    return history


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class TestHistoryAdd:
    """Duplicate, whitespace and capacity policies."""

    def test_add_and_iterate(self) -> None:
        history = make_history("a", "b")
        assert list(history) == ["a", "b"]
        assert history[0] == "a"
        assert len(history) == 2

    def test_empty_line_not_added(self) -> None:
        history = History()
        assert not history.add("")
        assert len(history) == 0

    def test_ignore_consecutive(self) -> None:
        history = make_history("a", "a", "b", "a")
        assert list(history) == ["a", "b", "a"]

    def test_ignore_all_promotes_recency(self) -> None:
        history = make_history("a", "b", "a", duplicates=HistoryDuplicates.IGNORE_ALL)
        assert list(history) == ["b", "a"]

    def test_always_add(self) -> None:
        history = make_history("a", "a", duplicates=HistoryDuplicates.ALWAYS_ADD)
        assert list(history) == ["a", "a"]

    def test_ignore_space(self) -> None:
        history = History(ignore_space=True)
        assert not history.add(" secret")
        assert history.add("visible")
        assert list(history) == ["visible"]

    def test_capacity_evicts_oldest(self) -> None:
        history = make_history("1", "2", "3", "4", max_size=3)
        assert list(history) == ["2", "3", "4"]

    def test_zero_is_unlimited(self) -> None:
        history = make_history(*[str(i) for i in range(500)], max_size=0)
        assert len(history) == 500

    def test_negative_disables(self) -> None:
        history = History(max_size=-1)
        assert not history.add("a")
        assert len(history) == 0

    def test_set_max_size_shrinks(self) -> None:
        history = make_history("1", "2", "3")
        history.set_max_size(1)
        assert list(history) == ["3"]

    def test_clear(self) -> None:
        history = make_history("a")
        history.clear()
        assert len(history) == 0


class TestHistorySearch:
    """Substring and prefix search."""

    def test_backward_substring(self) -> None:
        history = make_history("git status", "ls", "git commit")
        assert history.search("git", 2) == 2
        assert history.search("git", 1) == 0
        assert history.search("nothing", 2) is None

    def test_forward_prefix(self) -> None:
        history = make_history("git status", "ls", "git commit")
        assert history.search("git", 1, backward=False, prefix=True) == 2
        assert history.search("tus", 0, backward=False, prefix=True) is None

    def test_start_is_clamped(self) -> None:
        history = make_history("a")
        assert history.search("a", 10) == 0

    def test_empty_history(self) -> None:
        assert History().search("a", 0) is None


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class TestHistoryPersistence:
    """save then load reproduces the entries exactly."""

    def test_round_trip_with_newlines_and_unicode(self, tmp_path: Path) -> None:
        path = tmp_path / "history"
        history = make_history("plain", "two\nlines", "back\\slash", "héllo 🌍", "cr\rhere")
        history.save(path)
        loaded = History()
        loaded.load(path)
        assert list(loaded) == list(history)

    def test_empty_store_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "history"
        History().save(path)
        assert path.read_text(encoding="utf-8") == "#V2\n"
        loaded = make_history("stale")
        loaded.load(path)
        assert len(loaded) == 0

    def test_saved_file_is_private(self, tmp_path: Path) -> None:
        path = tmp_path / "history"
        make_history("a").save(path)
        assert path.stat().st_mode & 0o777 == 0o600

    def test_legacy_file_without_header(self, tmp_path: Path) -> None:
        path = tmp_path / "history"
        path.write_text("one\r\n\ntwo\\n\n", encoding="utf-8")
        history = History()
        history.load(path)
        assert list(history) == ["one", "two\\n"]

    def test_load_caps_to_capacity(self, tmp_path: Path) -> None:
        path = tmp_path / "history"
        make_history("1", "2", "3", "4").save(path)
        history = History(max_size=2)
        history.load(path)
        assert list(history) == ["3", "4"]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(HistoryIoError) as exc_info:
            History().load(tmp_path / "missing")
        assert exc_info.value.path == str(tmp_path / "missing")

    def test_corrupt_file_leaves_history_unchanged(self, tmp_path: Path) -> None:
        path = tmp_path / "history"
        path.write_text("#V2\nok\nbad\\q\n", encoding="utf-8")
        history = make_history("keep")
        with pytest.raises(HistoryParseError) as exc_info:
            history.load(path)
        assert exc_info.value.line == 3
        assert list(history) == ["keep"]

    def test_invalid_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "history"
        path.write_bytes(b"#V2\n\xff\xfe\n")
        with pytest.raises(HistoryParseError):
            History().load(path)

    def test_save_into_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(HistoryIoError):
            make_history("a").save(tmp_path / "no" / "such" / "history")


class TestEscaping:
    """Entry escaping for the #V2 format."""

    def test_escape(self) -> None:
        assert escape_entry("a\\b\nc\rd") == "a\\\\b\\nc\\rd"

    def test_unescape(self) -> None:
        assert unescape_entry("a\\\\b\\nc") == "a\\b\nc"

    def test_dangling_escape(self) -> None:
        with pytest.raises(HistoryParseError):
            unescape_entry("abc\\")


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


class TestHistoryNavigator:
    """Up/Down recall with a scratch entry."""

    def test_previous_and_back_to_scratch(self) -> None:
        nav = HistoryNavigator(make_history("one", "two"))
        assert nav.previous("draft") == "two"
        assert nav.previous("two") == "one"
        assert nav.previous("one") is None
        assert nav.next() == "two"
        assert nav.next() == "draft"
        assert not nav.browsing
        assert nav.next() is None

    def test_prefix_filter(self) -> None:
        nav = HistoryNavigator(make_history("git a", "ls", "git b"))
        assert nav.previous("git", prefix="git") == "git b"
        assert nav.previous("git b", prefix="git") == "git a"
        assert nav.index == 0

    def test_first_and_last(self) -> None:
        nav = HistoryNavigator(make_history("one", "two", "three"))
        assert nav.first("draft") == "one"
        assert nav.index == 0
        assert nav.last() == "draft"
        assert nav.index is None

    def test_empty_history(self) -> None:
        nav = HistoryNavigator(History())
        assert nav.previous("x") is None
        assert nav.first("x") is None

    def test_reset(self) -> None:
        nav = HistoryNavigator(make_history("one"))
        nav.previous("")
        nav.reset()
        assert nav.index is None
