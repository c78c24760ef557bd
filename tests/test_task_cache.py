"""
Tests for the offline task cache
"""

import pytest

from godspeed_errors import CacheIOError
from task_cache import CacheStore, CachedTask


def _raws(cached):
    return [c.raw for c in cached]


class TestCacheStore:

    def test_missing_file_is_empty(self, cache):
        assert cache.load() == []
        assert not cache.path.exists()

    def test_append_preserves_arrival_order(self, cache):
        for raw in ["A", "B @Work", "C .urgent"]:
            cache.append(CachedTask.from_raw(raw))

        loaded = cache.load()

        assert _raws(loaded) == ["A", "B @Work", "C .urgent"]
        assert loaded[1].task.list_name == "Work"

    def test_file_format(self, cache):
        cache.append(CachedTask.from_raw("Buy milk"))
        cache.append(CachedTask.from_raw("Call mum :15"))

        assert cache.path.read_text() == "Buy milk\n---\nCall mum :15\n---\n"

    def test_rewrite_replaces_contents(self, cache):
        for raw in ["A", "B", "C"]:
            cache.append(CachedTask.from_raw(raw))

        cache.rewrite(cache.load()[1:])

        assert _raws(cache.load()) == ["B", "C"]

    def test_rewrite_empty(self, cache):
        cache.append(CachedTask.from_raw("A"))

        cache.rewrite([])

        assert cache.path.read_text() == ""
        assert cache.load() == []

    def test_rewrite_leaves_no_temp_files(self, cache, tmp_path):
        cache.append(CachedTask.from_raw("A"))
        cache.rewrite(cache.load())

        assert [p.name for p in tmp_path.iterdir()] == ["cache"]

    def test_blank_records_ignored(self, cache):
        cache.path.write_text("\n---\n\n---\nTask\n---\n\n   \n")

        assert _raws(cache.load()) == ["Task"]

    def test_interrupted_append_kept(self, cache):
        cache.path.write_text("First\n---\nSecond without delimiter")

        assert _raws(cache.load()) == ["First", "Second without delimiter"]

    @pytest.mark.parametrize("content", [
        "First\n---\nSecond without delimiter",
        "First\n---\nSecond without delimiter\n",
        "First\n---\nSecond ends in dashes---\n",
    ])
    def test_append_after_unterminated_record(self, cache, content):
        cache.path.write_text(content)

        cache.append(CachedTask.from_raw("Third"))

        loaded = _raws(cache.load())
        assert loaded[0] == "First"
        assert loaded[2] == "Third"
        assert len(loaded) == 3

    def test_append_after_terminated_file_adds_no_blank_record(self, cache):
        cache.path.write_text("---\n")
        cache.append(CachedTask.from_raw("A"))

        assert cache.path.read_text() == "---\nA\n---\n"

    def test_invalid_utf8_record_skipped(self, cache):
        cache.path.write_bytes(b"Good one\n---\nBad \xff\xfe bytes\n---\nGood two\n---\n")

        loaded = cache.load()

        assert _raws(loaded) == ["Good one", "Good two"]
        assert cache.skipped == 1

        cache.rewrite(loaded)
        assert "�" not in cache.path.read_text()

    def test_malformed_records_skipped(self, cache, caplog):
        cache.path.write_text("Two lists @a @b\n---\nGood task\n---\n@Work\n---\n")

        loaded = cache.load()

        assert _raws(loaded) == ["Good task"]
        assert cache.skipped == 2
        assert "Skipping unreadable cached task" in caplog.text

    def test_multiline_record_with_delimiter_line(self, cache):
        raw = "Write report n: outline\n---\nappendix\n\\---"
        cache.append(CachedTask.from_raw(raw))
        cache.append(CachedTask.from_raw("Next"))

        loaded = cache.load()

        assert _raws(loaded) == [raw, "Next"]
        assert loaded[0].task.notes == "outline\n---\nappendix\n\\---"

    def test_creates_parent_directory(self, tmp_path):
        store = CacheStore(tmp_path / 'nested' / 'dir' / 'cache')

        store.append(CachedTask.from_raw("A"))

        assert _raws(store.load()) == ["A"]

    def test_append_failure_raises(self, tmp_path):
        store = CacheStore(tmp_path)

        with pytest.raises(CacheIOError):
            store.append(CachedTask.from_raw("A"))

    def test_rewrite_failure_raises(self, tmp_path):
        store = CacheStore(tmp_path)

        with pytest.raises(CacheIOError):
            store.rewrite([CachedTask.from_raw("A")])
