import pytest

from clipsift.cache import CategorizedCache
from clipsift.models import Bucket, Category, bucket_for


class TestBucketFor:
    @pytest.mark.parametrize("category, bucket", [
        (Category.IMAGE, Bucket.IMAGES),
        (Category.LOG, Bucket.LOGS),
        (Category.PROMPT, Bucket.PROMPTS),
        (Category.URL, Bucket.OTHER),
        (Category.CODE, Bucket.OTHER),
        (Category.TEXT, Bucket.OTHER),
        (Category.FILE, Bucket.OTHER),
    ])
    def test_mapping(self, category, bucket):
        assert bucket_for(category) is bucket


class TestAdd:
    def test_entry_lands_in_one_bucket(self, make_entry):
        cache = CategorizedCache(capacity=10)
        entry = make_entry(category=Category.LOG)
        assert cache.add(entry) is Bucket.LOGS
        snapshot = cache.snapshot()
        assert snapshot.logs == (entry,)
        assert snapshot.prompts == snapshot.images == snapshot.other == ()

    def test_newest_first(self, make_entry):
        cache = CategorizedCache(capacity=10)
        first, second = make_entry("first prompt"), make_entry("second prompt")
        cache.add(first)
        cache.add(second)
        assert cache.snapshot().other == (second, first)

    @pytest.mark.parametrize("extra", [0, 1, 5, 25])
    def test_capacity_keeps_most_recent(self, make_entry, extra):
        capacity = 10
        cache = CategorizedCache(capacity=capacity)
        entries = [make_entry(f"log {i}", category=Category.LOG) for i in range(capacity + extra)]
        for e in entries:
            cache.add(e)
        logs = cache.snapshot().logs
        assert len(logs) == min(capacity, len(entries))
        assert list(logs) == list(reversed(entries))[:capacity]

    def test_under_capacity(self, make_entry):
        cache = CategorizedCache(capacity=10)
        for i in range(3):
            cache.add(make_entry(f"image {i}", category=Category.IMAGE))
        assert len(cache.snapshot().images) == 3

    def test_eviction_does_not_touch_other_buckets(self, make_entry):
        cache = CategorizedCache(capacity=2)
        prompt = make_entry("prompt", category=Category.PROMPT)
        cache.add(prompt)
        for i in range(5):
            cache.add(make_entry(f"log {i}", category=Category.LOG))
        assert cache.snapshot().prompts == (prompt,)
        assert len(cache.snapshot().logs) == 2

    def test_snapshot_is_immutable_handoff(self, make_entry):
        cache = CategorizedCache(capacity=10)
        cache.add(make_entry("one"))
        before = cache.snapshot()
        cache.add(make_entry("two"))
        assert len(before.other) == 1
        assert len(cache.snapshot().other) == 2

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            CategorizedCache(capacity=0)


class TestDiscard:
    def test_discard_backfills_from_history(self, make_entry):
        cache = CategorizedCache(capacity=2)
        logs = [make_entry(f"log {i}", category=Category.LOG) for i in range(4)]
        for e in logs:
            cache.add(e)
        assert cache.snapshot().logs == (logs[3], logs[2])

        # history newest-first after logs[3] was deleted
        history = [logs[2], logs[1], logs[0]]
        assert cache.discard(logs[3].id, backfill=iter(history)) is True
        assert cache.snapshot().logs == (logs[2], logs[1])

    def test_backfill_skips_other_buckets(self, make_entry):
        cache = CategorizedCache(capacity=2)
        old_log = make_entry("old log", category=Category.LOG)
        text = make_entry("some text")
        log_a = make_entry("log a", category=Category.LOG)
        log_b = make_entry("log b", category=Category.LOG)
        for e in (old_log, text, log_a, log_b):
            cache.add(e)

        cache.discard(log_a.id, backfill=iter([log_b, text, old_log]))
        assert cache.snapshot().logs == (log_b, old_log)
        assert cache.snapshot().other == (text,)

    def test_discard_unknown(self, make_entry):
        cache = CategorizedCache(capacity=2)
        cache.add(make_entry())
        assert cache.discard("missing") is False

    def test_discard_without_backfill(self, make_entry):
        cache = CategorizedCache(capacity=5)
        entry = make_entry(category=Category.IMAGE)
        cache.add(entry)
        cache.discard(entry.id)
        assert cache.snapshot().images == ()


class TestRebuild:
    def test_rebuild_replays_oldest_first(self, make_entry):
        cache = CategorizedCache(capacity=2)
        entries = [make_entry(f"prompt {i}", category=Category.PROMPT) for i in range(3)]
        cache.rebuild(entries)
        assert cache.snapshot().prompts == (entries[2], entries[1])

    def test_clear(self, make_entry):
        cache = CategorizedCache()
        cache.add(make_entry())
        cache.clear()
        assert len(cache.snapshot()) == 0
