from __future__ import annotations

import pytest

from automemo import json_value, memoize, n_tuple


class Result:
    def __init__(self, value):
        self.value = value


@pytest.mark.perf
def test_short_lived_keys_do_not_grow_the_tables(box, collect, memo_metrics):
    build = memoize(lambda b: Result(b.value))
    read = memoize(lambda b: b.value)

    for index in range(5000):
        build(box(index))
        read(box(index))
    collect()
    memo_metrics("build", build)
    memo_metrics("read", read)

    assert build.cache_stats().size == 0
    assert read.cache_stats().size == 0
    assert build.key_schema.interned_count == 0
    assert read.key_schema.interned_count == 0
    assert build.cache_stats().misses == 5000


@pytest.mark.perf
def test_repeated_calls_with_one_primitive_argument_compute_once(counted, memo_metrics):
    target = counted(lambda a: a)
    identity = memoize(target)

    for _ in range(100_000):
        assert identity(321) is identity(321)
    memo_metrics("identity", identity)

    assert target.count == 1


@pytest.mark.perf
def test_equal_tuples_built_separately_share_one_entry(counted, memo_metrics):
    target = counted(lambda pair: sum(pair))
    total = memoize(target)

    for _ in range(5000):
        assert total(tuple([1, 2])) == 3
    memo_metrics("total", total)

    assert target.count == 1
    assert total.key_schema.interned_count == 1


@pytest.mark.perf
def test_tuples_of_short_lived_objects_do_not_grow_the_tables(box, collect, memo_metrics):
    first = memoize(lambda pair: pair[0].value + pair[1])

    for index in range(5000):
        first((box(index), index))
    collect()
    memo_metrics("first", first)

    assert first.cache_stats().size == 0
    assert first.key_schema.interned_count == 0


@pytest.mark.perf
def test_fresh_lists_are_pinned_under_the_default_schema(counted, collect, memo_metrics):
    target = counted(lambda xs: sum(xs))
    total = memoize(target)

    for index in range(1000):
        total([index, index])
    total([1, 1])
    total([1, 1])
    collect()
    memo_metrics("total", total)

    # Lists are keyed by identity and pinned by their key.
    assert target.count == 1002
    assert total.cache_stats().tier_a_size == 1002
    assert total.key_schema.interned_count == 1002


@pytest.mark.perf
def test_json_schema_keys_fresh_lists_by_content(counted, collect, memo_metrics):
    target = counted(lambda xs: sum(xs))
    total = memoize(target, n_tuple(json_value()))

    for _ in range(1000):
        total([1, 1])
    collect()
    memo_metrics("total", total)

    assert target.count == 1
    assert total.key_schema.interned_count == 1
