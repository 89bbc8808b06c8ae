"""Shared pytest fixtures for automemo tests."""

from __future__ import annotations

import gc
import json
import os
from pathlib import Path
import time
import sys
import tracemalloc
from typing import Any, Callable

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast, isolated tests")
    config.addinivalue_line("markers", "contract: behaviour every table or schema must honour")
    config.addinivalue_line("markers", "perf: memory and timing checks with telemetry")


class Counted:
    """Callable that counts how often it is invoked."""

    def __init__(self, func: Callable[..., Any]):
        self.func = func
        self.count = 0
        self.__name__ = getattr(func, "__name__", "counted")
        self.__qualname__ = getattr(func, "__qualname__", self.__name__)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        self.count += 1
        return self.func(*args, **kwargs)


class Box:
    """Weakly referenceable value holder."""

    def __init__(self, value: Any):
        self.value = value

    def __repr__(self) -> str:
        return f"Box({self.value!r})"


@pytest.fixture
def counted() -> Callable[[Callable[..., Any]], Counted]:
    return Counted


@pytest.fixture
def box() -> type[Box]:
    return Box


@pytest.fixture
def collect() -> Callable[[], None]:
    def _collect() -> None:
        for _ in range(3):
            gc.collect()

    return _collect


@pytest.fixture(autouse=True)
def _clean_automemo_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("AUTOMEMO_ENABLED", raising=False)
    monkeypatch.delenv("AUTOMEMO_LOG_LEVEL", raising=False)


_PERF_METRICS = pytest.StashKey[list]()


@pytest.fixture
def memo_metrics(request: pytest.FixtureRequest) -> Callable[[str, Any], None]:
    """Record a wrapper's cache sizes next to the perf test's timings."""
    metrics: dict[str, int] = {}
    request.node.memo_metrics = metrics

    def record(name: str, wrapper: Any) -> None:
        stats = wrapper.cache_stats()
        metrics[f"{name}_tier_a"] = stats.tier_a_size
        metrics[f"{name}_tier_b"] = stats.tier_b_size
        metrics[f"{name}_interned"] = wrapper.key_schema.interned_count

    return record


@pytest.fixture(autouse=True)
def _collect_perf_telemetry(request: pytest.FixtureRequest):
    if request.node.get_closest_marker("perf") is None:
        yield
        return

    start_wall = time.perf_counter()
    tracemalloc.start()
    try:
        yield
    finally:
        _current, peak_bytes = tracemalloc.get_traced_memory()
        tracemalloc.stop()
        entry: dict[str, Any] = {
            "test_id": request.node.nodeid,
            "wall_time_s": max(0.0, time.perf_counter() - start_wall),
            "python_heap_peak_bytes": int(peak_bytes),
        }
        entry.update(getattr(request.node, "memo_metrics", {}))
        request.config.stash.setdefault(_PERF_METRICS, []).append(entry)


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    metrics = session.config.stash.get(_PERF_METRICS, [])
    report_dir = os.environ.get("AUTOMEMO_PERF_REPORT_DIR")
    if not metrics or not report_dir:
        return
    output_root = Path(report_dir).expanduser()
    output_root.mkdir(parents=True, exist_ok=True)
    (output_root / "perf_test_metrics.json").write_text(
        json.dumps({"exitstatus": int(exitstatus), "tests": metrics}, indent=2, sort_keys=True),
        encoding="utf-8",
    )
