"""
This module defines the automemo command features using a small registry.
The CLI only dispatches to handlers registered here.
"""

from typing import (
    Dict,
    Any,
    Callable,
    Optional,
    TypeVar,
    Generic,
)
from dataclasses import asdict, dataclass
import logging
import time

from automemo.tiered import memoize
from automemo.settings import MemoSettings

logger = logging.getLogger("automemo.features")

T = TypeVar("T")


class OperationResult(Generic[T]):
    """Wrapper for operation results with success/error handling"""

    def __init__(
        self, success: bool, data: Optional[T] = None, error: Optional[str] = None
    ):
        self.success = success
        self.data = data
        self.error = error

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "OperationResult[T]":
        return cls(True, data=data)

    @classmethod
    def fail(cls, error: str) -> "OperationResult[T]":
        return cls(False, error=error)


@dataclass
class Feature:
    """A named operation exposed on the command line"""

    name: str
    description: str
    handler: Callable


class FeatureRegistry:
    """Registry for all automemo features"""

    _features: Dict[str, Feature] = {}

    @classmethod
    def register(cls, feature: Feature) -> Feature:
        """Register a new feature"""
        cls._features[feature.name] = feature
        return feature

    @classmethod
    def get_feature(cls, name: str) -> Optional[Feature]:
        """Get a feature by name"""
        return cls._features.get(name)

    @classmethod
    def get_all_features(cls) -> Dict[str, Feature]:
        """Get all registered features"""
        return cls._features.copy()


# ----------------- Feature Handlers -----------------


def handle_version(**kwargs) -> OperationResult[Dict[str, str]]:
    """Handle version request"""
    from automemo.version import get_version

    return OperationResult[Dict[str, str]](
        success=True, data={"version": get_version()}
    )


def parse_argument(raw: str) -> Any:
    """Interpret a command-line argument as int, then float, else keep the string"""
    for convert in (int, float):
        try:
            return convert(raw)
        except ValueError:
            continue
    return raw


def handle_bench(
    calls: int = 1_000_000,
    argument: str = "321",
    no_cache: bool = False,
    **kwargs,
) -> OperationResult[Dict[str, Any]]:
    """Call a memoized identity function repeatedly with one argument"""
    if calls < 1:
        return OperationResult.fail("calls must be at least 1")

    invocations = 0

    def identity(value: Any) -> Any:
        nonlocal invocations
        invocations += 1
        return value

    settings = MemoSettings.from_env()
    if no_cache:
        logger.info("No-cache mode enabled - every call will be recomputed")
        settings = settings.model_copy(update={"enabled": False})

    memoized = memoize(identity, settings=settings)
    value = parse_argument(argument)

    start = time.perf_counter()
    consistent = True
    for _ in range(calls):
        consistent = (memoized(value) is memoized(value)) and consistent
    elapsed_ms = (time.perf_counter() - start) * 1000.0

    stats = memoized.cache_stats()
    logger.debug(f"Bench finished: {invocations} invocations over {2 * calls} calls")
    return OperationResult.ok(
        {
            "calls": 2 * calls,
            "invocations": invocations,
            "consistent": consistent,
            "elapsed_ms": round(elapsed_ms, 3),
            "stats": asdict(stats),
        }
    )


# Register all features
version_feature = FeatureRegistry.register(
    Feature(
        name="version",
        description="Get the automemo version",
        handler=handle_version,
    )
)

bench_feature = FeatureRegistry.register(
    Feature(
        name="bench",
        description="Benchmark repeated calls to a memoized identity function",
        handler=handle_bench,
    )
)
