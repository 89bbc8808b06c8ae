"""
Tiered memoization.

Every call derives a canonical key from its arguments and consults two tables:

- Tier A, a weak-keyed dictionary, holds primitive results. A primitive cannot
  keep anything else alive, so it is retained for exactly as long as its key.
- Tier B, a :class:`~automemo.weak_table.WeakerTable`, holds object results.
  The result is referenced weakly where possible, so a cached object is dropped
  once every caller has released it even if its key is still reachable.
  Results that cannot be weakly referenced (``list``, ``dict``, ``tuple``) are
  held strongly instead; one that contains its own arguments keeps them, and
  so its entry, alive for the lifetime of the wrapper.

Placement is decided once, when a key is first computed, so a key never lives
in both tiers. There is no invalidation API: entries disappear when their key
(or, in Tier B, their result) is collected.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar, overload
import functools
import logging

from automemo.schema import KeySchema, default_schema
from automemo.settings import VERBOSE_LEVEL, MemoSettings
from automemo.value_model import classify, describe_type, supports_weakref
from automemo.weak_table import WeakerTable, reference_only_table

logger = logging.getLogger("automemo.tiered")

F = TypeVar("F", bound=Callable[..., Any])

_MISSING = object()


@dataclass(frozen=True)
class MemoStats:
    """Snapshot of one wrapper's cache."""

    hits: int
    misses: int
    tier_a_size: int
    tier_b_size: int

    @property
    def size(self) -> int:
        return self.tier_a_size + self.tier_b_size


class TieredCache:
    """The two memo tiers of a single wrapper."""

    def __init__(self) -> None:
        self.tier_a = reference_only_table()
        self.tier_b = WeakerTable()
        self.hits = 0
        self.misses = 0

    def lookup(self, key: Any) -> Any:
        """Return the cached result for ``key`` or ``_MISSING``."""
        result = self.tier_a.get(key, _MISSING)
        if result is _MISSING:
            result = self.tier_b.get(key, _MISSING)
        if result is _MISSING:
            self.misses += 1
        else:
            self.hits += 1
        return result

    def store(self, key: Any, result: Any) -> None:
        if classify(result) == "primitive":
            self.tier_a[key] = result
            logger.debug(f"Stored {describe_type(result)} result in tier A")
            return
        self.tier_b[key] = result
        if supports_weakref(result):
            logger.debug(f"Stored {describe_type(result)} result in tier B")
        else:
            # A strongly held result that refers to its own arguments keeps its key alive.
            logger.log(
                VERBOSE_LEVEL,
                f"Stored {describe_type(result)} result in tier B, held strongly while its key lives",
            )

    def stats(self) -> MemoStats:
        return MemoStats(
            hits=self.hits,
            misses=self.misses,
            tier_a_size=len(self.tier_a),
            tier_b_size=len(self.tier_b),
        )


def _wrap(func: F, schema: KeySchema, settings: MemoSettings) -> F:
    cache = TieredCache()
    name = getattr(func, "__qualname__", describe_type(func))

    if not settings.enabled:
        logger.info(f"Memoization disabled for {name}; results will be recomputed")

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if not settings.enabled:
            schema.validate(args, kwargs)
            return func(*args, **kwargs)

        key = schema.derive(args, kwargs)
        result = cache.lookup(key)
        if result is not _MISSING:
            return result

        result = func(*args, **kwargs)
        cache.store(key, result)
        return result

    wrapper.cache_stats = cache.stats  # type: ignore[attr-defined]
    wrapper.key_schema = schema  # type: ignore[attr-defined]
    return wrapper  # type: ignore[return-value]


@overload
def memoize(func: F, schema: Optional[KeySchema] = None, *, settings: Optional[MemoSettings] = None) -> F: ...


@overload
def memoize(
    func: None = None, schema: Optional[KeySchema] = None, *, settings: Optional[MemoSettings] = None
) -> Callable[[F], F]: ...


def memoize(func=None, schema=None, *, settings=None):
    """
    Memoize ``func`` by the canonical key of its arguments.

    Args:
        func: Function to wrap. When omitted, a decorator is returned.
        schema: Key schema; defaults to keying every argument opaquely
            (primitives by value, objects by identity).
        settings: Overrides the settings read from the environment.

    Returns:
        A wrapper with the same call contract as ``func``. It exposes
        ``cache_stats()``, ``key_schema`` and ``__wrapped__``.

    Raises:
        TypeError: ``func`` is not callable or ``schema`` is not a KeySchema.

    Calls whose arguments fail the schema raise
    :class:`~automemo.error_msg.KeyValidationError` before the cache is
    touched. Exceptions raised by ``func`` are never cached.
    """
    if isinstance(func, KeySchema) and schema is None:
        # @memoize(n_tuple(...))
        func, schema = None, func
    if schema is not None and not isinstance(schema, KeySchema):
        raise TypeError(f"schema must be a KeySchema, got {describe_type(schema)}")
    resolved = settings if settings is not None else MemoSettings.from_env()

    def decorator(target: F) -> F:
        if not callable(target):
            raise TypeError(f"memoize() expects a callable, got {describe_type(target)}")
        return _wrap(target, schema if schema is not None else default_schema(), resolved)

    if func is None:
        return decorator
    return decorator(func)


automemo = memoize
