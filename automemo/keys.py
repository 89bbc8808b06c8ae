"""Reference-stable canonical keys.

A :class:`CanonicalKey` is the object both cache tiers are keyed by. The
:class:`KeyInterner` guarantees that the same sequence of key components always
yields the very same key object for as long as that key can still be reached
through its components, so identity lookups in a weak-keyed table behave like
structural lookups.

Lifetime rules:

- primitive components are held strongly by the key;
- components supporting weak references are held weakly, and the interner
  drops the key as soon as any of them is collected;
- plain tuples and frozensets are keyed by their members and held member by
  member, so equal containers built separately share a key;
- other objects (``list``, ``dict``, ...) are pinned by the key, and since
  they are keyed by identity every new one adds a key.

A key made only of primitives therefore stays interned for the lifetime of the
interner, while a key mentioning a short-lived object goes away with it.
"""

from __future__ import annotations

from typing import Any, Callable, Hashable, Iterator, Sequence
import logging
import weakref

from automemo.value_model import hold_key, is_collected, token_for

logger = logging.getLogger("automemo.keys")


class _Collected:
    __slots__ = ()

    def __repr__(self) -> str:
        return "<collected>"


COLLECTED = _Collected()


class CanonicalKey:
    """Interned argument key; hashes and compares by identity."""

    __slots__ = ("_slots", "__weakref__")

    def __init__(self, slots: Sequence[Callable[[], Any]]):
        self._slots = tuple(slots)

    @property
    def alive(self) -> bool:
        """False once a weakly held component has been collected."""
        return not any(is_collected(slot) for slot in self._slots)

    @property
    def components(self) -> tuple[Any, ...]:
        return tuple(self)

    def __iter__(self) -> Iterator[Any]:
        for slot in self._slots:
            yield COLLECTED if is_collected(slot) else slot()

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, index: int) -> Any:
        return self.components[index]

    def __repr__(self) -> str:
        return f"CanonicalKey({', '.join(repr(item) for item in self)})"


class KeyInterner:
    """Maps component sequences to unique :class:`CanonicalKey` objects."""

    def __init__(self) -> None:
        self._keys: dict[tuple[Hashable, ...], CanonicalKey] = {}

    def __len__(self) -> int:
        return len(self._keys)

    def intern(self, components: Sequence[Any]) -> CanonicalKey:
        """Return the canonical key for ``components``, creating it if needed."""
        token = tuple(token_for(component) for component in components)
        key = self._keys.get(token)
        if key is not None and key.alive:
            return key
        return self._create(token, components)

    def _create(self, token: tuple[Hashable, ...], components: Sequence[Any]) -> CanonicalKey:
        interner_ref = weakref.ref(self)
        key_ref: weakref.ref | None = None

        def release(_dead: weakref.ref) -> None:
            interner = interner_ref()
            key = key_ref() if key_ref is not None else None
            if interner is None or key is None:
                return
            if interner._keys.get(token) is key:
                del interner._keys[token]
                logger.debug(f"Released canonical key with {len(token)} components ({len(interner._keys)} interned)")

        # Objects that cannot be weakly referenced are pinned, which also keeps their id stable.
        key = CanonicalKey([hold_key(component, release) for component in components])
        key_ref = weakref.ref(key)
        self._keys[token] = key
        return key
