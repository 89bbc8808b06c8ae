"""Weak tables backing the two memo tiers.

Tier A is :class:`weakref.WeakKeyDictionary`: keys must support weak references
and values are held strongly for as long as the key lives. Tier B is the
:class:`WeakerTable` below, which accepts any key and value and weakens every
side that can be weakly referenced.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Callable, Hashable, Iterator
import logging
import weakref

from automemo.value_model import hold, hold_key, is_collected, is_primitive, is_structural, token_for

logger = logging.getLogger("automemo.weak_table")


def reference_only_table() -> "weakref.WeakKeyDictionary[Any, Any]":
    """Return an empty Tier A table."""
    return weakref.WeakKeyDictionary()


class _Entry:
    __slots__ = ("key", "value", "__weakref__")

    def __init__(self) -> None:
        self.key: Callable[[], Any] | None = None
        self.value: Callable[[], Any] | None = None

    @property
    def alive(self) -> bool:
        return not (is_collected(self.key) or is_collected(self.value))


class WeakerTable(MutableMapping):
    """Mapping whose entries vanish once a weakly held key or value is collected.

    - primitive keys are compared by type and value, plain tuples and
      frozensets by their members, other keys by identity;
    - primitive keys and values are held strongly;
    - other keys and values are held weakly when their type allows it and
      strongly otherwise (``list``, ``dict``, ``tuple``, ...).

    An entry with a strong key and a strong value therefore never expires.
    """

    def __init__(self) -> None:
        self._entries: dict[Hashable, _Entry] = {}

    def _make_evictor(self, token: Hashable, entry: _Entry) -> Callable[[Any], None]:
        table_ref = weakref.ref(self)
        entry_ref = weakref.ref(entry)

        def evict(_dead: Any) -> None:
            table = table_ref()
            if table is None:
                return
            current = table._entries.get(token)
            if current is not None and current is entry_ref():
                del table._entries[token]
                logger.debug(f"Evicted collected entry ({len(table._entries)} remaining)")

        return evict

    def _lookup(self, key: Any) -> _Entry | None:
        entry = self._entries.get(token_for(key))
        if entry is None or not entry.alive:
            return None
        if not (is_primitive(key) or is_structural(key)) and entry.key() is not key:
            return None
        return entry

    def __getitem__(self, key: Any) -> Any:
        entry = self._lookup(key)
        if entry is None:
            raise KeyError(key)
        return entry.value()

    def __setitem__(self, key: Any, value: Any) -> None:
        token = token_for(key)
        entry = _Entry()
        evict = self._make_evictor(token, entry)
        entry.key = hold_key(key, evict)
        entry.value = hold(value, evict)
        self._entries[token] = entry

    def __delitem__(self, key: Any) -> None:
        if self._lookup(key) is None:
            raise KeyError(key)
        del self._entries[token_for(key)]

    def __iter__(self) -> Iterator[Any]:
        for entry in list(self._entries.values()):
            if entry.alive:
                yield entry.key()

    def __len__(self) -> int:
        # Eviction callbacks run as soon as a referent is collected.
        return len(self._entries)

    def __repr__(self) -> str:
        return f"<WeakerTable with {len(self)} entries>"
