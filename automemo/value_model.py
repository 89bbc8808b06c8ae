"""Runtime value classification used to place memo entries and build key tokens."""

from __future__ import annotations

from typing import Any, Hashable, Literal
import math
import weakref

ResultCategory = Literal["primitive", "reference"]

PRIMITIVE_TYPES: tuple[type, ...] = (type(None), bool, int, float, complex, str, bytes)

STRUCTURAL_TYPES: tuple[type, ...] = (tuple, frozenset)

_NAN_TOKEN = "nan"


class _ReferenceMarker:
    """Tags identity-based key tokens so they never equal a value token."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "<ref>"


REF = _ReferenceMarker()


def is_primitive(value: Any) -> bool:
    """Return True for values that are not separately tracked by the collector."""
    return isinstance(value, PRIMITIVE_TYPES)


def classify(value: Any) -> ResultCategory:
    """Classify a computed result for tier placement.

    >>> classify(1), classify(None), classify("x")
    ('primitive', 'primitive', 'primitive')
    >>> classify([]), classify(len)
    ('reference', 'reference')
    """
    if is_primitive(value):
        return "primitive"
    return "reference"


def supports_weakref(value: Any) -> bool:
    """Return True when ``weakref.ref(value)`` would succeed."""
    if is_primitive(value):
        return False
    try:
        weakref.ref(value)
    except TypeError:
        return False
    return True


def value_token(value: Any) -> Hashable:
    """Return the hashable lookup token of a primitive value.

    The type is part of the token so that ``True``, ``1`` and ``1.0`` stay
    distinct. NaN is folded to a single token because it never equals itself.

    >>> value_token(1) == value_token(True)
    False
    >>> value_token(float("nan")) == value_token(float("nan"))
    True
    """
    if isinstance(value, float) and math.isnan(value):
        return (type(value), _NAN_TOKEN)
    if isinstance(value, complex) and (math.isnan(value.real) or math.isnan(value.imag)):
        return (type(value), _NAN_TOKEN, repr(value))
    return (type(value), value)


def identity_token(value: Any) -> Hashable:
    """Return the lookup token of an object compared by identity.

    Only valid while ``value`` is alive; callers must either hold it or drop
    the token when it is collected.
    """
    return (REF, id(value))


def is_structural(value: Any) -> bool:
    """Return True for plain tuples and frozensets, which are keyed by their members."""
    return type(value) in STRUCTURAL_TYPES


def token_for(value: Any) -> Hashable:
    """Return the lookup token of a key component.

    Primitives are keyed by value, plain tuples and frozensets by the tokens of
    their members, everything else by identity.

    >>> token_for((1, "a")) == token_for(tuple([1, "a"]))
    True
    >>> token_for((1,)) == token_for([1])
    False
    """
    if is_primitive(value):
        return value_token(value)
    if is_structural(value):
        kind = type(value)
        return (kind, kind(token_for(item) for item in value))
    return identity_token(value)


def describe_type(value: Any) -> str:
    cls = type(value)
    if cls.__module__ == "builtins":
        return cls.__name__
    return f"{cls.__module__}.{cls.__name__}"


class StrongRef:
    """Callable holder with the call protocol of ``weakref.ref``."""

    __slots__ = ("value",)

    def __init__(self, value: Any):
        self.value = value

    def __call__(self) -> Any:
        return self.value

    def __repr__(self) -> str:
        return f"<strong reference to {describe_type(self.value)}>"


def hold(value: Any, callback: Any = None) -> "weakref.ref | StrongRef":
    """Reference ``value`` weakly when it can be, strongly otherwise."""
    if is_primitive(value):
        return StrongRef(value)
    try:
        return weakref.ref(value, callback)
    except TypeError:
        return StrongRef(value)


class MemberRef:
    """Holds the members of a tuple or frozenset key component, each as ``hold_key`` would.

    Calling it rebuilds an equal container, or returns None once a weakly held
    member has been collected.
    """

    __slots__ = ("kind", "members")

    def __init__(self, value: Any, callback: Any = None):
        self.kind = type(value)
        self.members = tuple(hold_key(item, callback) for item in value)

    @property
    def collected(self) -> bool:
        return any(is_collected(member) for member in self.members)

    def __call__(self) -> Any:
        if self.collected:
            return None
        return self.kind(member() for member in self.members)

    def __repr__(self) -> str:
        return f"<member reference to {self.kind.__name__} of {len(self.members)}>"


def hold_key(value: Any, callback: Any = None) -> "weakref.ref | StrongRef | MemberRef":
    """Like :func:`hold`, but tuples and frozensets are held member by member.

    Used for keys, whose tokens describe such containers by their members, so
    the container itself need not be pinned.
    """
    if is_structural(value):
        return MemberRef(value, callback)
    return hold(value, callback)


def is_collected(ref: Any) -> bool:
    """True when ``ref`` is a weak reference whose referent is gone."""
    if isinstance(ref, MemberRef):
        return ref.collected
    return isinstance(ref, weakref.ref) and ref() is None
