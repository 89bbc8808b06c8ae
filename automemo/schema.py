"""Argument key schemas.

A schema turns the arguments of one call into a :class:`CanonicalKey`. Each
argument goes through a :class:`Rule`, which may validate it (``check``) and
project it to the component actually used for keying (``transform``). The
components are then interned, so logically equal argument lists map to the
same key object.

>>> schema = n_tuple(json_value())
>>> schema.derive(({"a": 1, "b": 2},)) is schema.derive(({"b": 2, "a": 1},))
True
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, fields as dataclass_fields, is_dataclass
from typing import Any, Callable, Optional, Sequence

import canonicaljson

from automemo.error_msg import KeyValidationError, SchemaDefinitionError, fail
from automemo.keys import CanonicalKey, KeyInterner
from automemo.value_model import describe_type

CheckFn = Callable[[Any], bool]
TransformFn = Callable[[Any], Any]


class _KeywordSeparator:
    __slots__ = ()

    def __repr__(self) -> str:
        return "<kwargs>"


KWARGS_SEPARATOR = _KeywordSeparator()


@dataclass(frozen=True)
class Rule:
    """Validation predicate and optional key transform for one argument."""

    name: str
    check: Optional[CheckFn] = None
    transform: Optional[TransformFn] = None

    def __post_init__(self) -> None:
        if self.check is not None and not callable(self.check):
            raise SchemaDefinitionError(f"Rule '{self.name}': check must be callable")
        if self.transform is not None and not callable(self.transform):
            raise SchemaDefinitionError(f"Rule '{self.name}': transform must be callable")

    def accepts(self, value: Any) -> bool:
        return self.check is None or bool(self.check(value))

    def project(self, value: Any) -> Any:
        if self.transform is None:
            return value
        return self.transform(value)

    def apply(self, value: Any, position: Any = None) -> Any:
        """Validate ``value`` and return its key component."""
        if not self.accepts(value):
            fail(f"Expected {self.name}, got {describe_type(value)}", position)
        try:
            return self.project(value)
        except KeyValidationError as exc:
            if exc.position is None and position is not None:
                raise KeyValidationError(exc.msg, position) from exc
            raise


# ----------------- Rules -----------------


def value(check: Optional[CheckFn] = None, transform: Optional[TransformFn] = None) -> Rule:
    """Any value; primitives key by value, objects by identity."""
    return Rule("value", check=check, transform=transform)


def boolean() -> Rule:
    return Rule("boolean", check=lambda v: isinstance(v, bool))


def integer() -> Rule:
    return Rule("integer", check=lambda v: isinstance(v, int) and not isinstance(v, bool))


def number() -> Rule:
    return Rule("number", check=lambda v: isinstance(v, (int, float)) and not isinstance(v, bool))


def string() -> Rule:
    return Rule("string", check=lambda v: isinstance(v, str))


def instance_of(*types: type) -> Rule:
    if not types or not all(isinstance(t, type) for t in types):
        raise SchemaDefinitionError("instance_of() needs at least one class")
    label = " or ".join(t.__name__ for t in types)
    return Rule(f"instance of {label}", check=lambda v: isinstance(v, types))


def _normalize_value(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {field.name: _normalize_value(getattr(value, field.name)) for field in dataclass_fields(value)}

    if isinstance(value, Mapping):
        return {str(k): _normalize_value(v) for k, v in sorted(value.items(), key=lambda item: str(item[0]))}

    if isinstance(value, (list, tuple)):
        return [_normalize_value(item) for item in value]

    if isinstance(value, (set, frozenset)):
        items = [_normalize_value(item) for item in value]
        return sorted(items, key=canonicaljson.encode_canonical_json)

    return value


def canonical_json(value: Any) -> bytes:
    """Encode ``value`` structurally; equal structures give equal bytes."""
    try:
        return canonicaljson.encode_canonical_json(_normalize_value(value))
    except (TypeError, ValueError) as exc:
        raise KeyValidationError(f"Value of type {describe_type(value)} is not JSON-compatible: {exc}") from exc


def json_value() -> Rule:
    """Key by canonical JSON, so structurally equal objects share an entry."""
    return Rule("JSON-compatible value", transform=canonical_json)


def fields(*names: str) -> Rule:
    """Key an object (or mapping) by a subset of its fields only."""
    if not names:
        raise SchemaDefinitionError("fields() needs at least one field name")

    def project(obj: Any) -> bytes:
        picked: dict[str, Any] = {}
        for name in names:
            if isinstance(obj, Mapping):
                if name not in obj:
                    raise KeyValidationError(f"Missing field '{name}'")
                picked[name] = obj[name]
            else:
                try:
                    picked[name] = getattr(obj, name)
                except AttributeError:
                    raise KeyValidationError(f"Missing field '{name}' on {describe_type(obj)}") from None
        return canonical_json(picked)

    return Rule(f"object with fields {', '.join(names)}", transform=project)


def one_of(*rules: Rule) -> Rule:
    """First rule whose check accepts the value decides its component."""
    if not rules or not all(isinstance(rule, Rule) for rule in rules):
        raise SchemaDefinitionError("one_of() needs at least one Rule")

    def pick(v: Any) -> Optional[Rule]:
        for rule in rules:
            if rule.accepts(v):
                return rule
        return None

    def transform(v: Any) -> Any:
        rule = pick(v)
        assert rule is not None
        return rule.project(v)

    return Rule(
        " or ".join(rule.name for rule in rules),
        check=lambda v: pick(v) is not None,
        transform=transform,
    )


# ----------------- Schemas -----------------


class KeySchema(ABC):
    """Derives canonical keys from call arguments."""

    def __init__(self) -> None:
        self._interner = KeyInterner()

    @property
    def interned_count(self) -> int:
        return len(self._interner)

    def __call__(self, args: Sequence[Any], kwargs: Optional[Mapping[str, Any]] = None) -> CanonicalKey:
        return self.derive(args, kwargs)

    def derive(self, args: Sequence[Any], kwargs: Optional[Mapping[str, Any]] = None) -> CanonicalKey:
        """Validate the arguments and return their interned key.

        Raises:
            KeyValidationError: the arguments do not fit the schema.
        """
        return self._interner.intern(self.validate(args, kwargs))

    def validate(self, args: Sequence[Any], kwargs: Optional[Mapping[str, Any]] = None) -> list[Any]:
        """Check the arguments like :meth:`derive` does, without interning a key."""
        return self.components(tuple(args), dict(kwargs or {}))

    @abstractmethod
    def components(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> list[Any]:
        """Return the key components for one argument list."""

    @staticmethod
    def _keyword_components(kwargs: dict[str, Any], rule_for: Callable[[str], Rule]) -> list[Any]:
        if not kwargs:
            return []
        out: list[Any] = [KWARGS_SEPARATOR]
        for name in sorted(kwargs):
            out.append(name)
            out.append(rule_for(name).apply(kwargs[name], name))
        return out


class NTupleSchema(KeySchema):
    """Any number of arguments, all keyed by the same rule."""

    def __init__(self, rule: Rule, min_args: int = 0, max_args: Optional[int] = None):
        if not isinstance(rule, Rule):
            raise SchemaDefinitionError(f"Expected a Rule, got {describe_type(rule)}")
        if min_args < 0:
            raise SchemaDefinitionError("min_args cannot be negative")
        if max_args is not None and max_args < min_args:
            raise SchemaDefinitionError("max_args cannot be lower than min_args")
        super().__init__()
        self.rule = rule
        self.min_args = min_args
        self.max_args = max_args

    def components(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> list[Any]:
        if len(args) < self.min_args:
            fail(f"Expected at least {self.min_args} arguments, got {len(args)}")
        if self.max_args is not None and len(args) > self.max_args:
            fail(f"Expected at most {self.max_args} arguments, got {len(args)}")
        out = [self.rule.apply(arg, index) for index, arg in enumerate(args)]
        out.extend(self._keyword_components(kwargs, lambda _name: self.rule))
        return out

    def __repr__(self) -> str:
        return f"n_tuple({self.rule.name})"


class TupleSchema(KeySchema):
    """Fixed positional arity with one rule per position."""

    def __init__(self, rules: Sequence[Rule], keyword_rules: Optional[Mapping[str, Rule]] = None):
        keyword_rules = dict(keyword_rules or {})
        for rule in list(rules) + list(keyword_rules.values()):
            if not isinstance(rule, Rule):
                raise SchemaDefinitionError(f"Expected a Rule, got {describe_type(rule)}")
        super().__init__()
        self.rules = tuple(rules)
        self.keyword_rules = keyword_rules

    def components(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> list[Any]:
        if len(args) != len(self.rules):
            fail(f"Expected {len(self.rules)} arguments, got {len(args)}")
        unknown = sorted(set(kwargs) - set(self.keyword_rules))
        if unknown:
            fail("Unexpected keyword argument", unknown[0])
        out = [rule.apply(arg, index) for index, (rule, arg) in enumerate(zip(self.rules, args))]
        out.extend(self._keyword_components(kwargs, self.keyword_rules.__getitem__))
        return out

    def __repr__(self) -> str:
        return f"tuple_of({', '.join(rule.name for rule in self.rules)})"


def n_tuple(rule: Optional[Rule] = None, min_args: int = 0, max_args: Optional[int] = None) -> NTupleSchema:
    return NTupleSchema(rule if rule is not None else value(), min_args=min_args, max_args=max_args)


def tuple_of(*rules: Rule, **keyword_rules: Rule) -> TupleSchema:
    return TupleSchema(rules, keyword_rules)


def default_schema() -> KeySchema:
    """Key every argument opaquely: primitives by value, objects by identity."""
    return n_tuple(value())
