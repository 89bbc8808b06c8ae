"""Tiered memoization keyed by canonical argument keys."""

from automemo.error_msg import AutomemoError, KeyValidationError, SchemaDefinitionError
from automemo.keys import CanonicalKey, KeyInterner
from automemo.tiered import MemoStats, automemo, memoize
from automemo.schema import (
    KeySchema,
    Rule,
    boolean,
    default_schema,
    fields,
    instance_of,
    integer,
    json_value,
    n_tuple,
    number,
    one_of,
    string,
    tuple_of,
    value,
)
from automemo.settings import MemoSettings
from automemo.version import __version__
from automemo.weak_table import WeakerTable

__all__ = [
    "AutomemoError",
    "CanonicalKey",
    "KeyInterner",
    "KeySchema",
    "KeyValidationError",
    "MemoSettings",
    "MemoStats",
    "Rule",
    "SchemaDefinitionError",
    "WeakerTable",
    "__version__",
    "automemo",
    "boolean",
    "default_schema",
    "fields",
    "instance_of",
    "integer",
    "json_value",
    "memoize",
    "n_tuple",
    "number",
    "one_of",
    "string",
    "tuple_of",
    "value",
]
