"""Partial key matching for targeted refetches.

``partial_match(candidate, pattern)`` decides whether a refetch request
carrying *pattern* concerns a route-data instance whose current key is
*candidate*.  The pattern is sparse: record fields it leaves out are
ignored, and a sequence pattern matches any candidate it is a prefix of.

    >>> partial_match({"id": 1, "tab": "posts"}, {"id": 1})
    True
    >>> partial_match(["user", 7], ["user"])
    True
    >>> partial_match("user", [])
    False

Comparison is driven by a closed set of shape tags, so only mappings
and non-string sequences are ever looked into.
"""

from collections.abc import Mapping, Sequence
from enum import Enum
from numbers import Number
from typing import Any


class Shape(Enum):
    SCALAR = "scalar"
    SEQUENCE = "sequence"
    RECORD = "record"


def shape_of(value: object) -> Shape:
    """Tag *value* as a record, a sequence, or a scalar."""
    if isinstance(value, Mapping):
        return Shape.RECORD
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return Shape.SEQUENCE
    return Shape.SCALAR


def _scalar_kind(value: object) -> type:
    # bool is an int subclass; keep it apart so True never matches 1
    if isinstance(value, bool):
        return bool
    if isinstance(value, Number):
        return Number
    return type(value)


def scalar_equal(a: object, b: object) -> bool:
    """Strict scalar equality: same kind of value and ``==``."""
    if a is b:
        return True
    if _scalar_kind(a) is not _scalar_kind(b):
        return False
    return bool(a == b)


def _as_sequence(value: Any) -> Any:
    if shape_of(value) is Shape.SEQUENCE:
        return value
    return [value]


def partial_match(candidate: Any, pattern: Any) -> bool:
    """True if *pattern* partially matches *candidate*.

    Both sides are wrapped into a one-element list first unless they are
    already sequences.  Argument order matters: pass the narrower
    pattern second.
    """
    return partial_deep_equal(_as_sequence(candidate), _as_sequence(pattern))


def partial_deep_equal(a: Any, b: Any) -> bool:
    """Check whether *b* partially matches *a*."""
    if a is b:
        return True

    shape = shape_of(a)
    if shape is not shape_of(b):
        return False

    if shape is Shape.SCALAR:
        return scalar_equal(a, b)

    if shape is Shape.SEQUENCE:
        if len(a) and not len(b):
            return False
        if len(b) > len(a):
            return False
        return all(partial_deep_equal(a[i], b[i]) for i in range(len(b)))

    return all(k in a and partial_deep_equal(a[k], b[k]) for k in b)
