#!/usr/bin/env python3
"""
Constant-versus-message tagging of operator arguments.

Operators receive each argument either as a known value or as a message
about that value. ``classify`` wraps a raw argument in ``Constant`` or
``Message`` so operator bodies can dispatch on the tag.
"""

from dataclasses import dataclass
from typing import Any, Sequence, Union

from .capabilities import is_message
from .errors import ShapeMismatchError


@dataclass(frozen=True)
class Constant:
    """A known value: bool, int, str, float or numpy array."""
    value: Any


@dataclass(frozen=True)
class Message:
    """A distribution over the value."""
    value: Any


Argument = Union[Constant, Message]


def classify(value: Any) -> Argument:
    if isinstance(value, (Constant, Message)):
        return value
    if is_message(value):
        return Message(value)
    return Constant(value)


def classify_all(values: Sequence[Any]) -> Argument:
    """Tag a list argument as a whole.

    A list whose elements are all constants is a ``Constant``; a list of
    messages is a ``Message``. An empty list counts as a list of messages.
    Mixed lists are rejected.
    """
    if isinstance(values, (Constant, Message)):
        return values
    kinds = {is_message(v) for v in values}
    if len(kinds) > 1:
        raise ShapeMismatchError("list mixes constants and messages")
    if kinds == {False}:
        return Constant(list(values))
    return Message(list(values))


def raw(value: Any) -> Any:
    """Strip the tag from an argument."""
    if isinstance(value, (Constant, Message)):
        return value.value
    return value
