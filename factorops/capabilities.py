#!/usr/bin/env python3
"""
Capability contracts for messages.

Each protocol names one capability. Operators require only the capabilities
they use, so a message type satisfies an operator by implementing that
subset rather than by inheriting from a common base class.
"""

from typing import Any, Iterable, Protocol, runtime_checkable


@runtime_checkable
class SettableToUniform(Protocol):
    def to_uniform(self) -> Any: ...

    def is_uniform(self) -> bool: ...


@runtime_checkable
class SettableToProduct(Protocol):
    def __mul__(self, other: Any) -> Any: ...


@runtime_checkable
class SettableToRatio(Protocol):
    def __truediv__(self, other: Any) -> Any: ...

    def ratio(self, other: Any, force_proper: bool = False) -> Any: ...

    def can_divide(self, other: Any) -> bool: ...


@runtime_checkable
class SettableToPower(Protocol):
    def __pow__(self, exponent: float) -> Any: ...


@runtime_checkable
class SettableToWeightedSum(Protocol):
    def weighted_sum(self, weight: float, other: Any, other_weight: float) -> Any: ...


@runtime_checkable
class CanGetLogAverageOf(Protocol):
    def log_average_of(self, other: Any) -> float: ...


@runtime_checkable
class CanGetAverageLog(Protocol):
    def average_log(self, other: Any) -> float: ...


@runtime_checkable
class HasPoint(Protocol):
    @property
    def is_point_mass(self) -> bool: ...

    @property
    def point(self) -> Any: ...

    def point_mass(self, value: Any) -> Any: ...


@runtime_checkable
class Sampleable(Protocol):
    def sample(self, rng: Any = None) -> Any: ...


@runtime_checkable
class CanGetLogProb(Protocol):
    def log_prob(self, value: Any) -> float: ...


@runtime_checkable
class CanBeProper(Protocol):
    def is_proper(self) -> bool: ...


@runtime_checkable
class Cloneable(Protocol):
    def clone(self) -> Any: ...


@runtime_checkable
class Distribution(Protocol):
    """The minimum a value needs to travel on an edge as a message."""

    def to_uniform(self) -> Any: ...

    def is_uniform(self) -> bool: ...

    def log_average_of(self, other: Any) -> float: ...

    def clone(self) -> Any: ...


def is_message(value: Any) -> bool:
    """True when ``value`` is a message rather than a constant."""
    return isinstance(value, Distribution)


def is_uniform_message(value: Any) -> bool:
    return is_message(value) and value.is_uniform()


def all_uniform(messages: Iterable[Any]) -> bool:
    """True when every element is a uniform message (vacuously for empty input)."""
    return all(is_uniform_message(m) for m in messages)


def is_proper_message(value: Any) -> bool:
    """A message is proper when it integrates to a finite positive value."""
    if not is_message(value):
        return False
    if isinstance(value, CanBeProper):
        return value.is_proper()
    return not value.is_uniform()
