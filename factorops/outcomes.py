#!/usr/bin/env python3
"""
Result variants for expected numeric conditions.

A degenerate ratio and an all-zero fold are data conditions rather than
bugs, so they are returned as values. Callers choose the fallback
explicitly, and only ``unwrap`` turns a variant into an exception.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from .errors import AllZeroError, DegenerateRatioError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ok:
    value: Any


@dataclass(frozen=True)
class DegenerateRatio:
    reason: str


@dataclass(frozen=True)
class AllZero:
    reason: str


Outcome = Union[Ok, DegenerateRatio, AllZero]


def try_ratio(numerator: Any, denominator: Any, force_proper: bool = False) -> Union[Ok, DegenerateRatio]:
    """Divide two messages when the division loses nothing.

    The check is the analytic ``can_divide`` predicate. A division that
    passes the predicate and still raises is a genuine error and is not
    converted into ``DegenerateRatio``.
    """
    if not numerator.can_divide(denominator):
        reason = f"{type(denominator).__name__} denominator has a zero or point-mass component"
        logger.debug("Degenerate ratio: %s", reason)
        return DegenerateRatio(reason)
    return Ok(numerator.ratio(denominator, force_proper=force_proper))


def unwrap(outcome: Outcome, factor: Optional[str] = None, edge: Optional[str] = None) -> Any:
    """Return the value of an ``Ok`` or raise the error matching the variant."""
    if isinstance(outcome, Ok):
        return outcome.value
    if isinstance(outcome, DegenerateRatio):
        raise DegenerateRatioError(outcome.reason, factor, edge)
    if isinstance(outcome, AllZero):
        raise AllZeroError(outcome.reason, factor, edge)
    raise TypeError(f"Not an outcome: {outcome!r}")
