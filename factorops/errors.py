#!/usr/bin/env python3
"""
Error taxonomy for the message-operator algebra.

Every error carries the factor family and the edge being computed when it
is known, so that an aborted inference run can be traced back to the
operator call that failed.
"""

from typing import Optional


class FactorOpsError(Exception):
    """Base class for all operator failures."""

    def __init__(self, message: str, factor: Optional[str] = None,
                 edge: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.factor = factor
        self.edge = edge

    def add_context(self, factor: str, edge: str) -> "FactorOpsError":
        """Attach factor/edge context unless it is already present."""
        if self.factor is None:
            self.factor = factor
        if self.edge is None:
            self.edge = edge
        return self

    def __str__(self) -> str:
        if self.factor is None and self.edge is None:
            return self.message
        location = ".".join(part for part in (self.factor, self.edge) if part)
        return f"[{location}] {self.message}"


class ShapeMismatchError(FactorOpsError, ValueError):
    """List lengths disagree or an index is out of range."""


class ImproperMessageError(FactorOpsError, ValueError):
    """A message that must be proper is uniform or improper."""


class DegenerateRatioError(FactorOpsError, ZeroDivisionError):
    """The denominator of a ratio is zero where the numerator is not."""


class AllZeroError(FactorOpsError, ArithmeticError):
    """Every candidate has zero weight, or a product has empty support."""


class NotSupportedError(FactorOpsError, NotImplementedError):
    """The operator has no analytic form for this combination of inputs."""


class BufferStateError(FactorOpsError, RuntimeError):
    """A buffer was read or written out of lifecycle order."""
