#!/usr/bin/env python3
"""
Buffers: per-factor-instance aggregates carried across sweeps.

A buffer such as a replicate ``marginal`` or ``to_def`` moves through an
explicit lifecycle. It is created empty when the schedule is built, filled
by an init operator, and overwritten by update operators on every sweep.
"""

from enum import Enum
from typing import Any, Optional

from .errors import BufferStateError


class BufferState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    UPDATED = "updated"


class Buffer:
    """Mutable holder for one aggregate value owned by a single factor instance."""

    def __init__(self, name: str, value: Optional[Any] = None):
        self.name = name
        self._value = None
        self.state = BufferState.UNINITIALIZED
        self.updates = 0
        if value is not None:
            self.initialize(value)

    @property
    def value(self) -> Any:
        if self.state is BufferState.UNINITIALIZED:
            raise BufferStateError(f"buffer '{self.name}' read before it was initialized")
        return self._value

    @property
    def is_initialized(self) -> bool:
        return self.state is not BufferState.UNINITIALIZED

    def initialize(self, value: Any) -> "Buffer":
        if self.state is not BufferState.UNINITIALIZED:
            raise BufferStateError(f"buffer '{self.name}' is already {self.state.value}")
        self._value = value
        self.state = BufferState.INITIALIZED
        return self

    def update(self, value: Any) -> "Buffer":
        if self.state is BufferState.UNINITIALIZED:
            raise BufferStateError(f"buffer '{self.name}' updated before it was initialized")
        self._value = value
        self.state = BufferState.UPDATED
        self.updates += 1
        return self

    def write(self, value: Any) -> "Buffer":
        """Initialize on first write, update afterwards."""
        if self.state is BufferState.UNINITIALIZED:
            return self.initialize(value)
        return self.update(value)

    def reset(self) -> "Buffer":
        """Return the buffer to its schedule-build state."""
        self._value = None
        self.state = BufferState.UNINITIALIZED
        self.updates = 0
        return self

    def __repr__(self) -> str:
        return f"Buffer(name={self.name!r}, state={self.state.value}, value={self._value!r})"
