#!/usr/bin/env python3
"""
Process-wide operator settings.
"""

from contextlib import contextmanager
from dataclasses import dataclass, fields, replace
from typing import Iterator


@dataclass
class OperatorSettings:
    """Numeric policies shared by all operator families.

    Attributes:
        force_proper: Clamp improper EP projections (negative precision) to
            uniform in the gate exit message.
        ratio_fallback: Fall back to the no-divide algorithm when a buffered
            ratio is degenerate. When False the degenerate ratio is raised.
    """
    force_proper: bool = True
    ratio_fallback: bool = True


settings = OperatorSettings()


@contextmanager
def override_settings(**changes) -> Iterator[OperatorSettings]:
    """Temporarily change fields of the global settings."""
    known = {f.name for f in fields(OperatorSettings)}
    unknown = set(changes) - known
    if unknown:
        raise ValueError(f"Unknown operator settings: {sorted(unknown)}")

    saved = replace(settings)
    for name, value in changes.items():
        setattr(settings, name, value)
    try:
        yield settings
    finally:
        for name in known:
            setattr(settings, name, getattr(saved, name))
