#!/usr/bin/env python3
"""
Scheduler hints declared on operator functions.

Each operator is registered with the factor family it belongs to, the edge
(or evidence/buffer) it computes, and the hints a scheduler uses for its
dependency analysis:

    skip                 the call may always be omitted (returns uniform or 0)
    skip_if_uniform      omit the call when any of these message arguments is uniform
    skip_if_all_uniform  omit the call when every element of these list arguments is uniform
    proper               these message arguments must be proper
    fresh                these arguments must be computed in the same sweep
    trigger              a change in these arguments invalidates the result
"""

import functools
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from .buffers import Buffer
from .capabilities import is_message, is_proper_message, is_uniform_message
from .errors import FactorOpsError, ImproperMessageError

logger = logging.getLogger(__name__)

ALGORITHMS = ("ep", "vmp", "gibbs", "evidence", "buffer")

REGISTRY: Dict[Tuple[str, str], Callable] = {}


@dataclass(frozen=True)
class OperatorInfo:
    family: str
    target: str
    algorithm: str = "ep"
    skip: bool = False
    skip_if_uniform: Tuple[str, ...] = ()
    skip_if_all_uniform: Tuple[str, ...] = ()
    proper: Tuple[str, ...] = ()
    fresh: Tuple[str, ...] = ()
    trigger: Tuple[str, ...] = ()

    @property
    def argument_names(self) -> Tuple[str, ...]:
        return (self.skip_if_uniform + self.skip_if_all_uniform + self.proper
                + self.fresh + self.trigger)


def factor_operator(family: str, target: str, algorithm: str = "ep", *,
                    skip: bool = False,
                    skip_if_uniform: Tuple[str, ...] = (),
                    skip_if_all_uniform: Tuple[str, ...] = (),
                    proper: Tuple[str, ...] = (),
                    fresh: Tuple[str, ...] = (),
                    trigger: Tuple[str, ...] = ()) -> Callable:
    """Declare an operator function and its scheduler hints.

    The wrapped function checks ``proper`` arguments before running and
    attaches ``family``/``target`` to any operator error that escapes it.

    Args:
        family: Factor family name, e.g. ``"Replicate"``
        target: Edge name, ``"evidence"`` or a buffer name
        algorithm: One of ``ALGORITHMS``

    Returns:
        Decorator registering the function under ``(family, function name)``
    """
    if algorithm not in ALGORITHMS:
        raise ValueError(f"Unknown algorithm: {algorithm}")

    info = OperatorInfo(family, target, algorithm, skip, tuple(skip_if_uniform),
                        tuple(skip_if_all_uniform), tuple(proper), tuple(fresh),
                        tuple(trigger))

    def decorator(fn: Callable) -> Callable:
        signature = inspect.signature(fn)
        for name in info.argument_names:
            if name not in signature.parameters:
                raise ValueError(f"{fn.__qualname__} has no argument '{name}'")

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            if info.proper:
                bound = signature.bind(*args, **kwargs)
                for name in info.proper:
                    if name in bound.arguments:
                        _require_proper(bound.arguments[name], info, name)
            try:
                return fn(*args, **kwargs)
            except FactorOpsError as exc:
                exc.add_context(info.family, info.target)
                raise

        wrapper.operator_info = info
        key = (family, fn.__name__)
        if key in REGISTRY:
            logger.debug("Re-registering operator %s.%s", family, fn.__name__)
        REGISTRY[key] = wrapper
        return wrapper

    return decorator


def _require_proper(value: Any, info: OperatorInfo, name: str) -> None:
    values = value if isinstance(value, (list, tuple)) else [value]
    for item in values:
        if is_message(item) and not is_proper_message(item):
            raise ImproperMessageError(f"argument '{name}' must be proper, got {item!r}",
                                       info.family, info.target)


def operator_info(fn: Callable) -> Optional[OperatorInfo]:
    return getattr(fn, "operator_info", None)


def lookup(family: str, name: str) -> Callable:
    try:
        return REGISTRY[(family, name)]
    except KeyError:
        raise KeyError(f"No operator {family}.{name}") from None


def operators_for(family: str) -> Dict[str, Callable]:
    """All registered operators of one factor family, keyed by function name."""
    return {name: fn for (fam, name), fn in REGISTRY.items() if fam == family}


def should_skip(fn: Callable, **arguments: Any) -> bool:
    """Decide from declared hints whether a call can be omitted.

    Args:
        fn: A registered operator
        arguments: The arguments the scheduler is about to pass, by name

    Returns:
        True if the call may be skipped
    """
    info = operator_info(fn)
    if info is None:
        return False
    if info.skip:
        return True
    for name in info.skip_if_uniform:
        if name in arguments and is_uniform_message(_contents(arguments[name])):
            return True
    for name in info.skip_if_all_uniform:
        items = _contents(arguments.get(name))
        if items is not None and all(is_uniform_message(m) for m in items):
            return True
    return False


def _contents(value: Any) -> Any:
    # Buffers are judged by what they hold; an empty buffer is never uniform
    if isinstance(value, Buffer):
        return value.value if value.is_initialized else None
    return value
