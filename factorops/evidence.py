#!/usr/bin/env python3
"""
Evidence and log-partition helpers shared by all operator families.

Contains the stable log-space scalar functions, the leave-one-out product
primitives and the evidence bookkeeping for variables whose definition is
copied to several uses.
"""

import logging
import numpy as np
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from scipy.special import log_expit, logsumexp

from .errors import ShapeMismatchError

logger = logging.getLogger(__name__)


def log_sum_exp(a: float, b: float) -> float:
    """log(exp(a) + exp(b)) without overflow."""
    return float(logsumexp([a, b]))


def log1m_exp(x: float) -> float:
    """log(1 - exp(x)) for x <= 0."""
    if x > 0:
        raise ValueError(f"log1m_exp needs x <= 0, got {x}")
    if x == 0:
        return -np.inf
    # Switch at -log 2 to keep precision at both ends
    if x > -np.log(2.0):
        return float(np.log(-np.expm1(x)))
    return float(np.log1p(-np.exp(x)))


def logit_from_log(log_p: float) -> float:
    """Log-odds of a probability given as a log probability."""
    return log_p - log1m_exp(log_p)


def logit_prob_equal(a: float, b: float) -> float:
    """Log-odds that two booleans with log-odds ``a`` and ``b`` are equal.

    Args:
        a: Log-odds of the first boolean
        b: Log-odds of the second boolean

    Returns:
        log P(equal) - log P(not equal)
    """
    if np.isinf(a):
        return b if a > 0 else -b
    if np.isinf(b):
        return a if b > 0 else -a
    return float(np.logaddexp(0.0, a + b) - np.logaddexp(a, b))


def log_prob_equal(a: float, b: float) -> float:
    """log P(equal) for two booleans with log-odds ``a`` and ``b``."""
    return float(np.logaddexp(log_expit(a) + log_expit(b), log_expit(-a) + log_expit(-b)))


def product_with_all(start: Any, messages: Sequence[Any]) -> Any:
    result = start
    for message in messages:
        result = result * message
    return result


def product_of_all(messages: Sequence[Any], like: Optional[Any] = None) -> Any:
    """Product of a list of messages, uniform if the list is empty.

    Args:
        messages: Messages to multiply
        like: Any message of the same type and shape, used for the empty product

    Returns:
        The product message
    """
    if like is None:
        if not messages:
            raise ShapeMismatchError("empty product needs a template message")
        like = messages[0]
    return product_with_all(like.to_uniform(), messages)


def product_with_all_except(start: Any, messages: Sequence[Any], index: int) -> Any:
    """Leave-one-out product ``start * prod_{j != index} messages[j]``."""
    if not 0 <= index < len(messages):
        raise ShapeMismatchError(f"index {index} outside 0..{len(messages) - 1}")
    result = start
    for j, message in enumerate(messages):
        if j != index:
            result = result * message
    return result


def uses_equal_def_log_evidence_ratio(uses: Sequence[Any], def_: Any, to_uses: Sequence[Any]) -> float:
    """Evidence contribution of a variable with a definition and several uses.

    ``log ∫ Def·∏Uses - Σ_i log ∫ to_Uses[i]·Uses[i]``, zero with at most one
    use. The first term is built by folding uses into a running product so
    that message normalization never leaks into the result.
    """
    if len(uses) != len(to_uses):
        raise ShapeMismatchError(f"{len(uses)} uses but {len(to_uses)} messages to uses")
    if len(uses) <= 1:
        return 0.0
    product_before = def_
    z = 0.0
    for i, use in enumerate(uses):
        if i > 0:
            product_before = product_before * uses[i - 1]
        z += product_before.log_average_of(use)
        z -= to_uses[i].log_average_of(use)
    return z


def uses_equal_def_log_evidence_ratio_dp(uses: Sequence[Any], def_: Any) -> float:
    """Same quantity as ``uses_equal_def_log_evidence_ratio`` without messages to uses.

    Messages to uses are rebuilt from prefix products (forward pass) and a
    suffix product (backward pass), so the cost stays linear in the number of uses.
    """
    if len(uses) <= 1:
        return 0.0
    product_before = [def_]
    z = def_.log_average_of(uses[0])
    for i in range(1, len(uses)):
        product_before.append(product_before[i - 1] * uses[i - 1])
        z += product_before[i].log_average_of(uses[i])
    # z is now log of the integral of Def times every use
    product_after = def_.to_uniform()
    for i in range(len(uses) - 1, -1, -1):
        to_use = product_before[i] * product_after
        z -= to_use.log_average_of(uses[i])
        product_after = product_after * uses[i]
    logger.debug("Leave-one-out evidence over %d uses: %.6g", len(uses), z)
    return z


class EvidenceAccumulator:
    """Collects named evidence contributions from factors and variables."""

    def __init__(self):
        self.contributions: Dict[str, float] = {}

    def add(self, name: str, value: float) -> None:
        if np.isnan(value):
            raise ValueError(f"evidence contribution '{name}' is NaN")
        self.contributions[name] = self.contributions.get(name, 0.0) + float(value)

    @property
    def total(self) -> float:
        values = list(self.contributions.values())
        if any(v == -np.inf for v in values):
            return -np.inf
        return float(sum(values))

    def items(self) -> Iterator[Tuple[str, float]]:
        return iter(sorted(self.contributions.items()))

    def __len__(self) -> int:
        return len(self.contributions)

    def nonzero(self) -> List[Tuple[str, float]]:
        return [(name, value) for name, value in self.items() if value != 0.0]
