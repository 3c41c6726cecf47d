#!/usr/bin/env python3
"""
Equality-family operators: ``are_equal = (a == b)`` for booleans, discrete
values and strings, and boolean negation.

Each operator accepts every argument either as a constant or as a message
and dispatches on the combination.
"""

import logging
import numpy as np
from typing import Optional

from ..arguments import Constant, Message, classify
from ..distributions import Bernoulli, Discrete, StringDistribution
from ..errors import NotSupportedError, ShapeMismatchError
from ..evidence import log1m_exp, logit_from_log, logit_prob_equal
from ..metadata import factor_operator

logger = logging.getLogger(__name__)

VMP_FIXED_OUTPUT = "Variational Message Passing does not support an equality factor with fixed output."


def _all_constant(*arguments) -> bool:
    return all(isinstance(arg, Constant) for arg in arguments)


class BooleanAreEqualOp:
    """Messages for ``are_equal = (a == b)`` with boolean ``a`` and ``b``."""

    FAMILY = "BooleanAreEqual"

    # -- EP -------------------------------------------------------------------

    @staticmethod
    @factor_operator("BooleanAreEqual", "evidence", "evidence")
    def log_average_factor(are_equal, a, b) -> float:
        """Log of the factor averaged over all message arguments."""
        are_equal, a, b = classify(are_equal), classify(a), classify(b)
        if _all_constant(are_equal, a, b):
            return 0.0 if are_equal.value == (a.value == b.value) else -np.inf
        to_are_equal = BooleanAreEqualOp.are_equal_average_conditional(a, b)
        if isinstance(are_equal, Constant):
            return to_are_equal.log_prob(are_equal.value)
        return to_are_equal.log_average_of(are_equal.value)

    @staticmethod
    @factor_operator("BooleanAreEqual", "evidence", "evidence")
    def log_evidence_ratio(are_equal, a, b) -> float:
        """Evidence contribution; zero once ``are_equal`` is itself random."""
        if isinstance(classify(are_equal), Message):
            return 0.0
        return BooleanAreEqualOp.log_average_factor(are_equal, a, b)

    @staticmethod
    @factor_operator("BooleanAreEqual", "evidence", "vmp")
    def average_log_factor(are_equal, a, b) -> float:
        if _all_constant(classify(are_equal), classify(a), classify(b)):
            return BooleanAreEqualOp.log_average_factor(are_equal, a, b)
        return 0.0

    @staticmethod
    @factor_operator("BooleanAreEqual", "are_equal", skip_if_uniform=("a", "b"))
    def are_equal_average_conditional(a, b) -> Bernoulli:
        a, b = classify(a), classify(b)
        if _all_constant(a, b):
            return Bernoulli.point_mass(a.value == b.value)
        if isinstance(a, Constant):
            return Bernoulli(b.value.log_odds if a.value else -b.value.log_odds)
        if isinstance(b, Constant):
            return Bernoulli(a.value.log_odds if b.value else -a.value.log_odds)
        return Bernoulli(logit_prob_equal(a.value.log_odds, b.value.log_odds))

    @staticmethod
    @factor_operator("BooleanAreEqual", "a", skip_if_uniform=("are_equal", "b"))
    def a_average_conditional(are_equal, b) -> Bernoulli:
        # a == (are_equal == b), so the message has the same form as the one to are_equal
        return BooleanAreEqualOp.are_equal_average_conditional(are_equal, b)

    @staticmethod
    @factor_operator("BooleanAreEqual", "b", skip_if_uniform=("are_equal", "a"))
    def b_average_conditional(are_equal, a) -> Bernoulli:
        return BooleanAreEqualOp.a_average_conditional(are_equal, a)

    # -- VMP ------------------------------------------------------------------

    @staticmethod
    @factor_operator("BooleanAreEqual", "are_equal", "vmp", skip_if_uniform=("a", "b"))
    def are_equal_average_logarithm(a, b) -> Bernoulli:
        return BooleanAreEqualOp.are_equal_average_conditional(a, b)

    @staticmethod
    @factor_operator("BooleanAreEqual", "a", "vmp", skip_if_uniform=("are_equal", "b"))
    def a_average_logarithm(are_equal, b) -> Bernoulli:
        are_equal, b = classify(are_equal), classify(b)
        if isinstance(are_equal, Message) and are_equal.value.is_point_mass:
            are_equal = Constant(are_equal.value.point)
        if isinstance(are_equal, Constant):
            if isinstance(b, Message):
                if not b.value.is_point_mass:
                    raise NotSupportedError(VMP_FIXED_OUTPUT)
                b = Constant(b.value.point)
            return BooleanAreEqualOp.a_average_conditional(are_equal, b)
        log_odds = are_equal.value.log_odds
        if isinstance(b, Constant):
            return Bernoulli(log_odds if b.value else -log_odds)
        return Bernoulli(log_odds * (2 * b.value.prob_true - 1))

    @staticmethod
    @factor_operator("BooleanAreEqual", "b", "vmp", skip_if_uniform=("are_equal", "a"))
    def b_average_logarithm(are_equal, a) -> Bernoulli:
        return BooleanAreEqualOp.a_average_logarithm(are_equal, a)


class DiscreteAreEqualOp:
    """Messages for ``are_equal = (a == b)`` with categorical ``a`` and ``b``.

    When both compared values are constants the message to the other one
    needs the number of categories, passed as ``dimension``.
    """

    FAMILY = "DiscreteAreEqual"

    @staticmethod
    @factor_operator("DiscreteAreEqual", "evidence", "evidence")
    def log_average_factor(are_equal, a, b) -> float:
        are_equal, a, b = classify(are_equal), classify(a), classify(b)
        if _all_constant(are_equal, a, b):
            return 0.0 if are_equal.value == (a.value == b.value) else -np.inf
        to_are_equal = DiscreteAreEqualOp.are_equal_average_conditional(a, b)
        if isinstance(are_equal, Constant):
            return to_are_equal.log_prob(are_equal.value)
        return to_are_equal.log_average_of(are_equal.value)

    @staticmethod
    @factor_operator("DiscreteAreEqual", "evidence", "evidence")
    def log_evidence_ratio(are_equal, a, b) -> float:
        """Evidence contribution; zero once ``are_equal`` is itself random.

        With a fixed ``are_equal`` this is the exact log-average of the
        factor, so messages to ``a`` and ``b`` are free to be normalized.
        """
        if isinstance(classify(are_equal), Message):
            return 0.0
        return DiscreteAreEqualOp.log_average_factor(are_equal, a, b)

    @staticmethod
    @factor_operator("DiscreteAreEqual", "evidence", "vmp")
    def average_log_factor(are_equal, a, b) -> float:
        if _all_constant(classify(are_equal), classify(a), classify(b)):
            return DiscreteAreEqualOp.log_average_factor(are_equal, a, b)
        return 0.0

    @staticmethod
    @factor_operator("DiscreteAreEqual", "are_equal")
    def are_equal_average_conditional(a, b) -> Bernoulli:
        a, b = classify(a), classify(b)
        if _all_constant(a, b):
            return Bernoulli.point_mass(a.value == b.value)
        if isinstance(a, Constant):
            return Bernoulli(logit_from_log(b.value.log_prob(a.value)))
        if isinstance(b, Constant):
            return Bernoulli(logit_from_log(a.value.log_prob(b.value)))
        return Bernoulli(logit_from_log(a.value.log_average_of(b.value)))

    @staticmethod
    @factor_operator("DiscreteAreEqual", "a", skip_if_uniform=("are_equal",))
    def a_average_conditional(are_equal, b, dimension: Optional[int] = None) -> Discrete:
        are_equal, b = classify(are_equal), classify(b)
        dimension = _resolve_dimension(b, dimension)
        if isinstance(are_equal, Message) and are_equal.value.is_point_mass:
            are_equal = Constant(are_equal.value.point)
        if isinstance(b, Message) and b.value.is_point_mass:
            b = Constant(b.value.point)

        if isinstance(are_equal, Constant):
            if isinstance(b, Constant):
                if are_equal.value:
                    return Discrete.point_mass_of(b.value, dimension)
                if dimension == 2:
                    return Discrete.point_mass_of(1 - b.value, dimension)
                probs = np.ones(dimension)
                probs[b.value] = 0.0
                return Discrete(probs)
            if are_equal.value:
                return b.value.clone()
            return Discrete(1.0 - b.value.probs)

        p = are_equal.value.prob_true
        if isinstance(b, Constant):
            probs = np.full(dimension, 1.0 - p)
            probs[b.value] = p
            return Discrete(probs)
        return Discrete(b.value.probs * (2.0 * p - 1.0) + (1.0 - p))

    @staticmethod
    @factor_operator("DiscreteAreEqual", "b", skip_if_uniform=("are_equal",))
    def b_average_conditional(are_equal, a, dimension: Optional[int] = None) -> Discrete:
        return DiscreteAreEqualOp.a_average_conditional(are_equal, a, dimension)

    @staticmethod
    @factor_operator("DiscreteAreEqual", "are_equal", "vmp")
    def are_equal_average_logarithm(a, b) -> Bernoulli:
        return DiscreteAreEqualOp.are_equal_average_conditional(a, b)

    @staticmethod
    @factor_operator("DiscreteAreEqual", "a", "vmp", skip_if_uniform=("are_equal",))
    def a_average_logarithm(are_equal, b, dimension: Optional[int] = None) -> Discrete:
        are_equal, b = classify(are_equal), classify(b)
        if isinstance(are_equal, Message) and are_equal.value.is_point_mass:
            are_equal = Constant(are_equal.value.point)
        if isinstance(are_equal, Constant):
            if isinstance(b, Message):
                if not b.value.is_point_mass:
                    raise NotSupportedError(VMP_FIXED_OUTPUT)
                return DiscreteAreEqualOp.a_average_conditional(
                    are_equal, b.value.point, b.value.dimension)
            return DiscreteAreEqualOp.a_average_conditional(are_equal, b, dimension)
        if isinstance(b, Constant):
            return DiscreteAreEqualOp.a_average_conditional(are_equal, b, dimension)
        # With are_equal marginalized the factor is exp([a == b] * logOdds)
        return Discrete(np.exp(b.value.probs * are_equal.value.log_odds))

    @staticmethod
    @factor_operator("DiscreteAreEqual", "b", "vmp", skip_if_uniform=("are_equal",))
    def b_average_logarithm(are_equal, a, dimension: Optional[int] = None) -> Discrete:
        return DiscreteAreEqualOp.a_average_logarithm(are_equal, a, dimension)


def _resolve_dimension(value, dimension: Optional[int]) -> int:
    if isinstance(value, Message):
        if dimension is not None and dimension != value.value.dimension:
            raise ShapeMismatchError(
                f"dimension {dimension} does not match message dimension {value.value.dimension}")
        return value.value.dimension
    if dimension is None:
        raise ShapeMismatchError("a constant value needs an explicit dimension")
    if not 0 <= value.value < dimension:
        raise ShapeMismatchError(f"value {value.value} outside 0..{dimension - 1}")
    return dimension


class StringsAreEqualOp:
    """Messages for ``are_equal = (str1 == str2)``."""

    FAMILY = "StringsAreEqual"

    @staticmethod
    @factor_operator("StringsAreEqual", "evidence", "evidence")
    def log_average_factor(str1, str2, are_equal) -> float:
        str1, str2, are_equal = classify(str1), classify(str2), classify(are_equal)
        if _all_constant(str1, str2, are_equal):
            return 0.0 if are_equal.value == (str1.value == str2.value) else -np.inf
        log_prob_equal = StringsAreEqualOp._log_prob_equal(str1, str2)
        if isinstance(are_equal, Constant):
            return log_prob_equal if are_equal.value else log1m_exp(log_prob_equal)
        to_are_equal = Bernoulli(logit_from_log(log_prob_equal))
        return to_are_equal.log_average_of(are_equal.value)

    @staticmethod
    @factor_operator("StringsAreEqual", "evidence", "evidence")
    def log_evidence_ratio(str1, str2, are_equal) -> float:
        if isinstance(classify(are_equal), Message):
            return 0.0
        return StringsAreEqualOp.log_average_factor(str1, str2, are_equal)

    @staticmethod
    def _log_prob_equal(str1, str2) -> float:
        if isinstance(str1, Constant) and isinstance(str2, Constant):
            return 0.0 if str1.value == str2.value else -np.inf
        if isinstance(str1, Constant):
            return str2.value.log_prob(str1.value)
        if isinstance(str2, Constant):
            return str1.value.log_prob(str2.value)
        return str1.value.log_average_of(str2.value)

    @staticmethod
    @factor_operator("StringsAreEqual", "are_equal", skip_if_uniform=("str1", "str2"))
    def are_equal_average_conditional(str1, str2) -> Bernoulli:
        str1, str2 = classify(str1), classify(str2)
        if _all_constant(str1, str2):
            return Bernoulli.point_mass(str1.value == str2.value)
        return Bernoulli(logit_from_log(StringsAreEqualOp._log_prob_equal(str1, str2)))

    @staticmethod
    @factor_operator("StringsAreEqual", "str1", skip_if_uniform=("are_equal",))
    def str1_average_conditional(str2, are_equal) -> StringDistribution:
        """Message to ``str1``.

        With ``q = P(are_equal is false)`` the message is the mixture
        ``(1 - 2q) * str2 + q * any``. The complement of ``str2`` is not
        representable, so ``q > 0.5`` is not supported.
        """
        str2, are_equal = classify(str2), classify(are_equal)
        if isinstance(str2, Constant):
            str2 = Message(StringDistribution.point_mass(str2.value))
        if isinstance(are_equal, Constant):
            if are_equal.value:
                return str2.value.clone()
            raise NotSupportedError("the message for a known inequality cannot be represented")

        prob_not_equal = are_equal.value.prob_false
        if prob_not_equal > 0.5:
            raise NotSupportedError(
                f"P(not equal) = {prob_not_equal:.3g} > 0.5 cannot be represented")
        uniform = StringDistribution.any()
        logger.debug("String equality message mixes in 'any' with P(not equal) = %.3g", prob_not_equal)
        with np.errstate(divide="ignore"):
            log_weight1 = float(np.log1p(-2.0 * prob_not_equal))
            log_weight2 = float(np.log(prob_not_equal)) + uniform.log_normalizer()
        return str2.value.weighted_sum_log(log_weight1, uniform, log_weight2)

    @staticmethod
    @factor_operator("StringsAreEqual", "str2", skip_if_uniform=("are_equal",))
    def str2_average_conditional(str1, are_equal) -> StringDistribution:
        return StringsAreEqualOp.str1_average_conditional(str1, are_equal)


class BooleanNotOp:
    """Messages for ``not_b = !b``."""

    FAMILY = "BooleanNot"

    @staticmethod
    @factor_operator("BooleanNot", "evidence", "evidence")
    def log_average_factor(not_b, b) -> float:
        not_b, b = classify(not_b), classify(b)
        if _all_constant(not_b, b):
            return 0.0 if not_b.value == (not b.value) else -np.inf
        if isinstance(not_b, Constant):
            return b.value.log_prob(not not_b.value)
        if isinstance(b, Constant):
            return not_b.value.log_prob(not b.value)
        return not_b.value.log_average_of(Bernoulli(-b.value.log_odds))

    @staticmethod
    @factor_operator("BooleanNot", "evidence", "evidence")
    def log_evidence_ratio(not_b, b) -> float:
        if isinstance(classify(not_b), Message):
            return 0.0
        return BooleanNotOp.log_average_factor(not_b, b)

    @staticmethod
    @factor_operator("BooleanNot", "evidence", "vmp", skip=True)
    def average_log_factor() -> float:
        return 0.0

    @staticmethod
    @factor_operator("BooleanNot", "not_b")
    def not_average_conditional(b) -> Bernoulli:
        b = classify(b)
        if isinstance(b, Constant):
            return Bernoulli.point_mass(not b.value)
        return Bernoulli(-b.value.log_odds)

    @staticmethod
    @factor_operator("BooleanNot", "b")
    def b_average_conditional(not_b) -> Bernoulli:
        return BooleanNotOp.not_average_conditional(not_b)

    @staticmethod
    @factor_operator("BooleanNot", "not_b", "vmp")
    def not_average_logarithm(b) -> Bernoulli:
        return BooleanNotOp.not_average_conditional(b)

    @staticmethod
    @factor_operator("BooleanNot", "b", "vmp")
    def b_average_logarithm(not_b) -> Bernoulli:
        return BooleanNotOp.not_average_conditional(not_b)
