#!/usr/bin/env python3
"""
Gate operators: a value ``exit`` selected from candidates ``values[i]`` by
case indicators, and the matching ``enter`` side that routes one value into
several gated branches.

Cases arrive either as a one-hot list of bools (hard selection) or as one
Bernoulli message per candidate (soft selection). Soft exit messages are
mixtures ``sum_i exp(logOdds_i) * exit * values[i]`` folded in log space and
projected back by dividing out ``exit``.
"""

import logging
import numpy as np
from typing import Any, List, Sequence

from ..arguments import Constant, classify, classify_all
from ..distributions import Bernoulli, Discrete
from ..errors import AllZeroError, ShapeMismatchError
from ..evidence import log1m_exp, product_with_all_except
from ..metadata import factor_operator
from ..settings import settings

logger = logging.getLogger(__name__)


def _check_cases(cases: Sequence[Any], values: Sequence[Any]) -> None:
    if len(cases) != len(values):
        raise ShapeMismatchError(f"{len(cases)} cases for {len(values)} values")
    if not cases:
        raise ShapeMismatchError("a gate needs at least one case")


def _true_case(cases: Sequence[bool]) -> int:
    for i, case in enumerate(cases):
        if case:
            return i
    raise AllZeroError("no case is true")


def _case_weights(cases: Sequence[Bernoulli]) -> np.ndarray:
    """Normalized case weights ``softmax(logOdds)``; all -inf is an empty gate."""
    log_odds = np.array([case.log_odds for case in cases], dtype=float)
    if np.any(np.isnan(log_odds)):
        raise AllZeroError("case log-odds is NaN")
    shift = log_odds.max()
    if np.isneginf(shift):
        raise AllZeroError("every case has zero weight")
    if np.isposinf(shift):
        weights = np.isposinf(log_odds).astype(float)
    else:
        weights = np.exp(log_odds - shift)
    return weights / weights.sum()


def _power_product(weights: np.ndarray, values: Sequence[Any]) -> Any:
    """``prod_i values[i] ** weights[i]``, skipping zero weights."""
    result = values[0].to_uniform()
    for weight, value in zip(weights, values):
        if weight > 0:
            result = result * value ** float(weight)
    return result


def _fold_mixture(log_weights: Sequence[float], components: Sequence[Any]) -> Any:
    """Moment-matched mixture of ``components`` with log-space weights.

    Running log-sum-exp keeps the fold finite for weights many orders of
    magnitude apart. A -inf shift is skipped unless it is the last term.
    """
    result = components[0]
    result_scale = log_weights[0]
    last = len(components) - 1
    for i in range(1, len(components)):
        scale = log_weights[i]
        shift = max(result_scale, scale)
        if np.isneginf(shift):
            if i == last:
                raise AllZeroError("every case has zero weight")
            logger.debug("Skipping case %d: no weight so far", i)
            continue
        weight1 = np.exp(result_scale - shift)
        weight2 = np.exp(scale - shift)
        if weight2 > 0:
            result = result.weighted_sum(weight1, components[i], weight2)
            result_scale = np.logaddexp(result_scale, scale)
    return result


class GateExitOp:
    """Messages for ``exit = values[i]`` where case ``i`` is on."""

    # -- EP -------------------------------------------------------------------

    @staticmethod
    @factor_operator("GateExit", "evidence", "evidence",
                     skip_if_uniform=("exit",), fresh=("to_exit",))
    def log_evidence_ratio(exit, cases, values, to_exit) -> float:
        """Cancels the evidence already counted by the exit variable's other factors."""
        if isinstance(classify_all(cases), Constant):
            return 0.0
        return -to_exit.log_average_of(exit)

    @staticmethod
    @factor_operator("GateExit", "values")
    def values_average_conditional(exit, count: int) -> List[Any]:
        # Messages into a gate are passed through unchanged
        return [exit.clone() for _ in range(count)]

    @staticmethod
    @factor_operator("GateExit", "cases", skip_if_uniform=("exit",))
    def cases_average_conditional(exit, values) -> List[Bernoulli]:
        """Bernoulli per case with log-odds ``log of the integral of exit * values[i]``.

        Args:
            exit: Message from the exit variable
            values: Candidate messages, or known candidate values

        Returns:
            One Bernoulli message per case
        """
        values = classify_all(values)
        if isinstance(values, Constant):
            return [Bernoulli(exit.log_prob(value)) for value in values.value]
        return [Bernoulli(exit.log_average_of(value)) for value in values.value]

    @staticmethod
    @factor_operator("GateExit", "exit", skip=True)
    def exit_average_conditional_init(values) -> Any:
        return values[0].clone()

    @staticmethod
    @factor_operator("GateExit", "exit", skip_if_all_uniform=("values",))
    def exit_average_conditional(exit, cases, values) -> Any:
        """Message to ``exit``.

        Args:
            exit: Current message from the exit variable
            cases: One-hot bools or one Bernoulli message per case
            values: Candidate messages, or known candidate values

        Returns:
            The projected mixture divided by ``exit``, or the selected
            candidate when the selection is certain
        """
        cases, values = classify_all(cases), classify_all(values)
        _check_cases(cases.value, values.value)
        if isinstance(values, Constant):
            return GateExitOp._exit_from_points(exit, cases, values.value)
        if isinstance(cases, Constant):
            return values.value[_true_case(cases.value)].clone()
        if len(cases.value) == 1:
            return values.value[0].clone()
        return GateExitOp._exit_soft(exit, cases.value, values.value)

    @staticmethod
    def _exit_soft(exit, cases: Sequence[Bernoulli], values: Sequence[Any]) -> Any:
        result_scale = exit.log_average_of(values[0]) + cases[0].log_odds
        if np.isnan(result_scale):
            raise AllZeroError("case 0 has an undefined weight")
        # While one case dominates completely the result is that candidate
        # itself, so the product with exit is built lazily
        result_index = 0
        result = None
        last = len(cases) - 1
        for i in range(1, len(cases)):
            scale = exit.log_average_of(values[i]) + cases[i].log_odds
            if np.isnan(scale):
                raise AllZeroError(f"case {i} has an undefined weight")
            shift = max(result_scale, scale)
            if np.isneginf(shift):
                if i == last:
                    raise AllZeroError("every case has zero weight")
                continue
            weight1 = np.exp(result_scale - shift)
            weight2 = np.exp(scale - shift)
            if weight2 <= 0:
                continue
            if weight1 == 0:
                result_index = i
                result_scale = scale
                continue
            if result_index >= 0:
                result = exit * values[result_index]
                result_index = -1
            result = result.weighted_sum(weight1, exit * values[i], weight2)
            result_scale = np.logaddexp(result_scale, scale)
        if result_index >= 0:
            logger.debug("Case %d dominates the exit mixture", result_index)
            return values[result_index].clone()
        return result.ratio(exit, force_proper=settings.force_proper)

    @staticmethod
    def _exit_from_points(exit, cases, values: Sequence[Any]) -> Any:
        if isinstance(cases, Constant):
            return exit.point_mass(values[_true_case(cases.value)])
        points = [exit.point_mass(value) for value in values]
        return _fold_mixture([case.log_odds for case in cases.value], points)

    # -- VMP ------------------------------------------------------------------

    @staticmethod
    @factor_operator("GateExit", "evidence", "vmp", skip_if_uniform=("exit",), fresh=("to_exit",))
    def average_log_factor(exit, to_exit) -> float:
        return -to_exit.average_log(exit)

    @staticmethod
    @factor_operator("GateExit", "values", "vmp", trigger=("exit",))
    def values_average_logarithm(exit, count: int) -> List[Any]:
        return [exit.clone() for _ in range(count)]

    @staticmethod
    @factor_operator("GateExit", "cases", "vmp", skip_if_uniform=("exit",),
                     skip_if_all_uniform=("values",), proper=("values",), trigger=("values",))
    def cases_average_logarithm(exit, values) -> List[Bernoulli]:
        return [Bernoulli(value.average_log(exit)) for value in values]

    @staticmethod
    @factor_operator("GateExit", "exit", "vmp", skip=True)
    def exit_average_logarithm_init(values) -> Any:
        return values[0].clone()

    @staticmethod
    @factor_operator("GateExit", "exit", "vmp", skip_if_all_uniform=("values",), proper=("values",))
    def exit_average_logarithm(cases, values) -> Any:
        """Blurred exit message ``prod_i values[i] ** w_i`` with ``w = softmax(logOdds)``."""
        cases = classify_all(cases)
        _check_cases(cases.value, values)
        if isinstance(cases, Constant):
            return values[_true_case(cases.value)].clone()
        return _power_product(_case_weights(cases.value), values)


class GateExitTwoOp:
    """Two-case exit with the cases given as separate Bernoulli messages."""

    @staticmethod
    @factor_operator("GateExitTwo", "values", skip_if_uniform=("exit_two",))
    def values_average_conditional(exit_two) -> List[Any]:
        return [exit_two.clone(), exit_two.clone()]

    @staticmethod
    @factor_operator("GateExitTwo", "case0")
    def case0_average_conditional(exit_two, values) -> Bernoulli:
        values = classify_all(values)
        if isinstance(values, Constant):
            return Bernoulli(exit_two.log_prob(values.value[0]))
        return Bernoulli.uniform()

    @staticmethod
    @factor_operator("GateExitTwo", "case1")
    def case1_average_conditional(exit_two, values) -> Bernoulli:
        values = classify_all(values)
        if isinstance(values, Constant):
            return Bernoulli(exit_two.log_prob(values.value[1]))
        return Bernoulli.uniform()

    @staticmethod
    @factor_operator("GateExitTwo", "exit_two", skip_if_all_uniform=("values",))
    def exit_two_average_conditional(exit_two, case0: Bernoulli, case1: Bernoulli, values) -> Any:
        values = classify_all(values)
        if len(values.value) != 2:
            raise ShapeMismatchError(f"a two-case exit needs 2 values, got {len(values.value)}")
        log_weights = [case0.log_odds, case1.log_odds]
        if isinstance(values, Constant):
            return _fold_mixture(log_weights, [exit_two.point_mass(v) for v in values.value])
        products = [exit_two * value for value in values.value]
        return _fold_mixture(log_weights, products).ratio(exit_two)

    @staticmethod
    @factor_operator("GateExitTwo", "evidence", "vmp", fresh=("to_exit_two",))
    def average_log_factor(exit_two, to_exit_two) -> float:
        return -to_exit_two.average_log(exit_two)

    @staticmethod
    @factor_operator("GateExitTwo", "values", "vmp", skip_if_uniform=("exit_two",), trigger=("exit_two",))
    def values_average_logarithm(exit_two) -> List[Any]:
        return [exit_two.clone(), exit_two.clone()]

    @staticmethod
    @factor_operator("GateExitTwo", "case0", "vmp",
                     skip_if_all_uniform=("values",), proper=("values",))
    def case0_average_logarithm(exit_two, values) -> Bernoulli:
        return Bernoulli(values[0].average_log(exit_two))

    @staticmethod
    @factor_operator("GateExitTwo", "case1", "vmp",
                     skip_if_all_uniform=("values",), proper=("values",))
    def case1_average_logarithm(exit_two, values) -> Bernoulli:
        return Bernoulli(values[1].average_log(exit_two))

    @staticmethod
    @factor_operator("GateExitTwo", "exit_two", "vmp",
                     skip_if_all_uniform=("values",), proper=("values",))
    def exit_two_average_logarithm(case0: Bernoulli, case1: Bernoulli, values) -> Any:
        if len(values) != 2:
            raise ShapeMismatchError(f"a two-case exit needs 2 values, got {len(values)}")
        return _power_product(_case_weights([case0, case1]), values)


class ExitingVariableOp:
    """VMP pass-through for a variable defined inside a gate and used outside."""

    @staticmethod
    @factor_operator("ExitingVariable", "evidence", "vmp", skip=True)
    def average_log_factor() -> float:
        return 0.0

    @staticmethod
    @factor_operator("ExitingVariable", "marginal", "vmp")
    def marginal_average_logarithm(use) -> Any:
        return use

    @staticmethod
    @factor_operator("ExitingVariable", "marginal", "vmp", skip=True)
    def marginal_average_logarithm_init(def_) -> Any:
        return def_.clone()

    @staticmethod
    @factor_operator("ExitingVariable", "use", "vmp")
    def use_average_logarithm(def_) -> Any:
        return def_

    @staticmethod
    @factor_operator("ExitingVariable", "def_", "vmp")
    def def_average_logarithm(use) -> Any:
        return use


class ReplicateExitingOp:
    """VMP replicate whose use 0 is the exiting edge of a gate."""

    @staticmethod
    @factor_operator("ReplicateExiting", "evidence", "vmp", skip=True)
    def average_log_factor() -> float:
        return 0.0

    @staticmethod
    @factor_operator("ReplicateExiting", "uses", "vmp", skip_if_all_uniform=("uses",))
    def uses_average_logarithm(uses, def_, result_index: int) -> Any:
        if not 0 <= result_index < len(uses):
            raise ShapeMismatchError(f"result_index {result_index} outside 0..{len(uses) - 1}")
        if result_index == 0:
            return product_with_all_except(def_, uses, 0)
        return uses[0].clone()

    @staticmethod
    @factor_operator("ReplicateExiting", "uses", "vmp", skip=True)
    def uses_average_logarithm_init(def_, result_index: int) -> Any:
        return def_.clone()

    @staticmethod
    @factor_operator("ReplicateExiting", "def_", "vmp", skip_if_all_uniform=("uses",))
    def def_average_logarithm(uses) -> Any:
        return uses[0].clone()


class GateEnterPartialOp:
    """Routes ``value`` into the gated branches listed in ``indices``.

    The selector is a Discrete over branches, an int, a Bernoulli (branch 0
    is ``True``) or a bool.
    """

    @staticmethod
    @factor_operator("GateEnterPartial", "evidence", "evidence", skip=True)
    def log_evidence_ratio() -> float:
        return 0.0

    @staticmethod
    @factor_operator("GateEnterPartial", "evidence", "evidence", skip=True)
    def log_average_factor() -> float:
        return 0.0

    @staticmethod
    @factor_operator("GateEnterPartial", "enter_partial")
    def enter_partial_average_conditional(value, indices: Sequence[int]) -> List[Any]:
        return [value.clone() for _ in indices]

    @staticmethod
    @factor_operator("GateEnterPartial", "selector", skip=True)
    def selector_average_conditional(selector) -> Any:
        return selector.to_uniform()

    @staticmethod
    @factor_operator("GateEnterPartial", "value",
                     skip_if_uniform=("selector",), skip_if_all_uniform=("enter_partial",))
    def value_average_conditional(enter_partial, selector, value, indices: Sequence[int]) -> Any:
        """Message to the entering value.

        Args:
            enter_partial: Messages from each gated copy of the value
            selector: Discrete, Bernoulli, int or bool branch selector
            value: Current message from the value
            indices: Branch number of each copy

        Returns:
            The mixture over branches divided by ``value``
        """
        _check_partial(enter_partial, indices)
        selector = classify(selector)
        if isinstance(selector, Constant):
            return _selected_copy(enter_partial, selector.value, value, indices)
        log_probs, dimension = _selector_log_probs(selector.value, indices, len(enter_partial))

        # A copy whose product with value is empty contributes no weight
        components, log_weights = [], []
        for copy, log_prob in zip(enter_partial, log_probs):
            try:
                components.append(value * copy)
                log_weights.append(log_prob)
            except AllZeroError:
                components.append(value.clone())
                log_weights.append(-np.inf)
        result = _fold_mixture(log_weights, components)
        if len(indices) < dimension:
            # Branches without a copy leave the value untouched
            log_prob_sum = np.logaddexp.reduce(log_weights)
            rest = log1m_exp(log_prob_sum)
            shift = max(log_prob_sum, rest)
            if np.isneginf(shift):
                raise AllZeroError("selector gives no weight to any branch")
            result = result.weighted_sum(np.exp(log_prob_sum - shift), value, np.exp(rest - shift))
        return result.ratio(value, force_proper=settings.force_proper)

    @staticmethod
    @factor_operator("GateEnterPartial", "evidence", "vmp", skip=True)
    def average_log_factor() -> float:
        return 0.0

    @staticmethod
    @factor_operator("GateEnterPartial", "enter_partial", "vmp")
    def enter_partial_average_logarithm(value, indices: Sequence[int]) -> List[Any]:
        return [value.clone() for _ in indices]

    @staticmethod
    @factor_operator("GateEnterPartial", "selector", "vmp", skip=True)
    def selector_average_logarithm(selector) -> Any:
        return selector.to_uniform()

    @staticmethod
    @factor_operator("GateEnterPartial", "value", "vmp", skip_if_all_uniform=("enter_partial",))
    def value_average_logarithm(enter_partial, selector, value, indices: Sequence[int]) -> Any:
        """``prod_k enter_partial[k] ** P(selector = indices[k])``."""
        _check_partial(enter_partial, indices)
        selector = classify(selector)
        if isinstance(selector, Constant):
            return _selected_copy(enter_partial, selector.value, value, indices)
        log_probs, _ = _selector_log_probs(selector.value, indices, len(enter_partial))
        return _power_product(np.exp(log_probs), enter_partial)


def _check_partial(enter_partial: Sequence[Any], indices: Sequence[int]) -> None:
    if len(indices) != len(enter_partial):
        raise ShapeMismatchError(f"{len(indices)} indices for {len(enter_partial)} gated copies")
    if not indices:
        raise ShapeMismatchError("indices is empty")


def _selector_log_probs(selector, indices: Sequence[int], count: int):
    if isinstance(selector, Discrete):
        if selector.dimension < count:
            raise ShapeMismatchError(f"selector has {selector.dimension} branches for {count} copies")
        return np.array([selector.log_prob(i) for i in indices]), selector.dimension
    if isinstance(selector, Bernoulli):
        if count > 2:
            raise ShapeMismatchError(f"a Bernoulli selector has 2 branches for {count} copies")
        return np.array([selector.log_prob(i == 0) for i in indices]), 2
    raise ShapeMismatchError(f"unsupported selector message {type(selector).__name__}")


def _selected_copy(enter_partial: Sequence[Any], selector, value, indices: Sequence[int]) -> Any:
    # bool selectors pick branch 0 for True
    if isinstance(selector, (bool, np.bool_)):
        selector = 0 if selector else 1
    for copy, index in zip(enter_partial, indices):
        if index == selector:
            return copy.clone()
    return value.to_uniform()
