#!/usr/bin/env python3
"""
Replicate/broadcast operators: one definition copied to N uses.

The message to use i is the definition times every other use. Two
strategies compute it:

    no-divide   recompute the leave-one-out product, O(N) per message
    divide      keep a ``marginal`` buffer holding Def times all uses and
                divide out use i, O(1) per message

The divide strategy falls back to no-divide for one edge whenever the
ratio is degenerate.
"""

import logging
from typing import Any, List, Optional, Sequence

from ..arguments import Constant, classify
from ..buffers import Buffer
from ..errors import ShapeMismatchError
from ..evidence import (
    product_of_all,
    product_with_all,
    product_with_all_except,
    uses_equal_def_log_evidence_ratio,
    uses_equal_def_log_evidence_ratio_dp
)
from ..gibbs import GibbsMarginal
from ..metadata import factor_operator
from ..outcomes import Ok, try_ratio, unwrap
from ..settings import settings

logger = logging.getLogger(__name__)


def _check_index(uses: Sequence[Any], result_index: int) -> None:
    if not 0 <= result_index < len(uses):
        raise ShapeMismatchError(f"result_index {result_index} outside 0..{len(uses) - 1}")


class ReplicateOpNoDivide:
    """Leave-one-out products recomputed from scratch."""

    @staticmethod
    @factor_operator("ReplicateNoDivide", "marginal")
    def marginal_average_conditional(uses: Sequence[Any], def_: Any) -> Any:
        return product_with_all(def_, uses)

    @staticmethod
    @factor_operator("ReplicateNoDivide", "uses")
    def uses_average_conditional(uses: Sequence[Any], def_: Any, result_index: int) -> Any:
        _check_index(uses, result_index)
        if len(uses) == 1:
            return def_.clone()
        return product_with_all_except(def_, uses, result_index)

    @staticmethod
    @factor_operator("ReplicateNoDivide", "def_", skip_if_all_uniform=("uses",))
    def def_average_conditional(uses: Sequence[Any], result: Optional[Any] = None) -> Any:
        return product_of_all(uses, like=result)


class ReplicateOpDivide:
    """Buffered replicate: messages to uses are ``marginal / use``.

    Buffers: ``marginal`` (Def times every use) and ``to_def`` (product of
    every use).
    """

    @staticmethod
    @factor_operator("ReplicateDivide", "def_", skip_if_uniform=("to_def",))
    def def_average_conditional(to_def: Buffer) -> Any:
        return to_def.value.clone()

    @staticmethod
    @factor_operator("ReplicateDivide", "uses", fresh=("marginal",))
    def uses_average_conditional(uses: Sequence[Any], def_: Any, marginal: Buffer,
                                 result_index: int) -> Any:
        """Message to one use by dividing it out of the marginal.

        Args:
            uses: Incoming messages from every use
            def_: Incoming message from the definition
            marginal: Buffer holding Def times all uses
            result_index: Which use to compute the message for

        Returns:
            Message to ``uses[result_index]``
        """
        _check_index(uses, result_index)
        if len(uses) == 1:
            return def_.clone()
        outcome = try_ratio(marginal.value, uses[result_index])
        if isinstance(outcome, Ok):
            return outcome.value
        if not settings.ratio_fallback:
            return unwrap(outcome, "ReplicateDivide", "uses")
        logger.debug("Use %d: %s; recomputing without division", result_index, outcome.reason)
        return ReplicateOpNoDivide.uses_average_conditional(uses, def_, result_index)

    @staticmethod
    @factor_operator("ReplicateDivide", "marginal", "buffer", skip_if_uniform=("def_",))
    def marginal_init(def_: Any) -> Buffer:
        # Uses may be empty at schedule time, so start from Def alone
        return Buffer("marginal", def_.clone())

    @staticmethod
    @factor_operator("ReplicateDivide", "marginal", "buffer", fresh=("to_def",))
    def marginal(to_def: Buffer, def_: Any, marginal: Buffer) -> Buffer:
        return marginal.write(def_ * to_def.value)

    @staticmethod
    @factor_operator("ReplicateDivide", "marginal", "buffer", fresh=("to_use",))
    def marginal_increment(marginal: Buffer, to_use: Any, use: Any) -> Buffer:
        """Refresh the marginal after one use changed.

        ``to_use`` is the leave-one-out message just sent to the use, so its
        product with the new ``use`` is the full marginal.
        """
        return marginal.write(use * to_use)

    @staticmethod
    @factor_operator("ReplicateDivide", "to_def", "buffer", skip=True)
    def to_def_init(def_: Any) -> Buffer:
        return Buffer("to_def", def_.to_uniform())

    @staticmethod
    @factor_operator("ReplicateDivide", "to_def", "buffer", skip_if_all_uniform=("uses",))
    def to_def(uses: Sequence[Any], to_def: Buffer) -> Buffer:
        return to_def.write(product_of_all(uses, like=to_def.value))


class ReplicateOp:
    """Evidence and VMP messages shared by both EP strategies."""

    @staticmethod
    @factor_operator("Replicate", "evidence", "evidence", skip=True)
    def log_average_factor() -> float:
        return 0.0

    @staticmethod
    @factor_operator("Replicate", "evidence", "evidence",
                     skip_if_all_uniform=("uses",), fresh=("to_uses",))
    def log_evidence_ratio(uses: Sequence[Any], def_: Any, to_uses: Sequence[Any]) -> float:
        return uses_equal_def_log_evidence_ratio(uses, def_, to_uses)

    @staticmethod
    @factor_operator("Replicate", "evidence", "vmp", skip=True)
    def average_log_factor() -> float:
        return 0.0

    @staticmethod
    @factor_operator("Replicate", "uses", skip=True)
    def uses_init(def_: Any, count: int) -> List[Any]:
        return [def_.clone() for _ in range(count)]

    @staticmethod
    @factor_operator("Replicate", "uses", "vmp")
    def uses_average_logarithm(def_: Any, result_index: int) -> Any:
        # In VMP every use receives the full current belief, not a leave-one-out residual
        return def_.clone()

    @staticmethod
    @factor_operator("Replicate", "marginal", "vmp")
    def marginal_average_logarithm(def_: Any) -> Any:
        return def_.clone()

    @staticmethod
    @factor_operator("Replicate", "def_", "vmp", skip_if_all_uniform=("uses",), trigger=("uses",))
    def def_average_logarithm(uses: Sequence[Any], result: Optional[Any] = None) -> Any:
        return product_of_all(uses, like=result)


class ReplicateGibbsOp:
    """Gibbs sampling through a replicate factor.

    The variable's ``GibbsMarginal`` holds the latest conditional and
    sample; uses receive the sample, the definition receives the product
    of the use messages.
    """

    @staticmethod
    @factor_operator("ReplicateGibbs", "marginal", "gibbs")
    def marginal_gibbs(uses: Sequence[Any], def_: Any, to_marginal: GibbsMarginal) -> GibbsMarginal:
        def_ = classify(def_)
        if isinstance(def_, Constant):
            conditional = to_marginal.last_conditional.point_mass(def_.value)
        else:
            conditional = product_with_all(def_.value, uses)
        to_marginal.post_update(conditional)
        return to_marginal

    @staticmethod
    @factor_operator("ReplicateGibbs", "uses", "gibbs", skip_if_uniform=("to_marginal",))
    def uses_gibbs(to_marginal: GibbsMarginal, def_: Any, result_index: int) -> Any:
        def_ = classify(def_)
        if isinstance(def_, Constant):
            return def_.value
        return to_marginal.last_sample

    @staticmethod
    @factor_operator("ReplicateGibbs", "def_", "gibbs", skip_if_all_uniform=("uses",))
    def def_gibbs(uses: Sequence[Any], result: Optional[Any] = None) -> Any:
        return product_of_all(uses, like=result)

    @staticmethod
    @factor_operator("ReplicateGibbs", "def_", "gibbs")
    def def_gibbs_sample(to_marginal: GibbsMarginal) -> Any:
        return to_marginal.last_sample

    @staticmethod
    @factor_operator("ReplicateGibbs", "evidence", "gibbs", skip=True)
    def gibbs_evidence() -> float:
        return 0.0


class UsesEqualDefOp:
    """A variable seen as a factor tying its definition to all of its uses."""

    @staticmethod
    @factor_operator("UsesEqualDef", "evidence", "evidence",
                     skip_if_all_uniform=("uses",), fresh=("to_uses",))
    def log_evidence_ratio(uses: Sequence[Any], def_: Any, to_uses: Sequence[Any]) -> float:
        return uses_equal_def_log_evidence_ratio(uses, def_, to_uses)

    @staticmethod
    @factor_operator("UsesEqualDef", "evidence", "evidence", skip_if_all_uniform=("uses",))
    def log_evidence_ratio_dp(uses: Sequence[Any], def_: Any) -> float:
        return uses_equal_def_log_evidence_ratio_dp(uses, def_)

    @staticmethod
    @factor_operator("UsesEqualDef", "marginal")
    def marginal_average_conditional(uses: Sequence[Any], def_: Any) -> Any:
        return product_with_all(def_, uses)

    @staticmethod
    @factor_operator("UsesEqualDef", "uses")
    def uses_average_conditional(uses: Sequence[Any], def_: Any, result_index: int) -> Any:
        _check_index(uses, result_index)
        return product_with_all_except(def_, uses, result_index)

    @staticmethod
    @factor_operator("UsesEqualDef", "def_", skip_if_all_uniform=("uses",))
    def def_average_conditional(uses: Sequence[Any], result: Optional[Any] = None) -> Any:
        return product_of_all(uses, like=result)
