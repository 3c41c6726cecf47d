from __future__ import annotations

import numpy as np
import pytest

from factorops import Discrete, EvidenceAccumulator, ShapeMismatchError
from factorops.evidence import (
    log1m_exp,
    log_prob_equal,
    log_sum_exp,
    logit_from_log,
    logit_prob_equal,
    product_of_all,
    product_with_all,
    product_with_all_except,
    uses_equal_def_log_evidence_ratio,
    uses_equal_def_log_evidence_ratio_dp,
)


def test_log_sum_exp_does_not_overflow() -> None:
    assert log_sum_exp(1000.0, 1000.0) == pytest.approx(1000.0 + np.log(2.0))
    assert log_sum_exp(-np.inf, 3.0) == 3.0


@pytest.mark.parametrize("x", [-1e-12, -1e-3, -0.5, -np.log(2.0), -5.0, -50.0])
def test_log1m_exp(x: float) -> None:
    assert log1m_exp(x) == pytest.approx(np.log(-np.expm1(x)), rel=1e-12)


def test_log1m_exp_edges() -> None:
    assert log1m_exp(0.0) == -np.inf
    assert log1m_exp(-np.inf) == 0.0
    with pytest.raises(ValueError):
        log1m_exp(0.1)


def test_logit_from_log() -> None:
    assert logit_from_log(np.log(0.25)) == pytest.approx(np.log(1 / 3))
    assert logit_from_log(0.0) == np.inf


@pytest.mark.parametrize("pa,pb", [(0.7, 0.2), (0.5, 0.9), (0.01, 0.99)])
def test_prob_equal_of_two_booleans(pa: float, pb: float) -> None:
    a, b = np.log(pa / (1 - pa)), np.log(pb / (1 - pb))
    p_equal = pa * pb + (1 - pa) * (1 - pb)
    assert logit_prob_equal(a, b) == pytest.approx(np.log(p_equal / (1 - p_equal)))
    assert log_prob_equal(a, b) == pytest.approx(np.log(p_equal))


def test_logit_prob_equal_with_point_masses() -> None:
    assert logit_prob_equal(np.inf, 1.5) == 1.5
    assert logit_prob_equal(-np.inf, 1.5) == -1.5
    assert logit_prob_equal(0.3, -np.inf) == -0.3


def test_products(random_discrete) -> None:
    messages = [random_discrete(3) for _ in range(4)]
    start = random_discrete(3)
    full = start.probs * np.prod([m.probs for m in messages], axis=0)
    np.testing.assert_allclose(product_with_all(start, messages).probs, full / full.sum())
    loo = start.probs * messages[0].probs * messages[1].probs * messages[3].probs
    np.testing.assert_allclose(product_with_all_except(start, messages, 2).probs, loo / loo.sum())
    with pytest.raises(ShapeMismatchError):
        product_with_all_except(start, messages, 4)
    assert product_of_all([], like=start).is_uniform()


def test_leave_one_out_evidence_forms_agree(random_discrete) -> None:
    def_ = random_discrete(4)
    uses = [random_discrete(4) for _ in range(5)]
    to_uses = [product_with_all_except(def_, uses, i) for i in range(5)]
    assert uses_equal_def_log_evidence_ratio(uses, def_, to_uses) == pytest.approx(
        uses_equal_def_log_evidence_ratio_dp(uses, def_))
    with pytest.raises(ShapeMismatchError):
        uses_equal_def_log_evidence_ratio(uses, def_, to_uses[:2])


def test_evidence_of_disjoint_uses_is_minus_infinity() -> None:
    def_ = Discrete([0.5, 0.5])
    uses = [Discrete([1.0, 0.0]), Discrete([0.0, 1.0])]
    to_uses = [Discrete([0.5, 0.5]), Discrete([0.5, 0.5])]
    assert uses_equal_def_log_evidence_ratio(uses, def_, to_uses) == -np.inf


def test_evidence_accumulator() -> None:
    acc = EvidenceAccumulator()
    acc.add("f", -1.0)
    acc.add("x", 0.0)
    acc.add("f", -0.5)
    assert acc.total == pytest.approx(-1.5)
    assert len(acc) == 2
    assert acc.nonzero() == [("f", -1.5)]
    acc.add("g", -np.inf)
    assert acc.total == -np.inf
    with pytest.raises(ValueError):
        acc.add("bad", float("nan"))
