from __future__ import annotations

from decimal import Decimal, localcontext

import numpy as np
import pytest

from factorops import (
    AllZeroError,
    Bernoulli,
    Discrete,
    ExitingVariableOp,
    Gaussian,
    GateEnterPartialOp,
    GateExitOp,
    GateExitTwoOp,
    ImproperMessageError,
    ReplicateExitingOp,
    ShapeMismatchError,
    override_settings,
)


def _one_hot(n: int, i: int):
    return [k == i for k in range(n)]


def _high_precision_exit(exit: Gaussian, cases, values, force_proper: bool = True) -> Gaussian:
    """Soft exit message with the mixture weights computed in 60-digit decimal arithmetic."""
    log_scales = [exit.log_average_of(v) + c.log_odds for c, v in zip(cases, values)]
    with localcontext() as ctx:
        ctx.prec = 60
        weights = [Decimal(s).exp() for s in log_scales]
        total = sum(weights)
        normalized = [float(w / total) for w in weights]
    products = [exit * v for v in values]
    mean = sum(w * p.mean for w, p in zip(normalized, products))
    second = sum(w * (p.variance + p.mean ** 2) for w, p in zip(normalized, products))
    mixture = Gaussian.from_mean_and_variance(mean, second - mean ** 2)
    return mixture.ratio(exit, force_proper=force_proper)


@pytest.mark.parametrize("n,i", [(n, i) for n in range(1, 6) for i in range(n)])
def test_hard_case_exit_is_selected_value(random_gaussian, n: int, i: int) -> None:
    values = [random_gaussian() for _ in range(n)]
    exit = random_gaussian()
    assert GateExitOp.exit_average_conditional(exit, _one_hot(n, i), values) == values[i]
    assert GateExitOp.exit_average_logarithm(_one_hot(n, i), values) == values[i]


def test_hard_case_with_no_true_case_is_all_zero(random_gaussian) -> None:
    values = [random_gaussian(), random_gaussian()]
    with pytest.raises(AllZeroError):
        GateExitOp.exit_average_conditional(random_gaussian(), [False, False], values)


def test_cases_and_values_must_line_up(random_gaussian) -> None:
    with pytest.raises(ShapeMismatchError):
        GateExitOp.exit_average_conditional(random_gaussian(), [True], [random_gaussian()] * 2)
    with pytest.raises(ShapeMismatchError):
        GateExitOp.exit_average_conditional(random_gaussian(), [], [])


def test_soft_exit_with_uniform_exit_is_moment_matched_mixture() -> None:
    values = [Gaussian.from_mean_and_variance(0.0, 1.0), Gaussian.from_mean_and_variance(2.0, 1.0)]
    cases = [Bernoulli(0.0), Bernoulli(0.0)]
    message = GateExitOp.exit_average_conditional(Gaussian.uniform(), cases, values)
    mean, variance = message.mean_and_variance()
    assert mean == pytest.approx(1.0)
    assert variance == pytest.approx(2.0)


@pytest.mark.parametrize("log_odds", [
    [-400.0, 0.0, 350.0, 349.5],
    [-1000.0, -1001.0],
    [300.0, -300.0, 299.0],
    [-np.inf, 5.0, 4.0],
])
def test_soft_exit_is_stable_for_extreme_log_odds(log_odds) -> None:
    exit = Gaussian.from_mean_and_variance(0.5, 3.0)
    values = [Gaussian.from_mean_and_variance(m, v) for m, v in
              zip([-1.0, 0.0, 2.0, 3.0], [0.5, 1.0, 2.0, 0.25])][:len(log_odds)]
    cases = [Bernoulli(lo) for lo in log_odds]
    message = GateExitOp.exit_average_conditional(exit, cases, values)
    assert np.isfinite(message.precision) and np.isfinite(message.mean_times_precision)
    expected = _high_precision_exit(exit, cases, values)
    assert message.precision == pytest.approx(expected.precision, rel=1e-8, abs=1e-12)
    assert message.mean_times_precision == pytest.approx(expected.mean_times_precision, rel=1e-8, abs=1e-12)


def test_soft_exit_dominated_by_one_case_returns_it() -> None:
    exit = Gaussian.from_mean_and_variance(0.0, 1.0)
    values = [Gaussian.from_mean_and_variance(1.0, 1.0), Gaussian.from_mean_and_variance(-1.0, 1.0)]
    message = GateExitOp.exit_average_conditional(exit, [Bernoulli(-np.inf), Bernoulli(0.0)], values)
    assert message == values[1]


def test_soft_exit_with_every_case_impossible_is_all_zero() -> None:
    exit = Gaussian.from_mean_and_variance(0.0, 1.0)
    values = [Gaussian.from_mean_and_variance(1.0, 1.0)] * 3
    with pytest.raises(AllZeroError):
        GateExitOp.exit_average_conditional(exit, [Bernoulli(-np.inf)] * 3, values)


def test_force_proper_setting_controls_exit_projection() -> None:
    # A wide mixture divided by a narrow exit gives negative precision
    exit = Gaussian.from_mean_and_variance(0.0, 0.1)
    values = [Gaussian.from_mean_and_variance(-5.0, 1.0), Gaussian.from_mean_and_variance(5.0, 1.0)]
    cases = [Bernoulli(0.0), Bernoulli(0.0)]
    assert GateExitOp.exit_average_conditional(exit, cases, values).is_uniform()
    with override_settings(force_proper=False):
        assert GateExitOp.exit_average_conditional(exit, cases, values).precision < 0


def test_exit_from_known_values() -> None:
    exit = Discrete.uniform(3)
    assert GateExitOp.exit_average_conditional(exit, [False, True], [0, 2]).point == 2
    mixture = GateExitOp.exit_average_conditional(exit, [Bernoulli(0.0), Bernoulli(np.log(3.0))], [0, 2])
    np.testing.assert_allclose(mixture.probs, [0.25, 0.0, 0.75])


def test_cases_message_is_log_average_of_exit_and_value() -> None:
    exit = Discrete([0.2, 0.8])
    values = [Discrete([0.5, 0.5]), Discrete([0.1, 0.9])]
    messages = GateExitOp.cases_average_conditional(exit, values)
    assert messages[0].log_odds == pytest.approx(np.log(0.5))
    assert messages[1].log_odds == pytest.approx(np.log(0.2 * 0.1 + 0.8 * 0.9))
    known = GateExitOp.cases_average_conditional(exit, [0, 1])
    assert known[1].log_odds == pytest.approx(np.log(0.8))


def test_log_evidence_ratio() -> None:
    exit = Discrete([0.2, 0.8])
    to_exit = Discrete([0.6, 0.4])
    values = [Discrete([0.5, 0.5])]
    assert GateExitOp.log_evidence_ratio(exit, [True], values, to_exit) == 0.0
    assert GateExitOp.log_evidence_ratio(exit, [Bernoulli(0.0)], values, to_exit) == pytest.approx(
        -np.log(0.2 * 0.6 + 0.8 * 0.4))


def test_vmp_exit_is_power_weighted_product() -> None:
    values = [Gaussian.from_mean_and_variance(0.0, 1.0), Gaussian.from_mean_and_variance(4.0, 0.5)]
    cases = [Bernoulli(0.0), Bernoulli(np.log(3.0))]
    message = GateExitOp.exit_average_logarithm(cases, values)
    assert message.precision == pytest.approx(0.25 * 1.0 + 0.75 * 2.0)
    assert message.mean_times_precision == pytest.approx(0.75 * 8.0)
    with pytest.raises(AllZeroError):
        GateExitOp.exit_average_logarithm([Bernoulli(-np.inf)] * 2, values)


def test_vmp_cases_require_proper_values() -> None:
    exit = Gaussian.from_mean_and_variance(0.0, 1.0)
    with pytest.raises(ImproperMessageError):
        GateExitOp.cases_average_logarithm(exit, [Gaussian.uniform(), exit])
    messages = GateExitOp.cases_average_logarithm(exit, [exit, exit])
    assert messages[0].log_odds == pytest.approx(exit.average_log(exit))


def test_gate_exit_two_matches_mixture() -> None:
    exit_two = Gaussian.uniform()
    values = [Gaussian.from_mean_and_variance(0.0, 1.0), Gaussian.from_mean_and_variance(2.0, 1.0)]
    message = GateExitTwoOp.exit_two_average_conditional(exit_two, Bernoulli(0.0), Bernoulli(0.0), values)
    mean, variance = message.mean_and_variance()
    assert mean == pytest.approx(1.0)
    assert variance == pytest.approx(2.0)
    with pytest.raises(ShapeMismatchError):
        GateExitTwoOp.exit_two_average_conditional(exit_two, Bernoulli(0.0), Bernoulli(0.0), values[:1])


def test_gate_exit_two_case_messages() -> None:
    exit_two = Discrete([0.3, 0.7])
    assert GateExitTwoOp.case0_average_conditional(exit_two, [0, 1]).log_odds == pytest.approx(np.log(0.3))
    assert GateExitTwoOp.case1_average_conditional(exit_two, [0, 1]).log_odds == pytest.approx(np.log(0.7))
    assert GateExitTwoOp.case0_average_conditional(exit_two, [exit_two, exit_two]).is_uniform()


def test_exiting_variable_and_replicate_exiting() -> None:
    def_ = Discrete([0.3, 0.7])
    uses = [Discrete([0.5, 0.5]), Discrete([0.2, 0.8]), Discrete([0.9, 0.1])]
    assert ExitingVariableOp.use_average_logarithm(def_) is def_
    assert ExitingVariableOp.def_average_logarithm(uses[0]) is uses[0]
    to_exit = ReplicateExitingOp.uses_average_logarithm(uses, def_, 0)
    expected = def_.probs * uses[1].probs * uses[2].probs
    np.testing.assert_allclose(to_exit.probs, expected / expected.sum())
    np.testing.assert_array_equal(ReplicateExitingOp.uses_average_logarithm(uses, def_, 2).probs, uses[0].probs)
    np.testing.assert_array_equal(ReplicateExitingOp.def_average_logarithm(uses).probs, uses[0].probs)


def test_enter_partial_with_known_selector() -> None:
    value = Discrete([0.5, 0.5])
    copies = [Discrete([0.2, 0.8]), Discrete([0.6, 0.4])]
    np.testing.assert_array_equal(
        GateEnterPartialOp.value_average_conditional(copies, 1, value, [0, 1]).probs, copies[1].probs)
    np.testing.assert_array_equal(
        GateEnterPartialOp.value_average_conditional(copies, True, value, [0, 1]).probs, copies[0].probs)
    # A branch with no gated copy sends nothing back
    assert GateEnterPartialOp.value_average_conditional(copies, 2, value, [0, 1]).is_uniform()


def test_enter_partial_mixture_over_all_branches() -> None:
    value = Discrete([0.4, 0.6])
    copies = [Discrete([0.2, 0.8]), Discrete([0.6, 0.4])]
    selector = Discrete([0.3, 0.7])
    message = GateEnterPartialOp.value_average_conditional(copies, selector, value, [0, 1])
    mixture = sum(p * (value * c).probs for p, c in zip(selector.probs, copies))
    expected = mixture / value.probs
    np.testing.assert_allclose(message.probs, expected / expected.sum())


def test_enter_partial_keeps_value_for_uncovered_branches() -> None:
    value = Discrete([0.4, 0.6])
    copies = [Discrete([0.2, 0.8]), Discrete([0.6, 0.4])]
    selector = Discrete([0.2, 0.5, 0.3])
    message = GateEnterPartialOp.value_average_conditional(copies, selector, value, [0, 2])
    mixture = (0.2 * (value * copies[0]).probs + 0.3 * (value * copies[1]).probs + 0.5 * value.probs)
    expected = mixture / value.probs
    np.testing.assert_allclose(message.probs, expected / expected.sum())


def test_enter_partial_copy_incompatible_with_value_gets_no_weight() -> None:
    value = Discrete([1.0, 0.0])
    copies = [Discrete([0.0, 1.0]), Discrete([0.5, 0.5])]
    message = GateEnterPartialOp.value_average_conditional(copies, Discrete([0.5, 0.5]), value, [0, 1])
    np.testing.assert_allclose(message.probs, [1.0, 0.0])


def test_enter_partial_bernoulli_selector_and_vmp() -> None:
    value = Gaussian.from_mean_and_variance(0.0, 1.0)
    copies = [Gaussian.from_mean_and_variance(1.0, 1.0), Gaussian.from_mean_and_variance(-1.0, 2.0)]
    selector = Bernoulli.from_prob(0.25)
    message = GateEnterPartialOp.value_average_logarithm(copies, selector, value, [0, 1])
    assert message.precision == pytest.approx(0.25 * 1.0 + 0.75 * 0.5)
    assert message.mean_times_precision == pytest.approx(0.25 * 1.0 + 0.75 * -0.5)
    with pytest.raises(ShapeMismatchError):
        GateEnterPartialOp.value_average_conditional(copies * 2, selector, value, [0, 1, 0, 1])
    enter = GateEnterPartialOp.enter_partial_average_conditional(value, [0, 1])
    assert enter == [value, value]
