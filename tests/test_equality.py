from __future__ import annotations

import itertools

import numpy as np
import pytest

from factorops import (
    Bernoulli,
    BooleanAreEqualOp,
    BooleanNotOp,
    Discrete,
    DiscreteAreEqualOp,
    NotSupportedError,
    ShapeMismatchError,
    StringDistribution,
    StringsAreEqualOp,
)


@pytest.mark.parametrize("a,b", list(itertools.product([True, False], repeat=2)))
def test_boolean_log_average_factor_on_constants(a: bool, b: bool) -> None:
    assert BooleanAreEqualOp.log_average_factor(a == b, a, b) == 0.0
    assert BooleanAreEqualOp.log_average_factor(a != b, a, b) == -np.inf


def test_boolean_are_equal_message_matches_enumeration() -> None:
    a, b = Bernoulli.from_prob(0.7), Bernoulli.from_prob(0.2)
    message = BooleanAreEqualOp.are_equal_average_conditional(a, b)
    assert message.prob_true == pytest.approx(0.7 * 0.2 + 0.3 * 0.8)


BOOLEAN_ARGUMENTS = [True, False, Bernoulli.from_prob(0.9), Bernoulli.from_prob(0.35), Bernoulli(np.inf)]


@pytest.mark.parametrize("are_equal,other", list(itertools.product(BOOLEAN_ARGUMENTS, repeat=2)))
def test_boolean_symmetry(are_equal, other) -> None:
    to_a = BooleanAreEqualOp.a_average_conditional(are_equal, other)
    to_b = BooleanAreEqualOp.b_average_conditional(are_equal, other)
    assert to_a.log_odds == pytest.approx(to_b.log_odds)


def test_boolean_message_to_a_given_observed_equality() -> None:
    b = Bernoulli.from_prob(0.8)
    assert BooleanAreEqualOp.a_average_conditional(True, b).prob_true == pytest.approx(0.8)
    assert BooleanAreEqualOp.a_average_conditional(False, b).prob_true == pytest.approx(0.2)


def test_boolean_log_evidence_ratio_is_zero_for_random_output() -> None:
    a, b = Bernoulli.from_prob(0.7), Bernoulli.from_prob(0.2)
    assert BooleanAreEqualOp.log_evidence_ratio(Bernoulli.from_prob(0.5), a, b) == 0.0
    assert BooleanAreEqualOp.log_evidence_ratio(True, a, b) == pytest.approx(np.log(0.7 * 0.2 + 0.3 * 0.8))


def test_boolean_vmp_fixed_output_needs_known_other_side() -> None:
    with pytest.raises(NotSupportedError, match="Variational Message Passing"):
        BooleanAreEqualOp.a_average_logarithm(True, Bernoulli.from_prob(0.6))
    assert BooleanAreEqualOp.a_average_logarithm(True, Bernoulli.point_mass(False)).log_odds == -np.inf


def test_boolean_vmp_message_with_random_output() -> None:
    are_equal, b = Bernoulli(1.5), Bernoulli.from_prob(0.75)
    message = BooleanAreEqualOp.a_average_logarithm(are_equal, b)
    assert message.log_odds == pytest.approx(1.5 * (2 * 0.75 - 1))


def test_discrete_are_equal_message_is_overlap() -> None:
    a, b = Discrete([0.2, 0.3, 0.5]), Discrete([0.5, 0.25, 0.25])
    overlap = 0.2 * 0.5 + 0.3 * 0.25 + 0.5 * 0.25
    message = DiscreteAreEqualOp.are_equal_average_conditional(a, b)
    assert message.prob_true == pytest.approx(overlap)
    assert DiscreteAreEqualOp.log_average_factor(True, a, b) == pytest.approx(np.log(overlap))
    assert DiscreteAreEqualOp.log_average_factor(False, a, b) == pytest.approx(np.log1p(-overlap))


DISCRETE_OTHER = [0, 2, Discrete([0.1, 0.6, 0.3]), Discrete([0.0, 1.0, 0.0])]
DISCRETE_EQUALS = [True, False, Bernoulli.from_prob(0.8), Bernoulli.from_prob(0.1)]


@pytest.mark.parametrize("are_equal,other", list(itertools.product(DISCRETE_EQUALS, DISCRETE_OTHER)))
def test_discrete_symmetry_and_enumeration(are_equal, other) -> None:
    to_a = DiscreteAreEqualOp.a_average_conditional(are_equal, other, 3)
    to_b = DiscreteAreEqualOp.b_average_conditional(are_equal, other, 3)
    np.testing.assert_allclose(to_a.probs, to_b.probs)

    # sum over b and are_equal of p(b) p(are_equal) [are_equal == (a == b)]
    p_equal = are_equal.prob_true if isinstance(are_equal, Bernoulli) else float(are_equal)
    p_b = other.probs if isinstance(other, Discrete) else np.eye(3)[other]
    expected = np.array([p_equal * p_b[a] + (1 - p_equal) * (1 - p_b[a]) for a in range(3)])
    np.testing.assert_allclose(to_a.probs, expected / expected.sum(), atol=1e-12)


def test_discrete_binary_inequality_is_point_mass() -> None:
    message = DiscreteAreEqualOp.a_average_conditional(False, 1, 2)
    np.testing.assert_allclose(message.probs, [1.0, 0.0])


def test_discrete_constant_needs_dimension() -> None:
    with pytest.raises(ShapeMismatchError):
        DiscreteAreEqualOp.a_average_conditional(True, 1)
    with pytest.raises(ShapeMismatchError):
        DiscreteAreEqualOp.a_average_conditional(True, 5, 3)
    with pytest.raises(ShapeMismatchError):
        DiscreteAreEqualOp.a_average_conditional(True, Discrete.uniform(3), 4)


def test_discrete_vmp_message_with_random_output() -> None:
    b = Discrete([0.2, 0.8])
    message = DiscreteAreEqualOp.a_average_logarithm(Bernoulli(2.0), b)
    expected = np.exp(2.0 * b.probs)
    np.testing.assert_allclose(message.probs, expected / expected.sum())
    with pytest.raises(NotSupportedError):
        DiscreteAreEqualOp.a_average_logarithm(False, b)


def test_strings_are_equal_constants_and_messages() -> None:
    assert StringsAreEqualOp.log_average_factor("ab", "ab", True) == 0.0
    assert StringsAreEqualOp.log_average_factor("ab", "cd", True) == -np.inf
    s1 = StringDistribution.from_strings(["ab", "cd"], [0.25, 0.75])
    s2 = StringDistribution.from_strings(["ab", "ef"], [0.5, 0.5])
    message = StringsAreEqualOp.are_equal_average_conditional(s1, s2)
    assert message.prob_true == pytest.approx(0.125)
    assert StringsAreEqualOp.log_average_factor(s1, s2, False) == pytest.approx(np.log(0.875))


def test_strings_message_to_str1_is_mixture_with_any() -> None:
    s2 = StringDistribution.point_mass("ab")
    assert StringsAreEqualOp.str1_average_conditional(s2, True).is_point_mass
    message = StringsAreEqualOp.str1_average_conditional(s2, Bernoulli.from_prob(0.75))
    # (1 - 2q) on "ab" plus q everywhere, with q = 0.25
    assert message.log_weight("ab") == pytest.approx(np.log(0.75))
    assert message.log_weight("zz") == pytest.approx(np.log(0.25))
    with pytest.raises(NotSupportedError):
        StringsAreEqualOp.str1_average_conditional(s2, False)
    with pytest.raises(NotSupportedError):
        StringsAreEqualOp.str1_average_conditional(s2, Bernoulli.from_prob(0.2))


def test_boolean_not() -> None:
    b = Bernoulli.from_prob(0.3)
    assert BooleanNotOp.not_average_conditional(b).prob_true == pytest.approx(0.7)
    assert BooleanNotOp.not_average_conditional(True).log_odds == -np.inf
    assert BooleanNotOp.log_average_factor(True, False) == 0.0
    assert BooleanNotOp.log_average_factor(True, True) == -np.inf
    assert BooleanNotOp.log_average_factor(True, b) == pytest.approx(np.log(0.7))
