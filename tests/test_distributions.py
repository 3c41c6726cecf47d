from __future__ import annotations

import numpy as np
import pytest

from factorops import (
    AllZeroError,
    Bernoulli,
    DegenerateRatioError,
    Discrete,
    Gaussian,
    GaussianArray,
    ShapeMismatchError,
    StringDistribution,
)


def test_discrete_is_normalized_and_validated() -> None:
    d = Discrete([2.0, 1.0, 1.0])
    np.testing.assert_allclose(d.probs, [0.5, 0.25, 0.25])
    with pytest.raises(AllZeroError):
        Discrete([0.0, 0.0])
    with pytest.raises(ValueError):
        Discrete([1.0, -0.5])
    with pytest.raises(ShapeMismatchError):
        Discrete([])


def test_discrete_product_with_disjoint_support_is_all_zero() -> None:
    with pytest.raises(AllZeroError):
        Discrete([1.0, 0.0]) * Discrete([0.0, 1.0])


def test_discrete_can_divide_requires_no_zero_in_denominator() -> None:
    numerator = Discrete([0.0, 0.5, 0.5])
    assert not numerator.can_divide(Discrete([0.0, 0.5, 0.5]))
    assert numerator.can_divide(Discrete([0.2, 0.4, 0.4]))


def test_discrete_ratio_is_zero_outside_denominator_support() -> None:
    numerator = Discrete([0.0, 0.2, 0.8])
    ratio = numerator.ratio(Discrete([0.0, 0.5, 0.5]))
    np.testing.assert_allclose(ratio.probs, [0.0, 0.2, 0.8])
    with pytest.raises(DegenerateRatioError):
        Discrete([0.5, 0.5, 0.0]).ratio(Discrete([0.0, 0.5, 0.5]))


def test_discrete_dimension_mismatch() -> None:
    with pytest.raises(ShapeMismatchError):
        Discrete([0.5, 0.5]) * Discrete([0.2, 0.3, 0.5])
    with pytest.raises(ShapeMismatchError):
        Discrete([0.5, 0.5]).can_divide(Discrete([0.2, 0.3, 0.5]))


def test_discrete_log_average_of_is_log_overlap(random_discrete) -> None:
    a, b = random_discrete(5), random_discrete(5)
    assert a.log_average_of(b) == pytest.approx(np.log(np.dot(a.probs, b.probs)))
    assert Discrete([1.0, 0.0]).log_average_of(Discrete([0.0, 1.0])) == -np.inf


def test_discrete_power_and_uniform() -> None:
    d = Discrete([0.25, 0.75])
    np.testing.assert_allclose((d ** 2).probs, [1 / 10, 9 / 10])
    assert (d ** 0).is_uniform()
    assert Discrete.uniform(3).is_uniform()
    assert not d.is_uniform()


def test_gaussian_product_and_ratio_are_inverse(random_gaussian) -> None:
    a, b = random_gaussian(), random_gaussian()
    back = (a * b).ratio(b)
    assert back.mean_times_precision == pytest.approx(a.mean_times_precision)
    assert back.precision == pytest.approx(a.precision)


def test_gaussian_point_mass_semantics() -> None:
    point = Gaussian.point_mass(1.5)
    assert point.is_point_mass and point.point == 1.5
    assert point.mean_and_variance() == (1.5, 0.0)
    assert (point * Gaussian.from_mean_and_variance(0.0, 1.0)).point == 1.5
    with pytest.raises(AllZeroError):
        point * Gaussian.point_mass(2.0)


def test_gaussian_can_divide_rejects_point_mass_denominator() -> None:
    regular = Gaussian.from_mean_and_variance(0.0, 1.0)
    assert regular.can_divide(Gaussian.from_mean_and_variance(1.0, 4.0))
    assert not regular.can_divide(Gaussian.point_mass(0.0))
    # Same point divided by itself is still defined
    assert Gaussian.point_mass(0.0).ratio(Gaussian.point_mass(0.0)).is_uniform()
    with pytest.raises(DegenerateRatioError):
        regular.ratio(Gaussian.point_mass(0.0))


def test_gaussian_force_proper_clamps_negative_precision() -> None:
    narrow = Gaussian.from_mean_and_variance(0.0, 1.0)
    wide = Gaussian.from_mean_and_variance(0.0, 4.0)
    assert wide.ratio(narrow).precision < 0
    assert wide.ratio(narrow, force_proper=True).is_uniform()


def test_gaussian_log_average_of_matches_closed_form() -> None:
    a = Gaussian.from_mean_and_variance(1.0, 2.0)
    b = Gaussian.from_mean_and_variance(-0.5, 0.5)
    expected = -0.5 * np.log(2 * np.pi * 2.5) - 0.5 * 1.5 ** 2 / 2.5
    assert a.log_average_of(b) == pytest.approx(expected)


def test_gaussian_weighted_sum_matches_mixture_moments() -> None:
    a = Gaussian.from_mean_and_variance(0.0, 1.0)
    b = Gaussian.from_mean_and_variance(2.0, 1.0)
    mixture = a.weighted_sum(1.0, b, 1.0)
    mean, variance = mixture.mean_and_variance()
    assert mean == pytest.approx(1.0)
    assert variance == pytest.approx(2.0)


def test_bernoulli_log_odds_and_point_masses() -> None:
    b = Bernoulli.from_prob(0.75)
    assert b.log_odds == pytest.approx(np.log(3.0))
    assert b.prob_true == pytest.approx(0.75)
    assert Bernoulli.point_mass(True).is_point_mass
    assert Bernoulli.point_mass(True).log_prob(False) == -np.inf
    assert not b.can_divide(Bernoulli.point_mass(False))
    with pytest.raises(AllZeroError):
        Bernoulli.point_mass(True) * Bernoulli.point_mass(False)


def test_bernoulli_log_average_of_is_probability_of_agreement() -> None:
    a, b = Bernoulli.from_prob(0.8), Bernoulli.from_prob(0.3)
    assert a.log_average_of(b) == pytest.approx(np.log(0.8 * 0.3 + 0.2 * 0.7))


def test_gaussian_array_elementwise_ratio_and_point_mask() -> None:
    a = GaussianArray.from_means_and_variances([[0.0, 1.0]], [[1.0, 0.0]])
    assert a.point_mask.tolist() == [[False, True]]
    assert not a.is_point_mass
    b = GaussianArray.from_means_and_variances([[0.0, 1.0]], [[2.0, 3.0]])
    assert b.can_divide(b)
    assert not b.can_divide(a)
    ratio = a.ratio(b)
    assert ratio[0, 0].precision == pytest.approx(0.5)
    assert ratio[0, 1].is_point_mass
    with pytest.raises(ShapeMismatchError):
        a * GaussianArray.uniform((2, 1))


def test_string_distribution_point_masses_and_uniform() -> None:
    hello = StringDistribution.point_mass("hello")
    assert hello.is_point_mass and hello.point == "hello"
    assert hello.log_prob("world") == -np.inf
    assert StringDistribution.any().is_uniform()
    assert not StringDistribution.any().is_proper()
    mixed = StringDistribution.from_strings(["a", "b", "a"])
    assert mixed.log_prob("a") == pytest.approx(np.log(2 / 3))
    assert hello.log_average_of(StringDistribution.any()) == pytest.approx(0.0)
    with pytest.raises(AllZeroError):
        hello * StringDistribution.point_mass("world")
