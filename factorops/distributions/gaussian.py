#!/usr/bin/env python3
"""
Scalar Gaussian messages in natural-parameter form.
"""

import numpy as np
from dataclasses import dataclass
from typing import Tuple

from ..errors import AllZeroError, DegenerateRatioError, ImproperMessageError

LOG_2PI = float(np.log(2 * np.pi))


@dataclass
class Gaussian:
    """Gaussian message with mean-times-precision and precision.

    Precision 0 is the uniform message. Infinite precision is a point mass,
    in which case ``mean_times_precision`` holds the point itself.
    Negative precision is allowed for intermediate EP ratios.
    """
    mean_times_precision: float = 0.0
    precision: float = 0.0

    @classmethod
    def from_mean_and_variance(cls, mean: float, variance: float) -> "Gaussian":
        if variance == 0:
            return cls.point_mass(mean)
        if np.isinf(variance):
            return cls.uniform()
        return cls(mean / variance, 1.0 / variance)

    @classmethod
    def from_mean_and_precision(cls, mean: float, precision: float) -> "Gaussian":
        if np.isinf(precision):
            return cls.point_mass(mean)
        return cls(mean * precision, precision)

    @classmethod
    def uniform(cls) -> "Gaussian":
        return cls(0.0, 0.0)

    @classmethod
    def point_mass(cls, value: float) -> "Gaussian":
        return cls(float(value), np.inf)

    @property
    def is_point_mass(self) -> bool:
        return bool(np.isposinf(self.precision))

    @property
    def point(self) -> float:
        if self.is_point_mass:
            return self.mean_times_precision
        return self.mean

    @property
    def mean(self) -> float:
        return self.mean_and_variance()[0]

    @property
    def variance(self) -> float:
        return self.mean_and_variance()[1]

    def mean_and_variance(self) -> Tuple[float, float]:
        if self.is_point_mass:
            return self.mean_times_precision, 0.0
        if self.precision == 0:
            return 0.0, np.inf
        return self.mean_times_precision / self.precision, 1.0 / self.precision

    def to_uniform(self) -> "Gaussian":
        return Gaussian.uniform()

    def is_uniform(self) -> bool:
        return self.precision == 0 and self.mean_times_precision == 0

    def is_proper(self) -> bool:
        return self.precision > 0

    def clone(self) -> "Gaussian":
        return Gaussian(self.mean_times_precision, self.precision)

    def log_normalizer(self) -> float:
        """Log of the integral of exp(mtp*x - precision*x^2/2); 0 for improper messages."""
        if self.is_point_mass or self.precision <= 0:
            return 0.0
        return 0.5 * (LOG_2PI - np.log(self.precision)
                      + self.mean_times_precision ** 2 / self.precision)

    def __mul__(self, other: "Gaussian") -> "Gaussian":
        if self.is_point_mass:
            if other.is_point_mass and other.point != self.point:
                raise AllZeroError("product of Gaussian point masses at different locations")
            return self.clone()
        if other.is_point_mass:
            return other.clone()
        return Gaussian(self.mean_times_precision + other.mean_times_precision,
                        self.precision + other.precision)

    def can_divide(self, other: "Gaussian") -> bool:
        return not other.is_point_mass

    def ratio(self, other: "Gaussian", force_proper: bool = False) -> "Gaussian":
        if other.is_point_mass:
            if self.is_point_mass and self.point == other.point:
                return Gaussian.uniform()
            raise DegenerateRatioError("division by a Gaussian point mass")
        if self.is_point_mass:
            return self.clone()
        precision = self.precision - other.precision
        if force_proper and precision < 0:
            return Gaussian.uniform()
        return Gaussian(self.mean_times_precision - other.mean_times_precision, precision)

    def __truediv__(self, other: "Gaussian") -> "Gaussian":
        return self.ratio(other)

    def __pow__(self, exponent: float) -> "Gaussian":
        if exponent == 0:
            return Gaussian.uniform()
        if self.is_point_mass:
            return self.clone()
        return Gaussian(self.mean_times_precision * exponent, self.precision * exponent)

    def weighted_sum(self, weight: float, other: "Gaussian", other_weight: float) -> "Gaussian":
        """Moment-matched Gaussian for the mixture ``weight*self + other_weight*other``."""
        if weight == 0:
            return other.clone()
        if other_weight == 0:
            return self.clone()
        if self.precision == 0 or other.precision == 0:
            return Gaussian.uniform()
        total = weight + other_weight
        m1, v1 = self.mean_and_variance()
        m2, v2 = other.mean_and_variance()
        mean = (weight * m1 + other_weight * m2) / total
        second_moment = (weight * (v1 + m1 * m1) + other_weight * (v2 + m2 * m2)) / total
        return Gaussian.from_mean_and_variance(mean, max(second_moment - mean * mean, 0.0))

    def log_average_of(self, other: "Gaussian") -> float:
        """log of the integral of the product of the two messages."""
        if self.is_point_mass:
            return other.log_prob(self.point)
        if other.is_point_mass:
            return self.log_prob(other.point)
        product = self * other
        if product.precision < 0:
            raise ImproperMessageError("product of Gaussian messages is improper")
        return product.log_normalizer() - self.log_normalizer() - other.log_normalizer()

    def average_log(self, other: "Gaussian") -> float:
        """Expectation of ``log other(x)`` under this message."""
        if other.is_point_mass:
            if self.is_point_mass and self.point == other.point:
                return 0.0
            return -np.inf
        if self.is_point_mass:
            return other.log_prob(self.point)
        if other.is_uniform():
            return 0.0
        if not self.is_proper():
            raise ImproperMessageError("average of a log-density under an improper Gaussian")
        mean, variance = self.mean_and_variance()
        return (other.mean_times_precision * mean
                - 0.5 * other.precision * (variance + mean * mean)
                - other.log_normalizer())

    def log_prob(self, value: float) -> float:
        if self.is_point_mass:
            return 0.0 if value == self.point else -np.inf
        return (self.mean_times_precision * value - 0.5 * self.precision * value * value
                - self.log_normalizer())

    def sample(self, rng=None) -> float:
        if self.is_point_mass:
            return self.point
        if not self.is_proper():
            raise ImproperMessageError("cannot sample from an improper Gaussian")
        rng = np.random.default_rng() if rng is None else rng
        mean, variance = self.mean_and_variance()
        return float(rng.normal(mean, np.sqrt(variance)))
