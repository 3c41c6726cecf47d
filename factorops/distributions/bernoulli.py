#!/usr/bin/env python3
"""
Bernoulli messages in log-odds form.
"""

import numpy as np
from dataclasses import dataclass
from scipy.special import expit, log_expit, logit

from ..errors import AllZeroError, DegenerateRatioError


@dataclass
class Bernoulli:
    """Distribution over a boolean, stored as log P(true) - log P(false).

    A log-odds of +inf or -inf is a point mass on true or false.
    """
    log_odds: float = 0.0

    @classmethod
    def from_prob(cls, prob_true: float) -> "Bernoulli":
        return cls(float(logit(prob_true)))

    @classmethod
    def uniform(cls) -> "Bernoulli":
        return cls(0.0)

    @classmethod
    def point_mass(cls, value: bool) -> "Bernoulli":
        return cls(np.inf if value else -np.inf)

    @property
    def prob_true(self) -> float:
        return float(expit(self.log_odds))

    @property
    def prob_false(self) -> float:
        return float(expit(-self.log_odds))

    @property
    def is_point_mass(self) -> bool:
        return bool(np.isinf(self.log_odds))

    @property
    def point(self) -> bool:
        return self.log_odds > 0

    def to_uniform(self) -> "Bernoulli":
        return Bernoulli(0.0)

    def is_uniform(self) -> bool:
        return self.log_odds == 0.0

    def is_proper(self) -> bool:
        return not np.isnan(self.log_odds)

    def clone(self) -> "Bernoulli":
        return Bernoulli(self.log_odds)

    def __mul__(self, other: "Bernoulli") -> "Bernoulli":
        if self.is_point_mass and other.is_point_mass and self.log_odds != other.log_odds:
            raise AllZeroError("product of contradicting Bernoulli point masses")
        if self.is_point_mass:
            return self.clone()
        if other.is_point_mass:
            return other.clone()
        return Bernoulli(self.log_odds + other.log_odds)

    def can_divide(self, other: "Bernoulli") -> bool:
        return not other.is_point_mass

    def ratio(self, other: "Bernoulli", force_proper: bool = False) -> "Bernoulli":
        if other.is_point_mass:
            if self.log_odds == other.log_odds:
                return Bernoulli(0.0)
            raise DegenerateRatioError("division by a Bernoulli point mass")
        if self.is_point_mass:
            return self.clone()
        return Bernoulli(self.log_odds - other.log_odds)

    def __truediv__(self, other: "Bernoulli") -> "Bernoulli":
        return self.ratio(other)

    def __pow__(self, exponent: float) -> "Bernoulli":
        if exponent == 0:
            return Bernoulli(0.0)
        return Bernoulli(self.log_odds * exponent)

    def weighted_sum(self, weight: float, other: "Bernoulli", other_weight: float) -> "Bernoulli":
        """Mixture ``weight*self + other_weight*other`` (weights need not sum to 1)."""
        if weight == 0:
            return other.clone()
        if other_weight == 0:
            return self.clone()
        total = weight + other_weight
        prob = (weight * self.prob_true + other_weight * other.prob_true) / total
        return Bernoulli.from_prob(prob)

    def log_average_of(self, other: "Bernoulli") -> float:
        """Log probability that two independent draws agree."""
        return float(np.logaddexp(log_expit(self.log_odds) + log_expit(other.log_odds),
                                  log_expit(-self.log_odds) + log_expit(-other.log_odds)))

    def average_log(self, other: "Bernoulli") -> float:
        total = 0.0
        if self.prob_true > 0:
            total += self.prob_true * float(log_expit(other.log_odds))
        if self.prob_false > 0:
            total += self.prob_false * float(log_expit(-other.log_odds))
        return total

    def log_prob(self, value: bool) -> float:
        return float(log_expit(self.log_odds if value else -self.log_odds))

    def sample(self, rng=None) -> bool:
        rng = np.random.default_rng() if rng is None else rng
        return bool(rng.random() < self.prob_true)
