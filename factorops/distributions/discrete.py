#!/usr/bin/env python3
"""
Discrete (categorical) messages over {0, ..., K-1}.
"""

import numpy as np
from scipy.special import logsumexp

from ..errors import AllZeroError, DegenerateRatioError, ShapeMismatchError


class Discrete:
    """Categorical distribution stored as a normalized probability vector."""

    def __init__(self, probs):
        probs = np.asarray(probs, dtype=float)
        if probs.ndim != 1 or probs.size == 0:
            raise ShapeMismatchError(f"Discrete needs a non-empty vector, got shape {probs.shape}")
        if np.any(np.isnan(probs)) or np.any(probs < 0):
            raise ValueError(f"Discrete probabilities must be non-negative: {probs}")
        total = probs.sum()
        if total <= 0:
            raise AllZeroError("Discrete message with zero total mass")
        self.probs = probs / total

    @classmethod
    def uniform(cls, dimension: int) -> "Discrete":
        return cls(np.ones(dimension))

    @classmethod
    def point_mass_of(cls, value: int, dimension: int) -> "Discrete":
        if not 0 <= value < dimension:
            raise ShapeMismatchError(f"value {value} outside 0..{dimension - 1}")
        probs = np.zeros(dimension)
        probs[value] = 1.0
        return cls(probs)

    @classmethod
    def from_log_probs(cls, log_probs) -> "Discrete":
        log_probs = np.asarray(log_probs, dtype=float)
        if np.all(np.isneginf(log_probs)):
            raise AllZeroError("Discrete message with zero total mass")
        return cls(np.exp(log_probs - logsumexp(log_probs)))

    @property
    def dimension(self) -> int:
        return self.probs.size

    @property
    def is_point_mass(self) -> bool:
        return int(np.count_nonzero(self.probs)) == 1

    @property
    def point(self) -> int:
        return int(np.argmax(self.probs))

    def point_mass(self, value: int) -> "Discrete":
        return Discrete.point_mass_of(value, self.dimension)

    def __getitem__(self, value: int) -> float:
        return float(self.probs[value])

    def __len__(self) -> int:
        return self.dimension

    def __repr__(self) -> str:
        return f"Discrete({np.array2string(self.probs, precision=4)})"

    def to_uniform(self) -> "Discrete":
        return Discrete.uniform(self.dimension)

    def is_uniform(self) -> bool:
        return bool(np.ptp(self.probs) == 0)

    def is_proper(self) -> bool:
        return True

    def clone(self) -> "Discrete":
        return Discrete(self.probs.copy())

    def _check_dimension(self, other: "Discrete") -> None:
        if other.dimension != self.dimension:
            raise ShapeMismatchError(
                f"Discrete dimensions differ: {self.dimension} vs {other.dimension}")

    def __mul__(self, other: "Discrete") -> "Discrete":
        self._check_dimension(other)
        product = self.probs * other.probs
        if product.sum() <= 0:
            raise AllZeroError("product of Discrete messages with disjoint support")
        return Discrete(product)

    def can_divide(self, other: "Discrete") -> bool:
        """True when dividing by ``other`` loses nothing, i.e. it has no zeros.

        A zero in the denominator hides whatever the undivided product held there.
        """
        self._check_dimension(other)
        return bool(np.all(other.probs > 0))

    def ratio(self, other: "Discrete", force_proper: bool = False) -> "Discrete":
        """Entry-wise ratio, zero where ``other`` is zero."""
        self._check_dimension(other)
        if np.any(other.probs[self.probs > 0] == 0):
            raise DegenerateRatioError("Discrete denominator is zero inside the numerator support")
        result = np.zeros_like(self.probs)
        support = other.probs > 0
        result[support] = self.probs[support] / other.probs[support]
        return Discrete(result)

    def __truediv__(self, other: "Discrete") -> "Discrete":
        return self.ratio(other)

    def __pow__(self, exponent: float) -> "Discrete":
        if exponent == 0:
            return self.to_uniform()
        if exponent < 0 and np.any(self.probs == 0):
            raise DegenerateRatioError("negative power of a Discrete message with zeros")
        result = np.zeros_like(self.probs)
        support = self.probs > 0
        result[support] = self.probs[support] ** exponent
        return Discrete(result)

    def weighted_sum(self, weight: float, other: "Discrete", other_weight: float) -> "Discrete":
        self._check_dimension(other)
        return Discrete(weight * self.probs + other_weight * other.probs)

    def prob_equal(self, other: "Discrete") -> float:
        """Probability that independent draws from both messages coincide."""
        self._check_dimension(other)
        return float(np.dot(self.probs, other.probs))

    def log_average_of(self, other: "Discrete") -> float:
        overlap = self.prob_equal(other)
        return float(np.log(overlap)) if overlap > 0 else -np.inf

    def average_log(self, other: "Discrete") -> float:
        self._check_dimension(other)
        support = self.probs > 0
        if np.any(other.probs[support] == 0):
            return -np.inf
        return float(np.dot(self.probs[support], np.log(other.probs[support])))

    def log_prob(self, value: int) -> float:
        prob = self.probs[value]
        return float(np.log(prob)) if prob > 0 else -np.inf

    def sample(self, rng=None) -> int:
        rng = np.random.default_rng() if rng is None else rng
        return int(rng.choice(self.dimension, p=self.probs))
