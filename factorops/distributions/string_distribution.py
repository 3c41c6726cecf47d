#!/usr/bin/env python3
"""
Distributions over strings with a finite explicit support and a background weight.
"""

import numpy as np
from typing import Dict, Iterable, Optional

from scipy.special import logsumexp

from ..errors import AllZeroError, ImproperMessageError


class StringDistribution:
    """Weight function over strings.

    Strings listed in ``log_weights`` carry their own log-weight, every other
    string carries ``background``. A background of -inf gives a proper
    distribution over the listed strings; a finite background is improper,
    and ``any()`` (background 0) is the uniform message.
    """

    def __init__(self, log_weights: Optional[Dict[str, float]] = None,
                 background: float = -np.inf):
        self.log_weights = dict(log_weights or {})
        self.background = float(background)
        if self.is_proper():
            total = self.log_normalizer()
            self.log_weights = {s: w - total for s, w in self.log_weights.items()}

    @classmethod
    def any(cls) -> "StringDistribution":
        return cls({}, 0.0)

    @classmethod
    def point_mass(cls, value: str) -> "StringDistribution":
        return cls({value: 0.0})

    @classmethod
    def from_strings(cls, strings: Iterable[str], probs: Optional[Iterable[float]] = None) -> "StringDistribution":
        strings = list(strings)
        probs = [1.0] * len(strings) if probs is None else list(probs)
        with np.errstate(divide="ignore"):
            weights = {}
            for s, p in zip(strings, probs):
                weights[s] = float(np.logaddexp(weights.get(s, -np.inf), np.log(p)))
        return cls(weights)

    def _support(self):
        return [s for s, w in self.log_weights.items() if w > -np.inf]

    @property
    def is_point_mass(self) -> bool:
        return self.background == -np.inf and len(self._support()) == 1

    @property
    def point(self) -> str:
        support = self._support()
        if not self.is_point_mass:
            raise ValueError("not a point mass")
        return support[0]

    def __repr__(self) -> str:
        return f"StringDistribution({self.log_weights!r}, background={self.background})"

    def to_uniform(self) -> "StringDistribution":
        return StringDistribution.any()

    def is_uniform(self) -> bool:
        return (np.isfinite(self.background)
                and all(w == self.background for w in self.log_weights.values()))

    def is_proper(self) -> bool:
        return self.background == -np.inf and len(self._support()) > 0

    def clone(self) -> "StringDistribution":
        return StringDistribution(self.log_weights, self.background)

    def log_weight(self, value: str) -> float:
        return self.log_weights.get(value, self.background)

    def log_normalizer(self) -> float:
        """Log total weight of a proper distribution; 0 for improper ones."""
        if self.background != -np.inf:
            return 0.0
        support = self._support()
        if not support:
            return -np.inf
        return float(logsumexp([self.log_weights[s] for s in support]))

    def log_prob(self, value: str) -> float:
        return self.log_weight(value)

    def __mul__(self, other: "StringDistribution") -> "StringDistribution":
        keys = set(self.log_weights) | set(other.log_weights)
        weights = {s: self.log_weight(s) + other.log_weight(s) for s in keys}
        background = self.background + other.background
        if background == -np.inf and all(w == -np.inf for w in weights.values()):
            raise AllZeroError("product of string distributions with disjoint support")
        return StringDistribution(weights, background)

    def weighted_sum_log(self, log_weight: float, other: "StringDistribution",
                         other_log_weight: float) -> "StringDistribution":
        """Mixture ``exp(log_weight)*self + exp(other_log_weight)*other``."""
        keys = set(self.log_weights) | set(other.log_weights)
        weights = {s: float(np.logaddexp(log_weight + self.log_weight(s),
                                         other_log_weight + other.log_weight(s)))
                   for s in keys}
        background = float(np.logaddexp(log_weight + self.background,
                                        other_log_weight + other.background))
        return StringDistribution(weights, background)

    def weighted_sum(self, weight: float, other: "StringDistribution", other_weight: float) -> "StringDistribution":
        with np.errstate(divide="ignore"):
            return self.weighted_sum_log(float(np.log(weight)), other, float(np.log(other_weight)))

    def log_average_of(self, other: "StringDistribution") -> float:
        """Log probability that independent draws from both distributions are the same string."""
        if not self.is_proper() and not other.is_proper():
            raise ImproperMessageError("both string distributions have unbounded support")
        keys = set(self.log_weights) | set(other.log_weights)
        terms = [self.log_weight(s) + other.log_weight(s) for s in keys]
        if not terms:
            return -np.inf
        return float(logsumexp(terms))

    def sample(self, rng=None) -> str:
        if not self.is_proper():
            raise ImproperMessageError("cannot sample from an improper string distribution")
        rng = np.random.default_rng() if rng is None else rng
        support = self._support()
        probs = np.exp([self.log_weights[s] for s in support])
        return support[int(rng.choice(len(support), p=probs / probs.sum()))]
