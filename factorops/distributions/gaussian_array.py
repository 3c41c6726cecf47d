#!/usr/bin/env python3
"""
Arrays of independent scalar Gaussians, used for matrix-valued variables.
"""

import numpy as np
from typing import Tuple

from .gaussian import Gaussian
from ..errors import AllZeroError, ShapeMismatchError


class GaussianArray:
    """Element-wise independent Gaussians with vectorised natural parameters."""

    def __init__(self, mean_times_precision, precision):
        self.mean_times_precision = np.array(mean_times_precision, dtype=float)
        self.precision = np.array(precision, dtype=float)
        if self.mean_times_precision.shape != self.precision.shape:
            raise ShapeMismatchError(
                f"natural parameter shapes differ: {self.mean_times_precision.shape} "
                f"vs {self.precision.shape}")

    @classmethod
    def uniform(cls, shape) -> "GaussianArray":
        return cls(np.zeros(shape), np.zeros(shape))

    @classmethod
    def point_mass(cls, values) -> "GaussianArray":
        values = np.array(values, dtype=float)
        return cls(values, np.full(values.shape, np.inf))

    @classmethod
    def from_means_and_variances(cls, means, variances) -> "GaussianArray":
        means = np.asarray(means, dtype=float)
        variances = np.broadcast_to(np.asarray(variances, dtype=float), means.shape)
        if np.any(variances < 0):
            raise ValueError("variances must be non-negative")
        mtp = np.zeros(means.shape)
        precision = np.zeros(means.shape)
        point = variances == 0
        finite = ~point & np.isfinite(variances)
        mtp[point] = means[point]
        precision[point] = np.inf
        precision[finite] = 1.0 / variances[finite]
        mtp[finite] = means[finite] * precision[finite]
        return cls(mtp, precision)

    @classmethod
    def from_gaussians(cls, gaussians) -> "GaussianArray":
        """Build from a nested list of ``Gaussian``."""
        mtp = np.array([[g.mean_times_precision for g in row] for row in gaussians], dtype=float)
        precision = np.array([[g.precision for g in row] for row in gaussians], dtype=float)
        return cls(mtp, precision)

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.precision.shape

    @property
    def point_mask(self) -> np.ndarray:
        return np.isposinf(self.precision)

    @property
    def is_point_mass(self) -> bool:
        return bool(np.all(self.point_mask))

    @property
    def point(self) -> np.ndarray:
        return self.means_and_variances()[0]

    def means_and_variances(self) -> Tuple[np.ndarray, np.ndarray]:
        means = np.zeros(self.shape)
        variances = np.full(self.shape, np.inf)
        point = self.point_mask
        regular = ~point & (self.precision != 0)
        means[point] = self.mean_times_precision[point]
        variances[point] = 0.0
        means[regular] = self.mean_times_precision[regular] / self.precision[regular]
        variances[regular] = 1.0 / self.precision[regular]
        return means, variances

    def __getitem__(self, index) -> Gaussian:
        mtp = self.mean_times_precision[index]
        precision = self.precision[index]
        if np.ndim(precision) != 0:
            return GaussianArray(mtp, precision)
        return Gaussian(float(mtp), float(precision))

    def __setitem__(self, index, value: Gaussian) -> None:
        self.mean_times_precision[index] = value.mean_times_precision
        self.precision[index] = value.precision

    def __repr__(self) -> str:
        means, variances = self.means_and_variances()
        return f"GaussianArray(means={means!r}, variances={variances!r})"

    def to_uniform(self) -> "GaussianArray":
        return GaussianArray.uniform(self.shape)

    def is_uniform(self) -> bool:
        return bool(np.all(self.precision == 0) and np.all(self.mean_times_precision == 0))

    def is_proper(self) -> bool:
        return bool(np.all(self.precision > 0))

    def clone(self) -> "GaussianArray":
        return GaussianArray(self.mean_times_precision.copy(), self.precision.copy())

    def _check_shape(self, other: "GaussianArray") -> None:
        if other.shape != self.shape:
            raise ShapeMismatchError(f"GaussianArray shapes differ: {self.shape} vs {other.shape}")

    def __mul__(self, other: "GaussianArray") -> "GaussianArray":
        self._check_shape(other)
        p1, p2 = self.point_mask, other.point_mask
        both = p1 & p2
        if np.any(self.mean_times_precision[both] != other.mean_times_precision[both]):
            raise AllZeroError("product of Gaussian point masses at different locations")
        with np.errstate(invalid="ignore"):
            mtp = np.where(p1, self.mean_times_precision,
                           np.where(p2, other.mean_times_precision,
                                    self.mean_times_precision + other.mean_times_precision))
            precision = np.where(p1 | p2, np.inf, self.precision + other.precision)
        return GaussianArray(mtp, precision)

    def can_divide(self, other: "GaussianArray") -> bool:
        self._check_shape(other)
        return not np.any(other.point_mask)

    def ratio(self, other: "GaussianArray", force_proper: bool = False) -> "GaussianArray":
        self._check_shape(other)
        result = self.clone()
        for index in np.ndindex(self.shape):
            result[index] = self[index].ratio(other[index], force_proper)
        return result

    def __truediv__(self, other: "GaussianArray") -> "GaussianArray":
        return self.ratio(other)

    def log_average_of(self, other: "GaussianArray") -> float:
        self._check_shape(other)
        return float(sum(self[i].log_average_of(other[i]) for i in np.ndindex(self.shape)))

    def average_log(self, other: "GaussianArray") -> float:
        self._check_shape(other)
        return float(sum(self[i].average_log(other[i]) for i in np.ndindex(self.shape)))

    def log_prob(self, values) -> float:
        values = np.asarray(values, dtype=float)
        if values.shape != self.shape:
            raise ShapeMismatchError(f"value shape {values.shape} does not match {self.shape}")
        return float(sum(self[i].log_prob(values[i]) for i in np.ndindex(self.shape)))

    def sample(self, rng=None) -> np.ndarray:
        rng = np.random.default_rng() if rng is None else rng
        result = np.zeros(self.shape)
        for index in np.ndindex(self.shape):
            result[index] = self[index].sample(rng)
        return result
