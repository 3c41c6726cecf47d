#!/usr/bin/env python3
"""
Matrix product factor ``matrix_multiply = a @ b`` over arrays of
independent Gaussians.

Forward messages moment-match each output entry treating the operand
entries as independent. Reverse EP messages build a full-covariance belief
over one row of ``a`` (or column of ``b``), keep only its diagonal and
divide out the current operand message.
"""

import logging
import numpy as np
from typing import Optional, Tuple

from ..arguments import Constant, Message, classify
from ..distributions import Gaussian, GaussianArray
from ..errors import NotSupportedError, ShapeMismatchError
from ..metadata import factor_operator
from ..utils.linear_algebra_utils import add_rank_one_terms, condition_on_known, information_to_moments

logger = logging.getLogger(__name__)

VMP_FIXED_OUTPUT = "Variational Message Passing does not support a MatrixMultiply factor with fixed output."
EP_FIXED_OUTPUT = ("A MatrixMultiply factor with fixed output is not yet implemented for "
                   "Expectation Propagation.")
EP_BOTH_RANDOM = ("A MatrixMultiply factor between two Gaussian arrays is not yet implemented for "
                  "Expectation Propagation. Try using Variational Message Passing.")


def _shape(argument) -> Tuple[int, ...]:
    if isinstance(argument, Constant):
        return np.shape(argument.value)
    return argument.value.shape


def _check_shapes(matrix_multiply, a, b) -> None:
    a_shape, b_shape = _shape(a), _shape(b)
    if len(a_shape) != 2 or len(b_shape) != 2 or a_shape[1] != b_shape[0]:
        raise ShapeMismatchError(f"cannot multiply {a_shape} by {b_shape}")
    if matrix_multiply is not None and _shape(matrix_multiply) != (a_shape[0], b_shape[1]):
        raise ShapeMismatchError(
            f"product has shape {_shape(matrix_multiply)}, expected {(a_shape[0], b_shape[1])}")


def _transpose(array: GaussianArray) -> GaussianArray:
    return GaussianArray(array.mean_times_precision.T.copy(), array.precision.T.copy())


def _moments(argument) -> Tuple[np.ndarray, np.ndarray]:
    if isinstance(argument, Constant):
        values = np.asarray(argument.value, dtype=float)
        return values, np.zeros(values.shape)
    return argument.value.means_and_variances()


def _product_moments(a_means, a_vars, b_means, b_vars) -> GaussianArray:
    """Moments of ``a @ b`` for independent entries.

    mean = sum_k Am Bm
    var  = sum_k Av Bm^2 + Am^2 Bv + Av Bv, infinite if any variance in the sum is
    """
    a_inf, b_inf = np.isinf(a_vars), np.isinf(b_vars)
    a_vars = np.where(a_inf, 0.0, a_vars)
    b_vars = np.where(b_inf, 0.0, b_vars)
    means = a_means @ b_means
    variances = a_vars @ b_means ** 2 + a_means ** 2 @ b_vars + a_vars @ b_vars
    infinite = (a_inf.astype(float) @ np.ones(b_inf.shape) + np.ones(a_inf.shape) @ b_inf.astype(float)) > 0
    return GaussianArray.from_means_and_variances(means, np.where(infinite, np.inf, variances))


def _linear_moments(weights: np.ndarray, means: np.ndarray, variances: np.ndarray) -> GaussianArray:
    """Moments of ``weights @ x`` with constant ``weights``; a zero weight ignores an infinite variance."""
    infinite = np.isinf(variances)
    mean = weights @ means
    variance = weights ** 2 @ np.where(infinite, 0.0, variances)
    unbounded = ((weights != 0).astype(float) @ infinite.astype(float)) > 0
    return GaussianArray.from_means_and_variances(mean, np.where(unbounded, np.inf, variance))


def _row_messages(product: GaussianArray, operand: GaussianArray, other: np.ndarray) -> GaussianArray:
    """EP message to every row of ``operand`` in ``product = operand @ other``.

    Row i gets a full Gaussian with precision ``diag(operand[i].prec) +
    sum_j prec[i,j] b_j b_j^T`` and information ``operand[i].mtp +
    sum_j mtp[i,j] b_j`` where ``b_j`` is column j of ``other``. Only the
    diagonal of its covariance is kept.
    """
    if np.any(product.point_mask):
        raise NotSupportedError(EP_FIXED_OUTPUT)
    rows, inner = operand.shape
    result = GaussianArray.uniform((rows, inner))
    for i in range(rows):
        # Entries already known exactly receive a uniform message
        known = operand.point_mask[i]
        if np.all(known):
            logger.debug("Row %d of the operand is fully known; its messages stay uniform", i)
            continue
        diagonal = np.where(known, 0.0, operand.precision[i])
        information = np.where(known, 0.0, operand.mean_times_precision[i])
        precision, information = add_rank_one_terms(
            np.diag(diagonal), information, other,
            product.precision[i], product.mean_times_precision[i])
        if np.any(known):
            precision, information = condition_on_known(
                precision, information, known, operand.mean_times_precision[i][known])
        mean, covariance = information_to_moments(precision, information)
        for position, k in enumerate(np.flatnonzero(~known)):
            belief = Gaussian.from_mean_and_variance(mean[position], covariance[position, position])
            result[i, k] = belief.ratio(operand[i, k])
    return result


def _coordinate_messages(product: GaussianArray, operand: GaussianArray,
                         other_means: np.ndarray, other_vars: np.ndarray,
                         to_operand: Optional[GaussianArray]) -> GaussianArray:
    """VMP messages to ``operand`` in ``product = operand @ other``.

    Entries of a row are updated in turn, each using the posterior means of
    the entries already updated.
    """
    rows, inner = operand.shape
    cols = product.shape[1]
    result = GaussianArray.uniform(operand.shape) if to_operand is None else to_operand.clone()
    operand_means, _ = operand.means_and_variances()
    for i in range(rows):
        row_means = operand_means[i].copy()
        partial_sums = row_means @ other_means
        for k in range(inner):
            old_message = result[i, k]
            message = Gaussian.uniform()
            for j in range(cols):
                bm, bv = other_means[k, j], other_vars[k, j]
                if bm == 0 and bv == 0:
                    continue
                partial_sums[j] -= row_means[k] * bm
                x = product[i, j]
                if x.is_point_mass:
                    message = message * Gaussian.point_mass(x.point * bm / (bv + bm * bm))
                else:
                    message = message * Gaussian(
                        bm * (x.mean_times_precision - x.precision * partial_sums[j]),
                        (bv + bm * bm) * x.precision)
            result[i, k] = message
            row_means[k] = (operand[i, k].ratio(old_message) * message).mean
            partial_sums += row_means[k] * other_means[k]
    return result


class MatrixMultiplyOp:
    """Messages for ``matrix_multiply = a @ b``."""

    # -- EP -------------------------------------------------------------------

    @staticmethod
    @factor_operator("MatrixMultiply", "matrix_multiply", skip_if_uniform=("a", "b"))
    def matrix_multiply_average_conditional(a, b) -> GaussianArray:
        """Forward message with at least one constant operand.

        Args:
            a: (rows, inner) GaussianArray or constant matrix
            b: (inner, cols) GaussianArray or constant matrix

        Returns:
            GaussianArray of shape (rows, cols)
        """
        a, b = classify(a), classify(b)
        _check_shapes(None, a, b)
        if isinstance(a, Message) and isinstance(b, Message):
            raise NotSupportedError(EP_BOTH_RANDOM)
        if isinstance(a, Constant) and isinstance(b, Constant):
            return GaussianArray.point_mass(np.asarray(a.value) @ np.asarray(b.value))
        if isinstance(a, Constant):
            b_means, b_vars = b.value.means_and_variances()
            return _linear_moments(np.asarray(a.value, dtype=float), b_means, b_vars)
        a_means, a_vars = a.value.means_and_variances()
        return _transpose(_linear_moments(np.asarray(b.value, dtype=float).T, a_means.T, a_vars.T))

    @staticmethod
    @factor_operator("MatrixMultiply", "a", skip_if_uniform=("matrix_multiply", "a"))
    def a_average_conditional(matrix_multiply, a, b) -> GaussianArray:
        """EP message to ``a`` given a constant ``b``.

        Args:
            matrix_multiply: Message from the product
            a: Current message from ``a``
            b: Constant (inner, cols) matrix

        Returns:
            GaussianArray of the shape of ``a``
        """
        matrix_multiply, a, b = classify(matrix_multiply), classify(a), classify(b)
        _check_shapes(matrix_multiply, a, b)
        if isinstance(b, Message):
            raise NotSupportedError(EP_BOTH_RANDOM)
        if isinstance(matrix_multiply, Constant):
            raise NotSupportedError(EP_FIXED_OUTPUT)
        return _row_messages(matrix_multiply.value, a.value, np.asarray(b.value, dtype=float))

    @staticmethod
    @factor_operator("MatrixMultiply", "b", skip_if_uniform=("matrix_multiply", "b"))
    def b_average_conditional(matrix_multiply, a, b) -> GaussianArray:
        """EP message to ``b`` given a constant ``a``; the column-wise mirror of ``a_average_conditional``."""
        matrix_multiply, a, b = classify(matrix_multiply), classify(a), classify(b)
        _check_shapes(matrix_multiply, a, b)
        if isinstance(a, Message):
            raise NotSupportedError(EP_BOTH_RANDOM)
        if isinstance(matrix_multiply, Constant):
            raise NotSupportedError(EP_FIXED_OUTPUT)
        messages = _row_messages(_transpose(matrix_multiply.value), _transpose(b.value),
                                 np.asarray(a.value, dtype=float).T)
        return _transpose(messages)

    @staticmethod
    @factor_operator("MatrixMultiply", "evidence", "evidence")
    def log_average_factor(matrix_multiply, a, b) -> float:
        matrix_multiply, a, b = classify(matrix_multiply), classify(a), classify(b)
        _check_shapes(matrix_multiply, a, b)
        if all(isinstance(arg, Constant) for arg in (matrix_multiply, a, b)):
            product = np.asarray(a.value) @ np.asarray(b.value)
            return 0.0 if np.array_equal(product, np.asarray(matrix_multiply.value)) else -np.inf
        to_product = MatrixMultiplyOp.matrix_multiply_average_conditional(a, b)
        if isinstance(matrix_multiply, Constant):
            return to_product.log_prob(matrix_multiply.value)
        return to_product.log_average_of(matrix_multiply.value)

    @staticmethod
    @factor_operator("MatrixMultiply", "evidence", "evidence")
    def log_evidence_ratio(matrix_multiply, a, b) -> float:
        if isinstance(classify(matrix_multiply), Message):
            return 0.0
        return MatrixMultiplyOp.log_average_factor(matrix_multiply, a, b)

    # -- VMP ------------------------------------------------------------------

    @staticmethod
    @factor_operator("MatrixMultiply", "evidence", "vmp")
    def average_log_factor(matrix_multiply, a, b) -> float:
        if all(isinstance(classify(arg), Constant) for arg in (matrix_multiply, a, b)):
            return MatrixMultiplyOp.log_average_factor(matrix_multiply, a, b)
        return 0.0

    @staticmethod
    @factor_operator("MatrixMultiply", "matrix_multiply", "vmp", skip=True)
    def matrix_multiply_average_logarithm_init(a, b) -> GaussianArray:
        return GaussianArray.uniform((_shape(classify(a))[0], _shape(classify(b))[1]))

    @staticmethod
    @factor_operator("MatrixMultiply", "matrix_multiply", "vmp", skip_if_uniform=("a", "b"))
    def matrix_multiply_average_logarithm(a, b) -> GaussianArray:
        a, b = classify(a), classify(b)
        _check_shapes(None, a, b)
        if isinstance(a, Message) and isinstance(b, Message):
            return _product_moments(*a.value.means_and_variances(), *b.value.means_and_variances())
        return MatrixMultiplyOp.matrix_multiply_average_conditional(a, b)

    @staticmethod
    @factor_operator("MatrixMultiply", "a", "vmp", skip_if_uniform=("matrix_multiply",))
    def a_average_logarithm(matrix_multiply, a, b, to_a: Optional[GaussianArray] = None) -> GaussianArray:
        """VMP message to ``a`` by a coordinate update over each row.

        Args:
            matrix_multiply: Message from the product
            a: Current posterior of ``a``
            b: GaussianArray or constant matrix
            to_a: Message sent to ``a`` on the previous sweep

        Returns:
            GaussianArray of the shape of ``a``
        """
        matrix_multiply, a, b = classify(matrix_multiply), classify(a), classify(b)
        _check_shapes(matrix_multiply, a, b)
        if isinstance(matrix_multiply, Constant):
            raise NotSupportedError(VMP_FIXED_OUTPUT)
        b_means, b_vars = _moments(b)
        return _coordinate_messages(matrix_multiply.value, a.value, b_means, b_vars, to_a)

    @staticmethod
    @factor_operator("MatrixMultiply", "b", "vmp", skip_if_uniform=("matrix_multiply",))
    def b_average_logarithm(matrix_multiply, a, b, to_b: Optional[GaussianArray] = None) -> GaussianArray:
        matrix_multiply, a, b = classify(matrix_multiply), classify(a), classify(b)
        _check_shapes(matrix_multiply, a, b)
        if isinstance(matrix_multiply, Constant):
            raise NotSupportedError(VMP_FIXED_OUTPUT)
        a_means, a_vars = _moments(a)
        previous = None if to_b is None else _transpose(to_b)
        messages = _coordinate_messages(_transpose(matrix_multiply.value), _transpose(b.value),
                                        a_means.T, a_vars.T, previous)
        return _transpose(messages)
