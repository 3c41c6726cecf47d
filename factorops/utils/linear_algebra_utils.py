#!/usr/bin/env python3
"""
Linear algebra utilities for Gaussian messages in information form.
Used by the matrix-product factor to build the transient full-covariance
belief over one row or column of an operand.
"""

import logging
import numpy as np
from typing import Tuple

logger = logging.getLogger(__name__)


def regularize_precision_matrix(precision: np.ndarray, reg_factor: float = 1e-8) -> np.ndarray:
    """
    Add regularization to precision matrix to prevent singularity.

    Args:
        precision: Input precision matrix
        reg_factor: Regularization factor (added to diagonal)

    Returns:
        Regularized precision matrix
    """
    return precision + reg_factor * np.eye(precision.shape[0])


def add_rank_one_terms(
    precision: np.ndarray,
    information: np.ndarray,
    vectors: np.ndarray,
    precision_weights: np.ndarray,
    information_weights: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Add one observation per column of ``vectors`` to an information-form Gaussian.

    Each observation ``y_j = v_j . x`` with message (mtp_j, prec_j) adds
    ``prec_j * v_j v_j^T`` to the precision and ``mtp_j * v_j`` to the
    information vector.

    Args:
        precision: (d, d) precision matrix
        information: (d,) information vector
        vectors: (d, n) matrix whose columns are the v_j
        precision_weights: (n,) precisions of the observations
        information_weights: (n,) mean-times-precisions of the observations

    Returns:
        (precision, information) with every term added
    """
    precision = precision + (vectors * precision_weights) @ vectors.T
    information = information + vectors @ information_weights
    return precision, information


def information_to_moments(
    precision: np.ndarray,
    information: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert precision/information form to mean and covariance.

    Args:
        precision: Precision matrix
        information: Information vector

    Returns:
        (mean, covariance)
    """
    try:
        covariance = np.linalg.inv(precision)
    except np.linalg.LinAlgError:
        logger.debug("Singular precision matrix; using pseudo-inverse")
        covariance = np.linalg.pinv(regularize_precision_matrix(precision))
    return covariance @ information, covariance


def condition_on_known(
    precision: np.ndarray,
    information: np.ndarray,
    known: np.ndarray,
    values: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Condition an information-form Gaussian on some coordinates being known.

    P = [[P_uu, P_uk],     eta = [eta_u, eta_k]
         [P_ku, P_kk]]

    The conditional over the unknown block has precision ``P_uu`` and
    information ``eta_u - P_uk x_k``.

    Args:
        precision: Full precision matrix (finite entries only)
        information: Full information vector
        known: Boolean mask of known coordinates
        values: Values of the known coordinates, in mask order

    Returns:
        (precision, information) over the unknown coordinates
    """
    unknown = ~known
    P_uu = precision[np.ix_(unknown, unknown)]
    P_uk = precision[np.ix_(unknown, known)]
    return P_uu, information[unknown] - P_uk @ values
