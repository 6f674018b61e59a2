"""
Solution of the AIC linear system for the panel circulations.

The matrix is factorized once; the same factorization is reused for the
circulation and for its derivatives, which only differ by their right-hand
sides.
"""
import logging
import warnings

import numpy as np
from scipy.linalg import LinAlgWarning, lu_factor, lu_solve

from openvlm.utils.exceptions import ConfigurationError


logger = logging.getLogger(__name__)

# Pivots smaller than this (relative to the largest entry of the matrix) mean
# the matrix is singular.
singular_tol = 1e-12

def factorize(aic):
    """
    LU factorization of the AIC matrix.

    Raises
    ------
    ConfigurationError
        If the matrix is singular or contains non-finite entries, which
        happens with degenerate or duplicated panels.
    """
    try:
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', LinAlgWarning)
            lu, piv = lu_factor(aic)
    except ValueError as err:
        raise ConfigurationError('Invalid influence coefficient matrix: {}'.format(err))

    scale = np.max(np.abs(aic)) if aic.size else 0.
    pivots = np.abs(np.diag(lu))
    if scale == 0. or np.min(pivots) <= singular_tol * scale:
        raise ConfigurationError('The influence coefficient matrix is singular; check the '
            'surfaces for degenerate or duplicated panels')

    logger.debug('Factorized %d x %d influence coefficient matrix', aic.shape[0], aic.shape[1])
    return lu, piv

def solve_circulation(lu, w):
    """
    Solve the factorized AIC linear system.

    Parameters
    ----------
    lu : tuple
        LU factorization of the AIC matrix, from ``factorize``.
    w[..., system_size] : numpy array
        Right-hand side(s); a seeded right-hand side gives the seeded
        circulation.

    Returns
    -------
    gamma[..., system_size] : numpy array
        Panel circulations.
    """
    w = np.asarray(w)
    if w.ndim == 1:
        return lu_solve(lu, w)
    gamma = lu_solve(lu, w.reshape(-1, w.shape[-1]).T).T
    return gamma.reshape(w.shape)

def circulation(aic, w):
    """
    Panel circulations from the AIC matrix and the right-hand side.
    """
    return solve_circulation(factorize(aic), w)

def circulation_derivatives(aic, w, dw):
    """
    Panel circulations and their derivatives with respect to alpha, beta, p, q
    and r, from a single factorization.

    Returns
    -------
    gamma[system_size] : numpy array
        Panel circulations.
    dgamma[5, system_size] : numpy array
        Derivatives of the panel circulations.
    """
    lu = factorize(aic)
    return solve_circulation(lu, w), solve_circulation(lu, dw)
