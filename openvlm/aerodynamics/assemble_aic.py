"""
Assembly of the aerodynamic influence coefficient (AIC) matrix.

We use a nested loop structure over the lifting surfaces: for each receiving
surface we loop over the sending surfaces and fill the block of the matrix
that holds the influence of the sending surface's panels on the receiving
surface's control points.  The block diagonal corresponds to each surface's
influence on itself.  Within a block, all receiving control points are
handled at once and every row is independent of the others.
"""
import logging

import numpy as np

from openvlm.aerodynamics.induced_velocity import surface_velocity_matrix
from openvlm.aerodynamics.wake import wake_velocity_matrix
from openvlm.utils.constants import XHAT
from openvlm.utils.exceptions import ConfigurationError


logger = logging.getLogger(__name__)

def surface_offsets(surfaces):
    """
    Index of the first panel of each surface in the system vectors, followed
    by the total number of panels.
    """
    return np.cumsum([0] + [surface.size for surface in surfaces])

def check_system_size(surfaces, gamma):
    """
    Raise a ConfigurationError unless the last axis of gamma holds one entry
    per panel of the surfaces.
    """
    system_size = surface_offsets(surfaces)[-1]
    if np.shape(gamma)[-1] != system_size:
        raise ConfigurationError('{} circulations given for {} panels'.format(
            np.shape(gamma)[-1], system_size))

def influence_coefficients(surfaces, symmetric, surface_id, trailing_vortices, xhat=XHAT,
                           wake_attached=None):
    """
    Compute the AIC matrix.

    Parameters
    ----------
    surfaces : list of Horseshoe or Ring
        Lifting surfaces.
    symmetric : list of bool
        Whether each surface is mirrored across y = 0.
    surface_id : list of int
        Body identifier of each surface; surfaces with different identifiers
        interact through the finite core kernels.
    trailing_vortices : list of bool
        Whether each surface sheds trailing vortices.
    xhat : numpy array[3]
        Direction of the trailing vortices.
    wake_attached : list of bool or None
        Whether each surface has a wake lattice attached to its trailing edge.

    Returns
    -------
    aic[system_size, system_size] : numpy array
        AIC matrix. Entry (i, j) is the normal velocity at control point i
        induced by a unit circulation on panel j.
    """
    offsets = surface_offsets(surfaces)
    system_size = offsets[-1]
    if wake_attached is None:
        wake_attached = [False] * len(surfaces)

    aic = np.zeros((system_size, system_size))

    for isurf, receiving in enumerate(surfaces):
        points = receiving.rcp.reshape(-1, 3)
        normals = receiving.ncp.reshape(-1, 3)
        rows = slice(offsets[isurf], offsets[isurf + 1])

        for jsurf, sending in enumerate(surfaces):
            finite_core = surface_id[isurf] != surface_id[jsurf]
            cols = slice(offsets[jsurf], offsets[jsurf + 1])

            vel = surface_velocity_matrix(points, sending, finite_core=finite_core,
                symmetric=symmetric[jsurf], trailing_vortices=trailing_vortices[jsurf],
                xhat=xhat, wake_attached=wake_attached[jsurf])
            vel = vel.reshape(points.shape[0], -1, 3)

            aic[rows, cols] = np.einsum('ijk,ik->ij', vel, normals)

    logger.debug('Assembled %d x %d influence coefficient matrix', system_size, system_size)
    return aic

def trailing_edge_columns(surface):
    """
    System indices (relative to the start of the surface) of the panels on the
    trailing edge of a surface of rings.
    """
    indices = np.arange(surface.size).reshape(surface.shape)
    return indices[-1]

def trailing_edge_coefficients(surfaces, wakes, symmetric, surface_id, wake_finite_core,
                               trailing_vortices, xhat=XHAT, rows=slice(None)):
    """
    Influence of the wake rows whose circulation equals the circulation of the
    trailing-edge panel they are attached to.

    Those wake panels do not add unknowns: their influence is added to the
    columns of the trailing-edge panels of the AIC matrix.

    Parameters
    ----------
    surfaces : list of Ring
        Lifting surfaces.
    wakes : list of Wake or None
        Wake of each surface (None for surfaces without a wake).
    wake_finite_core : list of bool
        Whether the finite core kernels are used for the influence of each
        wake, even on its own surface.
    rows : slice
        Rows of the wakes carrying the trailing-edge circulation: every row in
        a steady analysis, the first row in an unsteady one.

    Returns
    -------
    coefficients[system_size, system_size] : numpy array
        Matrix to add to the AIC matrix.
    """
    offsets = surface_offsets(surfaces)
    system_size = offsets[-1]

    coefficients = np.zeros((system_size, system_size))

    for isurf, receiving in enumerate(surfaces):
        points = receiving.rcp.reshape(-1, 3)
        normals = receiving.ncp.reshape(-1, 3)
        block = slice(offsets[isurf], offsets[isurf + 1])

        for jsurf, wake in enumerate(wakes):
            if wake is None or wake.nw == 0:
                continue

            finite_core = wake_finite_core[jsurf] or surface_id[isurf] != surface_id[jsurf]
            vel = wake_velocity_matrix(points, wake, finite_core=finite_core,
                symmetric=symmetric[jsurf], trailing_vortices=trailing_vortices[jsurf], xhat=xhat)
            vel = np.sum(vel[:, rows], axis=1)

            cols = offsets[jsurf] + trailing_edge_columns(surfaces[jsurf])
            coefficients[block, cols] += np.einsum('ijk,ik->ij', vel, normals)

    return coefficients
