"""
Biot-Savart kernels: velocity induced per unit circulation by a bound vortex
segment or a semi-infinite trailing vortex, with and without a finite core.

All kernels take the vectors from the filament end points to the evaluation
points, with the end points and evaluation points broadcast against each
other along the leading axes, and return the induced velocity with the same
shape.  Entries where the kernel is singular (a point on the filament or a
filament of zero length) are set to zero.
"""
import numpy as np

from openvlm.utils.vector_algebra import add_ones_axis
from openvlm.utils.vector_algebra import compute_dot, compute_cross, compute_norm


tol = 1e-10

def _zero_singular(result, den):
    result[np.broadcast_to(np.abs(den) < tol, result.shape)] = 0.
    result[np.logical_not(np.isfinite(result))] = 0.
    return result

def _compute_finite_vortex(r1, r2):
    """
    Bound vortex segment running from end point 1 to end point 2.

    Parameters
    ----------
    r1 : numpy array[..., 3]
        Vectors from the first end point to the evaluation points.
    r2 : numpy array[..., 3]
        Vectors from the second end point to the evaluation points.
    """
    r1_norm = compute_norm(r1)
    r2_norm = compute_norm(r2)

    r1_x_r2 = compute_cross(r1, r2)
    r1_d_r2 = compute_dot(r1, r2)

    num = (1. / r1_norm + 1. / r2_norm) * r1_x_r2
    den = r1_norm * r2_norm + r1_d_r2

    with np.errstate(divide='ignore', invalid='ignore'):
        result = num / den / 4 / np.pi
    return _zero_singular(result, den)

def _compute_finite_vortex_core(r1, r2, core_size):
    """
    Bound vortex segment with a finite core of size core_size.
    """
    r1_norm = compute_norm(r1)
    r2_norm = compute_norm(r2)
    r1_sq = r1_norm ** 2
    r2_sq = r2_norm ** 2

    r1_x_r2 = compute_cross(r1, r2)
    r1_d_r2 = compute_dot(r1, r2)
    core_sq = add_ones_axis(np.broadcast_to(core_size, r1.shape[:-1]) ** 2)

    den = r1_sq * r2_sq - r1_d_r2 ** 2 + core_sq * (r1_sq + r2_sq - 2. * r1_norm * r2_norm)
    num = (r1_sq - r1_d_r2) / (r1_sq + core_sq) ** 0.5 \
        + (r2_sq - r1_d_r2) / (r2_sq + core_sq) ** 0.5

    with np.errstate(divide='ignore', invalid='ignore'):
        result = r1_x_r2 / den * num / 4 / np.pi
    return _zero_singular(result, den)

def _compute_semi_infinite_vortex(u, r):
    """
    Semi-infinite vortex starting at an end point and running to infinity in
    the direction u.

    Parameters
    ----------
    u : numpy array[..., 3]
        Unit vector along the vortex.
    r : numpy array[..., 3]
        Vectors from the end point to the evaluation points.
    """
    u = np.broadcast_to(u, r.shape)
    r_norm = compute_norm(r)
    u_x_r = compute_cross(u, r)
    u_d_r = compute_dot(u, r)

    num = u_x_r
    den = r_norm * (r_norm - u_d_r)

    with np.errstate(divide='ignore', invalid='ignore'):
        result = num / den / 4 / np.pi
    return _zero_singular(result, den)

def _compute_semi_infinite_vortex_core(u, r, core_size):
    """
    Semi-infinite vortex with a finite core of size core_size.
    """
    u = np.broadcast_to(u, r.shape)
    r_norm = compute_norm(r)
    u_x_r = compute_cross(u, r)
    u_d_r = compute_dot(u, r)
    core_sq = add_ones_axis(np.broadcast_to(core_size, r.shape[:-1]) ** 2)

    num = u_x_r
    with np.errstate(divide='ignore', invalid='ignore'):
        den = r_norm * ((r_norm - u_d_r) + core_sq / (r_norm + u_d_r))
        result = num / den / 4 / np.pi
    return _zero_singular(result, den)

def bound_vortex(r1, r2, finite_core=False, core_size=0.):
    if finite_core:
        return _compute_finite_vortex_core(r1, r2, core_size)
    return _compute_finite_vortex(r1, r2)

def trailing_vortex(u, r, finite_core=False, core_size=0.):
    if finite_core:
        return _compute_semi_infinite_vortex_core(u, r, core_size)
    return _compute_semi_infinite_vortex(u, r)
