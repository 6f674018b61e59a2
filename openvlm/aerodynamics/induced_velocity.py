"""
Velocity induced by panels and surfaces of panels.

Two evaluation modes exist.  When the sending surface is a different body
than the receiving one (different surface ids), every filament of every panel
is evaluated on its own, with a finite core.  When they are the same body,
neighbouring panels share their filaments: each filament of the vertex
lattice is evaluated once and added to one panel while being subtracted from
its neighbour.  Both modes give the same result for the same filaments (up to
the finite core), the second one with roughly half the kernel evaluations.

Symmetric surfaces add the influence of their mirror image across y = 0,
except for panels lying in the plane itself, whose image is the panel.

The trailing edge of a surface is treated in one of three ways: trailing-edge
panels shed a pair of semi-infinite trailing vortices (the default), close
their ring with a bound filament (``trailing_vortices=False``), or leave it
open because a wake lattice attached to the trailing edge carries that
filament (``wake_attached=True``).
"""
import numpy as np

from openvlm.aerodynamics.eval_mtx import bound_vortex, trailing_vortex
from openvlm.geometry.panels import Horseshoe
from openvlm.utils.constants import XHAT
from openvlm.utils.vector_algebra import flipy, seed


# Upper bound on the number of (evaluation point, panel) pairs evaluated at
# once.
max_pairs = 100000

def _point_vectors(points, r):
    # vectors from the points r[...] to the evaluation points[m]
    points = points.reshape((points.shape[0],) + (1,) * (r.ndim - 1) + (3,))
    return points - r[np.newaxis]

def _trailing_edge_masks(trailing, trailing_vortices, wake_attached):
    sheds = trailing & bool(trailing_vortices) & (not wake_attached)
    closed = np.logical_not(trailing) | (not trailing_vortices and not wake_attached)
    return sheds, closed

def panel_induced_velocity(points, panels, finite_core=False, trailing_vortices=True, xhat=XHAT,
                           reflect=False, wake_attached=False, include_top=True,
                           include_bottom=True, include_left=True, include_right=True,
                           include_left_trailing=True, include_right_trailing=True):
    """
    Velocity per unit circulation induced by each panel at each point, with
    every filament evaluated independently.

    Parameters
    ----------
    points[num_points, 3] : numpy array
        Evaluation points.
    panels : Horseshoe or Ring
        Sending panel(s), with grid shape S.
    finite_core : bool
        Use the finite core kernels with the panels' core sizes.
    trailing_vortices : bool
        If False, trailing-edge panels close their bottom filament instead of
        shedding trailing vortices.
    xhat : numpy array[3]
        Direction of the trailing vortices.
    reflect : bool
        Evaluate the mirror image of the panels across y = 0 instead.
    wake_attached : bool
        Trailing-edge panels neither shed trailing vortices nor close their
        bottom filament.
    include_top, include_bottom, include_left, include_right : bool
        Include the corresponding bound vortex filament. The bottom filament
        only exists on panels that do not shed trailing vortices.
    include_left_trailing, include_right_trailing : bool
        Include the corresponding trailing vortex (trailing-edge panels only).

    Returns
    -------
    vel[num_points, ..., 3] : numpy array
        Induced velocities, with the panel grid shape S in the middle axes.
    """
    points = np.asarray(points, dtype=float)
    xhat = np.asarray(xhat, dtype=float)
    if reflect:
        rtl, rtr, rbl, rbr = panels.reflected_endpoints()
        u = flipy(xhat)
    else:
        rtl, rtr, rbl, rbr = panels.endpoints()
        u = xhat

    core = panels.core_size

    sheds, closed = _trailing_edge_masks(panels.trailing, trailing_vortices, wake_attached)
    sheds = sheds[np.newaxis, ..., np.newaxis]
    closed = closed[np.newaxis, ..., np.newaxis]

    r_tl = _point_vectors(points, rtl)
    r_tr = _point_vectors(points, rtr)
    r_bl = _point_vectors(points, rbl)
    r_br = _point_vectors(points, rbr)

    vel = np.zeros((points.shape[0],) + panels.shape + (3,))
    if include_top:
        vel += bound_vortex(r_tl, r_tr, finite_core, core)
    if include_bottom:
        vel += np.where(closed, bound_vortex(r_br, r_bl, finite_core, core), 0.)
    if include_left:
        vel += bound_vortex(r_bl, r_tl, finite_core, core)
    if include_right:
        vel += bound_vortex(r_tr, r_br, finite_core, core)
    if include_left_trailing:
        vel -= np.where(sheds, trailing_vortex(u, r_bl, finite_core, core), 0.)
    if include_right_trailing:
        vel += np.where(sheds, trailing_vortex(u, r_br, finite_core, core), 0.)
    return vel

def _ring_lattice_velocity(points, surface, trailing_vortices, xhat, reflect, wake_attached,
                           exclude):
    P = surface.vertices()
    u = np.asarray(xhat, dtype=float)
    if reflect:
        P = flipy(P)
        u = flipy(u)

    r = _point_vectors(points, P)

    # horizontal filaments P[i, j] -> P[i, j + 1], vertical filaments
    # P[i + 1, k] -> P[i, k]
    horizontal = bound_vortex(r[:, :, :-1], r[:, :, 1:])
    vertical = bound_vortex(r[:, 1:, :], r[:, :-1, :])

    if exclude is not None:
        index = np.arange(points.shape[0])
        horizontal[index, exclude[0], exclude[1]] = 0.

    vel = horizontal[:, :-1] + vertical[:, :, :-1] - vertical[:, :, 1:]
    vel[:, :-1] -= horizontal[:, 1:-1]

    sheds, closed = _trailing_edge_masks(surface.trailing[-1], trailing_vortices, wake_attached)
    sheds = sheds[np.newaxis, :, np.newaxis]
    closed = closed[np.newaxis, :, np.newaxis]
    trailing = trailing_vortex(u, r[:, -1])
    vel[:, -1] += np.where(sheds, trailing[:, 1:] - trailing[:, :-1], 0.)
    vel[:, -1] -= np.where(closed, horizontal[:, -1], 0.)

    if reflect:
        return -vel
    return vel

def _horseshoe_lattice_velocity(points, surface, trailing_vortices, xhat, reflect, exclude):
    Q = surface.bound_vertices()
    T = Q.copy()
    T[..., 0] += surface.trailing_edge_offsets()
    u = np.asarray(xhat, dtype=float)
    if reflect:
        Q = flipy(Q)
        T = flipy(T)
        u = flipy(u)

    r_q = _point_vectors(points, Q)
    r_t = _point_vectors(points, T)

    # bound vortex of each horseshoe and the legs T -> Q shared by neighbours
    horizontal = bound_vortex(r_q[:, :, :-1], r_q[:, :, 1:])
    side = bound_vortex(r_t, r_q)

    if exclude is not None:
        index = np.arange(points.shape[0])
        horizontal[index, exclude[0], exclude[1]] = 0.

    if trailing_vortices:
        side -= trailing_vortex(u, r_t)
        vel = horizontal + side[:, :, :-1] - side[:, :, 1:]
    else:
        bottom = bound_vortex(r_t[:, :, 1:], r_t[:, :, :-1])
        vel = horizontal + side[:, :, :-1] - side[:, :, 1:] + bottom

    if reflect:
        return -vel
    return vel

def _lattice_velocity(points, surface, trailing_vortices, xhat, reflect=False,
                      wake_attached=False, exclude=None):
    if isinstance(surface, Horseshoe):
        return _horseshoe_lattice_velocity(points, surface, trailing_vortices, xhat, reflect,
            exclude)
    return _ring_lattice_velocity(points, surface, trailing_vortices, xhat, reflect,
        wake_attached, exclude)

def _velocity_matrix(points, surface, finite_core, symmetric, trailing_vortices, xhat,
                     wake_attached, exclude):
    if finite_core:
        vel = panel_induced_velocity(points, surface, finite_core=True,
            trailing_vortices=trailing_vortices, xhat=xhat, wake_attached=wake_attached)
    else:
        vel = _lattice_velocity(points, surface, trailing_vortices, xhat,
            wake_attached=wake_attached, exclude=exclude)

    if symmetric:
        mask = surface.not_on_symmetry_plane()[np.newaxis, ..., np.newaxis]
        if finite_core:
            mirrored = panel_induced_velocity(points, surface, finite_core=True,
                trailing_vortices=trailing_vortices, xhat=xhat, reflect=True,
                wake_attached=wake_attached)
        else:
            mirrored = _lattice_velocity(points, surface, trailing_vortices, xhat, reflect=True,
                wake_attached=wake_attached)
        vel += np.where(mask, mirrored, 0.)

    return vel

def surface_velocity_matrix(points, surface, finite_core=False, symmetric=False,
                            trailing_vortices=True, xhat=XHAT, wake_attached=False,
                            exclude=None):
    """
    Velocity per unit circulation induced by each panel of a surface at each
    point.

    Parameters
    ----------
    points[num_points, 3] : numpy array
        Evaluation points.
    surface : Horseshoe or Ring
        Sending surface, with grid shape (nc, ns).
    finite_core : bool
        Evaluate every filament independently with a finite core instead of
        sharing filaments between neighbouring panels.
    symmetric : bool
        Include the mirror image of the surface across y = 0.
    trailing_vortices : bool
        Shed trailing vortices from the trailing-edge panels.
    xhat : numpy array[3]
        Direction of the trailing vortices.
    wake_attached : bool
        A wake lattice is attached to the trailing edge (vortex rings only).
    exclude : tuple of two int arrays or None
        Chordwise and spanwise index, for each evaluation point, of a panel
        whose top bound vortex passes through that point and is left out.
        Only used without the finite core.

    Returns
    -------
    vel[num_points, nc, ns, 3] : numpy array
        Induced velocities.
    """
    points = np.asarray(points, dtype=float)
    num_points = points.shape[0]

    # work on blocks of evaluation points to bound the size of the temporaries
    chunk = max(1, max_pairs // max(1, surface.size))
    if num_points <= chunk:
        return _velocity_matrix(points, surface, finite_core, symmetric, trailing_vortices,
            xhat, wake_attached, exclude)

    vel = np.empty((num_points,) + surface.shape + (3,))
    for start in range(0, num_points, chunk):
        end = min(start + chunk, num_points)
        block_exclude = None
        if exclude is not None:
            block_exclude = (exclude[0][start:end], exclude[1][start:end])
        vel[start:end] = _velocity_matrix(points[start:end], surface, finite_core, symmetric,
            trailing_vortices, xhat, wake_attached, block_exclude)
    return vel

def surface_induced_velocity(points, surface, gamma, finite_core=False, symmetric=False,
                             trailing_vortices=True, xhat=XHAT, wake_attached=False,
                             exclude=None):
    """
    Velocity induced at each point by a surface with circulation gamma.

    Parameters
    ----------
    points[num_points, 3] : numpy array
        Evaluation points.
    surface : Horseshoe or Ring
        Sending surface, with grid shape (nc, ns).
    gamma[..., nc * ns] : numpy array
        Panel circulations, in C order over the grid. Any leading axes (for
        example the seed axis of a seeded circulation) are carried through.

    Returns
    -------
    V[..., num_points, 3] : numpy array
        Induced velocities.
    """
    vel = surface_velocity_matrix(points, surface, finite_core, symmetric, trailing_vortices,
        xhat, wake_attached, exclude)
    vel = vel.reshape(vel.shape[0], -1, 3)
    return np.einsum('mnk,...n->...mk', vel, gamma)

def surface_induced_velocity_derivatives(points, surface, gamma, dgamma, finite_core=False,
                                         symmetric=False, trailing_vortices=True, xhat=XHAT,
                                         wake_attached=False, exclude=None):
    """
    Velocity induced at each point by a surface, and its derivatives.

    Parameters
    ----------
    gamma[nc * ns] : numpy array
        Panel circulations.
    dgamma[5, nc * ns] : numpy array
        Derivatives of the panel circulations with respect to alpha, beta, p,
        q and r.

    Returns
    -------
    V[num_points, 3] : numpy array
        Induced velocities.
    dV[5, num_points, 3] : numpy array
        Derivatives of the induced velocities.
    """
    V = surface_induced_velocity(points, surface, seed(gamma, dgamma), finite_core, symmetric,
        trailing_vortices, xhat, wake_attached, exclude)
    return V[0], V[1:]
