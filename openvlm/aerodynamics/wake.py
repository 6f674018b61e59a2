"""
Wake lattices shed from the trailing edge of surfaces of vortex rings.

A wake is a lattice of vortex rings with ``nw`` rows and the same number of
spanwise panels as its surface.  Row 0 is attached to the trailing edge and
holds the most recently shed circulation; the leading filament of that row
lies on the trailing edge, where the trailing-edge panels of the surface leave
their ring open, so neither of the two coincident filaments is evaluated.
"""
import logging

import numpy as np

from openvlm.aerodynamics.freestream import external_velocity
from openvlm.aerodynamics.induced_velocity import panel_induced_velocity, surface_velocity_matrix
from openvlm.geometry.panels import Horseshoe, Ring
from openvlm.utils.constants import XHAT
from openvlm.utils.exceptions import ConfigurationError
from openvlm.utils.vector_algebra import compute_cross, compute_norm


logger = logging.getLogger(__name__)


class Wake(object):
    """
    Wake lattice of a surface.

    Parameters
    ----------
    vertices[nw + 1, ns + 1, 3] : numpy array
        Wake vertices, row 0 on the trailing edge of the surface.
    gamma[nw, ns] : numpy array
        Circulation of each wake panel. Defaults to zero.
    core_size[ns] : numpy array
        Finite core size of each spanwise column of wake panels.
    """

    def __init__(self, vertices, gamma=None, core_size=0.):
        self.vertices = np.array(vertices, dtype=float)
        nw = self.vertices.shape[0] - 1
        ns = self.vertices.shape[1] - 1
        if gamma is None:
            self.gamma = np.zeros((nw, ns))
        else:
            self.gamma = np.array(gamma, dtype=float).reshape((nw, ns))
        self.core_size = np.broadcast_to(np.asarray(core_size, dtype=float), (ns,)).copy()

    @property
    def shape(self):
        return self.gamma.shape

    @property
    def nw(self):
        return self.gamma.shape[0]

    @property
    def size(self):
        return self.gamma.size

    def copy(self):
        return Wake(self.vertices, self.gamma, self.core_size)

    def panels(self):
        """
        Vortex rings of the wake, with grid shape (nw, ns).
        """
        return wake_panels(self.vertices, self.core_size)


def wake_panels(vertices, core_size=0.):
    rtl = vertices[:-1, :-1]
    rtr = vertices[:-1, 1:]
    rbl = vertices[1:, :-1]
    rbr = vertices[1:, 1:]

    # normals from the cross product of the diagonals, left at zero for
    # collapsed panels
    normals = compute_cross(rtr - rbl, rtl - rbr)
    norms = compute_norm(normals)
    ncp = np.zeros_like(normals)
    np.divide(normals, norms, out=ncp, where=norms > 0.)

    shape = rtl.shape[:-1]
    trailing = np.zeros(shape, dtype=bool)
    if shape[0] > 0:
        trailing[-1] = True

    return Ring(rtl=rtl, rtc=0.5 * (rtl + rtr), rtr=rtr, rbl=rbl, rbc=0.5 * (rbl + rbr), rbr=rbr,
        rcp=0.25 * (rtl + rtr + rbl + rbr), ncp=ncp,
        core_size=np.broadcast_to(core_size, shape), trailing=trailing)

def trailing_edge_vertices(surface):
    """
    Trailing edge vertices of a surface of vortex rings: array[ns + 1, 3].
    """
    if isinstance(surface, Horseshoe):
        raise ConfigurationError('wakes can only be attached to surfaces of vortex rings')
    return surface.vertices()[-1]

def empty_wake(surface):
    """
    Wake with no panels, ready to shed from the trailing edge of a surface.
    """
    return Wake(trailing_edge_vertices(surface)[np.newaxis], core_size=surface.core_size[-1])

def wake_from_trailing_edge(surface, distances, xhat=XHAT, gamma=None):
    """
    Straight wake leaving the trailing edge in the direction xhat.

    Parameters
    ----------
    surface : Ring
        Surface shedding the wake.
    distances[nw + 1] : numpy array
        Distance of each row of wake vertices from the trailing edge, starting
        with zero.
    xhat : numpy array[3]
        Direction of the wake.
    gamma[nw, ns] : numpy array or None
        Circulation of the wake panels.
    """
    te = trailing_edge_vertices(surface)
    distances = np.asarray(distances, dtype=float)
    vertices = te[np.newaxis] + np.einsum('i,k->ik', distances, np.asarray(xhat, dtype=float))[:, np.newaxis]
    return Wake(vertices, gamma=gamma, core_size=surface.core_size[-1])

def shed_wake(wake, surface, gamma_te=None):
    """
    Attach a new row of wake panels between the trailing edge of a surface and
    the (convected) first row of wake vertices.
    """
    te = trailing_edge_vertices(surface)
    vertices = np.concatenate([te[np.newaxis], wake.vertices], axis=0)
    if gamma_te is None:
        gamma_te = np.zeros(wake.shape[1])
    gamma = np.concatenate([np.reshape(gamma_te, (1, -1)), wake.gamma], axis=0)
    return Wake(vertices, gamma, wake.core_size)

def convect_wake(wake, velocities, dt):
    """
    Move the wake vertices with the given velocities over a time step dt.
    """
    return Wake(wake.vertices + velocities * dt, wake.gamma, wake.core_size)

def truncate_wake(wake, nwake):
    """
    Keep only the first nwake rows of a wake.
    """
    if wake.nw <= nwake:
        return wake
    return Wake(wake.vertices[:nwake + 1], wake.gamma[:nwake], wake.core_size)

def wake_velocity_matrix(points, wake, finite_core=True, symmetric=False, trailing_vortices=False,
                         xhat=XHAT):
    """
    Velocity per unit circulation induced by each wake panel at each point.

    Returns
    -------
    vel[num_points, nw, ns, 3] : numpy array
        Induced velocities.
    """
    points = np.asarray(points, dtype=float)
    panels = wake.panels()
    vel = surface_velocity_matrix(points, panels, finite_core=finite_core, symmetric=symmetric,
        trailing_vortices=trailing_vortices, xhat=xhat)

    # the leading filament of the first row lies on the open trailing edge
    options = dict(finite_core=finite_core, trailing_vortices=trailing_vortices, xhat=xhat,
        include_bottom=False, include_left=False, include_right=False,
        include_left_trailing=False, include_right_trailing=False)
    first = panels[:1]
    vel[:, :1] -= panel_induced_velocity(points, first, **options)
    if symmetric:
        mask = first.not_on_symmetry_plane()[np.newaxis, ..., np.newaxis]
        vel[:, :1] -= np.where(mask, panel_induced_velocity(points, first, reflect=True, **options), 0.)

    return vel

def wake_induced_velocity(points, wake, finite_core=True, symmetric=False, trailing_vortices=False,
                          xhat=XHAT, rows=slice(None)):
    """
    Velocity induced at each point by (some of the rows of) a wake.

    Returns
    -------
    V[num_points, 3] : numpy array
        Induced velocities.
    """
    points = np.asarray(points, dtype=float)
    if wake.nw == 0:
        return np.zeros(points.shape)
    vel = wake_velocity_matrix(points, wake, finite_core, symmetric, trailing_vortices, xhat)
    return np.einsum('mijk,ij->mk', vel[:, rows], wake.gamma[rows])

def wake_vertex_velocities(surfaces, gammas, wakes, reference, freestream, symmetric,
                           trailing_vortices, xhat=XHAT, free_wake=True):
    """
    Velocity of the vertices of every wake.

    The vertices move with the external velocity and, for a free wake, with the
    velocity induced by every surface and wake.  The induced velocities are
    always evaluated with the finite core kernels since the vertices lie on
    the filaments they are attached to.

    Parameters
    ----------
    surfaces : list of Ring
        Lifting surfaces.
    gammas : list of numpy array
        Circulation of each surface.
    wakes : list of Wake
        Wake of each surface.

    Returns
    -------
    velocities : list of numpy array[nw + 1, ns + 1, 3]
        Velocity of the vertices of each wake.
    """
    velocities = []
    for wake in wakes:
        points = wake.vertices.reshape(-1, 3)
        V = external_velocity(freestream, points, reference.r)[0]

        if free_wake:
            for jsurf, surface in enumerate(surfaces):
                vel = surface_velocity_matrix(points, surface, finite_core=True,
                    symmetric=symmetric[jsurf], trailing_vortices=trailing_vortices[jsurf],
                    xhat=xhat, wake_attached=True)
                V += np.einsum('mnk,n->mk', vel.reshape(points.shape[0], -1, 3), gammas[jsurf])
            for jsurf, other in enumerate(wakes):
                V += wake_induced_velocity(points, other, finite_core=True,
                    symmetric=symmetric[jsurf], trailing_vortices=trailing_vortices[jsurf],
                    xhat=xhat)

        velocities.append(V.reshape(wake.vertices.shape))
    return velocities
