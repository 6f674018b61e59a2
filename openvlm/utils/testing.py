from openmdao.api import Problem
from openmdao.utils.assert_utils import assert_check_partials
import numpy as np

from openvlm.aerodynamics.freestream import Reference
from openvlm.geometry.utils import grid_to_horseshoe_vortices, grid_to_vortex_rings
from openvlm.utils.vector_algebra import flipy


def planform_grid(xle, yle, zle, chord, theta, ns, nc, mirror=False):
    """
    Uniformly spaced corner grid of a wing defined by its sections.

    Parameters
    ----------
    xle, yle, zle[num_sections] : numpy array
        Leading edge coordinates of each section.
    chord[num_sections] : numpy array
        Chord length of each section.
    theta[num_sections] : numpy array
        Incidence of each section (rad), positive nose up.
    ns : int or list of int
        Number of spanwise panels between consecutive sections.
    nc : int
        Number of chordwise panels.
    mirror : bool
        If True, the grid is mirrored across y = 0 so it spans the whole
        wing, from the left tip to the right tip.

    Returns
    -------
    grid[nc + 1, num_y, 3] : numpy array
        Corner grid.
    """
    le = np.array([xle, yle, zle], dtype=float).T
    chord = np.asarray(chord, dtype=float)
    theta = np.asarray(theta, dtype=float)
    te = le + chord[:, np.newaxis] * np.array([np.cos(theta), np.zeros_like(theta), -np.sin(theta)]).T

    nsec = le.shape[0]
    if np.isscalar(ns):
        ns = [ns] * (nsec - 1)

    le_span = [le[:1]]
    te_span = [te[:1]]
    for isec in range(nsec - 1):
        t = np.linspace(0., 1., ns[isec] + 1)[1:, np.newaxis]
        le_span.append((1 - t) * le[isec] + t * le[isec + 1])
        te_span.append((1 - t) * te[isec] + t * te[isec + 1])
    le_span = np.concatenate(le_span)
    te_span = np.concatenate(te_span)

    s = np.linspace(0., 1., nc + 1)[:, np.newaxis, np.newaxis]
    grid = (1 - s) * le_span + s * te_span

    if mirror:
        left = flipy(grid[:, ::-1])
        grid = np.concatenate([left[:, :-1], grid], axis=1)

    return grid

def avl_normal_vector(dr, theta):
    """
    Normal vector of a chordwise strip the way AVL computes it, from the
    leading edge vector dr between two sections and the incidence theta.
    """
    dr = np.asarray(dr, dtype=float)
    st, ct = np.sin(theta), np.cos(theta)
    shat = np.array([0., -dr[2], dr[1]]) / (dr[1] ** 2 + dr[2] ** 2) ** 0.5
    chat = np.array([ct, -st * shat[1], -st * shat[2]])
    ncp = np.cross(chat, dr)
    return ncp / np.linalg.norm(ncp)

def get_simple_wing(mirror=False, nc=1, theta=2., horseshoes=False):
    """
    Tapered wing of the AVL validation cases: span 15, chord 2.2 to 1.8 (in
    the x-direction), 12 spanwise panels per side.

    Returns
    -------
    grid : numpy array
        Corner grid of the wing.
    surface : Ring or Horseshoe
        Wing panels.
    reference : Reference
        Reference quantities.
    """
    theta = np.array([theta, theta]) * np.pi / 180.
    chord = np.array([2.2, 1.8]) / np.cos(theta)
    grid = planform_grid([0., 0.4], [0., 7.5], [0., 0.], chord, theta, 12, nc, mirror=mirror)

    if horseshoes:
        surface = grid_to_horseshoe_vortices(grid)
    else:
        surface = grid_to_vortex_rings(grid)

    reference = Reference(S=30., c=2., b=15., r=[0.5, 0., 0.])

    return grid, surface, reference

def get_default_surfaces():
    """
    Wing, horizontal tail and vertical tail of the AVL validation cases.

    The wing normals are replaced by the ones AVL uses, which differ slightly
    on wings that combine dihedral and incidence.

    Returns
    -------
    surfaces : list of Ring
        Wing, horizontal tail and vertical tail.
    reference : Reference
        Reference quantities.
    symmetric : list of bool
        Symmetry flags of the three surfaces.
    """
    theta = np.array([2., 2.]) * np.pi / 180.
    grid = planform_grid([0., 0.2], [0., 5.], [0., 1.], np.array([1., 0.6]) / np.cos(theta),
        theta, 12, 1)
    wing = grid_to_vortex_rings(grid)
    ncp = avl_normal_vector([0.2, 5., 1.], theta[0])
    wing = wing.replace(ncp=np.broadcast_to(ncp, wing.ncp.shape))

    grid = planform_grid([0., 0.14], [0., 1.25], [0., 0.], [0.7, 0.42], [0., 0.], 6, 1)
    htail = grid_to_vortex_rings(grid).translate([4., 0., 0.])

    grid = planform_grid([0., 0.14], [0., 0.], [0., 1.], [0.7, 0.42], [0., 0.], 5, 1)
    vtail = grid_to_vortex_rings(grid).translate([4., 0., 0.])

    reference = Reference(S=9., c=0.9, b=10., r=[0.5, 0., 0.])

    return [wing, htail, vtail], reference, [True, True, False]

def run_test(test_obj, comp, compact_print=True, method='fd', step=1e-6, atol=1e-5, rtol=1e-5,
             input_values=None):
    prob = Problem()
    prob.model.add_subsystem('comp', comp)
    prob.setup()

    if input_values is not None:
        for name, value in input_values.items():
            prob['comp.' + name] = value

    prob.run_model()

    check = prob.check_partials(compact_print=compact_print, method=method, step=step,
        form='central', out_stream=None)

    assert_check_partials(check, atol=atol, rtol=rtol)

    return prob
