import numpy as np

from openvlm.geometry.panels import Horseshoe, Ring
from openvlm.utils.vector_algebra import compute_cross, normalize


def default_core_size(chord, width):
    """
    Finite core size of a panel from the chord of its chordwise strip and the
    panel width.
    """
    return np.maximum(0.25 * chord, 0.5 * width)

def _grid_points(grid):
    """
    Quarter-chord bound vortex points, control points and normals shared by
    both panel types.
    """
    grid = np.asarray(grid, dtype=float)
    if grid.ndim != 3 or grid.shape[0] < 2 or grid.shape[1] < 2 or grid.shape[2] != 3:
        raise ValueError('grid must have shape (nc + 1, ns + 1, 3), got {}'.format(grid.shape))

    r1 = grid[:-1, :-1]
    r2 = grid[:-1, 1:]
    r3 = grid[1:, :-1]
    r4 = grid[1:, 1:]

    # bound vortex on the quarter chord of each panel
    rtl = 0.75 * r1 + 0.25 * r3
    rtr = 0.75 * r2 + 0.25 * r4
    rtc = 0.5 * (rtl + rtr)

    # control point on the three-quarter chord at the middle of the panel
    rcp = 0.25 * 0.5 * (r1 + r2) + 0.75 * 0.5 * (r3 + r4)

    ncp = normalize(compute_cross(rcp - rtr, rcp - rtl))

    return grid, rtl, rtc, rtr, rcp, ncp

def _core_size(grid, fcore):
    if fcore is None:
        fcore = default_core_size
    nc = grid.shape[0] - 1

    # chord of each spanwise strip, averaged between its edges
    edge_chords = np.sum((grid[-1] - grid[0]) ** 2, axis=-1) ** 0.5
    chords = 0.5 * (edge_chords[:-1] + edge_chords[1:])

    widths = np.sum((grid[:, 1:] - grid[:, :-1]) ** 2, axis=-1) ** 0.5
    widths = 0.5 * (widths[:-1] + widths[1:])

    return fcore(np.outer(np.ones(nc), chords), widths)

def grid_to_vortex_rings(grid, fcore=None):
    """
    Build a surface of vortex rings from a grid of panel corners.

    Parameters
    ----------
    grid[nc + 1, ns + 1, 3] : numpy array
        Panel corners, ordered from leading edge to trailing edge along the
        first axis and from left to right along the second one.
    fcore : callable, optional
        Function of (chord, width) returning the finite core size of each
        panel. Defaults to ``default_core_size``.

    Returns
    -------
    surface : Ring
        Vortex rings with grid shape (nc, ns).
    """
    grid, rtl, rtc, rtr, rcp, ncp = _grid_points(grid)

    # the bottom of each ring is the top of the next one, and the trailing
    # edge for the last row
    rbl = np.concatenate([rtl[1:], grid[-1:, :-1]], axis=0)
    rbr = np.concatenate([rtr[1:], grid[-1:, 1:]], axis=0)
    rbc = 0.5 * (rbl + rbr)

    trailing = np.zeros(rcp.shape[:-1], dtype=bool)
    trailing[-1] = True

    return Ring(rtl=rtl, rtc=rtc, rtr=rtr, rbl=rbl, rbc=rbc, rbr=rbr, rcp=rcp, ncp=ncp,
        core_size=_core_size(grid, fcore), trailing=trailing)

def grid_to_horseshoe_vortices(grid, fcore=None):
    """
    Build a surface of horseshoe vortices from a grid of panel corners.

    Parameters
    ----------
    grid[nc + 1, ns + 1, 3] : numpy array
        Panel corners, ordered from leading edge to trailing edge along the
        first axis and from left to right along the second one.
    fcore : callable, optional
        Function of (chord, width) returning the finite core size of each
        panel. Defaults to ``default_core_size``.

    Returns
    -------
    surface : Horseshoe
        Horseshoe vortices with grid shape (nc, ns).
    """
    grid, rtl, rtc, rtr, rcp, ncp = _grid_points(grid)

    xl_te = grid[-1, :-1, 0] - rtl[..., 0]
    xr_te = grid[-1, 1:, 0] - rtr[..., 0]
    xc_te = 0.5 * (xl_te + xr_te)

    return Horseshoe(rl=rtl, rc=rtc, rr=rtr, rcp=rcp, ncp=ncp,
        xl_te=xl_te, xc_te=xc_te, xr_te=xr_te, core_size=_core_size(grid, fcore))

def lifting_line_geometry(grid, xc=0.25):
    """
    Lifting line points and chord lengths of a surface.

    Parameters
    ----------
    grid[nc + 1, ns + 1, 3] : numpy array
        Panel corners of the surface.
    xc : float
        Normalized chordwise location of the lifting line.

    Returns
    -------
    r[ns + 1, 3] : numpy array
        Lifting line points at each spanwise station.
    c[ns + 1] : numpy array
        Chord length at each spanwise station.
    """
    grid = np.asarray(grid, dtype=float)
    le = grid[0]
    te = grid[-1]
    r = (1. - xc) * le + xc * te
    c = np.sum((te - le) ** 2, axis=-1) ** 0.5
    return r, c
