"""
Induced drag from the trailing vortices in the Trefftz plane.

The trailing vortices shed by each surface are projected on a plane normal to
the freestream (the y-z plane of the wind frame).  The drag then follows from
the 2-D velocity that each pair of trailing vortices induces on the trailing
vortex sheet elements.  None of this depends on the near-field solution, so
the result can be compared with the near-field drag.
"""
import numpy as np

from openvlm.aerodynamics.assemble_aic import check_system_size, surface_offsets
from openvlm.aerodynamics.freestream import seeded_rotation
from openvlm.geometry.panels import not_on_symmetry_plane
from openvlm.utils.constants import QINF, RHO
from openvlm.utils.vector_algebra import flipy, seed, seeded_div, seeded_mul


tol = 1e-12

def trefftz_panels(surface, gamma):
    """
    Trailing vortex end points, sheet element centers and circulations of the
    panels of a surface that shed trailing vortices.

    Parameters
    ----------
    gamma[..., nc * ns] : numpy array
        Panel circulations of the surface.

    Returns
    -------
    rl[n, 3], rr[n, 3], rc[n, 3] : numpy array
        Left and right trailing vortex origins and the center between them.
    gamma[..., n] : numpy array
        Circulation of the trailing vortex pairs.
    """
    rl, rr = surface.trefftz_endpoints()
    rc = surface.trefftz_center()
    gamma = np.reshape(gamma, gamma.shape[:-1] + surface.shape)

    sheds = surface.trailing
    return rl[sheds], rr[sheds], rc[sheds], gamma[..., sheds]

def _vortex_induced_drag(ri, ti, rj):
    """
    Seeded drag kernel: normal velocity induced on the sheet elements centered
    at ri (with scaled normals built from ti) by unit 2-D vortices at rj.
    """
    dy = ri[:, :, np.newaxis, 1] - rj[:, np.newaxis, :, 1]
    dz = ri[:, :, np.newaxis, 2] - rj[:, np.newaxis, :, 2]
    ty = ti[:, :, np.newaxis, 1]
    tz = ti[:, :, np.newaxis, 2]

    num = seeded_mul(dz, np.broadcast_to(tz, dz.shape)) + seeded_mul(dy, np.broadcast_to(ty, dy.shape))
    den = seeded_mul(dy, dy) + seeded_mul(dz, dz)

    singular = np.abs(den[:1]) < tol
    with np.errstate(divide='ignore', invalid='ignore'):
        result = -seeded_div(num, den) / (2 * np.pi)
    return np.where(singular, 0., result)

def _far_field_drag(surfaces, gamma, reference, freestream, symmetric):
    check_system_size(surfaces, gamma)
    nseed = gamma.shape[0]
    offsets = surface_offsets(surfaces)

    # project the trailing vortices in the wind frame
    R = seeded_rotation(freestream, 'wind', derivatives=nseed > 1)

    trefftz = []
    for isurf, surface in enumerate(surfaces):
        rl, rr, rc, g = trefftz_panels(surface, gamma[:, offsets[isurf]:offsets[isurf + 1]])
        rl = np.einsum('sij,nj->sni', R, rl)
        rr = np.einsum('sij,nj->sni', R, rr)
        rc = np.einsum('sij,nj->sni', R, rc)
        trefftz.append((rl, rr, rc, g))

    D = np.zeros(nseed, dtype=gamma.dtype)
    for isurf in range(len(surfaces)):
        rli, rri, rci, gi = trefftz[isurf]
        ti = rri - rli

        Di = np.zeros(nseed, dtype=gamma.dtype)
        for jsurf in range(len(surfaces)):
            rlj, rrj, rcj, gj = trefftz[jsurf]

            K = _vortex_induced_drag(rci, ti, rrj) - _vortex_induced_drag(rci, ti, rlj)
            if symmetric[jsurf]:
                mask = not_on_symmetry_plane(rlj[0], rrj[0])[np.newaxis, np.newaxis, :]
                mirrored = _vortex_induced_drag(rci, ti, flipy(rlj)) \
                    - _vortex_induced_drag(rci, ti, flipy(rrj))
                K = K + np.where(mask, mirrored, 0.)

            G = seeded_mul(gi[:, :, np.newaxis], gj[:, np.newaxis, :])
            Di += 0.5 * RHO * np.sum(seeded_mul(G, K), axis=(1, 2))

        if symmetric[isurf]:
            Di = 2. * Di
        D += Di

    return D / (QINF * reference.S)

def far_field_drag(surfaces, gamma, reference, freestream, symmetric):
    """
    Induced drag coefficient from the Trefftz plane.

    Parameters
    ----------
    surfaces : list of Horseshoe or Ring
        Lifting surfaces.
    gamma[system_size] : numpy array
        Panel circulations.
    reference : Reference
        Reference quantities.
    freestream : Freestream
        Freestream state.
    symmetric : list of bool
        Whether each surface is mirrored across y = 0.

    Returns
    -------
    CD : float
        Induced drag coefficient.
    """
    return _far_field_drag(surfaces, seed(gamma), reference, freestream, symmetric)[0]

def far_field_drag_derivatives(surfaces, gamma, dgamma, reference, freestream, symmetric):
    """
    Induced drag coefficient from the Trefftz plane and its derivatives with
    respect to alpha, beta, p, q and r.

    Returns
    -------
    CD : float
        Induced drag coefficient.
    dCD[5] : numpy array
        Derivatives of the induced drag coefficient.
    """
    CD = _far_field_drag(surfaces, seed(gamma, dgamma), reference, freestream, symmetric)
    return CD[0], CD[1:]
