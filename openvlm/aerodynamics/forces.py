"""
Near-field forces and moments from the Kutta-Joukowski theorem.

Each panel carries three bound vortex segments: the top one, at which the
local velocity includes the velocity induced by every surface and wake, and
the left and right ones (running chordwise), at which only the external
velocity is used.  The forces are computed per segment, then summed into body
force and moment coefficients.

All the routines here operate on seeded arrays (see
``openvlm.utils.vector_algebra``), so the derivatives with respect to the
freestream variables follow the exact same code path as the values.
"""
from collections import namedtuple

import numpy as np

from openvlm.aerodynamics.assemble_aic import check_system_size, surface_offsets
from openvlm.aerodynamics.freestream import external_velocity, seeded_rotation
from openvlm.aerodynamics.induced_velocity import surface_induced_velocity
from openvlm.aerodynamics.wake import wake_velocity_matrix
from openvlm.geometry.panels import Horseshoe
from openvlm.utils.constants import QINF, RHO, VINF, XHAT
from openvlm.utils.vector_algebra import compute_cross, seed, seeded_matvec, seeded_mul


PanelProperties = namedtuple('PanelProperties', ['gamma', 'velocity', 'cfb', 'cfl', 'cfr'])
PanelProperties.__doc__ = """
Near-field properties of the panels of a surface.

gamma[nc, ns] : normalized net circulation of the top bound vortex of each
    panel (see ``panel_circulation``).
velocity[nc, ns, 3] : normalized local velocity at the center of the top
    bound vortex.
cfb[nc, ns, 3] : force coefficient of the top bound vortex.
cfl[nc, ns, 3] : force coefficient of the left bound vortex.
cfr[nc, ns, 3] : force coefficient of the right bound vortex.
"""

def _side_velocity(freestream, points, reference, derivatives):
    # Modelling choice: the left and right bound vortices only see the
    # external velocity. The velocity they induce on each other is dropped,
    # as in AVL, which keeps the results consistent with AVL's.
    return external_velocity(freestream, points, reference.r, derivatives)

def panel_circulation(surface, gamma):
    """
    Net circulation of the top bound vortex of each panel.

    Rings share their top filament with the bottom filament of the panel in
    front of them, so the net circulation is the difference between the two;
    horseshoes carry their own circulation.

    Parameters
    ----------
    gamma[..., nc, ns] : numpy array
        Panel circulations.
    """
    if isinstance(surface, Horseshoe):
        return gamma
    net = np.array(gamma, copy=True)
    net[..., 1:, :] -= gamma[..., :-1, :]
    return net

def _near_field_properties(surfaces, gamma, reference, freestream, symmetric, surface_id,
                           trailing_vortices, xhat, wakes, wake_gammas, wake_finite_core,
                           wake_attached, gamma_dot):
    check_system_size(surfaces, gamma)
    nseed = gamma.shape[0]
    derivatives = nseed > 1
    offsets = surface_offsets(surfaces)

    if wakes is None:
        wakes = [None] * len(surfaces)
    if wake_attached is None:
        wake_attached = [False] * len(surfaces)
    if wake_finite_core is None:
        wake_finite_core = [True] * len(surfaces)

    properties = []
    for isurf, surface in enumerate(surfaces):
        nc, ns = surface.shape
        gamma_i = gamma[:, offsets[isurf]:offsets[isurf + 1]].reshape(nseed, nc, ns)

        # local velocity at the center of the top bound vortices
        points = surface.top_center().reshape(-1, 3)
        V = external_velocity(freestream, points, reference.r, derivatives)

        exclude = tuple(np.indices((nc, ns)).reshape(2, -1))
        for jsurf, sending in enumerate(surfaces):
            same_surface = isurf == jsurf
            V += surface_induced_velocity(points, sending,
                gamma[:, offsets[jsurf]:offsets[jsurf + 1]],
                finite_core=surface_id[isurf] != surface_id[jsurf],
                symmetric=symmetric[jsurf], trailing_vortices=trailing_vortices[jsurf],
                xhat=xhat, wake_attached=wake_attached[jsurf],
                exclude=exclude if same_surface else None)

        for jsurf, wake in enumerate(wakes):
            if wake is None or wake.nw == 0:
                continue
            vel = wake_velocity_matrix(points, wake,
                finite_core=wake_finite_core[jsurf] or surface_id[isurf] != surface_id[jsurf],
                symmetric=symmetric[jsurf], trailing_vortices=trailing_vortices[jsurf], xhat=xhat)
            V += np.einsum('mijk,...ij->...mk', vel, wake_gammas[jsurf])

        V = V.reshape(nseed, nc, ns, 3)

        # top bound vortex
        net = panel_circulation(surface, gamma_i)
        F = RHO * seeded_mul(net[..., np.newaxis], compute_cross(V, surface.top_vector()))
        if gamma_dot is not None:
            gamma_dot_i = gamma_dot[offsets[isurf]:offsets[isurf + 1]].reshape(nc, ns)
            F[0] += RHO * np.einsum('ij,ij,ijk->ijk', gamma_dot_i, surface.area(), surface.ncp)
        cfb = F / (QINF * reference.S)

        # left and right bound vortices
        Vl = _side_velocity(freestream, surface.left_center(), reference, derivatives)
        Fl = RHO * seeded_mul(gamma_i[..., np.newaxis], compute_cross(Vl, surface.left_vector()))
        cfl = Fl / (QINF * reference.S)

        Vr = _side_velocity(freestream, surface.right_center(), reference, derivatives)
        Fr = RHO * seeded_mul(gamma_i[..., np.newaxis], compute_cross(Vr, surface.right_vector()))
        cfr = Fr / (QINF * reference.S)

        properties.append(PanelProperties(net / VINF, V / VINF, cfb, cfl, cfr))

    return properties

def _unseed(properties, index):
    return [PanelProperties(*[field[index] for field in props]) for props in properties]

def near_field_properties(surfaces, gamma, reference, freestream, symmetric, surface_id,
                          trailing_vortices, xhat=XHAT, wakes=None, wake_gammas=None,
                          wake_finite_core=None, wake_attached=None, gamma_dot=None):
    """
    Near-field properties of the panels of every surface.

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
    symmetric, surface_id, trailing_vortices : list
        Per-surface options, as for the AIC matrix.
    xhat : numpy array[3]
        Direction of the trailing vortices.
    wakes : list of Wake or None
        Wake of each surface.
    wake_gammas : list of numpy array[nw, ns]
        Circulation of the panels of each wake.
    wake_finite_core : list of bool
        Whether each wake is evaluated with the finite core kernels.
    wake_attached : list of bool
        Whether each surface has a wake attached to its trailing edge.
    gamma_dot[system_size] : numpy array or None
        Rate of change of the panel circulations (unsteady analyses).

    Returns
    -------
    properties : list of PanelProperties
        Panel properties of each surface.
    """
    if wake_gammas is not None:
        wake_gammas = [None if g is None else seed(g) for g in wake_gammas]
    properties = _near_field_properties(surfaces, seed(gamma), reference, freestream, symmetric,
        surface_id, trailing_vortices, xhat, wakes, wake_gammas, wake_finite_core,
        wake_attached, gamma_dot)
    return _unseed(properties, 0)

def near_field_properties_derivatives(surfaces, gamma, dgamma, reference, freestream, symmetric,
                                      surface_id, trailing_vortices, xhat=XHAT, wakes=None,
                                      wake_gammas=None, wake_dgammas=None,
                                      wake_finite_core=None, wake_attached=None):
    """
    Near-field properties of the panels of every surface and their
    derivatives with respect to alpha, beta, p, q and r.

    Parameters
    ----------
    dgamma[5, system_size] : numpy array
        Derivatives of the panel circulations.
    wake_dgammas : list of numpy array[5, nw, ns]
        Derivatives of the circulation of the panels of each wake.

    Returns
    -------
    properties : list of PanelProperties
        Panel properties of each surface.
    dproperties : list of PanelProperties
        Derivatives of the panel properties of each surface, with the five
        derivatives on the leading axis of every field.
    """
    if wake_gammas is not None:
        wake_gammas = [None if g is None else seed(g, dg)
            for g, dg in zip(wake_gammas, wake_dgammas)]
    properties = _near_field_properties(surfaces, seed(gamma, dgamma), reference, freestream,
        symmetric, surface_id, trailing_vortices, xhat, wakes, wake_gammas, wake_finite_core,
        wake_attached, None)
    return _unseed(properties, 0), _unseed(properties, slice(1, None))

def _surface_forces(surface, props, rref):
    # sum of the segment forces and moments of a surface
    cf = np.sum(props.cfb + props.cfl + props.cfr, axis=(-3, -2))
    cm = np.sum(
        compute_cross(surface.top_center() - rref, props.cfb)
        + compute_cross(surface.left_center() - rref, props.cfl)
        + compute_cross(surface.right_center() - rref, props.cfr),
        axis=(-3, -2),
    )
    return cf, cm

def _body_forces(surfaces, properties, reference, freestream, symmetric, frame):
    nseed = properties[0].cfb.shape[0]
    derivatives = nseed > 1

    CF = np.zeros((nseed, 3), dtype=properties[0].cfb.dtype)
    CM = np.zeros((nseed, 3), dtype=properties[0].cfb.dtype)
    for isurf, surface in enumerate(surfaces):
        cf, cm = _surface_forces(surface, properties[isurf], reference.r)

        # the mirror image doubles the longitudinal components and cancels the
        # lateral ones
        if symmetric[isurf]:
            cf = 2. * cf * np.array([1., 0., 1.])
            cm = 2. * cm * np.array([0., 1., 0.])

        CF += cf
        CM += cm

    CM = CM / reference.lengths

    # the moment coefficients use different reference lengths, so the rotation
    # is applied to the dimensional moments
    R = seeded_rotation(freestream, frame, derivatives)
    CF = seeded_matvec(R, CF)
    CM = seeded_matvec(R, CM * reference.lengths) / reference.lengths

    return CF, CM

def _seed_properties(properties, dproperties=None):
    if dproperties is None:
        return [PanelProperties(*[seed(field) for field in props]) for props in properties]
    return [PanelProperties(*[seed(field, dfield) for field, dfield in zip(props, dprops)])
        for props, dprops in zip(properties, dproperties)]

def body_forces(surfaces, properties, reference, freestream, symmetric, frame='body'):
    """
    Force and moment coefficients of the whole configuration.

    Parameters
    ----------
    surfaces : list of Horseshoe or Ring
        Lifting surfaces.
    properties : list of PanelProperties
        Panel properties of each surface.
    reference : Reference
        Reference quantities.
    freestream : Freestream
        Freestream state.
    symmetric : list of bool
        Whether each surface is mirrored across y = 0.
    frame : str
        Frame of the coefficients: 'body', 'stability' or 'wind'.

    Returns
    -------
    CF[3] : numpy array
        Force coefficients.
    CM[3] : numpy array
        Moment coefficients (rolling, pitching and yawing).
    """
    CF, CM = _body_forces(surfaces, _seed_properties(properties), reference, freestream,
        symmetric, frame)
    return CF[0], CM[0]

def body_forces_derivatives(surfaces, properties, dproperties, reference, freestream, symmetric,
                            frame='body'):
    """
    Force and moment coefficients of the whole configuration and their
    derivatives with respect to alpha, beta, p, q and r.

    Returns
    -------
    CF[3] : numpy array
        Force coefficients.
    CM[3] : numpy array
        Moment coefficients.
    dCF[5, 3] : numpy array
        Derivatives of the force coefficients.
    dCM[5, 3] : numpy array
        Derivatives of the moment coefficients.
    """
    CF, CM = _body_forces(surfaces, _seed_properties(properties, dproperties), reference,
        freestream, symmetric, frame)
    return CF[0], CM[0], CF[1:], CM[1:]

def body_forces_history(surfaces, property_history, reference, freestream, symmetric,
                        frame='body'):
    """
    Force and moment coefficients at every step of an unsteady analysis.

    Returns
    -------
    CF[num_steps, 3] : numpy array
        Force coefficients.
    CM[num_steps, 3] : numpy array
        Moment coefficients.
    """
    num_steps = len(property_history)
    CF = np.zeros((num_steps, 3))
    CM = np.zeros((num_steps, 3))
    for it, properties in enumerate(property_history):
        CF[it], CM[it] = body_forces(surfaces, properties, reference, freestream, symmetric, frame)
    return CF, CM

def lifting_line_coefficients(surfaces, properties, reference, r, c):
    """
    Force and moment coefficients per unit span along lifting lines.

    The forces of each chordwise strip of panels are summed and
    non-dimensionalized by the strip's span and mean chord.  Moments are taken
    about the middle of the lifting line segment of the strip.

    Parameters
    ----------
    surfaces : list of Horseshoe or Ring
        Lifting surfaces.
    properties : list of PanelProperties
        Panel properties of each surface.
    reference : Reference
        Reference quantities.
    r : list of numpy array[ns + 1, 3]
        Lifting line points of each surface.
    c : list of numpy array[ns + 1]
        Chord length at each lifting line point.

    Returns
    -------
    cf : list of numpy array[ns, 3]
        Force coefficients per unit span of each strip, in the body frame.
    cm : list of numpy array[ns, 3]
        Moment coefficients per unit span of each strip, in the body frame.
    """
    cf = []
    cm = []
    for isurf, surface in enumerate(surfaces):
        props = properties[isurf]
        ri = np.asarray(r[isurf], dtype=float)
        ci = np.asarray(c[isurf], dtype=float)

        rc = 0.5 * (ri[:-1] + ri[1:])
        dr = ri[1:] - ri[:-1]
        ds = (dr[:, 1] ** 2 + dr[:, 2] ** 2) ** 0.5
        cavg = 0.5 * (ci[:-1] + ci[1:])

        cf_i = np.sum(props.cfb + props.cfl + props.cfr, axis=0)
        cm_i = np.sum(
            compute_cross(surface.top_center() - rc, props.cfb)
            + compute_cross(surface.left_center() - rc, props.cfl)
            + compute_cross(surface.right_center() - rc, props.cfr),
            axis=0,
        )

        cf.append(cf_i * (reference.S / (ds * cavg))[:, np.newaxis])
        cm.append(cm_i * (reference.S / (ds * cavg ** 2))[:, np.newaxis])

    return cf, cm
