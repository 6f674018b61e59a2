"""
Stability derivatives.

Both functions start from the force and moment coefficients and their
derivatives with respect to alpha, beta and the body rotation rates (p, q, r)
normalized by the freestream velocity, as returned by
``body_forces_derivatives``.
"""
import numpy as np

from openvlm.aerodynamics.forces import body_forces_derivatives
from openvlm.aerodynamics.freestream import body_to_stability_alpha, freestream_velocity
from openvlm.utils.constants import DERIVATIVE_NAMES, VINF


def _rate_scaling(reference):
    # derivatives with respect to the non-dimensional rates p b/2V, q c/2V
    # and r b/2V
    return 2. * VINF / reference.lengths

def stability_derivatives(surfaces, properties, dproperties, reference, freestream, symmetric):
    """
    Derivatives of the stability-frame force and moment coefficients with
    respect to alpha, beta and the non-dimensional stability-axis rotation
    rates.

    Parameters
    ----------
    surfaces : list of Horseshoe or Ring
        Lifting surfaces.
    properties : list of PanelProperties
        Panel properties of each surface.
    dproperties : list of PanelProperties
        Derivatives of the panel properties of each surface.
    reference : Reference
        Reference quantities.
    freestream : Freestream
        Freestream state.
    symmetric : list of bool
        Whether each surface is mirrored across y = 0.

    Returns
    -------
    dCF : dict of numpy array[3]
        Derivatives of the stability-frame force coefficients (CD, CY, CL),
        keyed by 'alpha', 'beta', 'p', 'q' and 'r'.
    dCM : dict of numpy array[3]
        Derivatives of the stability-frame moment coefficients (Cl, Cm, Cn),
        with the same keys.
    """
    CF, CM, dCF, dCM = body_forces_derivatives(surfaces, properties, dproperties, reference,
        freestream, symmetric, frame='stability')

    # stability-axis rates map to body-axis rates through the rows of the
    # body to stability rotation
    R, R_a = body_to_stability_alpha(freestream)
    CF_rates = np.dot(R, dCF[2:])
    CM_rates = np.dot(R, dCM[2:])

    # at constant stability-axis rates the body-axis rates vary with alpha
    omega_a = np.dot(R_a.T, np.dot(R, freestream.omega))
    CF_a = dCF[0] + np.dot(omega_a, dCF[2:])
    CM_a = dCM[0] + np.dot(omega_a, dCM[2:])

    scaling = _rate_scaling(reference)
    derivs_CF = {'alpha': CF_a, 'beta': dCF[1]}
    derivs_CM = {'alpha': CM_a, 'beta': dCM[1]}
    for i, name in enumerate(DERIVATIVE_NAMES[2:]):
        derivs_CF[name] = CF_rates[i] * scaling[i]
        derivs_CM[name] = CM_rates[i] * scaling[i]

    return derivs_CF, derivs_CM

def body_derivatives(surfaces, properties, dproperties, reference, freestream, symmetric):
    """
    Derivatives of the body-frame force and moment coefficients with respect
    to the body-frame velocity components (u, v, w), normalized by the
    freestream velocity, and the non-dimensional body-axis rotation rates.

    Returns
    -------
    dCF : dict of numpy array[3]
        Derivatives of the body-frame force coefficients, keyed by 'u', 'v',
        'w', 'p', 'q' and 'r'.
    dCM : dict of numpy array[3]
        Derivatives of the body-frame moment coefficients, with the same keys.
    """
    CF, CM, dCF, dCM = body_forces_derivatives(surfaces, properties, dproperties, reference,
        freestream, symmetric, frame='body')

    u, v, w = freestream_velocity(freestream)
    uw = u ** 2 + w ** 2
    V2 = uw + v ** 2

    # alpha = atan(w / u), beta = -asin(v / V)
    alpha_uvw = np.array([-w / uw, 0., u / uw])
    beta_uvw = np.array([v * u / (V2 * uw ** 0.5), -uw ** 0.5 / V2, v * w / (V2 * uw ** 0.5)])

    scaling = _rate_scaling(reference)
    derivs_CF = {}
    derivs_CM = {}
    for i, name in enumerate(('u', 'v', 'w')):
        derivs_CF[name] = dCF[0] * alpha_uvw[i] + dCF[1] * beta_uvw[i]
        derivs_CM[name] = dCM[0] * alpha_uvw[i] + dCM[1] * beta_uvw[i]
    for i, name in enumerate(DERIVATIVE_NAMES[2:]):
        derivs_CF[name] = dCF[2 + i] * scaling[i]
        derivs_CM[name] = dCM[2 + i] * scaling[i]

    return derivs_CF, derivs_CM
