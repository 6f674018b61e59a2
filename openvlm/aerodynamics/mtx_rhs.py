import numpy as np

from openvlm.aerodynamics.freestream import external_velocity


def normal_velocities(surfaces, reference, freestream, additional_velocities=None,
                      derivatives=False):
    """
    Right-hand side of the AIC linear system: minus the normal component of the
    external velocity at every control point.

    Parameters
    ----------
    surfaces : list of Horseshoe or Ring
        Lifting surfaces.
    reference : Reference
        Reference quantities (the moment reference point is the center of
        rotation).
    freestream : Freestream
        Freestream state.
    additional_velocities : list of numpy array[nc * ns, 3] or None
        Known velocities at the control points of each surface that do not
        depend on the freestream, e.g. the velocity induced by a wake.
    derivatives : bool
        If True, also compute the derivatives with respect to alpha, beta, p,
        q and r.

    Returns
    -------
    w[1, system_size] or w[6, system_size] : numpy array
        Seeded right-hand side.
    """
    w = []
    for isurf, surface in enumerate(surfaces):
        points = surface.rcp.reshape(-1, 3)
        normals = surface.ncp.reshape(-1, 3)

        V = external_velocity(freestream, points, reference.r, derivatives=derivatives)
        if additional_velocities is not None and additional_velocities[isurf] is not None:
            V[0] += additional_velocities[isurf]

        w.append(-np.einsum('...ik,ik->...i', V, normals))

    return np.concatenate(w, axis=-1)

def normal_velocities_derivatives(surfaces, reference, freestream, additional_velocities=None):
    """
    Right-hand side of the AIC linear system and its derivatives.

    Returns
    -------
    w[system_size] : numpy array
        Right-hand side.
    dw[5, system_size] : numpy array
        Derivatives of the right-hand side with respect to alpha, beta, p, q
        and r.
    """
    w = normal_velocities(surfaces, reference, freestream, additional_velocities,
        derivatives=True)
    return w[0], w[1:]
