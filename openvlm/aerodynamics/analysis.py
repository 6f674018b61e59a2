"""
Drivers running the whole vortex lattice pipeline for steady and unsteady
analyses.
"""
import logging

import numpy as np

from openvlm.aerodynamics.system import System
from openvlm.aerodynamics.wake import convect_wake, empty_wake, shed_wake, truncate_wake, \
    wake_vertex_velocities
from openvlm.utils.constants import XHAT
from openvlm.utils.exceptions import ConfigurationError


logger = logging.getLogger(__name__)

def steady_analysis(surfaces, reference, freestream, symmetric=False, surface_id=None,
                    trailing_vortices=True, xhat=XHAT, wakes=None, wake_finite_core=True,
                    derivatives=True, near_field_analysis=True):
    """
    Steady vortex lattice analysis.

    Parameters
    ----------
    surfaces : list of Horseshoe or Ring
        Lifting surfaces.
    reference : Reference
        Reference quantities.
    freestream : Freestream
        Freestream state.
    symmetric : bool or list of bool
        Whether each surface is mirrored across y = 0.
    surface_id : list of int or None
        Body identifier of each surface; surfaces with different identifiers
        interact through the finite core kernels.  Defaults to a distinct
        identifier per surface.
    trailing_vortices : bool or list of bool
        Whether each surface (or its wake) sheds semi-infinite trailing
        vortices.
    xhat : numpy array[3]
        Direction of the trailing vortices.
    wakes : list of Wake or None
        Optional wake lattice of each surface of vortex rings.  In a steady
        analysis every wake panel carries the circulation of the trailing-edge
        panel it trails.
    wake_finite_core : bool or list of bool
        Whether each wake is evaluated with the finite core kernels.
    derivatives : bool
        If True, also compute the derivatives with respect to alpha, beta, p,
        q and r.
    near_field_analysis : bool
        If True, compute the near-field panel properties.

    Returns
    -------
    system : System
        The solved system.
    """
    system = System(surfaces, reference, freestream, symmetric=symmetric, surface_id=surface_id,
        trailing_vortices=trailing_vortices, xhat=xhat, wake_finite_core=wake_finite_core)
    if wakes is not None:
        system.set_wakes(wakes)

    system.update_influence_coefficients()
    system.update_normal_velocities(derivatives=derivatives)
    system.update_circulation()
    if near_field_analysis:
        system.update_near_field_properties()

    return system

def unsteady_analysis(surfaces, reference, freestream, dt, symmetric=False, surface_id=None,
                      trailing_vortices=False, xhat=XHAT, wake_finite_core=True, free_wake=True,
                      nwake=None, initial_wakes=None):
    """
    Unsteady vortex lattice analysis, marching a wake shed from the trailing
    edge of every surface.

    At every time step the wake vertices are convected with the velocities
    found at the end of the previous step, a new row of wake panels is shed
    from the trailing edge, and the circulation is solved with the
    trailing-edge circulation carried by the new row.

    Parameters
    ----------
    surfaces : list of Ring
        Lifting surfaces.
    reference : Reference
        Reference quantities.
    freestream : Freestream or list of Freestream
        Freestream state, or the freestream state at each time step.
    dt : numpy array[num_steps]
        Time steps.
    trailing_vortices : bool or list of bool
        Whether the last row of each wake sheds semi-infinite trailing
        vortices.  By default the last row is closed by the starting vortex.
    free_wake : bool
        If True, the wake vertices move with the local velocity, otherwise
        with the external velocity only.
    nwake : int or None
        Maximum number of rows kept in each wake.
    initial_wakes : list of Wake or None
        Wake of each surface at the start of the analysis.  Defaults to empty
        wakes.

    Returns
    -------
    system : System
        The system at the end of the analysis.
    property_history : list of list of PanelProperties
        Panel properties of each surface at every time step.
    wake_history : list of list of Wake
        Wake of each surface at every time step.
    """
    dt = np.atleast_1d(np.asarray(dt, dtype=float))
    if np.any(dt <= 0.):
        raise ConfigurationError('Time steps must be positive')

    if isinstance(freestream, (list, tuple)):
        freestreams = list(freestream)
        if len(freestreams) != len(dt):
            raise ConfigurationError('{} freestream states given for {} time steps'.format(
                len(freestreams), len(dt)))
    else:
        freestreams = [freestream] * len(dt)

    system = System(surfaces, reference, freestreams[0], symmetric=symmetric,
        surface_id=surface_id, trailing_vortices=trailing_vortices, xhat=xhat,
        wake_finite_core=wake_finite_core, free_wake=free_wake)

    if initial_wakes is None:
        wakes = [empty_wake(surface) for surface in system.surfaces]
    else:
        wakes = [wake.copy() for wake in initial_wakes]
    gammas = [np.zeros(surface.size) for surface in system.surfaces]

    property_history = []
    wake_history = []
    for it, fs in enumerate(freestreams):
        velocities = wake_vertex_velocities(system.surfaces, gammas, wakes, reference, fs,
            system.symmetric, system.trailing_vortices, system.xhat,
            free_wake=system.options['free_wake'])

        wakes = [shed_wake(convect_wake(wake, V, dt[it]), surface)
            for wake, V, surface in zip(wakes, velocities, system.surfaces)]
        if nwake is not None:
            wakes = [truncate_wake(wake, nwake) for wake in wakes]

        system.set_freestream(fs)
        system.set_wakes(wakes, unsteady=True)
        system.update_influence_coefficients()
        system.update_normal_velocities()
        system.update_circulation()
        system.update_circulation_rate(dt[it])
        system.update_near_field_properties()

        property_history.append(system.properties)
        wake_history.append([wake.copy() for wake in wakes])
        gammas = [gamma.ravel() for gamma in system.surface_gammas()]

        logger.info('Time step %d of %d: %d wake rows', it + 1, len(dt), wakes[0].nw)

    return system, property_history, wake_history
