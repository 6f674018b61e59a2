"""
The System aggregate: lifting surfaces, their options and the results of each
stage of a vortex lattice analysis.

The stages run in a fixed order::

    update_influence_coefficients -> update_normal_velocities
        -> update_circulation -> update_near_field_properties

and the system keeps track of which of them are current.  Requesting a stage
before the stages it depends on raises a StaleStateError; changing the
geometry, the wakes, the options, the reference or the freestream invalidates
every stage that depends on them.  The options, the reference and the
freestream each stage ran with are recorded, so changes made in place (for
example through ``system.options``) are caught as well.
"""
import logging
from enum import IntEnum

import numpy as np
from openmdao.api import OptionsDictionary

from openvlm.aerodynamics.assemble_aic import influence_coefficients, surface_offsets, \
    trailing_edge_coefficients, trailing_edge_columns
from openvlm.aerodynamics.forces import body_forces, body_forces_derivatives, \
    lifting_line_coefficients, near_field_properties, near_field_properties_derivatives
from openvlm.aerodynamics.mtx_rhs import normal_velocities
from openvlm.aerodynamics.solve_matrix import factorize, solve_circulation
from openvlm.aerodynamics.stability import body_derivatives, stability_derivatives
from openvlm.aerodynamics.trefftz import far_field_drag, far_field_drag_derivatives
from openvlm.aerodynamics.wake import trailing_edge_vertices, wake_induced_velocity
from openvlm.utils.constants import XHAT
from openvlm.utils.exceptions import ConfigurationError, StaleStateError


logger = logging.getLogger(__name__)

# options read by the influence coefficients and the near-field properties
STAGE_OPTIONS = ('symmetric', 'surface_id', 'trailing_vortices', 'wake_finite_core', 'xhat')


def _frozen(value):
    # copy of an option or freestream value that compares by value
    if value is None or isinstance(value, (bool, int, float)):
        return value
    return tuple(np.asarray(value).ravel().tolist())


class AnalysisState(IntEnum):
    """
    Stages of the analysis pipeline, in the order they become current.
    """
    UNBUILT = 0
    GEOMETRY_LOADED = 1
    INFLUENCE_COEFFICIENTS_CURRENT = 2
    NORMAL_VELOCITIES_CURRENT = 3
    CIRCULATION_CURRENT = 4
    NEAR_FIELD_CURRENT = 5


class System(object):
    """
    Vortex lattice system.

    Parameters
    ----------
    surfaces : list of Horseshoe or Ring
        Lifting surfaces.
    reference : Reference
        Reference quantities.
    freestream : Freestream
        Freestream state.
    **options
        Values for the entries of ``self.options``.
    """

    def __init__(self, surfaces=None, reference=None, freestream=None, **options):
        self.options = OptionsDictionary()
        self.options.declare('symmetric', default=False, types=(bool, list, tuple),
            desc='Whether each surface is mirrored across y = 0')
        self.options.declare('surface_id', default=None, types=(list, tuple), allow_none=True,
            desc='Body identifier of each surface; defaults to a distinct identifier per surface')
        self.options.declare('trailing_vortices', default=True, types=(bool, list, tuple),
            desc='Whether each surface sheds semi-infinite trailing vortices')
        self.options.declare('wake_finite_core', default=True, types=(bool, list, tuple),
            desc='Whether each wake is evaluated with the finite core kernels')
        self.options.declare('xhat', default=XHAT, types=(list, tuple, np.ndarray),
            desc='Direction of the trailing vortices')
        self.options.declare('free_wake', default=True, types=bool,
            desc='Whether the wake vertices move with the local velocity (unsteady analyses)')
        self.options.update(options)

        self.state = AnalysisState.UNBUILT
        self.surfaces = None
        self.reference = reference
        self.freestream = freestream
        self.wakes = None
        self.unsteady = False
        self.derivatives = False

        self._options_used = None
        self._freestream_used = None

        self._surface_aic = None
        self.aic = None
        self._lu = None
        self._w = None
        self._gamma = None
        self._previous_gamma = None
        self.gamma_dot = None
        self._properties = None

        if surfaces is not None:
            self.update_surfaces(surfaces)

    def _per_surface(self, name):
        value = self.options[name]
        nsurf = len(self.surfaces)
        if isinstance(value, bool):
            return [value] * nsurf
        value = list(value)
        if len(value) != nsurf:
            raise ConfigurationError('{} has {} entries for {} surfaces'.format(
                name, len(value), nsurf))
        return value

    @property
    def symmetric(self):
        return self._per_surface('symmetric')

    @property
    def surface_id(self):
        if self.options['surface_id'] is None:
            return list(range(len(self.surfaces)))
        return self._per_surface('surface_id')

    @property
    def trailing_vortices(self):
        return self._per_surface('trailing_vortices')

    @property
    def wake_finite_core(self):
        return self._per_surface('wake_finite_core')

    @property
    def xhat(self):
        return np.asarray(self.options['xhat'], dtype=float)

    @property
    def wake_attached(self):
        if self.wakes is None:
            return [False] * len(self.surfaces)
        return [wake is not None for wake in self.wakes]

    @property
    def system_size(self):
        return surface_offsets(self.surfaces)[-1]

    def _option_values(self):
        return tuple(_frozen(self.options[name]) for name in STAGE_OPTIONS)

    def _freestream_values(self):
        fs, ref = self.freestream, self.reference
        if fs is None or ref is None:
            return None
        return (_frozen(fs.alpha), _frozen(fs.beta), _frozen(fs.omega), fs.additional_velocity,
            ref.S, ref.c, ref.b, _frozen(ref.r))

    def _check_inputs(self):
        # drop the stages computed with options or freestream values that have
        # since been changed in place
        if self.state >= AnalysisState.INFLUENCE_COEFFICIENTS_CURRENT \
                and self._option_values() != self._options_used:
            logger.debug('Options changed since the influence coefficients were computed')
            self._invalidate(AnalysisState.GEOMETRY_LOADED)
        if self.state >= AnalysisState.NORMAL_VELOCITIES_CURRENT \
                and self._freestream_values() != self._freestream_used:
            logger.debug('Freestream or reference changed since the normal velocities were '
                'computed')
            self._invalidate(AnalysisState.INFLUENCE_COEFFICIENTS_CURRENT)

    def _require(self, state, action):
        self._check_inputs()
        if self.state < state:
            raise StaleStateError('Cannot {}: the system is at stage {}, {} is required'.format(
                action, self.state.name, state.name))

    def _invalidate(self, state):
        self.state = AnalysisState(min(self.state, state))

    def update_surfaces(self, surfaces):
        """
        Load new surface geometry; every stage of the analysis must be rerun.
        """
        self.surfaces = list(surfaces)
        if not self.surfaces:
            raise ConfigurationError('At least one surface is required')

        self._check_options()

        self._surface_aic = None
        self._gamma = None
        self._previous_gamma = None
        self.gamma_dot = None
        # wakes start at the trailing edge of the old geometry
        self.wakes = None
        self.unsteady = False
        self.state = AnalysisState.GEOMETRY_LOADED
        logger.debug('Loaded %d surfaces with %d panels', len(self.surfaces), self.system_size)

    def _check_options(self):
        # check the per-surface options before any stage runs
        for name in ('symmetric', 'surface_id', 'trailing_vortices', 'wake_finite_core'):
            if self.options[name] is not None:
                self._per_surface(name)

    def set_options(self, **options):
        """
        Change options; every stage of the analysis must be rerun.
        """
        self.options.update(options)
        self._invalidate(AnalysisState.GEOMETRY_LOADED)
        if self.surfaces is not None:
            self._check_options()

    def set_wakes(self, wakes, unsteady=False):
        """
        Attach a wake (or None) to each surface.

        Parameters
        ----------
        wakes : list of Wake or None
            Wake of each surface.
        unsteady : bool
            If False, the circulation of every wake panel equals the
            circulation of the trailing-edge panel it trails.  If True, only
            the first row of the wake does; the other rows keep the
            circulation they were shed with.
        """
        self._require(AnalysisState.GEOMETRY_LOADED, 'attach wakes')
        if wakes is not None:
            wakes = list(wakes)
            if len(wakes) != len(self.surfaces):
                raise ConfigurationError('{} wakes given for {} surfaces'.format(
                    len(wakes), len(self.surfaces)))
            for surface, wake in zip(self.surfaces, wakes):
                if wake is not None:
                    # raises for horseshoe surfaces
                    te = trailing_edge_vertices(surface)
                    if wake.shape[1] != surface.shape[1]:
                        raise ConfigurationError('Wake with {} spanwise panels attached to a '
                            'surface with {}'.format(wake.shape[1], surface.shape[1]))
                    if not np.allclose(wake.vertices[0], te):
                        raise ConfigurationError('Wake does not start at the trailing edge of '
                            'its surface')
        self.wakes = wakes
        self.unsteady = unsteady
        self._invalidate(AnalysisState.GEOMETRY_LOADED)

    def set_reference(self, reference):
        self.reference = reference
        self._invalidate(AnalysisState.INFLUENCE_COEFFICIENTS_CURRENT)

    def set_freestream(self, freestream):
        self.freestream = freestream
        self._invalidate(AnalysisState.INFLUENCE_COEFFICIENTS_CURRENT)

    def update_influence_coefficients(self):
        """
        Assemble and factorize the AIC matrix.

        The surface-to-surface part of the matrix only depends on the surface
        geometry and is kept between calls; the contribution of the wakes is
        added on top of it.
        """
        self._require(AnalysisState.GEOMETRY_LOADED, 'update the influence coefficients')

        wake_attached = self.wake_attached
        options = self._option_values()
        key = (tuple(wake_attached), options)
        if self._surface_aic is None or self._surface_aic[0] != key:
            aic = influence_coefficients(self.surfaces, self.symmetric, self.surface_id,
                self.trailing_vortices, self.xhat, wake_attached)
            self._surface_aic = (key, aic)

        self.aic = self._surface_aic[1]
        if any(wake_attached):
            rows = slice(0, 1) if self.unsteady else slice(None)
            self.aic = self.aic + trailing_edge_coefficients(self.surfaces, self.wakes,
                self.symmetric, self.surface_id, self.wake_finite_core, self.trailing_vortices,
                self.xhat, rows)

        self._lu = factorize(self.aic)
        self._options_used = options
        self.state = AnalysisState.INFLUENCE_COEFFICIENTS_CURRENT
        logger.debug('Influence coefficients current')

    def _wake_velocities(self):
        # velocity induced at the control points by the wake rows that are not
        # attached to the trailing edge (unsteady analyses only)
        if not (self.unsteady and any(self.wake_attached)):
            return None

        symmetric = self.symmetric
        surface_id = self.surface_id
        wake_finite_core = self.wake_finite_core
        trailing_vortices = self.trailing_vortices

        velocities = []
        for isurf, surface in enumerate(self.surfaces):
            points = surface.rcp.reshape(-1, 3)
            V = np.zeros(points.shape)
            for jsurf, wake in enumerate(self.wakes):
                if wake is None or wake.nw < 2:
                    continue
                V += wake_induced_velocity(points, wake,
                    finite_core=wake_finite_core[jsurf] or surface_id[isurf] != surface_id[jsurf],
                    symmetric=symmetric[jsurf], trailing_vortices=trailing_vortices[jsurf],
                    xhat=self.xhat, rows=slice(1, None))
            velocities.append(V)
        return velocities

    def update_normal_velocities(self, derivatives=False):
        """
        Compute the right-hand side of the AIC linear system.

        Parameters
        ----------
        derivatives : bool
            If True, also compute the derivatives with respect to alpha, beta,
            p, q and r, which makes the derivative outputs available
            downstream.
        """
        self._require(AnalysisState.INFLUENCE_COEFFICIENTS_CURRENT, 'update the normal velocities')
        if self.freestream is None or self.reference is None:
            raise ConfigurationError('A freestream and a reference are required')
        if derivatives and self.unsteady:
            raise ConfigurationError('Derivatives are not available for unsteady analyses')

        self._w = normal_velocities(self.surfaces, self.reference, self.freestream,
            self._wake_velocities(), derivatives=derivatives)
        self.derivatives = derivatives
        self._freestream_used = self._freestream_values()
        self.state = AnalysisState.NORMAL_VELOCITIES_CURRENT
        logger.debug('Normal velocities current (derivatives: %s)', derivatives)

    def update_circulation(self):
        """
        Solve for the panel circulations (and their derivatives).
        """
        self._require(AnalysisState.NORMAL_VELOCITIES_CURRENT, 'update the circulation')

        if self._gamma is not None and self._gamma.shape[-1] == self.system_size:
            self._previous_gamma = self._gamma[0]
        self._gamma = solve_circulation(self._lu, self._w)

        # the first wake row carries the circulation of the trailing edge
        if self.unsteady and self.wakes is not None:
            for wake, gamma_te in zip(self.wakes, self._trailing_edge_gammas()):
                if wake is not None and wake.nw > 0:
                    wake.gamma[0] = gamma_te[0]

        self.state = AnalysisState.CIRCULATION_CURRENT
        logger.debug('Circulation current')

    def update_circulation_rate(self, dt):
        """
        Rate of change of the circulation since the previous solution, used in
        the unsteady near-field forces.
        """
        self._require(AnalysisState.CIRCULATION_CURRENT, 'update the circulation rate')
        if dt <= 0.:
            raise ConfigurationError('The time step must be positive, got {}'.format(dt))
        if self._previous_gamma is None:
            previous = np.zeros(self.system_size)
        else:
            previous = self._previous_gamma
        self.gamma_dot = (self._gamma[0] - previous) / dt
        self._invalidate(AnalysisState.CIRCULATION_CURRENT)

    def _trailing_edge_gammas(self):
        # seeded circulation of the trailing-edge panels of each surface
        offsets = surface_offsets(self.surfaces)
        gammas = []
        for isurf, surface in enumerate(self.surfaces):
            if self.wakes[isurf] is None:
                gammas.append(None)
            else:
                cols = offsets[isurf] + trailing_edge_columns(surface)
                gammas.append(self._gamma[:, cols])
        return gammas

    def _wake_gammas(self):
        # seeded circulation of the panels of each wake
        gammas = []
        for wake, gamma_te in zip(self.wakes, self._trailing_edge_gammas()):
            if wake is None:
                gammas.append(None)
            elif self.unsteady:
                gammas.append(wake.gamma[np.newaxis])
            else:
                shape = (gamma_te.shape[0], wake.nw, gamma_te.shape[1])
                gammas.append(np.broadcast_to(gamma_te[:, np.newaxis, :], shape))
        return gammas

    def update_near_field_properties(self):
        """
        Compute the near-field properties of every panel.
        """
        self._require(AnalysisState.CIRCULATION_CURRENT, 'update the near-field properties')

        options = dict(symmetric=self.symmetric, surface_id=self.surface_id,
            trailing_vortices=self.trailing_vortices, xhat=self.xhat, wakes=self.wakes,
            wake_finite_core=self.wake_finite_core, wake_attached=self.wake_attached)
        wake_gammas = wake_dgammas = None
        if self.wakes is not None:
            seeded = self._wake_gammas()
            wake_gammas = [None if g is None else g[0] for g in seeded]
            wake_dgammas = [None if g is None else g[1:] for g in seeded]

        if self.derivatives:
            self._properties = near_field_properties_derivatives(self.surfaces, self._gamma[0],
                self._gamma[1:], self.reference, self.freestream, wake_gammas=wake_gammas,
                wake_dgammas=wake_dgammas, **options)
        else:
            gamma_dot = self.gamma_dot if self.unsteady else None
            properties = near_field_properties(self.surfaces, self._gamma[0], self.reference,
                self.freestream, wake_gammas=wake_gammas, gamma_dot=gamma_dot, **options)
            self._properties = (properties, None)

        self.state = AnalysisState.NEAR_FIELD_CURRENT
        logger.debug('Near-field properties current')

    def _require_derivatives(self, action):
        if not self.derivatives:
            raise StaleStateError('Cannot {}: the normal velocities were computed without '
                'derivatives'.format(action))

    @property
    def gamma(self):
        """
        Panel circulations.
        """
        self._require(AnalysisState.CIRCULATION_CURRENT, 'get the circulation')
        return self._gamma[0]

    @property
    def dgamma(self):
        """
        Derivatives of the panel circulations with respect to alpha, beta, p,
        q and r.
        """
        self._require(AnalysisState.CIRCULATION_CURRENT, 'get the circulation derivatives')
        self._require_derivatives('get the circulation derivatives')
        return self._gamma[1:]

    def surface_gammas(self):
        """
        Panel circulations of each surface, with shape (nc, ns).
        """
        gamma = self.gamma
        offsets = surface_offsets(self.surfaces)
        return [gamma[offsets[isurf]:offsets[isurf + 1]].reshape(surface.shape)
            for isurf, surface in enumerate(self.surfaces)]

    @property
    def properties(self):
        self._require(AnalysisState.NEAR_FIELD_CURRENT, 'get the panel properties')
        return self._properties[0]

    @property
    def dproperties(self):
        self._require(AnalysisState.NEAR_FIELD_CURRENT, 'get the panel property derivatives')
        self._require_derivatives('get the panel property derivatives')
        return self._properties[1]

    def body_forces(self, frame='body'):
        """
        Force and moment coefficients in the given frame ('body', 'stability'
        or 'wind').
        """
        return body_forces(self.surfaces, self.properties, self.reference, self.freestream,
            self.symmetric, frame)

    def body_forces_derivatives(self, frame='body'):
        """
        Force and moment coefficients and their derivatives with respect to
        alpha, beta, p, q and r, in the given frame.
        """
        return body_forces_derivatives(self.surfaces, self.properties, self.dproperties,
            self.reference, self.freestream, self.symmetric, frame)

    def far_field_drag(self):
        self._require(AnalysisState.CIRCULATION_CURRENT, 'compute the far-field drag')
        return far_field_drag(self.surfaces, self._gamma[0], self.reference, self.freestream,
            self.symmetric)

    def far_field_drag_derivatives(self):
        return far_field_drag_derivatives(self.surfaces, self.gamma, self.dgamma, self.reference,
            self.freestream, self.symmetric)

    def stability_derivatives(self):
        return stability_derivatives(self.surfaces, self.properties, self.dproperties,
            self.reference, self.freestream, self.symmetric)

    def body_derivatives(self):
        return body_derivatives(self.surfaces, self.properties, self.dproperties,
            self.reference, self.freestream, self.symmetric)

    def lifting_line_coefficients(self, r, c):
        """
        Force and moment coefficients per unit span along the lifting line
        of each surface, see ``lifting_line_geometry``.
        """
        return lifting_line_coefficients(self.surfaces, self.properties, self.reference, r, c)
