import numpy as np

from openmdao.api import ExplicitComponent, AnalysisError

from openvlm.aerodynamics.freestream import Freestream
from openvlm.aerodynamics.system import System
from openvlm.utils.constants import XHAT
from openvlm.utils.exceptions import ConfigurationError


class VLMAnalysis(ExplicitComponent):
    """
    Steady vortex lattice analysis of a fixed set of lifting surfaces.

    The geometry does not change between evaluations, so the AIC matrix is
    assembled and factorized once in setup.  Each evaluation only recomputes
    the right-hand side, the circulation and the forces, together with their
    analytic derivatives with respect to the freestream variables.

    Parameters
    ----------
    alpha : float
        Angle of attack (rad).
    beta : float
        Sideslip angle (rad).
    omega[3] : numpy array
        Body rotation rates (p, q, r) divided by the freestream velocity.

    Returns
    -------
    CF[3] : numpy array
        Force coefficients in the selected frame.
    CM[3] : numpy array
        Moment coefficients in the selected frame.
    CDi : float
        Induced drag coefficient from the Trefftz plane.
    """

    def initialize(self):
        self.options.declare('surfaces', types=list)
        self.options.declare('reference')
        self.options.declare('symmetric', default=False, types=(bool, list))
        self.options.declare('surface_id', default=None, types=list, allow_none=True)
        self.options.declare('frame', default='body', values=['body', 'stability', 'wind'])
        self.options.declare('trailing_vortices', default=True, types=(bool, list))
        self.options.declare('xhat', default=XHAT, types=(list, tuple, np.ndarray))

    def setup(self):
        self.system = System(self.options['surfaces'], self.options['reference'],
            symmetric=self.options['symmetric'], surface_id=self.options['surface_id'],
            trailing_vortices=self.options['trailing_vortices'], xhat=self.options['xhat'])
        self.system.update_influence_coefficients()

        self.add_input('alpha', val=0., units='rad')
        self.add_input('beta', val=0., units='rad')
        self.add_input('omega', val=np.zeros(3))

        self.add_output('CF', val=np.zeros(3))
        self.add_output('CM', val=np.zeros(3))
        self.add_output('CDi', val=0.)

        self.declare_partials('*', '*')

        self._cache_key = None

    def _analyze(self, inputs):
        key = (float(inputs['alpha'][0]), float(inputs['beta'][0])) + tuple(inputs['omega'])
        if key == self._cache_key:
            return self._results

        system = self.system
        system.set_freestream(Freestream(key[0], key[1], np.array(key[2:])))
        try:
            system.update_normal_velocities(derivatives=True)
            system.update_circulation()
            system.update_near_field_properties()
        except ConfigurationError:
            raise AnalysisError

        frame = self.options['frame']
        self._results = system.body_forces_derivatives(frame) + system.far_field_drag_derivatives()
        self._cache_key = key
        return self._results

    def compute(self, inputs, outputs):
        CF, CM, dCF, dCM, CD, dCD = self._analyze(inputs)

        outputs['CF'] = CF
        outputs['CM'] = CM
        outputs['CDi'] = CD

    def compute_partials(self, inputs, partials):
        CF, CM, dCF, dCM, CD, dCD = self._analyze(inputs)

        for name, value, dvalue in [('CF', CF, dCF), ('CM', CM, dCM), ('CDi', CD, dCD)]:
            dvalue = dvalue.reshape(5, -1)
            partials[name, 'alpha'] = dvalue[0].reshape(-1, 1)
            partials[name, 'beta'] = dvalue[1].reshape(-1, 1)
            partials[name, 'omega'] = dvalue[2:].T
