import unittest

import numpy as np
from openmdao.api import Problem
from openmdao.utils.assert_utils import assert_near_equal

from openvlm.aerodynamics.analysis import steady_analysis
from openvlm.aerodynamics.freestream import Freestream
from openvlm.aerodynamics.vlm_comp import VLMAnalysis
from openvlm.utils.testing import get_default_surfaces, get_simple_wing, run_test


class Test(unittest.TestCase):

    def test(self):
        _, surface, reference = get_simple_wing(mirror=True)

        comp = VLMAnalysis(surfaces=[surface], reference=reference, frame='stability')

        input_values = {
            'alpha': 3. * np.pi / 180.,
            'beta': 2. * np.pi / 180.,
            'omega': np.array([0.01, -0.02, 0.01]),
        }
        run_test(self, comp, input_values=input_values, atol=1e-6, rtol=1e-5)

    def test_multiple_surfaces(self):
        surfaces, reference, symmetric = get_default_surfaces()

        comp = VLMAnalysis(surfaces=surfaces, reference=reference, symmetric=symmetric,
            surface_id=[0, 0, 1], frame='wind')

        input_values = {
            'alpha': 5. * np.pi / 180.,
            'omega': np.array([0., 0.02, 0.]),
        }
        run_test(self, comp, input_values=input_values, atol=1e-6, rtol=1e-5)

    def test_outputs(self):
        _, surface, reference = get_simple_wing()
        alpha = 4. * np.pi / 180.

        prob = Problem()
        prob.model.add_subsystem('vlm', VLMAnalysis(surfaces=[surface], reference=reference,
            symmetric=True, frame='stability'), promotes=['*'])
        prob.setup()
        prob['alpha'] = alpha
        prob.run_model()

        system = steady_analysis([surface], reference, Freestream(alpha), symmetric=True,
            derivatives=False)
        CF, CM = system.body_forces('stability')

        assert_near_equal(prob['CF'], CF, 1e-10)
        assert_near_equal(prob['CM'][1], CM[1], 1e-10)
        assert_near_equal(prob['CDi'][0], system.far_field_drag(), 1e-10)


if __name__ == '__main__':
    unittest.main()
