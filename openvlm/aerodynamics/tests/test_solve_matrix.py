import unittest

import numpy as np
from numpy.testing import assert_allclose

from openvlm.aerodynamics.assemble_aic import influence_coefficients
from openvlm.aerodynamics.freestream import Freestream
from openvlm.aerodynamics.mtx_rhs import normal_velocities, normal_velocities_derivatives
from openvlm.aerodynamics.solve_matrix import circulation, circulation_derivatives, factorize, \
    solve_circulation
from openvlm.utils.exceptions import ConfigurationError
from openvlm.utils.testing import get_simple_wing


class Test(unittest.TestCase):

    def setUp(self):
        _, self.surface, self.reference = get_simple_wing()
        self.fs = Freestream(alpha=3. * np.pi / 180., beta=2. * np.pi / 180.,
            omega=[0.01, 0.02, -0.01])
        self.aic = influence_coefficients([self.surface], [False], [0], [True])

    def test_solution(self):
        w = normal_velocities([self.surface], self.reference, self.fs)[0]
        gamma = circulation(self.aic, w)
        assert_allclose(np.dot(self.aic, gamma), w, rtol=1e-10, atol=1e-14)

    def test_seeded_solution(self):
        w, dw = normal_velocities_derivatives([self.surface], self.reference, self.fs)
        gamma, dgamma = circulation_derivatives(self.aic, w, dw)
        self.assertEqual(dgamma.shape, (5, 12))

        lu = factorize(self.aic)
        seeded = solve_circulation(lu, np.concatenate([w[np.newaxis], dw]))
        assert_allclose(seeded[0], gamma)
        assert_allclose(seeded[1:], dgamma)
        assert_allclose(np.dot(self.aic, dgamma[3]), dw[3], rtol=1e-10, atol=1e-14)

    def test_singular(self):
        # two copies of the same surface on the same body give duplicate columns
        aic = influence_coefficients([self.surface, self.surface], [False, False], [0, 0],
            [True, True])
        with self.assertRaises(ConfigurationError):
            factorize(aic)

        with self.assertRaises(ConfigurationError):
            factorize(np.zeros((3, 3)))

    def test_non_finite(self):
        aic = np.array(self.aic)
        aic[0, 0] = np.nan
        with self.assertRaises(ConfigurationError):
            factorize(aic)

    def test_horseshoes_and_rings(self):
        # with a single chordwise panel on a flat wing, horseshoes and rings
        # have the same filaments
        _, rings, _ = get_simple_wing(theta=0.)
        _, horseshoes, _ = get_simple_wing(theta=0., horseshoes=True)

        aic_rings = influence_coefficients([rings], [True], [0], [True])
        aic_horseshoes = influence_coefficients([horseshoes], [True], [0], [True])
        assert_allclose(aic_horseshoes, aic_rings, rtol=1e-10, atol=1e-14)

        w = normal_velocities([rings], self.reference, self.fs)[0]
        assert_allclose(circulation(aic_horseshoes, w), circulation(aic_rings, w), rtol=1e-8)


if __name__ == '__main__':
    unittest.main()
