import unittest

import numpy as np
from numpy.testing import assert_allclose

from openvlm.aerodynamics.analysis import steady_analysis, unsteady_analysis
from openvlm.aerodynamics.forces import body_forces_history
from openvlm.aerodynamics.freestream import Freestream
from openvlm.aerodynamics.wake import Wake, convect_wake, empty_wake, shed_wake, truncate_wake, \
    wake_from_trailing_edge, wake_induced_velocity
from openvlm.utils.exceptions import ConfigurationError
from openvlm.utils.testing import get_simple_wing


class Test(unittest.TestCase):

    def setUp(self):
        _, self.surface, self.reference = get_simple_wing()
        self.fs = Freestream(alpha=3. * np.pi / 180.)

    def test_wake_operations(self):
        wake = empty_wake(self.surface)
        self.assertEqual(wake.shape, (0, 12))
        assert_allclose(wake.vertices[0], self.surface.vertices()[-1])

        velocities = np.zeros(wake.vertices.shape)
        velocities[..., 0] = 1.
        wake = shed_wake(convect_wake(wake, velocities, 0.5), self.surface, np.ones(12))
        self.assertEqual(wake.shape, (1, 12))
        assert_allclose(wake.vertices[1] - wake.vertices[0], np.tile([0.5, 0., 0.], (13, 1)))
        assert_allclose(wake.gamma, np.ones((1, 12)))

        wake = shed_wake(wake, self.surface)
        self.assertEqual(wake.nw, 2)
        assert_allclose(wake.gamma[0], np.zeros(12))

        self.assertEqual(truncate_wake(wake, 1).shape, (1, 12))
        self.assertIs(truncate_wake(wake, 5), wake)

        copy = wake.copy()
        copy.gamma[0] = 2.
        assert_allclose(wake.gamma[0], np.zeros(12))

    def test_empty_wake_velocity(self):
        points = np.random.random_sample((4, 3))
        V = wake_induced_velocity(points, empty_wake(self.surface))
        assert_allclose(V, np.zeros((4, 3)))

    def test_steady_straight_wake(self):
        # a straight wake along the trailing vortices carrying the
        # trailing-edge circulation does not change the solution
        wake = wake_from_trailing_edge(self.surface, [0., 0.5, 1.5, 5.])

        plain = steady_analysis([self.surface], self.reference, self.fs, symmetric=True)
        system = steady_analysis([self.surface], self.reference, self.fs, symmetric=True,
            wakes=[wake], wake_finite_core=False)

        assert_allclose(system.gamma, plain.gamma, rtol=1e-8)
        assert_allclose(system.dgamma, plain.dgamma, rtol=1e-8, atol=1e-12)
        assert_allclose(system.body_forces()[0], plain.body_forces()[0], rtol=1e-8, atol=1e-12)

    def test_horseshoe_wake(self):
        _, horseshoes, _ = get_simple_wing(horseshoes=True)
        with self.assertRaises(ConfigurationError):
            empty_wake(horseshoes)
        with self.assertRaises(ConfigurationError):
            unsteady_analysis([horseshoes], self.reference, self.fs, [0.5])

    def test_unsteady_converges_to_steady(self):
        steady = steady_analysis([self.surface], self.reference, self.fs, symmetric=True,
            derivatives=False)
        CL = steady.body_forces('stability')[0][2]

        dt = np.full(20, 0.5)
        system, property_history, wake_history = unsteady_analysis([self.surface],
            self.reference, self.fs, dt, symmetric=True, trailing_vortices=True,
            wake_finite_core=False, free_wake=False)

        self.assertEqual(len(property_history), 20)
        self.assertEqual(wake_history[-1][0].shape, (20, 12))

        # the first wake row carries the trailing-edge circulation
        gamma = system.surface_gammas()[0]
        assert_allclose(wake_history[-1][0].gamma[0], gamma[-1])

        CF, CM = body_forces_history([self.surface], property_history, self.reference, self.fs,
            [True], frame='stability')
        assert_allclose(CF[-1, 2], CL, rtol=0.02)

    def test_unsteady_options(self):
        with self.assertRaises(ConfigurationError):
            unsteady_analysis([self.surface], self.reference, self.fs, [0.5, -0.5])
        with self.assertRaises(ConfigurationError):
            unsteady_analysis([self.surface], self.reference, [self.fs], [0.5, 0.5])

    def test_free_wake(self):
        dt = np.full(4, 0.5)
        system, property_history, wake_history = unsteady_analysis([self.surface],
            self.reference, self.fs, dt, symmetric=True, nwake=3)

        wake = wake_history[-1][0]
        self.assertEqual(wake.shape, (3, 12))
        self.assertTrue(np.all(np.isfinite(wake.vertices)))
        # wake rows trail behind the trailing edge
        self.assertTrue(np.all(np.diff(wake.vertices[..., 0], axis=0) > 0.))

        with self.assertRaises(ConfigurationError):
            system.update_normal_velocities(derivatives=True)

    def test_wake_gamma_shape(self):
        wake = Wake(np.zeros((3, 5, 3)), gamma=np.arange(8.))
        self.assertEqual(wake.shape, (2, 4))
        self.assertEqual(wake.size, 8)


if __name__ == '__main__':
    unittest.main()
