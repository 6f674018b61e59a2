import itertools
import unittest

import numpy as np
from numpy.testing import assert_allclose

from openvlm.aerodynamics.induced_velocity import panel_induced_velocity, \
    surface_induced_velocity, surface_induced_velocity_derivatives, surface_velocity_matrix
import openvlm.aerodynamics.induced_velocity as induced_velocity
from openvlm.utils.testing import get_simple_wing


class Test(unittest.TestCase):

    def setUp(self):
        np.random.seed(42)
        self.grid, self.rings, _ = get_simple_wing(nc=3)
        _, self.horseshoes, _ = get_simple_wing(nc=3, horseshoes=True)

        # points above and below the wing, away from every filament
        self.points = np.random.random_sample((15, 3)) * [4., 10., 2.] - [1., 1., 1.]
        self.points[:, 2] += np.where(self.points[:, 2] >= 0., 0.3, -0.3)

    def test_ring_lattice(self):
        for trailing_vortices, wake_attached in itertools.product([True, False], [True, False]):
            lattice = surface_velocity_matrix(self.points, self.rings,
                trailing_vortices=trailing_vortices, wake_attached=wake_attached)
            panels = panel_induced_velocity(self.points, self.rings,
                trailing_vortices=trailing_vortices, wake_attached=wake_attached)
            assert_allclose(lattice, panels, rtol=1e-8, atol=1e-12)

    def test_horseshoe_lattice(self):
        for trailing_vortices in [True, False]:
            lattice = surface_velocity_matrix(self.points, self.horseshoes,
                trailing_vortices=trailing_vortices)
            panels = panel_induced_velocity(self.points, self.horseshoes,
                trailing_vortices=trailing_vortices)
            assert_allclose(lattice, panels, rtol=1e-8, atol=1e-12)

    def test_symmetric_lattice(self):
        for surface in [self.rings, self.horseshoes]:
            lattice = surface_velocity_matrix(self.points, surface, symmetric=True)
            panels = panel_induced_velocity(self.points, surface) \
                + panel_induced_velocity(self.points, surface, reflect=True)
            assert_allclose(lattice, panels, rtol=1e-8, atol=1e-12)

    def test_include_flags(self):
        names = ['include_top', 'include_bottom', 'include_left', 'include_right',
                 'include_left_trailing', 'include_right_trailing']

        for trailing_vortices in [True, False]:
            total = panel_induced_velocity(self.points, self.rings,
                trailing_vortices=trailing_vortices)

            # the filaments add up to the whole panel whichever way they are
            # split in two groups
            for flags in itertools.product([True, False], repeat=len(names)):
                first = dict(zip(names, flags))
                second = dict((name, not flag) for name, flag in first.items())
                vel = panel_induced_velocity(self.points, self.rings,
                    trailing_vortices=trailing_vortices, **first) \
                    + panel_induced_velocity(self.points, self.rings,
                    trailing_vortices=trailing_vortices, **second)
                assert_allclose(vel, total, rtol=1e-12, atol=1e-14)

    def test_bottom_filament(self):
        # the bottom filament of a trailing-edge ring only exists without
        # trailing vortices
        options = dict(include_top=False, include_left=False, include_right=False,
            include_left_trailing=False, include_right_trailing=False)
        last = self.rings[-1:]

        vel = panel_induced_velocity(self.points, last, trailing_vortices=True, **options)
        assert_allclose(vel, np.zeros_like(vel))

        vel = panel_induced_velocity(self.points, last, trailing_vortices=False, **options)
        self.assertTrue(np.all(np.linalg.norm(vel, axis=-1) > 0.))

        vel = panel_induced_velocity(self.points, last, trailing_vortices=False,
            wake_attached=True, **options)
        assert_allclose(vel, np.zeros_like(vel))

    def test_symmetric_matches_mirrored_wing(self):
        _, full, _ = get_simple_wing(mirror=True, nc=3)
        ns = self.rings.shape[1]

        gamma = np.random.random_sample(self.rings.size)
        gamma_full = np.concatenate([gamma.reshape(self.rings.shape)[:, ::-1],
            gamma.reshape(self.rings.shape)], axis=1).ravel()

        half = surface_induced_velocity(self.points, self.rings, gamma, symmetric=True)
        whole = surface_induced_velocity(self.points, full, gamma_full)
        assert_allclose(half, whole, rtol=1e-8, atol=1e-12)

        self.assertEqual(full.shape, (3, 2 * ns))

    def test_finite_core_far_field(self):
        # far from the wing the finite core changes the result by (core size / distance)**2
        points = self.points + [0., 0., 100.]
        plain = surface_velocity_matrix(points, self.rings)
        core = surface_velocity_matrix(points, self.rings, finite_core=True)
        assert_allclose(core, plain, rtol=2e-4, atol=1e-12)

    def test_chunks(self):
        full = surface_velocity_matrix(self.points, self.rings)

        max_pairs = induced_velocity.max_pairs
        induced_velocity.max_pairs = 2 * self.rings.size
        try:
            chunked = surface_velocity_matrix(self.points, self.rings)
        finally:
            induced_velocity.max_pairs = max_pairs

        assert_allclose(chunked, full)

    def test_seeded_circulation(self):
        gamma = np.random.random_sample((6, self.rings.size))
        V = surface_induced_velocity(self.points, self.rings, gamma)
        self.assertEqual(V.shape, (6, 15, 3))
        assert_allclose(V[2], surface_induced_velocity(self.points, self.rings, gamma[2]))

    def test_derivatives(self):
        gamma = np.random.random_sample(self.rings.size)
        dgamma = np.random.random_sample((5, self.rings.size))
        V, dV = surface_induced_velocity_derivatives(self.points, self.rings, gamma, dgamma,
            symmetric=True)

        # the induced velocity is linear in the circulation
        assert_allclose(V, surface_induced_velocity(self.points, self.rings, gamma, symmetric=True))
        for k in range(5):
            assert_allclose(dV[k], surface_induced_velocity(self.points, self.rings, dgamma[k],
                symmetric=True), rtol=1e-12, atol=1e-15)


if __name__ == '__main__':
    unittest.main()
