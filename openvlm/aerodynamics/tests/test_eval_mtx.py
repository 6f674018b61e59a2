import unittest
import numpy as np
from numpy.testing import assert_allclose

from openvlm.aerodynamics.eval_mtx import bound_vortex, trailing_vortex


class Test(unittest.TestCase):

    def setUp(self):
        np.random.seed(0)
        self.a = np.array([0., -1., 0.])
        self.b = np.array([0., 1., 0.])
        self.points = np.random.random_sample((20, 3)) * 4. - 2.
        # keep the points away from the filaments
        self.points[:, 2] += np.where(self.points[:, 2] >= 0., 0.5, -0.5)

    def test_infinite_line(self):
        # a bound segment with two trailing vortices running both ways along
        # the same line is an infinite vortex line
        u = np.array([0., 1., 0.])
        point = np.array([0.3, 0.2, 0.5])
        vel = bound_vortex(point - self.a, point - self.b) \
            + trailing_vortex(u, point - self.b) - trailing_vortex(-u, point - self.a)

        # 1 / (2 pi h) around the line, right-handed about +y
        h = (0.3 ** 2 + 0.5 ** 2) ** 0.5
        expected = np.cross(u, [0.3, 0., 0.5]) / h / (2 * np.pi * h)
        assert_allclose(vel, expected, rtol=1e-10)

    def test_semi_infinite_direction(self):
        u = np.array([1., 0., 0.])
        vel = trailing_vortex(u, np.array([0., 0., 1.]))
        assert_allclose(vel, [0., -1. / (4 * np.pi), 0.], atol=1e-15)

    def test_long_segment(self):
        u = np.array([1., 0., 0.])
        r = self.points - self.a
        far = r - 1e7 * u
        assert_allclose(bound_vortex(r, far), trailing_vortex(u, r), rtol=1e-5)

    def test_finite_core_limit(self):
        r1 = self.points - self.a
        r2 = self.points - self.b
        u = np.array([1., 0., 0.])

        for core_size in [1e-3, 1e-5]:
            assert_allclose(bound_vortex(r1, r2, True, core_size), bound_vortex(r1, r2),
                rtol=10 * core_size ** 2 / 0.25 + 1e-9, atol=1e-12)
            assert_allclose(trailing_vortex(u, r1, True, core_size), trailing_vortex(u, r1),
                rtol=10 * core_size ** 2 / 0.25 + 1e-9, atol=1e-12)

        # a zero core gives the plain kernels
        assert_allclose(bound_vortex(r1, r2, True, 0.), bound_vortex(r1, r2), rtol=1e-9)

    def test_finite_core_near_filament(self):
        # the finite core removes most of the velocity close to the filament
        point = np.array([[0., 0.5, 1e-3]])
        plain = bound_vortex(point - self.a, point - self.b)
        core = bound_vortex(point - self.a, point - self.b, True, 0.1)
        self.assertGreater(np.linalg.norm(plain), 100.)
        self.assertLess(np.linalg.norm(core), 1.)

    def test_zero_length_segment(self):
        r = self.points - self.a
        assert_allclose(bound_vortex(r, r), np.zeros_like(r))
        assert_allclose(bound_vortex(r, r, True, 0.1), np.zeros_like(r))

    def test_point_on_filament(self):
        # midpoint, end point and extension of the filament
        points = np.array([[0., 0., 0.], [0., 1., 0.], [0., 3., 0.]])
        vel = bound_vortex(points - self.a, points - self.b)
        self.assertTrue(np.all(np.isfinite(vel)))
        assert_allclose(vel, np.zeros_like(vel))

        u = np.array([1., 0., 0.])
        points = np.array([[0., 0., 0.], [2., 0., 0.]])
        vel = trailing_vortex(u, points)
        assert_allclose(vel, np.zeros_like(vel))

    def test_broadcasting(self):
        # evaluation points against a grid of filaments
        r1 = self.points[:, np.newaxis, :] - np.array([[0., 0., 0.], [1., 0., 0.]])
        r2 = self.points[:, np.newaxis, :] - np.array([[0., 1., 0.], [1., 1., 0.]])
        vel = bound_vortex(r1, r2, True, np.array([0.1, 0.2]))
        self.assertEqual(vel.shape, (20, 2, 3))
        assert_allclose(vel[:, 1], bound_vortex(r1[:, 1], r2[:, 1], True, 0.2))


if __name__ == '__main__':
    unittest.main()
