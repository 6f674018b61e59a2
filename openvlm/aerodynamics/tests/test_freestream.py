import unittest

import numpy as np
from numpy.testing import assert_allclose

from openvlm.aerodynamics.freestream import Freestream, Reference, body_to_stability, \
    body_to_wind, external_velocity, freestream_velocity, seeded_rotation
from openvlm.utils.exceptions import ConfigurationError


def perturbed(fs, index, step):
    # freestream with alpha, beta, p, q or r moved by step
    x = np.concatenate([[fs.alpha, fs.beta], fs.omega])
    x[index] += step
    return Freestream(x[0], x[1], x[2:], fs.additional_velocity)


class Test(unittest.TestCase):

    def setUp(self):
        self.fs = Freestream(alpha=5. * np.pi / 180., beta=-3. * np.pi / 180.,
            omega=[0.02, -0.01, 0.03])
        self.reference = Reference(S=30., c=2., b=15., r=[0.5, 0., 0.])

    def test_reference(self):
        assert_allclose(self.reference.lengths, [15., 2., 15.])

    def test_freestream_velocity(self):
        V = freestream_velocity(self.fs)
        assert_allclose(np.linalg.norm(V), 1.)

        # the freestream runs along the wind x-axis
        assert_allclose(np.dot(body_to_wind(self.fs), V), [1., 0., 0.], atol=1e-15)

        fs = Freestream(alpha=0.1)
        assert_allclose(freestream_velocity(fs), [np.cos(0.1), 0., np.sin(0.1)])

    def test_rotations(self):
        for R in [body_to_stability(self.fs), body_to_wind(self.fs)]:
            assert_allclose(np.dot(R, R.T), np.eye(3), atol=1e-15)
            assert_allclose(np.linalg.det(R), 1.)

    def test_rotation_derivatives(self):
        step = 1e-7
        for frame in ['body', 'stability', 'wind']:
            R = seeded_rotation(self.fs, frame, derivatives=True)
            assert_allclose(R[0], seeded_rotation(self.fs, frame)[0])

            for index in range(5):
                plus = seeded_rotation(perturbed(self.fs, index, step), frame)[0]
                minus = seeded_rotation(perturbed(self.fs, index, -step), frame)[0]
                assert_allclose(R[1 + index], (plus - minus) / (2 * step), atol=1e-8)

    def test_invalid_frame(self):
        with self.assertRaises(ConfigurationError):
            seeded_rotation(self.fs, 'geographic')

    def test_external_velocity(self):
        r = np.array([[1., 2., 0.5], [0.5, 0., 0.], [3., -1., 0.2]])
        V = external_velocity(self.fs, r, self.reference.r)
        self.assertEqual(V.shape, (1, 3, 3))

        # no rotational velocity at the center of rotation
        assert_allclose(V[0, 1], freestream_velocity(self.fs))
        assert_allclose(V[0], freestream_velocity(self.fs)
            + np.cross(r - self.reference.r, self.fs.omega))

    def test_external_velocity_derivatives(self):
        r = np.array([[1., 2., 0.5], [3., -1., 0.2]])
        V = external_velocity(self.fs, r, self.reference.r, derivatives=True)
        self.assertEqual(V.shape, (6, 2, 3))

        step = 1e-7
        for index in range(5):
            plus = external_velocity(perturbed(self.fs, index, step), r, self.reference.r)[0]
            minus = external_velocity(perturbed(self.fs, index, -step), r, self.reference.r)[0]
            assert_allclose(V[1 + index], (plus - minus) / (2 * step), atol=1e-8)

    def test_additional_velocity(self):
        def gust(r):
            V = np.zeros_like(r)
            V[..., 2] = 0.1 * r[..., 1]
            return V

        fs = Freestream(alpha=0., additional_velocity=gust)
        r = np.array([[0., 1., 0.], [0., 2., 0.]])
        V = external_velocity(fs, r, self.reference.r)
        assert_allclose(V[0], [[1., 0., 0.1], [1., 0., 0.2]])


if __name__ == '__main__':
    unittest.main()
