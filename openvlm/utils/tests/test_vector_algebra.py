import unittest
import numpy as np
from numpy.testing import assert_allclose

from openvlm.utils.vector_algebra import compute_cross, compute_dot, compute_norm, flipy, \
    normalize, seed, seeded_div, seeded_matvec, seeded_mul


class Test(unittest.TestCase):

    def setUp(self):
        np.random.seed(314)
        self.a = np.random.random_sample((4, 3))
        self.b = np.random.random_sample((4, 3))
        self.da = np.random.random_sample((2, 4, 3))
        self.db = np.random.random_sample((2, 4, 3))

    def _central_difference(self, func, step=1e-6):
        # derivative of func along each pair of tangent directions
        derivs = []
        for k in range(2):
            plus = func(self.a + step * self.da[k], self.b + step * self.db[k])
            minus = func(self.a - step * self.da[k], self.b - step * self.db[k])
            derivs.append((plus - minus) / (2 * step))
        return np.array(derivs)

    def test_plain_helpers(self):
        assert_allclose(compute_cross(self.a, self.b), np.cross(self.a, self.b))
        assert_allclose(compute_dot(self.a, self.b)[:, 0], np.sum(self.a * self.b, axis=-1))
        assert_allclose(compute_norm(self.a)[:, 0], np.linalg.norm(self.a, axis=-1))
        assert_allclose(np.linalg.norm(normalize(self.a), axis=-1), np.ones(4))

    def test_flipy(self):
        r = np.array([[1., 2., 3.], [-4., -5., 6.]])
        assert_allclose(flipy(r), [[1., -2., 3.], [-4., 5., 6.]])
        assert_allclose(flipy(flipy(r)), r)

    def test_seed(self):
        plain = seed(self.a)
        self.assertEqual(plain.shape, (1, 4, 3))

        seeded = seed(self.a, self.da)
        self.assertEqual(seeded.shape, (3, 4, 3))
        assert_allclose(seeded[0], self.a)
        assert_allclose(seeded[1:], self.da)

    def test_seeded_mul(self):
        result = seeded_mul(seed(self.a, self.da), seed(self.b, self.db))
        assert_allclose(result[0], self.a * self.b)
        assert_allclose(result[1:], self._central_difference(lambda a, b: a * b), rtol=1e-6)

    def test_seeded_div(self):
        result = seeded_div(seed(self.a, self.da), seed(self.b + 1., self.db))
        assert_allclose(result[0], self.a / (self.b + 1.))
        assert_allclose(result[1:], self._central_difference(lambda a, b: a / (b + 1.)),
            rtol=1e-6)

    def test_seeded_matvec(self):
        R = np.random.random_sample((3, 3))
        dR = np.random.random_sample((2, 3, 3))

        # one matrix per seed, as the frame rotations are applied
        result = seeded_matvec(seed(R, dR), seed(self.a[0], self.da[:, 0]))
        self.assertEqual(result.shape, (3, 3))
        assert_allclose(result[0], np.dot(R, self.a[0]))
        expected = np.einsum('kij,j->ki', dR, self.a[0]) + np.einsum('ij,kj->ki', R, self.da[:, 0])
        assert_allclose(result[1:], expected)

        # a single matrix broadcast over a batch of vectors
        result = seeded_matvec(seed(R, dR), seed(self.a, self.da))
        self.assertEqual(result.shape, (3, 4, 3))
        assert_allclose(result[0], np.einsum('ij,nj->ni', R, self.a))
        expected = np.einsum('kij,nj->kni', dR, self.a) + np.einsum('ij,knj->kni', R, self.da)
        assert_allclose(result[1:], expected)

    def test_unseeded(self):
        # with a single seed the helpers reduce to the plain operations
        result = seeded_mul(seed(self.a), seed(self.b))
        self.assertEqual(result.shape, (1, 4, 3))
        assert_allclose(result[0], self.a * self.b)

        R = np.random.random_sample((3, 3))
        result = seeded_matvec(seed(R), seed(self.a))
        self.assertEqual(result.shape, (1, 4, 3))
        assert_allclose(result[0], np.einsum('ij,nj->ni', R, self.a))


if __name__ == '__main__':
    unittest.main()
