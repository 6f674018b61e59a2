import unittest

import numpy as np
from numpy.testing import assert_allclose

from openvlm.aerodynamics.assemble_aic import influence_coefficients, surface_offsets, \
    trailing_edge_coefficients, trailing_edge_columns
from openvlm.aerodynamics.wake import wake_from_trailing_edge
from openvlm.utils.testing import get_default_surfaces, get_simple_wing


class Test(unittest.TestCase):

    def test_offsets(self):
        surfaces, _, _ = get_default_surfaces()
        assert_allclose(surface_offsets(surfaces), [0, 12, 18, 23])

        _, surface, _ = get_simple_wing(nc=3)
        assert_allclose(trailing_edge_columns(surface), np.arange(24, 36))

    def test_downwash(self):
        _, surface, _ = get_simple_wing(theta=0.)
        aic = influence_coefficients([surface], [False], [0], [True])

        self.assertEqual(aic.shape, (12, 12))
        # a panel induces a downwash on its own control point
        self.assertTrue(np.all(np.diag(aic) < 0.))

    def test_symmetric_folding(self):
        _, half, _ = get_simple_wing(nc=2)
        _, full, _ = get_simple_wing(mirror=True, nc=2)
        nc, ns = half.shape

        aic_half = influence_coefficients([half], [True], [0], [True])
        aic_full = influence_coefficients([full], [False], [0], [True])

        # panel (i, j) of the right half, and its mirror image on the left half
        index = np.arange(2 * ns * nc).reshape(nc, 2 * ns)
        right = index[:, ns:].ravel()
        left = index[:, :ns][:, ::-1].ravel()

        expected = aic_full[np.ix_(right, right)] + aic_full[np.ix_(right, left)]
        assert_allclose(aic_half, expected, rtol=1e-8, atol=1e-12)

    def test_surface_id(self):
        surfaces, _, symmetric = get_default_surfaces()
        distinct = influence_coefficients(surfaces, symmetric, [0, 1, 2], [True] * 3)
        shared = influence_coefficients(surfaces, symmetric, [0, 0, 0], [True] * 3)

        # the finite core only changes the blocks between different bodies
        assert_allclose(distinct[:12, :12], shared[:12, :12])
        assert_allclose(distinct[12:18, 12:18], shared[12:18, 12:18])
        self.assertFalse(np.allclose(distinct[12:18, :12], shared[12:18, :12], rtol=1e-8, atol=0.))

    def test_steady_wake_columns(self):
        _, surface, _ = get_simple_wing(nc=2)
        wake = wake_from_trailing_edge(surface, [0., 0.5, 2., 10.])

        plain = influence_coefficients([surface], [True], [0], [True])
        aic = influence_coefficients([surface], [True], [0], [True], wake_attached=[True])
        coefficients = trailing_edge_coefficients([surface], [wake], [True], [0], [False],
            [True])

        # a wake carrying the trailing-edge circulation along the trailing
        # vortices changes nothing
        assert_allclose(aic + coefficients, plain, rtol=1e-8, atol=1e-12)

        # only the trailing-edge columns receive the wake
        assert_allclose(coefficients[:, :12], np.zeros((24, 12)))
        self.assertTrue(np.all(np.abs(coefficients[:, 12:]).sum(axis=0) > 0.))

    def test_no_wake(self):
        _, surface, _ = get_simple_wing()
        coefficients = trailing_edge_coefficients([surface], [None], [True], [0], [True], [True])
        assert_allclose(coefficients, np.zeros((12, 12)))


if __name__ == '__main__':
    unittest.main()
