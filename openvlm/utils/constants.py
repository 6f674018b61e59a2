import numpy as np

# All velocities are normalised by the freestream speed and all densities by
# the freestream density, so forces come out per unit dynamic pressure.
VINF = 1.
RHO = 1.
QINF = 0.5 * RHO * VINF ** 2

# Default trailing vortex direction (body x-axis).
XHAT = np.array([1., 0., 0.])

# Names of the freestream variables the derivative pipeline differentiates
# with respect to, in the order they appear on the leading "seed" axis.
DERIVATIVE_NAMES = ('alpha', 'beta', 'p', 'q', 'r')
