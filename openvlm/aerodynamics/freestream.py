"""
Freestream and reference quantities, frame rotations and the external
velocity field seen by the lifting surfaces.

Angles follow the usual convention: the freestream velocity in the body frame
is ``VINF * (cos(alpha) cos(beta), -sin(beta), sin(alpha) cos(beta))`` and
body rotation rates are normalized by ``VINF``.
"""
import numpy as np

from openvlm.utils.constants import VINF
from openvlm.utils.exceptions import ConfigurationError
from openvlm.utils.vector_algebra import compute_cross


class Reference(object):
    """
    Reference quantities used to non-dimensionalize forces and moments.

    Parameters
    ----------
    S : float
        Reference area.
    c : float
        Reference chord.
    b : float
        Reference span.
    r : numpy array[3]
        Moment reference point.
    """

    def __init__(self, S, c, b, r):
        self.S = float(S)
        self.c = float(c)
        self.b = float(b)
        self.r = np.array(r, dtype=float)

    @property
    def lengths(self):
        """
        Reference lengths for the x, y and z moment coefficients.
        """
        return np.array([self.b, self.c, self.b])


class Freestream(object):
    """
    Freestream state.

    Parameters
    ----------
    alpha : float
        Angle of attack (rad).
    beta : float
        Sideslip angle (rad).
    omega : numpy array[3]
        Body rotation rates (p, q, r) divided by the freestream velocity.
    additional_velocity : callable or None
        Function of an array of points (..., 3) returning the additional
        velocity (..., 3) at those points, normalized by the freestream
        velocity.
    """

    def __init__(self, alpha, beta=0., omega=(0., 0., 0.), additional_velocity=None):
        self.alpha = alpha
        self.beta = beta
        self.omega = np.array(omega)
        self.additional_velocity = additional_velocity


def body_to_stability(fs):
    sa, ca = np.sin(fs.alpha), np.cos(fs.alpha)
    return np.array([
        [ca, 0., sa],
        [0., 1., 0.],
        [-sa, 0., ca],
    ])

def body_to_stability_alpha(fs):
    """
    Rotation from the body frame to the stability frame and its derivative with
    respect to alpha.
    """
    sa, ca = np.sin(fs.alpha), np.cos(fs.alpha)
    R = body_to_stability(fs)
    R_a = np.array([
        [-sa, 0., ca],
        [0., 0., 0.],
        [-ca, 0., -sa],
    ])
    return R, R_a

def stability_to_wind(fs):
    sb, cb = np.sin(fs.beta), np.cos(fs.beta)
    return np.array([
        [cb, -sb, 0.],
        [sb, cb, 0.],
        [0., 0., 1.],
    ])

def stability_to_wind_beta(fs):
    """
    Rotation from the stability frame to the wind frame and its derivative with
    respect to beta.
    """
    sb, cb = np.sin(fs.beta), np.cos(fs.beta)
    R = stability_to_wind(fs)
    R_b = np.array([
        [-sb, -cb, 0.],
        [cb, -sb, 0.],
        [0., 0., 0.],
    ])
    return R, R_b

def body_to_wind(fs):
    return np.dot(stability_to_wind(fs), body_to_stability(fs))

def body_to_wind_derivatives(fs):
    """
    Rotation from the body frame to the wind frame and its derivatives with
    respect to alpha and beta.
    """
    Rs, Rs_a = body_to_stability_alpha(fs)
    Rw, Rw_b = stability_to_wind_beta(fs)
    return np.dot(Rw, Rs), np.dot(Rw, Rs_a), np.dot(Rw_b, Rs)

def seeded_rotation(fs, frame, derivatives=False):
    """
    Seeded rotation matrix from the body frame to the given frame.

    Returns
    -------
    R[1, 3, 3] or R[6, 3, 3] : numpy array
        The rotation matrix followed, when derivatives are requested, by its
        derivatives with respect to alpha, beta, p, q and r.
    """
    nseed = 6 if derivatives else 1
    R = np.zeros((nseed, 3, 3))
    if frame == 'body':
        R[0] = np.eye(3)
    elif frame == 'stability':
        if derivatives:
            R[0], R[1] = body_to_stability_alpha(fs)
        else:
            R[0] = body_to_stability(fs)
    elif frame == 'wind':
        if derivatives:
            R[0], R[1], R[2] = body_to_wind_derivatives(fs)
        else:
            R[0] = body_to_wind(fs)
    else:
        raise ConfigurationError("frame must be one of 'body', 'stability' or 'wind', got {!r}".format(frame))
    return R

def freestream_velocity(fs):
    """
    Freestream velocity in the body frame.
    """
    sa, ca = np.sin(fs.alpha), np.cos(fs.alpha)
    sb, cb = np.sin(fs.beta), np.cos(fs.beta)
    return VINF * np.array([ca * cb, -sb, sa * cb])

def freestream_velocity_derivatives(fs):
    """
    Freestream velocity in the body frame and its derivatives with respect to
    alpha and beta.
    """
    sa, ca = np.sin(fs.alpha), np.cos(fs.alpha)
    sb, cb = np.sin(fs.beta), np.cos(fs.beta)
    V = VINF * np.array([ca * cb, -sb, sa * cb])
    V_a = VINF * np.array([-sa * cb, 0., ca * cb])
    V_b = VINF * np.array([-ca * sb, -cb, -sa * sb])
    return V, V_a, V_b

def external_velocity(fs, r, rref, derivatives=False):
    """
    Seeded external velocity (freestream, body rotation and additional
    velocity field) at a set of points.

    Parameters
    ----------
    fs : Freestream
        Freestream state.
    r[..., 3] : numpy array
        Points at which to evaluate the velocity.
    rref[3] : numpy array
        Center of rotation.
    derivatives : bool
        If True, also compute the derivatives with respect to alpha, beta, p,
        q and r.

    Returns
    -------
    Vext[1, ..., 3] or Vext[6, ..., 3] : numpy array
        External velocity followed by its derivatives, if requested.
    """
    r = np.asarray(r, dtype=float)
    dr = r - rref
    shape = r.shape

    if derivatives:
        V, V_a, V_b = freestream_velocity_derivatives(fs)
        Vext = np.zeros((6,) + shape, dtype=np.result_type(V, fs.omega))
        Vext[1] = V_a
        Vext[2] = V_b

        # derivatives of cross(dr, omega) with respect to p, q and r
        Vext[3, ..., 1] = VINF * dr[..., 2]
        Vext[3, ..., 2] = -VINF * dr[..., 1]
        Vext[4, ..., 0] = -VINF * dr[..., 2]
        Vext[4, ..., 2] = VINF * dr[..., 0]
        Vext[5, ..., 0] = VINF * dr[..., 1]
        Vext[5, ..., 1] = -VINF * dr[..., 0]
    else:
        V = freestream_velocity(fs)
        Vext = np.zeros((1,) + shape, dtype=np.result_type(V, fs.omega))

    Vext[0] = V + VINF * compute_cross(dr, np.broadcast_to(fs.omega, shape))

    if fs.additional_velocity is not None:
        Vext[0] += VINF * np.asarray(fs.additional_velocity(r))

    return Vext
