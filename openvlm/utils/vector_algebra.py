import numpy as np


def add_ones_axis(array):
    return np.einsum('...,l->...l', array, np.ones(3))

def compute_dot(array1, array2):
    """
    Parameters
    ----------
    array1 : numpy array[..., 3]
        First argument in the dot product.
        The dot product axis is the last one.
    array2 : numpy array[..., 3]
        Second argument in the dot product.
        The dot product axis is the last one.
    """
    return add_ones_axis(np.einsum('...i,...i->...', array1, array2))

def compute_cross(array1, array2):
    """
    Parameters
    ----------
    array1 : numpy array[..., 3]
        First argument in the cross product (order matters).
        The cross product axis is the last one.
    array2 : numpy array[..., 3]
        Second argument in the cross product (order matters).
        The cross product axis is the last one.
    """
    return np.cross(array1, array2, axis=-1)

def compute_norm(array):
    """
    Parameters
    ----------
    array : numpy array[..., 3]
        Array we are taking the norm of in the last axis.
    """
    return add_ones_axis(np.sum(array ** 2, axis=-1) ** 0.5)

def normalize(array):
    return array / compute_norm(array)

def flipy(array):
    """
    Mirror points or vectors across the y = 0 plane.
    """
    flipped = np.array(array, copy=True)
    flipped[..., 1] *= -1.
    return flipped


# The functions below implement forward-mode differentiation on "seeded"
# arrays: the leading axis holds the primal value at index 0 followed by its
# tangents (derivatives with respect to each seed variable). A seeded array
# with a leading axis of length 1 is just a plain value, so every routine
# built on these helpers runs the same code with or without derivatives.

def seed(value, tangents=None):
    """
    Stack a primal value and its tangents along a new leading axis.

    Parameters
    ----------
    value : numpy array[...]
        The primal value.
    tangents : numpy array[num_seeds, ...] or None
        Derivatives of the value with respect to each seed variable.

    Returns
    -------
    seeded : numpy array[1 + num_seeds, ...]
        The seeded array.
    """
    value = np.asarray(value)
    if tangents is None:
        return value[np.newaxis]
    return np.concatenate([value[np.newaxis], np.asarray(tangents)], axis=0)

def seeded_mul(array1, array2):
    """
    Product rule for two seeded arrays (elementwise, with broadcasting).
    """
    primal = array1[:1] * array2[:1]
    tangents = array1[1:] * array2[:1] + array1[:1] * array2[1:]
    return np.concatenate([primal, tangents], axis=0)

def seeded_div(array1, array2):
    """
    Quotient rule for two seeded arrays (elementwise, with broadcasting).
    """
    primal = array1[:1] / array2[:1]
    tangents = (array1[1:] - primal * array2[1:]) / array2[:1]
    return np.concatenate([primal, tangents], axis=0)

def seeded_matvec(matrix, array):
    """
    Matrix-vector product of a seeded array of 3x3 matrices with a seeded
    array of vectors. The batch axes between the seed axis and the matrix or
    vector axes broadcast against each other, aligned from the right.
    """
    nbatch = max(matrix.ndim - 3, array.ndim - 2)
    matrix = matrix.reshape(matrix.shape[:1] + (1,) * (nbatch - matrix.ndim + 3)
        + matrix.shape[1:])
    array = array.reshape(array.shape[:1] + (1,) * (nbatch - array.ndim + 2) + array.shape[1:])

    primal = np.einsum('...ij,...j->...i', matrix[:1], array[:1])
    tangents = np.einsum('...ij,...j->...i', matrix[1:], array[:1]) \
        + np.einsum('...ij,...j->...i', matrix[:1], array[1:])
    return np.concatenate([primal, tangents], axis=0)
