"""
Dense Matrix Primitives

The regression network only ever touches one kind of tensor: a 2-D array of
64-bit floats. This module wraps the handful of NumPy operations the forward
and backward passes need, with explicit shape contracts so that a
misconfigured network fails loudly at the first bad product instead of
silently broadcasting into the wrong shape.

Functions:
    as_matrix: Convert input to a float64 2-D array
    matmul: Matrix product with an inner-dimension check
    broadcast_add_rows: Add a bias vector to every row of a matrix
    column_sum: Sum over rows (the reverse of broadcast_add_rows)
    where_positive: Elementwise conditional select on a mask
"""

import numpy as np


def as_matrix(values, name: str = "matrix") -> np.ndarray:
    """
    Convert values to a float64 matrix.

    Args:
        values: Anything np.asarray accepts
        name: Name used in the error message

    Returns:
        2-D float64 array (a copy only if a conversion was needed)

    Raises:
        ValueError: If the input is not two-dimensional
    """
    matrix = np.asarray(values, dtype=np.float64)
    if matrix.ndim != 2:
        raise ValueError(
            f"{name} must be 2-D (rows, columns), got shape {matrix.shape}"
        )
    return matrix


def matmul(left: np.ndarray, right: np.ndarray) -> np.ndarray:
    """
    Matrix product: (N, K) @ (K, M) -> (N, M)

    Args:
        left: Matrix of shape (N, K)
        right: Matrix of shape (K, M)

    Returns:
        Product of shape (N, M)

    Raises:
        ValueError: If the inner dimensions do not agree
    """
    if left.ndim != 2 or right.ndim != 2:
        raise ValueError(
            f"matmul expects 2-D operands, got {left.shape} and {right.shape}"
        )
    if left.shape[1] != right.shape[0]:
        raise ValueError(
            f"Dimension mismatch in matmul: {left.shape} @ {right.shape} "
            f"(inner dimensions {left.shape[1]} != {right.shape[0]})"
        )
    return left @ right


def broadcast_add_rows(matrix: np.ndarray, row: np.ndarray) -> np.ndarray:
    """
    Add a row vector to every row of a matrix.

    Contract:
        matrix: (N, K)
        row:    (K,) or (1, K)
        result: (N, K), result[i, :] = matrix[i, :] + row

    This is how a bias is applied across the batch dimension.

    Raises:
        ValueError: If the row does not have K entries
    """
    row_vector = np.asarray(row, dtype=np.float64)
    if row_vector.ndim == 2 and row_vector.shape[0] == 1:
        row_vector = row_vector[0]
    if row_vector.ndim != 1 or row_vector.shape[0] != matrix.shape[1]:
        raise ValueError(
            f"Cannot add row of shape {np.shape(row)} to matrix of shape "
            f"{matrix.shape}"
        )
    return matrix + row_vector.reshape(1, -1)


def column_sum(matrix: np.ndarray) -> np.ndarray:
    """
    Sum a matrix over its rows: (N, K) -> (K,)

    In the backward pass this collapses the batch dimension that
    broadcast_add_rows expanded, giving the bias gradient.
    """
    return np.sum(matrix, axis=0)


def where_positive(condition: np.ndarray, values: np.ndarray) -> np.ndarray:
    """
    Elementwise select: values where condition > 0, else exactly 0.

    Args:
        condition: Matrix whose sign decides which entries survive
        values: Matrix of the same shape to select from

    Returns:
        New matrix of the same shape

    Raises:
        ValueError: If the two operands differ in shape
    """
    if condition.shape != values.shape:
        raise ValueError(
            f"where_positive operands differ in shape: "
            f"{condition.shape} vs {values.shape}"
        )
    return np.where(condition > 0, values, 0.0)
