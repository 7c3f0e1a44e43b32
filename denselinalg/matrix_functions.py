# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging

import numpy as np

from .config import DEFAULT_TOLERANCE, Tolerance
from .elimination import bareiss_determinant
from .exceptions import DimensionMismatchError, InvalidArgumentError, SingularMatrixError
from .factorization import coerce_rhs
from .lu import lu_doolittle
from .matrix import Matrix, as_array, multiply
from .qr import householder_qr
from .utils import scale_tol

logger = logging.getLogger(__name__)

# Laplace expansion is O(n!); warn above this size
LAPLACE_WARN_SIZE = 8


def _square(A, what: str) -> np.ndarray:
    a = as_array(A)
    m, n = a.shape
    if m != n:
        raise DimensionMismatchError(f"The {what} is undefined for non-square matrices ({m}x{n}).")
    return a


def _scalar(value):
    return value.item() if isinstance(value, np.generic) else value


def _laplace(a: np.ndarray):
    n = a.shape[0]
    if n == 0:
        return 1.0
    if n == 1:
        return a[0, 0]
    if n == 2:
        return a[0, 0] * a[1, 1] - a[0, 1] * a[1, 0]
    total = 0.0
    cols = np.arange(n)
    for j in range(n):
        if a[0, j] == 0:
            continue
        minor = a[1:][:, cols != j]
        total += ((-1) ** j) * a[0, j] * _laplace(minor)
    return total


def det(A, method: str = "lu", tolerance: Tolerance = DEFAULT_TOLERANCE):
    """
    Calculate the determinant of n-by-n matrix A.

    method
        "lu" (partial pivoting, a singular matrix gives 0.0), "laplace"
        (cofactor expansion along the first row) or "bareiss"
        (fraction-free elimination, exact for small integer matrices).
    """
    a = _square(A, "determinant")
    if method == "lu":
        try:
            return lu_doolittle(a, pivoting="partial", tolerance=tolerance).det()
        except SingularMatrixError:
            return 0.0
    if method == "laplace":
        if a.shape[0] > LAPLACE_WARN_SIZE:
            logger.warning("det(): Laplace expansion of a %dx%d matrix – O(n!)", *a.shape)
        return _scalar(_laplace(a))
    if method == "bareiss":
        return _scalar(bareiss_determinant(a))
    raise InvalidArgumentError(f"unknown determinant method {method!r}")


def inverse(A, tolerance: Tolerance = DEFAULT_TOLERANCE) -> Matrix:
    """
    Inverse of a square matrix.

    2x2 and 3x3 use the closed-form adjugate; larger matrices solve
    ``A X = I`` with LU and partial pivoting.

    Raises
    ------
    SingularMatrixError
        A is singular to working precision.
    """
    a = _square(A, "inverse")
    n = a.shape[0]
    if n in (2, 3):
        d = _laplace(a)
        tol = scale_tol(a, tolerance.pivot_eps) ** n
        if abs(d) <= tol:
            raise SingularMatrixError(
                f"matrix is singular: determinant {abs(d):.3e}", pivot=float(abs(d)), threshold=tol
            )
        return Matrix._wrap(cofactor_matrix(a).to_numpy().T / d)
    return lu_doolittle(a, pivoting="partial", tolerance=tolerance).inverse()


def minor(A, i: int, j: int):
    """Determinant of A with row i and column j removed."""
    a = _square(A, "minor")
    n = a.shape[0]
    keep = np.arange(n)
    return _scalar(_laplace(a[keep != i][:, keep != j]))


def cofactor_matrix(A) -> Matrix:
    """C[i, j] = (-1)^(i+j) M[i, j]; uses Laplace expansion of every minor."""
    a = _square(A, "cofactor matrix")
    n = a.shape[0]
    C = np.empty_like(a)
    keep = np.arange(n)
    for i in range(n):
        for j in range(n):
            sub = a[keep != i][:, keep != j]
            C[i, j] = ((-1) ** (i + j)) * _laplace(sub)
    return Matrix._wrap(C)


def adj(A) -> Matrix:
    """
    Adjugate (classical adjoint) of a square matrix A.

    Fast path (det ≠ 0): adj(A) = det(A) · A^{-1}
    Slow path (det = 0): cofactor expansion
    """
    a = _square(A, "adjugate")
    d = det(a)
    if d == 0:
        logger.warning("adj(): falling back to cofactor expansion – O(n!)")
        # singular matrix, calculate cofactors
        return cofactor_matrix(a).transpose()

    # If A is nonsingular, use QR
    f = householder_qr(a)
    ain = f.solve(np.eye(a.shape[0], dtype=a.dtype)).to_numpy()
    return Matrix._wrap(d * ain)


def matrix_power(A, k: int) -> Matrix:
    """A^k by repeated squaring; negative k inverts first."""
    a = _square(A, "matrix power")
    if int(k) != k:
        raise InvalidArgumentError(f"matrix_power needs an integer exponent, got {k!r}")
    k = int(k)
    n = a.shape[0]
    if k < 0:
        a = inverse(a).to_numpy()
        k = -k
    result = np.eye(n, dtype=a.dtype)
    base = a
    while k:
        if k & 1:
            result = multiply(result, base)
        k >>= 1
        if k:
            base = multiply(base, base)
    return Matrix._wrap(result)


def cramers_rule(A, b, tolerance: Tolerance = DEFAULT_TOLERANCE) -> Matrix:
    """
    x_i = det(A_i) / det(A), A_i being A with column i replaced by b.

    O(n^4) with LU determinants; meant for small systems.
    """
    a = _square(A, "Cramer solution")
    n = a.shape[0]
    rhs = coerce_rhs(b, n)
    d = det(a, tolerance=tolerance)
    threshold = scale_tol(a, tolerance.pivot_eps)
    if abs(d) <= threshold ** max(n, 1):
        raise SingularMatrixError(
            "Cramer's rule needs a non-singular matrix", pivot=float(abs(d)), threshold=threshold
        )
    x = np.empty((n, rhs.shape[1]), dtype=np.result_type(a, rhs))
    for k in range(rhs.shape[1]):
        for i in range(n):
            ai = a.copy().astype(x.dtype)
            ai[:, i] = rhs[:, k]
            x[i, k] = det(ai, tolerance=tolerance) / d
    return Matrix._wrap(x)
