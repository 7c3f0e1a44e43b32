# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging
from dataclasses import dataclass

import numpy as np

from .config import DEFAULT_TOLERANCE, Tolerance
from .elimination import back_substitute, forward_substitute
from .exceptions import DimensionMismatchError, NotPositiveDefiniteError
from .factorization import Factorization, coerce_rhs, freeze
from .matrix import Matrix, as_array
from .utils import is_hermitian, scale_tol

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class CholeskyDecomposition(Factorization):
    """A = L L^H with L lower-triangular and a positive real diagonal."""

    l: np.ndarray

    @property
    def L(self) -> Matrix:
        return Matrix._wrap(self.l.copy())

    @property
    def n(self) -> int:
        return self.l.shape[0]

    def _solve_array(self, b: np.ndarray) -> np.ndarray:
        y = forward_substitute(self.l, b, tol=0.0)
        return back_substitute(self.l.conj().T, y, tol=0.0)

    def solve(self, B) -> Matrix:
        """Forward substitution with L, back substitution with L^H."""
        return Matrix._wrap(self._solve_array(coerce_rhs(B, self.n)))

    def det(self) -> float:
        return float(np.prod(np.diag(self.l).real) ** 2)

    def log_det(self) -> float:
        """log det(A), finite even when det(A) under/overflows."""
        return float(2.0 * np.sum(np.log(np.diag(self.l).real)))

    def inverse(self) -> Matrix:
        return Matrix._wrap(self._solve_array(np.eye(self.n, dtype=self.l.dtype)))

    def reconstruct(self) -> Matrix:
        return Matrix._wrap(self.l @ self.l.conj().T)


def cholesky(A, tolerance: Tolerance = DEFAULT_TOLERANCE) -> CholeskyDecomposition:
    """
    Cholesky factorization of a symmetric (Hermitian) positive-definite A.

    Column j of L::

        L[j, j] = sqrt(a_jj - sum_k |L[j, k]|^2)
        L[i, j] = (a_ij - sum_k L[i, k] conj(L[j, k])) / L[j, j]

    Raises
    ------
    DimensionMismatchError
        A is not square.
    NotPositiveDefiniteError
        A is not symmetric/Hermitian, or a pivot ``a_jj - sum |L_jk|^2`` is
        not above the pivot threshold. `index` gives the failing column.
    """
    a = as_array(A)
    m, n = a.shape
    if m != n:
        raise DimensionMismatchError(f"Cholesky needs a square matrix, got {m}x{n}")
    if not is_hermitian(a, tolerance.symmetry_tol):
        raise NotPositiveDefiniteError("matrix is not symmetric (Hermitian)")

    threshold = scale_tol(a, tolerance.pivot_eps)
    L = np.zeros_like(a)
    for j in range(n):
        row = L[j, :j]
        d = (a[j, j] - np.vdot(row, row)).real
        if d <= threshold:
            raise NotPositiveDefiniteError(
                f"matrix is not positive definite: pivot {d:.3e} at column {j}",
                index=j,
                pivot=float(d),
            )
        L[j, j] = np.sqrt(d)
        L[j + 1 :, j] = (a[j + 1 :, j] - L[j + 1 :, :j] @ row.conj()) / L[j, j]

    logger.debug("cholesky: %dx%d factorized", n, n)
    return CholeskyDecomposition(l=freeze(L))


def is_positive_definite(A, tolerance: Tolerance = DEFAULT_TOLERANCE) -> bool:
    """True when `cholesky` succeeds; never raises for numeric input."""
    a = as_array(A)
    if a.shape[0] != a.shape[1]:
        return False
    try:
        cholesky(a, tolerance)
    except NotPositiveDefiniteError:
        return False
    return True
