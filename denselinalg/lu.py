# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
LU factorizations ``P A Q = L U``.

Three orderings of the same elimination are provided:

* Doolittle  - unit lower L, rows of U computed first (left-looking)
* Crout      - unit upper U, columns of L computed first
* Gauss      - classical right-looking elimination with Schur updates

Each accepts any `PivotStrategy`. Only COMPLETE pivoting permutes
columns; for the others ``Q`` is the identity.
"""

import logging
from dataclasses import dataclass
from typing import List, Union

import numpy as np

from .config import DEFAULT_TOLERANCE, Tolerance
from .elimination import back_substitute, forward_substitute
from .exceptions import DimensionMismatchError, InvalidArgumentError
from .factorization import Factorization, coerce_rhs, freeze
from .matrix import Matrix, as_array
from .pivoting import Permutation, PivotStrategy, select_pivot
from .utils import scale_tol

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class LUDecomposition(Factorization):
    """
    Result of an LU factorization.

    Attributes
    ----------
    lower, upper : ndarray (read-only)
        Triangular factors. Doolittle/Gauss give a unit-diagonal `lower`,
        Crout a unit-diagonal `upper`.
    row_perm, col_perm : Permutation
        ``A[row_perm][:, col_perm] == lower @ upper``.
    method : str
        "doolittle", "crout" or "gauss".
    pivoting : PivotStrategy
    """

    lower: np.ndarray
    upper: np.ndarray
    row_perm: Permutation
    col_perm: Permutation
    method: str
    pivoting: PivotStrategy

    @property
    def L(self) -> Matrix:
        return Matrix._wrap(self.lower.copy())

    @property
    def U(self) -> Matrix:
        return Matrix._wrap(self.upper.copy())

    @property
    def P(self) -> Matrix:
        return Matrix._wrap(self.row_perm.as_matrix())

    @property
    def Q(self) -> Matrix:
        return Matrix._wrap(self.col_perm.as_matrix(columns=True))

    @property
    def n(self) -> int:
        return self.lower.shape[0]

    @property
    def unit_upper(self) -> bool:
        return self.method == "crout"

    def det(self):
        """sign(P) sign(Q) prod(diag L) prod(diag U)."""
        d = np.prod(np.diag(self.lower)) * np.prod(np.diag(self.upper))
        value = self.row_perm.sign() * self.col_perm.sign() * d
        return value.item() if isinstance(value, np.generic) else value

    def _solve_array(self, b: np.ndarray) -> np.ndarray:
        rows = list(self.row_perm.indices)
        cols = list(self.col_perm.indices)
        # pivots were checked during factorization
        y = forward_substitute(
            self.lower, b[rows], unit_diagonal=not self.unit_upper, tol=0.0
        )
        z = back_substitute(self.upper, y, unit_diagonal=self.unit_upper, tol=0.0)
        x = np.empty_like(z)
        x[cols] = z
        return x

    def solve(self, B) -> Matrix:
        b = coerce_rhs(B, self.n)
        return Matrix._wrap(self._solve_array(b))

    def inverse(self) -> Matrix:
        return Matrix._wrap(self._solve_array(np.eye(self.n, dtype=self.lower.dtype)))

    def reconstruct(self) -> Matrix:
        """``P^T L U Q^T``."""
        LU = self.lower @ self.upper
        A = np.empty_like(LU)
        A[np.ix_(list(self.row_perm.indices), list(self.col_perm.indices))] = LU
        return Matrix._wrap(A)


def _prepare(A, pivoting, tolerance: Tolerance):
    a = as_array(A)
    m, n = a.shape
    if m != n:
        raise DimensionMismatchError(f"LU factorization needs a square matrix, got {m}x{n}")
    strategy = PivotStrategy.parse(pivoting)
    threshold = scale_tol(a, tolerance.pivot_eps)
    scales = np.max(np.abs(a), axis=1) if n else np.zeros(0)
    return a, n, strategy, threshold, scales


def _swap_rows(k: int, r: int, rows: List[int], *arrays):
    if r == k:
        return
    rows[k], rows[r] = rows[r], rows[k]
    for arr in arrays:
        arr[[k, r]] = arr[[r, k]]


def _swap_cols(k: int, c: int, cols: List[int], *arrays):
    if c == k:
        return
    cols[k], cols[c] = cols[c], cols[k]
    for arr in arrays:
        arr[:, [k, c]] = arr[:, [c, k]]


def _result(L, U, rows, cols, method, strategy) -> LUDecomposition:
    logger.debug(
        "LU (%s, %s pivoting) of %dx%d done; row perm %s col perm %s",
        method,
        strategy.value,
        L.shape[0],
        L.shape[0],
        rows,
        cols,
    )
    return LUDecomposition(
        lower=freeze(L),
        upper=freeze(U),
        row_perm=Permutation(tuple(rows)),
        col_perm=Permutation(tuple(cols)),
        method=method,
        pivoting=strategy,
    )


def lu_doolittle(
    A,
    pivoting: Union[str, PivotStrategy] = PivotStrategy.NONE,
    tolerance: Tolerance = DEFAULT_TOLERANCE,
) -> LUDecomposition:
    """
    Doolittle factorization: unit lower-triangular L.

    Step k first fixes the pivot, then computes row k of U and column k of
    L from the rows/columns already finished (left-looking).

    Raises
    ------
    DimensionMismatchError
        A is not square.
    SingularMatrixError
        The selected pivot at some step is numerically zero.
    """
    a, n, strategy, threshold, scales = _prepare(A, pivoting, tolerance)
    L = np.zeros((n, n), dtype=a.dtype)
    U = np.zeros((n, n), dtype=a.dtype)
    rows, cols = list(range(n)), list(range(n))

    for k in range(n):
        if strategy is PivotStrategy.COMPLETE:
            S = a[k:, k:] - L[k:, :k] @ U[:k, k:]
            r, c = select_pivot(S, strategy, threshold, step=k)
            _swap_rows(k, k + r, rows, a, L)
            _swap_cols(k, k + c, cols, a, U)
        else:
            v = a[k:, k] - L[k:, :k] @ U[:k, k]
            r, _ = select_pivot(v[:, None], strategy, threshold, scales=scales[k:], step=k)
            _swap_rows(k, k + r, rows, a, L, scales)

        U[k, k:] = a[k, k:] - L[k, :k] @ U[:k, k:]
        L[k, k] = 1.0
        L[k + 1 :, k] = (a[k + 1 :, k] - L[k + 1 :, :k] @ U[:k, k]) / U[k, k]

    return _result(L, U, rows, cols, "doolittle", strategy)


def lu_crout(
    A,
    pivoting: Union[str, PivotStrategy] = PivotStrategy.NONE,
    tolerance: Tolerance = DEFAULT_TOLERANCE,
) -> LUDecomposition:
    """
    Crout factorization: unit upper-triangular U, the pivots live on the
    diagonal of L. Column k of L is computed before row k of U.
    """
    a, n, strategy, threshold, scales = _prepare(A, pivoting, tolerance)
    L = np.zeros((n, n), dtype=a.dtype)
    U = np.zeros((n, n), dtype=a.dtype)
    rows, cols = list(range(n)), list(range(n))

    for k in range(n):
        if strategy is PivotStrategy.COMPLETE:
            S = a[k:, k:] - L[k:, :k] @ U[:k, k:]
            r, c = select_pivot(S, strategy, threshold, step=k)
            _swap_rows(k, k + r, rows, a, L)
            _swap_cols(k, k + c, cols, a, U)
        else:
            v = a[k:, k] - L[k:, :k] @ U[:k, k]
            r, _ = select_pivot(v[:, None], strategy, threshold, scales=scales[k:], step=k)
            _swap_rows(k, k + r, rows, a, L, scales)

        L[k:, k] = a[k:, k] - L[k:, :k] @ U[:k, k]
        U[k, k] = 1.0
        U[k, k + 1 :] = (a[k, k + 1 :] - L[k, :k] @ U[:k, k + 1 :]) / L[k, k]

    return _result(L, U, rows, cols, "crout", strategy)


def lu_gauss(
    A,
    pivoting: Union[str, PivotStrategy] = PivotStrategy.SCALED,
    tolerance: Tolerance = DEFAULT_TOLERANCE,
) -> LUDecomposition:
    """
    Gaussian elimination as an LU factorization (right-looking).

    The trailing block is updated after every step, so the multipliers of
    step k see the fully reduced column. Defaults to scaled partial
    pivoting.
    """
    a, n, strategy, threshold, scales = _prepare(A, pivoting, tolerance)
    W = a
    L = np.zeros((n, n), dtype=a.dtype)
    rows, cols = list(range(n)), list(range(n))

    for k in range(n):
        r, c = select_pivot(W[k:, k:], strategy, threshold, scales=scales[k:], step=k)
        _swap_rows(k, k + r, rows, W, L, scales)
        _swap_cols(k, k + c, cols, W)

        L[k, k] = 1.0
        L[k + 1 :, k] = W[k + 1 :, k] / W[k, k]
        W[k + 1 :, k:] -= np.outer(L[k + 1 :, k], W[k, k:])

    return _result(L, np.triu(W), rows, cols, "gauss", strategy)


_METHODS = {
    "doolittle": lu_doolittle,
    "crout": lu_crout,
    "gauss": lu_gauss,
}


def lu(
    A,
    method: str = "doolittle",
    pivoting: Union[str, PivotStrategy] = PivotStrategy.PARTIAL,
    tolerance: Tolerance = DEFAULT_TOLERANCE,
) -> LUDecomposition:
    """LU factorization by name: ``lu(A, "crout", "complete")``."""
    try:
        fn = _METHODS[method]
    except KeyError as e:
        raise InvalidArgumentError(
            f"unknown LU method {method!r} (choose from {', '.join(_METHODS)})"
        ) from e
    return fn(A, pivoting=pivoting, tolerance=tolerance)
