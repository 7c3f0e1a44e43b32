# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging
from typing import List, Optional, Tuple

import numpy as np

from .config import EPS
from .exceptions import DimensionMismatchError, SingularMatrixError
from .utils import scale_tol

logger = logging.getLogger(__name__)


def _working_dtype(*arrays):
    for a in arrays:
        if a is not None and np.iscomplexobj(a):
            return np.complex128
    return np.float64


def forward_eliminate(
    A: np.ndarray,
    b: Optional[np.ndarray] = None,
    pivot: bool = True,
    eps: float = EPS,
) -> Tuple[np.ndarray, Optional[np.ndarray], List[int], List[int], List[int]]:
    """
    Row-echelon reduction with partial pivoting on an m by n matrix A.

    Parameters
    ----------
    A : np.ndarray               (m, n)
        Coefficient matrix (MUST be ndarray).
    b : np.ndarray | None        (m,) or (m, k)
        Optional right-hand side; same row swaps & updates applied.
    pivot : bool
        If False, no row swaps are performed (rarely useful).
    eps : float
        Relative pivot tolerance, scaled by ``||A||_inf``.

    Returns
    -------
    U      : np.ndarray          (m, n)
        Row-echelon form of A (upper-trapezoidal, not reduced).
    c      : np.ndarray | None
        b after identical row ops (None if b was None).
    pivots : list[int]
        Column indices where pivots were placed; len = rank(A).
    free : list[int]
        Column indices where free variables were placed
    perm   : list[int]
        Final row order: row i of U comes from original row perm[i].
    """
    if not isinstance(A, np.ndarray):
        raise TypeError("A must be a NumPy ndarray")
    if b is not None and not isinstance(b, np.ndarray):
        raise TypeError("b must be a NumPy ndarray or None")

    dtype = _working_dtype(A, b)
    U = A.astype(dtype, copy=True)
    m, n = U.shape

    if b is not None:
        if b.shape[0] != m:
            raise DimensionMismatchError(
                f"right-hand side has {b.shape[0]} rows, expected {m}"
            )
        c = b.astype(dtype)[:, None] if b.ndim == 1 else b.astype(dtype)
    else:
        c = None

    pivot_tol = scale_tol(U, eps)

    perm = list(range(m))  # Identity Permutation
    pivots: List[int] = []
    free: List[int] = []

    row = 0
    for col in range(n):
        if row == m:
            free.extend(range(col, n))
            break
        # The computation we perform will be more stable if we
        # pick the largest possible number for the pivot column.
        col_slice = np.abs(U[row:, col])
        max_idx = int(col_slice.argmax()) if pivot else 0
        max_val = col_slice[max_idx]

        if max_val <= pivot_tol:  # column is numerically zero
            free.append(col)
            continue  # go to next column

        pivot_row = row + max_idx

        # If the pivot row is not our current row, record
        # the permutation, the same operation must be applied
        # to b as well
        if pivot_row != row:
            U[[row, pivot_row]] = U[[pivot_row, row]]
            if c is not None:
                c[[row, pivot_row]] = c[[pivot_row, row]]
            perm[row], perm[pivot_row] = perm[pivot_row], perm[row]

        pivots.append(col)

        # Eliminate entries below the pivot
        factors = U[row + 1 :, col] / U[row, col]
        U[row + 1 :, col:] -= factors[:, None] * U[row, col:]
        if c is not None:
            c[row + 1 :, :] -= factors[:, None] * c[row, :]

        row += 1  # move to next pivot row

    return U, c, pivots, free, perm


def forward_substitute(
    L: np.ndarray,
    c: np.ndarray,
    unit_diagonal: bool = False,
    tol: Optional[float] = None,
) -> np.ndarray:
    """
    Solve ``L y = c`` for lower-triangular L.

    With ``unit_diagonal`` the diagonal of L is assumed to be 1 and never
    read. A 1-D `c` gives a 1-D result.
    """
    L = np.asarray(L)
    c = np.asarray(c)
    vector = c.ndim == 1
    if vector:
        c = c[:, None]
    n, k = c.shape
    if L.shape != (n, n):
        raise DimensionMismatchError(
            f"triangular factor is {L.shape[0]}x{L.shape[1]}, right-hand side has {n} rows"
        )
    y = np.zeros((n, k), dtype=np.result_type(L, c, np.float64))
    if tol is None:
        tol = scale_tol(L)

    for i in range(n):
        s = c[i] - L[i, :i] @ y[:i]
        if unit_diagonal:
            y[i] = s
            continue
        pivot = L[i, i]
        if abs(pivot) <= tol:
            raise SingularMatrixError(
                f"zero on the diagonal of the lower factor at {i}",
                index=i,
                pivot=float(abs(pivot)),
                threshold=tol,
            )
        y[i] = s / pivot

    return y.ravel() if vector else y


def back_substitute(
    U: np.ndarray,
    c: np.ndarray,
    unit_diagonal: bool = False,
    tol: Optional[float] = None,
) -> np.ndarray:
    """
    Parameters
    ----------
    U : (n, n) ndarray
        Upper-triangular matrix (output of forward_eliminate,
        possibly with tiny non-zero sub-diagonal entries).
    c : (n,) or (n,k) ndarray
        RHS after identical row operations.
    unit_diagonal : bool
        Treat the diagonal of U as ones (Crout factors).
    Returns
    -------
    x : (n,) or (n,k) ndarray
        Solution(s) of Ux = c.
    Raises
    ------
    SingularMatrixError : if the system is inconsistent or rank-deficient.
    """
    U = np.asarray(U)
    c = np.asarray(c)

    vector = c.ndim == 1
    if vector:
        # (n,)  →  (n,1)
        c = c[:, None]
    n, k = c.shape
    if U.shape[0] < n or U.shape[1] != n:
        raise DimensionMismatchError(
            f"triangular factor is {U.shape[0]}x{U.shape[1]}, right-hand side has {n} rows"
        )
    x = np.zeros((n, k), dtype=np.result_type(U, c, np.float64))
    if tol is None:
        tol = scale_tol(U)

    for i in reversed(range(n)):
        s = c[i] - U[i, i + 1 : n] @ x[i + 1 :]
        if unit_diagonal:
            x[i] = s
            continue
        pivot = U[i, i]
        if abs(pivot) <= tol:
            if np.any(np.abs(s) > tol):
                msg = "inconsistent system (no solution)"
            else:
                msg = "rank deficient (infinitely many solutions)"
            raise SingularMatrixError(
                msg, index=i, pivot=float(abs(pivot)), threshold=tol
            )
        x[i] = s / pivot

    return x.ravel() if vector else x


def gaussian_solve(A: np.ndarray, b: np.ndarray, pivot=True, eps: float = EPS):
    """
    Solve a square system by elimination and back substitution.

    Raises SingularMatrixError for singular A; use the least-squares or SVD
    solvers for rank-deficient systems.
    """
    m, n = A.shape
    if m != n:
        raise DimensionMismatchError(f"gaussian_solve needs a square matrix, got {m}x{n}")
    U, c, pivots, free, perm = forward_eliminate(A, b, pivot=pivot, eps=eps)
    if free:
        raise SingularMatrixError(
            f"matrix is singular: no pivot in column {free[0]}",
            index=free[0],
            threshold=scale_tol(np.asarray(A), eps),
        )
    x = back_substitute(U, c)
    return x.ravel() if b.ndim == 1 else x


def gauss_jordan_solve(A: np.ndarray, b: np.ndarray, eps: float = EPS) -> np.ndarray:
    """
    Solve ``A x = b`` by reducing ``[A | b]`` to reduced row-echelon form.
    """
    n = A.shape[0]
    if A.shape != (n, n):
        raise DimensionMismatchError(f"gauss_jordan_solve needs a square matrix, got {A.shape}")
    rhs = b[:, None] if b.ndim == 1 else b
    if rhs.shape[0] != n:
        raise DimensionMismatchError(f"right-hand side has {rhs.shape[0]} rows, expected {n}")
    dtype = _working_dtype(A, b)
    aug = np.hstack([A.astype(dtype), rhs.astype(dtype)])
    tol = scale_tol(np.asarray(A), eps)

    for col in range(n):
        p = col + int(np.argmax(np.abs(aug[col:, col])))
        if abs(aug[p, col]) <= tol:
            raise SingularMatrixError(
                f"matrix is singular: no pivot in column {col}",
                index=col,
                pivot=float(abs(aug[p, col])),
                threshold=tol,
            )
        if p != col:
            aug[[col, p]] = aug[[p, col]]
        aug[col] /= aug[col, col]
        others = np.arange(n) != col
        aug[others] -= aug[others, col][:, None] * aug[col]

    x = aug[:, n:]
    return x.ravel() if b.ndim == 1 else x


def bareiss_eliminate(A: np.ndarray, b: Optional[np.ndarray] = None):
    """
    Fraction-free (Bareiss) elimination of a square matrix.

    Every intermediate entry is a minor of A, so integer input stays
    integral up to the final division. Returns the eliminated matrix, the
    transformed right-hand side and the determinant sign from row swaps.
    """
    n = A.shape[0]
    if A.shape != (n, n):
        raise DimensionMismatchError(f"Bareiss elimination needs a square matrix, got {A.shape}")
    dtype = _working_dtype(A, b)
    M = A.astype(dtype, copy=True)
    c = None
    if b is not None:
        c = (b[:, None] if b.ndim == 1 else b).astype(dtype, copy=True)
    sign = 1.0
    prev = 1.0
    for k in range(n - 1):
        if M[k, k] == 0:
            nz = np.flatnonzero(M[k + 1 :, k])
            if nz.size == 0:
                # column is already zero below and on the diagonal
                return M, c, 0.0
            p = k + 1 + int(nz[0])
            M[[k, p]] = M[[p, k]]
            if c is not None:
                c[[k, p]] = c[[p, k]]
            sign = -sign
        piv = M[k, k]
        M[k + 1 :, k + 1 :] = (
            piv * M[k + 1 :, k + 1 :] - np.outer(M[k + 1 :, k], M[k, k + 1 :])
        ) / prev
        if c is not None:
            c[k + 1 :] = (piv * c[k + 1 :] - np.outer(M[k + 1 :, k], c[k])) / prev
        M[k + 1 :, k] = 0
        prev = piv
    return M, c, sign


def bareiss_determinant(A: np.ndarray):
    """Determinant from the last pivot of the Bareiss elimination."""
    n = A.shape[0]
    if n == 0:
        return 1.0
    M, _c, sign = bareiss_eliminate(A)
    return sign * M[n - 1, n - 1]


def bareiss_solve(A: np.ndarray, b: np.ndarray, eps: float = EPS) -> np.ndarray:
    """Solve ``A x = b`` with fraction-free elimination and back substitution."""
    M, c, sign = bareiss_eliminate(A, b)
    if sign == 0.0:
        raise SingularMatrixError("matrix is singular (Bareiss elimination)")
    x = back_substitute(M, c, tol=scale_tol(M, eps))
    return x.ravel() if b.ndim == 1 else x


def rref(A: np.ndarray, eps: float = EPS) -> Tuple[np.ndarray, List[int]]:
    """
    Return the reduced row-echelon form R of A and the
    pivot column list. R has the same shape as A.

    Parameters
    ----------
    A   : (m,n) ndarray

    Returns
    -------
    R       : (m,n) ndarray  (RREF)
    pivots  : list[int]      pivot column indices
    """
    U, _c, pivots, _free, _perm = forward_eliminate(A, pivot=True, eps=eps)

    R = U.copy()
    tol = scale_tol(R, eps)

    # backward sweep: one pass per pivot, from bottom to top
    for r, col in reversed(list(enumerate(pivots))):
        piv_val = R[r, col]
        if abs(piv_val) > tol:
            R[r] /= piv_val  # scale pivot row → 1

        # zero out entries above the pivot
        for i in range(r):
            factor = R[i, col]
            if abs(factor) > tol:
                R[i] -= factor * R[r]

    # zero out tiny noise
    R[np.abs(R) < tol] = 0.0
    return R, pivots


def rank_elimination(A, eps: float = EPS):
    """Matrix rank is the number of pivot columns"""
    pivots = forward_eliminate(np.asarray(A), eps=eps)[2]
    return len(pivots)


def nullspace_basis_elimination(A, eps: float = EPS):
    """
    Constructs a matrix N whose columns form a basis of the nullspace of A

    Returns
    -------
    N : (n, n-r) ndarray
        Columns form a basis of N(A). If A is full rank (r = n) the returned
        array has shape (n, 0).
    """
    U, c, pivots, free, perm = forward_eliminate(A, eps=eps)
    m, n = A.shape
    r = len(pivots)
    if not free:
        # If we have full rank, only Z = {zero vector} is the nullspace
        return np.zeros((n, 0), dtype=U.dtype)

    R = U[:r, pivots]
    N = np.zeros((n, len(free)), dtype=U.dtype)

    # construct one basis vector per free column
    for k, j in enumerate(free):
        z = np.zeros(n, dtype=U.dtype)
        z[j] = 1.0
        z[pivots] = back_substitute(R, -U[:r, j], tol=0.0)
        N[:, k] = z

    return N
