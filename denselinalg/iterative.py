# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Stationary (Jacobi, Gauss-Seidel, SOR) and Krylov (conjugate gradient)
solvers for square systems.

All four stop when ``||x_new - x_old|| <= tol * max(1, ||x_new||)`` or after
`max_iterations`. With ``absolute=True`` the test is ``||x_new - x_old|| < tol``.
Running out of iterations is reported through ``IterativeResult.converged``;
it is never an exception.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .config import DEFAULT_TOLERANCE, Tolerance
from .exceptions import DimensionMismatchError, InvalidArgumentError, SingularMatrixError
from .factorization import coerce_rhs
from .matrix import Matrix, as_array
from .utils import scale_tol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IterativeResult:
    x: Matrix
    converged: bool
    iterations: int
    residual_norm: float
    method: str


def _setup(A, b, x0, tolerance: Tolerance, need_diagonal: bool = True):
    a = as_array(A, copy=False)
    n = a.shape[0]
    if a.shape[1] != n:
        raise DimensionMismatchError(f"iterative solvers need a square matrix, got {a.shape}")
    rhs = coerce_rhs(b, n)
    dtype = np.result_type(a, rhs, np.float64)
    if x0 is None:
        x = np.zeros(rhs.shape, dtype=dtype)
    else:
        x = as_array(x0).astype(dtype)
        if x.shape != rhs.shape:
            raise DimensionMismatchError(
                f"initial guess has shape {x.shape}, expected {rhs.shape}"
            )
    if need_diagonal:
        d = np.diag(a)
        tol = scale_tol(a, tolerance.pivot_eps)
        zero = np.flatnonzero(np.abs(d) <= tol)
        if zero.size:
            i = int(zero[0])
            raise SingularMatrixError(
                f"zero on the diagonal at {i}; reorder the equations first",
                index=i,
                pivot=float(abs(d[i])),
                threshold=tol,
            )
    return a, rhs, x


def _limits(max_iterations, tol, tolerance: Tolerance):
    return (
        tolerance.max_iterations if max_iterations is None else int(max_iterations),
        tolerance.iterative_tol if tol is None else float(tol),
    )


def _converged(x_new: np.ndarray, x_old: np.ndarray, tol: float, absolute: bool = False) -> bool:
    if absolute:
        return np.linalg.norm(x_new - x_old) < tol
    return np.linalg.norm(x_new - x_old) <= tol * max(1.0, float(np.linalg.norm(x_new)))


def _finish(a, rhs, x, converged, iterations, method) -> IterativeResult:
    residual = float(np.linalg.norm(rhs - a @ x))
    if converged:
        logger.debug("%s converged in %d iterations (residual %.3e)", method, iterations, residual)
    else:
        logger.debug("%s stopped after %d iterations without converging", method, iterations)
    return IterativeResult(
        x=Matrix._wrap(x),
        converged=converged,
        iterations=iterations,
        residual_norm=residual,
        method=method,
    )


def jacobi(
    A,
    b,
    x0=None,
    max_iterations: Optional[int] = None,
    tol: Optional[float] = None,
    tolerance: Tolerance = DEFAULT_TOLERANCE,
    absolute: bool = False,
) -> IterativeResult:
    """Jacobi iteration ``x <- D^{-1} (b - (A - D) x)``; converges for diagonally dominant A."""
    a, rhs, x = _setup(A, b, x0, tolerance)
    max_it, tol = _limits(max_iterations, tol, tolerance)
    d = np.diag(a)[:, None]
    off = a - np.diagflat(d)

    for it in range(1, max_it + 1):
        x_new = (rhs - off @ x) / d
        if not np.all(np.isfinite(x_new)):
            return _finish(a, rhs, x, False, it, "jacobi")
        done = _converged(x_new, x, tol, absolute)
        x = x_new
        if done:
            return _finish(a, rhs, x, True, it, "jacobi")
    return _finish(a, rhs, x, False, max_it, "jacobi")


def _sor(a, rhs, x, omega, max_it, tol, method, absolute=False) -> IterativeResult:
    n = a.shape[0]
    for it in range(1, max_it + 1):
        x_old = x.copy()
        for i in range(n):
            sigma = a[i, :i] @ x[:i] + a[i, i + 1 :] @ x_old[i + 1 :]
            x[i] = (1.0 - omega) * x_old[i] + omega * (rhs[i] - sigma) / a[i, i]
        if not np.all(np.isfinite(x)):
            return _finish(a, rhs, x_old, False, it, method)
        if _converged(x, x_old, tol, absolute):
            return _finish(a, rhs, x, True, it, method)
    return _finish(a, rhs, x, False, max_it, method)


def gauss_seidel(
    A,
    b,
    x0=None,
    max_iterations: Optional[int] = None,
    tol: Optional[float] = None,
    tolerance: Tolerance = DEFAULT_TOLERANCE,
    absolute: bool = False,
) -> IterativeResult:
    """Gauss-Seidel: Jacobi that uses each new component as soon as it is known."""
    a, rhs, x = _setup(A, b, x0, tolerance)
    max_it, tol = _limits(max_iterations, tol, tolerance)
    return _sor(a, rhs, x, 1.0, max_it, tol, "gauss_seidel", absolute)


def sor(
    A,
    b,
    omega: float = 1.25,
    x0=None,
    max_iterations: Optional[int] = None,
    tol: Optional[float] = None,
    tolerance: Tolerance = DEFAULT_TOLERANCE,
    absolute: bool = False,
) -> IterativeResult:
    """
    Successive over-relaxation.

    Raises
    ------
    InvalidArgumentError
        `omega` is outside the open interval (0, 2).
    """
    if not 0.0 < omega < 2.0:
        raise InvalidArgumentError(f"SOR relaxation factor must lie in (0, 2), got {omega}")
    a, rhs, x = _setup(A, b, x0, tolerance)
    max_it, tol = _limits(max_iterations, tol, tolerance)
    return _sor(a, rhs, x, float(omega), max_it, tol, "sor", absolute)


def _cg_column(a, b, x, max_it, tol, absolute=False):
    r = b - a @ x
    p = r.copy()
    rr = np.real(np.vdot(r, r))
    for it in range(1, max_it + 1):
        if rr == 0:
            return x, True, it - 1
        ap = a @ p
        pap = np.real(np.vdot(p, ap))
        if not np.isfinite(pap) or pap <= 0:
            # A is not positive definite along p
            return x, False, it
        alpha = rr / pap
        x_new = x + alpha * p
        r = r - alpha * ap
        rr_new = np.real(np.vdot(r, r))
        done = _converged(x_new, x, tol, absolute)
        x = x_new
        if done:
            return x, True, it
        p = r + (rr_new / rr) * p
        rr = rr_new
    return x, False, max_it


def conjugate_gradient(
    A,
    b,
    x0=None,
    max_iterations: Optional[int] = None,
    tol: Optional[float] = None,
    tolerance: Tolerance = DEFAULT_TOLERANCE,
    absolute: bool = False,
) -> IterativeResult:
    """
    Conjugate gradient for symmetric (Hermitian) positive-definite A.

    Each right-hand side column is solved independently; the result is
    converged only if every column converged.
    """
    a, rhs, x = _setup(A, b, x0, tolerance, need_diagonal=False)
    max_it, tol = _limits(max_iterations, tol, tolerance)
    converged = True
    iterations = 0
    for j in range(rhs.shape[1]):
        xj, ok, it = _cg_column(a, rhs[:, j], x[:, j], max_it, tol, absolute)
        x[:, j] = xj
        converged = converged and ok
        iterations = max(iterations, it)
    return _finish(a, rhs, x, converged, iterations, "conjugate_gradient")
