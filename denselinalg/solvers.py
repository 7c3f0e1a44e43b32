# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Solving ``A x = b``: one entry point, many methods.

``method="auto"`` picks a factorization from the shape and the numbers of
A and falls back to the SVD when A turns out singular or ill-conditioned.
Every explicit method runs exactly that algorithm and lets its errors
propagate.

Example
-------
>>> from denselinalg import LinearSystemDispatcher, Matrix
>>> A = Matrix([[4, 1], [1, 3]])
>>> result = LinearSystemDispatcher().solve(A, [1, 2])
>>> result.method
<SolveMethod.CHOLESKY: 'cholesky'>
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np

from . import iterative
from .cholesky import cholesky
from .config import DEFAULT_TOLERANCE, Tolerance
from .conditioning import norm
from .eigen import eigen, schur
from .elimination import bareiss_solve, gauss_jordan_solve
from .exceptions import (
    InvalidArgumentError,
    NotPositiveDefiniteError,
    SingularMatrixError,
)
from .factorization import coerce_rhs
from .lu import lu_crout, lu_doolittle, lu_gauss
from .matrix import Matrix, as_array
from .matrix_functions import cramers_rule, inverse
from .pivoting import PivotStrategy
from .qr import gram_schmidt_qr, householder_qr, lq_decomposition
from .svd import svd
from .utils import is_hermitian

logger = logging.getLogger(__name__)


class SolveMethod(str, Enum):
    AUTO = "auto"
    LU = "lu"
    LU_DOOLITTLE = "lu_doolittle"
    LU_COMPLETE = "lu_complete"
    LU_CROUT = "lu_crout"
    GAUSS = "gauss"
    QR = "qr"
    QR_GRAM_SCHMIDT = "qr_gram_schmidt"
    LQ = "lq"
    CHOLESKY = "cholesky"
    EIGEN = "eigen"
    SCHUR = "schur"
    SVD = "svd"
    JACOBI = "jacobi"
    GAUSS_SEIDEL = "gauss_seidel"
    SOR = "sor"
    CONJUGATE_GRADIENT = "conjugate_gradient"
    RIDGE = "ridge"
    CRAMER = "cramer"
    BAREISS = "bareiss"
    GAUSS_JORDAN = "gauss_jordan"
    INVERSE = "inverse"
    LEAST_SQUARES = "least_squares"

    @classmethod
    def parse(cls, value: Union[str, "SolveMethod"]) -> "SolveMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as e:
            choices = ", ".join(m.value for m in cls)
            raise InvalidArgumentError(
                f"unknown solve method {value!r} (choose from {choices})"
            ) from e


_ITERATIVE = {
    SolveMethod.JACOBI: iterative.jacobi,
    SolveMethod.GAUSS_SEIDEL: iterative.gauss_seidel,
    SolveMethod.SOR: iterative.sor,
    SolveMethod.CONJUGATE_GRADIENT: iterative.conjugate_gradient,
}


@dataclass(frozen=True)
class SolveResult:
    """
    Solution plus a record of how it was obtained.

    `method` is the algorithm that produced `x`; it differs from
    `requested` only when ``auto`` fell back to the SVD (`fallback` is then
    True and `warnings` says why).
    """

    x: Matrix
    method: SolveMethod
    requested: SolveMethod
    converged: bool = True
    iterations: Optional[int] = None
    condition_number: Optional[float] = None
    fallback: bool = False
    warnings: Tuple[str, ...] = field(default_factory=tuple)


def ridge_regression(A, b, alpha: float, tolerance: Tolerance = DEFAULT_TOLERANCE) -> Matrix:
    """
    Tikhonov-regularised least squares: ``(A^H A + alpha I) x = A^H b``.

    Raises
    ------
    InvalidArgumentError
        alpha < 0.
    NotPositiveDefiniteError
        alpha == 0 and A has dependent columns.
    """
    if alpha < 0:
        raise InvalidArgumentError(f"ridge parameter alpha must be >= 0, got {alpha}")
    a = as_array(A, copy=False)
    rhs = coerce_rhs(b, a.shape[0])
    ah = a.conj().T
    gram = ah @ a + alpha * np.eye(a.shape[1])
    return cholesky(gram, tolerance).solve(ah @ rhs)


def least_squares(A, b, tolerance: Tolerance = DEFAULT_TOLERANCE) -> Matrix:
    """
    Least squares through the normal equations ``A^H A x = A^H b``.

    Squares the condition number; prefer ``method="qr"`` for ill-conditioned
    problems.
    """
    return ridge_regression(A, b, 0.0, tolerance)


class LinearSystemDispatcher:
    """
    Chooses and runs a solver for ``A x = b``.

    Parameters
    ----------
    tolerance : Tolerance
        Thresholds for every algorithm; ``condition_threshold`` decides
        when ``auto`` abandons LU for the SVD.
    """

    def __init__(self, tolerance: Tolerance = DEFAULT_TOLERANCE):
        self.tolerance = tolerance

    # ------------------------------------------------------------------
    def solve(self, A, b, method: Union[str, SolveMethod] = SolveMethod.AUTO, **options) -> SolveResult:
        """
        Solve ``A x = b``.

        Options are passed to the chosen method: ``pivoting`` for the LU
        methods, ``omega``, ``x0``, ``max_iterations`` and ``tol`` for the
        iterative ones, ``alpha`` for ridge.
        """
        requested = SolveMethod.parse(method)
        a = as_array(A, copy=False)
        rhs = coerce_rhs(b, a.shape[0])
        if requested is SolveMethod.AUTO:
            return self._auto(a, rhs)
        if requested in _ITERATIVE:
            return self._iterative(requested, a, rhs, options)
        x = self._direct(requested, a, rhs, options)
        return SolveResult(x=x, method=requested, requested=requested)

    # ------------------------------------------------------------------
    def _direct(self, method: SolveMethod, a, rhs, options) -> Matrix:
        tol = self.tolerance
        pivoting = options.get("pivoting")
        if method is SolveMethod.LU:
            return lu_doolittle(a, pivoting or PivotStrategy.PARTIAL, tol).solve(rhs)
        if method is SolveMethod.LU_DOOLITTLE:
            return lu_doolittle(a, pivoting or PivotStrategy.NONE, tol).solve(rhs)
        if method is SolveMethod.LU_COMPLETE:
            return lu_doolittle(a, PivotStrategy.COMPLETE, tol).solve(rhs)
        if method is SolveMethod.LU_CROUT:
            return lu_crout(a, pivoting or PivotStrategy.PARTIAL, tol).solve(rhs)
        if method is SolveMethod.GAUSS:
            return lu_gauss(a, pivoting or PivotStrategy.SCALED, tol).solve(rhs)
        if method is SolveMethod.QR:
            return householder_qr(a, tolerance=tol).solve(rhs)
        if method is SolveMethod.QR_GRAM_SCHMIDT:
            return gram_schmidt_qr(a, reorthogonalize=True, tolerance=tol).solve(rhs)
        if method is SolveMethod.LQ:
            return lq_decomposition(a, tol).solve(rhs)
        if method is SolveMethod.CHOLESKY:
            return cholesky(a, tol).solve(rhs)
        if method is SolveMethod.EIGEN:
            return eigen(a, tol).solve(rhs)
        if method is SolveMethod.SCHUR:
            return schur(a, tol).solve(rhs)
        if method is SolveMethod.SVD:
            return svd(a, tol).solve(rhs)
        if method is SolveMethod.RIDGE:
            if "alpha" not in options:
                raise InvalidArgumentError("ridge needs an 'alpha' option")
            return ridge_regression(a, rhs, float(options["alpha"]), tol)
        if method is SolveMethod.CRAMER:
            return cramers_rule(a, rhs, tol)
        if method is SolveMethod.BAREISS:
            return Matrix._wrap(bareiss_solve(a, rhs, tol.pivot_eps))
        if method is SolveMethod.GAUSS_JORDAN:
            return Matrix._wrap(gauss_jordan_solve(a, rhs, tol.pivot_eps))
        if method is SolveMethod.INVERSE:
            return inverse(a, tol) @ rhs
        if method is SolveMethod.LEAST_SQUARES:
            return least_squares(a, rhs, tol)
        raise InvalidArgumentError(f"no solver registered for {method.value!r}")

    def _iterative(self, method: SolveMethod, a, rhs, options) -> SolveResult:
        fn = _ITERATIVE[method]
        result = fn(a, rhs, tolerance=self.tolerance, **options)
        warnings = ()
        if not result.converged:
            msg = (
                f"{method.value} did not converge in {result.iterations} iterations "
                f"(residual {result.residual_norm:.3e})"
            )
            logger.warning(msg)
            warnings = (msg,)
        return SolveResult(
            x=result.x,
            method=method,
            requested=method,
            converged=result.converged,
            iterations=result.iterations,
            warnings=warnings,
        )

    def _svd_fallback(self, a, rhs, reason: str) -> SolveResult:
        logger.warning("auto solver: %s; using the SVD minimum-norm solution", reason)
        f = svd(a, self.tolerance)
        return SolveResult(
            x=f.solve(rhs),
            method=SolveMethod.SVD,
            requested=SolveMethod.AUTO,
            condition_number=f.condition_number(),
            fallback=True,
            warnings=(reason,),
        )

    def _auto(self, a, rhs) -> SolveResult:
        m, n = a.shape
        tol = self.tolerance

        if m > n:
            try:
                x = householder_qr(a, tolerance=tol).solve(rhs)
            except SingularMatrixError as e:
                return self._svd_fallback(a, rhs, f"overdetermined system is rank deficient ({e})")
            return SolveResult(x=x, method=SolveMethod.QR, requested=SolveMethod.AUTO)

        if m < n:
            f = svd(a, tol)
            return SolveResult(
                x=f.solve(rhs),
                method=SolveMethod.SVD,
                requested=SolveMethod.AUTO,
                condition_number=f.condition_number(),
            )

        if is_hermitian(a, tol.symmetry_tol):
            try:
                x = cholesky(a, tol).solve(rhs)
            except NotPositiveDefiniteError as e:
                logger.debug("auto solver: Cholesky rejected the matrix (%s), trying LU", e)
            else:
                return SolveResult(x=x, method=SolveMethod.CHOLESKY, requested=SolveMethod.AUTO)

        try:
            f = lu_doolittle(a, PivotStrategy.PARTIAL, tol)
        except SingularMatrixError as e:
            return self._svd_fallback(a, rhs, f"matrix is singular ({e})")

        cond = norm(a, "1") * norm(f.inverse(), "1")
        if not np.isfinite(cond) or cond > tol.condition_threshold:
            return self._svd_fallback(
                a, rhs, f"matrix is ill-conditioned (cond_1 = {cond:.3e})"
            )
        return SolveResult(
            x=f.solve(rhs),
            method=SolveMethod.LU,
            requested=SolveMethod.AUTO,
            condition_number=cond,
        )


def solve(A, b, method: Union[str, SolveMethod] = SolveMethod.AUTO, **options) -> Matrix:
    """Shortcut for ``LinearSystemDispatcher().solve(...).x``."""
    tolerance = options.pop("tolerance", DEFAULT_TOLERANCE)
    return LinearSystemDispatcher(tolerance).solve(A, b, method, **options).x
