# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Method-style access to the decompositions and solvers of one matrix::

    A.decomposition.lu_doolittle_partial_pivoting().solve(b)
    A.linear.solve(b, method="qr")
"""

from . import iterative
from .cholesky import cholesky
from .conditioning import condition_number
from .config import DEFAULT_TOLERANCE, Tolerance
from .eigen import eigen, hessenberg, schur
from .elimination import bareiss_solve, gauss_jordan_solve
from .factorization import coerce_rhs
from .lu import lu_crout, lu_doolittle, lu_gauss
from .matrix import Matrix
from .matrix_functions import cramers_rule
from .pivoting import PivotStrategy
from .qr import gram_schmidt_qr, householder_qr, lq_decomposition
from .solvers import LinearSystemDispatcher, least_squares, ridge_regression
from .svd import svd


class MatrixDecomposition:
    """Named decompositions of a bound matrix."""

    def __init__(self, matrix: Matrix, tolerance: Tolerance = DEFAULT_TOLERANCE):
        self._matrix = matrix
        self.tolerance = tolerance

    def lu_doolittle(self):
        return lu_doolittle(self._matrix, PivotStrategy.NONE, self.tolerance)

    def lu_doolittle_partial_pivoting(self):
        return lu_doolittle(self._matrix, PivotStrategy.PARTIAL, self.tolerance)

    def lu_doolittle_complete_pivoting(self):
        return lu_doolittle(self._matrix, PivotStrategy.COMPLETE, self.tolerance)

    def lu_crout(self):
        return lu_crout(self._matrix, PivotStrategy.NONE, self.tolerance)

    def lu_crout_partial_pivoting(self):
        return lu_crout(self._matrix, PivotStrategy.PARTIAL, self.tolerance)

    def lu_gauss(self, pivoting=PivotStrategy.SCALED):
        return lu_gauss(self._matrix, pivoting, self.tolerance)

    def qr_gram_schmidt(self, modified: bool = True, reorthogonalize: bool = False):
        return gram_schmidt_qr(self._matrix, modified, reorthogonalize, self.tolerance)

    def qr_householder(self, mode: str = "reduced"):
        return householder_qr(self._matrix, mode, self.tolerance)

    def lq(self):
        return lq_decomposition(self._matrix, self.tolerance)

    def cholesky(self):
        return cholesky(self._matrix, self.tolerance)

    def eigen(self):
        return eigen(self._matrix, self.tolerance)

    def schur(self):
        return schur(self._matrix, self.tolerance)

    def hessenberg(self):
        return hessenberg(self._matrix)

    def svd(self):
        return svd(self._matrix, self.tolerance)

    def condition_number(self, kind="2") -> float:
        return condition_number(self._matrix, kind, self.tolerance)


class LinearSystemSolvers:
    """Solvers for ``A x = b`` with A bound."""

    def __init__(self, matrix: Matrix, tolerance: Tolerance = DEFAULT_TOLERANCE):
        self._matrix = matrix
        self.tolerance = tolerance

    def solve(self, b, method="auto", **options) -> Matrix:
        return self.solve_detailed(b, method, **options).x

    def solve_detailed(self, b, method="auto", **options):
        return LinearSystemDispatcher(self.tolerance).solve(self._matrix, b, method, **options)

    def ridge_regression(self, b, alpha: float) -> Matrix:
        return ridge_regression(self._matrix, b, alpha, self.tolerance)

    def least_squares(self, b) -> Matrix:
        return least_squares(self._matrix, b, self.tolerance)

    def jacobi(self, b, **options):
        return iterative.jacobi(self._matrix, b, tolerance=self.tolerance, **options)

    def gauss_seidel(self, b, **options):
        return iterative.gauss_seidel(self._matrix, b, tolerance=self.tolerance, **options)

    def sor(self, b, omega: float = 1.25, **options):
        return iterative.sor(self._matrix, b, omega, tolerance=self.tolerance, **options)

    def conjugate_gradient(self, b, **options):
        return iterative.conjugate_gradient(self._matrix, b, tolerance=self.tolerance, **options)

    def cramers_rule(self, b) -> Matrix:
        return cramers_rule(self._matrix, b, self.tolerance)

    def bareiss(self, b) -> Matrix:
        a = self._matrix.to_numpy()
        return Matrix._wrap(bareiss_solve(a, coerce_rhs(b, a.shape[0]), self.tolerance.pivot_eps))

    def gauss_jordan(self, b) -> Matrix:
        a = self._matrix.to_numpy()
        return Matrix._wrap(gauss_jordan_solve(a, coerce_rhs(b, a.shape[0]), self.tolerance.pivot_eps))
