# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging

import numpy as np
import pytest

from denselinalg.config import Tolerance
from denselinalg.exceptions import (
    DimensionMismatchError,
    InvalidArgumentError,
    NotPositiveDefiniteError,
    SingularMatrixError,
)
from denselinalg.matrix import Matrix
from denselinalg.qr import random_ill_conditioned
from denselinalg.solvers import (
    LinearSystemDispatcher,
    SolveMethod,
    least_squares,
    ridge_regression,
    solve,
)

logger = logging.getLogger(__name__)
rng = np.random.default_rng(51)

EXPLICIT = [m for m in SolveMethod if m not in (SolveMethod.AUTO, SolveMethod.RIDGE)]
ITERATIVE = {
    SolveMethod.JACOBI,
    SolveMethod.GAUSS_SEIDEL,
    SolveMethod.SOR,
    SolveMethod.CONJUGATE_GRADIENT,
}


def _dominant_spd(n):
    B = rng.uniform(-1, 1, size=(n, n))
    return B + B.T + 4 * n * np.eye(n)


@pytest.mark.parametrize("method", EXPLICIT, ids=lambda m: m.value)
def test_every_method_solves_a_friendly_system(method):
    A = _dominant_spd(5)
    b = rng.standard_normal((5, 1))
    result = LinearSystemDispatcher().solve(A, b, method)
    assert result.method is method
    assert result.requested is method
    assert not result.fallback
    assert result.x.shape == (5, 1)
    atol = 1e-8 if method in ITERATIVE else 1e-10
    np.testing.assert_allclose(result.x.to_numpy().real, np.linalg.solve(A, b), atol=atol)


def test_symmetric_system_auto_and_cholesky():
    A = Matrix([[4, 1, -1], [1, 4, -1], [-1, -1, 4]])
    b = [[6], [25], [14]]
    x_lu = solve(A, b, "lu")
    np.testing.assert_allclose(x_lu.to_numpy(), np.linalg.solve(A.to_numpy(), np.array(b, float)), atol=1e-12)
    np.testing.assert_array_equal(x_lu.round().to_numpy(), [[1], [7], [6]])

    x_chol = solve(A, b, "cholesky")
    assert x_chol.is_almost_equal(x_lu, 1e-8)

    result = LinearSystemDispatcher().solve(A, b)
    assert result.method is SolveMethod.CHOLESKY
    assert result.requested is SolveMethod.AUTO


def test_auto_nonsymmetric_uses_lu_and_reports_condition():
    A = np.array([[2.0, 1.0, 1.0], [1.0, 3.0, 2.0], [1.0, 0.0, 0.0]])
    b = np.array([4.0, 5.0, 6.0])
    result = LinearSystemDispatcher().solve(A, b)
    assert result.method is SolveMethod.LU
    assert not result.fallback
    assert result.condition_number == pytest.approx(np.linalg.cond(A, 1), rel=1e-10)
    np.testing.assert_allclose(result.x.to_numpy().ravel(), np.linalg.solve(A, b), atol=1e-12)


def test_singular_explicit_raises_auto_falls_back(caplog):
    A = [[1, 2], [2, 4]]
    b = [1, 2]
    with pytest.raises(SingularMatrixError):
        solve(A, b, "lu")
    with pytest.raises(NotPositiveDefiniteError):
        solve(A, b, "cholesky")

    with caplog.at_level(logging.WARNING, logger="denselinalg.solvers"):
        result = LinearSystemDispatcher().solve(A, b)
    assert result.method is SolveMethod.SVD
    assert result.fallback
    assert result.warnings
    assert any(r.levelno == logging.WARNING for r in caplog.records)
    expected = np.linalg.pinv(np.array(A, float)) @ np.array(b, float)
    np.testing.assert_allclose(result.x.to_numpy().ravel(), expected, atol=1e-12)


def test_ill_conditioned_falls_back_to_svd(caplog):
    A = random_ill_conditioned(50, 1e13, seed=7)
    b = rng.standard_normal(50)
    with caplog.at_level(logging.WARNING, logger="denselinalg.solvers"):
        result = LinearSystemDispatcher().solve(A, b)
    assert result.method is SolveMethod.SVD
    assert result.requested is SolveMethod.AUTO
    assert result.fallback
    assert result.condition_number > 1e12
    assert "denselinalg.solvers" in {r.name for r in caplog.records}


def test_condition_threshold_is_configurable():
    A = np.array([[1.0, 0.0], [0.0, 1e-3]])
    A[0, 1] = 0.5  # not symmetric, so auto skips Cholesky
    strict = LinearSystemDispatcher(Tolerance(condition_threshold=100.0))
    assert strict.solve(A, [1, 1]).method is SolveMethod.SVD
    assert LinearSystemDispatcher().solve(A, [1, 1]).method is SolveMethod.LU


def test_auto_tall_and_wide():
    A = rng.standard_normal((8, 3))
    b = rng.standard_normal(8)
    result = LinearSystemDispatcher().solve(A, b)
    assert result.method is SolveMethod.QR
    np.testing.assert_allclose(
        result.x.to_numpy().ravel(), np.linalg.lstsq(A, b, rcond=None)[0], atol=1e-10
    )

    W = rng.standard_normal((3, 6))
    c = rng.standard_normal(3)
    wide = LinearSystemDispatcher().solve(W, c)
    assert wide.method is SolveMethod.SVD
    assert not wide.fallback
    np.testing.assert_allclose(wide.x.to_numpy().ravel(), np.linalg.pinv(W) @ c, atol=1e-10)


def test_auto_tall_rank_deficient_falls_back():
    A = np.ones((4, 2))
    result = LinearSystemDispatcher().solve(A, np.ones(4))
    assert result.method is SolveMethod.SVD
    assert result.fallback
    np.testing.assert_allclose(result.x.to_numpy().ravel(), [0.5, 0.5], atol=1e-12)


def test_iterative_non_convergence_warns(caplog):
    A = [[1.0, 3.0], [3.0, 1.0]]
    with caplog.at_level(logging.WARNING, logger="denselinalg.solvers"):
        result = LinearSystemDispatcher().solve(A, [1, 1], "jacobi", max_iterations=20)
    assert not result.converged
    assert result.iterations == 20
    assert "did not converge" in result.warnings[0]
    assert any("did not converge" in r.getMessage() for r in caplog.records)


def test_iterative_options_are_forwarded():
    A = _dominant_spd(4)
    result = LinearSystemDispatcher().solve(A, np.ones(4), "sor", omega=1.1)
    assert result.converged
    with pytest.raises(InvalidArgumentError):
        LinearSystemDispatcher().solve(A, np.ones(4), "sor", omega=3.0)


def test_ridge_regression():
    A = rng.standard_normal((10, 4))
    b = rng.standard_normal((10, 1))
    alpha = 0.7
    expected = np.linalg.solve(A.T @ A + alpha * np.eye(4), A.T @ b)
    np.testing.assert_allclose(ridge_regression(A, b, alpha).to_numpy(), expected, atol=1e-10)
    np.testing.assert_allclose(
        solve(A, b, "ridge", alpha=alpha).to_numpy(), expected, atol=1e-10
    )
    np.testing.assert_allclose(
        least_squares(A, b).to_numpy(), np.linalg.lstsq(A, b, rcond=None)[0], atol=1e-8
    )
    with pytest.raises(InvalidArgumentError):
        ridge_regression(A, b, -1.0)
    with pytest.raises(InvalidArgumentError):
        solve(A, b, "ridge")


def test_invalid_method_and_shapes():
    with pytest.raises(InvalidArgumentError):
        solve(np.eye(2), [1, 1], "magic")
    with pytest.raises(DimensionMismatchError):
        solve(np.eye(3), [1, 1])


def test_matrix_linear_accessor():
    A = Matrix([[3, 1], [1, 2]])
    b = [9, 8]
    expected = np.linalg.solve(A.to_numpy(), np.array(b, float))
    np.testing.assert_allclose(A.linear.solve(b).to_numpy().ravel(), expected)
    np.testing.assert_allclose(A.linear.solve(b, method="qr").to_numpy().ravel(), expected)
    assert A.linear.solve_detailed(b).method is SolveMethod.CHOLESKY
    np.testing.assert_allclose(A.linear.gauss_seidel(b).x.to_numpy().ravel(), expected)
    np.testing.assert_allclose(A.linear.conjugate_gradient(b).x.to_numpy().ravel(), expected)
    np.testing.assert_allclose(A.linear.cramers_rule(b).to_numpy().ravel(), expected)
    np.testing.assert_allclose(A.linear.bareiss(b).to_numpy().ravel(), expected)
    np.testing.assert_allclose(A.linear.gauss_jordan(b).to_numpy().ravel(), expected)
    np.testing.assert_allclose(A.linear.ridge_regression(b, 0.0).to_numpy().ravel(), expected)


def test_matrix_decomposition_accessor():
    A = Matrix([[4, 2, 1], [16, 4, 1], [64, 8, 1]])
    d = A.decomposition
    assert d.lu_doolittle().is_accurate(A)
    assert d.lu_doolittle_partial_pivoting().row_perm.indices[0] == 2
    assert d.lu_doolittle_complete_pivoting().is_accurate(A)
    assert d.lu_crout().unit_upper
    assert d.lu_crout_partial_pivoting().is_accurate(A)
    assert d.lu_gauss().is_accurate(A)
    assert d.qr_householder().is_accurate(A)
    assert d.qr_gram_schmidt(reorthogonalize=True).is_accurate(A)
    assert d.lq().is_accurate(A)
    assert d.svd().is_accurate(A)
    assert d.schur().is_accurate(A)
    assert d.eigen().verify(A)
    assert d.hessenberg().Q.is_orthogonal()
    assert d.condition_number() == pytest.approx(np.linalg.cond(A.to_numpy()), rel=1e-8)
    with pytest.raises(NotPositiveDefiniteError):
        d.cholesky()
