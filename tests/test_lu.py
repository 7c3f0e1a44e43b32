# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging

import numpy as np
import pytest

from denselinalg.exceptions import (
    DimensionMismatchError,
    InvalidArgumentError,
    SingularMatrixError,
)
from denselinalg.lu import lu, lu_crout, lu_doolittle, lu_gauss
from denselinalg.matrix import Matrix
from denselinalg.pivoting import PivotStrategy

logger = logging.getLogger(__name__)

TEST_ITERATIONS = 50
rng = np.random.default_rng(11)

FACTORIZATIONS = [lu_doolittle, lu_crout, lu_gauss]
PIVOTING = ["none", "partial", "complete", "scaled"]


def _diagonally_dominant(n):
    A = rng.uniform(-1, 1, size=(n, n))
    return A + n * np.eye(n)


@pytest.mark.parametrize("factor", FACTORIZATIONS)
@pytest.mark.parametrize("pivoting", PIVOTING)
def test_factors_reproduce_input(factor, pivoting):
    for _ in range(TEST_ITERATIONS):
        n = int(rng.integers(1, 12))
        A = _diagonally_dominant(n)
        f = factor(A, pivoting)

        assert f.L.is_lower_triangular()
        assert f.U.is_upper_triangular()
        PAQ = f.P.to_numpy() @ A @ f.Q.to_numpy()
        np.testing.assert_allclose(PAQ, (f.L @ f.U).to_numpy(), rtol=1e-10, atol=1e-10)
        assert f.is_accurate(A)
        if pivoting != "complete":
            assert f.col_perm.is_identity()


@pytest.mark.parametrize("factor", FACTORIZATIONS)
def test_unit_diagonal_side(factor):
    A = _diagonally_dominant(5)
    f = factor(A, "partial")
    unit = np.diag(f.upper) if factor is lu_crout else np.diag(f.lower)
    np.testing.assert_array_equal(unit, np.ones(5))


def test_doolittle_vandermonde_without_pivoting():
    A = np.array([[4, 2, 1], [16, 4, 1], [64, 8, 1]], dtype=float)
    f = lu_doolittle(A)
    np.testing.assert_allclose(f.lower, [[1, 0, 0], [4, 1, 0], [16, 6, 1]])
    np.testing.assert_allclose(f.upper, [[4, 2, 1], [0, -4, -3], [0, 0, 3]])
    np.testing.assert_allclose((f.L @ f.U).to_numpy(), A)
    assert f.det() == pytest.approx(np.linalg.det(A))


def test_complete_pivoting_small_case():
    f = lu_doolittle([[1, 2], [3, 4]], PivotStrategy.COMPLETE)
    assert f.row_perm.indices == (1, 0)
    assert f.col_perm.indices == (1, 0)
    np.testing.assert_allclose(f.lower, [[1, 0], [0.5, 1]])
    np.testing.assert_allclose(f.upper, [[4, 3], [0, -0.5]])
    assert f.det() == pytest.approx(-2.0)


@pytest.mark.parametrize("factor", FACTORIZATIONS)
@pytest.mark.parametrize("pivoting", ["partial", "complete", "scaled"])
def test_solve_det_inverse(factor, pivoting):
    for _ in range(TEST_ITERATIONS):
        n = int(rng.integers(1, 10))
        A = rng.standard_normal((n, n)) + 2 * np.eye(n)
        if abs(np.linalg.det(A)) < 1e-3:
            continue
        B = rng.standard_normal((n, 3))
        f = factor(A, pivoting)

        np.testing.assert_allclose(f.solve(B).to_numpy(), np.linalg.solve(A, B), rtol=1e-7, atol=1e-8)
        np.testing.assert_allclose(f.inverse().to_numpy(), np.linalg.inv(A), rtol=1e-7, atol=1e-8)
        assert f.det() == pytest.approx(np.linalg.det(A), rel=1e-8)


def test_zero_leading_pivot():
    A = [[0, 1], [1, 1]]
    with pytest.raises(SingularMatrixError) as info:
        lu_doolittle(A, "none")
    assert info.value.index == 0

    f = lu_doolittle(A, "partial")
    assert f.row_perm.indices == (1, 0)
    np.testing.assert_allclose(f.solve([1, 2]).to_numpy(), [[1], [1]])


@pytest.mark.parametrize("factor", FACTORIZATIONS)
@pytest.mark.parametrize("pivoting", PIVOTING)
def test_singular_input_raises(factor, pivoting):
    with pytest.raises(SingularMatrixError):
        factor([[1, 2], [2, 4]], pivoting)


def test_non_square_and_bad_rhs():
    with pytest.raises(DimensionMismatchError):
        lu_doolittle(np.ones((2, 3)))
    f = lu_crout(np.eye(3) * 2, "partial")
    with pytest.raises(DimensionMismatchError):
        f.solve([1, 2])


def test_complex_entries():
    A = np.array([[2 + 1j, 1], [1j, 3 - 1j]])
    b = np.array([[1], [1j]])
    for factor in FACTORIZATIONS:
        f = factor(A, "partial")
        np.testing.assert_allclose(f.solve(b).to_numpy(), np.linalg.solve(A, b), atol=1e-12)
        assert f.det() == pytest.approx(np.linalg.det(A))


def test_factors_are_read_only():
    f = lu_gauss(np.eye(2) * 3)
    with pytest.raises(ValueError):
        f.lower[0, 0] = 5.0
    L = f.L
    L[0, 0] = 5.0
    assert f.lower[0, 0] == 1.0


def test_lu_by_name():
    A = Matrix([[2, 1], [1, 3]])
    assert lu(A).method == "doolittle"
    assert lu(A).pivoting is PivotStrategy.PARTIAL
    assert lu(A, "crout", "complete").method == "crout"
    with pytest.raises(InvalidArgumentError):
        lu(A, "cholesky")
    with pytest.raises(InvalidArgumentError):
        lu(A, "gauss", "rook")
    logger.debug(f"\n{lu(A).reconstruct()}")
