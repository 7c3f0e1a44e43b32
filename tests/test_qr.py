# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
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
from denselinalg.qr import (
    gram_schmidt_qr,
    householder_qr,
    least_squares_qr,
    lq_decomposition,
    random_ill_conditioned,
    random_nonsingular_qr,
)

TEST_ITERATIONS = 50
logger = logging.getLogger(__name__)
rng = np.random.default_rng(17)


def test_least_squares_qr():
    n = TEST_ITERATIONS

    for i in range(n):
        logger.debug("==============================")
        m, k = int(rng.integers(5, 40)), int(rng.integers(1, 5))
        A = rng.standard_normal((m, k))
        b = rng.standard_normal(m)

        x_np, *_ = np.linalg.lstsq(A, b, rcond=None)
        x_householder = least_squares_qr(A, b).to_numpy().ravel()
        x_gram_schmidt = least_squares_qr(A, b, method="gram_schmidt").to_numpy().ravel()

        res_np = np.linalg.norm(A @ x_np - b)
        res_householder = np.linalg.norm(A @ x_householder - b)
        res_gram_schmidt = np.linalg.norm(A @ x_gram_schmidt - b)
        assert res_householder <= res_np * (1 + 1e-8)
        assert res_gram_schmidt <= res_np * (1 + 1e-8)
        np.testing.assert_allclose(x_householder, x_np, rtol=1e-8, atol=1e-10)


def test_least_squares_unknown_method():
    with pytest.raises(InvalidArgumentError):
        least_squares_qr(np.eye(2), np.ones(2), method="givens")


def test_orthogonality_qr():
    V = rng.standard_normal((100, 10))
    f = gram_schmidt_qr(V, reorthogonalize=True)
    identity = f.q.T @ f.q
    assert np.allclose(identity, np.eye(10), atol=1e-10)
    assert f.is_accurate(V)
    assert f.R.is_upper_triangular()


def test_orthogonality_householder_qr():
    V = rng.standard_normal((100, 10))
    f = householder_qr(V)
    assert f.q.shape == (100, 10) and f.r.shape == (10, 10)
    identity = f.q.T @ f.q
    assert np.allclose(identity, np.eye(10), atol=1e-10)
    assert f.is_orthogonal()
    assert f.is_accurate(V)


def test_householder_complete_mode():
    V = rng.standard_normal((7, 3))
    f = householder_qr(V, mode="complete")
    assert f.q.shape == (7, 7) and f.r.shape == (7, 3)
    assert f.Q.is_orthogonal()
    np.testing.assert_allclose(f.reconstruct().to_numpy(), V, atol=1e-12)
    with pytest.raises(InvalidArgumentError):
        householder_qr(V, mode="economic")


@pytest.mark.parametrize("shape", [(3, 6), (1, 4), (5, 5), (6, 1)])
def test_householder_any_shape(shape):
    A = rng.standard_normal(shape)
    f = householder_qr(A)
    assert f.R.is_upper_triangular()
    assert f.is_orthogonal()
    np.testing.assert_allclose(f.reconstruct().to_numpy(), A, atol=1e-12)


def test_householder_complex():
    A = rng.standard_normal((5, 3)) + 1j * rng.standard_normal((5, 3))
    f = householder_qr(A)
    np.testing.assert_allclose(f.q.conj().T @ f.q, np.eye(3), atol=1e-12)
    np.testing.assert_allclose(f.q @ f.r, A, atol=1e-12)


@pytest.mark.parametrize("modified", [True, False])
def test_gram_schmidt_variants(modified):
    A = random_nonsingular_qr(8, seed=1)
    f = gram_schmidt_qr(A, modified=modified, reorthogonalize=True)
    assert f.method == ("gram_schmidt" if modified else "classical_gram_schmidt")
    assert f.is_orthogonal()
    assert f.is_accurate(A)


def test_modified_beats_classical_without_reorthogonalization():
    A = random_ill_conditioned(30, 1e8, seed=4)
    loss = []
    for modified in (True, False):
        q = gram_schmidt_qr(A, modified=modified).q
        loss.append(np.linalg.norm(q.T @ q - np.eye(30)))
    logger.debug(f"orthogonality loss MGS {loss[0]:.2e} CGS {loss[1]:.2e}")
    assert loss[0] < loss[1]


def test_gram_schmidt_rejects_dependent_and_wide():
    A = np.array([[1.0, 2.0], [2.0, 4.0], [3.0, 6.0]])
    with pytest.raises(SingularMatrixError, match="linearly dependent"):
        gram_schmidt_qr(A)
    with pytest.raises(DimensionMismatchError):
        gram_schmidt_qr(np.ones((2, 3)))


@pytest.mark.parametrize("factor", [householder_qr, gram_schmidt_qr])
def test_square_solve_and_det(factor):
    for _ in range(TEST_ITERATIONS):
        n = int(rng.integers(1, 9))
        A = random_nonsingular_qr(n, seed=int(rng.integers(1 << 30)))
        b = rng.standard_normal((n, 2))
        f = factor(A)
        np.testing.assert_allclose(f.solve(b).to_numpy(), np.linalg.solve(A, b), rtol=1e-8, atol=1e-10)
        assert f.det() == pytest.approx(np.linalg.det(A), rel=1e-8)


def test_wide_qr_basic_solution():
    A = rng.standard_normal((3, 5))
    b = rng.standard_normal(3)
    x = householder_qr(A).solve(b).to_numpy()
    np.testing.assert_allclose(A @ x.ravel(), b, atol=1e-10)
    np.testing.assert_array_equal(x[3:], 0.0)


def test_lq_decomposition():
    A = rng.standard_normal((3, 6))
    f = lq_decomposition(A)
    assert f.L.is_lower_triangular()
    np.testing.assert_allclose(f.q @ f.q.T, np.eye(3), atol=1e-12)
    assert f.is_accurate(A)

    b = rng.standard_normal(3)
    x = f.solve(b).to_numpy()
    # minimum-norm solution agrees with the pseudo-inverse
    np.testing.assert_allclose(x.ravel(), np.linalg.pinv(A) @ b, atol=1e-10)

    S = random_nonsingular_qr(4, seed=2)
    assert lq_decomposition(S).det() == pytest.approx(np.linalg.det(S), rel=1e-8)
    with pytest.raises(DimensionMismatchError):
        lq_decomposition(rng.standard_normal((5, 2))).solve(np.ones(5))
