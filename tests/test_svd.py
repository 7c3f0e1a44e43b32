# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import numpy as np
import pytest

from denselinalg.config import Tolerance
from denselinalg.exceptions import DimensionMismatchError, NonConvergenceError
from denselinalg.svd import svd


@pytest.mark.parametrize("m,n", [(8, 5), (20, 20), (50, 10), (5, 8)])
def test_reconstruction_and_orthogonality(m, n):
    """U Σ Vᵀ must reconstruct A and U, V must be orthonormal."""
    rng = np.random.default_rng(seed=m + n)
    A = rng.normal(size=(m, n))

    f = svd(A)
    U, s, Vt = f.u, f.s, f.v.T
    Σ = np.diag(s)
    k = min(m, n)

    # 1  Reconstruction ‖A - UΣVᵀ‖
    recon_err = np.linalg.norm(U @ Σ @ Vt - A, ord=2)
    assert recon_err < 1e-10
    assert f.is_accurate(A)

    # 2  Orthonormality
    assert np.allclose(U.T @ U, np.eye(k), atol=1e-10)
    assert np.allclose(Vt @ Vt.T, np.eye(k), atol=1e-10)


def _align_signs(X, Y):
    """Flip columns of X so that X[:,i] · Y[:,i] ≥ 0 (helps compare eigendirections)."""
    sign = np.sign(np.sum(X * Y, axis=0))
    sign[sign == 0] = 1.0  # avoid zeros
    return X * sign


@pytest.mark.parametrize("m,n", [(12, 7), (30, 15)])
def test_against_numpy_svd(m, n):
    """Singular values must match NumPy’s; left/right spaces must match up to sign."""
    rng = np.random.default_rng(seed=4 * m + n)
    A = rng.standard_normal(size=(m, n))

    # NumPy “truth”
    U_np, s_np, Vt_np = np.linalg.svd(A, full_matrices=False)

    # one-sided Jacobi
    f = svd(A)
    U_my, s_my, Vt_my = f.u, f.s, f.v.T

    # 1  Singular values (sorted descending)
    assert np.allclose(s_my, s_np, rtol=1e-10, atol=1e-12)

    # 2  Column spaces (sign ambiguity only)
    U_my_aligned = _align_signs(U_my, U_np)
    Vt_my_aligned = _align_signs(Vt_my.T, Vt_np.T).T  # align rows → take T
    assert np.allclose(U_my_aligned, U_np, atol=1e-8)
    assert np.allclose(Vt_my_aligned, Vt_np, atol=1e-8)


@pytest.mark.parametrize("k", [0, 1, 3])
def test_rank_deficient(k):
    """
    Rank-deficient matrices: make last k cols zero, the factorization
    must still return a full set of vectors where σ_{r:} ≈ 0.
    """
    rng = np.random.default_rng(123 + k)
    A = rng.normal(size=(10, 7))
    if k:
        A[:, -k:] = 0.0

    f = svd(A)
    U, s, Vt = f.u, f.s, f.v.T
    Σ = np.diag(s)
    err = np.linalg.norm(U @ Σ @ Vt - A)
    assert err < 1e-10

    # Check trailing singular values ~ 0
    r = 7 - k
    assert np.all(s[:r] > 1e-12)
    assert np.all(s[r:] < 1e-12)
    assert f.rank() == r
    # completed left vectors stay orthonormal
    assert np.allclose(U.T @ U, np.eye(7), atol=1e-10)


def test_diagonal_exact():
    f = svd(np.diag([3.0, 2.0, 1.0]))
    np.testing.assert_array_equal(f.singular_values, [3.0, 2.0, 1.0])
    assert f.condition_number() == 3.0
    assert f.S.is_diagonal()


def test_ordering_of_unsorted_diagonal():
    f = svd(np.diag([1.0, 5.0, 3.0]))
    np.testing.assert_allclose(f.s, [5.0, 3.0, 1.0])
    np.testing.assert_allclose(f.reconstruct().to_numpy(), np.diag([1.0, 5.0, 3.0]), atol=1e-14)


def test_complex_matrix():
    rng = np.random.default_rng(21)
    A = rng.normal(size=(6, 4)) + 1j * rng.normal(size=(6, 4))
    f = svd(A)
    np.testing.assert_allclose(f.s, np.linalg.svd(A, compute_uv=False), rtol=1e-10)
    np.testing.assert_allclose(f.u.conj().T @ f.u, np.eye(4), atol=1e-10)
    np.testing.assert_allclose(f.reconstruct().to_numpy(), A, atol=1e-10)


def test_pseudo_inverse_and_min_norm_solve():
    rng = np.random.default_rng(22)
    A = rng.normal(size=(6, 3)) @ rng.normal(size=(3, 5))  # rank 3
    f = svd(A, Tolerance(rank_rtol=1e-10))
    assert f.rank() == 3
    assert f.condition_number() > 1e12 or np.isinf(f.condition_number())
    np.testing.assert_allclose(f.pseudo_inverse().to_numpy(), np.linalg.pinv(A), atol=1e-10)

    b = rng.normal(size=6)
    x = f.solve(b).to_numpy().ravel()
    np.testing.assert_allclose(x, np.linalg.pinv(A) @ b, atol=1e-10)
    with pytest.raises(DimensionMismatchError):
        f.solve(np.ones(5))


def test_rank_with_custom_rtol():
    f = svd(np.diag([1.0, 1e-6, 1e-20]))
    assert f.rank() == 2
    assert f.rank(1e-3) == 1
    assert f.cutoff(1e-3) == pytest.approx(3e-3)


def test_zero_and_empty():
    f = svd(np.zeros((3, 2)))
    assert f.rank() == 0
    np.testing.assert_array_equal(f.s, [0.0, 0.0])
    assert np.isinf(f.condition_number())
    np.testing.assert_allclose(f.u.T @ f.u, np.eye(2), atol=1e-14)


def test_sweep_budget():
    A = np.random.default_rng(23).normal(size=(5, 5))
    with pytest.raises(NonConvergenceError) as info:
        svd(A, Tolerance(max_iterations=1))
    assert info.value.algorithm == "svd"
    assert info.value.iterations == 1
