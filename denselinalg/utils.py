# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

from typing import Optional, Sequence

import numpy as np

from .config import EPS


def scale_tol(A: np.ndarray, eps: float = EPS) -> float:
    """
    Return an absolute tolerance relative to the matrix magnitude.

    The zero matrix gets ``eps`` itself so that a zero pivot is still
    recognised as one.
    """
    if A.size == 0:
        return eps
    scale = float(np.max(np.sum(np.abs(A), axis=1)))
    return eps * (scale if scale > 0 else 1.0)


def permutation_sign(perm: Sequence[int]) -> float:
    """Return +1 or –1 depending on permutation parity."""
    visited = [False] * len(perm)
    cycles = 0
    for i in range(len(perm)):
        if not visited[i]:
            cycles += 1
            j = i
            while not visited[j]:
                visited[j] = True
                j = perm[j]
    swaps = len(perm) - cycles  # n − #cycles
    return -1.0 if swaps & 1 else 1.0


def is_hermitian(A: np.ndarray, tol: float = 1e-10) -> bool:
    """Symmetric (real) / Hermitian (complex) test, relative to max |a_ij|."""
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        return False
    if A.size == 0:
        return True
    scale = max(1.0, float(np.max(np.abs(A))))
    return bool(np.max(np.abs(A - A.conj().T)) <= tol * scale)


def random_nonsingular_upper(
    n, low=-100, high=100, seed: Optional[int] = None
) -> np.ndarray:
    """
    Build a matrix U that is upper-triangular with random entries
    everywhere and put only non-zero values on its diagonal

    Returns
    -------
    Matrix with float64 dtype
    """
    rng = np.random.default_rng(seed)
    U = rng.uniform(low, high, size=(n, n))
    # enforce upper-triangular
    U = np.triu(U)
    # replace any accidental zeros on the diagonal
    diag = rng.uniform(low if low != 0 else 1, high, size=n)
    U[np.diag_indices(n)] = diag
    return np.asarray(U)


def random_spd(n, seed: Optional[int] = None) -> np.ndarray:
    """Random symmetric positive-definite matrix, ``M^T M + n I``."""
    rng = np.random.default_rng(seed)
    M = rng.standard_normal((n, n))
    return M.T @ M + n * np.eye(n)
