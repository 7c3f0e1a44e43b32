# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .config import DEFAULT_TOLERANCE, MACHINE_EPS, Tolerance
from .exceptions import NonConvergenceError
from .factorization import Factorization, coerce_rhs, freeze
from .matrix import Matrix, as_array

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class SingularValueDecomposition(Factorization):
    """
    Reduced SVD, A = U diag(s) V^H.

    U is (m, k), s has length k (non-negative, descending), V is (n, k),
    k = min(m, n).
    """

    u: np.ndarray
    s: np.ndarray
    v: np.ndarray
    sweeps: int = 0
    tolerance: Tolerance = DEFAULT_TOLERANCE

    @property
    def U(self) -> Matrix:
        return Matrix._wrap(self.u.copy())

    @property
    def S(self) -> Matrix:
        return Matrix._wrap(np.diag(self.s))

    @property
    def V(self) -> Matrix:
        return Matrix._wrap(self.v.copy())

    @property
    def singular_values(self) -> np.ndarray:
        return self.s.copy()

    @property
    def shape(self):
        return self.u.shape[0], self.v.shape[0]

    def cutoff(self, rtol: Optional[float] = None) -> float:
        """Singular values at or below this are treated as zero."""
        if rtol is None:
            rtol = self.tolerance.rank_rtol
        if self.s.size == 0:
            return 0.0
        return float(rtol * self.s[0] * max(self.shape))

    def rank(self, rtol: Optional[float] = None) -> int:
        if self.s.size == 0 or self.s[0] == 0:
            return 0
        return int(np.sum(self.s > self.cutoff(rtol)))

    def condition_number(self) -> float:
        """sigma_max / sigma_min; inf for a singular (or zero) matrix."""
        if self.s.size == 0:
            return 0.0
        if self.s[-1] == 0:
            return float("inf")
        return float(self.s[0] / self.s[-1])

    def _pinv_array(self) -> np.ndarray:
        r = self.rank()
        inv_s = 1.0 / self.s[:r]
        return (self.v[:, :r] * inv_s) @ self.u[:, :r].conj().T

    def pseudo_inverse(self) -> Matrix:
        """Moore-Penrose inverse ``V diag(1/s) U^H`` over the numerical rank."""
        return Matrix._wrap(self._pinv_array())

    def solve(self, B) -> Matrix:
        """Minimum-norm least-squares solution ``x = A^+ B``."""
        b = coerce_rhs(B, self.shape[0])
        r = self.rank()
        y = self.u[:, :r].conj().T @ b
        return Matrix._wrap(self.v[:, :r] @ (y / self.s[:r, None]))

    def reconstruct(self) -> Matrix:
        return Matrix._wrap((self.u * self.s) @ self.v.conj().T)


def _jacobi_sweeps(U: np.ndarray, V: np.ndarray, tolerance: Tolerance) -> int:
    """
    Orthogonalise the columns of U in place by plane rotations, applying
    the same rotations to V. Returns the number of sweeps.
    """
    n = U.shape[1]
    sweeps = 0
    while True:
        if sweeps >= tolerance.max_iterations:
            off = 0.0
            for p in range(n - 1):
                off = max(off, float(np.max(np.abs(U[:, p].conj() @ U[:, p + 1 :]))))
            raise NonConvergenceError(
                f"one-sided Jacobi SVD did not converge in {sweeps} sweeps",
                algorithm="svd",
                iterations=sweeps,
                residual=off,
            )
        rotated = False
        for p in range(n - 1):
            for q in range(p + 1, n):
                up, uq = U[:, p], U[:, q]
                alpha = float(np.real(np.vdot(up, up)))
                beta = float(np.real(np.vdot(uq, uq)))
                gamma = np.vdot(up, uq)
                g = abs(gamma)
                if g == 0 or g <= tolerance.convergence * np.sqrt(alpha * beta):
                    continue
                rotated = True
                e = gamma / g
                zeta = (beta - alpha) / (2.0 * g)
                t = (1.0 if zeta >= 0 else -1.0) / (abs(zeta) + np.sqrt(1.0 + zeta * zeta))
                c = 1.0 / np.sqrt(1.0 + t * t)
                s = c * t
                # rotate (p, conj(e) q) by a real Givens rotation
                for M in (U, V):
                    mp, mq = M[:, p].copy(), M[:, q].copy()
                    M[:, p] = c * mp - s * np.conj(e) * mq
                    M[:, q] = s * e * mp + c * mq
        sweeps += 1
        if not rotated:
            return sweeps


def _complete_basis(U: np.ndarray, good: int) -> None:
    """Replace columns good.. of U by an orthonormal completion of the first ones."""
    m, k = U.shape
    for j in range(good, k):
        W = U[:, :j]
        P = np.eye(m, dtype=U.dtype) - W @ W.conj().T
        i = int(np.argmax(np.linalg.norm(P, axis=0)))
        u = P[:, i]
        u = u - W @ (W.conj().T @ u)
        U[:, j] = u / np.linalg.norm(u)


def _svd_tall(a: np.ndarray, tolerance: Tolerance):
    m, n = a.shape
    U = a.copy()
    V = np.eye(n, dtype=a.dtype)
    sweeps = _jacobi_sweeps(U, V, tolerance)

    sigma = np.linalg.norm(U, axis=0) if n else np.zeros(0)
    order = np.argsort(-sigma, kind="stable")
    sigma = sigma[order]
    U = U[:, order]
    V = V[:, order]

    smax = float(sigma[0]) if n else 0.0
    good = int(np.sum(sigma > MACHINE_EPS * smax)) if smax > 0 else 0
    U[:, :good] /= sigma[:good]
    if good < n:
        _complete_basis(U, good)
    return U, sigma, V, sweeps


def svd(A, tolerance: Tolerance = DEFAULT_TOLERANCE) -> SingularValueDecomposition:
    """
    Singular Value Decomposition by one-sided (Hestenes) Jacobi rotations.

    Algorithm outline
    -----------------
    1.  Work on the tall orientation: a wide A is handled through A^H,
        swapping the roles of left and right singular vectors.
    2.  Sweep over all column pairs (p, q) of the working copy, rotating
        each pair until it is orthogonal. The same rotations accumulate
        into V.
    3.  Stop after a sweep in which every pair already satisfies
        |<u_p, u_q>| <= convergence * ||u_p|| ||u_q||.
    4.  The column norms are the singular values; normalised columns are
        the left singular vectors. Columns for (numerically) zero singular
        values are completed to an orthonormal set.

    Raises
    ------
    NonConvergenceError
        More than `tolerance.max_iterations` sweeps were needed.
    """
    a = as_array(A)
    m, n = a.shape

    # Handle the wide-matrix case by transposing and swapping the roles
    # of left and right singular vectors.
    if m < n:
        V, s, U, sweeps = _svd_tall(a.conj().T, tolerance)
    else:
        U, s, V, sweeps = _svd_tall(a, tolerance)

    logger.debug("svd: %dx%d converged in %d sweeps", m, n, sweeps)
    return SingularValueDecomposition(
        u=freeze(U), s=freeze(s), v=freeze(V), sweeps=sweeps, tolerance=tolerance
    )
