# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .config import DEFAULT_TOLERANCE, Tolerance
from .elimination import back_substitute, forward_substitute
from .exceptions import (
    DimensionMismatchError,
    InvalidArgumentError,
    SingularMatrixError,
)
from .factorization import Factorization, coerce_rhs, freeze
from .lu import lu_doolittle
from .matrix import Matrix, as_array
from .utils import scale_tol

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class QRDecomposition(Factorization):
    """
    A = Q R.

    Attributes
    ----------
    q : ndarray (read-only)
        (m, k) with orthonormal columns, or (m, m) for ``mode="complete"``.
    r : ndarray (read-only)
        Upper-triangular/trapezoidal, (k, n) or (m, n).
    method : str
        "householder", "gram_schmidt" or "classical_gram_schmidt".
    reflections : int | None
        Householder reflections applied; gives det(Q) = (-1)^reflections.
    tolerance : Tolerance
    """

    q: np.ndarray
    r: np.ndarray
    method: str
    reflections: Optional[int] = None
    tolerance: Tolerance = DEFAULT_TOLERANCE

    @property
    def Q(self) -> Matrix:
        return Matrix._wrap(self.q.copy())

    @property
    def R(self) -> Matrix:
        return Matrix._wrap(self.r.copy())

    @property
    def shape(self) -> Tuple[int, int]:
        return self.q.shape[0], self.r.shape[1]

    def is_orthogonal(self, tol: float = 1e-10) -> bool:
        """Columns of Q orthonormal: ``Q^H Q == I``."""
        k = self.q.shape[1]
        gram = self.q.conj().T @ self.q
        return bool(np.allclose(gram, np.eye(k), rtol=0.0, atol=tol))

    def det(self):
        """
        Determinant of a square A.

        For Householder Q is a product of reflections, each of determinant
        -1; for Gram-Schmidt det(Q) is taken from an LU factorization.
        """
        m, n = self.shape
        if m != n:
            raise DimensionMismatchError(f"determinant needs a square matrix, got {m}x{n}")
        if self.reflections is not None:
            det_q = -1.0 if self.reflections % 2 else 1.0
        else:
            det_q = lu_doolittle(self.q, pivoting="partial").det()
        value = det_q * np.prod(np.diag(self.r))
        return value.item() if isinstance(value, np.generic) else value

    def _solve_array(self, b: np.ndarray) -> np.ndarray:
        m, n = self.shape
        y = self.q.conj().T @ b
        if m >= n:
            # square or least squares: R[:n, :n] x = (Q^H b)[:n]
            R1 = self.r[:n, :n]
            tol = scale_tol(R1, self.tolerance.pivot_eps)
            return back_substitute(R1, y[:n], tol=tol)
        # underdetermined: basic solution with the trailing unknowns at zero
        R1 = self.r[:m, :m]
        x = np.zeros((n, b.shape[1]), dtype=np.result_type(R1, y))
        x[:m] = back_substitute(R1, y[:m], tol=scale_tol(R1, self.tolerance.pivot_eps))
        return x

    def solve(self, B) -> Matrix:
        """
        Solve ``A x = B`` in the least-squares sense.

        Exact for square non-singular A, the least-squares solution for tall
        full-rank A, and a basic solution (trailing unknowns zero) for wide A.

        Raises
        ------
        SingularMatrixError
            R has a numerically zero diagonal entry (A is rank deficient).
        """
        b = coerce_rhs(B, self.q.shape[0])
        return Matrix._wrap(self._solve_array(b))

    def reconstruct(self) -> Matrix:
        return Matrix._wrap(self.q @ self.r)


@dataclass(frozen=True, eq=False)
class LQDecomposition(Factorization):
    """
    A = L Q with L lower-triangular and Q having orthonormal rows.
    """

    l: np.ndarray
    q: np.ndarray
    reflections: int = 0
    tolerance: Tolerance = DEFAULT_TOLERANCE

    @property
    def L(self) -> Matrix:
        return Matrix._wrap(self.l.copy())

    @property
    def Q(self) -> Matrix:
        return Matrix._wrap(self.q.copy())

    def det(self):
        m, n = self.l.shape[0], self.q.shape[1]
        if m != n:
            raise DimensionMismatchError(f"determinant needs a square matrix, got {m}x{n}")
        sign = -1.0 if self.reflections % 2 else 1.0
        value = sign * np.prod(np.diag(self.l))
        return value.item() if isinstance(value, np.generic) else value

    def solve(self, B) -> Matrix:
        """
        Minimum-norm solution of ``A x = B`` for square or wide A.

        Raises
        ------
        DimensionMismatchError
            A has more rows than columns (use QR least squares instead).
        """
        m, n = self.l.shape[0], self.q.shape[1]
        if m > n:
            raise DimensionMismatchError(
                f"LQ solve needs rows <= cols, got {m}x{n}; use QR for least squares"
            )
        b = coerce_rhs(B, m)
        L1 = self.l[:, :m]
        y = forward_substitute(L1, b, tol=scale_tol(L1, self.tolerance.pivot_eps))
        return Matrix._wrap(self.q.conj().T @ y)

    def reconstruct(self) -> Matrix:
        return Matrix._wrap(self.l @ self.q)


def _reflector(x: np.ndarray) -> Tuple[np.ndarray, complex]:
    """
    Unit vector w with ``(I - 2 w w^H) x = alpha e_1``.

    alpha takes the opposite phase of x[0] so the update never cancels.
    """
    norm_x = np.linalg.norm(x)
    x0 = x[0]
    phase = x0 / abs(x0) if x0 != 0 else 1.0
    alpha = -phase * norm_x
    w = x.copy()
    # w = x + sign(x0) ‖x‖ e₁
    w[0] -= alpha
    w /= np.linalg.norm(w)  # ‖w‖ = 1
    return w, alpha


def householder_qr(
    A,
    mode: str = "reduced",
    tolerance: Tolerance = DEFAULT_TOLERANCE,
) -> QRDecomposition:
    """
    Compute the QR decomposition of an m-by-n matrix A using
    Householder transformations.

    A = QR
    H = I - 2 * w * conj(transpose(w)),  ‖w‖ = 1

    Parameters
    ----------
    A : (m, n) matrix, any shape
    mode : "reduced" | "complete"
        reduced gives Q (m, k) and R (k, n) with k = min(m, n); complete
        gives Q (m, m) and R (m, n).

    Returns
    -------
    QRDecomposition
    """
    if mode not in ("reduced", "complete"):
        raise InvalidArgumentError(f"mode must be 'reduced' or 'complete', got {mode!r}")
    a = as_array(A)
    m, n = a.shape
    k = min(m, n)
    R = a
    Q = np.eye(m, dtype=a.dtype)
    reflections = 0

    for j in range(min(k, m - 1)):
        # ---- build the reflector for column j --------------------------------
        x = R[j:, j]
        if not np.any(x[1:]):  # already zero below the diagonal
            continue
        w, alpha = _reflector(x)
        w = w.reshape(-1, 1)  # column

        # ---- apply H = I – 2 w wᴴ to R (from the left) ------------------------
        R[j:, :] -= 2.0 * w @ (w.conj().T @ R[j:, :])
        # ---- accumulate Q = Q Hᴴ (Hᴴ = H) -------------------------------------
        Q[:, j:] -= 2.0 * (Q[:, j:] @ w) @ w.conj().T
        R[j, j] = alpha
        R[j + 1 :, j] = 0.0
        reflections += 1

    # force exact upper-triangular shape / zero tiny noise
    R = np.triu(R)
    if mode == "reduced":
        Q, R = Q[:, :k], R[:k, :]

    logger.debug("householder_qr: %dx%d, %d reflections", m, n, reflections)
    return QRDecomposition(
        q=freeze(Q),
        r=freeze(R),
        method="householder",
        reflections=reflections,
        tolerance=tolerance,
    )


def gram_schmidt_qr(
    A,
    modified: bool = True,
    reorthogonalize: bool = False,
    tolerance: Tolerance = DEFAULT_TOLERANCE,
) -> QRDecomposition:
    """
    Gram-Schmidt orthogonalization (QR decomposition)

    Parameters
    ----------
    A : (m, n) matrix, m >= n
        Full column rank input matrix.
    modified : bool
        Subtract projections one at a time (MGS) instead of all at once
        from the original column (classical GS).
    reorthogonalize : bool
        Run a second projection pass per column to recover orthogonality
        lost to cancellation; its coefficients are added to R.

    Returns
    -------
    QRDecomposition with Q (m, n), R (n, n)

    Raises
    ------
    DimensionMismatchError : m < n
    SingularMatrixError : the columns of A are linearly dependent
    """
    a = as_array(A)
    m, n = a.shape
    if m < n:
        raise DimensionMismatchError(
            f"Gram-Schmidt needs at least as many rows as columns, got {m}x{n}"
        )
    Q = np.zeros((m, n), dtype=a.dtype)
    R = np.zeros((n, n), dtype=a.dtype)
    col_norms = np.linalg.norm(a, axis=0) if n else np.zeros(0)
    scale = float(col_norms.max()) if n else 0.0
    tol = tolerance.pivot_eps * (scale if scale > 0 else 1.0)

    def _project(v, j):
        if modified:
            for k in range(j):
                r = Q[:, k].conj() @ v
                R[k, j] += r
                v = v - r * Q[:, k]
        else:
            r = Q[:, :j].conj().T @ v
            R[:j, j] += r
            v = v - Q[:, :j] @ r
        return v

    for j in range(n):
        v = _project(a[:, j].copy(), j)
        if reorthogonalize:
            v = _project(v, j)
        R[j, j] = np.linalg.norm(v)
        if abs(R[j, j]) <= tol:
            raise SingularMatrixError(
                "Input vectors are linearly dependent",
                index=j,
                pivot=float(abs(R[j, j])),
                threshold=tol,
            )
        Q[:, j] = v / R[j, j]

    return QRDecomposition(
        q=freeze(Q),
        r=freeze(R),
        method="gram_schmidt" if modified else "classical_gram_schmidt",
        tolerance=tolerance,
    )


def lq_decomposition(A, tolerance: Tolerance = DEFAULT_TOLERANCE) -> LQDecomposition:
    """
    A = L Q from the Householder QR of A^H.

    With ``A^H = Q_1 R`` we get ``A = R^H Q_1^H``; L is (m, k) lower
    trapezoidal and Q is (k, n) with orthonormal rows, k = min(m, n).
    """
    a = as_array(A)
    f = householder_qr(a.conj().T, tolerance=tolerance)
    return LQDecomposition(
        l=freeze(f.r.conj().T),
        q=freeze(f.q.conj().T),
        reflections=f.reflections,
        tolerance=tolerance,
    )


def least_squares_qr(A, b, method: str = "householder") -> Matrix:
    """
    Solve min ‖Ax – b‖₂ using a thin QR factorisation (A = QR).
    Works for tall or square full-rank A.

    Returns:
    x : (n, k) Matrix
        The least squares solution to Ax = b
    """
    if method == "householder":
        f = householder_qr(A)
    elif method == "gram_schmidt":
        f = gram_schmidt_qr(A, reorthogonalize=True)
    else:
        raise InvalidArgumentError(f"unknown QR method {method!r}")
    return f.solve(b)


def random_nonsingular_qr(n, seed=None) -> np.ndarray:
    """
    QR trick (random orthogonal × random non-zero scale)

    QR Decomposition:
        A matrix A can be decomposed into the product of an
        orthogonal matrix Q and an upper triangular matrix
        R (A = QR)

    Returns
    -------
    Matrix with float64 dtype
    """
    rng = np.random.default_rng(seed)
    A = rng.standard_normal((n, n))
    Q = householder_qr(A).q  # Q is orthogonal, det ≠ 0
    scales = rng.uniform(0.5, 10.0, size=n)  # strictly non-zero
    return np.asarray(Q * scales)  # broadcast scales into columns


def random_ill_conditioned(n, cond: float, seed=None) -> np.ndarray:
    """Random n x n matrix with 2-norm condition number `cond`."""
    rng = np.random.default_rng(seed)
    Q1 = householder_qr(rng.standard_normal((n, n))).q
    Q2 = householder_qr(rng.standard_normal((n, n))).q
    sigma = np.logspace(0, -np.log10(cond), n)
    return (Q1 * sigma) @ Q2.T
