# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Eigenvalues through the Schur form.

    A  --Householder-->  Q0 H Q0^H      (upper Hessenberg)
    H  --shifted QR--->  Q1 T Q1^H      (Schur form)

Real input keeps real arithmetic (Francis double shift); complex
conjugate eigenvalue pairs stay as 2x2 blocks on the diagonal of T.
Complex input uses single Wilkinson shifts and gives a triangular T.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .config import DEFAULT_TOLERANCE, MACHINE_EPS, Tolerance
from .exceptions import (
    DimensionMismatchError,
    NonConvergenceError,
    SingularMatrixError,
)
from .factorization import Factorization, coerce_rhs, freeze
from .lu import lu_doolittle
from .matrix import Matrix, as_array
from .qr import _reflector
from .utils import is_hermitian, scale_tol

logger = logging.getLogger(__name__)

# QR steps without a deflation before an exceptional shift is used
EXCEPTIONAL_SHIFT_PERIOD = 10


@dataclass(frozen=True, eq=False)
class HessenbergResult:
    """A = Q H Q^H with H upper Hessenberg and Q unitary."""

    h: np.ndarray
    q: np.ndarray

    @property
    def H(self) -> Matrix:
        return Matrix._wrap(self.h.copy())

    @property
    def Q(self) -> Matrix:
        return Matrix._wrap(self.q.copy())


def _hessenberg(a: np.ndarray):
    H = a.copy()
    n = H.shape[0]
    Q = np.eye(n, dtype=H.dtype)
    for k in range(n - 2):
        x = H[k + 1 :, k]
        if not np.any(x[1:]):
            continue
        w, alpha = _reflector(x)
        w = w.reshape(-1, 1)
        H[k + 1 :, k:] -= 2.0 * w @ (w.conj().T @ H[k + 1 :, k:])
        H[:, k + 1 :] -= 2.0 * (H[:, k + 1 :] @ w) @ w.conj().T
        Q[:, k + 1 :] -= 2.0 * (Q[:, k + 1 :] @ w) @ w.conj().T
        H[k + 1, k] = alpha
        H[k + 2 :, k] = 0.0
    return H, Q


def hessenberg(A) -> HessenbergResult:
    """Householder reduction to upper Hessenberg form."""
    a = as_array(A)
    if a.shape[0] != a.shape[1]:
        raise DimensionMismatchError(f"Hessenberg reduction needs a square matrix, got {a.shape}")
    H, Q = _hessenberg(a)
    return HessenbergResult(h=freeze(H), q=freeze(Q))


# ---------------------------------------------------------------------------
# Shifted QR iteration
# ---------------------------------------------------------------------------
def _find_split(H: np.ndarray, hi: int, tol: float, scale: float) -> int:
    """
    Lowest row l of the unreduced block ending at `hi`.

    Negligible sub-diagonal entries met on the way are set to zero.
    """
    for l in range(hi, 0, -1):
        s = abs(H[l - 1, l - 1]) + abs(H[l, l])
        if s == 0.0:
            s = scale
        if abs(H[l, l - 1]) <= tol * s:
            H[l, l - 1] = 0.0
            return l
    return 0


def _apply_left(H, w, rows: slice, cols: slice):
    H[rows, cols] -= 2.0 * w @ (w.conj().T @ H[rows, cols])


def _apply_right(H, w, rows: slice, cols: slice):
    H[rows, cols] -= 2.0 * (H[rows, cols] @ w) @ w.conj().T


def _francis_step(H, Q, l: int, hi: int, exceptional: bool):
    """One implicit double-shift QR step on the active block H[l:hi+1, l:hi+1]."""
    if exceptional:
        w = abs(H[hi, hi - 1]) + abs(H[hi - 1, hi - 2])
        s = 1.5 * w
        t = w * w
    else:
        s = H[hi - 1, hi - 1] + H[hi, hi]
        t = H[hi - 1, hi - 1] * H[hi, hi] - H[hi - 1, hi] * H[hi, hi - 1]

    # first column of (H - s1 I)(H - s2 I)
    x = H[l, l] * H[l, l] + H[l, l + 1] * H[l + 1, l] - s * H[l, l] + t
    y = H[l + 1, l] * (H[l, l] + H[l + 1, l + 1] - s)
    z = H[l + 1, l] * H[l + 2, l + 1]

    for k in range(l, hi - 1):
        v = np.array([x, y, z])
        if np.any(v[1:]):
            w, _alpha = _reflector(v)
            w = w.reshape(-1, 1)
            _apply_left(H, w, slice(k, k + 3), slice(max(l, k - 1), None))
            _apply_right(H, w, slice(0, min(k + 3, hi) + 1), slice(k, k + 3))
            _apply_right(Q, w, slice(None), slice(k, k + 3))
        x = H[k + 1, k]
        y = H[k + 2, k]
        if k < hi - 2:
            z = H[k + 3, k]

    v = np.array([x, y])
    if v[1] != 0:
        w, _alpha = _reflector(v)
        w = w.reshape(-1, 1)
        _apply_left(H, w, slice(hi - 1, hi + 1), slice(hi - 2, None))
        _apply_right(H, w, slice(0, hi + 1), slice(hi - 1, hi + 1))
        _apply_right(Q, w, slice(None), slice(hi - 1, hi + 1))


def _wilkinson_shift(H, hi: int):
    """Eigenvalue of the trailing 2x2 block closest to H[hi, hi]."""
    d = H[hi, hi]
    ev1, ev2 = _block_eigenvalues(H[hi - 1, hi - 1], H[hi - 1, hi], H[hi, hi - 1], d)
    return ev1 if abs(ev1 - d) <= abs(ev2 - d) else ev2


def _complex_qr_step(H, Q, l: int, hi: int, exceptional: bool):
    """One implicit single-shift QR step with Givens rotations."""
    if exceptional:
        mu = H[hi, hi] + 1.5 * abs(H[hi, hi - 1])
    else:
        mu = _wilkinson_shift(H, hi)
    x = H[l, l] - mu
    y = H[l + 1, l]
    for k in range(l, hi):
        r = np.hypot(abs(x), abs(y))
        if r != 0:
            # unitary U with first column (x, y) / r; U^H (x, y) = (r, 0)
            U = np.array([[x / r, -np.conj(y) / r], [y / r, np.conj(x) / r]])
            cols = slice(max(l, k - 1), None)
            H[k : k + 2, cols] = U.conj().T @ H[k : k + 2, cols]
            rows = slice(0, min(k + 2, hi) + 1)
            H[rows, k : k + 2] = H[rows, k : k + 2] @ U
            Q[:, k : k + 2] = Q[:, k : k + 2] @ U
        if k < hi - 1:
            x = H[k + 1, k]
            y = H[k + 2, k]


def _block_eigenvalues(a, b, c, d):
    half_tr = (a + d) / 2.0
    disc = ((a - d) / 2.0) ** 2 + b * c
    root = np.sqrt(complex(disc))
    return half_tr + root, half_tr - root


def _split_pair(T, Q, p: int, lam):
    """
    Triangularise the 2x2 diagonal block at rows p, p+1 with the unitary
    rotation whose first column is the eigenvector for `lam`.
    """
    a, b = T[p, p], T[p, p + 1]
    c, d = T[p + 1, p], T[p + 1, p + 1]
    v1 = np.array([b, lam - a])
    v2 = np.array([lam - d, c])
    v = v1 if np.linalg.norm(v1) >= np.linalg.norm(v2) else v2
    nv = np.linalg.norm(v)
    if nv == 0:
        return
    v = v / nv
    U = np.array([[v[0], -np.conj(v[1])], [v[1], np.conj(v[0])]])
    T[p : p + 2, p:] = U.conj().T @ T[p : p + 2, p:]
    T[: p + 2, p : p + 2] = T[: p + 2, p : p + 2] @ U
    Q[:, p : p + 2] = Q[:, p : p + 2] @ U
    T[p + 1, p] = 0.0


def _schur(a: np.ndarray, tolerance: Tolerance):
    n = a.shape[0]
    H, Q = _hessenberg(a)
    real = not np.iscomplexobj(H)
    tol = tolerance.convergence
    scale = float(np.linalg.norm(H)) or 1.0

    total = 0
    its = 0
    hi = n - 1
    while hi >= 1:
        l = _find_split(H, hi, tol, scale)
        if l == hi:
            # 1x1 block converged
            hi -= 1
            its = 0
            continue
        if l == hi - 1:
            # 2x2 block: split it directly unless it holds a real conjugate pair
            ev1, _ev2 = _block_eigenvalues(H[hi - 1, hi - 1], H[hi - 1, hi], H[hi, hi - 1], H[hi, hi])
            if not real:
                _split_pair(H, Q, hi - 1, ev1)
            elif ev1.imag == 0:
                _split_pair(H, Q, hi - 1, float(ev1.real))
            hi -= 2
            its = 0
            continue
        if total >= tolerance.max_iterations:
            residual = float(np.abs(np.diag(H, -1)[l:hi]).max())
            raise NonConvergenceError(
                f"Schur iteration did not converge in {total} QR steps "
                f"(active block {l}..{hi})",
                algorithm="schur",
                iterations=total,
                residual=residual,
            )
        its += 1
        total += 1
        exceptional = its % EXCEPTIONAL_SHIFT_PERIOD == 0
        if exceptional:
            logger.debug("schur: exceptional shift at step %d (block %d..%d)", total, l, hi)
        if real:
            _francis_step(H, Q, l, hi, exceptional)
        else:
            _complex_qr_step(H, Q, l, hi, exceptional)
        # bulge chasing leaves rounding noise below the sub-diagonal
        H[np.tril_indices(n, -2)] = 0.0

    logger.debug("schur: %dx%d converged after %d QR steps", n, n, total)
    return Q, H, total


@dataclass(frozen=True, eq=False)
class SchurDecomposition(Factorization):
    """
    A = Q T Q^H.

    T is upper triangular for complex input and quasi upper triangular
    (1x1 and 2x2 diagonal blocks) for real input.
    """

    q: np.ndarray
    t: np.ndarray
    iterations: int = 0
    tolerance: Tolerance = DEFAULT_TOLERANCE

    @property
    def Q(self) -> Matrix:
        return Matrix._wrap(self.q.copy())

    @property
    def T(self) -> Matrix:
        return Matrix._wrap(self.t.copy())

    @property
    def n(self) -> int:
        return self.t.shape[0]

    def blocks(self):
        """(start, size) of each diagonal block of T."""
        out = []
        i = 0
        while i < self.n:
            if i + 1 < self.n and self.t[i + 1, i] != 0:
                out.append((i, 2))
                i += 2
            else:
                out.append((i, 1))
                i += 1
        return out

    def eigenvalues(self) -> np.ndarray:
        """Diagonal entries, exact conjugate pairs from the 2x2 blocks."""
        vals = []
        for i, size in self.blocks():
            if size == 1:
                vals.append(self.t[i, i])
            else:
                T = self.t
                ev1, ev2 = _block_eigenvalues(T[i, i], T[i, i + 1], T[i + 1, i], T[i + 1, i + 1])
                if np.isrealobj(T):
                    re = float(np.real(ev1))
                    im = abs(float(np.imag(ev1)))
                    vals.extend([complex(re, im), complex(re, -im)])
                    continue
                vals.extend([ev1, ev2])
        out = np.array(vals) if vals else np.zeros(0)
        if np.iscomplexobj(out) and np.isrealobj(self.t) and not np.any(out.imag):
            out = out.real
        return out

    def det(self):
        value = np.prod(self.eigenvalues())
        if np.isrealobj(self.t):
            value = np.real(value)
        return value.item() if isinstance(value, np.generic) else value

    def _quasi_triangular_solve(self, c: np.ndarray) -> np.ndarray:
        T = self.t
        x = np.zeros_like(c, dtype=np.result_type(T, c))
        tol = scale_tol(T, self.tolerance.pivot_eps)
        for i, size in reversed(self.blocks()):
            j = i + size
            rhs = c[i:j] - T[i:j, j:] @ x[j:]
            if size == 1:
                if abs(T[i, i]) <= tol:
                    raise SingularMatrixError(
                        f"zero eigenvalue on the diagonal of T at {i}",
                        index=i,
                        pivot=float(abs(T[i, i])),
                        threshold=tol,
                    )
                x[i] = rhs[0] / T[i, i]
                continue
            a, b, cc, d = T[i, i], T[i, i + 1], T[i + 1, i], T[i + 1, i + 1]
            det = a * d - b * cc
            if abs(det) <= tol * tol:
                raise SingularMatrixError(
                    f"singular 2x2 block of T at {i}", index=i, pivot=float(abs(det)), threshold=tol * tol
                )
            x[i] = (d * rhs[0] - b * rhs[1]) / det
            x[i + 1] = (a * rhs[1] - cc * rhs[0]) / det
        return x

    def solve(self, B) -> Matrix:
        """``x = Q T^{-1} Q^H B`` by quasi-triangular back substitution."""
        b = coerce_rhs(B, self.n)
        y = self.q.conj().T @ b
        return Matrix._wrap(self.q @ self._quasi_triangular_solve(y))

    def reconstruct(self) -> Matrix:
        return Matrix._wrap(self.q @ self.t @ self.q.conj().T)


def schur(A, tolerance: Tolerance = DEFAULT_TOLERANCE) -> SchurDecomposition:
    """
    Schur decomposition by Hessenberg reduction and shifted QR iteration.

    Raises
    ------
    DimensionMismatchError
        A is not square.
    NonConvergenceError
        `tolerance.max_iterations` QR steps did not reduce T.
    """
    a = as_array(A)
    if a.shape[0] != a.shape[1]:
        raise DimensionMismatchError(f"Schur decomposition needs a square matrix, got {a.shape}")
    Q, T, total = _schur(a, tolerance)
    return SchurDecomposition(q=freeze(Q), t=freeze(T), iterations=total, tolerance=tolerance)


# ---------------------------------------------------------------------------
# Eigen decomposition
# ---------------------------------------------------------------------------
def _triangular_eigenvectors(T: np.ndarray) -> np.ndarray:
    """Eigenvectors of an upper-triangular T, by back substitution."""
    n = T.shape[0]
    Y = np.zeros((n, n), dtype=T.dtype)
    smallnum = max(MACHINE_EPS * float(np.linalg.norm(T)), np.finfo(float).tiny)
    for k in range(n):
        lam = T[k, k]
        Y[k, k] = 1.0
        for i in range(k - 1, -1, -1):
            denom = T[i, i] - lam
            if abs(denom) < smallnum:
                # repeated eigenvalue
                denom = smallnum
            Y[i, k] = -(T[i, i + 1 : k + 1] @ Y[i + 1 : k + 1, k]) / denom
    return Y


@dataclass(frozen=True, eq=False)
class EigenDecomposition(Factorization):
    """
    A = V D V^{-1}, D = diag(values).

    For Hermitian A the values are real (ascending) and V is unitary.
    """

    values: np.ndarray
    vectors: np.ndarray
    iterations: int = 0
    hermitian: bool = False
    tolerance: Tolerance = DEFAULT_TOLERANCE

    @property
    def D(self) -> Matrix:
        return Matrix._wrap(np.diag(self.values))

    @property
    def V(self) -> Matrix:
        return Matrix._wrap(self.vectors.copy())

    @property
    def n(self) -> int:
        return self.values.shape[0]

    def det(self):
        value = np.prod(self.values)
        return value.item() if isinstance(value, np.generic) else value

    def _apply_inverse_vectors(self, b: np.ndarray) -> np.ndarray:
        if self.hermitian:
            return self.vectors.conj().T @ b
        f = lu_doolittle(self.vectors, pivoting="partial", tolerance=self.tolerance)
        return f.solve(b).to_numpy()

    def solve(self, B) -> Matrix:
        """``x = V D^{-1} V^{-1} B``."""
        b = coerce_rhs(B, self.n)
        tol = scale_tol(np.diag(self.values), self.tolerance.pivot_eps)
        small = np.flatnonzero(np.abs(self.values) <= tol)
        if small.size:
            i = int(small[0])
            raise SingularMatrixError(
                f"matrix has a zero eigenvalue (index {i})",
                index=i,
                pivot=float(abs(self.values[i])),
                threshold=tol,
            )
        z = self._apply_inverse_vectors(b) / self.values[:, None]
        return Matrix._wrap(self.vectors @ z)

    def verify(self, A, rtol: float = 1e-8) -> bool:
        """``||A V - V D|| <= rtol ||A||``."""
        a = as_array(A, copy=False)
        lhs = a @ self.vectors
        rhs = self.vectors * self.values
        scale = float(np.linalg.norm(a)) or 1.0
        return float(np.linalg.norm(lhs - rhs)) <= rtol * scale

    def reconstruct(self) -> Matrix:
        v_inv = self._apply_inverse_vectors(np.eye(self.n, dtype=self.vectors.dtype))
        return Matrix._wrap((self.vectors * self.values) @ v_inv)


def eigen(A, tolerance: Tolerance = DEFAULT_TOLERANCE) -> EigenDecomposition:
    """
    Eigenvalues and eigenvectors of a square matrix.

    Hermitian input: eigenvectors are the Schur vectors, values are real.
    General input: the Schur form is made triangular (complex when needed)
    and eigenvectors of T are back-substituted, then mapped by Q.
    """
    a = as_array(A)
    n = a.shape[0]
    if a.shape[1] != n:
        raise DimensionMismatchError(f"eigen decomposition needs a square matrix, got {a.shape}")

    Q, T, total = _schur(a, tolerance)

    if is_hermitian(a, tolerance.symmetry_tol):
        values = np.real(np.diag(T)).copy()
        order = np.argsort(values, kind="stable")
        return EigenDecomposition(
            values=freeze(values[order]),
            vectors=freeze(Q[:, order]),
            iterations=total,
            hermitian=True,
            tolerance=tolerance,
        )

    # complex conjugate 2x2 blocks -> triangular via complex rotations
    pairs = [i for i in range(n - 1) if T[i + 1, i] != 0]
    if pairs:
        T = T.astype(np.complex128)
        Q = Q.astype(np.complex128)
        for i in pairs:
            ev1, _ev2 = _block_eigenvalues(T[i, i], T[i, i + 1], T[i + 1, i], T[i + 1, i + 1])
            _split_pair(T, Q, i, ev1)

    Y = _triangular_eigenvectors(T)
    V = Q @ Y
    V /= np.linalg.norm(V, axis=0)
    values = np.diag(T).copy()
    return EigenDecomposition(
        values=freeze(values), vectors=freeze(V), iterations=total, tolerance=tolerance
    )


def power_iteration(
    A,
    max_iter: int = 2000,
    tol: float = 1e-10,
    v0: Optional[np.ndarray] = None,
    return_history: bool = False,
    seed: Optional[int] = None,
):
    """
    Estimate the dominant eigenvalue (by magnitude) and its eigenvector
    using the Power Iteration method.

    Stops when the residual norm ||A v - λ v||_2 falls below `tol`
    or when `max_iter` is reached.

    Parameters
    ----------
    A : (n,n) matrix
        Real square matrix.
    max_iter : int
        Maximum number of iterations.
    tol : float
        Convergence tolerance on the residual.
    v0 : (n,) ndarray or None
        Optional initial guess. If None, random normal is used.
    return_history : bool
        If True, also return (num_iters, residual_history).
    seed : int | None
        Seed for the random start vector.

    Returns
    -------
    lam : float
        Estimated dominant eigenvalue.
    v : (n,) ndarray
        Corresponding eigenvector (unit norm).
    (iters, hist) : optional
        Iteration count and residual array if return_history=True.
    """
    A = as_array(A)
    m, n = A.shape
    if m != n:
        raise DimensionMismatchError("Power iteration requires a square matrix.")

    # init vector
    if v0 is None:
        v = np.random.default_rng(seed).standard_normal(n).astype(A.dtype)
    else:
        v = np.asarray(v0, dtype=A.dtype).copy()
        if v.shape != (n,):
            raise DimensionMismatchError("v0 must be shape (n,).")
    v /= np.linalg.norm(v)  # normalize

    lam = 0.0
    iters = 0
    hist = []
    for iters in range(max_iter):
        w = A @ v
        norm_w = np.linalg.norm(w)
        if norm_w < tol:
            # A maps current v to ~0; matrix may be singular.
            lam = 0.0
            break
        v = w / norm_w
        lam_new = np.vdot(v, A @ v)  # Rayleigh quotient
        if np.isrealobj(A):
            lam_new = float(np.real(lam_new))
        resid = np.linalg.norm(A @ v - lam_new * v)
        hist.append(resid)
        lam = lam_new
        if resid < tol:
            break
    return (lam, v, iters, np.array(hist)) if return_history else (lam, v)
