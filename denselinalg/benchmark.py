#!/usr/bin/python3
# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Timing and accuracy of the factorizations against NumPy/LAPACK.

    python -m denselinalg.benchmark

prints a markdown table and writes ``bench_results.csv``.
"""

import argparse
import logging
import time
from typing import Iterable, Optional, Tuple

import numpy as np
import pandas as pd

from .cholesky import cholesky
from .elimination import gaussian_solve
from .lu import lu_doolittle
from .qr import gram_schmidt_qr, householder_qr
from .svd import svd

logger = logging.getLogger(__name__)

REPEATS = 5  # best of 5 runs leads to stable numbers
SIZES = [(100, 100), (300, 300), (1000, 300)]
# one-sided Jacobi runs in Python loops; keep it to small matrices
SVD_MAX_COLS = 150

COLUMNS = ["kernel", "size", "sec", "sec/NumPy", "residual/NumPy", "orth_err"]


def wall(f, *args, **kwargs):
    t0 = time.perf_counter()
    f(*args, **kwargs)
    return time.perf_counter() - t0


def _best(f, repeats, *args, **kwargs):
    return min(wall(f, *args, **kwargs) for _ in range(repeats))


def _residual(A, x, b):
    return float(np.linalg.norm(A @ np.asarray(x).ravel() - b, np.inf))


def run_benchmark(
    sizes: Iterable[Tuple[int, int]] = SIZES,
    repeats: int = REPEATS,
    seed: Optional[int] = 0,
) -> pd.DataFrame:
    """
    One row per (kernel, size).

    ``residual/NumPy`` compares the inf-norm residual of our solution with
    that of ``np.linalg.lstsq``; ``orth_err`` is ``||Q^T Q - I||_inf`` for
    the QR kernels.
    """
    rng = np.random.default_rng(seed)
    records = []
    for m, n in sizes:
        A = rng.standard_normal((m, n))
        b = rng.standard_normal(m)
        size = f"{m}x{n}"

        # reference
        t_np = max(_best(np.linalg.lstsq, repeats, A, b, rcond=None), 1e-12)
        x_ref, *_ = np.linalg.lstsq(A, b, rcond=None)
        r_ref = max(_residual(A, x_ref, b), np.finfo(float).eps)

        # square-only kernels
        if m == n:
            t = _best(gaussian_solve, repeats, A, b)
            x = gaussian_solve(A, b)
            records.append(("GE", size, t, t / t_np, _residual(A, x, b) / r_ref, np.nan))

            t = _best(lu_doolittle, repeats, A, "partial")
            x = lu_doolittle(A, "partial").solve(b).to_numpy()
            records.append(("LU-partial", size, t, t / t_np, _residual(A, x, b) / r_ref, np.nan))

            S = A.T @ A + n * np.eye(n)
            t = _best(cholesky, repeats, S)
            x = cholesky(S).solve(b).to_numpy()
            r_chol = _residual(S, x, b) / max(_residual(S, np.linalg.solve(S, b), b), np.finfo(float).eps)
            records.append(("Cholesky", size, t, t / t_np, r_chol, np.nan))

        # Modified Gram-Schmidt QR
        t = _best(gram_schmidt_qr, repeats, A)
        f = gram_schmidt_qr(A)
        ortho = float(np.linalg.norm(f.q.T @ f.q - np.eye(n), np.inf))
        x = f.solve(b).to_numpy()
        records.append(("MGS-QR", size, t, t / t_np, _residual(A, x, b) / r_ref, ortho))

        # ---------- Householder QR ---------------------------------
        t = _best(householder_qr, repeats, A)
        f = householder_qr(A)
        ortho = float(np.linalg.norm(f.q.T @ f.q - np.eye(n), np.inf))
        x = f.solve(b).to_numpy()
        records.append(("HH-QR", size, t, t / t_np, _residual(A, x, b) / r_ref, ortho))

        if n <= SVD_MAX_COLS:
            t = _best(svd, repeats, A)
            f = svd(A)
            ortho = float(np.linalg.norm(f.u.T @ f.u - np.eye(n), np.inf))
            x = f.solve(b).to_numpy()
            records.append(("Jacobi-SVD", size, t, t / t_np, _residual(A, x, b) / r_ref, ortho))

        logger.info("benchmarked %s", size)

    return pd.DataFrame(records, columns=COLUMNS)


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--repeats", type=int, default=REPEATS)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--out", default="bench_results.csv")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    df = run_benchmark(repeats=args.repeats, seed=args.seed)
    print(df.to_markdown(index=False))
    df.to_csv(args.out, index=False)


if __name__ == "__main__":
    main()
