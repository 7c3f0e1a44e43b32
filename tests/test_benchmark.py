# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import numpy as np

from denselinalg.benchmark import COLUMNS, run_benchmark


def test_benchmark_table():
    df = run_benchmark([(8, 8), (12, 6)], repeats=1, seed=0)
    assert list(df.columns) == COLUMNS

    square = set(df.loc[df["size"] == "8x8", "kernel"])
    assert square == {"GE", "LU-partial", "Cholesky", "MGS-QR", "HH-QR", "Jacobi-SVD"}
    tall = set(df.loc[df["size"] == "12x6", "kernel"])
    assert tall == {"MGS-QR", "HH-QR", "Jacobi-SVD"}

    assert np.isfinite(df["sec"]).all()
    assert np.isfinite(df["residual/NumPy"]).all()
    # our solutions are no worse than a few hundred ulps of the reference
    assert (df["residual/NumPy"] < 1e3).all()
    qr_rows = df[df["kernel"].isin(["MGS-QR", "HH-QR", "Jacobi-SVD"])]
    assert (qr_rows["orth_err"] < 1e-10).all()
