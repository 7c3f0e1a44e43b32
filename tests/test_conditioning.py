# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import logging

import numpy as np
import pytest

from denselinalg.conditioning import (
    Norm,
    analyze,
    condition_number,
    is_singular,
    norm,
    pseudo_inverse,
    rank,
)
from denselinalg.config import Tolerance
from denselinalg.exceptions import InvalidArgumentError
from denselinalg.matrix import Matrix
from denselinalg.qr import random_ill_conditioned

TEST_ITERATIONS = 50
logger = logging.getLogger(__name__)
rng = np.random.default_rng(31)


@pytest.mark.parametrize(
    "kind, np_ord",
    [("fro", "fro"), ("1", 1), ("inf", np.inf), ("2", 2), ("nuclear", "nuc")],
)
def test_norms_match_numpy(kind, np_ord):
    for _ in range(10):
        m, n = rng.integers(1, 8, size=2)
        A = rng.standard_normal((m, n))
        assert norm(A, kind) == pytest.approx(np.linalg.norm(A, np_ord), rel=1e-10)


@pytest.mark.parametrize(
    "alias, expected",
    [
        ("frobenius", Norm.FROBENIUS),
        ("manhattan", Norm.ONE),
        (1, Norm.ONE),
        ("chebyshev", Norm.INF),
        (np.inf, Norm.INF),
        ("spectral", Norm.SPECTRAL),
        (2, Norm.SPECTRAL),
        ("trace", Norm.NUCLEAR),
        ("nuc", Norm.NUCLEAR),
    ],
)
def test_norm_aliases(alias, expected):
    assert Norm.parse(alias) is expected


def test_unknown_norm_and_method():
    with pytest.raises(InvalidArgumentError):
        norm(np.eye(2), "max")
    with pytest.raises(InvalidArgumentError):
        norm(np.eye(2), "2", method="lanczos")
    with pytest.raises(InvalidArgumentError):
        rank(np.eye(2), method="qr")


def test_spectral_norm_by_power_iteration():
    Q1, _ = np.linalg.qr(rng.standard_normal((6, 6)))
    Q2, _ = np.linalg.qr(rng.standard_normal((4, 4)))
    A = Q1[:, :4] @ np.diag([5.0, 2.0, 1.0, 0.5]) @ Q2.T
    assert norm(A, "2", method="power") == pytest.approx(5.0, rel=1e-8)
    assert norm(A, "2") == pytest.approx(5.0, rel=1e-12)


def test_empty_matrix_norm():
    assert norm(np.zeros((0, 0))) == 0.0
    assert condition_number(np.zeros((0, 0))) == 0.0


@pytest.mark.parametrize("kind, np_ord", [("2", 2), ("1", 1), ("inf", np.inf), ("fro", "fro")])
def test_condition_number_matches_numpy(kind, np_ord):
    for _ in range(TEST_ITERATIONS):
        n = int(rng.integers(1, 8))
        A = rng.standard_normal((n, n)) + n * np.eye(n)
        assert condition_number(A, kind) == pytest.approx(np.linalg.cond(A, np_ord), rel=1e-8)


def test_condition_number_singular_and_ill_conditioned():
    assert condition_number([[1, 2], [2, 4]]) == float("inf")
    assert condition_number(np.zeros((3, 3))) == float("inf")
    A = random_ill_conditioned(20, 1e8, seed=3)
    assert condition_number(A) == pytest.approx(1e8, rel=1e-4)


def test_rank_methods_agree():
    for _ in range(TEST_ITERATIONS):
        m, n = rng.integers(1, 9, size=2)
        r = int(rng.integers(0, min(m, n) + 1))
        A = rng.standard_normal((m, r)) @ rng.standard_normal((r, n))
        assert rank(A, 1e-10) == r
        assert rank(A, 1e-8, method="elimination") == r
        assert Matrix(A).rank(1e-10) == r


def test_is_singular():
    assert is_singular([[1, 2], [2, 4]])
    assert not is_singular(np.eye(3))
    # non-square matrices are never singular
    assert not is_singular(np.ones((2, 3)))


def test_pseudo_inverse_penrose_conditions():
    A = rng.standard_normal((7, 3)) @ rng.standard_normal((3, 5))
    P = pseudo_inverse(A).to_numpy()
    np.testing.assert_allclose(A @ P @ A, A, atol=1e-9)
    np.testing.assert_allclose(P @ A @ P, P, atol=1e-9)
    np.testing.assert_allclose((A @ P).T, A @ P, atol=1e-9)
    np.testing.assert_allclose((P @ A).T, P @ A, atol=1e-9)


def test_analyze_report():
    A = np.array([[2.0, 0.0], [0.0, 0.5]])
    report = analyze(A)
    assert report.kind is Norm.SPECTRAL
    assert report.norm == pytest.approx(2.0)
    assert report.pinv_norm == pytest.approx(2.0)
    assert report.condition_number == pytest.approx(4.0)
    assert report.rank == 2
    assert not report.is_singular
    assert report.singular_values == pytest.approx((2.0, 0.5))
    assert report.well_conditioned

    one = analyze(A, "1")
    assert one.condition_number == pytest.approx(np.linalg.cond(A, 1))

    bad = analyze([[1, 2], [2, 4]])
    logger.debug(f"singular report: {bad}")
    assert bad.is_singular
    assert bad.rank == 1
    assert bad.condition_number == float("inf")
    assert not bad.well_conditioned


def test_analyze_uses_the_given_condition_threshold():
    A = np.diag([1.0, 1e-8])
    assert analyze(A).well_conditioned

    strict = analyze(A, tolerance=Tolerance(condition_threshold=1e6))
    assert strict.condition_threshold == 1e6
    assert strict.condition_number == pytest.approx(1e8)
    assert not strict.well_conditioned
