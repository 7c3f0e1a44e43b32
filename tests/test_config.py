# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

import dataclasses

import numpy as np
import pytest

from denselinalg.config import DEFAULT_TOLERANCE, MACHINE_EPS, Tolerance
from denselinalg.exceptions import (
    DimensionMismatchError,
    IndexOutOfRangeError,
    InvalidArgumentError,
    LinalgError,
    MalformedMatrixError,
    NonConvergenceError,
    NotPositiveDefiniteError,
    NumericalError,
    SingularMatrixError,
)


def test_defaults():
    t = Tolerance()
    assert t == DEFAULT_TOLERANCE
    assert t.pivot_eps == 1e-12
    assert t.convergence == 1e-12
    assert t.rank_rtol == MACHINE_EPS == np.finfo(float).eps
    assert t.max_iterations == 1000
    assert t.iterative_tol == 1e-10
    assert t.condition_threshold == 1e10


@pytest.mark.parametrize(
    "field, value",
    [
        ("pivot_eps", 0.0),
        ("convergence", -1e-3),
        ("rank_rtol", float("nan")),
        ("condition_threshold", float("inf")),
        ("max_iterations", 0),
        ("max_iterations", 2.5),
    ],
)
def test_invalid_values(field, value):
    with pytest.raises(InvalidArgumentError):
        Tolerance(**{field: value})


def test_frozen_and_replace():
    t = Tolerance()
    with pytest.raises(dataclasses.FrozenInstanceError):
        t.pivot_eps = 1.0
    s = t.replace(max_iterations=5)
    assert s.max_iterations == 5
    assert t.max_iterations == 1000
    with pytest.raises(InvalidArgumentError):
        t.replace(iterative_tol=0)


def test_exception_hierarchy():
    for cls in (
        DimensionMismatchError,
        IndexOutOfRangeError,
        MalformedMatrixError,
        InvalidArgumentError,
        SingularMatrixError,
        NotPositiveDefiniteError,
        NonConvergenceError,
    ):
        assert issubclass(cls, LinalgError)
    for cls in (SingularMatrixError, NotPositiveDefiniteError, NonConvergenceError):
        assert issubclass(cls, NumericalError)
    assert issubclass(DimensionMismatchError, ValueError)
    assert issubclass(IndexOutOfRangeError, IndexError)

    err = NonConvergenceError("gave up", algorithm="svd", iterations=7, residual=0.5)
    assert (err.algorithm, err.iterations, err.residual) == ("svd", 7, 0.5)
    assert str(err) == "gave up"
