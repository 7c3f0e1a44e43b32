# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""Common interface of the decomposition result objects."""

from abc import ABC, abstractmethod

import numpy as np

from .exceptions import DimensionMismatchError
from .matrix import Matrix, as_array


def freeze(arr: np.ndarray) -> np.ndarray:
    """Read-only copy, so factors cannot be edited behind the result's back."""
    out = np.array(arr, copy=True)
    out.setflags(write=False)
    return out


def coerce_rhs(B, n: int) -> np.ndarray:
    """Right-hand side as a 2-D array with `n` rows (a vector becomes a column)."""
    b = as_array(B)
    if b.shape[0] != n:
        raise DimensionMismatchError(
            f"right-hand side has {b.shape[0]} rows, expected {n}"
        )
    return b


class Factorization(ABC):
    """
    Result of a decomposition.

    Factors are stored as read-only arrays; accessors return fresh
    `Matrix` copies.
    """

    @abstractmethod
    def reconstruct(self) -> Matrix:
        """Multiply the factors back together."""

    @abstractmethod
    def solve(self, B) -> Matrix:
        """Solve ``A X = B`` using the stored factors."""

    def residual(self, A) -> float:
        """``||A - reconstruct()||_F / ||A||_F`` (absolute when A is zero)."""
        a = as_array(A, copy=False)
        diff = float(np.linalg.norm(a - self.reconstruct().to_numpy()))
        scale = float(np.linalg.norm(a))
        return diff / scale if scale > 0 else diff

    def is_accurate(self, A, rtol: float = 1e-10) -> bool:
        return self.residual(A) <= rtol
