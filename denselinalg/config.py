# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Numerical tolerances shared by every decomposition and solver.

There is no module-level mutable precision state: callers that need
different thresholds build their own `Tolerance` and pass it in.

>>> from denselinalg.config import Tolerance
>>> strict = Tolerance(pivot_eps=1e-14, max_iterations=5000)
"""

import dataclasses
from dataclasses import dataclass

import numpy as np

from .exceptions import InvalidArgumentError

EPS: float = 1e-12
MACHINE_EPS: float = float(np.finfo(float).eps)


@dataclass(frozen=True)
class Tolerance:
    """
    Thresholds and iteration budgets.

    pivot_eps
        A pivot whose magnitude is ``<= pivot_eps * ||A||_inf`` is zero.
    convergence
        Relative size below which a sub-diagonal entry (Schur/eigen) or a
        column inner product (Jacobi SVD) is treated as zero.
    rank_rtol
        Singular values ``<= rank_rtol * sigma_max * max(m, n)`` do not count
        towards the rank.
    symmetry_tol
        Relative tolerance of the symmetric/Hermitian test.
    max_iterations
        QR steps for Schur/eigen, sweeps for the SVD, iterations for the
        stationary and Krylov solvers.
    iterative_tol
        Stopping threshold of Jacobi, Gauss-Seidel, SOR and CG, relative to
        the iterate: ``||x_new - x_old|| <= iterative_tol * max(1, ||x_new||)``.
        Pass ``absolute=True`` to the solver for the plain step-size test.
    condition_threshold
        Condition numbers above this send the ``auto`` solver to the SVD.
    """

    pivot_eps: float = EPS
    convergence: float = 1e-12
    rank_rtol: float = MACHINE_EPS
    symmetry_tol: float = 1e-10
    max_iterations: int = 1000
    iterative_tol: float = 1e-10
    condition_threshold: float = 1e10

    def __post_init__(self):
        for name in (
            "pivot_eps",
            "convergence",
            "rank_rtol",
            "symmetry_tol",
            "iterative_tol",
            "condition_threshold",
        ):
            value = getattr(self, name)
            if not np.isfinite(value) or value <= 0:
                raise InvalidArgumentError(f"{name} must be > 0, got {value!r}")
        if int(self.max_iterations) != self.max_iterations or self.max_iterations < 1:
            raise InvalidArgumentError(
                f"max_iterations must be a positive integer, got {self.max_iterations!r}"
            )

    def replace(self, **changes) -> "Tolerance":
        """Copy with some fields changed (validated like the constructor)."""
        return dataclasses.replace(self, **changes)


DEFAULT_TOLERANCE = Tolerance()
