# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Exception hierarchy for denselinalg.

Every error raised on purpose by the package derives from `LinalgError`.
Errors that describe a bad argument also derive from the matching builtin
(`ValueError`, `IndexError`) so generic handlers keep working.
"""

from typing import Optional


class LinalgError(Exception):
    """Base exception for all denselinalg errors."""


class DimensionMismatchError(LinalgError, ValueError):
    """Operand shapes are incompatible for the requested operation."""


class IndexOutOfRangeError(LinalgError, IndexError):
    """An element, row or column index lies outside the matrix."""


class MalformedMatrixError(LinalgError, ValueError):
    """Input data cannot be turned into a rectangular numeric matrix."""


class InvalidArgumentError(LinalgError, ValueError):
    """A configuration value or parameter is outside its valid range."""


class NumericalError(LinalgError):
    """Base class for failures caused by the numbers, not the shapes."""


class SingularMatrixError(NumericalError, ValueError):
    """
    Elimination met a pivot that is numerically zero.

    Attributes
    ----------
    index : int | None
        Elimination step (or diagonal position) where the pivot vanished.
    pivot : float | None
        Magnitude of the best available pivot.
    threshold : float | None
        Magnitude at or below which a pivot counts as zero.
    """

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        pivot: Optional[float] = None,
        threshold: Optional[float] = None,
    ):
        super().__init__(message)
        self.index = index
        self.pivot = pivot
        self.threshold = threshold


class NotPositiveDefiniteError(NumericalError, ValueError):
    """
    Cholesky precondition violated.

    Attributes
    ----------
    index : int | None
        Leading minor (0-based) whose pivot was not positive; None when the
        input was rejected before elimination (e.g. not symmetric).
    pivot : float | None
        The offending pivot value.
    """

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        pivot: Optional[float] = None,
    ):
        super().__init__(message)
        self.index = index
        self.pivot = pivot


class NonConvergenceError(NumericalError):
    """
    An iterative factorization exhausted its iteration budget.

    Attributes
    ----------
    algorithm : str
        Name of the procedure that gave up.
    iterations : int
        Iterations (QR steps or Jacobi sweeps) performed.
    residual : float | None
        Size of the part that had not converged, if known.
    """

    def __init__(
        self,
        message: str,
        algorithm: str,
        iterations: int,
        residual: Optional[float] = None,
    ):
        super().__init__(message)
        self.algorithm = algorithm
        self.iterations = iterations
        self.residual = residual
