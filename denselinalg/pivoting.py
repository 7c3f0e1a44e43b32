# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Pivot selection for the elimination-based factorizations.

Ties are broken by the lowest index (row first, then column) so that a
given input always produces the same permutation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from .exceptions import InvalidArgumentError, SingularMatrixError
from .utils import permutation_sign


class PivotStrategy(str, Enum):
    NONE = "none"
    PARTIAL = "partial"
    COMPLETE = "complete"
    SCALED = "scaled"  # partial pivoting on |a_ik| / max_j |a_ij|

    @classmethod
    def parse(cls, value: Union[str, "PivotStrategy"]) -> "PivotStrategy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as e:
            choices = ", ".join(s.value for s in cls)
            raise InvalidArgumentError(
                f"unknown pivoting strategy {value!r} (choose from {choices})"
            ) from e


@dataclass(frozen=True)
class Permutation:
    """
    A bijection of ``range(n)``.

    ``indices[i]`` is the original position of the row (or column) that
    ended up at position ``i``.
    """

    indices: Tuple[int, ...]

    def __post_init__(self):
        idx = tuple(int(i) for i in self.indices)
        if sorted(idx) != list(range(len(idx))):
            raise InvalidArgumentError(f"{idx!r} is not a permutation of 0..{len(idx) - 1}")
        object.__setattr__(self, "indices", idx)

    @classmethod
    def identity(cls, n: int) -> "Permutation":
        return cls(tuple(range(n)))

    @classmethod
    def from_list(cls, indices: Sequence[int]) -> "Permutation":
        return cls(tuple(indices))

    @property
    def size(self) -> int:
        return len(self.indices)

    def is_identity(self) -> bool:
        return self.indices == tuple(range(self.size))

    def sign(self) -> float:
        return permutation_sign(self.indices)

    def as_matrix(self, columns: bool = False) -> np.ndarray:
        """
        Permutation matrix.

        For rows this is ``P`` with ``(P A)[i] = A[indices[i]]``; for
        columns it is ``Q`` with ``(A Q)[:, j] = A[:, indices[j]]``.
        """
        n = self.size
        P = np.zeros((n, n))
        P[np.arange(n), list(self.indices)] = 1.0
        return P.T if columns else P

    def inverse(self) -> "Permutation":
        inv = [0] * self.size
        for pos, src in enumerate(self.indices):
            inv[src] = pos
        return Permutation(tuple(inv))

    def apply_rows(self, arr: np.ndarray) -> np.ndarray:
        return np.asarray(arr)[list(self.indices)]


def select_pivot(
    S: np.ndarray,
    strategy: PivotStrategy,
    threshold: float,
    scales: Optional[np.ndarray] = None,
    step: int = 0,
) -> Tuple[int, int]:
    """
    Choose a pivot inside the active block `S`.

    Parameters
    ----------
    S : (r, c) ndarray
        Active sub-matrix; for NONE/PARTIAL/SCALED only column 0 is read.
    strategy : PivotStrategy
    threshold : float
        A pivot of magnitude ``<= threshold`` is numerically zero.
    scales : ndarray, optional
        Row scale factors for SCALED pivoting, aligned with the rows of `S`.
    step : int
        Elimination step, reported in the exception.

    Returns
    -------
    (row, col) offsets inside `S`.

    Raises
    ------
    SingularMatrixError
        If the chosen pivot is numerically zero.
    """
    if strategy is PivotStrategy.NONE:
        r, c = 0, 0
    elif strategy is PivotStrategy.PARTIAL:
        r, c = int(np.argmax(np.abs(S[:, 0]))), 0
    elif strategy is PivotStrategy.SCALED:
        mags = np.abs(S[:, 0])
        if scales is not None:
            safe = np.where(scales > 0, scales, 1.0)
            mags = mags / safe
        r, c = int(np.argmax(mags)), 0
    else:
        r, c = divmod(int(np.argmax(np.abs(S))), S.shape[1])

    pivot = float(abs(S[r, c]))
    if pivot <= threshold:
        raise SingularMatrixError(
            f"matrix is singular to working precision: pivot {pivot:.3e} at step {step}",
            index=step,
            pivot=pivot,
            threshold=threshold,
        )
    return r, c
