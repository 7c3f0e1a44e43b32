# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Norms, rank and condition numbers.

Everything here is a pure function of its input; nothing is cached on the
matrix, so results never go stale when a matrix is mutated in place.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import numpy as np

from .config import DEFAULT_TOLERANCE, Tolerance
from .elimination import rank_elimination
from .exceptions import InvalidArgumentError
from .matrix import Matrix, as_array
from .svd import svd

logger = logging.getLogger(__name__)


class Norm(str, Enum):
    FROBENIUS = "fro"
    ONE = "1"  # max column sum
    INF = "inf"  # max row sum
    SPECTRAL = "2"
    NUCLEAR = "nuclear"

    @classmethod
    def parse(cls, kind: Union[str, int, float, "Norm"]) -> "Norm":
        if isinstance(kind, cls):
            return kind
        if isinstance(kind, (int, float)) and not isinstance(kind, bool):
            kind = "inf" if kind == float("inf") else str(int(kind))
        aliases = {
            "frobenius": "fro",
            "manhattan": "1",
            "chebyshev": "inf",
            "spectral": "2",
            "nuc": "nuclear",
            "trace": "nuclear",
        }
        text = str(kind).lower()
        try:
            return cls(aliases.get(text, text))
        except ValueError as e:
            raise InvalidArgumentError(f"unknown norm {kind!r}") from e


def norm(
    A,
    kind: Union[str, int, float, Norm] = Norm.FROBENIUS,
    method: str = "svd",
    tolerance: Tolerance = DEFAULT_TOLERANCE,
) -> float:
    """
    Matrix norm.

    ``method`` only matters for the spectral norm: "svd" takes the largest
    singular value, "power" runs power iteration on ``A^H A``.
    """
    kind = Norm.parse(kind)
    a = as_array(A, copy=False)
    if a.size == 0:
        return 0.0
    if kind is Norm.FROBENIUS:
        return float(np.sqrt(np.sum(np.abs(a) ** 2)))
    if kind is Norm.ONE:
        return float(np.max(np.sum(np.abs(a), axis=0)))
    if kind is Norm.INF:
        return float(np.max(np.sum(np.abs(a), axis=1)))
    if kind is Norm.NUCLEAR:
        return float(np.sum(svd(a, tolerance).s))

    if method == "svd":
        return float(svd(a, tolerance).s[0])
    if method == "power":
        from .eigen import power_iteration

        gram = a.conj().T @ a
        lam, _v = power_iteration(gram, max_iter=tolerance.max_iterations, seed=0)
        return float(np.sqrt(max(np.real(lam), 0.0)))
    raise InvalidArgumentError(f"unknown spectral norm method {method!r}")


def pseudo_inverse(A, tolerance: Tolerance = DEFAULT_TOLERANCE) -> Matrix:
    """Moore-Penrose inverse from the SVD."""
    return svd(A, tolerance).pseudo_inverse()


def condition_number(
    A,
    kind: Union[str, int, float, Norm] = Norm.SPECTRAL,
    tolerance: Tolerance = DEFAULT_TOLERANCE,
) -> float:
    """
    ``norm(A) * norm(pinv(A))``.

    Numerically rank-deficient (and zero) matrices give ``inf``.
    """
    kind = Norm.parse(kind)
    a = as_array(A, copy=False)
    if a.size == 0:
        return 0.0
    f = svd(a, tolerance)
    if f.rank() < min(a.shape):
        return float("inf")
    if kind is Norm.SPECTRAL:
        return f.condition_number()
    return norm(a, kind, tolerance=tolerance) * norm(f._pinv_array(), kind, tolerance=tolerance)


def rank(
    A,
    tolerance: Optional[float] = None,
    method: str = "svd",
    config: Tolerance = DEFAULT_TOLERANCE,
) -> int:
    """
    Numerical rank.

    With ``method="svd"`` counts singular values above
    ``tolerance * sigma_max * max(m, n)`` (``tolerance`` defaults to
    ``config.rank_rtol``); with ``method="elimination"`` counts the pivot
    columns of a partially pivoted row reduction, ``tolerance`` being the
    relative pivot threshold.
    """
    a = as_array(A, copy=False)
    if a.size == 0:
        return 0
    if method == "svd":
        return svd(a, config).rank(tolerance)
    if method == "elimination":
        return rank_elimination(a, eps=config.pivot_eps if tolerance is None else tolerance)
    raise InvalidArgumentError(f"unknown rank method {method!r}")


def is_singular(A, tolerance: Tolerance = DEFAULT_TOLERANCE) -> bool:
    """Square and rank deficient; non-square matrices are never singular."""
    a = as_array(A, copy=False)
    if a.shape[0] != a.shape[1]:
        return False
    return rank(a, config=tolerance) < a.shape[0]


@dataclass(frozen=True)
class ConditionReport:
    """
    Snapshot of the conditioning of a matrix.

    Computed from the matrix as it was when `analyze` ran; if the caller
    mutates the matrix afterwards it is up to them to analyze it again.
    """

    kind: Norm
    norm: float
    pinv_norm: float
    condition_number: float
    rank: int
    is_singular: bool
    singular_values: tuple
    condition_threshold: float = DEFAULT_TOLERANCE.condition_threshold

    @property
    def well_conditioned(self) -> bool:
        cond = self.condition_number
        return bool(np.isfinite(cond) and cond <= self.condition_threshold)


def analyze(
    A,
    kind: Union[str, int, float, Norm] = Norm.SPECTRAL,
    tolerance: Tolerance = DEFAULT_TOLERANCE,
) -> ConditionReport:
    """One SVD, every conditioning figure."""
    kind = Norm.parse(kind)
    a = as_array(A, copy=False)
    f = svd(a, tolerance)
    r = f.rank()
    pinv = f._pinv_array()
    if kind is Norm.SPECTRAL:
        norm_a = float(f.s[0]) if f.s.size else 0.0
    else:
        norm_a = norm(a, kind, tolerance=tolerance)
    norm_p = norm(pinv, kind, tolerance=tolerance)
    cond = float("inf") if r < min(a.shape) else norm_a * norm_p
    report = ConditionReport(
        kind=kind,
        norm=norm_a,
        pinv_norm=norm_p,
        condition_number=cond,
        rank=r,
        is_singular=a.shape[0] == a.shape[1] and r < a.shape[0],
        singular_values=tuple(float(x) for x in f.s),
        condition_threshold=tolerance.condition_threshold,
    )
    logger.debug("analyze: %dx%d rank %d cond_%s %.3e", a.shape[0], a.shape[1], r, kind.value, cond)
    return report
