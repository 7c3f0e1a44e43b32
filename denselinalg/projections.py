#!/usr/bin/python3
# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Projection operations
"""

import logging

from .config import DEFAULT_TOLERANCE, Tolerance
from .factorization import coerce_rhs
from .matrix import Matrix, as_array
from .svd import svd

logger = logging.getLogger(__name__)


def column_space_basis(A, tolerance: Tolerance = DEFAULT_TOLERANCE) -> Matrix:
    """
    Orthonormal basis of the column space of A: the left singular vectors
    belonging to the non-zero singular values.
    """
    f = svd(A, tolerance)
    return Matrix._wrap(f.u[:, : f.rank()].copy())


def project_onto_colspace(A, b, tolerance: Tolerance = DEFAULT_TOLERANCE) -> Matrix:
    """
    Find p = A x, the orthogonal projection of b onto
    the column-space of A.

    Uses the projector ``U_r U_r^H`` built from the column-space basis, so
    rank-deficient A is allowed.

    Returns
    -------
    p : Matrix, shape (m, k) (a 1-D b is treated as one column)
    """
    a = as_array(A, copy=False)
    rhs = coerce_rhs(b, a.shape[0])
    f = svd(a, tolerance)
    r = f.rank()
    if r < a.shape[1]:
        logger.debug("The columns of A are not independent (rank %d of %d)", r, a.shape[1])
    Ur = f.u[:, :r]
    return Matrix._wrap(Ur @ (Ur.conj().T @ rhs))
