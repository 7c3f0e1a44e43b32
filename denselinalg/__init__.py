# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
denselinalg
===========

Dense matrix decompositions and linear-system solvers on top of NumPy
arrays, with several competing algorithms per problem and an automatic
dispatcher that picks one.

Public API
~~~~~~~~~~
- Matrix type
    - `Matrix`, `PivotStrategy`, `Permutation`, `Tolerance`
- Decompositions
    - `lu_doolittle`, `lu_crout`, `lu_gauss`
    - `householder_qr`, `gram_schmidt_qr`, `lq_decomposition`
    - `cholesky`, `hessenberg`, `schur`, `eigen`, `svd`
- Linear systems
    - `LinearSystemDispatcher`, `solve`, `ridge_regression`,
      `least_squares`, `least_squares_qr`
    - `jacobi`, `gauss_seidel`, `sor`, `conjugate_gradient`
    - `gaussian_solve`, `gauss_jordan_solve`, `bareiss_solve`, `cramers_rule`
- Matrix utilities
    - `det`, `inverse`, `adj`, `cofactor_matrix`, `matrix_power`
    - `norm`, `rank`, `condition_number`, `pseudo_inverse`, `analyze`
    - `power_iteration`, `project_onto_colspace`
- Rank / null-space tools
    - `rref`, `rank_elimination`, `nullspace_basis_elimination`

Everything else lives in sub-modules and is **not** considered part of the
stable interface.

Example
-------
>>> import denselinalg as la
>>> A = la.Matrix([[2, 1, 1], [1, 3, 2], [1, 0, 0]])
>>> x = la.solve(A, [4, 5, 6])
>>> A.decomposition.lu_doolittle_partial_pivoting().is_accurate(A)
True
"""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

from .cholesky import CholeskyDecomposition, cholesky, is_positive_definite
from .conditioning import (
    ConditionReport,
    Norm,
    analyze,
    condition_number,
    is_singular,
    norm,
    pseudo_inverse,
    rank,
)
from .config import DEFAULT_TOLERANCE, Tolerance
from .eigen import (
    EigenDecomposition,
    HessenbergResult,
    SchurDecomposition,
    eigen,
    hessenberg,
    power_iteration,
    schur,
)
from .elimination import (
    back_substitute,
    bareiss_solve,
    forward_eliminate,
    forward_substitute,
    gauss_jordan_solve,
    gaussian_solve,
    nullspace_basis_elimination,
    rank_elimination,
    rref,
)
from .exceptions import (
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
from .factorization import Factorization
from .iterative import (
    IterativeResult,
    conjugate_gradient,
    gauss_seidel,
    jacobi,
    sor,
)
from .lu import LUDecomposition, lu, lu_crout, lu_doolittle, lu_gauss

# ---------------------------------------------------------------------
# Re-export the high-level functions users are expected to call.
# Each of these names is implemented in one of the internal sub-modules.
# ---------------------------------------------------------------------
from .matrix import Matrix
from .matrix_functions import (
    adj,
    cofactor_matrix,
    cramers_rule,
    det,
    inverse,
    matrix_power,
)
from .pivoting import Permutation, PivotStrategy
from .projections import column_space_basis, project_onto_colspace
from .qr import (
    LQDecomposition,
    QRDecomposition,
    gram_schmidt_qr,
    householder_qr,
    least_squares_qr,
    lq_decomposition,
    random_ill_conditioned,
    random_nonsingular_qr,
)
from .solvers import (
    LinearSystemDispatcher,
    SolveMethod,
    SolveResult,
    least_squares,
    ridge_regression,
    solve,
)
from .svd import SingularValueDecomposition, svd
from .utils import permutation_sign, random_nonsingular_upper, random_spd, scale_tol

__all__ = [
    "Matrix",
    "PivotStrategy",
    "Permutation",
    "Tolerance",
    "DEFAULT_TOLERANCE",
    "Factorization",
    "LUDecomposition",
    "QRDecomposition",
    "LQDecomposition",
    "CholeskyDecomposition",
    "HessenbergResult",
    "SchurDecomposition",
    "EigenDecomposition",
    "SingularValueDecomposition",
    "lu",
    "lu_doolittle",
    "lu_crout",
    "lu_gauss",
    "householder_qr",
    "gram_schmidt_qr",
    "lq_decomposition",
    "least_squares_qr",
    "cholesky",
    "is_positive_definite",
    "hessenberg",
    "schur",
    "eigen",
    "power_iteration",
    "svd",
    "LinearSystemDispatcher",
    "SolveMethod",
    "SolveResult",
    "solve",
    "ridge_regression",
    "least_squares",
    "IterativeResult",
    "jacobi",
    "gauss_seidel",
    "sor",
    "conjugate_gradient",
    "forward_eliminate",
    "forward_substitute",
    "back_substitute",
    "gaussian_solve",
    "gauss_jordan_solve",
    "bareiss_solve",
    "rref",
    "rank_elimination",
    "nullspace_basis_elimination",
    "det",
    "inverse",
    "adj",
    "cofactor_matrix",
    "cramers_rule",
    "matrix_power",
    "Norm",
    "ConditionReport",
    "norm",
    "rank",
    "condition_number",
    "is_singular",
    "pseudo_inverse",
    "analyze",
    "project_onto_colspace",
    "column_space_basis",
    "random_nonsingular_qr",
    "random_ill_conditioned",
    "random_nonsingular_upper",
    "random_spd",
    "scale_tol",
    "permutation_sign",
    "LinalgError",
    "DimensionMismatchError",
    "IndexOutOfRangeError",
    "MalformedMatrixError",
    "InvalidArgumentError",
    "NumericalError",
    "SingularMatrixError",
    "NotPositiveDefiniteError",
    "NonConvergenceError",
]

# ---------------------------------------------------------------------
# Version string (helps “pip show denselinalg”, Sphinx, etc.)
# ---------------------------------------------------------------------
try:  # installed via pip / build backend
    __version__ = _pkg_version(__name__)
except PackageNotFoundError:  # running from a checkout
    __version__ = "0.0.0.dev0"

# ---------------------------------------------------------------------
# Optional: lightweight default logging config so users see warnings
# only if they deliberately enable them.
# ---------------------------------------------------------------------
import logging as _logging

_logging.getLogger(__name__).addHandler(_logging.NullHandler())
