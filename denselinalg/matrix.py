# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BUSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Dense matrix value type.

A `Matrix` wraps a 2-D numpy array of dtype float64 or complex128.
Arithmetic never touches its operands; the only in-place operations are
`__setitem__`, `set_row`, `set_column`, `swap_rows` and `swap_columns`,
and those must not run concurrently with any other access to the same
matrix.

Sub-matrix extraction is end-exclusive everywhere: ``A.slice(1, 3)`` and
``A.sub_matrix(row_range="1:3")`` both select rows 1 and 2.
"""

import logging
import numbers
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .config import DEFAULT_TOLERANCE, Tolerance
from .exceptions import (
    DimensionMismatchError,
    IndexOutOfRangeError,
    InvalidArgumentError,
    MalformedMatrixError,
)

logger = logging.getLogger(__name__)

# Products whose smallest dimension exceeds this use Strassen recursion.
STRASSEN_THRESHOLD: int = 64


def _numeric_dtype(arr: np.ndarray):
    kind = arr.dtype.kind
    if kind == "c":
        return np.complex128
    if kind in "biuf":
        return np.float64
    if kind == "O":
        # lists mixing Python numbers come through as object arrays
        flat = arr.ravel()
        if all(isinstance(v, numbers.Number) for v in flat):
            if any(isinstance(v, numbers.Complex) and not isinstance(v, numbers.Real) for v in flat):
                return np.complex128
            return np.float64
    raise MalformedMatrixError(f"matrix entries must be numeric, got dtype {arr.dtype}")


def as_array(obj, copy: bool = True) -> np.ndarray:
    """
    Return `obj` as a 2-D float64/complex128 array.

    Accepts a `Matrix`, a numpy array or nested sequences. A 1-D input is
    read as a single column, which is what right-hand sides usually are.
    """
    if isinstance(obj, Matrix):
        arr = obj._data
    else:
        try:
            arr = np.asarray(obj)
        except ValueError as e:  # ragged nesting
            raise MalformedMatrixError(f"cannot build a matrix: {e}") from e
    if arr.ndim == 0:
        arr = arr.reshape(1, 1)
    elif arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    elif arr.ndim != 2:
        raise MalformedMatrixError(f"expected a 2-D matrix, got {arr.ndim} dimensions")
    return arr.astype(_numeric_dtype(arr), copy=copy)


def as_matrix(obj) -> "Matrix":
    """`obj` as a `Matrix` (no copy when it already is one)."""
    if isinstance(obj, Matrix):
        return obj
    return Matrix._wrap(as_array(obj))


def _strassen(a: np.ndarray, b: np.ndarray, threshold: int) -> np.ndarray:
    m, k = a.shape
    n = b.shape[1]
    if min(m, k, n) <= threshold:
        return a @ b

    # pad every dimension to an even size, recurse on quarters
    m2, k2, n2 = m + m % 2, k + k % 2, n + n % 2
    dtype = np.result_type(a, b)
    if (m2, k2) != (m, k):
        ap = np.zeros((m2, k2), dtype=dtype)
        ap[:m, :k] = a
    else:
        ap = a
    if (k2, n2) != (k, n):
        bp = np.zeros((k2, n2), dtype=dtype)
        bp[:k, :n] = b
    else:
        bp = b

    hm, hk, hn = m2 // 2, k2 // 2, n2 // 2
    a11, a12, a21, a22 = ap[:hm, :hk], ap[:hm, hk:], ap[hm:, :hk], ap[hm:, hk:]
    b11, b12, b21, b22 = bp[:hk, :hn], bp[:hk, hn:], bp[hk:, :hn], bp[hk:, hn:]

    p1 = _strassen(a11, b12 - b22, threshold)
    p2 = _strassen(a11 + a12, b22, threshold)
    p3 = _strassen(a21 + a22, b11, threshold)
    p4 = _strassen(a22, b21 - b11, threshold)
    p5 = _strassen(a11 + a22, b11 + b22, threshold)
    p6 = _strassen(a12 - a22, b21 + b22, threshold)
    p7 = _strassen(a11 - a21, b11 + b12, threshold)

    c = np.empty((m2, n2), dtype=dtype)
    c[:hm, :hn] = p5 + p4 - p2 + p6
    c[:hm, hn:] = p1 + p2
    c[hm:, :hn] = p3 + p4
    c[hm:, hn:] = p1 + p5 - p3 - p7
    return c[:m, :n]


def multiply(a: np.ndarray, b: np.ndarray, threshold: int = None) -> np.ndarray:
    """Matrix product of two 2-D arrays, Strassen above `threshold`."""
    if a.shape[1] != b.shape[0]:
        raise DimensionMismatchError(
            f"cannot multiply {a.shape[0]}x{a.shape[1]} by {b.shape[0]}x{b.shape[1]}"
        )
    if threshold is None:
        threshold = STRASSEN_THRESHOLD
    return _strassen(a, b, threshold)


def _parse_range(expr: str, limit: int, axis: str) -> range:
    """'a:b', 'a:', ':b', ':' or 'a' -> range, end-exclusive."""
    text = expr.strip()
    try:
        if ":" not in text:
            start = int(text)
            stop = start + 1
        else:
            left, right = text.split(":", 1)
            start = int(left) if left.strip() else 0
            stop = int(right) if right.strip() else limit
    except ValueError as e:
        raise InvalidArgumentError(f"invalid {axis} range {expr!r}") from e
    if not 0 <= start <= stop <= limit:
        raise IndexOutOfRangeError(
            f"{axis} range {expr!r} outside [0, {limit}]"
        )
    return range(start, stop)


class Matrix:
    """
    Dense real or complex matrix.

    Parameters
    ----------
    rows : sequence of sequences | np.ndarray | Matrix | None
        Row-major entries. Every row must have the same length; ``None`` or
        ``[]`` gives the 0x0 matrix.

    Example
    -------
    >>> A = Matrix([[1, 2], [3, 4]])
    >>> A.det()
    -2.0
    >>> (A @ A.inverse()).is_identity()
    True
    """

    __slots__ = ("_data",)

    def __init__(self, rows=None):
        if rows is None:
            self._data = np.zeros((0, 0))
            return
        if isinstance(rows, Matrix):
            self._data = rows._data.copy()
            return
        if isinstance(rows, np.ndarray):
            if rows.ndim != 2:
                raise MalformedMatrixError(
                    f"expected a 2-D array, got {rows.ndim} dimensions"
                )
            self._data = rows.astype(_numeric_dtype(rows), copy=True)
            return

        rows = list(rows)
        if not rows:
            self._data = np.zeros((0, 0))
            return
        width = None
        for i, row in enumerate(rows):
            if isinstance(row, (str, bytes)) or not hasattr(row, "__len__"):
                raise MalformedMatrixError(f"row {i} is not a sequence: {row!r}")
            if width is None:
                width = len(row)
            elif len(row) != width:
                raise MalformedMatrixError(
                    f"row {i} has {len(row)} entries, expected {width}"
                )
        arr = np.array([list(r) for r in rows])
        if width == 0:
            arr = np.zeros((len(rows), 0))
        self._data = arr.astype(_numeric_dtype(arr), copy=False)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def _wrap(cls, arr: np.ndarray) -> "Matrix":
        """Adopt an already-validated 2-D array without copying."""
        obj = cls.__new__(cls)
        obj._data = arr
        return obj

    @classmethod
    def from_array(cls, arr) -> "Matrix":
        return cls._wrap(as_array(arr))

    @classmethod
    def from_flat(cls, values: Sequence, rows: int, cols: int) -> "Matrix":
        """Row-major flat values plus dimensions."""
        _check_dims(rows, cols)
        flat = np.asarray(values)
        if flat.ndim != 1 or flat.size != rows * cols:
            raise MalformedMatrixError(
                f"{flat.size} values cannot fill a {rows}x{cols} matrix"
            )
        return cls._wrap(flat.astype(_numeric_dtype(flat)).reshape(rows, cols))

    @classmethod
    def from_diagonal(cls, diagonal: Sequence) -> "Matrix":
        d = np.asarray(diagonal)
        if d.ndim != 1:
            raise MalformedMatrixError("diagonal must be one-dimensional")
        return cls._wrap(np.diag(d.astype(_numeric_dtype(d))))

    @classmethod
    def zeros(cls, rows: int, cols: int) -> "Matrix":
        _check_dims(rows, cols)
        return cls._wrap(np.zeros((rows, cols)))

    @classmethod
    def ones(cls, rows: int, cols: int) -> "Matrix":
        _check_dims(rows, cols)
        return cls._wrap(np.ones((rows, cols)))

    @classmethod
    def eye(cls, n: int) -> "Matrix":
        _check_dims(n, n)
        return cls._wrap(np.eye(n))

    # ------------------------------------------------------------------
    # Shape and element access
    # ------------------------------------------------------------------
    @property
    def rows(self) -> int:
        return self._data.shape[0]

    @property
    def cols(self) -> int:
        return self._data.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self._data.shape

    @property
    def dtype(self):
        return self._data.dtype

    @property
    def is_complex(self) -> bool:
        return self._data.dtype.kind == "c"

    def _index_pair(self, key) -> Tuple[int, int]:
        if not isinstance(key, tuple) or len(key) != 2:
            raise TypeError("index a Matrix with A[i, j]")
        if not all(isinstance(k, numbers.Integral) for k in key):
            raise TypeError(f"Matrix indices must be integers, got {key!r}")
        i, j = (int(k) for k in key)
        self._check_index(i, j)
        return i, j

    def _check_index(self, i: int, j: int):
        if not (0 <= i < self.rows) or not (0 <= j < self.cols):
            raise IndexOutOfRangeError(
                f"index ({i}, {j}) out of range for a {self.rows}x{self.cols} matrix"
            )

    def __getitem__(self, key):
        i, j = self._index_pair(key)
        return self._data[i, j].item()

    def __setitem__(self, key, value):
        """In-place element assignment."""
        i, j = self._index_pair(key)
        if isinstance(value, complex) and not self.is_complex:
            self._data = self._data.astype(np.complex128)
        self._data[i, j] = value

    def row(self, i: int) -> "Matrix":
        if not 0 <= i < self.rows:
            raise IndexOutOfRangeError(f"row {i} out of range for {self.rows} rows")
        return Matrix._wrap(self._data[i : i + 1, :].copy())

    def column(self, j: int) -> "Matrix":
        if not 0 <= j < self.cols:
            raise IndexOutOfRangeError(f"column {j} out of range for {self.cols} columns")
        return Matrix._wrap(self._data[:, j : j + 1].copy())

    def set_row(self, i: int, values: Sequence):
        """In-place replacement of row `i`."""
        if not 0 <= i < self.rows:
            raise IndexOutOfRangeError(f"row {i} out of range for {self.rows} rows")
        v = np.asarray(values).ravel()
        if v.size != self.cols:
            raise DimensionMismatchError(f"row needs {self.cols} values, got {v.size}")
        if v.dtype.kind == "c" and not self.is_complex:
            self._data = self._data.astype(np.complex128)
        self._data[i, :] = v

    def set_column(self, j: int, values: Sequence):
        """In-place replacement of column `j`."""
        if not 0 <= j < self.cols:
            raise IndexOutOfRangeError(f"column {j} out of range for {self.cols} columns")
        v = np.asarray(values).ravel()
        if v.size != self.rows:
            raise DimensionMismatchError(f"column needs {self.rows} values, got {v.size}")
        if v.dtype.kind == "c" and not self.is_complex:
            self._data = self._data.astype(np.complex128)
        self._data[:, j] = v

    def swap_rows(self, i: int, k: int):
        """In-place row exchange."""
        for r in (i, k):
            if not 0 <= r < self.rows:
                raise IndexOutOfRangeError(f"row {r} out of range for {self.rows} rows")
        self._data[[i, k]] = self._data[[k, i]]

    def swap_columns(self, j: int, k: int):
        """In-place column exchange."""
        for c in (j, k):
            if not 0 <= c < self.cols:
                raise IndexOutOfRangeError(f"column {c} out of range for {self.cols} columns")
        self._data[:, [j, k]] = self._data[:, [k, j]]

    # ------------------------------------------------------------------
    # Sub-matrices (end-exclusive)
    # ------------------------------------------------------------------
    def slice(
        self,
        row_start: int,
        row_end: int,
        col_start: int = 0,
        col_end: Optional[int] = None,
    ) -> "Matrix":
        """Rows ``[row_start, row_end)`` and columns ``[col_start, col_end)``."""
        if col_end is None:
            col_end = self.cols
        if not 0 <= row_start <= row_end <= self.rows:
            raise IndexOutOfRangeError(
                f"row slice [{row_start}, {row_end}) outside [0, {self.rows}]"
            )
        if not 0 <= col_start <= col_end <= self.cols:
            raise IndexOutOfRangeError(
                f"column slice [{col_start}, {col_end}) outside [0, {self.cols}]"
            )
        return Matrix._wrap(self._data[row_start:row_end, col_start:col_end].copy())

    def sub_matrix(
        self,
        row_range: Optional[str] = None,
        col_range: Optional[str] = None,
        row_indices: Optional[Sequence[int]] = None,
        col_indices: Optional[Sequence[int]] = None,
    ) -> "Matrix":
        """
        Select rows/columns by range strings or explicit index lists.

        Range strings follow Python slicing and exclude their end:
        ``"1:3"`` is rows 1 and 2, ``":2"`` rows 0 and 1, ``"2"`` row 2.
        """
        if row_range is not None and row_indices is not None:
            raise InvalidArgumentError("give either row_range or row_indices")
        if col_range is not None and col_indices is not None:
            raise InvalidArgumentError("give either col_range or col_indices")

        if row_indices is not None:
            rows = list(row_indices)
        elif row_range is not None:
            rows = list(_parse_range(row_range, self.rows, "row"))
        else:
            rows = list(range(self.rows))
        if col_indices is not None:
            cols = list(col_indices)
        elif col_range is not None:
            cols = list(_parse_range(col_range, self.cols, "column"))
        else:
            cols = list(range(self.cols))

        for r in rows:
            if not 0 <= r < self.rows:
                raise IndexOutOfRangeError(f"row {r} out of range for {self.rows} rows")
        for c in cols:
            if not 0 <= c < self.cols:
                raise IndexOutOfRangeError(f"column {c} out of range for {self.cols} columns")
        return Matrix._wrap(self._data[np.ix_(rows, cols)].copy())

    def append_rows(self, other) -> "Matrix":
        """Stack `other` below this matrix; a 0x0 operand is the identity."""
        b = as_array(other, copy=False)
        if self.shape == (0, 0):
            return Matrix._wrap(b.copy())
        if b.shape == (0, 0):
            return self.copy()
        if b.shape[1] != self.cols:
            raise DimensionMismatchError(
                f"cannot append {b.shape[1]}-column rows to a {self.cols}-column matrix"
            )
        return Matrix._wrap(np.vstack([self._data, b]))

    def append_columns(self, other) -> "Matrix":
        """Place `other` to the right of this matrix; a 0x0 operand is the identity."""
        b = as_array(other, copy=False)
        if self.shape == (0, 0):
            return Matrix._wrap(b.copy())
        if b.shape == (0, 0):
            return self.copy()
        if b.shape[0] != self.rows:
            raise DimensionMismatchError(
                f"cannot append {b.shape[0]}-row columns to a {self.rows}-row matrix"
            )
        return Matrix._wrap(np.hstack([self._data, b]))

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------
    def _same_shape(self, other, op: str) -> np.ndarray:
        b = as_array(other, copy=False)
        if b.shape != self.shape:
            raise DimensionMismatchError(
                f"cannot {op} {self.rows}x{self.cols} and {b.shape[0]}x{b.shape[1]}"
            )
        return b

    def __add__(self, other):
        if not isinstance(other, (Matrix, np.ndarray)):
            return NotImplemented
        return Matrix._wrap(self._data + self._same_shape(other, "add"))

    def __radd__(self, other):
        if not isinstance(other, np.ndarray):
            return NotImplemented
        return self.__add__(other)

    def __sub__(self, other):
        if not isinstance(other, (Matrix, np.ndarray)):
            return NotImplemented
        return Matrix._wrap(self._data - self._same_shape(other, "subtract"))

    def __rsub__(self, other):
        if not isinstance(other, np.ndarray):
            return NotImplemented
        return Matrix._wrap(self._same_shape(other, "subtract") - self._data)

    def __neg__(self):
        return Matrix._wrap(-self._data)

    def __mul__(self, other):
        if isinstance(other, numbers.Number):
            return self.scale(other)
        if isinstance(other, (Matrix, np.ndarray)):
            return self.__matmul__(other)
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, numbers.Number):
            return self.scale(other)
        return NotImplemented

    def __matmul__(self, other):
        if not isinstance(other, (Matrix, np.ndarray)):
            return NotImplemented
        return Matrix._wrap(multiply(self._data, as_array(other, copy=False)))

    def __rmatmul__(self, other):
        if not isinstance(other, np.ndarray):
            return NotImplemented
        return Matrix._wrap(multiply(as_array(other, copy=False), self._data))

    def __truediv__(self, other):
        if not isinstance(other, numbers.Number):
            return NotImplemented
        if other == 0:
            raise ZeroDivisionError("division of a matrix by zero")
        return Matrix._wrap(self._data / other)

    def scale(self, factor) -> "Matrix":
        return Matrix._wrap(self._data * factor)

    def __eq__(self, other):
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self._data, other._data))

    __hash__ = None

    def is_almost_equal(self, other, tol: float = 1e-10) -> bool:
        b = as_array(other, copy=False)
        if b.shape != self.shape:
            return False
        return bool(np.allclose(self._data, b, rtol=0.0, atol=tol))

    # ------------------------------------------------------------------
    # Structural transforms
    # ------------------------------------------------------------------
    def transpose(self) -> "Matrix":
        return Matrix._wrap(self._data.T.copy())

    @property
    def T(self) -> "Matrix":
        return self.transpose()

    def conjugate(self) -> "Matrix":
        return Matrix._wrap(self._data.conj())

    def conjugate_transpose(self) -> "Matrix":
        return Matrix._wrap(self._data.conj().T.copy())

    @property
    def H(self) -> "Matrix":
        return self.conjugate_transpose()

    def diagonal(self) -> np.ndarray:
        return np.diag(self._data).copy()

    def trace(self):
        if not self.is_square():
            raise DimensionMismatchError("trace requires a square matrix")
        return np.trace(self._data).item()

    def round(self, decimals: int = 0) -> "Matrix":
        return Matrix._wrap(np.round(self._data, decimals))

    def copy(self) -> "Matrix":
        return Matrix._wrap(self._data.copy())

    def to_list(self) -> List[list]:
        return self._data.tolist()

    def to_numpy(self) -> np.ndarray:
        return self._data.copy()

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self._data.copy()
        return self._data.astype(dtype)

    # ------------------------------------------------------------------
    # Structural predicates
    # ------------------------------------------------------------------
    def is_square(self) -> bool:
        return self.rows == self.cols

    def is_symmetric(self, tol: float = DEFAULT_TOLERANCE.symmetry_tol) -> bool:
        """Symmetric for real matrices, Hermitian for complex ones."""
        from .utils import is_hermitian

        return is_hermitian(self._data, tol)

    def is_hermitian(self, tol: float = DEFAULT_TOLERANCE.symmetry_tol) -> bool:
        return self.is_symmetric(tol)

    def is_upper_triangular(self, tol: float = 1e-10) -> bool:
        return bool(np.all(np.abs(np.tril(self._data, -1)) <= tol))

    def is_lower_triangular(self, tol: float = 1e-10) -> bool:
        return bool(np.all(np.abs(np.triu(self._data, 1)) <= tol))

    def is_diagonal(self, tol: float = 1e-10) -> bool:
        return self.is_upper_triangular(tol) and self.is_lower_triangular(tol)

    def is_identity(self, tol: float = 1e-10) -> bool:
        return self.is_square() and self.is_almost_equal(np.eye(self.rows), tol)

    def is_orthogonal(self, tol: float = 1e-10) -> bool:
        """Qᴴ Q = I (orthogonal for real, unitary for complex)."""
        if not self.is_square():
            return False
        gram = self._data.conj().T @ self._data
        return bool(np.allclose(gram, np.eye(self.rows), rtol=0.0, atol=tol))

    def is_diagonally_dominant(self, strict: bool = False) -> bool:
        if not self.is_square():
            return False
        mags = np.abs(self._data)
        diag = np.diag(mags)
        off = mags.sum(axis=1) - diag
        return bool(np.all(diag > off) if strict else np.all(diag >= off))

    def is_positive_definite(self, tolerance: Tolerance = DEFAULT_TOLERANCE) -> bool:
        """True when a Cholesky factorization succeeds."""
        from .cholesky import is_positive_definite

        return is_positive_definite(self, tolerance)

    def is_singular(self, tolerance: Tolerance = DEFAULT_TOLERANCE) -> bool:
        from .conditioning import is_singular

        return is_singular(self, tolerance)

    # ------------------------------------------------------------------
    # Delegates to the decomposition layer
    # ------------------------------------------------------------------
    @property
    def decomposition(self):
        """Named decompositions: ``A.decomposition.lu_doolittle_partial_pivoting()``."""
        from .accessors import MatrixDecomposition

        return MatrixDecomposition(self)

    @property
    def linear(self):
        """Linear-system solvers: ``A.linear.solve(b, method="auto")``."""
        from .accessors import LinearSystemSolvers

        return LinearSystemSolvers(self)

    def det(self):
        from .matrix_functions import det

        return det(self)

    def inverse(self) -> "Matrix":
        from .matrix_functions import inverse

        return inverse(self)

    def pseudo_inverse(self) -> "Matrix":
        from .conditioning import pseudo_inverse

        return pseudo_inverse(self)

    def rank(self, tolerance: Optional[float] = None) -> int:
        from .conditioning import rank

        return rank(self, tolerance)

    def norm(self, kind: Union[str, int, float] = "fro") -> float:
        from .conditioning import norm

        return norm(self, kind)

    def condition_number(self, kind: Union[str, int, float] = "2") -> float:
        from .conditioning import condition_number

        return condition_number(self, kind)

    def solve(self, b, method: str = "auto") -> "Matrix":
        from .solvers import solve

        return solve(self, b, method)

    # ------------------------------------------------------------------
    def __repr__(self) -> str:
        return f"Matrix({self.to_list()!r})"

    def __str__(self) -> str:
        body = np.array2string(self._data, precision=6, suppress_small=True)
        return f"Matrix: {self.rows}x{self.cols}\n{body}"


def _check_dims(rows: int, cols: int):
    if int(rows) != rows or int(cols) != cols or rows < 0 or cols < 0:
        raise InvalidArgumentError(
            f"matrix dimensions must be non-negative integers, got {rows}x{cols}"
        )
