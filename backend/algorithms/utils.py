"""
Validation and linear-algebra helpers used by the three engines.

Everything here is a pure function over plain sequences or numpy arrays.
The Gauss-Jordan routines are kept explicit (instead of np.linalg.solve) so
that a near-zero pivot is reported as a NumericalError rather than producing
a silently wrong answer.
"""

from __future__ import annotations
from numbers import Real
from typing import Any, Callable, Iterable, Sequence
import inspect
import math
import numpy as np

from algorithms.errors import ConfigurationError, NumericalError, ValidationError

# relative tolerance for pivots and zero denominators
PIVOT_EPSILON = 1e-10

# ------------ Validation ------------

def require_finite(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError(f"{what} must be a number, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise ValidationError(f"{what} must be finite, got {value!r}")
    return value

def require_min_length(items: Sequence, minimum: int, what: str):
    if len(items) < minimum:
        raise ValidationError(f"Need at least {minimum} {what}, got {len(items)}")

def require_int(value: Any, name: str, minimum: int = 1) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return int(value)

def require_fraction(value: Any, name: str, inclusive_upper: bool = True) -> float:
    if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    upper_ok = value <= 1.0 if inclusive_upper else value < 1.0
    if not (value > 0.0 and upper_ok):
        interval = "(0, 1]" if inclusive_upper else "(0, 1)"
        raise ConfigurationError(f"{name} must be in {interval}, got {value}")
    return float(value)

def get_field(record: Any, name: str, default: Any = None, required: bool = True) -> Any:
    """Read `name` from a dataclass instance or a mapping."""
    if isinstance(record, dict):
        if name in record:
            return record[name]
    elif hasattr(record, name):
        return getattr(record, name)
    if required:
        raise ValidationError(f"Record is missing field '{name}': {record!r}")
    return default

def bind_options(func: Callable, *args, **options):
    """Reject options the selected algorithm does not take before running it."""
    try:
        inspect.signature(func).bind(*args, **options)
    except TypeError as e:
        raise ConfigurationError(f"Invalid options for {func.__name__}: {e}") from None

# ------------ Vector helpers ------------

def dot(a: Iterable[float], b: Iterable[float]) -> float:
    a, b = np.asarray(list(a), dtype=float), np.asarray(list(b), dtype=float)
    if a.shape != b.shape:
        raise ValidationError(f"Vectors differ in length: {a.shape[0]} vs {b.shape[0]}")
    return float(a @ b)

def mean(values: Sequence[float]) -> float:
    require_min_length(values, 1, "values")
    return float(np.mean(np.asarray(values, dtype=float)))

def variance(values: Sequence[float], ddof: int = 0) -> float:
    require_min_length(values, ddof + 1, "values")
    return float(np.var(np.asarray(values, dtype=float), ddof=ddof))

def sample_std(values: Sequence[float]) -> float:
    """Sample standard deviation; 0.0 when fewer than two values are available."""
    if len(values) < 2:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float), ddof=1))

# ------------ Gauss-Jordan elimination ------------

def _gauss_jordan(augmented: np.ndarray) -> np.ndarray:
    """Reduce [A | B] in place to [I | A^-1 B] using partial pivoting."""
    n = augmented.shape[0]
    # a pivot is zero when it is negligible next to the largest entry of its own column
    col_scale = np.max(np.abs(augmented[:, :n]), axis=0)
    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(augmented[col:, col])))
        pivot = augmented[pivot_row, col]
        if abs(pivot) <= PIVOT_EPSILON * col_scale[col]:
            raise NumericalError(f"Matrix is singular (pivot {pivot:.3e} in column {col})")
        if pivot_row != col:
            augmented[[col, pivot_row]] = augmented[[pivot_row, col]]
        augmented[col] /= augmented[col, col]
        for row in range(n):
            if row != col and augmented[row, col] != 0.0:
                augmented[row] -= augmented[row, col] * augmented[col]
    return augmented[:, n:]

def _as_square(matrix) -> np.ndarray:
    A = np.asarray(matrix, dtype=float)
    if A.ndim != 2 or A.shape[0] != A.shape[1] or A.shape[0] == 0:
        raise ValidationError(f"Expected a non-empty square matrix, got shape {A.shape}")
    if not np.all(np.isfinite(A)):
        raise ValidationError("Matrix contains non-finite values")
    return A

def gauss_jordan_inverse(matrix) -> np.ndarray:
    A = _as_square(matrix)
    n = A.shape[0]
    return _gauss_jordan(np.hstack([A, np.eye(n)]))

def solve_linear_system(matrix, rhs) -> np.ndarray:
    """Solve A x = b by Gauss-Jordan elimination on [A | b]."""
    A = _as_square(matrix)
    b = np.asarray(rhs, dtype=float).reshape(-1, 1)
    if b.shape[0] != A.shape[0]:
        raise ValidationError(f"Right-hand side has {b.shape[0]} rows, matrix has {A.shape[0]}")
    return _gauss_jordan(np.hstack([A, b])).ravel()

def solve_normal_equations(X: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Least-squares coefficients from (X^T X) beta = X^T y."""
    return solve_linear_system(X.T @ X, X.T @ y)

# ---- Metrics ----

def mse(y_true, y_pred) -> float:
    y_true = np.asarray(y_true, dtype=float); y_pred = np.asarray(y_pred, dtype=float)
    return float(np.mean((y_true - y_pred) ** 2)) if len(y_true) else 0.0

def mae(y_true, y_pred) -> float:
    y_true = np.asarray(y_true, dtype=float); y_pred = np.asarray(y_pred, dtype=float)
    return float(np.mean(np.abs(y_true - y_pred))) if len(y_true) else 0.0

def r_squared(y_true, y_pred) -> float:
    """1 - SSres/SStot; a constant target scores 1 only when it is fitted exactly."""
    y_true = np.asarray(y_true, dtype=float); y_pred = np.asarray(y_pred, dtype=float)
    ss_res = float(np.sum((y_true - y_pred) ** 2))
    if np.ptp(y_true) == 0.0:
        # constant target: SStot is zero, only rounding noise in the fit is forgiven
        tolerance = PIVOT_EPSILON * float(np.sum(y_true ** 2))
        return 1.0 if ss_res <= tolerance else 0.0
    ss_tot = float(np.sum((y_true - y_true.mean()) ** 2))
    return 1.0 - ss_res / ss_tot
