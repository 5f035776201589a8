"""
Regression engine: linear, polynomial and logistic fits over (x, y) samples.

Each variant is a small model class with fit()/predict() and a module-level
function that validates the points, fits the model and packages a
RegressionResult. `fit()` dispatches on RegressionType.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, Sequence, Tuple
import numpy as np
from numpy.polynomial import polynomial as P

from algorithms.datatypes import RegressionResult, RegressionType
from algorithms.errors import ConfigurationError, NumericalError, ValidationError
from algorithms.utils import (bind_options, get_field, mae, mse, r_squared, require_finite, require_int,
                              require_min_length, solve_normal_equations)

DEFAULT_DEGREE = 2
DEFAULT_LEARNING_RATE = 0.1
DEFAULT_ITERATIONS = 1000
MIN_POINTS = 2

# ------------ Utilities ------------

def to_xy(points: Sequence[Any]) -> Tuple[np.ndarray, np.ndarray]:
    """Validate regression records and split them into x and y arrays."""
    require_min_length(points, MIN_POINTS, "data points for regression")
    xs, ys = [], []
    for i, p in enumerate(points):
        xs.append(require_finite(get_field(p, "x"), f"points[{i}].x"))
        ys.append(require_finite(get_field(p, "y"), f"points[{i}].y"))
    return np.array(xs, dtype=float), np.array(ys, dtype=float)

def sigmoid(z):
    return 1.0 / (1.0 + np.exp(-np.clip(z, -500.0, 500.0)))

def expand_shifted(beta: Sequence[float], center: float, scale: float) -> np.ndarray:
    """Coefficients in powers of x for sum(beta[k] * ((x - center) / scale) ** k)."""
    shift = np.array([-center / scale, 1.0 / scale])
    raw = np.zeros(len(beta))
    term = np.array([1.0])
    for k, b in enumerate(beta):
        raw[:k + 1] += b * term
        term = P.polymul(term, shift)
    return raw

def _term(coef: float, suffix: str, first: bool) -> str:
    if first:
        return f"{coef:.2f}{suffix}"
    sign = "-" if coef < 0 else "+"
    return f" {sign} {abs(coef):.2f}{suffix}"

def format_polynomial(intercept: float, coefficients: Sequence[float], lhs: str = "y") -> str:
    """Render "y = 1.00x^2 - 3.00x + 2.00" with the highest power first."""
    terms = []
    for power in range(len(coefficients), 0, -1):
        suffix = "x" if power == 1 else f"x^{power}"
        terms.append(_term(coefficients[power - 1], suffix, not terms))
    terms.append(_term(intercept, "", not terms))
    return f"{lhs} = " + "".join(terms)

# ------------ Base Class ------------

class BaseRegressor:
    regression_type: RegressionType
    def fit(self, x: np.ndarray, y: np.ndarray): raise NotImplementedError
    def predict(self, x: np.ndarray) -> np.ndarray: raise NotImplementedError
    def equation(self) -> str: raise NotImplementedError

    def result(self, x: np.ndarray, y: np.ndarray) -> RegressionResult:
        y_hat = self.predict(x)
        residuals = y - y_hat
        return RegressionResult(
            type=self.regression_type,
            coefficients=tuple(float(c) for c in self.coefficients_),
            intercept=float(self.intercept_),
            r_squared=r_squared(y, y_hat),
            equation=self.equation(),
            predictions=tuple(y_hat.tolist()),
            residuals=tuple(residuals.tolist()),
            mse=mse(y, y_hat),
            mae=mae(y, y_hat),
        )

# ------------ 1) Linear Regression (closed-form OLS) ------------

class LinearRegressionModel(BaseRegressor):
    regression_type = RegressionType.LINEAR
    def __init__(self):
        self.coefficients_ = None
        self.intercept_ = 0.0

    def fit(self, x, y):
        # centred sums: n*Sxx - Sx^2 == n * sum((x - mean_x)^2) without the cancellation
        mean_x, mean_y = float(np.mean(x)), float(np.mean(y))
        dx = x - mean_x
        sxx = float(np.sum(dx * dx))
        if np.ptp(x) == 0.0 or sxx == 0.0:
            raise NumericalError("All x values are identical; the slope is undefined")
        slope = float(np.sum(dx * (y - mean_y))) / sxx
        self.coefficients_ = [slope]
        self.intercept_ = mean_y - slope * mean_x
        return self

    def predict(self, x):
        return self.coefficients_[0] * np.asarray(x, dtype=float) + self.intercept_

    def equation(self):
        return format_polynomial(self.intercept_, self.coefficients_)

# ------------ 2) Polynomial Regression (normal equations) ------------

class PolynomialRegressionModel(BaseRegressor):
    regression_type = RegressionType.POLYNOMIAL
    def __init__(self, degree: int = DEFAULT_DEGREE):
        self.degree = require_int(degree, "degree")
        self.coefficients_ = None
        self.intercept_ = 0.0
        # the fit runs on t = (x - center_) / scale_, which lies in [-1, 1]
        self.center_ = 0.0
        self.scale_ = 1.0
        self.beta_ = None

    def design_matrix(self, x) -> np.ndarray:
        t = (np.asarray(x, dtype=float) - self.center_) / self.scale_
        return np.vander(t, self.degree + 1, increasing=True)

    def fit(self, x, y):
        if self.degree >= len(x):
            raise NumericalError(
                f"Degree {self.degree} needs at least {self.degree + 1} points, got {len(x)}")
        self.center_ = float(np.mean(x))
        self.scale_ = float(np.max(np.abs(x - self.center_)))
        if self.scale_ == 0.0:
            raise NumericalError("All x values are identical; the normal matrix is singular")
        self.beta_ = solve_normal_equations(self.design_matrix(x), y)
        raw = expand_shifted(self.beta_, self.center_, self.scale_)
        self.intercept_ = float(raw[0])
        self.coefficients_ = raw[1:].tolist()
        return self

    def predict(self, x):
        return self.design_matrix(x) @ self.beta_

    def equation(self):
        return format_polynomial(self.intercept_, self.coefficients_)

# ------------ 3) Logistic Regression (gradient descent) ------------

class LogisticRegressionModel(BaseRegressor):
    regression_type = RegressionType.LOGISTIC
    def __init__(self, learning_rate: float = DEFAULT_LEARNING_RATE, iterations: int = DEFAULT_ITERATIONS):
        if isinstance(learning_rate, bool) or not isinstance(learning_rate, (int, float)) or not learning_rate > 0:
            raise ConfigurationError(f"learning_rate must be a positive number, got {learning_rate!r}")
        self.learning_rate = float(learning_rate)
        self.iterations = require_int(iterations, "iterations")
        self.coefficients_ = None
        self.intercept_ = 0.0

    def fit(self, x, y):
        if np.any((y < 0.0) | (y > 1.0)):
            bad = float(y[(y < 0.0) | (y > 1.0)][0])
            raise ValidationError(f"Logistic regression needs y in [0, 1], got {bad}")
        w, b = 0.0, 0.0
        for _ in range(self.iterations):
            error = sigmoid(w * x + b) - y
            w -= self.learning_rate * float(np.mean(error * x))
            b -= self.learning_rate * float(np.mean(error))
        self.coefficients_ = [w]
        self.intercept_ = b
        return self

    def predict(self, x):
        return sigmoid(self.coefficients_[0] * np.asarray(x, dtype=float) + self.intercept_)

    def equation(self):
        linear = format_polynomial(self.intercept_, self.coefficients_, lhs="z")[len("z = "):]
        return f"p = 1 / (1 + e^-({linear}))"

# ------------ Entry points ------------

def linear_regression(points: Sequence[Any]) -> RegressionResult:
    x, y = to_xy(points)
    return LinearRegressionModel().fit(x, y).result(x, y)

def polynomial_regression(points: Sequence[Any], degree: int = DEFAULT_DEGREE) -> RegressionResult:
    model = PolynomialRegressionModel(degree)
    x, y = to_xy(points)
    return model.fit(x, y).result(x, y)

def logistic_regression(points: Sequence[Any], learning_rate: float = DEFAULT_LEARNING_RATE,
                        iterations: int = DEFAULT_ITERATIONS) -> RegressionResult:
    model = LogisticRegressionModel(learning_rate, iterations)
    x, y = to_xy(points)
    return model.fit(x, y).result(x, y)

# ------------ Registry ------------

REGRESSIONS: Dict[RegressionType, Callable[..., RegressionResult]] = {
    RegressionType.LINEAR: linear_regression,
    RegressionType.POLYNOMIAL: polynomial_regression,
    RegressionType.LOGISTIC: logistic_regression,
}

def parse_regression_type(value) -> RegressionType:
    try:
        return RegressionType(value)
    except ValueError:
        raise ConfigurationError(
            f"Unknown regression type {value!r}. Valid: {[t.value for t in RegressionType]}") from None

def fit(points: Sequence[Any], type=RegressionType.LINEAR, **options) -> RegressionResult:
    """Fit the regression variant named by `type`; options go to that variant."""
    func = REGRESSIONS[parse_regression_type(type)]
    bind_options(func, points, **options)
    return func(points, **options)

