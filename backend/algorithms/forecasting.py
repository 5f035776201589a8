"""
Forecasting engine: project a time-ordered series forward with confidence bounds.

Every method returns (point forecasts, one-step in-sample residuals,
seasonal indices). The bounds are `forecast +/- z * std(residuals)` and keep
the same width for every period.
"""

from __future__ import annotations
from dataclasses import replace
from datetime import date, datetime, timedelta
from statistics import NormalDist
from typing import Any, Callable, Dict, List, Sequence, Tuple
import numpy as np

from algorithms.datatypes import ForecastMethod, ForecastOptions, ForecastPoint, ForecastResult
from algorithms.errors import ConfigurationError, ValidationError
from algorithms.regression import linear_regression
from algorithms.utils import (get_field, require_finite, require_fraction, require_int,
                              require_min_length, sample_std)

DEFAULT_SEASONALITY = 12
MIN_POINTS = 2
TREND_METHODS = (ForecastMethod.LINEAR, ForecastMethod.SEASONAL)

# ------------ Utilities ------------

def _parse_date(raw: Any, where: str):
    """Return (datetime, date_only) for an ISO-8601 string, date or datetime."""
    if isinstance(raw, datetime):
        return raw, False
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day), True
    if not isinstance(raw, str):
        raise ValidationError(f"{where}.date must be an ISO-8601 string, got {raw!r}")
    text = raw.strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"{where}.date is not a valid ISO-8601 date: {raw!r}") from None
    return parsed, len(text) == 10

def to_series(series: Sequence[Any]) -> Tuple[np.ndarray, datetime, bool]:
    """Validate the series; return (values, last_date, date_only)."""
    require_min_length(series, MIN_POINTS, "data points for forecasting")
    values, parsed = [], None
    for i, point in enumerate(series):
        parsed = _parse_date(get_field(point, "date"), f"data[{i}]")
        values.append(require_finite(get_field(point, "value"), f"data[{i}].value"))
    last_date, date_only = parsed
    return np.array(values, dtype=float), last_date, date_only

def z_score(confidence_interval: float) -> float:
    """Two-tailed normal critical value, e.g. 0.95 -> 1.96."""
    return NormalDist().inv_cdf((1.0 + confidence_interval) / 2.0)

def parse_forecast_method(value) -> ForecastMethod:
    try:
        return ForecastMethod(value)
    except ValueError:
        raise ConfigurationError(
            f"Unknown forecast method {value!r}. Valid: {[m.value for m in ForecastMethod]}") from None

def normalize_options(options) -> ForecastOptions:
    if isinstance(options, dict):
        try:
            options = ForecastOptions(**options)
        except TypeError as e:
            raise ConfigurationError(f"Invalid forecast options: {e}") from None
    elif not isinstance(options, ForecastOptions):
        raise ConfigurationError(f"Forecast options must be a mapping, got {type(options).__name__}")
    method = parse_forecast_method(options.method)
    require_int(options.periods, "periods")
    require_fraction(options.confidence_interval, "confidence_interval", inclusive_upper=False)
    require_fraction(options.alpha, "alpha")
    require_fraction(options.beta, "beta")
    if options.window_size is not None:
        require_int(options.window_size, "window_size")
    seasonality = options.seasonality
    if method is ForecastMethod.SEASONAL and seasonality is None:
        seasonality = DEFAULT_SEASONALITY
    if seasonality is not None:
        require_int(seasonality, "seasonality", minimum=2)
        if method not in TREND_METHODS:
            raise ConfigurationError(
                f"seasonality applies to the linear and seasonal methods, not {method.value!r}")
    return replace(options, method=method, seasonality=seasonality)

# ------------ Level methods ------------

def _moving_average(values: np.ndarray, periods: int, options: ForecastOptions):
    window = min(options.window_size or 3, len(values))
    residuals = [values[t] - values[max(0, t - window):t].mean() for t in range(1, len(values))]
    level = float(values[-window:].mean())
    return [level] * periods, residuals, ()

def _exponential(values: np.ndarray, periods: int, options: ForecastOptions):
    alpha = options.alpha
    level, residuals = float(values[0]), []
    for v in values[1:]:
        residuals.append(v - level)
        level = alpha * v + (1.0 - alpha) * level
    return [level] * periods, residuals, ()

def _exponential_trend(values: np.ndarray, periods: int, options: ForecastOptions):
    alpha, beta = options.alpha, options.beta
    level, trend = float(values[0]), float(values[1] - values[0])
    residuals = []
    for v in values[1:]:
        residuals.append(v - (level + trend))
        previous = level
        level = alpha * v + (1.0 - alpha) * (level + trend)
        trend = beta * (level - previous) + (1.0 - beta) * trend
    return [level + h * trend for h in range(1, periods + 1)], residuals, ()

# ------------ Trend methods ------------

def seasonal_indices(values: np.ndarray, trend: np.ndarray, season: int) -> List[float]:
    """Average actual/trend ratio per phase, normalized to a mean of 1."""
    indices = []
    for phase in range(season):
        ratios = [values[t] / trend[t] for t in range(phase, len(values), season)
                  if abs(trend[t]) > 1e-12]
        indices.append(float(np.mean(ratios)) if ratios else 1.0)
    average = float(np.mean(indices))
    if abs(average) <= 1e-12:
        return [1.0] * season
    return [i / average for i in indices]

def _trend(values: np.ndarray, periods: int, options: ForecastOptions):
    n = len(values)
    fit = linear_regression([{"x": float(t), "y": float(v)} for t, v in enumerate(values)])
    future = [fit.slope * (n - 1 + h) + fit.intercept for h in range(1, periods + 1)]
    season = options.seasonality
    if season is None:
        return future, list(fit.residuals), ()
    if n < 2 * season:
        raise ValidationError(
            f"Seasonality {season} needs at least {2 * season} data points (two cycles), got {n}")
    in_sample = np.array(fit.predictions)
    indices = seasonal_indices(values, in_sample, season)
    adjusted = [in_sample[t] * indices[t % season] for t in range(n)]
    residuals = [values[t] - adjusted[t] for t in range(n)]
    future = [f * indices[(n - 1 + h) % season] for h, f in enumerate(future, start=1)]
    return future, residuals, tuple(indices)

# ------------ Registry & entry point ------------

FORECASTERS: Dict[ForecastMethod, Callable] = {
    ForecastMethod.MOVING_AVERAGE: _moving_average,
    ForecastMethod.EXPONENTIAL: _exponential,
    ForecastMethod.EXPONENTIAL_TREND: _exponential_trend,
    ForecastMethod.LINEAR: _trend,
    ForecastMethod.SEASONAL: _trend,
}

def _future_date(last: datetime, days: int, date_only: bool) -> str:
    when = last + timedelta(days=days)
    return when.date().isoformat() if date_only else when.isoformat()

def forecast(series: Sequence[Any], options) -> ForecastResult:
    """Forecast `options.periods` future points of `series` with flat confidence bounds."""
    options = normalize_options(options)
    values, last_date, date_only = to_series(series)
    future, residuals, indices = FORECASTERS[options.method](values, options.periods, options)
    standard_error = sample_std(residuals)
    margin = z_score(options.confidence_interval) * standard_error
    points = tuple(
        ForecastPoint(
            period=h,
            value=float(v),
            lower_bound=float(v - margin),
            upper_bound=float(v + margin),
            date=_future_date(last_date, h, date_only),
        )
        for h, v in enumerate(future, start=1)
    )
    return ForecastResult(
        method=options.method,
        periods=options.periods,
        points=points,
        confidence_interval=options.confidence_interval,
        standard_error=standard_error,
        seasonal_indices=indices,
    )
