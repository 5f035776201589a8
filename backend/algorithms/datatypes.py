"""
Input records, options and result value objects.

Results are frozen and built once per call; `to_dict()` gives the
JSON-serializable camelCase shape the reporting front end consumes.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

Label = Union[str, int, float]


class RegressionType(str, Enum):
    LINEAR = "linear"
    POLYNOMIAL = "polynomial"
    LOGISTIC = "logistic"


class ClassifierModel(str, Enum):
    KNN = "knn"
    DECISION_TREE = "decision_tree"
    NAIVE_BAYES = "naive_bayes"


class ForecastMethod(str, Enum):
    MOVING_AVERAGE = "moving_average"
    EXPONENTIAL = "exponential"
    EXPONENTIAL_TREND = "exponential_trend"
    LINEAR = "linear"
    SEASONAL = "seasonal"


# ------------ Inputs ------------

@dataclass(frozen=True)
class RegressionDataPoint:
    x: float
    y: float


@dataclass(frozen=True)
class ClassificationDataPoint:
    features: Tuple[float, ...]
    label: Optional[Label] = None


@dataclass(frozen=True)
class TimeSeriesData:
    date: str
    value: float


@dataclass(frozen=True)
class ForecastOptions:
    method: Union[ForecastMethod, str]
    periods: int
    confidence_interval: float = 0.95
    seasonality: Optional[int] = None
    alpha: float = 0.3
    beta: float = 0.1
    window_size: Optional[int] = None


# ------------ Results ------------

@dataclass(frozen=True)
class RegressionResult:
    type: RegressionType
    coefficients: Tuple[float, ...]
    intercept: float
    r_squared: float
    equation: str
    predictions: Tuple[float, ...]
    residuals: Tuple[float, ...]
    mse: float
    mae: float

    @property
    def slope(self) -> float:
        return self.coefficients[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "coefficients": list(self.coefficients),
            "intercept": self.intercept,
            "rSquared": self.r_squared,
            "equation": self.equation,
            "predictions": list(self.predictions),
            "residuals": list(self.residuals),
            "mse": self.mse,
            "mae": self.mae,
        }


@dataclass(frozen=True)
class ClassificationPrediction:
    actual: Optional[Label]
    predicted: Label

    def to_dict(self) -> Dict[str, Any]:
        return {"actual": self.actual, "predicted": self.predicted}


@dataclass(frozen=True)
class ClassificationResult:
    model: ClassifierModel
    predictions: Tuple[ClassificationPrediction, ...]
    accuracy: float
    confusion_matrix: Dict[str, Dict[str, int]]
    precision: float = 0.0
    recall: float = 0.0
    f1_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model.value,
            "predictions": [p.to_dict() for p in self.predictions],
            "accuracy": self.accuracy,
            "confusionMatrix": {a: dict(row) for a, row in self.confusion_matrix.items()},
            "precision": self.precision,
            "recall": self.recall,
            "f1Score": self.f1_score,
        }


@dataclass(frozen=True)
class ForecastPoint:
    period: int
    value: float
    lower_bound: float
    upper_bound: float
    date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "date": self.date,
            "value": self.value,
            "lowerBound": self.lower_bound,
            "upperBound": self.upper_bound,
        }


@dataclass(frozen=True)
class ForecastResult:
    method: ForecastMethod
    periods: int
    points: Tuple[ForecastPoint, ...]
    confidence_interval: float
    standard_error: float = 0.0
    seasonal_indices: Tuple[float, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "method": self.method.value,
            "periods": self.periods,
            "points": [p.to_dict() for p in self.points],
            "confidenceInterval": self.confidence_interval,
            "standardError": self.standard_error,
        }
        if self.seasonal_indices:
            out["seasonalIndices"] = list(self.seasonal_indices)
        return out
