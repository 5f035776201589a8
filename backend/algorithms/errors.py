"""Exception taxonomy shared by the regression, classification and forecasting engines."""


class PredictiveAnalyticsError(Exception):
    """Base class for every error raised by the engines."""


class ValidationError(PredictiveAnalyticsError, ValueError):
    """Input has the wrong shape, too few points or out-of-range values."""


class ConfigurationError(ValidationError):
    """An algorithm parameter or method/model token is invalid."""


class NumericalError(PredictiveAnalyticsError, ArithmeticError):
    """Well-shaped input led to a degenerate computation (singular matrix, zero variance)."""
