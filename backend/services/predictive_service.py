import logging
import math

from algorithms.classification import classify
from algorithms.datatypes import (ClassificationDataPoint, ForecastOptions, RegressionDataPoint,
                                  TimeSeriesData)
from algorithms.errors import NumericalError, ValidationError
from algorithms.forecasting import forecast
from algorithms.regression import fit

logger = logging.getLogger(__name__)

# JSON option keys -> engine keyword arguments
REGRESSION_OPTIONS = {"degree": "degree", "learningRate": "learning_rate", "iterations": "iterations"}
CLASSIFICATION_OPTIONS = {"k": "k"}
FORECAST_OPTIONS = {
    "method": "method",
    "periods": "periods",
    "confidenceInterval": "confidence_interval",
    "seasonality": "seasonality",
    "alpha": "alpha",
    "beta": "beta",
    "windowSize": "window_size",
}
INTEGER_OPTIONS = {"degree", "iterations", "k", "periods", "seasonality", "window_size"}


def coerce_number(value, what):
    """
    将请求中的数值字段转换为 float，允许 "2.5" 这类字符串
    """
    if isinstance(value, bool):
        raise ValidationError(f"{what} must be a number, got {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            raise ValidationError(f"{what} must be a number, got {value!r}") from None
    raise ValidationError(f"{what} must be a number, got {value!r}")


def coerce_option(name, value):
    if name == "method" or value is None:
        return value
    number = coerce_number(value, name)
    if name in INTEGER_OPTIONS:
        if not math.isfinite(number) or number != int(number):
            raise ValidationError(f"{name} must be an integer, got {value!r}")
        return int(number)
    return number


def _records(request_data, key):
    records = request_data.get(key)
    if not isinstance(records, list):
        raise ValidationError(f"'{key}' must be a list")
    for i, record in enumerate(records):
        if not isinstance(record, dict):
            raise ValidationError(f"{key}[{i}] must be an object")
    return records


def _options(source, mapping):
    if not isinstance(source, dict):
        raise ValidationError("options must be an object")
    return {engine_key: coerce_option(engine_key, source[json_key])
            for json_key, engine_key in mapping.items() if json_key in source}


def parse_regression_payload(request_data):
    points = [
        RegressionDataPoint(x=coerce_number(r.get("x"), f"data[{i}].x"),
                            y=coerce_number(r.get("y"), f"data[{i}].y"))
        for i, r in enumerate(_records(request_data, "data"))
    ]
    return points, request_data.get("type", "linear"), _options(request_data, REGRESSION_OPTIONS)


def _classification_points(request_data, key):
    points = []
    for i, r in enumerate(_records(request_data, key)):
        features = r.get("features")
        if not isinstance(features, list):
            raise ValidationError(f"{key}[{i}].features must be a list")
        points.append(ClassificationDataPoint(
            features=tuple(coerce_number(v, f"{key}[{i}].features[{j}]") for j, v in enumerate(features)),
            label=r.get("label"),
        ))
    return points


def parse_classification_payload(request_data):
    train = _classification_points(request_data, "train")
    test = _classification_points(request_data, "test")
    return train, test, request_data.get("model", "knn"), _options(request_data, CLASSIFICATION_OPTIONS)


def parse_forecast_payload(request_data):
    series = [
        TimeSeriesData(date=r.get("date"), value=coerce_number(r.get("value"), f"data[{i}].value"))
        for i, r in enumerate(_records(request_data, "data"))
    ]
    options = _options(request_data.get("options", {}), FORECAST_OPTIONS)
    if "method" not in options or "periods" not in options:
        raise ValidationError("options.method and options.periods are required")
    return series, ForecastOptions(**options)


def run_regression(request_data):
    points, regression_type, options = parse_regression_payload(request_data)
    logger.info(f"回归分析 - 类型: {regression_type}, 样本数: {len(points)}")
    return fit(points, regression_type, **options).to_dict()


def run_classification(request_data):
    train, test, model, options = parse_classification_payload(request_data)
    logger.info(f"分类分析 - 模型: {model}, 训练集: {len(train)}, 测试集: {len(test)}")
    return classify(train, test, model, options).to_dict()


def run_forecast(request_data):
    series, options = parse_forecast_payload(request_data)
    logger.info(f"时间序列预测 - 方法: {options.method}, 数据点: {len(series)}, 周期: {options.periods}")
    return forecast(series, options).to_dict()


ANALYSES = {
    "regression": run_regression,
    "classification": run_classification,
    "forecast": run_forecast,
}


def handle_predictive_request(kind: str, request_data: dict) -> dict:
    """
    预测分析请求的统一入口，返回 {"code", "message", "data"} 结构
    """
    try:
        if kind not in ANALYSES:
            return {"code": 400, "message": f"未知分析类型: {kind}", "data": {}}
        if not isinstance(request_data, dict):
            return {"code": 400, "message": "请求体必须是 JSON 对象", "data": {}}

        data = ANALYSES[kind](request_data)
        logger.info(f"分析执行成功: {kind}")
        return {"code": 200, "message": "success", "data": data}

    except ValidationError as e:
        logger.warning(f"输入校验失败 ({kind}): {str(e)}")
        return {"code": 400, "message": f"输入错误：{str(e)}", "data": {}}
    except NumericalError as e:
        logger.warning(f"数值计算失败 ({kind}): {str(e)}")
        return {"code": 422, "message": f"数值错误：{str(e)}", "data": {}}
    except Exception as e:
        logger.error(f"预测分析服务错误 ({kind}): {str(e)}")
        return {"code": 500, "message": f"服务端错误：{str(e)}", "data": {}}


def handle_regression_request(request_data: dict) -> dict:
    return handle_predictive_request("regression", request_data)


def handle_classification_request(request_data: dict) -> dict:
    return handle_predictive_request("classification", request_data)


def handle_forecast_request(request_data: dict) -> dict:
    return handle_predictive_request("forecast", request_data)
