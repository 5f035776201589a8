from flask import Blueprint, request, jsonify
from flask_socketio import emit
from algorithms.datatypes import ClassifierModel, ForecastMethod, RegressionType
from services.predictive_service import (handle_classification_request, handle_forecast_request,
                                         handle_predictive_request, handle_regression_request)
import logging
import time

logger = logging.getLogger(__name__)

# 创建蓝图
predictive_bp = Blueprint('predictive', __name__, url_prefix='/api/reporting-studio/predictive')


def _respond(handler):
    request_data = request.get_json(silent=True)
    if request_data is None:
        return jsonify({"code": 400, "message": "请求体必须是有效的 JSON", "data": {}}), 400
    response = handler(request_data)
    return jsonify(response), response["code"]


# HTTP接口（同步执行预测分析）
@predictive_bp.route('/regression', methods=['POST'])
def run_regression():
    logger.info("收到HTTP回归请求")
    return _respond(handle_regression_request)


@predictive_bp.route('/classification', methods=['POST'])
def run_classification():
    logger.info("收到HTTP分类请求")
    return _respond(handle_classification_request)


@predictive_bp.route('/forecast', methods=['POST'])
def run_forecast():
    logger.info("收到HTTP预测请求")
    return _respond(handle_forecast_request)


@predictive_bp.route('/methods', methods=['GET'])
def list_methods():
    return jsonify({
        "code": 200,
        "message": "success",
        "data": {
            "regression": [t.value for t in RegressionType],
            "classification": [m.value for m in ClassifierModel],
            "forecast": [m.value for m in ForecastMethod],
        }
    })


# WebSocket事件处理
def register_socket_events(socketio):
    @socketio.on('connect')
    def handle_connect():
        logger.info('客户端已连接')
        emit('connection_response', {'message': '连接成功', 'status': 'connected'})

    @socketio.on('disconnect')
    def handle_disconnect():
        logger.info('客户端已断开连接')

    @socketio.on('run_analysis')
    def handle_analysis_socket(data):
        """WebSocket实时处理预测分析请求"""
        if not isinstance(data, dict):
            emit('analysis_error', {'error': '请求必须是 JSON 对象'})
            return
        analysis = data.get('analysis')
        logger.info(f"收到WebSocket分析请求 - 类型: {analysis}")

        # 发送处理中状态
        emit('analysis_status', {'status': 'processing', 'message': '分析执行中...'})

        response = handle_predictive_request(analysis, data.get('payload', {}))

        if response["code"] == 200:
            emit('analysis_result', {'analysis': analysis, 'result': response["data"]})
            logger.info(f"分析执行完成: {analysis}")
        else:
            emit('analysis_error', {'error': response["message"], 'code': response["code"]})

    @socketio.on('ping')
    def handle_ping():
        emit('pong', {'message': 'pong', 'timestamp': time.time()})
