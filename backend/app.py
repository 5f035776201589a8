from flask import Flask, jsonify
from flask_socketio import SocketIO
import logging
import socket

from config import Settings, load_settings
from routes.predictive_route import predictive_bp, register_socket_events

settings = load_settings()

# 配置日志
logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)


def parse_cors_origins(value: str):
    if value.strip() == "*":
        return "*"
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def create_app(settings: Settings):
    """构建 Flask 应用与 SocketIO 服务，注册预测分析蓝图和事件"""
    app = Flask(__name__)
    app.config['SECRET_KEY'] = settings.secret_key

    socketio = SocketIO(
        app,
        cors_allowed_origins=parse_cors_origins(settings.cors_allowed_origins),
        logger=settings.debug,
        engineio_logger=settings.debug,
        async_mode=settings.async_mode
    )

    app.register_blueprint(predictive_bp)
    register_socket_events(socketio)

    @app.route('/')
    def index():
        return jsonify({"service": "predictive-analytics-engine", "status": "ok"})

    return app, socketio


def advertised_host(host: str) -> str:
    """绑定在所有网卡时，用出站路由的本机地址作为网络访问地址"""
    if host not in ("0.0.0.0", ""):
        return host
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("8.8.8.8", 80))
            return s.getsockname()[0]
    except OSError:
        return "127.0.0.1"


app, socketio = create_app(settings)


if __name__ == '__main__':
    logger.info("=" * 50)
    logger.info("预测分析引擎启动成功!")
    logger.info(f"本地访问: http://localhost:{settings.port}")
    logger.info(f"网络访问: http://{advertised_host(settings.host)}:{settings.port}")
    logger.info("=" * 50)

    socketio.run(
        app,
        debug=settings.debug,
        host=settings.host,
        port=settings.port,
        allow_unsafe_werkzeug=True
    )
