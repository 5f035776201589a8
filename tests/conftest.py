"""
Pytest configuration: Flask and Socket.IO test clients.
"""
import pytest

from app import app as flask_app, socketio


@pytest.fixture
def app():
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def socket_client(app):
    sio_client = socketio.test_client(app)
    yield sio_client
    if sio_client.is_connected():
        sio_client.disconnect()
