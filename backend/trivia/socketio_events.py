from flask import current_app
from flask_socketio import emit

from trivia import socketio
from trivia.protocol import INTENT_EVENTS


NAMESPACE = '/ws'


def _hub():
    return current_app.extensions['trivia']


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_ping(data):
    emit('pong', data or {})


def _intent_handler(event: str):
    def handler(data=None):
        # The return value is delivered as the Socket.IO ack
        return _hub().dispatch(event, data)
    handler.__name__ = f"handle_{event}"
    return handler


def register_socketio_handlers(namespace: str = NAMESPACE) -> None:
    """Register Socket.IO event handlers.

    Every client intent in the protocol maps to one event of the same name;
    handlers resolve the hub from the current app so that the registry stays
    owned by the app instance.
    """
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('ping', handle_ping, namespace=namespace)
    for event in INTENT_EVENTS:
        socketio.on_event(event, _intent_handler(event), namespace=namespace)
