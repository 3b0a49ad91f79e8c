from flask_socketio import join_room, leave_room, emit
from tondrop import socketio
from tondrop.services.ledger.notifier import LEADERBOARD_ROOM, NAMESPACE, player_room


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_watch_player(data):
    player_id = (data or {}).get('player_id')
    if not player_id:
        emit('error', {'message': 'player_id is required'})
        return
    room = player_room(str(player_id))
    join_room(room)
    emit('watching', {'room': room})


def handle_unwatch_player(data):
    player_id = (data or {}).get('player_id')
    if not player_id:
        emit('error', {'message': 'player_id is required'})
        return
    room = player_room(str(player_id))
    leave_room(room)
    emit('unwatched', {'room': room})


def handle_watch_leaderboard(data=None):
    join_room(LEADERBOARD_ROOM)
    emit('watching', {'room': LEADERBOARD_ROOM})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('watch_player', handle_watch_player, namespace=namespace)
        socketio.on_event('unwatch_player', handle_unwatch_player, namespace=namespace)
        socketio.on_event('watch_leaderboard', handle_watch_leaderboard, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
