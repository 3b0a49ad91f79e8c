"""Fire-and-forget Socket.IO notifications sent after a committed change."""

from flask import current_app

from tondrop import socketio

NAMESPACE = '/ws'
LEADERBOARD_ROOM = 'leaderboard'


def player_room(player_id: str) -> str:
    return f"player:{player_id}"


def _emit(event: str, payload: dict, room: str) -> None:
    if not current_app.config.get('NOTIFICATIONS_ENABLED', True):
        return
    try:
        socketio.emit(event, payload, to=room, namespace=NAMESPACE)
    except Exception as exc:
        # The ledger change is already committed; delivery is best effort
        current_app.logger.warning(f"[notify-failed] event={event} room={room} error={exc}")


def player_updated(player: dict) -> None:
    _emit('player_update', player, player_room(player['player_id']))
    _emit('leaderboard_update', {'player_id': player['player_id']}, LEADERBOARD_ROOM)


def referral_registered(outcome: dict) -> None:
    _emit('referral_registered', outcome, player_room(outcome['referrer_id']))
    _emit('referral_registered', outcome, player_room(outcome['referee_id']))
    _emit('leaderboard_update', {'player_id': outcome['referrer_id']}, LEADERBOARD_ROOM)
