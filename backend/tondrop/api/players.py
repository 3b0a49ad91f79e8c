import hmac

from flask import Blueprint, jsonify, request, current_app
from tondrop.services.ledger import engine
from tondrop.services.ledger.errors import LedgerError


players = Blueprint('players', __name__)


@players.errorhandler(LedgerError)
def handle_ledger_error(exc: LedgerError):
    if exc.status_code >= 500:
        current_app.logger.error(f"[ledger-error] code={exc.code} error={exc}")
    else:
        current_app.logger.info(f"[rejected] code={exc.code} reason={exc}")
    return jsonify({'success': False, 'error': exc.code, 'message': exc.user_message}), exc.status_code


@players.route('/submit-score', methods=['POST'])
def submit_score():
    data = request.get_json(silent=True) or {}
    result = engine.submit_score(data.get('player_id'), data.get('score'), display_name=data.get('display_name'))
    return jsonify({'success': True, 'player': result})


@players.route('/save-wallet', methods=['POST'])
def save_wallet():
    data = request.get_json(silent=True) or {}
    result = engine.save_wallet(data.get('player_id'), data.get('wallet'), display_name=data.get('display_name'))
    return jsonify({'success': True, 'player': result})


@players.route('/booster', methods=['POST'])
def grant_booster():
    data = request.get_json(silent=True) or {}
    result = engine.grant_booster(data.get('player_id'))
    return jsonify({'success': True, 'player': result})


@players.route('/refer', methods=['POST'])
def register_referral():
    data = request.get_json(silent=True) or {}
    result = engine.register_referral(data.get('player_id'), data.get('display_name'), data.get('referrer'))
    return jsonify({'success': True, 'referral': result})


@players.route('/player/<string:player_id>', methods=['GET'])
def get_player(player_id):
    return jsonify(engine.get_player(player_id))


@players.route('/leaderboard', methods=['GET'])
def get_leaderboard():
    return jsonify(engine.get_leaderboard(request.args.get('field'), request.args.get('limit')))


@players.route('/competition-leaderboard', methods=['GET'])
def get_competition_leaderboard():
    return jsonify(engine.get_leaderboard('epoch', request.args.get('limit')))


@players.route('/competition', methods=['GET'])
def get_competition_status():
    return jsonify(engine.get_competition_status())


@players.route('/admin/players', methods=['GET'])
def list_players():
    secret = current_app.config.get('ADMIN_SECRET') or ''
    provided = request.args.get('secret') or ''
    if not secret or not hmac.compare_digest(secret.encode(), provided.encode()):
        return jsonify({'success': False, 'error': 'forbidden', 'message': 'Forbidden'}), 403
    return jsonify({'players': engine.list_players()})
