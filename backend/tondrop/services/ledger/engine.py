"""Operations exposed to the HTTP and socket layers.

Each call validates its input, runs one transaction through
``run_in_transaction`` and, after the commit, hands a plain dict to the
notifier. Times come from the configured clock.
"""

from datetime import datetime, timedelta

from flask import current_app

from tondrop.models import Player
from . import clock, notifier
from .boosters import active_multiplier, grant_booster as extend_booster, is_active
from .epochs import EpochWindow, compact_stale_epochs, competition_status, current_epoch, effective_epoch_score, is_stale
from .leaderboard import resolve_field, top_n
from .players import (
    MAX_NAME_LENGTH,
    MAX_WALLET_LENGTH,
    apply_score,
    clean_player_id,
    clean_text,
    ensure_player,
    require_player,
    set_display_name,
    set_wallet,
    validate_score,
)
from .referrals import register_referral as record_referral
from .storage import run_in_transaction


def _config(key, default):
    return current_app.config.get(key, default)


def player_view(player: Player, now: datetime, window: EpochWindow) -> dict:
    """Serialized player as of ``now``; stale epoch scores read as zero."""
    data = player.to_dict()
    data['epoch_score'] = effective_epoch_score(player, window)
    if is_stale(player, window):
        data['epoch_start'] = window.start.isoformat()
    data['booster_active'] = is_active(player, now)
    data['booster_multiplier'] = active_multiplier(player, now, int(_config('BOOSTER_MULTIPLIER', 10)))
    return data


def submit_score(player_id, raw_score, display_name=None) -> dict:
    player_id = clean_player_id(player_id)
    validate_score(raw_score)
    display_name = clean_text(display_name, 'display_name', MAX_NAME_LENGTH, required=False)
    now = clock.now()
    boost_factor = int(_config('BOOSTER_MULTIPLIER', 10))
    auto_create = bool(_config('AUTO_CREATE_PLAYERS', True))

    def work():
        window = current_epoch(now)
        if auto_create:
            player = ensure_player(player_id, now, window, display_name=display_name)
        else:
            player = require_player(player_id)
        set_display_name(player, display_name)
        multiplier = active_multiplier(player, now, boost_factor)
        before = player.cumulative_score or 0
        apply_score(player, raw_score, multiplier, window)
        player.updated_at = clock.to_storage(now)
        view = player_view(player, now, window)
        view['points'] = player.cumulative_score - before
        view['multiplier'] = multiplier
        return view

    result = run_in_transaction('submit_score', work)
    current_app.logger.info(
        f"[score] player={player_id} raw={raw_score} multiplier={result['multiplier']} "
        f"points={result['points']} cumulative={result['cumulative_score']} epoch={result['epoch_score']}"
    )
    notifier.player_updated(result)
    return result


def save_wallet(player_id, wallet, display_name=None) -> dict:
    player_id = clean_player_id(player_id)
    wallet = clean_text(wallet, 'wallet', MAX_WALLET_LENGTH)
    display_name = clean_text(display_name, 'display_name', MAX_NAME_LENGTH, required=False)
    now = clock.now()

    def work():
        window = current_epoch(now)
        player = ensure_player(player_id, now, window, display_name=display_name)
        set_wallet(player, wallet)
        set_display_name(player, display_name)
        player.updated_at = clock.to_storage(now)
        return player_view(player, now, window)

    result = run_in_transaction('save_wallet', work)
    current_app.logger.info(f"[wallet] player={player_id} saved")
    notifier.player_updated(result)
    return result


def grant_booster(player_id) -> dict:
    player_id = clean_player_id(player_id)
    duration = timedelta(seconds=int(_config('BOOSTER_DURATION_SEC', 86400)))
    now = clock.now()

    def work():
        window = current_epoch(now)
        player = require_player(player_id)
        extend_booster(player, now, duration)
        player.updated_at = clock.to_storage(now)
        return player_view(player, now, window)

    result = run_in_transaction('grant_booster', work)
    current_app.logger.info(f"[booster] player={player_id} expiry={result['booster_expiry']}")
    notifier.player_updated(result)
    return result


def register_referral(referee_id, display_name, referrer) -> dict:
    now = clock.now()
    referee_reward = int(_config('REFERRAL_REFEREE_REWARD', 500))
    referrer_reward = int(_config('REFERRAL_REFERRER_REWARD', 1000))

    def work():
        window = current_epoch(now)
        outcome = record_referral(
            referee_id,
            referrer,
            now,
            window,
            display_name=display_name,
            referee_reward=referee_reward,
            referrer_reward=referrer_reward,
        )
        return outcome.to_dict()

    result = run_in_transaction('register_referral', work)
    current_app.logger.info(
        f"[referral] referee={result['referee_id']} referrer={result['referrer_id']} "
        f"referrals={result['referrer_referral_count']}"
    )
    notifier.referral_registered(result)
    return result


def get_player(player_id) -> dict:
    player_id = clean_player_id(player_id)
    now = clock.now()

    def work():
        window = current_epoch(now)
        return player_view(require_player(player_id, lock=False), now, window)

    return run_in_transaction('get_player', work)


def get_leaderboard(field=None, n=None) -> dict:
    now = clock.now()
    if n is None:
        n = int(_config('LEADERBOARD_DEFAULT_LIMIT', 10))
    max_n = int(_config('LEADERBOARD_MAX_LIMIT', 100))

    field = resolve_field(field)

    def work():
        window = current_epoch(now)
        entries = top_n(field, n, window, max_n=max_n)
        return {
            'field': field,
            'epoch_start': window.start.isoformat(),
            'entries': [entry.to_dict() for entry in entries],
        }

    return run_in_transaction('get_leaderboard', work)


def get_competition_status() -> dict:
    now = clock.now()
    return run_in_transaction('get_competition_status', lambda: competition_status(now))


def list_players() -> list:
    now = clock.now()

    def work():
        window = current_epoch(now)
        return [player_view(p, now, window) for p in Player.query.order_by(Player.player_id.asc()).all()]

    return run_in_transaction('list_players', work)


def compact_epochs() -> dict:
    now = clock.now()

    def work():
        window = current_epoch(now)
        return {'compacted': compact_stale_epochs(window), 'epoch_start': window.start.isoformat()}

    result = run_in_transaction('compact_epochs', work)
    current_app.logger.info(f"[compact] players={result['compacted']} epoch_start={result['epoch_start']}")
    return result
