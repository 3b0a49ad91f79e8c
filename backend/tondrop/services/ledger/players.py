"""Player ledger: creation, score and reward application, profile fields.

These helpers change rows inside the current session only; callers commit
through ``storage.run_in_transaction``.
"""

import math
from datetime import datetime
from typing import Optional, Tuple

from tondrop import db
from tondrop.models import Player
from .clock import to_storage
from .epochs import EpochWindow, catch_up, effective_epoch_score
from .errors import InvalidInput, PlayerNotFound

MAX_ID_LENGTH = 64
MAX_NAME_LENGTH = 64
MAX_WALLET_LENGTH = 128
# Largest value the BigInteger score columns hold
MAX_SCORE = 2 ** 63 - 1


def clean_text(value, field: str, max_length: int, required: bool = True) -> Optional[str]:
    # Numeric ids (e.g. chat user ids) arrive as JSON numbers
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise InvalidInput(f"{field} is required")
        return None
    if not isinstance(value, str):
        raise InvalidInput(f"{field} must be a string")
    value = value.strip()
    if len(value) > max_length:
        raise InvalidInput(f"{field} must be at most {max_length} characters")
    return value


def clean_player_id(value) -> str:
    return clean_text(value, 'player_id', MAX_ID_LENGTH)


def load_player(player_id: str, lock: bool = True) -> Optional[Player]:
    query = Player.query.filter_by(player_id=player_id)
    if lock:
        query = query.with_for_update().populate_existing()
    return query.first()


def require_player(player_id: str, lock: bool = True) -> Player:
    player = load_player(player_id, lock=lock)
    if player is None:
        raise PlayerNotFound(player_id)
    return player


def ensure_player(player_id: str, now: datetime, window: EpochWindow, display_name: str = None) -> Player:
    """Return the (locked) player row, creating a zero-valued one if absent."""
    player = load_player(player_id)
    if player is None:
        player = Player(
            player_id=player_id,
            display_name=display_name,
            cumulative_score=0,
            epoch_score=0,
            epoch_start=to_storage(window.start),
            referral_count=0,
            created_at=to_storage(now),
            updated_at=to_storage(now),
        )
        db.session.add(player)
        # Duplicate creation fails here on the primary key
        db.session.flush()
    return player


def validate_score(raw_score) -> None:
    if isinstance(raw_score, bool) or not isinstance(raw_score, (int, float)):
        raise InvalidInput('score must be a number', 'Invalid input')
    if not math.isfinite(raw_score) or raw_score <= 0:
        raise InvalidInput(f"score must be a positive finite number, got {raw_score!r}", 'Invalid input')


def points_for(raw_score, multiplier: int) -> int:
    """Integer score units for a submission; fractions are truncated."""
    validate_score(raw_score)
    if isinstance(raw_score, int):
        points = raw_score * multiplier
    else:
        product = raw_score * multiplier
        if not math.isfinite(product):
            raise InvalidInput(f"score {raw_score!r} is out of range", 'Invalid input')
        points = math.floor(product)
    if points > MAX_SCORE:
        raise InvalidInput(f"score {raw_score!r} is out of range", 'Invalid input')
    return points


def _add(player: Player, amount: int, window: EpochWindow) -> None:
    cumulative = (player.cumulative_score or 0) + amount
    epoch = effective_epoch_score(player, window) + amount
    if cumulative > MAX_SCORE or epoch > MAX_SCORE:
        raise InvalidInput(
            f"score total for player '{player.player_id}' would exceed {MAX_SCORE}", 'Score limit reached'
        )
    catch_up(player, window)
    player.cumulative_score = (player.cumulative_score or 0) + amount
    player.epoch_score = (player.epoch_score or 0) + amount


def apply_score(player: Player, raw_score, multiplier: int, window: EpochWindow) -> Tuple[int, int]:
    points = points_for(raw_score, multiplier)
    _add(player, points, window)
    return player.cumulative_score, player.epoch_score


def apply_reward(player: Player, amount: int, window: EpochWindow) -> Tuple[int, int]:
    if amount < 0:
        raise InvalidInput(f"reward must not be negative, got {amount}")
    _add(player, amount, window)
    return player.cumulative_score, player.epoch_score


def set_display_name(player: Player, display_name) -> None:
    name = clean_text(display_name, 'display_name', MAX_NAME_LENGTH, required=False)
    if name is not None:
        player.display_name = name


def set_wallet(player: Player, wallet) -> None:
    player.wallet = clean_text(wallet, 'wallet', MAX_WALLET_LENGTH)
