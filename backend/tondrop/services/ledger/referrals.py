"""Referral graph.

A referee can be referred once, ever. Marking the referee and crediting
both sides happen in one transaction, so either everything is stored or
nothing is; a retry after a successful commit stops at the referee's
``referred_by`` guard.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from tondrop import db
from tondrop.models import Player, Referral
from .clock import to_storage
from .epochs import EpochWindow
from .errors import AlreadyReferred, InvalidInput, ReferrerNotFound, SelfReferral
from .players import MAX_ID_LENGTH, MAX_NAME_LENGTH, apply_reward, clean_text, ensure_player, set_display_name

DEFAULT_REFEREE_REWARD = 500
DEFAULT_REFERRER_REWARD = 1000


@dataclass(frozen=True)
class RewardOutcome:
    referee_id: str
    referrer_id: str
    referee_reward: int
    referrer_reward: int
    referrer_referral_count: int

    def to_dict(self):
        return {
            'referee_id': self.referee_id,
            'referrer_id': self.referrer_id,
            'referee_reward': self.referee_reward,
            'referrer_reward': self.referrer_reward,
            'referrer_referral_count': self.referrer_referral_count,
        }


def resolve_referrer(identifier: str) -> Optional[Player]:
    """Match by display name (lowest player_id wins on duplicates), then by player_id.

    Numeric identifiers are chat user ids, so they are tried as a player_id
    first and a player naming themselves after someone's id cannot take
    their referrals.
    """
    if identifier.isdigit():
        by_id = db.session.get(Player, identifier)
        if by_id is not None:
            return by_id
    by_name = (
        Player.query.filter_by(display_name=identifier)
        .order_by(Player.player_id.asc())
        .first()
    )
    if by_name is not None:
        return by_name
    return db.session.get(Player, identifier)


def _lock_in_order(*player_ids):
    rows = (
        Player.query.filter(Player.player_id.in_(sorted(set(player_ids))))
        .order_by(Player.player_id.asc())
        .with_for_update()
        .populate_existing()
        .all()
    )
    return {row.player_id: row for row in rows}


def register_referral(
    referee_id,
    referrer_identifier,
    now: datetime,
    window: EpochWindow,
    display_name=None,
    referee_reward: int = DEFAULT_REFEREE_REWARD,
    referrer_reward: int = DEFAULT_REFERRER_REWARD,
) -> RewardOutcome:
    referee_id = clean_text(referee_id, 'player_id', MAX_ID_LENGTH, required=False)
    identifier = clean_text(referrer_identifier, 'referrer', MAX_NAME_LENGTH, required=False)
    if not referee_id or not identifier:
        raise InvalidInput('player_id and referrer are required', 'Invalid input')
    display_name = clean_text(display_name, 'display_name', MAX_NAME_LENGTH, required=False)

    if referee_id == identifier:
        raise SelfReferral(referee_id)

    referee = db.session.get(Player, referee_id)
    if referee is not None and referee.referred_by:
        raise AlreadyReferred(referee_id)

    referrer = resolve_referrer(identifier)
    if referrer is None:
        raise ReferrerNotFound(identifier)
    if referrer.player_id == referee_id:
        raise SelfReferral(referee_id)

    locked = _lock_in_order(referee_id, referrer.player_id)
    referrer = locked[referrer.player_id]
    referee = locked.get(referee_id)
    # Re-check under the lock: a concurrent request may have won
    if referee is not None and referee.referred_by:
        raise AlreadyReferred(referee_id)
    if referee is None:
        referee = ensure_player(referee_id, now, window, display_name=display_name)

    set_display_name(referee, display_name)
    referee.referred_by = referrer.player_id
    db.session.add(Referral(
        referee_id=referee_id,
        referrer_id=referrer.player_id,
        referee_reward=referee_reward,
        referrer_reward=referrer_reward,
        created_at=to_storage(now),
    ))
    apply_reward(referee, referee_reward, window)
    apply_reward(referrer, referrer_reward, window)
    referrer.referral_count = (referrer.referral_count or 0) + 1
    referee.updated_at = referrer.updated_at = to_storage(now)

    return RewardOutcome(
        referee_id=referee_id,
        referrer_id=referrer.player_id,
        referee_reward=referee_reward,
        referrer_reward=referrer_reward,
        referrer_referral_count=referrer.referral_count,
    )
