"""Fortnightly competition epochs.

Epoch boundaries are a pure function of a fixed anchor, the period length
and the current instant::

    index = floor((now - anchor) / period)
    start = anchor + index * period
    end   = start + period

Nothing is reset when a period rolls over. Each player row remembers the
``epoch_start`` its ``epoch_score`` was earned in; a row whose stored start
is older than the current one is caught up (score zeroed, start moved
forward) the next time it is written, and is read as zero until then.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import or_

from tondrop import db
from tondrop.models import Competition, Player
from .clock import as_utc, parse_instant, to_storage

logger = logging.getLogger(__name__)

COMPETITION_ID = 1
DAY = timedelta(days=1)


@dataclass(frozen=True)
class EpochWindow:
    index: int
    start: datetime
    end: datetime

    @property
    def period(self) -> timedelta:
        return self.end - self.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= as_utc(instant) < self.end

    def days_remaining(self, instant: datetime) -> int:
        remaining = self.end - as_utc(instant)
        if remaining <= timedelta(0):
            return 0
        # ceil for timedeltas
        return -(-remaining // DAY)


def compute_epoch(anchor: datetime, period: timedelta, now: datetime) -> EpochWindow:
    """Epoch containing ``now``. Instants before the anchor get negative indexes."""
    if period <= timedelta(0):
        raise ValueError(f"Competition period must be positive, got {period}")
    anchor = as_utc(anchor)
    index = (as_utc(now) - anchor) // period
    start = anchor + index * period
    return EpochWindow(index=index, start=start, end=start + period)


def get_competition() -> Competition:
    """Return the competition record, seeding it from config on first use."""
    competition = db.session.get(Competition, COMPETITION_ID)
    if competition is None:
        cfg = current_app.config
        competition = Competition(
            id=COMPETITION_ID,
            anchor=to_storage(parse_instant(cfg.get('COMPETITION_ANCHOR', '2024-01-01T00:00:00Z'))),
            period_days=int(cfg.get('COMPETITION_PERIOD_DAYS', 14)),
        )
        db.session.add(competition)
        # A concurrent seed loses on the primary key and is retried by the caller
        db.session.flush()
        current_app.logger.info(
            f"[competition-seed] anchor={competition.anchor.isoformat()} period_days={competition.period_days}"
        )
    return competition


def current_epoch(now: datetime) -> EpochWindow:
    competition = get_competition()
    return compute_epoch(competition.anchor, timedelta(days=competition.period_days), now)


def is_stale(player: Player, window: EpochWindow) -> bool:
    return player.epoch_start is None or as_utc(player.epoch_start) < window.start


def catch_up(player: Player, window: EpochWindow) -> bool:
    """Move the player into ``window`` if its epoch score belongs to an older one.

    Returns True when the record was reset. A stored start newer than the
    window (clock skew between processes) is left alone.
    """
    if not is_stale(player, window):
        return False
    if player.epoch_score:
        logger.debug(
            "epoch catch-up player=%s dropped=%s old_start=%s new_start=%s",
            player.player_id, player.epoch_score, player.epoch_start, window.start,
        )
    player.epoch_score = 0
    player.epoch_start = to_storage(window.start)
    return True


def effective_epoch_score(player: Player, window: EpochWindow) -> int:
    if is_stale(player, window):
        return 0
    return player.epoch_score or 0


def compact_stale_epochs(window: EpochWindow) -> int:
    """Apply the catch-up to every stale row in one statement."""
    start = to_storage(window.start)
    stale = or_(Player.epoch_start.is_(None), Player.epoch_start < start)
    count = (
        Player.query.filter(stale)
        .update(
            {
                Player.epoch_score: 0,
                Player.epoch_start: start,
                Player.version: Player.version + 1,
            },
            synchronize_session=False,
        )
    )
    return count


def competition_status(now: datetime) -> dict:
    competition = get_competition()
    window = compute_epoch(competition.anchor, timedelta(days=competition.period_days), now)
    return {
        'epoch_index': window.index,
        'epoch_start': window.start.isoformat(),
        'epoch_end': window.end.isoformat(),
        'days_remaining': window.days_remaining(now),
        'period_days': competition.period_days,
        'anchor': as_utc(competition.anchor).isoformat(),
    }
