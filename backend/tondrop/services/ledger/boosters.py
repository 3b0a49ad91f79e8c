from datetime import datetime, timedelta

from tondrop.models import Player
from .clock import as_utc, to_storage
from .errors import InvalidInput

DEFAULT_BOOST_FACTOR = 10


def is_active(player: Player, now: datetime) -> bool:
    if player.booster_expiry is None:
        return False
    return as_utc(now) < as_utc(player.booster_expiry)


def active_multiplier(player: Player, now: datetime, boost_factor: int = DEFAULT_BOOST_FACTOR) -> int:
    """Boost factor while the booster window is open, else 1."""
    return boost_factor if is_active(player, now) else 1


def grant_booster(player: Player, now: datetime, duration: timedelta) -> datetime:
    """Extend the booster window by ``duration`` and return the new expiry.

    The extension starts from the later of ``now`` and the current expiry,
    so an open window is never shortened.
    """
    if not isinstance(duration, timedelta) or duration <= timedelta(0):
        raise InvalidInput(f"Booster duration must be positive, got {duration!r}")
    base = as_utc(now)
    if player.booster_expiry is not None:
        base = max(base, as_utc(player.booster_expiry))
    expiry = base + duration
    player.booster_expiry = to_storage(expiry)
    return expiry
