from dataclasses import dataclass
from typing import List

from tondrop.models import Player
from .clock import to_storage
from .epochs import EpochWindow
from .errors import InvalidInput

CUMULATIVE = 'cumulative'
EPOCH = 'epoch'

_FIELD_ALIASES = {
    'cumulative': CUMULATIVE,
    'cumulative_score': CUMULATIVE,
    'total': CUMULATIVE,
    'total_score': CUMULATIVE,
    'epoch': EPOCH,
    'epoch_score': EPOCH,
    'competition': EPOCH,
    'competition_score': EPOCH,
}


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    player_id: str
    display_name: str
    value: int

    def to_dict(self):
        return {
            'rank': self.rank,
            'player_id': self.player_id,
            'display_name': self.display_name,
            'value': self.value,
        }


def resolve_field(field) -> str:
    if field is None:
        return CUMULATIVE
    key = field.strip().lower() if isinstance(field, str) else None
    if key not in _FIELD_ALIASES:
        raise InvalidInput(f"Unknown leaderboard field {field!r}", 'Unknown leaderboard field')
    return _FIELD_ALIASES[key]


def resolve_limit(n, max_n: int) -> int:
    if isinstance(n, str) and n.strip().isdigit():
        n = int(n)
    if isinstance(n, bool) or not isinstance(n, int) or n < 1:
        raise InvalidInput(f"Leaderboard size must be a positive integer, got {n!r}", 'Invalid limit')
    return min(n, max_n)


def top_n(field, n, window: EpochWindow, max_n: int = 100) -> List[LeaderboardEntry]:
    """Snapshot of the top players by ``field``; ties go to the lower player_id.

    Epoch rankings only include rows already caught up to ``window``; stale
    rows would read as zero anyway.
    """
    field = resolve_field(field)
    limit = resolve_limit(n, max_n)
    column = Player.cumulative_score if field == CUMULATIVE else Player.epoch_score
    query = Player.query
    if field == EPOCH:
        query = query.filter(Player.epoch_start >= to_storage(window.start))
    rows = query.order_by(column.desc(), Player.player_id.asc()).limit(limit).all()
    return [
        LeaderboardEntry(
            rank=index + 1,
            player_id=row.player_id,
            display_name=row.display_name,
            value=(row.cumulative_score if field == CUMULATIVE else row.epoch_score) or 0,
        )
        for index, row in enumerate(rows)
    ]
