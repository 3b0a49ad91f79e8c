from datetime import datetime, timezone

from tondrop import db


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc).isoformat()


class Player(db.Model):
    """Per-player ledger row. Instants are stored as naive UTC."""
    __tablename__ = 'player'
    player_id = db.Column(db.String(64), primary_key=True)
    display_name = db.Column(db.String(64), nullable=True, index=True)
    wallet = db.Column(db.String(128), nullable=True)
    cumulative_score = db.Column(db.BigInteger, nullable=False, default=0, index=True)
    epoch_score = db.Column(db.BigInteger, nullable=False, default=0, index=True)
    # Start of the competition epoch that epoch_score belongs to
    epoch_start = db.Column(db.DateTime, nullable=True)
    booster_expiry = db.Column(db.DateTime, nullable=True)
    # Write-once: player_id of the referrer
    referred_by = db.Column(db.String(64), nullable=True)
    referral_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version}

    def to_dict(self):
        return {
            'player_id': self.player_id,
            'display_name': self.display_name,
            'wallet': self.wallet,
            'cumulative_score': self.cumulative_score,
            'epoch_score': self.epoch_score,
            'epoch_start': _iso(self.epoch_start),
            'booster_expiry': _iso(self.booster_expiry),
            'referred_by': self.referred_by,
            'referral_count': self.referral_count,
        }


class Referral(db.Model):
    """Referral edge. The primary key on referee_id makes each referee's edge write-once."""
    __tablename__ = 'referral'
    referee_id = db.Column(db.String(64), db.ForeignKey('player.player_id'), primary_key=True)
    referrer_id = db.Column(db.String(64), db.ForeignKey('player.player_id'), nullable=False, index=True)
    referee_reward = db.Column(db.Integer, nullable=False)
    referrer_reward = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    referee = db.relationship('Player', foreign_keys=[referee_id])
    referrer = db.relationship('Player', foreign_keys=[referrer_id])

    def to_dict(self):
        return {
            'referee_id': self.referee_id,
            'referrer_id': self.referrer_id,
            'referee_reward': self.referee_reward,
            'referrer_reward': self.referrer_reward,
            'created_at': _iso(self.created_at),
        }


class Competition(db.Model):
    """The single competition schedule record (id is always 1)."""
    __tablename__ = 'competition'
    id = db.Column(db.Integer, primary_key=True)
    anchor = db.Column(db.DateTime, nullable=False)
    period_days = db.Column(db.Integer, nullable=False)

    def to_dict(self):
        return {
            'anchor': _iso(self.anchor),
            'period_days': self.period_days,
        }
