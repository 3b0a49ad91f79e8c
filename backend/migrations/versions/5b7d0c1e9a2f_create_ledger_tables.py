"""create player, referral and competition tables

Revision ID: 5b7d0c1e9a2f
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5b7d0c1e9a2f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'player' not in existing_tables:
        op.create_table(
            'player',
            sa.Column('player_id', sa.String(length=64), primary_key=True),
            sa.Column('display_name', sa.String(length=64), nullable=True),
            sa.Column('wallet', sa.String(length=128), nullable=True),
            sa.Column('cumulative_score', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('epoch_score', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('epoch_start', sa.DateTime(), nullable=True),
            sa.Column('booster_expiry', sa.DateTime(), nullable=True),
            sa.Column('referred_by', sa.String(length=64), nullable=True),
            sa.Column('referral_count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        )
        op.create_index('ix_player_display_name', 'player', ['display_name'])
        op.create_index('ix_player_cumulative_score', 'player', ['cumulative_score'])
        op.create_index('ix_player_epoch_score', 'player', ['epoch_score'])

    if 'referral' not in existing_tables:
        op.create_table(
            'referral',
            sa.Column('referee_id', sa.String(length=64), sa.ForeignKey('player.player_id'), primary_key=True),
            sa.Column('referrer_id', sa.String(length=64), sa.ForeignKey('player.player_id'), nullable=False),
            sa.Column('referee_reward', sa.Integer(), nullable=False),
            sa.Column('referrer_reward', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
        )
        op.create_index('ix_referral_referrer_id', 'referral', ['referrer_id'])

    if 'competition' not in existing_tables:
        op.create_table(
            'competition',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('anchor', sa.DateTime(), nullable=False),
            sa.Column('period_days', sa.Integer(), nullable=False),
        )


def downgrade():
    op.drop_table('competition')
    op.drop_index('ix_referral_referrer_id', table_name='referral')
    op.drop_table('referral')
    op.drop_index('ix_player_epoch_score', table_name='player')
    op.drop_index('ix_player_cumulative_score', table_name='player')
    op.drop_index('ix_player_display_name', table_name='player')
    op.drop_table('player')
