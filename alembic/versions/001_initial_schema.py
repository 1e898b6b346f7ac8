"""Initial wager mirror schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create wagers table
    op.create_table(
        'wagers',
        sa.Column('wager_id', sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column('contract_address', sa.String(), nullable=False),
        sa.Column('creator', sa.String(), nullable=False),
        sa.Column('amount', sa.String(), nullable=False),
        sa.Column('condition', sa.Text(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('winner', sa.String(), nullable=True),
        sa.Column('charity_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('charity_percentage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('charity_address', sa.String(), nullable=True),
        sa.Column('charity_donated', sa.String(), nullable=False, server_default='0'),
        sa.Column('evidence', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('synced_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'active', 'resolved', 'cancelled')",
            name='wagers_status_check'
        ),
        sa.CheckConstraint(
            'charity_percentage >= 0 AND charity_percentage <= 100',
            name='wagers_charity_percentage_check'
        ),
        sa.PrimaryKeyConstraint('wager_id')
    )
    op.create_index(op.f('ix_wagers_creator'), 'wagers', ['creator'], unique=False)
    op.create_index(op.f('ix_wagers_status'), 'wagers', ['status'], unique=False)

    # Create wager_participants table
    op.create_table(
        'wager_participants',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('wager_id', sa.BigInteger(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('address', sa.String(), nullable=False),
        sa.ForeignKeyConstraint(['wager_id'], ['wagers.wager_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('wager_id', 'position', name='uq_wager_participants_position')
    )
    op.create_index(op.f('ix_wager_participants_address'), 'wager_participants', ['address'], unique=False)
    op.create_index('idx_wager_participants_address_wager', 'wager_participants', ['address', 'wager_id'], unique=False)

    # Create charity_donations table
    op.create_table(
        'charity_donations',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('wager_id', sa.BigInteger(), nullable=False),
        sa.Column('charity_address', sa.String(), nullable=False),
        sa.Column('charity_name', sa.Text(), nullable=True),
        sa.Column('amount', sa.String(), nullable=False),
        sa.Column('percentage', sa.Integer(), nullable=False),
        sa.Column('donated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['wager_id'], ['wagers.wager_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('wager_id')
    )

    # Create relay_nonces table
    op.create_table(
        'relay_nonces',
        sa.Column('address', sa.String(), nullable=False),
        sa.Column('nonce', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('address')
    )


def downgrade() -> None:
    op.drop_table('relay_nonces')
    op.drop_table('charity_donations')
    op.drop_index('idx_wager_participants_address_wager', table_name='wager_participants')
    op.drop_index(op.f('ix_wager_participants_address'), table_name='wager_participants')
    op.drop_table('wager_participants')
    op.drop_index(op.f('ix_wagers_status'), table_name='wagers')
    op.drop_index(op.f('ix_wagers_creator'), table_name='wagers')
    op.drop_table('wagers')
