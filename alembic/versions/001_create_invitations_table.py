"""Create invitations table

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the invitations table keyed by code."""
    op.create_table(
        'invitations',
        sa.Column('code', sa.String(32), nullable=False),
        sa.Column('org_id', sa.String(255), nullable=False),
        sa.Column('expires', sa.BigInteger, nullable=False),
        sa.Column('created_by', sa.String(255), nullable=False),
        sa.Column('created_at', sa.BigInteger, nullable=False),
        sa.Column('used_by', sa.String(255), nullable=True),
        sa.Column('redeemed_at', sa.BigInteger, nullable=True),
        sa.PrimaryKeyConstraint('code', name='pk_invitations'),
        sa.CheckConstraint(
            '(used_by IS NULL AND redeemed_at IS NULL) '
            'OR (used_by IS NOT NULL AND redeemed_at IS NOT NULL)',
            name='ck_invitations_redemption_complete',
        ),
    )
    op.create_index('ix_invitations_org_id', 'invitations', ['org_id'])


def downgrade() -> None:
    """Drop the invitations table."""
    op.drop_index('ix_invitations_org_id', table_name='invitations')
    op.drop_table('invitations')
