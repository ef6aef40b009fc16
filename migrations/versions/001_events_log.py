"""Events log

Revision ID: 001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'events_log',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('block_number', sa.BigInteger, nullable=False),
        sa.Column('block_timestamp', sa.BigInteger, nullable=False),
        sa.Column('contract_address', sa.String(64), nullable=False),
        sa.Column('event_index', sa.Integer, nullable=False),
        sa.Column('event_name', sa.String(128), nullable=False),
        sa.Column('result', sa.JSON),
        sa.Column('result_type', sa.Text),
        sa.Column('transaction_id', sa.String(128), nullable=False),
        sa.Column('resource_node', sa.String(64)),
        sa.Column('raw_data', sa.JSON),
        sa.Column('fingerprint', sa.String(256), nullable=False),
        sa.Column('confirmed', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.UniqueConstraint('transaction_id', 'event_name', 'event_index', name='uq_events_log_event'),
    )

    op.create_index('ix_events_log_block_number', 'events_log', ['block_number'])
    op.create_index('ix_events_log_contract_address', 'events_log', ['contract_address'])


def downgrade():
    op.drop_index('ix_events_log_contract_address', 'events_log')
    op.drop_index('ix_events_log_block_number', 'events_log')
    op.drop_table('events_log')
