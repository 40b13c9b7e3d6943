"""initial ticket schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

def upgrade() -> None:
    op.create_table('users',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_table('events',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('organizer_id', sa.String(length=32), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('starts_at', sa.DateTime(), nullable=False),
        sa.Column('ends_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_events_organizer_id', 'events', ['organizer_id'])
    op.create_table('tickets',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('event_id', sa.String(length=32), sa.ForeignKey('events.id'), nullable=False),
        sa.Column('holder_id', sa.String(length=32), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('ticket_type', sa.String(length=64), nullable=False, server_default='standard'),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('qr_payload', sa.String(length=128), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='valid'),
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.Column('scanned_by', sa.String(length=32), nullable=True),
        sa.Column('self_scan', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('purchase_date', sa.DateTime(), nullable=False),
        sa.Column('payment_reference', sa.String(length=255), nullable=True),
        sa.UniqueConstraint('qr_payload'),
        sa.CheckConstraint("status IN ('valid', 'used', 'cancelled', 'expired')", name='ck_tickets_status'),
    )
    op.create_index('ix_tickets_event_id', 'tickets', ['event_id'])
    op.create_index('ix_tickets_holder_id', 'tickets', ['holder_id'])
    op.create_index('ix_tickets_status', 'tickets', ['status'])
    op.create_table('ticket_scans',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ticket_id', sa.String(length=32), sa.ForeignKey('tickets.id'), nullable=False),
        sa.Column('event_id', sa.String(length=32), sa.ForeignKey('events.id'), nullable=False),
        sa.Column('scanned_by', sa.String(length=32), nullable=False),
        sa.Column('scanned_at', sa.DateTime(), nullable=False),
        sa.Column('method', sa.String(length=16), nullable=False, server_default='qr'),
        sa.Column('self_scan', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('notes', sa.String(length=500), nullable=True),
    )
    op.create_index('ix_ticket_scans_ticket_id', 'ticket_scans', ['ticket_id'])
    op.create_index('ix_ticket_scans_event_id', 'ticket_scans', ['event_id'])
    op.create_table('notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=32), nullable=False),
        sa.Column('type', sa.String(length=64), nullable=False),
        sa.Column('message', sa.String(length=1024), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.text('false')),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_notifications_user_id', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('ix_ticket_scans_event_id', table_name='ticket_scans')
    op.drop_index('ix_ticket_scans_ticket_id', table_name='ticket_scans')
    op.drop_table('ticket_scans')
    op.drop_index('ix_tickets_status', table_name='tickets')
    op.drop_index('ix_tickets_holder_id', table_name='tickets')
    op.drop_index('ix_tickets_event_id', table_name='tickets')
    op.drop_table('tickets')
    op.drop_index('ix_events_organizer_id', table_name='events')
    op.drop_table('events')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
