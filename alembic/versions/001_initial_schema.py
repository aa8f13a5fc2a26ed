"""Initial schema: identities, contacts, messages, transfers, recurring payments, price alerts

Revision ID: 001
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = '001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ACTION_KINDS = (
    'send_payment',
    'anon_send',
    'deposit',
    'withdraw',
    'cross_chain_send',
    'split_payment',
    'recurring_payment',
    'set_pin',
)


def timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    connection = op.get_bind()
    inspector = sa.inspect(connection)
    existing_tables = inspector.get_table_names()

    if 'users' not in existing_tables:
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('phone', sa.String(length=20), nullable=False),
            sa.Column('wallet_address', sa.String(length=64), nullable=False),
            sa.Column('encrypted_private_key', sa.String(length=512), nullable=False),
            sa.Column('preferred_language', sa.String(length=5), nullable=False),
            sa.Column('pin_hash', sa.String(length=255), nullable=True),
            sa.Column('pin_failed_attempts', sa.Integer(), nullable=False),
            sa.Column('pin_locked_until', sa.DateTime(timezone=True), nullable=True),
            *timestamps(),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
        op.create_index(op.f('ix_users_phone'), 'users', ['phone'], unique=True)
        op.create_index(op.f('ix_users_wallet_address'), 'users', ['wallet_address'], unique=True)

    if 'contacts' not in existing_tables:
        op.create_table(
            'contacts',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('owner_phone', sa.String(length=20), nullable=False),
            sa.Column('name_key', sa.String(length=100), nullable=False),
            sa.Column('display_name', sa.String(length=100), nullable=False),
            sa.Column('target_phone', sa.String(length=20), nullable=False),
            *timestamps(),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('owner_phone', 'name_key', name='uq_contacts_owner_name')
        )
        op.create_index(op.f('ix_contacts_id'), 'contacts', ['id'], unique=False)
        op.create_index(op.f('ix_contacts_owner_phone'), 'contacts', ['owner_phone'], unique=False)

    if 'messages' not in existing_tables:
        op.create_table(
            'messages',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('phone', sa.String(length=20), nullable=False),
            sa.Column('role', sa.String(length=20), nullable=False),
            sa.Column('content', sa.Text(), nullable=False),
            *timestamps(),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_messages_id'), 'messages', ['id'], unique=False)
        op.create_index(op.f('ix_messages_phone'), 'messages', ['phone'], unique=False)

    if 'transfers' not in existing_tables:
        op.create_table(
            'transfers',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('sender_phone', sa.String(length=20), nullable=False),
            sa.Column('recipient_phone', sa.String(length=20), nullable=True),
            sa.Column('recipient_address', sa.String(length=128), nullable=True),
            sa.Column('kind', sa.Enum(*ACTION_KINDS, name='actionkind'), nullable=False),
            sa.Column('amount', sa.Numeric(20, 9), nullable=False),
            sa.Column('token', sa.String(length=10), nullable=False),
            sa.Column('status', sa.Enum('pending', 'confirmed', 'failed', name='transferstatus'), nullable=False),
            sa.Column('tx_reference', sa.String(length=255), nullable=True),
            sa.Column('error', sa.Text(), nullable=True),
            *timestamps(),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_transfers_id'), 'transfers', ['id'], unique=False)
        op.create_index(op.f('ix_transfers_sender_phone'), 'transfers', ['sender_phone'], unique=False)
        op.create_index(op.f('ix_transfers_recipient_phone'), 'transfers', ['recipient_phone'], unique=False)

    if 'recurring_payments' not in existing_tables:
        op.create_table(
            'recurring_payments',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('sender_phone', sa.String(length=20), nullable=False),
            sa.Column('recipient_phone', sa.String(length=20), nullable=False),
            sa.Column('amount', sa.Numeric(20, 9), nullable=False),
            sa.Column('token', sa.String(length=10), nullable=False),
            sa.Column('frequency', sa.Enum('daily', 'weekly', 'monthly', name='frequency'), nullable=False),
            sa.Column('next_run_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('first_run_pending', sa.Boolean(), nullable=False),
            sa.Column('active', sa.Boolean(), nullable=False),
            *timestamps(),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_recurring_payments_id'), 'recurring_payments', ['id'], unique=False)
        op.create_index(
            op.f('ix_recurring_payments_sender_phone'), 'recurring_payments', ['sender_phone'], unique=False
        )
        op.create_index(
            op.f('ix_recurring_payments_next_run_at'), 'recurring_payments', ['next_run_at'], unique=False
        )

    if 'price_alerts' not in existing_tables:
        op.create_table(
            'price_alerts',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('phone', sa.String(length=20), nullable=False),
            sa.Column('token', sa.String(length=10), nullable=False),
            sa.Column('target_price', sa.Numeric(20, 8), nullable=False),
            sa.Column('condition', sa.String(length=5), nullable=False),
            *timestamps(),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('phone', 'token', name='uq_price_alerts_phone_token')
        )
        op.create_index(op.f('ix_price_alerts_id'), 'price_alerts', ['id'], unique=False)
        op.create_index(op.f('ix_price_alerts_phone'), 'price_alerts', ['phone'], unique=False)


def downgrade() -> None:
    op.drop_table('price_alerts')
    op.drop_table('recurring_payments')
    op.drop_table('transfers')
    op.drop_table('messages')
    op.drop_table('contacts')
    op.drop_table('users')
    bind = op.get_bind()
    for enum_name in ('frequency', 'transferstatus', 'actionkind'):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
