"""create_notes_settings_push_subscriptions

Revision ID: 3f1c9a2b7d10
Revises:
Create Date: 2026-10-18 10:12:44.208311

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1c9a2b7d10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'notes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_id', sa.String(length=255), nullable=False),
        sa.Column('title', sa.Text(), nullable=False, server_default=''),
        sa.Column('body', sa.Text(), nullable=False, server_default=''),
        sa.Column('due_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('color', sa.String(length=32), nullable=False, server_default='#f1e363ff'),
        sa.Column('category', sa.String(length=100), nullable=False, server_default='Clase'),
        sa.Column('pinned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reminders_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('attachment_url', sa.Text(), nullable=True),
        sa.Column('attachment_filename', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_notes_id', 'notes', ['id'])
    op.create_index('ix_notes_owner_id', 'notes', ['owner_id'])
    op.create_index('ix_notes_due_at', 'notes', ['due_at'])

    op.create_table(
        'settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_id', sa.String(length=255), nullable=False),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False, server_default=''),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('owner_id', 'key', name='uq_settings_owner_key'),
    )
    op.create_index('ix_settings_id', 'settings', ['id'])

    op.create_table(
        'push_subscriptions',
        sa.Column('owner_id', sa.String(length=255), primary_key=True),
        sa.Column('subscription', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table('push_subscriptions')
    op.drop_index('ix_settings_id', table_name='settings')
    op.drop_table('settings')
    op.drop_index('ix_notes_due_at', table_name='notes')
    op.drop_index('ix_notes_owner_id', table_name='notes')
    op.drop_index('ix_notes_id', table_name='notes')
    op.drop_table('notes')
