"""create room, archived_room and custom_question tables

Revision ID: 3c9e1a7b5d20
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c9e1a7b5d20'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'room' not in existing_tables:
        op.create_table(
            'room',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('code', sa.String(length=6), nullable=False),
            sa.Column('state', sa.String(length=16), nullable=False),
            sa.Column('payload', sa.Text(), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index('ix_room_code', 'room', ['code'], unique=True)

    if 'archived_room' not in existing_tables:
        op.create_table(
            'archived_room',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('code', sa.String(length=6), nullable=False),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('state', sa.String(length=16), nullable=False),
            sa.Column('payload', sa.Text(), nullable=False),
            sa.Column('archived_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_archived_room_code', 'archived_room', ['code'])
        op.create_index('ix_archived_room_archived_at', 'archived_room', ['archived_at'])

    if 'custom_question' not in existing_tables:
        op.create_table(
            'custom_question',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('topic', sa.String(length=32), nullable=False),
            sa.Column('mode', sa.String(length=16), nullable=False),
            sa.Column('key', sa.String(length=128), nullable=False),
            sa.Column('text', sa.Text(), nullable=False),
            sa.Column('is_analysis', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        )


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'custom_question' in existing_tables:
        op.drop_table('custom_question')
    if 'archived_room' in existing_tables:
        op.drop_index('ix_archived_room_archived_at', table_name='archived_room')
        op.drop_index('ix_archived_room_code', table_name='archived_room')
        op.drop_table('archived_room')
    if 'room' in existing_tables:
        op.drop_index('ix_room_code', table_name='room')
        op.drop_table('room')
