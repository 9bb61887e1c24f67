"""add pets, foster_applications, tracking_data and notifications tables

Revision ID: 3e1c9b7a2d10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3e1c9b7a2d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    tables = inspector.get_table_names()

    if 'pets' not in tables:
        op.create_table(
            'pets',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False, server_default='available'),
        )
        op.create_index('ix_pets_id', 'pets', ['id'])

    if 'foster_applications' not in tables:
        op.create_table(
            'foster_applications',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('pet_id', sa.Integer(), sa.ForeignKey('pets.id', ondelete='CASCADE'), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        )
        op.create_index('ix_foster_applications_pet_id', 'foster_applications', ['pet_id'])
        op.create_index('ix_foster_applications_user_id', 'foster_applications', ['user_id'])

    if 'tracking_data' not in tables:
        op.create_table(
            'tracking_data',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('pet_id', sa.Integer(), sa.ForeignKey('pets.id', ondelete='CASCADE'), nullable=False),
            sa.Column('location', sa.String(), nullable=True),
            sa.Column('health_status', sa.String(length=20), nullable=True),
            sa.Column('activity_level', sa.String(length=20), nullable=True),
            sa.Column('phone_coordinates', sa.String(), nullable=True),
            sa.Column('tracking_method', sa.String(length=30), nullable=False, server_default='phone'),
            sa.Column('notes', sa.String(), nullable=True),
            sa.Column('record_id', sa.String(length=64), nullable=True, unique=True),
            sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        )
        op.create_index('ix_tracking_data_pet_id', 'tracking_data', ['pet_id'])

    if 'notifications' not in tables:
        op.create_table(
            'notifications',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('message', sa.String(), nullable=False),
            sa.Column('type', sa.String(length=20), nullable=False, server_default='tracking'),
            sa.Column('seen', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        )
        op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])


def downgrade() -> None:
    # Safe drops if exist
    op.execute('DROP TABLE IF EXISTS notifications')
    op.execute('DROP TABLE IF EXISTS tracking_data')
    op.execute('DROP TABLE IF EXISTS foster_applications')
    op.execute('DROP TABLE IF EXISTS pets')
