"""create academy, catalog and student tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-03-02
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


revision = '3f1c2a9d7b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'academies',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('currency', sa.String(8), nullable=False, server_default='USD'),
        sa.Column('student_label_singular', sa.String(64), nullable=False, server_default='Student'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'tiers',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('academy_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='active'),
        sa.Column('classes_per_week', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('class_duration', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('class_limit_per_cycle', sa.Integer(), nullable=True),
        sa.Column('auto_renew', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('requires_enrollment_fee', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('different_prices_by_location', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('default_price_variants', JSONB(), nullable=False, server_default='[]'),
        sa.Column('price_variants_by_location', JSONB(), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index('ix_tiers_academy_id', 'tiers', ['academy_id'])

    op.create_table(
        'trials',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('academy_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('duration_in_days', sa.Integer(), nullable=False),
        sa.Column('class_limit', sa.Integer(), nullable=True),
        sa.Column('location_prices', JSONB(), nullable=False, server_default='{}'),
        sa.Column('converts_to_tier_id', sa.String(64), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_trials_academy_id', 'trials', ['academy_id'])

    op.create_table(
        'products',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('academy_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('price', sa.String(32), nullable=False, server_default='0'),
        sa.Column('location_prices', JSONB(), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_products_academy_id', 'products', ['academy_id'])

    op.create_table(
        'students',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('academy_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('last_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('group_id', sa.String(64), nullable=True),
        sa.Column('location_id', sa.String(64), nullable=True),
        sa.Column('plan', JSONB(), nullable=True),
        sa.Column('one_time_products', JSONB(), nullable=False, server_default='[]'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_students_academy_id', 'students', ['academy_id'])
    op.create_index('ix_students_academy_location', 'students', ['academy_id', 'location_id'])


def downgrade():
    op.drop_table('students')
    op.drop_table('products')
    op.drop_table('trials')
    op.drop_table('tiers')
    op.drop_table('academies')
