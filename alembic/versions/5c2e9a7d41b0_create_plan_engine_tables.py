"""create plan engine tables

Revision ID: 5c2e9a7d41b0
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5c2e9a7d41b0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'skin_profiles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('skin_type', sa.String(length=32), nullable=False),
        sa.Column('sensitivity_level', sa.String(length=16), nullable=False),
        sa.Column('age_group', sa.String(length=16), nullable=True),
        sa.Column('concerns', sa.JSON(), nullable=True),
        sa.Column('acne_level', sa.Integer(), nullable=True),
        sa.Column('inflammation', sa.Float(), nullable=True),
        sa.Column('pigmentation', sa.Float(), nullable=True),
        sa.Column('hydration', sa.Float(), nullable=True),
        sa.Column('photoaging', sa.Float(), nullable=True),
        sa.Column('oiliness', sa.Float(), nullable=True),
        sa.Column('barrier', sa.Float(), nullable=True),
        sa.Column('has_pregnancy', sa.Boolean(), nullable=False),
        sa.Column('rosacea_risk', sa.Boolean(), nullable=False),
        sa.Column('pigmentation_risk', sa.Boolean(), nullable=False),
        sa.Column('contraindications', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'version', name='uq_skin_profiles_user_version'),
    )
    op.create_index(op.f('ix_skin_profiles_id'), 'skin_profiles', ['id'], unique=False)
    op.create_index(op.f('ix_skin_profiles_user_id'), 'skin_profiles', ['user_id'], unique=False)

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('brand', sa.String(length=100), nullable=True),
        sa.Column('price', sa.Float(), nullable=True),
        sa.Column('step', sa.String(length=64), nullable=False),
        sa.Column('skin_types', sa.JSON(), nullable=True),
        sa.Column('concerns', sa.JSON(), nullable=True),
        sa.Column('avoid_if', sa.JSON(), nullable=True),
        sa.Column('is_hero', sa.Boolean(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('published', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_products_id'), 'products', ['id'], unique=False)
    op.create_index(op.f('ix_products_step'), 'products', ['step'], unique=False)
    op.create_index(op.f('ix_products_published'), 'products', ['published'], unique=False)

    op.create_table(
        'recommendation_rules',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('conditions_json', sa.JSON(), nullable=False),
        sa.Column('steps_json', sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_recommendation_rules_id'), 'recommendation_rules', ['id'], unique=False)

    op.create_table(
        'plans',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('skin_profile_id', sa.Integer(), nullable=True),
        sa.Column('profile_version', sa.Integer(), nullable=False),
        sa.Column('plan_json', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['skin_profile_id'], ['skin_profiles.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'profile_version', name='uq_plans_user_version'),
    )
    op.create_index(op.f('ix_plans_id'), 'plans', ['id'], unique=False)
    op.create_index(op.f('ix_plans_user_id'), 'plans', ['user_id'], unique=False)

    op.create_table(
        'plan_progress',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('current_day', sa.Integer(), nullable=False),
        sa.Column('completed_days', sa.JSON(), nullable=True),
        sa.Column('done_slots', sa.JSON(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_plan_progress_id'), 'plan_progress', ['id'], unique=False)
    op.create_index(op.f('ix_plan_progress_user_id'), 'plan_progress', ['user_id'], unique=True)

    op.create_table(
        'product_replacements',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('step_category', sa.String(length=64), nullable=False),
        sa.Column('old_product_id', sa.Integer(), nullable=False),
        sa.Column('new_product_id', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_product_replacements_id'), 'product_replacements', ['id'], unique=False)
    op.create_index(op.f('ix_product_replacements_user_id'), 'product_replacements', ['user_id'], unique=False)


def downgrade() -> None:
    for table in [
        'product_replacements',
        'plan_progress',
        'plans',                # FK → skin_profiles
        'recommendation_rules',
        'products',
        'skin_profiles',
    ]:
        op.drop_table(table)
