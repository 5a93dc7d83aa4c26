"""0001 production batch schema

Revision ID: 0001_production_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_production_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'production_batch',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('recipe_id', sa.String(length=100), nullable=False),
        sa.Column('recipe_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('stage', sa.Integer(), nullable=False),
        sa.Column('production_date', sa.Date(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('assigned_to', sa.String(length=255), nullable=True),
        sa.Column('source', sa.String(length=16), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_production_batch_quantity_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('production_batch', schema=None) as batch_op:
        batch_op.create_index('ix_production_batch_store_id', ['store_id'], unique=False)
        batch_op.create_index('ix_production_batch_store_date', ['store_id', 'production_date'], unique=False)

    op.create_table(
        'batch_order',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('batch_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('order_item_index', sa.Integer(), nullable=False),
        sa.Column('quantity_from_order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['batch_id'], ['production_batch.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('batch_order', schema=None) as batch_op:
        batch_op.create_index('ix_batch_order_store_id', ['store_id'], unique=False)
        batch_op.create_index('ix_batch_order_batch_id', ['batch_id'], unique=False)
        batch_op.create_index('ix_batch_order_order_id', ['order_id'], unique=False)

    op.create_table(
        'batch_prep_item',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('batch_id', sa.Integer(), nullable=False),
        sa.Column('ingredient_id', sa.String(length=100), nullable=False),
        sa.Column('ingredient_name', sa.String(length=255), nullable=False),
        sa.Column('required_quantity', sa.Float(), nullable=False),
        sa.Column('unit', sa.String(length=32), nullable=False),
        sa.Column('is_prepped', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['batch_id'], ['production_batch.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('batch_id', 'ingredient_id', name='uq_batch_prep_item_ingredient'),
    )
    with op.batch_alter_table('batch_prep_item', schema=None) as batch_op:
        batch_op.create_index('ix_batch_prep_item_store_id', ['store_id'], unique=False)
        batch_op.create_index('ix_batch_prep_item_batch_id', ['batch_id'], unique=False)

    op.create_table(
        'domain_event',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_name', sa.String(length=128), nullable=False),
        sa.Column('occurred_at', sa.DateTime(), nullable=True),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('entity_type', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('correlation_id', sa.String(length=128), nullable=True),
        sa.Column('source', sa.String(length=64), nullable=True),
        sa.Column('schema_version', sa.Integer(), nullable=True),
        sa.Column('properties', sa.JSON(), nullable=True),
        sa.Column('is_processed', sa.Boolean(), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('delivery_attempts', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('domain_event', schema=None) as batch_op:
        for column in ('event_name', 'occurred_at', 'store_id', 'entity_type', 'entity_id',
                       'correlation_id', 'is_processed'):
            batch_op.create_index(f'ix_domain_event_{column}', [column], unique=False)


def downgrade():
    op.drop_table('domain_event')
    op.drop_table('batch_prep_item')
    op.drop_table('batch_order')
    op.drop_table('production_batch')
