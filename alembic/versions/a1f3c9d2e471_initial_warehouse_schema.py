"""initial warehouse schema

Revision ID: a1f3c9d2e471
Revises:
Create Date: 2026-10-19 10:12:44.081523

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1f3c9d2e471'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _product_table(name: str) -> None:
    op.create_table(name,
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('code', sa.String(length=100), nullable=False),
                    sa.Column('name', sa.String(length=255), nullable=False),
                    sa.Column('created_at', sa.DateTime(), nullable=True),
                    sa.PrimaryKeyConstraint('id'),
                    )
    op.create_index(op.f(f'ix_{name}_code'), name, ['code'], unique=True)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('warehouses',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('code', sa.String(length=20), nullable=False),
                    sa.Column('name', sa.String(length=255), nullable=False),
                    sa.Column('address', sa.Text(), nullable=True),
                    sa.Column('created_at', sa.DateTime(), nullable=True),
                    sa.PrimaryKeyConstraint('id'),
                    )
    op.create_index(op.f('ix_warehouses_code'), 'warehouses', ['code'], unique=True)

    _product_table('reagents')
    _product_table('consumables')

    # --- Накладные ---
    op.create_table('invoices',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('invoice_code', sa.String(length=100), nullable=False),
                    sa.Column('supplier', sa.String(length=255), nullable=False),
                    sa.Column('date', sa.Date(), nullable=False),
                    sa.Column('warehouse_id', sa.Integer(), nullable=False),
                    sa.Column('status', sa.String(length=20), nullable=False),
                    sa.Column('created_at', sa.DateTime(), nullable=True),
                    sa.CheckConstraint("status IN ('active', 'returned')", name='ck_invoices_status'),
                    sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id'),
                    )
    op.create_index(op.f('ix_invoices_date'), 'invoices', ['date'], unique=False)
    op.create_index(op.f('ix_invoices_warehouse_id'), 'invoices', ['warehouse_id'], unique=False)
    op.create_index(op.f('ix_invoices_status'), 'invoices', ['status'], unique=False)

    op.create_table('invoice_items',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('invoice_id', sa.Integer(), nullable=False),
                    sa.Column('product_type', sa.String(length=20), nullable=False),
                    sa.Column('product_id', sa.Integer(), nullable=False),
                    sa.Column('quantity', sa.DECIMAL(precision=14, scale=3), nullable=False),
                    sa.Column('unit_price', sa.DECIMAL(precision=14, scale=4), nullable=False),
                    sa.Column('total_price', sa.DECIMAL(precision=16, scale=4), nullable=False),
                    sa.Column('batch_date', sa.Date(), nullable=False),
                    sa.Column('created_at', sa.DateTime(), nullable=True),
                    sa.CheckConstraint("product_type IN ('reagent', 'consumable')",
                                       name='ck_invoice_items_product_type'),
                    sa.CheckConstraint('quantity > 0', name='ck_invoice_items_quantity'),
                    sa.CheckConstraint('unit_price >= 0', name='ck_invoice_items_unit_price'),
                    sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id'),
                    )
    op.create_index(op.f('ix_invoice_items_batch_date'), 'invoice_items', ['batch_date'], unique=False)
    op.create_index('idx_invoice_items_warehouse_product', 'invoice_items',
                    ['invoice_id', 'product_type', 'product_id'], unique=False)

    # --- Перемещения ---
    op.create_table('transfers',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('from_warehouse_id', sa.Integer(), nullable=False),
                    sa.Column('to_warehouse_id', sa.Integer(), nullable=False),
                    sa.Column('date', sa.Date(), nullable=False),
                    sa.Column('total_amount', sa.DECIMAL(precision=16, scale=4), nullable=True),
                    sa.Column('created_at', sa.DateTime(), nullable=True),
                    sa.CheckConstraint('from_warehouse_id != to_warehouse_id',
                                       name='ck_transfers_distinct_warehouses'),
                    sa.ForeignKeyConstraint(['from_warehouse_id'], ['warehouses.id'], ondelete='RESTRICT'),
                    sa.ForeignKeyConstraint(['to_warehouse_id'], ['warehouses.id'], ondelete='RESTRICT'),
                    sa.PrimaryKeyConstraint('id'),
                    )
    op.create_index(op.f('ix_transfers_from_warehouse_id'), 'transfers', ['from_warehouse_id'], unique=False)
    op.create_index(op.f('ix_transfers_to_warehouse_id'), 'transfers', ['to_warehouse_id'], unique=False)
    op.create_index(op.f('ix_transfers_date'), 'transfers', ['date'], unique=False)

    op.create_table('transfer_items',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('transfer_id', sa.Integer(), nullable=False),
                    sa.Column('product_type', sa.String(length=20), nullable=False),
                    sa.Column('product_id', sa.Integer(), nullable=False),
                    sa.Column('batch_date', sa.Date(), nullable=False),
                    sa.Column('quantity', sa.DECIMAL(precision=14, scale=3), nullable=False),
                    sa.Column('unit_price', sa.DECIMAL(precision=14, scale=4), nullable=False),
                    sa.Column('total_price', sa.DECIMAL(precision=16, scale=4), nullable=False),
                    sa.CheckConstraint("product_type IN ('reagent', 'consumable')",
                                       name='ck_transfer_items_product_type'),
                    sa.CheckConstraint('quantity > 0', name='ck_transfer_items_quantity'),
                    sa.CheckConstraint('unit_price >= 0', name='ck_transfer_items_unit_price'),
                    sa.ForeignKeyConstraint(['transfer_id'], ['transfers.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id'),
                    )
    op.create_index(op.f('ix_transfer_items_batch_date'), 'transfer_items', ['batch_date'], unique=False)
    op.create_index('idx_transfer_items_product_batch', 'transfer_items',
                    ['product_type', 'product_id', 'batch_date'], unique=False)

    # --- Списания ---
    op.create_table('stock_out',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('warehouse_id', sa.Integer(), nullable=False),
                    sa.Column('date', sa.Date(), nullable=False),
                    sa.Column('reason', sa.String(length=50), nullable=False),
                    sa.Column('total_amount', sa.DECIMAL(precision=16, scale=4), nullable=True),
                    sa.Column('transfer_id', sa.Integer(), nullable=True),
                    sa.Column('invoice_id', sa.Integer(), nullable=True),
                    sa.Column('created_at', sa.DateTime(), nullable=True),
                    sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], ondelete='CASCADE'),
                    sa.ForeignKeyConstraint(['transfer_id'], ['transfers.id'], ondelete='SET NULL'),
                    sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='SET NULL'),
                    sa.PrimaryKeyConstraint('id'),
                    )
    op.create_index(op.f('ix_stock_out_warehouse_id'), 'stock_out', ['warehouse_id'], unique=False)
    op.create_index(op.f('ix_stock_out_date'), 'stock_out', ['date'], unique=False)
    op.create_index(op.f('ix_stock_out_reason'), 'stock_out', ['reason'], unique=False)
    op.create_index(op.f('ix_stock_out_transfer_id'), 'stock_out', ['transfer_id'], unique=False)
    op.create_index(op.f('ix_stock_out_invoice_id'), 'stock_out', ['invoice_id'], unique=False)

    op.create_table('stock_out_items',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('stockout_id', sa.Integer(), nullable=False),
                    sa.Column('product_type', sa.String(length=20), nullable=False),
                    sa.Column('product_id', sa.Integer(), nullable=False),
                    sa.Column('batch_date', sa.Date(), nullable=False),
                    sa.Column('quantity', sa.DECIMAL(precision=14, scale=3), nullable=False),
                    sa.Column('unit_price', sa.DECIMAL(precision=14, scale=4), nullable=False),
                    sa.Column('total_price', sa.DECIMAL(precision=16, scale=4), nullable=False),
                    sa.CheckConstraint("product_type IN ('reagent', 'consumable')",
                                       name='ck_stock_out_items_product_type'),
                    sa.CheckConstraint('quantity > 0', name='ck_stock_out_items_quantity'),
                    sa.ForeignKeyConstraint(['stockout_id'], ['stock_out.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id'),
                    )
    op.create_index(op.f('ix_stock_out_items_batch_date'), 'stock_out_items', ['batch_date'], unique=False)
    op.create_index('idx_stock_out_items_warehouse_product', 'stock_out_items',
                    ['stockout_id', 'product_type', 'product_id'], unique=False)

    # --- Инвентаризация ---
    op.create_table('inventory_count',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('count_code', sa.String(length=50), nullable=True),
                    sa.Column('warehouse_id', sa.Integer(), nullable=False),
                    sa.Column('date', sa.Date(), nullable=False),
                    sa.Column('total_loss_amount', sa.DECIMAL(precision=16, scale=4), nullable=True),
                    sa.Column('created_at', sa.DateTime(), nullable=True),
                    sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id'),
                    )
    op.create_index(op.f('ix_inventory_count_count_code'), 'inventory_count', ['count_code'], unique=False)
    op.create_index(op.f('ix_inventory_count_warehouse_id'), 'inventory_count', ['warehouse_id'], unique=False)
    op.create_index(op.f('ix_inventory_count_date'), 'inventory_count', ['date'], unique=False)

    op.create_table('inventory_count_items',
                    sa.Column('id', sa.Integer(), nullable=False),
                    sa.Column('count_id', sa.Integer(), nullable=False),
                    sa.Column('product_type', sa.String(length=20), nullable=False),
                    sa.Column('product_id', sa.Integer(), nullable=False),
                    sa.Column('system_qty', sa.DECIMAL(precision=14, scale=3), nullable=False),
                    sa.Column('real_qty', sa.DECIMAL(precision=14, scale=3), nullable=False),
                    sa.Column('loss_qty', sa.DECIMAL(precision=14, scale=3), nullable=False),
                    sa.Column('loss_amount', sa.DECIMAL(precision=16, scale=4), nullable=False),
                    sa.CheckConstraint("product_type IN ('reagent', 'consumable')",
                                       name='ck_inventory_count_items_product_type'),
                    sa.CheckConstraint('system_qty >= 0', name='ck_inventory_count_items_system_qty'),
                    sa.CheckConstraint('real_qty >= 0', name='ck_inventory_count_items_real_qty'),
                    sa.ForeignKeyConstraint(['count_id'], ['inventory_count.id'], ondelete='CASCADE'),
                    sa.PrimaryKeyConstraint('id'),
                    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('inventory_count_items')
    op.drop_index(op.f('ix_inventory_count_date'), table_name='inventory_count')
    op.drop_index(op.f('ix_inventory_count_warehouse_id'), table_name='inventory_count')
    op.drop_index(op.f('ix_inventory_count_count_code'), table_name='inventory_count')
    op.drop_table('inventory_count')
    op.drop_table('stock_out_items')
    op.drop_table('stock_out')
    op.drop_table('transfer_items')
    op.drop_table('transfers')
    op.drop_table('invoice_items')
    op.drop_table('invoices')
    op.drop_table('consumables')
    op.drop_table('reagents')
    op.drop_table('warehouses')
