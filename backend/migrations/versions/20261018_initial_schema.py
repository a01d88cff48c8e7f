"""Initial schema: tenancy, catalog and stock ledger, sales, customers, operations

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18

Creates:
1. users, stores (owner = tenant, store = branch)
2. session_tokens (phase / effective role / selected branch per session)
3. products, product_stocks, brands (per-branch stock ledger)
4. stock_in_records, stock_transfers (ledger history)
5. sales, sale_items
6. customers (per-owner aggregate keyed by phone)
7. reservations, staff, expenses
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_initial'
down_revision = None
branch_labels = None
depends_on = None


NOW = sa.text('(CURRENT_TIMESTAMP)')


def upgrade():
    # ==========================================================================
    # 1. TENANCY
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=32), nullable=True),
        sa.Column('home_store_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('joined_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_role'), ['role'], unique=False)

    op.create_table('stores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('region', sa.String(length=8), nullable=False, server_default='01'),
        sa.Column('region_name', sa.String(length=32), nullable=False, server_default='기타'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stores', schema=None) as batch_op:
        batch_op.create_index('ix_stores_owner_id', ['owner_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stores_is_active'), ['is_active'], unique=False)

    # ==========================================================================
    # 2. SESSIONS
    # ==========================================================================
    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=16), nullable=False),
        sa.Column('phase', sa.String(length=16), nullable=False),
        sa.Column('effective_role', sa.String(length=16), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index('ix_session_tokens_user_active', ['user_id', 'is_revoked'], unique=False)
        batch_op.create_index(batch_op.f('ix_session_tokens_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_session_tokens_token_hash'), ['token_hash'], unique=True)
        batch_op.create_index(batch_op.f('ix_session_tokens_expires_at'), ['expires_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_session_tokens_is_revoked'), ['is_revoked'], unique=False)

    # ==========================================================================
    # 3. CATALOG AND STOCK LEDGER
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('brand', sa.String(length=64), nullable=True),
        sa.Column('category', sa.String(length=64), nullable=False, server_default='타이어'),
        sa.Column('price', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('specification', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_name_spec', ['name', 'specification'], unique=False)
        batch_op.create_index(batch_op.f('ix_products_brand'), ['brand'], unique=False)

    op.create_table('product_stocks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('quantity >= 0', name='ck_product_stocks_non_negative'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'store_id', name='uq_product_stocks_product_store'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('product_stocks', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_product_stocks_product_id'), ['product_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_product_stocks_store_id'), ['store_id'], unique=False)

    op.create_table('brands',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    # ==========================================================================
    # 4. LEDGER HISTORY
    # ==========================================================================
    op.create_table('stock_in_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column('supplier', sa.String(length=120), nullable=False, server_default=''),
        sa.Column('category', sa.String(length=64), nullable=False, server_default='타이어'),
        sa.Column('brand', sa.String(length=64), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('specification', sa.String(length=64), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('factory_price', sa.Integer(), nullable=True),
        sa.Column('purchase_price', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_in_records', schema=None) as batch_op:
        batch_op.create_index('ix_stock_in_store_received', ['store_id', 'received_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_in_records_store_id'), ['store_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_in_records_product_id'), ['product_id'], unique=False)

    op.create_table('stock_transfers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('from_store_id', sa.Integer(), nullable=False),
        sa.Column('to_store_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('staff_name', sa.String(length=120), nullable=False, server_default=''),
        sa.Column('transferred_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_transfers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stock_transfers_product_id'), ['product_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_transfers_from_store_id'), ['from_store_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_transfers_to_store_id'), ['to_store_id'], unique=False)

    # ==========================================================================
    # 5. SALES
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('sold_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column('total_amount', sa.Integer(), nullable=False),
        sa.Column('discount_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('staff_name', sa.String(length=120), nullable=False),
        sa.Column('customer_name', sa.String(length=120), nullable=True),
        sa.Column('customer_phone', sa.String(length=32), nullable=True),
        sa.Column('car_model', sa.String(length=120), nullable=True),
        sa.Column('vehicle_number', sa.String(length=32), nullable=True),
        sa.Column('business_number', sa.String(length=32), nullable=True),
        sa.Column('company_name', sa.String(length=120), nullable=True),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('memo', sa.Text(), nullable=True),
        sa.Column('is_tax_invoice_requested', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('tax_invoice_issued_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_canceled', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('canceled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_edited', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('inventory_adjusted', sa.Boolean(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index('ix_sales_store_sold_at', ['store_id', 'sold_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_store_id'), ['store_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_payment_method'), ['payment_method'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_customer_phone'), ['customer_phone'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_vehicle_number'), ['vehicle_number'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_is_canceled'), ['is_canceled'], unique=False)

    op.create_table('sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_at_sale', sa.Integer(), nullable=False),
        sa.Column('specification', sa.String(length=64), nullable=True),
        sa.Column('brand', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sale_items_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sale_items_product_id'), ['product_id'], unique=False)

    # ==========================================================================
    # 6. CUSTOMERS
    # ==========================================================================
    op.create_table('customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('phone_number', sa.String(length=32), nullable=False),
        sa.Column('car_model', sa.String(length=120), nullable=True),
        sa.Column('vehicle_number', sa.String(length=32), nullable=True),
        sa.Column('business_number', sa.String(length=32), nullable=True),
        sa.Column('company_name', sa.String(length=120), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('total_spent', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('visit_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_visit_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_id', 'phone_number', name='uq_customers_owner_phone'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('customers', schema=None) as batch_op:
        batch_op.create_index('ix_customers_owner_id', ['owner_id'], unique=False)

    # ==========================================================================
    # 7. OPERATIONS
    # ==========================================================================
    op.create_table('reservations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.String(length=5), nullable=False),
        sa.Column('customer_name', sa.String(length=120), nullable=False),
        sa.Column('phone_number', sa.String(length=32), nullable=True),
        sa.Column('vehicle_number', sa.String(length=32), nullable=True),
        sa.Column('car_model', sa.String(length=120), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('specification', sa.String(length=64), nullable=True),
        sa.Column('brand', sa.String(length=64), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='4'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('stock_status', sa.String(length=16), nullable=False, server_default='CHECKING'),
        sa.Column('memo', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('reservations', schema=None) as batch_op:
        batch_op.create_index('ix_reservations_store_date', ['store_id', 'date'], unique=False)
        batch_op.create_index(batch_op.f('ix_reservations_store_id'), ['store_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_reservations_status'), ['status'], unique=False)

    op.create_table('staff',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('staff', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_staff_store_id'), ['store_id'], unique=False)

    op.create_table('expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('is_fixed', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('expenses', schema=None) as batch_op:
        batch_op.create_index('ix_expenses_store_date', ['store_id', 'date'], unique=False)
        batch_op.create_index(batch_op.f('ix_expenses_store_id'), ['store_id'], unique=False)

    op.create_table('leave_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('staff_id', sa.Integer(), nullable=False),
        sa.Column('staff_name', sa.String(length=120), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False, server_default='FULL'),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('staff_id', 'date', name='uq_leave_requests_staff_date'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('leave_requests', schema=None) as batch_op:
        batch_op.create_index('ix_leave_requests_store_date', ['store_id', 'date'], unique=False)
        batch_op.create_index(batch_op.f('ix_leave_requests_store_id'), ['store_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_leave_requests_staff_id'), ['staff_id'], unique=False)


def downgrade():
    for table in (
        'leave_requests', 'expenses', 'staff', 'reservations', 'customers', 'sale_items', 'sales',
        'stock_transfers', 'stock_in_records', 'brands', 'product_stocks',
        'products', 'session_tokens', 'stores', 'users',
    ):
        op.drop_table(table)
