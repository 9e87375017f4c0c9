from alembic import op
import sqlalchemy as sa

revision = '0001_init'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('username', sa.String(100), nullable=False, unique=True, index=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, index=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('commission_rate', sa.Numeric(5,2), nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False)
    )
    op.create_table(
        'budgets',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('budget_number', sa.String(50), nullable=False, unique=True, index=True),
        sa.Column('client_id', sa.Integer, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('vendor_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('partner_id', sa.Integer, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('status', sa.String(20), nullable=False, index=True),
        sa.Column('delivery_type', sa.String(20), nullable=False),
        sa.Column('has_discount', sa.Boolean, nullable=False),
        sa.Column('discount_type', sa.String(20), nullable=False),
        sa.Column('discount_percentage', sa.Numeric(5,2), nullable=False),
        sa.Column('discount_value', sa.Numeric(10,2), nullable=False),
        sa.Column('customization_value', sa.Numeric(10,2), nullable=False),
        sa.Column('shipping_cost', sa.Numeric(10,2), nullable=False),
        sa.Column('subtotal', sa.Numeric(10,2), nullable=False),
        sa.Column('discount_amount', sa.Numeric(10,2), nullable=False),
        sa.Column('total_value', sa.Numeric(10,2), nullable=False),
        sa.Column('valid_until', sa.DateTime, nullable=True),
        sa.Column('delivery_deadline', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False)
    )
    op.create_table(
        'budget_items',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('budget_id', sa.Integer, sa.ForeignKey('budgets.id'), nullable=False),
        sa.Column('product_id', sa.Integer, nullable=True),
        sa.Column('product_name', sa.String(200), nullable=False),
        sa.Column('producer_id', sa.Integer, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('is_internal', sa.Boolean, nullable=False),
        sa.Column('quantity', sa.Numeric(10,3), nullable=False),
        sa.Column('unit_price', sa.Numeric(10,2), nullable=False),
        sa.Column('has_item_customization', sa.Boolean, nullable=False),
        sa.Column('item_customization_value', sa.Numeric(10,2), nullable=False),
        sa.Column('item_customization_description', sa.Text, nullable=True),
        sa.Column('total_price', sa.Numeric(10,2), nullable=False)
    )
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('order_number', sa.String(50), nullable=False, unique=True, index=True),
        sa.Column('budget_id', sa.Integer, sa.ForeignKey('budgets.id'), nullable=True, unique=True),
        sa.Column('client_id', sa.Integer, sa.ForeignKey('users.id'), nullable=True, index=True),
        sa.Column('vendor_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('partner_id', sa.Integer, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('producer_id', sa.Integer, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, index=True),
        sa.Column('delivery_type', sa.String(20), nullable=False),
        sa.Column('subtotal', sa.Numeric(10,2), nullable=False),
        sa.Column('discount_amount', sa.Numeric(10,2), nullable=False),
        sa.Column('shipping_cost', sa.Numeric(10,2), nullable=False),
        sa.Column('total_value', sa.Numeric(10,2), nullable=False),
        sa.Column('paid_value', sa.Numeric(10,2), nullable=False),
        sa.Column('deadline', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False)
    )
    op.create_table(
        'production_orders',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('orders.id'), nullable=False, index=True),
        sa.Column('producer_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('status', sa.String(30), nullable=False, index=True),
        sa.Column('deadline', sa.DateTime, nullable=True),
        sa.Column('tracking_code', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('has_unread_notes', sa.Boolean, nullable=False),
        sa.Column('last_note_at', sa.DateTime, nullable=True),
        sa.Column('accepted_at', sa.DateTime, nullable=True),
        sa.Column('completed_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False)
    )
    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('orders.id'), nullable=False, index=True),
        sa.Column('product_id', sa.Integer, nullable=True),
        sa.Column('product_name', sa.String(200), nullable=False),
        sa.Column('producer_id', sa.Integer, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('is_internal', sa.Boolean, nullable=False),
        sa.Column('quantity', sa.Numeric(10,3), nullable=False),
        sa.Column('unit_price', sa.Numeric(10,2), nullable=False),
        sa.Column('has_item_customization', sa.Boolean, nullable=False),
        sa.Column('item_customization_value', sa.Numeric(10,2), nullable=False),
        sa.Column('item_customization_description', sa.Text, nullable=True),
        sa.Column('total_price', sa.Numeric(10,2), nullable=False),
        sa.Column('purchase_status', sa.String(20), nullable=False),
        sa.Column('production_order_id', sa.Integer, sa.ForeignKey('production_orders.id'), nullable=True)
    )
    op.create_table(
        'payments',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('orders.id'), nullable=False, index=True),
        sa.Column('amount', sa.Numeric(10,2), nullable=False),
        sa.Column('method', sa.String(30), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('transaction_id', sa.String(100), nullable=True),
        sa.Column('paid_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False)
    )
    op.create_table(
        'commissions',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('orders.id'), nullable=False, index=True),
        sa.Column('vendor_id', sa.Integer, sa.ForeignKey('users.id'), nullable=True, index=True),
        sa.Column('partner_id', sa.Integer, sa.ForeignKey('users.id'), nullable=True, index=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('percentage', sa.Numeric(5,2), nullable=False),
        sa.Column('order_value', sa.Numeric(10,2), nullable=False),
        sa.Column('order_number', sa.String(50), nullable=True),
        sa.Column('amount', sa.Numeric(10,2), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, index=True),
        sa.Column('paid_at', sa.DateTime, nullable=True),
        sa.Column('deducted_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False)
    )
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.Integer, nullable=True),
        sa.Column('username', sa.String(100), nullable=True),
        sa.Column('role', sa.String(20), nullable=True),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('entity', sa.String(50), nullable=False, index=True),
        sa.Column('entity_id', sa.Integer, nullable=True),
        sa.Column('description', sa.Text, nullable=False),
        sa.Column('level', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, index=True)
    )

def downgrade():
    op.drop_table('audit_logs')
    op.drop_table('commissions')
    op.drop_table('payments')
    op.drop_table('order_items')
    op.drop_table('production_orders')
    op.drop_table('orders')
    op.drop_table('budget_items')
    op.drop_table('budgets')
    op.drop_table('users')
