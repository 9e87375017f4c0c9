from alembic import op
import sqlalchemy as sa

revision = '0002_producer_payments'
down_revision = '0001_init'
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'producer_payments',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('production_order_id', sa.Integer, sa.ForeignKey('production_orders.id'), nullable=False, index=True),
        sa.Column('producer_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('orders.id'), nullable=False, index=True),
        sa.Column('amount', sa.Numeric(10,2), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, index=True),
        sa.Column('payment_method', sa.String(30), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('approved_by', sa.Integer, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('approved_at', sa.DateTime, nullable=True),
        sa.Column('paid_by', sa.Integer, sa.ForeignKey('users.id'), nullable=True),
        sa.Column('paid_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False)
    )

def downgrade():
    op.drop_table('producer_payments')
