# alembic/versions/001_initial.py

"""Initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-16
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Create portfolio table
    op.create_table('portfolio',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('monthly_budget', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id')
    )

    # Create portfolio_stock table
    op.create_table('portfolio_stock',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('portfolio_id', sa.Integer(), nullable=False),
        sa.Column('symbol', sa.String(length=20), nullable=False),
        sa.Column('target_weight', sa.Numeric(precision=7, scale=4), nullable=False),
        sa.Column('min_weight', sa.Numeric(precision=7, scale=4), nullable=False),
        sa.Column('max_weight', sa.Numeric(precision=7, scale=4), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['portfolio_id'], ['portfolio.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('portfolio_id', 'symbol', name='uq_portfolio_stock_symbol')
    )

    # Create stock_price table
    op.create_table('stock_price',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('symbol', sa.String(length=20), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('close_price', sa.Numeric(precision=14, scale=4), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('symbol', 'date', name='uq_stock_price_symbol_date')
    )
    op.create_index('ix_stock_price_symbol_date', 'stock_price', ['symbol', 'date'])

    # Create dca_recommendation table
    op.create_table('dca_recommendation',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('portfolio_id', sa.Integer(), nullable=False),
        sa.Column('month', sa.String(length=7), nullable=False),
        sa.Column('symbol', sa.String(length=20), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('weight', sa.Numeric(precision=7, scale=4), nullable=False),
        sa.Column('reason_text', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['portfolio_id'], ['portfolio.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('portfolio_id', 'month', 'symbol', name='uq_dca_recommendation_key')
    )
    op.create_index(
        'ix_dca_recommendation_portfolio_month',
        'dca_recommendation',
        ['portfolio_id', 'month'],
    )


def downgrade():
    op.drop_index('ix_dca_recommendation_portfolio_month', table_name='dca_recommendation')
    op.drop_table('dca_recommendation')
    op.drop_index('ix_stock_price_symbol_date', table_name='stock_price')
    op.drop_table('stock_price')
    op.drop_table('portfolio_stock')
    op.drop_table('portfolio')
