# alembic/versions/001_initial.py

"""Initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

direction_enum = sa.Enum('LONG', 'SHORT', name='directionenum')


def upgrade():
    # Registry tables
    op.create_table('promoter',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('nickname', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('nickname')
    )
    op.create_index('ix_promoter_email', 'promoter', ['email'], unique=True)

    op.create_table('promotion_pact',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_promotion_pact_name', 'promotion_pact', ['name'], unique=True)

    op.create_table('portfolio_pact',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('alias', sa.String(length=100), nullable=False),
        sa.Column('industry_name', sa.String(length=100), nullable=False),
        sa.Column('promoter_email', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['promoter_email'], ['promoter.email']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_portfolio_pact_promoter_email', 'portfolio_pact', ['promoter_email'])

    op.create_table('portfolio_adjustment_record',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('portfolio_pact_id', sa.Integer(), nullable=False),
        sa.Column('adjust_date', sa.Date(), nullable=False),
        sa.Column('adjust_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['portfolio_pact_id'], ['portfolio_pact.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('portfolio_pact_id', 'adjust_date', 'adjust_version',
                            name='uq_adjustment_record_version')
    )

    # Portfolio detail tables
    op.create_table('portfolio_constituent',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('adjustment_record_id', sa.Integer(), nullable=False),
        sa.Column('adjust_date', sa.Date(), nullable=False),
        sa.Column('symbol', sa.String(length=20), nullable=False),
        sa.Column('abbreviation', sa.String(length=50), nullable=True),
        sa.Column('adjust_date_price', sa.Float(), nullable=False),
        sa.Column('current_price', sa.Float(), nullable=False),
        sa.Column('adjust_date_factor', sa.Float(), nullable=False),
        sa.Column('current_factor', sa.Float(), nullable=False),
        sa.Column('adjust_date_weight', sa.Float(), nullable=False),
        sa.Column('current_weight', sa.Float(), nullable=True),
        sa.Column('pbpe', sa.Float(), nullable=True),
        sa.Column('market_value', sa.Float(), nullable=True),
        sa.Column('earnings_yield', sa.Float(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['adjustment_record_id'], ['portfolio_adjustment_record.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_portfolio_constituent_adjustment_record_id', 'portfolio_constituent', ['adjustment_record_id'])

    op.create_table('portfolio_benchmark',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('adjustment_record_id', sa.Integer(), nullable=False),
        sa.Column('benchmark_name', sa.String(length=100), nullable=False),
        sa.Column('symbol', sa.String(length=20), nullable=False),
        sa.Column('percentage_change', sa.Float(), nullable=False),
        sa.Column('static_weight', sa.Float(), nullable=False),
        sa.Column('dynamic_weight', sa.Float(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['adjustment_record_id'], ['portfolio_adjustment_record.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_portfolio_benchmark_adjustment_record_id', 'portfolio_benchmark', ['adjustment_record_id'])

    op.create_table('portfolio_performance',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('adjustment_record_id', sa.Integer(), nullable=False),
        sa.Column('portfolio_earnings_yield', sa.Float(), nullable=False, server_default='0'),
        sa.Column('benchmark_earnings_yield', sa.Float(), nullable=False, server_default='0'),
        sa.Column('alpha', sa.Float(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['adjustment_record_id'], ['portfolio_adjustment_record.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_portfolio_performance_adjustment_record_id', 'portfolio_performance',
                    ['adjustment_record_id'], unique=True)

    # Promotion tables
    op.create_table('promotion_record',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('promotion_pact_name', sa.String(length=100), nullable=False),
        sa.Column('promoter_email', sa.String(length=255), nullable=False),
        sa.Column('symbol', sa.String(length=20), nullable=False),
        sa.Column('abbreviation', sa.String(length=50), nullable=True),
        sa.Column('industry', sa.String(length=100), nullable=True),
        sa.Column('direction', direction_enum, nullable=False),
        sa.Column('open_time', sa.DateTime(), nullable=False),
        sa.Column('open_price', sa.Float(), nullable=False),
        sa.Column('close_time', sa.DateTime(), nullable=True),
        sa.Column('close_price', sa.Float(), nullable=True),
        sa.Column('adjust_factor', sa.Float(), nullable=True),
        sa.Column('earnings_yield', sa.Float(), nullable=True),
        sa.Column('performance_score', sa.Float(), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['promotion_pact_name'], ['promotion_pact.name']),
        sa.ForeignKeyConstraint(['promoter_email'], ['promoter.email']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_promotion_record_symbol', 'promotion_record', ['symbol'])
    op.create_index('ix_promotion_record_group', 'promotion_record', ['promotion_pact_name', 'promoter_email'])

    op.create_table('promotion_statistic',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('promotion_pact_name', sa.String(length=100), nullable=False),
        sa.Column('promoter_email', sa.String(length=255), nullable=False),
        sa.Column('total_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('open_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('win_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('loss_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('win_rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('cumulative_earnings_yield', sa.Float(), nullable=False, server_default='0'),
        sa.Column('average_earnings_yield', sa.Float(), nullable=False, server_default='0'),
        sa.Column('cumulative_performance_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('average_performance_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['promotion_pact_name'], ['promotion_pact.name']),
        sa.ForeignKeyConstraint(['promoter_email'], ['promoter.email']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('promotion_pact_name', 'promoter_email', name='uq_promotion_statistic_group')
    )


def downgrade():
    op.drop_table('promotion_statistic')
    op.drop_index('ix_promotion_record_group', table_name='promotion_record')
    op.drop_index('ix_promotion_record_symbol', table_name='promotion_record')
    op.drop_table('promotion_record')
    direction_enum.drop(op.get_bind(), checkfirst=True)
    op.drop_index('ix_portfolio_performance_adjustment_record_id', table_name='portfolio_performance')
    op.drop_table('portfolio_performance')
    op.drop_index('ix_portfolio_benchmark_adjustment_record_id', table_name='portfolio_benchmark')
    op.drop_table('portfolio_benchmark')
    op.drop_index('ix_portfolio_constituent_adjustment_record_id', table_name='portfolio_constituent')
    op.drop_table('portfolio_constituent')
    op.drop_table('portfolio_adjustment_record')
    op.drop_index('ix_portfolio_pact_promoter_email', table_name='portfolio_pact')
    op.drop_table('portfolio_pact')
    op.drop_index('ix_promotion_pact_name', table_name='promotion_pact')
    op.drop_table('promotion_pact')
    op.drop_index('ix_promoter_email', table_name='promoter')
    op.drop_table('promoter')
