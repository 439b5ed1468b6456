"""Create retirement planning tables

Revision ID: 4b7e2d91c3a5
Revises:
Create Date: 2026-03-02 10:14:22.418305

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4b7e2d91c3a5'
down_revision = None
branch_labels = None
depends_on = None


pension_type_enum = sa.Enum('riester', 'ruerup', 'betriebsrente', name='pensiontype')


def upgrade():
    # Tables may already exist from db.create_all() - only create what is missing
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing = set(inspector.get_table_names())

    if 'families' not in existing:
        op.create_table('families',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=100), nullable=False),
            sa.Column('currency', sa.String(length=3), nullable=False, server_default='GBP'),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )

    if 'users' not in existing:
        op.create_table('users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('email', sa.String(length=120), nullable=False),
            sa.Column('password_hash', sa.String(length=255), nullable=False),
            sa.Column('name', sa.String(length=100), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('family_id', sa.Integer(), nullable=True),
            sa.Column('role', sa.String(length=20), nullable=False, server_default='admin'),
            sa.ForeignKeyConstraint(['family_id'], ['families.id']),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
        op.create_index(op.f('ix_users_family_id'), 'users', ['family_id'], unique=False)

    if 'accounts' not in existing:
        op.create_table('accounts',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('family_id', sa.Integer(), nullable=True),
            sa.Column('name', sa.String(length=100), nullable=False),
            sa.Column('account_type', sa.String(length=50), nullable=False),
            sa.Column('balance', sa.Numeric(precision=19, scale=4), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=True),
            sa.Column('pension_type', pension_type_enum, nullable=True),
            sa.Column('expected_monthly_payout', sa.Numeric(precision=10, scale=2), nullable=True),
            sa.Column('retirement_date', sa.Date(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['family_id'], ['families.id']),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_accounts_family_id'), 'accounts', ['family_id'], unique=False)

    if 'settings' not in existing:
        op.create_table('settings',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('family_id', sa.Integer(), nullable=True),
            sa.Column('key', sa.String(length=100), nullable=False),
            sa.Column('value', sa.String(length=500), nullable=True),
            sa.Column('description', sa.String(length=255), nullable=True),
            sa.Column('setting_type', sa.String(length=50), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['family_id'], ['families.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('family_id', 'key', name='uq_settings_family_key')
        )
        op.create_index(op.f('ix_settings_family_id'), 'settings', ['family_id'], unique=False)

    if 'retirement_scenarios' not in existing:
        op.create_table('retirement_scenarios',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('family_id', sa.Integer(), nullable=True),
            sa.Column('name', sa.String(length=100), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('is_primary', sa.Boolean(), nullable=True),
            sa.Column('calculation_date', sa.Date(), nullable=False),
            sa.Column('retirement_monthly_expenses', sa.Numeric(precision=10, scale=2), nullable=True),
            sa.Column('current_annual_salary', sa.Numeric(precision=10, scale=2), nullable=True),
            sa.Column('salary_end_date', sa.Date(), nullable=True),
            sa.Column('state_pension_monthly', sa.Numeric(precision=10, scale=2), nullable=True),
            sa.Column('state_pension_start_date', sa.Date(), nullable=True),
            sa.Column('riester_monthly', sa.Numeric(precision=10, scale=2), nullable=True),
            sa.Column('ruerup_monthly', sa.Numeric(precision=10, scale=2), nullable=True),
            sa.Column('betriebsrente_monthly', sa.Numeric(precision=10, scale=2), nullable=True),
            sa.Column('other_pension_monthly', sa.Numeric(precision=10, scale=2), nullable=True),
            sa.Column('other_pension_start_date', sa.Date(), nullable=True),
            sa.Column('portfolio_withdrawal_rate', sa.Numeric(precision=5, scale=2), nullable=True),
            sa.Column('portfolio_growth_rate', sa.Numeric(precision=5, scale=2), nullable=True),
            sa.Column('inflation_rate', sa.Numeric(precision=5, scale=2), nullable=True),
            sa.Column('monthly_contribution', sa.Numeric(precision=10, scale=2), nullable=True),
            sa.Column('total_pension_income', sa.Numeric(precision=10, scale=2), nullable=True),
            sa.Column('income_gap_monthly', sa.Numeric(precision=10, scale=2), nullable=True),
            sa.Column('required_portfolio_value', sa.Numeric(precision=19, scale=4), nullable=True),
            sa.Column('current_portfolio_value', sa.Numeric(precision=19, scale=4), nullable=True),
            sa.Column('portfolio_gap', sa.Numeric(precision=19, scale=4), nullable=True),
            sa.Column('projected_retirement_date', sa.Date(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['family_id'], ['families.id']),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_retirement_scenarios_family_id'), 'retirement_scenarios', ['family_id'], unique=False)
        op.create_index(op.f('ix_retirement_scenarios_projected_retirement_date'), 'retirement_scenarios',
                        ['projected_retirement_date'], unique=False)
        op.create_index('ix_retirement_scenarios_family_primary', 'retirement_scenarios',
                        ['family_id', 'is_primary'], unique=False)

    if 'retirement_pension_sources' not in existing:
        op.create_table('retirement_pension_sources',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('scenario_id', sa.Integer(), nullable=False),
            sa.Column('account_id', sa.Integer(), nullable=False),
            sa.Column('expected_monthly_payout', sa.Numeric(precision=19, scale=4), nullable=True),
            sa.Column('payout_start_date', sa.Date(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['account_id'], ['accounts.id']),
            sa.ForeignKeyConstraint(['scenario_id'], ['retirement_scenarios.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('scenario_id', 'account_id', name='uq_pension_sources_scenario_account')
        )
        op.create_index(op.f('ix_retirement_pension_sources_scenario_id'), 'retirement_pension_sources',
                        ['scenario_id'], unique=False)
        op.create_index(op.f('ix_retirement_pension_sources_account_id'), 'retirement_pension_sources',
                        ['account_id'], unique=False)

    if 'retirement_scenario_snapshots' not in existing:
        op.create_table('retirement_scenario_snapshots',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('scenario_id', sa.Integer(), nullable=False),
            sa.Column('snapshot_date', sa.Date(), nullable=False),
            sa.Column('current_portfolio_value', sa.Numeric(precision=19, scale=4), nullable=True),
            sa.Column('required_portfolio_value', sa.Numeric(precision=19, scale=4), nullable=True),
            sa.Column('portfolio_gap', sa.Numeric(precision=19, scale=4), nullable=True),
            sa.Column('progress_percent', sa.Numeric(precision=8, scale=2), nullable=True),
            sa.Column('projected_retirement_date', sa.Date(), nullable=True),
            sa.Column('total_pension_income', sa.Numeric(precision=19, scale=4), nullable=True),
            sa.Column('income_gap_monthly', sa.Numeric(precision=19, scale=4), nullable=True),
            sa.Column('projected_portfolio_value', sa.Numeric(precision=19, scale=4), nullable=True),
            sa.Column('growth_rate_assumption', sa.Numeric(precision=5, scale=2), nullable=True),
            sa.Column('inflation_rate_assumption', sa.Numeric(precision=5, scale=2), nullable=True),
            sa.Column('monthly_contribution_assumption', sa.Numeric(precision=19, scale=4), nullable=True),
            sa.Column('withdrawal_rate_assumption', sa.Numeric(precision=5, scale=2), nullable=True),
            sa.Column('notes', sa.String(length=255), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['scenario_id'], ['retirement_scenarios.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('scenario_id', 'snapshot_date', name='uq_snapshots_scenario_date')
        )
        op.create_index(op.f('ix_retirement_scenario_snapshots_scenario_id'), 'retirement_scenario_snapshots',
                        ['scenario_id'], unique=False)
        op.create_index(op.f('ix_retirement_scenario_snapshots_snapshot_date'), 'retirement_scenario_snapshots',
                        ['snapshot_date'], unique=False)


def downgrade():
    op.drop_table('retirement_scenario_snapshots')
    op.drop_table('retirement_pension_sources')
    op.drop_table('retirement_scenarios')
    op.drop_table('settings')
    op.drop_table('accounts')
    op.drop_table('users')
    op.drop_table('families')
    pension_type_enum.drop(op.get_bind(), checkfirst=True)
