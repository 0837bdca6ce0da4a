"""Initial migration

Revision ID: 0001
Revises:
Create Date: 2025-11-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()'))


def _created_at():
    return sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'))


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto;')

    op.create_table('profiles',
        _id(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='member'),
        sa.Column('country_code', sa.String(length=8), nullable=True, server_default='BD'),
        sa.Column('agent_status', sa.String(length=32), nullable=True),
        sa.Column('referral_code', sa.String(length=32), nullable=True),
        sa.Column('referred_by_code', sa.String(length=32), nullable=True),
        sa.Column('verification_notes', sa.Text(), nullable=True),
        sa.Column('is_test_account', sa.Boolean(), nullable=False, server_default='false'),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('referral_code')
    )

    op.create_table('employees',
        _id(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('employee_code', sa.String(length=32), nullable=True),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('role_category', sa.String(length=32), nullable=False),
        sa.Column('department', sa.String(length=64), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
        sa.UniqueConstraint('employee_code'),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE')
    )

    op.create_table('admin_hierarchy',
        _id(),
        sa.Column('admin_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('role', sa.String(length=32), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['admin_id'], ['profiles.id'], ondelete='CASCADE')
    )

    op.create_table('memberships',
        _id(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('membership_number', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('end_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('activated_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('payment_method', sa.String(length=64), nullable=True),
        sa.Column('transaction_id', sa.String(length=128), nullable=True),
        sa.Column('fee_amount', sa.Numeric(precision=30, scale=2), nullable=True),
        sa.Column('fee_currency', sa.String(length=8), nullable=False, server_default='BDT'),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
        sa.UniqueConstraint('membership_number'),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE')
    )

    op.create_table('payments',
        _id(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('membership_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('amount', sa.Numeric(precision=30, scale=2), nullable=False),
        sa.Column('currency', sa.String(length=8), nullable=False, server_default='BDT'),
        sa.Column('payment_method', sa.String(length=64), nullable=False),
        sa.Column('transaction_reference', sa.String(length=128), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='confirmed'),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_reference'),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['membership_id'], ['memberships.id'])
    )

    op.create_table('referrals',
        _id(),
        sa.Column('referrer_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('referred_user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('referral_code', sa.String(length=32), nullable=False),
        sa.Column('bonus_amount', sa.Numeric(precision=30, scale=2), nullable=False, server_default='0'),
        sa.Column('bonus_currency', sa.String(length=8), nullable=False, server_default='BDT'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('bonus_paid_at', sa.TIMESTAMP(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referred_user_id'),
        sa.ForeignKeyConstraint(['referrer_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['referred_user_id'], ['profiles.id'], ondelete='CASCADE')
    )

    op.create_table('country_settings',
        _id(),
        sa.Column('country_code', sa.String(length=8), nullable=False),
        sa.Column('membership_fee', sa.Numeric(precision=30, scale=2), nullable=False, server_default='0'),
        sa.Column('currency_code', sa.String(length=8), nullable=False, server_default='BDT'),
        sa.Column('prize_pool_percentage', sa.Numeric(precision=5, scale=2), nullable=False, server_default='30'),
        sa.Column('referral_bonus_amount', sa.Numeric(precision=30, scale=2), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('country_code')
    )

    op.create_table('wallets',
        _id(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('balance', sa.Numeric(precision=30, scale=2), nullable=False, server_default='0'),
        sa.Column('total_earned', sa.Numeric(precision=30, scale=2), nullable=False, server_default='0'),
        sa.Column('total_withdrawn', sa.Numeric(precision=30, scale=2), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=8), nullable=False, server_default='BDT'),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.CheckConstraint('balance >= 0', name='chk_wallet_balance_nonneg'),
        sa.CheckConstraint('total_earned >= 0', name='chk_wallet_earned_nonneg'),
        sa.CheckConstraint('total_withdrawn >= 0', name='chk_wallet_withdrawn_nonneg')
    )

    op.create_table('withdrawal_requests',
        _id(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('amount', sa.Numeric(precision=30, scale=2), nullable=False),
        sa.Column('currency', sa.String(length=8), nullable=False, server_default='BDT'),
        sa.Column('payment_method', sa.String(length=64), nullable=False),
        sa.Column('account_details', sa.String(length=256), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('processed_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('processed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE')
    )

    op.create_table('prize_draws',
        _id(),
        sa.Column('country_code', sa.String(length=8), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('draw_date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('pool_type', sa.String(length=16), nullable=False, server_default='random'),
        sa.Column('announcement_status', sa.String(length=16), nullable=False, server_default='COMING_SOON'),
        sa.Column('announced_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('estimated_prize_pool_amount', sa.Numeric(precision=30, scale=2), nullable=True),
        sa.Column('estimated_prize_pool_currency', sa.String(length=8), nullable=True),
        sa.Column('estimated_prize_pool_percentage', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('forecast_member_count', sa.Integer(), nullable=True),
        sa.Column('disclaimer_text', sa.Text(), nullable=True),
        sa.Column('fairness_locked', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('leftover_amount', sa.Numeric(precision=30, scale=2), nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_prize_draws_country_date', 'prize_draws', ['country_code', 'draw_date'])

    op.create_table('prize_draw_prizes',
        _id(),
        sa.Column('draw_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('prize_type', sa.String(length=32), nullable=False),
        sa.Column('award_type', sa.String(length=32), nullable=False),
        sa.Column('prize_value_amount', sa.Numeric(precision=30, scale=2), nullable=False),
        sa.Column('currency_code', sa.String(length=8), nullable=False, server_default='BDT'),
        sa.Column('number_of_winners', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['draw_id'], ['prize_draws.id'], ondelete='CASCADE'),
        sa.CheckConstraint('number_of_winners >= 1', name='chk_prize_winners_positive')
    )

    op.create_table('prize_draw_entries',
        _id(),
        sa.Column('prize_draw_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('membership_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('entered_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['prize_draw_id'], ['prize_draws.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['membership_id'], ['memberships.id']),
        sa.UniqueConstraint('prize_draw_id', 'user_id', name='uq_entry_draw_user')
    )

    op.create_table('prize_draw_winners',
        _id(),
        sa.Column('draw_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('prize_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('winner_user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('award_type', sa.String(length=32), nullable=False),
        sa.Column('selected_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.Column('selected_by_admin_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('claim_status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('claim_deadline_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('claimed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('payout_status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('paid_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('assignment_reason', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['draw_id'], ['prize_draws.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['prize_id'], ['prize_draw_prizes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['winner_user_id'], ['profiles.id'], ondelete='CASCADE')
    )

    op.create_table('general_ledger',
        _id(),
        sa.Column('transaction_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('account_code', sa.String(length=8), nullable=False),
        sa.Column('debit', sa.Numeric(precision=30, scale=2), nullable=False, server_default='0'),
        sa.Column('credit', sa.Numeric(precision=30, scale=2), nullable=False, server_default='0'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('reference_type', sa.String(length=64), nullable=True),
        sa.Column('reference_id', sa.String(length=64), nullable=True),
        sa.Column('period', sa.String(length=7), nullable=False),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_general_ledger_transaction_id', 'general_ledger', ['transaction_id'])
    op.create_index('ix_general_ledger_account_code', 'general_ledger', ['account_code'])
    op.create_index('ix_general_ledger_period', 'general_ledger', ['period'])

    op.create_table('prize_pool_split_config',
        _id(),
        sa.Column('random_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('community_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('effective_from', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('messages',
        _id(),
        sa.Column('sender_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('sender_role', sa.String(length=16), nullable=False),
        sa.Column('message_type', sa.String(length=16), nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('broadcast_target', sa.String(length=32), nullable=True),
        sa.Column('related_entity_type', sa.String(length=64), nullable=True),
        sa.Column('related_entity_id', sa.String(length=64), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('message_recipients',
        _id(),
        sa.Column('message_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('recipient_user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('folder', sa.String(length=16), nullable=False, server_default='INBOX'),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('read_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('deleted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['message_id'], ['messages.id'], ondelete='CASCADE')
    )
    op.create_index('ix_message_recipients_recipient_user_id', 'message_recipients', ['recipient_user_id'])

    op.create_table('audit_logs',
        _id(),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('action', sa.String(length=128), nullable=False),
        sa.Column('target_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('table_name', sa.String(length=64), nullable=True),
        sa.Column('record_id', sa.String(length=64), nullable=True),
        sa.Column('old_values', sa.JSON(), nullable=True),
        sa.Column('new_values', sa.JSON(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_logs_actor_id', 'audit_logs', ['actor_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_target_user_id', 'audit_logs', ['target_user_id'])

    op.create_table('admin_notifications',
        _id(),
        sa.Column('notification_type', sa.String(length=64), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('priority', sa.String(length=16), nullable=False, server_default='normal'),
        sa.Column('related_entity_id', sa.String(length=64), nullable=True),
        sa.Column('related_entity_type', sa.String(length=64), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('read_at', sa.TIMESTAMP(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('agent_requests',
        _id(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('assigned_agent_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='SUBMITTED'),
        sa.Column('request_type', sa.String(length=64), nullable=True),
        sa.Column('case_notes', sa.Text(), nullable=True),
        _created_at(),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['assigned_agent_id'], ['profiles.id'])
    )

    op.create_table('attendance_records',
        _id(),
        sa.Column('employee_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('attendance_date', sa.Date(), nullable=False),
        sa.Column('expected_login_time', sa.String(length=8), nullable=False, server_default='09:00'),
        sa.Column('actual_login_time', sa.String(length=8), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('lateness_minutes', sa.Integer(), nullable=True),
        sa.Column('exception_applied', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('manual_entry_reason', sa.Text(), nullable=True),
        sa.Column('logged_from_ip', sa.String(length=64), nullable=True),
        sa.Column('recorded_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('employee_id', 'attendance_date', name='uq_attendance_employee_date')
    )

    op.create_table('financial_close_periods',
        _id(),
        sa.Column('period', sa.String(length=7), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='open'),
        sa.Column('closed_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('closed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('locked_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('locked_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('unlocked_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('unlocked_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('unlock_reason', sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('period')
    )

    op.create_table('monthly_financial_reports',
        _id(),
        sa.Column('close_period_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('report_type', sa.String(length=32), nullable=False),
        sa.Column('report_data', sa.JSON(), nullable=False),
        sa.Column('generated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['close_period_id'], ['financial_close_periods.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('close_period_id', 'report_type', name='uq_report_period_type')
    )


def downgrade() -> None:
    op.drop_table('monthly_financial_reports')
    op.drop_table('financial_close_periods')
    op.drop_table('attendance_records')
    op.drop_table('agent_requests')
    op.drop_table('admin_notifications')
    op.drop_table('audit_logs')
    op.drop_table('message_recipients')
    op.drop_table('messages')
    op.drop_table('prize_pool_split_config')
    op.drop_table('general_ledger')
    op.drop_table('prize_draw_winners')
    op.drop_table('prize_draw_entries')
    op.drop_table('prize_draw_prizes')
    op.drop_table('prize_draws')
    op.drop_table('withdrawal_requests')
    op.drop_table('wallets')
    op.drop_table('country_settings')
    op.drop_table('referrals')
    op.drop_table('payments')
    op.drop_table('memberships')
    op.drop_table('admin_hierarchy')
    op.drop_table('employees')
    op.drop_table('profiles')
