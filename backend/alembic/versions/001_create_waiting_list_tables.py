"""Create waiting list tables

Revision ID: 001
Revises:
Create Date: 2026-10-17 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=False),
        sa.Column('name_first', sa.String(100), nullable=False),
        sa.Column('name_last', sa.String(100), nullable=False),
        sa.Column('cts_theory_exam_passed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('staff_role', sa.String(32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'roster',
        sa.Column('account_id', sa.Integer, sa.ForeignKey('accounts.id', onupdate='CASCADE', ondelete='CASCADE'), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'waiting_lists',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False, unique=True),
        sa.Column('department', sa.String(20), nullable=False),
        sa.Column('feature_toggles', sa.JSON, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'waiting_list_account',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('waiting_list_id', sa.Integer, sa.ForeignKey('waiting_lists.id', onupdate='CASCADE', ondelete='CASCADE'), nullable=False),
        sa.Column('account_id', sa.Integer, sa.ForeignKey('accounts.id', onupdate='CASCADE', ondelete='CASCADE'), nullable=False),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('added_by', sa.Integer, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('removal_type', sa.String(50), nullable=True),
        sa.Column('removal_comment', sa.Text, nullable=True),
        sa.Column('removed_by', sa.Integer, nullable=True),
    )
    op.create_index('ix_waiting_list_account_list_order', 'waiting_list_account', ['waiting_list_id', 'deleted_at', 'created_at'])
    op.create_index('ix_waiting_list_account_account_id', 'waiting_list_account', ['account_id'])
    op.create_index(
        'uq_waiting_list_account_active',
        'waiting_list_account',
        ['waiting_list_id', 'account_id'],
        unique=True,
        postgresql_where=sa.text('deleted_at IS NULL'),
        sqlite_where=sa.text('deleted_at IS NULL'),
    )

    op.create_table(
        'waiting_list_flags',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('waiting_list_id', sa.Integer, sa.ForeignKey('waiting_lists.id', onupdate='CASCADE', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('position_group_id', sa.Integer, nullable=True),
        sa.Column('display_in_table', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('default_value', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_waiting_list_flags_waiting_list_id', 'waiting_list_flags', ['waiting_list_id'])

    op.create_table(
        'waiting_list_account_flag',
        sa.Column('waiting_list_account_id', sa.Integer, sa.ForeignKey('waiting_list_account.id', onupdate='CASCADE', ondelete='CASCADE'), primary_key=True),
        sa.Column('flag_id', sa.Integer, sa.ForeignKey('waiting_list_flags.id', onupdate='CASCADE', ondelete='CASCADE'), primary_key=True),
        sa.Column('marked_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('actor_id', sa.Integer, nullable=False),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Integer, nullable=False),
        sa.Column('before', sa.JSON, nullable=True),
        sa.Column('after', sa.JSON, nullable=True),
        sa.Column('meta', sa.JSON, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_audit_log_entity', 'audit_log', ['entity_type', 'entity_id'])
    op.create_index('ix_audit_log_created_at', 'audit_log', ['created_at'])
    op.create_index('ix_audit_log_actor_id', 'audit_log', ['actor_id'])


def downgrade() -> None:
    op.drop_index('ix_audit_log_actor_id', table_name='audit_log')
    op.drop_index('ix_audit_log_created_at', table_name='audit_log')
    op.drop_index('ix_audit_log_entity', table_name='audit_log')
    op.drop_table('audit_log')
    op.drop_table('waiting_list_account_flag')
    op.drop_index('ix_waiting_list_flags_waiting_list_id', table_name='waiting_list_flags')
    op.drop_table('waiting_list_flags')
    op.drop_index('uq_waiting_list_account_active', table_name='waiting_list_account')
    op.drop_index('ix_waiting_list_account_account_id', table_name='waiting_list_account')
    op.drop_index('ix_waiting_list_account_list_order', table_name='waiting_list_account')
    op.drop_table('waiting_list_account')
    op.drop_table('waiting_lists')
    op.drop_table('roster')
    op.drop_table('accounts')
