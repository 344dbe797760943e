"""Baseline vault schema: registry, records, permissions, access log, sequences, clock

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = 'a1b2c3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None

_JSON = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    op.create_table(
        'health_user',
        sa.Column('identity', sa.String(length=128), nullable=False),
        sa.Column('registered', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('profile_ref', sa.String(length=500), nullable=True),
        sa.Column('emergency_contact', sa.String(length=128), nullable=True),
        sa.Column('emergency_access_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('registered_at', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('identity')
    )

    op.create_table(
        'provider',
        sa.Column('identity', sa.String(length=128), nullable=False),
        sa.Column('registered', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('provider_type', sa.String(length=255), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verified_at', sa.Integer(), nullable=True),
        sa.Column('registered_at', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('identity')
    )

    op.create_table(
        'health_record',
        sa.Column('sequence_id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('owner', sa.String(length=128), nullable=False),
        sa.Column('data_type', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.Integer(), nullable=False),
        sa.Column('ciphertext', sa.LargeBinary(), nullable=False),
        sa.Column('external_ref', sa.String(length=500), nullable=True),
        sa.Column('checksum', sa.String(length=128), nullable=False),
        sa.Column('recorded_by', sa.String(length=128), nullable=True),
        sa.ForeignKeyConstraint(['owner'], ['health_user.identity'], name='fk_health_record_owner'),
        sa.ForeignKeyConstraint(['recorded_by'], ['provider.identity'], name='fk_health_record_provider'),
        sa.PrimaryKeyConstraint('sequence_id')
    )
    op.create_index('ix_health_record_owner', 'health_record', ['owner', 'sequence_id'], unique=False)

    op.create_table(
        'permission',
        sa.Column('permission_id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('owner', sa.String(length=128), nullable=False),
        sa.Column('accessor', sa.String(length=128), nullable=False),
        sa.Column('granted_at', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.Integer(), nullable=True),
        sa.Column('data_types', _JSON, nullable=False),
        sa.Column('revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.Integer(), nullable=True),
        sa.Column('is_emergency', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(['owner'], ['health_user.identity'], name='fk_permission_owner'),
        sa.PrimaryKeyConstraint('permission_id')
    )
    # (owner, accessor) -> ordered permission ids
    op.create_index(
        'ix_permission_owner_accessor', 'permission', ['owner', 'accessor', 'permission_id'], unique=False
    )

    op.create_table(
        'access_log',
        sa.Column('log_id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('owner', sa.String(length=128), nullable=False),
        sa.Column('accessor', sa.String(length=128), nullable=False),
        sa.Column('timestamp', sa.Integer(), nullable=False),
        sa.Column('data_types_accessed', _JSON, nullable=False),
        sa.Column('permission_id', sa.Integer(), nullable=True),
        sa.Column('access_basis', sa.String(length=20), nullable=False, comment='permission | emergency'),
        sa.Column('record_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['owner'], ['health_user.identity'], name='fk_access_log_owner'),
        sa.ForeignKeyConstraint(['permission_id'], ['permission.permission_id'], name='fk_access_log_permission'),
        sa.ForeignKeyConstraint(['record_id'], ['health_record.sequence_id'], name='fk_access_log_record'),
        sa.PrimaryKeyConstraint('log_id')
    )
    op.create_index('ix_access_log_owner', 'access_log', ['owner', 'log_id'], unique=False)

    op.create_table(
        'id_sequence',
        sa.Column('name', sa.String(length=50), nullable=False, comment='record | permission | log'),
        sa.Column('next_value', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('name')
    )

    op.create_table(
        'logical_clock',
        sa.Column('clock_id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('now', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('clock_id')
    )


def downgrade() -> None:
    op.drop_table('logical_clock')
    op.drop_table('id_sequence')
    op.drop_index('ix_access_log_owner', table_name='access_log')
    op.drop_table('access_log')
    op.drop_index('ix_permission_owner_accessor', table_name='permission')
    op.drop_table('permission')
    op.drop_index('ix_health_record_owner', table_name='health_record')
    op.drop_table('health_record')
    op.drop_table('provider')
    op.drop_table('health_user')
