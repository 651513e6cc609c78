"""initial schema

Revision ID: 3b9e1f6a2c47
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3b9e1f6a2c47'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLE_VALUES = ('SuperAdmin', 'DeptAdmin', 'Staff')
POLICY_STATUS_VALUES = ('Draft', 'Review', 'Published', 'Archived')
VISIBILITY_VALUES = ('organization', 'department')


def _enum(values, name):
    return sa.Enum(*values, name=name, native_enum=False, length=32)


def upgrade() -> None:
    op.create_table(
        'departments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=False, server_default=''),
        sa.UniqueConstraint('name', name='uq_departments_name'),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('role', _enum(ROLE_VALUES, 'role'), nullable=False),
        sa.Column('department_id', sa.Uuid(), sa.ForeignKey('departments.id'), nullable=True),
        sa.Column('created_by', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_department_id', 'users', ['department_id'])

    op.create_table(
        'policies',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('status', _enum(POLICY_STATUS_VALUES, 'policystatus'), nullable=False),
        sa.Column('visibility_type', _enum(VISIBILITY_VALUES, 'visibilitytype'), nullable=False),
        sa.Column('department_id', sa.Uuid(), sa.ForeignKey('departments.id'), nullable=True),
        sa.Column('current_version_id', sa.Uuid(), nullable=True),
    )
    op.create_index('ix_policies_department_id', 'policies', ['department_id'])

    op.create_table(
        'policy_versions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('policy_id', sa.Uuid(), sa.ForeignKey('policies.id'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('version_string', sa.String(), nullable=False),
        sa.Column('changelog', sa.Text(), nullable=False, server_default=''),
    )
    op.create_index('ix_policy_versions_policy_id', 'policy_versions', ['policy_id'])

    op.create_table(
        'acknowledgements',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('policy_version_id', sa.Uuid(), sa.ForeignKey('policy_versions.id'), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('signature_hash', sa.String(length=64), nullable=False),
        sa.UniqueConstraint('user_id', 'policy_version_id', name='uq_acknowledgements_user_version'),
    )
    op.create_index('ix_acknowledgements_user_id', 'acknowledgements', ['user_id'])
    op.create_index('ix_acknowledgements_policy_version_id', 'acknowledgements', ['policy_version_id'])


def downgrade() -> None:
    op.drop_index('ix_acknowledgements_policy_version_id', table_name='acknowledgements')
    op.drop_index('ix_acknowledgements_user_id', table_name='acknowledgements')
    op.drop_table('acknowledgements')
    op.drop_index('ix_policy_versions_policy_id', table_name='policy_versions')
    op.drop_table('policy_versions')
    op.drop_index('ix_policies_department_id', table_name='policies')
    op.drop_table('policies')
    op.drop_index('ix_users_department_id', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    op.drop_table('departments')
