"""create accounts and federated identities

Revision ID: 7d1c2e4a9b30
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '7d1c2e4a9b30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('password_hash', sa.String(length=254), nullable=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('experience_level', sa.String(length=20), nullable=True),
        sa.Column('skills', sa.JSON(), nullable=False),
        sa.Column('portfolio', sa.JSON(), nullable=False),
        sa.Column('company_name', sa.String(length=200), nullable=True),
        sa.Column('industry', sa.String(length=120), nullable=True),
        sa.Column('website', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_accounts')),
        sa.UniqueConstraint('email', name='uq_accounts_email'),
    )
    op.create_index('ix_accounts_email', 'accounts', ['email'], unique=False)

    op.create_table(
        'federated_identities',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('provider', sa.String(length=32), nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['account_id'],
            ['accounts.id'],
            name=op.f('fk_federated_identities_account_id_accounts'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_federated_identities')),
        sa.UniqueConstraint('provider', 'subject', name='uq_federated_identities_provider_subject'),
        sa.UniqueConstraint('account_id', 'provider', name='uq_federated_identities_account_provider'),
    )
    op.create_index(
        'ix_federated_identities_account_id', 'federated_identities', ['account_id'], unique=False
    )


def downgrade():
    op.drop_index('ix_federated_identities_account_id', table_name='federated_identities')
    op.drop_table('federated_identities')
    op.drop_index('ix_accounts_email', table_name='accounts')
    op.drop_table('accounts')
