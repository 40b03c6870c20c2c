"""initial registry schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('orcid', sa.String(length=19), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=True),
        sa.Column('given_names', sa.String(length=150), nullable=False),
        sa.Column('family_name', sa.String(length=150), nullable=True),
        sa.Column('credit_name', sa.String(length=150), nullable=True),
        sa.Column('biography', sa.Text(), nullable=True),
        sa.Column('names_visibility', sa.String(length=20), nullable=False, server_default='public'),
        sa.Column('biography_visibility', sa.String(length=20), nullable=False, server_default='public'),
        sa.Column('activities_visibility_default', sa.String(length=20), nullable=False, server_default='public'),
        sa.Column('claimed', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('deactivated_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_modified', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('orcid'),
        sa.UniqueConstraint('email')
    )
    op.create_index(op.f('ix_profiles_email'), 'profiles', ['email'], unique=True)

    op.create_table(
        'works',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('orcid', sa.String(length=19), nullable=False),
        sa.Column('title', sa.String(length=1000), nullable=False),
        sa.Column('subtitle', sa.String(length=1000), nullable=True),
        sa.Column('translated_title', sa.String(length=1000), nullable=True),
        sa.Column('translated_title_language_code', sa.String(length=10), nullable=True),
        sa.Column('journal_title', sa.String(length=1000), nullable=True),
        sa.Column('short_description', sa.Text(), nullable=True),
        sa.Column('citation', sa.Text(), nullable=True),
        sa.Column('citation_type', sa.String(length=50), nullable=True),
        sa.Column('work_type', sa.String(length=100), nullable=False),
        sa.Column('publication_date', sa.String(length=10), nullable=True),
        sa.Column('url', sa.String(length=2000), nullable=True),
        sa.Column('language_code', sa.String(length=10), nullable=True),
        sa.Column('iso2_country', sa.String(length=2), nullable=True),
        sa.Column('contributors', sa.JSON(), nullable=True),
        sa.Column('external_ids', sa.JSON(), nullable=True),
        sa.Column('visibility', sa.String(length=20), nullable=False),
        sa.Column('display_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('source_id', sa.String(length=19), nullable=True),
        sa.Column('client_source_id', sa.String(length=40), nullable=True),
        sa.Column('added_to_profile_date', sa.DateTime(), nullable=False),
        sa.Column('date_created', sa.DateTime(), nullable=False),
        sa.Column('last_modified', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['orcid'], ['profiles.orcid'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_works_orcid'), 'works', ['orcid'], unique=False)
    op.create_index(op.f('ix_works_work_type'), 'works', ['work_type'], unique=False)
    op.create_index(op.f('ix_works_client_source_id'), 'works', ['client_source_id'], unique=False)

    op.create_table(
        'client_details',
        sa.Column('client_id', sa.String(length=40), nullable=False),
        sa.Column('client_secret_hash', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('member_name', sa.String(length=150), nullable=True),
        sa.Column('website', sa.String(length=2000), nullable=True),
        sa.Column('redirect_uris', sa.JSON(), nullable=True),
        sa.Column('allowed_scopes', sa.JSON(), nullable=True),
        sa.Column('persistent_tokens_enabled', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('owner_orcid', sa.String(length=19), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['owner_orcid'], ['profiles.orcid'], ),
        sa.PrimaryKeyConstraint('client_id')
    )
    op.create_index(op.f('ix_client_details_owner_orcid'), 'client_details', ['owner_orcid'], unique=False)

    op.create_table(
        'authorization_codes',
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('client_id', sa.String(length=40), nullable=False),
        sa.Column('orcid', sa.String(length=19), nullable=False),
        sa.Column('scopes', sa.JSON(), nullable=True),
        sa.Column('redirect_uri', sa.String(length=2000), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['client_id'], ['client_details.client_id'], ),
        sa.ForeignKeyConstraint(['orcid'], ['profiles.orcid'], ),
        sa.PrimaryKeyConstraint('code')
    )
    op.create_index(op.f('ix_authorization_codes_client_id'), 'authorization_codes', ['client_id'], unique=False)

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('orcid', sa.String(length=19), nullable=False),
        sa.Column('notification_type', sa.String(length=30), nullable=False),
        sa.Column('amended_section', sa.String(length=30), nullable=False),
        sa.Column('items', sa.JSON(), nullable=True),
        sa.Column('source_client_id', sa.String(length=40), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['orcid'], ['profiles.orcid'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_notifications_orcid'), 'notifications', ['orcid'], unique=False)


def downgrade() -> None:
    # Children first; MySQL drops FK-backed indexes with their tables
    op.drop_index(op.f('ix_notifications_orcid'), table_name='notifications')
    op.drop_table('notifications')

    op.drop_index(op.f('ix_authorization_codes_client_id'), table_name='authorization_codes')
    op.drop_table('authorization_codes')

    op.drop_index(op.f('ix_client_details_owner_orcid'), table_name='client_details')
    op.drop_table('client_details')

    op.drop_index(op.f('ix_works_client_source_id'), table_name='works')
    op.drop_index(op.f('ix_works_work_type'), table_name='works')
    op.drop_index(op.f('ix_works_orcid'), table_name='works')
    op.drop_table('works')

    op.drop_index(op.f('ix_profiles_email'), table_name='profiles')
    op.drop_table('profiles')
