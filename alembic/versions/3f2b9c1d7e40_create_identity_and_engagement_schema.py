"""create_identity_and_engagement_schema

Revision ID: 3f2b9c1d7e40
Revises:
Create Date: 2026-10-16 09:12:44.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2b9c1d7e40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create the tenant, user, post and engagement tables.

    Creates:
    - tenants table (security configuration per tenant)
    - users table (email unique per tenant)
    - posts table (view/like counters, featured flag)
    - post_views / post_likes tables (one record per tenant, post and identity)
    """
    # 1. Create tenants table
    op.create_table(
        'tenants',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('domain', sa.String(length=255), nullable=False),
        sa.Column('jwt_secret', sa.String(length=128), nullable=False),
        sa.Column('jwt_expiry', sa.String(length=20), nullable=False),
        sa.Column('allow_registration', sa.Boolean(), nullable=False),
        sa.Column('allow_google_oauth', sa.Boolean(), nullable=False),
        sa.Column('google_client_id', sa.String(length=255), nullable=True),
        sa.Column('google_client_secret', sa.String(length=255), nullable=True),
        sa.Column('password_min_length', sa.Integer(), nullable=False),
        sa.Column('password_require_uppercase', sa.Boolean(), nullable=False),
        sa.Column('password_require_number', sa.Boolean(), nullable=False),
        sa.Column('password_require_special', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tenants_name', 'tenants', ['name'], unique=True)

    # 2. Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('tenant_id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('google_id', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('avatar', sa.String(length=500), nullable=True),
        sa.Column('bio', sa.String(length=500), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'email', name='uq_users_tenant_email'),
        sa.UniqueConstraint('tenant_id', 'google_id', name='uq_users_tenant_google_id')
    )
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])

    # 3. Create posts table
    op.create_table(
        'posts',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('tenant_id', sa.String(length=36), nullable=False),
        sa.Column('author_id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('excerpt', sa.String(length=500), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('cover_image', sa.String(length=500), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('view_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('like_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('featured', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'slug', name='uq_posts_tenant_slug')
    )
    op.create_index('ix_posts_tenant_id', 'posts', ['tenant_id'])
    op.create_index('ix_posts_tenant_status', 'posts', ['tenant_id', 'status'])

    # 4. Create engagement tables
    op.create_table(
        'post_views',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('tenant_id', sa.String(length=36), nullable=False),
        sa.Column('post_id', sa.String(length=36), nullable=False),
        sa.Column('identity', sa.String(length=128), nullable=False),
        sa.Column('seen_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'post_id', 'identity', name='uq_post_views_identity')
    )
    op.create_index('ix_post_views_tenant_id', 'post_views', ['tenant_id'])

    op.create_table(
        'post_likes',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('tenant_id', sa.String(length=36), nullable=False),
        sa.Column('post_id', sa.String(length=36), nullable=False),
        sa.Column('identity', sa.String(length=128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['post_id'], ['posts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'post_id', 'identity', name='uq_post_likes_identity')
    )
    op.create_index('ix_post_likes_tenant_id', 'post_likes', ['tenant_id'])


def downgrade() -> None:
    """
    Drop all tables.

    WARNING: This deletes every tenant, user, post and engagement record.
    """
    op.drop_index('ix_post_likes_tenant_id', table_name='post_likes')
    op.drop_table('post_likes')
    op.drop_index('ix_post_views_tenant_id', table_name='post_views')
    op.drop_table('post_views')
    op.drop_index('ix_posts_tenant_status', table_name='posts')
    op.drop_index('ix_posts_tenant_id', table_name='posts')
    op.drop_table('posts')
    op.drop_index('ix_users_tenant_id', table_name='users')
    op.drop_table('users')
    op.drop_index('ix_tenants_name', table_name='tenants')
    op.drop_table('tenants')
