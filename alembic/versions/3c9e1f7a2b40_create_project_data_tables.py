"""create project data tables

Revision ID: 3c9e1f7a2b40
Revises:
Create Date: 2026-10-12 10:41:07.318224

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3c9e1f7a2b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _jsonb():
    return postgresql.JSONB(astext_type=sa.Text())


def upgrade() -> None:
    # Tenants and users
    op.create_table('organizations',
        sa.Column('organization_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('organization_uuid', sa.UUID(), nullable=False),
        sa.Column('organization_name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.PrimaryKeyConstraint('organization_id'),
        sa.UniqueConstraint('organization_uuid')
    )
    op.create_table('users',
        sa.Column('user_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_uuid', sa.UUID(), nullable=False),
        sa.Column('first_name', sa.String(length=255), nullable=False),
        sa.Column('last_name', sa.String(length=255), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.organization_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id'),
        sa.UniqueConstraint('user_uuid')
    )
    op.create_table('emails',
        sa.Column('email_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('is_primary', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('email_id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('idx_emails_user', 'emails', ['user_id'], unique=False)

    # Projects
    op.create_table('projects',
        sa.Column('project_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('project_uuid', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('project_type', sa.String(length=20), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('dbt_connection_type', sa.String(length=50), nullable=True),
        sa.Column('dbt_connection', sa.LargeBinary(), nullable=True),
        sa.Column('table_selection_type', sa.String(length=20), nullable=False),
        sa.Column('table_selection_value', _jsonb(), nullable=True),
        sa.Column('copied_from_project_uuid', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.organization_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('project_id'),
        sa.UniqueConstraint('project_uuid')
    )
    op.create_index('idx_projects_organization', 'projects', ['organization_id'], unique=False)
    op.create_table('warehouse_credentials',
        sa.Column('warehouse_credentials_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('warehouse_type', sa.String(length=50), nullable=False),
        sa.Column('encrypted_credentials', sa.LargeBinary(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.project_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('warehouse_credentials_id'),
        sa.UniqueConstraint('project_id')
    )
    op.create_table('pinned_list',
        sa.Column('pinned_list_uuid', sa.UUID(), nullable=False),
        sa.Column('project_uuid', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.ForeignKeyConstraint(['project_uuid'], ['projects.project_uuid'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('pinned_list_uuid'),
        sa.UniqueConstraint('project_uuid')
    )
    op.create_table('project_memberships',
        sa.Column('project_membership_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.project_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('project_membership_id'),
        sa.UniqueConstraint('project_id', 'user_id', name='project_memberships_project_id_user_id_unique')
    )
    op.create_index('idx_project_memberships_user', 'project_memberships', ['user_id'], unique=False)
    op.create_table('dbt_cloud_integrations',
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('service_token', sa.LargeBinary(), nullable=False),
        sa.Column('metrics_job_id', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.project_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('project_id')
    )

    # Spaces
    op.create_table('spaces',
        sa.Column('space_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('space_uuid', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_private', sa.Boolean(), nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.project_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('space_id'),
        sa.UniqueConstraint('space_uuid')
    )
    op.create_index('idx_spaces_project', 'spaces', ['project_id'], unique=False)
    op.create_table('space_share',
        sa.Column('space_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.ForeignKeyConstraint(['space_id'], ['spaces.space_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('space_id', 'user_id')
    )

    # Charts
    op.create_table('saved_queries',
        sa.Column('saved_query_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('saved_query_uuid', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('space_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.ForeignKeyConstraint(['space_id'], ['spaces.space_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('saved_query_id'),
        sa.UniqueConstraint('saved_query_uuid')
    )
    op.create_index('idx_saved_queries_space', 'saved_queries', ['space_id'], unique=False)
    op.create_table('saved_queries_versions',
        sa.Column('saved_queries_version_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('saved_queries_version_uuid', sa.UUID(), nullable=False),
        sa.Column('saved_query_id', sa.Integer(), nullable=False),
        sa.Column('explore_name', sa.String(length=255), nullable=False),
        sa.Column('filters', _jsonb(), nullable=True),
        sa.Column('row_limit', sa.Integer(), nullable=False),
        sa.Column('chart_type', sa.String(length=50), nullable=False),
        sa.Column('chart_config', _jsonb(), nullable=True),
        sa.Column('pivot_dimensions', _jsonb(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.ForeignKeyConstraint(['saved_query_id'], ['saved_queries.saved_query_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('saved_queries_version_id'),
        sa.UniqueConstraint('saved_queries_version_uuid')
    )
    op.create_index('idx_saved_queries_versions_chart', 'saved_queries_versions', ['saved_query_id'], unique=False)
    op.create_table('saved_queries_version_table_calculations',
        sa.Column('saved_queries_version_table_calculation_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('saved_queries_version_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('calculation_raw_sql', sa.Text(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['saved_queries_version_id'], ['saved_queries_versions.saved_queries_version_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('saved_queries_version_table_calculation_id')
    )
    op.create_table('saved_queries_version_sorts',
        sa.Column('saved_queries_version_sort_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('saved_queries_version_id', sa.Integer(), nullable=False),
        sa.Column('field_name', sa.String(length=255), nullable=False),
        sa.Column('descending', sa.Boolean(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['saved_queries_version_id'], ['saved_queries_versions.saved_queries_version_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('saved_queries_version_sort_id')
    )
    op.create_table('saved_queries_version_fields',
        sa.Column('saved_queries_version_field_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('saved_queries_version_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('field_type', sa.String(length=20), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['saved_queries_version_id'], ['saved_queries_versions.saved_queries_version_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('saved_queries_version_field_id')
    )
    op.create_table('saved_queries_version_additional_metrics',
        sa.Column('saved_queries_version_additional_metric_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('saved_queries_version_id', sa.Integer(), nullable=False),
        sa.Column('table', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=True),
        sa.Column('sql', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['saved_queries_version_id'], ['saved_queries_versions.saved_queries_version_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('saved_queries_version_additional_metric_id')
    )

    # Dashboards
    op.create_table('dashboards',
        sa.Column('dashboard_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('dashboard_uuid', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('space_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.ForeignKeyConstraint(['space_id'], ['spaces.space_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('dashboard_id'),
        sa.UniqueConstraint('dashboard_uuid')
    )
    op.create_index('idx_dashboards_space', 'dashboards', ['space_id'], unique=False)
    op.create_table('dashboard_versions',
        sa.Column('dashboard_version_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('dashboard_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.ForeignKeyConstraint(['dashboard_id'], ['dashboards.dashboard_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('dashboard_version_id')
    )
    op.create_index('idx_dashboard_versions_dashboard', 'dashboard_versions', ['dashboard_id'], unique=False)
    op.create_table('dashboard_tiles',
        sa.Column('dashboard_version_id', sa.Integer(), nullable=False),
        sa.Column('dashboard_tile_uuid', sa.UUID(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('x_offset', sa.Integer(), nullable=False),
        sa.Column('y_offset', sa.Integer(), nullable=False),
        sa.Column('height', sa.Integer(), nullable=False),
        sa.Column('width', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['dashboard_version_id'], ['dashboard_versions.dashboard_version_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('dashboard_version_id', 'dashboard_tile_uuid')
    )
    op.create_table('dashboard_tile_charts',
        sa.Column('dashboard_version_id', sa.Integer(), nullable=False),
        sa.Column('dashboard_tile_uuid', sa.UUID(), nullable=False),
        sa.Column('saved_chart_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['dashboard_version_id', 'dashboard_tile_uuid'], ['dashboard_tiles.dashboard_version_id', 'dashboard_tiles.dashboard_tile_uuid'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['saved_chart_id'], ['saved_queries.saved_query_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('dashboard_version_id', 'dashboard_tile_uuid')
    )
    op.create_table('dashboard_tile_looms',
        sa.Column('dashboard_version_id', sa.Integer(), nullable=False),
        sa.Column('dashboard_tile_uuid', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('url', sa.String(length=2048), nullable=False),
        sa.ForeignKeyConstraint(['dashboard_version_id', 'dashboard_tile_uuid'], ['dashboard_tiles.dashboard_version_id', 'dashboard_tiles.dashboard_tile_uuid'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('dashboard_version_id', 'dashboard_tile_uuid')
    )
    op.create_table('dashboard_tile_markdowns',
        sa.Column('dashboard_version_id', sa.Integer(), nullable=False),
        sa.Column('dashboard_tile_uuid', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['dashboard_version_id', 'dashboard_tile_uuid'], ['dashboard_tiles.dashboard_version_id', 'dashboard_tiles.dashboard_tile_uuid'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('dashboard_version_id', 'dashboard_tile_uuid')
    )

    # Preview clones and caches
    op.create_table('preview_content',
        sa.Column('preview_content_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('project_uuid', sa.UUID(), nullable=False),
        sa.Column('preview_project_uuid', sa.UUID(), nullable=False),
        sa.Column('content_mapping', _jsonb(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), nullable=False),
        sa.ForeignKeyConstraint(['project_uuid'], ['projects.project_uuid'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['preview_project_uuid'], ['projects.project_uuid'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('preview_content_id')
    )
    op.create_index('idx_preview_content_projects', 'preview_content', ['project_uuid', 'preview_project_uuid'], unique=False)
    op.create_table('cached_explores',
        sa.Column('project_uuid', sa.UUID(), nullable=False),
        sa.Column('explores', _jsonb(), nullable=False),
        sa.ForeignKeyConstraint(['project_uuid'], ['projects.project_uuid'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('project_uuid')
    )
    op.create_table('cached_warehouse',
        sa.Column('project_uuid', sa.UUID(), nullable=False),
        sa.Column('warehouse', _jsonb(), nullable=False),
        sa.ForeignKeyConstraint(['project_uuid'], ['projects.project_uuid'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('project_uuid')
    )


def downgrade() -> None:
    op.drop_table('cached_warehouse')
    op.drop_table('cached_explores')
    op.drop_index('idx_preview_content_projects', table_name='preview_content')
    op.drop_table('preview_content')
    op.drop_table('dashboard_tile_markdowns')
    op.drop_table('dashboard_tile_looms')
    op.drop_table('dashboard_tile_charts')
    op.drop_table('dashboard_tiles')
    op.drop_index('idx_dashboard_versions_dashboard', table_name='dashboard_versions')
    op.drop_table('dashboard_versions')
    op.drop_index('idx_dashboards_space', table_name='dashboards')
    op.drop_table('dashboards')
    op.drop_table('saved_queries_version_additional_metrics')
    op.drop_table('saved_queries_version_fields')
    op.drop_table('saved_queries_version_sorts')
    op.drop_table('saved_queries_version_table_calculations')
    op.drop_index('idx_saved_queries_versions_chart', table_name='saved_queries_versions')
    op.drop_table('saved_queries_versions')
    op.drop_index('idx_saved_queries_space', table_name='saved_queries')
    op.drop_table('saved_queries')
    op.drop_table('space_share')
    op.drop_index('idx_spaces_project', table_name='spaces')
    op.drop_table('spaces')
    op.drop_table('dbt_cloud_integrations')
    op.drop_index('idx_project_memberships_user', table_name='project_memberships')
    op.drop_table('project_memberships')
    op.drop_table('pinned_list')
    op.drop_table('warehouse_credentials')
    op.drop_index('idx_projects_organization', table_name='projects')
    op.drop_table('projects')
    op.drop_index('idx_emails_user', table_name='emails')
    op.drop_table('emails')
    op.drop_table('users')
    op.drop_table('organizations')
