"""exhibit record tables

Revision ID: 3f1a2c9d7e05
Revises:
Create Date: 2026-10-16 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from typing import Sequence, Union

revision: str = '3f1a2c9d7e05'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

RECORD_TABLES = [
    'tbl_exhibits',
    'tbl_heading_items',
    'tbl_standard_items',
    'tbl_grids',
    'tbl_grid_items',
    'tbl_timelines',
    'tbl_timeline_items',
]


def record_columns():
    return [
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('uuid', sa.String(length=36), nullable=False, unique=True),
        sa.Column('is_published', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_locked', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('locked_by_user', sa.Integer(), nullable=True),
        sa.Column('locked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_deleted', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('owner', sa.Integer(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=True),
        sa.Column('updated_by', sa.String(length=255), nullable=True),
        sa.Column('styles', sa.Text(), server_default='{}'),
        sa.Column('order', sa.Integer(), server_default='0'),
    ]


def upgrade() -> None:
    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(length=100), nullable=False, unique=True),
        sa.Column('permissions', sa.JSON(), nullable=False),
    )
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('full_name', sa.String(length=255)),
        sa.Column('is_admin', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id'), nullable=True),
        sa.Column('created', sa.DateTime(timezone=True)),
    )

    op.create_table(
        'tbl_exhibits',
        *record_columns(),
        sa.Column('type', sa.String(length=50), nullable=False, server_default='exhibit'),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('subtitle', sa.Text()),
        sa.Column('banner_template', sa.String(length=100)),
        sa.Column('about_the_curators', sa.Text()),
        sa.Column('alert_text', sa.Text()),
        sa.Column('hero_image', sa.String(length=255), server_default=''),
        sa.Column('thumbnail', sa.String(length=255), server_default=''),
        sa.Column('description', sa.Text()),
        sa.Column('page_layout', sa.String(length=100)),
        sa.Column('exhibit_template', sa.String(length=100)),
        sa.Column('is_featured', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_student_curated', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_preview', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_table(
        'tbl_heading_items',
        *record_columns(),
        sa.Column('is_member_of_exhibit', sa.String(length=36), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False, server_default='heading'),
        sa.Column('text', sa.Text()),
        sa.Column('is_visible', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_anchor', sa.Integer(), nullable=False, server_default='1'),
    )
    op.create_table(
        'tbl_standard_items',
        *record_columns(),
        sa.Column('is_member_of_exhibit', sa.String(length=36), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False, server_default='item'),
        sa.Column('item_type', sa.String(length=50), server_default='text'),
        sa.Column('title', sa.Text()),
        sa.Column('caption', sa.Text()),
        sa.Column('description', sa.Text()),
        sa.Column('text', sa.Text()),
        sa.Column('wrap_text', sa.Integer(), server_default='1'),
        sa.Column('media', sa.String(length=255), server_default=''),
        sa.Column('thumbnail', sa.String(length=255), server_default=''),
        sa.Column('mime_type', sa.String(length=100)),
        sa.Column('layout', sa.String(length=100)),
        sa.Column('media_width', sa.Integer()),
        sa.Column('alt_text', sa.Text()),
        sa.Column('is_alt_text_decorative', sa.Integer(), server_default='0'),
        sa.Column('pdf_open_to_page', sa.Integer(), server_default='1'),
        sa.Column('item_subjects', sa.Text()),
        sa.Column('columns', sa.Integer()),
        sa.Column('is_repo_item', sa.Integer(), server_default='0'),
        sa.Column('is_kaltura_item', sa.Integer(), server_default='0'),
        sa.Column('is_embedded', sa.Integer(), server_default='0'),
    )
    op.create_table(
        'tbl_grids',
        *record_columns(),
        sa.Column('is_member_of_exhibit', sa.String(length=36), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False, server_default='grid'),
        sa.Column('title', sa.Text()),
        sa.Column('text', sa.Text()),
        sa.Column('columns', sa.Integer(), server_default='4'),
    )
    op.create_table(
        'tbl_grid_items',
        *record_columns(),
        sa.Column('is_member_of_exhibit', sa.String(length=36), nullable=False),
        sa.Column('is_member_of_grid', sa.String(length=36), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False, server_default='grid_item'),
        sa.Column('item_type', sa.String(length=50), server_default='text'),
        sa.Column('title', sa.Text()),
        sa.Column('caption', sa.Text()),
        sa.Column('description', sa.Text()),
        sa.Column('text', sa.Text()),
        sa.Column('media', sa.String(length=255), server_default=''),
        sa.Column('thumbnail', sa.String(length=255), server_default=''),
        sa.Column('mime_type', sa.String(length=100)),
        sa.Column('layout', sa.String(length=100)),
        sa.Column('date', sa.String(length=50)),
    )
    op.create_table(
        'tbl_timelines',
        *record_columns(),
        sa.Column('is_member_of_exhibit', sa.String(length=36), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False, server_default='vertical_timeline'),
        sa.Column('title', sa.Text()),
        sa.Column('text', sa.Text()),
    )
    op.create_table(
        'tbl_timeline_items',
        *record_columns(),
        sa.Column('is_member_of_exhibit', sa.String(length=36), nullable=False),
        sa.Column('is_member_of_timeline', sa.String(length=36), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False, server_default='timeline_item'),
        sa.Column('item_type', sa.String(length=50), server_default='text'),
        sa.Column('title', sa.Text()),
        sa.Column('date', sa.String(length=50)),
        sa.Column('description', sa.Text()),
        sa.Column('text', sa.Text()),
        sa.Column('media', sa.String(length=255), server_default=''),
        sa.Column('thumbnail', sa.String(length=255), server_default=''),
    )

    for table in RECORD_TABLES[1:]:
        op.create_index(f'ix_{table}_is_member_of_exhibit', table, ['is_member_of_exhibit'])
    op.create_index('ix_tbl_grid_items_is_member_of_grid', 'tbl_grid_items', ['is_member_of_grid'])
    op.create_index(
        'ix_tbl_timeline_items_is_member_of_timeline', 'tbl_timeline_items', ['is_member_of_timeline']
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('target_type', sa.String(length=50)),
        sa.Column('target_id', sa.String(length=36)),
        sa.Column('details', sa.JSON()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_audit_logs_target', 'audit_logs', ['target_type', 'target_id'])


def downgrade() -> None:
    op.drop_index('ix_audit_logs_target', table_name='audit_logs')
    op.drop_table('audit_logs')
    for table in reversed(RECORD_TABLES):
        op.drop_table(table)
    op.drop_table('users')
    op.drop_table('roles')
