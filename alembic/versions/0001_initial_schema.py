"""Initial media library schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        'media',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('file_path', sa.String(length=1024), nullable=False),
        sa.Column('file_type', sa.String(length=20), nullable=True),
        sa.Column('duration', sa.Float(), nullable=True),
        sa.Column('tags', sa.Text(), nullable=True),
        sa.Column('thumbnail_path', sa.String(length=1024), nullable=True),
        sa.Column('thumbnail_md', sa.String(length=1024), nullable=True),
        sa.Column('thumbnail_lg', sa.String(length=1024), nullable=True),
        sa.Column('server_location', sa.String(length=255), nullable=False, server_default='local'),
        sa.Column('optimized_path', sa.String(length=1024), nullable=True),
        sa.Column('is_protected', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('protected_by', sa.String(length=255), nullable=True),
        sa.Column('user_protecting', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_media')),
        sa.UniqueConstraint('file_path', name=op.f('uq_media_file_path')),
    )
    op.create_index(op.f('ix_media_file_type'), 'media', ['file_type'])
    op.create_index(op.f('ix_media_is_protected'), 'media', ['is_protected'])
    op.create_index(op.f('ix_media_deleted_at'), 'media', ['deleted_at'])

    op.create_table(
        'tags',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=True),
        sa.Column('is_protected', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_hidden', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('parent', sa.Integer(), nullable=True),
        sa.Column('media_tags', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['parent'], ['tags.id'], name=op.f('fk_tags_parent_tags'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_tags')),
        sa.UniqueConstraint('name', name=op.f('uq_tags_name')),
    )
    op.create_index(op.f('ix_tags_type'), 'tags', ['type'])
    op.create_index(op.f('ix_tags_deleted_at'), 'tags', ['deleted_at'])

    op.create_table(
        'media_tags',
        sa.Column('media_id', sa.Integer(), nullable=False),
        sa.Column('tag_name', sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(['media_id'], ['media.id'], name=op.f('fk_media_tags_media_id_media'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tag_name'], ['tags.name'], name=op.f('fk_media_tags_tag_name_tags'), ondelete='CASCADE', onupdate='CASCADE'),
        sa.PrimaryKeyConstraint('media_id', 'tag_name', name=op.f('pk_media_tags')),
    )
    op.create_index(op.f('ix_media_tags_tag_name'), 'media_tags', ['tag_name'])

    op.create_table(
        'playlists',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('tags', sa.Text(), nullable=True),
        sa.Column('is_protected', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_playlists')),
    )

    op.create_table(
        'playlist_media',
        sa.Column('playlist_id', sa.Integer(), nullable=False),
        sa.Column('media_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['playlist_id'], ['playlists.id'], name=op.f('fk_playlist_media_playlist_id_playlists'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['media_id'], ['media.id'], name=op.f('fk_playlist_media_media_id_media'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('playlist_id', 'media_id', name=op.f('pk_playlist_media')),
    )

    op.create_table(
        'albums',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('cover_url', sa.String(length=1024), nullable=True),
        sa.Column('fallback_cover_url', sa.String(length=1024), nullable=True),
        sa.Column('parent', sa.Integer(), nullable=True),
        sa.Column('tags', sa.Text(), nullable=True),
        sa.Column('is_protected', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_hidden', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('online_album_urls', sa.JSON(), nullable=True),
        sa.Column('owner', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['parent'], ['albums.id'], name=op.f('fk_albums_parent_albums'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_albums')),
    )
    op.create_index(op.f('ix_albums_deleted_at'), 'albums', ['deleted_at'])

    op.create_table(
        'album_media',
        sa.Column('album_id', sa.Integer(), nullable=False),
        sa.Column('media_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['album_id'], ['albums.id'], name=op.f('fk_album_media_album_id_albums'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['media_id'], ['media.id'], name=op.f('fk_album_media_media_id_media'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('album_id', 'media_id', name=op.f('pk_album_media')),
    )

    op.create_table(
        'favorite_albums',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_identifier', sa.String(length=255), nullable=False),
        sa.Column('album_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['album_id'], ['albums.id'], name=op.f('fk_favorite_albums_album_id_albums'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_favorite_albums')),
    )
    op.create_index(op.f('ix_favorite_albums_user_identifier'), 'favorite_albums', ['user_identifier'])

    op.create_table(
        'favorites',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('media_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['media_id'], ['media.id'], name=op.f('fk_favorites_media_id_media'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_favorites')),
        sa.UniqueConstraint('user_id', 'media_id', name=op.f('uq_favorites_user_id')),
    )
    op.create_index(op.f('ix_favorites_user_id'), 'favorites', ['user_id'])


def downgrade():
    op.drop_table('favorites')
    op.drop_table('favorite_albums')
    op.drop_table('album_media')
    op.drop_table('albums')
    op.drop_table('playlist_media')
    op.drop_table('playlists')
    op.drop_table('media_tags')
    op.drop_table('tags')
    op.drop_table('media')
