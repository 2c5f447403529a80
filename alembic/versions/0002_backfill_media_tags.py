"""Backfill media_tags from the comma-joined media.tags column

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18 09:30:00.000000

Registers every tag name found on live media and links it in media_tags.
Names are trimmed; empty entries are dropped. Existing rows are kept.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0002'
down_revision: Union[str, None] = '0001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    bind = op.get_bind()
    media = sa.table(
        'media',
        sa.column('id', sa.Integer),
        sa.column('tags', sa.Text),
        sa.column('deleted_at', sa.DateTime),
    )
    tags = sa.table(
        'tags',
        sa.column('name', sa.String),
        sa.column('is_hidden', sa.Boolean),
        sa.column('is_protected', sa.Boolean),
    )
    media_tags = sa.table(
        'media_tags',
        sa.column('media_id', sa.Integer),
        sa.column('tag_name', sa.String),
    )

    rows = bind.execute(
        sa.select(media.c.id, media.c.tags).where(
            media.c.deleted_at.is_(None), media.c.tags.isnot(None)
        )
    ).all()

    pairs = set()
    for media_id, raw in rows:
        for name in raw.split(','):
            name = name.strip()
            if name:
                pairs.add((media_id, name))

    known = set(bind.execute(sa.select(tags.c.name)).scalars().all())
    new_names = sorted({name for _, name in pairs} - known)
    if new_names:
        op.bulk_insert(
            tags,
            [{'name': n, 'is_hidden': True, 'is_protected': False} for n in new_names],
        )

    linked = set(bind.execute(sa.select(media_tags.c.media_id, media_tags.c.tag_name)).all())
    missing = sorted(pairs - linked)
    if missing:
        op.bulk_insert(
            media_tags,
            [{'media_id': m, 'tag_name': n} for m, n in missing],
        )


def downgrade():
    op.execute(sa.text('DELETE FROM media_tags'))
