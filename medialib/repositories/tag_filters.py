# File: medialib/repositories/tag_filters.py
"""
Predicate builders for "this row carries this tag".

Two representations are supported:

- the legacy comma-joined text column (``media.tags``, ``playlists.tags``),
  matched with a four-clause LIKE disjunction, and
- the normalized ``media_tags`` join table, matched exactly with EXISTS.

The comma-list matcher is substring based per clause and therefore loose:
``art`` matches ``smart,painting`` through ``%art,%``. Callers that need exact
membership use the join-table builders.
"""

from typing import Iterable, List, Optional

from sqlalchemy import and_, exists, func, not_, or_, select
from sqlalchemy.sql.elements import ColumnElement

from medialib.db.models.tag import MediaTag

LIKE_ESCAPE = "\\"


def parse_tag_list(raw: Optional[str]) -> List[str]:
    """
    Split a comma-separated request value into tag names.

    Names are trimmed and lower-cased, empties are dropped and duplicates
    removed keeping the first occurrence.
    """
    if not raw:
        return []
    seen = []
    for part in raw.split(","):
        name = part.strip().lower()
        if name and name not in seen:
            seen.append(name)
    return seen


def _escape_like(value: str) -> str:
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def comma_list_tag_clause(column, tag: str) -> ColumnElement:
    """
    OR of the four membership patterns for one tag.

    For lower-cased ``t``: ``%t,%``, ``%,t,%``, ``%,t`` and equality.
    """
    t = tag.strip().lower()
    lowered = func.lower(column)
    escaped = _escape_like(t)
    return or_(
        lowered.like(f"%{escaped},%", escape=LIKE_ESCAPE),
        lowered.like(f"%,{escaped},%", escape=LIKE_ESCAPE),
        lowered.like(f"%,{escaped}", escape=LIKE_ESCAPE),
        lowered == t,
    )


def comma_list_filter(
    column, tags: Iterable[str], match_all: bool = False
) -> Optional[ColumnElement]:
    """
    Combine per-tag clauses: AND when every tag is required, OR otherwise.

    Returns None for an empty tag list so callers can skip the predicate.
    """
    groups = [comma_list_tag_clause(column, t) for t in tags]
    if not groups:
        return None
    return and_(*groups) if match_all else or_(*groups)


def comma_list_exclusion(column, tags: Iterable[str]) -> Optional[ColumnElement]:
    """
    Rows carrying none of the tags. A NULL column carries none.
    """
    groups = [comma_list_tag_clause(column, t) for t in tags]
    if not groups:
        return None
    return or_(column.is_(None), not_(or_(*groups)))


def _media_tag_exists(media_id_column, names: List[str]):
    return exists(
        select(MediaTag.media_id).where(
            MediaTag.media_id == media_id_column,
            func.lower(MediaTag.tag_name).in_(names),
        )
    )


def join_table_filter(
    media_id_column, tags: Iterable[str], match_all: bool = False
) -> Optional[ColumnElement]:
    """
    Exact membership through ``media_tags``.

    Match any is a single EXISTS with IN; match all is one EXISTS per tag.
    """
    names = [t.strip().lower() for t in tags if t.strip()]
    if not names:
        return None
    if match_all:
        return and_(*[_media_tag_exists(media_id_column, [n]) for n in names])
    return _media_tag_exists(media_id_column, names)


def join_table_exclusion(media_id_column, tags: Iterable[str]) -> Optional[ColumnElement]:
    names = [t.strip().lower() for t in tags if t.strip()]
    if not names:
        return None
    return not_(_media_tag_exists(media_id_column, names))
