# tests/test_tag_filters.py
import pytest

from medialib.repositories.media_repository import (
    TAG_SOURCE_COMMA_LIST,
    TAG_SOURCE_JOIN_TABLE,
    MediaQuery,
    MediaRepository,
)
from medialib.repositories.tag_filters import parse_tag_list


def test_parse_tag_list_trims_lowercases_and_dedupes():
    assert parse_tag_list(" Beach, SUNSET ,,beach ") == ["beach", "sunset"]
    assert parse_tag_list(None) == []
    assert parse_tag_list("") == []


def _paths(session, **kwargs):
    rows, total = MediaRepository(session).list_media(MediaQuery(limit=100, **kwargs))
    assert total == len(rows)
    return sorted(m.file_path for m in rows)


@pytest.fixture()
def tagged(seed):
    seed.media("a.jpg", tags="smart,painting")
    seed.media("b.jpg", tags="art")
    seed.media("c.jpg", tags="Sculpture,Art")
    seed.media("d.jpg", tags=None)


def test_comma_list_matcher_matches_substrings_before_a_comma(session, tagged):
    # "art" is found inside "smart," by the leading pattern
    paths = _paths(session, tags=["art"], tag_source=TAG_SOURCE_COMMA_LIST)
    assert paths == ["a.jpg", "b.jpg", "c.jpg"]


def test_join_table_matcher_is_exact(session, tagged):
    paths = _paths(session, tags=["art"], tag_source=TAG_SOURCE_JOIN_TABLE)
    assert paths == ["b.jpg", "c.jpg"]


@pytest.mark.parametrize("source", [TAG_SOURCE_COMMA_LIST, TAG_SOURCE_JOIN_TABLE])
def test_match_all_requires_every_tag(session, tagged, source):
    def paths(tags, match_all):
        return _paths(session, tags=tags, match_all_tags=match_all, tag_source=source)

    assert paths(["sculpture", "art"], True) == ["c.jpg"]
    assert paths(["sculpture", "painting"], True) == []
    assert paths(["sculpture", "painting"], False) == ["a.jpg", "c.jpg"]


def test_comma_list_match_all_keeps_substring_matches(session, tagged):
    # every tag is required, each still matched loosely
    assert _paths(
        session, tags=["art", "painting"], match_all_tags=True, tag_source=TAG_SOURCE_COMMA_LIST
    ) == ["a.jpg"]
    assert _paths(
        session, tags=["art", "painting"], match_all_tags=True, tag_source=TAG_SOURCE_JOIN_TABLE
    ) == []


@pytest.mark.parametrize("source", [TAG_SOURCE_COMMA_LIST, TAG_SOURCE_JOIN_TABLE])
def test_exclusion_keeps_untagged_rows(session, tagged, source):
    paths = _paths(session, tag_exclude=["art"], tag_source=source)
    assert "d.jpg" in paths
    assert "b.jpg" not in paths
    assert "c.jpg" not in paths


def test_like_wildcards_in_tag_names_are_literal(session, seed):
    seed.media("under.jpg", tags="a_b")
    seed.media("other.jpg", tags="axb")
    assert _paths(session, tags=["a_b"], tag_source=TAG_SOURCE_COMMA_LIST) == ["under.jpg"]
    assert _paths(session, tags=["%"], tag_source=TAG_SOURCE_COMMA_LIST) == []
