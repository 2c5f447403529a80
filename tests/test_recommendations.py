# tests/test_recommendations.py
import pytest

from medialib.core.config import settings
from medialib.db.models.base import utcnow
from medialib.repositories.tag_repository import TagRepository


@pytest.fixture()
def library(seed):
    """
    A small library around the "beach" stage:
    alice appears on three beach media, bob on one, the "summer" album on one.
    carol only appears on protected media.
    """
    for name, tag_type in (
        ("beach", "stage"),
        ("alice", "person"),
        ("bob", "person"),
        ("carol", "person"),
        ("summer", "album"),
        ("winter", "album"),
    ):
        seed.tag(name, type=tag_type)

    ids = {
        "one": seed.media("photos/one.jpg", tags="beach,alice"),
        "two": seed.media(
            "photos/two.jpg",
            tags="beach,alice,bob,summer",
            thumbnail_path="photos/thumbnails/thumb_two.jpg",
        ),
        "three": seed.media("photos/three.jpg", tags="beach,alice,sunset"),
        "secret": seed.media("photos/secret.jpg", tags="beach,carol", is_protected=True),
        "winter": seed.media("photos/winter.jpg", tags="winter,alice"),
    }
    return ids


def _names(body):
    return [entry["name"] for entry in body["data"]]


def test_stage_ranks_persons_then_albums_then_fallback(client, library):
    response = client.get("/tags/recommendations/beach")
    assert response.status_code == 200
    body = response.json()

    assert body["tag"] == "beach"
    assert body["type"] == "stage"
    names = _names(body)
    assert names[:3] == ["alice", "bob", "summer"]
    assert names[3:] == ["sunset"]


def test_recommendations_have_no_duplicates_and_never_the_seed(client, library):
    for seed_tag in ("beach", "alice", "summer", "sunset"):
        names = _names(client.get(f"/tags/recommendations/{seed_tag}").json())
        assert len(names) == len(set(names))
        assert seed_tag not in names


def test_counts_and_thumbnails(client, library):
    data = client.get("/tags/recommendations/beach").json()["data"]
    by_name = {entry["name"]: entry for entry in data}

    assert by_name["alice"]["count"] == 3
    assert by_name["alice"]["media_id"] == library["three"]
    assert by_name["summer"]["media_id"] == library["two"]
    assert by_name["summer"]["thumbnail"] == (
        f"{settings.public_file_base}/photos/thumbnails/thumb_two.jpg"
    )
    # No thumbnail column, so the file itself stands in
    assert by_name["alice"]["thumbnail"] == f"{settings.public_file_base}/photos/three.jpg"


def test_person_lists_albums_by_recency_then_stages(client, library):
    body = client.get("/tags/recommendations/alice").json()
    assert body["type"] == "person"
    names = _names(body)
    assert names[:3] == ["winter", "summer", "beach"]
    assert "sunset" in names


def test_album_branch_includes_albums_sharing_a_person(client, library):
    names = _names(client.get("/tags/recommendations/summer").json())
    assert names.index("beach") < names.index("alice") < names.index("winter")


def test_protected_media_only_for_admin_asking(client, login, library):
    names = _names(client.get("/tags/recommendations/beach").json())
    assert "carol" not in names

    login("viewer", role="viewer")
    names = _names(
        client.get("/tags/recommendations/beach", params={"is_protected": "true"}).json()
    )
    assert "carol" not in names

    login("owner", role="admin")
    assert "carol" not in _names(client.get("/tags/recommendations/beach").json())
    names = _names(
        client.get("/tags/recommendations/beach", params={"is_protected": "true"}).json()
    )
    assert names[:3] == ["alice", "bob", "carol"]


def test_seed_lookup_is_case_insensitive(client, library):
    body = client.get("/tags/recommendations/BEACH").json()
    assert body["tag"] == "beach"
    assert body["type"] == "stage"


def test_unknown_tag_gets_fallback_only(client, library):
    body = client.get("/tags/recommendations/nothing-like-it").json()
    assert body["type"] is None
    assert _names(body) == ["sunset"]


def test_albums_sharing_person_only_count_visible_media(session, seed, library):
    for name, tag_type in (
        ("dave", "person"),
        ("erin", "person"),
        ("autumn", "album"),
        ("spring", "album"),
    ):
        seed.tag(name, type=tag_type)
    # dave met the summer album only on a deleted media, erin only on a protected one
    seed.media("photos/gone.jpg", tags="summer,dave", deleted_at=utcnow())
    seed.media("photos/fall.jpg", tags="autumn,dave")
    seed.media("photos/private.jpg", tags="summer,erin", is_protected=True)
    seed.media("photos/spring.jpg", tags="spring,erin")

    repo = TagRepository(session)
    public = [r.name for r in repo.albums_sharing_person("summer", 10)]
    assert public == ["winter"]

    private = [r.name for r in repo.albums_sharing_person("summer", 10, include_protected=True)]
    assert sorted(private) == ["spring", "winter"]
