# tests/test_tags.py
from sqlalchemy import select

from medialib.core.security import ANONYMOUS, AuthContext
from medialib.db.models.base import utcnow
from medialib.db.models.tag import MediaTag, Tag
from medialib.services.tag_service import TagService

ADMIN = AuthContext(is_authenticated=True, role="admin", user_id="admin")


def _tag(session, name):
    return session.execute(select(Tag).where(Tag.name == name)).scalar_one_or_none()


# --- Reconciliation jobs ---

def test_populate_tags_creates_once(session, seed):
    seed.media("a.jpg", tags="Cats, dogs", register=False)
    seed.media("b.jpg", tags="dogs,birds", register=False)
    service = TagService(session)

    first = service.populate_tags()
    assert first["createdTags"] == ["Cats", "dogs", "birds"]
    assert first["restoredCount"] == 0
    assert _tag(session, "Cats").is_hidden is True

    second = service.populate_tags()
    assert second["createdCount"] == 0
    assert second["restoredCount"] == 0


def test_populate_tags_restores_soft_deleted(session, seed):
    seed.media("a.jpg", tags="cats", register=False)
    seed.tag("cats")
    service = TagService(session)
    service.delete_tag(_tag(session, "cats").id)

    result = service.populate_tags()
    assert result["restoredTags"] == ["cats"]
    assert _tag(session, "cats").deleted_at is None


def test_populate_tags_honours_start_id(session, seed):
    seed.media("a.jpg", tags="early", register=False)
    later = seed.media("b.jpg", tags="late", register=False)

    result = TagService(session).populate_tags(start_id=later)
    assert result["createdTags"] == ["late"]


def test_populate_tags_ignores_deleted_media(session, seed):
    seed.media("a.jpg", tags="ghost", register=False, deleted_at=utcnow())
    assert TagService(session).populate_tags()["createdCount"] == 0


def test_sync_media_tags_links_registered_names_only(session, seed):
    media_id = seed.media("a.jpg", tags="known,unknown", register=False)
    seed.tag("known")
    service = TagService(session)

    assert service.sync_media_tags() == {"scannedCount": 1, "insertedCount": 1}
    assert service.sync_media_tags()["insertedCount"] == 0

    links = session.execute(
        select(MediaTag.tag_name).where(MediaTag.media_id == media_id)
    ).scalars().all()
    assert links == ["known"]


def test_check_tags_soft_deletes_unused(session, seed):
    seed.media("a.jpg", tags="smart,painting")
    seed.tag("orphan")
    seed.tag("art")
    service = TagService(session)

    result = service.check_tags()

    # "art" survives: the comma-list matcher finds it inside "smart,"
    assert result["deletedTags"] == ["orphan"]
    assert _tag(session, "orphan").deleted_at is not None
    assert _tag(session, "art").deleted_at is None


# --- Listing ---

def test_list_tags_hides_protected_and_hidden(session, seed):
    seed.tag("public")
    seed.tag("secret", is_protected=True)
    seed.tag("internal", is_hidden=True)
    service = TagService(session)

    names = [t["name"] for t in service.list_tags(ANONYMOUS, is_protected=True)["data"]]
    assert names == ["public"]

    names = [t["name"] for t in service.list_tags(ADMIN)["data"]]
    assert names == ["public", "secret"]

    names = [t["name"] for t in service.list_tags(ADMIN, is_hidden=True)["data"]]
    assert names == ["internal"]


def test_list_tags_popularity_and_thumbnails(session, seed):
    seed.media("one.jpg", tags="rare,common")
    seed.media("two.jpg", tags="common", thumbnail_path="thumbnails/thumb_two.jpg")
    seed.media("three.jpg", tags="common", is_protected=True)

    page = TagService(session).list_tags(ANONYMOUS, popularity=True, check_media=True)
    names = [(t["name"], t["media_count"]) for t in page["data"]]
    # Counts include protected media; thumbnails never show them to anonymous callers
    assert names == [("common", 3), ("rare", 1)]
    common = page["data"][0]
    assert common["thumbnail"].endswith("/thumbnails/thumb_two.jpg")


def test_list_tags_by_type(client, seed):
    seed.tag("alice", type="person")
    seed.tag("beach", type="stage")

    body = client.get("/tags", params={"type": "person"}).json()
    assert [t["name"] for t in body["data"]] == ["alice"]
    assert body["count"] == 1


def test_list_tags_rejects_unknown_sort(client):
    response = client.get("/tags", params={"sort_by": "media_tags"})
    assert response.status_code == 400


# --- Editing ---

def test_update_tag(admin_client, seed):
    tag_id = seed.tag("alice")
    parent_id = seed.tag("people")

    response = admin_client.put(f"/tags/{tag_id}", json={"type": "person", "parent": parent_id})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["type"] == "person"
    assert data["parent"] == parent_id


def test_update_tag_validation(admin_client, seed):
    tag_id = seed.tag("alice")

    assert admin_client.put(f"/tags/{tag_id}", json={"parent": tag_id}).status_code == 400
    assert admin_client.put(f"/tags/{tag_id}", json={"parent": 999}).status_code == 404
    assert admin_client.put(f"/tags/{tag_id}", json={"name": "bob"}).status_code == 400
    assert admin_client.put("/tags/999", json={"type": "person"}).status_code == 404


def test_delete_tag(admin_client, seed):
    tag_id = seed.tag("alice")

    assert admin_client.delete(f"/tags/{tag_id}").status_code == 200
    assert admin_client.delete(f"/tags/{tag_id}").status_code == 404
    assert admin_client.get("/tags").json()["count"] == 0


def test_tag_jobs_over_http(admin_client, seed):
    seed.media("a.jpg", tags="one,two", register=False)
    seed.media("b.jpg", tags="three", register=False)

    populate = admin_client.post("/tags/populate", json={"startId": 0})
    assert populate.status_code == 200
    assert populate.json()["createdCount"] == 3

    again = admin_client.post("/tags/populate")
    assert again.json()["createdCount"] == 0

    sync = admin_client.post("/tags/sync-media-tags").json()
    assert sync["insertedCount"] == 3

    check = admin_client.post("/tags/check-tags").json()
    assert check["deletedCount"] == 0


def test_tag_jobs_require_authentication(client):
    assert client.post("/tags/populate").status_code == 403
    assert client.post("/tags/check-tags").status_code == 403
