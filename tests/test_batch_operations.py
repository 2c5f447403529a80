# tests/test_batch_operations.py
from sqlalchemy import select

from medialib.db.models.media import Media
from medialib.db.models.tag import MediaTag


def _media_by_path(seed, file_path):
    def query(session):
        media = session.execute(
            select(Media).where(Media.file_path == file_path)
        ).scalar_one_or_none()
        return media.to_dict() if media is not None else None

    return seed.read(query)


def _media_tag_names(seed, media_id):
    return seed.read(
        lambda session: sorted(
            session.execute(
                select(MediaTag.tag_name).where(MediaTag.media_id == media_id)
            ).scalars()
        )
    )


def test_batch_endpoints_require_authentication(client):
    response = client.post("/medias/batch", json=[{"file_path": "a.jpg"}])
    assert response.status_code == 403
    assert response.json() == {"error": "Unauthorized"}


def test_insert_reports_duplicates_per_element(admin_client, seed):
    seed.media("existing.jpg")

    response = admin_client.post(
        "/medias/batch",
        json=[
            {"file_path": "new_1.jpg", "file_type": "photo", "tags": "beach,sunset"},
            {"file_path": "existing.jpg", "file_type": "photo"},
            {"file_path": "new_2.jpg", "file_type": "photo"},
        ],
    )

    assert response.status_code == 201
    body = response.json()
    assert [item["file_path"] for item in body["data"]] == ["new_1.jpg", "new_2.jpg"]
    assert len(body["failedInserts"]) == 1
    assert body["failedInserts"][0]["file_path"] == "existing.jpg"
    assert body["failedInserts"][0]["reason"]

    inserted = _media_by_path(seed, "new_1.jpg")
    assert inserted is not None
    assert _media_tag_names(seed, inserted["id"]) == ["beach", "sunset"]
    assert _media_by_path(seed, "new_2.jpg") is not None


def test_insert_rejects_invalid_elements_only(admin_client):
    response = admin_client.post(
        "/medias/batch",
        json=[
            {"file_path": "ok.jpg"},
            {"file_path": "bad.jpg", "file_type": "hologram"},
            "not an object",
        ],
    )
    body = response.json()
    assert [item["file_path"] for item in body["data"]] == ["ok.jpg"]
    assert len(body["failedInserts"]) == 2


def test_soft_deleted_path_stays_reserved(admin_client, seed):
    seed.media("gone.jpg")
    admin_client.request("DELETE", "/medias/batch", json=[{"file_path": "gone.jpg"}])

    response = admin_client.post("/medias/batch", json=[{"file_path": "gone.jpg"}])
    assert response.status_code == 201
    assert response.json()["data"] == []
    assert len(response.json()["failedInserts"]) == 1


def test_update_changes_only_provided_fields(admin_client, seed):
    media_id = seed.media("clip.mp4", file_type="video", title="Old", tags="one")

    response = admin_client.put(
        "/medias/batch",
        json=[{"id": media_id, "title": "New", "tags": "two,three"}, {"id": 9999, "title": "x"}],
    )

    assert response.status_code == 200
    body = response.json()
    assert len(body["data"]) == 1
    assert body["failedUpdates"][0]["id"] == 9999

    updated = _media_by_path(seed, "clip.mp4")
    assert updated["title"] == "New"
    assert updated["file_type"] == "video"
    assert _media_tag_names(seed, media_id) == ["three", "two"]


def test_delete_soft_deletes_and_reports_unknown_paths(admin_client, seed):
    seed.media("keep.jpg")
    seed.media("drop.jpg")

    response = admin_client.request(
        "DELETE",
        "/medias/batch",
        json=[{"file_path": "drop.jpg"}, {"file_path": "missing.jpg"}],
    )

    body = response.json()
    assert body["data"] == [{"file_path": "drop.jpg"}]
    assert body["failedDeletes"][0]["file_path"] == "missing.jpg"
    assert _media_by_path(seed, "drop.jpg")["deleted_at"] is not None

    listing = admin_client.get("/medias").json()
    assert [m["title"] for m in listing["data"]] == ["keep.jpg"]


def test_batch_tag_add_and_remove_are_case_insensitive(admin_client, seed):
    first = seed.media("a.jpg", tags="Beach")
    second = seed.media("b.jpg", tags="forest")

    response = admin_client.put(
        "/medias/batch/tags",
        json={"ids": [first, second, 4242], "tags": "beach, Sunset"},
    )
    body = response.json()
    assert body["data"] == [first, second]
    assert body["failedUpdates"] == [{"id": 4242, "reason": "Media with ID 4242 not found"}]
    assert _media_by_path(seed, "a.jpg")["tags"] == "Beach,Sunset"
    assert _media_by_path(seed, "b.jpg")["tags"] == "forest,beach,Sunset"

    response = admin_client.request(
        "DELETE", "/medias/batch/tags", json={"ids": [first, second], "tags": "SUNSET"}
    )
    assert response.json()["failedDeletes"] == []
    assert _media_by_path(seed, "a.jpg")["tags"] == "Beach"
    assert _media_tag_names(seed, second) == ["beach", "forest"]


def test_batch_tags_require_a_string(admin_client, seed):
    media_id = seed.media("a.jpg")
    response = admin_client.put("/medias/batch/tags", json={"ids": [media_id], "tags": 5})
    assert response.status_code == 400


def test_batch_protection(admin_client, seed):
    media_id = seed.media("a.jpg")
    response = admin_client.put(
        "/medias/batch/protected", json={"ids": [media_id], "is_protected": True}
    )
    assert response.json()["data"] == [media_id]
    assert _media_by_path(seed, "a.jpg")["is_protected"] is True


def test_delete_with_data_removes_files(admin_client, seed, media_root):
    photos = media_root / "photos"
    (photos / "thumbnails").mkdir(parents=True)
    (photos / "pic.jpg").write_bytes(b"jpeg")
    (photos / "thumbnails" / "thumb_pic.jpg").write_bytes(b"thumb")
    media_id = seed.media(
        "photos/pic.jpg", thumbnail_path="photos/thumbnails/thumb_pic.jpg"
    )

    response = admin_client.delete(f"/medias/{media_id}", params={"deleteWithData": "true"})

    assert response.status_code == 200
    assert response.json()["removedFiles"] == [
        "photos/pic.jpg",
        "photos/thumbnails/thumb_pic.jpg",
    ]
    assert not (photos / "pic.jpg").exists()
    assert _media_by_path(seed, "photos/pic.jpg") is None


def test_delete_single_soft_deletes_and_404s_after(admin_client, seed):
    media_id = seed.media("a.jpg")
    assert admin_client.delete(f"/medias/{media_id}").status_code == 200
    assert _media_by_path(seed, "a.jpg")["deleted_at"] is not None

    response = admin_client.delete(f"/medias/{media_id}")
    assert response.status_code == 404
    assert "not found" in response.json()["error"]


def test_check_files_finds_and_optionally_deletes_missing(admin_client, seed, media_root):
    (media_root / "here.jpg").write_bytes(b"x")
    seed.media("here.jpg")
    seed.media("lost.jpg")
    seed.media("https://cdn.example.com/remote.jpg", server_location="cdn")

    report = admin_client.get("/medias/check-files").json()
    assert report["checkedCount"] == 2
    assert [m["file_path"] for m in report["missing"]] == ["lost.jpg"]
    assert report["deletedCount"] == 0

    report = admin_client.get("/medias/check-files", params={"deleteMissing": "true"}).json()
    assert report["deletedCount"] == 1
    assert _media_by_path(seed, "lost.jpg")["deleted_at"] is not None


def test_media_favorites(admin_client, seed):
    media_id = seed.media("fav.jpg")

    response = admin_client.post("/medias/favorite", json={"media_id": media_id})
    assert response.status_code == 201

    duplicate = admin_client.post("/medias/favorite", json={"media_id": media_id})
    assert duplicate.status_code == 409

    missing = admin_client.post("/medias/favorite", json={"media_id": 777})
    assert missing.status_code == 404

    favorites = admin_client.get("/medias/favorites").json()["data"]
    assert [m["id"] for m in favorites] == [media_id]

    assert admin_client.delete(f"/medias/favorite/{media_id}").status_code == 200
    assert admin_client.get("/medias/favorites").json()["data"] == []
    assert admin_client.delete(f"/medias/favorite/{media_id}").status_code == 404
