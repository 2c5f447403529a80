# tests/test_media_listing.py
from medialib.core.config import settings


def _seed_many(seed, count, **fields):
    return [seed.media(f"photos/img_{i:03d}.jpg", **fields) for i in range(count)]


def test_pagination_links_and_count(client, seed):
    _seed_many(seed, 25)

    first = client.get("/medias", params={"limit": 10})
    assert first.status_code == 200
    body = first.json()
    assert body["count"] == 25
    assert len(body["data"]) == 10
    assert body["next"] == 2
    assert body["prev"] is None

    last = client.get("/medias", params={"limit": 10, "page": 3}).json()
    assert len(last["data"]) == 5
    assert last["next"] is None
    assert last["prev"] == 2


def test_default_sort_is_ascending_id(client, seed):
    ids = _seed_many(seed, 3)
    data = client.get("/medias").json()["data"]
    assert [m["id"] for m in data] == ids

    data = client.get("/medias", params={"sort_by": "id", "sort_order": "desc"}).json()["data"]
    assert [m["id"] for m in data] == list(reversed(ids))


def test_invalid_sort_is_rejected(client, seed):
    seed.media("a.jpg")
    response = client.get("/medias", params={"sort_by": "id; DROP TABLE media"})
    assert response.status_code == 400
    assert "sort_by" in response.json()["error"]

    response = client.get("/medias", params={"sort_order": "sideways"})
    assert response.status_code == 400


def test_invalid_page_is_a_validation_error(client):
    response = client.get("/medias", params={"page": 0})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid data format"


def test_protected_media_hidden_from_anonymous_and_non_admins(client, login, seed):
    seed.media("public.jpg")
    seed.media("private.jpg", is_protected=True)

    anonymous = client.get("/medias", params={"is_protected": "true"}).json()
    assert [m["title"] for m in anonymous["data"]] == ["public.jpg"]

    login("viewer", role="viewer")
    viewer = client.get("/medias", params={"is_protected": "true"}).json()
    assert [m["title"] for m in viewer["data"]] == ["public.jpg"]

    login("owner", role="admin")
    admin = client.get("/medias", params={"is_protected": "true"}).json()
    assert [m["title"] for m in admin["data"]] == ["private.jpg"]
    both = client.get("/medias").json()
    assert both["count"] == 2


def test_token_without_role_gets_default_role(client, login, seed):
    seed.media("private.jpg", is_protected=True)
    login("someone")
    data = client.get("/medias", params={"is_protected": "true"}).json()["data"]
    assert settings.AUTH_DEFAULT_ROLE == "admin"
    assert len(data) == 1


def test_bad_token_is_anonymous(client, seed):
    seed.media("private.jpg", is_protected=True)
    client.cookies.set(settings.COOKIE_NAME, "not-a-token")
    response = client.get("/medias")
    assert response.status_code == 200
    assert response.json()["count"] == 0


def test_tag_filters(client, seed):
    seed.media("one.jpg", tags="beach,sunset")
    seed.media("two.jpg", tags="beach")
    seed.media("three.jpg", tags="forest")

    def titles(**params):
        return sorted(m["title"] for m in client.get("/medias", params=params).json()["data"])

    assert titles(tags="beach,sunset") == ["one.jpg", "two.jpg"]
    assert titles(tags="beach,sunset", match_all_tags="true") == ["one.jpg"]
    assert titles(tags="BEACH") == ["one.jpg", "two.jpg"]
    assert titles(tag_exclude="sunset") == ["three.jpg", "two.jpg"]


def test_file_type_filter(client, seed):
    seed.media("clip.mp4", file_type="video")
    seed.media("pic.jpg", file_type="photo")
    seed.media("song.mp3", file_type="music")

    data = client.get("/medias", params={"file_type": "video,music"}).json()["data"]
    assert sorted(m["title"] for m in data) == ["clip.mp4", "song.mp3"]


def test_local_paths_are_rewritten_to_urls(client, seed):
    seed.media(
        "photos/beach.jpg",
        thumbnail_path="photos/thumbnails/thumb_beach.jpg",
    )
    seed.media("https://cdn.example.com/remote.jpg", server_location="cdn")

    data = client.get("/medias").json()["data"]
    local, remote = data
    base = settings.public_file_base
    assert local["file_path"] == f"{base}/photos/beach.jpg"
    assert local["thumbnail_path"] == f"{base}/photos/thumbnails/thumb_beach.jpg"
    assert local["thumbnail_md"] is None
    assert remote["file_path"] == "https://cdn.example.com/remote.jpg"


def test_random_listing_returns_every_row_once(client, seed):
    ids = _seed_many(seed, 5)
    data = client.get("/medias", params={"is_random": "true"}).json()["data"]
    assert sorted(m["id"] for m in data) == ids


def test_listing_is_cached_until_a_write(admin_client, seed):
    seed.media("first.jpg")
    assert admin_client.get("/medias").json()["count"] == 1

    # Written behind the service's back, so the cached page is still served
    seed.media("second.jpg")
    assert admin_client.get("/medias").json()["count"] == 1

    response = admin_client.post("/medias/batch", json=[{"file_path": "third.jpg"}])
    assert response.status_code == 201
    assert admin_client.get("/medias").json()["count"] == 3
