# tests/test_url_service.py
from medialib.services.url_service import file_url, pick_thumbnail, rewrite_media_paths

BASE = "http://media.local:5002/file"


def test_file_url_normalizes_separators():
    assert file_url("photos\\2024\\a.jpg", BASE) == f"{BASE}/photos/2024/a.jpg"
    assert file_url("/photos/a.jpg", BASE) == f"{BASE}/photos/a.jpg"


def test_rewrite_local_row():
    row = {
        "id": 1,
        "server_location": "local",
        "file_path": "photos/a.jpg",
        "thumbnail_path": "photos/thumbnails/thumb_a.jpg",
        "thumbnail_md": "",
        "thumbnail_lg": None,
    }
    rewritten = rewrite_media_paths(row, BASE)

    assert rewritten["file_path"] == f"{BASE}/photos/a.jpg"
    assert rewritten["thumbnail_path"] == f"{BASE}/photos/thumbnails/thumb_a.jpg"
    assert rewritten["thumbnail_md"] == ""
    assert rewritten["thumbnail_lg"] is None
    # The input row is left untouched
    assert row["file_path"] == "photos/a.jpg"


def test_remote_rows_are_not_rewritten():
    row = {"server_location": "nas-2", "file_path": "smb://nas-2/a.jpg"}
    assert rewrite_media_paths(row, BASE) == row


def test_pick_thumbnail_preference():
    assert pick_thumbnail({"thumbnail_path": "s", "thumbnail_md": "m", "file_path": "f"}) == "s"
    assert pick_thumbnail({"thumbnail_path": None, "thumbnail_md": "m", "file_path": "f"}) == "m"
    assert pick_thumbnail({"thumbnail_path": "", "file_path": "f"}) == "f"
    assert pick_thumbnail(None) is None
