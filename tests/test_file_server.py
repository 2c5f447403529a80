# tests/test_file_server.py
import pytest

from medialib.core.exceptions import InvalidPathException


@pytest.fixture()
def files(tmp_path, media_root):
    (media_root / "photos").mkdir()
    (media_root / "photos" / "beach.jpg").write_bytes(b"fake jpeg bytes")
    (tmp_path / "secret.txt").write_text("outside the media root")


def test_serves_files_below_the_root(client, files):
    response = client.get("/file/photos/beach.jpg")
    assert response.status_code == 200
    assert response.content == b"fake jpeg bytes"


def test_missing_file_is_404(client, files):
    response = client.get("/file/photos/nope.jpg")
    assert response.status_code == 404
    assert response.json() == {"error": "File not found"}


def test_directory_is_404(client, files):
    assert client.get("/file/photos").status_code == 404


@pytest.mark.parametrize(
    "path",
    [
        "/file/..%2Fsecret.txt",
        "/file/photos%2F..%2F..%2Fsecret.txt",
        "/file/..%5Csecret.txt",
    ],
)
def test_paths_escaping_the_root_are_404(client, files, path):
    response = client.get(path)
    assert response.status_code == 404
    assert response.json() == {"error": "File not found"}


def test_absolute_path_outside_the_root_is_404(client, files, tmp_path):
    response = client.get(f"/file/{(tmp_path / 'secret.txt').as_posix()}")
    assert response.status_code == 404


def test_symlink_out_of_the_root_is_404(client, files, media_root, tmp_path):
    (media_root / "photos" / "shortcut.txt").symlink_to(tmp_path / "secret.txt")
    assert client.get("/file/photos/shortcut.txt").status_code == 404


def test_relative_rejects_links_out_of_the_root(storage, files, media_root, tmp_path):
    link = media_root / "photos" / "shortcut.txt"
    link.symlink_to(tmp_path / "secret.txt")

    assert storage.relative(media_root / "photos" / "beach.jpg") == "photos/beach.jpg"
    assert storage.display_path(link) == "photos/shortcut.txt"
    with pytest.raises(InvalidPathException):
        storage.relative(link)
