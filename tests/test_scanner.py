# tests/test_scanner.py
import pytest
from PIL import Image
from sqlalchemy import select

from medialib.core.exceptions import InvalidPathException
from medialib.db.models.media import Media
from medialib.db.models.tag import MediaTag
from medialib.services.media_scanner_service import (
    MediaScannerService,
    scan_directories,
    tags_from_path,
)
from medialib.services.thumbnail_service import ThumbnailService

SIZES = {"sm": 40, "md": 80, "lg": 160}


def _image(path, exif_datetime=None):
    path.parent.mkdir(parents=True, exist_ok=True)
    image = Image.new("RGB", (64, 48), (10, 120, 200))
    if exif_datetime:
        exif = Image.Exif()
        exif[306] = exif_datetime
        image.save(path, exif=exif)
    else:
        image.save(path)
    return path


@pytest.fixture()
def scanner(session, storage):
    return MediaScannerService(
        session,
        storage=storage,
        thumbnail_service=ThumbnailService(storage, ffmpeg_path="/nonexistent/ffmpeg", sizes=SIZES),
        ffprobe_path="/nonexistent/ffprobe",
    )


def test_tags_from_path():
    assert tags_from_path("trips/photo/Italy/rome_001.jpg") == ["trips", "italy", "rome"]
    assert tags_from_path("trips/photo/Italy/rome_001.jpg", ["trips"]) == ["italy", "rome"]
    assert tags_from_path("C:\\Trips\\video\\beach.mp4") == ["trips"]
    assert tags_from_path("italy/Italy_day1.jpg") == ["italy"]
    assert tags_from_path("plain.jpg") == []


def test_scan_directories_lists_subdirectories(storage, media_root):
    (media_root / "photos" / "2024" / "thumbnails").mkdir(parents=True)
    (media_root / "photos" / "2025").mkdir()
    (media_root / "music").mkdir()

    assert scan_directories(storage, "photos") == ["photos/2024", "photos/2025"]
    assert scan_directories(storage, None) == [
        "music",
        "photos",
        "photos/2024",
        "photos/2025",
    ]
    with pytest.raises(InvalidPathException):
        scan_directories(storage, "../")


def test_scan_indexes_photos_with_thumbnails_and_tags(scanner, session, media_root):
    _image(media_root / "Trips" / "Italy" / "rome_001.jpg", exif_datetime="2021:06:01 10:30:00")
    _image(media_root / "Trips" / "Italy" / "florence.png")
    (media_root / "Trips" / "Italy" / "notes.txt").write_text("ignored")
    _image(media_root / "Trips" / "Italy" / "deeper" / "venice.jpg")

    result = scanner.scan("Trips", recursive=True, tags="holiday", use_directory_tags=True)

    assert result["scannedCount"] == 3
    assert result["insertedCount"] == 3
    assert result["errors"] == []

    rows = {
        m.file_path: m for m in session.execute(select(Media)).scalars().all()
    }
    rome = rows["Trips/Italy/rome_001.jpg"]
    assert rome.file_type == "photo"
    assert rome.title == "rome_001"
    assert rome.tags == "trips,italy,rome,holiday"
    assert rome.thumbnail_path == "Trips/Italy/thumbnails/thumb_rome_001.jpg"
    assert rome.thumbnail_lg == "Trips/Italy/thumbnails/thumb_rome_001_lg.jpg"
    assert rome.created_at.year == 2021
    assert (media_root / rome.thumbnail_md).is_file()
    assert rows["Trips/Italy/deeper/venice.jpg"].tags == "trips,italy,deeper,holiday"

    links = session.execute(
        select(MediaTag.tag_name).where(MediaTag.media_id == rome.id)
    ).scalars().all()
    assert sorted(links) == ["holiday", "italy", "rome", "trips"]


def test_rescan_skips_known_paths(scanner, media_root):
    _image(media_root / "photos" / "a.jpg")
    scanner.scan("photos")

    _image(media_root / "photos" / "b.jpg")
    result = scanner.scan("photos")
    assert result["inserted"] == ["photos/b.jpg"]
    assert result["skipped"] == ["photos/a.jpg"]


def test_non_recursive_scan_stays_in_the_folder(scanner, media_root):
    _image(media_root / "photos" / "top.jpg")
    _image(media_root / "photos" / "sub" / "inner.jpg")

    result = scanner.scan("photos", is_protected=True)
    assert result["inserted"] == ["photos/top.jpg"]


def test_unreadable_files_are_reported_not_fatal(scanner, session, media_root):
    _image(media_root / "mixed" / "ok.jpg")
    (media_root / "mixed" / "clip.mp4").write_bytes(b"\x00\x00\x00\x18ftyp")

    result = scanner.scan("mixed")

    assert result["inserted"] == ["mixed/ok.jpg"]
    assert [e["file"] for e in result["errors"]] == ["mixed/clip.mp4"]
    assert "ffprobe" in result["errors"][0]["reason"]
    assert session.execute(select(Media.file_path)).scalars().all() == ["mixed/ok.jpg"]


def test_links_leaving_the_root_are_reported_not_fatal(scanner, session, media_root, tmp_path):
    outside = _image(tmp_path / "outside" / "secret.jpg")
    _image(media_root / "photos" / "kept.jpg")
    (media_root / "photos" / "link.jpg").symlink_to(outside)
    (media_root / "photos" / "away").symlink_to(outside.parent, target_is_directory=True)

    result = scanner.scan("photos", recursive=True)

    assert result["inserted"] == ["photos/kept.jpg"]
    assert [e["file"] for e in result["errors"]] == ["photos/link.jpg"]
    assert "outside the media root" in result["errors"][0]["reason"]
    assert session.execute(select(Media.file_path)).scalars().all() == ["photos/kept.jpg"]


def test_recursive_scan_survives_directory_cycles(scanner, storage, media_root):
    _image(media_root / "photos" / "only.jpg")
    (media_root / "photos" / "loop").symlink_to(media_root / "photos", target_is_directory=True)

    result = scanner.scan("photos", recursive=True)

    assert result["scannedCount"] == 1
    assert result["inserted"] == ["photos/only.jpg"]
    assert result["errors"] == []
    assert scan_directories(storage, "photos") == []


def test_scan_media_endpoint(admin_client, client, media_root):
    _image(media_root / "inbox" / "new.jpg")

    response = admin_client.post(
        "/utils/scan-media",
        params={"directoryPath": "inbox", "tags": "unsorted", "isProtected": "true"},
    )
    assert response.status_code == 200
    assert response.json()["inserted"] == ["inbox/new.jpg"]

    media = admin_client.get("/medias", params={"tags": "unsorted"}).json()["data"]
    assert len(media) == 1
    assert media[0]["is_protected"] is True

    assert admin_client.post("/utils/scan-media").status_code == 400
    client.cookies.clear()
    assert client.post("/utils/scan-media", params={"directoryPath": "inbox"}).status_code == 403


def test_scan_dir_endpoint(admin_client, media_root):
    (media_root / "photos" / "2024").mkdir(parents=True)

    response = admin_client.get("/utils/scan-dir", params={"directoryPath": "photos"})
    assert response.json() == {
        "message": "Directories scanned successfully",
        "dir": ["photos/2024"],
    }
