# tests/test_video_optimizer.py
import json

import pytest
from sqlalchemy import select

from medialib import cli
from medialib.core.config import settings
from medialib.db.models.media import Media
from medialib.services.video_optimizer_service import VideoOptimizerService, append_log

# Copies the input to the last argument; inputs named *broken* fail after
# writing a partial file. Every call is recorded in calls.log.
FAKE_FFMPEG = """#!/bin/sh
echo "$@" >> "$(dirname "$0")/calls.log"
in=""
out=""
while [ $# -gt 0 ]; do
  case "$1" in
    -i) in="$2"; shift 2 ;;
    *) out="$1"; shift ;;
  esac
done
case "$in" in
  *broken*) echo partial > "$out"; echo "moov atom not found" >&2; exit 1 ;;
esac
cp "$in" "$out"
"""


@pytest.fixture()
def fake_ffmpeg(tmp_path):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    script = bin_dir / "ffmpeg"
    script.write_text(FAKE_FFMPEG)
    script.chmod(0o755)
    return script


@pytest.fixture()
def optimizer(session, storage, fake_ffmpeg):
    return VideoOptimizerService(session, storage, ffmpeg_path=str(fake_ffmpeg))


def _touch(path, data=b"mov bytes"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def test_converts_mov_files_beside_the_original(optimizer, media_root, fake_ffmpeg):
    _touch(media_root / "videos" / "clip.MOV")
    _touch(media_root / "videos" / "trip" / "beach.mov")
    _touch(media_root / "videos" / "photo.jpg")

    result = optimizer.optimize_directory("videos")

    assert result["converted"] == ["videos/clip.MOV", "videos/trip/beach.mov"]
    assert result["convertedCount"] == 2
    assert result["failed"] == []
    assert (media_root / "videos" / "clip.mp4").read_bytes() == b"mov bytes"
    assert (media_root / "videos" / "clip.MOV").exists()
    assert (media_root / "videos" / "trip" / "beach.mp4").exists()

    log = json.loads((media_root / "videos" / "success.json").read_text())
    assert log == [{"filePath": "videos/clip.MOV", "reason": None}]

    calls = (fake_ffmpeg.parent / "calls.log").read_text()
    assert "-c:v libx264 -crf 28 -preset fast" in calls


def test_already_converted_files_are_skipped(optimizer, media_root, fake_ffmpeg):
    _touch(media_root / "videos" / "clip.MOV")
    _touch(media_root / "videos" / "clip.mp4", b"converted earlier")

    result = optimizer.optimize_directory("videos")

    assert result["skipped"] == ["videos/clip.MOV"]
    assert result["convertedCount"] == 0
    assert (media_root / "videos" / "clip.mp4").read_bytes() == b"converted earlier"
    assert not (fake_ffmpeg.parent / "calls.log").exists()


def test_failures_are_logged_and_partial_output_removed(optimizer, media_root):
    _touch(media_root / "videos" / "broken.MOV")
    _touch(media_root / "videos" / "fine.MOV")

    result = optimizer.optimize_directory("videos")

    assert result["converted"] == ["videos/fine.MOV"]
    assert [f["file"] for f in result["failed"]] == ["videos/broken.MOV"]
    assert "moov atom not found" in result["failed"][0]["reason"]
    assert not (media_root / "videos" / "broken.mp4").exists()

    log = json.loads((media_root / "videos" / "fail.json").read_text())
    assert log[0]["filePath"] == "videos/broken.MOV"
    assert "moov atom not found" in log[0]["reason"]


def test_optimized_and_thumbnail_directories_are_not_entered(optimizer, media_root):
    _touch(media_root / "videos" / "optimized" / "old.MOV")
    _touch(media_root / "videos" / "thumbnails" / "odd.MOV")

    result = optimizer.optimize_directory("videos")
    assert result["convertedCount"] == 0
    assert result["skipped"] == []


def test_non_recursive_run_stays_in_the_folder(optimizer, media_root):
    _touch(media_root / "videos" / "top.MOV")
    _touch(media_root / "videos" / "trip" / "inner.MOV")

    result = optimizer.optimize_directory("videos", recursive=False)
    assert result["converted"] == ["videos/top.MOV"]


def test_missing_ffmpeg_is_a_per_file_failure(session, storage, media_root):
    _touch(media_root / "videos" / "clip.MOV")
    optimizer = VideoOptimizerService(session, storage, ffmpeg_path="/nonexistent/ffmpeg")

    result = optimizer.optimize_directory("videos")
    assert result["failedCount"] == 1
    assert "ffmpeg not found" in result["failed"][0]["reason"]


def test_converted_file_is_linked_to_the_mov_media(optimizer, seed, session, media_root):
    _touch(media_root / "videos" / "clip.MOV")
    seed.media("videos/clip.MOV", file_type="video")

    optimizer.optimize_directory("videos")

    media = session.execute(
        select(Media).where(Media.file_path == "videos/clip.MOV")
    ).scalar_one()
    assert media.optimized_path == "videos/clip.mp4"


def test_append_log_starts_over_on_unreadable_log(tmp_path):
    log_path = tmp_path / "fail.json"
    log_path.write_text("{not json")

    append_log(log_path, "a.MOV", "boom")
    append_log(log_path, "b.MOV")

    assert json.loads(log_path.read_text()) == [
        {"filePath": "a.MOV", "reason": "boom"},
        {"filePath": "b.MOV", "reason": None},
    ]


def test_optimize_videos_endpoint(admin_client, client, media_root, fake_ffmpeg, monkeypatch):
    monkeypatch.setattr(settings, "FFMPEG_PATH", str(fake_ffmpeg))
    _touch(media_root / "videos" / "clip.MOV")

    response = admin_client.post("/utils/optimize-videos", params={"directoryPath": "videos"})
    assert response.status_code == 200
    assert response.json()["converted"] == ["videos/clip.MOV"]

    assert admin_client.post("/utils/optimize-videos").status_code == 400
    assert admin_client.post(
        "/utils/optimize-videos", params={"directoryPath": "../"}
    ).status_code == 400

    client.cookies.clear()
    assert client.post(
        "/utils/optimize-videos", params={"directoryPath": "videos"}
    ).status_code == 403


def test_optimize_videos_command(tmp_path, fake_ffmpeg, monkeypatch, capsys):
    library = tmp_path / "library"
    _touch(library / "clips" / "clip.MOV")
    _touch(library / "clips" / "nested" / "inner.MOV")
    monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setattr(settings, "MEDIA_ROOT", str(library))
    monkeypatch.setattr(settings, "FFMPEG_PATH", str(fake_ffmpeg))

    assert cli.main(["init-db"]) == 0
    capsys.readouterr()

    assert cli.main(["optimize-videos", "clips", "--no-recursive"]) == 0
    result = json.loads(capsys.readouterr().out)
    assert result["converted"] == ["clips/clip.MOV"]
    assert (library / "clips" / "clip.mp4").exists()
    assert not (library / "clips" / "nested" / "inner.mp4").exists()
