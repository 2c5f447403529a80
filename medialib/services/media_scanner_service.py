# File: medialib/services/media_scanner_service.py
"""
Indexes files on disk into the media table.

For every supported file the scanner reads metadata (ffprobe for audio and
video, EXIF for photos), makes sure thumbnails exist, derives tags and
inserts a media row. Paths already in the table are skipped; per-file
problems are collected in the result instead of stopping the scan.
"""

import json
import logging
import re
import subprocess
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Tuple

from PIL import Image, UnidentifiedImageError
from sqlalchemy.orm import Session

from medialib.core.config import settings
from medialib.core.exceptions import InvalidPathException, StorageException
from medialib.repositories.media_repository import MediaRepository
from medialib.services.file_storage_service import FileStorageService
from medialib.services.media_service import MediaService, merge_tags, split_tags
from medialib.services.thumbnail_service import (
    THUMBNAIL_DIR,
    ThumbnailService,
    thumbnail_paths,
)

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = (".mp4", ".mkv")
PHOTO_EXTENSIONS = (".jpg", ".jpeg", ".png")
MUSIC_EXTENSIONS = (".mp3",)
DOCUMENT_EXTENSIONS = (".pdf",)

FILE_TYPE_BY_EXTENSION = {
    **{ext: "video" for ext in VIDEO_EXTENSIONS},
    **{ext: "photo" for ext in PHOTO_EXTENSIONS},
    **{ext: "music" for ext in MUSIC_EXTENSIONS},
    **{ext: "document" for ext in DOCUMENT_EXTENSIONS},
}

IGNORED_TAG_DIRECTORIES = ("photo", "video")
DRIVE_LETTER = re.compile(r"^[a-z]:$", re.IGNORECASE)
FFPROBE_TIMEOUT = 30

EXIF_DATETIME_ORIGINAL = 36867
EXIF_DATETIME = 306
EXIF_IFD_POINTER = 0x8769


def scan_directories(storage: FileStorageService, directory: Optional[str]) -> List[str]:
    """
    Every sub-directory below ``directory``, recursively, as root-relative
    paths. Thumbnail directories are left out.

    Raises:
        InvalidPathException: If the directory is outside the root or missing
    """
    root = storage.resolve_directory(directory)
    return [
        storage.relative(path)
        for path in storage.walk(root, skip_dir_names=(THUMBNAIL_DIR,), include_dirs=True)
        if path.is_dir()
    ]


def tags_from_path(relative_path: str, excluded_directories: Iterable[str] = ()) -> List[str]:
    """
    Tags derived from where a file lives and what it is called.

    Every directory between the media root and the file becomes a lower-cased
    tag, except drive letters, ``photo``/``video`` and excluded names. The
    part of the file name before the first ``_`` is added as well.
    """
    excluded = {d.lower() for d in excluded_directories} | set(IGNORED_TAG_DIRECTORIES)
    path = PurePosixPath(relative_path.replace("\\", "/"))
    tags = [
        part.lower()
        for part in path.parts[:-1]
        if not DRIVE_LETTER.match(part) and part.lower() not in excluded
    ]
    if "_" in path.stem:
        tags.append(path.stem.split("_")[0].lower())
    return list(dict.fromkeys(t for t in tags if t))


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    cleaned = value.strip().replace("Z", "").split(".")[0].replace("T", " ")
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y:%m:%d %H:%M:%S"):
        try:
            return datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
    logger.debug(f"Unrecognized timestamp '{value}'")
    return None


class MediaScannerService:
    """
    Scans a directory below the media root and indexes what it finds.
    """

    def __init__(
        self,
        session: Session,
        storage: Optional[FileStorageService] = None,
        thumbnail_service: Optional[ThumbnailService] = None,
        cache_service=None,
        ffprobe_path: Optional[str] = None,
    ):
        self.session = session
        self.storage = storage or FileStorageService(settings.MEDIA_ROOT)
        self.thumbnail_service = thumbnail_service or ThumbnailService(self.storage)
        self.media_service = MediaService(session, cache_service, self.storage)
        self.media_repository = MediaRepository(session)
        self.ffprobe_path = ffprobe_path or settings.FFPROBE_PATH

    # Metadata

    def probe(self, path: Path) -> Dict[str, Any]:
        """
        Duration and creation time of an audio or video file via ffprobe.

        Raises:
            StorageException: If ffprobe is missing or cannot read the file
        """
        cmd = [
            self.ffprobe_path,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            str(path),
        ]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=FFPROBE_TIMEOUT
            )
        except FileNotFoundError:
            raise StorageException(
                f"ffprobe not found at '{self.ffprobe_path}'",
                file_path=str(path),
                operation="probe",
            )
        except subprocess.TimeoutExpired:
            raise StorageException("ffprobe timed out", file_path=str(path), operation="probe")

        if result.returncode != 0:
            raise StorageException(
                f"ffprobe failed: {result.stderr.strip() or result.returncode}",
                file_path=str(path),
                operation="probe",
            )
        try:
            fmt = json.loads(result.stdout).get("format", {})
        except json.JSONDecodeError as e:
            raise StorageException(
                f"Unreadable ffprobe output: {e}", file_path=str(path), operation="probe"
            )

        duration = None
        if fmt.get("duration") is not None:
            try:
                duration = float(fmt["duration"])
            except (TypeError, ValueError):
                logger.debug(f"Ignoring duration '{fmt['duration']}' of {path}")
        tags = fmt.get("tags") or {}
        return {
            "duration": duration,
            "created_at": _parse_timestamp(tags.get("creation_time")),
        }

    def exif_created_at(self, path: Path) -> Optional[datetime]:
        """DateTimeOriginal, else DateTime, of a photo; None when absent or unreadable."""
        try:
            with Image.open(path) as image:
                exif = image.getexif()
                value = exif.get_ifd(EXIF_IFD_POINTER).get(EXIF_DATETIME_ORIGINAL)
                value = value or exif.get(EXIF_DATETIME)
        except (UnidentifiedImageError, OSError) as e:
            logger.warning(f"Error extracting EXIF data from {path}: {e}")
            return None
        return _parse_timestamp(value) if isinstance(value, str) else None

    def extract_metadata(self, path: Path) -> Optional[Dict[str, Any]]:
        """
        Title, type, duration and creation time of a supported file.

        Returns None for unsupported extensions.
        """
        file_type = FILE_TYPE_BY_EXTENSION.get(path.suffix.lower())
        if file_type is None:
            return None

        metadata: Dict[str, Any] = {
            "title": path.stem,
            "file_type": file_type,
            "duration": None,
            "created_at": None,
        }
        if file_type in ("video", "music"):
            metadata.update(self.probe(path))
        elif file_type == "photo":
            metadata["created_at"] = self.exif_created_at(path)
        return metadata

    # Scanning

    def _candidate_files(self, root: Path, recursive: bool) -> List[Path]:
        return [
            path
            for path in self.storage.walk(
                root, recursive=recursive, skip_dir_names=(THUMBNAIL_DIR,)
            )
            if path.suffix.lower() in FILE_TYPE_BY_EXTENSION
        ]

    def _build_entry(
        self,
        path: Path,
        extra_tags: List[str],
        use_directory_tags: bool,
        excluded_directories: List[str],
        is_protected: bool,
    ) -> Dict[str, Any]:
        metadata = self.extract_metadata(path)

        entry: Dict[str, Any] = {
            "title": metadata["title"],
            "file_path": self.storage.relative(path),
            "file_type": metadata["file_type"],
            "duration": metadata["duration"],
            "is_protected": is_protected,
        }
        if metadata["created_at"] is not None:
            entry["created_at"] = metadata["created_at"]

        if metadata["file_type"] in ("photo", "video"):
            self.thumbnail_service.create_thumbnails(path)
            targets = thumbnail_paths(path)
            entry["thumbnail_path"] = self.storage.relative(targets["sm"])
            entry["thumbnail_md"] = self.storage.relative(targets["md"])
            entry["thumbnail_lg"] = self.storage.relative(targets["lg"])

        tags: List[str] = []
        if use_directory_tags:
            tags = tags_from_path(entry["file_path"], excluded_directories)
        entry["tags"] = ",".join(merge_tags(tags, extra_tags))
        return entry

    def scan(
        self,
        folder: Optional[str],
        recursive: bool = False,
        tags: Optional[str] = None,
        use_directory_tags: bool = False,
        excluded_directories: Optional[List[str]] = None,
        is_protected: bool = False,
    ) -> Dict[str, Any]:
        """
        Index the supported files in ``folder``.

        Args:
            folder: Directory relative to the media root
            recursive: Descend into sub-directories
            tags: Comma-separated tags added to every new row
            use_directory_tags: Derive tags from directory and file names
            excluded_directories: Directory names never used as tags;
                defaults to MEDIA_EXCLUDED_DIRECTORIES
            is_protected: Mark the new rows protected

        Returns:
            ``{scannedCount, insertedCount, inserted, skipped, errors}``

        Raises:
            InvalidPathException: If the folder is outside the root or missing
        """
        root = self.storage.resolve_directory(folder)
        if excluded_directories is None:
            excluded_directories = settings.excluded_directories
        extra_tags = split_tags(tags)

        files = self._candidate_files(root, recursive)
        entries: List[Dict[str, Any]] = []
        skipped: List[str] = []
        errors: List[Dict[str, str]] = []

        located: List[Tuple[Path, str]] = []
        for path in files:
            try:
                located.append((path, self.storage.relative(path)))
            except InvalidPathException as e:
                name = self.storage.display_path(path)
                logger.error(f"Error processing file {name}: {e.message}")
                errors.append({"file": name, "reason": e.message})
        known = self.media_repository.existing_file_paths(rel for _, rel in located)

        for path, relative in located:
            if relative in known:
                logger.debug(f"Media file already exists: {relative}")
                skipped.append(relative)
                continue
            try:
                entries.append(
                    self._build_entry(
                        path, extra_tags, use_directory_tags, excluded_directories, is_protected
                    )
                )
            except StorageException as e:
                logger.error(f"Error processing file {relative}: {e.message}")
                errors.append({"file": relative, "reason": e.message})

        inserted: List[str] = []
        if entries:
            result = self.media_service.insert_batch(entries)
            inserted = [item["file_path"] for item in result.committed]
            errors.extend(
                {"file": failure.item["file_path"], "reason": failure.reason}
                for failure in result.failed
            )

        logger.info(
            f"Scan of {root}: {len(files)} files, {len(inserted)} inserted, "
            f"{len(skipped)} skipped, {len(errors)} errors"
        )
        return {
            "scannedCount": len(files),
            "insertedCount": len(inserted),
            "inserted": inserted,
            "skipped": skipped,
            "errors": errors,
        }
