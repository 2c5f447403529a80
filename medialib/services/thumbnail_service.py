# File: medialib/services/thumbnail_service.py
"""
Thumbnail generation and thumbnail housekeeping.

Thumbnails live in a ``thumbnails`` directory beside the original file:

    photos/beach.jpg
    photos/thumbnails/thumb_beach.jpg       (small)
    photos/thumbnails/thumb_beach_md.jpg    (medium)
    photos/thumbnails/thumb_beach_lg.jpg    (large)

Images are resized with Pillow to fit inside a square of the configured
size. Videos get one frame extracted with ffmpeg, which is then resized the
same way.
"""

import logging
import os
import subprocess
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from medialib.core.config import settings
from medialib.core.exceptions import InvalidPathException, StorageException
from medialib.services.file_storage_service import FileStorageService

logger = logging.getLogger(__name__)

THUMBNAIL_DIR = "thumbnails"
THUMBNAIL_PREFIX = "thumb_"
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")
VIDEO_EXTENSIONS = (".mp4", ".avi", ".mkv")
ORIGINAL_EXTENSIONS = IMAGE_EXTENSIONS + VIDEO_EXTENSIONS
SIZE_SUFFIXES = (("sm", ""), ("md", "_md"), ("lg", "_lg"))
FFMPEG_TIMEOUT = 60


def thumbnail_paths(file_path: Path) -> Dict[str, Path]:
    """Small, medium and large thumbnail locations for an original file."""
    directory = file_path.parent / THUMBNAIL_DIR
    return {
        size: directory / f"{THUMBNAIL_PREFIX}{file_path.stem}{suffix}.jpg"
        for size, suffix in SIZE_SUFFIXES
    }


def original_stems(thumbnail_name: str) -> List[str]:
    """
    Stems of the originals a thumbnail may have been generated for.

    ``thumb_cover_md.jpg`` is either the medium thumbnail of ``cover`` or the
    small thumbnail of ``cover_md``, so both stems are returned. The list is
    empty when the name is not a thumbnail name.
    """
    if not thumbnail_name.startswith(THUMBNAIL_PREFIX):
        return []
    if not thumbnail_name.lower().endswith(".jpg"):
        return []
    stem = thumbnail_name[len(THUMBNAIL_PREFIX) : -len(".jpg")]
    stems = [stem]
    for _, suffix in SIZE_SUFFIXES:
        if suffix and stem.endswith(suffix) and len(stem) > len(suffix):
            stems.append(stem[: -len(suffix)])
    return stems


def _batches(items: List[Path], size: int) -> Iterator[List[Path]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class ThumbnailService:
    """
    Creates thumbnails for images and videos under the media root.
    """

    def __init__(
        self,
        storage: Optional[FileStorageService] = None,
        ffmpeg_path: Optional[str] = None,
        batch_size: Optional[int] = None,
        sizes: Optional[Dict[str, int]] = None,
    ):
        self.storage = storage or FileStorageService(settings.MEDIA_ROOT)
        self.ffmpeg_path = ffmpeg_path or settings.FFMPEG_PATH
        self.batch_size = max(1, batch_size or settings.THUMBNAIL_BATCH_SIZE)
        self.sizes = sizes or {
            "sm": settings.THUMBNAIL_SIZE_SM,
            "md": settings.THUMBNAIL_SIZE_MD,
            "lg": settings.THUMBNAIL_SIZE_LG,
        }

    # Generation

    def _write_sizes(self, image: Image.Image, targets: Dict[str, Path]) -> None:
        image = ImageOps.exif_transpose(image)
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        for size, target in targets.items():
            edge = self.sizes[size]
            resized = image.copy()
            resized.thumbnail((edge, edge))
            resized.save(target, "JPEG", quality=85)

    def generate_image_thumbnails(self, source: Path, targets: Dict[str, Path]) -> None:
        """
        Raises:
            StorageException: If Pillow cannot read or write the image
        """
        try:
            with Image.open(source) as image:
                self._write_sizes(image, targets)
        except (UnidentifiedImageError, OSError) as e:
            raise StorageException(
                f"Could not create image thumbnail: {e}",
                file_path=str(source),
                operation="thumbnail",
            )

    def extract_video_frame(self, source: Path, target: Path) -> None:
        """
        Grab one frame with ffmpeg, one second in, or the first frame for
        clips shorter than that.

        Raises:
            StorageException: If ffmpeg is missing or produces no image
        """
        for offset in ("1", "0"):
            cmd = [
                self.ffmpeg_path,
                "-y",
                "-loglevel", "error",
                "-ss", offset,
                "-i", str(source),
                "-vframes", "1",
                "-q:v", "2",
                str(target),
            ]
            try:
                result = subprocess.run(
                    cmd, capture_output=True, text=True, timeout=FFMPEG_TIMEOUT
                )
            except FileNotFoundError:
                raise StorageException(
                    f"ffmpeg not found at '{self.ffmpeg_path}'",
                    file_path=str(source),
                    operation="thumbnail",
                )
            except subprocess.TimeoutExpired:
                raise StorageException(
                    "ffmpeg timed out", file_path=str(source), operation="thumbnail"
                )
            if result.returncode == 0 and target.exists() and target.stat().st_size > 0:
                return
            logger.debug(f"ffmpeg at offset {offset}s failed for {source}: {result.stderr}")

        raise StorageException(
            "ffmpeg produced no frame", file_path=str(source), operation="thumbnail"
        )

    def generate_video_thumbnails(self, source: Path, targets: Dict[str, Path]) -> None:
        fd, frame_name = tempfile.mkstemp(suffix=".jpg", dir=targets["sm"].parent)
        os.close(fd)
        frame = Path(frame_name)
        try:
            self.extract_video_frame(source, frame)
            self.generate_image_thumbnails(frame, targets)
        finally:
            frame.unlink(missing_ok=True)

    def create_thumbnails(self, source: Path) -> str:
        """
        Create the three thumbnails for one file.

        Returns:
            "success" or "skipped" (existing thumbnail or unsupported type)

        Raises:
            StorageException: If generation fails
        """
        ext = source.suffix.lower()
        if ext not in ORIGINAL_EXTENSIONS:
            logger.debug(f"Skipping unsupported file type: {source}")
            return "skipped"

        targets = thumbnail_paths(source)
        if targets["sm"].exists():
            logger.debug(f"Skipping existing thumbnail for file: {source}")
            return "skipped"

        targets["sm"].parent.mkdir(exist_ok=True)
        if ext in IMAGE_EXTENSIONS:
            self.generate_image_thumbnails(source, targets)
        else:
            self.generate_video_thumbnails(source, targets)
        logger.info(f"Generated thumbnails for {source}")
        return "success"

    def _process_one(self, source: Path) -> Tuple[str, str]:
        name = self.storage.display_path(source)
        try:
            self.storage.relative(source)
            return self.create_thumbnails(source), name
        except StorageException as e:
            logger.error(f"Failed to generate thumbnail for {source}: {e.message}")
            return "failed", name

    def process_directory(self, directory: Optional[str]) -> Dict[str, List[str]]:
        """
        Create missing thumbnails for every file below ``directory``.

        Files are handled in batches of ``batch_size``; the files of one
        batch run in parallel and a batch finishes before the next starts.
        A file linking outside the media root is reported as failed.

        Args:
            directory: Directory relative to the media root

        Returns:
            ``{success, failed, skipped}`` lists of paths relative to the root

        Raises:
            InvalidPathException: If the directory is outside the root or missing
        """
        root = self.storage.resolve_directory(directory)
        files = list(self.storage.walk(root, skip_dir_names=(THUMBNAIL_DIR,)))
        results: Dict[str, List[str]] = {"success": [], "failed": [], "skipped": []}

        with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
            for batch in _batches(files, self.batch_size):
                for outcome, name in executor.map(self._process_one, batch):
                    results[outcome].append(name)

        logger.info(
            f"Thumbnails for {root}: {len(results['success'])} created, "
            f"{len(results['failed'])} failed, {len(results['skipped'])} skipped"
        )
        return results

    # Housekeeping

    def find_missing_thumbnails(self, directory: Optional[str]) -> List[Dict[str, Any]]:
        """
        Images and videos whose small thumbnail does not exist.

        Returns:
            ``[{file, missing: [thumbnail]}]`` with paths relative to the root
        """
        root = self.storage.resolve_directory(directory)
        missing = []
        for path in self.storage.walk(root, skip_dir_names=(THUMBNAIL_DIR,)):
            if path.suffix.lower() not in ORIGINAL_EXTENSIONS:
                continue
            small = thumbnail_paths(path)["sm"]
            if small.exists():
                continue
            try:
                relative = self.storage.relative(path)
            except InvalidPathException as e:
                logger.warning(f"Ignoring {path}: {e.message}")
                continue
            missing.append(
                {"file": relative, "missing": [self.storage.display_path(small)]}
            )
        logger.info(f"Missing thumbnails under {root}: {len(missing)}")
        return missing

    def find_orphan_thumbnails(
        self, directory: Optional[str], delete: bool = False
    ) -> Dict[str, Any]:
        """
        Thumbnails whose original file is gone from the parent directory.

        A thumbnail is kept when any original it may belong to still exists,
        so ``thumb_cover_md.jpg`` survives beside either ``cover.jpg`` or
        ``cover_md.jpg``.

        Args:
            directory: Directory relative to the media root
            delete: Unlink the orphans; failures are logged and the orphan
                is still reported

        Returns:
            ``{orphans, deleted}`` with paths relative to the root
        """
        root = self.storage.resolve_directory(directory)
        orphans: List[str] = []
        deleted: List[str] = []

        directories = [root]
        directories.extend(
            p
            for p in self.storage.walk(root, skip_dir_names=(THUMBNAIL_DIR,), include_dirs=True)
            if p.is_dir()
        )
        for parent in directories:
            thumbs_dir = parent / THUMBNAIL_DIR
            if not thumbs_dir.is_dir() or thumbs_dir.is_symlink():
                continue
            siblings = {p.name.lower() for p in parent.iterdir() if p.is_file()}
            for thumb in sorted(thumbs_dir.iterdir()):
                stems = original_stems(thumb.name)
                if not stems or not thumb.is_file():
                    continue
                if any(
                    f"{stem}{ext}".lower() in siblings
                    for stem in stems
                    for ext in ORIGINAL_EXTENSIONS
                ):
                    continue

                relative = self.storage.display_path(thumb)
                orphans.append(relative)
                if delete:
                    try:
                        thumb.unlink()
                        deleted.append(relative)
                    except OSError as e:
                        logger.warning(f"Could not delete orphan thumbnail {thumb}: {e}")

        logger.info(
            f"Orphan thumbnails under {root}: {len(orphans)} found, {len(deleted)} deleted"
        )
        return {"orphans": orphans, "deleted": deleted}
