# File: medialib/services/video_optimizer_service.py
"""
Converts ``.MOV`` recordings to H.264 ``.mp4`` files beside the original.

The ``.MOV`` is kept so ``update_created_dates`` can later copy its birth
time onto the converted file. Every directory that had something to do gets
a ``success.json`` and/or ``fail.json`` log listing the files handled.
"""

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from medialib.core.config import settings
from medialib.core.exceptions import StorageException
from medialib.db.models.media import Media
from medialib.repositories.media_repository import MediaRepository
from medialib.services.base_service import BaseService
from medialib.services.file_storage_service import FileStorageService
from medialib.services.thumbnail_service import THUMBNAIL_DIR

logger = logging.getLogger(__name__)

SOURCE_EXTENSION = ".mov"
TARGET_EXTENSION = ".mp4"
OPTIMIZED_DIR = "optimized"
SUCCESS_LOG = "success.json"
FAIL_LOG = "fail.json"


def append_log(log_path: Path, file_path: str, reason: Optional[str] = None) -> None:
    """
    Append ``{filePath, reason}`` to a JSON list log.

    A log that cannot be read is started over; one that cannot be written is
    reported and skipped.
    """
    entries: List[Dict[str, Any]] = []
    if log_path.exists():
        try:
            loaded = json.loads(log_path.read_text(encoding="utf-8"))
            if isinstance(loaded, list):
                entries = loaded
        except (OSError, ValueError) as e:
            logger.error(f"Error reading {log_path}: {e}")

    entries.append({"filePath": file_path, "reason": reason})
    try:
        log_path.write_text(json.dumps(entries, indent=2), encoding="utf-8")
    except OSError as e:
        logger.error(f"Error writing to {log_path}: {e}")


class VideoOptimizerService(BaseService[Media]):
    """
    Transcodes ``.MOV`` files with ffmpeg and links the result to the
    ``.MOV`` media row, when one exists, through ``optimized_path``.
    """

    def __init__(
        self,
        session: Session,
        storage: Optional[FileStorageService] = None,
        cache_service=None,
        ffmpeg_path: Optional[str] = None,
        crf: Optional[int] = None,
        preset: Optional[str] = None,
    ):
        super().__init__(session, MediaRepository(session), cache_service)
        self.storage = storage or FileStorageService(settings.MEDIA_ROOT)
        self.ffmpeg_path = ffmpeg_path or settings.FFMPEG_PATH
        self.crf = settings.VIDEO_OPTIMIZE_CRF if crf is None else crf
        self.preset = preset or settings.VIDEO_OPTIMIZE_PRESET

    def transcode(self, source: Path, target: Path) -> None:
        """
        Raises:
            StorageException: If ffmpeg is missing, times out or fails; a
                partially written target is removed
        """
        cmd = [
            self.ffmpeg_path,
            "-n",
            "-loglevel", "error",
            "-i", str(source),
            "-c:v", "libx264",
            "-crf", str(self.crf),
            "-preset", self.preset,
            str(target),
        ]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=settings.VIDEO_OPTIMIZE_TIMEOUT
            )
        except FileNotFoundError:
            raise StorageException(
                f"ffmpeg not found at '{self.ffmpeg_path}'",
                file_path=str(source),
                operation="optimize",
            )
        except subprocess.TimeoutExpired:
            target.unlink(missing_ok=True)
            raise StorageException("ffmpeg timed out", file_path=str(source), operation="optimize")

        if result.returncode != 0:
            target.unlink(missing_ok=True)
            raise StorageException(
                f"ffmpeg failed: {result.stderr.strip() or result.returncode}",
                file_path=str(source),
                operation="optimize",
            )

    def optimize_file(self, source: Path) -> Optional[Path]:
        """
        Convert one ``.MOV``.

        Returns:
            The new ``.mp4``, or None when it already existed
        """
        target = source.with_suffix(TARGET_EXTENSION)
        if target.exists():
            logger.info(f"Skipping already optimized file: {target}")
            return None
        self.transcode(source, target)
        logger.info(f"Optimized video saved: {target}")
        return target

    def optimize_directory(self, folder: Optional[str], recursive: bool = True) -> Dict[str, Any]:
        """
        Convert every ``.MOV`` below ``folder``. ``optimized`` and thumbnail
        directories are not entered.

        Args:
            folder: Directory relative to the media root
            recursive: Descend into sub-directories

        Returns:
            ``{convertedCount, converted, skippedCount, skipped, failedCount,
            failed: [{file, reason}]}``

        Raises:
            InvalidPathException: If the folder is outside the root or missing
        """
        root = self.storage.resolve_directory(folder)
        converted: List[Tuple[str, str]] = []
        skipped: List[str] = []
        failed: List[Dict[str, str]] = []

        for path in self.storage.walk(
            root, recursive=recursive, skip_dir_names=(THUMBNAIL_DIR, OPTIMIZED_DIR)
        ):
            if path.suffix.lower() != SOURCE_EXTENSION:
                continue
            name = self.storage.display_path(path)
            try:
                relative = self.storage.relative(path)
                target = self.optimize_file(path)
            except StorageException as e:
                logger.error(f"Error optimizing video {name}: {e.message}")
                append_log(path.parent / FAIL_LOG, name, e.message)
                failed.append({"file": name, "reason": e.message})
                continue

            if target is None:
                skipped.append(relative)
                continue
            append_log(path.parent / SUCCESS_LOG, relative)
            converted.append((relative, self.storage.relative(target)))

        if converted:
            with self.transaction():
                for source_path, optimized_path in converted:
                    media = self.repository.get_by_file_path(source_path)
                    if media is not None:
                        media.optimized_path = optimized_path
            self.invalidate_cache()

        logger.info(
            f"Optimization of {root}: {len(converted)} converted, "
            f"{len(skipped)} skipped, {len(failed)} failed"
        )
        return {
            "convertedCount": len(converted),
            "converted": [source_path for source_path, _ in converted],
            "skippedCount": len(skipped),
            "skipped": skipped,
            "failedCount": len(failed),
            "failed": failed,
        }
