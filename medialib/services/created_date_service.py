# File: medialib/services/created_date_service.py
"""
Repairs ``created_at`` of converted videos.

Phones record ``.MOV`` files that are later converted to ``.mp4``; the
conversion date then ends up as the media's creation date. When the
original ``.MOV`` still sits beside the ``.mp4``, its birth time is the
better value.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from medialib.core.config import settings
from medialib.core.exceptions import InvalidPathException
from medialib.db.models.media import Media
from medialib.repositories.media_repository import MediaRepository
from medialib.services.base_service import BaseService
from medialib.services.file_storage_service import FileStorageService
from medialib.services.thumbnail_service import THUMBNAIL_DIR

logger = logging.getLogger(__name__)


def birth_time(stat_result: os.stat_result) -> datetime:
    """Creation time where the platform records one, modification time otherwise."""
    timestamp = getattr(stat_result, "st_birthtime", None)
    if timestamp is None:
        timestamp = stat_result.st_mtime
    return datetime.fromtimestamp(timestamp)


def _find_sibling(path: Path, suffixes) -> Optional[Path]:
    for suffix in suffixes:
        candidate = path.with_suffix(suffix)
        if candidate.exists():
            return candidate
    return None


class CreatedDateService(BaseService[Media]):
    """
    Copies the ``.MOV`` birth time onto the matching ``.mp4`` media rows.
    """

    def __init__(
        self,
        session: Session,
        storage: Optional[FileStorageService] = None,
        cache_service=None,
    ):
        super().__init__(session, MediaRepository(session), cache_service)
        self.storage = storage or FileStorageService(settings.MEDIA_ROOT)

    def _update_directory(self, directory: Path, recursive: bool, results: Dict[str, List]):
        for entry in self.storage.walk(
            directory, recursive=recursive, skip_dir_names=(THUMBNAIL_DIR,)
        ):
            try:
                relative = self.storage.relative(entry)
            except InvalidPathException as e:
                logger.error(f"Error reading {entry}: {e.message}")
                results["errors"].append(
                    {"file": self.storage.display_path(entry), "error": e.message}
                )
                continue

            if entry.suffix.lower() != ".mp4":
                results["skipped"].append(relative)
                continue

            mov = _find_sibling(entry, (".MOV", ".mov"))
            if mov is None:
                logger.debug(f"No corresponding .MOV file for {relative}, skipping")
                results["skipped"].append(relative)
                continue

            try:
                created_at = birth_time(mov.stat())
            except OSError as e:
                logger.error(f"Error reading {mov}: {e}")
                results["errors"].append({"file": relative, "error": str(e)})
                continue

            media = self.repository.get_by_file_path(relative)
            if media is None:
                logger.debug(f"No database record for {relative}, skipping")
                results["skipped"].append(relative)
                continue

            media.created_at = created_at
            self.session.flush()
            logger.info(f"Updated created_at for {relative} to {created_at}")
            results["updated"].append(relative)

    def update_created_dates(self, folder: Optional[str], recursive: bool = False) -> Dict[str, Any]:
        """
        Update every ``.mp4`` in ``folder`` that has a ``.MOV`` sibling.

        Args:
            folder: Directory relative to the media root
            recursive: Descend into sub-directories

        Returns:
            ``{updatedCount, updatedFiles, skippedCount, skippedFiles,
            errorCount, errorFiles}``

        Raises:
            InvalidPathException: If the folder is outside the root or missing
        """
        root = self.storage.resolve_directory(folder)
        results: Dict[str, List] = {"updated": [], "skipped": [], "errors": []}
        with self.transaction():
            self._update_directory(root, recursive, results)

        if results["updated"]:
            self.invalidate_cache()
        return {
            "updatedCount": len(results["updated"]),
            "updatedFiles": results["updated"],
            "skippedCount": len(results["skipped"]),
            "skippedFiles": results["skipped"],
            "errorCount": len(results["errors"]),
            "errorFiles": results["errors"],
        }
