# File: medialib/services/file_storage_service.py

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set, Union

from medialib.core.exceptions import InvalidPathException

logger = logging.getLogger(__name__)


class FileStorageService:
    """
    Filesystem access confined to the media root.

    Every path coming from a request or from a database row is resolved
    through ``resolve`` so that ``..``, absolute paths and symlinks can never
    reach outside the root.
    """

    def __init__(self, base_path: Union[str, Path]):
        """
        Args:
            base_path: The media root; relative media paths are stored against it
        """
        self.base_path = Path(base_path).resolve()

    def contains(self, resolved: Path) -> bool:
        return resolved == self.base_path or self.base_path in resolved.parents

    def resolve(self, path: Union[str, Path, None]) -> Path:
        """
        Resolve a request or database path inside the media root.

        Args:
            path: Relative path (backslashes accepted) or absolute path

        Returns:
            Absolute, symlink-free path inside the root

        Raises:
            InvalidPathException: If the path is empty or escapes the root
        """
        if path is None or str(path).strip() == "":
            return self.base_path
        raw = str(path).replace("\\", "/")
        candidate = Path(raw)
        if not candidate.is_absolute():
            candidate = self.base_path / raw.lstrip("/")
        resolved = candidate.resolve()
        if not self.contains(resolved):
            raise InvalidPathException(str(path), "outside the media root")
        return resolved

    def resolve_directory(self, path: Union[str, Path, None]) -> Path:
        resolved = self.resolve(path)
        if not resolved.is_dir():
            raise InvalidPathException(str(path), "not a directory")
        return resolved

    def relative(self, path: Union[str, Path]) -> str:
        """
        Path relative to the root with forward slashes, as stored in the database.

        Raises:
            InvalidPathException: If the path links to a location outside the root
        """
        resolved = Path(path).resolve()
        if not self.contains(resolved):
            raise InvalidPathException(self.display_path(path), "links outside the media root")
        return resolved.relative_to(self.base_path).as_posix()

    def display_path(self, path: Union[str, Path]) -> str:
        """Root-relative path as walked, links not followed. Used in reports."""
        try:
            return Path(path).relative_to(self.base_path).as_posix()
        except ValueError:
            return str(path)

    def walk(
        self,
        directory: Path,
        recursive: bool = True,
        skip_dir_names: Iterable[str] = (),
        include_dirs: bool = False,
    ) -> Iterator[Path]:
        """
        Entries below ``directory`` in sorted, depth-first order.

        A directory is entered once per real location and only when that
        location is inside the root, so symlink cycles and links out of the
        root are never followed. Files are yielded once per real location;
        a file linking outside the root is still yielded and ``relative``
        rejects it.

        Args:
            directory: Resolved directory inside the root
            recursive: Descend into sub-directories
            skip_dir_names: Directory names (case-insensitive) never entered
            include_dirs: Yield the entered sub-directories as well
        """
        skip = {name.lower() for name in skip_dir_names}
        yield from self._walk(directory, recursive, skip, include_dirs, set(), set())

    def _walk(
        self,
        directory: Path,
        recursive: bool,
        skip: Set[str],
        include_dirs: bool,
        seen_dirs: Set[Path],
        seen_files: Set[Path],
    ) -> Iterator[Path]:
        seen_dirs.add(directory.resolve())
        for entry in sorted(directory.iterdir()):
            if entry.is_dir():
                if not recursive or entry.name.lower() in skip:
                    continue
                real = entry.resolve()
                if not self.contains(real):
                    logger.warning(f"Not following {entry}: links outside the media root")
                    continue
                if real in seen_dirs:
                    logger.warning(f"Not following {entry}: directory already visited")
                    continue
                if include_dirs:
                    yield entry
                yield from self._walk(entry, recursive, skip, include_dirs, seen_dirs, seen_files)
            elif entry.is_file():
                real = entry.resolve()
                if real in seen_files:
                    logger.debug(f"Skipping {entry}: same file already visited")
                    continue
                seen_files.add(real)
                yield entry

    def exists(self, stored_path: Optional[str]) -> bool:
        if not stored_path:
            return False
        try:
            return self.resolve(stored_path).is_file()
        except InvalidPathException:
            return False

    def remove_files(self, stored_paths: Iterable[Optional[str]]) -> List[str]:
        """
        Best-effort unlink. Failures are logged and skipped.

        Returns:
            The stored paths that were actually removed
        """
        removed = []
        for stored_path in stored_paths:
            if not stored_path:
                continue
            try:
                target = self.resolve(stored_path)
                os.remove(target)
                removed.append(stored_path)
            except (InvalidPathException, OSError) as e:
                logger.warning(f"Could not remove {stored_path}: {e}")
        return removed
