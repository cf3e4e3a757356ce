"""Directory scanning and item filtering for sync operations."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator, Optional

from ..gateway import BlobMetadata
from ..mime_types import normalize_extension
from ..utils import to_utc, utc_from_timestamp

logger = logging.getLogger(__name__)


def item_extension(relative_path: str) -> str:
    """Lower-case extension of a relative path (``""`` if none).

    Examples:
        >>> item_extension("photos/IMG_01.JPG")
        '.jpg'
        >>> item_extension("Makefile")
        ''
    """
    return normalize_extension(PurePosixPath(relative_path).suffix)


@dataclass(frozen=True)
class LocalFile:
    """Represents a local file with metadata."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    size: int
    """File size in bytes"""

    last_modified: datetime
    """Last write time (UTC)"""

    @property
    def extension(self) -> str:
        return item_extension(self.relative_path)

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "LocalFile":
        """Create LocalFile from a path.

        Args:
            file_path: Absolute path to the file
            base_path: Base path for calculating relative paths

        Returns:
            LocalFile instance
        """
        stat = file_path.stat()
        # Use as_posix() to ensure forward slashes on all platforms
        relative_path = file_path.relative_to(base_path).as_posix()

        return cls(
            path=file_path,
            relative_path=relative_path,
            size=stat.st_size,
            last_modified=utc_from_timestamp(stat.st_mtime),
        )


@dataclass(frozen=True)
class RemoteFile:
    """Represents a remote object with metadata."""

    relative_path: str
    """Object key within the container"""

    size: int
    """Size in bytes"""

    last_modified: datetime
    """Last modified time (UTC)"""

    content_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return item_extension(self.relative_path)

    @classmethod
    def from_metadata(cls, metadata: BlobMetadata) -> "RemoteFile":
        return cls(
            relative_path=metadata.name,
            size=metadata.size,
            last_modified=to_utc(metadata.last_modified),
            content_type=metadata.content_type,
        )


class ExtensionFilter:
    """Include/exclude predicate on item extensions.

    An item passes iff its extension is not excluded and either no include
    list is given or the extension is included. An extension listed in both
    sets is excluded. Comparison is case-insensitive.

    Examples:
        >>> f = ExtensionFilter(include=[".jpg", ".png"], exclude=[])
        >>> f.accepts("a/b.JPG"), f.accepts("a/b.gif")
        (True, False)
    """

    def __init__(
        self,
        include: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
    ):
        self.include = frozenset(
            ext for ext in map(normalize_extension, include or ()) if ext
        )
        self.exclude = frozenset(
            ext for ext in map(normalize_extension, exclude or ()) if ext
        )

    def accepts(self, relative_path: str) -> bool:
        ext = item_extension(relative_path)
        if ext in self.exclude:
            return False
        return not self.include or ext in self.include

    __call__ = accepts


class DirectoryScanner:
    """Scans a local directory tree and builds file lists.

    Examples:
        >>> scanner = DirectoryScanner(ExtensionFilter(exclude=[".log"]))
        >>> files = scanner.scan_local(Path("/data"))  # doctest: +SKIP
    """

    def __init__(self, extension_filter: Optional[ExtensionFilter] = None):
        """Initialize directory scanner.

        Args:
            extension_filter: Filter applied to every file found
        """
        self.extension_filter = extension_filter or ExtensionFilter()
        self.filtered_count = 0

    def scan_local(
        self, directory: Path, base_path: Optional[Path] = None
    ) -> list[LocalFile]:
        """Recursively scan a local directory.

        Args:
            directory: Directory to scan
            base_path: Base path for calculating relative paths (defaults to directory)

        Returns:
            List of LocalFile objects accepted by the extension filter
        """
        if base_path is None:
            base_path = directory
            self.filtered_count = 0

        files: list[LocalFile] = []

        try:
            for item in sorted(directory.iterdir()):
                if item.is_file():
                    relative_path = item.relative_to(base_path).as_posix()
                    if not self.extension_filter.accepts(relative_path):
                        self.filtered_count += 1
                        continue
                    try:
                        files.append(LocalFile.from_path(item, base_path))
                    except OSError as e:
                        # Skip files we can't stat
                        logger.warning(f"Skipping {relative_path}: {e}")
                elif item.is_dir():
                    files.extend(self.scan_local(item, base_path))
        except PermissionError as e:
            logger.warning(f"Permission denied: {e}")

        return files

    def scan_remote(self, objects: Iterable[BlobMetadata]) -> Iterator[RemoteFile]:
        """Convert a remote listing into filtered RemoteFile objects.

        Args:
            objects: Flat listing from the gateway

        Yields:
            RemoteFile objects accepted by the extension filter
        """
        for metadata in objects:
            if not self.extension_filter.accepts(metadata.name):
                self.filtered_count += 1
                continue
            yield RemoteFile.from_metadata(metadata)
