"""
Package Archive
Reads descriptors from and unpacks bundled .tgz extension packages
"""

import json
import logging
import os
import shutil
import tarfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from installer_settings import DEFAULT_MAIN, MANIFEST_FILENAME

logger = logging.getLogger(__name__)


class ArchiveError(Exception):
    """Raised when a bundled archive cannot be opened or decoded."""

    def __init__(self, message, archive_path=None):
        super().__init__(message)
        self.archive_path = archive_path


@dataclass(frozen=True)
class PackageManifest:
    """Descriptor fields the installer cares about."""
    name: str
    version: str = ''
    main: str = DEFAULT_MAIN
    description: str = ''
    product_name: str = ''

    @classmethod
    def from_dict(cls, data):
        """Build a manifest from parsed descriptor JSON.

        Args:
            data: Any - Parsed JSON value

        Returns:
            Optional PackageManifest - None when data is not an object or has
            no usable (non-empty string) name
        """
        if not isinstance(data, dict):
            return None
        name = data.get('name')
        if not isinstance(name, str) or not name:
            return None

        def text(key, default=''):
            value = data.get(key)
            return value if isinstance(value, str) else default

        return cls(
            name=name,
            version=text('version'),
            main=text('main', DEFAULT_MAIN),
            description=text('description'),
            product_name=text('productName'),
        )


def _entry_parts(member):
    return PurePosixPath(member.name).parts


def _is_manifest_entry(parts):
    # At the archive root or directly inside a single wrapper directory
    if len(parts) == 1:
        return parts[0] == MANIFEST_FILENAME
    return len(parts) == 2 and parts[0] != '/' and parts[1] == MANIFEST_FILENAME


class PackageArchive:
    def __init__(self, archive_path):
        """Initialize package archive.

        Args:
            archive_path: str/Path - Path to a gzip-compressed tar package
        """
        self.archive_path = Path(archive_path)

    def _open(self):
        # Streaming mode: every pass decodes from the start of the file
        return tarfile.open(self.archive_path, mode='r|gz')

    def modified_time(self):
        """Archive file mtime in nanoseconds, None when unavailable."""
        try:
            return self.archive_path.stat().st_mtime_ns
        except OSError:
            return None

    def read_manifest(self):
        """Scan the archive once for the package descriptor.

        Entries that cannot be read or parsed are skipped and the scan
        continues with the next entry.

        Returns:
            Optional PackageManifest - First usable descriptor, None if none found

        Raises:
            ArchiveError: If the archive cannot be opened or decoded
        """
        try:
            with self._open() as tar:
                for member in tar:
                    if not member.isfile() or not _is_manifest_entry(_entry_parts(member)):
                        continue
                    try:
                        content = tar.extractfile(member).read().decode('utf-8')
                        data = json.loads(content)
                    except (OSError, EOFError, tarfile.TarError, ValueError) as e:
                        logger.debug("Skipping unreadable entry %s in %s: %s",
                                     member.name, self.archive_path.name, e)
                        continue
                    manifest = PackageManifest.from_dict(data)
                    if manifest is not None:
                        return manifest
                    logger.debug("Descriptor %s in %s has no usable name",
                                 member.name, self.archive_path.name)
        except (OSError, EOFError, tarfile.TarError) as e:
            raise ArchiveError(f"Cannot read archive {self.archive_path}: {e}", self.archive_path) from e
        return None

    def unpack_to(self, target_dir):
        """Extract the archive into target_dir, dropping the wrapper directory.

        An entry "pkg/lib/a.js" lands at target_dir/lib/a.js. Entries with a
        single path component (the wrapper itself or loose root files) are
        skipped, as are entries that would escape target_dir and entries that
        are neither files nor directories.

        Args:
            target_dir: str/Path - Existing directory to populate

        Returns:
            int - Number of files written

        Raises:
            ArchiveError: If the archive cannot be decoded
            OSError: If a directory or file cannot be written
        """
        target_dir = Path(target_dir)
        written = 0
        try:
            with self._open() as tar:
                for member in tar:
                    parts = _entry_parts(member)
                    if len(parts) <= 1:
                        continue
                    relative = parts[1:]
                    if parts[0] == '/' or '..' in relative:
                        logger.warning("Skipping unsafe entry %s in %s", member.name, self.archive_path.name)
                        continue

                    target_path = target_dir.joinpath(*relative)
                    if member.isdir():
                        target_path.mkdir(parents=True, exist_ok=True)
                        continue
                    if not member.isfile():
                        logger.debug("Skipping non-regular entry %s in %s", member.name, self.archive_path.name)
                        continue

                    target_path.parent.mkdir(parents=True, exist_ok=True)
                    source = tar.extractfile(member)
                    with open(target_path, 'wb') as f:
                        shutil.copyfileobj(source, f)
                    os.chmod(target_path, (member.mode & 0o777) | 0o600)
                    written += 1
        except (EOFError, tarfile.TarError) as e:
            raise ArchiveError(f"Cannot unpack archive {self.archive_path}: {e}", self.archive_path) from e
        return written
