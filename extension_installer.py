"""
Extension Installer
Installs bundled extension packages and reconciles them with the registry
"""

import logging
import os
import shutil
import stat
import subprocess
import sys
import threading
from pathlib import Path, PurePosixPath

from extension_tracker import ExtensionTracker, build_record
from installed_state import InstalledExtension
from installer_settings import BUNDLED_SUFFIX
from package_archive import ArchiveError, PackageArchive
from version_policy import should_install

logger = logging.getLogger(__name__)

_root_locks = {}
_root_locks_guard = threading.Lock()


def _lock_for(extensions_dir):
    key = str(Path(extensions_dir).resolve())
    with _root_locks_guard:
        return _root_locks.setdefault(key, threading.Lock())


class ExtensionInstaller:
    def __init__(self, settings):
        """Initialize extension installer.

        Args:
            settings: InstallerSettings - Paths and flags resolved for this pass
        """
        self.settings = settings
        self.extensions_dir = settings.extensions_dir
        self.pre_install_dir = settings.pre_install_dir

    def _run_command(self, cmd, cwd=None, **kwargs):
        """Run a subprocess command while avoiding new console window on Windows."""
        if os.name == 'nt':
            kwargs.setdefault('creationflags', subprocess.CREATE_NO_WINDOW)
        return subprocess.run(cmd, cwd=cwd, **kwargs)

    def _handle_remove_readonly(self, func, path, exc):
        """Clear the read-only bit and retry a failed removal."""
        os.chmod(path, stat.S_IWRITE)
        func(path)

    def _remove_directory_safe(self, path):
        """Remove a directory tree, retrying read-only files.

        Args:
            path: Path - Directory to remove

        Raises:
            OSError: If the directory still cannot be removed
        """
        if not path.exists():
            return

        try:
            shutil.rmtree(path)
        except OSError:
            try:
                if sys.version_info >= (3, 12):
                    shutil.rmtree(path, onexc=self._handle_remove_readonly)
                else:
                    shutil.rmtree(path, onerror=self._handle_remove_readonly)
            except OSError:
                if os.name != 'nt':
                    raise
                self._run_command(['cmd', '/c', 'rmdir', '/S', '/Q', str(path)], capture_output=True)
                if path.exists():
                    raise

    def bundled_archives(self):
        """List bundled .tgz packages in filename order.

        Raises:
            OSError: If the bundled directory cannot be listed
        """
        return sorted(
            (entry for entry in self.pre_install_dir.iterdir()
             if entry.suffix == BUNDLED_SUFFIX and entry.is_file()),
            key=lambda entry: entry.name,
        )

    def _extension_dir(self, name):
        """Install directory for name, None if it would leave the extensions root.

        Scoped names such as "@scope/pkg" install one level deeper.
        """
        parts = PurePosixPath(name).parts
        if not parts or parts[0] == '/' or '..' in parts or '\\' in name:
            return None
        return self.extensions_dir.joinpath(*parts)

    def _prepare_extensions_dir(self, tracker):
        clean_up = self.settings.clean_up
        if clean_up:
            if self.settings.replacements_disabled:
                logger.info("Replacements disabled, keeping installed extension folders")
            else:
                self._remove_directory_safe(self.extensions_dir)
            tracker.clear()
        self.extensions_dir.mkdir(parents=True, exist_ok=True)

    def _install_package(self, archive_path, tracker):
        """Reconcile a single bundled package with the registry.

        Returns:
            tuple - ('installed' | 'kept', extension name) or
            ('skipped', archive filename or extension name)

        Raises:
            OSError, ArchiveError: If unpacking fails (fatal for the pass)
        """
        archive = PackageArchive(archive_path)
        try:
            manifest = archive.read_manifest()
        except ArchiveError as e:
            logger.warning("Skipping %s: %s", archive_path.name, e)
            return 'skipped', archive_path.name
        if manifest is None:
            logger.warning("Skipping %s: package.json with a name not found in archive", archive_path.name)
            return 'skipped', archive_path.name

        name = manifest.name
        extension_dir = self._extension_dir(name)
        if extension_dir is None:
            logger.warning("Skipping %s: unsafe extension name %r", archive_path.name, name)
            return 'skipped', archive_path.name
        installed = InstalledExtension(extension_dir)
        dir_exists = installed.exists()
        installed_version = installed.version()
        bundled_mtime = archive.modified_time()
        installed_mtime = installed.modified_time()

        install = should_install(
            self.settings.clean_up,
            self.settings.replacements_disabled,
            dir_exists,
            manifest.version,
            installed_version,
            bundled_mtime,
            installed_mtime,
        )
        logger.debug(
            "%s: bundled=%r installed=%r dir_exists=%s bundled_mtime=%s installed_mtime=%s -> install=%s",
            name, manifest.version, installed_version, dir_exists, bundled_mtime, installed_mtime, install,
        )

        if install:
            self._remove_directory_safe(extension_dir)
            extension_dir.mkdir(parents=True)
            try:
                archive.unpack_to(extension_dir)
            except (OSError, ArchiveError):
                # No partial tree is left behind
                self._remove_directory_safe(extension_dir)
                raise
            logger.info("Installed extension %s to %s", name, extension_dir)
            tracker.merge(name, build_record(manifest, str(extension_dir)))
            return 'installed', name

        origin = tracker.get_origin(name)
        if origin is None or not Path(origin).is_dir():
            origin = str(extension_dir) if extension_dir.is_dir() else None
        if origin is None:
            logger.warning("Not registering %s: %s does not exist", name, extension_dir)
            tracker.remove(name)
            return 'skipped', name
        tracker.merge(name, build_record(manifest, origin))
        return 'kept', name

    def _run_pass(self):
        logger.info(
            "Installing extensions. Clean up: %s, replacements disabled: %s",
            self.settings.clean_up, self.settings.replacements_disabled,
        )
        self.extensions_dir.mkdir(parents=True, exist_ok=True)
        tracker = ExtensionTracker(self.settings.registry_file)
        self._prepare_extensions_dir(tracker)

        outcome = {'installed': [], 'kept': [], 'skipped': []}
        for archive_path in self.bundled_archives():
            status, label = self._install_package(archive_path, tracker)
            outcome[status].append(label)

        tracker.save_extensions()
        return outcome

    def install_extensions(self):
        """Run one reconciliation pass over the bundled packages.

        Returns:
            dict - Result with keys:
            - success: bool - whether the pass completed and the registry was written
            - message: str - summary on success
            - installed: list - extension names that were (re)installed
            - kept: list - extension names left at their installed state
            - skipped: list - archives or extensions that were not registered
            - error: str - error message if failed
        """
        with _lock_for(self.extensions_dir):
            try:
                outcome = self._run_pass()
            except (OSError, ArchiveError) as e:
                logger.error("Extension installation failed: %s", e)
                return {'success': False, 'error': str(e)}

        message = (f"Installed {len(outcome['installed'])} extension(s), "
                   f"kept {len(outcome['kept'])}, skipped {len(outcome['skipped'])}")
        return {'success': True, 'message': message, **outcome}


def install_extensions(settings):
    """Convenience wrapper running a pass with the given settings"""
    return ExtensionInstaller(settings).install_extensions()
