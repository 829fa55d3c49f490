"""
Installed State
Reads the descriptor of an already unpacked extension without side effects
"""

import json
from pathlib import Path

from installer_settings import MANIFEST_FILENAME


class InstalledExtension:
    def __init__(self, extension_dir):
        """Initialize installed extension reader.

        Args:
            extension_dir: str/Path - Candidate installation directory (may not exist)
        """
        self.extension_dir = Path(extension_dir)
        self.manifest_path = self.extension_dir / MANIFEST_FILENAME

    def exists(self):
        return self.extension_dir.exists()

    def version(self):
        """Read the installed descriptor's version.

        Returns:
            str - Version string, or '' when the directory or descriptor is
            missing, unreadable, not a JSON object or has no string version
        """
        try:
            with open(self.manifest_path, 'r', encoding='utf-8') as f:
                manifest = json.load(f)
        except (OSError, ValueError):
            return ''
        if not isinstance(manifest, dict):
            return ''
        version = manifest.get('version')
        return version if isinstance(version, str) else ''

    def modified_time(self):
        """Read the installed descriptor's modification time.

        Returns:
            Optional int - mtime in nanoseconds, None when unknown
        """
        try:
            return self.manifest_path.stat().st_mtime_ns
        except OSError:
            return None
