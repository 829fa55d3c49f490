"""
Extension Tracker
Manages the extensions.json registry of installed extensions
"""

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def build_record(manifest, origin):
    """Build a registry record for an extension.

    Args:
        manifest: PackageManifest - Bundled descriptor
        origin: str - Installed extension root directory

    Returns:
        dict - Record with url, name, origin, active, description, version, productName
    """
    return {
        'url': str(Path(origin) / manifest.main),
        'name': manifest.name,
        'origin': origin,
        'active': True,
        'description': manifest.description,
        'version': manifest.version,
        'productName': manifest.product_name,
    }


class ExtensionTracker:
    def __init__(self, registry_file):
        self.registry_file = Path(registry_file)
        self.extensions = self._load_extensions()

    def _load_extensions(self):
        """Load records from extensions.json keyed by name.

        A missing, unreadable or non-array file yields an empty registry.
        Entries without a string name are dropped.
        """
        if not self.registry_file.exists():
            return {}
        try:
            with open(self.registry_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable registry %s: %s", self.registry_file, e)
            return {}
        if not isinstance(data, list):
            logger.warning("Ignoring registry %s: expected a JSON array", self.registry_file)
            return {}

        extensions = {}
        for record in data:
            if isinstance(record, dict) and isinstance(record.get('name'), str):
                extensions[record['name']] = record
        return extensions

    def clear(self):
        """Discard every known record"""
        self.extensions = {}

    def remove(self, name):
        """Forget the record for name, if any"""
        self.extensions.pop(name, None)

    def merge(self, name, record):
        """Insert or fully replace the record for name"""
        self.extensions[name] = record

    def get_extension(self, name):
        return self.extensions.get(name)

    def get_origin(self, name):
        """Previously recorded origin for name, if it is a string"""
        record = self.extensions.get(name)
        if record is None:
            return None
        origin = record.get('origin')
        return origin if isinstance(origin, str) else None

    def serialize(self):
        """Records ordered by name (case-sensitive)"""
        return [self.extensions[name] for name in sorted(self.extensions)]

    def save_extensions(self):
        """Rewrite extensions.json from the in-memory registry.

        Raises:
            OSError: If the file cannot be written
        """
        content = json.dumps(self.serialize(), indent=2, ensure_ascii=False)
        temp_file = self.registry_file.with_name(self.registry_file.name + '.tmp')
        with open(temp_file, 'w', encoding='utf-8') as f:
            f.write(content)
            f.write('\n')
        os.replace(temp_file, self.registry_file)
