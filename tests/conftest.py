"""Pytest configuration for the extension installer tests.

Ensures the repository root is on sys.path so the top-level modules import
without an installed distribution, and provides helpers that build .tgz
packages on the fly.
"""

import io
import json
import sys
import tarfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def write_package(archive_path, manifest=None, files=None, wrapper='package', extra_members=None):
    """Write a gzip-compressed tar package.

    Args:
        archive_path: Path - Destination .tgz
        manifest: Optional dict/str - package.json content inside the wrapper
        files: Optional dict - relative path -> str/bytes content inside the wrapper
        wrapper: Optional str - Wrapper directory name, None for a flat archive
        extra_members: Optional list - (TarInfo, bytes or None) added verbatim
    """
    archive_path = Path(archive_path)
    archive_path.parent.mkdir(parents=True, exist_ok=True)

    def add_file(tar, name, content):
        if isinstance(content, str):
            content = content.encode('utf-8')
        info = tarfile.TarInfo(name)
        info.size = len(content)
        info.mode = 0o644
        tar.addfile(info, io.BytesIO(content))

    prefix = f"{wrapper}/" if wrapper else ''
    with tarfile.open(archive_path, 'w:gz') as tar:
        if wrapper:
            info = tarfile.TarInfo(wrapper)
            info.type = tarfile.DIRTYPE
            info.mode = 0o755
            tar.addfile(info)
        if manifest is not None:
            content = manifest if isinstance(manifest, str) else json.dumps(manifest)
            add_file(tar, prefix + 'package.json', content)
        for name, content in (files or {}).items():
            add_file(tar, prefix + name, content)
        for info, content in (extra_members or []):
            tar.addfile(info, io.BytesIO(content) if content is not None else None)
    return archive_path


def write_installed(extension_dir, manifest, files=None):
    """Lay out an already installed extension directory."""
    extension_dir = Path(extension_dir)
    extension_dir.mkdir(parents=True, exist_ok=True)
    (extension_dir / 'package.json').write_text(json.dumps(manifest), encoding='utf-8')
    for name, content in (files or {}).items():
        target = extension_dir / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding='utf-8')
    return extension_dir


@pytest.fixture
def layout(tmp_path):
    """Empty bundled directory and extensions root under tmp_path."""
    pre_install_dir = tmp_path / 'pre-install'
    pre_install_dir.mkdir()
    extensions_dir = tmp_path / 'extensions'
    return pre_install_dir, extensions_dir
