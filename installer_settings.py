"""
Installer Settings
Resolves paths, environment flags and logging for the extension installer
"""

import logging
import os
from pathlib import Path

MANIFEST_FILENAME = 'package.json'
DEFAULT_MAIN = 'index.js'
REGISTRY_FILENAME = 'extensions.json'
BUNDLED_SUFFIX = '.tgz'

CLEAN_ENV = 'IS_CLEAN'
DISABLE_REPLACEMENTS_ENV = 'DISABLE_EXTENSION_REPLACEMENTS'
EXTENSIONS_DIR_ENV = 'JAN_EXTENSIONS_DIR'
PRE_INSTALL_DIR_ENV = 'JAN_PRE_INSTALL_DIR'

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def default_extensions_dir():
    """Extensions root used when none is configured."""
    configured = os.environ.get(EXTENSIONS_DIR_ENV)
    if configured:
        return Path(configured)
    return Path.home() / 'jan' / 'extensions'


def default_pre_install_dir():
    """Bundled packages directory used when none is configured."""
    configured = os.environ.get(PRE_INSTALL_DIR_ENV)
    if configured:
        return Path(configured)
    return Path(__file__).resolve().parent / 'resources' / 'pre-install'


class InstallerSettings:
    def __init__(self, extensions_dir, pre_install_dir, clean_up=False, replacements_disabled=False):
        """Initialize installer settings.

        Args:
            extensions_dir: str/Path - Root directory holding installed extensions
            pre_install_dir: str/Path - Directory of bundled .tgz packages
            clean_up: bool - Discard prior registry and installed folders
            replacements_disabled: bool - Never install or replace an extension
        """
        self.extensions_dir = Path(extensions_dir)
        self.pre_install_dir = Path(pre_install_dir)
        self.clean_up = clean_up
        self.replacements_disabled = replacements_disabled

    @property
    def registry_file(self):
        return self.extensions_dir / REGISTRY_FILENAME

    @classmethod
    def from_env(cls, extensions_dir=None, pre_install_dir=None, force=False, environ=None):
        """Resolve settings once for a pass.

        The clean flag is set by an explicit force request or by the presence
        of IS_CLEAN; replacements are disabled by the presence of
        DISABLE_EXTENSION_REPLACEMENTS. Values of either variable are ignored.

        Args:
            extensions_dir: Optional str/Path - Overrides the default extensions root
            pre_install_dir: Optional str/Path - Overrides the default bundled directory
            force: bool - Explicit clean reinstall request
            environ: Optional mapping - Environment to read (defaults to os.environ)

        Returns:
            InstallerSettings - Resolved settings
        """
        if environ is None:
            environ = os.environ
        return cls(
            extensions_dir if extensions_dir is not None else default_extensions_dir(),
            pre_install_dir if pre_install_dir is not None else default_pre_install_dir(),
            clean_up=force or CLEAN_ENV in environ,
            replacements_disabled=DISABLE_REPLACEMENTS_ENV in environ,
        )

    def __repr__(self):
        return (f"InstallerSettings(extensions_dir={str(self.extensions_dir)!r}, "
                f"pre_install_dir={str(self.pre_install_dir)!r}, clean_up={self.clean_up}, "
                f"replacements_disabled={self.replacements_disabled})")


def configure_logging(level="INFO", log_file=None):
    """Configure the root logger with a stream handler and optional file output.

    Args:
        level: str - Logging level name (e.g. "DEBUG", "INFO")
        log_file: Optional str/Path - Extra file to log to
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handlers = [logging.StreamHandler()]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(log_file), encoding='utf-8'))

    formatter = logging.Formatter(fmt=LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    root.debug("Logging configured: level=%s file=%s", level, str(log_file) if log_file else None)
