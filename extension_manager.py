"""
Extension Manager
Runs the bundled extension installation pass for a Qt host application
"""

__version__ = "1.0"

import argparse
import logging
import sys

from PyQt6.QtCore import QCoreApplication, QObject, QThread, pyqtSignal

from extension_installer import ExtensionInstaller
from installer_settings import InstallerSettings, configure_logging

logger = logging.getLogger(__name__)


class ExtensionEvents(QObject):
    """Notifications for the UI layer.

    Signals:
        extensions_installed() - A pass completed and extensions.json is current
    """
    extensions_installed = pyqtSignal()


class InstallExtensionsWorker(QThread):
    """Thread worker for the extension installation pass.

    Signals:
        finished(success, message) - Pass complete
        progress(message) - Progress update
    """
    finished = pyqtSignal(bool, str)
    progress = pyqtSignal(str)

    def __init__(self, settings, events=None):
        """Initialize installation worker.

        Args:
            settings: InstallerSettings - Paths and flags for the pass
            events: Optional ExtensionEvents - Receives the completion notification
        """
        super().__init__()
        self.settings = settings
        self.events = events
        self.result = None

    def run(self):
        """Execute one installation pass.

        Emits: progress(message), finished(success, message) and, on success,
        events.extensions_installed()
        """
        try:
            self.progress.emit(f"Installing extensions from {self.settings.pre_install_dir}...")
            self.result = ExtensionInstaller(self.settings).install_extensions()
        except Exception as e:
            logger.exception("Extension installation crashed")
            self.result = {'success': False, 'error': str(e)}

        if self.result['success']:
            if self.events is not None:
                self.events.extensions_installed.emit()
            self.finished.emit(True, self.result['message'])
        else:
            self.finished.emit(False, self.result['error'])


def build_parser():
    parser = argparse.ArgumentParser(
        prog='jan-extensions',
        description="Install bundled extension packages and update extensions.json",
    )
    parser.add_argument('--force', action='store_true',
                        help="discard the registry and reinstall every bundled package")
    parser.add_argument('--extensions-dir', help="extensions root directory")
    parser.add_argument('--pre-install-dir', help="directory of bundled .tgz packages")
    parser.add_argument('--log-level', default='INFO', help="logging level (default: INFO)")
    parser.add_argument('--log-file', help="also write logs to this file")
    return parser


def main(argv=None):
    """Command line entry point. Runs one pass on a worker thread and exits."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    settings = InstallerSettings.from_env(
        extensions_dir=args.extensions_dir,
        pre_install_dir=args.pre_install_dir,
        force=args.force,
    )

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName("Extension Installer")

    events = ExtensionEvents()
    events.extensions_installed.connect(lambda: logger.info("Extensions updated"))

    worker = InstallExtensionsWorker(settings, events)
    worker.progress.connect(lambda message: logger.info(message))
    worker.finished.connect(app.quit)
    worker.start()
    app.exec()
    worker.wait()

    if worker.result['success']:
        print(worker.result['message'])
        return 0
    print(f"Extension installation failed: {worker.result['error']}", file=sys.stderr)
    return 1


if __name__ == '__main__':
    sys.exit(main())
