"""
Tests for the Qt worker and command line entry point.
"""

import json

from conftest import write_package
from extension_manager import ExtensionEvents, InstallExtensionsWorker, build_parser, main
from installer_settings import InstallerSettings


class TestInstallExtensionsWorker:
    """Test signals emitted by a synchronous run of the worker."""

    def setup_method(self):
        self.finished = []
        self.progress = []
        self.installed_events = []

    def make_worker(self, settings):
        events = ExtensionEvents()
        events.extensions_installed.connect(lambda: self.installed_events.append(True))
        worker = InstallExtensionsWorker(settings, events)
        worker.finished.connect(lambda success, message: self.finished.append((success, message)))
        worker.progress.connect(self.progress.append)
        # Keep the QObject alive for the duration of the test
        self.events = events
        return worker

    def test_success_emits_completion(self, layout):
        pre_install_dir, extensions_dir = layout
        write_package(pre_install_dir / 'foo.tgz', {'name': 'foo', 'version': '1.0.0'})
        worker = self.make_worker(InstallerSettings(extensions_dir, pre_install_dir))

        worker.run()

        assert self.finished == [(True, worker.result['message'])]
        assert self.installed_events == [True]
        assert len(self.progress) == 1
        assert worker.result['installed'] == ['foo']

    def test_failure_does_not_emit_completion(self, tmp_path):
        worker = self.make_worker(InstallerSettings(tmp_path / 'extensions', tmp_path / 'missing'))

        worker.run()

        assert len(self.finished) == 1
        assert self.finished[0][0] is False
        assert self.installed_events == []

    def test_without_events(self, layout):
        pre_install_dir, extensions_dir = layout
        worker = InstallExtensionsWorker(InstallerSettings(extensions_dir, pre_install_dir))

        worker.run()

        assert worker.result['success'] is True


class TestCommandLine:
    def test_parser_defaults(self):
        args = build_parser().parse_args([])

        assert args.force is False
        assert args.extensions_dir is None
        assert args.log_level == 'INFO'

    def test_main_installs(self, layout, monkeypatch, capsys):
        pre_install_dir, extensions_dir = layout
        monkeypatch.delenv('IS_CLEAN', raising=False)
        monkeypatch.delenv('DISABLE_EXTENSION_REPLACEMENTS', raising=False)
        monkeypatch.setattr('extension_manager.configure_logging', lambda *args: None)
        write_package(pre_install_dir / 'foo.tgz', {'name': 'foo', 'version': '1.0.0'})

        exit_code = main(['--extensions-dir', str(extensions_dir), '--pre-install-dir', str(pre_install_dir)])

        assert exit_code == 0
        assert 'Installed 1 extension(s)' in capsys.readouterr().out
        registry = json.loads((extensions_dir / 'extensions.json').read_text(encoding='utf-8'))
        assert registry[0]['name'] == 'foo'

    def test_main_reports_failure(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr('extension_manager.configure_logging', lambda *args: None)

        exit_code = main(['--extensions-dir', str(tmp_path / 'ext'),
                          '--pre-install-dir', str(tmp_path / 'missing')])

        assert exit_code == 1
        assert 'Extension installation failed' in capsys.readouterr().err
