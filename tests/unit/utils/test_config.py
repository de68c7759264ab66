"""Unit tests for configuration loading."""
import pytest
import yaml
from unittest.mock import Mock

from phantomhub.core.implementations import YamlConfigLoader
from phantomhub.utils.config import (
    ConfigError,
    DEFAULT_STORE_PATH,
    Settings,
    apply_overrides,
    load_settings,
    settings_from_dict,
)


class TestSettingsFromDict:
    """Test settings_from_dict."""

    def test_empty_gives_defaults(self):
        settings = settings_from_dict({})

        assert settings == Settings()
        assert settings.timeouts.open_seconds == 5.0
        assert settings.timeouts.result_seconds == 30.0
        assert settings.protocol.write_command == 'DUCKY_WRITE'
        assert settings.store_path == DEFAULT_STORE_PATH

    def test_all_sections(self):
        settings = settings_from_dict({
            'timeouts': {'open_seconds': 2, 'ack_seconds': 3, 'result_seconds': 90},
            'transport': {'poll_interval_seconds': 0.05, 'network_port': 8080, 'serial_baudrate': 9600},
            'protocol': {'write_command': 'W', 'execute_command': 'X', 'end_marker': 'E'},
            'orchestrator': {'max_workers': 8},
            'store': {'path': '/var/lib/phantomhub/store.yaml'},
        })

        assert settings.timeouts.result_seconds == 90.0
        assert settings.transport.network_port == 8080
        assert settings.protocol.end_marker == 'E'
        assert settings.max_workers == 8
        assert settings.store_path == '/var/lib/phantomhub/store.yaml'

    @pytest.mark.parametrize('raw', [
        {'timeouts': {'open_seconds': 0}},
        {'timeouts': {'ack_seconds': -1}},
        {'timeouts': {'result_seconds': 'soon'}},
        {'orchestrator': {'max_workers': 0}},
        {'transport': {'network_port': 'http'}},
        {'transport': {'network_port': 70000}},
    ])
    def test_invalid_values(self, raw):
        with pytest.raises(ConfigError):
            settings_from_dict(raw)

    def test_highest_port_accepted(self):
        assert settings_from_dict({'transport': {'network_port': 65535}}).transport.network_port == 65535

    def test_non_mapping(self):
        with pytest.raises(ConfigError):
            settings_from_dict(['not', 'a', 'mapping'])


class TestApplyOverrides:
    """Test environment and explicit overrides."""

    def test_environment(self):
        settings = apply_overrides(Settings(), environ={
            'PHANTOMHUB_RESULT_TIMEOUT': '120',
            'PHANTOMHUB_STORE': '/tmp/store.yaml',
        })

        assert settings.timeouts.result_seconds == 120.0
        assert settings.timeouts.open_seconds == 5.0
        assert settings.store_path == '/tmp/store.yaml'

    def test_explicit_beats_environment(self):
        settings = apply_overrides(
            Settings(),
            environ={'PHANTOMHUB_OPEN_TIMEOUT': '9'},
            open_timeout=1.5,
            store_path='cli.yaml',
        )

        assert settings.timeouts.open_seconds == 1.5
        assert settings.store_path == 'cli.yaml'

    def test_invalid_environment_value(self):
        with pytest.raises(ConfigError):
            apply_overrides(Settings(), environ={'PHANTOMHUB_ACK_TIMEOUT': 'never'})


class TestLoadSettings:
    """Test load_settings with a loader."""

    def test_missing_default_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        loader = Mock()

        settings = load_settings(loader, environ={})

        assert settings == Settings()
        loader.load_yaml.assert_not_called()

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_settings(YamlConfigLoader(), str(tmp_path / 'absent.yaml'), environ={})

    def test_reads_yaml_file(self, tmp_path):
        path = tmp_path / 'phantomhub.yaml'
        path.write_text("timeouts:\n  result_seconds: 45\n")

        settings = load_settings(YamlConfigLoader(), str(path), environ={'PHANTOMHUB_OPEN_TIMEOUT': '3'})

        assert settings.timeouts.result_seconds == 45.0
        assert settings.timeouts.open_seconds == 3.0

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'phantomhub.yaml'
        path.write_text("")

        assert load_settings(YamlConfigLoader(), str(path), environ={}) == Settings()

    def test_invalid_yaml(self):
        loader = Mock()
        loader.load_yaml.side_effect = yaml.YAMLError("mapping values are not allowed here")

        with pytest.raises(ConfigError):
            load_settings(loader, 'broken.yaml', environ={})
