"""Configuration loading with YAML base file and runtime overrides.

Precedence (lowest to highest): built-in defaults, YAML file,
PHANTOMHUB_* environment variables, explicit overrides (CLI flags).
"""
import os
import yaml
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

from phantomhub.core.protocols import ConfigLoader

DEFAULT_CONFIG_PATH = "phantomhub.yaml"
DEFAULT_STORE_PATH = "phantomhub-store.yaml"
MAX_PORT = 65535

ENV_OVERRIDES = {
    'PHANTOMHUB_OPEN_TIMEOUT': 'open_seconds',
    'PHANTOMHUB_ACK_TIMEOUT': 'ack_seconds',
    'PHANTOMHUB_RESULT_TIMEOUT': 'result_seconds',
}


class ConfigError(ValueError):
    """Raised for malformed or out-of-range configuration values."""
    pass


@dataclass(frozen=True)
class Timeouts:
    """Independent budgets for each suspension point of a deployment."""
    open_seconds: float = 5.0
    ack_seconds: float = 5.0
    result_seconds: float = 30.0


@dataclass(frozen=True)
class TransportSettings:
    poll_interval_seconds: float = 0.1
    network_port: int = 80
    serial_baudrate: int = 115200


@dataclass(frozen=True)
class ProtocolSettings:
    write_command: str = "DUCKY_WRITE"
    execute_command: str = "DUCKY_EXECUTE"
    end_marker: str = "END"


@dataclass(frozen=True)
class Settings:
    timeouts: Timeouts = field(default_factory=Timeouts)
    transport: TransportSettings = field(default_factory=TransportSettings)
    protocol: ProtocolSettings = field(default_factory=ProtocolSettings)
    max_workers: int = 4
    store_path: str = DEFAULT_STORE_PATH


def _positive_float(section: str, key: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{section}.{key} must be a number, got {value!r}")
    if number <= 0:
        raise ConfigError(f"{section}.{key} must be positive, got {number}")
    return number


def _positive_int(section: str, key: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{section}.{key} must be an integer, got {value!r}")
    if number <= 0:
        raise ConfigError(f"{section}.{key} must be positive, got {number}")
    return number


def _port(value: Any) -> int:
    port = _positive_int('transport', 'network_port', value)
    if port > MAX_PORT:
        raise ConfigError(f"transport.network_port must be at most {MAX_PORT}, got {port}")
    return port


def settings_from_dict(raw: Optional[Mapping[str, Any]]) -> Settings:
    """Build Settings from a parsed YAML mapping. Unknown keys are ignored."""
    raw = raw or {}
    if not isinstance(raw, Mapping):
        raise ConfigError("Top-level configuration must be a mapping")

    t = raw.get('timeouts') or {}
    defaults = Timeouts()
    timeouts = Timeouts(
        open_seconds=_positive_float('timeouts', 'open_seconds', t.get('open_seconds', defaults.open_seconds)),
        ack_seconds=_positive_float('timeouts', 'ack_seconds', t.get('ack_seconds', defaults.ack_seconds)),
        result_seconds=_positive_float('timeouts', 'result_seconds', t.get('result_seconds', defaults.result_seconds)),
    )

    tr = raw.get('transport') or {}
    tr_defaults = TransportSettings()
    transport = TransportSettings(
        poll_interval_seconds=_positive_float(
            'transport', 'poll_interval_seconds',
            tr.get('poll_interval_seconds', tr_defaults.poll_interval_seconds)),
        network_port=_port(tr.get('network_port', tr_defaults.network_port)),
        serial_baudrate=_positive_int('transport', 'serial_baudrate', tr.get('serial_baudrate', tr_defaults.serial_baudrate)),
    )

    p = raw.get('protocol') or {}
    p_defaults = ProtocolSettings()
    protocol = ProtocolSettings(
        write_command=str(p.get('write_command', p_defaults.write_command)),
        execute_command=str(p.get('execute_command', p_defaults.execute_command)),
        end_marker=str(p.get('end_marker', p_defaults.end_marker)),
    )

    orchestrator = raw.get('orchestrator') or {}
    store = raw.get('store') or {}

    return Settings(
        timeouts=timeouts,
        transport=transport,
        protocol=protocol,
        max_workers=_positive_int('orchestrator', 'max_workers', orchestrator.get('max_workers', 4)),
        store_path=str(store.get('path', DEFAULT_STORE_PATH)),
    )


def apply_overrides(
    settings: Settings,
    environ: Optional[Mapping[str, str]] = None,
    open_timeout: Optional[float] = None,
    ack_timeout: Optional[float] = None,
    result_timeout: Optional[float] = None,
    store_path: Optional[str] = None,
) -> Settings:
    """Apply environment variables, then explicit overrides, to settings."""
    environ = os.environ if environ is None else environ
    timeout_values: Dict[str, float] = {}

    for env_name, attr in ENV_OVERRIDES.items():
        if environ.get(env_name):
            timeout_values[attr] = _positive_float('env', env_name, environ[env_name])

    explicit = {
        'open_seconds': open_timeout,
        'ack_seconds': ack_timeout,
        'result_seconds': result_timeout,
    }
    for attr, value in explicit.items():
        if value is not None:
            timeout_values[attr] = _positive_float('override', attr, value)

    if timeout_values:
        settings = replace(settings, timeouts=replace(settings.timeouts, **timeout_values))

    store = store_path or environ.get('PHANTOMHUB_STORE')
    if store:
        settings = replace(settings, store_path=store)

    return settings


def load_settings(
    loader: ConfigLoader,
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from config_path (or the default file, if present).

    A missing default file yields defaults; a missing explicit path is an error.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    if config_path is None and not os.path.exists(path):
        return apply_overrides(Settings(), environ=environ)

    try:
        raw = loader.load_yaml(path)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")
    return apply_overrides(settings_from_dict(raw), environ=environ)
