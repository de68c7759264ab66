"""Production implementations of dependency injection protocols.

For testing, use mocks or the fakes in tests/fakes.py instead.
"""

import importlib.util
import socket
import sys
import time
import yaml
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any


class ConsoleLogger:
    """Production logger that prints to console (stdout/stderr)."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def info(self, message: str) -> None:
        """Print info message to stdout."""
        print(message)

    def warning(self, message: str) -> None:
        """Print warning message to stdout."""
        print(f"Warning: {message}")

    def error(self, message: str) -> None:
        """Print error message to stderr."""
        print(f"Error: {message}", file=sys.stderr)

    def debug(self, message: str) -> None:
        """Print debug message to stdout when verbose."""
        if self.verbose:
            print(f"Debug: {message}")


class SystemTimeProvider:
    """Production time provider using real time module."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


class YamlConfigLoader:
    """Production config loader using real YAML parser."""

    def load_yaml(self, path: str) -> Dict[str, Any]:
        """Load YAML file and return parsed dictionary (empty for empty files)."""
        content = Path(path).read_text()
        return yaml.safe_load(content) or {}


class SystemCapabilityProbe:
    """Detects transport support from the running interpreter."""

    def serial_available(self) -> bool:
        """pyserial must be importable for the usb transport."""
        return importlib.util.find_spec("serial") is not None

    def network_available(self) -> bool:
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError:
            return False
        sock.close()
        return True
