"""
Line-oriented command channel over a TransportSession.

Responses are runs of text lines. A response is complete at a line equal
to OK or a line starting with ERROR:. Bytes that arrive after a complete
response are kept for the next read_response() call.
"""

import codecs
from dataclasses import dataclass
from typing import List, Optional, Tuple

from phantomhub.core.protocols import TimeProvider
from phantomhub.transport.base import TransportSession
from phantomhub.transport.exceptions import TransportTimeoutError
from phantomhub.utils.config import ProtocolSettings

OK_LINE = "OK"
ERROR_PREFIX = "ERROR:"


@dataclass
class CommandResponse:
    success: bool
    data: str
    error: Optional[str] = None


def parse_response(text: str) -> CommandResponse:
    """Parse a complete response into success flag, data and error message."""
    lines = [line.strip() for line in text.split('\n') if line.strip()]

    for line in lines:
        if line.startswith(ERROR_PREFIX):
            message = line[len(ERROR_PREFIX):].strip() or "Unknown error"
            return CommandResponse(success=False, data='\n'.join(lines), error=message)

    success = bool(lines) and lines[-1] == OK_LINE
    data = lines[:-1] if success else lines
    return CommandResponse(success=success, data='\n'.join(data))


def split_response(buffer: str) -> Tuple[Optional[str], str]:
    """
    Take the first complete response off the front of buffer.

    Returns:
        (response text or None if incomplete, remaining buffer)
    """
    consumed: List[str] = []
    rest = buffer
    while '\n' in rest:
        line, rest = rest.split('\n', 1)
        consumed.append(line)
        stripped = line.strip()
        if stripped == OK_LINE or stripped.startswith(ERROR_PREFIX):
            return '\n'.join(consumed), rest
    return None, buffer


class CommandChannel:
    """Frames payloads onto a session and reads back parsed responses."""

    def __init__(self, session: TransportSession, settings: ProtocolSettings, time_provider: TimeProvider):
        self.session = session
        self.settings = settings
        self.time = time_provider
        self._buffer = ""
        # Multibyte characters may be split across reads
        self._decoder = codecs.getincrementaldecoder('utf-8')(errors='replace')

    def frame_payload(self, script: str) -> bytes:
        """Write command, script body, end marker, then execute command."""
        body = script if script.endswith('\n') else script + '\n'
        text = (
            f"{self.settings.write_command}\r\n"
            f"{body}"
            f"{self.settings.end_marker}\r\n"
            f"{self.settings.execute_command}\r\n"
        )
        return text.encode('utf-8')

    def send_payload(self, script: str) -> None:
        self.session.send(self.frame_payload(script))

    def read_response(self, timeout: float) -> CommandResponse:
        """
        Read one complete response within timeout seconds.

        Raises:
            TransportTimeoutError: no complete response within timeout
            TransportIOError, DeploymentCancelled: from the session
        """
        deadline = self.time.monotonic() + timeout
        while True:
            response, self._buffer = split_response(self._buffer)
            if response is not None:
                return parse_response(response)

            remaining = deadline - self.time.monotonic()
            if remaining <= 0:
                raise TransportTimeoutError(
                    f"Incomplete response from {self.session.device.name} after {timeout:.1f}s"
                )
            chunk = self.session.receive(remaining)
            self._buffer += self._decoder.decode(chunk).replace('\r', '')
