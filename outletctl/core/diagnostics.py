"""Line-oriented JSON side channel for diagnostic input."""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, TextIO

from outletctl.core.errors import ParseError

LOGGER = logging.getLogger(__name__)


def parse_diagnostic_line(line: str) -> Any:
    try:
        return json.loads(line)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Can't parse stdin: {line}") from exc


class DiagnosticReader:
    """Logs every JSON line read from ``stream``; bad lines are skipped."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._thread: threading.Thread | None = None
        self.accepted = 0
        self.rejected = 0

    def handle_line(self, line: str) -> None:
        line = line.strip()
        if not line:
            return
        try:
            data = parse_diagnostic_line(line)
        except ParseError as exc:
            self.rejected += 1
            LOGGER.warning("%s", exc)
            return
        self.accepted += 1
        LOGGER.info("Diagnostic input: %s", data)

    def run(self) -> None:
        for line in self._stream:
            self.handle_line(line)
        LOGGER.debug("Diagnostic stream closed")

    def start(self) -> threading.Thread:
        # Daemon thread: a blocking read on stdin must never hold up process exit.
        self._thread = threading.Thread(target=self.run, name="outletctl-diagnostics", daemon=True)
        self._thread.start()
        return self._thread
