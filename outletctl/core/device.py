"""Simulated outlet hardware and its status emission."""

from __future__ import annotations

import json
import logging
import sys
from typing import Protocol, TextIO

from outletctl.core.errors import DeviceError
from outletctl.core.model import PowerStatus

LOGGER = logging.getLogger(__name__)


class StatusSink(Protocol):
    def emit(self, status: PowerStatus) -> None:
        """Report a power-state change to an external observer."""


class JsonLineStatusSink:
    """Writes each status as one JSON object per line."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def emit(self, status: PowerStatus) -> None:
        stream = self._stream or sys.stdout
        stream.write(json.dumps(status.as_dict()) + "\n")
        stream.flush()


class SimulatedOutlet:
    """In-memory stand-in for a switchable outlet.

    ``fault`` stays ``None`` in simulation. Setting it makes every read and
    write fail with that error, the same way unreachable hardware would.
    """

    def __init__(
        self,
        *,
        device_id: int = 0,
        power_on: bool = False,
        sink: StatusSink | None = None,
    ) -> None:
        self.device_id = device_id
        self._power_on = power_on
        self._sink = sink or JsonLineStatusSink()
        self.fault: DeviceError | None = None

    def set_power(self, on: bool) -> None:
        if self.fault is not None:
            raise self.fault
        LOGGER.info("Turning the outlet %s!...", "on" if on else "off")
        self._power_on = bool(on)
        self._sink.emit(PowerStatus(id=self.device_id, power=self._power_on))
        LOGGER.info("...outlet is now %s.", "on" if self._power_on else "off")

    def get_power(self) -> bool:
        if self.fault is not None:
            raise self.fault
        LOGGER.info("Are we on? %s", "Yes." if self._power_on else "No.")
        return self._power_on

    def identify(self) -> None:
        LOGGER.info("Identify the outlet.")
