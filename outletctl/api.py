"""Stable public API for building tooling on top of outletctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

import uuid
from typing import TextIO

from outletctl.core.adapter import DEFAULT_GRACE_PERIOD_S, AccessoryAdapter
from outletctl.core.device import JsonLineStatusSink, SimulatedOutlet, StatusSink
from outletctl.core.errors import (
    ConfigurationError,
    DeviceError,
    DeviceUnavailableError,
    LifecycleError,
    OutletctlError,
    ParseError,
    ShutdownTimeoutError,
    TransportConnectError,
    TransportError,
)
from outletctl.core.identifier import generate
from outletctl.core.model import (
    SHUTDOWN_SIGNALS,
    AccessoryConfig,
    AccessoryInfo,
    AccessoryRegistration,
    CharacteristicBinding,
    Credentials,
    PowerStatus,
    PublishState,
)
from outletctl.core.service import OutletService, build_registration
from outletctl.transports.base import AccessoryHandler, AccessoryTransport
from outletctl.transports.hap import HAPTransport

__all__ = [
    "OutletctlError",
    "ConfigurationError",
    "ParseError",
    "DeviceError",
    "DeviceUnavailableError",
    "LifecycleError",
    "ShutdownTimeoutError",
    "TransportError",
    "TransportConnectError",
    "SHUTDOWN_SIGNALS",
    "AccessoryConfig",
    "AccessoryInfo",
    "AccessoryRegistration",
    "CharacteristicBinding",
    "Credentials",
    "PowerStatus",
    "PublishState",
    "AccessoryAdapter",
    "AccessoryHandler",
    "AccessoryTransport",
    "HAPTransport",
    "JsonLineStatusSink",
    "SimulatedOutlet",
    "StatusSink",
    "build_registration",
    "generate",
    "Client",
]


class Client:
    """Public client for outletctl accessory definitions and serving.

    A `Client` wraps accessory loading, identifier derivation, and the
    publish/shutdown lifecycle behind a stable API for scripts and services.
    """

    def __init__(
        self,
        *,
        transport: AccessoryTransport | None = None,
        sink: StatusSink | None = None,
    ) -> None:
        self._service = OutletService(transport=transport, sink=sink)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def list_accessories(self) -> list[AccessoryConfig]:
        return self._service.list_accessories()

    def resolve_accessory(self, accessory_id: str | None = None) -> AccessoryConfig:
        return self._service.resolve_accessory(accessory_id)

    def identifier_for(self, accessory_id: str | None = None) -> uuid.UUID:
        return self._service.identifier_for(self._service.resolve_accessory(accessory_id))

    async def serve(
        self,
        accessory_id: str | None = None,
        *,
        grace_period_s: float = DEFAULT_GRACE_PERIOD_S,
        diagnostics: TextIO | None = None,
    ) -> int:
        return await self._service.serve(
            accessory_id,
            grace_period_s=grace_period_s,
            diagnostics=diagnostics,
        )
