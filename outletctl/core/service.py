"""Service layer used by CLI and API frontends."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from typing import TextIO

from outletctl.core.adapter import DEFAULT_GRACE_PERIOD_S, AccessoryAdapter
from outletctl.core.config_loader import load_accessories
from outletctl.core.device import SimulatedOutlet, StatusSink
from outletctl.core.diagnostics import DiagnosticReader
from outletctl.core.errors import ConfigurationError
from outletctl.core.identifier import generate
from outletctl.core.model import AccessoryConfig, AccessoryRegistration
from outletctl.transports.base import AccessoryTransport
from outletctl.transports.hap import HAPTransport

LOGGER = logging.getLogger(__name__)


def build_registration(config: AccessoryConfig, adapter: AccessoryAdapter) -> AccessoryRegistration:
    return AccessoryRegistration(
        identifier=generate(config.namespace, config.name),
        display_name=config.name,
        category=config.category,
        credentials=config.credentials,
        advertiser=config.transport.advertiser,
        port=config.transport.port,
        address=config.transport.address,
        info=config.info,
        services=adapter.bindings(),
    )


class OutletService:
    def __init__(
        self,
        *,
        transport: AccessoryTransport | None = None,
        sink: StatusSink | None = None,
    ) -> None:
        loaded = load_accessories()
        self.accessories = loaded.accessories
        self.load_warnings = loaded.warnings
        self.transport = transport
        self.sink = sink

    def list_accessories(self) -> list[AccessoryConfig]:
        return sorted(self.accessories.values(), key=lambda a: a.id)

    def identifier_for(self, config: AccessoryConfig) -> uuid.UUID:
        return generate(config.namespace, config.name)

    def resolve_accessory(self, accessory_id: str | None) -> AccessoryConfig:
        if accessory_id:
            config = self.accessories.get(accessory_id)
            if config is None:
                raise ConfigurationError(
                    f"Unknown accessory '{accessory_id}'. Use 'outletctl list' to inspect available accessories."
                )
            return config

        if not self.accessories:
            raise ConfigurationError("No accessories defined")
        if len(self.accessories) > 1:
            ids = ", ".join(sorted(self.accessories))
            raise ConfigurationError(
                f"Multiple accessories defined: {ids}. Use --accessory to choose one."
            )
        return next(iter(self.accessories.values()))

    def build_adapter(
        self,
        config: AccessoryConfig,
        *,
        grace_period_s: float = DEFAULT_GRACE_PERIOD_S,
        force_exit: Callable[[int], object] | None = None,
    ) -> AccessoryAdapter:
        device = SimulatedOutlet(
            device_id=config.device.id,
            power_on=config.device.initial_power,
            sink=self.sink,
        )
        transport = self.transport or HAPTransport()
        return AccessoryAdapter(
            device,
            transport,
            grace_period_s=grace_period_s,
            force_exit=force_exit,
        )

    async def serve(
        self,
        accessory_id: str | None = None,
        *,
        grace_period_s: float = DEFAULT_GRACE_PERIOD_S,
        diagnostics: TextIO | None = None,
        force_exit: Callable[[int], object] | None = None,
    ) -> int:
        """Publish the accessory and block until a shutdown signal; returns the exit code.

        With ``force_exit`` set, it is called with the exit code if the process
        is still alive shortly after the grace period.
        """
        config = self.resolve_accessory(accessory_id)
        adapter = self.build_adapter(
            config,
            grace_period_s=grace_period_s,
            force_exit=force_exit,
        )
        registration = build_registration(config, adapter)

        await adapter.publish(registration)

        loop = asyncio.get_running_loop()
        adapter.install_signal_handlers(loop)
        try:
            if diagnostics is not None:
                DiagnosticReader(diagnostics).start()
            return await adapter.wait_closed()
        finally:
            # The watchdog stays armed; event loop teardown can still block on a cancelled unpublish.
            adapter.remove_signal_handlers(loop)
