"""HomeKit transport backed by HAP-python."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from outletctl.core.errors import ConfigurationError, TransportConnectError, TransportError
from outletctl.core.model import AccessoryRegistration, CharacteristicBinding

LOGGER = logging.getLogger(__name__)


class Completion:
    """Collects the result a handler passes to its completion callback."""

    def __init__(self) -> None:
        self.called = False
        self.error: Exception | None = None
        self.value: Any = None

    def __call__(self, error: Exception | None = None, value: Any = None) -> None:
        self.called = True
        self.error = error
        self.value = value

    def result(self) -> Any:
        if not self.called:
            raise TransportError("Handler returned without completing its callback")
        if self.error is not None:
            raise self.error
        return self.value


def _state_dir() -> Path:
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_data / "outletctl/state"


def persist_file_for(registration: AccessoryRegistration) -> Path:
    return _state_dir() / f"{registration.identifier}.state"


def setter_for(binding: CharacteristicBinding):
    def _setter(value: Any) -> None:
        outcome = Completion()
        binding.on_set(value, outcome)
        outcome.result()

    return _setter


def getter_for(binding: CharacteristicBinding):
    def _getter() -> Any:
        outcome = Completion()
        binding.on_get(outcome)
        return outcome.result()

    return _getter


def identify_for(binding: CharacteristicBinding, paired: Callable[[], bool]):
    def _identify(_value: Any) -> None:
        outcome = Completion()
        binding.on_identify(paired(), outcome)
        outcome.result()

    return _identify


class HAPTransport:
    """Publishes one standalone accessory through a HAP-python driver.

    The driver shares the caller's running event loop, so stopping it never
    stops the loop itself.
    """

    def __init__(self) -> None:
        self._driver: Any = None

    @property
    def driver(self) -> Any:
        return self._driver

    async def publish(self, registration: AccessoryRegistration) -> None:
        try:
            from pyhap import const  # type: ignore
            from pyhap.accessory import Accessory  # type: ignore
            from pyhap.accessory_driver import AccessoryDriver  # type: ignore
        except Exception as exc:
            raise TransportConnectError(
                "HomeKit transport requires 'HAP-python'. Install the 'hap' extra and retry."
            ) from exc

        if self._driver is not None:
            raise TransportError(f"Accessory {registration.identifier} is already published")

        category = getattr(const, f"CATEGORY_{(registration.category or '').upper()}", None)
        if category is None:
            raise ConfigurationError(f"HAP-python has no category '{registration.category}'")

        persist_file = persist_file_for(registration)
        persist_file.parent.mkdir(parents=True, exist_ok=True)

        driver_kwargs: dict[str, Any] = {
            "port": registration.port,
            "persist_file": str(persist_file),
            "pincode": registration.credentials.pincode.encode("utf-8"),
            "mac": registration.credentials.username.upper(),
            "loop": asyncio.get_running_loop(),
        }
        if registration.address:
            driver_kwargs["address"] = registration.address
        if registration.advertiser == "all":
            from zeroconf import InterfaceChoice  # type: ignore

            driver_kwargs["interface_choice"] = InterfaceChoice.All

        try:
            driver = AccessoryDriver(**driver_kwargs)
        except OSError as exc:
            raise TransportConnectError(f"Could not create HAP driver: {exc}") from exc

        accessory = Accessory(driver, registration.display_name)
        accessory.category = category
        info = registration.info
        accessory.set_info_service(
            firmware_revision=info.firmware_revision,
            manufacturer=info.manufacturer,
            model=info.model,
            serial_number=info.serial_number,
        )

        for binding in registration.services:
            service = accessory.get_service(binding.service)
            if service is None:
                service = accessory.add_preload_service(binding.service)
            service.configure_char(
                binding.characteristic,
                setter_callback=setter_for(binding),
                getter_callback=getter_for(binding),
            )
            if binding.on_identify is not None:
                accessory.get_service("AccessoryInformation").configure_char(
                    "Identify",
                    setter_callback=identify_for(binding, lambda: bool(driver.state.paired)),
                )

        driver.add_accessory(accessory=accessory)
        LOGGER.info(
            "Starting HAP server for '%s' on port %d (state: %s)",
            registration.display_name,
            registration.port,
            persist_file,
        )
        try:
            await driver.async_start()
        except OSError as exc:
            raise TransportConnectError(f"HAP server failed to start: {exc}") from exc
        self._driver = driver

    async def unpublish(self) -> None:
        if self._driver is None:
            return
        driver, self._driver = self._driver, None
        LOGGER.info("Stopping HAP server and mDNS advertisement")
        await driver.async_stop()
