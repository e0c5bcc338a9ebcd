"""Transport interfaces."""

from __future__ import annotations

from typing import Protocol

from outletctl.core.model import AccessoryRegistration, GetCallback, IdentifyCallback, SetCallback


class AccessoryHandler(Protocol):
    def on_get(self, callback: GetCallback) -> None:
        """Serve a characteristic read through ``callback(error, value)``."""

    def on_set(self, value: object, callback: SetCallback) -> None:
        """Apply a characteristic write and complete through ``callback(error)``."""

    def on_identify(self, paired: bool, callback: IdentifyCallback) -> None:
        """Run the identify action and complete through ``callback(error)``."""


class AccessoryTransport(Protocol):
    async def publish(self, registration: AccessoryRegistration) -> None:
        """Start advertising and serving the accessory."""

    async def unpublish(self) -> None:
        """Stop serving and withdraw the advertisement."""
