"""Binds a simulated outlet to the accessory protocol's event model."""

from __future__ import annotations

import asyncio
import logging
import signal
import threading
from collections.abc import Callable

from outletctl.core.device import SimulatedOutlet
from outletctl.core.errors import (
    DeviceError,
    LifecycleError,
    ShutdownTimeoutError,
)
from outletctl.core.model import (
    SHUTDOWN_SIGNALS,
    AccessoryRegistration,
    CharacteristicBinding,
    GetCallback,
    IdentifyCallback,
    PublishState,
    SetCallback,
)
from outletctl.core.validation import validate_registration
from outletctl.transports.base import AccessoryTransport

DEFAULT_GRACE_PERIOD_S = 1.0
# Extra time the loop gets to wind down before a forced exit.
FORCED_EXIT_SLACK_S = 0.5
LOGGER = logging.getLogger(__name__)


class AccessoryAdapter:
    """Serves GET/SET/identify for one outlet and owns its publish lifecycle."""

    def __init__(
        self,
        device: SimulatedOutlet,
        transport: AccessoryTransport,
        *,
        grace_period_s: float = DEFAULT_GRACE_PERIOD_S,
        force_exit: Callable[[int], object] | None = None,
    ) -> None:
        self.device = device
        self.transport = transport
        self.grace_period_s = grace_period_s
        self.state = PublishState.UNPUBLISHED
        self.registration: AccessoryRegistration | None = None
        self.exit_code: int | None = None
        self._shutdown_task: asyncio.Task[int] | None = None
        self._closed: asyncio.Event | None = None
        self._force_exit = force_exit
        self._watchdog: threading.Timer | None = None

    def bindings(self) -> tuple[CharacteristicBinding, ...]:
        return (
            CharacteristicBinding(
                service="Outlet",
                characteristic="On",
                on_get=self.on_get,
                on_set=self.on_set,
                on_identify=self.on_identify,
            ),
        )

    async def publish(self, registration: AccessoryRegistration) -> None:
        if self.state is not PublishState.UNPUBLISHED:
            raise LifecycleError(
                f"Accessory {registration.identifier} cannot be published while {self.state.value}"
            )
        validate_registration(registration)
        await self.transport.publish(registration)
        self.registration = registration
        self.state = PublishState.PUBLISHED
        LOGGER.info("Published '%s' (%s)", registration.display_name, registration.identifier)

    def on_set(self, value: object, callback: SetCallback) -> None:
        if self.state is not PublishState.PUBLISHED:
            callback(LifecycleError(f"Cannot set power while {self.state.value}"))
            return
        try:
            self.device.set_power(bool(value))
        except DeviceError as exc:
            LOGGER.warning("Outlet write failed: %s", exc)
            callback(exc)
            return
        callback(None)

    def on_get(self, callback: GetCallback) -> None:
        if self.state is not PublishState.PUBLISHED:
            callback(LifecycleError(f"Cannot read power while {self.state.value}"), None)
            return
        try:
            value = self.device.get_power()
        except DeviceError as exc:
            LOGGER.warning("Outlet read failed: %s", exc)
            callback(exc, None)
            return
        callback(None, value)

    def on_identify(self, paired: bool, callback: IdentifyCallback) -> None:
        if self.state is not PublishState.PUBLISHED:
            callback(LifecycleError(f"Cannot identify while {self.state.value}"))
            return
        LOGGER.debug("Identify requested (paired=%s)", paired)
        self.device.identify()
        callback(None)

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for signame in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(getattr(signal, signame), self.request_shutdown, signame)

    def remove_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for signame in SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(getattr(signal, signame))

    def request_shutdown(self, signame: str) -> asyncio.Task[int] | None:
        """Start shutdown for ``signame``; repeated requests are ignored."""
        if self._shutdown_task is not None:
            LOGGER.info("Received %s, shutdown already in progress", signame)
            return None
        if signame not in SHUTDOWN_SIGNALS:
            raise ValueError(f"Unsupported shutdown signal '{signame}'")
        LOGGER.info("Received %s, unpublishing", signame)
        self._arm_watchdog(128 + SHUTDOWN_SIGNALS[signame])
        self._shutdown_task = asyncio.get_running_loop().create_task(self._shutdown(signame))
        return self._shutdown_task

    async def _shutdown(self, signame: str) -> int:
        exit_code = 128 + SHUTDOWN_SIGNALS[signame]
        if self.state is PublishState.PUBLISHED:
            self.state = PublishState.UNPUBLISHING
            unpublish = asyncio.ensure_future(self.transport.unpublish())
            done, _ = await asyncio.wait({unpublish}, timeout=self.grace_period_s)
            if not done:
                unpublish.cancel()
                LOGGER.error(
                    "%s",
                    ShutdownTimeoutError(
                        f"Unpublish did not finish within {self.grace_period_s:.1f}s"
                    ),
                )
            elif not unpublish.cancelled() and unpublish.exception() is not None:
                LOGGER.error("Unpublish failed: %s", unpublish.exception())
        self.state = PublishState.CLOSED
        self.exit_code = exit_code
        self._closed_event().set()
        LOGGER.info("Shutdown complete, exiting with %d", exit_code)
        return exit_code

    def _arm_watchdog(self, exit_code: int) -> None:
        """Exit from a separate thread if the loop has not let the process go in time.

        Covers transports that ignore cancellation or block the loop inside
        unpublish, where no coroutine-level timeout can fire.
        """
        if self._force_exit is None:
            return
        self._watchdog = threading.Timer(
            self.grace_period_s + FORCED_EXIT_SLACK_S,
            self._forced_exit,
            (exit_code,),
        )
        self._watchdog.daemon = True
        self._watchdog.start()

    def _forced_exit(self, exit_code: int) -> None:
        LOGGER.error("Process still running after shutdown deadline, forcing exit %d", exit_code)
        for handler in logging.getLogger().handlers:
            handler.flush()
        self._force_exit(exit_code)

    def disarm_watchdog(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

    def _closed_event(self) -> asyncio.Event:
        if self._closed is None:
            self._closed = asyncio.Event()
        return self._closed

    async def wait_closed(self) -> int:
        await self._closed_event().wait()
        if self.exit_code is None:
            raise LifecycleError("Accessory closed without an exit code")
        return self.exit_code
