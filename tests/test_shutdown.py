from __future__ import annotations

import asyncio
import os
import signal
import subprocess
import sys
import textwrap
import time
from pathlib import Path

import pytest

from outletctl.core.adapter import FORCED_EXIT_SLACK_S, AccessoryAdapter
from outletctl.core.device import SimulatedOutlet
from outletctl.core.errors import LifecycleError
from outletctl.core.identifier import generate
from outletctl.core.model import AccessoryRegistration, Credentials, PublishState


class NullSink:
    def emit(self, status) -> None:
        pass


class FakeTransport:
    def __init__(self, *, unpublish_delay: float = 0.0, fail: bool = False) -> None:
        self.unpublish_calls = 0
        self.unpublish_delay = unpublish_delay
        self.fail = fail

    async def publish(self, registration: AccessoryRegistration) -> None:
        pass

    async def unpublish(self) -> None:
        self.unpublish_calls += 1
        if self.unpublish_delay:
            await asyncio.sleep(self.unpublish_delay)
        if self.fail:
            raise RuntimeError("advertiser went away")


def _adapter(transport: FakeTransport, grace_period_s: float = 1.0, force_exit=None) -> AccessoryAdapter:
    return AccessoryAdapter(
        SimulatedOutlet(sink=NullSink()),
        transport,
        grace_period_s=grace_period_s,
        force_exit=force_exit,
    )


async def _publish(adapter: AccessoryAdapter) -> None:
    await adapter.publish(
        AccessoryRegistration(
            identifier=generate("ns:accessories:Outlet", "Outlet"),
            display_name="Outlet",
            category="outlet",
            credentials=Credentials(username="1A:2B:3C:4D:5D:FF", pincode="031-45-154"),
            services=adapter.bindings(),
        )
    )


def test_repeated_shutdown_requests_unpublish_once() -> None:
    transport = FakeTransport(unpublish_delay=0.05)
    adapter = _adapter(transport)

    async def scenario() -> int:
        await _publish(adapter)
        first = adapter.request_shutdown("SIGTERM")
        second = adapter.request_shutdown("SIGTERM")
        third = adapter.request_shutdown("SIGINT")
        assert first is not None
        assert second is None and third is None
        return await adapter.wait_closed()

    assert asyncio.run(scenario()) == 128 + 15
    assert transport.unpublish_calls == 1
    assert adapter.state is PublishState.CLOSED


def test_sigint_exit_code() -> None:
    transport = FakeTransport()
    adapter = _adapter(transport)

    async def scenario() -> int:
        await _publish(adapter)
        adapter.request_shutdown("SIGINT")
        return await adapter.wait_closed()

    assert asyncio.run(scenario()) == 130


def test_hung_unpublish_is_bounded_by_grace_period(caplog: pytest.LogCaptureFixture) -> None:
    transport = FakeTransport(unpublish_delay=30.0)
    adapter = _adapter(transport, grace_period_s=0.1)

    async def scenario() -> int:
        await _publish(adapter)
        adapter.request_shutdown("SIGTERM")
        return await adapter.wait_closed()

    started = time.monotonic()
    with caplog.at_level("ERROR"):
        exit_code = asyncio.run(scenario())
    assert exit_code == 143
    assert time.monotonic() - started < 5.0
    assert "did not finish within" in caplog.text


def test_failing_unpublish_still_exits(caplog: pytest.LogCaptureFixture) -> None:
    transport = FakeTransport(fail=True)
    adapter = _adapter(transport)

    async def scenario() -> int:
        await _publish(adapter)
        adapter.request_shutdown("SIGTERM")
        return await adapter.wait_closed()

    with caplog.at_level("ERROR"):
        assert asyncio.run(scenario()) == 143
    assert "advertiser went away" in caplog.text


def test_unknown_signal_rejected() -> None:
    adapter = _adapter(FakeTransport())

    async def scenario() -> None:
        adapter.request_shutdown("SIGHUP")

    with pytest.raises(ValueError):
        asyncio.run(scenario())


def test_real_signals_trigger_single_unpublish() -> None:
    transport = FakeTransport(unpublish_delay=0.05)
    adapter = _adapter(transport)

    async def scenario() -> int:
        await _publish(adapter)
        loop = asyncio.get_running_loop()
        adapter.install_signal_handlers(loop)
        try:
            os.kill(os.getpid(), signal.SIGTERM)
            os.kill(os.getpid(), signal.SIGTERM)
            return await asyncio.wait_for(adapter.wait_closed(), timeout=2.0)
        finally:
            adapter.remove_signal_handlers(loop)

    assert asyncio.run(scenario()) == 143
    assert transport.unpublish_calls == 1


def test_watchdog_forces_exit_after_deadline() -> None:
    exits: list[int] = []
    transport = FakeTransport(unpublish_delay=30.0)
    adapter = _adapter(transport, grace_period_s=0.05, force_exit=exits.append)

    async def scenario() -> int:
        await _publish(adapter)
        adapter.request_shutdown("SIGTERM")
        return await adapter.wait_closed()

    assert asyncio.run(scenario()) == 143
    time.sleep(0.05 + FORCED_EXIT_SLACK_S + 0.5)
    assert exits == [143]


def test_disarmed_watchdog_does_not_fire() -> None:
    exits: list[int] = []
    adapter = _adapter(FakeTransport(), grace_period_s=0.05, force_exit=exits.append)

    async def scenario() -> int:
        await _publish(adapter)
        adapter.request_shutdown("SIGINT")
        code = await adapter.wait_closed()
        adapter.disarm_watchdog()
        return code

    assert asyncio.run(scenario()) == 130
    time.sleep(0.05 + FORCED_EXIT_SLACK_S + 0.3)
    assert exits == []


def test_wait_closed_without_exit_code_raises() -> None:
    adapter = _adapter(FakeTransport())

    async def scenario() -> None:
        adapter._closed_event().set()
        await adapter.wait_closed()

    with pytest.raises(LifecycleError):
        asyncio.run(scenario())


_SERVE_SCRIPT = textwrap.dedent(
    """
    import asyncio
    import os
    import sys

    from outletctl.core.service import OutletService


    class ScriptTransport:
        def __init__(self, stubborn):
            self.stubborn = stubborn

        async def publish(self, registration):
            print("published", flush=True)

        async def unpublish(self):
            while self.stubborn:
                try:
                    await asyncio.sleep(10)
                except asyncio.CancelledError:
                    pass


    service = OutletService(transport=ScriptTransport(sys.argv[1] == "stubborn"))
    sys.exit(asyncio.run(service.serve(grace_period_s=0.2, force_exit=os._exit)))
    """
)


@pytest.mark.parametrize(
    ("mode", "signum", "expected"),
    [
        ("polite", signal.SIGINT, 130),
        ("polite", signal.SIGTERM, 143),
        ("stubborn", signal.SIGTERM, 143),
    ],
)
def test_serve_process_exits_with_signal_code(tmp_path: Path, mode: str, signum: int, expected: int) -> None:
    script = tmp_path / "serve_outlet.py"
    script.write_text(_SERVE_SCRIPT, encoding="utf-8")
    env = dict(os.environ, XDG_CONFIG_HOME=str(tmp_path / "cfg"), XDG_DATA_HOME=str(tmp_path / "data"))

    proc = subprocess.Popen(
        [sys.executable, str(script), mode],
        stdout=subprocess.PIPE,
        stderr=subprocess.DEVNULL,
        text=True,
        env=env,
    )
    try:
        assert proc.stdout is not None
        assert proc.stdout.readline().strip() == "published"
        time.sleep(0.3)
        started = time.monotonic()
        proc.send_signal(signum)
        assert proc.wait(timeout=5.0) == expected
        assert time.monotonic() - started < 0.2 + FORCED_EXIT_SLACK_S + 2.0
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait()
