"""Tests for the HTTP probe connectivity monitor."""

import asyncio

import httpx
import pytest

from fieldsign.adapters.connectivity.probe import ProbeConnectivityMonitor
from fieldsign.core.ports import ConnectivityPort


class SwitchableEndpoint:
    """Mock health endpoint that can be taken down."""

    def __init__(self):
        self.status_code = 200
        self.reachable = True
        self.probes = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.probes += 1
        if not self.reachable:
            raise httpx.ConnectError("network unreachable", request=request)
        return httpx.Response(self.status_code)


@pytest.fixture
def endpoint() -> SwitchableEndpoint:
    return SwitchableEndpoint()


@pytest.fixture
async def monitor(endpoint: SwitchableEndpoint) -> ProbeConnectivityMonitor:
    monitor = ProbeConnectivityMonitor(
        probe_url="https://sync.example.com/health",
        interval_seconds=0.01,
        transport=httpx.MockTransport(endpoint),
    )
    yield monitor
    await monitor.stop()


class Counter:
    def __init__(self):
        self.calls = 0

    async def __call__(self) -> None:
        self.calls += 1


@pytest.mark.asyncio
async def test_monitor_implements_port(monitor: ProbeConnectivityMonitor) -> None:
    assert isinstance(monitor, ConnectivityPort)
    assert monitor.is_online() is False


@pytest.mark.asyncio
async def test_reachable_endpoint_is_online(monitor: ProbeConnectivityMonitor) -> None:
    assert await monitor.check() is True
    assert monitor.is_online() is True


@pytest.mark.parametrize("status_code,expected", [(204, True), (404, True), (503, False)])
@pytest.mark.asyncio
async def test_status_code_decides_state(
    monitor: ProbeConnectivityMonitor,
    endpoint: SwitchableEndpoint,
    status_code: int,
    expected: bool,
) -> None:
    endpoint.status_code = status_code
    assert await monitor.check() is expected


@pytest.mark.asyncio
async def test_unreachable_endpoint_is_offline(
    monitor: ProbeConnectivityMonitor, endpoint: SwitchableEndpoint
) -> None:
    endpoint.reachable = False
    assert await monitor.check() is False


@pytest.mark.asyncio
async def test_callbacks_fire_only_on_restoration(
    monitor: ProbeConnectivityMonitor, endpoint: SwitchableEndpoint
) -> None:
    counter = Counter()
    monitor.subscribe(counter)

    await monitor.check()
    await monitor.check()
    assert counter.calls == 1

    endpoint.reachable = False
    await monitor.check()
    endpoint.reachable = True
    await monitor.check()
    assert counter.calls == 2


@pytest.mark.asyncio
async def test_unsubscribed_callback_is_not_called(
    monitor: ProbeConnectivityMonitor,
) -> None:
    counter = Counter()
    monitor.subscribe(counter)
    monitor.subscribe(counter)
    monitor.unsubscribe(counter)

    await monitor.set_online(True)
    assert counter.calls == 0


@pytest.mark.asyncio
async def test_failing_callback_does_not_block_others(
    monitor: ProbeConnectivityMonitor,
) -> None:
    async def broken() -> None:
        raise RuntimeError("subscriber bug")

    counter = Counter()
    monitor.subscribe(broken)
    monitor.subscribe(counter)

    await monitor.set_online(True)
    assert counter.calls == 1
    assert monitor.is_online() is True


@pytest.mark.asyncio
async def test_background_loop_probes_until_stopped(
    monitor: ProbeConnectivityMonitor, endpoint: SwitchableEndpoint
) -> None:
    await monitor.start()
    assert monitor.running is True

    for _ in range(100):
        if endpoint.probes >= 2:
            break
        await asyncio.sleep(0.01)

    await monitor.stop()
    assert monitor.running is False
    assert endpoint.probes >= 2
    assert monitor.is_online() is True


def test_rejects_non_positive_interval() -> None:
    with pytest.raises(ValueError):
        ProbeConnectivityMonitor(probe_url="http://x", interval_seconds=0)
