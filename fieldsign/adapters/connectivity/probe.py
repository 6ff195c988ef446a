"""Probe-based connectivity monitor.

Implements ConnectivityPort by periodically requesting a health URL with
httpx. Any response below 500 counts as online; timeouts, connection
errors, and 5xx responses count as offline. Subscribers are notified on
each offline -> online transition.
"""

import asyncio
import logging

import httpx

from fieldsign.core.ports import ConnectivityPort, OnlineCallback

logger = logging.getLogger(__name__)


class ProbeConnectivityMonitor(ConnectivityPort):
    """Asyncio-based connectivity monitor driven by an HTTP probe."""

    def __init__(
        self,
        probe_url: str,
        interval_seconds: float = 15.0,
        timeout_seconds: float = 5.0,
        initially_online: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the monitor.

        Args:
            probe_url: URL requested to decide whether the device is online.
            interval_seconds: Delay between probes while running.
            timeout_seconds: Per-probe timeout.
            initially_online: State assumed before the first probe.
            transport: Optional httpx transport override.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.probe_url = probe_url
        self.interval_seconds = interval_seconds
        self._online = initially_online
        self._callbacks: list[OnlineCallback] = []
        self._task: asyncio.Task[None] | None = None
        self.client = httpx.AsyncClient(timeout=timeout_seconds, transport=transport)

    def is_online(self) -> bool:
        return self._online

    def subscribe(self, callback: OnlineCallback) -> None:
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unsubscribe(self, callback: OnlineCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    async def check(self) -> bool:
        """Probe once, update the state, and notify on restored connectivity.

        Returns:
            The new online state.
        """
        try:
            response = await self.client.get(self.probe_url)
            online = response.status_code < 500
        except httpx.HTTPError as e:
            logger.debug(f"Connectivity probe failed: {e}")
            online = False

        await self.set_online(online)
        return online

    async def set_online(self, online: bool) -> None:
        """Record a new state, firing subscribers on offline -> online."""
        was_online = self._online
        self._online = online
        if online and not was_online:
            logger.info("Connectivity restored")
            await self._notify()
        elif was_online and not online:
            logger.info("Connectivity lost")

    async def _notify(self) -> None:
        for callback in list(self._callbacks):
            try:
                await callback()
            except Exception as e:
                logger.error(f"Connectivity callback failed: {e}", exc_info=True)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background probe loop."""
        if self.running:
            logger.warning("Connectivity monitor already running")
            return
        logger.info(
            f"Starting connectivity monitor for {self.probe_url} "
            f"every {self.interval_seconds}s"
        )
        self._task = asyncio.create_task(self._run_loop())

    async def stop(self) -> None:
        """Stop the probe loop and close the HTTP client."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self.client.aclose()

    async def _run_loop(self) -> None:
        while True:
            try:
                await self.check()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error in connectivity probe: {e}", exc_info=True)
            await asyncio.sleep(self.interval_seconds)
