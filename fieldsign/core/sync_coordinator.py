"""Sync coordination for locally stored signature records.

The coordinator pushes unsynced records to the remote endpoint and flips
their ``synced`` flag once the endpoint acknowledges them. It is triggered
after every successful save and on every connectivity-restored event.

Sync is best-effort: push failures are logged and the record simply stays
pending until the next trigger.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .models import PdfSignatureRecord, SignatureRecord, SyncState
from .ports import ConnectivityPort, SyncTransportPort
from .record_store import RecordStore

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """Pushes pending records and marks them synced on acknowledgment.

    Owned by the composition root: ``start()`` subscribes to connectivity
    events and ``stop()`` unsubscribes and drains outstanding pushes.

    A record already being pushed is never scheduled a second time while
    its push is outstanding. Remote delivery is still at-least-once (a
    crash between push and mark re-sends the record), so the endpoint must
    be idempotent per record id.
    """

    def __init__(
        self,
        store: RecordStore,
        transport: SyncTransportPort,
        connectivity: ConnectivityPort,
    ):
        self.store = store
        self.transport = transport
        self.connectivity = connectivity
        self._in_flight: set[str] = set()
        self._tasks: set[asyncio.Task[None]] = set()
        self._started = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe to connectivity-restored events."""
        if self._started:
            return
        self.connectivity.subscribe(self._on_online)
        self._started = True
        logger.info("Sync coordinator started")

    async def stop(self) -> None:
        """Unsubscribe and wait for outstanding pushes to finish."""
        if self._started:
            self.connectivity.unsubscribe(self._on_online)
            self._started = False
        await self.wait_idle()
        logger.info("Sync coordinator stopped")

    @property
    def running(self) -> bool:
        return self._started

    async def _on_online(self) -> None:
        logger.info("Connectivity restored, syncing pending records")
        await self.attempt_all()

    # ------------------------------------------------------------------
    # Attempts
    # ------------------------------------------------------------------

    async def attempt_sync(self) -> int:
        """Schedule pushes for every unsynced plain signature.

        Returns:
            Number of pushes scheduled by this attempt.
        """
        if not self.connectivity.is_online():
            logger.debug("Offline, skipping signature sync")
            return 0
        pending = await self.store.list_unsynced_signatures()
        return self._schedule(
            pending, self.transport.push_signature, self.store.mark_synced
        )

    async def attempt_pdf_sync(self) -> int:
        """Schedule pushes for every unsynced PDF signature.

        Returns:
            Number of pushes scheduled by this attempt.
        """
        if not self.connectivity.is_online():
            logger.debug("Offline, skipping PDF signature sync")
            return 0
        pending = await self.store.list_unsynced_pdf_signatures()
        return self._schedule(
            pending, self.transport.push_pdf_signature, self.store.mark_pdf_synced
        )

    async def attempt_all(self) -> int:
        """Run both attempts and return the total number scheduled."""
        scheduled = await self.attempt_sync()
        scheduled += await self.attempt_pdf_sync()
        return scheduled

    def _schedule(
        self,
        records: list[SignatureRecord] | list[PdfSignatureRecord],
        push: Callable[..., Awaitable[None]],
        mark: Callable[[str], Awaitable[bool]],
    ) -> int:
        scheduled = 0
        for record in records:
            if record.id in self._in_flight:
                continue
            self._in_flight.add(record.id)
            task = asyncio.create_task(self._push(record, push, mark))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            scheduled += 1

        if scheduled:
            logger.info(f"Scheduled {scheduled} record(s) for sync")
        return scheduled

    async def _push(
        self,
        record: SignatureRecord,
        push: Callable[..., Awaitable[None]],
        mark: Callable[[str], Awaitable[bool]],
    ) -> None:
        try:
            await push(record)
            await mark(record.id)
            logger.info(f"Synced {record.id} for document {record.document_id}")
        except Exception as e:
            logger.warning(f"Sync of {record.id} failed, will retry later: {e}")
        finally:
            self._in_flight.discard(record.id)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    async def sync_state(self, record_id: str) -> SyncState:
        """Return the sync state of a record in either sequence.

        Unknown ids report PENDING.
        """
        if record_id in self._in_flight:
            return SyncState.IN_FLIGHT
        record = await self.store.get_signature(record_id)
        if record is None:
            record = await self.store.get_pdf_signature(record_id)
        if record is not None and record.synced:
            return SyncState.SYNCED
        return SyncState.PENDING

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    async def wait_idle(self) -> None:
        """Wait until every scheduled push has completed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
