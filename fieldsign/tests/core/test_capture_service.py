"""Tests for the CaptureService save use case."""

import pytest

from fieldsign.core.capture_service import CaptureService
from fieldsign.core.errors import InvalidImageError, PersistenceError
from fieldsign.core.models import DocumentType, Placement, SignatureImage, SyncState
from fieldsign.core.ports import CapturePort
from fieldsign.core.record_store import RecordStore
from fieldsign.core.sync_coordinator import SyncCoordinator
from fieldsign.tests.fakes import (
    FakeAnnotator,
    FakeConnectivity,
    FakeKeyValueStore,
    FakeSyncTransport,
)

IMAGE = SignatureImage(data=b"\x89PNG-sig")


@pytest.fixture
def kv() -> FakeKeyValueStore:
    return FakeKeyValueStore()


@pytest.fixture
def annotator() -> FakeAnnotator:
    return FakeAnnotator()


@pytest.fixture
def transport() -> FakeSyncTransport:
    return FakeSyncTransport()


@pytest.fixture
def connectivity() -> FakeConnectivity:
    return FakeConnectivity(online=True)


@pytest.fixture
def coordinator(
    kv: FakeKeyValueStore,
    annotator: FakeAnnotator,
    transport: FakeSyncTransport,
    connectivity: FakeConnectivity,
) -> SyncCoordinator:
    store = RecordStore(kv=kv, annotator=annotator)
    return SyncCoordinator(store=store, transport=transport, connectivity=connectivity)


@pytest.fixture
def service(coordinator: SyncCoordinator) -> CaptureService:
    return CaptureService(store=coordinator.store, coordinator=coordinator)


def test_service_implements_capture_port(service: CaptureService) -> None:
    assert isinstance(service, CapturePort)


class TestSaveSignature:
    @pytest.mark.asyncio
    async def test_save_persists_and_syncs(
        self,
        service: CaptureService,
        coordinator: SyncCoordinator,
        transport: FakeSyncTransport,
    ) -> None:
        record = await service.save_signature("INV-7", DocumentType.INVOICE, IMAGE)
        await coordinator.wait_idle()

        assert transport.pushed_ids == [record.id]
        assert await coordinator.sync_state(record.id) == SyncState.SYNCED

    @pytest.mark.asyncio
    async def test_offline_save_still_returns_record(
        self,
        service: CaptureService,
        coordinator: SyncCoordinator,
        connectivity: FakeConnectivity,
        transport: FakeSyncTransport,
    ) -> None:
        connectivity.go_offline()

        record = await service.save_signature("RCPT-1", DocumentType.RECEIPT, IMAGE)

        assert record.synced is False
        assert transport.pushed_ids == []
        assert [r.id for r in await coordinator.store.list_signatures()] == [record.id]

    @pytest.mark.asyncio
    async def test_sync_failure_does_not_fail_the_save(
        self,
        service: CaptureService,
        coordinator: SyncCoordinator,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        async def broken_attempt() -> int:
            raise RuntimeError("coordinator exploded")

        monkeypatch.setattr(coordinator, "attempt_sync", broken_attempt)

        record = await service.save_signature("INV-8", DocumentType.INVOICE, IMAGE)

        assert await coordinator.store.get_signature(record.id) == record

    @pytest.mark.asyncio
    async def test_persistence_failure_propagates(
        self,
        service: CaptureService,
        kv: FakeKeyValueStore,
        transport: FakeSyncTransport,
    ) -> None:
        kv.set_should_fail_writes(True)

        with pytest.raises(PersistenceError):
            await service.save_signature("INV-9", DocumentType.INVOICE, IMAGE)
        assert transport.pushed_ids == []


class TestSavePdfSignature:
    @pytest.mark.asyncio
    async def test_save_pdf_defaults_to_invoice_and_syncs(
        self,
        service: CaptureService,
        coordinator: SyncCoordinator,
        transport: FakeSyncTransport,
    ) -> None:
        placement = Placement(x=50, y=700, page_index=0)

        record = await service.save_pdf_signature("DOC-1", b"%PDF-1.4", IMAGE, placement)
        await coordinator.wait_idle()

        assert record.document_type == DocumentType.INVOICE
        assert [r.id for r in transport.pushed_pdf_signatures] == [record.id]

    @pytest.mark.asyncio
    async def test_annotation_failure_propagates_without_sync(
        self,
        service: CaptureService,
        annotator: FakeAnnotator,
        transport: FakeSyncTransport,
        coordinator: SyncCoordinator,
    ) -> None:
        annotator.set_error(InvalidImageError("cannot decode signature"))

        with pytest.raises(InvalidImageError):
            await service.save_pdf_signature(
                "DOC-2", b"%PDF-1.4", IMAGE, Placement(x=0, y=0, page_index=0)
            )

        await coordinator.wait_idle()
        assert await coordinator.store.list_pdf_signatures() == []
        assert transport.pushed_ids == []
