"""Integration tests for the composition root.

These tests verify that configuration loads and validates, and that
build_application wires the real adapters into the core services.
"""

import os
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from fieldsign.adapters.connectivity.probe import ProbeConnectivityMonitor
from fieldsign.adapters.pdf.annotator import PdfAnnotator
from fieldsign.adapters.store.sqlite import SQLiteKeyValueStore
from fieldsign.adapters.sync.http import HttpSyncTransport
from fieldsign.config import Settings, load_settings
from fieldsign.core.models import DocumentType, SignatureImage
from fieldsign.main import Application, build_application


class TestConfigurationLoading:
    """Test configuration loading and validation."""

    def test_load_settings_with_defaults(self) -> None:
        settings = load_settings()
        assert settings.signatures_key == "fieldsign.signatures"
        assert settings.pdf_signatures_key == "fieldsign.pdf_signatures"
        assert settings.byte_encoding == "int_array"
        assert settings.run_mode == "cli"
        assert settings.log_level == "INFO"

    def test_load_settings_from_env(self) -> None:
        with patch.dict(
            os.environ,
            {
                "SYNC_API_URL": "https://sync.example.com/v2",
                "CONNECTIVITY_INTERVAL_SECONDS": "3",
                "BYTE_ENCODING": "base64",
                "RUN_MODE": "daemon",
            },
        ):
            settings = load_settings()
            assert settings.sync_api_url == "https://sync.example.com/v2"
            assert settings.connectivity_interval_seconds == 3
            assert settings.byte_encoding == "base64"
            assert settings.run_mode == "daemon"

    @pytest.mark.parametrize(
        "env",
        [
            {"SYNC_TIMEOUT_SECONDS": "0"},
            {"CONNECTIVITY_INTERVAL_SECONDS": "-1"},
            {"BYTE_ENCODING": "hex"},
            {"SIGNATURES_KEY": "  "},
            {"SIGNATURES_KEY": "same", "PDF_SIGNATURES_KEY": "same"},
        ],
    )
    def test_invalid_settings_are_rejected(self, env: dict[str, str]) -> None:
        with patch.dict(os.environ, env):
            with pytest.raises(Exception):  # ValidationError
                load_settings()

    def test_load_settings_from_env_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / "test.env"
        env_file.write_text("SYNC_API_KEY=from-file\nLOG_FORMAT=json\n")

        settings = load_settings(str(env_file))

        assert settings.sync_api_key == "from-file"
        assert settings.log_format == "json"


@pytest.fixture
async def app(tmp_path: Path) -> Application:
    settings = Settings(
        store_sqlite_path=str(tmp_path / "data" / "fieldsign.db"),
        sync_api_url="https://sync.example.com/api",
        connectivity_probe_url="https://sync.example.com/health",
    )
    application = build_application(settings)
    yield application
    await application.close()


class TestBuildApplication:
    """Test that adapters and core services are wired together."""

    @pytest.mark.asyncio
    async def test_adapters_match_settings(self, app: Application) -> None:
        assert isinstance(app.kv_store, SQLiteKeyValueStore)
        assert isinstance(app.annotator, PdfAnnotator)
        assert isinstance(app.transport, HttpSyncTransport)
        assert isinstance(app.connectivity, ProbeConnectivityMonitor)
        assert app.transport.base_url == "https://sync.example.com/api"
        assert app.connectivity.probe_url == "https://sync.example.com/health"

    @pytest.mark.asyncio
    async def test_services_share_one_store(self, app: Application) -> None:
        assert app.store.kv is app.kv_store
        assert app.store.annotator is app.annotator
        assert app.coordinator.store is app.store
        assert app.coordinator.transport is app.transport
        assert app.coordinator.connectivity is app.connectivity
        assert app.capture.store is app.store
        assert app.capture.coordinator is app.coordinator

    @pytest.mark.asyncio
    async def test_offline_capture_is_stored_durably(self, app: Application) -> None:
        record = await app.capture.save_signature(
            "INV-100", DocumentType.INVOICE, SignatureImage(data=b"\x89PNG")
        )

        assert await app.store.get_signature(record.id) == record
        assert Path(app.settings.store_sqlite_path).exists()

    @pytest.mark.asyncio
    async def test_start_probes_and_subscribes(self, app: Application) -> None:
        await app.connectivity.client.aclose()
        app.connectivity.client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200))
        )

        await app.start()

        assert app.coordinator.running is True
        assert app.connectivity.running is True
        assert app.connectivity.is_online() is True
