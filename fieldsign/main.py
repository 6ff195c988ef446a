"""Composition root for the FieldSign signature system.

This module is the ONLY location that imports both core domain logic
and concrete adapter implementations. All wiring of dependencies
happens here, creating a clear entry point for the application.

Module Structure:
- Configuration loading via config module
- Adapter instantiation
- Core service initialization
- Dependency injection
- Entry point selection (interactive CLI or daemon)
"""

import asyncio
import json
import logging
import signal
import sys
from dataclasses import dataclass
from typing import Any

from fieldsign.adapters.cli.commands import CLICommandHandler
from fieldsign.adapters.connectivity.probe import ProbeConnectivityMonitor
from fieldsign.adapters.pdf.annotator import PdfAnnotator
from fieldsign.adapters.store.sqlite import SQLiteKeyValueStore
from fieldsign.adapters.sync.http import HttpSyncTransport
from fieldsign.config import Settings, load_settings
from fieldsign.core.capture_service import CaptureService
from fieldsign.core.record_store import RecordStore
from fieldsign.core.sync_coordinator import SyncCoordinator


@dataclass
class Application:
    """Every wired component, owned by the composition root."""

    settings: Settings
    kv_store: SQLiteKeyValueStore
    annotator: PdfAnnotator
    transport: HttpSyncTransport
    connectivity: ProbeConnectivityMonitor
    store: RecordStore
    coordinator: SyncCoordinator
    capture: CaptureService

    async def start(self) -> None:
        """Subscribe the coordinator, probe once, then keep probing."""
        self.coordinator.start()
        await self.connectivity.check()
        await self.connectivity.start()

    async def close(self) -> None:
        """Tear down in reverse order of start."""
        await self.coordinator.stop()
        await self.connectivity.stop()
        await self.transport.close()
        await self.kv_store.close()


def build_application(settings: Settings) -> Application:
    """Instantiate adapters and core services from settings."""
    logger = logging.getLogger(__name__)
    logger.info("Initializing adapters...")

    kv_store = SQLiteKeyValueStore(db_path=settings.store_sqlite_path)
    logger.info(f"Record store initialized: {settings.store_sqlite_path}")

    annotator = PdfAnnotator()

    transport = HttpSyncTransport(
        base_url=settings.sync_api_url,
        api_key=settings.sync_api_key,
        timeout_seconds=settings.sync_timeout_seconds,
    )
    logger.info(f"Sync endpoint: {settings.sync_api_url}")

    connectivity = ProbeConnectivityMonitor(
        probe_url=settings.connectivity_probe_url,
        interval_seconds=settings.connectivity_interval_seconds,
        timeout_seconds=settings.connectivity_timeout_seconds,
    )

    logger.info("Initializing core services...")
    store = RecordStore(
        kv=kv_store,
        annotator=annotator,
        signatures_key=settings.signatures_key,
        pdf_signatures_key=settings.pdf_signatures_key,
        byte_encoding=settings.byte_encoding,
    )
    coordinator = SyncCoordinator(
        store=store,
        transport=transport,
        connectivity=connectivity,
    )
    capture = CaptureService(store=store, coordinator=coordinator)

    return Application(
        settings=settings,
        kv_store=kv_store,
        annotator=annotator,
        transport=transport,
        connectivity=connectivity,
        store=store,
        coordinator=coordinator,
        capture=capture,
    )


async def _run_cli_interactive(cli_handler: CLICommandHandler) -> None:
    """Run interactive CLI loop.

    Provides a REPL-like interface for capture and sync commands.

    Args:
        cli_handler: CLICommandHandler instance for executing commands.
    """
    logger = logging.getLogger(__name__)
    logger.info("Starting interactive CLI. Type 'help' for available commands or 'exit' to quit.")

    loop = asyncio.get_running_loop()

    while True:
        try:
            # Read command from stdin in a thread to avoid blocking
            command_line = await loop.run_in_executor(None, input, "fieldsign> ")
            command_line = command_line.strip()

            if not command_line:
                continue

            if command_line.lower() == "exit":
                logger.info("Exiting CLI")
                break

            if command_line.lower() == "help":
                _print_cli_help()
                continue

            parts = command_line.split(maxsplit=1)
            command = parts[0].lower()
            args_str = parts[1] if len(parts) > 1 else ""

            try:
                args = json.loads(args_str) if args_str else {}
            except json.JSONDecodeError:
                logger.error("Invalid JSON arguments. Use 'help' for command syntax.")
                continue

            try:
                result = await _execute_cli_command(cli_handler, command, args)
                print(json.dumps(result, indent=2, default=str))
            except Exception as e:
                logger.error(f"Command execution error: {e}", exc_info=True)
                print(json.dumps({"status": "error", "message": str(e)}, indent=2))

        except EOFError:
            logger.info("EOF received, exiting CLI")
            break
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
            continue


async def _execute_cli_command(
    cli_handler: CLICommandHandler,
    command: str,
    args: dict[str, Any],
) -> dict[str, Any]:
    """Execute a CLI command.

    Args:
        cli_handler: CLICommandHandler instance.
        command: Command name.
        args: Command arguments.

    Returns:
        Command result dictionary.

    Raises:
        ValueError: If command is not recognized or misses a parameter.
    """
    if command == "sign":
        return await cli_handler.sign(args)

    elif command == "sign-pdf":
        return await cli_handler.sign_pdf(args)

    elif command == "list":
        return await cli_handler.list_records(
            kind=args.get("kind", "plain"),
            unsynced_only=bool(args.get("unsynced", False)),
        )

    elif command == "export":
        for required in ("record_id", "output_path"):
            if required not in args:
                raise ValueError(f"Missing required parameter: {required}")
        return await cli_handler.export(args["record_id"], args["output_path"])

    elif command == "status":
        if "record_id" not in args:
            raise ValueError("Missing required parameter: record_id")
        return await cli_handler.status(args["record_id"])

    elif command == "sync":
        return await cli_handler.sync()

    elif command == "stats":
        return await cli_handler.stats()

    else:
        raise ValueError(f"Unknown command: {command}. Use 'help' for available commands.")


def _print_cli_help() -> None:
    """Print CLI help message."""
    help_text = """
Available Commands (JSON format):

  sign
    Capture a standalone signature.
    Required: document_id, and one of image_path | data_url | strokes
    Optional: document_type (invoice|receipt), width, height (for strokes)

    Example: sign {"document_id": "INV-42", "image_path": "sig.png"}

  sign-pdf
    Burn a signature into a PDF page and store the signed document.
    Required: document_id, pdf_path, and one of image_path | data_url | strokes
    Optional: x, y, page_index, page_height (y from top), output_path

    Example: sign-pdf {"document_id": "INV-42", "pdf_path": "inv.pdf",
                       "image_path": "sig.png", "x": 50, "y": 700}

  list
    List stored records.
    Optional: kind (plain|pdf), unsynced (true|false)

    Example: list {"kind": "pdf", "unsynced": true}

  export
    Write the signed PDF of a stored record to disk.
    Required: record_id, output_path

  status
    Show the sync state (pending|in_flight|synced) of a record.
    Required: record_id

  sync
    Push every unsynced record now.

  stats
    Show record and unsynced counts.

  help
    Show this help message.

  exit
    Exit the CLI.

Note: All commands accept arguments as a single JSON object.
Provide the JSON after the command name on the same line.
    """
    print(help_text)


def configure_logging(log_level: str, log_format: str) -> None:
    """Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json, text).
    """
    level = getattr(logging, log_level, logging.INFO)

    if log_format == "json":
        format_str = '{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'
    else:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


async def _wait_for_shutdown() -> None:
    """Block until SIGINT or SIGTERM is received."""
    logger = logging.getLogger(__name__)
    stop_event = asyncio.Event()
    try:
        loop = asyncio.get_running_loop()

        def _handle_signal(sig: int) -> None:
            logger.info(f"Received signal {sig}, initiating graceful shutdown...")
            stop_event.set()

        loop.add_signal_handler(signal.SIGTERM, _handle_signal, signal.SIGTERM)
        loop.add_signal_handler(signal.SIGINT, _handle_signal, signal.SIGINT)
    except NotImplementedError:
        # Signal handlers not available on Windows
        logger.debug("Signal handlers not available on this platform")

    await stop_event.wait()


async def bootstrap() -> None:
    """Load configuration, wire adapters, and start the application.

    This is the composition root: the single place where all components
    are instantiated and wired together.

    Steps:
    1. Load configuration from environment
    2. Configure logging
    3. Instantiate adapters and core services
    4. Start connectivity monitoring and the sync coordinator
    5. Select and start run mode
    """
    settings = load_settings()

    configure_logging(settings.log_level, settings.log_format)
    logger = logging.getLogger(__name__)
    logger.info("Loading FieldSign...")

    app = build_application(settings)

    try:
        await app.start()
        logger.info(f"Starting in {settings.run_mode} mode...")

        if settings.run_mode == "cli":
            cli_handler = CLICommandHandler(app.capture, app.store, app.coordinator)
            await _run_cli_interactive(cli_handler)

        elif settings.run_mode == "daemon":
            # Keep syncing on every connectivity-restored event until stopped
            await app.coordinator.attempt_all()
            await _wait_for_shutdown()

        else:
            logger.error(f"Unknown run mode: {settings.run_mode}")
            sys.exit(1)

    finally:
        await app.close()


def main() -> None:
    """Application entry point.

    Exit codes:
        0: Successful shutdown
        1: Fatal bootstrap or runtime error
        130: Interrupted by user (SIGINT/KeyboardInterrupt)
    """
    logger = logging.getLogger(__name__)
    try:
        asyncio.run(bootstrap())
    except KeyboardInterrupt:
        logger.warning("Shutdown requested by user (SIGINT)")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
