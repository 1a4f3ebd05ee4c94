"""
CLI entry point.

Commands:
- serve: Run the MCP server over stdio
- init: Initialize data directory and local store
- health: Check the configured backend

Flags:
- --debug: Enable debug logging to file
"""

import asyncio
import logging
import sys

from mmp.core.config import Settings, get_settings
from mmp.core.errors import MMPError
from mmp.core.logging import get_logger, setup_logging


def main() -> int:
    """Main entry point."""
    settings = get_settings()

    # Parse --debug flag (enables verbose DEBUG traces)
    debug_mode = "--debug" in sys.argv
    if debug_mode:
        sys.argv.remove("--debug")

    log_level = logging.DEBUG if debug_mode else logging.INFO
    log_file = settings.data_dir / "mmp.log"
    setup_logging(level=log_level, log_file=log_file)
    logger = get_logger("cli")

    logger.info(f"Logging to {log_file}" + (" (debug mode)" if debug_mode else ""))

    if len(sys.argv) < 2:
        print("Usage: mmp [--debug] <command>", file=sys.stderr)
        print("Commands: serve, init, health", file=sys.stderr)
        print("Flags: --debug (enable debug logging to data/mmp.log)", file=sys.stderr)
        return 1

    command = sys.argv[1]

    if command == "serve":
        from mmp.server import run

        logger.info("Starting MCP server (stdio)")
        run()
        return 0

    if command == "init":
        return asyncio.run(_init(settings))

    if command == "health":
        return asyncio.run(_health_check(settings))

    print(f"Unknown command: {command}", file=sys.stderr)
    return 1


async def _init(settings: Settings) -> int:
    """Create the data directory and local schema."""
    from mmp.memory.local import LocalBackend

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    backend = LocalBackend(settings.db_path)
    await backend.connect()
    await backend.close()
    get_logger("cli").info(f"Initialized local store: {settings.db_path}")
    print(f"Created: {settings.db_path}")
    return 0


async def _health_check(settings: Settings) -> int:
    """Report the selected backend and check it responds."""
    from mmp.service import create_service

    try:
        service = create_service(settings)
    except MMPError as e:
        print(f"Configuration error: {e.message}")
        return 1

    kind = "remote" if settings.use_rpc else "local"
    target = settings.rpc_endpoint if settings.use_rpc else str(settings.db_path)
    print(f"Backend: {kind} ({target})")

    try:
        await service.connect()
        collections = await service.list_memories()
        print(f"  OK, {len(collections)} collection(s) visible")
    except MMPError as e:
        print(f"  FAILED: {e.kind}: {e.message}")
        return 1
    finally:
        await service.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
