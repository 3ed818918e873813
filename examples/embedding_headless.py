#!/usr/bin/env python3
"""
Example: Embedding the watcher
Shows how to drive WatchOrchestrator from your own asyncio program.

This example demonstrates:
- Building a WatchConfig in code instead of a dwatcher.toml
- Routing messages through stdlib logging with LoggingNotifier
- Running the watcher alongside other tasks
- Stopping it programmatically with request_shutdown()
"""

import asyncio
import logging
import sys
from pathlib import Path

try:
    from dwatcher_core import LoggingNotifier, WatchConfig, WatchOrchestrator
except ImportError:
    print("Error: Install dwatcher first: pip install dwatcher")
    exit(1)


async def stop_after(orchestrator: WatchOrchestrator, seconds: float) -> None:
    """Ask the watcher to shut down after a while."""
    await asyncio.sleep(seconds)
    logging.info(f"Stopping after {seconds:g}s")
    orchestrator.request_shutdown()


async def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")

    here = Path(__file__).parent
    config = WatchConfig(
        debounce_ms=200,
        watch_extensions=(".py",),
        clear=False,
        verbose=True,
        watch_path=here,
    )

    orchestrator = WatchOrchestrator(
        sys.executable,
        [str(here / "server.py")],
        config,
        LoggingNotifier(),
        install_signal_handlers=False,
    )

    # Edit server.py within the next minute to see a restart
    stopper = asyncio.create_task(stop_after(orchestrator, 60))
    try:
        return await orchestrator.run()
    finally:
        stopper.cancel()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
