"""Run the Clinic Sentinel monitoring loop."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from pathlib import Path

from . import async_load_config, async_setup, async_unload
from .const import CONF_LOG_LEVEL
from .exceptions import ConfigValidationError

LOGGER = logging.getLogger(__name__)


async def run(config_path: Path, *, once: bool = False) -> int:
    """Set up the engine and run it until interrupted."""
    try:
        config = await async_load_config(config_path)
    except ConfigValidationError as err:
        LOGGER.error("%s", err)  # noqa: TRY400
        return 2

    logging.getLogger().setLevel(config[CONF_LOG_LEVEL])
    data = await async_setup(config)
    try:
        if once:
            await data.engine.async_run_once()
            return 0

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)
        data.engine.start()
        await stop.wait()
        LOGGER.info("Shutting down Clinic Sentinel.")
    finally:
        await async_unload(data)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Clinic Sentinel site monitor")
    parser.add_argument(
        "--config", default="config.yaml", help="Path to the YAML configuration"
    )
    parser.add_argument(
        "--once", action="store_true", help="Run one scheduling tick and exit"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return asyncio.run(run(Path(args.config), once=bool(args.once)))


if __name__ == "__main__":
    raise SystemExit(main())
