from __future__ import annotations

import asyncio
import logging
import sys

from dotenv import load_dotenv

from charging_simulator.config import ConfigurationStore
from charging_simulator.logging import init_logging


async def main(config_path: str) -> None:
    load_dotenv(".env", override=False)
    store = ConfigurationStore(config_path)
    init_logging(store.get_logging())

    logger = logging.getLogger("smoke")

    async def on_configuration_change() -> None:
        init_logging(store.get_logging())
        logger.info("Config reloaded ui_server_port=%s", store.get_ui_server().options.port)

    store.set_configuration_change_callback(on_configuration_change)

    logger.info("Config loaded log_level=%s", store.get_log_level())
    logger.info("UI server enabled=%s port=%s", store.get_ui_server().enabled, store.get_ui_server().options.port)
    logger.info("Worker process_type=%s pool_max_size=%s", store.get_worker().process_type, store.get_worker().pool_max_size)
    logger.info("Performance storage uri=%s", store.get_performance_storage().uri)

    # Edit the file within this window to see the reload callback fire.
    await asyncio.sleep(30)


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "src/charging_simulator/assets/config.json"))
