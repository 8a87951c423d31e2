"""
This module implements a Remote Two integration driver for LG webOS TV devices.

:license: Mozilla Public License Version 2.0, see LICENSE for more details.
"""

import asyncio
import logging
import os

from const import LgTvConfig
from media_player import LgTvMediaPlayer
from setup_flow import LgTvSetupFlow
from ssap import load_manifest
from tv import LgTv
from ucapi_framework import BaseConfigManager, BaseIntegrationDriver, get_config_path


async def main():
    """Start the Remote Two integration driver."""
    logging.basicConfig()

    level = os.getenv("UC_LOG_LEVEL", "DEBUG").upper()
    logging.getLogger("tv").setLevel(level)
    logging.getLogger("session").setLevel(level)
    logging.getLogger("ssap").setLevel(level)
    logging.getLogger("subscriptions").setLevel(level)
    logging.getLogger("commands").setLevel(level)
    logging.getLogger("reconciler").setLevel(level)
    logging.getLogger("debounce").setLevel(level)
    logging.getLogger("media_player").setLevel(level)
    logging.getLogger("driver").setLevel(level)
    logging.getLogger("config").setLevel(level)
    logging.getLogger("setup_flow").setLevel(level)

    LgTv.manifest = load_manifest()

    driver = BaseIntegrationDriver(
        device_class=LgTv,
        entity_classes=[LgTvMediaPlayer],
    )

    driver.config_manager = BaseConfigManager(
        get_config_path(driver.api.config_dir_path),
        driver.on_device_added,
        driver.on_device_removed,
        config_class=LgTvConfig,
    )

    await driver.register_all_configured_devices()

    setup_handler = LgTvSetupFlow.create_handler(driver)

    await driver.api.init("driver.json", setup_handler)

    await asyncio.Future()


if __name__ == "__main__":
    asyncio.run(main())
