from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List

from .models import DeviceDirectory, DeviceKind

logger = logging.getLogger(__name__)


class DeviceDirectoryLoader:
    """Три независимых запроса (по виду прибора); провал одного не мешает остальным."""

    def __init__(self, registries: Dict[str, object]):
        self.registries = registries

    def load(self, market_name: str) -> DeviceDirectory:
        results: Dict[str, List] = {}
        failed: List[str] = []
        with ThreadPoolExecutor(max_workers=len(DeviceKind.ALL),
                                thread_name_prefix="firemap-load") as pool:
            futures = {kind: pool.submit(self.registries[kind].get_list, market_name)
                       for kind in DeviceKind.ALL}
            for kind, fut in futures.items():
                try:
                    results[kind] = list(fut.result())
                except Exception as e:
                    logger.warning("Failed to load %ss for market %r: %s", kind, market_name, e)
                    results[kind] = []
                    failed.append(kind)

        logger.info("Loaded market %r: %d receivers, %d repeaters, %d detectors",
                    market_name, len(results[DeviceKind.RECEIVER]),
                    len(results[DeviceKind.REPEATER]), len(results[DeviceKind.DETECTOR]))
        return DeviceDirectory(
            receivers=results[DeviceKind.RECEIVER],
            repeaters=results[DeviceKind.REPEATER],
            detectors=results[DeviceKind.DETECTOR],
            failed=tuple(failed),
        )
