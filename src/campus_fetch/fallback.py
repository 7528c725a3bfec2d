"""
Sample-data fallback for slot consumers.

Falling back is a consumer decision; the session manager only reports the
failure. Samples live next to each other as `<name>.sample.json`.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from campus_fetch.models.session import FetchResult
from campus_fetch.sessions import Consumer

logger = logging.getLogger(__name__)


class SampleFallback:
    def __init__(self, sample_dir: Optional[Path], enabled: bool = False):
        self._sample_dir = Path(sample_dir) if sample_dir else None
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled and self._sample_dir is not None

    def load(self, name: str) -> Optional[Any]:
        if self._sample_dir is None:
            return None
        path = self._sample_dir / f"{name}.sample.json"
        try:
            return json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load %s sample fallback: %s", name, e)
            return None

    def wrap(self, consumer: Consumer, name: str) -> Consumer:
        """Consumer that substitutes `<name>.sample.json` for failed fetches."""

        def fallback_consumer(result: FetchResult) -> None:
            if result.ok:
                consumer(result)
                return
            if not self.enabled:
                logger.info(
                    "Live data failed to load. Set CAMPUS_ENABLE_SAMPLE_FALLBACK=true to show sample data."
                )
                consumer(result)
                return
            sample = self.load(name)
            if sample is None:
                consumer(result)
                return
            logger.info("[%s] using sample %s data after: %s", result.slot, name, result.error)
            consumer(FetchResult.success(result.slot, result.session_id, sample, from_fallback=True))

        return fallback_consumer
