"""
SWPC feed descriptors and the processor that turns a feed body into relayed
OSC messages.

Column positions and field names must stay exactly as listed: downstream
patches are wired to these addresses and expect these readings.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, List, Sequence, Tuple

from .cache import FieldCache
from .extract import Extraction, extract, fallback, first_record, latest_row, pick
from .relay import Destination, Relay

logger = logging.getLogger(__name__)

SWPC_BASE = "https://services.swpc.noaa.gov"

TABLE = "table"
RECORDS = "records"
SHAPES = {TABLE, RECORDS}

PACING_DELAY = 0.2  # seconds between relayed metrics of one feed

Selector = int | str


@dataclass(frozen=True)
class FeedDescriptor:
    name: str
    label: str
    url: str
    shape: str
    fields: Tuple[Tuple[str, Selector], ...]
    settle: float = 0.0  # pause after the feed before the next one starts

    def __post_init__(self) -> None:
        if self.shape not in SHAPES:
            raise ValueError(f"Unknown feed shape {self.shape!r} for {self.name}")

    @property
    def metrics(self) -> List[str]:
        return [name for name, _ in self.fields]

    def with_url(self, url: str) -> "FeedDescriptor":
        return replace(self, url=url)


PLASMA = FeedDescriptor(
    name="plasma",
    label="solar wind",
    url=f"{SWPC_BASE}/products/solar-wind/plasma-5-minute.json",
    shape=TABLE,
    fields=(("density", 1), ("speed", 2), ("temperature", 3)),
)

PROBABILITIES = FeedDescriptor(
    name="probabilities",
    label="solar probabilities",
    url=f"{SWPC_BASE}/json/solar_probabilities.json",
    shape=RECORDS,
    fields=(("m_class", "m_class_1_day"), ("x_class", "x_class_1_day")),
)

MAGNETOMETER = FeedDescriptor(
    name="magnetometer",
    label="magnetometer",
    url=f"{SWPC_BASE}/products/solar-wind/mag-5-minute.json",
    shape=TABLE,
    fields=(("lon_gsm", 4), ("bt", 6), ("bz_gsm", 3)),
    settle=0.2,
)

KP_INDEX = FeedDescriptor(
    name="kp",
    label="Kp-index",
    url=f"{SWPC_BASE}/products/noaa-planetary-k-index.json",
    shape=TABLE,
    fields=(("kp", 1),),
    settle=0.2,
)

# Cycle order
FEEDS: Tuple[FeedDescriptor, ...] = (PLASMA, PROBABILITIES, MAGNETOMETER, KP_INDEX)


class FeedProcessor:
    """Extract one feed's metrics into the cache and relay the valid ones."""

    def __init__(
        self,
        feed: FeedDescriptor,
        cache: FieldCache,
        relay: Relay,
        destinations: Sequence[Destination],
        pacing: float = PACING_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        missing = [name for name in feed.metrics if name not in cache]
        if missing:
            raise KeyError(f"Feed {feed.name} uses metrics missing from the cache: {missing}")
        self.feed = feed
        self.cache = cache
        self.relay = relay
        self.destinations = list(destinations)
        self.pacing = pacing
        self._sleep = sleep

    def process(self, body: str) -> Dict[str, Extraction]:
        try:
            payload = json.loads(body)
        except (TypeError, ValueError, RecursionError) as exc:
            logger.warning("Error parsing %s JSON: %s", self.feed.label, exc)
            return self.fallback("invalid JSON")

        container = self._container(payload)
        if container is None:
            logger.warning("No %s data available. Using last valid values.", self.feed.label)
            return self.fallback("no data")

        results: Dict[str, Extraction] = {}
        for name, selector in self.feed.fields:
            result = extract(pick(container, selector), self.cache.entry(name))
            if result.used_fallback:
                logger.warning(
                    "Invalid %s value in %s feed (%s); using %s",
                    name,
                    self.feed.label,
                    result.error,
                    "last valid value" if self.cache.is_valid(name) else "nothing",
                )
            results[name] = result

        self._relay(results)
        return results

    def fallback(self, reason: str | None = None) -> Dict[str, Extraction]:
        """Read every metric of the feed from the cache without relaying."""
        return {name: fallback(self.cache.entry(name), reason) for name in self.feed.metrics}

    def _container(self, payload: Any) -> Any:
        if self.feed.shape == TABLE:
            return latest_row(payload)
        return first_record(payload)

    def _relay(self, results: Dict[str, Extraction]) -> None:
        # Metrics that never parsed stay silent; no placeholder goes out.
        ready = [name for name in results if self.cache.is_valid(name)]
        for index, name in enumerate(ready):
            metric = self.cache.entry(name).metric
            self.relay.send_value(metric.address, metric.format(results[name].value), self.destinations)
            if index < len(ready) - 1:
                self._sleep(self.pacing)


def build_processors(
    feeds: Iterable[FeedDescriptor],
    cache: FieldCache,
    relay: Relay,
    destinations: Sequence[Destination],
    pacing: float = PACING_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> List[FeedProcessor]:
    return [FeedProcessor(feed, cache, relay, destinations, pacing, sleep) for feed in feeds]
