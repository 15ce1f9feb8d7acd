"""
The poll loop: fetch every feed in order, relay, wait, repeat until stopped.

Everything runs on the calling thread. ``stop()`` only sets a flag; the loop
notices it at the top of each cycle and at every one-second tick of the wait,
so a cycle already under way always finishes.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Set

from .cache import FieldCache
from .config import Settings
from .extract import Extraction
from .feeds import FeedProcessor, build_processors
from .fetch import HttpFetcher
from .metrics import Number
from .relay import Relay

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], str]


class State(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    TERMINATED = "terminated"


@dataclass
class Reading:
    """One cycle's view of every metric, fresh or taken from the cache."""

    taken_at: datetime
    values: Dict[str, Number] = field(default_factory=dict)
    fallback: Set[str] = field(default_factory=set)

    def __getitem__(self, name: str) -> Number:
        return self.values[name]

    def merge(self, results: Dict[str, Extraction]) -> None:
        for name, result in results.items():
            self.values[name] = result.value
            if result.used_fallback:
                self.fallback.add(name)
            else:
                self.fallback.discard(name)


class PollOrchestrator:
    def __init__(
        self,
        processors: Iterable[FeedProcessor],
        fetcher: Fetcher,
        cache: FieldCache,
        interval: float = 60.0,
        sleep: Callable[[float], None] = time.sleep,
        display: Optional[Callable[[Reading], None]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.processors: List[FeedProcessor] = list(processors)
        self.fetcher = fetcher
        self.cache = cache
        self.interval = interval
        self.display = display
        self.state = State.IDLE
        self.cycles = 0
        self._sleep = sleep
        self._clock = clock
        self._stop_requested = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        fetcher: Optional[Fetcher] = None,
        relay: Optional[Relay] = None,
        sleep: Callable[[float], None] = time.sleep,
        display: Optional[Callable[[Reading], None]] = None,
    ) -> "PollOrchestrator":
        cache = FieldCache()
        processors = build_processors(
            settings.feeds,
            cache,
            relay or Relay(),
            settings.destinations,
            pacing=settings.pacing,
            sleep=sleep,
        )
        return cls(
            processors,
            fetcher or HttpFetcher(timeout=settings.timeout, user_agent=settings.user_agent),
            cache,
            interval=settings.interval,
            sleep=sleep,
            display=display,
        )

    @property
    def running(self) -> bool:
        return self.state is State.RUNNING and not self._stop_requested

    def stop(self) -> None:
        self._stop_requested = True
        if self.state is State.RUNNING:
            self.state = State.STOPPING

    def run(self, max_cycles: Optional[int] = None) -> int:
        """Run cycles until stopped (or ``max_cycles`` is reached); return the count."""
        if self.state is not State.IDLE:
            raise RuntimeError(f"Cannot start poll loop from state {self.state.value}")
        self.state = State.STOPPING if self._stop_requested else State.RUNNING
        try:
            while self.running:
                self.run_cycle()
                if max_cycles is not None and self.cycles >= max_cycles:
                    break
                self.wait()
        finally:
            self.state = State.TERMINATED
        return self.cycles

    def run_cycle(self) -> Reading:
        reading = Reading(taken_at=self._clock())
        for processor in self.processors:
            feed = processor.feed
            body = self.fetcher(feed.url)
            if not body:
                logger.warning("Failed to fetch %s data. Using last valid values.", feed.label)
                results = processor.fallback("fetch failed")
            else:
                results = processor.process(body)
            reading.merge(results)
            if feed.settle > 0:
                self._sleep(feed.settle)
        self.cycles += 1
        if reading.fallback:
            logger.info("cycle %d used cached values for: %s", self.cycles, ", ".join(sorted(reading.fallback)))
        if self.display is not None:
            self.display(reading)
        return reading

    def wait(self) -> None:
        remaining = self.interval
        while remaining > 0 and self.running:
            step = min(1.0, remaining)
            self._sleep(step)
            remaining -= step
