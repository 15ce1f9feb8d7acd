"""Last known-good values, one entry per metric."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable

from .metrics import METRICS, Metric, Number


@dataclass
class CacheEntry:
    metric: Metric
    last_value: Number
    valid: bool = False

    @classmethod
    def empty(cls, metric: Metric) -> "CacheEntry":
        return cls(metric=metric, last_value=metric.zero)

    def store(self, value: Number) -> None:
        self.last_value = value
        self.valid = True

    def current(self) -> Number:
        # An invalid entry always reads as the kind's zero value.
        return self.last_value if self.valid else self.metric.zero


class FieldCache:
    """Per-metric store of the last successfully parsed value.

    Entries are created invalid and only ever move to valid. The cache is
    owned by whoever drives the poll loop and is passed down explicitly.
    """

    def __init__(self, metrics: Iterable[Metric] | None = None) -> None:
        metrics = list(metrics) if metrics is not None else list(METRICS.values())
        self._entries: Dict[str, CacheEntry] = {m.name: CacheEntry.empty(m) for m in metrics}

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __iter__(self):
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def entry(self, name: str) -> CacheEntry:
        try:
            return self._entries[name]
        except KeyError as exc:
            raise KeyError(f"No cache entry for metric {name!r}") from exc

    def update(self, name: str, value: Number) -> None:
        self.entry(name).store(value)

    def is_valid(self, name: str) -> bool:
        return self.entry(name).valid
