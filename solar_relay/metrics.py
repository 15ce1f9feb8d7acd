"""
Metric definitions for the relayed space-weather channels.

Each metric maps one scalar reading to an OSC address. The wire precision is
the number of decimal places used when the value is formatted for sending;
console precision lives in report.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Union

Number = Union[float, int]


@dataclass(frozen=True)
class Metric:
    name: str
    kind: type
    address: str
    precision: int

    @property
    def zero(self) -> Number:
        return self.kind()

    def format(self, value: Number) -> str:
        """Render the value as the decimal string sent on the wire."""
        if self.kind is int:
            return str(int(value))
        return f"{float(value):.{self.precision}f}"


METRICS: Dict[str, Metric] = {
    metric.name: metric
    for metric in (
        Metric("density", float, "/dens", 3),
        Metric("speed", float, "/speed", 2),
        Metric("temperature", float, "/temp", 3),
        Metric("m_class", int, "/m_xray", 0),
        Metric("x_class", int, "/x_xray", 0),
        Metric("lon_gsm", float, "/phiGSM", 3),
        Metric("bt", float, "/bt", 2),
        Metric("bz_gsm", float, "/bzGSM", 3),
        Metric("kp", float, "/kp", 2),
    )
}
