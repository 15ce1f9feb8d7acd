"""Human-readable console output: startup banner and per-cycle summary."""

from __future__ import annotations

from typing import List

from . import __version__
from .config import Settings
from .orchestrator import Reading

RULE = "─" * 41


def format_temperature(kelvin: float) -> str:
    if kelvin >= 1000.0:
        return f"{kelvin / 1000.0:.1f}k"
    return f"{kelvin:.0f}"


def format_banner(settings: Settings) -> str:
    targets = " & ".join(str(dest) for dest in settings.destinations)
    interval = f"{settings.interval:g}"
    lines = [
        "",
        RULE,
        f"  SolarDataRelay v{__version__}",
        RULE,
        f"✓ Sending data to: {targets}",
        f"✓ Update interval: every {interval} seconds",
        "✓ Using last valid values when API unavailable",
        "✓ Press Ctrl+C to stop",
        RULE,
        "Starting data collection...",
    ]
    return "\n".join(lines)


def format_reading(reading: Reading) -> str:
    v = reading.values
    lines: List[str] = [
        "",
        RULE,
        f"  SOLAR DATA UPDATE: {reading.taken_at:%H:%M:%S}",
        RULE,
        "  SOLAR WIND",
        f"    • Density:     {v.get('density', 0.0):6.2f} p/cc",
        f"    • Speed:       {v.get('speed', 0.0):6.1f} km/s",
        f"    • Temperature: {format_temperature(v.get('temperature', 0.0)):>6} K",
        "",
        "  SOLAR FLARES (1-day probability)",
        f"    • M-class:     {v.get('m_class', 0):3d}%",
        f"    • X-class:     {v.get('x_class', 0):3d}%",
        "",
        "  MAGNETOMETER",
        f"    • Phi GSM:     {v.get('lon_gsm', 0.0):6.2f}°",
        f"    • Bt:          {v.get('bt', 0.0):6.2f} nT",
        f"    • Bz GSM:      {v.get('bz_gsm', 0.0):6.2f} nT",
        "",
        "  PLANETARY K-INDEX",
        f"    • Kp:          {v.get('kp', 0.0):4.1f}",
        RULE,
    ]
    if reading.fallback:
        lines.insert(-1, f"  (cached: {', '.join(sorted(reading.fallback))})")
    return "\n".join(lines)


def print_reading(reading: Reading) -> None:
    print(format_reading(reading), flush=True)
