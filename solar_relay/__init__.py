"""Relay NOAA SWPC space-weather readings to OSC listeners over UDP."""

__version__ = "2.0.0"
