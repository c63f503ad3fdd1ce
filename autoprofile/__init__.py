"""Adaptive power-profile daemon for Linux laptops."""

__version__ = "0.3.0"
