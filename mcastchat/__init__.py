"""Multicast UDP chat tools and a broadcast daytime round-trip probe."""

__version__ = "0.1.0"

__all__ = ["__version__"]