"""Influence metrics for viewpoint groups."""

__version__ = "0.1.0"
