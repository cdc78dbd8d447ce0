"""Detect new package index releases and build them through a durable queue."""

__version__ = "0.1.0"
