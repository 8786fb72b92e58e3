"""Refurbished-store watcher for a single product variant."""

__version__ = "1.0.0"
