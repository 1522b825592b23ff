"""Prophit - prediction market price tracking and movement alerts."""

__version__ = "0.1.0"
