"""GTFS schedule refresh service."""

__version__ = "0.1.0"
