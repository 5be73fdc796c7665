"""Tandem: multi-machine development container coordination."""

__version__ = "0.1.0"
