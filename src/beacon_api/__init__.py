"""Beacon Scholarship registration API."""

__version__ = "0.1.0"
