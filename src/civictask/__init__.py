"""Civic issue lifecycle, worker scoring and ranking service."""

__version__ = "0.1.0"
