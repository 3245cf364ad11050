"""Huggy support chat analysis: fetch, classify and report."""

__version__ = "0.1.0"
