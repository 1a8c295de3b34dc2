"""Affiliate product feed sync for the gift catalog."""

__version__ = "0.3.0"
