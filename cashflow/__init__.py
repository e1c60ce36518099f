"""Cashflow planning for recurring payments."""

__version__ = "0.1.0"
