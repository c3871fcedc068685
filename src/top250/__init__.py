"""Ranked top-250 film catalog behind a token-guarded HTTP API."""

__version__ = "0.1.0"
