"""Keyword-routed task orchestration with a JSON-RPC backend gateway."""

__version__ = "0.1.0"
