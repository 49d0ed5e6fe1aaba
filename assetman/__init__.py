"""Assetman: multi-tenant facilities and asset management backend."""

__version__ = "0.1.0"
