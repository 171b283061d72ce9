"""Huly MCP - issue tracker tools for AI assistants."""

__version__ = "0.1.0"
