"""HTTP API route handlers."""

from . import board, system

__all__ = ["board", "system"]
