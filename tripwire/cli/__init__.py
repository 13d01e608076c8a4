"""CLI for Tripwire."""

from .main import main

__all__ = ["main"]
