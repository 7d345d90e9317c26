"""Command line entry points for tensorview."""

from .tensorview_cli import main

__all__ = ["main"]
