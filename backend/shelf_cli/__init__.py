"""Typer command line client for the ROM Shelf API."""

from .app import app

__all__ = ["app"]
