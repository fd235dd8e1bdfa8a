"""Router exports for the ROM Shelf API."""
from . import config, games, health, jobs, metadata, platforms, scan

__all__ = ["config", "games", "health", "jobs", "metadata", "platforms", "scan"]
