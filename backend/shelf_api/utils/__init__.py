"""Utility helpers for the ROM Shelf API."""
