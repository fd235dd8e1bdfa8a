"""
ROM ingestion pipeline for ROM Shelf.

This package holds the storage-agnostic pieces: filename normalization,
content hashing, directory walking, catalog matching, duplicate grouping,
metadata providers and the batch enrichment job.
"""

from .duplicates import DuplicateGroup, find_duplicates
from .enrichment import EnrichmentJob, EnrichmentSummary
from .hashing import HashError, hash_file
from .matcher import CatalogMatcher, LocationDraft
from .scanner import ScanOrchestrator, ScanResult
from .titles import normalize_title
from .walker import DEFAULT_EXTENSIONS, ScanRootError

__all__ = [
    "CatalogMatcher",
    "DEFAULT_EXTENSIONS",
    "DuplicateGroup",
    "EnrichmentJob",
    "EnrichmentSummary",
    "HashError",
    "LocationDraft",
    "ScanOrchestrator",
    "ScanResult",
    "ScanRootError",
    "find_duplicates",
    "hash_file",
    "normalize_title",
]
