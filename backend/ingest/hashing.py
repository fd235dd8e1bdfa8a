"""Streaming content digests used for duplicate detection."""
from __future__ import annotations

import hashlib
from pathlib import Path

CHUNK_SIZE = 1024 * 1024


class HashError(OSError):
    """Raised when a file cannot be read for hashing."""


def hash_file(path: str | Path, *, chunk_size: int = CHUNK_SIZE) -> str:
    """Return the hex MD5 digest of a file, reading it in bounded chunks."""

    digest = hashlib.md5(usedforsecurity=False)
    try:
        with open(path, "rb") as handle:
            for chunk in iter(lambda: handle.read(chunk_size), b""):
                digest.update(chunk)
    except OSError as exc:
        raise HashError(f"failed to calculate hash: {exc}") from exc
    return digest.hexdigest()
