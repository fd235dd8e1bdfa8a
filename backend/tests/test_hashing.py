"""Tests for streaming content hashing."""
from __future__ import annotations

import hashlib
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.ingest.hashing import HashError, hash_file  # noqa: E402


def test_hash_file_matches_md5_of_contents(tmp_path: Path) -> None:
    """The digest equals the MD5 of the full file regardless of chunking."""

    payload = bytes(range(256)) * 50
    rom = tmp_path / "game.bin"
    rom.write_bytes(payload)

    expected = hashlib.md5(payload).hexdigest()
    assert hash_file(rom) == expected
    assert hash_file(rom, chunk_size=7) == expected


def test_identical_contents_share_a_digest(tmp_path: Path) -> None:
    """Two files with the same bytes hash equally, different bytes do not."""

    first = tmp_path / "a.nes"
    second = tmp_path / "b.nes"
    third = tmp_path / "c.nes"
    first.write_bytes(b"NES\x1a" + b"\x00" * 64)
    second.write_bytes(b"NES\x1a" + b"\x00" * 64)
    third.write_bytes(b"NES\x1a" + b"\x01" * 64)

    assert hash_file(first) == hash_file(second)
    assert hash_file(first) != hash_file(third)


def test_hash_file_raises_hash_error_for_missing_file(tmp_path: Path) -> None:
    """Read failures surface as HashError with the underlying cause."""

    with pytest.raises(HashError) as excinfo:
        hash_file(tmp_path / "missing.rom")

    assert "failed to calculate hash" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, FileNotFoundError)
