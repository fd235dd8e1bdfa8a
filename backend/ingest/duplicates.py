"""Library-wide duplicate detection by content hash."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable


@dataclass(slots=True)
class DuplicateGroup:
    hash: str
    files: list[Any] = field(default_factory=list)


def find_duplicates(locations: Iterable[Any]) -> list[DuplicateGroup]:
    """Group locations sharing a non-empty ``file_hash``.

    Only hashes with at least two members are returned, sorted by hash. Members
    keep the order in which ``locations`` yielded them.
    """

    by_hash: dict[str, list[Any]] = defaultdict(list)
    for location in locations:
        if location.file_hash:
            by_hash[location.file_hash].append(location)

    return [
        DuplicateGroup(hash=file_hash, files=members)
        for file_hash, members in sorted(by_hash.items())
        if len(members) > 1
    ]
