"""Canonical title extraction from noisy ROM filenames."""
from __future__ import annotations

import os
import re
from typing import Iterable

from .walker import DEFAULT_EXTENSIONS, normalize_extensions

BRACKET_FAMILIES: dict[str, str] = {"(": ")", "[": "]"}

_DEFAULT_SUFFIXES = normalize_extensions(DEFAULT_EXTENSIONS)
_WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize_title(filename: str, extensions: Iterable[str] | None = None) -> str:
    """Return the catalog title for a filename.

    ``"Super Mario World (USA) [!].sfc"`` becomes ``"Super Mario World"``. Tags in
    parentheses and square brackets are dropped, nested or not; unbalanced
    brackets are handled best effort. Only suffixes in ``extensions`` (the ROM
    allow-list by default) count as extensions, so ``"Mega.Man.X.sfc"`` keeps
    its dots. The transform is idempotent.
    """

    suffixes = _DEFAULT_SUFFIXES if extensions is None else normalize_extensions(extensions)

    title = _strip_extensions(filename, suffixes)
    title = title.replace("_", " ").replace("-", " ")
    title = strip_bracketed(title)
    # Removing a trailing tag can expose another ROM suffix.
    title = _strip_extensions(_collapse(title), suffixes)
    if title:
        return title

    fallback = _strip_extensions(filename, suffixes).replace("_", " ").replace("-", " ")
    for opener, closer in BRACKET_FAMILIES.items():
        fallback = fallback.replace(opener, " ").replace(closer, " ")
    return _strip_extensions(_collapse(fallback), suffixes)


def strip_bracketed(text: str) -> str:
    """Remove every character enclosed by ``()`` or ``[]`` along with the brackets."""

    depths = {opener: 0 for opener in BRACKET_FAMILIES}
    closers = {closer: opener for opener, closer in BRACKET_FAMILIES.items()}
    kept: list[str] = []
    for char in text:
        if char in depths:
            depths[char] += 1
        elif char in closers:
            opener = closers[char]
            depths[opener] = max(depths[opener] - 1, 0)
        elif not any(depths.values()):
            kept.append(char)
    return "".join(kept)


def _strip_extensions(text: str, suffixes: frozenset[str]) -> str:
    stripped = text.strip()
    while True:
        root, suffix = os.path.splitext(stripped)
        if not suffix or suffix.lower() not in suffixes:
            return stripped
        stripped = root.rstrip()


def _collapse(text: str) -> str:
    return _WHITESPACE_PATTERN.sub(" ", text).strip()
