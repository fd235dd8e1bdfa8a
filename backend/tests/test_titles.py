"""Tests for ROM filename normalization."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.ingest.titles import normalize_title, strip_bracketed  # noqa: E402


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("Super Mario World (USA) [!].sfc", "Super Mario World"),
        ("Legend_of_Zelda-The (U) [h1].nes", "Legend of Zelda The"),
        ("Game (USA (Rev 1)).zip", "Game"),
        ("Metroid Prime (USA).iso", "Metroid Prime"),
        ("Dr. Mario (World).nes", "Dr. Mario"),
        ("Pokemon Red.gb", "Pokemon Red"),
        ("  Spaced   Out  (E).gba", "Spaced Out"),
        ("Game [Multi][v1.1](Proto).bin", "Game"),
        ("Weird (Title.rom", "Weird"),
        ("Mega.Man.X.sfc", "Mega.Man.X"),
        ("Mr.Do.nes", "Mr.Do"),
        ("Doom.1993.wad", "Doom.1993"),
        ("Tetris.GB", "Tetris"),
    ],
)
def test_normalize_title_strips_tags_and_extension(filename: str, expected: str) -> None:
    """Region and dump tags plus the extension should be removed."""

    assert normalize_title(filename) == expected


def test_normalize_title_handles_unbalanced_brackets() -> None:
    """An unclosed bracket drops everything after it rather than failing."""

    assert normalize_title("Contra (USA.nes") == "Contra"
    assert normalize_title("Contra) (USA).nes") == "Contra"


def test_normalize_title_falls_back_when_only_tags_remain() -> None:
    """A filename made only of tags keeps the tag text as its title."""

    assert normalize_title("(USA).nes") == "USA"
    assert normalize_title("[BIOS] (Japan).bin") == "BIOS Japan"


@pytest.mark.parametrize(
    "filename",
    [
        "Super Mario World (USA) [!].sfc",
        "Dr. Mario (World).nes",
        "Final Fantasy VII (Disc 1).cue",
        "Sonic_the_Hedgehog-2.md.zip",
        "(USA).nes",
        "Contra (USA.nes",
        "Game [Multi][v1.1](Proto).bin",
        "Weird (Title.rom",
        "Pokemon.Red.gb",
        "Mega.Man.X.sfc",
        "(Game.nes)",
    ],
)
def test_normalize_title_is_idempotent(filename: str) -> None:
    """Normalizing an already-normalized title should not change it."""

    once = normalize_title(filename)
    assert normalize_title(once) == once


def test_strip_bracketed_handles_each_family_independently() -> None:
    """Parentheses and square brackets keep separate nesting depths."""

    assert strip_bracketed("A (b [c] d) E [f (g)] H") == "A  E  H"
    assert strip_bracketed("no tags") == "no tags"


def test_normalize_title_keeps_dotted_titles_distinct() -> None:
    """Dots inside a title are not extensions, so sibling games stay apart."""

    red = normalize_title("Pokemon.Red.gb")
    blue = normalize_title("Pokemon.Blue.gb")

    assert red == "Pokemon.Red"
    assert blue == "Pokemon.Blue"
    assert red != blue


def test_normalize_title_strips_only_listed_extensions() -> None:
    """A custom extension list decides which suffixes are removed."""

    assert normalize_title("Pokemon.Red.gb", extensions=[".zip"]) == "Pokemon.Red.gb"
    assert normalize_title("Pokemon.Red.gb", extensions=["GB"]) == "Pokemon.Red"
    assert normalize_title("Archive (USA).nes.zip") == "Archive"
