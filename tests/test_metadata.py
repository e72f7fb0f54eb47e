"""Tests for filename-based metadata inference."""

import pytest

from ingest.metadata import infer_metadata_from_filename


def test_chapter_only():
    m = infer_metadata_from_filename("One Piece - Chapter 5.cbz")
    assert m.title == "One Piece"
    assert m.chapter == 5
    assert m.volume is None


def test_volume_and_decimal_chapter():
    m = infer_metadata_from_filename("Naruto vol 3 chapter 12.5.cbz")
    assert m.title == "Naruto"
    assert m.volume == 3
    assert m.chapter == 12.5


def test_scan_group_prefix_and_tags():
    m = infer_metadata_from_filename("[LetItGo Scans] Frieren - Ch. 42 [HQ].cbr")
    assert m.scanlator == "LetItGo Scans"
    assert m.title == "Frieren"
    assert m.chapter == 42


def test_compact_volume_chapter_form():
    m = infer_metadata_from_filename("Berserk v03 c012.cbz")
    assert m.title == "Berserk"
    assert m.volume == 3
    assert m.chapter == 12


def test_year_and_chapter_title():
    m = infer_metadata_from_filename("Blame - Chapter 7 - Net Sphere (1998).zip")
    assert m.title == "Blame"
    assert m.chapter == 7
    assert m.year == 1998


def test_trailing_number_is_chapter():
    m = infer_metadata_from_filename("Solo_Leveling - 110.cbz")
    assert m.title == "Solo Leveling"
    assert m.chapter == 110


@pytest.mark.parametrize("filename", ["Akira.cbz", "Vagabond.rar", "Chainsaw Man.cbz"])
def test_unrecognised_names_become_the_title(filename):
    m = infer_metadata_from_filename(filename)
    assert m.title == filename.rsplit(".", 1)[0]
    assert m.chapter is None
    assert m.volume is None


def test_path_components_are_ignored():
    m = infer_metadata_from_filename("uploads/2024/Dorohedoro - Chapter 1.cbz")
    assert m.title == "Dorohedoro"
    assert m.chapter == 1
