"""
Unit tests for PGN file classification.
"""

import random

import pytest

from service_pgn.app.catalog.classifier import (
    PgnFile,
    classify,
    collation_key,
    display_name,
    leading_number,
    parse_resources,
)


def _file(public_id: str) -> PgnFile:
    return PgnFile(url=f"https://cdn.example/{public_id}.pgn", filename=public_id, display_name=display_name(public_id))


def _names(files):
    return [f.display_name for f in files]


class TestDisplayName:
    """Display name extraction."""

    def test_last_path_segment(self):
        assert display_name("folderA/sub/10_game") == "10_game"

    def test_identifier_without_folder(self):
        assert display_name("apple") == "apple"


class TestLeadingNumber:

    @pytest.mark.parametrize("name,expected", [
        ("2_game", 2),
        ("10_game", 10),
        ("007", 7),
        ("123abc456", 123),
        ("apple", 0),
        ("", 0),
    ])
    def test_leading_number(self, name, expected):
        assert leading_number(name) == expected


class TestClassify:
    """Ordering rules of the classified list."""

    def test_example_order(self):
        files = [_file("folderA/10_game"), _file("folderA/2_game"), _file("folderA/bishop"), _file("folderA/apple")]

        assert _names(classify(files)) == ["2_game", "10_game", "apple", "bishop"]

    def test_numeric_before_alphabetic_regardless_of_input_order(self):
        ids = ["a/zebra", "a/3x", "a/Alpha", "a/1_first", "a/mid", "a/20_last"]
        rng = random.Random(7)
        for _ in range(10):
            shuffled = ids[:]
            rng.shuffle(shuffled)
            names = _names(classify([_file(i) for i in shuffled]))
            numeric = [n for n in names if n[0].isdigit()]
            assert names[:len(numeric)] == numeric
            assert [leading_number(n) for n in numeric] == sorted(leading_number(n) for n in numeric)

    def test_numeric_ties_preserve_input_order(self):
        files = [_file("x/5_b"), _file("y/05_a"), _file("x/5_a")]

        result = classify(files)

        assert [f.filename for f in result] == ["x/5_b", "y/05_a", "x/5_a"]

    def test_alphabetic_group_is_case_and_accent_insensitive(self):
        files = [_file("f/banana"), _file("f/Apple"), _file("f/éclair"), _file("f/cherry"), _file("f/apple")]

        names = _names(classify(files))

        assert names == ["apple", "Apple", "banana", "cherry", "éclair"]
        keys = [collation_key(n) for n in names]
        assert keys == sorted(keys)

    def test_punctuation_sorts_before_digits_and_letters(self):
        files = [_file("f/a1"), _file("f/ab"), _file("f/a-b"), _file("f/a_b"), _file("f/a")]

        assert _names(classify(files)) == ["a", "a_b", "a-b", "a1", "ab"]

    def test_classify_is_idempotent(self):
        files = [_file(i) for i in ["a/b", "a/10", "a/A", "a/2", "a/c_1", "a/02"]]

        once = classify(files)

        assert classify(once) == once

    def test_empty_input(self):
        assert classify([]) == []

    def test_input_is_not_mutated(self):
        files = [_file("a/b"), _file("a/1")]
        snapshot = list(files)

        classify(files)

        assert files == snapshot


class TestParseResources:

    def test_prefers_secure_url(self):
        files = parse_resources([
            {"public_id": "lvl/1_game", "secure_url": "https://x/1.pgn", "url": "http://x/1.pgn"},
            {"public_id": "lvl/other", "url": "http://x/o.pgn"},
        ])

        assert files[0] == PgnFile(url="https://x/1.pgn", filename="lvl/1_game", display_name="1_game")
        assert files[1].url == "http://x/o.pgn"

    def test_to_dict_shape(self):
        pgn = PgnFile(url="https://x/1.pgn", filename="lvl/1_game", display_name="1_game")

        assert pgn.to_dict() == {"url": "https://x/1.pgn", "filename": "lvl/1_game", "displayName": "1_game"}

    @pytest.mark.parametrize("resource", [
        "not-a-dict",
        {"secure_url": "https://x/1.pgn"},
        {"public_id": 42, "secure_url": "https://x/1.pgn"},
        {"public_id": "lvl/1"},
    ])
    def test_malformed_resources_raise(self, resource):
        with pytest.raises(ValueError):
            parse_resources([resource])
