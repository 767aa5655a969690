"""Unit tests for helpers/drug_helpers."""

import pytest

from indication_mapper.helpers.drug_helpers import canonicalize_drug_name


@pytest.mark.parametrize(
    "input_name, expected",
    [
        ("dupixent", "Dupixent"),
        ("DUPIXENT", "Dupixent"),
        ("dUpIxEnT", "Dupixent"),
        ("dupixent generic", "Dupixent Generic"),
        ("  DUPIXENT   Generic  ", "Dupixent Generic"),
        ("humira pen", "Humira Pen"),
    ],
)
def test_canonicalizes_each_word(input_name, expected):
    assert canonicalize_drug_name(input_name) == expected


def test_is_idempotent():
    once = canonicalize_drug_name("xolair prefilled SYRINGE")
    assert canonicalize_drug_name(once) == once


def test_only_first_letter_of_hyphenated_word_is_capitalized():
    # "capitalize" works per whitespace word, not per hyphen segment
    assert canonicalize_drug_name("co-trimoxazole") == "Co-trimoxazole"


def test_empty_name():
    assert canonicalize_drug_name("   ") == ""
