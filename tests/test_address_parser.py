"""
Unit tests for the address string parser.
"""
import pytest

from registry_import.address_parser import (
    format_address_label,
    normalize_city_name,
    parse_address,
    split_street_number,
)
from registry_import.models import ParsedAddress


def test_parse_postal_city_and_street():
    parsed = parse_address("63-300 Pleszew, Kościelna 5")
    assert parsed == ParsedAddress(
        street="Kościelna", number="5", city="Pleszew", postal_code="63-300"
    )
    assert parsed.is_valid


def test_parse_locality_override():
    parsed = parse_address("63-300 Pleszew, kowalew, Polna 12a")
    assert parsed.city == "Kowalew"
    assert parsed.postal_code == "63-300"
    assert (parsed.street, parsed.number) == ("Polna", "12a")


def test_parse_without_postal_code():
    parsed = parse_address("PLESZEW, Rynek 1")
    assert parsed == ParsedAddress(street="Rynek", number="1", city="Pleszew")


def test_parse_single_segment_has_no_city():
    parsed = parse_address("Kościelna 5")
    assert parsed == ParsedAddress(street="Kościelna", number="5", city="")
    assert not parsed.is_valid


@pytest.mark.parametrize("raw", ["", None, " , , "])
def test_parse_empty_address(raw):
    parsed = parse_address(raw)
    assert parsed == ParsedAddress()
    assert not parsed.is_valid


def test_parse_postal_code_only_leaves_city_empty():
    parsed = parse_address("63-300, Kościelna 5")
    assert parsed.postal_code == "63-300"
    assert parsed.city == ""
    assert not parsed.is_valid


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Kościelna 5", ("Kościelna", "5")),
        ("3 Maja 5", ("3 Maja", "5")),
        ("Al. Niepodległości 12/4", ("Al. Niepodległości", "12/4")),
        ("Rynek", ("Rynek", "")),
        ("   ", ("", "")),
    ],
)
def test_split_street_number(value, expected):
    assert split_street_number(value) == expected


def test_normalize_city_name():
    assert normalize_city_name("kędzierzyn-KOŹLE") == "Kędzierzyn-Koźle"
    assert normalize_city_name("  ostrów   wielkopolski ") == "Ostrów Wielkopolski"
    assert normalize_city_name("") == ""


def test_format_address_label():
    assert format_address_label("Kościelna", "5", "Pleszew", "63-300") == "63-300 Pleszew, Kościelna 5"
    assert format_address_label("Rynek", "", "Pleszew") == "Pleszew, Rynek"
