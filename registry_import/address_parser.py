"""
This module parses the free-text address column of the registries.

Addresses look like "63-300 Pleszew, Kościelna 5" or, with a locality that
differs from the post office town, "63-300 Pleszew, Kowalew, Polna 12".
"""
import re
from typing import Optional, Tuple

from .models import ParsedAddress

postal_code_pattern = re.compile(r"\d{2}-\d{3}")
street_number_pattern = re.compile(r"^(.*?)(\s+\d.*)$")


def normalize_city_name(value: Optional[str]) -> str:
    """Capitalizes each word and each hyphenated part, e.g. 'KĘDZIERZYN-koźle'."""
    if not value:
        return ""
    words = []
    for word in value.lower().split():
        segments = [segment.capitalize() for segment in word.split("-") if segment]
        words.append("-".join(segments))
    return " ".join(words)


def split_street_number(value: str) -> Tuple[str, str]:
    """
    Splits 'Kościelna 5a' into ('Kościelna', '5a').

    The number starts at the first whitespace-separated token beginning with a
    digit and runs to the end. The leading token always belongs to the street,
    so '3 Maja 5' yields ('3 Maja', '5').
    """
    trimmed = value.strip()
    if not trimmed:
        return "", ""

    match = street_number_pattern.match(trimmed)
    if match:
        return match.group(1).strip(), match.group(2).strip()
    return trimmed, ""


def parse_address(raw: Optional[str]) -> ParsedAddress:
    """
    Extracts street, number, city and postal code from a registry address.

    Args:
        raw: The address column, e.g. "63-300 Pleszew, Kościelna 5".

    Returns:
        A ParsedAddress. Street and city are empty strings when they cannot be
        determined; callers treat that as an invalid row.
    """
    parts = [part.strip() for part in (raw or "").split(",")]
    parts = [part for part in parts if part]
    if not parts:
        return ParsedAddress()

    if len(parts) == 1:
        street, number = split_street_number(parts[0])
        return ParsedAddress(street=street, number=number)

    postal_city = parts[0]
    locality = parts[1] if len(parts) >= 3 else ""
    street_part = ", ".join(parts[2:]) if len(parts) >= 3 else parts[1]

    postal_code = None
    match = postal_code_pattern.search(postal_city)
    if match:
        postal_code = match.group(0)
        postal_city = postal_city.replace(postal_code, "", 1).strip()

    city = normalize_city_name(locality or postal_city)
    street, number = split_street_number(street_part)
    return ParsedAddress(street=street, number=number, city=city, postal_code=postal_code)


def format_address_label(
    street: str, number: str, city: str, postal_code: Optional[str] = None
) -> str:
    """Formats an address for display, e.g. '63-300 Pleszew, Kościelna 5'."""
    postal_part = f"{postal_code} " if postal_code else ""
    return f"{postal_part}{city}, {street} {number}".strip()
