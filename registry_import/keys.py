"""
This module builds the identity keys used to deduplicate addresses.

A location key identifies a physical place. An entry key refines it with the
billable unit: commercial addresses are keyed per owner, since one building can
host several independent subscriptions, while a residential address is keyed
by location alone.
"""
import re
from typing import List, Optional

from .models import CanonicalEntry, PersistedAddress, SourceKind

KEY_SEPARATOR = "|"
COMPANY_DISCRIMINATOR = "::company::"
RESIDENTIAL_DISCRIMINATOR = "::residential"
OWNER_MARKER = "Owner:"

# KEY_SEPARATOR is stripped too, so normalized parts can never contain it.
punctuation_pattern = re.compile(r"[,.|]")
whitespace_pattern = re.compile(r"\s+")


def normalize_text(value: Optional[str]) -> str:
    """Lowercases, replaces commas and periods with spaces and collapses whitespace."""
    if not value:
        return ""
    value = punctuation_pattern.sub(" ", value.lower())
    return whitespace_pattern.sub(" ", value).strip()


def location_key(
    street: str, number: str, city: str, postal_code: Optional[str] = None
) -> str:
    return KEY_SEPARATOR.join(
        normalize_text(part) for part in (street, number, city, postal_code)
    )


def company_key(base_key: str, owner: Optional[str]) -> str:
    return f"{base_key}{COMPANY_DISCRIMINATOR}{normalize_text(owner)}"


def residential_key(base_key: str) -> str:
    return f"{base_key}{RESIDENTIAL_DISCRIMINATOR}"


def entry_location_key(entry) -> str:
    """Returns the location key of anything with street/number/city/postal_code."""
    return location_key(entry.street, entry.number, entry.city, entry.postal_code)


def entry_key(entry: CanonicalEntry) -> str:
    """Returns the dedup key of an entry; equal entry keys imply equal location keys."""
    base_key = entry_location_key(entry)
    if entry.source_kind == SourceKind.COMMERCIAL:
        return company_key(base_key, entry.owner_label)
    return residential_key(base_key)


def extract_owners_from_notes(notes: Optional[str]) -> List[str]:
    """
    Recovers owner labels from the 'Owner:' line of a notes field.

    Labels are comma-separated, so an owner whose name contains a comma comes
    back split. Records created by this engine also carry a structured owners
    list, which persisted_entry_keys prefers.
    """
    if not notes:
        return []
    for line in notes.split("\n"):
        if line.startswith(OWNER_MARKER):
            value = line[len(OWNER_MARKER):].strip()
            return [owner.strip() for owner in value.split(",") if owner.strip()]
    return []


def persisted_entry_keys(address: PersistedAddress) -> List[str]:
    """
    Recomputes the entry keys an already stored address occupies.

    A commercial address with two owners occupies two keys.
    """
    base_key = entry_location_key(address)

    if address.owners or address.source_kind == SourceKind.COMMERCIAL:
        owners = address.owners or [""]
        return [company_key(base_key, owner) for owner in owners]

    owners = extract_owners_from_notes(address.notes)
    if owners:
        return [company_key(base_key, owner) for owner in owners]
    return [residential_key(base_key)]
