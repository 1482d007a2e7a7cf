"""
This module defines the data models for the registry import engine.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import DUPLICATE_PREVIEW_LIMIT
from .exceptions import RowFormatError

# A row needs its ordinal plus at least one data field
MIN_ROW_FIELDS = 2

COMMERCIAL_ADDRESS_COLUMN = 2
RESIDENTIAL_ADDRESS_COLUMN = 1


class SourceKind(str, Enum):
    """The registry an entry was imported from."""

    COMMERCIAL = "commercial"
    RESIDENTIAL = "residential"


def _column(row: Sequence[str], index: int) -> str:
    return row[index].strip() if index < len(row) else ""


def _check_row_length(row: Sequence[str], row_number: int) -> None:
    if len(row) < MIN_ROW_FIELDS:
        raise RowFormatError(
            f"Row {row_number} has {len(row)} field(s), expected at least {MIN_ROW_FIELDS}.",
            row_number=row_number,
            fields=list(row),
        )


@dataclass(frozen=True)
class DeclaredContainer:
    """A container declared for an address, e.g. 2x paper every other week."""

    name: str
    count: float
    frequency: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "count": self.count, "frequency": self.frequency}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeclaredContainer":
        return cls(
            name=data.get("name", ""),
            count=data.get("count", 0),
            frequency=data.get("frequency") or None,
        )


@dataclass(frozen=True)
class ParsedAddress:
    """Address fields extracted from a free-text registry column."""

    street: str = ""
    number: str = ""
    city: str = ""
    postal_code: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return bool(self.street and self.city)


@dataclass(frozen=True)
class CommercialRecord:
    """One row of the commercial registry."""

    row_number: int
    owner: str
    address: str
    container: str
    declared_count: str
    frequency: str
    fields: Tuple[str, ...] = ()

    @classmethod
    def from_row(cls, row: Sequence[str], row_number: int) -> "CommercialRecord":
        """
        Builds a record from a tokenized row.

        Raises:
            RowFormatError: If the row holds no data beyond its ordinal.
        """
        _check_row_length(row, row_number)
        return cls(
            row_number=row_number,
            owner=_column(row, 1),
            address=_column(row, COMMERCIAL_ADDRESS_COLUMN),
            container=_column(row, 3),
            declared_count=_column(row, 4),
            frequency=_column(row, 5),
            fields=tuple(row),
        )


@dataclass(frozen=True)
class ResidentialRecord:
    """One row of the residential registry."""

    row_number: int
    address: str
    declaration_number: str
    change_from: str
    residents: str
    rate: str
    fields: Tuple[str, ...] = ()

    @classmethod
    def from_row(cls, row: Sequence[str], row_number: int) -> "ResidentialRecord":
        """
        Builds a record from a tokenized row.

        Raises:
            RowFormatError: If the row holds no data beyond its ordinal.
        """
        _check_row_length(row, row_number)
        return cls(
            row_number=row_number,
            address=_column(row, RESIDENTIAL_ADDRESS_COLUMN),
            declaration_number=_column(row, 2),
            change_from=_column(row, 3),
            residents=_column(row, 4),
            rate=_column(row, 5),
            fields=tuple(row),
        )


@dataclass(frozen=True)
class CanonicalEntry:
    """A merged, deduplicated address ready to be stored."""

    street: str
    number: str
    city: str
    postal_code: Optional[str]
    notes: str
    waste_types: Tuple[str, ...]
    declared_containers: Tuple[DeclaredContainer, ...]
    source_kind: SourceKind
    occurrence_count: int = 1
    owner_label: Optional[str] = None
    owner_spellings: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.waste_types:
            raise ValueError("A canonical entry needs at least one waste type.")
        if self.occurrence_count < 1:
            raise ValueError("A canonical entry needs at least one occurrence.")

    def to_store_fields(self) -> Dict[str, Any]:
        """Returns the fields passed to the address store on creation."""
        return {
            "street": self.street,
            "number": self.number,
            "city": self.city,
            "postal_code": self.postal_code,
            "notes": self.notes,
            "waste_types": list(self.waste_types),
            "declared_containers": [c.to_dict() for c in self.declared_containers],
            "owners": [o for o in self.owner_spellings if o],
            "source_kind": self.source_kind.value,
            "active": True,
        }


@dataclass(frozen=True)
class DuplicateDetail:
    source_kind: SourceKind
    owner_label: Optional[str]
    occurrences: int


@dataclass(frozen=True)
class DuplicateReport:
    """Advisory report for a location shared by more than one billable unit."""

    location_key: str
    display_label: str
    total_occurrences: int
    source_kinds: Tuple[SourceKind, ...]
    details: Tuple[DuplicateDetail, ...]


@dataclass(frozen=True)
class InvalidRow:
    """A registry row whose address could not be parsed, queued for manual correction."""

    id: str
    source_kind: SourceKind
    row_number: int
    raw_address: str
    reason: str
    street: str = ""
    number: str = ""
    city: str = ""
    postal_code: Optional[str] = None
    owner: Optional[str] = None
    notes: str = ""
    waste_types: Tuple[str, ...] = ()
    declared_containers: Tuple[DeclaredContainer, ...] = ()
    raw_fields: Tuple[str, ...] = ()


@dataclass
class PersistedAddress:
    """An address record owned by the address store."""

    id: int
    street: str
    number: str
    city: str
    postal_code: Optional[str] = None
    notes: Optional[str] = None
    waste_types: List[str] = field(default_factory=list)
    declared_containers: List[DeclaredContainer] = field(default_factory=list)
    owners: List[str] = field(default_factory=list)
    source_kind: Optional[SourceKind] = None
    active: bool = True
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "PersistedAddress":
        """Builds a record from a sqlite3.Row (or any mapping) of the addresses table."""
        source_kind = row["source_kind"]
        return cls(
            id=row["id"],
            street=row["street"],
            number=row["number"],
            city=row["city"],
            postal_code=row["postal_code"],
            notes=row["notes"],
            waste_types=json.loads(row["waste_types"] or "[]"),
            declared_containers=[
                DeclaredContainer.from_dict(item)
                for item in json.loads(row["declared_containers"] or "[]")
            ],
            owners=json.loads(row["owners"] or "[]"),
            source_kind=SourceKind(source_kind) if source_kind else None,
            active=bool(row["active"]),
            created_at=row["created_at"],
        )


@dataclass(frozen=True)
class ReductionResult:
    """Output of a registry reducer for one file."""

    entries: Tuple[CanonicalEntry, ...]
    invalid_rows: Tuple[InvalidRow, ...]
    rows_seen: int


@dataclass(frozen=True)
class ReconciliationResult:
    to_create: Tuple[CanonicalEntry, ...]
    skipped_existing: int


@dataclass(frozen=True)
class ImportSummary:
    """The outcome of one import run."""

    total_rows_seen: int
    unique_entries: int
    created: int
    skipped_existing: int
    duplicates: Tuple[DuplicateReport, ...] = ()
    invalid_rows: Tuple[InvalidRow, ...] = ()

    @property
    def duplicate_preview(self) -> Tuple[DuplicateReport, ...]:
        return self.duplicates[:DUPLICATE_PREVIEW_LIMIT]
