"""
This module defines the RegistryService, which reduces raw registry rows into
canonical address entries.
"""
import logging
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..address_parser import parse_address
from ..exceptions import RowFormatError
from ..keys import company_key, entry_key, entry_location_key
from ..models import (
    CanonicalEntry,
    CommercialRecord,
    DeclaredContainer,
    InvalidRow,
    ParsedAddress,
    ReductionResult,
    ResidentialRecord,
    SourceKind,
)
from ..waste_classifier import MIXED, classify, with_fallback

# Get a logger instance for this module
logger = logging.getLogger(__name__)

COMMERCIAL_MARKER = "Type: Commercial"
RESIDENTIAL_MARKER = "Type: Residential"

REASON_MISSING_ADDRESS = "missing address"
REASON_MISSING_STREET_OR_CITY = "missing street or city"
REASON_MALFORMED_ROW = "malformed row"

DATE_FORMATS = ("%d.%m.%Y", "%Y-%m-%d", "%d-%m-%Y", "%Y.%m.%d")


def build_notes(lines: Iterable[str]) -> str:
    return "\n".join(line for line in lines if line)


def parse_declared_count(value: Optional[str]) -> Union[int, float]:
    """Parses a declared container count such as '2' or '1,5'; 0 when unparseable."""
    if not value:
        return 0
    try:
        parsed = float(value.replace(",", ".").strip())
    except ValueError:
        return 0
    return int(parsed) if parsed.is_integer() else parsed


def parse_change_date(value: Optional[str]) -> Optional[datetime]:
    """Parses a change-of-status date, returning None when no known format fits."""
    if not value:
        return None
    for date_format in DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), date_format)
        except ValueError:
            continue
    return None


def container_key(container: DeclaredContainer) -> Tuple[str, str]:
    return container.name.lower().strip(), (container.frequency or "").lower().strip()


def merge_declared_containers(
    current: Iterable[DeclaredContainer], incoming: Iterable[DeclaredContainer]
) -> Tuple[DeclaredContainer, ...]:
    """Merges container lists, summing counts of the same (name, frequency)."""
    merged: Dict[Tuple[str, str], DeclaredContainer] = {}
    for item in list(current) + list(incoming):
        key = container_key(item)
        existing = merged.get(key)
        if existing:
            merged[key] = DeclaredContainer(
                name=existing.name,
                count=existing.count + item.count,
                frequency=existing.frequency,
            )
        else:
            merged[key] = item
    return tuple(merged.values())


def format_container(container: DeclaredContainer) -> str:
    count_label = f" x{container.count:g}" if container.count else ""
    frequency_label = f" / {container.frequency}" if container.frequency else ""
    return f"{container.name}{count_label}{frequency_label}"


def _new_row_id(source_kind: SourceKind, row_number: int) -> str:
    return f"{source_kind.value}-{row_number}-{uuid.uuid4().hex[:8]}"


def _invalid_reason(raw_address: str) -> str:
    return REASON_MISSING_ADDRESS if not raw_address else REASON_MISSING_STREET_OR_CITY


def _malformed_row(source_kind: SourceKind, error: RowFormatError) -> InvalidRow:
    logger.warning(f"Skipping malformed {source_kind.value} row: {error}")
    return InvalidRow(
        id=_new_row_id(source_kind, error.row_number),
        source_kind=source_kind,
        row_number=error.row_number,
        raw_address="",
        reason=REASON_MALFORMED_ROW,
        notes=COMMERCIAL_MARKER if source_kind == SourceKind.COMMERCIAL else RESIDENTIAL_MARKER,
        waste_types=(MIXED,) if source_kind == SourceKind.RESIDENTIAL else (),
        raw_fields=tuple(error.fields),
    )


class _CommercialBuilder:
    """Accumulates every row of one commercial entry key."""

    def __init__(self, address: ParsedAddress, owner: str):
        self.address = address
        self.owner_label = owner
        self.owner_spellings: List[str] = []
        self.containers: Tuple[DeclaredContainer, ...] = ()
        self.waste_types = set()
        self.occurrence_count = 0

    def add(self, owner: str, container: Optional[DeclaredContainer], tags) -> None:
        self.occurrence_count += 1
        if owner and owner not in self.owner_spellings:
            self.owner_spellings.append(owner)
        if container:
            self.containers = merge_declared_containers(self.containers, [container])
        self.waste_types.update(tags)

    def build(self) -> CanonicalEntry:
        owner_line = ", ".join(self.owner_spellings)
        notes = build_notes(
            [COMMERCIAL_MARKER, f"Owner: {owner_line}" if owner_line else ""]
            + [f"Declared: {format_container(c)}" for c in self.containers]
        )
        return CanonicalEntry(
            street=self.address.street,
            number=self.address.number,
            city=self.address.city,
            postal_code=self.address.postal_code,
            notes=notes,
            waste_types=with_fallback(self.waste_types),
            declared_containers=self.containers,
            source_kind=SourceKind.COMMERCIAL,
            occurrence_count=self.occurrence_count,
            owner_label=self.owner_label or None,
            owner_spellings=tuple(self.owner_spellings),
        )


class _ResidentialBuilder:
    """Keeps the most recent snapshot of one residential location."""

    def __init__(self, address: ParsedAddress):
        self.address = address
        self.record: Optional[ResidentialRecord] = None
        self.changed_at: Optional[datetime] = None
        self.occurrence_count = 0

    def add(self, record: ResidentialRecord) -> None:
        self.occurrence_count += 1
        changed_at = parse_change_date(record.change_from)
        # Unparseable dates rank lowest; ties go to the row seen last.
        if self.record is None or (changed_at or datetime.min) >= (
            self.changed_at or datetime.min
        ):
            self.record = record
            self.changed_at = changed_at

    def build(self) -> CanonicalEntry:
        return CanonicalEntry(
            street=self.address.street,
            number=self.address.number,
            city=self.address.city,
            postal_code=self.address.postal_code,
            notes=residential_notes(self.record),
            waste_types=(MIXED,),
            declared_containers=(),
            source_kind=SourceKind.RESIDENTIAL,
            occurrence_count=self.occurrence_count,
        )


def residential_notes(record: ResidentialRecord) -> str:
    return build_notes(
        [
            RESIDENTIAL_MARKER,
            f"Declaration number: {record.declaration_number}" if record.declaration_number else "",
            f"Change from: {record.change_from}" if record.change_from else "",
            f"Residents: {record.residents}" if record.residents else "",
            f"Rate: {record.rate}" if record.rate else "",
        ]
    )


class RegistryService:
    """Reduces the rows of each registry into canonical entries and invalid rows."""

    def reduce_commercial(
        self, rows: Sequence[Sequence[str]], skip_header: bool = True
    ) -> ReductionResult:
        """
        Groups commercial rows by address and normalized owner.

        Args:
            rows: Tokenized rows of the commercial registry.
            skip_header: Whether the first row is a header.

        Returns:
            A ReductionResult with one entry per distinct address/owner pair.
        """
        start = 1 if skip_header else 0
        builders: Dict[str, _CommercialBuilder] = {}
        invalid_rows = []

        for index, row in enumerate(rows[start:], start=start + 1):
            try:
                record = CommercialRecord.from_row(row, index)
            except RowFormatError as e:
                invalid_rows.append(_malformed_row(SourceKind.COMMERCIAL, e))
                continue

            container = None
            if record.container:
                container = DeclaredContainer(
                    name=record.container,
                    count=parse_declared_count(record.declared_count),
                    frequency=record.frequency or None,
                )
            tags = classify(record.container)
            address = parse_address(record.address)

            if not address.is_valid:
                reason = _invalid_reason(record.address)
                logger.warning(
                    f"Commercial row {index} is invalid ({reason}): '{record.address}'"
                )
                invalid_rows.append(
                    InvalidRow(
                        id=_new_row_id(SourceKind.COMMERCIAL, index),
                        source_kind=SourceKind.COMMERCIAL,
                        row_number=index,
                        raw_address=record.address,
                        reason=reason,
                        street=address.street,
                        number=address.number,
                        city=address.city,
                        postal_code=address.postal_code,
                        owner=record.owner or None,
                        notes=build_notes(
                            [COMMERCIAL_MARKER, f"Owner: {record.owner}" if record.owner else ""]
                        ),
                        waste_types=with_fallback(tags) if tags else (),
                        declared_containers=(container,) if container else (),
                        raw_fields=record.fields,
                    )
                )
                continue

            key = company_key(entry_location_key(address), record.owner)
            builder = builders.get(key)
            if builder is None:
                builder = builders[key] = _CommercialBuilder(address, record.owner)
            builder.add(record.owner, container, tags)

        entries = tuple(builder.build() for builder in builders.values())
        rows_seen = max(len(rows) - start, 0)
        logger.info(
            f"Reduced {rows_seen} commercial rows to {len(entries)} entries "
            f"({len(invalid_rows)} invalid)."
        )
        return ReductionResult(entries=entries, invalid_rows=tuple(invalid_rows), rows_seen=rows_seen)

    def reduce_residential(
        self, rows: Sequence[Sequence[str]], skip_header: bool = True
    ) -> ReductionResult:
        """
        Groups residential rows by location, keeping the most recent declaration.

        Args:
            rows: Tokenized rows of the residential registry.
            skip_header: Whether the first row is a header.

        Returns:
            A ReductionResult with one entry per distinct location.
        """
        start = 1 if skip_header else 0
        builders: Dict[str, _ResidentialBuilder] = {}
        invalid_rows = []

        for index, row in enumerate(rows[start:], start=start + 1):
            try:
                record = ResidentialRecord.from_row(row, index)
            except RowFormatError as e:
                invalid_rows.append(_malformed_row(SourceKind.RESIDENTIAL, e))
                continue

            address = parse_address(record.address)
            if not address.is_valid:
                reason = _invalid_reason(record.address)
                logger.warning(
                    f"Residential row {index} is invalid ({reason}): '{record.address}'"
                )
                invalid_rows.append(
                    InvalidRow(
                        id=_new_row_id(SourceKind.RESIDENTIAL, index),
                        source_kind=SourceKind.RESIDENTIAL,
                        row_number=index,
                        raw_address=record.address,
                        reason=reason,
                        street=address.street,
                        number=address.number,
                        city=address.city,
                        postal_code=address.postal_code,
                        notes=residential_notes(record),
                        waste_types=(MIXED,),
                        raw_fields=record.fields,
                    )
                )
                continue

            key = entry_location_key(address)
            builder = builders.get(key)
            if builder is None:
                builder = builders[key] = _ResidentialBuilder(address)
            builder.add(record)

        entries = tuple(builder.build() for builder in builders.values())
        rows_seen = max(len(rows) - start, 0)
        logger.info(
            f"Reduced {rows_seen} residential rows to {len(entries)} entries "
            f"({len(invalid_rows)} invalid)."
        )
        return ReductionResult(entries=entries, invalid_rows=tuple(invalid_rows), rows_seen=rows_seen)

    def merge_entries(self, entries: Iterable[CanonicalEntry]) -> Tuple[CanonicalEntry, ...]:
        """
        Folds entries from both registries into one list keyed by entry key.

        Entries colliding on the same key have their occurrences summed, their
        containers merged and their waste types and notes combined.
        """
        merged: Dict[str, CanonicalEntry] = {}
        notes_blocks: Dict[str, List[str]] = {}
        for entry in entries:
            key = entry_key(entry)
            current = merged.get(key)
            if current is None:
                merged[key] = entry
                notes_blocks[key] = [entry.notes]
                continue

            # Whole notes blocks are compared, never substrings
            blocks = notes_blocks[key]
            if entry.notes not in blocks:
                blocks.append(entry.notes)
            notes = build_notes(blocks)
            spellings = current.owner_spellings + tuple(
                o for o in entry.owner_spellings if o not in current.owner_spellings
            )
            merged[key] = CanonicalEntry(
                street=current.street,
                number=current.number,
                city=current.city,
                postal_code=current.postal_code,
                notes=notes,
                waste_types=with_fallback(set(current.waste_types) | set(entry.waste_types)),
                declared_containers=merge_declared_containers(
                    current.declared_containers, entry.declared_containers
                ),
                source_kind=current.source_kind,
                occurrence_count=current.occurrence_count + entry.occurrence_count,
                owner_label=current.owner_label,
                owner_spellings=spellings,
            )
        return tuple(merged.values())
