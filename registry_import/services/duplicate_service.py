"""
This module defines the DuplicateService, which reports addresses shared by
more than one billable unit.
"""
import logging
from typing import Dict, Iterable, List

from ..address_parser import format_address_label
from ..keys import entry_location_key, normalize_text
from ..models import CanonicalEntry, DuplicateDetail, DuplicateReport, SourceKind

logger = logging.getLogger(__name__)


class _LocationGroup:
    def __init__(self, label: str):
        self.label = label
        self.source_kinds: List[SourceKind] = []
        self.owners = set()
        self.commercial_count = 0
        self.residential_count = 0
        self.details: List[DuplicateDetail] = []

    def add(self, entry: CanonicalEntry) -> None:
        if entry.source_kind not in self.source_kinds:
            self.source_kinds.append(entry.source_kind)
        if entry.source_kind == SourceKind.COMMERCIAL:
            self.commercial_count += entry.occurrence_count
            self.owners.add(normalize_text(entry.owner_label))
        else:
            self.residential_count += entry.occurrence_count
        self.details.append(
            DuplicateDetail(
                source_kind=entry.source_kind,
                owner_label=entry.owner_label,
                occurrences=entry.occurrence_count,
            )
        )

    @property
    def is_duplicate(self) -> bool:
        return len(self.owners) > 1 or self.residential_count > 1


class DuplicateService:
    """
    Groups entries by location key and flags suspicious locations.

    Entry keys already keep distinct owners apart and fold repeated residential
    rows together; looking at the coarser location key surfaces both cases for
    an operator to review. The report is advisory and never blocks an import.
    """

    def detect_duplicates(self, entries: Iterable[CanonicalEntry]) -> List[DuplicateReport]:
        groups: Dict[str, _LocationGroup] = {}
        for entry in entries:
            key = entry_location_key(entry)
            group = groups.get(key)
            if group is None:
                label = format_address_label(
                    entry.street, entry.number, entry.city, entry.postal_code
                )
                group = groups[key] = _LocationGroup(label)
            group.add(entry)

        reports = [
            DuplicateReport(
                location_key=key,
                display_label=group.label,
                total_occurrences=group.commercial_count + group.residential_count,
                source_kinds=tuple(group.source_kinds),
                details=tuple(group.details),
            )
            for key, group in groups.items()
            if group.is_duplicate
        ]
        if reports:
            logger.info(f"Found {len(reports)} locations with possible duplicates.")
        return reports
