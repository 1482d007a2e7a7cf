"""
This module defines the CorrectionService, which holds rows that failed address
parsing until an operator fixes them by hand.
"""
import logging
import sqlite3
import threading
from typing import Any, Dict, Iterable, List, Optional

from thefuzz import process

from ..address_parser import format_address_label, normalize_city_name
from ..config import SUGGESTION_LIMIT, SUGGESTION_SCORE_CUTOFF
from ..exceptions import NotFoundError, StoreUnavailableError, ValidationError
from ..models import InvalidRow, PersistedAddress, SourceKind
from ..waste_classifier import MIXED, WASTE_TAGS
from .persistence_service import PersistenceService

# Get a logger instance for this module
logger = logging.getLogger(__name__)


class CorrectionService:
    """Manages the invalid-row queue and turns corrected rows into addresses."""

    def __init__(self, persistence_service: PersistenceService):
        self.persistence = persistence_service
        self._queue: Dict[str, InvalidRow] = {}
        self._lock = threading.Lock()

    def replace_queue(self, rows: Iterable[InvalidRow]) -> None:
        """Replaces the queue with the invalid rows of the latest import."""
        with self._lock:
            self._queue = {row.id: row for row in rows}
            logger.info(f"Correction queue now holds {len(self._queue)} rows.")

    def list_rows(self) -> List[InvalidRow]:
        with self._lock:
            return list(self._queue.values())

    def get_row(self, row_id: str) -> InvalidRow:
        """
        Raises:
            NotFoundError: If the row is not queued.
        """
        with self._lock:
            row = self._queue.get(row_id)
        if row is None:
            raise NotFoundError(f"Invalid row '{row_id}' is not in the correction queue.")
        return row

    def fix_row(self, row_id: str, corrected_fields: Dict[str, Any]) -> PersistedAddress:
        """
        Creates an address from a corrected invalid row and removes it from the queue.

        The corrected fields are merged over the data salvaged from the row;
        declared containers and owners are carried over as they are. The
        result is not reconciled against the store.

        Args:
            row_id: The ID of the queued row.
            corrected_fields: Any of street, number, city, postal_code, notes,
                waste_types and active.

        Returns:
            The created address.

        Raises:
            NotFoundError: If the row is no longer queued.
            ValidationError: If street or city is empty, or a waste type is unknown.
            StoreUnavailableError: If the address store cannot be written to.
        """
        with self._lock:
            row = self._queue.get(row_id)
            if row is None:
                raise NotFoundError(f"Invalid row '{row_id}' is not in the correction queue.")

            fields = self._build_fields(row, corrected_fields)
            try:
                with self.persistence as p:
                    address = p.create_address(fields)
            except sqlite3.Error as e:
                logger.error(f"Failed to store corrected row {row_id}: {e}")
                raise StoreUnavailableError(
                    f"Could not store the corrected address: {e}. Please try again."
                ) from e

            del self._queue[row_id]

        logger.info(
            f"Created address {address.id} from corrected {row.source_kind.value} row {row.row_number}."
        )
        return address

    def _build_fields(self, row: InvalidRow, corrected: Dict[str, Any]) -> Dict[str, Any]:
        street = (corrected.get("street", row.street) or "").strip()
        city = normalize_city_name((corrected.get("city", row.city) or "").strip())
        if not street or not city:
            raise ValidationError("Street and city are required.")

        waste_types = list(corrected.get("waste_types") or row.waste_types or [MIXED])
        unknown = sorted(set(waste_types) - WASTE_TAGS)
        if unknown:
            raise ValidationError(f"Unknown waste types: {', '.join(unknown)}")

        return {
            "street": street,
            "number": (corrected.get("number", row.number) or "").strip(),
            "city": city,
            "postal_code": (corrected.get("postal_code", row.postal_code) or "").strip() or None,
            "notes": corrected.get("notes", row.notes) or None,
            "waste_types": waste_types,
            "declared_containers": [c.to_dict() for c in row.declared_containers],
            "owners": [row.owner] if row.owner else [],
            "source_kind": row.source_kind.value,
            "active": corrected.get("active", True),
        }

    def suggest_matches(self, row_id: str, query: Optional[str] = None) -> List[dict]:
        """
        Lists stored addresses that look similar to an invalid row.

        This only helps the operator spot an existing address before adding a
        corrected one; it plays no part in import identity.
        """
        row = self.get_row(row_id)
        query = query or row.raw_address or " ".join(
            part for part in (row.street, row.number, row.city) if part
        )
        if not query:
            return []

        with self.persistence as p:
            addresses = p.list_addresses()
        choices = {
            address.id: format_address_label(
                address.street, address.number, address.city, address.postal_code
            )
            for address in addresses
        }
        matches = process.extractBests(
            query, choices, limit=SUGGESTION_LIMIT, score_cutoff=SUGGESTION_SCORE_CUTOFF
        )
        return [{"id": key, "label": label, "score": score} for label, score, key in matches]

    def pending_count(self, source_kind: Optional[SourceKind] = None) -> int:
        with self._lock:
            return sum(
                1
                for row in self._queue.values()
                if source_kind is None or row.source_kind == source_kind
            )
