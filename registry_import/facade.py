"""
This module defines the central facade for the address import application.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .exceptions import (
    DecodeError,
    ImportInProgressError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from .models import ImportSummary, InvalidRow, PersistedAddress
from .services.correction_service import CorrectionService
from .services.import_service import ImportService
from .services.persistence_service import PersistenceService

logger = logging.getLogger(__name__)


class AddressImportFacade:
    """
    The central entry point for the address import application.
    It orchestrates the various services to perform high-level operations.
    """

    def __init__(
        self,
        persistence_service: PersistenceService,
        import_service: ImportService,
        correction_service: CorrectionService,
    ):
        self.persistence_service = persistence_service
        self.import_service = import_service
        self.correction_service = correction_service

    def import_registries(
        self, commercial_data: Optional[bytes] = None, residential_data: Optional[bytes] = None
    ) -> ImportSummary:
        """
        Imports registry file contents into the address catalog.

        Raises:
            ValueError: If no file content is given.
            ImportInProgressError: If another import is running.
            DecodeError: If a file cannot be decoded.
            StoreUnavailableError: If the address store fails.
        """
        try:
            return self.import_service.run_import(commercial_data, residential_data)
        except (ValueError, ImportInProgressError, DecodeError, StoreUnavailableError) as e:
            # Expected errors that the caller (CLI or dashboard) reports
            logger.warning(f"Import did not complete: {e}")
            raise

    def import_registry_files(
        self,
        commercial_path: Optional[Union[str, Path]] = None,
        residential_path: Optional[Union[str, Path]] = None,
    ) -> ImportSummary:
        """Reads registry files from disk and imports them."""
        commercial_data = Path(commercial_path).read_bytes() if commercial_path else None
        residential_data = Path(residential_path).read_bytes() if residential_path else None
        return self.import_registries(commercial_data, residential_data)

    def get_invalid_rows(self) -> List[InvalidRow]:
        return self.correction_service.list_rows()

    def get_invalid_row(self, row_id: str) -> InvalidRow:
        return self.correction_service.get_row(row_id)

    def fix_invalid_row(self, row_id: str, corrected_fields: Dict[str, Any]) -> PersistedAddress:
        """
        Adds a corrected invalid row to the catalog.

        Raises:
            NotFoundError: If the row is no longer queued.
            ValidationError: If the corrected fields are incomplete.
            StoreUnavailableError: If the address store fails.
        """
        try:
            return self.correction_service.fix_row(row_id, corrected_fields)
        except (NotFoundError, ValidationError) as e:
            logger.warning(f"Could not fix invalid row {row_id}: {e}")
            raise

    def suggest_matches(self, row_id: str) -> List[dict]:
        """Finds stored addresses similar to an invalid row; empty on failure."""
        try:
            return self.correction_service.suggest_matches(row_id)
        except NotFoundError:
            raise
        except Exception as e:
            logger.exception(f"Failed to suggest matches for row {row_id}: {e}")
            return []

    def list_addresses(self) -> List[PersistedAddress]:
        with self.persistence_service as p:
            return p.list_addresses()

    def clear_addresses(self) -> int:
        """Deletes every address in the catalog and returns how many were removed."""
        with self.persistence_service as p:
            removed = p.delete_all_addresses()
        logger.info(f"Cleared {removed} addresses from the catalog.")
        return removed

    def get_dashboard_data(self) -> dict:
        """Retrieves all necessary data for the dashboard."""
        try:
            with self.persistence_service as p:
                address_count = p.count_addresses()
                logs = p.get_all_logs()
            return {
                "address_count": address_count,
                "last_import": self.import_service.get_last_import_stats(),
                "pending_corrections": self.correction_service.pending_count(),
                "invalid_rows": self.correction_service.list_rows(),
                "logs": logs,
            }
        except Exception as e:
            logger.exception("Failed to retrieve dashboard data.")
            return {
                "address_count": 0,
                "last_import": None,
                "pending_corrections": 0,
                "invalid_rows": [],
                "logs": [],
                "error": str(e),
            }
