"""
This module defines the ImportService, which runs a full registry import:
decode, tokenize, reduce, detect duplicates, reconcile and create.
"""
import concurrent.futures
import json
import logging
import sqlite3
import threading
from datetime import datetime
from typing import Optional

from ..csv_reader import read_registry
from ..exceptions import ImportInProgressError, StoreUnavailableError
from ..models import ImportSummary, ReductionResult, SourceKind
from .correction_service import CorrectionService
from .duplicate_service import DuplicateService
from .persistence_service import PersistenceService
from .reconciliation_service import ReconciliationService
from .registry_service import RegistryService

logger = logging.getLogger(__name__)

LAST_IMPORT_KEY = "last_import"


class ImportService:
    """Orchestrates an import run against the address store."""

    def __init__(
        self,
        persistence_service: PersistenceService,
        registry_service: RegistryService,
        duplicate_service: DuplicateService,
        reconciliation_service: ReconciliationService,
        correction_service: CorrectionService,
    ):
        self.persistence = persistence_service
        self.registry_service = registry_service
        self.duplicate_service = duplicate_service
        self.reconciliation_service = reconciliation_service
        self.correction_service = correction_service
        self._running = threading.Lock()

    def _reduce(self, source_kind: SourceKind, data: bytes) -> ReductionResult:
        rows = read_registry(data)
        if source_kind == SourceKind.COMMERCIAL:
            return self.registry_service.reduce_commercial(rows)
        return self.registry_service.reduce_residential(rows)

    def run_import(
        self, commercial_data: Optional[bytes] = None, residential_data: Optional[bytes] = None
    ) -> ImportSummary:
        """
        Imports the commercial and residential registries.

        Only one import may run at a time. Nothing is written before
        reconciliation has finished, so a failure before the create step
        leaves the store untouched. If creating fails halfway, re-running the
        import skips whatever was already created.

        Args:
            commercial_data: Raw bytes of the commercial registry file, if any.
            residential_data: Raw bytes of the residential registry file, if any.

        Returns:
            The ImportSummary of the run.

        Raises:
            ValueError: If neither file is given.
            ImportInProgressError: If another import is running.
            DecodeError: If a file cannot be decoded.
            StoreUnavailableError: If the address store fails.
        """
        if commercial_data is None and residential_data is None:
            raise ValueError("Select at least one registry file to import.")

        if not self._running.acquire(blocking=False):
            raise ImportInProgressError("Another import is already running.")
        try:
            return self._run(commercial_data, residential_data)
        finally:
            self._running.release()

    def _run(self, commercial_data: Optional[bytes], residential_data: Optional[bytes]) -> ImportSummary:
        logger.info("Starting registry import.")
        sources = [
            (kind, data)
            for kind, data in (
                (SourceKind.COMMERCIAL, commercial_data),
                (SourceKind.RESIDENTIAL, residential_data),
            )
            if data is not None
        ]

        # The two registries are independent until they are merged
        with concurrent.futures.ThreadPoolExecutor(max_workers=2) as executor:
            futures = [executor.submit(self._reduce, kind, data) for kind, data in sources]
            results = [future.result() for future in futures]

        all_entries = [entry for result in results for entry in result.entries]
        invalid_rows = tuple(row for result in results for row in result.invalid_rows)
        total_rows = sum(result.rows_seen for result in results)

        duplicates = tuple(self.duplicate_service.detect_duplicates(all_entries))
        merged = self.registry_service.merge_entries(all_entries)

        try:
            with self.persistence as p:
                existing = p.list_addresses()
        except sqlite3.Error as e:
            logger.error(f"Could not list existing addresses: {e}")
            raise StoreUnavailableError(
                f"Could not read the address store: {e}. Nothing was imported; please re-run the import."
            ) from e

        result = self.reconciliation_service.reconcile(merged, existing)

        created = 0
        try:
            with self.persistence as p:
                for entry in result.to_create:
                    p.create_address(entry.to_store_fields())
                    created += 1
        except sqlite3.Error as e:
            logger.error(f"Import aborted after creating {created} addresses: {e}")
            raise StoreUnavailableError(
                f"Could not write to the address store: {e}. "
                "Please re-run the import; addresses already created will be skipped."
            ) from e

        self.correction_service.replace_queue(invalid_rows)

        summary = ImportSummary(
            total_rows_seen=total_rows,
            unique_entries=len(merged),
            created=created,
            skipped_existing=result.skipped_existing,
            duplicates=duplicates,
            invalid_rows=invalid_rows,
        )
        self._record_summary(summary)
        logger.info(
            f"Import finished: {total_rows} rows, {len(merged)} unique, {created} created, "
            f"{result.skipped_existing} skipped, {len(duplicates)} duplicates, {len(invalid_rows)} invalid."
        )
        return summary

    def _record_summary(self, summary: ImportSummary) -> None:
        stats = {
            "finished_at": datetime.now().isoformat(timespec="seconds"),
            "total_rows_seen": summary.total_rows_seen,
            "unique_entries": summary.unique_entries,
            "created": summary.created,
            "skipped_existing": summary.skipped_existing,
            "duplicates": len(summary.duplicates),
            "invalid_rows": len(summary.invalid_rows),
        }
        try:
            with self.persistence as p:
                p.set_system_info(LAST_IMPORT_KEY, json.dumps(stats))
        except sqlite3.Error as e:
            logger.warning(f"Could not record import statistics: {e}")

    def get_last_import_stats(self) -> Optional[dict]:
        with self.persistence as p:
            value = p.get_system_info(LAST_IMPORT_KEY)
        return json.loads(value) if value else None
