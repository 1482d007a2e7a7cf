"""
This module defines the ReconciliationService for deciding which entries are new.
"""
import logging
from typing import Iterable, Set

from ..keys import entry_key, persisted_entry_keys
from ..models import CanonicalEntry, PersistedAddress, ReconciliationResult

logger = logging.getLogger(__name__)


class ReconciliationService:
    """Diffs imported entries against the addresses already in the store."""

    def existing_keys(self, persisted: Iterable[PersistedAddress]) -> Set[str]:
        keys = set()
        for address in persisted:
            keys.update(persisted_entry_keys(address))
        return keys

    def reconcile(
        self, entries: Iterable[CanonicalEntry], persisted: Iterable[PersistedAddress]
    ) -> ReconciliationResult:
        """
        Splits entries into those to create and those already stored.

        This performs no writes; the caller creates the returned entries.

        Args:
            entries: The merged entries of an import run.
            persisted: Every address currently in the store.

        Returns:
            A ReconciliationResult with the entries to create and the number
            of entries skipped because their key already exists.
        """
        existing = self.existing_keys(persisted)
        to_create = []
        skipped = 0
        for entry in entries:
            if entry_key(entry) in existing:
                skipped += 1
            else:
                to_create.append(entry)

        logger.info(
            f"Reconciled against {len(existing)} existing keys: "
            f"{len(to_create)} to create, {skipped} already stored."
        )
        return ReconciliationResult(to_create=tuple(to_create), skipped_existing=skipped)
