"""
This module provides a factory for creating and configuring the application's core components.
"""

from registry_import.config import ADDRESS_DB_PATH
from registry_import.facade import AddressImportFacade
from registry_import.services.correction_service import CorrectionService
from registry_import.services.duplicate_service import DuplicateService
from registry_import.services.import_service import ImportService
from registry_import.services.persistence_service import PersistenceService
from registry_import.services.reconciliation_service import ReconciliationService
from registry_import.services.registry_service import RegistryService

from .logging_config import setup_database_logging


def initialize_app(db_path: str = ADDRESS_DB_PATH) -> None:
    """
    Initializes the application by setting up the database and logging.
    """
    # The logs table must exist before the database handler writes to it
    with PersistenceService(db_path) as persistence_service:
        persistence_service.init_db()
    setup_database_logging(db_path)


def create_facade(db_path: str = ADDRESS_DB_PATH) -> AddressImportFacade:
    """
    Initializes and returns the AddressImportFacade with all its dependencies.
    """
    persistence_service = PersistenceService(db_path)
    correction_service = CorrectionService(persistence_service)
    import_service = ImportService(
        persistence_service=persistence_service,
        registry_service=RegistryService(),
        duplicate_service=DuplicateService(),
        reconciliation_service=ReconciliationService(),
        correction_service=correction_service,
    )

    facade = AddressImportFacade(
        persistence_service=persistence_service,
        import_service=import_service,
        correction_service=correction_service,
    )
    return facade
