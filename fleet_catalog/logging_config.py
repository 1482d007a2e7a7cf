"""
This module routes application log records into the address catalog's logs table.
"""
import logging
import sqlite3
import sys
from logging import Handler, LogRecord

from registry_import.config import ADDRESS_DB_PATH, LOG_LEVEL
from registry_import.services.persistence_service import PersistenceService

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class SQLiteHandler(Handler):
    """
    A logging handler that stores records through the catalog's PersistenceService,
    so the dashboard can show them next to the import results.
    """

    def __init__(self, db_path: str = ADDRESS_DB_PATH):
        super().__init__()
        # A dedicated store instance; its connection never overlaps the services' ones
        self.persistence = PersistenceService(db_path)

    def emit(self, record: LogRecord) -> None:
        try:
            with self.persistence as p:
                p.add_log(record.levelname, self.format(record), record.name)
        except sqlite3.Error as e:
            # The logs table is gone or locked; the console handler still has the record
            print(f"CRITICAL: Could not write log to database: {e}", file=sys.stderr)


def setup_database_logging(db_path: str = ADDRESS_DB_PATH, level: int = LOG_LEVEL) -> None:
    """
    Configures the root logger to write to the catalog database and the console.

    Calling it again, e.g. with another database, replaces the handlers it
    installed before instead of stacking new ones.
    """
    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        if getattr(handler, "catalog_handler", False):
            root.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in (SQLiteHandler(db_path), logging.StreamHandler()):
        handler.catalog_handler = True
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logging.getLogger(__name__).info(f"Logging to {db_path} and the console.")
