"""
Unit tests for the PersistenceService.
"""
import sqlite3

import pytest

from registry_import.models import DeclaredContainer, SourceKind
from registry_import.services.persistence_service import PersistenceService


@pytest.fixture
def temp_db(tmp_path):
    """Creates a temporary address database for testing."""
    db_path = tmp_path / "test_address_catalog.db"
    service = PersistenceService(db_path=str(db_path))
    with service as p:
        p.init_db()
    return str(db_path)


def address_fields(**kwargs):
    fields = {
        "street": "Kościelna",
        "number": "5",
        "city": "Pleszew",
        "postal_code": "63-300",
        "notes": "Type: Commercial\nOwner: Jan Kowalski",
        "waste_types": ["paper"],
        "declared_containers": [{"name": "Papier", "count": 2, "frequency": "co 2 tyg."}],
        "owners": ["Jan Kowalski"],
        "source_kind": "commercial",
    }
    fields.update(kwargs)
    return fields


def test_init_db_creates_tables(temp_db):
    """Tests that all tables are created by init_db."""
    conn = sqlite3.connect(temp_db)
    cur = conn.cursor()
    tables = [row[0] for row in cur.execute("SELECT name FROM sqlite_master WHERE type='table'")]
    columns = [row[1] for row in cur.execute("PRAGMA table_info(addresses)")]
    conn.close()
    assert "addresses" in tables
    assert "logs" in tables
    assert "system_info" in tables
    assert "owners" in columns
    assert "source_kind" in columns


def test_init_db_is_repeatable(temp_db):
    with PersistenceService(db_path=temp_db) as p:
        p.init_db()
        assert p.count_addresses() == 0


def test_create_and_list_address(temp_db):
    service = PersistenceService(db_path=temp_db)

    with service as p:
        created = p.create_address(address_fields())
        addresses = p.list_addresses()

    assert created.id is not None
    assert addresses == [created]
    assert created.street == "Kościelna"
    assert created.waste_types == ["paper"]
    assert created.declared_containers == [DeclaredContainer("Papier", 2, "co 2 tyg.")]
    assert created.owners == ["Jan Kowalski"]
    assert created.source_kind == SourceKind.COMMERCIAL
    assert created.active is True
    assert created.created_at is not None


def test_create_address_with_minimal_fields(temp_db):
    with PersistenceService(db_path=temp_db) as p:
        created = p.create_address({"street": "Rynek", "city": "Pleszew"})

    assert created.number == ""
    assert created.postal_code is None
    assert created.notes is None
    assert created.owners == []
    assert created.source_kind is None


def test_get_address_missing_returns_none(temp_db):
    with PersistenceService(db_path=temp_db) as p:
        assert p.get_address(42) is None


def test_delete_addresses(temp_db):
    service = PersistenceService(db_path=temp_db)

    with service as p:
        first = p.create_address(address_fields())
        p.create_address(address_fields(street="Polna"))
        p.delete_address(first.id)
        assert p.count_addresses() == 1
        assert p.delete_all_addresses() == 1
        assert p.count_addresses() == 0


def test_changes_are_committed_on_exit(temp_db):
    with PersistenceService(db_path=temp_db) as p:
        p.create_address(address_fields())

    with PersistenceService(db_path=temp_db) as p:
        assert p.count_addresses() == 1


def test_system_info_round_trip(temp_db):
    service = PersistenceService(db_path=temp_db)

    with service as p:
        assert p.get_system_info("last_import") is None
        p.set_system_info("last_import", "first")
        p.set_system_info("last_import", "second")
        assert p.get_system_info("last_import") == "second"


def test_get_all_logs_newest_first(temp_db):
    conn = sqlite3.connect(temp_db)
    conn.execute("INSERT INTO logs (level, message, logger_name) VALUES ('INFO', 'first', 'test')")
    conn.execute("INSERT INTO logs (level, message, logger_name) VALUES ('ERROR', 'second', 'test')")
    conn.commit()
    conn.close()

    with PersistenceService(db_path=temp_db) as p:
        logs = p.get_all_logs()

    assert [log["message"] for log in logs] == ["second", "first"]
    assert logs[0]["level"] == "ERROR"


def test_cursor_requires_context_manager(temp_db):
    with pytest.raises(RuntimeError):
        PersistenceService(db_path=temp_db).list_addresses()
