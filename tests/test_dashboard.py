"""
Unit tests for the Flask Dashboard.
"""
import io
from unittest.mock import MagicMock

import pytest

from dashboard.app import app
from registry_import.exceptions import (
    DecodeError,
    ImportInProgressError,
    NotFoundError,
    ValidationError,
)
from registry_import.models import (
    DuplicateDetail,
    DuplicateReport,
    ImportSummary,
    InvalidRow,
    PersistedAddress,
    SourceKind,
)

INVALID_ROW = InvalidRow(
    id="commercial-2-abcd1234",
    source_kind=SourceKind.COMMERCIAL,
    row_number=2,
    raw_address="Kościelna 5",
    reason="missing street or city",
    street="Kościelna",
    number="5",
    owner="Jan Kowalski",
    waste_types=("paper",),
)

SAMPLE_DATA = {
    "address_count": 42,
    "last_import": {"finished_at": "2024-05-01T10:00:00", "created": 7, "skipped_existing": 3},
    "pending_corrections": 1,
    "invalid_rows": [INVALID_ROW],
    "logs": [{"timestamp": "2024-05-01 10:00:00", "level": "INFO", "message": "Test log"}],
}

EMPTY_DATA = {
    "address_count": 0,
    "last_import": None,
    "pending_corrections": 0,
    "invalid_rows": [],
    "logs": [],
}


@pytest.fixture
def facade():
    mock_facade = MagicMock()
    app.config["FACADE"] = mock_facade
    yield mock_facade
    app.config.pop("FACADE", None)


@pytest.fixture
def client(facade):
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def test_dashboard_displays_data(client, facade):
    facade.get_dashboard_data.return_value = SAMPLE_DATA

    response = client.get("/")

    assert response.status_code == 200
    assert b"42" in response.data
    assert b"7 created" in response.data
    assert b"missing street or city" in response.data
    assert b"/invalid/commercial-2-abcd1234" in response.data
    assert b"Test log" in response.data


def test_dashboard_handles_empty_data(client, facade):
    facade.get_dashboard_data.return_value = EMPTY_DATA

    response = client.get("/")

    assert response.status_code == 200
    assert b"No imports yet." in response.data
    assert b"No invalid rows." in response.data
    assert b"No logs found." in response.data


def test_dashboard_handles_error(client, facade):
    facade.get_dashboard_data.return_value = dict(EMPTY_DATA, error="Database connection failed.")

    response = client.get("/")

    assert response.status_code == 200
    assert b"Database connection failed." in response.data


def test_import_renders_summary(client, facade):
    facade.import_registries.return_value = ImportSummary(
        total_rows_seen=3,
        unique_entries=2,
        created=2,
        skipped_existing=0,
        duplicates=(
            DuplicateReport(
                location_key="rynek|1|pleszew|63-300",
                display_label="63-300 Pleszew, Rynek 1",
                total_occurrences=2,
                source_kinds=(SourceKind.COMMERCIAL,),
                details=(
                    DuplicateDetail(SourceKind.COMMERCIAL, "ACME", 1),
                    DuplicateDetail(SourceKind.COMMERCIAL, "Acme Logistics", 1),
                ),
            ),
        ),
    )

    response = client.post(
        "/import",
        data={"commercial": (io.BytesIO(b"Lp;Adres"), "commercial.csv")},
        content_type="multipart/form-data",
    )

    assert response.status_code == 200
    assert b"63-300 Pleszew, Rynek 1" in response.data
    assert b"Acme Logistics" in response.data
    assert b"No invalid rows." in response.data
    facade.import_registries.assert_called_once_with(
        commercial_data=b"Lp;Adres", residential_data=None
    )


def test_import_without_files_flashes_error(client, facade):
    facade.import_registries.side_effect = ValueError("Select at least one registry file to import.")
    facade.get_dashboard_data.return_value = EMPTY_DATA

    response = client.post("/import", data={}, follow_redirects=True)

    assert response.status_code == 200
    assert b"Select at least one registry file" in response.data


@pytest.mark.parametrize(
    "error", [DecodeError("unreadable"), ImportInProgressError("already running")]
)
def test_import_errors_redirect(client, facade, error):
    facade.import_registries.side_effect = error

    response = client.post("/import", data={})

    assert response.status_code == 302


def test_correction_form_prefilled(client, facade):
    facade.get_invalid_row.return_value = INVALID_ROW
    facade.suggest_matches.return_value = [{"id": 1, "label": "Pleszew, Kościelna 5", "score": 95}]

    response = client.get(f"/invalid/{INVALID_ROW.id}")

    assert response.status_code == 200
    assert 'value="Kościelna"'.encode() in response.data
    assert "Pleszew, Kościelna 5 (95%)".encode() in response.data


def test_correction_unknown_row(client, facade):
    facade.get_invalid_row.side_effect = NotFoundError("gone")

    response = client.get("/invalid/missing")

    assert response.status_code == 404


def test_correction_submit_success(client, facade):
    facade.get_invalid_row.return_value = INVALID_ROW
    facade.fix_invalid_row.return_value = PersistedAddress(
        id=1, street="Kościelna", number="5", city="Pleszew"
    )

    response = client.post(
        f"/invalid/{INVALID_ROW.id}",
        data={
            "street": "Kościelna",
            "number": "5",
            "city": "Pleszew",
            "postal_code": "63-300",
            "notes": "",
            "waste_types": ["paper", "plastic"],
            "active": "on",
        },
    )

    assert response.status_code == 302
    row_id, fields = facade.fix_invalid_row.call_args[0]
    assert row_id == INVALID_ROW.id
    assert fields["waste_types"] == ["paper", "plastic"]
    assert fields["active"] is True


def test_correction_submit_validation_error(client, facade):
    facade.get_invalid_row.return_value = INVALID_ROW
    facade.fix_invalid_row.side_effect = ValidationError("Street and city are required.")
    facade.suggest_matches.return_value = []

    response = client.post(f"/invalid/{INVALID_ROW.id}", data={"street": "Kościelna"})

    assert response.status_code == 400
    assert b"Street and city are required." in response.data


def test_clear_addresses(client, facade):
    facade.clear_addresses.return_value = 5
    facade.get_dashboard_data.return_value = EMPTY_DATA

    response = client.post("/addresses/clear", follow_redirects=True)

    assert response.status_code == 200
    assert b"Removed 5 addresses." in response.data
