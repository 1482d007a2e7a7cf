"""
Unit tests for the ReconciliationService.
"""
from registry_import.models import CanonicalEntry, PersistedAddress, SourceKind
from registry_import.services.reconciliation_service import ReconciliationService


def make_entry(owner="ACME", source_kind=SourceKind.COMMERCIAL, street="Rynek"):
    return CanonicalEntry(
        street=street,
        number="1",
        city="Pleszew",
        postal_code="63-300",
        notes="",
        waste_types=("mixed",),
        declared_containers=(),
        source_kind=source_kind,
        owner_label=owner,
        owner_spellings=(owner,) if owner else (),
    )


def make_address(address_id=1, street="Rynek", **kwargs):
    return PersistedAddress(
        id=address_id, street=street, number="1", city="Pleszew", postal_code="63-300", **kwargs
    )


def test_empty_store_creates_everything():
    entries = [make_entry(), make_entry(source_kind=SourceKind.RESIDENTIAL, owner=None)]
    result = ReconciliationService().reconcile(entries, [])

    assert result.to_create == tuple(entries)
    assert result.skipped_existing == 0


def test_existing_entries_are_skipped():
    entries = [make_entry("ACME"), make_entry("Firma B")]
    stored = [make_address(owners=["acme"], source_kind=SourceKind.COMMERCIAL)]

    result = ReconciliationService().reconcile(entries, stored)

    assert [e.owner_label for e in result.to_create] == ["Firma B"]
    assert result.skipped_existing == 1


def test_residential_does_not_collide_with_company():
    entries = [make_entry(source_kind=SourceKind.RESIDENTIAL, owner=None)]
    stored = [make_address(owners=["ACME"], source_kind=SourceKind.COMMERCIAL)]

    result = ReconciliationService().reconcile(entries, stored)

    assert len(result.to_create) == 1


def test_legacy_notes_are_recognized():
    entries = [make_entry("ACME"), make_entry(source_kind=SourceKind.RESIDENTIAL, owner=None)]
    stored = [
        make_address(1, notes="Type: Commercial\nOwner: ACME"),
        make_address(2, notes="Type: Residential"),
    ]

    result = ReconciliationService().reconcile(entries, stored)

    assert result.to_create == ()
    assert result.skipped_existing == 2


def test_existing_keys_covers_every_owner():
    stored = [make_address(owners=["ACME", "Firma B"], source_kind=SourceKind.COMMERCIAL)]
    keys = ReconciliationService().existing_keys(stored)
    assert len(keys) == 2
