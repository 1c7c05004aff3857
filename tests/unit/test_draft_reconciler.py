"""
Unit tests for draft reconciliation.

- Find-or-create by (Name, Status=Draft)
- Default templates and Description padding
- Industry guessing against live options
- Store failures surface as DraftCreationError
"""

from __future__ import annotations

import pytest

from core.draft_reconciler import (
    DraftCreationError,
    build_draft_fields,
    default_description,
    reconcile_draft,
)


def test_reconcile_creates_draft_with_title_cased_name(gateway, store):
    logs: list[str] = []
    record_id = reconcile_draft(gateway, "acme corp", {}, logs)
    fields = store.fields_of(record_id)
    assert fields["Name"] == "Acme Corp"
    assert fields["Client Company Name"] == "Acme Corp"
    assert fields["Status"] == "Draft"
    assert any("Account created successfully" in entry for entry in logs)


def test_reconcile_is_idempotent_per_name(gateway, store):
    first = reconcile_draft(gateway, "acme corp", {})
    second = reconcile_draft(gateway, "ACME CORP", {})
    assert first == second
    assert len(store.tables["Accounts"]) == 1


def test_reconcile_ignores_non_draft_with_same_name(gateway, store):
    store.add({"Name": "Acme Corp", "Status": "Active"})
    record_id = reconcile_draft(gateway, "acme corp", {})
    assert store.fields_of(record_id)["Status"] == "Draft"
    assert len(store.tables["Accounts"]) == 2


def test_reconcile_fills_every_default(gateway, store):
    record_id = reconcile_draft(gateway, "acme corp", {})
    fields = store.fields_of(record_id)
    for key in (
        "Description", "About the Client", "Primary Objective",
        "Talking Points", "Contact Information", "Priority Image", "Industry",
    ):
        assert fields[key]
    assert fields["Industry"] == "General"
    assert "Acme Corp" in fields["Primary Objective"]


def test_generated_description_is_padded(gateway, store):
    record_id = reconcile_draft(gateway, "a", {})
    description = store.fields_of(record_id)["Description"]
    assert len(description) >= 600
    assert description.endswith(".")


@pytest.mark.parametrize("name", ["a", "acme corp", "x" * 700])
def test_default_description_minimum_length(name):
    assert len(default_description(name, "General")) >= 600


def test_supplied_description_is_kept_verbatim():
    fields = build_draft_fields("Acme", {"Description": "Bakery chain."}, [])
    assert fields["Description"] == "Bakery chain."
    assert "bakery chain" in fields["About the Client"]


def test_industry_guessed_from_description(gateway, store):
    store.add({"Name": "Other", "Status": "Active", "Industry": "Food & Beverage"})
    store.add({"Name": "Tech Co", "Status": "Active", "Industry": "Technology"})
    record_id = reconcile_draft(gateway, "acme", {"Description": "A technology firm making apps"})
    assert store.fields_of(record_id)["Industry"] == "Technology"


def test_supplied_industry_is_not_overwritten():
    fields = build_draft_fields("Acme", {"Industry": "Retail"}, ["Technology"])
    assert fields["Industry"] == "Retail"


def test_create_failure_raises_draft_creation_error(gateway, store):
    store.fail_on.add("create")
    logs: list[str] = []
    with pytest.raises(DraftCreationError):
        reconcile_draft(gateway, "acme", {}, logs)
    assert any("Error during account creation" in entry for entry in logs)


def test_lookup_failure_raises_draft_creation_error(gateway, store):
    store.fail_on.add("select")
    with pytest.raises(DraftCreationError):
        reconcile_draft(gateway, "acme", {})


def test_blank_name_is_rejected(gateway):
    with pytest.raises(DraftCreationError):
        reconcile_draft(gateway, "   ", {})
