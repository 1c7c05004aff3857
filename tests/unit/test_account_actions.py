"""
Unit tests for account action execution (create / modify / delete / switch).
"""

from __future__ import annotations

import pytest

from core.account_actions import execute_action
from core.field_collector import question_for
from models.schemas import CreateAccount, DeleteAccount, ModifyAccount, SwitchRecord


@pytest.fixture
def active(store, session):
    record_id = store.add({"Name": "Acme Corp", "Status": "New", "Industry": "Technology"})
    session.activate(record_id, "Acme Corp")
    return record_id


def test_create_starts_collection_flow(gateway, store, session):
    result = execute_action(CreateAccount(fields={"Name": "beta labs"}), session, gateway)
    assert result.success
    assert session.active_record_id == result.record_id
    assert session.active_record_name == "Beta Labs"
    assert session.creation_progress == 0
    assert question_for(0) in result.message
    assert store.fields_of(result.record_id)["Status"] == "Draft"


def test_create_without_name_asks_for_one(gateway, session):
    result = execute_action(CreateAccount(fields={"Description": "Bakery"}), session, gateway)
    assert not result.success
    assert session.active_record_id is None


def test_modify_normalizes_status_and_industry(gateway, store, session, active):
    store.add({"Name": "Other", "Status": "Active", "Industry": "Healthcare"})
    logs: list[str] = []
    action = ModifyAccount(record_id=active, fields={"Status": "make it disabled", "Industry": "healthcare stuff"})
    result = execute_action(action, session, gateway, logs)
    assert result.success
    fields = store.fields_of(active)
    assert fields["Status"] == "Disabled"
    assert fields["Industry"] == "Healthcare"
    assert session.active_record_id == active


def test_modify_industry_kept_when_store_has_no_options(gateway, store, session):
    record_id = store.add({"Name": "Solo", "Status": "New"})
    session.activate(record_id, "Solo")
    execute_action(ModifyAccount(record_id=record_id, fields={"Industry": "Aerospace"}), session, gateway)
    assert store.fields_of(record_id)["Industry"] == "Aerospace"


def test_modify_rejects_other_record(gateway, store, session, active):
    other = store.add({"Name": "Other", "Status": "New"})
    logs: list[str] = []
    result = execute_action(ModifyAccount(record_id=other, fields={"Name": "Hacked"}), session, gateway, logs)
    assert not result.success
    assert other in result.message and active in result.message
    assert store.fields_of(other)["Name"] == "Other"
    assert any(entry.startswith("[GUARD]") for entry in logs)


def test_modify_requires_a_field(gateway, session, active):
    result = execute_action(ModifyAccount(record_id=active, fields={}), session, gateway)
    assert not result.success
    assert "At least one field" in result.message


def test_modify_updates_session_name(gateway, session, active):
    execute_action(ModifyAccount(record_id=active, fields={"Name": "Acme Global"}), session, gateway)
    assert session.active_record_name == "Acme Global"


def test_deleted_record_status_cannot_change(gateway, store, session):
    record_id = store.add({"Name": "Gone", "Status": "Deleted"})
    session.activate(record_id, "Gone")
    result = execute_action(ModifyAccount(record_id=record_id, fields={"Status": "active"}), session, gateway)
    assert not result.success
    assert store.fields_of(record_id)["Status"] == "Deleted"


def test_delete_marks_deleted_and_clears_pointer(gateway, store, session, active):
    result = execute_action(DeleteAccount(record_id=active), session, gateway)
    assert result.success
    assert store.fields_of(active)["Status"] == "Deleted"
    assert session.active_record_id is None
    assert session.creation_progress is None


def test_delete_without_active_record_is_rejected(gateway, store, session):
    record_id = store.add({"Name": "Acme", "Status": "New"})
    result = execute_action(DeleteAccount(record_id=record_id), session, gateway)
    assert not result.success
    assert "Record ID mismatch" in result.message
    assert store.fields_of(record_id)["Status"] == "New"


def test_switch_moves_pointer_and_clears_progress(gateway, store, session, active):
    session.creation_progress = 1
    other = store.add({"Name": "Beta", "Status": "Active"})
    result = execute_action(SwitchRecord(record_id=other), session, gateway)
    assert result.success
    assert session.active_record_id == other
    assert session.active_record_name == "Beta"
    assert session.creation_progress is None


def test_switch_to_deleted_record_is_refused(gateway, store, session, active):
    gone = store.add({"Name": "Gone", "Status": "Deleted"})
    result = execute_action(SwitchRecord(record_id=gone), session, gateway)
    assert not result.success
    assert session.active_record_id == active


def test_switch_to_unknown_record_reports_not_found(gateway, session, active):
    result = execute_action(SwitchRecord(record_id="recMissing"), session, gateway)
    assert not result.success
    assert "recMissing" in result.message
    assert session.active_record_id == active


def test_store_failure_becomes_error_message(gateway, store, session, active):
    store.fail_on.add("update")
    result = execute_action(DeleteAccount(record_id=active), session, gateway)
    assert not result.success
    assert result.message.startswith("There's a problem executing the request")
    assert session.active_record_id == active
