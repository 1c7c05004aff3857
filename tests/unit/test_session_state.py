"""
Unit tests for session state.

- SessionContext pointer / progress transitions
- SessionStore copies, isolation and disk write-through
"""

from __future__ import annotations

from models.session_state import (
    SessionContext,
    SessionStore,
    get_session_path,
    load_session,
    save_session,
)


def test_activate_for_creation_starts_at_links_stage():
    ctx = SessionContext()
    ctx.name_prompt_attempts = 1
    ctx.activate("rec1", "Acme", start_creation=True)
    assert ctx.active_record_id == "rec1"
    assert ctx.creation_progress == 0
    assert ctx.in_creation_flow
    assert ctx.name_prompt_attempts == 0


def test_activate_without_creation_clears_progress():
    ctx = SessionContext()
    ctx.activate("rec1", "Acme", start_creation=True)
    ctx.activate("rec2", "Beta")
    assert ctx.active_record_id == "rec2"
    assert ctx.creation_progress is None
    assert not ctx.in_creation_flow


def test_clear_active():
    ctx = SessionContext()
    ctx.activate("rec1", "Acme", start_creation=True)
    ctx.clear_active()
    assert ctx.active_record_id is None
    assert ctx.active_record_name is None
    assert ctx.creation_progress is None


def test_store_returns_new_context_for_unknown_id():
    store = SessionStore()
    ctx = store.get("abc")
    assert ctx.session_id == "abc"
    assert ctx.active_record_id is None
    assert store.get(None).session_id


def test_store_hands_out_copies():
    store = SessionStore()
    ctx = SessionContext(session_id="s1")
    ctx.activate("rec1", "Acme")
    store.save(ctx)

    copy = store.get("s1")
    copy.activate("rec2", "Beta")
    assert store.get("s1").active_record_id == "rec1"


def test_sessions_are_isolated():
    store = SessionStore()
    a = SessionContext(session_id="a")
    a.activate("recA", "A")
    b = SessionContext(session_id="b")
    b.activate("recB", "B", start_creation=True)
    store.save(a)
    store.save(b)
    assert store.get("a").active_record_id == "recA"
    assert store.get("b").creation_progress == 0
    assert len(store) == 2
    store.drop("a")
    assert len(store) == 1


def test_disk_write_through(tmp_path):
    store = SessionStore(base_dir=tmp_path)
    ctx = SessionContext(session_id="persisted")
    ctx.activate("rec9", "Acme", start_creation=True)
    store.save(ctx)

    reloaded = SessionStore(base_dir=tmp_path).get("persisted")
    assert reloaded.active_record_id == "rec9"
    assert reloaded.creation_progress == 0


def test_session_path_is_sanitized(tmp_path):
    path = get_session_path("../../etc/passwd", tmp_path)
    assert path.parent == tmp_path
    assert "/" not in path.name


def test_load_session_missing_or_corrupt(tmp_path):
    assert load_session("nope", tmp_path) is None
    get_session_path("bad", tmp_path).write_text("{not json", encoding="utf-8")
    assert load_session("bad", tmp_path) is None


def test_save_session_roundtrip(tmp_path):
    ctx = SessionContext(session_id="rt", name_prompt_attempts=1)
    assert save_session(ctx, tmp_path)
    assert load_session("rt", tmp_path).name_prompt_attempts == 1
