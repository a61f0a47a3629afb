from __future__ import annotations

import pytest

from drink_tally.errors import StoreWriteError
from drink_tally.store import DocumentStore, user_collection_path

COL = user_collection_path("test-app")


def test_collection_path() -> None:
    assert user_collection_path("abc") == "artifacts/abc/public/data/drinkingGameUsers"


def test_set_get_and_update_merge(tmp_path) -> None:
    store = DocumentStore(tmp_path / "store.db")
    assert store.get(COL, "u1").exists is False

    store.set(COL, "u1", {"userId": "u1", "drinks": 1, "displayName": "A"})
    store.update(COL, "u1", {"drinks": 2})
    snap = store.get(COL, "u1")
    assert snap.data == {"userId": "u1", "drinks": 2, "displayName": "A"}


def test_update_missing_document_fails(tmp_path) -> None:
    store = DocumentStore(tmp_path / "store.db")
    with pytest.raises(StoreWriteError):
        store.update(COL, "ghost", {"drinks": 1})


def test_collections_are_isolated(tmp_path) -> None:
    store = DocumentStore(tmp_path / "store.db")
    store.set(COL, "u1", {"drinks": 1})
    store.set(user_collection_path("other"), "u2", {"drinks": 1})
    assert [d.doc_id for d in store.list_documents(COL).documents] == ["u1"]


def test_reopen_keeps_documents(tmp_path) -> None:
    DocumentStore(tmp_path / "store.db").set(COL, "u1", {"drinks": 3})
    assert DocumentStore(tmp_path / "store.db").get(COL, "u1").data == {"drinks": 3}


def test_document_subscription_gets_initial_and_changes(tmp_path) -> None:
    store = DocumentStore(tmp_path / "store.db")
    seen: list = []
    sub = store.subscribe_document(COL, "u1", lambda snap: seen.append(snap.data))
    assert seen == [None]

    store.set(COL, "u1", {"drinks": 1})
    store.set(COL, "u2", {"drinks": 9})
    store.update(COL, "u1", {"drinks": 2})
    assert seen == [None, {"drinks": 1}, {"drinks": 2}]

    sub.cancel()
    store.update(COL, "u1", {"drinks": 3})
    assert len(seen) == 3
    assert sub.active is False


def test_collection_subscription_sees_every_document(tmp_path) -> None:
    store = DocumentStore(tmp_path / "store.db")
    counts: list[int] = []
    store.subscribe_collection(COL, lambda snap: counts.append(len(snap.documents)))
    store.set(COL, "u1", {"drinks": 1})
    store.set(COL, "u2", {"drinks": 1})
    store.update(COL, "u1", {"drinks": 5})
    assert counts == [0, 1, 2, 2]


def test_failing_subscriber_does_not_block_others(tmp_path) -> None:
    store = DocumentStore(tmp_path / "store.db")
    errors: list[Exception] = []
    seen: list = []

    def broken(snap) -> None:
        if snap.exists:
            raise RuntimeError("boom")

    store.subscribe_document(COL, "u1", broken, errors.append)
    store.subscribe_collection(COL, lambda snap: seen.append(len(snap.documents)))
    store.set(COL, "u1", {"drinks": 1})

    assert len(errors) == 1
    assert isinstance(errors[0], RuntimeError)
    assert seen == [0, 1]


def test_write_from_callback_is_delivered_after_current_snapshot(tmp_path) -> None:
    store = DocumentStore(tmp_path / "store.db")
    seen: list = []

    def on_snap(snap) -> None:
        seen.append(snap.data)
        if not snap.exists:
            store.set(COL, "u1", {"drinks": 0})

    store.subscribe_document(COL, "u1", on_snap)
    assert seen == [None, {"drinks": 0}]
