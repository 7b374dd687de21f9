import pytest
from unittest.mock import MagicMock
from google.api_core import exceptions as google_exceptions

from servicehub.core.errors import StoreError
from servicehub.db.firebase_ops import DocumentExists, FirestoreBaseModel


def make_doc(doc_id, data, exists=True):
    doc = MagicMock()
    doc.id = doc_id
    doc.exists = exists
    doc.to_dict.return_value = dict(data)
    return doc


@pytest.fixture
def mock_db():
    return MagicMock()


@pytest.fixture
def firestore_ops(mock_db):
    return FirestoreBaseModel(mock_db)


def test_get_returns_record_with_id(firestore_ops, mock_db):
    mock_db.collection.return_value.document.return_value.get.return_value = make_doc("u1", {"name": "Jane"})

    assert firestore_ops.get("users", "u1") == {"id": "u1", "name": "Jane"}
    mock_db.collection.assert_called_with("users")

def test_get_missing_document(firestore_ops, mock_db):
    mock_db.collection.return_value.document.return_value.get.return_value = make_doc("u1", {}, exists=False)

    assert firestore_ops.get("users", "u1") is None

def test_query_applies_filters_and_newest_first_order(firestore_ops, mock_db):
    collection_ref = mock_db.collection.return_value
    filtered = collection_ref.where.return_value
    ordered = filtered.order_by.return_value
    ordered.stream.return_value = [make_doc("r2", {"status": "open"}), make_doc("r1", {"status": "open"})]

    rows = firestore_ops.query("requests", [("status", "==", "open")])

    assert [r["id"] for r in rows] == ["r2", "r1"]
    field_filter = collection_ref.where.call_args.kwargs["filter"]
    assert (field_filter.field_path, field_filter.op_string, field_filter.value) == ("status", "==", "open")
    order_args = filtered.order_by.call_args
    assert order_args.args == ("created_at",)
    assert order_args.kwargs["direction"] == "DESCENDING"

def test_query_failure_becomes_store_error(firestore_ops, mock_db):
    mock_db.collection.return_value.order_by.return_value.stream.side_effect = google_exceptions.ServiceUnavailable("store down")

    with pytest.raises(StoreError) as exc_info:
        firestore_ops.query("offers")
    assert exc_info.value.message == "store down"

def test_insert_with_document_id_uses_create(firestore_ops, mock_db):
    doc_ref = mock_db.collection.return_value.document.return_value

    assert firestore_ops.insert("users", {"name": "Jane", "role": "client"}, document_id="u1") == "u1"
    record = doc_ref.create.call_args.args[0]
    assert record["name"] == "Jane"
    assert "created_at" in record and "updated_at" in record

def test_insert_existing_document_raises_document_exists(firestore_ops, mock_db):
    mock_db.collection.return_value.document.return_value.create.side_effect = google_exceptions.AlreadyExists("exists")

    with pytest.raises(DocumentExists):
        firestore_ops.insert("users", {"name": "Jane"}, document_id="u1")

def test_insert_without_id_returns_generated_id(firestore_ops, mock_db):
    new_ref = MagicMock()
    new_ref.id = "generated"
    mock_db.collection.return_value.add.return_value = (None, new_ref)

    assert firestore_ops.insert("requests", {"status": "open"}) == "generated"

def test_update_many_commits_one_batch(firestore_ops, mock_db):
    batch = mock_db.batch.return_value

    firestore_ops.update_many([
        ("requests", "r1", {"status": "awarded"}),
        ("offers", "o1", {"status": "accepted"}),
    ])

    assert batch.update.call_count == 2
    batch.commit.assert_called_once()

def test_update_many_failure_writes_nothing_else(firestore_ops, mock_db):
    mock_db.batch.return_value.commit.side_effect = google_exceptions.Aborted("contention")

    with pytest.raises(StoreError):
        firestore_ops.update_many([("requests", "r1", {"status": "awarded"})])
    mock_db.collection.return_value.document.return_value.update.assert_not_called()

def test_fetch_display_names_batches_distinct_ids(firestore_ops, mock_db):
    mock_db.get_all.return_value = [
        make_doc("p1", {"name": "Alpha"}),
        make_doc("p2", {}, exists=False),
    ]

    names = firestore_ops.fetch_display_names(["p1", "p2", "p1"])

    assert names == {"p1": "Alpha"}
    mock_db.get_all.assert_called_once()
    assert len(mock_db.get_all.call_args.args[0]) == 2

def test_fetch_display_names_with_no_ids_skips_the_store(firestore_ops, mock_db):
    assert firestore_ops.fetch_display_names([]) == {}
    mock_db.get_all.assert_not_called()
