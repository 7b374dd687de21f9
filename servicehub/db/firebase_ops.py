import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import firebase_admin
from fastapi import Request
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from servicehub.core.config import Settings
from servicehub.core.errors import StoreError

logger = logging.getLogger(__name__)

USERS = "users"
REQUESTS = "requests"
OFFERS = "offers"

Filter = Tuple[str, str, Any]


class DocumentExists(StoreError):
    """Raised by ``insert`` when a document with the given id is already stored."""


class FirebaseManager:
    """
    Owns the Firebase app and the Firestore client for one application instance.

    Built once at startup from ``Settings`` and kept on ``app.state``; route
    handlers receive the facade through ``get_firestore_ops_instance``.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.app = self._initialize_app()
        self.db = firestore.client(self.app)
        logger.info("Firestore client initialized for project %s", settings.firebase_project_id)

    def _initialize_app(self) -> firebase_admin.App:
        try:
            app = firebase_admin.get_app()
            logger.info("Using existing Firebase app")
            return app
        except ValueError:
            pass # App doesn't exist, so we need to initialize it

        if self.settings.firebase_credentials:
            cred = credentials.Certificate(self.settings.firebase_credentials)
            logger.info("Initializing Firebase with service account key from %s", self.settings.firebase_credentials)
        else:
            cred = credentials.ApplicationDefault()
            logger.info("Initializing Firebase with application default credentials")
        return firebase_admin.initialize_app(cred, {"projectId": self.settings.firebase_project_id})


class FirestoreBaseModel:
    """
    Query/insert/update facade over the ``users``, ``requests`` and ``offers``
    collections. Every store failure is logged and re-raised as ``StoreError``.
    """

    def __init__(self, db):
        self.db = db

    def _fail(self, action: str, collection_name: str, exc: Exception) -> StoreError:
        logger.error("Error %s Firestore collection '%s': %s", action, collection_name, exc)
        message = getattr(exc, "message", None) or str(exc) or f"Could not reach the {collection_name} store"
        return StoreError(message)

    @staticmethod
    def _to_record(doc) -> Dict[str, Any]:
        return {"id": doc.id, **doc.to_dict()}

    def get(self, collection_name: str, document_id: str) -> Optional[Dict[str, Any]]:
        """Get one document by id, or ``None`` when it does not exist."""
        try:
            doc = self.db.collection(collection_name).document(document_id).get()
        except google_exceptions.GoogleAPIError as e:
            raise self._fail("reading", collection_name, e) from e
        if not doc.exists:
            return None
        return self._to_record(doc)

    def query(
        self,
        collection_name: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = "created_at",
        descending: bool = True,
    ) -> List[Dict[str, Any]]:
        """Select documents matching every ``(field, operator, value)`` filter."""
        query_ref = self.db.collection(collection_name)
        for field, operator, value in filters:
            query_ref = query_ref.where(filter=FieldFilter(field, operator, value))
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query_ref = query_ref.order_by(order_by, direction=direction)
        try:
            return [self._to_record(doc) for doc in query_ref.stream()]
        except google_exceptions.GoogleAPIError as e:
            raise self._fail("querying", collection_name, e) from e

    def get_many(self, collection_name: str, document_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Fetch several documents by id in one batched read. Missing ids are skipped."""
        distinct = list(dict.fromkeys(i for i in document_ids if i))
        if not distinct:
            return []
        collection_ref = self.db.collection(collection_name)
        refs = [collection_ref.document(document_id) for document_id in distinct]
        try:
            return [self._to_record(doc) for doc in self.db.get_all(refs) if doc.exists]
        except google_exceptions.GoogleAPIError as e:
            raise self._fail("reading", collection_name, e) from e

    def insert(self, collection_name: str, data: Dict[str, Any], document_id: Optional[str] = None) -> str:
        """Insert a document and return its id. An explicit id must not exist yet."""
        record = dict(data)
        record["created_at"] = firestore.SERVER_TIMESTAMP
        record["updated_at"] = firestore.SERVER_TIMESTAMP
        collection_ref = self.db.collection(collection_name)
        try:
            if document_id:
                collection_ref.document(document_id).create(record)
                return document_id
            _, doc_ref = collection_ref.add(record) # add() returns (update_time, DocumentReference)
            return doc_ref.id
        except google_exceptions.AlreadyExists as e:
            logger.warning("Document '%s' already exists in '%s'", document_id, collection_name)
            raise DocumentExists(f"Document {document_id} already exists") from e
        except google_exceptions.GoogleAPIError as e:
            raise self._fail("inserting into", collection_name, e) from e

    def update(self, collection_name: str, document_id: str, updates: Dict[str, Any]) -> None:
        """Update specific fields in a document."""
        updates_copy = dict(updates)
        updates_copy["updated_at"] = firestore.SERVER_TIMESTAMP
        try:
            self.db.collection(collection_name).document(document_id).update(updates_copy)
        except google_exceptions.GoogleAPIError as e:
            raise self._fail("updating", collection_name, e) from e

    def update_many(self, changes: Sequence[Tuple[str, str, Dict[str, Any]]]) -> None:
        """Apply several ``(collection, document_id, updates)`` changes in one atomic commit."""
        batch = self.db.batch()
        for collection_name, document_id, updates in changes:
            updates_copy = dict(updates)
            updates_copy["updated_at"] = firestore.SERVER_TIMESTAMP
            batch.update(self.db.collection(collection_name).document(document_id), updates_copy)
        try:
            batch.commit()
        except google_exceptions.GoogleAPIError as e:
            collections = ", ".join(sorted({c for c, _, _ in changes}))
            raise self._fail("committing batch on", collections, e) from e

    def fetch_display_names(self, user_ids: Iterable[str]) -> Dict[str, str]:
        """Map user ids to display names in one batched lookup."""
        return {user["id"]: user.get("name") for user in self.get_many(USERS, user_ids)}


def get_firestore_ops_instance(request: Request) -> FirestoreBaseModel:
    """FastAPI dependency returning the facade built at startup."""
    return request.app.state.firestore_ops
