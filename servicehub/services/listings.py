"""
List loaders shared by the client, provider and dashboard routes.

Each loader reads a full, unpaginated list newest first and resolves display
names with one batched user lookup.
"""

from typing import List

from servicehub.db.firebase_ops import FirestoreBaseModel, OFFERS, REQUESTS
from servicehub.models.schemas import Offer, ProviderOfferView, ServiceRequest

UNKNOWN_NAME = "Unknown"
UNKNOWN_REQUEST = "Unknown Request"


def load_client_requests(firestore_ops: FirestoreBaseModel, user_id: str) -> List[ServiceRequest]:
    rows = firestore_ops.query(REQUESTS, [("user_id", "==", user_id)])
    return [ServiceRequest(**row) for row in rows]


def load_request_offers(firestore_ops: FirestoreBaseModel, request_id: str) -> List[Offer]:
    rows = firestore_ops.query(OFFERS, [("request_id", "==", request_id)])
    if not rows:
        return []
    names = firestore_ops.fetch_display_names([row["provider_id"] for row in rows])
    return [Offer(**{**row, "provider_name": names.get(row["provider_id"]) or UNKNOWN_NAME}) for row in rows]


def load_open_requests(firestore_ops: FirestoreBaseModel) -> List[ServiceRequest]:
    rows = firestore_ops.query(REQUESTS, [("status", "==", "open")])
    if not rows:
        return []
    names = firestore_ops.fetch_display_names([row["user_id"] for row in rows])
    return [ServiceRequest(**{**row, "client_name": names.get(row["user_id"]) or UNKNOWN_NAME}) for row in rows]


def load_provider_offers(
    firestore_ops: FirestoreBaseModel,
    provider_id: str,
    open_requests: List[ServiceRequest],
) -> List[ProviderOfferView]:
    """
    Own offers joined to their request. Only ``open_requests`` is searched,
    so offers on closed or awarded requests show ``UNKNOWN_REQUEST``.
    """
    service_types = {request.id: request.service_type for request in open_requests}
    rows = firestore_ops.query(OFFERS, [("provider_id", "==", provider_id)])
    return [
        ProviderOfferView(**row, request_service_type=service_types.get(row["request_id"], UNKNOWN_REQUEST))
        for row in rows
    ]
