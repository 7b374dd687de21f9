import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from servicehub.core.dependencies import require_client
from servicehub.core.errors import StoreError
from servicehub.core.notifications import NotificationCenter, action_failed, get_notification_center
from servicehub.db.firebase_ops import FirestoreBaseModel, OFFERS, REQUESTS, get_firestore_ops_instance
from servicehub.models.schemas import (
    AwardRequest,
    AwardResponse,
    ClientRequestsResponse,
    DeliverySort,
    Notification,
    OfferListResponse,
    PriceSort,
    ServiceRequestCreate,
    UserProfile,
)
from servicehub.services.listings import UNKNOWN_NAME, load_client_requests, load_request_offers
from servicehub.services.offer_filters import client_stats, filter_and_sort, offer_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/client", tags=["Client"])


def _requests_response(
    firestore_ops: FirestoreBaseModel,
    profile: UserProfile,
    selected: Optional[str] = None,
    notification: Optional[Notification] = None,
) -> ClientRequestsResponse:
    try:
        requests = load_client_requests(firestore_ops, profile.id)
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    return ClientRequestsResponse(
        requests=requests,
        stats=client_stats(requests),
        selected_request_id=selected,
        notification=notification,
    )


def _get_owned_request(firestore_ops: FirestoreBaseModel, request_id: str, profile: UserProfile) -> Dict[str, Any]:
    try:
        target_request = firestore_ops.get(REQUESTS, request_id)
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    if not target_request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")
    if target_request.get("user_id") != profile.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to manage this request")
    return target_request


@router.get("/requests", response_model=ClientRequestsResponse)
def list_my_requests(
    selected: Optional[str] = None,
    profile: UserProfile = Depends(require_client),
    firestore_ops: FirestoreBaseModel = Depends(get_firestore_ops_instance),
):
    return _requests_response(firestore_ops, profile, selected=selected)


@router.post("/requests", response_model=ClientRequestsResponse, status_code=status.HTTP_201_CREATED)
def create_request(
    request_in: ServiceRequestCreate,
    profile: UserProfile = Depends(require_client),
    firestore_ops: FirestoreBaseModel = Depends(get_firestore_ops_instance),
    notifications: NotificationCenter = Depends(get_notification_center),
):
    service_type = request_in.service_type.strip()
    description = request_in.description.strip()
    if not service_type or not description:
        raise action_failed(notifications, profile.id, "Please fill in all fields", status.HTTP_400_BAD_REQUEST)

    try:
        request_id = firestore_ops.insert(
            REQUESTS,
            {"user_id": profile.id, "service_type": service_type, "description": description, "status": "open"},
        )
    except StoreError as e:
        raise action_failed(notifications, profile.id, e.message or "Failed to create request")

    logger.info("Client %s created request %s", profile.id, request_id)
    notification = notifications.push(profile.id, "Service request created successfully!", "success")
    return _requests_response(firestore_ops, profile, notification=notification)


@router.post("/requests/{request_id}/close", response_model=ClientRequestsResponse)
def close_request(
    request_id: str,
    confirm: bool = False,
    selected: Optional[str] = None,
    profile: UserProfile = Depends(require_client),
    firestore_ops: FirestoreBaseModel = Depends(get_firestore_ops_instance),
    notifications: NotificationCenter = Depends(get_notification_center),
):
    if not confirm:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Confirmation required to close this request")

    target_request = _get_owned_request(firestore_ops, request_id, profile)
    if target_request.get("status") != "open":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only open requests can be closed.")

    try:
        firestore_ops.update(REQUESTS, request_id, {"status": "closed"})
    except StoreError as e:
        raise action_failed(notifications, profile.id, e.message or "Failed to close request")

    logger.info("Client %s closed request %s", profile.id, request_id)
    notification = notifications.push(profile.id, "Request closed successfully", "success")
    # Closing the selected request deselects it.
    new_selection = None if selected == request_id else selected
    return _requests_response(firestore_ops, profile, selected=new_selection, notification=notification)


@router.get("/requests/{request_id}/offers", response_model=OfferListResponse)
def list_request_offers(
    request_id: str,
    provider: str = "",
    price_sort: PriceSort = "none",
    delivery_sort: DeliverySort = "none",
    profile: UserProfile = Depends(require_client),
    firestore_ops: FirestoreBaseModel = Depends(get_firestore_ops_instance),
):
    _get_owned_request(firestore_ops, request_id, profile)
    try:
        offers = load_request_offers(firestore_ops, request_id)
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    return OfferListResponse(
        request_id=request_id,
        offers=filter_and_sort(offers, provider, price_sort, delivery_sort),
        stats=offer_stats(offers),
    )


@router.post("/requests/{request_id}/award", response_model=AwardResponse)
def award_request(
    request_id: str,
    award_in: AwardRequest,
    profile: UserProfile = Depends(require_client),
    firestore_ops: FirestoreBaseModel = Depends(get_firestore_ops_instance),
    notifications: NotificationCenter = Depends(get_notification_center),
):
    if not award_in.confirm:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Confirmation required to award this request")

    target_request = _get_owned_request(firestore_ops, request_id, profile)
    if target_request.get("status") != "open":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only open requests can be awarded.")

    try:
        target_offer = firestore_ops.get(OFFERS, award_in.offer_id)
    except StoreError as e:
        raise action_failed(notifications, profile.id, e.message or "Failed to award request")
    if not target_offer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Offer not found")
    if target_offer.get("request_id") != request_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Offer does not belong to this request.")

    # Request and offer change together or not at all.
    try:
        firestore_ops.update_many([
            (REQUESTS, request_id, {"status": "awarded"}),
            (OFFERS, award_in.offer_id, {"status": "accepted"}),
        ])
    except StoreError as e:
        raise action_failed(notifications, profile.id, e.message or "Failed to award request")

    logger.info("Client %s awarded request %s to offer %s", profile.id, request_id, award_in.offer_id)
    notification = notifications.push(profile.id, "Request awarded successfully!", "success")
    try:
        requests = load_client_requests(firestore_ops, profile.id)
        offers = load_request_offers(firestore_ops, request_id)
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    return AwardResponse(requests=requests, offers=offers, notification=notification)


@router.post("/offers/{offer_id}/contact", response_model=Notification)
def contact_provider(
    offer_id: str,
    profile: UserProfile = Depends(require_client),
    firestore_ops: FirestoreBaseModel = Depends(get_firestore_ops_instance),
    notifications: NotificationCenter = Depends(get_notification_center),
):
    # No contact channel exists yet; the client only gets an info message.
    try:
        target_offer = firestore_ops.get(OFFERS, offer_id)
        if not target_offer:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Offer not found")
        _get_owned_request(firestore_ops, target_offer["request_id"], profile)
        names = firestore_ops.fetch_display_names([target_offer["provider_id"]])
    except StoreError:
        raise action_failed(notifications, profile.id, "Unable to retrieve contact information")

    provider_name = names.get(target_offer["provider_id"]) or UNKNOWN_NAME
    return notifications.push(profile.id, f"Contact information for {provider_name} would be shown here.", "info")
