import logging
import math
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, status

from servicehub.core.dependencies import require_provider
from servicehub.core.errors import StoreError
from servicehub.core.notifications import NotificationCenter, action_failed, get_notification_center
from servicehub.db.firebase_ops import FirestoreBaseModel, OFFERS, REQUESTS, get_firestore_ops_instance
from servicehub.models.schemas import (
    Notification,
    Offer,
    OfferCreate,
    OfferStatusUpdate,
    OfferSubmittedResponse,
    ProviderOffersResponse,
    ProviderRequestsResponse,
    UserProfile,
)
from servicehub.services.listings import load_open_requests, load_provider_offers
from servicehub.services.offer_filters import provider_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/provider", tags=["Provider"])


class OfferFormError(ValueError):
    pass


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_offer_form(offer_in: OfferCreate) -> Tuple[float, int, str]:
    """Validate an offer form in the order the fields are checked on screen."""
    if _blank(offer_in.price) or _blank(offer_in.delivery_time) or not offer_in.message.strip():
        raise OfferFormError("Please fill in all fields")

    try:
        price = float(offer_in.price)
    except (TypeError, ValueError):
        price = math.nan
    if not math.isfinite(price) or price <= 0:
        raise OfferFormError("Please enter a valid price")

    try:
        delivery_time = int(str(offer_in.delivery_time).strip())
    except (TypeError, ValueError):
        delivery_time = 0
    if delivery_time < 1:
        raise OfferFormError("Please enter a valid delivery time (at least 1 day)")

    return price, delivery_time, offer_in.message.strip()


def _offers_response(
    firestore_ops: FirestoreBaseModel,
    profile: UserProfile,
    notification: Optional[Notification] = None,
) -> ProviderOffersResponse:
    try:
        open_requests = load_open_requests(firestore_ops)
        offers = load_provider_offers(firestore_ops, profile.id, open_requests)
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    return ProviderOffersResponse(
        offers=offers,
        stats=provider_stats(open_requests, offers),
        notification=notification,
    )


@router.get("/requests", response_model=ProviderRequestsResponse)
def list_open_requests(
    profile: UserProfile = Depends(require_provider),
    firestore_ops: FirestoreBaseModel = Depends(get_firestore_ops_instance),
):
    try:
        return ProviderRequestsResponse(requests=load_open_requests(firestore_ops))
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)


@router.post("/requests/{request_id}/offers", response_model=OfferSubmittedResponse, status_code=status.HTTP_201_CREATED)
def submit_offer(
    request_id: str,
    offer_in: OfferCreate,
    profile: UserProfile = Depends(require_provider),
    firestore_ops: FirestoreBaseModel = Depends(get_firestore_ops_instance),
    notifications: NotificationCenter = Depends(get_notification_center),
):
    try:
        price, delivery_time, message = parse_offer_form(offer_in)
    except OfferFormError as e:
        raise action_failed(notifications, profile.id, str(e), status.HTTP_400_BAD_REQUEST)

    try:
        target_request = firestore_ops.get(REQUESTS, request_id)
    except StoreError as e:
        raise action_failed(notifications, profile.id, e.message or "Failed to submit offer")
    if not target_request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")
    if target_request.get("status") != "open":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request is not open for offers.")

    offer_data = {
        "request_id": request_id,
        "provider_id": profile.id,
        "price": price,
        "delivery_time": delivery_time,
        "message": message,
        "status": "pending",
    }
    try:
        offer_id = firestore_ops.insert(OFFERS, offer_data)
    except StoreError as e:
        raise action_failed(notifications, profile.id, e.message or "Failed to submit offer")

    logger.info("Provider %s submitted offer %s on request %s", profile.id, offer_id, request_id)
    notification = notifications.push(profile.id, "Offer submitted successfully!", "success")
    try:
        open_requests = load_open_requests(firestore_ops)
        offers = load_provider_offers(firestore_ops, profile.id, open_requests)
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    return OfferSubmittedResponse(
        offer=Offer(id=offer_id, **offer_data),
        offers=offers,
        requests=open_requests,
        selected_request_id=None,
        notification=notification,
    )


@router.get("/offers", response_model=ProviderOffersResponse)
def list_my_offers(
    profile: UserProfile = Depends(require_provider),
    firestore_ops: FirestoreBaseModel = Depends(get_firestore_ops_instance),
):
    return _offers_response(firestore_ops, profile)


@router.patch("/offers/{offer_id}/status", response_model=ProviderOffersResponse)
def update_offer_status(
    offer_id: str,
    update_in: OfferStatusUpdate,
    profile: UserProfile = Depends(require_provider),
    firestore_ops: FirestoreBaseModel = Depends(get_firestore_ops_instance),
    notifications: NotificationCenter = Depends(get_notification_center),
):
    try:
        target_offer = firestore_ops.get(OFFERS, offer_id)
    except StoreError as e:
        raise action_failed(notifications, profile.id, e.message or "Failed to update offer")
    if not target_offer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Offer not found")
    if target_offer.get("provider_id") != profile.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to update this offer")
    if target_offer.get("status") != "pending":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only pending offers can be updated.")

    try:
        firestore_ops.update(OFFERS, offer_id, {"status": update_in.status})
    except StoreError as e:
        raise action_failed(notifications, profile.id, e.message or "Failed to update offer")

    logger.info("Provider %s marked offer %s as %s", profile.id, offer_id, update_in.status)
    notification = notifications.push(profile.id, f"Offer marked as {update_in.status}", "success")
    return _offers_response(firestore_ops, profile, notification=notification)
