from fastapi import APIRouter, Depends, HTTPException, status

from servicehub.core.dependencies import get_current_profile
from servicehub.core.errors import StoreError
from servicehub.db.firebase_ops import FirestoreBaseModel, get_firestore_ops_instance
from servicehub.models.schemas import ClientRequestsResponse, DashboardResponse, ProviderOffersResponse, UserProfile
from servicehub.services.listings import load_client_requests, load_open_requests, load_provider_offers
from servicehub.services.offer_filters import client_stats, provider_stats

router = APIRouter(tags=["Dashboard"])


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    profile: UserProfile = Depends(get_current_profile),
    firestore_ops: FirestoreBaseModel = Depends(get_firestore_ops_instance),
):
    """Role dispatch: the content depends entirely on the caller's role."""
    try:
        if profile.role == "client":
            requests = load_client_requests(firestore_ops, profile.id)
            return DashboardResponse(
                view="client",
                profile=profile,
                client=ClientRequestsResponse(requests=requests, stats=client_stats(requests)),
            )
        if profile.role == "provider":
            open_requests = load_open_requests(firestore_ops)
            offers = load_provider_offers(firestore_ops, profile.id, open_requests)
            return DashboardResponse(
                view="provider",
                profile=profile,
                provider=ProviderOffersResponse(offers=offers, stats=provider_stats(open_requests, offers)),
                open_requests=open_requests,
            )
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    # Dead end: neither redirected nor retried.
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid user role")
