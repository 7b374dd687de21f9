from typing import Optional, List, Literal, Union
from datetime import datetime
from pydantic import BaseModel, EmailStr

Role = Literal["client", "provider"]
RequestStatus = Literal["open", "closed", "awarded"]
OfferStatus = Literal["pending", "accepted", "rejected"]
NotificationKind = Literal["success", "error", "info"]
PriceSort = Literal["low", "high", "none"]
DeliverySort = Literal["fast", "slow", "none"]

class UserProfileBase(BaseModel):
    name: str
    role: str # 'client' or 'provider'; anything else is rejected by the dashboard gate

class UserProfile(UserProfileBase):
    id: str # Same as the Firebase Auth uid
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class ServiceRequestCreate(BaseModel):
    service_type: str
    description: str

class ServiceRequest(BaseModel):
    id: str
    user_id: str # Foreign Key to User (Client)
    service_type: str
    description: str
    status: RequestStatus = "open"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    client_name: Optional[str] = None # Resolved for the provider view only

class OfferCreate(BaseModel):
    # Accepted as typed by the user; parsed and range-checked by the provider router.
    price: Union[float, str, None] = None
    delivery_time: Union[int, str, None] = None
    message: str = ""

class Offer(BaseModel):
    id: str
    request_id: str # Foreign Key to Request
    provider_id: str # Foreign Key to User (Provider)
    price: float
    delivery_time: int # days
    message: str
    status: OfferStatus = "pending"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    provider_name: Optional[str] = None # Resolved for the client view only

class OfferStatusUpdate(BaseModel):
    status: Literal["accepted", "rejected"]

class AwardRequest(BaseModel):
    offer_id: str
    confirm: bool = False

class Notification(BaseModel):
    id: str
    message: str
    kind: NotificationKind
    created_at: datetime
    expires_at: datetime

# --- Auth ---

class SignUpForm(BaseModel):
    name: str
    email: EmailStr
    password: str
    role: Role = "client"

class LoginForm(BaseModel):
    email: EmailStr
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None

class LoginResponse(BaseModel):
    token: Token
    redirect_to: str

class SignUpResponse(BaseModel):
    user_id: str
    token: Optional[Token] = None
    redirect_to: str
    message: Optional[str] = None

class PagePayload(BaseModel):
    page: str
    redirect: Optional[str] = None
    message: Optional[str] = None

# --- Dashboard payloads ---

class ClientStats(BaseModel):
    total_requests: int
    open_requests: int

class OfferStats(BaseModel):
    total_offers: int
    average_price: float

class ProviderStats(BaseModel):
    open_requests: int
    my_offers: int
    pending_offers: int
    accepted_offers: int
    total_revenue: float

class ClientRequestsResponse(BaseModel):
    requests: List[ServiceRequest]
    stats: ClientStats
    selected_request_id: Optional[str] = None
    notification: Optional[Notification] = None

class OfferListResponse(BaseModel):
    request_id: str
    offers: List[Offer]
    stats: OfferStats

class AwardResponse(BaseModel):
    requests: List[ServiceRequest]
    offers: List[Offer]
    notification: Optional[Notification] = None

class ProviderOfferView(Offer):
    request_service_type: str # "Unknown Request" when the request is not among the open ones

class ProviderRequestsResponse(BaseModel):
    requests: List[ServiceRequest]

class ProviderOffersResponse(BaseModel):
    offers: List[ProviderOfferView]
    stats: ProviderStats
    notification: Optional[Notification] = None

class OfferSubmittedResponse(BaseModel):
    offer: Offer
    offers: List[ProviderOfferView]
    requests: List[ServiceRequest]
    selected_request_id: Optional[str] = None
    notification: Optional[Notification] = None

class DashboardResponse(BaseModel):
    view: Role
    profile: UserProfile
    client: Optional[ClientRequestsResponse] = None
    provider: Optional[ProviderOffersResponse] = None
    open_requests: Optional[List[ServiceRequest]] = None
