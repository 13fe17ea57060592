"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from pydantic import BaseModel, EmailStr, Field

from soulmark.domain.models import BillingMode, DonationRecord, Identity, OrderRecord


class DonationCheckoutRequest(BaseModel):
    """Request model for a one-time donation checkout."""

    amount: int = Field(..., gt=0, description="Donation amount in minor units (cents)")
    email: EmailStr | None = None


class CheckoutResponse(BaseModel):
    """Processor session created for a donation or an order."""

    id: str
    url: str


class DonationResponse(BaseModel):
    """A recorded donation, as returned to the payer who confirmed it."""

    session_id: str
    email: str
    name: str
    amount: int
    created_at: str
    mark: str
    handle_bound: bool
    bound_handle: str

    @classmethod
    def from_record(cls, record: DonationRecord) -> "DonationResponse":
        return cls(
            session_id=record.session_id,
            email=record.email,
            name=record.name,
            amount=record.amount,
            created_at=record.created_at,
            mark=record.mark,
            handle_bound=record.handle_bound,
            bound_handle=record.bound_handle,
        )


class VerifyDonationResponse(BaseModel):
    verified: bool
    donation: DonationResponse | None = None


class PublicDonation(BaseModel):
    name: str
    handle: str | None
    amount: int | None
    created_at: str
    handle_bound: bool


class DonationListResponse(BaseModel):
    """Public donation wall with totals."""

    donations: list[PublicDonation]
    total_amount: int
    count: int


class HandleAvailabilityResponse(BaseModel):
    handle: str
    available: bool


class ClaimHandleRequest(BaseModel):
    """Request model for claiming a handle with a mark."""

    email: EmailStr
    handle: str = Field(..., min_length=2, max_length=32)
    mark: str = Field(..., min_length=1)
    device_id: str | None = Field(default=None, max_length=128)


class IdentityResponse(BaseModel):
    identity_id: str
    handle: str
    email: str
    created_at: str
    mark_count: int

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityResponse":
        return cls(
            identity_id=identity.identity_id,
            handle=identity.handle,
            email=identity.email,
            created_at=identity.created_at,
            mark_count=len(identity.marks),
        )


class LineItemModel(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1)
    amount_minor: int | None = Field(default=None, ge=0, description="Unit amount in minor units")
    amount: float | None = Field(default=None, ge=0, allow_inf_nan=False, description="Unit amount in major units")


class CreateOrderRequest(BaseModel):
    """Request model for a new order."""

    app: str = Field(..., min_length=1)
    email: EmailStr
    line_items: list[LineItemModel]
    billing_mode: BillingMode = BillingMode.PAYMENT


class OrderResponse(BaseModel):
    order_id: str
    app: str
    email: str
    billing_mode: BillingMode
    total_amount: int
    status: str
    session_id: str | None
    mark: str | None
    created_at: str
    updated_at: str

    @classmethod
    def from_record(cls, order: OrderRecord) -> "OrderResponse":
        return cls(
            order_id=order.order_id,
            app=order.app,
            email=order.email,
            billing_mode=order.billing_mode,
            total_amount=order.total_amount,
            status=order.status.value,
            session_id=order.session_id,
            mark=order.mark,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class ConfirmOrderResponse(BaseModel):
    verified: bool
    donation: DonationResponse | None = None
    order: OrderResponse | None = None


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
    code: str
    retryable: bool
