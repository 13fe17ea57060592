"""
API v1 routes.

Defines REST endpoints for donations, handles and orders. Domain errors
are mapped to responses by the handler in ``soulmark.api.errors``.
"""

from fastapi import APIRouter, Depends, status

from soulmark.api.dependencies import get_identity_registry, get_ledger, get_order_engine
from soulmark.api.models import (
    CheckoutResponse,
    ClaimHandleRequest,
    ConfirmOrderResponse,
    CreateOrderRequest,
    DonationCheckoutRequest,
    DonationListResponse,
    DonationResponse,
    ErrorResponse,
    HandleAvailabilityResponse,
    IdentityResponse,
    OrderResponse,
    PublicDonation,
    VerifyDonationResponse,
)
from soulmark.domain.identity import IdentityRegistry, canonical_handle
from soulmark.domain.ledger import DonationLedger
from soulmark.domain.models import LineItem
from soulmark.domain.orders import OrderEngine

router = APIRouter(tags=["v1"])

UPSTREAM_ERROR = {502: {"model": ErrorResponse, "description": "Payment processor failure"}}


@router.post(
    "/donations/checkout",
    response_model=CheckoutResponse,
    status_code=status.HTTP_201_CREATED,
    responses=UPSTREAM_ERROR,
    summary="Start a donation checkout",
)
def create_donation_checkout(
    request_data: DonationCheckoutRequest,
    ledger: DonationLedger = Depends(get_ledger),
) -> CheckoutResponse:
    intent = ledger.create_checkout(request_data.amount, request_data.email)
    return CheckoutResponse(id=intent.id, url=intent.url)


@router.get(
    "/donations/verify/{session_id}",
    response_model=VerifyDonationResponse,
    responses=UPSTREAM_ERROR,
    summary="Verify a donation and mint its mark",
    description="Confirms the session with the payment processor. A paid session is "
    "recorded once; repeated calls return the same record and mark.",
)
def verify_donation(
    session_id: str,
    ledger: DonationLedger = Depends(get_ledger),
) -> VerifyDonationResponse:
    confirmation = ledger.confirm(session_id)
    if not confirmation.verified:
        return VerifyDonationResponse(verified=False)
    return VerifyDonationResponse(
        verified=True,
        donation=DonationResponse.from_record(confirmation.donation),
    )


@router.get("/donations", response_model=DonationListResponse, summary="Public donation wall")
def list_donations(ledger: DonationLedger = Depends(get_ledger)) -> DonationListResponse:
    summary = ledger.summary()
    return DonationListResponse(
        donations=[PublicDonation(**view) for view in ledger.public_donations()],
        total_amount=summary.total_amount,
        count=summary.count,
    )


@router.get(
    "/handles/{handle}/availability",
    response_model=HandleAvailabilityResponse,
    summary="Check whether a handle is free",
)
def handle_availability(
    handle: str,
    registry: IdentityRegistry = Depends(get_identity_registry),
) -> HandleAvailabilityResponse:
    return HandleAvailabilityResponse(
        handle=canonical_handle(handle),
        available=registry.check_handle_available(handle),
    )


@router.post(
    "/handles/claim",
    response_model=IdentityResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Mark not owned or disposable email"},
        409: {"model": ErrorResponse, "description": "Handle taken or frozen"},
    },
    summary="Claim a handle with a mark",
)
def claim_handle(
    request_data: ClaimHandleRequest,
    registry: IdentityRegistry = Depends(get_identity_registry),
) -> IdentityResponse:
    identity = registry.claim_handle(
        request_data.email,
        request_data.handle,
        request_data.mark,
        request_data.device_id,
    )
    return IdentityResponse.from_identity(identity)


@router.post(
    "/orders",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a pending order",
)
def create_order(
    request_data: CreateOrderRequest,
    engine: OrderEngine = Depends(get_order_engine),
) -> OrderResponse:
    order = engine.create_order(
        request_data.app,
        request_data.email,
        [LineItem(**item.model_dump()) for item in request_data.line_items],
        request_data.billing_mode,
    )
    return OrderResponse.from_record(order)


@router.get(
    "/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse, "description": "Order not found"}},
    summary="Get an order",
)
def get_order(order_id: str, engine: OrderEngine = Depends(get_order_engine)) -> OrderResponse:
    return OrderResponse.from_record(engine.get_order(order_id))


@router.post(
    "/orders/{order_id}/checkout",
    response_model=CheckoutResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse, "description": "Order not found"},
        409: {"model": ErrorResponse, "description": "Order already paid"},
        **UPSTREAM_ERROR,
    },
    summary="Start checkout for an order",
)
def checkout_order(order_id: str, engine: OrderEngine = Depends(get_order_engine)) -> CheckoutResponse:
    intent = engine.attach_payment_intent(order_id)
    return CheckoutResponse(id=intent.id, url=intent.url)


@router.get(
    "/orders/confirm/{session_id}",
    response_model=ConfirmOrderResponse,
    responses=UPSTREAM_ERROR,
    summary="Confirm an order payment",
)
def confirm_order(session_id: str, engine: OrderEngine = Depends(get_order_engine)) -> ConfirmOrderResponse:
    result = engine.confirm(session_id)
    if result.donation is None:
        return ConfirmOrderResponse(verified=False)
    return ConfirmOrderResponse(
        verified=True,
        donation=DonationResponse.from_record(result.donation),
        order=OrderResponse.from_record(result.order) if result.order else None,
    )
