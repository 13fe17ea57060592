"""
Registry entities - Donation, Identity and Order records.

Entities are plain dataclasses owned by the registry document. They are
serialized to JSON-compatible dicts with snake_case keys; ``from_dict``
is tolerant of missing fields so older documents still load.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class OrderStatus(str, Enum):
    """
    Order lifecycle states.

    The only transition is PENDING -> PAID. PAID is terminal.
    """

    PENDING = "pending"
    PAID = "paid"


class BillingMode(str, Enum):
    """Checkout mode requested from the payment processor."""

    PAYMENT = "payment"
    SUBSCRIPTION = "subscription"


def enforce_visibility(show_name: bool, show_username: bool, show_amount: bool) -> tuple[bool, bool, bool]:
    """
    Apply the anonymity rule to a set of visibility flags.

    A donor may hide their name and their handle, but then the amount is
    always shown: a record is never fully anonymous and fully silent.
    """
    if not show_name and not show_username:
        show_amount = True
    return show_name, show_username, show_amount


@dataclass
class Visibility:
    show_name: bool = True
    show_username: bool = True
    show_amount: bool = True

    def __post_init__(self) -> None:
        self.show_name, self.show_username, self.show_amount = enforce_visibility(
            self.show_name, self.show_username, self.show_amount
        )

    @classmethod
    def from_dict(cls, data: Any) -> "Visibility":
        if not isinstance(data, dict):
            return cls()
        return cls(
            show_name=_flag(data.get("show_name", data.get("showName"))),
            show_username=_flag(data.get("show_username", data.get("showUsername"))),
            show_amount=_flag(data.get("show_amount", data.get("showAmount"))),
        )


def _flag(value: Any) -> bool:
    return value if isinstance(value, bool) else True


@dataclass
class DonationRecord:
    """One paid event, keyed by the processor session id."""

    session_id: str
    email: str = ""
    name: str = ""
    amount: int = 0
    created_at: str = ""
    mark: str = ""
    handle_bound: bool = False
    bound_handle: str = ""
    display_handle: str = ""
    visibility: Visibility = field(default_factory=Visibility)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DonationRecord":
        return cls(
            session_id=str(data.get("session_id") or ""),
            email=str(data.get("email") or ""),
            name=str(data.get("name") or ""),
            amount=_int(data.get("amount")),
            created_at=str(data.get("created_at") or ""),
            mark=str(data.get("mark") or ""),
            handle_bound=data.get("handle_bound") is True,
            bound_handle=str(data.get("bound_handle") or ""),
            display_handle=str(data.get("display_handle") or ""),
            visibility=Visibility.from_dict(data.get("visibility")),
        )

    def public_view(self) -> dict[str, Any]:
        """Display projection honoring the donor's visibility flags."""
        handle = self.bound_handle or self.display_handle
        return {
            "name": (self.name or "Anonymous") if self.visibility.show_name else "Anonymous",
            "handle": handle if self.visibility.show_username and handle else None,
            "amount": self.amount if self.visibility.show_amount else None,
            "created_at": self.created_at,
            "handle_bound": self.handle_bound,
        }


@dataclass
class Identity:
    """A handle bound to one canonical email, with its mark history."""

    identity_id: str
    email: str
    handle: str = ""
    marks: list[str] = field(default_factory=list)
    created_at: str = ""
    device_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Identity":
        return cls(
            identity_id=str(data.get("identity_id") or ""),
            email=str(data.get("email") or ""),
            handle=str(data.get("handle") or ""),
            marks=_str_list(data.get("marks")),
            created_at=str(data.get("created_at") or ""),
            device_ids=_str_list(data.get("device_ids")),
        )


@dataclass
class LineItem:
    """
    One billable item of an order.

    ``amount_minor`` is authoritative when present; otherwise ``amount`` is
    read as major units and converted by the order engine.
    """

    name: str
    quantity: int = 1
    amount_minor: int | None = None
    amount: float | str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LineItem":
        amount_minor = data.get("amount_minor")
        return cls(
            name=str(data.get("name") or ""),
            quantity=_int(data.get("quantity"), default=1),
            amount_minor=None if amount_minor is None else _int(amount_minor),
            amount=data.get("amount"),
        )


@dataclass
class OrderRecord:
    order_id: str
    email: str
    app: str
    line_items: list[LineItem]
    billing_mode: BillingMode
    total_amount: int
    status: OrderStatus = OrderStatus.PENDING
    session_id: str | None = None
    subscription_id: str | None = None
    mark: str | None = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["billing_mode"] = self.billing_mode.value
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderRecord":
        items = data.get("line_items")
        return cls(
            order_id=str(data.get("order_id") or ""),
            email=str(data.get("email") or ""),
            app=str(data.get("app") or ""),
            line_items=[LineItem.from_dict(i) for i in items if isinstance(i, dict)]
            if isinstance(items, list)
            else [],
            billing_mode=_enum(BillingMode, data.get("billing_mode"), BillingMode.PAYMENT),
            total_amount=_int(data.get("total_amount")),
            status=_enum(OrderStatus, data.get("status"), OrderStatus.PENDING),
            session_id=data.get("session_id"),
            subscription_id=data.get("subscription_id"),
            mark=data.get("mark"),
            created_at=str(data.get("created_at") or ""),
            updated_at=str(data.get("updated_at") or ""),
        )


@dataclass
class RegistryDocument:
    """Root aggregate. All three collections always exist."""

    donations: list[DonationRecord] = field(default_factory=list)
    identities: list[Identity] = field(default_factory=list)
    orders: list[OrderRecord] = field(default_factory=list)

    def find_donation(self, session_id: str) -> DonationRecord | None:
        return next((d for d in self.donations if d.session_id == session_id), None)

    def find_identity_by_email(self, email: str) -> Identity | None:
        return next((i for i in self.identities if i.email == email), None)

    def find_identity_by_handle(self, handle: str) -> Identity | None:
        return next((i for i in self.identities if i.handle and i.handle.lower() == handle), None)

    def find_order(self, order_id: str) -> OrderRecord | None:
        return next((o for o in self.orders if o.order_id == order_id), None)


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _enum(enum_cls: Any, value: Any, default: Any) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v]
