"""
MoonClerk customer records.

Parsed once from the customers endpoint and treated as immutable afterwards.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class SubscriptionStatus(str, Enum):
    """Subscription states reported by MoonClerk."""
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    UNPAID = "unpaid"
    CANCELED = "canceled"
    EXPIRED = "expired"
    PENDING = "pending"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SubscriptionStatus":
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class Plan:
    """Payment form plan a subscription was created from."""
    id: Optional[int] = None
    name: Optional[str] = None
    amount: Optional[int] = None  # cents
    currency: Optional[str] = None
    interval: Optional[str] = None  # "month", "year", ...


@dataclass(frozen=True)
class Subscription:
    """Recurring payment attached to a customer."""
    status: SubscriptionStatus
    id: Optional[int] = None
    reference: Optional[str] = None
    start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    expired_at: Optional[datetime] = None
    plan: Optional[Plan] = None

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE


@dataclass(frozen=True)
class Customer:
    """A MoonClerk customer and their latest subscription."""
    id: int
    email: str
    subscription: Subscription
    name: Optional[str] = None
    custom_id: Optional[str] = None
    customer_reference: Optional[str] = None
    management_url: Optional[str] = None
    delinquent: bool = False
    raw_data: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_active(self) -> bool:
        return self.subscription.is_active


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _plan_from_dict(d: Optional[dict]) -> Optional[Plan]:
    if not d:
        return None
    return Plan(
        id=d.get("id"),
        name=d.get("plan_reference") or d.get("name"),
        amount=d.get("amount"),
        currency=d.get("currency"),
        interval=d.get("interval"),
    )


def customer_from_dict(d: dict) -> Customer:
    """Convert a customers-endpoint JSON object to a Customer."""
    sub = d.get("subscription") or {}
    return Customer(
        id=d["id"],
        email=(d.get("email") or "").strip(),
        name=d.get("name"),
        custom_id=d.get("custom_id"),
        customer_reference=d.get("customer_reference"),
        management_url=d.get("management_url"),
        delinquent=bool(d.get("delinquent", False)),
        subscription=Subscription(
            status=SubscriptionStatus.parse(sub.get("status")),
            id=sub.get("id"),
            reference=sub.get("subscription_reference"),
            start=_parse_datetime(sub.get("start")),
            current_period_end=_parse_datetime(sub.get("current_period_end")),
            canceled_at=_parse_datetime(sub.get("canceled_at")),
            expired_at=_parse_datetime(sub.get("expired_at")),
            plan=_plan_from_dict(sub.get("plan")),
        ),
        raw_data=d,
    )
