"""
Pytest configuration and fixtures.
"""

from datetime import datetime, timedelta, timezone

import pytest

from membership.services.models import Customer, Subscription, SubscriptionStatus


class FakeClock:
    """Settable clock for staleness and stuck-refresh tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_customer(id: int, email: str, status: str = "active") -> Customer:
    return Customer(
        id=id,
        email=email,
        subscription=Subscription(status=SubscriptionStatus(status)),
    )


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock fixed at a known instant."""
    return FakeClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def customer():
    """Provide a factory for minimal customer records."""
    return make_customer
