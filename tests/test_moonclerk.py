"""
Tests for the MoonClerk client and customer parsing.
"""

import json
from datetime import datetime, timezone

import httpx
import pytest

from membership.services.models import SubscriptionStatus, customer_from_dict
from membership.services.moonclerk import MOONCLERK_ACCEPT, MoonclerkClient


SAMPLE_CUSTOMER = {
    "id": 1091,
    "account_balance": 0,
    "name": "Jane Doe",
    "email": " Jane@Example.com ",
    "custom_id": "member-42",
    "customer_reference": "abc123",
    "delinquent": False,
    "management_url": "https://app.moonclerk.com/manage/abc123",
    "subscription": {
        "id": 1361,
        "subscription_reference": "sub-ref",
        "status": "active",
        "start": "2024-01-15T10:00:00Z",
        "current_period_end": "2024-04-15T10:00:00Z",
        "canceled_at": None,
        "expired_at": None,
        "plan": {
            "id": 7,
            "plan_reference": "Yearly Membership",
            "amount": 5000,
            "currency": "USD",
            "interval": "year",
        },
    },
}


class TestCustomerParsing:
    """Test conversion of customers-endpoint JSON."""

    def test_parse_full_customer(self):
        """All supported fields are carried over."""
        customer = customer_from_dict(SAMPLE_CUSTOMER)

        assert customer.id == 1091
        assert customer.email == "Jane@Example.com"
        assert customer.is_active
        assert customer.subscription.id == 1361
        assert customer.subscription.plan.name == "Yearly Membership"
        assert customer.subscription.plan.amount == 5000
        assert customer.subscription.current_period_end == datetime(2024, 4, 15, 10, 0, tzinfo=timezone.utc)
        assert customer.subscription.canceled_at is None
        assert customer.raw_data is SAMPLE_CUSTOMER

    def test_unknown_status(self):
        """Unrecognised statuses are never treated as active."""
        customer = customer_from_dict({"id": 1, "email": "a@x.com", "subscription": {"status": "paused"}})
        assert customer.subscription.status == SubscriptionStatus.UNKNOWN
        assert not customer.is_active

    def test_missing_subscription(self):
        """A customer without a subscription parses as unknown status."""
        customer = customer_from_dict({"id": 1, "email": "a@x.com"})
        assert customer.subscription.status == SubscriptionStatus.UNKNOWN
        assert customer.subscription.plan is None

    def test_missing_email(self):
        """A missing email parses as empty so it can be skipped later."""
        customer = customer_from_dict({"id": 1, "email": None, "subscription": {"status": "active"}})
        assert customer.email == ""

    def test_customers_are_immutable(self):
        """Parsed records cannot be modified."""
        customer = customer_from_dict(SAMPLE_CUSTOMER)
        with pytest.raises(AttributeError):
            customer.email = "other@x.com"


class TestMoonclerkClient:
    """Test the customers endpoint client."""

    @pytest.mark.asyncio
    async def test_fetch_customers_request(self):
        """Paging parameters and auth headers are sent as MoonClerk expects."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"customers": [SAMPLE_CUSTOMER]})

        client = MoonclerkClient(
            api_key="secret",
            base_url="https://api.moonclerk.test",
            transport=httpx.MockTransport(handler),
        )
        try:
            customers = await client.fetch_customers(100, 200)
        finally:
            await client.close()

        assert [c.id for c in customers] == [1091]
        request = seen[0]
        assert request.url.path == "/customers"
        assert request.url.params["count"] == "100"
        assert request.url.params["offset"] == "200"
        assert request.headers["Authorization"] == "Token token=secret"
        assert request.headers["Accept"] == MOONCLERK_ACCEPT

    @pytest.mark.asyncio
    async def test_empty_page(self):
        """A body without customers is an empty page."""
        client = MoonclerkClient(
            api_key="secret",
            base_url="https://api.moonclerk.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=json.dumps({}))),
        )
        try:
            assert await client.fetch_customers(100, 0) == []
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        """Non-2xx responses surface as HTTPStatusError."""
        client = MoonclerkClient(
            api_key="bad",
            base_url="https://api.moonclerk.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(401, text="Unauthorized")),
        )
        try:
            with pytest.raises(httpx.HTTPStatusError):
                await client.fetch_customers(100, 0)
        finally:
            await client.close()
