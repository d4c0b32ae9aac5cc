"""
In-memory MoonClerk customer database.

Maps lowercase email to the customer's latest subscription record. The whole
map is reloaded from MoonClerk once it is older than a day; only one reload
runs at a time and concurrent lookups wait for it to finish.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Awaitable, Callable, Iterable, Mapping, Optional, Union

from membership.services.models import Customer
from membership.services.moonclerk import moonclerk_client
from membership.utils.logging import get_logger, log_context

logger = get_logger(__name__)

PAGE_SIZE = 100
STALE_AFTER = timedelta(hours=24)
STUCK_REFRESH_AFTER = timedelta(minutes=30)
POLL_INTERVAL = 0.1  # seconds

FetchPage = Callable[[int, int], Awaitable[list[Customer]]]


class _Preempted:
    """Marker returned by a load that was superseded by a newer refresh."""

    def __repr__(self) -> str:
        return "PREEMPTED"


PREEMPTED = _Preempted()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_snapshot(customers: Iterable[Customer]) -> Mapping[str, Customer]:
    """Build the email -> customer map from customers in delivery order.

    For each email the last active customer wins. If none of an email's
    customers is active, the last one seen wins.
    """
    snapshot: dict[str, Customer] = {}

    for customer in customers:
        email = customer.email.lower()
        if not email:
            logger.warning("Skipping MoonClerk customer without email", customer_id=customer.id)
            continue

        existing = snapshot.get(email)
        if existing is not None and existing.id != customer.id:
            if existing.is_active and customer.is_active:
                logger.warning(
                    "More than one active subscription for customer email",
                    email=email,
                    existing_id=existing.id,
                    customer_id=customer.id,
                )

            if existing.is_active and not customer.is_active:
                # one email can have many subscriptions, the active one wins
                continue

        snapshot[email] = customer

    return MappingProxyType(snapshot)


class CustomerDatabase:
    """
    Refreshable email -> customer lookup table.

    State is only mutated by the coroutine that holds the current refresh
    generation; everything else reads.
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._fetch_page = fetch_page
        self._clock = clock

        self._customers: Mapping[str, Customer] = MappingProxyType({})
        self._last_refresh: Optional[datetime] = None
        self._refresh_started_at: Optional[datetime] = None
        self._generation = 0
        self._claim_lock = asyncio.Lock()

    @property
    def last_refresh(self) -> Optional[datetime]:
        return self._last_refresh

    @property
    def refresh_started_at(self) -> Optional[datetime]:
        return self._refresh_started_at

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_started_at is not None

    @property
    def customer_count(self) -> int:
        return len(self._customers)

    def is_stale(self) -> bool:
        """True if never refreshed or the last refresh is more than a day old."""
        if self._last_refresh is None:
            return True
        return self._clock() - self._last_refresh > STALE_AFTER

    async def ensure_fresh(self) -> None:
        """Refresh if stale, or wait for the refresh another caller started."""
        async with self._claim_lock:
            if not self.is_stale():
                return

            now = self._clock()
            wait = False
            if self._refresh_started_at is not None:
                if now - self._refresh_started_at > STUCK_REFRESH_AFTER:
                    logger.warning(
                        "Customer database refresh seems stuck, retrying",
                        started_at=self._refresh_started_at.isoformat(),
                    )
                else:
                    wait = True

            if not wait:
                self._refresh_started_at = now
                self._generation += 1
                generation = self._generation

        if wait:
            logger.info("Waiting for customer database to finish refreshing")
            while self._refresh_started_at is not None:
                await asyncio.sleep(POLL_INTERVAL)
            return

        with log_context(refresh_generation=generation):
            await self._refresh(generation)

    async def _refresh(self, generation: int) -> None:
        logger.info(
            "Refreshing customer database because it is stale",
            last_refresh=self._last_refresh.isoformat() if self._last_refresh else None,
        )
        try:
            customers = await self.load_all()
            if customers is PREEMPTED:
                logger.warning(
                    "Ignored customer database update because another one was started in the meantime"
                )
                return

            self._customers = build_snapshot(customers)
            self._last_refresh = self._clock()
            logger.info("Customer database refreshed", customers=len(self._customers))
        except Exception as e:
            logger.error("Customer database refresh failed", error=str(e))
        finally:
            # A superseded attempt leaves the marker to the attempt that took over
            if generation == self._generation:
                self._refresh_started_at = None

    async def load_all(self) -> Union[list[Customer], _Preempted]:
        """Fetch every customer page by page until an empty page comes back.

        Returns PREEMPTED if another refresh was started while loading.
        """
        generation = self._generation
        customers: list[Customer] = []
        offset = 0

        while True:
            page = await self._fetch_page(PAGE_SIZE, offset)
            if not page:
                break
            customers.extend(page)
            offset += PAGE_SIZE

        logger.info("Loaded MoonClerk customers", customers=len(customers), pages=offset // PAGE_SIZE)

        if generation != self._generation:
            return PREEMPTED
        return customers

    async def lookup(self, email: str) -> Optional[Customer]:
        """Get the membership record for an email, refreshing first if stale."""
        await self.ensure_fresh()
        return self._customers.get(email.strip().lower())


# Module-level singleton
customer_db = CustomerDatabase(moonclerk_client.fetch_customers)
