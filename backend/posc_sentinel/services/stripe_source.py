"""Stripe payment-intent source.

Reads ``/payment_intents`` for a window via the Stripe REST API and turns
each intent into a tagged ``PaymentTransaction``.

Reads configuration from environment variables (through ``config``):
  STRIPE_API_KEY   : required; the source refuses to start without it
  STRIPE_API_BASE  : https://api.stripe.com/v1

Rules
-----
- Connected accounts are addressed with the ``Stripe-Account`` header
- 429 / 5xx / transport errors are retried with exponential backoff
- Exhausted retries or a non-retryable status raise
  ``DataSourceUnavailable``; an empty list means "no payments"
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
from sqlalchemy.orm import Session

from ..errors import DataSourceUnavailable, RecordParseError
from ..models.startup import Startup
from ..schemas.records_schema import PaymentTransaction
from .clock import as_utc
from .sources import RawTransactionSource

logger = logging.getLogger(__name__)

_REQUEST_TIMEOUT = 10.0  # seconds per request
_MAX_RETRIES = 2
_INITIAL_BACKOFF = 1.5  # seconds
_PAGE_SIZE = 100
_RESOURCE = "stripe:payment_intents"

_REQUIRED_FIELDS = ("id", "amount", "status", "created")


def parse_payment_intent(raw: Dict[str, Any]) -> PaymentTransaction:
    """Convert one Stripe payment-intent dict into a ``PaymentTransaction``.

    ``created`` is unix seconds, ``amount`` is minor units, ``customer``
    may be ``None``.

    Raises
    ------
    RecordParseError
        If any of ``id``, ``amount``, ``status``, ``created`` is missing.
    """
    missing = [name for name in _REQUIRED_FIELDS if raw.get(name) is None]
    if missing:
        raise RecordParseError(
            _RESOURCE,
            f"payment intent {raw.get('id', '?')!r} missing {', '.join(missing)}",
        )

    customer = raw.get("customer")
    if isinstance(customer, dict):  # expanded customer object
        customer = customer.get("id")

    try:
        return PaymentTransaction(
            id=str(raw["id"]),
            amount=int(raw["amount"]),
            status=str(raw["status"]),
            customer_key=customer or None,
            timestamp=datetime.fromtimestamp(int(raw["created"]), tz=timezone.utc),
        )
    except (TypeError, ValueError) as exc:
        raise RecordParseError(_RESOURCE, f"invalid payment intent {raw.get('id')!r}: {exc}") from exc


class StripeTransactionSource(RawTransactionSource):
    """Fetches payment intents from Stripe with pagination and retries."""

    def __init__(
        self,
        api_key: str,
        api_base: str = "https://api.stripe.com/v1",
        account_lookup: Optional[Callable[[str], Optional[str]]] = None,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not api_key:
            raise EnvironmentError(
                "STRIPE_API_KEY must be set to use the Stripe transaction source."
            )
        self._api_base = api_base.rstrip("/")
        self._account_lookup = account_lookup
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=_REQUEST_TIMEOUT)
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._sleep = sleep

    # ------------------------------------------------------------------ #
    #  Public                                                              #
    # ------------------------------------------------------------------ #

    def fetch_transactions(
        self,
        entity_id: str,
        window_start: datetime,
        window_end: datetime,
    ) -> List[PaymentTransaction]:
        headers = dict(self._headers)
        if self._account_lookup is not None:
            account = self._account_lookup(str(entity_id))
            if account:
                headers["Stripe-Account"] = account

        params: Dict[str, Any] = {
            "limit": _PAGE_SIZE,
            "created[gte]": int(as_utc(window_start).timestamp()),
            "created[lt]": int(as_utc(window_end).timestamp()),
        }

        transactions: List[PaymentTransaction] = []
        while True:
            page = self._get_page(headers, params)
            data = page.get("data", [])
            transactions.extend(parse_payment_intent(item) for item in data)

            if not page.get("has_more") or not data:
                break
            params["starting_after"] = data[-1]["id"]

        logger.info(
            "Fetched %d payment intents for %s", len(transactions), entity_id
        )
        return transactions

    def close(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._owns_client:
            self._client.close()

    # ------------------------------------------------------------------ #
    #  Internal helpers                                                    #
    # ------------------------------------------------------------------ #

    def _get_page(self, headers: Dict[str, str], params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self._api_base}/payment_intents"
        last_error = "no attempt made"

        for attempt in range(_MAX_RETRIES + 1):
            try:
                resp = self._client.get(url, headers=headers, params=params)
                if resp.status_code == 200:
                    try:
                        return resp.json()
                    except ValueError as exc:
                        raise DataSourceUnavailable(_RESOURCE, "malformed JSON response") from exc

                if resp.status_code == 429 or resp.status_code >= 500:
                    last_error = f"HTTP {resp.status_code}"
                    logger.warning(
                        "Stripe retryable %d on attempt %d", resp.status_code, attempt + 1
                    )
                else:
                    raise DataSourceUnavailable(
                        _RESOURCE, f"HTTP {resp.status_code}: {resp.text[:200]}"
                    )

            except httpx.TransportError as exc:
                last_error = str(exc) or exc.__class__.__name__
                logger.warning(
                    "Stripe transport error on attempt %d: %s", attempt + 1, last_error
                )

            if attempt < _MAX_RETRIES:
                self._sleep(_INITIAL_BACKOFF * (2 ** attempt))

        raise DataSourceUnavailable(_RESOURCE, f"retries exhausted ({last_error})")


# ===================================================================== #
#  Source factory                                                         #
# ===================================================================== #

def get_transaction_source(
    api_key: str,
    api_base: str,
    session_factory: Callable[[], Session],
) -> Optional[StripeTransactionSource]:
    """Return the configured Stripe source, or ``None`` without a key.

    Connected-account ids are looked up from the startup row on every
    fetch.
    """
    if not api_key:
        logger.warning("STRIPE_API_KEY not set; revenue checks will report the source unavailable.")
        return None

    def account_lookup(entity_id: str) -> Optional[str]:
        db = session_factory()
        try:
            startup = db.get(Startup, entity_id)
            return startup.stripe_account_id if startup else None
        finally:
            db.close()

    return StripeTransactionSource(api_key, api_base, account_lookup=account_lookup)
