from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SignupEvent(BaseModel):
    """One dated primary-growth-unit record (signup, account creation).

    Produced by a ``RawEventSource``.  ``group_key`` is optional and only
    carried for future per-group breakdowns.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(..., description="When the record was created")
    group_key: Optional[str] = Field(
        default=None,
        description="Optional grouping identity (e.g. account or referrer)",
    )


class PaymentTransaction(BaseModel):
    """One payment as reported by a ``RawTransactionSource``.

    ``amount`` is in minor currency units (cents), exactly as the payment
    processor reports it.  ``customer_key`` is absent for anonymous
    payments.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0, description="Amount in minor units")
    status: str = Field(..., min_length=1)
    customer_key: Optional[str] = None
    timestamp: datetime
