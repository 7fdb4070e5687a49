"""Value objects exchanged with payment processors."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..core.enums import CallbackStatus


@dataclass(frozen=True)
class PaymentRequest:
    """What a processor needs to collect a payment for one booking."""

    amount: Decimal
    currency: str
    reference: str
    item_name: str
    customer_email: str
    return_url: str
    cancel_url: str
    notify_url: str


@dataclass(frozen=True)
class PaymentCallbackEvent:
    """A processor's settlement callback, normalized."""

    reference: str
    status: CallbackStatus
    processor: str
    processor_payment_id: Optional[str] = None
    amount: Optional[Decimal] = None
