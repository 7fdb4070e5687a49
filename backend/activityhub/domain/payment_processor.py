"""Payment processor linkage for providers, resolved once per provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class StripeProcessor:
    account_id: str
    name: str = "stripe"


@dataclass(frozen=True)
class LemonSqueezyProcessor:
    store_id: str
    name: str = "lemonsqueezy"


@dataclass(frozen=True)
class Unconfigured:
    name: str = "unconfigured"


PaymentProcessor = Union[StripeProcessor, LemonSqueezyProcessor, Unconfigured]


def resolve_payment_processor(
    stripe_account_id: Optional[str], lemonsqueezy_store_id: Optional[str]
) -> PaymentProcessor:
    """Stripe wins when both are linked; blank ids count as unlinked."""
    if stripe_account_id and stripe_account_id.strip():
        return StripeProcessor(account_id=stripe_account_id.strip())
    if lemonsqueezy_store_id and lemonsqueezy_store_id.strip():
        return LemonSqueezyProcessor(store_id=lemonsqueezy_store_id.strip())
    return Unconfigured()


def is_configured(processor: PaymentProcessor) -> bool:
    return not isinstance(processor, Unconfigured)
