# backend/activityhub/services/stripe_service.py
"""
Stripe webhook adapter.

Only translates verified Stripe events into ``PaymentCallbackEvent``; Stripe
API calls for checkout creation live with the upstream checkout flow. The
payment reference travels in the object's ``metadata["reference"]``.
"""

from decimal import Decimal
import json
import logging
from typing import Any, Dict, Optional

import stripe

from ..core.config import settings
from ..core.enums import CallbackStatus
from ..core.exceptions import InvalidSignature, ServiceException
from ..domain.payments import PaymentCallbackEvent

logger = logging.getLogger(__name__)

PROCESSOR_NAME = "stripe"

EVENT_STATUS: Dict[str, CallbackStatus] = {
    "checkout.session.completed": CallbackStatus.COMPLETE,
    "payment_intent.succeeded": CallbackStatus.COMPLETE,
    "payment_intent.payment_failed": CallbackStatus.FAILED,
    "payment_intent.canceled": CallbackStatus.CANCELLED,
}


class StripeService:
    def __init__(self, webhook_secret: Optional[str] = None):
        secret = webhook_secret or settings.stripe_webhook_secret.get_secret_value()
        self.webhook_secret = secret
        api_key = settings.stripe_secret_key.get_secret_value()
        if api_key:
            stripe.api_key = api_key

    def construct_event(self, payload: bytes, signature: str) -> Any:
        if not self.webhook_secret:
            raise ServiceException("Webhook secret not configured")
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as exc:
            logger.warning("Invalid Stripe webhook signature")
            raise InvalidSignature(PROCESSOR_NAME) from exc
        except ValueError as exc:
            logger.warning("Malformed Stripe webhook payload: %s", exc)
            raise InvalidSignature(PROCESSOR_NAME) from exc

    def parse_webhook(self, payload: bytes, signature: str) -> Optional[PaymentCallbackEvent]:
        """
        Verify a webhook and normalize it.

        The signature is checked by Stripe's SDK; the event body is then read
        from the verified raw payload.

        Returns:
            The callback event, or None for event types that don't settle payments
            or objects without a payment reference.
        """
        self.construct_event(payload, signature)
        try:
            event: Dict[str, Any] = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise InvalidSignature(PROCESSOR_NAME) from exc

        event_type = event.get("type", "")
        status = EVENT_STATUS.get(event_type)
        if status is None:
            logger.info("Ignoring Stripe event %s", event_type)
            return None

        obj = (event.get("data") or {}).get("object") or {}
        metadata = obj.get("metadata") or {}
        reference = metadata.get("reference")
        if not reference:
            logger.warning("Stripe event %s without metadata.reference", event.get("id"))
            return None

        cents = obj.get("amount_total")
        if cents is None:
            cents = obj.get("amount_received") or obj.get("amount")
        amount = (Decimal(cents) / Decimal(100)) if cents is not None else None

        payment_id = obj.get("payment_intent") if event_type.startswith("checkout.") else obj.get("id")
        return PaymentCallbackEvent(
            reference=reference,
            status=status,
            processor=PROCESSOR_NAME,
            processor_payment_id=payment_id,
            amount=amount,
        )
