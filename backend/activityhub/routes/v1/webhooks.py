# backend/activityhub/routes/v1/webhooks.py
"""
Payment processor callbacks - API v1

Both endpoints verify the processor's signature, normalize the payload into a
``PaymentCallbackEvent`` and hand it to PaymentSettlementService. Redelivery
of an already-applied callback is acknowledged with ``result="duplicate"``.

Endpoints:
    POST /payfast - PayFast ITN (form-encoded)
    POST /stripe - Stripe webhook (raw JSON body + Stripe-Signature)
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ...api.dependencies import get_payfast_client, get_settlement_service, get_stripe_service
from ...api.errors import handle_domain_exception
from ...core.exceptions import DomainException
from ...schemas.payment import WebhookAck
from ...services.payfast_client import PayFastClient
from ...services.payment_settlement_service import PaymentSettlementService
from ...services.stripe_service import StripeService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks-v1"])


@router.post("/payfast", response_model=WebhookAck)
async def payfast_notification(
    request: Request,
    payfast: PayFastClient = Depends(get_payfast_client),
    settlement_service: PaymentSettlementService = Depends(get_settlement_service),
) -> WebhookAck:
    form = await request.form()
    fields = {key: str(value) for key, value in form.items()}
    try:
        event = payfast.parse_notification(fields)
        outcome = await asyncio.to_thread(settlement_service.handle_payment_callback, event)
    except DomainException as e:
        handle_domain_exception(e)
    return WebhookAck(result=outcome.result, reference=outcome.reference)


@router.post("/stripe", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_service: StripeService = Depends(get_stripe_service),
    settlement_service: PaymentSettlementService = Depends(get_settlement_service),
) -> WebhookAck:
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    if not signature:
        logger.warning("Missing Stripe signature header")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Missing stripe-signature header"
        )

    try:
        event = stripe_service.parse_webhook(payload, signature)
        if event is None:
            return WebhookAck(result="ignored")
        outcome = await asyncio.to_thread(settlement_service.handle_payment_callback, event)
    except DomainException as e:
        handle_domain_exception(e)
    return WebhookAck(result=outcome.result, reference=outcome.reference)
