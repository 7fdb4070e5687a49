# backend/activityhub/schemas/payment.py
"""Webhook acknowledgement schema."""

from typing import Optional

from ._strict_base import StrictModel


class WebhookAck(StrictModel):
    received: bool = True
    result: Optional[str] = None
    reference: Optional[str] = None
