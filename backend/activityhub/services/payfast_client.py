# backend/activityhub/services/payfast_client.py
"""
PayFast integration.

Outbound: a signed redirect (process URL plus form fields) for a
``PaymentRequest``. Inbound: ITN (instant transaction notification) form posts
verified against the same signature scheme and normalized into a
``PaymentCallbackEvent``.

Signature: fields sorted by name, each rendered ``name=urlencoded(value)``,
joined with ``&``, the passphrase appended, MD5 hex digest.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
import hashlib
import hmac
import logging
from typing import Dict, Mapping, Optional
from urllib.parse import quote

from ..core.config import settings
from ..core.enums import CallbackStatus
from ..core.exceptions import InvalidSignature, ValidationException
from ..domain.payments import PaymentCallbackEvent, PaymentRequest

logger = logging.getLogger(__name__)

SANDBOX_URL = "https://sandbox.payfast.co.za/eng/process"
LIVE_URL = "https://www.payfast.co.za/eng/process"

PROCESSOR_NAME = "payfast"

# encodeURIComponent leaves these unescaped; PayFast's reference client does the same
_URI_COMPONENT_SAFE = "-_.!~*'()"


@dataclass(frozen=True)
class PayFastRedirect:
    url: str
    data: Dict[str, str]


class PayFastClient:
    def __init__(
        self,
        merchant_id: Optional[str] = None,
        merchant_key: Optional[str] = None,
        passphrase: Optional[str] = None,
        sandbox: Optional[bool] = None,
    ):
        self.merchant_id = merchant_id or settings.payfast_merchant_id
        self.merchant_key = merchant_key or settings.payfast_merchant_key.get_secret_value()
        self.passphrase = (
            passphrase if passphrase is not None else settings.payfast_passphrase.get_secret_value()
        )
        self.sandbox = settings.payfast_sandbox if sandbox is None else sandbox

    @property
    def process_url(self) -> str:
        return SANDBOX_URL if self.sandbox else LIVE_URL

    def generate_signature(self, data: Mapping[str, str]) -> str:
        payload = "&".join(
            f"{key}={quote(str(value).strip(), safe=_URI_COMPONENT_SAFE)}"
            for key, value in sorted(data.items())
        )
        return hashlib.md5((payload + self.passphrase).encode("utf-8")).hexdigest()

    def create_payment_request(self, request: PaymentRequest) -> PayFastRedirect:
        data = {
            "merchant_id": self.merchant_id,
            "merchant_key": self.merchant_key,
            "return_url": request.return_url,
            "cancel_url": request.cancel_url,
            "notify_url": request.notify_url,
            "email_address": request.customer_email,
            "m_payment_id": request.reference,
            "amount": f"{Decimal(request.amount):.2f}",
            "item_name": request.item_name,
        }
        data["signature"] = self.generate_signature(data)
        return PayFastRedirect(url=self.process_url, data=data)

    def validate_signature(self, form: Mapping[str, str]) -> bool:
        received = form.get("signature")
        if not received:
            return False
        fields = {k: v for k, v in form.items() if k != "signature"}
        return hmac.compare_digest(received, self.generate_signature(fields))

    def parse_notification(self, form: Mapping[str, str]) -> PaymentCallbackEvent:
        """
        Verify and normalize an ITN post.

        Raises:
            InvalidSignature: Signature missing or wrong
            ValidationException: Missing reference or unknown payment status
        """
        if not self.validate_signature(form):
            logger.warning("PayFast ITN rejected: bad signature for %s", form.get("m_payment_id"))
            raise InvalidSignature(PROCESSOR_NAME)

        reference = form.get("m_payment_id")
        if not reference:
            raise ValidationException("Missing m_payment_id", details={"source": PROCESSOR_NAME})

        raw_status = (form.get("payment_status") or "").upper()
        try:
            status = CallbackStatus(raw_status)
        except ValueError as exc:
            raise ValidationException(
                "Unknown payment status",
                details={"source": PROCESSOR_NAME, "payment_status": raw_status},
            ) from exc

        amount: Optional[Decimal] = None
        if form.get("amount_gross"):
            try:
                amount = Decimal(form["amount_gross"])
            except InvalidOperation:
                amount = None

        return PaymentCallbackEvent(
            reference=reference,
            status=status,
            processor=PROCESSOR_NAME,
            processor_payment_id=form.get("pf_payment_id"),
            amount=amount,
        )
