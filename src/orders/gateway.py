"""
Payment gateway seam
Refunds go through a PaymentGateway; gateway callbacks are authenticated
with an HMAC-SHA256 signature over the raw request body
"""

import base64
import hashlib
import hmac
import uuid
from abc import ABC, abstractmethod
from typing import Optional

import structlog
from pydantic import BaseModel

logger = structlog.get_logger()


class RefundResult(BaseModel):
    success: bool
    refund_id: Optional[str] = None
    error: Optional[str] = None


class PaymentGateway(ABC):
    @abstractmethod
    def refund(self, payment_id: str, amount: float) -> RefundResult:
        pass


class ManualPaymentGateway(PaymentGateway):
    """Accepts every refund; used for local runs where refunds are settled by hand"""

    def refund(self, payment_id: str, amount: float) -> RefundResult:
        refund_id = f"manual-{uuid.uuid4()}"
        logger.info("Manual refund recorded", payment_id=payment_id, amount=amount, refund_id=refund_id)
        return RefundResult(success=True, refund_id=refund_id)


def sign_payload(raw_body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(raw_body: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    """Constant-time check of a base64 HMAC-SHA256 signature; False if anything is missing"""
    if not secret:
        logger.error("PAYMENT_WEBHOOK_SECRET not configured, rejecting callback")
        return False
    if not signature:
        return False
    expected = sign_payload(raw_body, secret)
    valid = hmac.compare_digest(expected.encode("ascii"), signature.strip().encode("ascii", "ignore"))
    if not valid:
        logger.warning("Invalid payment callback signature")
    return valid
