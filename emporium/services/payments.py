"""Payment gateway adapter (Stripe PaymentIntents)."""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

import stripe

from emporium.errors import PaymentGatewayError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentIntent:
    intent_id: str
    client_secret: str


def to_minor_units(amount: Decimal) -> int:
    """Convert a currency amount to cents."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentGateway:
    def create_payment_intent(
        self,
        amount: Decimal,
        currency: str,
        metadata: Optional[dict] = None,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        raise NotImplementedError

    def construct_event(self, payload: bytes, signature: str) -> dict:
        raise NotImplementedError


class StripeGateway(PaymentGateway):
    def __init__(self, secret_key: str, webhook_secret: str):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret

    def create_payment_intent(self, amount, currency, metadata=None, idempotency_key=None) -> PaymentIntent:
        if not self.secret_key:
            raise PaymentGatewayError("Payment gateway is not configured")
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.secret_key,
                amount=to_minor_units(amount),
                currency=currency,
                automatic_payment_methods={"enabled": True},
                metadata={k: str(v) for k, v in (metadata or {}).items()},
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as exc:
            logger.error("Payment intent creation failed: %s", exc, exc_info=True)
            raise PaymentGatewayError("Failed to create payment intent") from exc
        return PaymentIntent(intent_id=intent["id"], client_secret=intent["client_secret"])

    def construct_event(self, payload: bytes, signature: str) -> dict:
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            raise ValidationError("Webhook error") from exc
        return event.to_dict() if hasattr(event, "to_dict") else dict(event)
