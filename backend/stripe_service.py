import logging
from typing import Any, Dict, Optional

import stripe

logger = logging.getLogger(__name__)


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


class StripeService:
    """Stripe PaymentIntents helper."""

    def __init__(
        self,
        secret_key: str,
        currency: str = "usd",
        timeout_seconds: float = 20.0,
        client: Optional[stripe.StripeClient] = None,
    ) -> None:
        self.secret_key = secret_key
        self.currency = currency
        self.timeout_seconds = timeout_seconds
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.secret_key)

    def _get_client(self) -> stripe.StripeClient:
        if self._client is None:
            self._client = stripe.StripeClient(
                self.secret_key,
                http_client=stripe.HTTPXClient(timeout=self.timeout_seconds),
            )
        return self._client

    async def create_payment_intent(self, amount: float) -> Dict[str, Any]:
        if not self.enabled:
            return {"success": False, "error": "Stripe is not configured"}

        try:
            intent = await self._get_client().v1.payment_intents.create_async(
                params={
                    "amount": to_minor_units(amount),
                    "currency": self.currency,
                    "payment_method_types": ["card"],
                }
            )
        except stripe.StripeError as exc:
            logger.error(
                "Stripe payment intent rejected status=%s code=%s message=%s",
                exc.http_status,
                exc.code,
                exc.user_message,
            )
            return {"success": False, "error": exc.user_message or "Payment intent creation failed"}

        if not intent.client_secret:
            logger.error("Stripe payment intent %s has no client secret", intent.id)
            return {"success": False, "error": "Payment intent creation failed"}

        return {
            "success": True,
            "payment_intent_id": intent.id,
            "client_secret": intent.client_secret,
            "amount": intent.amount,
        }
