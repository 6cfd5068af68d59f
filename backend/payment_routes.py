import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from schemas import PaymentIntentRequest
from stripe_service import StripeService

logger = logging.getLogger(__name__)

payment_router = APIRouter(tags=["Payments"])


def get_stripe_service(request: Request) -> StripeService:
    return request.app.state.stripe_service


@payment_router.post("/create-payment-intent")
async def create_payment_intent(
    payload: PaymentIntentRequest,
    stripe_service: StripeService = Depends(get_stripe_service),
):
    if not stripe_service.enabled:
        raise HTTPException(status_code=503, detail="Payments are not configured")

    result = await stripe_service.create_payment_intent(payload.amount)
    if not result.get("success"):
        raise HTTPException(status_code=502, detail="Payment processor error")

    logger.info("Created payment intent %s amount=%s", result.get("payment_intent_id"), payload.amount)
    return {"clientSecret": result["client_secret"]}
