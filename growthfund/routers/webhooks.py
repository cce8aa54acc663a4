"""
Webhooks router — inbound events from the payment gateway.

Endpoints:
  POST /webhooks/payments  — Signed gateway events (checkout completions)

The body is verified against the Stripe-Signature header before it is
parsed. Every authentic event is acknowledged with 200, including ones that
are ignored or were already applied, so the gateway stops redelivering.
"""

import logging

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from growthfund.config import settings
from growthfund.database import get_db
from growthfund.exceptions import InvalidWebhookError
from growthfund.schemas.webhook import WebhookAck
from growthfund.security import verify_webhook_signature
from growthfund.services import payment_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/payments",
    response_model=WebhookAck,
    summary="Receive a payment gateway event",
)
async def payment_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_db),
):
    if not settings.PAYMENT_WEBHOOK_SECRET:
        logger.error("Payment webhook received but PAYMENT_WEBHOOK_SECRET is not set")
        raise InvalidWebhookError("Webhook endpoint is not configured")
    if not stripe_signature:
        raise InvalidWebhookError("Missing Stripe-Signature header")

    payload = await request.body()
    if not verify_webhook_signature(
        payload,
        stripe_signature,
        settings.PAYMENT_WEBHOOK_SECRET,
        settings.WEBHOOK_TOLERANCE_SECONDS,
    ):
        logger.warning("Rejected payment webhook with an invalid signature")
        raise InvalidWebhookError("Invalid webhook signature")

    event = payment_service.parse_event(payload)
    outcome = await payment_service.handle_payment_event(db, event)
    return WebhookAck(
        received=True,
        duplicate=outcome.duplicate,
        transaction_id=outcome.transaction_id,
    )
