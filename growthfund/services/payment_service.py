"""
Payment service — credits deposits completed through the hosted checkout.

The gateway calls POST /webhooks/payments after an out-of-band checkout. For
`checkout.session.completed` events whose metadata carries
{user_id, amount (dollars, decimal text), type: "deposit"}, the member's
account is credited and a completed deposit is written to the ledger, the
same pair of writes a verified deposit makes.

Exactly once:
  The gateway may deliver an event more than once. Each credit carries the
  idempotency key "checkout:<session id>" in a UNIQUE ledger column. A
  redelivery finds the existing record and changes nothing; two deliveries
  racing past that lookup collide on the constraint and the loser rolls back
  its balance change.

Events that can't be applied (unknown type, missing metadata, unknown user)
are acknowledged and logged so the gateway stops retrying; they need manual
reconciliation.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from growthfund.config import settings
from growthfund.exceptions import InvalidWebhookError
from growthfund.models.account import Account
from growthfund.models.transaction import TransactionKind
from growthfund.services import balance_service, ledger_service

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


@dataclass
class WebhookOutcome:
    handled: bool
    duplicate: bool = False
    transaction_id: uuid.UUID | None = None


def parse_event(payload: bytes) -> dict:
    """Decode a webhook body. Raises InvalidWebhookError if it isn't a JSON object."""
    try:
        event = json.loads(payload)
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise InvalidWebhookError("Webhook body is not valid JSON")
    if not isinstance(event, dict):
        raise InvalidWebhookError("Webhook body must be a JSON object")
    return event


def dollars_to_cents(amount: str) -> int | None:
    """Convert decimal dollar text to whole cents; None unless a cent amount within limits."""
    try:
        cents = Decimal(str(amount)) * 100
    except InvalidOperation:
        return None
    if not cents.is_finite() or cents <= 0 or cents != cents.to_integral_value():
        return None
    if cents > settings.MAX_TRANSACTION_CENTS:
        return None
    return int(cents)


async def handle_payment_event(db: AsyncSession, event: dict) -> WebhookOutcome:
    """Apply one verified gateway event."""
    event_type = event.get("type")
    if event_type != CHECKOUT_COMPLETED:
        logger.info("Ignoring payment event %s of type %s", event.get("id"), event_type)
        return WebhookOutcome(handled=False)

    data = event.get("data")
    session = data.get("object") if isinstance(data, dict) else None
    if not isinstance(session, dict):
        logger.error("Checkout event %s carries no session object", event.get("id"))
        return WebhookOutcome(handled=False)

    session_id = session.get("id")
    metadata = session.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}

    amount_cents = dollars_to_cents(metadata.get("amount", ""))
    try:
        user_id = uuid.UUID(str(metadata.get("user_id")))
    except ValueError:
        user_id = None

    if (
        not isinstance(session_id, str)
        or not session_id
        or user_id is None
        or amount_cents is None
    ):
        logger.error("Checkout session %s has missing or invalid metadata", session_id)
        return WebhookOutcome(handled=False)

    if metadata.get("type") != TransactionKind.DEPOSIT.value:
        logger.error(
            "Checkout session %s has unsupported type %r", session_id, metadata.get("type")
        )
        return WebhookOutcome(handled=False)

    idempotency_key = f"checkout:{session_id}"
    existing = await ledger_service.get_by_idempotency_key(db, idempotency_key)
    if existing is not None:
        logger.info("Checkout session %s already credited as %s", session_id, existing.id)
        return WebhookOutcome(handled=True, duplicate=True, transaction_id=existing.id)

    result = await db.execute(select(Account.id).where(Account.user_id == user_id))
    account_id = result.scalar_one_or_none()
    if account_id is None:
        logger.error("Checkout session %s references unknown user %s", session_id, user_id)
        return WebhookOutcome(handled=False)

    try:
        new_balance = await balance_service.apply_delta(db, account_id, amount_cents)
        txn = await ledger_service.record_completed(
            db,
            account_id=account_id,
            kind=TransactionKind.DEPOSIT,
            amount_cents=amount_cents,
            balance_after_cents=new_balance,
            description=f"Card payment - {session_id}",
            idempotency_key=idempotency_key,
        )
    except IntegrityError:
        # A concurrent delivery of the same session won the insert
        await db.rollback()
        logger.info("Checkout session %s credited concurrently; discarding", session_id)
        return WebhookOutcome(handled=True, duplicate=True)

    logger.info(
        "Credited %d cents to account %s from checkout session %s",
        amount_cents,
        account_id,
        session_id,
    )
    return WebhookOutcome(handled=True, transaction_id=txn.id)
