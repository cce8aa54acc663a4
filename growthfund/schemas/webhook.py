"""Pydantic schemas for payment gateway webhooks."""

import uuid

from pydantic import BaseModel


class WebhookAck(BaseModel):
    received: bool = True
    duplicate: bool = False
    transaction_id: uuid.UUID | None = None
