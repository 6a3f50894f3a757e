"""Payment routes: Paystack checkout, verification, webhook and history."""

import json
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.app.config import get_settings
from decluttit.app.routes.auth import get_actor_dep
from decluttit.domain.actor import ActorContext
from decluttit.domain.errors import AuthenticationError, ValidationError
from decluttit.domain.schemas import (
    PaymentInitialize,
    PaymentInitializeResponse,
    PaymentVerifyResponse,
    TransactionResponse,
)
from decluttit.infra.database import get_db
from decluttit.services.payment_service import (
    SIGNATURE_HEADER,
    PaymentService,
    verify_webhook_signature,
)
from decluttit.services.transaction_service import TransactionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/initialize", response_model=PaymentInitializeResponse)
async def initialize_payment(
    data: PaymentInitialize,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    result = await PaymentService(db).initialize_payment(data.transaction_id, actor)
    await db.commit()
    return PaymentInitializeResponse(**result)


@router.get("/verify", response_model=PaymentVerifyResponse)
async def verify_payment(
    reference: str,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    result = await PaymentService(db).verify_payment(reference)
    await db.commit()
    return PaymentVerifyResponse(**result)


@router.post("/webhook")
async def payment_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    """Paystack event callback. Authenticated by signature, not by bearer token."""
    body_bytes = await request.body()
    try:
        verify_webhook_signature(
            body_bytes,
            request.headers.get(SIGNATURE_HEADER),
            get_settings().paystack_webhook_secret,
        )
    except AuthenticationError as exc:
        logger.warning("Rejected payment webhook: %s", exc.message)
        raise

    try:
        event = json.loads(body_bytes)
    except ValueError:
        raise ValidationError("Webhook body is not valid JSON")
    if not isinstance(event, dict):
        raise ValidationError("Webhook body must be a JSON object")

    await PaymentService(db).handle_webhook_event(event)
    await db.commit()
    return {"received": True}


@router.get("/history", response_model=list[TransactionResponse])
async def payment_history(
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    transactions = await TransactionService(db).payment_history(actor)
    return [TransactionResponse.model_validate(t) for t in transactions]
