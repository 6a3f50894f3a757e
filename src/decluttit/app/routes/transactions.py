"""Transaction routes: party-driven lifecycle actions and the audit timeline."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.app.routes.auth import get_actor_dep
from decluttit.domain.actor import ActorContext
from decluttit.domain.enums import TransactionStatus, TransactionTransition
from decluttit.domain.schemas import (
    TransactionEventResponse,
    TransactionPage,
    TransactionResponse,
    TransitionRequest,
)
from decluttit.infra.database import get_db
from decluttit.services.transaction_service import TransactionListQuery, TransactionService

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.get("", response_model=TransactionPage)
async def list_transactions(
    status: TransactionStatus | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    query = TransactionListQuery(user_id=actor.user_id, status=status, page=page, per_page=per_page)
    transactions, total = await TransactionService(db).list_transactions(query)
    return TransactionPage(
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: str,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    txn = await TransactionService(db).get_transaction(transaction_id, actor)
    return TransactionResponse.model_validate(txn)


@router.get("/{transaction_id}/timeline", response_model=list[TransactionEventResponse])
async def get_timeline(
    transaction_id: str,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    events = await TransactionService(db).get_events(transaction_id, actor)
    return [TransactionEventResponse.model_validate(e) for e in events]


async def _advance(
    transaction_id: str,
    transition: TransactionTransition,
    actor: ActorContext,
    db: AsyncSession,
) -> TransactionResponse:
    txn = await TransactionService(db).advance_transaction(transaction_id, actor, transition)
    await db.commit()
    return TransactionResponse.model_validate(txn)


@router.post("/{transaction_id}/transition", response_model=TransactionResponse)
async def transition_transaction(
    transaction_id: str,
    data: TransitionRequest,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    return await _advance(transaction_id, data.transition, actor, db)


@router.post("/{transaction_id}/ship", response_model=TransactionResponse)
async def ship(
    transaction_id: str,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    return await _advance(transaction_id, TransactionTransition.SHIP, actor, db)


@router.post("/{transaction_id}/confirm", response_model=TransactionResponse)
async def confirm_receipt(
    transaction_id: str,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    return await _advance(transaction_id, TransactionTransition.CONFIRM_RECEIPT, actor, db)


@router.post("/{transaction_id}/release", response_model=TransactionResponse)
async def release_funds(
    transaction_id: str,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    return await _advance(transaction_id, TransactionTransition.RELEASE, actor, db)


@router.post("/{transaction_id}/cancel", response_model=TransactionResponse)
async def cancel(
    transaction_id: str,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    return await _advance(transaction_id, TransactionTransition.CANCEL, actor, db)
