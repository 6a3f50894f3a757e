"""Dispute routes: open, evidence, arbitrator queue and resolution."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.app.routes.auth import get_actor_dep, require_arbitrator
from decluttit.domain.actor import ActorContext
from decluttit.domain.schemas import (
    DisputeCreate,
    DisputeEvidence,
    DisputeResolve,
    DisputeResponse,
)
from decluttit.infra.database import get_db
from decluttit.services.dispute_service import DisputeService

router = APIRouter(prefix="/api/disputes", tags=["disputes"])


@router.post("/transactions/{transaction_id}", response_model=DisputeResponse, status_code=201)
async def open_dispute(
    transaction_id: str,
    data: DisputeCreate,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    dispute = await DisputeService(db).open_dispute(
        transaction_id, actor, data.reason, data.description, data.evidence,
    )
    await db.commit()
    await db.refresh(dispute)
    return DisputeResponse.model_validate(dispute)


@router.get("/mine", response_model=list[DisputeResponse])
async def my_disputes(
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    disputes = await DisputeService(db).list_disputes_for_user(actor)
    return [DisputeResponse.model_validate(d) for d in disputes]


@router.get("/open", response_model=list[DisputeResponse])
async def open_disputes(
    actor: ActorContext = Depends(require_arbitrator),
    db: AsyncSession = Depends(get_db),
):
    disputes = await DisputeService(db).list_open_disputes(actor)
    return [DisputeResponse.model_validate(d) for d in disputes]


@router.get("/{dispute_id}", response_model=DisputeResponse)
async def get_dispute(
    dispute_id: str,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    dispute = await DisputeService(db).get_dispute(dispute_id, actor)
    return DisputeResponse.model_validate(dispute)


@router.post("/{dispute_id}/evidence", response_model=DisputeResponse)
async def add_evidence(
    dispute_id: str,
    data: DisputeEvidence,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    dispute = await DisputeService(db).add_evidence(dispute_id, actor, data.evidence)
    await db.commit()
    return DisputeResponse.model_validate(dispute)


@router.post("/{dispute_id}/resolve", response_model=DisputeResponse)
async def resolve_dispute(
    dispute_id: str,
    data: DisputeResolve,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    dispute = await DisputeService(db).resolve_dispute(
        dispute_id, actor, data.resolution, data.refund_buyer,
    )
    await db.commit()
    return DisputeResponse.model_validate(dispute)
