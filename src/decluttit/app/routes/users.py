"""User routes: trust score reads and arbitrator ID verification."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.app.routes.auth import get_actor_dep, require_arbitrator
from decluttit.domain.actor import ActorContext
from decluttit.domain.errors import NotFoundError
from decluttit.domain.models import User
from decluttit.domain.schemas import TrustScoreResponse, VerificationUpdate
from decluttit.infra.database import get_db
from decluttit.services.trust_score import TrustScoreService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/{user_id}/trust-score", response_model=TrustScoreResponse)
async def get_trust_score(user_id: str, db: AsyncSession = Depends(get_db)):
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return TrustScoreResponse(user_id=user.id, trust_score=user.trust_score)


@router.post("/me/trust-score", response_model=TrustScoreResponse)
async def recompute_my_trust_score(
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    score = await TrustScoreService(db).recompute(actor.user_id)
    await db.commit()
    return TrustScoreResponse(user_id=actor.user_id, trust_score=score)


@router.post("/{user_id}/verification", response_model=TrustScoreResponse)
async def verify_user(
    user_id: str,
    data: VerificationUpdate,
    actor: ActorContext = Depends(require_arbitrator),
    db: AsyncSession = Depends(get_db),
):
    score = await TrustScoreService(db).handle_id_verification(user_id, data.level)
    await db.commit()
    logger.info("User %s verified as %s by %s", user_id, data.level.value, actor.user_id)
    return TrustScoreResponse(user_id=user_id, trust_score=score)
