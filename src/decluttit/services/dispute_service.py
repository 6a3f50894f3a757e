"""Dispute Service: opens, tracks and resolves contested transactions."""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.domain.actor import ActorContext
from decluttit.domain.enums import DisputeStatus, TransactionStatus, TransactionTransition
from decluttit.domain.errors import (
    ConflictError,
    InvalidStateTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from decluttit.domain.models import Dispute
from decluttit.services.transaction_service import TransactionService
from decluttit.services.transaction_state_machine import actor_for
from decluttit.services.trust_score import TrustScoreService

logger = logging.getLogger(__name__)


class DisputeService:
    """Enforces one dispute per transaction and arbitrated, one-way resolution."""

    def __init__(
        self,
        db: AsyncSession,
        transactions: Optional[TransactionService] = None,
        trust: Optional[TrustScoreService] = None,
    ):
        self.db = db
        self.trust = trust or TrustScoreService(db)
        self.transactions = transactions or TransactionService(db, trust=self.trust)

    async def get_or_404(self, dispute_id: str) -> Dispute:
        dispute = await self.db.get(Dispute, dispute_id)
        if dispute is None:
            raise NotFoundError("Dispute", dispute_id)
        return dispute

    async def find_for_transaction(self, transaction_id: str) -> Dispute | None:
        result = await self.db.execute(
            select(Dispute).where(Dispute.transaction_id == transaction_id)
        )
        return result.scalar_one_or_none()

    async def open_dispute(
        self,
        transaction_id: str,
        actor: ActorContext,
        reason: str,
        description: str,
        evidence: Optional[list[str]] = None,
    ) -> Dispute:
        """Contest a transaction, moving it to DISPUTED.

        The other party becomes the respondent.
        """
        if not reason or not reason.strip():
            raise ValidationError("Dispute reason is required")
        if not description or not description.strip():
            raise ValidationError("Dispute description is required")

        txn = await self.transactions.get_or_404(transaction_id)
        role = actor_for(txn, actor.user_id)
        if role is None:
            raise UnauthorizedError("Not authorized to dispute this transaction")

        if await self.find_for_transaction(transaction_id) is not None:
            raise ConflictError("Dispute already exists for this transaction")

        respondent_id = txn.seller_id if actor.user_id == txn.buyer_id else txn.buyer_id
        dispute = Dispute(
            transaction_id=transaction_id,
            complainant_id=actor.user_id,
            respondent_id=respondent_id,
            reason=reason.strip(),
            description=description.strip(),
            evidence=list(evidence or []),
            status=DisputeStatus.OPEN.value,
        )

        # Guard the state before inserting so a terminal transaction leaves no row
        self.transactions.state_machine.validate_transition(
            TransactionStatus(txn.status), TransactionTransition.DISPUTE, role,
        )
        self.db.add(dispute)
        try:
            await self.db.flush()
        except IntegrityError:
            # Lost a race with a concurrent open_dispute on the same transaction
            await self.db.rollback()
            raise ConflictError("Dispute already exists for this transaction")

        await self.transactions.apply_transition(
            txn, TransactionTransition.DISPUTE, role, actor.user_id,
            data={"dispute_id": dispute.id, "reason": dispute.reason},
        )

        logger.info(
            "Dispute %s opened on transaction %s by %s against %s",
            dispute.id, transaction_id, actor.user_id, respondent_id,
        )
        return dispute

    async def get_dispute(self, dispute_id: str, actor: ActorContext) -> Dispute:
        dispute = await self.get_or_404(dispute_id)
        if actor.user_id not in (dispute.complainant_id, dispute.respondent_id) and not actor.is_arbitrator:
            raise UnauthorizedError("Not authorized to view this dispute")
        return dispute

    async def list_disputes_for_user(self, actor: ActorContext) -> list[Dispute]:
        result = await self.db.execute(
            select(Dispute)
            .where(
                or_(
                    Dispute.complainant_id == actor.user_id,
                    Dispute.respondent_id == actor.user_id,
                )
            )
            .order_by(Dispute.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_open_disputes(self, actor: ActorContext) -> list[Dispute]:
        """Arbitrator work queue, oldest first."""
        if not actor.is_arbitrator:
            raise UnauthorizedError("Only arbitrators can list open disputes")
        result = await self.db.execute(
            select(Dispute)
            .where(Dispute.status == DisputeStatus.OPEN.value)
            .order_by(Dispute.created_at.asc())
        )
        return list(result.scalars().all())

    async def add_evidence(
        self,
        dispute_id: str,
        actor: ActorContext,
        evidence: str | list[str],
    ) -> Dispute:
        """Append evidence, preserving order. Complainant only, OPEN only."""
        dispute = await self.get_or_404(dispute_id)
        if dispute.complainant_id != actor.user_id:
            raise UnauthorizedError("Only complainant can add evidence")
        _require_open(dispute, "add evidence to")

        items = [evidence] if isinstance(evidence, str) else list(evidence)
        items = [item for item in items if item and item.strip()]
        if not items:
            raise ValidationError("Evidence must not be empty")

        # Reassign so the JSON column registers the change
        dispute.evidence = list(dispute.evidence or []) + items
        await self.db.flush()
        return dispute

    async def resolve_dispute(
        self,
        dispute_id: str,
        actor: ActorContext,
        resolution: str,
        refund_buyer: bool,
    ) -> Dispute:
        """Close a dispute and settle its transaction as REFUNDED or RELEASED.

        Requires the arbitrator capability; an arbitrator who is a party to
        the transaction may not rule on it. Only the respondent's trust score
        is recomputed.
        """
        if not actor.is_arbitrator:
            raise UnauthorizedError("Only arbitrators can resolve disputes")
        dispute = await self.get_or_404(dispute_id)
        if actor.user_id in (dispute.complainant_id, dispute.respondent_id):
            raise UnauthorizedError("Arbitrator cannot resolve a dispute they are party to")
        _require_open(dispute, "resolve")
        if not resolution or not resolution.strip():
            raise ValidationError("Resolution text is required")

        txn = await self.transactions.get_or_404(dispute.transaction_id)
        await self.transactions.settle_dispute(txn, refund_buyer, actor.user_id)

        dispute.status = DisputeStatus.RESOLVED.value
        dispute.resolution = resolution.strip()
        dispute.refund_buyer = refund_buyer
        dispute.resolved_by = actor.user_id
        dispute.resolved_at = datetime.now(timezone.utc)
        await self.db.flush()

        await self.trust.handle_dispute_resolved(dispute)

        logger.info(
            "Dispute %s resolved by %s: refund_buyer=%s, transaction %s -> %s",
            dispute.id, actor.user_id, refund_buyer, txn.id, txn.status,
        )
        return dispute


def _require_open(dispute: Dispute, action: str) -> None:
    if dispute.status != DisputeStatus.OPEN.value:
        raise InvalidStateTransitionError(
            DisputeStatus(dispute.status), {DisputeStatus.OPEN}, action, subject="dispute",
        )
