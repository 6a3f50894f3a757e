"""Transaction service: creates trades and drives them through the state machine.

Every status change is an atomic conditional update::

    UPDATE transactions SET status = :to, ... WHERE id = :id AND status = :from

so of two concurrent writers racing on the same transaction exactly one
wins; the loser sees zero affected rows and gets InvalidStateTransitionError.
Each applied transition also writes a TransactionEvent audit row.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.domain.actor import ActorContext
from decluttit.domain.enums import (
    BuyerRequestStatus,
    ListingStatus,
    TransactionActor,
    TransactionStatus,
    TransactionTransition,
)
from decluttit.domain.errors import (
    ConflictError,
    InvalidStateTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from decluttit.domain.models import BuyerRequest, Listing, Transaction, TransactionEvent
from decluttit.services.fee_calculator import fee_percent, platform_fee
from decluttit.services.transaction_state_machine import (
    OPEN_STATES,
    PARTY_TRANSITIONS,
    TransactionStateMachine,
    actor_for,
)
from decluttit.services.trust_score import TrustScoreService

logger = logging.getLogger(__name__)

PAYMENT_HISTORY_STATES = (
    TransactionStatus.ESCROWED.value,
    TransactionStatus.RELEASED.value,
    TransactionStatus.REFUNDED.value,
)


@dataclass(frozen=True)
class TransactionListQuery:
    """Participant-scoped transaction listing filter."""

    user_id: str
    status: Optional[TransactionStatus] = None
    page: int = 1
    per_page: int = 20


class TransactionService:
    """Guarded mutations on Transaction records."""

    def __init__(
        self,
        db: AsyncSession,
        state_machine: Optional[TransactionStateMachine] = None,
        trust: Optional[TrustScoreService] = None,
    ):
        self.db = db
        self.state_machine = state_machine or TransactionStateMachine()
        self.trust = trust or TrustScoreService(db)

    # ── Reads ────────────────────────────────────────────────────────────────

    async def get_or_404(self, transaction_id: str) -> Transaction:
        txn = await self.db.get(Transaction, transaction_id)
        if txn is None:
            raise NotFoundError("Transaction", transaction_id)
        return txn

    async def get_transaction(self, transaction_id: str, actor: ActorContext) -> Transaction:
        """Return a transaction visible to its parties and to arbitrators."""
        txn = await self.get_or_404(transaction_id)
        if actor_for(txn, actor.user_id) is None and not actor.is_arbitrator:
            raise UnauthorizedError("Not authorized to view this transaction")
        return txn

    async def list_transactions(self, query: TransactionListQuery) -> tuple[list[Transaction], int]:
        """Return one page of the user's transactions, newest first, and the total."""
        involved = or_(
            Transaction.buyer_id == query.user_id,
            Transaction.seller_id == query.user_id,
        )
        conditions = [involved]
        if query.status is not None:
            conditions.append(Transaction.status == TransactionStatus(query.status).value)

        total = await self.db.scalar(
            select(func.count(Transaction.id)).where(*conditions)
        )
        result = await self.db.execute(
            select(Transaction)
            .where(*conditions)
            .order_by(Transaction.created_at.desc(), Transaction.id)
            .offset((query.page - 1) * query.per_page)
            .limit(query.per_page)
        )
        return list(result.scalars().all()), int(total or 0)

    async def get_events(self, transaction_id: str, actor: ActorContext) -> list[TransactionEvent]:
        """Return the audit timeline of a transaction, oldest first."""
        await self.get_transaction(transaction_id, actor)
        result = await self.db.execute(
            select(TransactionEvent)
            .where(TransactionEvent.transaction_id == transaction_id)
            .order_by(TransactionEvent.created_at.asc(), TransactionEvent.id)
        )
        return list(result.scalars().all())

    async def payment_history(self, actor: ActorContext) -> list[Transaction]:
        """Transactions where money moved (escrowed, released or refunded)."""
        result = await self.db.execute(
            select(Transaction)
            .where(
                or_(
                    Transaction.buyer_id == actor.user_id,
                    Transaction.seller_id == actor.user_id,
                ),
                Transaction.status.in_(PAYMENT_HISTORY_STATES),
            )
            .order_by(Transaction.paid_at.desc())
        )
        return list(result.scalars().all())

    # ── Create ───────────────────────────────────────────────────────────────

    async def create_transaction(
        self,
        listing_id: str,
        actor: ActorContext,
        request_id: Optional[str] = None,
    ) -> Transaction:
        """Open a PENDING transaction for *listing_id* with *actor* as buyer.

        The listing price and the platform fee are snapshotted here and
        never recomputed.
        """
        listing = await self.db.get(Listing, listing_id)
        if listing is None:
            raise NotFoundError("Listing", listing_id)
        if listing.seller_id == actor.user_id:
            raise ValidationError("Cannot buy your own listing")
        if listing.status != ListingStatus.ACTIVE.value:
            raise ConflictError(f"Listing {listing_id} is {listing.status}, not available")

        buyer_request = None
        if request_id is not None:
            buyer_request = await self.db.get(BuyerRequest, request_id)
            if buyer_request is None:
                raise NotFoundError("Buyer request", request_id)
            if buyer_request.buyer_id != actor.user_id:
                raise UnauthorizedError("Buyer request belongs to another user")
            if buyer_request.status != BuyerRequestStatus.ACTIVE.value:
                raise ConflictError(f"Buyer request {request_id} is {buyer_request.status}")

        await self._claim_listing(listing.id)

        amount = listing.price
        txn = Transaction(
            listing_id=listing.id,
            buyer_id=actor.user_id,
            seller_id=listing.seller_id,
            buyer_request_id=request_id,
            amount=amount,
            fee_percent=fee_percent(amount),
            platform_fee=platform_fee(amount),
            status=TransactionStatus.PENDING.value,
        )
        self.db.add(txn)
        await self.db.flush()

        if buyer_request is not None:
            buyer_request.status = BuyerRequestStatus.MATCHED.value

        self.db.add(TransactionEvent(
            transaction_id=txn.id,
            transition="create",
            actor=TransactionActor.BUYER.value,
            actor_id=actor.user_id,
            from_status=None,
            to_status=TransactionStatus.PENDING.value,
            data={"amount": str(amount), "platform_fee": str(txn.platform_fee)},
            created_at=datetime.now(timezone.utc),
        ))
        await self.db.flush()

        logger.info(
            "Transaction %s created: listing=%s buyer=%s seller=%s amount=%s fee=%s (%s%%)",
            txn.id, listing.id, actor.user_id, listing.seller_id,
            amount, txn.platform_fee, txn.fee_percent,
        )
        return txn

    async def _claim_listing(self, listing_id: str) -> None:
        """Raise ConflictError unless the listing is ACTIVE with no open transaction.

        Check and claim are one conditional UPDATE, so two buyers racing for
        the same listing cannot both get through.
        """
        open_trade = (
            select(Transaction.id)
            .where(
                Transaction.listing_id == listing_id,
                Transaction.status.in_([s.value for s in OPEN_STATES]),
            )
            .exists()
        )
        result = await self.db.execute(
            update(Listing)
            .where(
                Listing.id == listing_id,
                Listing.status == ListingStatus.ACTIVE.value,
                ~open_trade,
            )
            .values(updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(f"Listing {listing_id} already has a transaction in progress")

    # ── Transitions ──────────────────────────────────────────────────────────

    async def apply_transition(
        self,
        txn: Transaction,
        transition: TransactionTransition,
        actor: TransactionActor,
        actor_id: Optional[str],
        data: Optional[dict] = None,
        **values,
    ) -> Transaction:
        """Validate and atomically apply *transition* to *txn*.

        Extra column *values* are written in the same conditional update.
        """
        current = TransactionStatus(txn.status)
        target = self.state_machine.validate_transition(current, transition, actor)
        rule = self.state_machine.rule_for(transition)

        now = datetime.now(timezone.utc)
        changes = {"status": target.value, "updated_at": now}
        changes.update({field: now for field in rule.timestamps})
        changes.update(values)

        result = await self.db.execute(
            update(Transaction)
            .where(Transaction.id == txn.id, Transaction.status == current.value)
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        await self.db.refresh(txn)
        if result.rowcount != 1:
            # Another writer moved the transaction first
            raise InvalidStateTransitionError(
                TransactionStatus(txn.status), rule.from_statuses, transition.value,
            )

        self.db.add(TransactionEvent(
            transaction_id=txn.id,
            transition=transition.value,
            actor=actor.value,
            actor_id=actor_id,
            from_status=current.value,
            to_status=target.value,
            data=data,
            created_at=now,
        ))
        await self.db.flush()

        logger.info(
            "Transaction %s: %s -> %s (transition=%s, actor=%s, user=%s)",
            txn.id, current.value, target.value, transition.value, actor.value, actor_id,
        )
        return txn

    async def advance_transaction(
        self,
        transaction_id: str,
        actor: ActorContext,
        transition: TransactionTransition,
    ) -> Transaction:
        """Apply a party-driven transition (ship, confirm receipt, release, cancel)."""
        transition = TransactionTransition(transition)
        txn = await self.get_or_404(transaction_id)

        role = actor_for(txn, actor.user_id)
        if role is None:
            raise UnauthorizedError("Not a participant in this transaction")
        if transition not in PARTY_TRANSITIONS:
            raise ValidationError(
                f"Transition {transition.value} cannot be requested directly by a party"
            )

        await self.apply_transition(txn, transition, role, actor.user_id)

        if transition == TransactionTransition.RELEASE:
            await self._mark_listing_sold(txn)
            await self.trust.handle_transaction_complete(txn)
        elif transition == TransactionTransition.CANCEL:
            await self.trust.handle_transaction_complete(txn)

        return txn

    async def ship(self, transaction_id: str, actor: ActorContext) -> Transaction:
        return await self.advance_transaction(transaction_id, actor, TransactionTransition.SHIP)

    async def confirm_receipt(self, transaction_id: str, actor: ActorContext) -> Transaction:
        return await self.advance_transaction(
            transaction_id, actor, TransactionTransition.CONFIRM_RECEIPT,
        )

    async def release_funds(self, transaction_id: str, actor: ActorContext) -> Transaction:
        return await self.advance_transaction(transaction_id, actor, TransactionTransition.RELEASE)

    async def cancel(self, transaction_id: str, actor: ActorContext) -> Transaction:
        return await self.advance_transaction(transaction_id, actor, TransactionTransition.CANCEL)

    async def mark_escrowed(
        self,
        transaction_id: str,
        reference: Optional[str] = None,
    ) -> Transaction:
        """PENDING -> ESCROWED on payment collaborator confirmation."""
        txn = await self.get_or_404(transaction_id)
        values = {}
        if reference:
            values["payment_reference"] = reference
        return await self.apply_transition(
            txn,
            TransactionTransition.ESCROW,
            TransactionActor.PAYMENT_PROVIDER,
            None,
            data={"reference": reference} if reference else None,
            **values,
        )

    async def settle_dispute(
        self,
        txn: Transaction,
        refund_buyer: bool,
        arbitrator_id: str,
    ) -> Transaction:
        """DISPUTED -> REFUNDED or RELEASED as decided by an arbitrator."""
        transition = (
            TransactionTransition.RESOLVE_REFUND
            if refund_buyer
            else TransactionTransition.RESOLVE_RELEASE
        )
        await self.apply_transition(
            txn, transition, TransactionActor.ARBITRATOR, arbitrator_id,
            data={"refund_buyer": refund_buyer},
        )
        if not refund_buyer:
            await self._mark_listing_sold(txn)
        return txn

    async def _mark_listing_sold(self, txn: Transaction) -> None:
        listing = await self.db.get(Listing, txn.listing_id)
        if listing is not None:
            listing.status = ListingStatus.SOLD.value
            await self.db.flush()


