"""Payment service: Paystack webhook authentication and escrow confirmation.

The gateway's webhook is authenticated by an HMAC-SHA512 of the raw request
body (hex, header ``x-paystack-signature``). Verified ``charge.success``
events become PaymentConfirmation values, and only those move a
transaction from PENDING to ESCROWED.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.app.config import get_settings
from decluttit.domain.actor import ActorContext
from decluttit.domain.enums import PaymentEventStatus, TransactionStatus
from decluttit.domain.errors import (
    AuthenticationError,
    InvalidStateTransitionError,
    UnauthorizedError,
    ValidationError,
)
from decluttit.domain.models import Transaction, User
from decluttit.infra.paystack_client import PaystackClient, to_kobo
from decluttit.services.transaction_service import TransactionService

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-paystack-signature"
CHARGE_SUCCESS = "charge.success"
REFERENCE_PREFIX = "decluttit_"


def compute_webhook_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), raw_body, hashlib.sha512).hexdigest()


def verify_webhook_signature(raw_body: bytes, signature: Optional[str], secret: Optional[str]) -> None:
    """Raise AuthenticationError unless *signature* authenticates *raw_body*.

    An unset secret rejects every request.
    """
    if not secret:
        raise AuthenticationError("Payment webhook secret is not configured")
    if not signature:
        raise AuthenticationError("Missing payment webhook signature")

    expected = compute_webhook_signature(raw_body, secret)
    if not hmac.compare_digest(signature.strip().lower(), expected):
        raise AuthenticationError("Invalid payment webhook signature")


@dataclass(frozen=True)
class PaymentConfirmation:
    """Verified outcome reported by the payment collaborator."""

    transaction_id: str
    status: PaymentEventStatus
    reference: Optional[str] = None
    amount_kobo: Optional[int] = None


def _parse_kobo(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def expected_charge_kobo(txn: Transaction) -> int:
    """What the buyer must pay: item amount plus platform fee, in kobo."""
    return to_kobo(txn.amount + (txn.platform_fee or 0))


def confirmation_from_event(event: dict) -> Optional[PaymentConfirmation]:
    """Translate a verified webhook body; None for events that never escrow."""
    if event.get("event") != CHARGE_SUCCESS:
        return None
    data = event.get("data") or {}
    metadata = data.get("metadata") or {}
    transaction_id = metadata.get("transactionId") if isinstance(metadata, dict) else None
    if not transaction_id:
        return None
    return PaymentConfirmation(
        transaction_id=str(transaction_id),
        status=PaymentEventStatus.SUCCESS,
        reference=data.get("reference"),
        amount_kobo=_parse_kobo(data.get("amount")),
    )


class PaymentService:
    def __init__(
        self,
        db: AsyncSession,
        transactions: Optional[TransactionService] = None,
        client: Optional[PaystackClient] = None,
    ):
        self.db = db
        self.transactions = transactions or TransactionService(db)
        self.client = client

    def _client(self) -> PaystackClient:
        if self.client is None:
            self.client = PaystackClient()
        return self.client

    async def apply_confirmation(self, confirmation: PaymentConfirmation) -> Optional[Transaction]:
        """Escrow the transaction named by a successful confirmation.

        Failed payments change nothing. A confirmation for a transaction that
        is no longer PENDING (gateway redelivery, late event) is logged and
        acknowledged. A charge whose amount or reference does not match the
        transaction is logged and returns None.
        """
        if confirmation.status != PaymentEventStatus.SUCCESS:
            logger.warning(
                "Ignoring %s payment event for transaction %s",
                confirmation.status.value, confirmation.transaction_id,
            )
            return None

        txn = await self.transactions.get_or_404(confirmation.transaction_id)
        if txn.status != TransactionStatus.PENDING.value:
            logger.warning(
                "Ignoring payment confirmation for transaction %s in status %s",
                txn.id, txn.status,
            )
            return txn

        expected = expected_charge_kobo(txn)
        if confirmation.amount_kobo is not None and confirmation.amount_kobo != expected:
            logger.warning(
                "Ignoring payment confirmation for transaction %s: charged %s kobo, expected %s",
                txn.id, confirmation.amount_kobo, expected,
            )
            return None
        if (
            txn.payment_reference
            and confirmation.reference
            and confirmation.reference != txn.payment_reference
        ):
            logger.warning(
                "Ignoring payment confirmation for transaction %s: reference %s, expected %s",
                txn.id, confirmation.reference, txn.payment_reference,
            )
            return None

        try:
            return await self.transactions.mark_escrowed(txn.id, confirmation.reference)
        except InvalidStateTransitionError:
            # A concurrent confirmation escrowed it first
            logger.warning("Payment confirmation for transaction %s lost a race", txn.id)
            return await self.transactions.get_or_404(txn.id)

    async def handle_webhook_event(self, event: dict) -> Optional[Transaction]:
        confirmation = confirmation_from_event(event)
        if confirmation is None:
            logger.info("Ignoring payment webhook event %s", event.get("event"))
            return None
        return await self.apply_confirmation(confirmation)

    async def initialize_payment(self, transaction_id: str, actor: ActorContext) -> dict:
        """Open a gateway checkout for a PENDING transaction. Buyer only.

        The buyer is charged the item amount plus the platform fee.
        """
        txn = await self.transactions.get_or_404(transaction_id)
        if txn.buyer_id != actor.user_id:
            raise UnauthorizedError("Only the buyer can pay for this transaction")
        if txn.status != TransactionStatus.PENDING.value:
            raise InvalidStateTransitionError(
                TransactionStatus(txn.status), {TransactionStatus.PENDING}, "pay",
            )

        buyer = await self.db.get(User, txn.buyer_id)
        settings = get_settings()
        amount_kobo = expected_charge_kobo(txn)
        data = await self._client().initialize(
            email=buyer.email,
            amount_kobo=amount_kobo,
            reference=f"{REFERENCE_PREFIX}{txn.id}",
            callback_url=f"{settings.frontend_url}/transactions/{txn.id}/payment/callback",
            metadata={"transactionId": txn.id},
        )

        txn.payment_reference = data.get("reference") or f"{REFERENCE_PREFIX}{txn.id}"
        await self.db.flush()
        logger.info("Payment initialized for transaction %s (%s kobo)", txn.id, amount_kobo)
        return {
            "authorization_url": data.get("authorization_url"),
            "reference": txn.payment_reference,
        }

    async def verify_payment(self, reference: str) -> dict:
        """Ask the gateway about *reference* and escrow on success."""
        if not reference or not reference.strip():
            raise ValidationError("Reference required")

        data = await self._client().verify(reference.strip())
        status = data.get("status")
        metadata = data.get("metadata") or {}
        transaction_id = metadata.get("transactionId") if isinstance(metadata, dict) else None

        txn = None
        if status == PaymentEventStatus.SUCCESS.value and transaction_id:
            txn = await self.apply_confirmation(
                PaymentConfirmation(
                    transaction_id=str(transaction_id),
                    status=PaymentEventStatus.SUCCESS,
                    reference=data.get("reference") or reference,
                    amount_kobo=_parse_kobo(data.get("amount")),
                )
            )
        return {
            "verified": txn is not None,
            "status": status,
            "transaction_id": txn.id if txn is not None else transaction_id,
        }
