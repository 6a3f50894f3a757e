"""Conversation service: one message thread per transaction, parties only."""

import logging
from datetime import datetime, timezone

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.domain.actor import ActorContext
from decluttit.domain.errors import NotFoundError, UnauthorizedError, ValidationError
from decluttit.domain.models import Conversation, Message, Transaction

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


class ConversationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_or_404(self, conversation_id: str) -> Conversation:
        conversation = await self.db.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation", conversation_id)
        return conversation

    async def get_conversation(self, conversation_id: str, actor: ActorContext) -> Conversation:
        conversation = await self.get_or_404(conversation_id)
        if actor.user_id not in (conversation.buyer_id, conversation.seller_id):
            raise UnauthorizedError("Not a participant in this conversation")
        return conversation

    async def start_conversation(self, transaction_id: str, actor: ActorContext) -> Conversation:
        """Return the transaction's thread, creating it on first use."""
        txn = await self.db.get(Transaction, transaction_id)
        if txn is None:
            raise NotFoundError("Transaction", transaction_id)
        if actor.user_id not in (txn.buyer_id, txn.seller_id):
            raise UnauthorizedError("Not a participant in this transaction")

        result = await self.db.execute(
            select(Conversation).where(Conversation.transaction_id == transaction_id)
        )
        conversation = result.scalar_one_or_none()
        if conversation is not None:
            return conversation

        conversation = Conversation(
            transaction_id=transaction_id,
            buyer_id=txn.buyer_id,
            seller_id=txn.seller_id,
        )
        self.db.add(conversation)
        await self.db.flush()
        logger.info("Conversation %s opened for transaction %s", conversation.id, transaction_id)
        return conversation

    async def list_conversations(self, actor: ActorContext) -> list[Conversation]:
        result = await self.db.execute(
            select(Conversation)
            .where(
                or_(
                    Conversation.buyer_id == actor.user_id,
                    Conversation.seller_id == actor.user_id,
                )
            )
            .order_by(Conversation.last_message_at.desc(), Conversation.created_at.desc())
        )
        return list(result.scalars().all())

    async def send_message(self, conversation_id: str, actor: ActorContext, body: str) -> Message:
        conversation = await self.get_conversation(conversation_id, actor)
        if not body or not body.strip():
            raise ValidationError("Message body must not be empty")
        if len(body) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Message exceeds {MAX_MESSAGE_LENGTH} characters")

        message = Message(
            conversation_id=conversation.id,
            sender_id=actor.user_id,
            body=body.strip(),
        )
        self.db.add(message)
        conversation.last_message_at = datetime.now(timezone.utc)
        await self.db.flush()
        return message

    async def list_messages(self, conversation_id: str, actor: ActorContext) -> list[Message]:
        await self.get_conversation(conversation_id, actor)
        result = await self.db.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc(), Message.id)
        )
        return list(result.scalars().all())

    async def mark_read(self, conversation_id: str, actor: ActorContext) -> int:
        """Mark messages from the other party as read. Returns the count."""
        await self.get_conversation(conversation_id, actor)
        result = await self.db.execute(
            update(Message)
            .where(
                Message.conversation_id == conversation_id,
                Message.sender_id != actor.user_id,
                Message.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
