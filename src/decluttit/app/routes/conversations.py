"""Conversation routes: per-transaction messaging between the two parties."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.app.routes.auth import get_actor_dep
from decluttit.domain.actor import ActorContext
from decluttit.domain.schemas import ConversationResponse, MessageCreate, MessageResponse
from decluttit.infra.database import get_db
from decluttit.services.conversation_service import ConversationService

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    conversations = await ConversationService(db).list_conversations(actor)
    return [ConversationResponse.model_validate(c) for c in conversations]


@router.post("/transactions/{transaction_id}", response_model=ConversationResponse)
async def start_conversation(
    transaction_id: str,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    conversation = await ConversationService(db).start_conversation(transaction_id, actor)
    await db.commit()
    await db.refresh(conversation)
    return ConversationResponse.model_validate(conversation)


@router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    conversation_id: str,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    messages = await ConversationService(db).list_messages(conversation_id, actor)
    return [MessageResponse.model_validate(m) for m in messages]


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    conversation_id: str,
    data: MessageCreate,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    message = await ConversationService(db).send_message(conversation_id, actor, data.body)
    await db.commit()
    await db.refresh(message)
    return MessageResponse.model_validate(message)


@router.post("/{conversation_id}/read")
async def mark_read(
    conversation_id: str,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    updated = await ConversationService(db).mark_read(conversation_id, actor)
    await db.commit()
    return {"marked_read": updated}
