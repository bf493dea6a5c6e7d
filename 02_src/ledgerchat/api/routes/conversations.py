"""Conversation API routes."""

import base64
import binascii
from typing import Literal, Union

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ...app import Application
from ...conversation import ConversationSession, is_image
from ...models import (
    AttachmentRef,
    ConversationRef,
    Message,
    OutgoingAttachment,
    OutgoingText,
)
from ..errors import to_http_error


class OpenRequest(BaseModel):
    """Request model for selecting a conversation."""

    kind: Literal["direct", "group"]
    key: Union[int, str]


class TextRequest(BaseModel):
    """Request model for sending text."""

    text: str


class AttachmentRequest(BaseModel):
    """Request model for sending a file (base64 encoded)."""

    file_name: str
    data: str


class MessageResponse(BaseModel):
    """Response model for a timeline message."""

    timestamp: int
    sequence: int
    event_kind: str
    sender_address: str
    sender_name: str | None
    content_kind: str
    text: str | None = None
    content_id: str | None = None
    file_name: str | None = None
    url: str | None = None
    is_image: bool = False


class ConversationResponse(BaseModel):
    """Response model for the current conversation."""

    kind: str | None
    key: Union[int, str, None]
    state: str
    stale: bool
    sending: bool
    error: str | None
    messages: list[MessageResponse]


class SendResponse(BaseModel):
    """Response model for a confirmed send."""

    operation: str
    block_number: int
    content_id: str | None = None


def create_conversations_router(app: Application) -> APIRouter:
    """Create conversations router."""
    router = APIRouter(prefix="/api/conversations", tags=["conversations"])

    def message_to_dict(message: Message) -> dict:
        data = {
            "timestamp": message.timestamp,
            "sequence": message.id.sequence,
            "event_kind": message.id.kind.value,
            "sender_address": message.sender_address,
            "sender_name": message.sender_name,
            "content_kind": message.content_kind.value,
        }
        if isinstance(message.body, AttachmentRef):
            data.update(
                content_id=message.body.content_id,
                file_name=message.body.file_name,
                url=app.blob_store.gateway_url(message.body.content_id),
                is_image=is_image(message.body.file_name),
            )
        elif isinstance(message.body, str):
            data["text"] = message.body
        return data

    def session_to_dict(session: ConversationSession | None) -> dict:
        if session is None:
            return {
                "kind": None,
                "key": None,
                "state": "closed",
                "stale": False,
                "sending": app.sender.sending,
                "error": None,
                "messages": [],
            }
        return {
            "kind": session.conversation.kind.value,
            "key": session.conversation.key,
            "state": session.state.value,
            "stale": session.stale,
            "sending": app.sender.sending,
            "error": str(session.error) if session.error else None,
            "messages": [message_to_dict(m) for m in session.timeline],
        }

    def current_session() -> ConversationSession:
        session = app.conversations.current
        if session is None:
            raise HTTPException(status_code=404, detail="No conversation selected")
        return session

    @router.post("/open", response_model=ConversationResponse)
    async def open_conversation(request: OpenRequest) -> dict:
        """Select a conversation: reconcile history and follow live events."""
        try:
            conversation = ConversationRef(request.kind, request.key)
            session = await app.conversations.open(conversation)
            return session_to_dict(session)
        except Exception as e:
            raise to_http_error(e)

    @router.get("/current", response_model=ConversationResponse)
    async def get_current() -> dict:
        """Get the open conversation and its timeline."""
        return session_to_dict(app.conversations.current)

    @router.post("/current/retry", response_model=ConversationResponse)
    async def retry_current() -> dict:
        """Reopen the current conversation after a failure."""
        try:
            current_session()
            session = await app.conversations.retry()
            return session_to_dict(session)
        except Exception as e:
            raise to_http_error(e)

    @router.post("/current/messages", response_model=SendResponse)
    async def send_text(request: TextRequest) -> dict:
        """Send a text message to the open conversation."""
        try:
            session = current_session()
            result = await app.sender.send(
                session.conversation, OutgoingText(request.text)
            )
            return {
                "operation": result.operation,
                "block_number": result.receipt.block_number,
            }
        except Exception as e:
            raise to_http_error(e)

    @router.post("/current/attachments", response_model=SendResponse)
    async def send_attachment(request: AttachmentRequest) -> dict:
        """Upload a file and send its reference to the open conversation."""
        try:
            session = current_session()
            try:
                data = base64.b64decode(request.data, validate=True)
            except binascii.Error as e:
                raise ValueError("Attachment data is not valid base64") from e
            result = await app.sender.send(
                session.conversation, OutgoingAttachment(data, request.file_name)
            )
            return {
                "operation": result.operation,
                "block_number": result.receipt.block_number,
                "content_id": result.content_id,
            }
        except Exception as e:
            raise to_http_error(e)

    @router.delete("/current", response_model=ConversationResponse)
    async def close_current() -> dict:
        """Deselect the open conversation."""
        await app.conversations.close()
        return session_to_dict(None)

    return router
