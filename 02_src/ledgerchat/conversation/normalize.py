"""Normalization of raw ledger events into canonical messages."""

from ..models import (
    AttachmentRef,
    ContentKind,
    ConversationRef,
    EventKind,
    Message,
    MessageId,
    RawEvent,
)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")


def is_image(file_name: str | None) -> bool:
    """Classify an attachment as an image by its filename extension."""
    if not file_name:
        return False
    return file_name.lower().endswith(IMAGE_EXTENSIONS)


def normalize(event: RawEvent, conversation: ConversationRef) -> Message:
    """Turn a RawEvent into a Message.

    Never raises on payload content: a payload that does not fit its
    event kind yields an UNSUPPORTED message instead, so one malformed
    event cannot abort history reconstruction.
    """
    content_kind, body = _content_of(event)
    return Message(
        id=MessageId(event.timestamp, event.sequence, event.kind),
        sender_address=(event.from_address or "").lower(),
        conversation=conversation,
        content_kind=content_kind,
        body=body,
        timestamp=event.timestamp,
    )


def _content_of(event: RawEvent) -> tuple[ContentKind, str | AttachmentRef | None]:
    payload = event.payload if isinstance(event.payload, dict) else {}
    if not event.from_address:
        return ContentKind.UNSUPPORTED, None

    if event.kind in (EventKind.DIRECT_TEXT, EventKind.GROUP_TEXT):
        text = payload.get("message")
        if isinstance(text, str):
            return ContentKind.TEXT, text

    elif event.kind.is_attachment:
        content_id = payload.get("content_id")
        file_name = payload.get("file_name")
        if isinstance(content_id, str) and content_id:
            return ContentKind.ATTACHMENT, AttachmentRef(
                content_id=content_id,
                file_name=file_name if isinstance(file_name, str) else "",
            )

    return ContentKind.UNSUPPORTED, None
