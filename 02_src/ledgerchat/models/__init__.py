"""Core data models for ledgerchat."""

from .contacts import Contact, GroupDetails
from .events import (
    CONTACT_KINDS,
    MESSAGE_KINDS,
    EventFilter,
    EventKind,
    RawEvent,
    is_address,
    same_address,
)
from .messages import (
    UNKNOWN_NAME,
    AttachmentRef,
    ContentKind,
    ConversationKind,
    ConversationRef,
    Message,
    MessageId,
    OutgoingAttachment,
    OutgoingContent,
    OutgoingText,
)

__all__ = [
    # Events
    "EventKind",
    "RawEvent",
    "EventFilter",
    "MESSAGE_KINDS",
    "CONTACT_KINDS",
    "same_address",
    "is_address",
    # Messages
    "ConversationKind",
    "ConversationRef",
    "ContentKind",
    "AttachmentRef",
    "MessageId",
    "Message",
    "OutgoingText",
    "OutgoingAttachment",
    "OutgoingContent",
    "UNKNOWN_NAME",
    # Contacts
    "Contact",
    "GroupDetails",
]
