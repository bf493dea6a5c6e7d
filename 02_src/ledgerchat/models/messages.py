"""Canonical message data models."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import NamedTuple, Union

from .events import EventKind

UNKNOWN_NAME = "Unknown"


class ConversationKind(str, Enum):
    """Kinds of conversation."""

    DIRECT = "direct"
    GROUP = "group"


@dataclass(frozen=True)
class ConversationRef:
    """Identity of a conversation: a counterparty address or a group id.

    Addresses are stored lowercased so equality is case-insensitive;
    group ids are stored as ints so equality is numeric.
    """

    kind: ConversationKind
    key: Union[str, int]

    def __post_init__(self):
        kind = ConversationKind(self.kind)
        object.__setattr__(self, "kind", kind)
        if kind == ConversationKind.DIRECT:
            object.__setattr__(self, "key", str(self.key).lower())
        else:
            object.__setattr__(self, "key", int(self.key))

    @classmethod
    def direct(cls, address: str) -> "ConversationRef":
        return cls(ConversationKind.DIRECT, address)

    @classmethod
    def group(cls, group_id: int) -> "ConversationRef":
        return cls(ConversationKind.GROUP, group_id)

    @property
    def is_direct(self) -> bool:
        return self.kind == ConversationKind.DIRECT

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.key}"


class ContentKind(str, Enum):
    """Kinds of message content."""

    TEXT = "text"
    ATTACHMENT = "attachment"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class AttachmentRef:
    """Reference to an attachment stored in the blob store."""

    content_id: str
    file_name: str


class MessageId(NamedTuple):
    """Stable message key: ledger timestamp, emission position and kind."""

    timestamp: int
    sequence: int
    kind: EventKind


@dataclass(frozen=True)
class Message:
    """A normalized message in a conversation timeline."""

    id: MessageId
    sender_address: str
    conversation: ConversationRef
    content_kind: ContentKind
    body: Union[str, AttachmentRef, None]
    timestamp: int
    sender_name: str | None = None  # resolved lazily

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.id.timestamp, self.id.sequence)

    def with_sender_name(self, name: str) -> "Message":
        """Return a copy carrying the resolved display name."""
        return replace(self, sender_name=name)


@dataclass(frozen=True)
class OutgoingText:
    """Text content to send."""

    text: str


@dataclass(frozen=True)
class OutgoingAttachment:
    """File content to upload and send."""

    data: bytes
    file_name: str


OutgoingContent = Union[OutgoingText, OutgoingAttachment]
