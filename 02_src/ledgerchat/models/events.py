"""Raw ledger event data models."""

import re
from dataclasses import dataclass, field
from enum import Enum

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


class EventKind(str, Enum):
    """Event kinds emitted by the ledger."""

    DIRECT_TEXT = "DirectText"
    DIRECT_ATTACHMENT = "DirectAttachment"
    GROUP_TEXT = "GroupText"
    GROUP_ATTACHMENT = "GroupAttachment"
    FRIEND_ADDED = "FriendAdded"
    GROUP_CREATED = "GroupCreated"
    MEMBER_ADDED_TO_GROUP = "MemberAddedToGroup"

    @property
    def is_direct(self) -> bool:
        return self in (EventKind.DIRECT_TEXT, EventKind.DIRECT_ATTACHMENT)

    @property
    def is_group(self) -> bool:
        return self in (EventKind.GROUP_TEXT, EventKind.GROUP_ATTACHMENT)

    @property
    def is_attachment(self) -> bool:
        return self in (EventKind.DIRECT_ATTACHMENT, EventKind.GROUP_ATTACHMENT)


MESSAGE_KINDS = (
    EventKind.DIRECT_TEXT,
    EventKind.DIRECT_ATTACHMENT,
    EventKind.GROUP_TEXT,
    EventKind.GROUP_ATTACHMENT,
)

CONTACT_KINDS = (
    EventKind.FRIEND_ADDED,
    EventKind.GROUP_CREATED,
    EventKind.MEMBER_ADDED_TO_GROUP,
)


@dataclass(frozen=True)
class RawEvent:
    """A ledger-native event record. Immutable once observed.

    ``payload`` holds the kind-specific event arguments as the ledger
    reports them: ``{"message": ...}`` for text kinds and
    ``{"content_id": ..., "file_name": ...}`` for attachment kinds.
    ``sequence`` is the ledger emission position, used only as a tie-break.
    """

    kind: EventKind
    from_address: str
    timestamp: int
    sequence: int
    to_address: str | None = None  # direct kinds only
    group_id: int | None = None  # group kinds only
    payload: dict = field(default_factory=dict)
    block_number: int = 0


@dataclass(frozen=True)
class EventFilter:
    """Selects events by kind plus up to two constraints.

    A constraint left as ``None`` is a wildcard.
    """

    kind: EventKind
    sender: str | None = None
    recipient: str | None = None  # direct kinds
    group_id: int | None = None  # group kinds

    def matches(self, event: RawEvent) -> bool:
        """Check whether an event satisfies this filter."""
        if event.kind != self.kind:
            return False
        if self.sender is not None and not same_address(event.from_address, self.sender):
            return False
        if self.recipient is not None and not same_address(
            event.to_address, self.recipient
        ):
            return False
        if self.group_id is not None and event.group_id != int(self.group_id):
            return False
        return True


def same_address(a: str | None, b: str | None) -> bool:
    """Case-insensitive address comparison."""
    if a is None or b is None:
        return False
    return a.lower() == b.lower()


def is_address(value: str | None) -> bool:
    """Check that a string is a well-formed 0x-prefixed 20-byte address."""
    if not value:
        return False
    return ADDRESS_PATTERN.match(value.strip()) is not None
