"""Contact-related data models."""

from dataclasses import dataclass, field

from .messages import ConversationRef


@dataclass(frozen=True)
class GroupDetails:
    """Group record as reported by getGroupDetails."""

    id: int
    name: str
    owner: str
    members: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Contact:
    """A friend or group shown in the contact list."""

    conversation: ConversationRef
    name: str
    members: list[str] = field(default_factory=list)  # groups only
