"""LiveMergeEngine implementation."""

import asyncio
from typing import Iterable

from ..logging_config import get_logger
from ..models import ConversationRef, Message, MessageId, RawEvent
from ..names import INameResolver
from .normalize import normalize
from .timeline import Timeline

logger = get_logger(__name__)


class LiveMergeEngine:
    """Appends relevant live events to the timeline of an open conversation.

    Until the backfilled timeline is attached, relevant events are held
    in a pending list and merged on attach. The backfill and the live
    feed may overlap, so every append goes through the timeline's id
    check.
    """

    def __init__(
        self,
        conversation: ConversationRef,
        self_address: str,
        names: INameResolver,
        timeline: Timeline | None = None,
    ):
        self._conversation = conversation
        self._self_address = self_address.lower()
        self._names = names
        self._timeline = timeline
        self._pending: list[Message] = []
        self._lock = asyncio.Lock()

    @property
    def timeline(self) -> Timeline | None:
        return self._timeline

    @property
    def pending(self) -> list[Message]:
        return self._pending.copy()

    def is_relevant(self, event: RawEvent) -> bool:
        """Check whether an event belongs to the open conversation."""
        if self._conversation.is_direct:
            if not event.kind.is_direct:
                return False
            if not event.from_address or not event.to_address:
                return False
            pair = {event.from_address.lower(), event.to_address.lower()}
            return pair == {self._self_address, self._conversation.key}

        if not event.kind.is_group or event.group_id is None:
            return False
        return int(event.group_id) == self._conversation.key

    async def on_live_event(self, event: RawEvent) -> Message | None:
        """Normalize and append a relevant, not yet seen event."""
        if not self.is_relevant(event):
            logger.debug(
                "Ignoring %s event #%s for %s",
                event.kind.value,
                event.sequence,
                self._conversation,
            )
            return None

        message = normalize(event, self._conversation)
        async with self._lock:
            if self._is_known(message.id):
                return None
            name = await self._names.resolve(message.sender_address)
            message = message.with_sender_name(name)
            if self._timeline is None:
                self._pending.append(message)
            else:
                self._timeline.add(message)
        return message

    def attach(self, timeline: Timeline) -> list[Message]:
        """Install the backfilled timeline and merge pending live messages."""
        self._timeline = timeline
        added = timeline.extend(self._pending)
        self._pending = []
        return added

    async def merge(self, messages: Iterable[Message]) -> list[Message]:
        """Merge an additional backfill through the same dedup path."""
        async with self._lock:
            if self._timeline is None:
                fresh = [m for m in messages if not self._is_known(m.id)]
                self._pending.extend(fresh)
                return fresh
            return self._timeline.extend(messages)

    def _is_known(self, message_id: MessageId) -> bool:
        if self._timeline is not None and message_id in self._timeline:
            return True
        return any(m.id == message_id for m in self._pending)
