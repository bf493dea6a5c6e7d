"""HistoryReconciler implementation."""

import asyncio
from typing import Protocol

from ..config import QUERY_RETRY_ATTEMPTS, QUERY_RETRY_DELAY
from ..errors import HistoryUnavailable, QueryFailed
from ..ledger import ILedgerQueryAdapter
from ..logging_config import get_logger
from ..models import ConversationRef, EventFilter, EventKind, RawEvent
from ..names import INameResolver
from .normalize import normalize
from .timeline import Timeline

logger = get_logger(__name__)


class IHistoryReconciler(Protocol):
    """Builds the initial timeline of a conversation from ledger history."""

    async def reconcile(self, conversation: ConversationRef) -> Timeline:
        """Query, normalize, dedup, sort and name the history."""
        ...


class HistoryReconciler:
    """Backfills a conversation timeline from historical queries."""

    def __init__(
        self,
        adapter: ILedgerQueryAdapter,
        names: INameResolver,
        self_address: str,
        retry_attempts: int = QUERY_RETRY_ATTEMPTS,
        retry_delay: float = QUERY_RETRY_DELAY,
    ):
        self._adapter = adapter
        self._names = names
        self._self_address = self_address.lower()
        self._retry_attempts = max(1, retry_attempts)
        self._retry_delay = retry_delay

    def filters_for(self, conversation: ConversationRef) -> list[EventFilter]:
        """Historical queries needed for a conversation.

        Direct: both payload kinds in both directions.
        Group: both payload kinds for the group id, any sender.
        """
        if conversation.is_direct:
            peer = conversation.key
            directions = ((self._self_address, peer), (peer, self._self_address))
            return [
                EventFilter(kind, sender=sender, recipient=recipient)
                for kind in (EventKind.DIRECT_TEXT, EventKind.DIRECT_ATTACHMENT)
                for sender, recipient in directions
            ]
        return [
            EventFilter(kind, group_id=conversation.key)
            for kind in (EventKind.GROUP_TEXT, EventKind.GROUP_ATTACHMENT)
        ]

    async def reconcile(self, conversation: ConversationRef) -> Timeline:
        """Build the ordered, deduplicated timeline for a conversation."""
        filters = self.filters_for(conversation)
        results = await asyncio.gather(
            *(self._query(f) for f in filters),
            return_exceptions=True,
        )

        raw_events: list[RawEvent] = []
        for event_filter, result in zip(filters, results):
            if isinstance(result, Exception):
                logger.error(
                    "History query %s failed for %s: %s",
                    event_filter.kind.value,
                    conversation,
                    result,
                    extra={"conversation": conversation},
                )
                raise HistoryUnavailable(conversation, result) from result
            raw_events.extend(result)

        # Sort and dedup depend only on event fields, never on names
        timeline = Timeline(normalize(event, conversation) for event in raw_events)

        names = await self._names.resolve_many(m.sender_address for m in timeline)
        named = Timeline(
            message.with_sender_name(names[message.sender_address])
            for message in timeline
        )

        logger.info(
            "Reconciled %s: %d events, %d messages",
            conversation,
            len(raw_events),
            len(named),
            extra={"conversation": conversation},
        )
        return named

    async def _query(self, event_filter: EventFilter) -> list[RawEvent]:
        attempt = 1
        while True:
            try:
                return await self._adapter.query_historical(event_filter)
            except QueryFailed as e:
                if attempt >= self._retry_attempts:
                    raise
                logger.warning(
                    "Query %s failed (attempt %d/%d): %s",
                    event_filter.kind.value,
                    attempt,
                    self._retry_attempts,
                    e,
                )
            attempt += 1
            await asyncio.sleep(self._retry_delay)
