"""ConversationSession and ConversationManager implementation."""

import asyncio
from enum import Enum
from typing import Callable, Protocol

from ..config import RESUBSCRIBE_DELAY
from ..errors import HistoryUnavailable, SubscriptionLost
from ..ledger import ILedgerQueryAdapter, SubscriptionHandle
from ..logging_config import get_logger
from ..models import ConversationKind, ConversationRef, EventKind, Message, RawEvent
from ..names import INameResolver
from .merge import LiveMergeEngine
from .reconciler import IHistoryReconciler

logger = get_logger(__name__)


SUBSCRIBED_KINDS = {
    ConversationKind.DIRECT: (EventKind.DIRECT_TEXT, EventKind.DIRECT_ATTACHMENT),
    ConversationKind.GROUP: (EventKind.GROUP_TEXT, EventKind.GROUP_ATTACHMENT),
}


class SessionState(str, Enum):
    """Lifecycle states of a conversation session."""

    CLOSED = "closed"
    OPENING = "opening"
    ACTIVE = "active"


class IConversationSession(Protocol):
    """Per-conversation lifecycle: open, accept appends, close."""

    async def open(self) -> None:
        """Subscribe, reconcile history and become active."""
        ...

    async def close(self) -> None:
        """Unsubscribe and discard the timeline."""
        ...


class ConversationSession:
    """One open conversation: Closed -> Opening -> Active -> Closed.

    Live callbacks capture the session generation and are ignored once
    the session is closed or a newer generation is current, so nothing
    from a closed session reaches any timeline.
    """

    def __init__(
        self,
        conversation: ConversationRef,
        generation: int,
        current_generation: Callable[[], int],
        adapter: ILedgerQueryAdapter,
        reconciler: IHistoryReconciler,
        names: INameResolver,
        self_address: str,
        resubscribe_delay: float = RESUBSCRIBE_DELAY,
    ):
        self._conversation = conversation
        self._generation = generation
        self._current_generation = current_generation
        self._adapter = adapter
        self._reconciler = reconciler
        self._names = names
        self._self_address = self_address.lower()
        self._resubscribe_delay = resubscribe_delay

        self._state = SessionState.CLOSED
        self._engine: LiveMergeEngine | None = None
        self._handles: list[SubscriptionHandle] = []
        self._resubscribe_task: asyncio.Task | None = None
        self._losses = 0
        self.error: Exception | None = None
        self.stale = False

    @property
    def conversation(self) -> ConversationRef:
        return self._conversation

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def timeline(self) -> list[Message]:
        """Current timeline (empty unless active)."""
        if self._state != SessionState.ACTIVE or self._engine is None:
            return []
        if self._engine.timeline is None:
            return []
        return self._engine.timeline.get_all()

    def is_live(self) -> bool:
        return (
            self._state != SessionState.CLOSED
            and self._current_generation() == self._generation
        )

    async def open(self) -> None:
        """Arm the live subscription, then reconcile history."""
        if self._state != SessionState.CLOSED:
            raise RuntimeError(f"Session for {self._conversation} already open")

        self._state = SessionState.OPENING
        self.error = None
        self._engine = LiveMergeEngine(
            self._conversation, self._self_address, self._names
        )

        try:
            subscribed = await self._subscribe()
        except Exception:
            await self.close()
            raise
        if not subscribed:
            return

        try:
            timeline = await self._reconciler.reconcile(self._conversation)
        except HistoryUnavailable as e:
            if not self.is_live():
                return
            self.error = e
            await self.close()
            raise

        if not self.is_live():
            logger.info(
                "Discarding reconciliation for closed session %s", self._conversation
            )
            return

        added = self._engine.attach(timeline)
        self._state = SessionState.ACTIVE
        logger.info(
            "Session %s active with %d messages (%d from live feed)",
            self._conversation,
            len(timeline),
            len(added),
            extra={"conversation": self._conversation},
        )

    async def close(self) -> None:
        """Stop live delivery and discard the timeline."""
        self._state = SessionState.CLOSED

        task = self._resubscribe_task
        self._resubscribe_task = None
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        await self._unsubscribe_all()
        self._engine = None
        self.stale = False

    async def _subscribe(self) -> bool:
        """Subscribe to every kind of the conversation.

        Returns False if the session was closed meanwhile; the handle
        that was being set up is released before returning.
        """
        for kind in SUBSCRIBED_KINDS[self._conversation.kind]:
            handle = await self._adapter.subscribe(
                kind, self._make_handler(), self._on_lost
            )
            if not self.is_live():
                await self._adapter.unsubscribe(handle)
                return False
            self._handles.append(handle)
        return True

    async def _unsubscribe_all(self) -> None:
        handles, self._handles = self._handles, []
        for handle in handles:
            await self._adapter.unsubscribe(handle)

    def _make_handler(self):
        generation = self._generation
        engine = self._engine

        async def on_event(event: RawEvent) -> None:
            if self._state == SessionState.CLOSED:
                return
            if self._current_generation() != generation:
                return
            await engine.on_live_event(event)

        return on_event

    async def _on_lost(self, error: SubscriptionLost) -> None:
        if not self.is_live():
            return
        logger.warning(
            "Live feed lost for %s: %s",
            self._conversation,
            error,
            extra={"conversation": self._conversation},
        )
        self.stale = True
        self._losses += 1
        if self._resubscribe_task is None or self._resubscribe_task.done():
            self._resubscribe_task = asyncio.create_task(self._resubscribe())

    async def _resubscribe(self) -> None:
        """Resubscribe and backfill the gap until a pass completes without a new loss."""
        while self.is_live():
            losses = self._losses
            try:
                await self._unsubscribe_all()
                if not await self._subscribe():
                    return
                # Events emitted while the feed was down are recovered from history
                timeline = await self._reconciler.reconcile(self._conversation)
            except HistoryUnavailable as e:
                logger.error("Gap backfill failed for %s: %s", self._conversation, e)
                self.error = e
            except Exception as e:
                logger.warning("Resubscribe failed for %s: %s", self._conversation, e)
            else:
                if not self.is_live():
                    return
                added = await self._engine.merge(timeline.get_all())
                if losses == self._losses and all(h.active for h in self._handles):
                    self.stale = False
                    self.error = None
                    logger.info(
                        "Resubscribed %s, recovered %d messages",
                        self._conversation,
                        len(added),
                    )
                    return
                logger.warning("Live feed for %s lost again", self._conversation)
            await asyncio.sleep(self._resubscribe_delay)


class ConversationManager:
    """Owns the single open conversation of a view.

    Switching conversations always closes the old session before the
    new one starts opening.
    """

    def __init__(
        self,
        adapter: ILedgerQueryAdapter,
        reconciler: IHistoryReconciler,
        names: INameResolver,
        self_address: str,
        resubscribe_delay: float = RESUBSCRIBE_DELAY,
    ):
        self._adapter = adapter
        self._reconciler = reconciler
        self._names = names
        self._self_address = self_address
        self._resubscribe_delay = resubscribe_delay
        self._generation = 0
        self._current: ConversationSession | None = None

    @property
    def current(self) -> ConversationSession | None:
        return self._current

    @property
    def generation(self) -> int:
        return self._generation

    async def open(self, conversation: ConversationRef) -> ConversationSession:
        """Close the current session and open one for a conversation.

        Raises HistoryUnavailable if reconciliation fails; the failed
        session stays current (closed, with ``error`` set) for retry().
        """
        await self.close()
        self._generation += 1
        session = ConversationSession(
            conversation=conversation,
            generation=self._generation,
            current_generation=lambda: self._generation,
            adapter=self._adapter,
            reconciler=self._reconciler,
            names=self._names,
            self_address=self._self_address,
            resubscribe_delay=self._resubscribe_delay,
        )
        self._current = session
        await session.open()
        return session

    async def retry(self) -> ConversationSession:
        """Reopen the current conversation."""
        if self._current is None:
            raise RuntimeError("No conversation selected")
        return await self.open(self._current.conversation)

    async def close(self) -> None:
        """Close the current session, if any."""
        session, self._current = self._current, None
        self._generation += 1
        if session is not None:
            await session.close()
