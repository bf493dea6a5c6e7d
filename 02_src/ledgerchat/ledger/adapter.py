"""Ledger collaborator interfaces."""

import itertools
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol

from ..errors import SubscriptionLost
from ..models import EventFilter, EventKind, RawEvent

EventHandler = Callable[[RawEvent], Awaitable[None]]
LostHandler = Callable[[SubscriptionLost], Awaitable[None]]

_handle_ids = itertools.count(1)


@dataclass(eq=False)
class SubscriptionHandle:
    """Handle for a live subscription. Inactive once unsubscribed or lost."""

    kind: EventKind
    id: int = field(default_factory=lambda: next(_handle_ids))
    active: bool = True


@dataclass(frozen=True)
class PendingOperation:
    """A submitted, not yet confirmed ledger operation."""

    id: str
    sender: str
    operation: str
    args: tuple


@dataclass(frozen=True)
class Receipt:
    """Final settlement of a confirmed operation."""

    operation_id: str
    operation: str
    block_number: int
    timestamp: int
    events: tuple[RawEvent, ...] = ()


class ILedgerQueryAdapter(Protocol):
    """Historical queries and live subscriptions over ledger events.

    The adapter does not retry; retry policy belongs to the caller.
    """

    async def query_historical(
        self,
        event_filter: EventFilter,
        range_start: int = 0,
        range_end: int | None = None,
    ) -> list[RawEvent]:
        """Fetch events matching the filter in a block range (None = latest).

        Raises QueryFailed rather than returning a partial result.
        """
        ...

    async def subscribe(
        self,
        kind: EventKind,
        on_event: EventHandler,
        on_lost: LostHandler | None = None,
    ) -> SubscriptionHandle:
        """Deliver every future event of a kind, in emission order."""
        ...

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Stop delivery. No invocation happens after this returns."""
        ...


class ILedgerClient(Protocol):
    """Signed writes and read calls for one account."""

    @property
    def address(self) -> str:
        """Address of the signing account."""
        ...

    async def submit(self, operation: str, *args: Any) -> PendingOperation:
        """Broadcast an operation."""
        ...

    async def await_confirmation(self, pending: PendingOperation) -> Receipt:
        """Wait for final settlement. Raises SubmissionRejected on revert."""
        ...

    async def call(self, method: str, *args: Any) -> Any:
        """Run a read-only ledger method."""
        ...
