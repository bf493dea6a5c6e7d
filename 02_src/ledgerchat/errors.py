"""Error taxonomy for conversation reconstruction and sending."""


class LedgerChatError(Exception):
    """Base class for all ledgerchat errors."""


class QueryFailed(LedgerChatError):
    """A historical query could not complete. No partial result is returned."""


class HistoryUnavailable(LedgerChatError):
    """Reconciliation gave up after a historical query failed irrecoverably."""

    def __init__(self, conversation, cause: Exception | None = None):
        self.conversation = conversation
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"History unavailable for {conversation}{detail}")


class SubscriptionLost(LedgerChatError):
    """The live event feed for a subscription was dropped."""


class NameResolutionFailed(LedgerChatError):
    """A display name could not be fetched for an address."""

    def __init__(self, address: str, cause: Exception | None = None):
        self.address = address
        self.cause = cause
        super().__init__(f"Could not resolve name for {address}")


class SubmissionRejected(LedgerChatError):
    """The ledger declined or reverted an outgoing operation."""

    def __init__(self, reason: str, operation: str | None = None):
        self.reason = reason
        self.operation = operation
        super().__init__(reason)


class BlobStoreFailed(LedgerChatError):
    """Storing or fetching an attachment payload failed."""


class LedgerCallFailed(LedgerChatError):
    """A read-only ledger call was refused."""
