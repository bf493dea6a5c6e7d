"""ledgerchat: conversation views reconstructed from a ledger event log."""

from .app import Application, IApplication
from .blobstore import HttpBlobStore, IBlobStore
from .contacts import ContactDirectory, IContactDirectory
from .conversation import (
    ConversationManager,
    ConversationSession,
    HistoryReconciler,
    IHistoryReconciler,
    ISendCoordinator,
    LiveMergeEngine,
    SendCoordinator,
    SessionState,
    Timeline,
    is_image,
    normalize,
)
from .errors import (
    BlobStoreFailed,
    HistoryUnavailable,
    LedgerCallFailed,
    LedgerChatError,
    NameResolutionFailed,
    QueryFailed,
    SubmissionRejected,
    SubscriptionLost,
)
from .ledger import ILedgerClient, ILedgerQueryAdapter, LedgerAccount, SQLiteLedger
from .models import (
    AttachmentRef,
    Contact,
    ContentKind,
    ConversationKind,
    ConversationRef,
    EventFilter,
    EventKind,
    Message,
    MessageId,
    OutgoingAttachment,
    OutgoingText,
    RawEvent,
)
from .names import DisplayNameCache, INameResolver

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "EventKind",
    "RawEvent",
    "EventFilter",
    "ConversationKind",
    "ConversationRef",
    "ContentKind",
    "AttachmentRef",
    "MessageId",
    "Message",
    "OutgoingText",
    "OutgoingAttachment",
    "Contact",
    # Errors
    "LedgerChatError",
    "QueryFailed",
    "HistoryUnavailable",
    "SubscriptionLost",
    "NameResolutionFailed",
    "SubmissionRejected",
    "BlobStoreFailed",
    "LedgerCallFailed",
    # Components
    "ILedgerClient",
    "ILedgerQueryAdapter",
    "SQLiteLedger",
    "LedgerAccount",
    "INameResolver",
    "DisplayNameCache",
    "IBlobStore",
    "HttpBlobStore",
    "normalize",
    "is_image",
    "Timeline",
    "IHistoryReconciler",
    "HistoryReconciler",
    "LiveMergeEngine",
    "ConversationSession",
    "ConversationManager",
    "SessionState",
    "ISendCoordinator",
    "SendCoordinator",
    "IContactDirectory",
    "ContactDirectory",
]
