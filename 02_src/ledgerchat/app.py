"""Application bootstrap and lifecycle management."""

import os
from typing import Protocol

from .blobstore import HttpBlobStore, IBlobStore
from .config import (
    DEFAULT_BLOB_API_URL,
    DEFAULT_GATEWAY_BASE,
    RESUBSCRIBE_DELAY,
    resolve_db_path,
)
from .contacts import ContactDirectory
from .conversation import ConversationManager, HistoryReconciler, SendCoordinator
from .ledger import LedgerAccount, SQLiteLedger
from .logging_config import get_logger
from .names import DisplayNameCache

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...


class Application:
    """Wires the ledger, caches and conversation components for one account."""

    def __init__(
        self,
        db_path: str | None = None,
        account: str | None = None,
        blob_store: IBlobStore | None = None,
        resubscribe_delay: float = RESUBSCRIBE_DELAY,
    ):
        env_db_path = os.getenv("LEDGER_DB_PATH") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self._account_address = account or os.getenv("LEDGERCHAT_ACCOUNT")
        if not self._account_address:
            raise ValueError("LEDGERCHAT_ACCOUNT environment variable not set")
        self._injected_blob_store = blob_store
        self._resubscribe_delay = resubscribe_delay

        # Components (will be initialized in start())
        self._ledger: SQLiteLedger | None = None
        self._account: LedgerAccount | None = None
        self._names: DisplayNameCache | None = None
        self._blob_store: IBlobStore | None = None
        self._contacts: ContactDirectory | None = None
        self._conversations: ConversationManager | None = None
        self._sender: SendCoordinator | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application for %s", self._account_address)

        # 1. Ledger (no dependencies)
        self._ledger = SQLiteLedger(self._db_path)
        await self._ledger.init()
        self._account = self._ledger.as_account(self._account_address)

        # 2. Name cache shared by all sessions
        self._names = DisplayNameCache(self._account)

        # 3. Blob store
        self._blob_store = self._injected_blob_store or HttpBlobStore(
            api_url=os.getenv("BLOB_API_URL", DEFAULT_BLOB_API_URL),
            gateway_base=os.getenv("BLOB_GATEWAY_URL", DEFAULT_GATEWAY_BASE),
        )

        # 4. Conversations (ledger + names)
        reconciler = HistoryReconciler(
            adapter=self._ledger,
            names=self._names,
            self_address=self._account.address,
        )
        self._conversations = ConversationManager(
            adapter=self._ledger,
            reconciler=reconciler,
            names=self._names,
            self_address=self._account.address,
            resubscribe_delay=self._resubscribe_delay,
        )

        # 5. Sending (ledger + blob store)
        self._sender = SendCoordinator(self._account, self._blob_store)

        # 6. Contacts
        self._contacts = ContactDirectory(self._account, self._ledger)
        await self._contacts.start()

        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._contacts:
            await self._contacts.stop()
        if self._conversations:
            await self._conversations.close()
        if self._blob_store is not None and self._injected_blob_store is None:
            await self._blob_store.close()
        if self._ledger:
            await self._ledger.close()
            logger.info("Ledger closed")

    @property
    def account(self) -> LedgerAccount:
        """Get the signing account."""
        if not self._account:
            raise RuntimeError("Application not started")
        return self._account

    @property
    def ledger(self) -> SQLiteLedger:
        """Get the ledger instance."""
        if not self._ledger:
            raise RuntimeError("Application not started")
        return self._ledger

    @property
    def names(self) -> DisplayNameCache:
        """Get the display name cache."""
        if not self._names:
            raise RuntimeError("Application not started")
        return self._names

    @property
    def blob_store(self) -> IBlobStore:
        """Get the blob store."""
        if not self._blob_store:
            raise RuntimeError("Application not started")
        return self._blob_store

    @property
    def contacts(self) -> ContactDirectory:
        """Get the contact directory."""
        if not self._contacts:
            raise RuntimeError("Application not started")
        return self._contacts

    @property
    def conversations(self) -> ConversationManager:
        """Get the conversation manager."""
        if not self._conversations:
            raise RuntimeError("Application not started")
        return self._conversations

    @property
    def sender(self) -> SendCoordinator:
        """Get the send coordinator."""
        if not self._sender:
            raise RuntimeError("Application not started")
        return self._sender
