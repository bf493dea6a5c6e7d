"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ledger_util import ALICE, BOB, CAROL, FakeClock, register  # noqa: E402


@pytest.fixture
def clock():
    """Controllable block clock."""
    return FakeClock()


@pytest_asyncio.fixture
async def ledger(clock):
    """Create in-memory ledger for testing."""
    from ledgerchat.ledger import SQLiteLedger

    lg = SQLiteLedger(":memory:", clock=clock)
    await lg.init()
    yield lg
    await lg.close()


@pytest_asyncio.fixture
async def alice(ledger):
    """Registered account acting as the local user."""
    account = ledger.as_account(ALICE)
    await register(account, "alice")
    return account


@pytest_asyncio.fixture
async def bob(ledger, alice):
    """Registered account, friends with alice."""
    account = ledger.as_account(BOB)
    await register(account, "bob")
    pending = await alice.submit("addFriend", BOB)
    await alice.await_confirmation(pending)
    return account


@pytest_asyncio.fixture
async def carol(ledger):
    """Registered account, not friends with anyone."""
    account = ledger.as_account(CAROL)
    await register(account, "carol")
    return account


@pytest.fixture
def names(alice):
    """Display name cache reading through alice's client."""
    from ledgerchat.names import DisplayNameCache

    return DisplayNameCache(alice)


@pytest.fixture
def manager(ledger, alice, names):
    """Conversation manager for alice with real reconciliation."""
    from ledgerchat.conversation import ConversationManager, HistoryReconciler

    reconciler = HistoryReconciler(
        adapter=ledger, names=names, self_address=alice.address, retry_delay=0
    )
    return ConversationManager(
        adapter=ledger,
        reconciler=reconciler,
        names=names,
        self_address=alice.address,
        resubscribe_delay=0,
    )


@pytest.fixture
def mock_blob_store():
    """Create mock blob store."""
    store = Mock()
    store.put = AsyncMock(return_value="QmTestContentId")
    store.fetch = AsyncMock(return_value=b"data")
    store.gateway_url = Mock(side_effect=lambda cid: f"https://ipfs.io/ipfs/{cid}")
    return store


@pytest.fixture
def mock_names():
    """Create mock name resolver."""
    resolver = Mock()
    resolver.resolve = AsyncMock(return_value="Someone")
    resolver.resolve_many = AsyncMock(
        side_effect=lambda addresses: {a: f"name-{a[-2:]}" for a in addresses}
    )
    return resolver
