"""Tests for DisplayNameCache."""

from unittest.mock import AsyncMock, Mock

import pytest

from ledgerchat.errors import LedgerCallFailed
from ledgerchat.models import UNKNOWN_NAME
from ledgerchat.names import DisplayNameCache
from ledger_util import ALICE, BOB, CAROL, DAVE


@pytest.fixture
def client():
    """Mock ledger client with two registered users."""
    known = {ALICE: "alice", BOB: "bob"}
    mock = Mock()
    mock.call = AsyncMock(side_effect=lambda method, address: known.get(address, ""))
    return mock


class TestResolve:
    """Tests for single address resolution."""

    @pytest.mark.asyncio
    async def test_resolve_known(self, client):
        """Test resolving a registered address."""
        cache = DisplayNameCache(client)
        assert await cache.resolve(ALICE) == "alice"
        client.call.assert_awaited_once_with("getUser", ALICE)

    @pytest.mark.asyncio
    async def test_resolve_is_cached(self, client):
        """Test that a second lookup does not hit the ledger."""
        cache = DisplayNameCache(client)
        await cache.resolve(ALICE)
        assert await cache.resolve(ALICE.upper().replace("0X", "0x")) == "alice"
        assert client.call.await_count == 1
        assert cache.get_cached(ALICE) == "alice"

    @pytest.mark.asyncio
    async def test_unregistered_falls_back(self, client):
        """Test that an empty name resolves to the placeholder."""
        cache = DisplayNameCache(client)
        assert await cache.resolve(CAROL) == UNKNOWN_NAME
        assert cache.get_cached(CAROL) is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_failure_falls_back_and_is_not_cached(self):
        """Test that a failed lookup yields the placeholder and is retried later."""
        client = Mock()
        client.call = AsyncMock(side_effect=[LedgerCallFailed("down"), "dave"])
        cache = DisplayNameCache(client)

        assert await cache.resolve(DAVE) == UNKNOWN_NAME
        assert await cache.resolve(DAVE) == "dave"


class TestResolveMany:
    """Tests for batch resolution."""

    @pytest.mark.asyncio
    async def test_distinct_addresses_fetched_once(self, client):
        """Test that repeated addresses are looked up once each."""
        cache = DisplayNameCache(client)
        names = await cache.resolve_many([ALICE, BOB, ALICE, BOB.upper().replace("0X", "0x")])

        assert names == {ALICE: "alice", BOB: "bob"}
        assert client.call.await_count == 2

    @pytest.mark.asyncio
    async def test_partial_failure(self):
        """Test that one failing address does not affect the others."""

        async def call(method, address):
            if address == BOB:
                raise LedgerCallFailed("boom")
            return "alice"

        client = Mock()
        client.call = AsyncMock(side_effect=call)
        cache = DisplayNameCache(client)

        names = await cache.resolve_many([ALICE, BOB])
        assert names == {ALICE: "alice", BOB: UNKNOWN_NAME}

    @pytest.mark.asyncio
    async def test_empty(self, client):
        cache = DisplayNameCache(client)
        assert await cache.resolve_many([]) == {}


class TestWithLedger:
    """Tests against the local ledger."""

    @pytest.mark.asyncio
    async def test_resolve_from_ledger(self, names, bob):
        """Test resolving registered usernames through getUser."""
        assert await names.resolve(BOB) == "bob"
        assert await names.resolve(DAVE) == UNKNOWN_NAME
