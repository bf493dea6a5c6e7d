"""Tests for ContactDirectory."""

from unittest.mock import AsyncMock

import pytest

from ledgerchat.contacts import UNNAMED, ContactDirectory
from ledgerchat.errors import SubmissionRejected
from ledgerchat.models import ConversationRef
from ledger_util import ALICE, BOB, CAROL, DAVE, befriend


@pytest.fixture
def directory(ledger, alice):
    return ContactDirectory(alice, ledger)


class TestListContacts:
    """Tests for reading the contact list."""

    @pytest.mark.asyncio
    async def test_friends_then_groups(self, directory, alice, bob, carol):
        """Test that friends come first, then groups."""
        await befriend(alice, CAROL)
        pending = await alice.submit("createGroup", "team", [BOB])
        receipt = await alice.await_confirmation(pending)
        group_id = receipt.events[0].group_id

        contacts = await directory.list_contacts()

        assert [(c.conversation, c.name) for c in contacts] == [
            (ConversationRef.direct(BOB), "bob"),
            (ConversationRef.direct(CAROL), "carol"),
            (ConversationRef.group(group_id), "team"),
        ]
        assert contacts[2].members == [ALICE, BOB]

    @pytest.mark.asyncio
    async def test_empty(self, directory):
        assert await directory.list_contacts() == []


class TestMutations:
    """Tests for friend, group and registration operations."""

    @pytest.mark.asyncio
    async def test_register(self, ledger):
        directory = ContactDirectory(ledger.as_account(DAVE), ledger)
        await directory.register("  dave  ")
        assert await directory.current_username() == "dave"

    @pytest.mark.asyncio
    async def test_register_empty(self, directory):
        with pytest.raises(ValueError, match="Username cannot be empty"):
            await directory.register("   ")

    @pytest.mark.asyncio
    async def test_add_friend_by_address(self, directory, carol):
        """Test that an address goes to addFriend."""
        receipt = await directory.add_friend(CAROL)
        assert receipt.operation == "addFriend"

    @pytest.mark.asyncio
    async def test_add_friend_by_username(self, directory, carol):
        """Test that anything else is looked up as a username."""
        receipt = await directory.add_friend(" carol ")
        assert receipt.operation == "addFriendByUsername"
        contacts = await directory.list_contacts()
        assert [c.name for c in contacts] == ["carol"]

    @pytest.mark.asyncio
    async def test_add_friend_rejected(self, directory):
        with pytest.raises(SubmissionRejected, match="User not found"):
            await directory.add_friend("nobody")

    @pytest.mark.asyncio
    async def test_add_friend_empty(self, directory):
        with pytest.raises(ValueError, match="Input cannot be empty"):
            await directory.add_friend("")

    @pytest.mark.asyncio
    async def test_create_group_drops_invalid_members(self, directory, bob):
        """Test that non-address member entries are filtered out."""
        receipt = await directory.create_group("team", [BOB, "bob", "0x123"])
        group_id = receipt.events[0].group_id

        details = await directory.group_details(group_id)
        assert details.members == [ALICE, BOB]
        assert details.owner == ALICE

    @pytest.mark.asyncio
    async def test_create_group_empty_name(self, directory):
        with pytest.raises(ValueError, match="Group name cannot be empty"):
            await directory.create_group("  ", [])


class TestRefresh:
    """Tests for refreshing on ledger events."""

    @pytest.mark.asyncio
    async def test_refresh_on_friend_added(self, ledger, directory, carol):
        """Test that a FriendAdded event refreshes the cached list."""
        await directory.start()
        assert directory.contacts == []

        await directory.add_friend(CAROL)
        await ledger.drain()

        assert [c.name for c in directory.contacts] == ["carol"]
        await directory.stop()

    @pytest.mark.asyncio
    async def test_other_users_events_ignored(self, ledger, directory, bob, carol):
        """Test that only contact events involving the local account refresh."""
        await directory.start()
        directory.refresh = AsyncMock()

        await befriend(bob, CAROL)
        await ledger.drain()
        directory.refresh.assert_not_awaited()

        await befriend(carol, ALICE)
        await ledger.drain()
        directory.refresh.assert_awaited_once()
        await directory.stop()

    @pytest.mark.asyncio
    async def test_unnamed_friend(self, ledger, directory, alice, bob):
        """Test the placeholder for a friend without a readable name."""
        await ledger._conn.execute("UPDATE users SET name = '' WHERE address = ?", (BOB,))
        await ledger._conn.commit()

        contacts = await directory.list_contacts()
        assert contacts[0].name == UNNAMED

    @pytest.mark.asyncio
    async def test_stop_unsubscribes(self, ledger, directory):
        await directory.start()
        assert len(ledger._subscriptions) == 3
        await directory.stop()
        assert ledger._subscriptions == {}
