"""ContactDirectory implementation."""

import asyncio
from typing import Protocol

from ..ledger import ILedgerClient, ILedgerQueryAdapter, Receipt, SubscriptionHandle
from ..logging_config import get_logger
from ..models import (
    CONTACT_KINDS,
    Contact,
    ConversationRef,
    GroupDetails,
    RawEvent,
    is_address,
    same_address,
)

logger = get_logger(__name__)

UNNAMED = "Unnamed"


class IContactDirectory(Protocol):
    """Friends, groups and registration for the local account."""

    async def list_contacts(self) -> list[Contact]:
        """Friends followed by groups."""
        ...

    async def add_friend(self, query: str) -> Receipt:
        """Add a friend by address or username."""
        ...

    async def create_group(self, name: str, members: list[str]) -> Receipt:
        """Create a group with the given members."""
        ...

    async def register(self, name: str) -> Receipt:
        """Register a username for the local account."""
        ...


class ContactDirectory:
    """Contact list of the local account, refreshed on ledger events."""

    def __init__(self, client: ILedgerClient, adapter: ILedgerQueryAdapter):
        self._client = client
        self._adapter = adapter
        self._contacts: list[Contact] = []
        self._handles: list[SubscriptionHandle] = []

    @property
    def contacts(self) -> list[Contact]:
        """Last fetched contact list."""
        return self._contacts.copy()

    async def start(self) -> None:
        """Fetch contacts and follow FriendAdded/GroupCreated/MemberAddedToGroup."""
        for kind in CONTACT_KINDS:
            self._handles.append(await self._adapter.subscribe(kind, self._on_event))
        await self.refresh()

    async def stop(self) -> None:
        """Unsubscribe from contact events."""
        handles, self._handles = self._handles, []
        for handle in handles:
            await self._adapter.unsubscribe(handle)

    async def refresh(self) -> list[Contact]:
        """Re-read the contact list from the ledger."""
        self._contacts = await self.list_contacts()
        return self.contacts

    async def list_contacts(self) -> list[Contact]:
        """Friends (by name) followed by groups."""
        me = self._client.address

        friend_addresses = await self._client.call("getFriendList", me)
        names = await asyncio.gather(
            *(self._client.call("getUser", address) for address in friend_addresses)
        )
        friends = [
            Contact(conversation=ConversationRef.direct(address), name=name or UNNAMED)
            for address, name in zip(friend_addresses, names)
        ]

        group_ids = await self._client.call("getUserGroups", me)
        details = await asyncio.gather(*(self.group_details(gid) for gid in group_ids))
        groups = [
            Contact(
                conversation=ConversationRef.group(group.id),
                name=group.name,
                members=list(group.members),
            )
            for group in details
        ]

        return friends + groups

    async def group_details(self, group_id: int) -> GroupDetails:
        group_id, name, owner, members = await self._client.call(
            "getGroupDetails", group_id
        )
        return GroupDetails(id=int(group_id), name=name, owner=owner, members=list(members))

    async def add_friend(self, query: str) -> Receipt:
        """Add a friend: addresses go to addFriend, anything else is a username."""
        query = (query or "").strip()
        if not query:
            raise ValueError("Input cannot be empty.")

        if is_address(query):
            pending = await self._client.submit("addFriend", query)
        else:
            pending = await self._client.submit("addFriendByUsername", query)
        return await self._client.await_confirmation(pending)

    async def create_group(self, name: str, members: list[str]) -> Receipt:
        """Create a group; member entries that are not addresses are dropped."""
        name = (name or "").strip()
        if not name:
            raise ValueError("Group name cannot be empty.")

        valid = [m.strip() for m in members if is_address(m)]
        dropped = len(members) - len(valid)
        if dropped:
            logger.info("Dropped %d invalid member addresses", dropped)

        pending = await self._client.submit("createGroup", name, valid)
        return await self._client.await_confirmation(pending)

    async def register(self, name: str) -> Receipt:
        """Register a username for the local account."""
        name = (name or "").strip()
        if not name:
            raise ValueError("Username cannot be empty.")
        pending = await self._client.submit("createUser", name)
        return await self._client.await_confirmation(pending)

    async def current_username(self) -> str:
        return await self._client.call("getUser", self._client.address)

    def _concerns_me(self, event: RawEvent) -> bool:
        me = self._client.address
        return same_address(event.from_address, me) or same_address(event.to_address, me)

    async def _on_event(self, event: RawEvent) -> None:
        # Group membership reaches members as MemberAddedToGroup addressed to them
        if not self._concerns_me(event):
            return
        logger.debug("Contact event %s, refreshing", event.kind.value)
        await self.refresh()
