"""SQLite-backed local ledger.

Implements the ledger collaborator for local runs and tests: signed
operations are applied on confirmation and append events to an
append-only log that serves both historical queries and live
subscriptions.
"""

import asyncio
import json
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import aiosqlite

from ..config import resolve_db_path
from ..errors import LedgerCallFailed, QueryFailed, SubmissionRejected, SubscriptionLost
from ..logging_config import get_logger
from ..models import EventFilter, EventKind, RawEvent
from .adapter import (
    EventHandler,
    LostHandler,
    PendingOperation,
    Receipt,
    SubscriptionHandle,
)

logger = get_logger(__name__)


@dataclass
class _Subscription:
    handle: SubscriptionHandle
    on_event: EventHandler
    on_lost: LostHandler | None
    queue: asyncio.Queue
    worker: asyncio.Task | None = None


class SQLiteLedger:
    """Local ledger with an append-only event log."""

    def __init__(
        self,
        db_path: str | Path | None = None,
        clock: Callable[[], int] | None = None,
    ):
        self._db_path = resolve_db_path(db_path)
        self._clock = clock or (lambda: int(time.time()))
        self._conn: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()
        self._block_number = 0
        self._pending: dict[str, PendingOperation] = {}
        self._subscriptions: dict[int, _Subscription] = {}

        self._operations = {
            "createUser": self._create_user,
            "addFriend": self._add_friend,
            "addFriendByUsername": self._add_friend_by_username,
            "createGroup": self._create_group,
            "sendMessageText": self._send_message_text,
            "sendMessageIPFS": self._send_message_ipfs,
            "sendGroupTextMessage": self._send_group_text_message,
            "sendGroupIPFSMessage": self._send_group_ipfs_message,
        }
        self._readers = {
            "getUser": self._get_user,
            "getFriendList": self._get_friend_list,
            "getUserGroups": self._get_user_groups,
            "getGroupDetails": self._get_group_details,
        }

    async def init(self) -> None:
        """Open the database and create tables."""
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

        cursor = await self._conn.execute(
            "SELECT COALESCE(MAX(block_number), 0) FROM events"
        )
        row = await cursor.fetchone()
        self._block_number = row[0]
        logger.info("Ledger opened at %s (block %s)", self._db_path, self._block_number)

    async def close(self) -> None:
        """Stop all subscriptions and close the database."""
        for sub in list(self._subscriptions.values()):
            sub.handle.active = False
            self._discard(sub)
        self._subscriptions.clear()

        if self._conn:
            await self._conn.close()
            self._conn = None

    def as_account(self, address: str) -> "LedgerAccount":
        """Get a client that signs operations as the given address."""
        return LedgerAccount(self, address)

    @property
    def block_number(self) -> int:
        return self._block_number

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Ledger not initialized")
        return self._conn

    # Writes

    async def submit(self, sender: str, operation: str, *args: Any) -> PendingOperation:
        """Accept an operation for later settlement."""
        self._require_conn()
        pending = PendingOperation(
            id=str(uuid.uuid4()),
            sender=sender.lower(),
            operation=operation,
            args=tuple(args),
        )
        self._pending[pending.id] = pending
        logger.debug("Submitted %s from %s", operation, pending.sender)
        return pending

    async def confirm(self, pending: PendingOperation) -> Receipt:
        """Apply a submitted operation and emit its events."""
        conn = self._require_conn()
        if self._pending.pop(pending.id, None) is None:
            raise SubmissionRejected("Unknown or already settled operation", pending.operation)

        handler = self._operations.get(pending.operation)
        if handler is None:
            raise SubmissionRejected(
                f"Unknown operation: {pending.operation}", pending.operation
            )

        async with self._write_lock:
            block_number = self._block_number + 1
            timestamp = self._clock()
            try:
                emitted = await handler(pending.sender, *pending.args)
                events = [
                    await self._append_event(block_number, timestamp, **fields)
                    for fields in emitted
                ]
                await conn.commit()
            except SubmissionRejected as e:
                await conn.rollback()
                e.operation = pending.operation
                logger.info("Reverted %s: %s", pending.operation, e.reason)
                raise
            except (TypeError, ValueError) as e:
                await conn.rollback()
                raise SubmissionRejected(
                    "Invalid arguments", pending.operation
                ) from e
            except aiosqlite.Error as e:
                await conn.rollback()
                raise SubmissionRejected(
                    f"Ledger error: {e}", pending.operation
                ) from e
            self._block_number = block_number

        self._emit(events)
        return Receipt(
            operation_id=pending.id,
            operation=pending.operation,
            block_number=block_number,
            timestamp=timestamp,
            events=tuple(events),
        )

    async def _append_event(
        self,
        block_number: int,
        timestamp: int,
        kind: EventKind,
        from_address: str,
        to_address: str | None = None,
        group_id: int | None = None,
        payload: dict | None = None,
    ) -> RawEvent:
        payload = payload or {}
        cursor = await self._conn.execute(
            """
            INSERT INTO events
            (kind, from_address, to_address, group_id, payload, block_number, timestamp)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                kind.value,
                from_address,
                to_address,
                group_id,
                json.dumps(payload),
                block_number,
                timestamp,
            ),
        )
        return RawEvent(
            kind=kind,
            from_address=from_address,
            to_address=to_address,
            group_id=group_id,
            payload=payload,
            timestamp=timestamp,
            sequence=cursor.lastrowid,
            block_number=block_number,
        )

    # Operations

    async def _create_user(self, sender: str, name: str) -> list[dict]:
        name = str(name).strip()
        if not name:
            raise SubmissionRejected("Username cannot be empty")
        if await self._username_of(sender):
            raise SubmissionRejected("User already registered")
        if await self._address_of(name):
            raise SubmissionRejected("Username already taken")
        await self._conn.execute(
            "INSERT INTO users (address, name) VALUES (?, ?)", (sender, name)
        )
        return []

    async def _add_friend(self, sender: str, friend: str) -> list[dict]:
        friend = str(friend).lower()
        await self._require_registered(sender)
        if friend == sender:
            raise SubmissionRejected("Cannot add yourself as a friend")
        if not await self._username_of(friend):
            raise SubmissionRejected("User is not registered")
        if await self._are_friends(sender, friend):
            raise SubmissionRejected("Already friends")
        await self._conn.executemany(
            "INSERT INTO friends (user_address, friend_address) VALUES (?, ?)",
            [(sender, friend), (friend, sender)],
        )
        return [
            {"kind": EventKind.FRIEND_ADDED, "from_address": sender, "to_address": friend}
        ]

    async def _add_friend_by_username(self, sender: str, name: str) -> list[dict]:
        address = await self._address_of(str(name).strip())
        if not address:
            raise SubmissionRejected("User not found")
        return await self._add_friend(sender, address)

    async def _create_group(self, sender: str, name: str, members: list) -> list[dict]:
        await self._require_registered(sender)
        name = str(name).strip()
        if not name:
            raise SubmissionRejected("Group name cannot be empty")

        roster = [sender]
        for member in members:
            member = str(member).lower()
            if member in roster:
                continue
            if not await self._username_of(member):
                raise SubmissionRejected("Member is not registered")
            roster.append(member)

        cursor = await self._conn.execute(
            "INSERT INTO groups (name, owner) VALUES (?, ?)", (name, sender)
        )
        group_id = cursor.lastrowid
        await self._conn.executemany(
            "INSERT INTO group_members (group_id, member, position) VALUES (?, ?, ?)",
            [(group_id, member, i) for i, member in enumerate(roster)],
        )

        emitted = [
            {
                "kind": EventKind.GROUP_CREATED,
                "from_address": sender,
                "group_id": group_id,
                "payload": {"name": name},
            }
        ]
        emitted.extend(
            {
                "kind": EventKind.MEMBER_ADDED_TO_GROUP,
                "from_address": sender,
                "to_address": member,
                "group_id": group_id,
            }
            for member in roster[1:]
        )
        return emitted

    async def _send_message_text(self, sender: str, peer: str, text: str) -> list[dict]:
        peer = await self._require_friend(sender, peer)
        if not str(text).strip():
            raise SubmissionRejected("Message cannot be empty")
        return [
            {
                "kind": EventKind.DIRECT_TEXT,
                "from_address": sender,
                "to_address": peer,
                "payload": {"message": str(text)},
            }
        ]

    async def _send_message_ipfs(
        self, sender: str, peer: str, content_id: str, file_name: str
    ) -> list[dict]:
        peer = await self._require_friend(sender, peer)
        if not content_id:
            raise SubmissionRejected("Content id cannot be empty")
        return [
            {
                "kind": EventKind.DIRECT_ATTACHMENT,
                "from_address": sender,
                "to_address": peer,
                "payload": {"content_id": content_id, "file_name": file_name},
            }
        ]

    async def _send_group_text_message(
        self, sender: str, group_id: int, text: str
    ) -> list[dict]:
        group_id = await self._require_member(sender, group_id)
        if not str(text).strip():
            raise SubmissionRejected("Message cannot be empty")
        return [
            {
                "kind": EventKind.GROUP_TEXT,
                "from_address": sender,
                "group_id": group_id,
                "payload": {"message": str(text)},
            }
        ]

    async def _send_group_ipfs_message(
        self, sender: str, group_id: int, content_id: str, file_name: str
    ) -> list[dict]:
        group_id = await self._require_member(sender, group_id)
        if not content_id:
            raise SubmissionRejected("Content id cannot be empty")
        return [
            {
                "kind": EventKind.GROUP_ATTACHMENT,
                "from_address": sender,
                "group_id": group_id,
                "payload": {"content_id": content_id, "file_name": file_name},
            }
        ]

    async def _require_registered(self, address: str) -> None:
        if not await self._username_of(address):
            raise SubmissionRejected("User not registered")

    async def _require_friend(self, sender: str, peer: str) -> str:
        peer = str(peer).lower()
        await self._require_registered(sender)
        if not await self._are_friends(sender, peer):
            raise SubmissionRejected("Not friends")
        return peer

    async def _require_member(self, sender: str, group_id: int) -> int:
        group_id = int(group_id)
        await self._require_registered(sender)
        cursor = await self._conn.execute(
            "SELECT 1 FROM groups WHERE id = ?", (group_id,)
        )
        if not await cursor.fetchone():
            raise SubmissionRejected("Group does not exist")
        cursor = await self._conn.execute(
            "SELECT 1 FROM group_members WHERE group_id = ? AND member = ?",
            (group_id, sender),
        )
        if not await cursor.fetchone():
            raise SubmissionRejected("Not a group member")
        return group_id

    async def _username_of(self, address: str) -> str:
        cursor = await self._conn.execute(
            "SELECT name FROM users WHERE address = ?", (str(address).lower(),)
        )
        row = await cursor.fetchone()
        return row[0] if row else ""

    async def _address_of(self, name: str) -> str | None:
        cursor = await self._conn.execute(
            "SELECT address FROM users WHERE name = ?", (name,)
        )
        row = await cursor.fetchone()
        return row[0] if row else None

    async def _are_friends(self, a: str, b: str) -> bool:
        cursor = await self._conn.execute(
            "SELECT 1 FROM friends WHERE user_address = ? AND friend_address = ?",
            (a, b),
        )
        return await cursor.fetchone() is not None

    # Reads

    async def call(self, method: str, *args: Any) -> Any:
        """Run a read-only method."""
        self._require_conn()
        reader = self._readers.get(method)
        if reader is None:
            raise LedgerCallFailed(f"Unknown method: {method}")
        try:
            return await reader(*args)
        except aiosqlite.Error as e:
            raise LedgerCallFailed(f"{method} failed: {e}") from e

    async def _get_user(self, address: str) -> str:
        return await self._username_of(address)

    async def _get_friend_list(self, address: str) -> list[str]:
        cursor = await self._conn.execute(
            "SELECT friend_address FROM friends WHERE user_address = ? ORDER BY rowid",
            (str(address).lower(),),
        )
        return [row[0] for row in await cursor.fetchall()]

    async def _get_user_groups(self, address: str) -> list[int]:
        cursor = await self._conn.execute(
            "SELECT group_id FROM group_members WHERE member = ? ORDER BY group_id",
            (str(address).lower(),),
        )
        return [row[0] for row in await cursor.fetchall()]

    async def _get_group_details(self, group_id: int) -> tuple[int, str, str, list[str]]:
        cursor = await self._conn.execute(
            "SELECT id, name, owner FROM groups WHERE id = ?", (int(group_id),)
        )
        row = await cursor.fetchone()
        if not row:
            raise LedgerCallFailed("Group does not exist")
        cursor = await self._conn.execute(
            "SELECT member FROM group_members WHERE group_id = ? ORDER BY position",
            (row[0],),
        )
        members = [m[0] for m in await cursor.fetchall()]
        return (row[0], row[1], row[2], members)

    # Events

    async def query_historical(
        self,
        event_filter: EventFilter,
        range_start: int = 0,
        range_end: int | None = None,
    ) -> list[RawEvent]:
        """Fetch events matching a filter within a block range."""
        conn = self._require_conn()

        conditions = ["kind = ?", "block_number >= ?"]
        params: list[Any] = [event_filter.kind.value, range_start]
        if range_end is not None:
            conditions.append("block_number <= ?")
            params.append(range_end)
        if event_filter.sender is not None:
            conditions.append("from_address = ?")
            params.append(event_filter.sender.lower())
        if event_filter.recipient is not None:
            conditions.append("to_address = ?")
            params.append(event_filter.recipient.lower())
        if event_filter.group_id is not None:
            conditions.append("group_id = ?")
            params.append(int(event_filter.group_id))

        query = f"""
            SELECT sequence, kind, from_address, to_address, group_id,
                   payload, block_number, timestamp
            FROM events
            WHERE {' AND '.join(conditions)}
            ORDER BY sequence ASC
        """
        try:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise QueryFailed(f"Query for {event_filter.kind.value} failed: {e}") from e

        return [self._row_to_event(row) for row in rows]

    @staticmethod
    def _row_to_event(row) -> RawEvent:
        try:
            payload = json.loads(row[5])
        except (TypeError, ValueError):
            payload = {}
        return RawEvent(
            kind=EventKind(row[1]),
            from_address=row[2],
            to_address=row[3],
            group_id=row[4],
            payload=payload if isinstance(payload, dict) else {},
            timestamp=row[7],
            sequence=row[0],
            block_number=row[6],
        )

    async def subscribe(
        self,
        kind: EventKind,
        on_event: EventHandler,
        on_lost: LostHandler | None = None,
    ) -> SubscriptionHandle:
        """Deliver every future event of a kind, one at a time, in order."""
        self._require_conn()
        handle = SubscriptionHandle(kind=EventKind(kind))
        sub = _Subscription(
            handle=handle, on_event=on_event, on_lost=on_lost, queue=asyncio.Queue()
        )
        sub.worker = asyncio.create_task(self._deliver(sub))
        self._subscriptions[handle.id] = sub
        return handle

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Stop delivery for a handle."""
        handle.active = False
        sub = self._subscriptions.pop(handle.id, None)
        if sub is not None:
            self._discard(sub)

    async def drain(self) -> None:
        """Wait until every queued event has been delivered."""
        while True:
            subs = list(self._subscriptions.values())
            await asyncio.gather(*(sub.queue.join() for sub in subs))
            if all(sub.queue.empty() for sub in self._subscriptions.values()):
                return

    async def drop_subscriptions(self, reason: str = "connection dropped") -> None:
        """Drop every live subscription and notify the loss handlers."""
        dropped = list(self._subscriptions.values())
        self._subscriptions.clear()
        for sub in dropped:
            sub.handle.active = False
            self._discard(sub)

        for sub in dropped:
            if sub.on_lost is None:
                continue
            try:
                await sub.on_lost(SubscriptionLost(f"{sub.handle.kind.value}: {reason}"))
            except Exception as e:
                logger.error("Error in loss handler %s: %s", sub.handle.id, e)

    def _emit(self, events: list[RawEvent]) -> None:
        for event in events:
            for sub in list(self._subscriptions.values()):
                if sub.handle.active and sub.handle.kind == event.kind:
                    sub.queue.put_nowait(event)

    def _discard(self, sub: _Subscription) -> None:
        while not sub.queue.empty():
            sub.queue.get_nowait()
            sub.queue.task_done()
        if sub.worker is not None and sub.worker is not asyncio.current_task():
            sub.worker.cancel()

    async def _deliver(self, sub: _Subscription) -> None:
        while True:
            event = await sub.queue.get()
            try:
                if sub.handle.active:
                    await sub.on_event(event)
            except Exception as e:
                logger.error(
                    "Error in subscription handler %s: %s", sub.handle.id, e, exc_info=True
                )
            finally:
                sub.queue.task_done()
            if not sub.handle.active:
                return


class LedgerAccount:
    """Ledger client bound to one signing address."""

    def __init__(self, ledger: SQLiteLedger, address: str):
        self._ledger = ledger
        self._address = address.lower()

    @property
    def address(self) -> str:
        return self._address

    async def submit(self, operation: str, *args: Any) -> PendingOperation:
        return await self._ledger.submit(self._address, operation, *args)

    async def await_confirmation(self, pending: PendingOperation) -> Receipt:
        return await self._ledger.confirm(pending)

    async def call(self, method: str, *args: Any) -> Any:
        return await self._ledger.call(method, *args)
