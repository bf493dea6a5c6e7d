"""Process-wide display name cache."""

import asyncio
from typing import Iterable, Protocol

from ..errors import NameResolutionFailed
from ..ledger import ILedgerClient
from ..logging_config import get_logger
from ..models import UNKNOWN_NAME

logger = get_logger(__name__)


class INameResolver(Protocol):
    """Address to display name lookup."""

    async def resolve(self, address: str) -> str:
        """Resolve one address, falling back to a placeholder."""
        ...

    async def resolve_many(self, addresses: Iterable[str]) -> dict[str, str]:
        """Resolve distinct addresses in parallel."""
        ...


class DisplayNameCache:
    """Address -> username cache shared by every conversation session.

    Entries are populated on first miss and never invalidated while the
    process runs: usernames are treated as immutable for that lifetime,
    so a rename on the ledger is not reflected until restart. Concurrent
    misses for the same address may both hit the ledger; the last write
    wins, which is harmless since both fetch the same name.

    Failed or empty lookups are not cached, so an address that registers
    later resolves on the next attempt.
    """

    def __init__(self, client: ILedgerClient):
        self._client = client
        self._names: dict[str, str] = {}

    def get_cached(self, address: str) -> str | None:
        return self._names.get(address.lower())

    async def resolve(self, address: str) -> str:
        """Resolve one address, falling back to "Unknown"."""
        key = address.lower()
        cached = self._names.get(key)
        if cached is not None:
            return cached

        try:
            name = await self._fetch(key)
        except NameResolutionFailed as e:
            logger.warning("%s: %s", e, e.cause)
            return UNKNOWN_NAME

        if not name:
            return UNKNOWN_NAME
        self._names[key] = name
        return name

    async def resolve_many(self, addresses: Iterable[str]) -> dict[str, str]:
        """Resolve each distinct address at most once, in parallel."""
        distinct = list(dict.fromkeys(a.lower() for a in addresses))
        names = await asyncio.gather(*(self.resolve(a) for a in distinct))
        return dict(zip(distinct, names))

    async def _fetch(self, address: str) -> str:
        try:
            return await self._client.call("getUser", address)
        except Exception as e:
            raise NameResolutionFailed(address, e) from e

    def __len__(self) -> int:
        return len(self._names)
