"""Timeline implementation."""

import bisect
from typing import Iterable, Iterator

from ..models import Message, MessageId


class Timeline:
    """Messages of one open conversation, unique by id.

    Kept sorted by (timestamp, sequence). Messages are only ever added;
    an existing entry is never replaced.
    """

    def __init__(self, messages: Iterable[Message] = ()):
        self._messages: list[Message] = []
        self._ids: set[MessageId] = set()
        self.extend(messages)

    def add(self, message: Message) -> bool:
        """Insert a message at its sort position. Returns False for duplicates."""
        if message.id in self._ids:
            return False

        if not self._messages or message.sort_key >= self._messages[-1].sort_key:
            self._messages.append(message)
        else:
            bisect.insort(self._messages, message, key=lambda m: m.sort_key)
        self._ids.add(message.id)
        return True

    def extend(self, messages: Iterable[Message]) -> list[Message]:
        """Add several messages, returning the ones that were new."""
        return [message for message in messages if self.add(message)]

    def get_all(self) -> list[Message]:
        """Get all messages in order."""
        return self._messages.copy()

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Message):
            item = item.id
        return item in self._ids

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages.copy())
