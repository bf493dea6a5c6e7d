"""SendCoordinator implementation."""

from dataclasses import dataclass
from typing import Protocol

from ..blobstore import IBlobStore
from ..errors import SubmissionRejected
from ..ledger import ILedgerClient, Receipt
from ..logging_config import get_logger
from ..models import (
    ConversationRef,
    OutgoingAttachment,
    OutgoingContent,
    OutgoingText,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class SendResult:
    """Outcome of a confirmed send."""

    conversation: ConversationRef
    operation: str
    receipt: Receipt
    content_id: str | None = None


class ISendCoordinator(Protocol):
    """Submitting outgoing messages to the ledger."""

    @property
    def sending(self) -> bool:
        """Whether a submission is awaiting confirmation."""
        ...

    async def send(
        self, conversation: ConversationRef, content: OutgoingContent
    ) -> SendResult:
        """Submit content and wait for final settlement."""
        ...


class SendCoordinator:
    """Submits outgoing messages and waits for ledger confirmation.

    Nothing is inserted into any timeline here: the message shows up only
    when the live feed delivers the ledger's own event for it.
    """

    def __init__(self, client: ILedgerClient, blob_store: IBlobStore):
        self._client = client
        self._blob_store = blob_store
        self._in_flight = 0

    @property
    def sending(self) -> bool:
        return self._in_flight > 0

    async def send(
        self, conversation: ConversationRef, content: OutgoingContent
    ) -> SendResult:
        """Send text, or upload an attachment and send its reference.

        Raises BlobStoreFailed before any ledger submission when the upload
        fails, and SubmissionRejected with the ledger's reason on revert.
        """
        if isinstance(content, OutgoingText):
            text = content.text.strip()
            if not text:
                raise ValueError("Message text cannot be empty")
        elif isinstance(content, OutgoingAttachment):
            if not content.data:
                raise ValueError("Attachment is empty")
        else:
            raise TypeError(f"Unsupported content: {type(content).__name__}")

        content_id = None
        self._in_flight += 1
        try:
            if isinstance(content, OutgoingAttachment):
                content_id = await self._blob_store.put(content.data, content.file_name)
                operation, args = self._attachment_operation(
                    conversation, content_id, content.file_name
                )
            else:
                operation, args = self._text_operation(conversation, text)

            pending = await self._client.submit(operation, *args)
            receipt = await self._client.await_confirmation(pending)
        except SubmissionRejected as e:
            logger.warning(
                "Send to %s rejected: %s",
                conversation,
                e.reason,
                extra={"conversation": conversation},
            )
            raise
        finally:
            self._in_flight -= 1

        logger.info(
            "%s confirmed in block %s",
            operation,
            receipt.block_number,
            extra={"conversation": conversation},
        )
        return SendResult(
            conversation=conversation,
            operation=operation,
            receipt=receipt,
            content_id=content_id,
        )

    @staticmethod
    def _text_operation(conversation: ConversationRef, text: str) -> tuple[str, tuple]:
        if conversation.is_direct:
            return "sendMessageText", (conversation.key, text)
        return "sendGroupTextMessage", (conversation.key, text)

    @staticmethod
    def _attachment_operation(
        conversation: ConversationRef, content_id: str, file_name: str
    ) -> tuple[str, tuple]:
        if conversation.is_direct:
            return "sendMessageIPFS", (conversation.key, content_id, file_name)
        return "sendGroupIPFSMessage", (conversation.key, content_id, file_name)
