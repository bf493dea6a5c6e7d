"""Conversation module."""

from .merge import LiveMergeEngine
from .normalize import IMAGE_EXTENSIONS, is_image, normalize
from .reconciler import HistoryReconciler, IHistoryReconciler
from .sender import ISendCoordinator, SendCoordinator, SendResult
from .session import (
    ConversationManager,
    ConversationSession,
    IConversationSession,
    SessionState,
)
from .timeline import Timeline

__all__ = [
    "normalize",
    "is_image",
    "IMAGE_EXTENSIONS",
    "Timeline",
    "IHistoryReconciler",
    "HistoryReconciler",
    "LiveMergeEngine",
    "IConversationSession",
    "ConversationSession",
    "ConversationManager",
    "SessionState",
    "ISendCoordinator",
    "SendCoordinator",
    "SendResult",
]
