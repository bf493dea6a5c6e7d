"""API routers."""

from .contacts import create_contacts_router
from .conversations import create_conversations_router

__all__ = ["create_contacts_router", "create_conversations_router"]
