"""Contacts and registration API routes."""

from typing import Union

from fastapi import APIRouter
from pydantic import BaseModel

from ...app import Application
from ..errors import to_http_error


class RegisterRequest(BaseModel):
    """Request model for registering a username."""

    name: str


class FriendRequest(BaseModel):
    """Request model for adding a friend by address or username."""

    query: str


class GroupRequest(BaseModel):
    """Request model for creating a group."""

    name: str
    members: list[str] = []


class AccountResponse(BaseModel):
    """Response model for the local account."""

    address: str
    username: str


class ContactResponse(BaseModel):
    """Response model for a contact."""

    kind: str
    id: Union[int, str]
    name: str
    members: list[str]


class ReceiptResponse(BaseModel):
    """Response model for a confirmed operation."""

    operation: str
    block_number: int


def create_contacts_router(app: Application) -> APIRouter:
    """Create contacts router."""
    router = APIRouter(prefix="/api", tags=["contacts"])

    @router.get("/me", response_model=AccountResponse)
    async def get_me() -> dict:
        """Get the local account and its username."""
        try:
            username = await app.contacts.current_username()
            return {"address": app.account.address, "username": username}
        except Exception as e:
            raise to_http_error(e)

    @router.post("/users", response_model=ReceiptResponse)
    async def register(request: RegisterRequest) -> dict:
        """Register a username for the local account."""
        try:
            receipt = await app.contacts.register(request.name)
            return {"operation": receipt.operation, "block_number": receipt.block_number}
        except Exception as e:
            raise to_http_error(e)

    @router.get("/contacts", response_model=list[ContactResponse])
    async def list_contacts() -> list[dict]:
        """List friends followed by groups."""
        try:
            contacts = await app.contacts.list_contacts()
        except Exception as e:
            raise to_http_error(e)
        return [
            {
                "kind": c.conversation.kind.value,
                "id": c.conversation.key,
                "name": c.name,
                "members": c.members,
            }
            for c in contacts
        ]

    @router.post("/contacts/friends", response_model=ReceiptResponse)
    async def add_friend(request: FriendRequest) -> dict:
        """Add a friend by address or username."""
        try:
            receipt = await app.contacts.add_friend(request.query)
            return {"operation": receipt.operation, "block_number": receipt.block_number}
        except Exception as e:
            raise to_http_error(e)

    @router.post("/groups", response_model=ReceiptResponse)
    async def create_group(request: GroupRequest) -> dict:
        """Create a group."""
        try:
            receipt = await app.contacts.create_group(request.name, request.members)
            return {"operation": receipt.operation, "block_number": receipt.block_number}
        except Exception as e:
            raise to_http_error(e)

    return router
