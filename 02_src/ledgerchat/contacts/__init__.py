"""Contacts module."""

from .directory import UNNAMED, ContactDirectory, IContactDirectory

__all__ = ["ContactDirectory", "IContactDirectory", "UNNAMED"]
