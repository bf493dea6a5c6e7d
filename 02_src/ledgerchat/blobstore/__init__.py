"""Blob store module."""

from .client import HttpBlobStore, IBlobStore, gateway_url

__all__ = ["HttpBlobStore", "IBlobStore", "gateway_url"]
