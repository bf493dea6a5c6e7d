"""Display name module."""

from .cache import DisplayNameCache, INameResolver

__all__ = ["DisplayNameCache", "INameResolver"]
