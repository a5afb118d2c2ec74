"""Storage abstraction package for the Valkey context store."""

from .base import ContextStore
from .valkey_backend import ValkeyContextStore

__all__ = ["ContextStore", "ValkeyContextStore"]
