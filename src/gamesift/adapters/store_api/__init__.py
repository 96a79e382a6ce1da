"""Public interface for the remote entity store adapter."""

from __future__ import annotations

from .client import HttpPartitionStore, StoreAPIError

__all__ = ["HttpPartitionStore", "StoreAPIError"]
