"""
Store Module
============

Configuration-store contract, in-memory implementation and TTL cache.
"""

from nl2sql_gateway.store.base import ConfigStore
from nl2sql_gateway.store.cache import CachedConfigStore
from nl2sql_gateway.store.memory import InMemoryConfigStore
from nl2sql_gateway.store.seed import load_seed

__all__ = [
    "ConfigStore",
    "CachedConfigStore",
    "InMemoryConfigStore",
    "load_seed",
]
