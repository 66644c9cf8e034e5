"""Balance stores: the capability set the engine reads and writes through."""

from balance_kernel.store.base import BalanceStore
from balance_kernel.store.memory import InMemoryBalanceStore
from balance_kernel.store.sql import SqlBalanceStore

__all__ = [
    "BalanceStore",
    "InMemoryBalanceStore",
    "SqlBalanceStore",
]
