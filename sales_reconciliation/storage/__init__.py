"""Persistence interface and the in-memory store."""

from .repository import InMemorySalesRepository, SalesRepository, StoredHousehold

__all__ = [
    "InMemorySalesRepository",
    "SalesRepository",
    "StoredHousehold",
]
