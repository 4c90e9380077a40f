"""
Persistence collaborator: the storage contract and its implementations.

`SqlAlchemyGameStore` lives in `questify.modules.persistence.sql_store` and
is imported from there so the in-memory store needs no database stack.
"""

from questify.modules.persistence.store import GameStore, InMemoryGameStore

__all__ = ["GameStore", "InMemoryGameStore"]
