from .base import Repository
from .memory import InMemoryStore
from .sql import SqlAlchemyStore

__all__ = ['Repository', 'InMemoryStore', 'SqlAlchemyStore']
