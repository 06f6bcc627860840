"""
Services Package

Abstract collaborator interfaces and in-memory implementations.
"""

from finboo.services.interface import (
    AccountInventoryInterface,
    AuditStorageInterface,
    CardInventoryInterface,
    EventStoreInterface,
    InterpreterConnectionError,
    InterpreterError,
    InterpreterInterface,
    InterpreterParseError,
    PersistenceError,
    StorageError,
)
from finboo.services.memory import (
    InMemoryAccountInventory,
    InMemoryAuditStorage,
    InMemoryCardInventory,
    InMemoryEventStore,
    ScriptedInterpreter,
)

__all__ = [
    # Interfaces
    "AccountInventoryInterface",
    "AuditStorageInterface",
    "CardInventoryInterface",
    "EventStoreInterface",
    "InterpreterInterface",
    # Exceptions
    "InterpreterConnectionError",
    "InterpreterError",
    "InterpreterParseError",
    "PersistenceError",
    "StorageError",
    # In-memory implementations
    "InMemoryAccountInventory",
    "InMemoryAuditStorage",
    "InMemoryCardInventory",
    "InMemoryEventStore",
    "ScriptedInterpreter",
]
