"""
Collaborator Interfaces

DESIGN DECISION: Everything outside the follow-up engine is reached through
an abstract interface. This allows us to:
1. Swap the interpreter backend without touching the engine
2. Use in-memory collaborators for testing
3. Keep the engine free of I/O

The interfaces are intentionally small - only what the conversation flow
actually calls.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from finboo.models.accounts import Account, CreditCard
from finboo.models.audit import AuditEvent
from finboo.models.events import CandidateEvent


class InterpreterInterface(ABC):
    """
    Natural-language interpreter.

    Turns one statement into a batch of candidate events.
    """

    @abstractmethod
    async def interpret(self, text: str) -> list[CandidateEvent]:
        """
        Interpret a statement.

        Args:
            text: Raw or synthesized user statement

        Returns:
            Candidate events, possibly incomplete

        Raises:
            InterpreterConnectionError: Transport failure (retryable)
            InterpreterParseError: The response could not be understood
        """
        pass


class AccountInventoryInterface(ABC):
    """Source of the user's accounts."""

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        """Return a fresh snapshot of the user's accounts."""
        pass


class CardInventoryInterface(ABC):
    """Source of the user's credit cards."""

    @abstractmethod
    async def list_cards(self) -> list[CreditCard]:
        """Return a fresh snapshot of the user's credit cards."""
        pass


class EventStoreInterface(ABC):
    """
    Persistence for confirmed events.

    Only events the user confirmed ever reach this interface.
    """

    @abstractmethod
    async def save(self, events: list[CandidateEvent]) -> int:
        """
        Save confirmed events.

        Args:
            events: Complete, confirmed events

        Returns:
            Number of records saved

        Raises:
            PersistenceError: If save fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one conversation).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class InterpreterError(Exception):
    """Base exception for interpreter failures."""
    pass


class InterpreterConnectionError(InterpreterError):
    """Could not reach the interpreter (transport failure)."""
    pass


class InterpreterParseError(InterpreterError):
    """The interpreter answered, but not with valid candidate events."""
    pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceError(StorageError):
    """Confirmed events could not be saved."""
    pass
