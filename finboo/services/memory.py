"""
In-Memory Collaborators

Process-local implementations of the collaborator interfaces. Used by the
test suite and for running the conversation flow without any backend.
"""

from typing import Callable, Optional
from uuid import UUID

from pydantic import ValidationError

from finboo.models.accounts import Account, CreditCard
from finboo.models.audit import AuditEvent
from finboo.models.events import CandidateEvent, parse_candidate_events
from finboo.services.interface import (
    AccountInventoryInterface,
    AuditStorageInterface,
    CardInventoryInterface,
    EventStoreInterface,
    InterpreterInterface,
    InterpreterParseError,
)


class ScriptedInterpreter(InterpreterInterface):
    """
    Interpreter that answers from a fixed script.

    `responses` maps an exact statement to the raw event dicts the real
    interpreter would have returned; `fallback` handles everything else.
    Every statement received is kept in `received` for inspection.
    """

    def __init__(
        self,
        responses: Optional[dict[str, list[dict]]] = None,
        fallback: Optional[Callable[[str], list[dict]]] = None,
    ):
        self._responses = dict(responses or {})
        self._fallback = fallback
        self.received: list[str] = []

    async def interpret(self, text: str) -> list[CandidateEvent]:
        self.received.append(text)

        if text in self._responses:
            raw = self._responses[text]
        elif self._fallback is not None:
            raw = self._fallback(text)
        else:
            raw = [{"event_type": "NULL_STATEMENT", "data": {"reason": "unrecognised"}}]

        try:
            return parse_candidate_events(raw)
        except ValidationError as e:
            raise InterpreterParseError(str(e)) from e


class InMemoryAccountInventory(AccountInventoryInterface):
    """Account inventory backed by a list."""

    def __init__(self, accounts: Optional[list[Account]] = None):
        self.accounts: list[Account] = list(accounts or [])

    def add(self, account: Account) -> None:
        self.accounts.append(account)

    async def list_accounts(self) -> list[Account]:
        return list(self.accounts)


class InMemoryCardInventory(CardInventoryInterface):
    """Card inventory backed by a list."""

    def __init__(self, cards: Optional[list[CreditCard]] = None):
        self.cards: list[CreditCard] = list(cards or [])

    async def list_cards(self) -> list[CreditCard]:
        return list(self.cards)


class InMemoryEventStore(EventStoreInterface):
    """Event store that keeps saved events in a list."""

    def __init__(self):
        self.saved: list[CandidateEvent] = []

    async def save(self, events: list[CandidateEvent]) -> int:
        self.saved.extend(events)
        return len(events)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in memory."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
