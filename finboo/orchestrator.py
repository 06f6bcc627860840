"""
Main Orchestrator for Finboo

This module ties the follow-up engine to its collaborators and defines the
turn-by-turn conversation flow:
1. Statement → (fuse with pending follow-up) → interpret → decide
2. Picker choice → resolve account → confirm
3. Confirm → persist
4. New account created → link parked records

DESIGN DECISION: The orchestrator enforces the boundaries:
- The engine stays synchronous and free of I/O; every collaborator call
  happens here
- Only confirmed events reach the event store
- Transport retries happen here, never inside the engine
- Every turn is audited under one correlation ID
"""

from typing import Optional
from uuid import UUID

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finboo.audit import AuditLogger, create_correlation_id
from finboo.config import FollowUpSettings, get_settings
from finboo.followup import FollowUpManager, picker_options
from finboo.models.accounts import Account, CreditCard, SelectedAccountInfo
from finboo.models.events import CandidateEvent, EventType
from finboo.models.outcomes import (
    FollowUpOutcome,
    NoFollowUpNeeded,
    Resolution,
    SavedEventsSummary,
)
from finboo.services import (
    AccountInventoryInterface,
    CardInventoryInterface,
    EventStoreInterface,
    InMemoryAccountInventory,
    InMemoryAuditStorage,
    InMemoryCardInventory,
    InMemoryEventStore,
    InterpreterConnectionError,
    InterpreterError,
    InterpreterInterface,
    ScriptedInterpreter,
    StorageError,
)

# Events that answer or ask rather than record
_NOT_PERSISTED = frozenset({
    EventType.NEED_MORE_INFO,
    EventType.QUERY_RESPONSE,
    EventType.NULL_STATEMENT,
})


class ChatRecordFlow:
    """
    Orchestrates one user's record-keeping conversation.

    Flow:
    1. submit_text → interpreter batch → FollowUpOutcome
    2. (optional) text follow-up: submit_text again with the reply
    3. (optional) picker follow-up: select_account
    4. confirm_events → event store
    5. (later) on_account_created links records parked for lack of an account

    Turns must not overlap; the caller serializes them.
    """

    def __init__(
        self,
        interpreter: InterpreterInterface,
        account_inventory: AccountInventoryInterface,
        event_store: EventStoreInterface,
        card_inventory: Optional[CardInventoryInterface] = None,
        manager: Optional[FollowUpManager] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[FollowUpSettings] = None,
        correlation_id: Optional[UUID] = None,
    ):
        self._settings = settings or get_settings().follow_up
        self._interpreter = interpreter
        self._account_inventory = account_inventory
        self._card_inventory = card_inventory
        self._event_store = event_store
        self._manager = manager or FollowUpManager(settings=self._settings)
        self._audit_logger = audit_logger
        self.correlation_id = correlation_id or create_correlation_id()

    @property
    def manager(self) -> FollowUpManager:
        return self._manager

    async def submit_text(self, text: str) -> FollowUpOutcome:
        """
        Handle one typed, spoken or OCR'd statement.

        A pending text follow-up is fused with the reply before
        interpretation. Interpreter failures are audited and re-raised.
        """
        statement = text
        if self._manager.has_pending_follow_up:
            statement = self._manager.build_combined_text_for_follow_up(text)
            if self._audit_logger:
                await self._audit_logger.log_text_combined(
                    user_input=text,
                    combined_text=statement,
                    correlation_id=self.correlation_id,
                )

        events = await self._interpret(statement)

        if self._audit_logger:
            await self._audit_logger.log_parse_result(
                event_types=[event.event_type.value for event in events],
                correlation_id=self.correlation_id,
            )

        if not events:
            return NoFollowUpNeeded()

        return await self.review_events(events)

    async def review_events(self, events: list[CandidateEvent]) -> FollowUpOutcome:
        """
        Run the follow-up decision on an already interpreted batch.

        Also used to re-check a resolved batch, since one pick only resolves
        the first missing-account condition of a batch.
        """
        accounts = await self._account_inventory.list_accounts()
        outcome = self._manager.process_parse_result(events, accounts)

        if self._audit_logger:
            descriptor = getattr(outcome, "descriptor", None)
            await self._audit_logger.log_follow_up_decided(
                outcome_kind=outcome.kind.value,
                correlation_id=self.correlation_id,
                picker_type=(
                    descriptor.picker_type.value
                    if descriptor is not None and descriptor.picker_type
                    else None
                ),
                event_count=len(events),
            )

        return outcome

    async def picker_options(self) -> list[SelectedAccountInfo]:
        """Choices to offer for the pending picker; empty when none is pending."""
        pending = self._manager.pending_partial_data
        if pending is None or not pending.requires_picker:
            return []

        accounts = await self._account_inventory.list_accounts()
        cards: list[CreditCard] = []
        if self._card_inventory:
            cards = await self._card_inventory.list_cards()

        return picker_options(pending.picker_type, accounts, cards)

    async def select_account(self, selected: SelectedAccountInfo) -> Optional[Resolution]:
        """
        Resolve the pending picker with the user's choice.

        Returns None when nothing was pending or nothing could be built.
        """
        if not self._manager.has_pending_follow_up and not self._manager.pending_events:
            return None

        resolution = self._manager.handle_picker_selection(selected)

        if resolution and self._audit_logger:
            await self._audit_logger.log_picker_selection(
                account_name=selected.display_name,
                event_count=len(resolution.events),
                correlation_id=self.correlation_id,
            )

        return resolution

    async def confirm_events(self, events: list[CandidateEvent]) -> SavedEventsSummary:
        """
        Persist events the user confirmed.

        CRITICAL: This is called ONLY after explicit user confirmation.
        Questions and answers in the batch are not persisted. Storage
        errors are audited and re-raised verbatim.
        """
        persistable = [event for event in events if event.event_type not in _NOT_PERSISTED]
        if not persistable:
            return SavedEventsSummary.from_events([])

        try:
            saved_count = await self._event_store.save(persistable)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_save_failed(
                    error_message=str(e),
                    event_count=len(persistable),
                    correlation_id=self.correlation_id,
                )
            raise
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"stage": "save", "event_count": len(persistable)},
                    correlation_id=self.correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_events_saved(
                saved_count=saved_count,
                correlation_id=self.correlation_id,
            )

        return SavedEventsSummary.from_events(persistable, saved_count=saved_count)

    async def on_account_created(self, account: Account) -> Optional[Resolution]:
        """Link records parked for lack of an account to a new account."""
        resolution = self._manager.apply_pending_transactions_to_new_account(account)

        if resolution and self._audit_logger:
            await self._audit_logger.log_pending_linked(
                account_name=account.name,
                event_count=len(resolution.events),
                correlation_id=self.correlation_id,
            )

        return resolution

    async def cancel(self) -> None:
        """User dismissed the follow-up."""
        self._manager.cancel_follow_up()

        if self._audit_logger:
            await self._audit_logger.log_follow_up_cancelled(self.correlation_id)

    async def _interpret(self, text: str) -> list[CandidateEvent]:
        settings = self._settings
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(settings.interpreter_retry_attempts),
                wait=wait_exponential(
                    multiplier=1,
                    min=settings.retry_wait_min_seconds,
                    max=settings.retry_wait_max_seconds,
                ),
                retry=retry_if_exception_type(InterpreterConnectionError),
                reraise=True,
            ):
                with attempt:
                    events = await self._interpreter.interpret(text)
        except InterpreterConnectionError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="interpreter",
                    error_message=str(e),
                    correlation_id=self.correlation_id,
                )
            raise
        except InterpreterError as e:
            if self._audit_logger:
                await self._audit_logger.log_interpreter_failed(
                    error_message=str(e),
                    correlation_id=self.correlation_id,
                )
            raise

        return events


def create_app_components(
    accounts: Optional[list[Account]] = None,
    cards: Optional[list[CreditCard]] = None,
    interpreter: Optional[InterpreterInterface] = None,
) -> tuple[ChatRecordFlow, InMemoryEventStore, InMemoryAuditStorage]:
    """
    Factory function wiring a conversation flow with in-memory collaborators.

    Args:
        accounts: Initial account inventory
        cards: Initial card inventory
        interpreter: Interpreter to use; a scripted one answering
                     NULL_STATEMENT to everything by default

    Returns:
        (flow, event_store, audit_storage)
    """
    settings = get_settings()

    event_store = InMemoryEventStore()
    audit_storage = InMemoryAuditStorage()

    flow = ChatRecordFlow(
        interpreter=interpreter or ScriptedInterpreter(),
        account_inventory=InMemoryAccountInventory(accounts),
        card_inventory=InMemoryCardInventory(cards),
        event_store=event_store,
        audit_logger=AuditLogger(audit_storage),
        settings=settings.follow_up,
    )

    return flow, event_store, audit_storage
