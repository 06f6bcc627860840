"""
Integration tests for the conversation flow.

All collaborators are in-memory; no interpreter or database is reached.
"""

import asyncio

import pytest

from finboo.audit import AuditLogger
from finboo.config import FollowUpSettings
from finboo.models.accounts import Account, AssetType, CreditCard, SelectedAccountInfo
from finboo.models.events import parse_candidate_events
from finboo.models.audit import AuditEventType
from finboo.models.outcomes import (
    NoAccountsGuidance,
    NoFollowUpNeeded,
    ShowEventCards,
    ShowPickerFollowUp,
    ShowTextFollowUp,
)
from finboo.orchestrator import ChatRecordFlow, create_app_components
from finboo.services import (
    EventStoreInterface,
    InMemoryAccountInventory,
    InMemoryAuditStorage,
    InMemoryCardInventory,
    InMemoryEventStore,
    InterpreterConnectionError,
    InterpreterInterface,
    InterpreterParseError,
    PersistenceError,
    ScriptedInterpreter,
)


BANK = Account(id="acc-bank", name="ICBC", type=AssetType.BANK)
BROKERAGE = Account(id="acc-futu", name="Futu", type=AssetType.INVESTMENT)
CARD = CreditCard(id="card-1", name="Citi Rewards", card_identifier="1234")

TAXI_NO_ACCOUNT = [
    {"event_type": "TRANSACTION", "data": {"description": "taxi", "amount": "15"}},
]
TAXI_WITH_ACCOUNT = [
    {
        "event_type": "TRANSACTION",
        "data": {"description": "taxi", "amount": "15", "account_name": "ICBC"},
    },
]
TAXI_MISSING_AMOUNT = [
    {
        "event_type": "NEED_MORE_INFO",
        "data": {
            "original_intent": "TRANSACTION",
            "missing_fields": ["amount"],
            "question": "How much was the taxi?",
            "partial_transaction_data": {"description": "taxi", "type": "expense"},
        },
    },
]
BUY_AAPL = [
    {
        "event_type": "HOLDING_UPDATE",
        "data": {"name": "AAPL", "holding_action": "BUY", "quantity": "10", "price": "180"},
    },
]


def _settings() -> FollowUpSettings:
    return FollowUpSettings(
        interpreter_retry_attempts=3,
        retry_wait_min_seconds=0,
        retry_wait_max_seconds=0,
    )


def _flow(interpreter, accounts=None, cards=None, event_store=None):
    audit_storage = InMemoryAuditStorage()
    account_inventory = InMemoryAccountInventory(accounts)
    flow = ChatRecordFlow(
        interpreter=interpreter,
        account_inventory=account_inventory,
        card_inventory=InMemoryCardInventory(cards),
        event_store=event_store or InMemoryEventStore(),
        audit_logger=AuditLogger(audit_storage),
        settings=_settings(),
    )
    return flow, account_inventory, audit_storage


def _audit_types(flow, audit_storage) -> list[AuditEventType]:
    events = asyncio.run(audit_storage.get_events_by_correlation_id(flow.correlation_id))
    return [event.event_type for event in events]


class FlakyInterpreter(InterpreterInterface):
    """Fails with a transport error a fixed number of times, then answers."""

    def __init__(self, failures: int, raw: list[dict]):
        self._failures = failures
        self._delegate = ScriptedInterpreter(fallback=lambda text: raw)
        self.calls = 0

    async def interpret(self, text: str):
        self.calls += 1
        if self.calls <= self._failures:
            raise InterpreterConnectionError("connection reset")
        return await self._delegate.interpret(text)


class FailingEventStore(EventStoreInterface):
    async def save(self, events):
        raise PersistenceError("disk full")


class TestSubmitText:
    """Tests for interpreting statements."""

    def test_resolved_statement_shows_cards(self):
        """Test a complete statement goes straight to confirmation."""
        flow, _, audit_storage = _flow(
            ScriptedInterpreter({"taxi 15 with ICBC": TAXI_WITH_ACCOUNT}),
            accounts=[BANK],
        )

        outcome = asyncio.run(flow.submit_text("taxi 15 with ICBC"))

        assert isinstance(outcome, ShowEventCards)
        assert _audit_types(flow, audit_storage) == [
            AuditEventType.PARSE_RESULT_RECEIVED,
            AuditEventType.EVENT_CARDS_SHOWN,
        ]

    def test_empty_batch_needs_nothing(self):
        """Test an empty interpretation yields no follow-up."""
        flow, _, _ = _flow(ScriptedInterpreter({"hi": []}))

        outcome = asyncio.run(flow.submit_text("hi"))

        assert isinstance(outcome, NoFollowUpNeeded)

    def test_text_follow_up_is_fused_with_reply(self):
        """Test a bare reply is merged with the pending question before interpreting."""
        interpreter = ScriptedInterpreter({
            "taxi": TAXI_MISSING_AMOUNT,
            "taxi expense 15块": TAXI_WITH_ACCOUNT,
        })
        flow, _, audit_storage = _flow(interpreter, accounts=[BANK])

        first = asyncio.run(flow.submit_text("taxi"))
        second = asyncio.run(flow.submit_text("15"))

        assert isinstance(first, ShowTextFollowUp)
        assert first.question == "How much was the taxi?"
        assert interpreter.received == ["taxi", "taxi expense 15块"]
        assert isinstance(second, ShowEventCards)
        assert AuditEventType.FOLLOW_UP_TEXT_COMBINED in _audit_types(flow, audit_storage)

    def test_missing_investment_account_guidance(self):
        """Test a holding without investment account is parked with guidance."""
        flow, _, audit_storage = _flow(
            ScriptedInterpreter({"bought 10 AAPL at 180": BUY_AAPL}),
            accounts=[BANK],
        )

        outcome = asyncio.run(flow.submit_text("bought 10 AAPL at 180"))

        assert isinstance(outcome, NoAccountsGuidance)
        assert flow.manager.has_pending_transactions_for_new_account is True
        assert AuditEventType.NO_ACCOUNTS_GUIDANCE_SHOWN in _audit_types(flow, audit_storage)


class TestInterpreterFailures:
    """Tests for retry and failure handling around the interpreter."""

    def test_transport_errors_are_retried(self):
        """Test transient transport failures are retried."""
        interpreter = FlakyInterpreter(failures=2, raw=TAXI_WITH_ACCOUNT)
        flow, _, _ = _flow(interpreter, accounts=[BANK])

        outcome = asyncio.run(flow.submit_text("taxi 15"))

        assert interpreter.calls == 3
        assert isinstance(outcome, ShowEventCards)

    def test_transport_error_reraised_after_last_attempt(self):
        """Test the transport error surfaces once attempts are exhausted."""
        interpreter = FlakyInterpreter(failures=5, raw=TAXI_WITH_ACCOUNT)
        flow, _, audit_storage = _flow(interpreter)

        with pytest.raises(InterpreterConnectionError):
            asyncio.run(flow.submit_text("taxi 15"))

        assert interpreter.calls == 3
        assert _audit_types(flow, audit_storage) == [AuditEventType.EXTERNAL_SERVICE_ERROR]

    def test_parse_error_is_not_retried(self):
        """Test a malformed answer fails immediately."""
        interpreter = ScriptedInterpreter({"???": [{"event_type": "LOTTERY", "data": {}}]})
        flow, _, audit_storage = _flow(interpreter)

        with pytest.raises(InterpreterParseError):
            asyncio.run(flow.submit_text("???"))

        assert interpreter.received == ["???"]
        assert _audit_types(flow, audit_storage) == [AuditEventType.INTERPRETER_FAILED]

    def test_failed_reply_leaves_session_idle(self):
        """Test the pending question is consumed even if re-interpretation fails."""
        interpreter = ScriptedInterpreter({
            "taxi": TAXI_MISSING_AMOUNT,
            "taxi expense 15块": [{"event_type": "LOTTERY", "data": {}}],
        })
        flow, _, _ = _flow(interpreter, accounts=[BANK])
        asyncio.run(flow.submit_text("taxi"))

        with pytest.raises(InterpreterParseError):
            asyncio.run(flow.submit_text("15"))

        assert flow.manager.has_pending_follow_up is False


class TestPickerFlow:
    """Tests for the account picker round trip."""

    def test_pick_and_confirm(self):
        """Test a picked account is applied and the batch saved."""
        event_store = InMemoryEventStore()
        flow, _, audit_storage = _flow(
            ScriptedInterpreter({"taxi 15": TAXI_NO_ACCOUNT}),
            accounts=[BANK, BROKERAGE],
            cards=[CARD],
            event_store=event_store,
        )

        outcome = asyncio.run(flow.submit_text("taxi 15"))
        assert isinstance(outcome, ShowPickerFollowUp)

        options = asyncio.run(flow.picker_options())
        assert [o.display_name for o in options] == ["ICBC", "Citi Rewards"]

        resolution = asyncio.run(flow.select_account(options[0]))
        assert resolution.events[0].data.account_name == "ICBC"

        summary = asyncio.run(flow.confirm_events(resolution.events))

        assert summary.saved_count == 1
        assert summary.transaction_count == 1
        assert event_store.saved == resolution.events
        assert _audit_types(flow, audit_storage) == [
            AuditEventType.PARSE_RESULT_RECEIVED,
            AuditEventType.PICKER_FOLLOW_UP_REQUESTED,
            AuditEventType.PICKER_SELECTION_APPLIED,
            AuditEventType.EVENTS_SAVED,
        ]

    def test_picker_options_empty_without_picker(self):
        """Test no options are offered when nothing is pending."""
        flow, _, _ = _flow(ScriptedInterpreter(), accounts=[BANK])
        assert asyncio.run(flow.picker_options()) == []

    def test_stray_selection_is_ignored(self):
        """Test a pick with nothing pending does nothing."""
        flow, _, audit_storage = _flow(ScriptedInterpreter(), accounts=[BANK])

        options = asyncio.run(flow.picker_options())
        assert options == []

        assert asyncio.run(flow.select_account(SelectedAccountInfo.from_account(BANK))) is None
        assert _audit_types(flow, audit_storage) == []

    def test_cancel(self):
        """Test cancelling clears the picker and is audited."""
        flow, _, audit_storage = _flow(
            ScriptedInterpreter({"taxi 15": TAXI_NO_ACCOUNT}),
            accounts=[BANK],
        )
        asyncio.run(flow.submit_text("taxi 15"))

        asyncio.run(flow.cancel())

        assert flow.manager.has_pending_follow_up is False
        assert flow.manager.pending_events == []
        assert _audit_types(flow, audit_storage)[-1] == AuditEventType.FOLLOW_UP_CANCELLED


class TestNewAccountFlow:
    """Tests for linking parked records to a new account."""

    def test_created_account_links_parked_holding(self):
        """Test the parked holding is linked once a brokerage account exists."""
        flow, account_inventory, audit_storage = _flow(
            ScriptedInterpreter({"bought 10 AAPL at 180": BUY_AAPL}),
            accounts=[BANK],
        )
        asyncio.run(flow.submit_text("bought 10 AAPL at 180"))

        account_inventory.add(BROKERAGE)
        resolution = asyncio.run(flow.on_account_created(BROKERAGE))

        assert resolution.events[0].data.account_id == "acc-futu"
        assert "1 earlier records" in resolution.confirm_text
        assert flow.manager.has_pending_transactions_for_new_account is False
        assert AuditEventType.PENDING_LINKED_TO_NEW_ACCOUNT in _audit_types(flow, audit_storage)

        outcome = asyncio.run(flow.review_events(resolution.events))
        assert isinstance(outcome, ShowEventCards)


class TestConfirmEvents:
    """Tests for persisting confirmed events."""

    def test_answers_are_not_persisted(self):
        """Test query answers and null statements never reach the store."""
        event_store = InMemoryEventStore()
        flow, _, _ = _flow(ScriptedInterpreter(), event_store=event_store)
        events = parse_candidate_events([
            {"event_type": "QUERY_RESPONSE", "data": {"answer": "You spent 35"}},
            {"event_type": "NULL_STATEMENT"},
        ])

        summary = asyncio.run(flow.confirm_events(events))

        assert summary.total_count == 0
        assert event_store.saved == []

    def test_persistence_error_is_reraised(self):
        """Test storage failures surface verbatim and are audited."""
        flow, _, audit_storage = _flow(ScriptedInterpreter(), event_store=FailingEventStore())
        events = parse_candidate_events(TAXI_WITH_ACCOUNT)

        with pytest.raises(PersistenceError, match="disk full"):
            asyncio.run(flow.confirm_events(events))

        assert _audit_types(flow, audit_storage) == [AuditEventType.SAVE_FAILED]


class TestCreateAppComponents:
    """Tests for the wiring factory."""

    def test_components_are_wired(self):
        """Test the factory returns a working flow."""
        flow, event_store, audit_storage = create_app_components(
            accounts=[BANK],
            interpreter=ScriptedInterpreter({"taxi 15": TAXI_WITH_ACCOUNT}),
        )

        outcome = asyncio.run(flow.submit_text("taxi 15"))
        summary = asyncio.run(flow.confirm_events(outcome.events))

        assert summary.saved_count == 1
        assert len(event_store.saved) == 1
        recent = asyncio.run(audit_storage.get_recent_events())
        assert recent[0].event_type == AuditEventType.EVENTS_SAVED


class BrokenEventStore(EventStoreInterface):
    async def save(self, events):
        raise RuntimeError("serializer crashed")


class TestUnexpectedSaveErrors:
    """Tests for failures outside the storage error hierarchy."""

    def test_unexpected_error_is_audited_as_system_error(self):
        """Test non-storage failures are re-raised and logged as system errors."""
        flow, _, audit_storage = _flow(ScriptedInterpreter(), event_store=BrokenEventStore())
        events = parse_candidate_events(TAXI_WITH_ACCOUNT)

        with pytest.raises(RuntimeError):
            asyncio.run(flow.confirm_events(events))

        assert _audit_types(flow, audit_storage) == [AuditEventType.SYSTEM_ERROR]
