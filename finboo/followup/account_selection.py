"""
Account Selection Handler

Handles the "which account?" follow-up:
1. Detects batches whose events are complete except for the account
2. Applies one picked account to every such event in a batch
3. Rebuilds a single finished event from a stashed partial payload

Events are never modified in place. Filling an account yields a copy with
the same id; events that needed nothing are returned as the same objects.
"""

from typing import Callable, Optional

import structlog

from finboo.followup.text_builders import format_amount
from finboo.models.accounts import SelectedAccountInfo
from finboo.models.events import (
    AutoPaymentEvent,
    CandidateEvent,
    EventType,
    HoldingAction,
    HoldingUpdateEvent,
    NeedMoreInfo,
    PickerType,
    RecordType,
    TransactionEvent,
)
from finboo.models.outcomes import Resolution

logger = structlog.get_logger(__name__)

PAYMENT_ACCOUNT_QUESTION = "Please select a payment account"
RECEIVING_ACCOUNT_QUESTION = "Please select a receiving account"
INVESTMENT_ACCOUNT_QUESTION = "Please select an investment account"

_TRANSACTION_PICKERS = frozenset({
    PickerType.EXPENSE_ACCOUNT,
    PickerType.INCOME_ACCOUNT,
    PickerType.CREDIT_CARD,
})


class AccountSelectionHandler:
    """
    Resolves missing accounts on candidate events.

    Events are scanned in batch order and only the first unresolved one
    decides the picker type. A later condition is picked up by the next scan.
    """

    def check_need_account_selection(
        self,
        events: list[CandidateEvent],
    ) -> Optional[NeedMoreInfo]:
        """
        Synthesize a picker follow-up for the first event lacking an account.

        Returns None when the whole batch is account-resolved.
        """
        for event in events:
            if event.event_type == EventType.TRANSACTION:
                data = event.data
                if not data.is_account_resolved:
                    is_income = data.type == RecordType.INCOME
                    return NeedMoreInfo(
                        original_intent=EventType.TRANSACTION,
                        missing_fields=["source_account"],
                        question=RECEIVING_ACCOUNT_QUESTION if is_income else PAYMENT_ACCOUNT_QUESTION,
                        picker_type=PickerType.INCOME_ACCOUNT if is_income else PickerType.EXPENSE_ACCOUNT,
                        partial_transaction_data=data,
                    )

            if event.event_type == EventType.HOLDING_UPDATE:
                data = event.data
                if not data.is_account_resolved:
                    return NeedMoreInfo(
                        original_intent=EventType.HOLDING_UPDATE,
                        missing_fields=["account"],
                        question=INVESTMENT_ACCOUNT_QUESTION,
                        picker_type=PickerType.INVESTMENT_ACCOUNT,
                        partial_holding_data=data,
                    )

        return None

    def apply_account_to_multiple_events(
        self,
        events: list[CandidateEvent],
        selected: SelectedAccountInfo,
        picker_type: Optional[PickerType] = None,
    ) -> Resolution:
        """
        Apply one picked account to every event of a batch that lacks one.

        Transactions get the card identifier for a card target and the
        account name otherwise. Holdings get the account name and id when a
        plain account was picked for an investment picker. Without a picker
        type both kinds are filled.
        """
        updated_events, _ = self.fill_account(events, selected, picker_type)
        confirm_text = f"OK, {len(updated_events)} records will use {selected.display_name}"
        return Resolution(updated_events, confirm_text)

    def fill_account(
        self,
        events: list[CandidateEvent],
        selected: SelectedAccountInfo,
        picker_type: Optional[PickerType] = None,
    ) -> tuple[list[CandidateEvent], int]:
        """Return the batch with the account applied, and how many events took it."""
        fill_transactions = picker_type is None or picker_type in _TRANSACTION_PICKERS
        fill_holdings = not selected.is_credit_card and (
            picker_type is None or picker_type == PickerType.INVESTMENT_ACCOUNT
        )

        updated_events: list[CandidateEvent] = []
        filled = 0

        for event in events:
            if (
                fill_transactions
                and event.event_type == EventType.TRANSACTION
                and not event.data.is_account_resolved
            ):
                event = event.model_copy(update={"data": _with_transaction_account(event.data, selected)})
                filled += 1
            elif (
                fill_holdings
                and event.event_type == EventType.HOLDING_UPDATE
                and not event.data.is_account_resolved
            ):
                event = event.model_copy(update={
                    "data": event.data.model_copy(update={
                        "account_name": selected.display_name,
                        "account_id": selected.id,
                    })
                })
                filled += 1
            updated_events.append(event)

        logger.info(
            "account_applied_to_batch",
            account=selected.display_name,
            batch_size=len(updated_events),
            filled=filled,
        )
        return updated_events, filled

    def create_event_from_partial_data(
        self,
        needs_more_info: NeedMoreInfo,
        selected: SelectedAccountInfo,
    ) -> Optional[Resolution]:
        """
        Rebuild one finished event from a stashed partial payload.

        Returns None for intents that are not resolved by picking an account,
        and when the expected partial payload is absent.
        """
        builder = self._event_builders().get(needs_more_info.original_intent)
        if builder is None:
            logger.info(
                "picker_intent_unsupported",
                intent=needs_more_info.original_intent.value,
            )
            return None
        return builder(needs_more_info, selected)

    def _event_builders(
        self,
    ) -> dict[EventType, Callable[[NeedMoreInfo, SelectedAccountInfo], Optional[Resolution]]]:
        return {
            EventType.TRANSACTION: self._create_transaction_event,
            EventType.HOLDING_UPDATE: self._create_holding_event,
            EventType.AUTO_PAYMENT: self._create_auto_payment_event,
        }

    def _create_transaction_event(
        self,
        needs_more_info: NeedMoreInfo,
        selected: SelectedAccountInfo,
    ) -> Optional[Resolution]:
        data = needs_more_info.partial_transaction_data
        if data is None:
            return None

        data = _with_transaction_account(data, selected)
        amount = format_amount(data.amount)

        if data.type == RecordType.INCOME:
            confirm_text = f"OK, {data.description} income {amount}元, stored into {selected.display_name}"
        else:
            confirm_text = f"OK, {data.description} {data.type.value} {amount}元, paid via {selected.display_name}"

        return Resolution([TransactionEvent(data=data)], confirm_text)

    def _create_holding_event(
        self,
        needs_more_info: NeedMoreInfo,
        selected: SelectedAccountInfo,
    ) -> Optional[Resolution]:
        data = needs_more_info.partial_holding_data
        if data is None:
            return None

        data = data.model_copy(update={
            "account_name": selected.display_name,
            "account_id": selected.id,
        })
        action = "sell" if data.holding_action == HoldingAction.SELL else "buy"
        confirm_text = (
            f"OK, {action} {format_amount(data.quantity)} shares of {data.name} "
            f"using the {selected.display_name} account"
        )

        return Resolution([HoldingUpdateEvent(data=data)], confirm_text)

    def _create_auto_payment_event(
        self,
        needs_more_info: NeedMoreInfo,
        selected: SelectedAccountInfo,
    ) -> Optional[Resolution]:
        data = needs_more_info.partial_auto_payment_data
        if data is None:
            return None

        data = data.model_copy(update={"source_account": selected.display_name})
        confirm_text = f"OK, the auto-payment for {data.name} will be paid from {selected.display_name}"

        return Resolution([AutoPaymentEvent(data=data)], confirm_text)


def _with_transaction_account(data, selected: SelectedAccountInfo):
    if selected.is_credit_card:
        return data.model_copy(update={"card_identifier": selected.card_identifier})
    return data.model_copy(update={"account_name": selected.display_name})
