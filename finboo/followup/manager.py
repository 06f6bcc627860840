"""
Follow-Up Manager

The state machine that sits between the interpreter and persistence.

States:
- IDLE: nothing pending
- AWAITING_TEXT: a question was asked, a free-text reply is expected
- AWAITING_PICKER: a structured choice is expected, optionally for a whole
  stashed batch
- AWAITING_NEW_ACCOUNT: a batch is parked until the user creates an
  eligible account

DESIGN DECISION: All pending state lives in an explicit `FollowUpSession`
value object. The manager only holds a reference to it, so any state can be
set up directly in a test and every transition inspected afterwards.

The manager never raises for a lookup that fails. A None result means
"nothing to do"; the user can simply describe the transaction again.
Turns of one session must be serialized by the caller.
"""

from enum import Enum
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from finboo.config import FollowUpSettings, get_settings
from finboo.followup.account_selection import AccountSelectionHandler
from finboo.followup.eligibility import has_eligible_target
from finboo.followup.messages import (
    build_new_account_confirmation,
    build_no_account_guidance,
)
from finboo.followup.text_builders import FollowUpTextBuilders
from finboo.models.accounts import Account, SelectedAccountInfo
from finboo.models.events import CandidateEvent, EventType, NeedMoreInfo
from finboo.models.outcomes import (
    FollowUpOutcome,
    NoAccountsGuidance,
    Resolution,
    ShowEventCards,
    ShowPickerFollowUp,
    ShowTextFollowUp,
)

logger = structlog.get_logger(__name__)


class FollowUpState(str, Enum):
    IDLE = "idle"
    AWAITING_TEXT = "awaiting_text"
    AWAITING_PICKER = "awaiting_picker"
    AWAITING_NEW_ACCOUNT = "awaiting_new_account"


class FollowUpSession(BaseModel):
    """
    Pending state of one user's conversation.

    `pending_transactions_for_new_account` has its own lifecycle: it is
    tied to account creation, not to the current turn, and survives
    cancellation.
    """

    pending_partial_data: Optional[NeedMoreInfo] = Field(
        default=None,
        description="The one outstanding follow-up descriptor"
    )
    pending_events: list[CandidateEvent] = Field(
        default_factory=list,
        description="Batch waiting for a picked account"
    )
    pending_transactions_for_new_account: list[CandidateEvent] = Field(
        default_factory=list,
        description="Batch parked until an eligible account is created"
    )

    @property
    def state(self) -> FollowUpState:
        if self.pending_partial_data is not None:
            if self.pending_partial_data.requires_picker:
                return FollowUpState.AWAITING_PICKER
            return FollowUpState.AWAITING_TEXT
        if self.pending_transactions_for_new_account:
            return FollowUpState.AWAITING_NEW_ACCOUNT
        return FollowUpState.IDLE


class FollowUpManager:
    """
    Decides whether a batch needs more input and resolves the answers.

    Usage:
        manager = FollowUpManager()
        outcome = manager.process_parse_result(events, accounts)
        # ... next turn
        text = manager.build_combined_text_for_follow_up("15")
        resolution = manager.handle_picker_selection(selected)
    """

    def __init__(
        self,
        session: Optional[FollowUpSession] = None,
        text_builders: Optional[FollowUpTextBuilders] = None,
        account_handler: Optional[AccountSelectionHandler] = None,
        settings: Optional[FollowUpSettings] = None,
    ):
        self.session = session if session is not None else FollowUpSession()
        self._text_builders = text_builders or FollowUpTextBuilders()
        self._account_handler = account_handler or AccountSelectionHandler()
        self._settings = settings or get_settings().follow_up

    # -------------------------------------------------------------------------
    # State accessors
    # -------------------------------------------------------------------------

    @property
    def pending_partial_data(self) -> Optional[NeedMoreInfo]:
        return self.session.pending_partial_data

    @property
    def pending_events(self) -> list[CandidateEvent]:
        return self.session.pending_events

    @property
    def pending_transactions_for_new_account(self) -> list[CandidateEvent]:
        return self.session.pending_transactions_for_new_account

    @property
    def state(self) -> FollowUpState:
        return self.session.state

    @property
    def has_pending_follow_up(self) -> bool:
        return self.session.pending_partial_data is not None

    @property
    def has_pending_transactions_for_new_account(self) -> bool:
        return bool(self.session.pending_transactions_for_new_account)

    # -------------------------------------------------------------------------
    # Decision
    # -------------------------------------------------------------------------

    def process_parse_result(
        self,
        events: list[CandidateEvent],
        available_accounts: Optional[list[Account]] = None,
    ) -> FollowUpOutcome:
        """
        Decide what the user must do next with an interpreted batch.

        First match wins:
        1. An explicit NEED_MORE_INFO event: ask its question or show a picker
           (guidance instead, if the picker would be empty).
        2. An event lacking an account: show a picker for the whole batch, or
           park the batch and show guidance if no eligible account exists.
        3. Otherwise the batch can be shown for confirmation as is.
        """
        accounts = available_accounts or []

        # 1. Interpreter asked for more information
        need_more_info = next(
            (event for event in events if event.event_type == EventType.NEED_MORE_INFO),
            None,
        )
        if need_more_info is not None:
            descriptor = need_more_info.data
            self.session.pending_partial_data = descriptor
            self.session.pending_events = []

            if descriptor.requires_picker:
                if has_eligible_target(descriptor.picker_type, accounts):
                    logger.info(
                        "picker_follow_up",
                        source="interpreter",
                        picker_type=descriptor.picker_type.value,
                    )
                    return ShowPickerFollowUp(descriptor=descriptor)

                # The interpreter's question already carries the guidance
                logger.info(
                    "no_eligible_account",
                    source="interpreter",
                    picker_type=descriptor.picker_type.value,
                )
                return NoAccountsGuidance(message=descriptor.question, events=events)

            logger.info(
                "text_follow_up",
                intent=descriptor.original_intent.value,
                missing_fields=descriptor.missing_fields,
            )
            return ShowTextFollowUp(question=descriptor.question)

        # 2. Complete events that still lack an account
        account_follow_up = self._account_handler.check_need_account_selection(events)
        if account_follow_up is not None:
            if not has_eligible_target(account_follow_up.picker_type, accounts):
                self.cancel_follow_up()
                self.session.pending_transactions_for_new_account = list(events)
                logger.info(
                    "no_eligible_account",
                    source="batch",
                    picker_type=account_follow_up.picker_type.value,
                    parked=len(events),
                )
                message = build_no_account_guidance(
                    account_follow_up.picker_type,
                    self._settings.assistant_name,
                )
                return NoAccountsGuidance(message=message, events=events)

            self.session.pending_events = list(events)
            self.session.pending_partial_data = account_follow_up
            logger.info(
                "picker_follow_up",
                source="batch",
                picker_type=account_follow_up.picker_type.value,
                batch_size=len(events),
            )
            return ShowPickerFollowUp(descriptor=account_follow_up)

        # 3. Nothing blocks persistence
        self.cancel_follow_up()
        return ShowEventCards(events=events)

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def build_combined_text_for_follow_up(self, user_input: str) -> Optional[str]:
        """
        Fuse a text reply with the pending descriptor for re-interpretation.

        Consumes the descriptor (and any batch waiting on it). Returns None
        when nothing was pending.
        """
        pending = self.session.pending_partial_data
        if pending is None:
            return None

        self.session.pending_partial_data = None
        self.session.pending_events = []

        return self._text_builders.build_combined_text(user_input, pending)

    def handle_picker_selection(
        self,
        selected: SelectedAccountInfo,
        needs_more_info: Optional[NeedMoreInfo] = None,
    ) -> Optional[Resolution]:
        """
        Apply a picked account.

        With a stashed batch the account goes to every event lacking one;
        otherwise a single event is rebuilt from the descriptor's partial
        payload. The descriptor defaults to the pending one.
        """
        descriptor = needs_more_info or self.session.pending_partial_data
        self.session.pending_partial_data = None

        if self.session.pending_events:
            batch = self.session.pending_events
            self.session.pending_events = []
            return self._account_handler.apply_account_to_multiple_events(
                batch,
                selected,
                picker_type=descriptor.picker_type if descriptor else None,
            )

        if descriptor is None:
            return None

        return self._account_handler.create_event_from_partial_data(descriptor, selected)

    def apply_pending_transactions_to_new_account(
        self,
        new_account: Account,
    ) -> Optional[Resolution]:
        """
        Link the parked batch to a freshly created account.

        Returns None, and keeps the batch parked, when nothing is parked or
        the new account cannot resolve it (e.g. a bank account for a batch
        waiting on an investment account).
        """
        parked = self.session.pending_transactions_for_new_account
        if not parked:
            return None

        condition = self._account_handler.check_need_account_selection(parked)
        picker_type = condition.picker_type if condition else None
        if condition is not None and not has_eligible_target(picker_type, [new_account]):
            logger.info(
                "new_account_not_eligible",
                account_type=new_account.type.value,
                picker_type=picker_type.value,
            )
            return None

        linked_events, filled = self._account_handler.fill_account(
            parked,
            SelectedAccountInfo.from_account(new_account),
            picker_type=picker_type,
        )
        self.session.pending_transactions_for_new_account = []

        logger.info(
            "parked_batch_linked",
            account=new_account.name,
            batch_size=len(linked_events),
            linked=filled,
        )
        return Resolution(
            linked_events,
            build_new_account_confirmation(filled, new_account.name),
        )

    def cancel_follow_up(self) -> None:
        """Drop the pending descriptor and batch. The parked batch is kept."""
        self.session.pending_partial_data = None
        self.session.pending_events = []

    def clear_pending_transactions_for_new_account(self) -> None:
        self.session.pending_transactions_for_new_account = []
