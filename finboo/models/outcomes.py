"""
Follow-Up Outcome Models

The engine's only externally observable contract: what the presentation
layer should do next with an interpreted batch.
"""

from enum import Enum
from typing import Annotated, Literal, NamedTuple, Union

from pydantic import BaseModel, Field

from finboo.models.events import CandidateEvent, EventType, NeedMoreInfo


class OutcomeKind(str, Enum):
    SHOW_TEXT_FOLLOW_UP = "show_text_follow_up"
    SHOW_PICKER_FOLLOW_UP = "show_picker_follow_up"
    SHOW_EVENT_CARDS = "show_event_cards"
    NO_FOLLOW_UP_NEEDED = "no_follow_up_needed"
    NO_ACCOUNTS_GUIDANCE = "no_accounts_guidance"


class ShowTextFollowUp(BaseModel):
    """Ask a free-text clarifying question."""

    kind: Literal[OutcomeKind.SHOW_TEXT_FOLLOW_UP] = OutcomeKind.SHOW_TEXT_FOLLOW_UP
    question: str


class ShowPickerFollowUp(BaseModel):
    """Present a structured chooser for the descriptor's picker type."""

    kind: Literal[OutcomeKind.SHOW_PICKER_FOLLOW_UP] = OutcomeKind.SHOW_PICKER_FOLLOW_UP
    descriptor: NeedMoreInfo


class ShowEventCards(BaseModel):
    """Nothing blocks persistence; show the events for confirmation."""

    kind: Literal[OutcomeKind.SHOW_EVENT_CARDS] = OutcomeKind.SHOW_EVENT_CARDS
    events: list[CandidateEvent]


class NoFollowUpNeeded(BaseModel):
    """Nothing to show and nothing to ask."""

    kind: Literal[OutcomeKind.NO_FOLLOW_UP_NEEDED] = OutcomeKind.NO_FOLLOW_UP_NEEDED


class NoAccountsGuidance(BaseModel):
    """
    A picker would be needed but no eligible account exists yet.

    Not an error: the message guides the user towards creating one.
    """

    kind: Literal[OutcomeKind.NO_ACCOUNTS_GUIDANCE] = OutcomeKind.NO_ACCOUNTS_GUIDANCE
    message: str
    events: list[CandidateEvent]


FollowUpOutcome = Annotated[
    Union[
        ShowTextFollowUp,
        ShowPickerFollowUp,
        ShowEventCards,
        NoFollowUpNeeded,
        NoAccountsGuidance,
    ],
    Field(discriminator="kind"),
]


class Resolution(NamedTuple):
    """Finished events plus the confirmation text shown to the user."""

    events: list[CandidateEvent]
    confirm_text: str


class SavedEventsSummary(BaseModel):
    """Per-kind counts of a persisted batch, for the saved confirmation."""

    saved_count: int = Field(default=0, ge=0, description="Count reported by the store")
    total_count: int = 0
    transaction_count: int = 0
    asset_update_count: int = 0
    credit_card_count: int = 0
    holding_count: int = 0
    budget_count: int = 0
    auto_payment_count: int = 0

    @classmethod
    def from_events(
        cls,
        events: list[CandidateEvent],
        saved_count: int = 0,
    ) -> 'SavedEventsSummary':
        """Count the persistable events; questions and answers are skipped."""
        counts = {
            EventType.TRANSACTION: 0,
            EventType.ASSET_UPDATE: 0,
            EventType.CREDIT_CARD_UPDATE: 0,
            EventType.HOLDING_UPDATE: 0,
            EventType.BUDGET: 0,
            EventType.AUTO_PAYMENT: 0,
        }
        for event in events:
            if event.event_type in counts:
                counts[event.event_type] += 1

        return cls(
            saved_count=saved_count,
            total_count=sum(counts.values()),
            transaction_count=counts[EventType.TRANSACTION],
            asset_update_count=counts[EventType.ASSET_UPDATE],
            credit_card_count=counts[EventType.CREDIT_CARD_UPDATE],
            holding_count=counts[EventType.HOLDING_UPDATE],
            budget_count=counts[EventType.BUDGET],
            auto_payment_count=counts[EventType.AUTO_PAYMENT],
        )
