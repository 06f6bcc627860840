"""
Data Models Package

This package contains all Pydantic models used by the follow-up engine.
All data flowing through the engine must conform to these schemas.
"""

from finboo.models.events import (
    AssetUpdateEvent,
    AssetUpdatePayload,
    AutoPaymentEvent,
    AutoPaymentPayload,
    AutoPaymentType,
    BudgetEvent,
    BudgetPayload,
    CandidateEvent,
    CreditCardPayload,
    CreditCardUpdateEvent,
    EventType,
    HoldingAction,
    HoldingPayload,
    HoldingUpdateEvent,
    NeedMoreInfo,
    NeedMoreInfoEvent,
    NullStatementEvent,
    NullStatementPayload,
    PickerType,
    QueryResponseEvent,
    QueryResponsePayload,
    RecordType,
    TransactionEvent,
    TransactionPayload,
    parse_candidate_events,
)
from finboo.models.accounts import (
    INVESTMENT_ASSET_TYPES,
    LIQUID_ASSET_TYPES,
    Account,
    AssetType,
    CreditCard,
    SelectedAccountInfo,
    SelectedAccountType,
)
from finboo.models.outcomes import (
    FollowUpOutcome,
    NoAccountsGuidance,
    NoFollowUpNeeded,
    OutcomeKind,
    Resolution,
    SavedEventsSummary,
    ShowEventCards,
    ShowPickerFollowUp,
    ShowTextFollowUp,
)
from finboo.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Event models
    "AssetUpdateEvent",
    "AssetUpdatePayload",
    "AutoPaymentEvent",
    "AutoPaymentPayload",
    "AutoPaymentType",
    "BudgetEvent",
    "BudgetPayload",
    "CandidateEvent",
    "CreditCardPayload",
    "CreditCardUpdateEvent",
    "EventType",
    "HoldingAction",
    "HoldingPayload",
    "HoldingUpdateEvent",
    "NeedMoreInfo",
    "NeedMoreInfoEvent",
    "NullStatementEvent",
    "NullStatementPayload",
    "PickerType",
    "QueryResponseEvent",
    "QueryResponsePayload",
    "RecordType",
    "TransactionEvent",
    "TransactionPayload",
    "parse_candidate_events",
    # Account models
    "INVESTMENT_ASSET_TYPES",
    "LIQUID_ASSET_TYPES",
    "Account",
    "AssetType",
    "CreditCard",
    "SelectedAccountInfo",
    "SelectedAccountType",
    # Outcome models
    "FollowUpOutcome",
    "NoAccountsGuidance",
    "NoFollowUpNeeded",
    "OutcomeKind",
    "Resolution",
    "SavedEventsSummary",
    "ShowEventCards",
    "ShowPickerFollowUp",
    "ShowTextFollowUp",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
