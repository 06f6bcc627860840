"""
Candidate Event Models for Finboo

The interpreter turns free-form text (typed, spoken or read off a receipt)
into a batch of candidate events. Each event is one unit of financial
activity and may still be incomplete.

DESIGN DECISION: Candidate events are a tagged union. Every event kind has
its own model with a literal `event_type` and exactly one typed payload, so
an event can never carry the wrong payload for its tag.

Partial payloads are tolerant on purpose: a field the interpreter could not
fill is None (or empty) until a follow-up turn supplies it.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    model_validator,
)


# =============================================================================
# ENUMS
# =============================================================================

class EventType(str, Enum):
    """Kinds of candidate events the interpreter can return."""
    TRANSACTION = "TRANSACTION"
    ASSET_UPDATE = "ASSET_UPDATE"
    CREDIT_CARD_UPDATE = "CREDIT_CARD_UPDATE"
    HOLDING_UPDATE = "HOLDING_UPDATE"
    BUDGET = "BUDGET"
    AUTO_PAYMENT = "AUTO_PAYMENT"
    QUERY_RESPONSE = "QUERY_RESPONSE"
    NULL_STATEMENT = "NULL_STATEMENT"
    NEED_MORE_INFO = "NEED_MORE_INFO"


class RecordType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class HoldingAction(str, Enum):
    """What happened to an investment position."""
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class AutoPaymentType(str, Enum):
    """Kinds of recurring charges."""
    SUBSCRIPTION = "SUBSCRIPTION"
    MEMBERSHIP = "MEMBERSHIP"
    INSURANCE = "INSURANCE"
    UTILITY = "UTILITY"
    RENT = "RENT"
    OTHER = "OTHER"


class PickerType(str, Enum):
    """
    Class of target a structured chooser must offer.

    The picker type decides which accounts count as eligible.
    """
    EXPENSE_ACCOUNT = "expense_account"
    INCOME_ACCOUNT = "income_account"
    INVESTMENT_ACCOUNT = "investment_account"
    CREDIT_CARD = "credit_card"
    AUTO_PAYMENT_SOURCE = "auto_payment_source"


# =============================================================================
# PAYLOADS
# =============================================================================

class TransactionPayload(BaseModel):
    """
    A (possibly partial) income, expense or transfer.

    A transaction is account-resolved once it names an account
    or carries a credit card identifier.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: RecordType = Field(
        default=RecordType.EXPENSE,
        description="Income, expense or transfer"
    )
    amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Amount, None while still missing"
    )
    category: str = Field(
        default="",
        description="Spending/income category"
    )
    description: str = Field(
        default="",
        description="Free-text description (e.g. 'taxi')"
    )
    account_name: str = Field(
        default="",
        description="Funding/receiving account, empty when unknown"
    )
    card_identifier: Optional[str] = Field(
        default=None,
        description="Credit card identifier (e.g. last four digits)"
    )
    date: Optional[datetime] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @property
    def is_account_resolved(self) -> bool:
        return bool(self.account_name) or bool(self.card_identifier)


class HoldingPayload(BaseModel):
    """A buy/sell/hold of an instrument inside an investment account."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., description="Instrument name")
    ticker: Optional[str] = None
    holding_action: HoldingAction = HoldingAction.BUY
    quantity: Decimal = Field(default=Decimal("0"), ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0)
    currency: str = "CNY"
    account_name: Optional[str] = None
    account_id: Optional[str] = None

    @property
    def is_account_resolved(self) -> bool:
        return bool(self.account_id)


class AutoPaymentPayload(BaseModel):
    """A recurring charge (subscription, rent, insurance...)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., description="What is being paid for")
    payment_type: AutoPaymentType = AutoPaymentType.OTHER
    amount: Optional[Decimal] = Field(default=None, ge=0)
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    source_account: Optional[str] = Field(
        default=None,
        description="Account the charge is paid from"
    )

    @property
    def is_account_resolved(self) -> bool:
        return bool(self.source_account)


class AssetUpdatePayload(BaseModel):
    """A balance statement about an asset or liability."""
    model_config = ConfigDict(str_strip_whitespace=True)

    asset_type: str = "BANK"
    asset_name: str = Field(..., description="Name of the asset/account")
    total_value: Optional[Decimal] = None
    currency: str = "CNY"
    date: Optional[datetime] = None
    institution_name: Optional[str] = None
    interest_rate: Optional[Decimal] = None
    repayment_day: Optional[int] = Field(default=None, ge=1, le=31)


class CreditCardPayload(BaseModel):
    """A credit card definition or update."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., description="Card name (e.g. 'Citi Rewards')")
    card_identifier: Optional[str] = None
    credit_limit: Optional[Decimal] = Field(default=None, ge=0)
    outstanding_balance: Optional[Decimal] = None
    repayment_due_date: Optional[int] = Field(default=None, ge=1, le=31)
    currency: str = "CNY"


class BudgetPayload(BaseModel):
    """Creation or update of a savings/spending target."""
    model_config = ConfigDict(str_strip_whitespace=True)

    action: str = Field(
        default="CREATE_SAVINGS",
        description="CREATE_SAVINGS, CREATE_DEBT_REPAYMENT or UPDATE_TARGET"
    )
    name: str = Field(..., description="Budget name")
    target_amount: Optional[Decimal] = Field(default=None, ge=0)
    target_date: Optional[str] = Field(
        default=None,
        pattern=r"^\d{4}-\d{2}$",
        description="Target month, YYYY-MM"
    )
    priority: Optional[str] = None


class QueryResponsePayload(BaseModel):
    """An answer to a question rather than a record to save."""

    answer: str


class NullStatementPayload(BaseModel):
    """Input that contained nothing to record."""

    reason: str = ""


class NeedMoreInfo(BaseModel):
    """
    Descriptor of an event that cannot be completed without more input.

    Created by the interpreter, or synthesized locally when an otherwise
    complete event lacks an account. Consumed exactly once, either by a
    text follow-up builder or by the account selection handler.

    At most one partial payload is populated, normally the one matching
    `original_intent`.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    original_intent: EventType = Field(
        ...,
        description="Event kind that triggered the follow-up"
    )
    missing_fields: list[str] = Field(
        default_factory=list,
        description="Names of the fields still missing"
    )
    question: str = Field(
        ...,
        description="Question shown to the user"
    )
    picker_type: Optional[PickerType] = Field(
        default=None,
        description="Set when the answer is a structured choice"
    )

    partial_transaction_data: Optional[TransactionPayload] = None
    partial_holding_data: Optional[HoldingPayload] = None
    partial_auto_payment_data: Optional[AutoPaymentPayload] = None
    partial_asset_data: Optional[AssetUpdatePayload] = None
    partial_credit_card_data: Optional[CreditCardPayload] = None
    partial_budget_data: Optional[BudgetPayload] = None

    @model_validator(mode='after')
    def validate_single_payload(self) -> 'NeedMoreInfo':
        """Only one partial payload may be carried."""
        if len(self._populated_payloads()) > 1:
            raise ValueError("A follow-up descriptor carries at most one partial payload")
        return self

    def _populated_payloads(self) -> list[BaseModel]:
        return [
            payload for payload in (
                self.partial_transaction_data,
                self.partial_holding_data,
                self.partial_auto_payment_data,
                self.partial_asset_data,
                self.partial_credit_card_data,
                self.partial_budget_data,
            )
            if payload is not None
        ]

    @property
    def partial_payload(self) -> Optional[BaseModel]:
        """The populated partial payload, if any."""
        populated = self._populated_payloads()
        return populated[0] if populated else None

    @property
    def requires_picker(self) -> bool:
        return self.picker_type is not None

    def is_missing(self, *fields: str) -> bool:
        """True if any of the given field names is recorded as missing."""
        return any(field in self.missing_fields for field in fields)


# =============================================================================
# CANDIDATE EVENTS (tagged union)
# =============================================================================

class _EventBase(BaseModel):
    id: UUID = Field(
        default_factory=uuid4,
        description="Identity of the candidate event"
    )


class TransactionEvent(_EventBase):
    event_type: Literal[EventType.TRANSACTION] = EventType.TRANSACTION
    data: TransactionPayload


class AssetUpdateEvent(_EventBase):
    event_type: Literal[EventType.ASSET_UPDATE] = EventType.ASSET_UPDATE
    data: AssetUpdatePayload


class CreditCardUpdateEvent(_EventBase):
    event_type: Literal[EventType.CREDIT_CARD_UPDATE] = EventType.CREDIT_CARD_UPDATE
    data: CreditCardPayload


class HoldingUpdateEvent(_EventBase):
    event_type: Literal[EventType.HOLDING_UPDATE] = EventType.HOLDING_UPDATE
    data: HoldingPayload


class BudgetEvent(_EventBase):
    event_type: Literal[EventType.BUDGET] = EventType.BUDGET
    data: BudgetPayload


class AutoPaymentEvent(_EventBase):
    event_type: Literal[EventType.AUTO_PAYMENT] = EventType.AUTO_PAYMENT
    data: AutoPaymentPayload


class QueryResponseEvent(_EventBase):
    event_type: Literal[EventType.QUERY_RESPONSE] = EventType.QUERY_RESPONSE
    data: QueryResponsePayload


class NullStatementEvent(_EventBase):
    event_type: Literal[EventType.NULL_STATEMENT] = EventType.NULL_STATEMENT
    data: NullStatementPayload = Field(default_factory=NullStatementPayload)


class NeedMoreInfoEvent(_EventBase):
    event_type: Literal[EventType.NEED_MORE_INFO] = EventType.NEED_MORE_INFO
    data: NeedMoreInfo


CandidateEvent = Annotated[
    Union[
        TransactionEvent,
        AssetUpdateEvent,
        CreditCardUpdateEvent,
        HoldingUpdateEvent,
        BudgetEvent,
        AutoPaymentEvent,
        QueryResponseEvent,
        NullStatementEvent,
        NeedMoreInfoEvent,
    ],
    Field(discriminator="event_type"),
]

_candidate_events_adapter = TypeAdapter(list[CandidateEvent])


def parse_candidate_events(raw: list[dict]) -> list[CandidateEvent]:
    """
    Validate interpreter output into typed candidate events.

    Raises pydantic.ValidationError on malformed input.
    """
    return _candidate_events_adapter.validate_python(raw)
