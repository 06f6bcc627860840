"""
Account and Card Models

These mirror what the account/card inventory collaborators return, plus the
ephemeral `SelectedAccountInfo` a picker hands back to the engine.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AssetType(str, Enum):
    """Kind tag of an account in the user's inventory."""
    BANK = "BANK"
    INVESTMENT = "INVESTMENT"
    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    DIGITAL_WALLET = "DIGITAL_WALLET"  # Alipay, WeChat Pay, PayPal...
    LOAN = "LOAN"
    MORTGAGE = "MORTGAGE"
    SAVINGS = "SAVINGS"
    RETIREMENT = "RETIREMENT"
    CRYPTO = "CRYPTO"
    PROPERTY = "PROPERTY"
    VEHICLE = "VEHICLE"
    OTHER_ASSET = "OTHER_ASSET"
    OTHER_LIABILITY = "OTHER_LIABILITY"

    @property
    def icon(self) -> str:
        return _ASSET_ICONS[self]

    @property
    def is_liability(self) -> bool:
        return self in {
            AssetType.CREDIT_CARD,
            AssetType.LOAN,
            AssetType.MORTGAGE,
            AssetType.OTHER_LIABILITY,
        }


_ASSET_ICONS = {
    AssetType.BANK: "creditcard.fill",
    AssetType.INVESTMENT: "chart.line.uptrend.xyaxis",
    AssetType.CASH: "banknote.fill",
    AssetType.CREDIT_CARD: "creditcard.circle.fill",
    AssetType.DIGITAL_WALLET: "iphone.gen3",
    AssetType.LOAN: "arrow.down.circle.fill",
    AssetType.MORTGAGE: "house.fill",
    AssetType.SAVINGS: "building.columns.fill",
    AssetType.RETIREMENT: "figure.walk",
    AssetType.CRYPTO: "bitcoinsign.circle.fill",
    AssetType.PROPERTY: "building.2.fill",
    AssetType.VEHICLE: "car.fill",
    AssetType.OTHER_ASSET: "dollarsign.circle.fill",
    AssetType.OTHER_LIABILITY: "minus.circle.fill",
}

# Accounts money can be paid from or received into
LIQUID_ASSET_TYPES = frozenset({
    AssetType.BANK,
    AssetType.CASH,
    AssetType.DIGITAL_WALLET,
    AssetType.SAVINGS,
    AssetType.OTHER_ASSET,
})

# Accounts that can hold instruments
INVESTMENT_ASSET_TYPES = frozenset({
    AssetType.INVESTMENT,
    AssetType.CRYPTO,
    AssetType.RETIREMENT,
})


class Account(BaseModel):
    """An account from the user's inventory."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    name: str = Field(..., min_length=1, description="Display name")
    type: AssetType
    balance: Decimal = Decimal("0")
    currency: str = "CNY"


class CreditCard(BaseModel):
    """A credit card from the user's card inventory."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    name: str = Field(..., min_length=1, description="Display name")
    card_identifier: str = Field(
        ...,
        min_length=1,
        description="User-facing identifier, e.g. last four digits"
    )
    credit_limit: Optional[Decimal] = Field(default=None, ge=0)
    repayment_due_day: Optional[int] = Field(default=None, ge=1, le=31)


class SelectedAccountType(str, Enum):
    """Whether a picker choice is a plain account or a credit card."""
    ACCOUNT = "account"
    CREDIT_CARD = "credit_card"


class SelectedAccountInfo(BaseModel):
    """
    The target a user picked in a structured chooser.

    Ephemeral: lives for one resolution step only.
    """

    id: str
    display_name: str = Field(..., min_length=1)
    type: SelectedAccountType = SelectedAccountType.ACCOUNT
    icon: str = ""
    card_identifier: Optional[str] = None

    @model_validator(mode='after')
    def validate_card_identifier(self) -> 'SelectedAccountInfo':
        if self.type == SelectedAccountType.CREDIT_CARD and not self.card_identifier:
            raise ValueError("A credit card selection needs a card identifier")
        return self

    @property
    def is_credit_card(self) -> bool:
        return self.type == SelectedAccountType.CREDIT_CARD

    @classmethod
    def from_account(cls, account: Account) -> 'SelectedAccountInfo':
        return cls(
            id=account.id,
            display_name=account.name,
            type=SelectedAccountType.ACCOUNT,
            icon=account.type.icon,
        )

    @classmethod
    def from_credit_card(cls, card: CreditCard) -> 'SelectedAccountInfo':
        return cls(
            id=card.id,
            display_name=card.name,
            type=SelectedAccountType.CREDIT_CARD,
            icon=AssetType.CREDIT_CARD.icon,
            card_identifier=card.card_identifier,
        )
