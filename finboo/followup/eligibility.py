"""
Account/Card Eligibility

Decides whether a picker would have anything to offer. The caller passes a
fresh inventory snapshot every time; nothing is cached here.
"""

from typing import Optional

from finboo.models.accounts import (
    INVESTMENT_ASSET_TYPES,
    LIQUID_ASSET_TYPES,
    Account,
    CreditCard,
    SelectedAccountInfo,
)
from finboo.models.events import PickerType

_LIQUID_PICKERS = frozenset({
    PickerType.EXPENSE_ACCOUNT,
    PickerType.INCOME_ACCOUNT,
    PickerType.AUTO_PAYMENT_SOURCE,
})


def has_eligible_target(
    picker_type: Optional[PickerType],
    accounts: list[Account],
) -> bool:
    """
    True if at least one usable account exists for the picker.

    - No picker: any account will do.
    - Expense / income / auto-payment source: needs a liquid account.
    - Investment: needs an investment, crypto or retirement account.
    - Anything else: any account will do.
    """
    if picker_type in _LIQUID_PICKERS:
        return any(account.type in LIQUID_ASSET_TYPES for account in accounts)

    if picker_type == PickerType.INVESTMENT_ACCOUNT:
        return any(account.type in INVESTMENT_ASSET_TYPES for account in accounts)

    return len(accounts) > 0


def picker_options(
    picker_type: Optional[PickerType],
    accounts: list[Account],
    cards: Optional[list[CreditCard]] = None,
) -> list[SelectedAccountInfo]:
    """
    List the choices a chooser should offer for a picker type.

    Expense pickers offer liquid accounts followed by credit cards,
    the credit card picker offers only cards.
    """
    cards = cards or []

    if picker_type == PickerType.CREDIT_CARD:
        return [SelectedAccountInfo.from_credit_card(card) for card in cards]

    if picker_type == PickerType.INVESTMENT_ACCOUNT:
        return [
            SelectedAccountInfo.from_account(account)
            for account in accounts
            if account.type in INVESTMENT_ASSET_TYPES
        ]

    if picker_type in _LIQUID_PICKERS:
        options = [
            SelectedAccountInfo.from_account(account)
            for account in accounts
            if account.type in LIQUID_ASSET_TYPES
        ]
        if picker_type == PickerType.EXPENSE_ACCOUNT:
            options.extend(SelectedAccountInfo.from_credit_card(card) for card in cards)
        return options

    return [SelectedAccountInfo.from_account(account) for account in accounts]
