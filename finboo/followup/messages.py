"""Guidance shown when a picker is needed but no eligible account exists yet."""

from typing import Optional

from finboo.models.events import PickerType

_ASSET_ACCOUNT_EXAMPLE = '"My Citibank savings card has $4000"'
_INVESTMENT_ACCOUNT_EXAMPLE = '"I have 100,000 in my Futu brokerage account"'


def build_no_account_guidance(
    picker_type: Optional[PickerType],
    assistant_name: str = "Finboo",
) -> str:
    """Explain that an account is missing and give an utterance that creates one."""
    if picker_type == PickerType.INVESTMENT_ACCOUNT:
        return (
            f"{assistant_name} noticed you don't have an investment account to link yet. "
            "To keep precise records I can add a brokerage or crypto account for you. "
            f"Just tell me something like: {_INVESTMENT_ACCOUNT_EXAMPLE}"
        )

    if picker_type in (PickerType.EXPENSE_ACCOUNT, PickerType.INCOME_ACCOUNT):
        kind = "an asset account"
    else:
        kind = "an account"

    return (
        f"{assistant_name} noticed you don't have {kind} to link yet. "
        "To keep precise records I can add one for you. "
        f"Just tell me something like: {_ASSET_ACCOUNT_EXAMPLE}"
    )


def build_new_account_confirmation(event_count: int, account_name: str) -> str:
    return f'Account added! {event_count} earlier records have been linked to "{account_name}"'
