"""
Text Follow-Up Builders

When the interpreter asks a free-text question, the user's reply is usually
a fragment ("15", "food", "the 5th"). The interpreter cannot do much with a
fragment on its own, so the reply is fused with what is already known into
one self-contained statement and sent back for re-interpretation.

One pure builder function per event kind. Each strips the noise relevant to
the field it expects, then picks a template by the missing field. A builder
returns None when it does not recognise the missing field; if no builder
produces text, the raw reply is passed through unchanged so the user is
never blocked.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Optional

import structlog

from finboo.models.events import (
    AutoPaymentType,
    EventType,
    HoldingAction,
    NeedMoreInfo,
)

logger = structlog.get_logger(__name__)

TextBuilder = Callable[[str, NeedMoreInfo], Optional[str]]


# =============================================================================
# NOISE STRIPPING
# =============================================================================

CURRENCY_TOKENS = (
    "美元", "港币", "人民币", "元", "块",
    "yuan", "rmb", "cny", "usd", "hkd", "dollars", "dollar", "bucks",
    "$", "¥", "￥",
)
MONTHLY_TOKENS = (
    "每个月", "每月",
    "per month", "every month", "each month", "of every month",
    "of the month", "monthly",
)
DAY_TOKENS = ("号", "日", "day", "on the")

_ORDINAL_SUFFIX = re.compile(r"(\d+)\s*(?:st|nd|rd|th)(?![A-Za-z])", re.IGNORECASE)
_WAN_AMOUNT = re.compile(r"(\d+(?:\.\d+)?)\s*万")


def _token_pattern(tokens: Iterable[str]) -> re.Pattern:
    parts = []
    # Longest first so "dollars" wins over "dollar"
    for token in sorted(tokens, key=len, reverse=True):
        escaped = re.escape(token)
        if token.isascii() and token[0].isalpha():
            escaped = rf"(?<![A-Za-z]){escaped}(?![A-Za-z])"
        parts.append(escaped)
    return re.compile("|".join(parts), re.IGNORECASE)


_CURRENCY_PATTERN = _token_pattern(CURRENCY_TOKENS)
_MONTHLY_PATTERN = _token_pattern(MONTHLY_TOKENS)
_DAY_PATTERN = _token_pattern(DAY_TOKENS)


def _squash(text: str) -> str:
    return " ".join(text.split())


def strip_currency(text: str) -> str:
    """Remove currency words and symbols: '15块' -> '15', '$20' -> '20'."""
    return _squash(_CURRENCY_PATTERN.sub("", text))


def strip_day(text: str) -> str:
    """Reduce a day-of-month reply to its number: '每月15号' -> '15', 'the 5th' -> '5'."""
    text = _MONTHLY_PATTERN.sub("", text)
    text = _DAY_PATTERN.sub("", text)
    text = _ORDINAL_SUFFIX.sub(r"\1", text)
    text = re.sub(r"(?<![A-Za-z])the(?![A-Za-z])", "", text, flags=re.IGNORECASE)
    return _squash(text)


def expand_wan(text: str) -> str:
    """Expand the 万 (ten thousand) multiplier: '5万' -> '50000', '1.5万' -> '15000'."""
    def _expand(match: re.Match) -> str:
        try:
            return format_amount(Decimal(match.group(1)) * 10000)
        except InvalidOperation:
            return match.group(0)

    return _WAN_AMOUNT.sub(_expand, text)


def format_amount(value: Optional[Decimal]) -> str:
    """Render a Decimal without exponent or trailing zeros; None renders as '0'."""
    if value is None:
        return "0"
    normalized = value.normalize()
    if normalized == normalized.to_integral_value():
        return str(normalized.quantize(Decimal(1)))
    return format(normalized, "f")


# =============================================================================
# BUILDERS
# =============================================================================

def build_holding_text(user_input: str, pending: NeedMoreInfo) -> Optional[str]:
    data = pending.partial_holding_data
    if data is None:
        return None

    if pending.is_missing("price"):
        price = strip_currency(user_input)
        action = "sell" if data.holding_action == HoldingAction.SELL else "buy"
        currency = {"USD": "美元", "HKD": "港币"}.get(data.currency.upper(), "元")
        return (
            f"{action} {format_amount(data.quantity)} shares of {data.name}, "
            f"{price}{currency} per share"
        )
    return None


_AUTO_PAYMENT_WORDS = {
    AutoPaymentType.SUBSCRIPTION: "subscription",
    AutoPaymentType.MEMBERSHIP: "membership",
    AutoPaymentType.INSURANCE: "insurance",
    AutoPaymentType.UTILITY: "utility bill",
    AutoPaymentType.RENT: "rent",
}

_AUTO_PAYMENT_DAY_FIELDS = ("day_of_month", "deduction_day", "payment_day", "charge_day")


def build_auto_payment_text(user_input: str, pending: NeedMoreInfo) -> Optional[str]:
    data = pending.partial_auto_payment_data
    if data is None:
        return None

    type_word = _AUTO_PAYMENT_WORDS.get(data.payment_type, "auto-payment")

    if pending.is_missing("amount"):
        amount = strip_currency(_MONTHLY_PATTERN.sub("", user_input))
        text = f"{type_word} {data.name} {amount}块 per month"
        if data.day_of_month:
            text += f", charged on day {data.day_of_month} of every month"
        return text

    # The charge day is what the interpreter usually asks for
    if not pending.missing_fields or pending.is_missing(*_AUTO_PAYMENT_DAY_FIELDS):
        day = strip_day(user_input)
        return (
            f"{type_word} {data.name} {format_amount(data.amount)}块 per month, "
            f"charged on day {day} of every month"
        )
    return None


def build_transaction_text(user_input: str, pending: NeedMoreInfo) -> Optional[str]:
    data = pending.partial_transaction_data
    if data is None:
        return None

    type_word = data.type.value

    if pending.is_missing("amount"):
        amount = strip_currency(user_input)
        return f"{data.description} {type_word} {amount}块".strip()
    if pending.is_missing("category"):
        return (
            f"{data.description} {type_word} {format_amount(data.amount)}, "
            f"category is {user_input.strip()}"
        ).strip()
    return None


def build_asset_text(user_input: str, pending: NeedMoreInfo) -> Optional[str]:
    data = pending.partial_asset_data
    if data is None:
        return None

    if pending.is_missing("amount", "total_value"):
        amount = strip_currency(expand_wan(user_input))
        return f"I have {amount} in {data.asset_name}"
    if pending.is_missing("interest_rate"):
        return f"{data.asset_name} {format_amount(data.total_value)}块, interest rate {user_input.strip()}"
    if pending.is_missing("repayment_day", "monthly_payment"):
        return f"{data.asset_name} {format_amount(data.total_value)}块, {user_input.strip()}"
    return None


def build_credit_card_text(user_input: str, pending: NeedMoreInfo) -> Optional[str]:
    data = pending.partial_credit_card_data
    if data is None:
        return None

    if pending.is_missing("credit_limit"):
        limit = strip_currency(expand_wan(user_input))
        return f"{data.name} credit card limit {limit}"
    if pending.is_missing("repayment_due_date"):
        day = strip_day(user_input)
        return (
            f"{data.name} credit card limit {format_amount(data.credit_limit)}, "
            f"repayment due on day {day}"
        )
    return None


def build_budget_text(user_input: str, pending: NeedMoreInfo) -> Optional[str]:
    data = pending.partial_budget_data
    if data is None:
        return None

    if pending.is_missing("amount", "target_amount"):
        amount = strip_currency(user_input)
        return f"{data.name} budget {amount}块"
    if pending.is_missing("category"):
        return f"{user_input.strip()} budget {format_amount(data.target_amount)}块"
    return None


DEFAULT_BUILDERS: list[tuple[EventType, TextBuilder]] = [
    (EventType.HOLDING_UPDATE, build_holding_text),
    (EventType.AUTO_PAYMENT, build_auto_payment_text),
    (EventType.TRANSACTION, build_transaction_text),
    (EventType.ASSET_UPDATE, build_asset_text),
    (EventType.CREDIT_CARD_UPDATE, build_credit_card_text),
    (EventType.BUDGET, build_budget_text),
]


class FollowUpTextBuilders:
    """
    Ordered registry of text builders.

    Builders are tried in registration order; the first one registered for
    the pending intent that returns text wins.
    """

    def __init__(
        self,
        builders: Optional[list[tuple[EventType, TextBuilder]]] = None,
    ):
        self._builders = list(DEFAULT_BUILDERS if builders is None else builders)

    def register_builder(self, intent: EventType, builder: TextBuilder) -> None:
        """Register a custom builder ahead of the built-in ones."""
        self._builders.insert(0, (intent, builder))

    def build_combined_text(self, user_input: str, pending: NeedMoreInfo) -> str:
        """Fuse a follow-up reply with the pending partial data."""
        for intent, builder in self._builders:
            if intent != pending.original_intent:
                continue
            text = builder(user_input, pending)
            if text is not None:
                logger.debug(
                    "follow_up_text_built",
                    intent=intent.value,
                    builder=getattr(builder, "__name__", repr(builder)),
                    missing_fields=pending.missing_fields,
                )
                return text

        logger.debug(
            "follow_up_text_passthrough",
            intent=pending.original_intent.value,
            missing_fields=pending.missing_fields,
        )
        return user_input
