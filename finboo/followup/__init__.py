"""
Follow-Up Resolution Engine

Decides whether an interpreted batch needs more input before it can be
saved, and fuses the user's answer back into complete events.
"""

from finboo.followup.account_selection import AccountSelectionHandler
from finboo.followup.eligibility import has_eligible_target, picker_options
from finboo.followup.manager import FollowUpManager, FollowUpSession, FollowUpState
from finboo.followup.messages import build_no_account_guidance
from finboo.followup.text_builders import FollowUpTextBuilders

__all__ = [
    "AccountSelectionHandler",
    "FollowUpManager",
    "FollowUpSession",
    "FollowUpState",
    "FollowUpTextBuilders",
    "build_no_account_guidance",
    "has_eligible_target",
    "picker_options",
]
