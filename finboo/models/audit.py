"""
Audit Models for Finboo

Every follow-up decision and every persistence attempt is recorded, so a
conversation can be reconstructed turn by turn:
1. Why the user was asked a question (or shown a picker)
2. Which account a batch was resolved against
3. What was finally saved, or why saving failed

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    One type per transition of the follow-up state machine, plus the
    collaborator calls around it.
    """
    # Interpretation
    PARSE_RESULT_RECEIVED = "parse_result_received"
    INTERPRETER_FAILED = "interpreter_failed"

    # Follow-up decisions
    TEXT_FOLLOW_UP_REQUESTED = "text_follow_up_requested"
    PICKER_FOLLOW_UP_REQUESTED = "picker_follow_up_requested"
    NO_ACCOUNTS_GUIDANCE_SHOWN = "no_accounts_guidance_shown"
    EVENT_CARDS_SHOWN = "event_cards_shown"

    # Follow-up resolution
    FOLLOW_UP_TEXT_COMBINED = "follow_up_text_combined"
    PICKER_SELECTION_APPLIED = "picker_selection_applied"
    FOLLOW_UP_CANCELLED = "follow_up_cancelled"
    PENDING_LINKED_TO_NEW_ACCOUNT = "pending_linked_to_new_account"

    # Persistence
    EVENTS_SAVED = "events_saved"
    SAVE_FAILED = "save_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'batch', 'follow_up', 'account')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - all turns of one conversation share an ID
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all turns of one follow-up)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_row(self) -> list[str]:
        """
        Flatten into a row of strings for tabular audit stores.

        Columns:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.parse_result_received(1, ["TRANSACTION"], correlation_id)
        event = AuditEventBuilder.picker_selection_applied("Cash", 2, correlation_id)
    """

    @staticmethod
    def parse_result_received(
        event_count: int,
        event_types: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARSE_RESULT_RECEIVED,
            entity_type="batch",
            correlation_id=correlation_id,
            description=f"Interpreter returned {event_count} candidate events",
            details={
                "event_count": event_count,
                "event_types": event_types,
            },
        )

    @staticmethod
    def follow_up_decided(
        outcome_kind: str,
        correlation_id: UUID,
        picker_type: Optional[str] = None,
        event_count: int = 0,
    ) -> AuditEvent:
        event_type = {
            "show_text_follow_up": AuditEventType.TEXT_FOLLOW_UP_REQUESTED,
            "show_picker_follow_up": AuditEventType.PICKER_FOLLOW_UP_REQUESTED,
            "no_accounts_guidance": AuditEventType.NO_ACCOUNTS_GUIDANCE_SHOWN,
        }.get(outcome_kind, AuditEventType.EVENT_CARDS_SHOWN)
        return AuditEvent(
            event_type=event_type,
            entity_type="follow_up",
            correlation_id=correlation_id,
            description=f"Follow-up decision: {outcome_kind}",
            details={
                "outcome": outcome_kind,
                "picker_type": picker_type,
                "event_count": event_count,
            },
        )

    @staticmethod
    def follow_up_text_combined(
        user_input: str,
        combined_text: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FOLLOW_UP_TEXT_COMBINED,
            entity_type="follow_up",
            correlation_id=correlation_id,
            description="User reply merged into a new statement",
            details={
                "user_input": user_input,
                "combined_text": combined_text,
            },
            is_user_action=True,
        )

    @staticmethod
    def picker_selection_applied(
        account_name: str,
        event_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PICKER_SELECTION_APPLIED,
            entity_type="follow_up",
            correlation_id=correlation_id,
            description=f"Account '{account_name}' applied to {event_count} events",
            details={
                "account_name": account_name,
                "event_count": event_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def follow_up_cancelled(correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FOLLOW_UP_CANCELLED,
            entity_type="follow_up",
            correlation_id=correlation_id,
            description="User cancelled the follow-up",
            is_user_action=True,
        )

    @staticmethod
    def pending_linked_to_new_account(
        account_name: str,
        event_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PENDING_LINKED_TO_NEW_ACCOUNT,
            entity_type="account",
            correlation_id=correlation_id,
            description=f"{event_count} stashed records linked to new account '{account_name}'",
            details={
                "account_name": account_name,
                "event_count": event_count,
            },
        )

    @staticmethod
    def events_saved(
        saved_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENTS_SAVED,
            entity_type="batch",
            correlation_id=correlation_id,
            description=f"{saved_count} events saved",
            details={
                "saved_count": saved_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def save_failed(
        error_message: str,
        event_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="batch",
            correlation_id=correlation_id,
            description=f"Saving {event_count} events failed",
            error_message=error_message,
            details={
                "event_count": event_count,
            },
        )

    @staticmethod
    def interpreter_failed(
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INTERPRETER_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="batch",
            correlation_id=correlation_id,
            description="Interpreter could not process the input",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
