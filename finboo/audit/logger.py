"""
Audit Logger

DESIGN DECISION: Every follow-up decision and persistence attempt is logged.
This provides:
1. Complete traceability of a conversation
2. Debugging capability when a batch resolves unexpectedly
3. Insight into how often users lack an eligible account

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the flow if logging fails)
- Supports correlation IDs to trace all turns of one follow-up
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finboo.models.audit import AuditEvent, AuditEventBuilder
from finboo.services.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_parse_result(
        self,
        event_types: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log the batch returned by the interpreter."""
        await self.log(AuditEventBuilder.parse_result_received(
            event_count=len(event_types),
            event_types=event_types,
            correlation_id=correlation_id,
        ))

    async def log_follow_up_decided(
        self,
        outcome_kind: str,
        correlation_id: UUID,
        picker_type: Optional[str] = None,
        event_count: int = 0,
    ) -> None:
        """Log which outcome the engine chose for a batch."""
        await self.log(AuditEventBuilder.follow_up_decided(
            outcome_kind=outcome_kind,
            correlation_id=correlation_id,
            picker_type=picker_type,
            event_count=event_count,
        ))

    async def log_text_combined(
        self,
        user_input: str,
        combined_text: str,
        correlation_id: UUID,
    ) -> None:
        """Log a follow-up reply merged into a new statement."""
        await self.log(AuditEventBuilder.follow_up_text_combined(
            user_input=user_input,
            combined_text=combined_text,
            correlation_id=correlation_id,
        ))

    async def log_picker_selection(
        self,
        account_name: str,
        event_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log an account applied from the picker."""
        await self.log(AuditEventBuilder.picker_selection_applied(
            account_name=account_name,
            event_count=event_count,
            correlation_id=correlation_id,
        ))

    async def log_follow_up_cancelled(self, correlation_id: UUID) -> None:
        """Log a cancelled follow-up."""
        await self.log(AuditEventBuilder.follow_up_cancelled(correlation_id))

    async def log_pending_linked(
        self,
        account_name: str,
        event_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log stashed records linked to a newly created account."""
        await self.log(AuditEventBuilder.pending_linked_to_new_account(
            account_name=account_name,
            event_count=event_count,
            correlation_id=correlation_id,
        ))

    async def log_events_saved(
        self,
        saved_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log a successful save."""
        await self.log(AuditEventBuilder.events_saved(
            saved_count=saved_count,
            correlation_id=correlation_id,
        ))

    async def log_save_failed(
        self,
        error_message: str,
        event_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log a failed save."""
        await self.log(AuditEventBuilder.save_failed(
            error_message=error_message,
            event_count=event_count,
            correlation_id=correlation_id,
        ))

    async def log_interpreter_failed(
        self,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log an interpreter failure that reached the flow."""
        await self.log(AuditEventBuilder.interpreter_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a conversation and pass it through every turn.
    """
    return uuid4()
