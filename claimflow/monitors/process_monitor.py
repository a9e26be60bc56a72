"""
Process Monitor

Watches status changes and runs the hooks registered for the status a record
has just entered.
"""
import logging
from typing import Callable, Dict, List, Tuple

from claimflow.config import settings
from claimflow.core.catalog import STATUS_CATALOG
from claimflow.core.events import DomainEvent, NotificationRequested, status_changed
from claimflow.core.models import ClaimRecord
from claimflow.core.states import ActorRole, ClaimStatus
from claimflow.state_machine.machine import ClaimStateMachine

logger = logging.getLogger(__name__)

HandlerResult = Tuple[ClaimRecord, List[DomainEvent]]
Handler = Callable[[ClaimRecord], HandlerResult]


class ProcessMonitor:
    """
    Monitors record processing and triggers status-entry hooks.

    When a record enters specific statuses, the monitor forwards it along the
    workflow or asks for notifications. Hooks return the (possibly moved)
    record and the events they produced.
    """

    def __init__(self, state_machine: ClaimStateMachine):
        """
        Initialize the process monitor.

        Args:
            state_machine: The state machine to use for automatic transitions
        """
        self.state_machine = state_machine
        self._event_handlers: Dict[ClaimStatus, List[Handler]] = {}

        self._register_default_handlers()

    def _register_default_handlers(self) -> None:
        """Register default handlers for statuses."""
        # Medical approval hands the claim over to coordination
        self.register_handler(ClaimStatus.APPROVED_MEDICAL, self._on_medical_approval)
        self.register_handler(ClaimStatus.PENDING_COORDINATION, self._on_pending_coordination)
        self.register_handler(ClaimStatus.RETURNED_FOR_REVIEW, self._on_returned_for_review)
        for status, info in STATUS_CATALOG.items():
            if info.is_terminal:
                self.register_handler(status, self._on_decision)

    def register_handler(self, status: ClaimStatus, handler: Handler) -> None:
        """
        Register a handler to be called when a record enters a status.

        Args:
            status: The status that triggers the handler
            handler: Function called with the record
        """
        if status not in self._event_handlers:
            self._event_handlers[status] = []
        self._event_handlers[status].append(handler)
        logger.debug(f"Registered handler for status {status.value}")

    def _on_medical_approval(self, record: ClaimRecord) -> HandlerResult:
        """Forward a medically approved claim to the coordination queue."""
        logger.info(f"Claim {record.id} approved by medical - forwarding to coordination")

        forwarded = self.state_machine.advance(record, actor="SYSTEM")
        events: List[DomainEvent] = [status_changed(forwarded)]

        forwarded, more = self.on_state_entered(forwarded, forwarded.status)
        return forwarded, events + more

    def _on_pending_coordination(self, record: ClaimRecord) -> HandlerResult:
        if ClaimStatus.RETURNED_FOR_REVIEW in record.status_history:
            message = f"Returned claim {record.id} was re-approved by medical review"
        else:
            message = (
                f"Claim {record.id} ({record.amount:.2f} {settings.currency_code}) "
                f"awaits coordination review"
            )
        return record, [
            NotificationRequested(
                record_id=record.id,
                recipient_role=ActorRole.COORDINATION_ADMIN.value,
                message=message,
            )
        ]

    def _on_returned_for_review(self, record: ClaimRecord) -> HandlerResult:
        logger.info(f"Claim {record.id} returned for review: {record.rejection_reason}")
        return record, [
            NotificationRequested(
                record_id=record.id,
                recipient_role=ActorRole.MEDICAL_ADMIN.value,
                message=f"Claim {record.id} returned for review: {record.rejection_reason}",
            )
        ]

    def _on_decision(self, record: ClaimRecord) -> HandlerResult:
        """Tell the provider and the client about a final decision."""
        label = STATUS_CATALOG[record.status].label
        message = f"Your {record.kind.value.replace('_', ' ').lower()} {record.id} was {label.lower()}"
        if record.rejection_reason and record.rejected_at:
            message += f": {record.rejection_reason}"

        return record, [
            NotificationRequested(
                record_id=record.id,
                recipient_role=record.provider_role.value,
                message=message,
            ),
            NotificationRequested(
                record_id=record.id,
                recipient_role=ActorRole.INSURANCE_CLIENT.value,
                recipient_id=record.client_id,
                message=message,
            ),
        ]

    def on_state_entered(self, record: ClaimRecord, status: ClaimStatus) -> HandlerResult:
        """
        Called when a record enters a new status.

        Runs all registered handlers for the status in registration order.

        Args:
            record: The record that changed status
            status: The status that was entered

        Returns:
            Updated record after all handlers have run, and their events
        """
        handlers = self._event_handlers.get(status, [])
        events: List[DomainEvent] = []

        for handler in handlers:
            record, produced = handler(record)
            events.extend(produced)

        return record, events
