"""
FastAPI Endpoints for Claim Review

REST adapter over the workflow service: submission, reviewer queues and the
approve / reject / return / re-approve actions.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from claimflow.config import settings
from claimflow.core.catalog import StatusInfo, get_status_info
from claimflow.core.errors import (
    ClaimNotFoundError,
    ClaimValidationError,
    ConflictError,
    InvalidTransitionError,
    MissingReasonError,
    UnauthorizedError,
    WorkflowError,
)
from claimflow.core.events import AnyEvent
from claimflow.core.models import AuditLogEntry, ClaimRecord, ClaimSubmission
from claimflow.core.states import ClaimStatus, ProviderRole, RecordKind
from claimflow.query.engine import QueryResult, QuerySpec, QueueStats, SortKey
from claimflow.workflow.repository import InMemoryClaimRepository
from claimflow.workflow.service import WorkflowResult, WorkflowService

logger = logging.getLogger(__name__)

# Initialize router
router = APIRouter(prefix="/claims", tags=["claims"])

# In-memory store for claims (would be a database in production)
repository = InMemoryClaimRepository()
workflow_service = WorkflowService(repository)


def get_workflow_service() -> WorkflowService:
    return workflow_service


ERROR_STATUS: Dict[type, int] = {
    InvalidTransitionError: status.HTTP_400_BAD_REQUEST,
    MissingReasonError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    UnauthorizedError: status.HTTP_403_FORBIDDEN,
    ClaimNotFoundError: status.HTTP_404_NOT_FOUND,
    ClaimValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ConflictError: status.HTTP_409_CONFLICT,
}


def _http_error(error: WorkflowError) -> HTTPException:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.to_dict())
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error.to_dict())


class SubmitClaimRequest(ClaimSubmission):
    """Request model for submitting a claim or emergency request."""
    provider_role: ProviderRole


class ClaimResponse(BaseModel):
    """Response model for claim operations."""
    record: ClaimRecord
    status_info: StatusInfo
    message: str
    next_valid_states: List[ClaimStatus]
    events: List[AnyEvent] = []


class StateHistoryResponse(BaseModel):
    """Response model for state history."""
    claim_id: str
    current_state: ClaimStatus
    state_history: List[ClaimStatus]
    audit_log: List[AuditLogEntry]


class ReviewRequest(BaseModel):
    """Request model for reviewer actions."""
    actor_role: str
    reason: str = ""


class ReviewResponse(BaseModel):
    """Response model for reviewer actions."""
    claim_id: str
    action: str
    previous_status: Optional[ClaimStatus]
    new_status: ClaimStatus
    message: str
    record: ClaimRecord
    events: List[AnyEvent]


def _claim_response(service: WorkflowService, result: WorkflowResult, message: str) -> ClaimResponse:
    return ClaimResponse(
        record=result.record,
        status_info=get_status_info(result.record.status),
        message=message,
        next_valid_states=service.next_valid_states(result.record),
        events=result.events,
    )


def _review_response(action: str, result: WorkflowResult) -> ReviewResponse:
    record = result.record
    previous = result.events[0].from_status if result.events else None
    return ReviewResponse(
        claim_id=record.id,
        action=action,
        previous_status=previous,
        new_status=record.status,
        message=f"Claim {record.id} moved from {previous.value if previous else '-'} to {record.status.value}",
        record=record,
        events=result.events,
    )


@router.post("/", response_model=ClaimResponse, status_code=status.HTTP_201_CREATED)
async def submit_claim(
    claim_data: SubmitClaimRequest,
    service: WorkflowService = Depends(get_workflow_service),
) -> ClaimResponse:
    """
    Submit a new claim or emergency request.

    The record starts in PENDING_MEDICAL with its amount already resolved.
    """
    payload = claim_data.model_dump(exclude={"provider_role"})
    try:
        result = service.submit_claim(claim_data.provider_role, payload)
    except WorkflowError as e:
        raise _http_error(e)

    return _claim_response(service, result, f"Claim submitted successfully with ID {result.record.id}")


@router.get("/", response_model=QueryResult)
async def list_claims(
    q: Optional[str] = Query(None, description="Free-text search"),
    status_filter: Optional[str] = Query(None, alias="status"),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    amount_min: Optional[Decimal] = None,
    amount_max: Optional[Decimal] = None,
    sort: SortKey = SortKey.NEWEST_FIRST,
    page: int = Query(0, ge=0),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    provider_role: Optional[ProviderRole] = None,
    kind: Optional[RecordKind] = None,
    returned_only: bool = False,
    follow_up_only: bool = False,
    service: WorkflowService = Depends(get_workflow_service),
) -> QueryResult:
    """
    Search, filter, sort and page the reviewer queue.
    """
    try:
        spec = QuerySpec(
            free_text=q,
            status_filter=status_filter,
            date_from=date_from,
            date_to=date_to,
            amount_min=amount_min,
            amount_max=amount_max,
            sort_key=sort,
            page=page,
            page_size=page_size,
            provider_role=provider_role,
            kind=kind,
            returned_only=returned_only,
            follow_up_only=follow_up_only,
        )
    except PydanticValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()],
        )

    return service.query(spec)


# ============================================
# DASHBOARD HELPER ENDPOINTS
# ============================================

@router.get("/dashboard/summary", response_model=QueueStats)
async def get_dashboard_summary(service: WorkflowService = Depends(get_workflow_service)) -> QueueStats:
    """Get summary statistics for the reviewer dashboard."""
    return service.summary()


@router.get("/{claim_id}", response_model=ClaimResponse)
async def get_claim(
    claim_id: str,
    service: WorkflowService = Depends(get_workflow_service),
) -> ClaimResponse:
    """
    Get details of a specific claim.
    """
    try:
        record = service.get(claim_id)
    except WorkflowError as e:
        raise _http_error(e)

    return _claim_response(service, WorkflowResult(record=record, events=[]), f"Claim {claim_id} retrieved")


@router.get("/{claim_id}/history", response_model=StateHistoryResponse)
async def get_claim_history(
    claim_id: str,
    service: WorkflowService = Depends(get_workflow_service),
) -> StateHistoryResponse:
    """
    Get the status history and audit log for a claim.
    """
    try:
        record = service.get(claim_id)
    except WorkflowError as e:
        raise _http_error(e)

    return StateHistoryResponse(
        claim_id=record.id,
        current_state=record.status,
        state_history=list(record.status_history),
        audit_log=list(record.audit_log),
    )


# ============================================
# REVIEWER ACTIONS
# ============================================

@router.post("/{claim_id}/approve", response_model=ReviewResponse)
async def approve_claim(
    claim_id: str,
    request: ReviewRequest,
    service: WorkflowService = Depends(get_workflow_service),
) -> ReviewResponse:
    """
    Reviewer approves a claim.

    Medical approval forwards a healthcare claim to coordination; coordination
    approval is final. Approving a returned claim re-approves it.
    """
    try:
        result = service.approve(claim_id, request.actor_role)
    except WorkflowError as e:
        raise _http_error(e)
    return _review_response("APPROVED", result)


@router.post("/{claim_id}/reject", response_model=ReviewResponse)
async def reject_claim(
    claim_id: str,
    request: ReviewRequest,
    service: WorkflowService = Depends(get_workflow_service),
) -> ReviewResponse:
    """
    Reviewer rejects a claim. A reason is required.
    """
    try:
        result = service.reject(claim_id, request.actor_role, request.reason)
    except WorkflowError as e:
        raise _http_error(e)
    return _review_response("REJECTED", result)


@router.post("/{claim_id}/return-for-review", response_model=ReviewResponse)
async def return_claim_for_review(
    claim_id: str,
    request: ReviewRequest,
    service: WorkflowService = Depends(get_workflow_service),
) -> ReviewResponse:
    """
    Coordination sends a claim back to medical review. A reason is required.
    """
    try:
        result = service.return_for_review(claim_id, request.actor_role, request.reason)
    except WorkflowError as e:
        raise _http_error(e)
    return _review_response("RETURNED_FOR_REVIEW", result)


@router.post("/{claim_id}/re-approve", response_model=ReviewResponse)
async def re_approve_claim(
    claim_id: str,
    request: ReviewRequest,
    service: WorkflowService = Depends(get_workflow_service),
) -> ReviewResponse:
    """
    Medical review re-approves a returned claim, sending it back to coordination.
    """
    try:
        result = service.re_approve(claim_id, request.actor_role)
    except WorkflowError as e:
        raise _http_error(e)
    return _review_response("RE_APPROVED", result)
