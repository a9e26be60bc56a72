# Workflow module - review operations and the repository collaborator
from .repository import ClaimRepository, InMemoryClaimRepository
from .service import ReviewAction, ReviewEdge, WorkflowResult, WorkflowService, resolve_edge

__all__ = [
    "ClaimRepository",
    "InMemoryClaimRepository",
    "ReviewAction",
    "ReviewEdge",
    "WorkflowResult",
    "WorkflowService",
    "resolve_edge",
]
