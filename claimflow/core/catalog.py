"""
Status Catalog

Display metadata for every status: color class, labels and terminal flag.
"""
from enum import Enum
from typing import Dict

from pydantic import BaseModel, ConfigDict

from .states import ClaimStatus


class StatusColor(str, Enum):
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class StatusInfo(BaseModel):
    """Metadata shown alongside a status."""
    model_config = ConfigDict(frozen=True)

    status: ClaimStatus
    label: str
    short_label: str
    color: StatusColor
    is_terminal: bool = False


STATUS_CATALOG: Dict[ClaimStatus, StatusInfo] = {
    info.status: info
    for info in (
        StatusInfo(
            status=ClaimStatus.PENDING_MEDICAL,
            label="Pending Medical Review",
            short_label="Pending Medical",
            color=StatusColor.WARNING,
        ),
        StatusInfo(
            status=ClaimStatus.APPROVED_MEDICAL,
            label="Approved by Medical",
            short_label="Medical OK",
            color=StatusColor.INFO,
        ),
        StatusInfo(
            status=ClaimStatus.REJECTED_MEDICAL,
            label="Rejected by Medical",
            short_label="Rejected",
            color=StatusColor.ERROR,
            is_terminal=True,
        ),
        StatusInfo(
            status=ClaimStatus.PENDING_COORDINATION,
            label="Pending Coordination Review",
            short_label="Pending",
            color=StatusColor.INFO,
        ),
        StatusInfo(
            status=ClaimStatus.APPROVED_FINAL,
            label="Approved",
            short_label="Approved",
            color=StatusColor.SUCCESS,
            is_terminal=True,
        ),
        StatusInfo(
            status=ClaimStatus.REJECTED_FINAL,
            label="Rejected",
            short_label="Rejected",
            color=StatusColor.ERROR,
            is_terminal=True,
        ),
        StatusInfo(
            status=ClaimStatus.RETURNED_FOR_REVIEW,
            label="Returned for Review",
            short_label="Returned",
            color=StatusColor.WARNING,
        ),
        StatusInfo(
            status=ClaimStatus.APPROVED_BY_MEDICAL,
            label="Approved by Medical",
            short_label="Approved",
            color=StatusColor.SUCCESS,
            is_terminal=True,
        ),
        StatusInfo(
            status=ClaimStatus.REJECTED_BY_MEDICAL,
            label="Rejected by Medical",
            short_label="Rejected",
            color=StatusColor.ERROR,
            is_terminal=True,
        ),
    )
}


def get_status_info(status: ClaimStatus) -> StatusInfo:
    """Look up the catalog entry for a status."""
    return STATUS_CATALOG[ClaimStatus(status)]


def is_terminal(status: ClaimStatus) -> bool:
    return get_status_info(status).is_terminal
