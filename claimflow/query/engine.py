"""
Claim Query Engine

Search, filter, sort and paginate an in-memory collection of claim records
for reviewer queues. Every function here is pure: the same records and QuerySpec
always produce the same page.
"""
import json
import math
import unicodedata
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from claimflow.core.models import ClaimRecord
from claimflow.core.payloads import dump_role_payload
from claimflow.core.states import ClaimStatus, ProviderRole, RecordKind

ALL_STATUSES = "ALL"


class SortKey(str, Enum):
    NEWEST_FIRST = "newest-first"
    OLDEST_FIRST = "oldest-first"
    AMOUNT_DESC = "amount-desc"
    AMOUNT_ASC = "amount-asc"
    NAME_ASC = "name-asc"
    NAME_DESC = "name-desc"
    PROVIDER_NAME_ASC = "provider-name-asc"


DATE_SORT_KEYS = frozenset({SortKey.NEWEST_FIRST, SortKey.OLDEST_FIRST})


class QuerySpec(BaseModel):
    """What a reviewer asked to see."""
    free_text: Optional[str] = Field(default=None, description="Case-insensitive search across text fields")
    status_filter: Union[ClaimStatus, Literal["ALL"]] = ALL_STATUSES
    date_from: Optional[date] = Field(default=None, description="Inclusive lower bound on service date")
    date_to: Optional[date] = Field(default=None, description="Inclusive upper bound on service date (whole day)")
    amount_min: Optional[Decimal] = Field(default=None, ge=0)
    amount_max: Optional[Decimal] = Field(default=None, ge=0)
    sort_key: SortKey = SortKey.NEWEST_FIRST
    page: int = Field(default=0, ge=0, description="Zero-based page index")
    page_size: int = Field(default=10, ge=1)

    provider_role: Optional[ProviderRole] = None
    kind: Optional[RecordKind] = None
    returned_only: bool = False
    follow_up_only: bool = False

    @field_validator("status_filter", mode="before")
    @classmethod
    def _normalize_all(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and value.upper() == ALL_STATUSES):
            return ALL_STATUSES
        return value

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _day_granularity(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        return value

    @model_validator(mode="after")
    def _check_ranges(self) -> "QuerySpec":
        if self.amount_min is not None and self.amount_max is not None and self.amount_min > self.amount_max:
            raise ValueError("amount_min must not exceed amount_max")
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self

    @property
    def amount_range(self) -> tuple:
        return (self.amount_min, self.amount_max)


class QueryResult(BaseModel):
    items: List[ClaimRecord]
    total_count: int
    page: int
    page_size: int
    total_pages: int


class QueueStats(BaseModel):
    """Header figures for a reviewer queue."""
    total: int = 0
    returned: int = 0
    pending_medical: int = 0
    pending_coordination: int = 0
    total_amount: Decimal = Decimal("0")
    by_status: Dict[str, int] = Field(default_factory=dict)


def is_follow_up(record: ClaimRecord) -> bool:
    """Flagged follow-ups, plus zero-amount doctor claims from older data."""
    return record.is_follow_up or (record.provider_role == ProviderRole.DOCTOR and record.amount == 0)


def _searchable_text(record: ClaimRecord) -> List[str]:
    payload = dump_role_payload(record.role_specific_payload)
    return [
        record.id,
        record.client_name or "",
        record.family_member_name or "",
        record.provider_name or "",
        record.diagnosis or "",
        record.description or "",
        json.dumps(payload, default=str, ensure_ascii=False) if payload is not None else "",
    ]


def matches_free_text(record: ClaimRecord, text: Optional[str]) -> bool:
    needle = (text or "").strip().casefold()
    if not needle:
        return True
    return any(needle in field.casefold() for field in _searchable_text(record))


def matches(record: ClaimRecord, spec: QuerySpec) -> bool:
    """All QuerySpec filters as independent AND predicates."""
    if spec.status_filter != ALL_STATUSES and record.status != spec.status_filter:
        return False
    if spec.provider_role is not None and record.provider_role != spec.provider_role:
        return False
    if spec.kind is not None and record.kind != spec.kind:
        return False
    if spec.date_from is not None or spec.date_to is not None:
        if record.service_date is None:
            return False
        if spec.date_from is not None and record.service_date < spec.date_from:
            return False
        if spec.date_to is not None and record.service_date > spec.date_to:
            return False
    if spec.amount_min is not None and record.amount < spec.amount_min:
        return False
    if spec.amount_max is not None and record.amount > spec.amount_max:
        return False
    if spec.returned_only and not record.is_returned:
        return False
    if spec.follow_up_only and not is_follow_up(record):
        return False
    return matches_free_text(record, spec.free_text)


def _name_key(value: Optional[str]) -> Tuple[str, str, str]:
    """
    Collation key for names: accents and case are ignored first, then
    accented and cased forms break ties so the order stays total.
    """
    text = value or ""
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    return (base, text.casefold(), text)


def sort_records(records: Sequence[ClaimRecord], sort_key: SortKey) -> List[ClaimRecord]:
    """
    Order records for display. Date sorts put returned claims first; the
    other keys sort purely by their value. All sorts are stable.
    """
    sort_key = SortKey(sort_key)

    if sort_key in DATE_SORT_KEYS:
        by_date = sorted(
            records,
            key=lambda r: r.submitted_at,
            reverse=sort_key == SortKey.NEWEST_FIRST,
        )
        return sorted(by_date, key=lambda r: not r.is_returned)

    if sort_key == SortKey.AMOUNT_DESC:
        return sorted(records, key=lambda r: r.amount or 0, reverse=True)
    if sort_key == SortKey.AMOUNT_ASC:
        return sorted(records, key=lambda r: r.amount or 0)
    if sort_key == SortKey.NAME_ASC:
        return sorted(records, key=lambda r: _name_key(r.client_name))
    if sort_key == SortKey.NAME_DESC:
        return sorted(records, key=lambda r: _name_key(r.client_name), reverse=True)
    # PROVIDER_NAME_ASC
    return sorted(records, key=lambda r: _name_key(r.provider_name))


def paginate(records: Sequence[ClaimRecord], page: int, page_size: int) -> List[ClaimRecord]:
    """Zero-based slice; a page past the end is empty."""
    start = page * page_size
    return list(records[start:start + page_size])


def query(records: Iterable[ClaimRecord], spec: Optional[QuerySpec] = None) -> QueryResult:
    """
    Filter, sort and paginate records.

    total_count is the number of records matching the filters, regardless of
    which page was requested.
    """
    spec = spec or QuerySpec()
    filtered = [record for record in records if matches(record, spec)]
    ordered = sort_records(filtered, spec.sort_key)
    total = len(ordered)

    return QueryResult(
        items=paginate(ordered, spec.page, spec.page_size),
        total_count=total,
        page=spec.page,
        page_size=spec.page_size,
        total_pages=math.ceil(total / spec.page_size) if total else 0,
    )


def summarize(records: Iterable[ClaimRecord]) -> QueueStats:
    """Counts and totals for the queue header."""
    records = list(records)
    by_status: Dict[str, int] = {status.value: 0 for status in ClaimStatus}
    for record in records:
        by_status[record.status.value] += 1

    return QueueStats(
        total=len(records),
        returned=by_status[ClaimStatus.RETURNED_FOR_REVIEW.value],
        pending_medical=by_status[ClaimStatus.PENDING_MEDICAL.value],
        pending_coordination=by_status[ClaimStatus.PENDING_COORDINATION.value],
        total_amount=sum((record.amount for record in records), Decimal("0")),
        by_status=by_status,
    )
