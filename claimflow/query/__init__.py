# Query module - reviewer queue search, filter, sort and pagination
from .engine import (
    ALL_STATUSES,
    QueryResult,
    QuerySpec,
    QueueStats,
    SortKey,
    is_follow_up,
    matches,
    paginate,
    query,
    sort_records,
    summarize,
)

__all__ = [
    "ALL_STATUSES",
    "QueryResult",
    "QuerySpec",
    "QueueStats",
    "SortKey",
    "is_follow_up",
    "matches",
    "paginate",
    "query",
    "sort_records",
    "summarize",
]
