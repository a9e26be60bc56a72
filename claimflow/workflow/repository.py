"""
Claim Repository

The persistence collaborator contract and an in-memory implementation with
optimistic version checks.
"""
import logging
import threading
from typing import Dict, List, Optional, Protocol

from claimflow.core.errors import ClaimNotFoundError, ConcurrentModificationError, ConflictError
from claimflow.core.models import ClaimRecord

logger = logging.getLogger(__name__)


class ClaimRepository(Protocol):
    def get(self, record_id: str) -> Optional[ClaimRecord]: ...

    def add(self, record: ClaimRecord) -> ClaimRecord: ...

    def save(self, record: ClaimRecord, expected_version: int) -> ClaimRecord: ...

    def list(self) -> List[ClaimRecord]: ...


class InMemoryClaimRepository:
    """
    Dictionary-backed store (would be a database in production).

    Every stored record gets a version; save() only succeeds when the caller
    read the version that is currently stored.
    """

    def __init__(self):
        self._records: Dict[str, ClaimRecord] = {}
        self._lock = threading.Lock()

    def get(self, record_id: str) -> Optional[ClaimRecord]:
        return self._records.get(record_id)

    def add(self, record: ClaimRecord) -> ClaimRecord:
        with self._lock:
            if record.id in self._records:
                raise ConflictError(f"Claim {record.id} already exists", record_id=record.id)
            stored = record.model_copy(update={"version": 1})
            self._records[record.id] = stored
        return stored

    def save(self, record: ClaimRecord, expected_version: int) -> ClaimRecord:
        with self._lock:
            current = self._records.get(record.id)
            if current is None:
                raise ClaimNotFoundError(record.id)
            if current.version != expected_version:
                logger.warning(
                    f"Stale write for claim {record.id}: expected version "
                    f"{expected_version}, stored {current.version}"
                )
                raise ConcurrentModificationError(
                    f"Claim {record.id} was modified by another request",
                    record_id=record.id,
                )
            stored = record.model_copy(update={"version": expected_version + 1})
            self._records[record.id] = stored
        return stored

    def list(self) -> List[ClaimRecord]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)
