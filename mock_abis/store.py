#mock_abis/store.py
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional


@dataclass(frozen=True)
class EnrollmentRecord:
    referenceId: str
    referenceURL: Optional[str] = None
    requestId: Optional[str] = None
    enrolled_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EnrollmentStore:
    """
    Thread-safe in-memory map of referenceId -> EnrollmentRecord.

    A single lock covers every operation, so a lookup that starts after an
    insert has returned always sees it, and concurrent inserts of the same id
    resolve to whichever ran last.
    """

    def __init__(self):
        self._records: Dict[str, EnrollmentRecord] = {}
        self._lock = threading.RLock()

    def insert(self, reference_id: str, record: EnrollmentRecord) -> None:
        with self._lock:
            self._records[reference_id] = record

    def delete(self, reference_id: str) -> bool:
        """Remove a record. Returns False (not an error) when nothing was stored."""
        with self._lock:
            return self._records.pop(reference_id, None) is not None

    def get(self, reference_id: str) -> Optional[EnrollmentRecord]:
        with self._lock:
            return self._records.get(reference_id)

    def reference_ids(self) -> List[str]:
        with self._lock:
            return list(self._records)

    def __contains__(self, reference_id: str) -> bool:
        with self._lock:
            return reference_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
