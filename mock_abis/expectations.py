#mock_abis/expectations.py
import threading
from typing import Dict, List, Optional

from mock_abis.models import Expectation


class ExpectationRegistry:
    """Canned outcomes keyed by the subject referenceId, set through the config API."""

    def __init__(self):
        self._expectations: Dict[str, Expectation] = {}
        self._lock = threading.Lock()

    def set(self, expectation: Expectation) -> None:
        with self._lock:
            self._expectations[expectation.referenceId] = expectation

    def get(self, reference_id: Optional[str]) -> Optional[Expectation]:
        if not reference_id:
            return None
        with self._lock:
            return self._expectations.get(reference_id)

    def delete(self, reference_id: str) -> bool:
        with self._lock:
            return self._expectations.pop(reference_id, None) is not None

    def clear(self) -> int:
        with self._lock:
            count = len(self._expectations)
            self._expectations.clear()
            return count

    def all(self) -> List[Expectation]:
        with self._lock:
            return list(self._expectations.values())
