#mock_abis/engine.py
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from mock_abis.biometrics import BiometricFetchError, BiometricFetcher, cosine_similarity, template_from_payload
from mock_abis.constants import ExpectationAction, FailureReason
from mock_abis.expectations import ExpectationRegistry
from mock_abis.logger import logger
from mock_abis.models import IdentifyRequest
from mock_abis.store import EnrollmentStore


@dataclass(frozen=True)
class Match:
    referenceId: str
    score: float


@dataclass(frozen=True)
class Accepted:
    delay: int = 0
    candidates: List[Match] = field(default_factory=list)


@dataclass(frozen=True)
class Rejected:
    reason: Optional[FailureReason] = None
    delay: int = 0


class DecisionEngine:
    """Decides identify outcomes against the enrollment store."""

    def __init__(
        self,
        store: EnrollmentStore,
        fetcher: BiometricFetcher,
        expectations: ExpectationRegistry,
        match_threshold: float = 0.99,
        identify_delay: int = 0,
        failure_delay: int = 0,
        find_duplicate: bool = True,
    ):
        self.store = store
        self.fetcher = fetcher
        self.expectations = expectations
        self.match_threshold = match_threshold
        self.identify_delay = identify_delay
        self.failure_delay = failure_delay
        self._flag_lock = threading.Lock()
        self._find_duplicate = bool(find_duplicate)

    @property
    def find_duplicate(self) -> bool:
        with self._flag_lock:
            return self._find_duplicate

    @find_duplicate.setter
    def find_duplicate(self, value: bool) -> None:
        with self._flag_lock:
            self._find_duplicate = bool(value)

    def identify(self, request: IdentifyRequest):
        """
        Find duplicates of the request's subject.

        Args:
            request: A validated IdentifyRequest.

        Returns:
            Accepted with the matched candidates, or Rejected with a failure reason.
            Both carry the delay to apply before the deferred delivery.
        """
        reference_id = request.referenceId
        expectation = self.expectations.get(reference_id)
        if expectation is not None:
            return self._from_expectation(request, expectation)

        record = self.store.get(reference_id)
        url = (record.referenceURL if record else None) or request.referenceUrl
        if not url:
            logger.info(f"No biometric data for reference id {reference_id}")
            return Rejected(FailureReason.BIOMETRIC_NOT_FOUND_IN_CBEFF, self.failure_delay)
        try:
            payload = self.fetcher.fetch(url)
        except BiometricFetchError as e:
            logger.warning(f"Could not fetch biometrics for {reference_id}: {e}")
            return Rejected(FailureReason.UNABLE_TO_FETCH_BIOMETRIC_DETAILS, self.failure_delay)
        if not payload:
            return Rejected(FailureReason.BIOMETRIC_NOT_FOUND_IN_CBEFF, self.failure_delay)

        if not self.find_duplicate:
            logger.info(f"Duplicate check disabled, no candidates for {reference_id}")
            return Accepted(self.identify_delay, [])

        subject = template_from_payload(payload)
        matches = []
        for candidate_id in self._candidate_ids(request):
            scored = self._score(candidate_id, subject)
            if scored is not None and scored.score >= self.match_threshold:
                matches.append(scored)

        matches.sort(key=lambda m: m.score, reverse=True)
        max_results = _max_results(request)
        if max_results:
            matches = matches[:max_results]
        logger.info(f"Identify {reference_id}: {len(matches)} duplicate(s) found")
        return Accepted(self.identify_delay, matches)

    def _from_expectation(self, request: IdentifyRequest, expectation):
        delay = expectation.delayInExecution
        logger.info(f"Applying expectation {expectation.action.value} for {request.referenceId} (delay={delay}s)")
        if expectation.action == ExpectationAction.ERROR:
            return Rejected(FailureReason.from_code(expectation.failureReason), delay)
        if expectation.action == ExpectationAction.NO_DUPLICATE:
            return Accepted(delay, [])
        forced = expectation.referenceIds or _gallery_ids(request)
        candidates = [Match(ref, 1.0) for ref in _unique(forced) if ref != request.referenceId]
        return Accepted(delay, candidates)

    def _candidate_ids(self, request: IdentifyRequest) -> List[str]:
        ids = _gallery_ids(request) if request.gallery is not None else self.store.reference_ids()
        return [ref for ref in _unique(ids) if ref != request.referenceId]

    def _score(self, candidate_id: str, subject: List[float]) -> Optional[Match]:
        record = self.store.get(candidate_id)
        if record is None or not record.referenceURL:
            return None
        try:
            payload = self.fetcher.fetch(record.referenceURL)
        except BiometricFetchError as e:
            logger.warning(f"Skipping candidate {candidate_id}: {e}")
            return None
        if not payload:
            return None
        return Match(candidate_id, cosine_similarity(subject, template_from_payload(payload)))


def _gallery_ids(request: IdentifyRequest) -> List[str]:
    if request.gallery is None:
        return []
    return [item.referenceId for item in request.gallery.referenceIds]


def _unique(ids) -> List[str]:
    return list(dict.fromkeys(ids))


def _max_results(request: IdentifyRequest) -> Optional[int]:
    if request.flags is None or not request.flags.maxResults:
        return None
    try:
        value = int(request.flags.maxResults)
    except ValueError:
        return None
    return value if value > 0 else None
