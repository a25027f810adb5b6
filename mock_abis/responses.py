#mock_abis/responses.py
from typing import Optional, Union

from mock_abis.constants import FailureReason
from mock_abis.engine import Accepted, Rejected
from mock_abis.models import (
    AbisRequest,
    Analytics,
    Candidate,
    CandidateList,
    FailureResponse,
    IdentifyRequest,
    IdentifyResponse,
    ResponseMO,
)

AbisResponse = Union[ResponseMO, IdentifyResponse, FailureResponse]


class ResponseBuilder:
    """Maps outcomes to response models, echoing the request's correlation fields."""

    def build(self, request: AbisRequest, outcome) -> AbisResponse:
        if isinstance(outcome, Accepted):
            if isinstance(request, IdentifyRequest):
                return self.identified(request, outcome)
            return ResponseMO(**_correlation(request))
        if isinstance(outcome, Rejected):
            return self.failure(request, outcome.reason)
        return self.failure(request, None)

    def identified(self, request: AbisRequest, outcome: Accepted) -> IdentifyResponse:
        candidates = [
            Candidate(
                referenceId=match.referenceId,
                analytics=Analytics(
                    confidence=round(match.score * 100, 2),
                    internalScore=round(match.score, 6),
                ),
            )
            for match in outcome.candidates
        ]
        return IdentifyResponse(
            **_correlation(request),
            candidateList=CandidateList(count=len(candidates), candidates=candidates),
        )

    def failure(self, request: Optional[AbisRequest], reason: Optional[FailureReason]) -> FailureResponse:
        reason = reason or FailureReason.INTERNAL_ERROR_UNKNOWN
        return FailureResponse(**_correlation(request), failureReason=reason.code)


def _correlation(request: Optional[AbisRequest]) -> dict:
    if request is None:
        return {}
    return {
        "id": request.id,
        "requestId": request.requestId,
        "responsetime": request.requesttime,
    }
