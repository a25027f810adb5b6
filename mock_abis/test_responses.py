# test_responses.py
from mock_abis.conftest import REQUEST_TIME
from mock_abis.constants import FailureReason
from mock_abis.engine import Accepted, Match, Rejected
from mock_abis.models import DeleteRequest, FailureResponse, IdentifyRequest, IdentifyResponse, InsertRequest, ResponseMO
from mock_abis.responses import ResponseBuilder

builder = ResponseBuilder()


def insert_request():
    return InsertRequest(id="mosip.abis.insert", requestId="r1", requesttime=REQUEST_TIME, referenceId="ref1")


def test_success_echoes_correlation_fields():
    response = builder.build(insert_request(), Accepted())
    assert type(response) is ResponseMO
    assert response.returnValue == "1"
    assert response.id == "mosip.abis.insert"
    assert response.requestId == "r1"
    assert response.responsetime == REQUEST_TIME


def test_failure_carries_reason_code():
    response = builder.build(insert_request(), Rejected(FailureReason.INVALID_VERSION))
    assert isinstance(response, FailureResponse)
    assert response.returnValue == "2"
    assert response.failureReason == "13"
    assert response.requestId == "r1"


def test_missing_reason_becomes_internal_error():
    response = builder.build(DeleteRequest(requestId="r2"), Rejected(None))
    assert response.failureReason == FailureReason.INTERNAL_ERROR_UNKNOWN.code


def test_unknown_outcome_is_still_a_failure():
    response = builder.build(insert_request(), object())
    assert isinstance(response, FailureResponse)
    assert response.failureReason == "1"


def test_identify_success_lists_candidates():
    request = IdentifyRequest(id="mosip.abis.identify", requestId="r3", requesttime=REQUEST_TIME, referenceId="s")
    response = builder.build(request, Accepted(0, [Match("dup", 1.0)]))
    assert isinstance(response, IdentifyResponse)
    assert response.candidateList.count == 1
    assert response.candidateList.candidates[0].referenceId == "dup"
    assert response.candidateList.candidates[0].analytics.confidence == 100.0


def test_failure_codes_are_stable():
    assert FailureReason.MISSING_REQUESTID.code == "6"
    assert FailureReason.BIOMETRIC_NOT_FOUND_IN_CBEFF.code == "404"
    assert FailureReason.from_code("404") == FailureReason.BIOMETRIC_NOT_FOUND_IN_CBEFF
    assert FailureReason.from_code("poor_data_quality") == FailureReason.POOR_DATA_QUALITY
    assert FailureReason.from_code("999") is None
    assert len({reason.code for reason in FailureReason}) == len(FailureReason)
