# test_dispatcher.py
import json

from mock_abis.conftest import REQUEST_TIME
from mock_abis.constants import ExpectationAction, MessageType
from mock_abis.models import DeleteRequest, Expectation, FailureResponse, IdentifyRequest, InsertRequest, ResponseMO


def insert_request(ref="ref1", request_id="r1", url=None, **overrides):
    fields = {
        "id": "mosip.abis.insert",
        "version": "1.1",
        "requestId": request_id,
        "requesttime": REQUEST_TIME,
        "referenceId": ref,
        "referenceURL": url,
    }
    fields.update(overrides)
    return InsertRequest(**fields)


def delivered(channel, count=1):
    assert channel.wait_for(count, timeout=5)
    return [(json.loads(body), message_type) for body, message_type in channel.messages]


def test_insert_end_to_end(dispatcher, channel, store):
    response = dispatcher.insert(insert_request(), MessageType.TEXT)

    assert isinstance(response, ResponseMO)
    assert response.returnValue == "1"
    assert response.requestId == "r1"
    assert response.responsetime == REQUEST_TIME
    assert store.get("ref1") is not None

    [(body, message_type)] = delivered(channel)
    assert message_type == MessageType.TEXT
    assert body == json.loads(response.model_dump_json())


def test_invalid_insert_is_not_stored(dispatcher, channel, store):
    response = dispatcher.insert(insert_request(requestId=None))
    assert isinstance(response, FailureResponse)
    assert response.failureReason == "6"
    assert "ref1" not in store
    [(body, _)] = delivered(channel)
    assert body["returnValue"] == "2"
    assert body["failureReason"] == "6"


def test_reinsert_overwrites(dispatcher, store):
    dispatcher.insert(insert_request(url="http://bio/one"))
    dispatcher.insert(insert_request(url="http://bio/two", request_id="r2"))
    assert store.get("ref1").referenceURL == "http://bio/two"
    assert len(store) == 1


def test_insert_delay_comes_from_expectation(dispatcher, expectations, scheduler, channel):
    expectations.set(Expectation(referenceId="ref1", action=ExpectationAction.NO_DUPLICATE, delayInExecution=30))
    dispatcher.insert(insert_request())
    assert scheduler.pending() == 1
    assert channel.messages == []


def test_delete_unknown_reference_succeeds(dispatcher, channel):
    request = DeleteRequest(id="mosip.abis.delete", requestId="d1", requesttime=REQUEST_TIME, referenceId="ghost")
    response = dispatcher.delete(request, MessageType.BYTES)
    assert response.returnValue == "1"
    [(body, message_type)] = delivered(channel)
    assert message_type == MessageType.BYTES
    assert body["requestId"] == "d1"


def test_identify_without_enrollment_fails_on_both_channels(dispatcher, channel):
    request = IdentifyRequest(id="mosip.abis.identify", requestId="i1", requesttime=REQUEST_TIME, referenceId="nobody")
    response = dispatcher.identify(request)

    assert isinstance(response, FailureResponse)
    assert response.returnValue == "2"
    assert response.failureReason == "404"

    [(body, _)] = delivered(channel)
    assert body["failureReason"] == "404"
    assert body["requestId"] == "i1"
    assert body["id"] == "mosip.abis.identify"


def test_identify_finds_duplicate(dispatcher, fetcher, channel):
    fetcher.payloads["http://bio/a"] = b"fingerprint"
    fetcher.payloads["http://bio/b"] = b"fingerprint"
    dispatcher.insert(insert_request("a", "r1", "http://bio/a"))
    dispatcher.insert(insert_request("b", "r2", "http://bio/b"))

    request = IdentifyRequest(id="mosip.abis.identify", requestId="i1", requesttime=REQUEST_TIME, referenceId="a")
    response = dispatcher.identify(request)

    assert response.returnValue == "1"
    assert [c.referenceId for c in response.candidateList.candidates] == ["b"]
    messages = delivered(channel, 3)
    [identified] = [body for body, _ in messages if "candidateList" in body]
    assert identified["requestId"] == "i1"
    assert identified["candidateList"]["count"] == 1


def test_identify_validation_failure(dispatcher):
    request = IdentifyRequest(id="mosip.abis.identify", requestId="i1", referenceId="a")
    assert dispatcher.identify(request).failureReason == "9"
