#mock_abis/validator.py
import re
from typing import Optional

from pydantic import ValidationError

from mock_abis.constants import FailureReason
from mock_abis.models import AbisRequest

VERSION_PATTERN = re.compile(r"\d+\.\d")


def validate(request: AbisRequest, expected_id: str) -> Optional[FailureReason]:
    """
    Check an insert/identify request, returning the first failure reason or None.

    Rules run in a fixed order and the first failing rule wins.
    """
    if request.id and request.id.lower() != expected_id.lower():
        return FailureReason.INVALID_ID
    if not request.requestId:
        return FailureReason.MISSING_REQUESTID
    if request.requesttime is None:
        return FailureReason.MISSING_REQUESTTIME
    if not request.referenceId:
        return FailureReason.MISSING_REFERENCEID
    if request.version and not VERSION_PATTERN.fullmatch(request.version):
        return FailureReason.INVALID_VERSION
    return None


def reason_for_errors(errors) -> FailureReason:
    """Map pydantic validation errors on an ABIS request to one failure reason."""
    for error in errors:
        loc = tuple(error.get("loc", ()))
        if loc and loc[0] == "body":
            loc = loc[1:]
        if loc[:1] == ("requesttime",):
            return FailureReason.MISSING_REQUESTTIME
    return FailureReason.INVALID_INPUT


def salvage_request(payload) -> AbisRequest:
    """
    Keep whichever correlation fields of a malformed request still parse.

    The failure response echoes id, requestId and requesttime, so each one is
    validated on its own and dropped if it is the broken field.
    """
    fields = {}
    if isinstance(payload, dict):
        for name in ("id", "requestId", "requesttime", "referenceId"):
            try:
                parsed = AbisRequest.model_validate({name: payload.get(name)})
            except ValidationError:
                continue
            fields[name] = getattr(parsed, name)
    return AbisRequest(**fields)
