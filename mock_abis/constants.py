#mock_abis/constants.py
from enum import Enum, IntEnum
from typing import Optional


SUCCESS_RETURN_VALUE = "1"
FAILURE_RETURN_VALUE = "2"


class FailureReason(str, Enum):
    """Failure reasons reported in ``failureReason``, each with a stable code."""

    INTERNAL_ERROR_UNKNOWN = "INTERNAL_ERROR_UNKNOWN"
    MISSING_REFERENCEID = "MISSING_REFERENCEID"
    MISSING_REQUESTID = "MISSING_REQUESTID"
    UNABLE_TO_FETCH_BIOMETRIC_DETAILS = "UNABLE_TO_FETCH_BIOMETRIC_DETAILS"
    MISSING_REQUESTTIME = "MISSING_REQUESTTIME"
    INVALID_VERSION = "INVALID_VERSION"
    INVALID_ID = "INVALID_ID"
    INVALID_INPUT = "INVALID_INPUT"
    MISSING_INPUT = "MISSING_INPUT"
    QUALITY_CHECK_FAILED = "QUALITY_CHECK_FAILED"
    BIOMETRIC_NOT_FOUND_IN_CBEFF = "BIOMETRIC_NOT_FOUND_IN_CBEFF"
    MATCHING_OF_BIOMETRIC_DATA_FAILED = "MATCHING_OF_BIOMETRIC_DATA_FAILED"
    POOR_DATA_QUALITY = "POOR_DATA_QUALITY"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    @property
    def code(self) -> str:
        return _FAILURE_CODES[self]

    @classmethod
    def from_code(cls, code: str) -> Optional["FailureReason"]:
        """Inverse of ``code``; also accepts the reason name."""
        if code is None:
            return None
        code = str(code).strip()
        for reason, value in _FAILURE_CODES.items():
            if value == code or reason.value == code.upper():
                return reason
        return None


# ABIS reasons use the ABIS interface numbering, SDK reasons use SDK status codes
_FAILURE_CODES = {
    FailureReason.INTERNAL_ERROR_UNKNOWN: "1",
    FailureReason.MISSING_REFERENCEID: "5",
    FailureReason.MISSING_REQUESTID: "6",
    FailureReason.UNABLE_TO_FETCH_BIOMETRIC_DETAILS: "7",
    FailureReason.MISSING_REQUESTTIME: "9",
    FailureReason.INVALID_VERSION: "13",
    FailureReason.INVALID_ID: "14",
    FailureReason.INVALID_INPUT: "401",
    FailureReason.MISSING_INPUT: "402",
    FailureReason.QUALITY_CHECK_FAILED: "403",
    FailureReason.BIOMETRIC_NOT_FOUND_IN_CBEFF: "404",
    FailureReason.MATCHING_OF_BIOMETRIC_DATA_FAILED: "405",
    FailureReason.POOR_DATA_QUALITY: "406",
    FailureReason.UNKNOWN_ERROR: "500",
}


class MessageType(IntEnum):
    """How a deferred delivery is encoded on the outbound channel."""

    TEXT = 1
    BYTES = 2


class ExpectationAction(str, Enum):
    DUPLICATE = "DUPLICATE"
    NO_DUPLICATE = "NO_DUPLICATE"
    ERROR = "ERROR"
