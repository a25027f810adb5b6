#mock_abis/models.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from mock_abis.constants import FAILURE_RETURN_VALUE, SUCCESS_RETURN_VALUE, ExpectationAction


# ---- Requests ----

class AbisRequest(BaseModel):
    id: Optional[str] = Field(None, examples=["mosip.abis.insert"])
    version: Optional[str] = Field(None, examples=["1.1"])
    requestId: Optional[str] = Field(None, examples=["01234567-89AB-CDEF-0123-456789ABCDEF"])
    requesttime: Optional[datetime] = None
    referenceId: Optional[str] = Field(None, examples=["987654321-89AB-CDEF-0123-456789ABCDEF"])


class InsertRequest(AbisRequest):
    referenceURL: Optional[str] = Field(None, examples=["https://datashare.example/biometrics/987654321"])


class DeleteRequest(AbisRequest):
    pass


class ReferenceIds(BaseModel):
    referenceId: str


class Gallery(BaseModel):
    referenceIds: List[ReferenceIds] = Field(default_factory=list)


class Flags(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    maxResults: Optional[str] = None
    targetFPIR: Optional[str] = None
    flag1: Optional[str] = None
    flag2: Optional[str] = None


class IdentifyRequest(AbisRequest):
    referenceUrl: Optional[str] = None
    gallery: Optional[Gallery] = None
    flags: Optional[Flags] = None


# ---- Responses ----

class ResponseMO(BaseModel):
    id: Optional[str] = None
    requestId: Optional[str] = None
    responsetime: Optional[datetime] = None
    returnValue: str = Field(SUCCESS_RETURN_VALUE, examples=["1"])


class Analytics(BaseModel):
    confidence: float
    internalScore: float


class Candidate(BaseModel):
    referenceId: str
    analytics: Analytics


class CandidateList(BaseModel):
    count: int = 0
    candidates: List[Candidate] = Field(default_factory=list)


class IdentifyResponse(ResponseMO):
    candidateList: CandidateList = Field(default_factory=CandidateList)


class FailureResponse(BaseModel):
    id: Optional[str] = None
    requestId: Optional[str] = None
    responsetime: Optional[datetime] = None
    returnValue: str = Field(FAILURE_RETURN_VALUE, examples=["2"])
    failureReason: str = Field(..., examples=["7"])


# ---- Expectations / runtime configuration ----

class Expectation(BaseModel):
    referenceId: str = Field(..., examples=["987654321-89AB-CDEF-0123-456789ABCDEF"])
    action: ExpectationAction = ExpectationAction.DUPLICATE
    delayInExecution: int = Field(0, ge=0, examples=[10])
    failureReason: Optional[str] = Field(None, examples=["7"])
    referenceIds: List[str] = Field(default_factory=list)


class ExpectationResponse(BaseModel):
    status: str = Field(..., examples=["success"])
    message: str
    expectations: List[Expectation] = Field(default_factory=list)


class ConfigureRequest(BaseModel):
    findDuplicate: bool = True


class ConfigureResponse(BaseModel):
    findDuplicate: bool
