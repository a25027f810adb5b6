#mock_abis/dispatcher.py
from mock_abis.constants import MessageType
from mock_abis.engine import Accepted, DecisionEngine, Rejected
from mock_abis.expectations import ExpectationRegistry
from mock_abis.logger import logger
from mock_abis.models import DeleteRequest, IdentifyRequest, InsertRequest
from mock_abis.responses import AbisResponse, ResponseBuilder
from mock_abis.scheduler import DeliveryScheduler
from mock_abis.store import EnrollmentRecord, EnrollmentStore
from mock_abis.validator import reason_for_errors, salvage_request, validate


class RequestDispatcher:
    """
    Runs insert, delete and identify requests end to end.

    Every operation validates, processes, builds a response, schedules its
    deferred delivery and then returns the same response to the caller.
    """

    def __init__(
        self,
        store: EnrollmentStore,
        engine: DecisionEngine,
        builder: ResponseBuilder,
        scheduler: DeliveryScheduler,
        expectations: ExpectationRegistry,
        insert_id: str = "mosip.abis.insert",
        delete_id: str = "mosip.abis.delete",
        identify_id: str = "mosip.abis.identify",
        insert_delay: int = 0,
        failure_delay: int = 0,
    ):
        self.store = store
        self.engine = engine
        self.builder = builder
        self.scheduler = scheduler
        self.expectations = expectations
        self.insert_id = insert_id
        self.delete_id = delete_id
        self.identify_id = identify_id
        self.insert_delay = insert_delay
        self.failure_delay = failure_delay

    def insert(self, request: InsertRequest, message_type: MessageType = MessageType.TEXT) -> AbisResponse:
        logger.info(f"Saving insert request for reference id {request.referenceId}")
        reason = validate(request, self.insert_id)
        if reason is not None:
            logger.info(f"Insert request {request.requestId} rejected: {reason.value}")
            outcome = Rejected(reason, self.failure_delay)
        else:
            self.store.insert(
                request.referenceId,
                EnrollmentRecord(
                    referenceId=request.referenceId,
                    referenceURL=request.referenceURL,
                    requestId=request.requestId,
                ),
            )
            expectation = self.expectations.get(request.referenceId)
            delay = expectation.delayInExecution if expectation is not None else self.insert_delay
            outcome = Accepted(delay)
        return self._respond(request, outcome, message_type)

    def delete(self, request: DeleteRequest, message_type: MessageType = MessageType.TEXT) -> AbisResponse:
        logger.info(f"Deleting request with reference id {request.referenceId}")
        if request.referenceId:
            removed = self.store.delete(request.referenceId)
            logger.info(f"Successfully deleted reference id {request.referenceId} (existed={removed})")
        return self._respond(request, Accepted(0), message_type)

    def identify(self, request: IdentifyRequest, message_type: MessageType = MessageType.TEXT) -> AbisResponse:
        logger.info(f"Finding duplication for reference id {request.referenceId}")
        reason = validate(request, self.identify_id)
        if reason is not None:
            logger.info(f"Identify request {request.requestId} rejected: {reason.value}")
            outcome = Rejected(reason, self.failure_delay)
        else:
            outcome = self.engine.identify(request)
        return self._respond(request, outcome, message_type)

    def reject(self, payload, errors, message_type: MessageType = MessageType.TEXT) -> AbisResponse:
        """Answer a request that failed to parse with a failure response on both paths."""
        request = salvage_request(payload)
        reason = reason_for_errors(errors)
        logger.info(f"Malformed request {request.requestId} rejected: {reason.value}")
        return self._respond(request, Rejected(reason, self.failure_delay), message_type)

    def _respond(self, request, outcome, message_type: MessageType) -> AbisResponse:
        response = self.builder.build(request, outcome)
        self.scheduler.schedule(response, outcome.delay, message_type)
        return response
