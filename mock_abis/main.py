#mock_abis/main.py
import asyncio
from contextlib import asynccontextmanager
from typing import Optional, Union

from fastapi import FastAPI, HTTPException, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mock_abis.biometrics import BiometricFetcher
from mock_abis.channel import OutboundChannel
from mock_abis.config import Config
from mock_abis.constants import FailureReason, ExpectationAction
from mock_abis.dispatcher import RequestDispatcher
from mock_abis.engine import DecisionEngine
from mock_abis.expectations import ExpectationRegistry
from mock_abis.listener import QueueListener
from mock_abis.logger import logger
from mock_abis.models import (
    ConfigureRequest,
    ConfigureResponse,
    DeleteRequest,
    Expectation,
    ExpectationResponse,
    FailureResponse,
    IdentifyRequest,
    IdentifyResponse,
    InsertRequest,
    ResponseMO,
)
from mock_abis.responses import ResponseBuilder
from mock_abis.scheduler import DeliveryScheduler
from mock_abis.store import EnrollmentStore


def create_app(
    config: Optional[Config] = None,
    channel: Optional[OutboundChannel] = None,
    fetcher: Optional[BiometricFetcher] = None,
) -> FastAPI:
    """Build the service and wire its components; nothing connects until startup."""
    config = config or Config()
    channel = channel or config.get_outbound_channel()
    fetcher = fetcher or BiometricFetcher(timeout=config.fetch_timeout_seconds)

    store = EnrollmentStore()
    expectations = ExpectationRegistry()
    engine = DecisionEngine(
        store,
        fetcher,
        expectations,
        match_threshold=config.match_threshold,
        identify_delay=config.identify_delay_seconds,
        failure_delay=config.failure_delay_seconds,
        find_duplicate=config.find_duplicate,
    )
    builder = ResponseBuilder()
    scheduler = DeliveryScheduler(channel)
    dispatcher = RequestDispatcher(
        store,
        engine,
        builder,
        scheduler,
        expectations,
        insert_id=config.insert_id,
        delete_id=config.delete_id,
        identify_id=config.identify_id,
        insert_delay=config.insert_delay_seconds,
        failure_delay=config.failure_delay_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start the delivery worker and, if enabled, the request queue listener."""
        logger.info("Starting mock ABIS service...")
        scheduler.start()

        listener = None
        if config.listener_enabled:
            if config.outbound_channel != "redis":
                logger.warning("LISTENER_ENABLED requires OUTBOUND_CHANNEL=redis, listener not started.")
            else:
                listener = QueueListener(
                    config.get_redis_client(),
                    config.request_queue,
                    dispatcher,
                    channel,
                    builder,
                    poll_timeout=config.listener_poll_timeout,
                )
                listener.start()
        app.state.listener = listener

        logger.info("Startup complete.")
        yield

        if listener is not None:
            listener.stop()
        scheduler.stop()
        logger.info("Shutting down mock ABIS service.")

    app = FastAPI(
        title="Mock ABIS Service API",
        version="1.0.0",
        lifespan=lifespan,
        description="A mock biometric identification provider with delayed queue callbacks.",
    )
    app.state.config = config
    app.state.store = store
    app.state.expectations = expectations
    app.state.engine = engine
    app.state.scheduler = scheduler
    app.state.channel = channel
    app.state.dispatcher = dispatcher

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        body = FailureResponse(failureReason=FailureReason.INTERNAL_ERROR_UNKNOWN.code)
        return JSONResponse(status_code=500, content=body.model_dump(mode="json"))

    abis_paths = {"/abis/insertrequest", "/abis/deleterequest", "/abis/identifyrequest"}

    @app.exception_handler(RequestValidationError)
    async def malformed_request(request: Request, exc: RequestValidationError):
        if request.url.path not in abis_paths:
            return await request_validation_exception_handler(request, exc)
        logger.warning(f"Malformed request on {request.url.path}: {exc.errors()}")
        payload = exc.body if isinstance(exc.body, dict) else {}
        response = await asyncio.to_thread(request.app.state.dispatcher.reject, payload, exc.errors())
        return JSONResponse(status_code=200, content=response.model_dump(mode="json"))

    @app.get("/health", tags=["Health"])
    async def health(request: Request):
        """Report store size and outstanding deferred deliveries."""
        return {
            "status": "ok",
            "enrollments": len(request.app.state.store),
            "pending_deliveries": request.app.state.scheduler.pending(),
            "outbound_channel": config.outbound_channel,
        }

    @app.post(
        "/abis/insertrequest",
        response_model=Union[FailureResponse, ResponseMO],
        tags=["Proxy ABIS"],
    )
    async def insert_request(request: Request, body: InsertRequest):
        """
        Enroll the biometrics referenced by ``referenceURL`` under ``referenceId``.

        Returns the response immediately; the same response is sent to the
        outbound queue after the configured insert delay.
        """
        return await asyncio.to_thread(request.app.state.dispatcher.insert, body)

    @app.delete(
        "/abis/deleterequest",
        response_model=Union[FailureResponse, ResponseMO],
        tags=["Proxy ABIS"],
    )
    async def delete_request(request: Request, body: DeleteRequest):
        """Remove an enrollment. Unknown reference ids still succeed."""
        return await asyncio.to_thread(request.app.state.dispatcher.delete, body)

    @app.post(
        "/abis/identifyrequest",
        response_model=Union[FailureResponse, IdentifyResponse],
        tags=["Proxy ABIS"],
    )
    async def identify_request(request: Request, body: IdentifyRequest):
        """
        Check the subject against the gallery (or every enrollment) for duplicates.

        The deferred delivery uses the delay decided by the decision engine.
        """
        return await asyncio.to_thread(request.app.state.dispatcher.identify, body)

    @app.post("/abis/config/expectation", response_model=ExpectationResponse, tags=["Configuration"])
    async def set_expectation(request: Request, expectation: Expectation):
        """Register a canned outcome for a reference id."""
        if expectation.action == ExpectationAction.ERROR and expectation.failureReason:
            reason = FailureReason.from_code(expectation.failureReason)
            if reason is None:
                raise HTTPException(status_code=400, detail=f"Unknown failureReason '{expectation.failureReason}'.")
            expectation = expectation.model_copy(update={"failureReason": reason.code})
        request.app.state.expectations.set(expectation)
        logger.info(f"Expectation {expectation.action.value} set for {expectation.referenceId}")
        return {"status": "success", "message": f"Expectation set for '{expectation.referenceId}'.", "expectations": [expectation]}

    @app.get("/abis/config/expectation", response_model=ExpectationResponse, tags=["Configuration"])
    async def get_expectations(request: Request):
        expectations = request.app.state.expectations.all()
        return {"status": "success", "message": f"{len(expectations)} expectation(s).", "expectations": expectations}

    @app.delete("/abis/config/expectation/{reference_id}", response_model=ExpectationResponse, tags=["Configuration"])
    async def delete_expectation(request: Request, reference_id: str):
        if not request.app.state.expectations.delete(reference_id):
            raise HTTPException(status_code=404, detail=f"No expectation for '{reference_id}'.")
        return {"status": "success", "message": f"Expectation for '{reference_id}' deleted."}

    @app.delete("/abis/config/expectation", response_model=ExpectationResponse, tags=["Configuration"])
    async def delete_expectations(request: Request):
        count = request.app.state.expectations.clear()
        return {"status": "success", "message": f"{count} expectation(s) deleted."}

    @app.get("/abis/config/configure", response_model=ConfigureResponse, tags=["Configuration"])
    async def get_configuration(request: Request):
        return {"findDuplicate": request.app.state.engine.find_duplicate}

    @app.post("/abis/config/configure", response_model=ConfigureResponse, tags=["Configuration"])
    async def configure(request: Request, body: ConfigureRequest):
        """Toggle duplicate finding for subsequent identify requests."""
        request.app.state.engine.find_duplicate = body.findDuplicate
        logger.info(f"findDuplicate set to {body.findDuplicate}")
        return {"findDuplicate": body.findDuplicate}

    return app


app = create_app()
