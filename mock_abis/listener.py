#mock_abis/listener.py
import json
import threading
from typing import Optional, Union

import redis
from pydantic import ValidationError

from mock_abis.channel import OutboundChannel
from mock_abis.constants import FailureReason, MessageType
from mock_abis.dispatcher import RequestDispatcher
from mock_abis.logger import logger
from mock_abis.models import DeleteRequest, IdentifyRequest, InsertRequest
from mock_abis.responses import ResponseBuilder


class QueueListener:
    """
    Consumes ABIS requests from a Redis list and hands them to the dispatcher.

    Requests are routed on their ``id``. When the dispatcher itself fails, the
    failure response is sent straight to the outbound channel because no
    deferred delivery was scheduled for it.
    """

    def __init__(
        self,
        client: redis.Redis,
        queue: str,
        dispatcher: RequestDispatcher,
        channel: OutboundChannel,
        builder: ResponseBuilder,
        poll_timeout: int = 5,
    ):
        self.client = client
        self.queue = queue
        self.dispatcher = dispatcher
        self.channel = channel
        self.builder = builder
        self.poll_timeout = poll_timeout
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="abis-listener", daemon=True)
        self._thread.start()
        logger.info(f"Listening for ABIS requests on {self.queue}")

    def stop(self, timeout: float = 10.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Queue listener stopped")

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                item = self.client.blpop([self.queue], timeout=self.poll_timeout)
            except redis.RedisError as e:
                logger.error(f"Request queue read failed: {e}")
                self._stop.wait(self.poll_timeout)
                continue
            if item is None:
                continue
            _, raw = item
            self.handle_message(raw)

    def handle_message(self, raw: Union[str, bytes], message_type: MessageType = MessageType.TEXT):
        """Parse and dispatch one queued request. Returns the response, or None if dropped."""
        try:
            payload = json.loads(raw)
        except (ValueError, TypeError) as e:
            logger.error(f"Dropping unparseable request message: {e}")
            return None
        if not isinstance(payload, dict):
            logger.error("Dropping request message: expected a JSON object")
            return None

        operation = str(payload.get("id") or "").lower()
        routes = {
            self.dispatcher.insert_id.lower(): (InsertRequest, self.dispatcher.insert, FailureReason.INTERNAL_ERROR_UNKNOWN),
            self.dispatcher.delete_id.lower(): (DeleteRequest, self.dispatcher.delete, FailureReason.INTERNAL_ERROR_UNKNOWN),
            self.dispatcher.identify_id.lower(): (IdentifyRequest, self.dispatcher.identify, FailureReason.UNABLE_TO_FETCH_BIOMETRIC_DETAILS),
        }
        if operation not in routes:
            logger.error(f"Dropping request message with unknown id '{payload.get('id')}'")
            return None
        model, handler, fallback_reason = routes[operation]

        try:
            request = model.model_validate(payload)
        except ValidationError as e:
            logger.error(f"Malformed {operation} request: {e}")
            return self.dispatcher.reject(payload, e.errors(), message_type)

        try:
            return handler(request, message_type)
        except Exception as e:
            logger.exception(f"Error while processing {operation} request {request.requestId}: {e}")
            failure = self.builder.failure(request, fallback_reason)
            try:
                self.channel.send_to_queue(failure, message_type)
            except Exception as send_error:
                logger.error(f"Could not report failure for {request.requestId}: {send_error}")
            return failure
