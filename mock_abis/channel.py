#mock_abis/channel.py
import threading
from abc import ABC, abstractmethod
from typing import List, Tuple, Union

import redis
from pydantic import BaseModel

from mock_abis.constants import MessageType
from mock_abis.logger import logger


class EncodingError(Exception):
    """Raised when a response cannot be serialized for the outbound queue."""


def encode_response(response: BaseModel, message_type: MessageType) -> Union[str, bytes]:
    """Serialize a response as JSON text, or UTF-8 bytes for BYTES messages."""
    try:
        body = response.model_dump_json()
        if MessageType(message_type) == MessageType.BYTES:
            return body.encode("utf-8")
        return body
    except (ValueError, TypeError, UnicodeError) as e:
        raise EncodingError(f"Cannot encode {type(response).__name__}: {e}") from e


class OutboundChannel(ABC):
    """Callback channel that the identity platform listens on."""

    @abstractmethod
    def send_to_queue(self, response: BaseModel, message_type: MessageType) -> None:
        ...


class RedisStreamChannel(OutboundChannel):
    """Appends each delivery to a Redis stream with ``messageType`` and ``body`` fields."""

    def __init__(self, client: redis.Redis, stream: str):
        self.client = client
        self.stream = stream

    def send_to_queue(self, response: BaseModel, message_type: MessageType) -> None:
        body = encode_response(response, message_type)
        entry_id = self.client.xadd(self.stream, {"messageType": int(message_type), "body": body})
        logger.info(f"Sent response to {self.stream} (entry={entry_id!r}, msgType={int(message_type)})")


class InMemoryChannel(OutboundChannel):
    """Keeps deliveries in process, for local runs without a broker."""

    def __init__(self):
        self._messages: List[Tuple[Union[str, bytes], MessageType]] = []
        self._cond = threading.Condition()

    def send_to_queue(self, response: BaseModel, message_type: MessageType) -> None:
        body = encode_response(response, message_type)
        with self._cond:
            self._messages.append((body, MessageType(message_type)))
            self._cond.notify_all()
        logger.info(f"Queued response in memory (msgType={int(message_type)})")

    @property
    def messages(self) -> List[Tuple[Union[str, bytes], MessageType]]:
        with self._cond:
            return list(self._messages)

    def wait_for(self, count: int, timeout: float = 5.0) -> bool:
        """Block until at least ``count`` messages were delivered."""
        with self._cond:
            return self._cond.wait_for(lambda: len(self._messages) >= count, timeout=timeout)
