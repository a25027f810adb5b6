#mock_abis/config.py
import os
import logging

import redis
from dotenv import find_dotenv, load_dotenv

# Logging settings on Config are read at import time
load_dotenv(find_dotenv(usecwd=True))


class Config:
    def __init__(self):
        # ---- OUTBOUND CHANNEL ----
        self.outbound_channel = os.getenv("OUTBOUND_CHANNEL", "memory").lower()
        self.response_queue = os.getenv("RESPONSE_QUEUE", "abis-responses")

        # ---- INBOUND LISTENER ----
        self.request_queue = os.getenv("REQUEST_QUEUE", "abis-requests")
        self.listener_enabled = os.getenv("LISTENER_ENABLED", "false").lower() == "true"
        self.listener_poll_timeout = int(os.getenv("LISTENER_POLL_TIMEOUT", "5"))

        # ---- DELAYS (seconds) ----
        self.insert_delay_seconds = int(os.getenv("INSERT_DELAY_SECONDS", "0"))
        self.identify_delay_seconds = int(os.getenv("IDENTIFY_DELAY_SECONDS", "0"))
        # Used whenever a request fails before an outcome carries its own delay
        self.failure_delay_seconds = int(os.getenv("FAILURE_DELAY_SECONDS", "0"))

        # ---- MATCHING ----
        self.match_threshold = float(os.getenv("MATCH_THRESHOLD", "0.99"))
        self.find_duplicate = os.getenv("FIND_DUPLICATE", "true").lower() == "true"
        self.fetch_timeout_seconds = int(os.getenv("FETCH_TIMEOUT_SECONDS", "15"))

        # ---- EXPECTED REQUEST IDS ----
        self.insert_id = os.getenv("ABIS_INSERT_ID", "mosip.abis.insert")
        self.delete_id = os.getenv("ABIS_DELETE_ID", "mosip.abis.delete")
        self.identify_id = os.getenv("ABIS_IDENTIFY_ID", "mosip.abis.identify")

    def _require(self, key: str) -> str:
        value = os.getenv(key)
        if not value:
            raise ValueError(f"Missing required environment variable: {key}")
        return value

    def get_redis_client(self) -> redis.Redis:
        return redis.from_url(self._require("REDIS_URL"))

    def get_outbound_channel(self):
        from mock_abis.channel import InMemoryChannel, RedisStreamChannel

        if self.outbound_channel == "redis":
            return RedisStreamChannel(self.get_redis_client(), self.response_queue)
        if self.outbound_channel == "memory":
            return InMemoryChannel()
        raise ValueError(f"Unsupported OUTBOUND_CHANNEL: {self.outbound_channel}")

    # Logging setting
    _level_name = os.getenv("LOGGING_LEVEL", "INFO").upper()
    LOGGING_LEVEL = getattr(logging, _level_name, logging.INFO)
    LOG_FILE = os.getenv("LOG_FILE", "mock-abis.log")
