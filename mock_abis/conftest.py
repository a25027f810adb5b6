# conftest.py
from datetime import datetime

import pytest

from mock_abis.biometrics import BiometricFetchError, BiometricFetcher
from mock_abis.channel import InMemoryChannel
from mock_abis.dispatcher import RequestDispatcher
from mock_abis.engine import DecisionEngine
from mock_abis.expectations import ExpectationRegistry
from mock_abis.responses import ResponseBuilder
from mock_abis.scheduler import DeliveryScheduler
from mock_abis.store import EnrollmentStore

REQUEST_TIME = datetime(2024, 5, 1, 10, 30, 0)


class DictFetcher(BiometricFetcher):
    """Serves biometric payloads from a dict instead of the network."""

    def __init__(self, payloads=None):
        super().__init__(timeout=1)
        self.payloads = dict(payloads or {})

    def fetch(self, url: str) -> bytes:
        if url not in self.payloads:
            raise BiometricFetchError(f"404 for {url}")
        return self.payloads[url]


@pytest.fixture
def fetcher():
    return DictFetcher()


@pytest.fixture
def store():
    return EnrollmentStore()


@pytest.fixture
def expectations():
    return ExpectationRegistry()


@pytest.fixture
def channel():
    return InMemoryChannel()


@pytest.fixture
def engine(store, fetcher, expectations):
    return DecisionEngine(store, fetcher, expectations, match_threshold=0.99)


@pytest.fixture
def scheduler(channel):
    scheduler = DeliveryScheduler(channel)
    scheduler.start()
    yield scheduler
    scheduler.stop()


@pytest.fixture
def dispatcher(store, engine, scheduler, expectations):
    return RequestDispatcher(store, engine, ResponseBuilder(), scheduler, expectations)
