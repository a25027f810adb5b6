#mock_abis/biometrics.py
import hashlib
from typing import List

import numpy as np
import requests

from mock_abis.logger import logger

TEMPLATE_DIMENSIONS = 64


class BiometricFetchError(RuntimeError):
    """Raised when biometric data cannot be retrieved from its reference URL."""


class BiometricFetcher:
    """Downloads the biometric payload (CBEFF) referenced by an ABIS request."""

    def __init__(self, timeout: int = 15):
        self.timeout = timeout

    def fetch(self, url: str) -> bytes:
        if not url:
            raise BiometricFetchError("No reference URL provided")
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Biometric fetch failed for {url}: {e}")
            raise BiometricFetchError(f"Unable to fetch biometric data: {e}") from e
        logger.debug(f"Fetched {len(response.content)} bytes from {url}")
        return response.content


def template_from_payload(payload: bytes) -> List[float]:
    """
    Derive a deterministic, L2-normalized template from a biometric payload.

    Identical payloads always give identical templates (score 1.0); anything
    else scores well below any sensible match threshold.
    """
    digest = b""
    counter = 0
    while len(digest) < TEMPLATE_DIMENSIONS:
        digest += hashlib.sha256(payload + counter.to_bytes(4, "big")).digest()
        counter += 1
    vec = np.frombuffer(digest[:TEMPLATE_DIMENSIONS], dtype=np.uint8).astype(float) - 127.5
    norm = np.linalg.norm(vec)
    return (vec / norm).tolist() if norm > 0 else vec.tolist()


def cosine_similarity(emb1: List[float], emb2: List[float]) -> float:
    """Calculate cosine similarity between two templates."""
    a = np.array(emb1, dtype=float)
    b = np.array(emb2, dtype=float)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))
