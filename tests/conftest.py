"""
Shared fixtures: a stub requests session standing in for the RAG service.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Tuple
from urllib.parse import urlparse

import pytest
import requests

from rest_client import RagRestClient


def make_response(status_code: int, payload: Any = None, reason: str = "OK") -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    if payload is None:
        raw = b""
    elif isinstance(payload, (dict, list)):
        raw = json.dumps(payload).encode("utf-8")
    else:
        raw = str(payload).encode("utf-8")
    response._content = raw
    response.headers["Content-Type"] = "application/json"
    return response


class StubSession:
    def __init__(self, mapping: Dict[Tuple[str, str], Any]):
        self.mapping = mapping
        self.calls = []

    def request(self, method: str, url: str, *, json: Any, headers: Any, timeout: float):
        path = urlparse(url).path
        key = (method.upper(), path)
        self.calls.append({"method": method.upper(), "url": url, "path": path, "json": json, "timeout": timeout})
        result = self.mapping[key]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def stub_session():
    return StubSession({})


@pytest.fixture
def rag_client(stub_session):
    return RagRestClient(base_url="http://rag.test/", timeout=5, session=stub_session)
