
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

DEFAULT_TIMEOUT = 30

logger = logging.getLogger(__name__)


@dataclass
class RagServiceError(Exception):
    message: str
    status_code: Optional[int] = None
    status_text: Optional[str] = None
    details: Optional[Any] = None

    @property
    def is_transport(self) -> bool:
        return self.status_code is None

    def __str__(self) -> str:
        base = self.message
        if self.status_code is not None:
            base += f" (status={self.status_code}"
            if self.status_text:
                base += f" {self.status_text}"
            base += ")"
        if self.details is not None:
            base += f": {self.details}"
        return base


def _drop_unset(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in fields.items() if value is not None}


class RagRestClient:
    """Thin REST helper for the RAG service's query and upload endpoints."""

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or os.getenv("RAG_BASE_URL") or "http://localhost:8000").rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def _response_details(self, resp: requests.Response) -> Any:
        if resp.content:
            try:
                return resp.json()
            except ValueError:
                return resp.text
        return None

    def _post(self, path: str, *, context: str, json: Dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self._session.request(
                "POST",
                url,
                json=json,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("RAG %s request to %s failed: %s", context, url, exc)
            raise RagServiceError(f"RAG {context} request failed: {exc}") from exc

        if resp.status_code >= 400:
            logger.warning("RAG %s returned HTTP %s", context, resp.status_code)
            raise RagServiceError(
                f"RAG {context} failed",
                status_code=resp.status_code,
                status_text=resp.reason,
                details=self._response_details(resp),
            )
        return self._response_details(resp)

    # ------------------------------------------------------------------
    # Public API wrappers
    # ------------------------------------------------------------------
    def query(
        self,
        collection_name: str,
        query: str,
        *,
        limit: Optional[int] = None,
        embedding_model: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> Any:
        # timeout is a hint for the service; the HTTP call keeps self.timeout
        body = _drop_unset(
            {
                "collection_name": collection_name,
                "query": query,
                "limit": limit,
                "embedding_model": embedding_model,
                "timeout": timeout,
            }
        )
        return self._post("/rag/query", context="query", json=body)

    def upload_documents(
        self,
        collection_name: str,
        texts: List[str],
        *,
        metadata: Optional[List[Dict[str, Any]]] = None,
        source: Optional[str] = None,
        embedding_model: Optional[str] = None,
    ) -> Any:
        body = _drop_unset(
            {
                "collection_name": collection_name,
                "texts": texts,
                "metadata": metadata,
                "source": source,
                "embedding_model": embedding_model,
            }
        )
        return self._post("/rag/documents", context="document upload", json=body)
