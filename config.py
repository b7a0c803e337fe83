from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass
class Settings:
    """Runtime configuration for the MCP server."""

    rag_base_url: str = "http://localhost:8000"
    request_timeout: float = 30
    host: str = "127.0.0.1"
    port: int = 8085
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        rag_base_url = os.getenv("RAG_BASE_URL", cls.rag_base_url)
        request_timeout = float(os.getenv("RAG_REQUEST_TIMEOUT", str(cls.request_timeout)))
        host = os.getenv("MCP_HOST", cls.host)
        port = int(os.getenv("MCP_PORT", str(cls.port)))
        log_level = os.getenv("MCP_LOG_LEVEL", cls.log_level).upper()
        return cls(
            rag_base_url=rag_base_url,
            request_timeout=request_timeout,
            host=host,
            port=port,
            log_level=log_level,
        )
