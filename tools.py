"""Tool table and dispatcher for the MCP server.

Each tool is declared once in ``TOOL_SPECS``: the descriptor advertised by
``tools/list`` and the handler reached by ``tools/call`` live in the same
entry.  Arguments arrive as an untyped mapping and are validated into the
tool's pydantic model before the handler sees them.
"""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Type

import anyio
from fastmcp.exceptions import ToolError
from mcp.types import TextContent
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from rest_client import RagRestClient, RagServiceError

logger = logging.getLogger(__name__)


# ---------------------------- Errors ---------------------------------


class ToolDispatchError(ToolError):
    """Base class for failures surfaced as a failed tool call."""


class UnknownToolError(ToolDispatchError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class InvalidArgumentsError(ToolDispatchError):
    def __init__(self, tool: str, fields: Sequence[str], details: Optional[str] = None) -> None:
        message = f"Invalid arguments for {tool}: {', '.join(fields)}"
        if details:
            message += f" ({details})"
        super().__init__(message)
        self.tool = tool
        self.fields = list(fields)


class UpstreamFailureError(ToolDispatchError):
    def __init__(self, tool: str, error: RagServiceError) -> None:
        super().__init__(f"{tool} failed: {error}")
        self.tool = tool
        self.status_code = error.status_code
        self.status_text = error.status_text


# ------------------------- Argument models ---------------------------


class _Arguments(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True, frozen=True)


class CreateNoteArgs(_Arguments):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)


class MemoryPayload(_Arguments):
    text: str
    tag: str
    timestamp: str = Field(strict=True)

    @field_validator("timestamp")
    @classmethod
    def _iso8601(cls, value: str) -> str:
        # fromisoformat before 3.11 rejects a trailing Z
        candidate = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
        try:
            datetime.fromisoformat(candidate)
        except ValueError:
            raise ValueError("expected an ISO-8601 date-time string") from None
        return value


class MemoryWriteArgs(_Arguments):
    source: str
    task_id: str
    payload: MemoryPayload


class ListToolsArgs(_Arguments):
    pass


class RagQueryArgs(_Arguments):
    collection_name: str
    query: str
    limit: Optional[int] = None
    embedding_model: Optional[str] = None
    timeout: Optional[int] = None


class UploadDocumentsArgs(_Arguments):
    collection_name: str
    texts: List[str]
    metadata: Optional[List[Dict[str, Any]]] = None
    source: Optional[str] = None
    embedding_model: Optional[str] = None

    @field_validator("metadata")
    @classmethod
    def _metadata_matches_texts(cls, value, info: ValidationInfo):
        texts = info.data.get("texts")
        if value is not None and texts is not None and len(value) != len(texts):
            raise ValueError(f"expected {len(texts)} metadata entries, got {len(value)}")
        return value


def _offending_fields(exc: ValidationError) -> List[str]:
    fields: List[str] = []
    for error in exc.errors():
        name = ".".join(str(part) for part in error["loc"]) or "arguments"
        if name not in fields:
            fields.append(name)
    return fields


# ----------------------------- Handlers ------------------------------


def _create_note(args: CreateNoteArgs, dispatcher: "ToolDispatcher") -> str:
    # Acknowledged only; notes are not stored.
    logger.info("Created note: %s", args.title)
    return f"Created note: {args.title}"


def _memory_write(args: MemoryWriteArgs, dispatcher: "ToolDispatcher") -> str:
    logger.info(
        "Received memory chunk from %s for task %s: %s",
        args.source,
        args.task_id,
        args.payload.text,
    )
    return f"Processed memory chunk from {args.source} for task {args.task_id}"


def _list_tools(args: ListToolsArgs, dispatcher: "ToolDispatcher") -> str:
    return json.dumps(dispatcher.registry.names(), indent=2)


async def _rag_query(args: RagQueryArgs, dispatcher: "ToolDispatcher") -> str:
    def call() -> Any:
        return dispatcher.client.query(
            args.collection_name,
            args.query,
            limit=args.limit,
            embedding_model=args.embedding_model,
            timeout=args.timeout,
        )

    result = await anyio.to_thread.run_sync(call)
    return json.dumps(result, indent=2)


async def _upload_documents(args: UploadDocumentsArgs, dispatcher: "ToolDispatcher") -> str:
    def call() -> Any:
        return dispatcher.client.upload_documents(
            args.collection_name,
            args.texts,
            metadata=args.metadata,
            source=args.source,
            embedding_model=args.embedding_model,
        )

    result = await anyio.to_thread.run_sync(call)
    return json.dumps(result, indent=2)


# ------------------------------ Table --------------------------------


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_schema: Dict[str, Any]
    arguments: Type[BaseModel]
    handler: Callable[..., Any]

    def as_metadata(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    def parse(self, arguments: Optional[Mapping[str, Any]]) -> BaseModel:
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, Mapping):
            raise InvalidArgumentsError(self.name, ["arguments"], "expected an object")
        try:
            return self.arguments.model_validate(dict(arguments))
        except ValidationError as exc:
            raise InvalidArgumentsError(self.name, _offending_fields(exc)) from exc


TOOL_SPECS = (
    ToolSpec(
        name="create_note",
        description="Create a new note",
        input_schema={
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "Title of the note"},
                "content": {"type": "string", "description": "Text content of the note"},
            },
            "required": ["title", "content"],
        },
        arguments=CreateNoteArgs,
        handler=_create_note,
    ),
    ToolSpec(
        name="memory_write",
        description="Write memory chunks to Halcyon",
        input_schema={
            "type": "object",
            "properties": {
                "source": {"type": "string", "description": "Source identifier"},
                "task_id": {"type": "string", "description": "Task identifier"},
                "payload": {
                    "type": "object",
                    "properties": {
                        "text": {"type": "string", "description": "Text content of the memory chunk"},
                        "tag": {"type": "string", "description": "Tag for the memory chunk"},
                        "timestamp": {
                            "type": "string",
                            "format": "date-time",
                            "description": "Timestamp of the memory chunk",
                        },
                    },
                    "required": ["text", "tag", "timestamp"],
                },
            },
            "required": ["source", "task_id", "payload"],
        },
        arguments=MemoryWriteArgs,
        handler=_memory_write,
    ),
    ToolSpec(
        name="list_tools",
        description="List available tools",
        input_schema={"type": "object", "properties": {}},
        arguments=ListToolsArgs,
        handler=_list_tools,
    ),
    ToolSpec(
        name="rag_query",
        description="Query the RAG system",
        input_schema={
            "type": "object",
            "properties": {
                "collection_name": {"type": "string", "description": "Name of the collection to query"},
                "query": {"type": "string", "description": "Query text"},
                "limit": {"type": "integer", "description": "Maximum number of results to return"},
                "embedding_model": {"type": "string", "description": "Embedding model to use"},
                "timeout": {"type": "integer", "description": "Timeout in seconds"},
            },
            "required": ["collection_name", "query"],
        },
        arguments=RagQueryArgs,
        handler=_rag_query,
    ),
    ToolSpec(
        name="upload_documents",
        description="Upload documents to the RAG system",
        input_schema={
            "type": "object",
            "properties": {
                "collection_name": {"type": "string", "description": "Name of the collection to upload to"},
                "texts": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "List of documents to upload",
                },
                "metadata": {
                    "type": "array",
                    "items": {"type": "object"},
                    "description": "Optional metadata for the documents",
                },
                "source": {"type": "string", "description": "Optional source information for the documents"},
                "embedding_model": {"type": "string", "description": "Embedding model to use"},
            },
            "required": ["collection_name", "texts"],
        },
        arguments=UploadDocumentsArgs,
        handler=_upload_documents,
    ),
)


class ToolRegistry:
    def __init__(self, specs: Sequence[ToolSpec] = TOOL_SPECS) -> None:
        self._specs: Dict[str, ToolSpec] = {}
        for spec in specs:
            self._register(spec)

    def _register(self, spec: ToolSpec) -> None:
        if spec.name in self._specs:
            raise ValueError(f"duplicate tool name: {spec.name}")
        self._specs[spec.name] = spec

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._specs.values())

    def names(self) -> List[str]:
        return list(self._specs)

    def list_tools(self) -> List[Dict[str, Any]]:
        return [spec.as_metadata() for spec in self._specs.values()]

    def get(self, name: str) -> ToolSpec:
        spec = self._specs.get(name)
        if spec is None:
            raise UnknownToolError(name)
        return spec


class ToolDispatcher:
    """Routes a tool call by name, validates its arguments and shapes the result."""

    def __init__(self, registry: ToolRegistry, client: RagRestClient) -> None:
        self.registry = registry
        self.client = client

    async def invoke(self, name: str, arguments: Optional[Mapping[str, Any]]) -> List[TextContent]:
        try:
            spec = self.registry.get(name)
            args = spec.parse(arguments)
        except ToolDispatchError as exc:
            logger.warning("Rejected call to %r: %s", name, exc)
            raise

        try:
            result = spec.handler(args, self)
            if inspect.isawaitable(result):
                result = await result
        except RagServiceError as exc:
            raise UpstreamFailureError(name, exc) from exc
        return [TextContent(type="text", text=result)]
