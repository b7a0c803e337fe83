from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from fastmcp import FastMCP
from fastmcp.tools import Tool
from fastmcp.tools.tool import ToolResult
from pydantic import Field

from config import Settings
from resources import MIME_TYPE, URI_PREFIX, TaskCatalog, task_uri
from rest_client import RagRestClient
from tools import ToolDispatcher, ToolRegistry, ToolSpec

SERVER_NAME = "iggy-mcp-server"
SERVER_VERSION = "0.1.0"

logger = logging.getLogger(__name__)


class DispatchedTool(Tool):
    """FastMCP tool whose schema comes from a ToolSpec and whose calls go to the dispatcher."""

    dispatcher: Any = Field(exclude=True, repr=False)

    @classmethod
    def from_spec(cls, spec: ToolSpec, dispatcher: ToolDispatcher) -> "DispatchedTool":
        return cls(
            name=spec.name,
            description=spec.description,
            parameters=spec.input_schema,
            dispatcher=dispatcher,
        )

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        content = await self.dispatcher.invoke(self.name, arguments)
        return ToolResult(content=content)


def create_mcp(
    settings: Optional[Settings] = None,
    rest_client: Optional[RagRestClient] = None,
    catalog: Optional[TaskCatalog] = None,
) -> FastMCP:
    """Create the FastMCP server exposing task resources and the tool table.

    Resources, tools and routes are all registered here, once; the server
    never registers anything after construction.
    """
    cfg = settings or Settings.from_env()
    client = rest_client or RagRestClient(base_url=cfg.rag_base_url, timeout=cfg.request_timeout)
    tasks = catalog or TaskCatalog()
    registry = ToolRegistry()
    dispatcher = ToolDispatcher(registry, client)

    mcp = FastMCP(name=SERVER_NAME, version=SERVER_VERSION)

    # ---------------------------- Tools ---------------------------------

    for spec in registry:
        mcp.add_tool(DispatchedTool.from_spec(spec, dispatcher))

    # -------------------------- Resources -------------------------------

    def _reader(uri: str) -> Callable[[], str]:
        def read() -> str:
            return tasks.read(uri)

        return read

    for task in tasks:
        meta = task.as_metadata()
        mcp.resource(
            meta["uri"],
            name=meta["name"],
            description=meta["description"],
            mime_type=MIME_TYPE,
        )(_reader(meta["uri"]))

    # Concrete resources win; anything else shaped like a task URI lands here.
    @mcp.resource(URI_PREFIX + "{task_id*}", mime_type=MIME_TYPE)
    def read_task(task_id: str) -> str:
        return tasks.read(task_uri(task_id))

    # --------------------------- Debug ----------------------------------

    @mcp.custom_route("/debug/tools", methods=["GET"])
    async def debug_tools(request):  # type: ignore[no-redef]
        from starlette.responses import JSONResponse

        return JSONResponse({"tools": registry.names()})

    logger.debug("Registered %d tools and %d task resources", len(registry.names()), len(tasks))
    return mcp
