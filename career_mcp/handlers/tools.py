"""tools/list and tools/call handlers."""

from typing import Any, Dict

from .pagination import page_result
from ..protocol.errors import MethodNotFoundError
from ..protocol.handler import BaseHandler
from ..protocol.messages import (
    MCPMethod,
    MCPNotificationMethod,
    PaginatedParams,
    ProgressParams,
    RequestId,
    ToolCallParams,
    make_notification,
)
from ..protocol.session import RequestContext
from ..tools.base import ToolRegistry


class ToolsListHandler(BaseHandler):
    method = MCPMethod.TOOLS_LIST
    params_model = PaginatedParams

    def __init__(self, tools: ToolRegistry, page_size: int = 50):
        super().__init__()
        self.tools = tools
        self.page_size = page_size

    async def execute(self, params: PaginatedParams, context: RequestContext) -> Dict[str, Any]:
        definitions = [tool.model_dump() for tool in self.tools.list_tools()]
        self.logger.debug("Returning available tools", tool_count=len(definitions))
        return page_result("tools", definitions, params.cursor, self.page_size)


class ToolsCallHandler(BaseHandler):
    """Runs one tool; progress is reported when the caller passes a token."""

    method = MCPMethod.TOOLS_CALL
    params_model = ToolCallParams

    def __init__(self, tools: ToolRegistry, timeout: float = 30.0):
        super().__init__()
        self.tools = tools
        self.timeout = timeout

    async def _progress(self, context: RequestContext, token: RequestId, progress: float) -> None:
        params = ProgressParams(progressToken=token, progress=progress, total=1)
        await context.send_notification(
            make_notification(MCPNotificationMethod.PROGRESS, params.model_dump(exclude_none=True))
        )

    async def execute(self, params: ToolCallParams, context: RequestContext) -> Dict[str, Any]:
        tool = self.tools.get_tool(params.name)
        if tool is None:
            raise MethodNotFoundError(f"Unknown tool: {params.name}")

        self.logger.info("Executing tool", tool=params.name, transport_id=context.transport_id)

        token = params.progressToken
        if token is not None:
            await self._progress(context, token, 0)
        try:
            result = await tool.call(params.arguments, timeout=self.timeout)
        finally:
            if token is not None:
                await self._progress(context, token, 1)

        return result.model_dump()
