"""
Tool Executor.

Handles execution of tool calls with error handling and result processing.
Coordinates with ToolRegistry to route tool calls to their handlers.
"""

from __future__ import annotations

import logging

from ..domain.entities import ChannelContext, ToolCall, ToolResult
from ..exceptions import ToolError, UnknownToolError
from ..tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

FAILURE_TEMPLATE = (
    "The {tool} lookup failed because of a temporary problem. Apologise to the "
    "customer, do not guess the answer, and offer to escalate to a team member."
)
UNAVAILABLE_TEMPLATE = (
    "The tool {tool} is not available. Answer without it or offer to escalate "
    "to a team member."
)


class ToolExecutor:
    """Executes tool calls with error handling.

    Ensures that handler failures are turned into a tool result stating the
    lookup failed, so the loop always continues.

    Usage:
        executor = ToolExecutor(tool_registry, strict=False)

        result = await executor.execute_tool_call(tool_call, context)

    Architecture:
        - Delegates to ToolRegistry for actual execution
        - Catches handler exceptions and converts them to failure results
        - Unknown tools are an integration error: raised in strict mode,
          otherwise logged at ERROR and reported as unavailable
    """

    def __init__(self, tool_registry: ToolRegistry, strict: bool = False):
        """Initialize the tool executor.

        Args:
            tool_registry: Registry for tool dispatch
            strict: Re-raise UnknownToolError instead of injecting a result
        """
        self.tools = tool_registry
        self.strict = strict

    async def execute_tool_call(
        self,
        tool_call: ToolCall,
        context: ChannelContext,
    ) -> ToolResult:
        """Execute a tool call with error handling.

        Args:
            tool_call: Tool call to execute
            context: Channel context of the inbound message

        Returns:
            ToolResult (success, not-found or failure)

        Raises:
            UnknownToolError: Unknown tool name and strict mode is on
        """
        logger.info(f"Executing tool: {tool_call.name} for session {context.session_id}")

        try:
            result = await self.tools.execute_tool_call(tool_call, context)
            logger.debug(f"Tool {tool_call.name} result: {result.summary[:200]}")
            return result

        except UnknownToolError as e:
            if self.strict:
                raise
            logger.error(f"Model requested unregistered tool: {e.tool_name}")
            return ToolResult(
                tool_call_id=tool_call.id,
                tool_name=tool_call.name,
                success=False,
                found=False,
                summary=UNAVAILABLE_TEMPLATE.format(tool=tool_call.name),
            )

        except ToolError as e:
            logger.error(f"Tool execution failed: {tool_call.name}: {e}")
            return self._failure(tool_call)

        except Exception as e:
            logger.exception(f"Unexpected error dispatching {tool_call.name}: {e}")
            return self._failure(tool_call)

    def _failure(self, tool_call: ToolCall) -> ToolResult:
        return ToolResult(
            tool_call_id=tool_call.id,
            tool_name=tool_call.name,
            success=False,
            found=False,
            summary=FAILURE_TEMPLATE.format(tool=tool_call.name),
        )
