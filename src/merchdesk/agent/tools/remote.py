"""
Tool handlers backed by the order-management tool service.

The record lookups (orders, quotes, invoices, accounts, delivery, knowledge
base) live behind an HTTP service. ``RemoteToolHandler`` binds one catalog
tool to that service; ``FunctionToolHandler`` wraps an in-process coroutine
for development and tests.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from ..domain.entities import Attachment, ChannelContext, ToolOutput
from ..domain.ports import IToolHandler
from ..exceptions import ToolExecutionError

logger = logging.getLogger(__name__)


@dataclass
class RemoteToolServiceConfig:
    """Configuration for the tool service client."""

    # Server connection
    base_url: str = "http://localhost:8080"
    timeout: float = 20.0
    max_retries: int = 3

    # Authentication (service-to-service)
    service_api_key: Optional[str] = None


class RemoteToolService:
    """Client for the order-management tool service.

    Each tool is exposed as ``POST {base_url}/tools/{name}`` taking the tool
    arguments plus the channel context, and answering with
    ``{"found": bool, "data": ..., "attachment": {url, caption, id} | null}``.
    A 404 also means "no matching record".

    Usage:
        config = RemoteToolServiceConfig(base_url="http://orders:8080")
        service = RemoteToolService(config)

        data = await service.call_tool("get_order_status", {"invoice_number": "Q100-ABCDE"}, context)
    """

    def __init__(self, config: RemoteToolServiceConfig):
        """Initialize the client.

        Args:
            config: Client configuration
        """
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the client session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def _get_headers(self, context: Optional[ChannelContext] = None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.config.service_api_key:
            headers["X-Service-Key"] = self.config.service_api_key
        if context:
            headers["X-Session-ID"] = context.session_id
            headers["X-Channel"] = context.channel.value
        return headers

    @staticmethod
    def _context_payload(context: ChannelContext) -> dict[str, Any]:
        return {
            "channel": context.channel.value,
            "session_id": context.session_id,
            "phone": context.phone,
            "email": context.email,
            "customer_name": context.customer_name,
            "original_message": context.original_message,
        }

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any],
        context: ChannelContext,
    ) -> Optional[ToolOutput]:
        """Execute a tool on the service.

        Args:
            name: Tool name
            arguments: Prepared tool arguments
            context: Channel context of the inbound message

        Returns:
            ToolOutput, or None when no matching record exists

        Raises:
            ToolExecutionError: On execution or connection failure
        """
        session = await self._get_session()
        url = f"{self.config.base_url.rstrip('/')}/tools/{name}"
        payload = {"arguments": arguments, "context": self._context_payload(context)}

        for attempt in range(self.config.max_retries):
            try:
                async with session.post(
                    url,
                    headers=self._get_headers(context),
                    json=payload,
                ) as response:
                    if response.status == 200:
                        data = await response.json()
                        return _parse_tool_response(data)

                    elif response.status == 404:
                        return None

                    elif response.status == 429:
                        # Rate limited - retry with backoff
                        if attempt < self.config.max_retries - 1:
                            wait_time = 2 ** attempt
                            logger.warning(f"Rate limited, retrying in {wait_time}s")
                            await asyncio.sleep(wait_time)
                            continue

                        raise ToolExecutionError("Rate limited by tool service", tool_name=name)

                    else:
                        text = await response.text()
                        raise ToolExecutionError(
                            f"Tool execution failed: {response.status} - {text}",
                            tool_name=name,
                            details={"status": response.status},
                        )

            except aiohttp.ClientError as e:
                if attempt < self.config.max_retries - 1:
                    wait_time = 2 ** attempt
                    logger.warning(f"Connection error, retrying in {wait_time}s: {e}")
                    await asyncio.sleep(wait_time)
                    continue

                raise ToolExecutionError(
                    f"Failed to connect to tool service: {e}",
                    tool_name=name,
                    cause=e,
                )

        raise ToolExecutionError(
            f"Tool execution failed after {self.config.max_retries} retries",
            tool_name=name,
        )


def _parse_tool_response(data: Any) -> Optional[ToolOutput]:
    if not isinstance(data, dict):
        return ToolOutput(data=data)

    if data.get("found") is False:
        return None

    attachment = None
    raw_attachment = data.get("attachment")
    if isinstance(raw_attachment, dict) and raw_attachment.get("url"):
        attachment = Attachment(
            url=raw_attachment["url"],
            caption=raw_attachment.get("caption") or "",
            id=str(raw_attachment.get("id") or raw_attachment["url"]),
        )

    return ToolOutput(data=data.get("data"), attachment=attachment)


class RemoteToolHandler(IToolHandler):
    """Serves one catalog tool from the remote tool service."""

    def __init__(self, service: RemoteToolService, tool_name: str):
        self.service = service
        self.tool_name = tool_name

    async def handle(self, arguments: dict[str, Any], context: ChannelContext) -> Any:
        return await self.service.call_tool(self.tool_name, arguments, context)


class FunctionToolHandler(IToolHandler):
    """In-process handler wrapping an async callable.

    Used when lookups run in the same process (development, tests).

    Usage:
        async def order_status(arguments, context):
            return {"status": "Out for delivery"}

        handler = FunctionToolHandler(order_status)
    """

    def __init__(self, func: Callable[[dict[str, Any], ChannelContext], Awaitable[Any]]):
        self.func = func

    async def handle(self, arguments: dict[str, Any], context: ChannelContext) -> Any:
        return await self.func(arguments, context)


def build_remote_handlers(
    service: RemoteToolService,
    tool_names: list[str],
) -> dict[str, IToolHandler]:
    """Bind each named tool to the remote service."""
    return {name: RemoteToolHandler(service, name) for name in tool_names}
