"""
Tests for the remote tool service client.

HTTP is mocked at the aiohttp session level.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from src.merchdesk.agent.domain.entities import Attachment, ToolOutput
from src.merchdesk.agent.exceptions import ToolExecutionError
from src.merchdesk.agent.tools import (
    RemoteToolHandler,
    RemoteToolService,
    RemoteToolServiceConfig,
    build_remote_handlers,
)
from src.merchdesk.agent.tools.catalog import GET_ORDER_STATUS, GET_QUOTE_INFO


class AsyncContextManager:
    """Helper class to create async context managers for mocking."""

    def __init__(self, return_value=None, error=None):
        self.return_value = return_value
        self.error = error

    async def __aenter__(self):
        if self.error is not None:
            raise self.error
        return self.return_value

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


def make_response(status=200, body=None, text=""):
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=body)
    response.text = AsyncMock(return_value=text)
    return response


def make_service(*responses, max_retries=3):
    service = RemoteToolService(
        RemoteToolServiceConfig(base_url="http://orders.test/", max_retries=max_retries, service_api_key="svc")
    )
    session = MagicMock()
    session.closed = False
    session.post = MagicMock(side_effect=list(responses))
    service._session = session
    return service, session


class TestCallTool:
    """Test request and response handling."""

    @pytest.mark.asyncio
    async def test_found_record(self, chat_context):
        service, session = make_service(
            AsyncContextManager(make_response(body={"found": True, "data": {"status": "Out for delivery"}}))
        )

        output = await service.call_tool(GET_ORDER_STATUS, {"invoice_number": "Q100-ABCDE"}, chat_context)

        assert output == ToolOutput(data={"status": "Out for delivery"})
        call = session.post.call_args
        assert call.args[0] == "http://orders.test/tools/get_order_status"
        assert call.kwargs["json"]["arguments"] == {"invoice_number": "Q100-ABCDE"}
        assert call.kwargs["json"]["context"]["phone"] == "27821234567"
        assert call.kwargs["headers"]["X-Service-Key"] == "svc"

    @pytest.mark.asyncio
    async def test_attachment_parsed(self, chat_context):
        body = {
            "found": True,
            "data": {"quote_number": "Q553-HFKTH"},
            "attachment": {"url": "https://files.example.com/q.pdf", "caption": "Quote Q553-HFKTH", "id": "Q553-HFKTH"},
        }
        service, _ = make_service(AsyncContextManager(make_response(body=body)))

        output = await service.call_tool(GET_QUOTE_INFO, {}, chat_context)

        assert output.attachment == Attachment(
            url="https://files.example.com/q.pdf", caption="Quote Q553-HFKTH", id="Q553-HFKTH"
        )

    @pytest.mark.asyncio
    async def test_not_found_flag(self, chat_context):
        service, _ = make_service(AsyncContextManager(make_response(body={"found": False})))
        assert await service.call_tool(GET_ORDER_STATUS, {"invoice_number": "Q0"}, chat_context) is None

    @pytest.mark.asyncio
    async def test_404_is_not_found(self, chat_context):
        service, _ = make_service(AsyncContextManager(make_response(status=404)))
        assert await service.call_tool(GET_ORDER_STATUS, {"invoice_number": "Q0"}, chat_context) is None

    @pytest.mark.asyncio
    async def test_server_error_raises(self, chat_context):
        service, _ = make_service(AsyncContextManager(make_response(status=500, text="boom")))

        with pytest.raises(ToolExecutionError) as exc_info:
            await service.call_tool(GET_ORDER_STATUS, {"invoice_number": "Q1"}, chat_context)
        assert exc_info.value.details["status"] == 500

    @pytest.mark.asyncio
    async def test_connection_error_retried(self, chat_context):
        service, session = make_service(
            AsyncContextManager(error=aiohttp.ClientConnectionError("reset")),
            AsyncContextManager(make_response(body={"found": True, "data": "ok"})),
        )

        with patch("src.merchdesk.agent.tools.remote.asyncio.sleep", new=AsyncMock()):
            output = await service.call_tool(GET_ORDER_STATUS, {"invoice_number": "Q1"}, chat_context)

        assert output.data == "ok"
        assert session.post.call_count == 2

    @pytest.mark.asyncio
    async def test_rate_limit_exhausted(self, chat_context):
        service, _ = make_service(
            AsyncContextManager(make_response(status=429)),
            AsyncContextManager(make_response(status=429)),
            max_retries=2,
        )

        with patch("src.merchdesk.agent.tools.remote.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(ToolExecutionError):
                await service.call_tool(GET_ORDER_STATUS, {"invoice_number": "Q1"}, chat_context)


class TestRemoteHandlers:
    """Test handler binding."""

    @pytest.mark.asyncio
    async def test_handler_calls_its_tool(self, chat_context):
        service = MagicMock()
        service.call_tool = AsyncMock(return_value=None)
        handler = RemoteToolHandler(service, GET_ORDER_STATUS)

        await handler.handle({"invoice_number": "Q1"}, chat_context)

        service.call_tool.assert_awaited_once_with(GET_ORDER_STATUS, {"invoice_number": "Q1"}, chat_context)

    def test_build_remote_handlers(self):
        handlers = build_remote_handlers(MagicMock(), [GET_ORDER_STATUS, GET_QUOTE_INFO])
        assert set(handlers) == {GET_ORDER_STATUS, GET_QUOTE_INFO}
        assert handlers[GET_QUOTE_INFO].tool_name == GET_QUOTE_INFO
