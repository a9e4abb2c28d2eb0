"""
Tests for the Tool Registry and Tool Executor.

These tests ensure:
1. Tool calls are routed to exactly the handler registered for the name
2. Reference prefixes are stripped and identity is auto-filled
3. Not-found, failure and unknown-tool outcomes become tool results
4. Results are redacted before they can reach the prompt
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.merchdesk.agent.domain.entities import (
    Attachment,
    Channel,
    ChannelContext,
    ToolCall,
    ToolOutput,
)
from src.merchdesk.agent.exceptions import (
    ConfigurationError,
    ToolError,
    ToolExecutionError,
    UnknownToolError,
)
from src.merchdesk.agent.orchestrator.tool_executor import ToolExecutor
from src.merchdesk.agent.tools import FunctionToolHandler, ToolRegistry, strip_reference_prefix
from src.merchdesk.agent.tools.catalog import (
    GET_CUSTOMER_ACCOUNT_INFO,
    GET_INVOICE_INFO,
    GET_ORDER_STATUS,
    GET_QUOTE_INFO,
    SEARCH_KNOWLEDGE_BASE,
)

from .fakes import RecordingHandler


def make_registry(**handlers):
    return ToolRegistry({name: FunctionToolHandler(h) for name, h in handlers.items()})


# ============================================
# Construction
# ============================================


class TestRegistryConstruction:
    """Test binding handlers to catalog tools."""

    def test_rejects_handler_for_unknown_tool(self):
        with pytest.raises(ConfigurationError) as exc_info:
            make_registry(not_in_catalog=RecordingHandler())
        assert "not_in_catalog" in exc_info.value.message

    def test_only_bound_tools_are_offered(self):
        registry = make_registry(
            **{SEARCH_KNOWLEDGE_BASE: RecordingHandler(), GET_ORDER_STATUS: RecordingHandler()}
        )
        names = [spec.name for spec in registry.get_tools()]
        # Catalog order, not registration order
        assert names == [GET_ORDER_STATUS, SEARCH_KNOWLEDGE_BASE]
        assert registry.has_tool(GET_ORDER_STATUS)
        assert not registry.has_tool(GET_QUOTE_INFO)


# ============================================
# Dispatch
# ============================================


class TestDispatch:
    """Test routing and argument preparation."""

    @pytest.mark.asyncio
    async def test_routes_to_named_handler_only(self, chat_context):
        order = RecordingHandler(result={"status": "Packed"})
        quote = RecordingHandler(result={"total": 100})
        registry = make_registry(**{GET_ORDER_STATUS: order, GET_QUOTE_INFO: quote})

        await registry.execute_tool_call(
            ToolCall(name=GET_ORDER_STATUS, arguments={"invoice_number": "Q100-ABCDE"}),
            chat_context,
        )

        assert len(order.calls) == 1
        assert quote.calls == []

    @pytest.mark.asyncio
    async def test_strips_invoice_prefix(self, chat_context):
        handler = RecordingHandler(result={"status": "Packed"})
        registry = make_registry(**{GET_ORDER_STATUS: handler})

        await registry.execute_tool_call(
            ToolCall(name=GET_ORDER_STATUS, arguments={"invoice_number": "INV-Q100-ABCDE"}),
            chat_context,
        )

        arguments, context = handler.calls[0]
        assert arguments == {"invoice_number": "Q100-ABCDE"}
        assert context is chat_context

    @pytest.mark.asyncio
    async def test_identity_auto_filled_from_phone(self, chat_context):
        """No quote number given: the customer's phone is supplied."""
        handler = RecordingHandler(result={"quote_number": "Q553-HFKTH"})
        registry = make_registry(**{GET_QUOTE_INFO: handler})

        await registry.execute_tool_call(ToolCall(name=GET_QUOTE_INFO, arguments={}), chat_context)

        arguments, _ = handler.calls[0]
        assert arguments == {"customer_contact": "27821234567"}

    @pytest.mark.asyncio
    async def test_identity_auto_filled_from_email(self, email_context):
        handler = RecordingHandler(result={"invoice_number": "Q553-HFKTH"})
        registry = make_registry(**{GET_INVOICE_INFO: handler})

        await registry.execute_tool_call(
            ToolCall(name=GET_INVOICE_INFO, arguments={"invoice_number": "", "customer_contact": " "}),
            email_context,
        )

        arguments, _ = handler.calls[0]
        # Blank optional arguments count as omitted
        assert arguments == {"customer_contact": "jane@example.com"}

    @pytest.mark.asyncio
    async def test_explicit_identity_not_overridden(self, chat_context):
        handler = RecordingHandler(result={"orders": []})
        registry = make_registry(**{GET_CUSTOMER_ACCOUNT_INFO: handler})

        await registry.execute_tool_call(
            ToolCall(name=GET_CUSTOMER_ACCOUNT_INFO, arguments={"identifier": "Q553-HFKTH"}),
            chat_context,
        )

        arguments, _ = handler.calls[0]
        assert arguments == {"identifier": "Q553-HFKTH"}

    @pytest.mark.asyncio
    async def test_identity_absent_when_channel_has_none(self):
        context = ChannelContext(
            channel=Channel.CHAT,
            session_id="ML-unknown",
            original_message="my quote please",
        )
        handler = RecordingHandler(result={"total": 1})
        registry = make_registry(**{GET_QUOTE_INFO: handler})

        await registry.execute_tool_call(ToolCall(name=GET_QUOTE_INFO, arguments={}), context)

        arguments, _ = handler.calls[0]
        assert arguments == {}

    @pytest.mark.asyncio
    async def test_not_found_result(self, chat_context):
        registry = make_registry(**{GET_ORDER_STATUS: RecordingHandler(result=None)})

        result = await registry.execute_tool_call(
            ToolCall(id="call_9", name=GET_ORDER_STATUS, arguments={"invoice_number": "Q404"}),
            chat_context,
        )

        assert result.success is True
        assert result.found is False
        assert result.tool_call_id == "call_9"
        assert "Q404" in result.summary

    @pytest.mark.asyncio
    async def test_unknown_tool_raises(self, chat_context):
        registry = make_registry(**{GET_ORDER_STATUS: RecordingHandler()})

        with pytest.raises(UnknownToolError) as exc_info:
            await registry.execute_tool_call(ToolCall(name=GET_QUOTE_INFO, arguments={}), chat_context)
        assert exc_info.value.tool_name == GET_QUOTE_INFO

    @pytest.mark.asyncio
    async def test_handler_error_wrapped(self, chat_context):
        registry = make_registry(
            **{GET_ORDER_STATUS: RecordingHandler(error=RuntimeError("database down"))}
        )

        with pytest.raises(ToolExecutionError) as exc_info:
            await registry.execute_tool_call(
                ToolCall(name=GET_ORDER_STATUS, arguments={"invoice_number": "Q1"}),
                chat_context,
            )
        assert exc_info.value.tool_name == GET_ORDER_STATUS
        assert isinstance(exc_info.value.cause, RuntimeError)


# ============================================
# Attachments and redaction
# ============================================


class TestResults:
    """Test what the registry hands back to the loop."""

    @pytest.mark.asyncio
    async def test_document_attachment_kept(self, chat_context):
        attachment = Attachment(url="https://files.example.com/q.pdf", caption="Quote Q553", id="Q553")
        registry = make_registry(
            **{GET_QUOTE_INFO: RecordingHandler(result=ToolOutput(data={"total": 10}, attachment=attachment))}
        )

        result = await registry.execute_tool_call(ToolCall(name=GET_QUOTE_INFO, arguments={}), chat_context)

        assert result.attachment == attachment
        assert "q.pdf" not in result.summary

    @pytest.mark.asyncio
    async def test_attachment_dropped_for_non_document_tool(self, chat_context):
        attachment = Attachment(url="https://files.example.com/x.pdf", caption="X", id="X")
        registry = make_registry(
            **{GET_ORDER_STATUS: RecordingHandler(result=ToolOutput(data={"status": "ok"}, attachment=attachment))}
        )

        result = await registry.execute_tool_call(
            ToolCall(name=GET_ORDER_STATUS, arguments={"invoice_number": "Q1"}),
            chat_context,
        )

        assert result.attachment is None

    @pytest.mark.asyncio
    async def test_non_shareable_fields_never_in_summary(self, chat_context):
        data = {
            "quote_number": "Q553-HFKTH",
            "total": 1150.0,
            "items": [{"description": "Mug", "base_price": 42.5, "beforeVAT": 1000.0}],
        }
        registry = make_registry(**{GET_QUOTE_INFO: RecordingHandler(result=data)})

        result = await registry.execute_tool_call(ToolCall(name=GET_QUOTE_INFO, arguments={}), chat_context)

        assert "base_price" not in result.summary
        assert "beforeVAT" not in result.summary
        assert "42.5" not in result.summary
        assert "1150.0" in result.summary
        assert result.redaction_count == 2


class TestStripReferencePrefix:
    """Test identifier normalisation."""

    def test_strips_prefix(self):
        assert strip_reference_prefix("INV-Q100-ABCDE", "INV-") == "Q100-ABCDE"

    def test_case_insensitive(self):
        assert strip_reference_prefix("inv-Q100-ABCDE", "INV-") == "Q100-ABCDE"

    def test_no_prefix_unchanged(self):
        assert strip_reference_prefix("Q100-ABCDE", "INV-") == "Q100-ABCDE"

    def test_only_leading_prefix(self):
        assert strip_reference_prefix("Q100-INV-X", "INV-") == "Q100-INV-X"


# ============================================
# Executor failure containment
# ============================================


class TestToolExecutor:
    """Test ToolExecutor turning errors into tool results."""

    @pytest.mark.asyncio
    async def test_failure_becomes_result(self, chat_context):
        registry = make_registry(**{GET_ORDER_STATUS: RecordingHandler(error=RuntimeError("boom"))})
        executor = ToolExecutor(registry)

        result = await executor.execute_tool_call(
            ToolCall(id="call_2", name=GET_ORDER_STATUS, arguments={"invoice_number": "Q1"}),
            chat_context,
        )

        assert result.success is False
        assert result.tool_call_id == "call_2"
        assert "failed" in result.summary
        assert "boom" not in result.summary

    @pytest.mark.asyncio
    async def test_unknown_tool_reported_unavailable(self, chat_context):
        executor = ToolExecutor(make_registry(**{GET_ORDER_STATUS: RecordingHandler()}))

        result = await executor.execute_tool_call(ToolCall(name="delete_everything", arguments={}), chat_context)

        assert result.success is False
        assert "not available" in result.summary

    @pytest.mark.asyncio
    async def test_unknown_tool_raises_in_strict_mode(self, chat_context):
        executor = ToolExecutor(make_registry(**{GET_ORDER_STATUS: RecordingHandler()}), strict=True)

        with pytest.raises(UnknownToolError):
            await executor.execute_tool_call(ToolCall(name="delete_everything", arguments={}), chat_context)

    @pytest.mark.asyncio
    async def test_tool_error_becomes_result(self, chat_context):
        registry = MagicMock()
        registry.execute_tool_call = AsyncMock(
            side_effect=ToolExecutionError("Rate limited by tool service", tool_name=GET_ORDER_STATUS)
        )
        executor = ToolExecutor(registry, strict=True)

        result = await executor.execute_tool_call(ToolCall(name=GET_ORDER_STATUS, arguments={}), chat_context)

        assert isinstance(registry.execute_tool_call.side_effect, ToolError)
        assert result.success is False
        assert "failed" in result.summary

    @pytest.mark.asyncio
    async def test_unexpected_dispatch_error_becomes_result(self, chat_context):
        registry = MagicMock()
        registry.execute_tool_call = AsyncMock(side_effect=KeyError("invoice_number"))
        executor = ToolExecutor(registry)

        result = await executor.execute_tool_call(ToolCall(name=GET_ORDER_STATUS, arguments={}), chat_context)

        assert result.success is False
        assert result.found is False
