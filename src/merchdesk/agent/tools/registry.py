"""
Tool Registry.

Binds each catalog tool name to exactly one handler and routes tool calls
proposed by the model to it. Handles identifier normalisation, identity
auto-fill from the channel context, and central redaction of results.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Mapping, Optional, Sequence

from ..domain.entities import ChannelContext, ToolCall, ToolOutput, ToolResult, ToolSpec
from ..domain.ports import IToolHandler
from ..exceptions import ConfigurationError, ToolExecutionError, UnknownToolError
from .catalog import get_agent_tools
from .redaction import ResultRedactor

logger = logging.getLogger(__name__)

NOT_FOUND_TEMPLATE = (
    "No matching record was found for {tool} with {arguments}. "
    "Ask the customer to double-check the reference they provided."
)


class ToolRegistry:
    """Closed table mapping tool name to its handler.

    Usage:
        registry = ToolRegistry({
            "get_order_status": RemoteToolHandler(service, "get_order_status"),
        })

        # Tools to offer the model
        tools = registry.get_tools()

        # Execute a tool call
        result = await registry.execute_tool_call(tool_call, context)

    Architecture:
        - The catalog is the source of tool specs; handlers are bound by name
        - Only catalog tools that have a handler are offered to the model
        - Handler output is redacted here, never in the prompt
    """

    def __init__(
        self,
        handlers: Mapping[str, IToolHandler],
        catalog: Optional[Sequence[ToolSpec]] = None,
        redactor: Optional[ResultRedactor] = None,
    ):
        """Initialize the tool registry.

        Args:
            handlers: Mapping of tool name to handler
            catalog: Tool specs (defaults to the agent tool catalog)
            redactor: Result redactor (defaults to ResultRedactor())

        Raises:
            ConfigurationError: A handler is bound to a name not in the catalog
        """
        self.catalog = tuple(catalog) if catalog is not None else get_agent_tools()
        self._specs = {spec.name: spec for spec in self.catalog}

        unknown = sorted(name for name in handlers if name not in self._specs)
        if unknown:
            raise ConfigurationError(
                f"Handlers registered for tools not in the catalog: {', '.join(unknown)}",
                details={"tools": unknown},
            )

        self._handlers: dict[str, IToolHandler] = dict(handlers)
        self.redactor = redactor or ResultRedactor()

        missing = [spec.name for spec in self.catalog if spec.name not in self._handlers]
        if missing:
            logger.warning(f"Tools without handlers will not be offered: {missing}")
        logger.info(f"Tool registry loaded {len(self._handlers)} tools")

    def get_tools(self) -> list[ToolSpec]:
        """Get the tools offered to the model, in catalog order."""
        return [spec for spec in self.catalog if spec.name in self._handlers]

    def has_tool(self, name: str) -> bool:
        return name in self._handlers

    def get_tool_spec(self, name: str) -> Optional[ToolSpec]:
        return self._specs.get(name)

    def prepare_arguments(
        self,
        spec: ToolSpec,
        arguments: Mapping[str, Any],
        context: ChannelContext,
    ) -> dict[str, Any]:
        """Normalise model-supplied arguments before dispatch.

        - Blank optional string arguments are treated as omitted
        - Reference prefixes (e.g. ``INV-``) are stripped
        - The identity parameter is filled from the channel identity

        Args:
            spec: Tool spec being invoked
            arguments: Raw arguments from the model
            context: Channel context of the inbound message

        Returns:
            New argument dict
        """
        prepared: dict[str, Any] = {}
        for key, value in (arguments or {}).items():
            if isinstance(value, str):
                value = value.strip()
                if not value and key not in spec.required_params:
                    continue
            prepared[key] = value

        for param, prefix in spec.prefixed_params:
            value = prepared.get(param)
            if isinstance(value, str):
                prepared[param] = strip_reference_prefix(value, prefix)

        if spec.identity_param and not prepared.get(spec.identity_param):
            identity = context.identity
            if identity:
                prepared[spec.identity_param] = identity
                logger.debug(f"Auto-filled {spec.identity_param} for {spec.name} from channel identity")

        return prepared

    async def execute_tool_call(
        self,
        tool_call: ToolCall,
        context: ChannelContext,
    ) -> ToolResult:
        """Resolve a tool call to its handler and run it.

        Args:
            tool_call: Tool call from the model
            context: Channel context of the inbound message

        Returns:
            ToolResult with the redacted summary and any candidate attachment

        Raises:
            UnknownToolError: No handler is registered for the tool name
            ToolExecutionError: The handler raised
        """
        handler = self._handlers.get(tool_call.name)
        spec = self._specs.get(tool_call.name)
        if handler is None or spec is None:
            raise UnknownToolError(tool_call.name)

        arguments = self.prepare_arguments(spec, tool_call.arguments, context)
        tool_call.arguments = arguments
        logger.debug(f"Executing tool: {tool_call.name} with {arguments}")

        start = time.monotonic()
        try:
            raw = await handler.handle(arguments, context)
        except ToolExecutionError:
            raise
        except Exception as e:
            raise ToolExecutionError(str(e) or e.__class__.__name__, tool_call.name, cause=e) from e
        latency_ms = int((time.monotonic() - start) * 1000)

        if raw is None:
            logger.info(f"Tool {tool_call.name} found no matching record")
            return ToolResult(
                tool_call_id=tool_call.id,
                tool_name=tool_call.name,
                success=True,
                found=False,
                summary=NOT_FOUND_TEMPLATE.format(
                    tool=tool_call.name,
                    arguments=_describe_arguments(arguments),
                ),
                latency_ms=latency_ms,
            )

        attachment = None
        data = raw
        if isinstance(raw, ToolOutput):
            data = raw.data
            attachment = raw.attachment
            if attachment is not None and not spec.delivers_document:
                logger.warning(f"Tool {tool_call.name} returned an attachment but does not deliver documents")
                attachment = None

        redaction = self.redactor.redact(data)
        if redaction.was_redacted:
            logger.info(f"Redacted {redaction.redaction_count} non-shareable fields from {tool_call.name} result")

        return ToolResult(
            tool_call_id=tool_call.id,
            tool_name=tool_call.name,
            success=True,
            found=True,
            summary=redaction.summary,
            attachment=attachment,
            redaction_count=redaction.redaction_count,
            latency_ms=latency_ms,
        )


def strip_reference_prefix(value: str, prefix: str) -> str:
    """Remove a leading reference prefix, ignoring case.

    ``strip_reference_prefix("INV-Q100-ABCDE", "INV-")`` returns ``"Q100-ABCDE"``.
    """
    pattern = re.compile(r"^\s*" + re.escape(prefix), re.IGNORECASE)
    return pattern.sub("", value, count=1).strip()


def _describe_arguments(arguments: Mapping[str, Any]) -> str:
    if not arguments:
        return "no arguments"
    return ", ".join(f"{key}={value}" for key, value in arguments.items())
