"""
Agent Orchestrator.

Main orchestration logic for the customer-service agent. Coordinates:
- The human-control gate (no reply while an operator is in control)
- Conversation memory load and persistence
- Model calls and the one-tool-per-round tool loop
- Document attachment decisions (send vs. ask)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from ..channels.base import ChannelAdapter, ChannelPayload
from ..control.human_control import HumanControlGate
from ..domain.entities import (
    AgentResponse,
    Attachment,
    Channel,
    ChannelContext,
    CompletionResult,
    DocumentIntent,
    LoopState,
    Message,
    MessageRole,
    ToolCall,
    ToolResult,
    TurnRole,
)
from ..domain.ports import ICompletionService, IConversationMemory
from ..exceptions import CompletionServiceError, ConfigurationError, MerchDeskError
from ..tools.registry import ToolRegistry
from .intent import DocumentRequestClassifier
from .prompt_builder import PromptBuilder
from .tool_executor import ToolExecutor

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_REPLY = "I apologize, but I encountered an error processing your request."


@dataclass
class AgentConfig:
    """Configuration for the agent orchestrator.

    Attributes:
        max_tool_rounds: Maximum tool round-trips per inbound message; once
            reached the model is called once more without tools
        temperature: Model temperature
        max_tokens: Maximum tokens per response
        history_window: Maximum stored turns loaded into the prompt
        strict_tools: Raise on unregistered tool names instead of reporting
            the tool as unavailable
        fallback_reply: Reply used when the model returns no text
    """

    max_tool_rounds: int = 5
    temperature: float = 0.3
    max_tokens: Optional[int] = None
    history_window: int = 20
    strict_tools: bool = False
    fallback_reply: str = DEFAULT_FALLBACK_REPLY


class AgentOrchestrator:
    """Main agent orchestration logic.

    Per inbound message:
    1. Check the human-control gate (short-circuit if an operator is in control)
    2. Load the recent history window
    3. Compose the prompt (channel prompt + customer context + history + message)
    4. Call the model with the tool catalog
    5. Execute the first proposed tool call, inject its result, call again
    6. Stop when the model answers with text
    7. Persist exactly one customer turn and one agent turn

    Only the first tool call of a model response is executed; any others are
    ignored and logged. Tool failures become tool results and the loop goes
    on. Completion-service failures propagate and nothing is persisted.

    Usage:
        orchestrator = AgentOrchestrator(
            completion_service=openai_provider,
            tool_registry=registry,
            memory=ConversationMemory(turn_store),
            adapters=build_adapters(),
            human_control=HumanControlGate(control_store),
        )

        response = await orchestrator.handle_inbound_message(
            session_id="ML-27821234567",
            text="Can I get an update on invoice INV-Q100-ABCDE?",
            channel=Channel.CHAT,
            channel_identity="+27821234567",
            customer_display_name="Jane",
        )
    """

    def __init__(
        self,
        completion_service: ICompletionService,
        tool_registry: ToolRegistry,
        memory: IConversationMemory,
        adapters: Mapping[Channel, ChannelAdapter],
        human_control: Optional[HumanControlGate] = None,
        classifier: Optional[DocumentRequestClassifier] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        config: Optional[AgentConfig] = None,
    ):
        """Initialize the agent orchestrator.

        Args:
            completion_service: Model completion service
            tool_registry: Tool registry for dispatch
            memory: Conversation memory
            adapters: Channel adapter per channel
            human_control: Gate checked before replying (omit if the caller checks)
            classifier: Send-vs-ask document classifier
            prompt_builder: System prompt and message builder
            config: Agent configuration
        """
        self.llm = completion_service
        self.tools = tool_registry
        self.memory = memory
        self.adapters = dict(adapters)
        self.human_control = human_control
        self.classifier = classifier or DocumentRequestClassifier()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.config = config or AgentConfig()
        self.tool_executor = ToolExecutor(tool_registry, strict=self.config.strict_tools)

    def get_adapter(self, channel: Union[Channel, str]) -> ChannelAdapter:
        """Adapter for a channel.

        Raises:
            ConfigurationError: No adapter is configured for the channel
        """
        channel = Channel(channel)
        adapter = self.adapters.get(channel)
        if adapter is None:
            raise ConfigurationError(f"No channel adapter configured for {channel.value}")
        return adapter

    def build_context(
        self,
        session_id: str,
        text: str,
        channel: Union[Channel, str],
        channel_identity: Optional[str],
        customer_display_name: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> ChannelContext:
        """Build the channel context for an inbound message."""
        return self.get_adapter(channel).build_context(
            session_id=session_id,
            text=text,
            channel_identity=channel_identity,
            customer_name=customer_display_name,
            subject=subject,
        )

    def render(self, response: AgentResponse, context: ChannelContext) -> ChannelPayload:
        """Render a response for the context's channel."""
        return self.get_adapter(context.channel).render(response, context)

    async def handle_inbound_message(
        self,
        session_id: str,
        text: str,
        channel: Union[Channel, str],
        channel_identity: Optional[str],
        customer_display_name: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> Optional[AgentResponse]:
        """Process one inbound customer message.

        Callers must serialise calls per session id.

        Args:
            session_id: Channel-qualified session id
            text: Customer message text
            channel: Channel the message arrived on
            channel_identity: Customer phone (chat) or email (email)
            customer_display_name: Name reported by the channel
            subject: Email subject (email channel only)

        Returns:
            AgentResponse, or None if a human operator is in control

        Raises:
            CompletionServiceError: The model could not be reached
        """
        context = self.build_context(
            session_id, text, channel, channel_identity, customer_display_name, subject
        )
        return await self.respond(context)

    async def respond(self, context: ChannelContext) -> Optional[AgentResponse]:
        """Process an inbound message for an already-built channel context."""
        adapter = self.get_adapter(context.channel)
        customer_text = adapter.compose_customer_message(context)

        if self.human_control and await self.human_control.is_human_in_control(context.session_id):
            logger.info(f"Session {context.session_id} is human-controlled; agent will not reply")
            # Keep the customer's words so the agent has them when control returns
            await self.memory.append(context.session_id, TurnRole.CUSTOMER, customer_text)
            return None

        history = await self.memory.load(context.session_id)
        history = history[-self.config.history_window:]

        response = await self._run_loop(adapter, context, history, customer_text)

        await self.memory.append(context.session_id, TurnRole.CUSTOMER, customer_text)
        await self.memory.append(context.session_id, TurnRole.AGENT, response.text)

        logger.info(
            f"Replied on {context.channel.value} session {context.session_id} "
            f"after {response.tool_rounds} tool rounds "
            f"({len(response.attachments)} attachments)"
        )
        return response

    async def record_operator_reply(self, session_id: str, text: str) -> None:
        """Record a reply a human operator sent, as an agent turn in history."""
        await self.memory.append(session_id, TurnRole.AGENT, text)

    async def _run_loop(
        self,
        adapter: ChannelAdapter,
        context: ChannelContext,
        history: list,
        customer_text: str,
    ) -> AgentResponse:
        """Drive the COMPOSE_PROMPT -> CALL_MODEL -> EXECUTE_TOOL -> INJECT_RESULT loop."""
        state = LoopState.COMPOSE_PROMPT
        messages: list[Message] = []
        available_tools = self.tools.get_tools()

        rounds = 0
        tools_used: list[str] = []
        candidates: dict[str, Attachment] = {}
        pending_call: Optional[ToolCall] = None
        tool_result: Optional[ToolResult] = None
        final_text = ""

        while state != LoopState.DONE:
            if state == LoopState.COMPOSE_PROMPT:
                system_prompt = self.prompt_builder.build(adapter.system_prompt(), context)
                messages = self.prompt_builder.build_messages(system_prompt, history, customer_text)
                state = LoopState.CALL_MODEL

            elif state == LoopState.CALL_MODEL:
                offered = available_tools if rounds < self.config.max_tool_rounds else []
                if available_tools and not offered:
                    logger.warning(
                        f"Tool round limit ({self.config.max_tool_rounds}) reached for "
                        f"session {context.session_id}; requesting a text answer"
                    )

                completion = await self._complete(messages, offered)

                if completion.has_tool_calls and offered:
                    pending_call = completion.tool_calls[0]
                    ignored = len(completion.tool_calls) - 1
                    if ignored:
                        logger.info(
                            f"Model proposed {len(completion.tool_calls)} tool calls; "
                            f"executing only {pending_call.name}"
                        )
                    messages.append(
                        Message(
                            role=MessageRole.ASSISTANT,
                            content=completion.text or "",
                            tool_calls=[pending_call],
                        )
                    )
                    state = LoopState.EXECUTE_TOOL
                else:
                    if completion.has_tool_calls:
                        logger.warning("Ignoring tool calls proposed without tools offered")
                    final_text = (completion.text or "").strip()
                    state = LoopState.DONE

            elif state == LoopState.EXECUTE_TOOL:
                rounds += 1
                tool_result = await self.tool_executor.execute_tool_call(pending_call, context)
                tools_used.append(pending_call.name)
                if tool_result.attachment is not None:
                    candidates.setdefault(tool_result.attachment.id, tool_result.attachment)
                state = LoopState.INJECT_RESULT

            elif state == LoopState.INJECT_RESULT:
                messages.append(
                    Message(
                        role=MessageRole.TOOL,
                        content=tool_result.summary,
                        tool_calls=[pending_call],
                    )
                )
                pending_call = None
                tool_result = None
                state = LoopState.CALL_MODEL

        if not final_text:
            logger.warning(f"Model returned no text for session {context.session_id}; using fallback reply")
            final_text = self.config.fallback_reply

        attachments: list[Attachment] = []
        if candidates:
            intent = self.classifier.classify(context.original_message)
            if intent == DocumentIntent.SEND_DOCUMENT:
                attachments = list(candidates.values())
            else:
                logger.debug(f"Withholding {len(candidates)} document(s): message asks about content")

        return AgentResponse(
            text=final_text,
            attachments=attachments,
            tools_used=tools_used,
            tool_rounds=rounds,
        )

    async def _complete(self, messages: list[Message], tools: list) -> CompletionResult:
        """Call the model. Never retried here."""
        try:
            return await self.llm.complete(
                messages,
                tools=tools or None,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except MerchDeskError:
            raise
        except Exception as e:
            logger.exception(f"Completion service failed: {e}")
            raise CompletionServiceError(f"Completion service failed: {e}", cause=e) from e
