"""FastAPI application for the MerchDesk customer-service agent.

This is the process entry point: it loads configuration, owns the lifecycle
of the database pool, HTTP clients and completion provider, and wires them
into the orchestrator.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Optional

import asyncpg
from dotenv import load_dotenv
from fastapi import FastAPI

from .api import create_agent_dependencies
from .api import router as agent_router
from .channels import build_adapters
from .config import AgentSettings
from .control import HumanControlGate, InMemoryHumanControlStore, PostgresHumanControlStore
from .domain.ports import ICompletionService, IToolHandler
from .escalation import LoggingEscalationNotifier, WebhookEscalationNotifier, WebhookNotifierConfig
from .memory import ConversationMemory, InMemoryTurnStore, PostgresTurnStore
from .orchestrator import AgentConfig, AgentOrchestrator
from .providers import AnthropicProvider, LLMProviderConfig, OpenAIProvider
from .tools import (
    EscalationToolHandler,
    RemoteToolService,
    RemoteToolServiceConfig,
    ToolRegistry,
    build_remote_handlers,
    get_agent_tools,
)
from .tools.catalog import ESCALATE_TO_HUMAN

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@dataclass
class AgentResources:
    """Resources opened at startup and closed at shutdown."""

    db_pool: Optional[Any] = None
    closeables: list[Any] = field(default_factory=list)

    async def close(self) -> None:
        # Reverse order of initialization
        for resource in reversed(self.closeables):
            try:
                await resource.close()
            except Exception as e:
                logger.warning(f"Error closing {resource.__class__.__name__}: {e}")
        if self.db_pool is not None:
            await self.db_pool.close()
            logger.info("Database pool closed")


def create_completion_service(settings: AgentSettings) -> ICompletionService:
    """Create the completion provider selected by the settings."""
    provider = settings.resolve_provider()
    if provider == "anthropic":
        config = LLMProviderConfig(api_key=settings.anthropic_api_key, model=settings.anthropic_model)
        logger.info(f"Using Anthropic provider with model: {config.model}")
        return AnthropicProvider(config)

    config = LLMProviderConfig(api_key=settings.openai_api_key, model=settings.openai_model)
    logger.info(f"Using OpenAI provider with model: {config.model}")
    return OpenAIProvider(config)


def build_tool_handlers(settings: AgentSettings, resources: AgentResources) -> dict[str, IToolHandler]:
    """Bind catalog tools to their handlers.

    Record lookups go to the tool service when TOOL_SERVICE_URL is set;
    escalation is always available (webhook or log-only notifier).
    """
    handlers: dict[str, IToolHandler] = {}

    if settings.tool_service_url:
        service = RemoteToolService(
            RemoteToolServiceConfig(
                base_url=settings.tool_service_url,
                service_api_key=settings.tool_service_api_key,
            )
        )
        resources.closeables.append(service)
        lookup_tools = [t.name for t in get_agent_tools() if t.name != ESCALATE_TO_HUMAN]
        handlers.update(build_remote_handlers(service, lookup_tools))
        logger.info(f"Tool service configured for: {settings.tool_service_url}")
    else:
        logger.warning("TOOL_SERVICE_URL not configured - lookup tools will be unavailable")

    if settings.escalation_webhook_url:
        notifier = WebhookEscalationNotifier(
            WebhookNotifierConfig(
                webhook_url=settings.escalation_webhook_url,
                timeout=settings.escalation_timeout_seconds,
                company_name=settings.company_name,
            )
        )
        resources.closeables.append(notifier)
    else:
        logger.warning("ESCALATION_WEBHOOK_URL not configured - escalations will only be logged")
        notifier = LoggingEscalationNotifier()

    handlers[ESCALATE_TO_HUMAN] = EscalationToolHandler(
        notifier,
        support_contact=settings.support_contact,
        timeout_seconds=settings.escalation_timeout_seconds,
    )
    return handlers


async def build_orchestrator(settings: AgentSettings, resources: AgentResources) -> AgentOrchestrator:
    """Create every collaborator and the orchestrator."""
    if settings.database_url:
        resources.db_pool = await asyncpg.create_pool(settings.database_url, min_size=1, max_size=10)
        logger.info("Database pool initialized")
        turn_store = PostgresTurnStore(resources.db_pool, table=settings.chat_history_table)
        control_store = PostgresHumanControlStore(resources.db_pool, table=settings.human_control_table)
    else:
        logger.warning("DATABASE_URL not configured - using in-process memory and human-control stores")
        turn_store = InMemoryTurnStore()
        control_store = InMemoryHumanControlStore()

    completion_service = create_completion_service(settings)
    resources.closeables.append(completion_service)

    config = AgentConfig(
        max_tool_rounds=settings.max_tool_rounds,
        temperature=settings.temperature,
        strict_tools=settings.strict_tools,
    )

    return AgentOrchestrator(
        completion_service=completion_service,
        tool_registry=ToolRegistry(build_tool_handlers(settings, resources)),
        memory=ConversationMemory(turn_store, window=config.history_window),
        adapters=build_adapters(settings.company_name, settings.support_contact),
        human_control=HumanControlGate(control_store),
        config=config,
    )


def create_app(
    settings: Optional[AgentSettings] = None,
    orchestrator: Optional[AgentOrchestrator] = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Settings (read from the environment if omitted)
        orchestrator: Pre-built orchestrator; when given, nothing is built at startup

    Returns:
        FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager.

        - Startup: open the database pool and clients, build the orchestrator
        - Shutdown: close them in reverse order
        """
        logger.info("Starting MerchDesk agent API...")
        resources = AgentResources()

        if orchestrator is not None:
            create_agent_dependencies(orchestrator)
        else:
            app_settings = settings or AgentSettings.from_env()
            try:
                create_agent_dependencies(await build_orchestrator(app_settings, resources))
                logger.info("Agent orchestrator initialized successfully")
            except Exception as e:
                await resources.close()
                logger.error(f"Failed to initialize agent orchestrator: {e}")
                raise

        yield

        logger.info("Shutting down MerchDesk agent API...")
        create_agent_dependencies(None)
        await resources.close()

    app = FastAPI(
        title="MerchDesk Customer Service Agent API",
        description="Conversational agent for order, quote and invoice enquiries over chat and email.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.include_router(agent_router)

    @app.get("/health")
    async def health():
        """Global health check."""
        return {"status": "healthy"}

    return app


def main() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    load_dotenv()
    settings = AgentSettings.from_env()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
