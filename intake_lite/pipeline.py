"""
Conversation Pipeline
=====================

Runs an ordered list of middleware against one conversational turn.

Rules:
- Order is fixed by the caller (content policy and jurisdiction first)
- The first middleware returning a non-empty response ends the run
- should_stop without a response ends the run and hands off to the agent
- A middleware that raises is logged and skipped; the previous context
  carries on to the next stage unchanged
- No response means AI_HANDLE: the caller invokes the LLM agent
- current_attachments is always None once the run returns

run_pipeline() never raises.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, TYPE_CHECKING

from .config import Settings, get_settings
from .sanitize import preview
from .schemas import ConversationContext, Message, TeamConfig

if TYPE_CHECKING:
    from .capabilities import FileStore, DocumentAnalyzer, PdfRenderer, Notifier

logger = logging.getLogger(__name__)

AI_HANDLE = "AI_HANDLE"


# =============================================================================
# Results & environment
# =============================================================================

@dataclass
class MiddlewareResult:
    """What a single stage hands back to the runner"""
    context: ConversationContext
    response: Optional[str] = None
    should_stop: bool = False


@dataclass
class PipelineResult:
    context: ConversationContext
    response: str
    middleware_used: List[str] = field(default_factory=list)

    @property
    def needs_agent(self) -> bool:
        return self.response == AI_HANDLE


@dataclass
class PipelineEnv:
    """
    Capabilities and settings available to middleware.

    Any capability may be None; middleware that need a missing one
    degrade to a user-facing message instead of failing.
    """
    settings: Settings = field(default_factory=get_settings)
    file_store: Optional["FileStore"] = None
    document_analyzer: Optional["DocumentAnalyzer"] = None
    pdf_renderer: Optional["PdfRenderer"] = None
    notifier: Optional["Notifier"] = None


class PipelineMiddleware(ABC):
    """One stage of the conversation pipeline"""

    name: str = "middleware"

    @abstractmethod
    async def execute(
        self,
        messages: List[Message],
        context: ConversationContext,
        team_config: TeamConfig,
        env: PipelineEnv,
    ) -> MiddlewareResult:
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


# =============================================================================
# Runner
# =============================================================================

async def run_pipeline(
    messages: List[Message],
    context: ConversationContext,
    team_config: TeamConfig,
    env: PipelineEnv,
    middlewares: List[PipelineMiddleware],
) -> PipelineResult:
    """
    Execute middleware in order against the turn.

    Args:
        messages: Full ordered message list for the turn
        context: Loaded (and already updated) conversation context
        team_config: Read-only team configuration
        env: Capabilities and settings
        middlewares: Stages in deployment order

    Returns:
        PipelineResult with the final context, the response or AI_HANDLE,
        and the names of the stages that completed
    """
    working = context
    response = ""
    middleware_used: List[str] = []

    for middleware in middlewares:
        try:
            # Stages get a private copy so a failure cannot leave half-applied edits
            result = await middleware.execute(messages, working.model_copy(deep=True), team_config, env)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"Pipeline middleware {middleware.name} failed for session {context.session_id}: {e}",
                exc_info=True,
            )
            continue

        working = result.context
        middleware_used.append(middleware.name)

        if result.response:
            response = result.response
            break

        if result.should_stop:
            break

    working.current_attachments = None

    return PipelineResult(
        context=working,
        response=response or AI_HANDLE,
        middleware_used=middleware_used,
    )


# =============================================================================
# Logging middleware
# =============================================================================

class LoggingMiddleware(PipelineMiddleware):
    """Logs the turn being processed; always passes through"""

    name = "logging"

    async def execute(self, messages, context, team_config, env):
        latest = preview(messages[-1].content) if messages else ""
        logger.info(
            f"Pipeline execution: session={context.session_id} team={context.team_id} "
            f"messages={len(messages)} matters={context.established_matters} "
            f"intent={context.user_intent.value} latest={latest!r}"
        )
        logger.debug(f"Team services: {team_config.available_services}")
        return MiddlewareResult(context=context)


def build_default_pipeline() -> List[PipelineMiddleware]:
    """
    Deployment order for the intake pipeline.

    Content policy and jurisdiction run before anything that can answer
    with a matter-shaped response.
    """
    from .middleware import (
        ContentPolicyFilter,
        JurisdictionValidator,
        BusinessScopeValidator,
        ContactInfoMiddleware,
        FileAnalysisMiddleware,
        CaseDraftMiddleware,
        DocumentChecklistMiddleware,
        PdfGenerationMiddleware,
    )

    return [
        LoggingMiddleware(),
        ContentPolicyFilter(),
        JurisdictionValidator(),
        BusinessScopeValidator(),
        ContactInfoMiddleware(),
        FileAnalysisMiddleware(),
        CaseDraftMiddleware(),
        DocumentChecklistMiddleware(),
        PdfGenerationMiddleware(),
    ]
