"""
Intake Service
==============

One conversational turn, end to end:

    load context -> attach files -> update_context -> run_pipeline -> save

Store failures (ContextStoreError) propagate to the caller; everything
that happens inside the pipeline is contained there.

Concurrent turns for the same session are not serialized here: the store
is last-write-wins.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .capabilities import build_default_env
from .context_manager import update_context
from .context_store import ContextStore, get_context_store
from .pipeline import (
    PipelineEnv,
    PipelineMiddleware,
    build_default_pipeline,
    run_pipeline,
)
from .schemas import Attachment, ConversationContext, Message, TeamConfig, ToolResponse
from .tools import dispatch_tool_call

logger = logging.getLogger(__name__)


@dataclass
class IntakeTurnResult:
    response: str
    needs_agent: bool
    context: ConversationContext
    middleware_used: List[str] = field(default_factory=list)


class IntakeService:
    """Ties the context store, the pipeline and the tool dispatcher together"""

    def __init__(
        self,
        store: Optional[ContextStore] = None,
        env: Optional[PipelineEnv] = None,
        middlewares: Optional[List[PipelineMiddleware]] = None,
    ):
        self.store = store or get_context_store()
        self.env = env or build_default_env()
        self.middlewares = middlewares if middlewares is not None else build_default_pipeline()

    async def load_context(self, session_id: str, team_id: str) -> ConversationContext:
        return await asyncio.to_thread(self.store.load, session_id, team_id)

    async def save_context(self, context: ConversationContext) -> None:
        await asyncio.to_thread(self.store.save, context)

    async def process_turn(
        self,
        session_id: str,
        team_id: str,
        messages: List[Message],
        team_config: Optional[TeamConfig] = None,
        attachments: Optional[List[Attachment]] = None,
    ) -> IntakeTurnResult:
        """
        Process one turn.

        Returns:
            IntakeTurnResult; needs_agent is True when no middleware answered

        Raises:
            ContextStoreError: context could not be loaded or saved
        """
        team_config = team_config or TeamConfig(id=team_id)
        context = await self.load_context(session_id, team_id)

        context.current_attachments = list(attachments) if attachments else None
        update_context(context, messages)

        result = await run_pipeline(messages, context, team_config, self.env, self.middlewares)
        await self.save_context(result.context)

        logger.info(
            f"Turn processed: session={session_id} team={team_id} "
            f"stages={result.middleware_used} needs_agent={result.needs_agent} "
            f"phase={result.context.conversation_phase.value}"
        )

        return IntakeTurnResult(
            response=result.response,
            needs_agent=result.needs_agent,
            context=result.context,
            middleware_used=result.middleware_used,
        )

    async def apply_tool_call(
        self,
        session_id: str,
        team_id: str,
        tool_name: str,
        arguments: Dict[str, Any],
        team_config: Optional[TeamConfig] = None,
    ) -> ToolResponse:
        """
        Run a tool against the stored context and save the result.

        Raises:
            ContextStoreError: context could not be loaded or saved
        """
        team_config = team_config or TeamConfig(id=team_id)
        context = await self.load_context(session_id, team_id)

        response = await dispatch_tool_call(tool_name, arguments, self.env, team_config, context)

        if response.success:
            await self.save_context(context)
        return response

    async def get_context(self, session_id: str, team_id: str) -> ConversationContext:
        return await self.load_context(session_id, team_id)
