"""
Business Scope Validator
========================

Checks requested legal matters against the services a team offers.
Teams that list no services, or that offer General Consultation, accept
everything.
"""

import logging
from typing import List

from ..context_manager import latest_user_message
from ..rules import (
    GENERAL_CONSULTATION,
    GENERAL_LEGAL_PATTERNS,
    extract_legal_matters,
    matches_any,
)
from ..pipeline import PipelineMiddleware, MiddlewareResult

logger = logging.getLogger(__name__)

TEAM_NAME = "our legal team"


def scope_violation_response(unavailable: List[str], available: List[str]) -> str:
    matters = ", ".join(unavailable)
    services = ", ".join(available)
    return (
        f"I understand you're dealing with a {matters} matter. While {TEAM_NAME} specializes in "
        f"{services}, I'd be happy to help you find a lawyer who specializes in {matters}.\n\n"
        f"Would you like me to:\n"
        f"1. Help you with a different legal matter that we do handle?\n"
        f"2. Provide you with resources to find a {matters} attorney?\n"
        f"3. Answer general questions about {matters}?"
    )


def general_legal_response(available: List[str]) -> str:
    services = ", ".join(available)
    return (
        f"I'd be happy to help you with your legal needs! Our legal team "
        f"specializes in {services}.\n\n"
        f"To better assist you, could you tell me:\n"
        f"1. What type of legal issue are you dealing with?\n"
        f"2. What specific help do you need?\n\n"
        f"This will help me determine if we can assist you directly or connect you with the right resources."
    )


class BusinessScopeValidator(PipelineMiddleware):
    name = "business_scope_validator"

    async def execute(self, messages, context, team_config, env):
        available = team_config.available_services
        if not available or GENERAL_CONSULTATION in available:
            return MiddlewareResult(context=context)

        if any(matter in available for matter in context.established_matters):
            return MiddlewareResult(context=context)

        latest = latest_user_message(messages)
        text = latest.content if latest else ""

        current = extract_legal_matters(text)
        if current:
            if any(matter in available for matter in current):
                return MiddlewareResult(context=context)

            unavailable = [matter for matter in current if matter not in available]
            logger.info(f"Out-of-scope matters {unavailable} for team {context.team_id}")
            return MiddlewareResult(
                context=context,
                response=scope_violation_response(unavailable, available),
                should_stop=True,
            )

        if not context.established_matters and matches_any(text, GENERAL_LEGAL_PATTERNS):
            return MiddlewareResult(
                context=context,
                response=general_legal_response(available),
                should_stop=True,
            )

        return MiddlewareResult(context=context)
