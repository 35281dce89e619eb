"""
Content Policy Filter
=====================

First conversational stage. Rejects jailbreak attempts, non-legal
requests, abusive content and spam before any other logic sees the turn.

Checks run in priority order and only the first violation is reported.
The non-legal check is skipped once a legal matter is established.
"""

import logging
from typing import Optional

from ..context_manager import latest_user_message
from ..rules import (
    JAILBREAK_PATTERNS,
    NON_LEGAL_PATTERNS,
    ABUSIVE_PATTERNS,
    REPETITION_MIN_WORDS,
    VIOLATION_RESPONSES,
    DEFAULT_VIOLATION_RESPONSE,
    matches_any,
    first_match_category,
)
from ..sanitize import preview
from ..schemas import ConversationContext, SafetyFlag
from ..pipeline import PipelineMiddleware, MiddlewareResult

logger = logging.getLogger(__name__)


def is_jailbreak_attempt(text: str) -> bool:
    return matches_any(text, JAILBREAK_PATTERNS)


def is_non_legal_request(text: str, context: ConversationContext) -> bool:
    if context.established_matters:
        return False
    return first_match_category(text, NON_LEGAL_PATTERNS) is not None


def is_abusive(text: str) -> bool:
    return first_match_category(text, ABUSIVE_PATTERNS) is not None


def is_spam(text: str, context: ConversationContext, max_length: int = 2000,
            min_messages: int = 10, unique_ratio: float = 0.3) -> bool:
    """
    Over-long or, later in a conversation, highly repetitive text.

    The repetition check only applies once message_count exceeds
    min_messages.
    """
    if len(text) > max_length:
        return True

    if context.message_count > min_messages:
        words = text.lower().split()
        if len(words) > REPETITION_MIN_WORDS and len(set(words)) < len(words) * unique_ratio:
            return True

    return False


def check_for_violation(text: str, context: ConversationContext, max_length: int = 2000,
                        min_messages: int = 10, unique_ratio: float = 0.3) -> Optional[SafetyFlag]:
    """Return the highest-priority violation in text, if any"""
    if not text:
        return None

    if is_jailbreak_attempt(text):
        return SafetyFlag.JAILBREAK_ATTEMPT

    if is_non_legal_request(text, context):
        return SafetyFlag.NON_LEGAL_REQUEST

    if is_abusive(text):
        return SafetyFlag.ABUSIVE_CONTENT

    if is_spam(text, context, max_length, min_messages, unique_ratio):
        return SafetyFlag.SPAM_CONTENT

    return None


class ContentPolicyFilter(PipelineMiddleware):
    name = "content_policy_filter"

    async def execute(self, messages, context, team_config, env):
        latest = latest_user_message(messages)
        text = latest.content if latest else ""

        settings = env.settings
        violation = check_for_violation(
            text,
            context,
            max_length=settings.max_message_length,
            min_messages=settings.repetition_min_messages,
            unique_ratio=settings.repetition_unique_ratio,
        )

        if violation is None:
            return MiddlewareResult(context=context)

        logger.warning(
            f"Content policy violation {violation.value}: session={context.session_id} "
            f"team={context.team_id} message={preview(text)!r}"
        )

        context.add_safety_flag(violation.value)
        response = VIOLATION_RESPONSES.get(violation.value, DEFAULT_VIOLATION_RESPONSE)
        return MiddlewareResult(context=context, response=response, should_stop=True)
