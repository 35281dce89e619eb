"""
Contact Info Middleware
=======================

Handles turns where the user volunteers contact details. Runs the same
validation as the collect_contact_info tool; a failed check answers with
guidance and leaves the stored contact info untouched.
"""

import logging

from ..contacts import extract_contact_info, has_contact_method, validate_contact_info
from ..context_manager import latest_user_message, merge_contact_info, derive_phase
from ..schemas import ContactInfo
from ..pipeline import PipelineMiddleware, MiddlewareResult

logger = logging.getLogger(__name__)


class ContactInfoMiddleware(PipelineMiddleware):
    name = "contact_info"

    async def execute(self, messages, context, team_config, env):
        latest = latest_user_message(messages)
        if latest is None or messages[-1] is not latest:
            return MiddlewareResult(context=context)

        if not has_contact_method(latest.content):
            return MiddlewareResult(context=context)

        extracted = extract_contact_info(latest.content)
        # Earlier turns may already have supplied the name
        candidate = ContactInfo(
            name=extracted.name or context.contact_info.name,
            email=extracted.email,
            phone=extracted.phone,
            location=extracted.location,
        )

        validation = validate_contact_info(candidate, team_config)
        if not validation.is_valid:
            logger.info(f"Contact info rejected for session {context.session_id}")
            return MiddlewareResult(context=context, response=validation.message)

        merge_contact_info(context, validation.contact)
        context.conversation_phase = derive_phase(context)
        return MiddlewareResult(context=context, response=validation.message)
