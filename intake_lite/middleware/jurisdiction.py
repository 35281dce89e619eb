"""
Jurisdiction Validator
======================

Warns, never blocks, users whose location falls outside the team's
service area. Requests a location when the team requires one.
"""

import logging

from ..context_manager import latest_user_message
from ..locations import (
    LOCATION_REQUEST,
    validate_jurisdiction_config,
    is_location_supported,
    jurisdiction_warning,
)
from ..rules import find_us_state
from ..schemas import SafetyFlag
from ..pipeline import PipelineMiddleware, MiddlewareResult

logger = logging.getLogger(__name__)


class JurisdictionValidator(PipelineMiddleware):
    name = "jurisdiction_validator"

    async def execute(self, messages, context, team_config, env):
        jurisdiction = team_config.jurisdiction
        if jurisdiction is None:
            return MiddlewareResult(context=context)

        is_valid, errors = validate_jurisdiction_config(jurisdiction)
        if not is_valid:
            logger.warning(f"Invalid jurisdiction configuration for team {context.team_id}: {errors}")
            return MiddlewareResult(context=context)

        # Warned once already; let the conversation move on
        if SafetyFlag.OUT_OF_JURISDICTION.value in context.safety_flags:
            return MiddlewareResult(context=context)

        latest = latest_user_message(messages)
        location = context.jurisdiction or find_us_state(latest.content if latest else "")

        if location:
            if is_location_supported(location, jurisdiction):
                return MiddlewareResult(context=context)

            logger.warning(
                f"Out-of-jurisdiction user: session={context.session_id} location={location} "
                f"team={context.team_id}"
            )
            context.jurisdiction = location
            context.add_safety_flag(SafetyFlag.OUT_OF_JURISDICTION.value)
            warning = jurisdiction_warning(location, jurisdiction, team_config.name)
            return MiddlewareResult(context=context, response=warning)

        if jurisdiction.require_location:
            return MiddlewareResult(context=context, response=LOCATION_REQUEST)

        return MiddlewareResult(context=context)
