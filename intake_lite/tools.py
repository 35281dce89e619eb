"""
Tool Call Dispatch
==================

Handlers for the tools the intake agent can call:

- collect_contact_info: validate and store client contact details
- analyze_document: analyze an uploaded file and suggest a matter type
- request_lawyer_review: notify the team that a lawyer should look at the case

Arguments are validated against a tagged union of pydantic models. A bad
call never raises; it comes back as ToolResponse(success=False) with a
message the agent can relay.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import TypeAdapter, ValidationError

from .capabilities import call_with_timeout, get_analysis_question
from .contacts import validate_contact_info
from .context_manager import derive_phase, merge_contact_info
from .errors import CapabilityError, ToolArgumentError
from .pipeline import PipelineEnv
from .rules import GENERAL_CONSULTATION
from .sanitize import redact_parameters
from .schemas import (
    AnalysisResult,
    AnalysisType,
    AnalyzeDocumentArgs,
    CollectContactInfoArgs,
    ContactInfo,
    ConversationContext,
    RequestLawyerReviewArgs,
    TeamConfig,
    ToolCallArgs,
    ToolResponse,
)

logger = logging.getLogger(__name__)

_TOOL_ARGS = TypeAdapter(ToolCallArgs)

ANALYSIS_FAILED_MESSAGE = (
    "I'm sorry, I couldn't analyze that document. The file may not be accessible or may not be in a "
    "supported format. Could you please try uploading it again or provide more details about what "
    "you'd like me to help you with?"
)

LAWYER_REVIEW_MESSAGE = (
    "I've requested a lawyer review for your case due to its urgent nature. A lawyer will review your "
    "case and contact you to discuss further."
)


def success_response(message: str, data: Optional[Dict[str, Any]] = None) -> ToolResponse:
    return ToolResponse(success=True, message=message, data=data or {})


def validation_error(message: str) -> ToolResponse:
    """Failure the agent relays to the user without advancing the conversation"""
    return ToolResponse(success=False, message=message, error_type="validation")


def parse_tool_arguments(name: str, arguments: Dict[str, Any]):
    """
    Validate raw arguments for a tool.

    Raises:
        ToolArgumentError: unknown tool or arguments that do not fit its schema
    """
    payload = dict(arguments or {})
    payload["tool"] = name
    try:
        return _TOOL_ARGS.validate_python(payload)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc']) or 'arguments'}: {err['msg']}"
            for err in e.errors()
        ]
        raise ToolArgumentError(name, errors) from e


# =============================================================================
# Handlers
# =============================================================================

async def handle_collect_contact_info(
    args: CollectContactInfoArgs,
    env: PipelineEnv,
    team_config: TeamConfig,
    context: Optional[ConversationContext] = None,
) -> ToolResponse:
    contact = ContactInfo(name=args.name, email=args.email, phone=args.phone, location=args.location)
    validation = validate_contact_info(contact, team_config)

    if not validation.is_valid:
        return validation_error(validation.message)

    if context is not None:
        merge_contact_info(context, contact)
        context.conversation_phase = derive_phase(context)
        context.touch()

    supplied = {k: v for k, v in contact.model_dump().items() if v}
    return success_response(
        validation.message,
        {"contact_info": supplied, "warnings": validation.warnings},
    )


def suggest_matter_type(analysis_type: AnalysisType, summary: Optional[str]) -> str:
    """Likely matter type for a document, from its analysis type and summary"""
    text = (summary or "").lower()

    if analysis_type == AnalysisType.CONTRACT or "contract" in text:
        return "Contract Review"
    if analysis_type == AnalysisType.MEDICAL_DOCUMENT or "medical" in text:
        return "Personal Injury"
    if analysis_type == AnalysisType.GOVERNMENT_FORM or "form" in text:
        return "Administrative Law"
    if analysis_type == AnalysisType.IMAGE and ("accident" in text or "injury" in text):
        return "Personal Injury"
    if analysis_type == AnalysisType.IMAGE and "property" in text:
        return "Property Law"
    return GENERAL_CONSULTATION


def build_document_response(analysis: AnalysisResult, suggested_matter: str) -> str:
    lines = ["I've analyzed your document and here's what I found:", ""]

    if analysis.summary:
        lines.append(f"**Document Analysis:** {analysis.summary}")
        lines.append("")
    if analysis.entities.people:
        lines.append(f"**Parties Involved:** {', '.join(analysis.entities.people)}")
    if analysis.entities.orgs:
        lines.append(f"**Organizations:** {', '.join(analysis.entities.orgs)}")
    if analysis.entities.dates:
        lines.append(f"**Important Dates:** {', '.join(analysis.entities.dates)}")
    if analysis.key_facts:
        lines.append("**Key Facts:**")
        lines.extend(f"• {fact}" for fact in analysis.key_facts[:3])

    lines.append("")
    lines.append(f"**Suggested Legal Matter Type:** {suggested_matter}")
    lines.append("")
    lines.append("Based on this analysis, I can help you:")
    lines.append("• Create a legal matter for attorney review")
    lines.append("• Identify potential legal issues or concerns")
    lines.append("• Determine appropriate legal services needed")
    lines.append("• Prepare for consultation with an attorney")
    lines.append("")
    lines.append(
        f"Would you like me to create a legal matter for this {suggested_matter.lower()} case? "
        f"I'll need your contact information to get started."
    )
    return "\n".join(lines)


async def handle_analyze_document(
    args: AnalyzeDocumentArgs,
    env: PipelineEnv,
    team_config: TeamConfig,
    context: Optional[ConversationContext] = None,
) -> ToolResponse:
    if env.document_analyzer is None:
        logger.warning("analyze_document called but no document analyzer is configured")
        return validation_error(ANALYSIS_FAILED_MESSAGE)

    question = get_analysis_question(args.analysis_type, args.specific_question)

    try:
        analysis = await call_with_timeout(
            env.document_analyzer.analyze(args.file_id, question),
            env.settings.file_analysis_timeout,
            f"Analysis of {args.file_id}",
        )
    except CapabilityError as e:
        logger.warning(f"Document analysis failed for {args.file_id}: {e}")
        return validation_error(ANALYSIS_FAILED_MESSAGE)
    except Exception as e:
        logger.error(f"Document analysis error for {args.file_id}: {e}", exc_info=True)
        return validation_error(ANALYSIS_FAILED_MESSAGE)

    if analysis is None:
        return validation_error(ANALYSIS_FAILED_MESSAGE)

    if analysis.confidence == 0:
        return validation_error(analysis.summary or ANALYSIS_FAILED_MESSAGE)

    if context is not None:
        context.mark_file_processed(args.file_id)

    suggested = suggest_matter_type(args.analysis_type, analysis.summary)
    logger.debug(
        f"Document {args.file_id} analyzed: type={args.analysis_type.value} "
        f"confidence={analysis.confidence:.2f} suggested={suggested}"
    )

    data = analysis.model_dump()
    data.update({"document_type": args.analysis_type.value, "suggested_matter_type": suggested})
    return success_response(build_document_response(analysis, suggested), data)


async def handle_request_lawyer_review(
    args: RequestLawyerReviewArgs,
    env: PipelineEnv,
    team_config: TeamConfig,
    context: Optional[ConversationContext] = None,
) -> ToolResponse:
    notified = False

    if env.notifier is None:
        logger.warning(f"Lawyer review requested for {args.matter_type} but no notifier is configured")
    else:
        try:
            notified = await call_with_timeout(
                env.notifier.send_lawyer_review(
                    team_config,
                    args.matter_type,
                    complexity=args.complexity,
                    urgency=args.urgency,
                    session_id=context.session_id if context else None,
                ),
                env.settings.capability_timeout,
                "Lawyer review notification",
            )
        except CapabilityError as e:
            logger.warning(f"Lawyer review notification failed: {e}")
        except Exception as e:
            logger.error(f"Lawyer review notification error: {e}", exc_info=True)

    return success_response(
        LAWYER_REVIEW_MESSAGE,
        {"matter_type": args.matter_type, "complexity": args.complexity, "notified": bool(notified)},
    )


ToolHandler = Callable[..., Awaitable[ToolResponse]]

TOOL_HANDLERS: Dict[str, ToolHandler] = {
    "collect_contact_info": handle_collect_contact_info,
    "analyze_document": handle_analyze_document,
    "request_lawyer_review": handle_request_lawyer_review,
}


async def dispatch_tool_call(
    name: str,
    arguments: Dict[str, Any],
    env: PipelineEnv,
    team_config: TeamConfig,
    context: Optional[ConversationContext] = None,
) -> ToolResponse:
    """
    Validate arguments and run the named tool.

    Args:
        name: Tool name as called by the agent
        arguments: Raw arguments
        env: Capabilities and settings
        team_config: Team the conversation belongs to
        context: Conversation context to update, if the caller will save it

    Returns:
        ToolResponse; never raises for bad input
    """
    logger.info(f"Tool call {name}: {redact_parameters(arguments)}")

    handler = TOOL_HANDLERS.get(name)
    if handler is None:
        logger.warning(f"Unknown tool requested: {name}")
        return ToolResponse(
            success=False,
            message=f"Unknown tool '{name}'. Available tools: {', '.join(TOOL_HANDLERS)}.",
            error_type="unknown_tool",
        )

    try:
        args = parse_tool_arguments(name, arguments)
    except ToolArgumentError as e:
        logger.warning(f"Rejected arguments for {name}: {e.errors}")
        return ToolResponse(
            success=False,
            message=f"The {name} call had invalid arguments: {'; '.join(e.errors)}",
            error_type="invalid_arguments",
        )

    return await handler(args, env, team_config, context)
