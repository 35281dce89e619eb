"""
Case Draft Middleware
=====================

Builds or updates context.case_draft when the user explicitly asks to
organize their case. Extraction is keyword based and best effort; the
draft is a starting point for the intake team, not a classification.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..context_manager import latest_message_text, update_case_draft
from ..rules import (
    CASE_DRAFT_KEYWORDS,
    CASE_FACT_KEYWORDS,
    CASE_MATTER_KEYWORDS,
    CASE_NEXT_STEPS,
    GENERAL_CONSULTATION,
    PDF_KEYWORDS,
    URGENCY_HIGH_KEYWORDS,
    URGENCY_LOW_KEYWORDS,
    contains_keyword,
    find_us_state,
)
from ..schemas import CaseDraft, CaseDraftStatus, ConversationContext, Urgency
from ..pipeline import PipelineMiddleware, MiddlewareResult

logger = logging.getLogger(__name__)


@dataclass
class CaseInformation:
    """What could be pulled out of a single message"""
    matter_type: Optional[str] = None
    facts: List[str] = field(default_factory=list)
    urgency: Optional[Urgency] = None
    jurisdiction: Optional[str] = None


def is_case_draft_request(text: str) -> bool:
    # Export requests mention "case summary" too; those belong to PDF generation
    return contains_keyword(text, CASE_DRAFT_KEYWORDS) and not contains_keyword(text, PDF_KEYWORDS)


def extract_urgency(text: str) -> Optional[Urgency]:
    """Explicit urgency in text, or None when the message does not say"""
    if contains_keyword(text, URGENCY_LOW_KEYWORDS):
        return Urgency.LOW
    if contains_keyword(text, URGENCY_HIGH_KEYWORDS):
        return Urgency.HIGH
    return None


def extract_case_information(text: str) -> CaseInformation:
    info = CaseInformation()

    for matter, keywords in CASE_MATTER_KEYWORDS:
        if contains_keyword(text, keywords):
            info.matter_type = matter
            break

    for keywords, fact in CASE_FACT_KEYWORDS:
        if contains_keyword(text, keywords):
            info.facts.append(fact)

    info.urgency = extract_urgency(text)
    info.jurisdiction = find_us_state(text)
    return info


def merge_case_draft(existing: Optional[CaseDraft], info: CaseInformation, context: ConversationContext) -> CaseDraft:
    """
    Create a draft or fold new information into the existing one.

    New values replace old ones only when the message actually supplied
    them; key facts accumulate without duplicates.
    """
    now = datetime.utcnow().isoformat()

    if existing is None:
        matter = info.matter_type
        if not matter and context.established_matters:
            matter = context.established_matters[0]
        return CaseDraft(
            matter_type=matter or GENERAL_CONSULTATION,
            key_facts=list(info.facts),
            jurisdiction=info.jurisdiction or context.jurisdiction or "",
            urgency=info.urgency or Urgency.MEDIUM,
            status=CaseDraftStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )

    draft = existing
    if info.matter_type:
        draft.matter_type = info.matter_type
    for fact in info.facts:
        if fact not in draft.key_facts:
            draft.key_facts.append(fact)
    if info.jurisdiction:
        draft.jurisdiction = info.jurisdiction
    elif not draft.jurisdiction and context.jurisdiction:
        draft.jurisdiction = context.jurisdiction
    if info.urgency:
        draft.urgency = info.urgency
    return draft


def build_case_summary_response(draft: CaseDraft) -> str:
    lines = ["I've started organizing your case information. Here's what I've gathered so far:", ""]

    lines.append(f"**Case Type:** {draft.matter_type}")
    if draft.jurisdiction:
        lines.append(f"**Jurisdiction:** {draft.jurisdiction}")
    lines.append(f"**Urgency:** {draft.urgency.value}")

    if draft.key_facts:
        lines.append("")
        lines.append("**Key Facts Identified:**")
        lines.extend(f"{idx}. {fact}" for idx, fact in enumerate(draft.key_facts, start=1))

    lines.append("")
    lines.append("**Next Steps:**")
    lines.extend(f"• {step}" for step in CASE_NEXT_STEPS)
    lines.append("")
    lines.append("Would you like to continue building your case draft with more specific information?")
    return "\n".join(lines)


class CaseDraftMiddleware(PipelineMiddleware):
    name = "case_draft"

    async def execute(self, messages, context, team_config, env):
        text = latest_message_text(messages)
        if not is_case_draft_request(text):
            return MiddlewareResult(context=context)

        info = extract_case_information(text)
        created = context.case_draft is None
        draft = merge_case_draft(context.case_draft, info, context)
        update_case_draft(context, draft)

        logger.info(
            f"Case draft {'created' if created else 'updated'} for session {context.session_id}: "
            f"matter={draft.matter_type} urgency={draft.urgency.value} facts={len(draft.key_facts)}"
        )

        return MiddlewareResult(
            context=context,
            response=build_case_summary_response(draft),
            should_stop=True,
        )
