"""
Conversation Context Manager
============================

Per-turn bookkeeping for ConversationContext. update_context() runs once
per turn, before the pipeline, and recomputes every derived field.

Phase and intent are pure functions of the context snapshot; they are
never stored as transitions.
"""

import logging
from datetime import datetime
from typing import List, Optional

from .contacts import extract_contact_info, is_placeholder
from .locations import validate_location
from .rules import (
    LAWYER_CONTACT_PATTERNS,
    GENERAL_INFO_PATTERNS,
    INTAKE_PATTERNS,
    matches_any,
    extract_legal_matters,
    find_us_state,
)
from .schemas import (
    CaseDraft,
    ContactInfo,
    ConversationContext,
    ConversationPhase,
    DocumentChecklist,
    Message,
    MessageRole,
    UserIntent,
)

logger = logging.getLogger(__name__)


def create_default_context(session_id: str, team_id: str) -> ConversationContext:
    """Fresh context for a (session, team) pair seen for the first time"""
    return ConversationContext(session_id=session_id, team_id=team_id)


def user_messages(messages: List[Message]) -> List[Message]:
    return [m for m in messages if m.role == MessageRole.USER]


def latest_user_message(messages: List[Message]) -> Optional[Message]:
    users = user_messages(messages)
    return users[-1] if users else None


def latest_message_text(messages: List[Message]) -> str:
    """Content of the last message in the list, or ""."""
    if not messages:
        return ""
    return messages[-1].content or ""


# =============================================================================
# Derivations
# =============================================================================

def derive_phase(context: ConversationContext) -> ConversationPhase:
    """
    Conversation phase as a pure function of contact info, matters and
    message count.
    """
    contact = context.contact_info
    has_matter = len(context.established_matters) > 0

    if has_matter and contact.name and contact.email and contact.phone and contact.location:
        return ConversationPhase.COMPLETED

    if has_matter and contact.name and contact.email:
        return ConversationPhase.CONTACT_COLLECTION

    if has_matter and not contact.name:
        return ConversationPhase.QUALIFYING

    if context.message_count > 2:
        return ConversationPhase.GATHERING_INFO

    return ConversationPhase.INITIAL


def determine_intent(text: str, context: ConversationContext) -> UserIntent:
    """Classify what the user is after from their text and known matters"""
    if matches_any(text, LAWYER_CONTACT_PATTERNS):
        return UserIntent.LAWYER_CONTACT

    if matches_any(text, GENERAL_INFO_PATTERNS):
        return UserIntent.GENERAL_INFO

    if context.established_matters:
        return UserIntent.INTAKE

    if matches_any(text, INTAKE_PATTERNS):
        return UserIntent.INTAKE

    return UserIntent.UNCLEAR


# =============================================================================
# Mutations
# =============================================================================

def merge_contact_info(context: ConversationContext, info: ContactInfo) -> ConversationContext:
    """
    Sticky merge: a non-empty, non-placeholder value overwrites its field;
    empty or placeholder values never clear an existing one.
    """
    for field_name in ("name", "email", "phone", "location"):
        value = getattr(info, field_name)
        if value and value.strip() and not is_placeholder(value):
            setattr(context.contact_info, field_name, value.strip())
    return context


def mentioned_state(text: str) -> Optional[str]:
    """
    US state named in a message.

    Full state names match anywhere. Two-letter codes only count inside a
    stated location ("I live in Charlotte, NC"); "OK", "HI" and "ME" are
    ordinary words.
    """
    state = find_us_state(text)
    if state:
        return state
    location = extract_contact_info(text).location
    return validate_location(location).state_name if location else None


def update_context(context: ConversationContext, messages: List[Message]) -> ConversationContext:
    """
    Fold one turn's messages into the context.

    - message_count increases by one per processed turn
    - matters and jurisdiction come from user messages only
    - contact info is not touched here; only validated paths (the
      contact_info middleware, the collect_contact_info tool) write it
    - intent and phase are recomputed from the result
    """
    context.message_count += 1

    user_text = " ".join(m.content for m in user_messages(messages) if m.content)
    latest = latest_user_message(messages)
    latest_text = latest.content if latest else ""

    for matter in extract_legal_matters(user_text):
        if context.add_matter(matter):
            logger.debug(f"Established matter {matter} for session {context.session_id}")

    state = mentioned_state(latest_text)
    if state:
        context.jurisdiction = state

    context.user_intent = determine_intent(latest_text, context)
    context.conversation_phase = derive_phase(context)
    context.touch()
    return context


def update_case_draft(context: ConversationContext, draft: CaseDraft) -> ConversationContext:
    draft.updated_at = datetime.utcnow().isoformat()
    context.case_draft = draft
    context.touch()
    return context


def update_document_checklist(context: ConversationContext, checklist: DocumentChecklist) -> ConversationContext:
    checklist.last_updated = datetime.utcnow().isoformat()
    context.document_checklist = checklist
    context.touch()
    return context


def add_document_to_checklist(context: ConversationContext, document_type: str) -> ConversationContext:
    """Mark a document as provided; no-op without a checklist"""
    checklist = context.document_checklist
    if checklist is None:
        return context

    if document_type not in checklist.provided:
        checklist.provided.append(document_type)
    checklist.missing = [doc for doc in checklist.missing if doc != document_type]
    return update_document_checklist(context, checklist)
