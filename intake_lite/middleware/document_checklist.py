"""
Document Checklist Middleware
=============================

Answers "what documents do I need" style requests with a checklist for
the client's matter and records it in context.document_checklist.
"""

import logging
from datetime import datetime
from typing import Dict, List, NamedTuple

from ..context_manager import latest_message_text, update_document_checklist
from ..rules import (
    CASE_MATTER_KEYWORDS,
    DOCUMENT_CHECKLIST_KEYWORDS,
    GENERAL_CONSULTATION,
    contains_keyword,
)
from ..schemas import ConversationContext, DocumentChecklist, Message
from ..pipeline import PipelineMiddleware, MiddlewareResult

logger = logging.getLogger(__name__)


class RequiredDocument(NamedTuple):
    id: str
    name: str
    description: str
    required: bool = True


BASE_DOCUMENTS: List[RequiredDocument] = [
    RequiredDocument("identification", "Government ID", "Driver's license, passport, or state ID"),
    RequiredDocument("contact_info", "Contact Information", "Current address, phone number, email"),
]

MATTER_DOCUMENTS: Dict[str, List[RequiredDocument]] = {
    "family law": [
        RequiredDocument("marriage_certificate", "Marriage Certificate", "Copy of marriage certificate"),
        RequiredDocument("children_birth_certificates", "Children's Birth Certificates",
                         "Birth certificates for all children"),
        RequiredDocument("financial_documents", "Financial Documents", "Bank statements, tax returns, pay stubs"),
        RequiredDocument("property_documents", "Property Documents",
                         "Deeds, mortgage statements, property appraisals", required=False),
    ],
    "employment law": [
        RequiredDocument("employment_contract", "Employment Contract", "Original or copy of employment contract"),
        RequiredDocument("pay_stubs", "Pay Stubs", "Recent pay stubs showing income and deductions"),
        RequiredDocument("termination_letter", "Termination Letter", "Copy of termination letter or notice"),
        RequiredDocument("performance_reviews", "Performance Reviews",
                         "Copies of performance reviews or evaluations", required=False),
        RequiredDocument("benefits_info", "Benefits Information",
                         "Information about health insurance, retirement plans, etc.", required=False),
    ],
    "personal injury": [
        RequiredDocument("medical_records", "Medical Records", "All medical records related to the injury"),
        RequiredDocument("police_report", "Police Report", "Copy of police report if applicable"),
        RequiredDocument("insurance_info", "Insurance Information",
                         "Insurance policy information and correspondence"),
        RequiredDocument("witness_statements", "Witness Statements", "Statements from any witnesses",
                         required=False),
        RequiredDocument("photos_evidence", "Photos and Evidence",
                         "Photos of injuries, accident scene, property damage", required=False),
    ],
    "business law": [
        RequiredDocument("business_formation_docs", "Business Formation Documents",
                         "Articles of incorporation, operating agreements, etc."),
        RequiredDocument("contracts_agreements", "Contracts and Agreements",
                         "Relevant business contracts and agreements"),
        RequiredDocument("financial_records", "Financial Records", "Business financial statements, tax returns"),
        RequiredDocument("correspondence", "Correspondence", "Relevant emails, letters, and communications",
                         required=False),
    ],
}

CHECKLIST_NEXT_STEPS = [
    "Gather the required documents first",
    "Organize documents in a logical order",
    "Make copies of important originals",
    "Contact me if you need help obtaining any documents",
]


def determine_matter_type(messages: List[Message], context: ConversationContext) -> str:
    """Case draft first, then established matters, then the conversation itself"""
    if context.case_draft and context.case_draft.matter_type:
        return context.case_draft.matter_type

    if context.established_matters:
        return context.established_matters[0]

    conversation = " ".join(m.content for m in messages if m.content)
    for matter, keywords in CASE_MATTER_KEYWORDS:
        if contains_keyword(conversation, keywords):
            return matter

    return GENERAL_CONSULTATION


def documents_for(matter_type: str) -> List[RequiredDocument]:
    return BASE_DOCUMENTS + MATTER_DOCUMENTS.get(matter_type.lower(), [])


def build_checklist_response(matter_type: str, documents: List[RequiredDocument]) -> str:
    required = [doc for doc in documents if doc.required]
    optional = [doc for doc in documents if not doc.required]

    lines = [
        f"I've prepared a document checklist for your {matter_type} case. Here are the documents you'll need:",
        "",
    ]

    if required:
        lines.append("**Required Documents:**")
        lines.extend(f"{idx}. **{doc.name}** - {doc.description}" for idx, doc in enumerate(required, start=1))

    if optional:
        lines.append("")
        lines.append("**Optional Documents (helpful but not required):**")
        lines.extend(f"{idx}. **{doc.name}** - {doc.description}" for idx, doc in enumerate(optional, start=1))

    lines.append("")
    lines.append("**Next Steps:**")
    lines.extend(f"• {step}" for step in CHECKLIST_NEXT_STEPS)
    lines.append("")
    lines.append("Would you like me to help you with any specific document requirements or case preparation?")
    return "\n".join(lines)


class DocumentChecklistMiddleware(PipelineMiddleware):
    name = "document_checklist"

    async def execute(self, messages, context, team_config, env):
        text = latest_message_text(messages)
        if not contains_keyword(text, DOCUMENT_CHECKLIST_KEYWORDS):
            return MiddlewareResult(context=context)

        matter_type = determine_matter_type(messages, context)
        documents = documents_for(matter_type)
        required_names = [doc.name for doc in documents if doc.required]

        # Documents already marked provided stay provided across rebuilds
        provided: List[str] = []
        if context.document_checklist and context.document_checklist.matter_type == matter_type:
            provided = [doc for doc in context.document_checklist.provided if doc in required_names]

        checklist = DocumentChecklist(
            matter_type=matter_type,
            required=required_names,
            provided=provided,
            missing=[name for name in required_names if name not in provided],
            last_updated=datetime.utcnow().isoformat(),
        )
        update_document_checklist(context, checklist)

        logger.info(
            f"Document checklist for {matter_type} built for session {context.session_id}: "
            f"{len(checklist.missing)} missing of {len(required_names)} required"
        )

        return MiddlewareResult(
            context=context,
            response=build_checklist_response(matter_type, documents),
            should_stop=True,
        )
