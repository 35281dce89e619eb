"""
Middleware Package
==================

Conversation pipeline stages. Each one inspects the latest message and
the conversation context and either passes through, updates the context,
or answers the turn.
"""

from .content_policy import ContentPolicyFilter, check_for_violation
from .jurisdiction import JurisdictionValidator
from .business_scope import BusinessScopeValidator
from .contact_info import ContactInfoMiddleware
from .file_analysis import FileAnalysisMiddleware
from .case_draft import CaseDraftMiddleware
from .document_checklist import DocumentChecklistMiddleware
from .pdf_generation import PdfGenerationMiddleware

__all__ = [
    "ContentPolicyFilter",
    "check_for_violation",
    "JurisdictionValidator",
    "BusinessScopeValidator",
    "ContactInfoMiddleware",
    "FileAnalysisMiddleware",
    "CaseDraftMiddleware",
    "DocumentChecklistMiddleware",
    "PdfGenerationMiddleware",
]
