"""
Capabilities
============

External collaborators the pipeline calls through PipelineEnv:

- FileStore: uploaded file bytes by file id
- DocumentAnalyzer: file id + question -> AnalysisResult
- PdfRenderer: CaseDraft -> PDF bytes
- Notifier: lawyer review requests to the team

Each has an abstract interface and a default implementation. Every
call made from middleware goes through call_with_timeout().
"""

import asyncio
import logging
import mimetypes
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Dict, Optional, TypeVar

from .config import Settings, get_settings
from .documents import extract_text
from .email_utils import send_lawyer_review_email
from .errors import CapabilityError, CapabilityTimeoutError
from .exporter import DEFAULT_BRAND_COLOR, DEFAULT_ORGANIZATION, build_case_summary_pdf
from .llm_client import analyze_text_with_llm
from .pipeline import PipelineEnv
from .schemas import (
    AnalysisEntities,
    AnalysisResult,
    AnalysisType,
    Attachment,
    CaseDraft,
    LLMMode,
    TeamConfig,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_timeout(awaitable: Awaitable[T], timeout: float, what: str) -> T:
    """
    Await an external call with an upper bound.

    Raises:
        CapabilityTimeoutError: the call did not finish in time
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise CapabilityTimeoutError(f"{what} timed out after {timeout:g}s") from e


# =============================================================================
# Analysis helpers
# =============================================================================

FILES_URL_SEGMENT = "/api/files/"

ANALYSIS_QUESTIONS: Dict[AnalysisType, str] = {
    AnalysisType.LEGAL_DOCUMENT: (
        "Analyze this legal document and identify: 1) Document type/form name, 2) Key parties involved, "
        "3) Important dates and deadlines, 4) Critical terms or obligations, 5) Potential legal issues or "
        "concerns, 6) Required next steps. Focus on information needed for legal intake and matter creation."
    ),
    AnalysisType.CONTRACT: (
        "Analyze this contract and identify: 1) Contract type (employment, lease, service agreement, etc.), "
        "2) Parties involved, 3) Key terms and obligations, 4) Important dates and deadlines, 5) Potential "
        "issues or unfair terms, 6) Termination clauses, 7) Dispute resolution methods. Focus on legal "
        "implications and potential concerns."
    ),
    AnalysisType.GOVERNMENT_FORM: (
        "Analyze this government form and identify: 1) Form name and number, 2) Purpose of the form, "
        "3) Filing deadlines, 4) Required information or documentation, 5) Potential legal implications, "
        "6) Next steps or actions required. Focus on compliance and legal requirements."
    ),
    AnalysisType.MEDICAL_DOCUMENT: (
        "Analyze this medical document and identify: 1) Document type (medical bill, diagnosis, treatment "
        "plan, etc.), 2) Medical condition or injury, 3) Treatment received, 4) Dates of service, 5) Costs "
        "or insurance information, 6) Potential legal implications (personal injury, medical malpractice, "
        "insurance disputes). Focus on legal relevance."
    ),
    AnalysisType.IMAGE: (
        "Analyze this image and identify: 1) What the image shows (accident scene, injury, property damage, "
        "document, etc.), 2) Key details relevant to legal matters, 3) Potential legal implications, 4) Type "
        "of legal case this might support, 5) Additional documentation that might be needed."
    ),
    AnalysisType.RESUME: (
        "Analyze this resume and identify: 1) Professional background and experience, 2) Skills and "
        "qualifications, 3) Employment history, 4) Education and certifications, 5) Potential legal matters "
        "this person might need help with. Focus on legal service needs."
    ),
    AnalysisType.GENERAL: (
        "Analyze this document and identify: 1) Document type and purpose, 2) Key parties and dates, "
        "3) Important terms or requirements, 4) Potential legal implications, 5) Required actions or next "
        "steps. Focus on information needed for legal intake and matter creation."
    ),
}

DESCRIBE_MANUALLY = "Describe the document's contents in the chat so we can continue"


def get_analysis_question(analysis_type: AnalysisType, specific_question: Optional[str] = None) -> str:
    """Prompt for an analysis type; an explicit question always wins"""
    if specific_question:
        return specific_question
    try:
        return ANALYSIS_QUESTIONS[AnalysisType(analysis_type)]
    except (ValueError, KeyError):
        return ANALYSIS_QUESTIONS[AnalysisType.GENERAL]


def extract_file_id(url: str) -> Optional[str]:
    """File id from an attachment URL like /api/files/<id>"""
    if not url or FILES_URL_SEGMENT not in url:
        return None
    file_id = url.split(FILES_URL_SEGMENT, 1)[1].split("?", 1)[0].strip("/")
    return file_id or None


def determine_analysis_type(attachment: Attachment) -> AnalysisType:
    """Pick an analysis type from the file name, then the MIME type"""
    name = (attachment.name or "").lower()
    mime = (attachment.type or "").lower()

    if "contract" in name or "agreement" in name:
        return AnalysisType.CONTRACT
    if "medical" in name or "bill" in name or "diagnosis" in name:
        return AnalysisType.MEDICAL_DOCUMENT
    if "form" in name or "application" in name:
        return AnalysisType.GOVERNMENT_FORM
    if "resume" in name or "cv" in name:
        return AnalysisType.RESUME

    if mime.startswith("image/"):
        return AnalysisType.IMAGE
    if mime == "application/pdf" or mime.startswith("text/"):
        return AnalysisType.LEGAL_DOCUMENT

    return AnalysisType.GENERAL


def analysis_error(summary: str) -> AnalysisResult:
    """Failed analysis: confidence 0 and a user-facing explanation"""
    return AnalysisResult(confidence=0.0, summary=summary, action_items=[DESCRIBE_MANUALLY])


def _str_list(value: Any) -> list:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def coerce_analysis(data: Dict[str, Any]) -> AnalysisResult:
    """Build an AnalysisResult from loosely-shaped model output"""
    entities = data.get("entities") if isinstance(data.get("entities"), dict) else {}
    try:
        confidence = float(data.get("confidence", 0.0))
    except (TypeError, ValueError):
        confidence = 0.0

    return AnalysisResult(
        confidence=min(max(confidence, 0.0), 1.0),
        summary=str(data["summary"]).strip() if data.get("summary") else None,
        entities=AnalysisEntities(
            people=_str_list(entities.get("people")),
            orgs=_str_list(entities.get("orgs")),
            dates=_str_list(entities.get("dates")),
        ),
        key_facts=_str_list(data.get("key_facts")),
        action_items=_str_list(data.get("action_items")),
    )


# =============================================================================
# File store
# =============================================================================

@dataclass
class StoredFile:
    data: bytes
    mime_type: Optional[str]
    name: str


class FileStore(ABC):
    @abstractmethod
    async def read(self, file_id: str) -> Optional[StoredFile]:
        """File bytes for an id, or None if no such file"""


class LocalFileStore(FileStore):
    """
    Files on local disk under upload_dir.

    A file is stored either as <upload_dir>/<file_id> or with an extension,
    <upload_dir>/<file_id>.<ext>; the extension decides the MIME type.
    """

    def __init__(self, upload_dir: str):
        self.root = Path(upload_dir).resolve()

    def _locate(self, file_id: str) -> Optional[Path]:
        if not file_id or os.sep in file_id or file_id.startswith(".") or "/" in file_id:
            return None
        exact = self.root / file_id
        if exact.is_file():
            return exact
        matches = sorted(self.root.glob(f"{file_id}.*"))
        return matches[0] if matches else None

    async def read(self, file_id: str) -> Optional[StoredFile]:
        path = self._locate(file_id)
        if path is None:
            return None
        data = await asyncio.to_thread(path.read_bytes)
        mime, _ = mimetypes.guess_type(path.name)
        return StoredFile(data=data, mime_type=mime, name=path.name)


# =============================================================================
# Document analysis
# =============================================================================

class DocumentAnalyzer(ABC):
    @abstractmethod
    async def analyze(self, file_id: str, question: str) -> Optional[AnalysisResult]:
        ...


class LLMDocumentAnalyzer(DocumentAnalyzer):
    """Extracts file text and asks the LLM for a structured summary"""

    def __init__(self, file_store: FileStore, settings: Optional[Settings] = None):
        self.file_store = file_store
        self.settings = settings or get_settings()

    async def analyze(self, file_id: str, question: str) -> Optional[AnalysisResult]:
        if self.settings.llm_mode == LLMMode.NONE:
            return analysis_error(
                "Automatic document analysis is not available right now."
            )

        stored = await self.file_store.read(file_id)
        if stored is None:
            logger.warning(f"File {file_id} not found for analysis")
            return analysis_error(
                "The uploaded file could not be retrieved from storage for analysis."
            )

        try:
            text = await asyncio.to_thread(
                extract_text, stored.data, stored.mime_type, stored.name, self.settings.max_analysis_chars
            )
        except CapabilityError as e:
            logger.warning(f"Text extraction failed for {file_id}: {e}")
            return analysis_error("The uploaded file appears to be damaged or unreadable.")

        if not text.strip():
            return analysis_error(
                "I couldn't read any text from this file. Scanned documents and photos can't be analyzed automatically yet."
            )

        data = await analyze_text_with_llm(text, question, stored.name)
        if data is None:
            return analysis_error(
                "The file analysis failed due to a technical error. The analysis service may be temporarily unavailable."
            )

        return coerce_analysis(data)


# =============================================================================
# PDF rendering
# =============================================================================

@dataclass
class Brand:
    name: str = DEFAULT_ORGANIZATION
    color: str = DEFAULT_BRAND_COLOR


@dataclass
class PdfRenderResult:
    success: bool
    pdf_bytes: Optional[bytes] = None
    error: Optional[str] = None


class PdfRenderer(ABC):
    @abstractmethod
    async def render(self, case_draft: CaseDraft, client_name: Optional[str], brand: Brand) -> PdfRenderResult:
        ...


class ReportlabPdfRenderer(PdfRenderer):
    async def render(self, case_draft, client_name, brand):
        pdf = await asyncio.to_thread(
            build_case_summary_pdf, case_draft, client_name, brand.name, brand.color
        )
        if not pdf:
            return PdfRenderResult(success=False, error="The PDF came out empty.")
        return PdfRenderResult(success=True, pdf_bytes=pdf)


# =============================================================================
# Notifications
# =============================================================================

class Notifier(ABC):
    @abstractmethod
    async def send_lawyer_review(
        self,
        team_config: TeamConfig,
        matter_type: str,
        complexity: Optional[str] = None,
        urgency: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> bool:
        ...


class EmailNotifier(Notifier):
    """Emails the team owner; logs instead when SMTP is not configured"""

    async def send_lawyer_review(self, team_config, matter_type, complexity=None, urgency=None, session_id=None):
        if not team_config.owner_email:
            logger.warning(f"No owner email for team {team_config.id or team_config.slug}; review request not sent")
            return False

        return await asyncio.to_thread(
            send_lawyer_review_email,
            team_config.owner_email,
            team_config.name or DEFAULT_ORGANIZATION,
            matter_type,
            urgency,
            complexity,
            session_id,
        )


def build_default_env(settings: Optional[Settings] = None) -> PipelineEnv:
    """PipelineEnv wired with the default capability implementations"""
    settings = settings or get_settings()
    file_store = LocalFileStore(settings.upload_dir)
    return PipelineEnv(
        settings=settings,
        file_store=file_store,
        document_analyzer=LLMDocumentAnalyzer(file_store, settings),
        pdf_renderer=ReportlabPdfRenderer(),
        notifier=EmailNotifier(),
    )
