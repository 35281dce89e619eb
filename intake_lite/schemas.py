"""
Pydantic Schemas for Intake Service
===================================

Stable schemas for conversation state, team configuration, tool calls
and the HTTP surface. All of them round-trip through JSON so the context
can live in a key-value store between turns.

Context lifecycle:
- Created with defaults on first reference to a (session_id, team_id) pair
- Loaded, updated and run through the pipeline on every turn
- Saved back with a rolling TTL (expiry is the only removal path)
"""

import time
from typing import List, Optional, Dict, Any, Union, Literal, Annotated
from pydantic import BaseModel, Field
from enum import Enum


# =============================================================================
# ENUMS
# =============================================================================

class LLMMode(str, Enum):
    """LLM provider used for document analysis"""
    NONE = "none"
    OPENROUTER = "openrouter"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class UserIntent(str, Enum):
    """What the user appears to want, recomputed every turn"""
    INTAKE = "intake"
    LAWYER_CONTACT = "lawyer_contact"
    GENERAL_INFO = "general_info"
    UNCLEAR = "unclear"


class ConversationPhase(str, Enum):
    """
    Derived view of how far the intake has progressed.

    Never set directly: always computed from contact info, established
    matters and message count (see context_manager.derive_phase).
    """
    INITIAL = "initial"
    GATHERING_INFO = "gathering_info"
    QUALIFYING = "qualifying"
    CONTACT_COLLECTION = "contact_collection"
    COMPLETED = "completed"


class SafetyFlag(str, Enum):
    """Tags appended to ConversationContext.safety_flags"""
    JAILBREAK_ATTEMPT = "jailbreak_attempt"
    NON_LEGAL_REQUEST = "non_legal_request"
    ABUSIVE_CONTENT = "abusive_content"
    SPAM_CONTENT = "spam_content"
    OUT_OF_JURISDICTION = "out_of_jurisdiction"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CaseDraftStatus(str, Enum):
    DRAFT = "draft"
    FINAL = "final"


class AnalysisType(str, Enum):
    """Analysis flavour picked from file name / MIME type"""
    CONTRACT = "contract"
    MEDICAL_DOCUMENT = "medical_document"
    GOVERNMENT_FORM = "government_form"
    RESUME = "resume"
    IMAGE = "image"
    LEGAL_DOCUMENT = "legal_document"
    GENERAL = "general"


class JurisdictionType(str, Enum):
    NATIONAL = "national"
    STATE = "state"
    MULTI_STATE = "multi_state"
    COUNTY = "county"
    CITY = "city"


# =============================================================================
# CONVERSATION INPUT
# =============================================================================

class Message(BaseModel):
    """Single chat message"""
    role: MessageRole
    content: str = ""


class Attachment(BaseModel):
    """File attached to the current turn"""
    name: str = ""
    size: int = 0
    type: str = ""
    url: str


# =============================================================================
# CONVERSATION CONTEXT
# =============================================================================

class ContactInfo(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None


class Party(BaseModel):
    role: str
    name: Optional[str] = None
    relationship: Optional[str] = None


class CaseDraft(BaseModel):
    """In-progress structured summary of the client's situation"""
    matter_type: str
    key_facts: List[str] = Field(default_factory=list)
    timeline: str = ""
    parties: List[Party] = Field(default_factory=list)
    documents: List[str] = Field(default_factory=list)
    evidence: List[str] = Field(default_factory=list)
    jurisdiction: str = ""
    urgency: Urgency = Urgency.MEDIUM
    created_at: str
    updated_at: str
    status: CaseDraftStatus = CaseDraftStatus.DRAFT


class DocumentChecklist(BaseModel):
    matter_type: str
    required: List[str] = Field(default_factory=list)
    provided: List[str] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)
    last_updated: str


class GeneratedPDF(BaseModel):
    filename: str
    size: int
    generated_at: str
    matter_type: str


class AnalysisEntities(BaseModel):
    people: List[str] = Field(default_factory=list)
    orgs: List[str] = Field(default_factory=list)
    dates: List[str] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    """
    Output of the document analysis capability.

    confidence == 0 marks a failed or partial analysis; summary then
    carries a user-facing explanation.
    """
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    summary: Optional[str] = None
    entities: AnalysisEntities = Field(default_factory=AnalysisEntities)
    key_facts: List[str] = Field(default_factory=list)
    action_items: List[str] = Field(default_factory=list)


class FileAnalysisEntry(BaseModel):
    """Analysis of one uploaded file"""
    file_id: str
    file_name: str
    file_type: str = ""
    analysis_type: AnalysisType = AnalysisType.GENERAL
    confidence: float = 0.0
    summary: Optional[str] = None
    entities: AnalysisEntities = Field(default_factory=AnalysisEntities)
    key_facts: List[str] = Field(default_factory=list)
    action_items: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class FileAnalysisRecord(BaseModel):
    status: Literal["completed", "failed"]
    files: List[Attachment] = Field(default_factory=list)
    results: List[FileAnalysisEntry] = Field(default_factory=list)
    started_at: str
    processed_at: str
    total_files: int = 0


def now_ms() -> int:
    """Current time in epoch milliseconds"""
    return int(time.time() * 1000)


class ConversationContext(BaseModel):
    """
    Mutable per-(session_id, team_id) state record.

    Invariants:
    - established_matters, safety_flags, processed_files only grow
    - contact_info fields are sticky once non-empty
    - conversation_phase is always derivable from contact_info,
      established_matters and message_count
    - current_attachments is None after every pipeline run
    """
    session_id: str
    team_id: str
    established_matters: List[str] = Field(default_factory=list)
    jurisdiction: Optional[str] = None
    safety_flags: List[str] = Field(default_factory=list)
    user_intent: UserIntent = UserIntent.UNCLEAR
    conversation_phase: ConversationPhase = ConversationPhase.INITIAL
    last_updated: int = Field(default_factory=now_ms)
    message_count: int = Field(default=0, ge=0)

    # Lead qualification
    urgency_level: Optional[str] = None
    timeline: Optional[str] = None
    has_previous_lawyer: Optional[bool] = None

    contact_info: ContactInfo = Field(default_factory=ContactInfo)

    # Case building and documents
    case_draft: Optional[CaseDraft] = None
    document_checklist: Optional[DocumentChecklist] = None
    generated_pdf: Optional[GeneratedPDF] = None
    file_analysis: Optional[FileAnalysisRecord] = None
    processed_files: List[str] = Field(default_factory=list)

    # Consumed once per pipeline run
    current_attachments: Optional[List[Attachment]] = None

    def add_matter(self, matter: str) -> bool:
        """Add a matter type if not present. Returns True if added."""
        if matter and matter not in self.established_matters:
            self.established_matters.append(matter)
            return True
        return False

    def add_safety_flag(self, flag: str) -> None:
        self.safety_flags.append(flag)

    def mark_file_processed(self, file_id: str) -> bool:
        if file_id in self.processed_files:
            return False
        self.processed_files.append(file_id)
        return True

    def touch(self) -> None:
        self.last_updated = now_ms()


# =============================================================================
# TEAM CONFIGURATION
# =============================================================================

class JurisdictionConfig(BaseModel):
    """
    Geographic scope a team serves.

    Deliberately lenient: shape problems are reported by
    locations.validate_jurisdiction_config so that the validator can fail open.
    """
    type: Optional[str] = None
    description: Optional[str] = None
    supported_states: List[str] = Field(default_factory=list)
    supported_countries: List[str] = Field(default_factory=list)
    supported_counties: List[str] = Field(default_factory=list)
    supported_cities: List[str] = Field(default_factory=list)
    allow_out_of_jurisdiction: bool = True
    out_of_jurisdiction_message: Optional[str] = None
    require_location: bool = False


class TeamConfig(BaseModel):
    """Read-only team configuration"""
    id: Optional[str] = None
    slug: Optional[str] = None
    name: Optional[str] = None
    jurisdiction: Optional[JurisdictionConfig] = None
    available_services: List[str] = Field(default_factory=list)
    owner_email: Optional[str] = None
    brand_color: str = "#334e68"


# =============================================================================
# TOOL CALLS
# =============================================================================

class CollectContactInfoArgs(BaseModel):
    tool: Literal["collect_contact_info"] = "collect_contact_info"
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    location: Optional[str] = None


class AnalyzeDocumentArgs(BaseModel):
    tool: Literal["analyze_document"] = "analyze_document"
    file_id: str = Field(..., min_length=1)
    analysis_type: AnalysisType = AnalysisType.GENERAL
    specific_question: Optional[str] = None


class RequestLawyerReviewArgs(BaseModel):
    tool: Literal["request_lawyer_review"] = "request_lawyer_review"
    matter_type: str = Field(..., min_length=1)
    complexity: Optional[str] = None
    urgency: Optional[str] = None


ToolCallArgs = Annotated[
    Union[CollectContactInfoArgs, AnalyzeDocumentArgs, RequestLawyerReviewArgs],
    Field(discriminator="tool"),
]


class ToolResponse(BaseModel):
    """
    Result of a tool handler.

    success=False with error_type="validation" means the agent should relay
    message to the user and not advance the conversation.
    """
    success: bool
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
    error_type: Optional[str] = None


# =============================================================================
# HTTP API
# =============================================================================

class IntakeMessageRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    team_id: str = Field(..., min_length=1)
    messages: List[Message] = Field(default_factory=list)
    attachments: List[Attachment] = Field(default_factory=list)
    team_config: TeamConfig = Field(default_factory=TeamConfig)


class IntakeMessageResponse(BaseModel):
    response: Optional[str] = None
    needs_agent: bool
    middleware_used: List[str] = Field(default_factory=list)
    conversation_phase: ConversationPhase
    user_intent: UserIntent
    safety_flags: List[str] = Field(default_factory=list)


class ToolCallRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    team_id: str = Field(..., min_length=1)
    arguments: Dict[str, Any] = Field(default_factory=dict)
    team_config: TeamConfig = Field(default_factory=TeamConfig)


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    context_store: str
    warnings: List[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
