"""
Shared fixtures for intake tests
================================

Fake capabilities record their calls so tests can assert on what the
pipeline asked for without touching the network, disk or SMTP.
"""

import asyncio
from typing import List, Optional

import pytest

from intake_lite.capabilities import (
    Brand,
    DocumentAnalyzer,
    Notifier,
    PdfRenderer,
    PdfRenderResult,
)
from intake_lite.config import Settings
from intake_lite.context_store import MemoryContextStore
from intake_lite.pipeline import PipelineEnv
from intake_lite.schemas import (
    AnalysisEntities,
    AnalysisResult,
    ConversationContext,
    JurisdictionConfig,
    Message,
    MessageRole,
    TeamConfig,
)


# =============================================================================
# Fake capabilities
# =============================================================================

class FakeAnalyzer(DocumentAnalyzer):
    def __init__(self, result: Optional[AnalysisResult] = None, error: Optional[Exception] = None,
                 delay: float = 0.0):
        self.result = result
        self.error = error
        self.delay = delay
        self.calls: List[tuple] = []

    async def analyze(self, file_id, question):
        self.calls.append((file_id, question))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


class FakeRenderer(PdfRenderer):
    def __init__(self, result: Optional[PdfRenderResult] = None, error: Optional[Exception] = None):
        self.result = result or PdfRenderResult(success=True, pdf_bytes=b"%PDF-1.4 fake")
        self.error = error
        self.calls: List[tuple] = []

    async def render(self, case_draft, client_name, brand: Brand):
        self.calls.append((case_draft, client_name, brand))
        if self.error:
            raise self.error
        return self.result


class FakeNotifier(Notifier):
    def __init__(self, result: bool = True):
        self.result = result
        self.calls: List[dict] = []

    async def send_lawyer_review(self, team_config, matter_type, complexity=None, urgency=None, session_id=None):
        self.calls.append({
            "team": team_config.id,
            "matter_type": matter_type,
            "complexity": complexity,
            "urgency": urgency,
            "session_id": session_id,
        })
        return self.result


def good_analysis(**overrides) -> AnalysisResult:
    data = dict(
        confidence=0.9,
        summary="Employment contract between Jane Doe and Acme Corp.",
        entities=AnalysisEntities(people=["Jane Doe"], orgs=["Acme Corp"], dates=["2024-01-15"]),
        key_facts=["Two-year term", "Non-compete clause"],
        action_items=["Review the non-compete clause"],
    )
    data.update(overrides)
    return AnalysisResult(**data)


def user(content: str) -> Message:
    return Message(role=MessageRole.USER, content=content)


def assistant(content: str) -> Message:
    return Message(role=MessageRole.ASSISTANT, content=content)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def settings():
    return Settings(
        context_store="memory",
        file_analysis_timeout=0.5,
        capability_timeout=0.5,
        _env_file=None,
    )


@pytest.fixture
def analyzer():
    return FakeAnalyzer(result=good_analysis())


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def env(settings, analyzer, renderer, notifier):
    return PipelineEnv(
        settings=settings,
        document_analyzer=analyzer,
        pdf_renderer=renderer,
        notifier=notifier,
    )


@pytest.fixture
def context():
    return ConversationContext(session_id="sess-1", team_id="team-1")


@pytest.fixture
def team():
    return TeamConfig(id="team-1", slug="nc-legal", name="NC Legal Aid")


@pytest.fixture
def nc_team():
    """Team that only serves North Carolina"""
    return TeamConfig(
        id="team-1",
        slug="nc-legal",
        name="NC Legal Aid",
        owner_email="owner@nclegal.example",
        jurisdiction=JurisdictionConfig(
            type="state",
            description="North Carolina",
            supported_states=["North Carolina"],
        ),
    )


@pytest.fixture
def store():
    return MemoryContextStore(ttl_seconds=3600)
