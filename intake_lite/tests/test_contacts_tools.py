"""
Tests for Contact Validation & Tool Dispatch
============================================

Tests:
- Validation order (first failing check wins)
- Advisory checks (phone, jurisdiction, contact method) never block
- Tool argument validation and the three handlers
"""

import pytest

from intake_lite.contacts import (
    INVALID_EMAIL_MESSAGE,
    INVALID_LOCATION_MESSAGE,
    INVALID_NAME_MESSAGE,
    MISSING_NAME_MESSAGE,
    PLACEHOLDER_MESSAGE,
    extract_contact_info,
    validate_contact_info,
    validate_phone,
)
from intake_lite.schemas import AnalysisResult, AnalysisType, ContactInfo, ConversationContext, ConversationPhase
from intake_lite.tools import dispatch_tool_call, suggest_matter_type

from conftest import FakeAnalyzer


class TestValidateContactInfo:
    """Tests for validate_contact_info"""

    def test_placeholder_checked_first(self):
        contact = ContactInfo(name="J", email="[USER_EMAIL]", phone="704-555-0199")
        result = validate_contact_info(contact)
        assert not result.is_valid
        assert result.message == PLACEHOLDER_MESSAGE

    def test_invalid_name(self):
        result = validate_contact_info(ContactInfo(name="J", email="jane@example.com"))
        assert result.message == INVALID_NAME_MESSAGE

    def test_invalid_email(self):
        result = validate_contact_info(ContactInfo(name="Jane Doe", email="jane@"))
        assert result.message == INVALID_EMAIL_MESSAGE

    def test_invalid_phone_only_warns(self):
        result = validate_contact_info(ContactInfo(name="Jane Doe", phone="555-0100"))
        assert result.is_valid
        assert any(w.startswith("invalid_phone") for w in result.warnings)

    def test_invalid_location(self):
        result = validate_contact_info(ContactInfo(name="Jane Doe", email="jane@example.com", location="zz"))
        assert result.message == INVALID_LOCATION_MESSAGE

    def test_out_of_jurisdiction_only_warns(self, nc_team):
        contact = ContactInfo(name="Jane Doe", email="jane@example.com", location="Austin, TX")
        result = validate_contact_info(contact, nc_team)
        assert result.is_valid
        assert "out_of_jurisdiction" in result.warnings

    def test_name_required(self):
        result = validate_contact_info(ContactInfo(email="jane@example.com"))
        assert result.message == MISSING_NAME_MESSAGE

    def test_name_alone_is_enough(self):
        result = validate_contact_info(ContactInfo(name="Jane Doe"))
        assert result.is_valid
        assert "no_contact_method" in result.warnings
        assert result.message.startswith("Thank you Jane Doe!")


class TestPhoneAndExtraction:
    """Tests for validate_phone and extract_contact_info"""

    def test_valid_phone(self):
        assert validate_phone("(704) 555-0199") is None
        assert validate_phone("+1 704 555 0199") is None

    def test_placeholder_area_code(self):
        assert validate_phone("555-555-5555") is not None

    def test_letters_rejected(self):
        assert validate_phone("704-CALL-NOW") is not None

    def test_extracts_all_fields(self):
        info = extract_contact_info(
            "My name is Jane Doe, email jane@example.com, phone 555-0100, I live in Charlotte, NC"
        )
        assert info == ContactInfo(
            name="Jane Doe", email="jane@example.com", phone="555-0100", location="Charlotte, NC"
        )


class TestToolDispatch:
    """Tests for dispatch_tool_call"""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, env, team):
        response = await dispatch_tool_call("create_matter", {}, env, team)
        assert not response.success
        assert response.error_type == "unknown_tool"

    @pytest.mark.asyncio
    async def test_malformed_arguments(self, env, team):
        response = await dispatch_tool_call("request_lawyer_review", {"complexity": "high"}, env, team)
        assert not response.success
        assert response.error_type == "invalid_arguments"
        assert "matter_type" in response.message

    @pytest.mark.asyncio
    async def test_collect_contact_info_merges_into_context(self, env, team):
        context = ConversationContext(session_id="s", team_id="t", established_matters=["Family Law"])
        response = await dispatch_tool_call(
            "collect_contact_info",
            {"name": "Jane Doe", "email": "jane@example.com", "phone": "704-555-0199"},
            env, team, context,
        )
        assert response.success
        assert response.data["contact_info"]["email"] == "jane@example.com"
        assert context.contact_info.name == "Jane Doe"
        assert context.conversation_phase == ConversationPhase.CONTACT_COLLECTION

    @pytest.mark.asyncio
    async def test_collect_contact_info_validation_error(self, env, team):
        context = ConversationContext(session_id="s", team_id="t")
        response = await dispatch_tool_call(
            "collect_contact_info", {"email": "jane@example.com"}, env, team, context
        )
        assert not response.success
        assert response.error_type == "validation"
        assert response.message == MISSING_NAME_MESSAGE
        assert context.contact_info.email is None

    @pytest.mark.asyncio
    async def test_analyze_document_suggests_matter(self, env, team, analyzer):
        response = await dispatch_tool_call(
            "analyze_document", {"file_id": "f1", "analysis_type": "contract"}, env, team
        )
        assert response.success
        assert response.data["suggested_matter_type"] == "Contract Review"
        assert "create a legal matter for this contract review case" in response.message
        assert analyzer.calls[0][0] == "f1"

    @pytest.mark.asyncio
    async def test_analyze_document_zero_confidence(self, env, team):
        env.document_analyzer = FakeAnalyzer(result=AnalysisResult(confidence=0.0, summary="File not found."))
        response = await dispatch_tool_call("analyze_document", {"file_id": "f1"}, env, team)
        assert not response.success
        assert response.error_type == "validation"
        assert response.message == "File not found."

    @pytest.mark.asyncio
    async def test_request_lawyer_review_notifies(self, env, nc_team, notifier):
        context = ConversationContext(session_id="sess-9", team_id="team-1")
        response = await dispatch_tool_call(
            "request_lawyer_review",
            {"matter_type": "Employment Law", "complexity": "high"},
            env, nc_team, context,
        )
        assert response.success
        assert response.data["notified"] is True
        assert notifier.calls == [{
            "team": "team-1",
            "matter_type": "Employment Law",
            "complexity": "high",
            "urgency": None,
            "session_id": "sess-9",
        }]

    def test_suggest_matter_type(self):
        assert suggest_matter_type(AnalysisType.MEDICAL_DOCUMENT, None) == "Personal Injury"
        assert suggest_matter_type(AnalysisType.IMAGE, "Photo of property damage") == "Property Law"
        assert suggest_matter_type(AnalysisType.GENERAL, "A letter") == "General Consultation"
