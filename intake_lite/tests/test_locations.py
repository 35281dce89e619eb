"""
Tests for Location & Jurisdiction
=================================

Tests:
- validate_location parsing
- jurisdiction config validation
- is_location_supported matching rules
- JurisdictionValidator middleware (advisory only, warns once)
"""

import pytest

from intake_lite.locations import (
    LOCATION_REQUEST,
    is_location_supported,
    jurisdiction_warning,
    validate_jurisdiction_config,
    validate_location,
)
from intake_lite.middleware.jurisdiction import JurisdictionValidator
from intake_lite.rules import find_us_state
from intake_lite.schemas import ConversationContext, JurisdictionConfig, TeamConfig

from conftest import user


def nc_config(**kwargs) -> JurisdictionConfig:
    data = dict(type="state", description="North Carolina", supported_states=["North Carolina"])
    data.update(kwargs)
    return JurisdictionConfig(**data)


class TestValidateLocation:
    """Tests for validate_location"""

    def test_city_and_state_code(self):
        info = validate_location("Charlotte, NC")
        assert info.is_valid
        assert info.state == "NC"
        assert info.city == "Charlotte"
        assert info.state_name == "North Carolina"

    def test_full_state_name(self):
        info = validate_location("Texas")
        assert info.is_valid
        assert info.state == "TX"

    def test_multi_word_state_in_sentence(self):
        info = validate_location("Raleigh North Carolina")
        assert info.state == "NC"
        assert info.city == "Raleigh"

    def test_country_name(self):
        info = validate_location("Canada")
        assert info.is_valid
        assert info.country == "CA"

    def test_lowercase_code_inside_text_is_not_a_state(self):
        """'in' and 'or' are words, not Indiana and Oregon"""
        info = validate_location("somewhere in or around town")
        assert not info.is_valid

    def test_too_short(self):
        assert not validate_location("x").is_valid
        assert not validate_location("").is_valid


class TestFindUsState:
    """Tests for rules.find_us_state"""

    def test_state_name(self):
        assert find_us_state("I was fired for refusing unsafe work in Texas") == "Texas"

    def test_bare_codes_are_not_states(self):
        assert find_us_state("I live in Charlotte, NC") is None
        assert find_us_state("OK thanks") is None
        assert find_us_state("HI") is None

    def test_no_state(self):
        assert find_us_state("I need help with my divorce") is None


class TestJurisdictionConfig:
    """Tests for validate_jurisdiction_config"""

    def test_valid_state_config(self):
        ok, errors = validate_jurisdiction_config(nc_config())
        assert ok
        assert errors == []

    def test_missing_type_and_description(self):
        ok, errors = validate_jurisdiction_config(JurisdictionConfig())
        assert not ok
        assert len(errors) == 2

    def test_multi_state_needs_two_states(self):
        ok, _ = validate_jurisdiction_config(nc_config(type="multi_state"))
        assert not ok


class TestIsLocationSupported:
    """Tests for is_location_supported"""

    def test_national_accepts_everything(self):
        config = JurisdictionConfig(type="national", description="United States")
        assert is_location_supported("Anchorage, AK", config)

    def test_state_name_supported(self):
        assert is_location_supported("North Carolina", nc_config())

    def test_state_code_location_matches_named_state(self):
        assert is_location_supported("Charlotte, NC", nc_config())

    def test_state_code_config(self):
        assert is_location_supported("Durham North Carolina", nc_config(supported_states=["NC"]))

    def test_other_state_not_supported(self):
        assert not is_location_supported("Texas", nc_config())

    def test_all_wildcard(self):
        assert is_location_supported("Texas", nc_config(supported_states=["all"]))

    def test_us_country_accepts_states_only_without_state_list(self):
        config = JurisdictionConfig(type="national", description="US")
        assert is_location_supported("Texas", config)

        city_config = JurisdictionConfig(
            type="city", description="Charlotte", supported_cities=["Charlotte"], supported_countries=["US"]
        )
        assert is_location_supported("Austin, TX", city_config)

        state_config = nc_config(supported_countries=["US"])
        assert not is_location_supported("Austin, TX", state_config)

    def test_city_word_match(self):
        config = JurisdictionConfig(type="city", description="Charlotte", supported_cities=["Charlotte"])
        assert is_location_supported("Charlotte, NC", config)
        assert not is_location_supported("Charlottesville, VA", config)

    def test_warning_uses_custom_message(self):
        config = nc_config(out_of_jurisdiction_message="We only serve NC.")
        assert jurisdiction_warning("Texas", config) == "We only serve NC."

    def test_warning_mentions_location_and_area(self):
        warning = jurisdiction_warning("Texas", nc_config(), "NC Legal Aid")
        assert "Texas" in warning
        assert "NC Legal Aid primarily serves clients in North Carolina" in warning


class TestJurisdictionValidator:
    """Tests for JurisdictionValidator middleware"""

    @pytest.mark.asyncio
    async def test_out_of_jurisdiction_warns_without_stopping(self, env, nc_team):
        context = ConversationContext(session_id="s", team_id="t", jurisdiction="Texas")
        result = await JurisdictionValidator().execute([user("I need help")], context, nc_team, env)

        assert result.response is not None
        assert "Texas" in result.response
        assert not result.should_stop
        assert result.context.safety_flags == ["out_of_jurisdiction"]

    @pytest.mark.asyncio
    async def test_warns_only_once(self, env, nc_team):
        context = ConversationContext(
            session_id="s", team_id="t", jurisdiction="Texas", safety_flags=["out_of_jurisdiction"]
        )
        result = await JurisdictionValidator().execute([user("Still in Texas")], context, nc_team, env)
        assert result.response is None

    @pytest.mark.asyncio
    async def test_supported_location_passes(self, env, nc_team):
        context = ConversationContext(session_id="s", team_id="t")
        result = await JurisdictionValidator().execute(
            [user("I live in North Carolina")], context, nc_team, env
        )
        assert result.response is None
        assert result.context.safety_flags == []

    @pytest.mark.asyncio
    async def test_invalid_config_fails_open(self, env):
        team = TeamConfig(id="t", jurisdiction=JurisdictionConfig(type="state"))
        context = ConversationContext(session_id="s", team_id="t", jurisdiction="Texas")
        result = await JurisdictionValidator().execute([user("hi")], context, team, env)
        assert result.response is None

    @pytest.mark.asyncio
    async def test_no_config_passes(self, env, team):
        context = ConversationContext(session_id="s", team_id="t", jurisdiction="Texas")
        result = await JurisdictionValidator().execute([user("hi")], context, team, env)
        assert result.response is None

    @pytest.mark.asyncio
    async def test_requests_location_when_required(self, env):
        team = TeamConfig(id="t", jurisdiction=nc_config(require_location=True))
        context = ConversationContext(session_id="s", team_id="t")
        result = await JurisdictionValidator().execute([user("I need a lawyer")], context, team, env)
        assert result.response == LOCATION_REQUEST
