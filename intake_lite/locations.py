"""
Location & Jurisdiction Checks
==============================

Parses free-text locations against the state/country tables in rules.py
and decides whether a location falls inside a team's service area.

Jurisdiction is advisory everywhere: nothing in this module blocks a
conversation, callers decide what to say.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .rules import (
    US_STATES,
    COUNTRIES,
    STATE_NAMES_TO_CODES,
    COUNTRY_NAMES_TO_CODES,
    state_name,
)
from .schemas import JurisdictionConfig, JurisdictionType

logger = logging.getLogger(__name__)

_SPLIT = re.compile(r'[,\s]+')
_WORDS = re.compile(r"[a-z0-9.']+")

DEFAULT_TEAM_NAME = "Our legal team"

LOCATION_REQUEST = (
    "To help you best, could you please tell me your city and state? "
    "This helps us provide location-specific legal guidance."
)


@dataclass
class LocationInfo:
    """Parsed location. state/country hold codes, city keeps original case."""
    is_valid: bool
    state: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    error: Optional[str] = None

    @property
    def state_name(self) -> Optional[str]:
        return US_STATES.get(self.state) if self.state else None


def validate_location(location: Optional[str]) -> LocationInfo:
    """
    Validate and parse a location string.

    Whole-string state/country codes and names are accepted in any case.
    Inside a longer string, two-letter codes only count when written in
    uppercase ("Charlotte, NC"); full state names match anywhere.

    Args:
        location: Free-text location ("Charlotte, NC", "Texas", "Canada")

    Returns:
        LocationInfo with is_valid and whatever components were recognized
    """
    if not location or not isinstance(location, str):
        return LocationInfo(is_valid=False, error="Location is required")

    trimmed = location.strip()
    if len(trimmed) < 2:
        return LocationInfo(is_valid=False, error="Location must be at least 2 characters")

    lower = trimmed.lower()
    upper = trimmed.upper()

    if upper in US_STATES:
        return LocationInfo(is_valid=True, state=upper)
    if lower in STATE_NAMES_TO_CODES:
        return LocationInfo(is_valid=True, state=STATE_NAMES_TO_CODES[lower])
    if upper in COUNTRIES:
        return LocationInfo(is_valid=True, country=upper)
    if lower in COUNTRY_NAMES_TO_CODES:
        return LocationInfo(is_valid=True, country=COUNTRY_NAMES_TO_CODES[lower])

    info = LocationInfo(is_valid=False)

    # Multi-word state names ("North Carolina") anywhere in the string
    padded = f" {' '.join(_WORDS.findall(lower))} "
    for name, code in sorted(STATE_NAMES_TO_CODES.items(), key=lambda kv: -len(kv[0])):
        if f" {name} " in padded:
            info.state = code
            break

    for part in (p for p in _SPLIT.split(trimmed) if p):
        if len(part) == 2 and part.isupper():
            if part in US_STATES:
                info.state = info.state or part
                continue
            if part in COUNTRIES:
                info.country = info.country or part
                continue
        if part.lower() in COUNTRY_NAMES_TO_CODES and not info.country:
            info.country = COUNTRY_NAMES_TO_CODES[part.lower()]
            continue
        if part.lower() in STATE_NAMES_TO_CODES:
            continue
        if not info.city and len(part) >= 2 and part.lower() not in _state_words(info.state):
            info.city = part

    if info.state or info.country:
        info.is_valid = True
        return info

    words = set(_WORDS.findall(lower))
    if 'united states' in lower or words & {'us', 'usa', 'u.s.', 'u.s.a.'}:
        return LocationInfo(is_valid=True, country='US')
    if 'canada' in lower:
        return LocationInfo(is_valid=True, country='CA')
    if 'mexico' in lower:
        return LocationInfo(is_valid=True, country='MX')

    return LocationInfo(is_valid=False, error="Invalid location format")


def _state_words(state_code: Optional[str]) -> List[str]:
    """Lowercased words of a state's name, so they are not read as a city"""
    if not state_code or state_code not in US_STATES:
        return []
    return US_STATES[state_code].lower().split()


# =============================================================================
# Jurisdiction config
# =============================================================================

def validate_jurisdiction_config(config: JurisdictionConfig) -> Tuple[bool, List[str]]:
    """
    Check that a team's jurisdiction config is usable.

    Returns:
        (is_valid, errors)
    """
    errors = []

    if not config.type:
        errors.append("Jurisdiction type is required")
    elif config.type not in {t.value for t in JurisdictionType}:
        errors.append(f"Unknown jurisdiction type: {config.type}")

    if not config.description:
        errors.append("Jurisdiction description is required")

    if config.type == JurisdictionType.STATE.value and not config.supported_states:
        errors.append("State jurisdiction requires supported_states")

    if config.type == JurisdictionType.MULTI_STATE.value and len(config.supported_states) < 2:
        errors.append("Multi-state jurisdiction requires at least 2 supported_states")

    if config.type == JurisdictionType.COUNTY.value and not config.supported_counties:
        errors.append("County jurisdiction requires supported_counties")

    if config.type == JurisdictionType.CITY.value and not config.supported_cities:
        errors.append("City jurisdiction requires supported_cities")

    return len(errors) == 0, errors


def _state_code(state: str) -> Optional[str]:
    """Code for a configured state given as a code or a name"""
    value = state.strip()
    if value.upper() in US_STATES:
        return value.upper()
    return STATE_NAMES_TO_CODES.get(value.lower())


def _word_match(text: str, target: str) -> bool:
    """
    True if target appears as whole word(s) in text.

    Both sides are tokenized; no pattern is ever built from user input.
    """
    if not target:
        return False
    text_words = _WORDS.findall(text.lower())
    target_words = _WORDS.findall(target.lower())
    if not target_words:
        return False
    n = len(target_words)
    return any(text_words[i:i + n] == target_words for i in range(len(text_words) - n + 1))


def is_location_supported(location: str, config: JurisdictionConfig) -> bool:
    """
    Decide whether a location is inside the configured service area.

    Rules, first hit wins:
    - national coverage accepts everything
    - "all" in supported states or countries accepts everything
    - supported state codes and names, word-matched or via the parsed state
    - supported counties and cities, word-matched
    - supported countries by code or name; "US" accepts any US state only
      when no specific states are listed
    """
    if not location:
        return False

    if config.type == JurisdictionType.NATIONAL.value:
        return True

    states = [s for s in config.supported_states if s]
    countries = [c for c in config.supported_countries if c]

    if any(s.lower() == 'all' for s in states) or any(c.lower() == 'all' for c in countries):
        return True

    info = validate_location(location)

    for state in states:
        if _word_match(location, state_name(state)):
            return True
        if info.state and info.state == _state_code(state):
            return True
        # Codes are matched case-sensitively so "in"/"or"/"me" never count
        if len(state.strip()) == 2 and re.search(rf'\b{re.escape(state.strip().upper())}\b', location):
            return True

    if any(_word_match(location, county) for county in config.supported_counties):
        return True

    if any(_word_match(location, city) for city in config.supported_cities):
        return True

    for country in countries:
        code = country.strip().upper()
        if code not in COUNTRIES:
            code = COUNTRY_NAMES_TO_CODES.get(country.strip().lower(), code)
        if info.country == code:
            return True
        if code == 'US' and info.state and not states:
            return True

    return False


def jurisdiction_warning(location: str, config: JurisdictionConfig,
                         team_name: Optional[str] = None) -> str:
    """Advisory message for a user outside the service area"""
    if config.out_of_jurisdiction_message:
        return config.out_of_jurisdiction_message

    team = team_name or DEFAULT_TEAM_NAME
    area = config.description or ", ".join(state_name(s) for s in config.supported_states)
    base = f"I notice you're located in {location}. {team} primarily serves clients in {area}."

    if config.allow_out_of_jurisdiction:
        return (
            f"{base} While I can provide general guidance, I recommend consulting with a local "
            f"attorney in your area for state-specific legal matters. "
            f"Would you like me to help you find local legal resources?"
        )
    return (
        f"{base} I'm unable to provide legal assistance outside our service area. "
        f"I recommend contacting a local attorney in your area."
    )
