"""
Contact Information
===================

Extraction and validation of client contact details. The same
validate_contact_info() backs both the contact-info middleware and the
collect_contact_info tool, so the two paths cannot drift apart.

Validation order (first failure wins):
1. placeholder phone/email values
2. name shape (if present)
3. email shape (if present)
4. phone shape (if present) - warning only
5. location shape (if present)
6. jurisdiction (if location present) - warning only
7. name required
8. no phone and no email - warning only
"""

import re
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .locations import validate_location, is_location_supported, validate_jurisdiction_config
from .schemas import ContactInfo, TeamConfig

logger = logging.getLogger(__name__)


# =============================================================================
# Messages
# =============================================================================

PLACEHOLDER_MESSAGE = (
    "I need your actual contact information to proceed. "
    "Could you please provide your real phone number and email address?"
)
INVALID_NAME_MESSAGE = (
    "I need your full name to proceed. Could you please provide your complete name?"
)
INVALID_EMAIL_MESSAGE = (
    "The email address you provided doesn't appear to be valid. "
    "Could you please provide a valid email address?"
)
INVALID_LOCATION_MESSAGE = "Could you please provide your city and state or country?"
MISSING_NAME_MESSAGE = (
    "I need your name to proceed. Could you please provide your full name?"
)


def contact_success_message(name: str) -> str:
    return (
        f"Thank you {name}! I have your contact information. Now I need to understand "
        f"your legal situation. Could you briefly describe what you need help with?"
    )


# =============================================================================
# Patterns
# =============================================================================

EMAIL_SHAPE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
EMAIL_IN_TEXT = re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}')
PHONE_IN_TEXT = re.compile(r'(?<!\d)(?:\+?1[-.\s]?)?(?:\(?\d{3}\)?[-.\s]?)?\d{3}[-.\s]\d{4}(?!\d)|(?<!\d)\d{10}(?!\d)')
NAME_IN_TEXT = re.compile(
    r"(?i:\bmy name is|\bcall me|\bthis is)\s+([A-Z][a-zA-Z'\-]+(?:\s+[A-Z][a-zA-Z'\-]+){0,3})"
)
LOCATION_IN_TEXT = re.compile(
    r"(?i:\bi live in|\bi'm in|\bi am in|\blocated in|\bbased in|\bi'm from|\bi am from)\s+"
    r"([A-Z][a-zA-Z.\-]+(?:\s+[A-Z][a-zA-Z.\-]+){0,3}(?:,\s*[A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)?)?)"
)

PLACEHOLDER_MARKERS = [re.compile(r'\[user_phone\]', re.IGNORECASE), re.compile(r'\[user_email\]', re.IGNORECASE)]
EMPTY_TOKENS = {'', 'none', 'null', 'n/a', 'na', 'tbd', 'unknown'}

BLOCKED_PHONE_NUMBERS = {
    '5555555555', '5551234567', '1234567890', '0000000000', '1111111111', '9999999999',
}
INVALID_AREA_CODES = {'555'}
_PHONE_EXTENSION = re.compile(r'\s*(?:x|ext\.?|extension)\s*\d+$', re.IGNORECASE)
_NANP = re.compile(r'^([2-9]\d{2})([2-9]\d{2})(\d{4})$')


# =============================================================================
# Field checks
# =============================================================================

def is_placeholder(value: Optional[str]) -> bool:
    """True for empty-ish tokens and template markers like [user_email]"""
    if value is None:
        return False
    trimmed = value.strip()
    if trimmed.lower() in EMPTY_TOKENS:
        return True
    return any(p.search(trimmed) for p in PLACEHOLDER_MARKERS)


def has_placeholder_values(phone: Optional[str] = None, email: Optional[str] = None) -> bool:
    return is_placeholder(phone) or is_placeholder(email)


def validate_name(name: Optional[str]) -> bool:
    if not name:
        return False
    return 2 <= len(name.strip()) <= 100


def validate_email(email: Optional[str]) -> bool:
    if not email:
        return False
    return bool(EMAIL_SHAPE.match(email.strip()))


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    NANP phone check.

    Returns:
        None if valid, otherwise a short reason
    """
    if not phone or not phone.strip():
        return "Phone number is required"

    digits = re.sub(r'\D', '', phone)
    if digits in BLOCKED_PHONE_NUMBERS:
        return "Please provide a real phone number, not a placeholder"

    if re.search(r'[a-zA-Z]', _PHONE_EXTENSION.sub('', phone)):
        return "Phone numbers cannot contain letters"

    digits = re.sub(r'\D', '', _PHONE_EXTENSION.sub('', phone))
    if len(digits) == 11 and digits.startswith('1'):
        digits = digits[1:]
    if len(digits) != 10:
        return "Phone number must be 10 or 11 digits"

    match = _NANP.match(digits)
    if not match:
        return "Invalid phone number format"

    if match.group(1) in INVALID_AREA_CODES:
        return "Please provide a real phone number, not a placeholder"

    return None


def validate_location_shape(location: Optional[str]) -> bool:
    if not location:
        return False
    return validate_location(location).is_valid


# =============================================================================
# Extraction
# =============================================================================

def extract_contact_info(text: str) -> ContactInfo:
    """
    Pull name, email, phone and location out of free text.

    Only well-delimited forms are recognized ("my name is ...",
    "I live in City, ST"); anything ambiguous is left unset.
    """
    info = ContactInfo()
    if not text:
        return info

    email = EMAIL_IN_TEXT.search(text)
    if email:
        info.email = email.group(0)

    # Strip emails first so their digits are never read as a phone
    phone = PHONE_IN_TEXT.search(EMAIL_IN_TEXT.sub(' ', text))
    if phone:
        info.phone = phone.group(0).strip()

    name = NAME_IN_TEXT.search(text)
    if name:
        info.name = name.group(1).strip()

    location = LOCATION_IN_TEXT.search(text)
    if location:
        info.location = location.group(1).strip()

    return info


def has_contact_method(text: str) -> bool:
    """True if text carries an email address or phone number"""
    if not text:
        return False
    return bool(EMAIL_IN_TEXT.search(text) or PHONE_IN_TEXT.search(EMAIL_IN_TEXT.sub(' ', text)))


# =============================================================================
# Validation
# =============================================================================

@dataclass
class ContactValidation:
    """Outcome of validate_contact_info"""
    is_valid: bool
    message: str
    contact: ContactInfo
    warnings: List[str] = field(default_factory=list)


def validate_contact_info(contact: ContactInfo, team_config: Optional[TeamConfig] = None) -> ContactValidation:
    """
    Validate collected contact info.

    Blocking failures return is_valid=False with a guidance message.
    Advisory problems (phone format, jurisdiction, no contact method)
    are logged and listed in warnings.
    """
    name, phone, email, location = contact.name, contact.phone, contact.email, contact.location
    warnings = []

    def fail(message: str) -> ContactValidation:
        return ContactValidation(is_valid=False, message=message, contact=contact, warnings=warnings)

    if has_placeholder_values(phone, email):
        return fail(PLACEHOLDER_MESSAGE)

    if name and not validate_name(name):
        return fail(INVALID_NAME_MESSAGE)

    if email and not validate_email(email):
        return fail(INVALID_EMAIL_MESSAGE)

    if phone and phone.strip():
        phone_error = validate_phone(phone)
        if phone_error:
            logger.warning(f"Invalid phone number provided: {phone_error} - continuing")
            warnings.append(f"invalid_phone: {phone_error}")

    if location and not validate_location_shape(location):
        return fail(INVALID_LOCATION_MESSAGE)

    if location and team_config and team_config.jurisdiction:
        jurisdiction = team_config.jurisdiction
        config_ok, _ = validate_jurisdiction_config(jurisdiction)
        if config_ok and not is_location_supported(location, jurisdiction):
            logger.warning(f"User in unsupported jurisdiction: {location} - continuing with general guidance")
            warnings.append("out_of_jurisdiction")

    if not name:
        return fail(MISSING_NAME_MESSAGE)

    if not phone and not email:
        logger.warning("No contact method provided - continuing with name only")
        warnings.append("no_contact_method")

    return ContactValidation(
        is_valid=True,
        message=contact_success_message(name.strip()),
        contact=contact,
        warnings=warnings,
    )
