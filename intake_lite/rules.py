"""
Intake Rule Tables
==================

Every pattern and keyword table used by the intake pipeline, keyed by
category and compiled once at import time. Middleware reference these
tables instead of carrying private copies.

Tables:
- Content policy: jailbreak, non-legal (by family), abusive (by family)
- Legal matters: one taxonomy for context extraction and scope checks
- Case drafting: matter keywords, canned facts, urgency
- Triggers: case draft, PDF export, document checklist
- Intent: lawyer contact, general info, intake, general legal
- Geography: US states (code -> name), countries (code -> name)
"""

import re
from typing import Dict, List, Optional, Pattern, Tuple

# =============================================================================
# Content Policy
# =============================================================================

MAX_MESSAGE_LENGTH = 2000
REPETITION_MIN_MESSAGES = 10   # repetition check only once message_count > this
REPETITION_MIN_WORDS = 5
REPETITION_UNIQUE_RATIO = 0.3

JAILBREAK_PATTERNS: List[Pattern] = [
    re.compile(r'ignore.*instructions', re.IGNORECASE),
    re.compile(r'system prompt|bypass.*restrictions', re.IGNORECASE),
    re.compile(r'change.*role|override.*instructions', re.IGNORECASE),
    re.compile(r'ignore.*previous|forget.*rules', re.IGNORECASE),
    re.compile(r'\bact\s+as\b|pretend.*to.*be', re.IGNORECASE),
    re.compile(r'you are now|from now on', re.IGNORECASE),
    re.compile(r'disregard.*previous', re.IGNORECASE),
]

NON_LEGAL_PATTERNS: Dict[str, List[Pattern]] = {
    "technical": [
        re.compile(r'^(?:cd|ls|sudo|bash)\s|\.py$|<script>|SELECT .* FROM', re.IGNORECASE),
        re.compile(r'\b(?:terminal|command line|programming|coding|script)\b', re.IGNORECASE),
        re.compile(r'\b(?:javascript|python|html|css|sql)\b', re.IGNORECASE),
        re.compile(r'\b(?:hack|crack|exploit|vulnerability)\b', re.IGNORECASE),
    ],
    "entertainment": [
        re.compile(r'\b(?:play a game|games?|entertainment|trivia)\b', re.IGNORECASE),
        re.compile(r'\b(?:roleplay|role play|role-playing)\b', re.IGNORECASE),
        re.compile(r'\b(?:act as client|be the client|pretend to be client)\b', re.IGNORECASE),
        re.compile(r'\b(?:legal trivia|hypothetical)\b', re.IGNORECASE),
    ],
    "general_knowledge": [
        re.compile(r'\b(?:tell me about|explain|describe)\b.*\b(?:geography|history|science|technology|politics)\b',
                   re.IGNORECASE),
        re.compile(r'\b(?:geography|science|politics)\b', re.IGNORECASE),
        re.compile(r'\bresearch\s+(?:paper|essay|topic)\b', re.IGNORECASE),
    ],
    "creative": [
        re.compile(r'\bwrite\b.*\b(?:story|poem|song|essay)\b', re.IGNORECASE),
        re.compile(r'\bcreate\b.*\b(?:art|content)\b', re.IGNORECASE),
        re.compile(r'\b(?:creative|artistic|imaginative)\b', re.IGNORECASE),
    ],
}

ABUSIVE_PATTERNS: Dict[str, List[Pattern]] = {
    "self_harm": [re.compile(r'\b(?:suicide|self-harm|kill myself)\b', re.IGNORECASE)],
    "weapons": [re.compile(r'\b(?:bomb|explosives?|weapons?)\b', re.IGNORECASE)],
    "hate": [re.compile(r'\b(?:hate speech|racist|sexist|homophobic)\b', re.IGNORECASE)],
    "threats": [
        re.compile(r'\b(?:kill|murder)\b', re.IGNORECASE),
        re.compile(r'\b(?:threat|threaten|violence)\b', re.IGNORECASE),
    ],
}

VIOLATION_RESPONSES: Dict[str, str] = {
    "jailbreak_attempt": (
        "I'm a legal intake specialist and can only help with legal matters. "
        "I cannot change my role or provide other types of assistance."
    ),
    "non_legal_request": (
        "I'm a legal intake specialist and can only help with legal matters. "
        "I can help you with legal questions, case preparation, and connecting you "
        "with attorneys. How can I assist you with your legal needs?"
    ),
    "abusive_content": (
        "I cannot help with that type of request. I'm here to assist with legal matters only. "
        "If you have a legal question or need help with a legal issue, I'd be happy to help."
    ),
    "spam_content": (
        "I notice you've sent a very long or repetitive message. Could you please provide a "
        "brief summary of your legal question or situation? I'm here to help with legal matters."
    ),
}

DEFAULT_VIOLATION_RESPONSE = (
    "I'm a legal intake specialist. I can only help with legal matters "
    "and connecting you with lawyers."
)

# =============================================================================
# Legal Matter Taxonomy
# =============================================================================

LEGAL_MATTER_PATTERNS: Dict[str, Pattern] = {
    'Family Law': re.compile(
        r'\b(?:divorce|custody|child support|family dispute|marriage|paternity|alimony|'
        r'spousal support|domestic violence|restraining order)\b', re.IGNORECASE),
    'Employment Law': re.compile(
        r'\b(?:employment|employer|workplace|wrongful termination|terminated|discrimination|'
        r'harassment|unpaid wages?|overtime|fired|laid off)\b', re.IGNORECASE),
    'Business Law': re.compile(
        r'\b(?:business formation|corporate|company|partnership|LLC|corporation|merger|acquisition)\b',
        re.IGNORECASE),
    'Intellectual Property': re.compile(
        r'\b(?:patent|trademark|copyright|intellectual property|trade secret|brand protection)\b',
        re.IGNORECASE),
    'Personal Injury': re.compile(
        r'\b(?:accident|injury|injured|personal injury|negligence|car crash|slip and fall|'
        r'medical malpractice|wrongful death)\b', re.IGNORECASE),
    'Criminal Law': re.compile(
        r'\b(?:criminal|arrest(?:ed)?|charged|charges|felony|misdemeanor|DUI|theft|assault)\b',
        re.IGNORECASE),
    'Civil Law': re.compile(
        r'\b(?:civil|lawsuit|sued|tort|breach of contract|property dispute|small claims)\b',
        re.IGNORECASE),
    'Tenant Rights Law': re.compile(
        r'\b(?:tenant|landlord|rental|eviction|evicted|lease|security deposit|habitability)\b',
        re.IGNORECASE),
    'Probate and Estate Planning': re.compile(
        r'\b(?:estate planning|probate|inheritance|my will|living trust|power of attorney)\b',
        re.IGNORECASE),
    'Special Education and IEP Advocacy': re.compile(
        r'\b(?:special education|IEP|504 plan|disability accommodation)\b', re.IGNORECASE),
    'Small Business and Nonprofits': re.compile(
        r'\b(?:small business|nonprofit|non-profit|entrepreneur|startup)\b', re.IGNORECASE),
    'Contract Review': re.compile(
        r'\b(?:contracts?|agreements?|terms and conditions|clause)\b', re.IGNORECASE),
    'Immigration Law': re.compile(
        r'\b(?:immigration|visa|green card|citizenship|deportation|asylum|naturalization|work permit)\b',
        re.IGNORECASE),
}

GENERAL_CONSULTATION = "General Consultation"

# =============================================================================
# Case Drafting
# =============================================================================

# Ordered: first hit wins when a message names several domains
CASE_MATTER_KEYWORDS: List[Tuple[str, List[str]]] = [
    ('Family Law', ['family law', 'divorce', 'custody', 'separation']),
    ('Employment Law', ['employment law', 'wrongful termination', 'fired', 'terminated']),
    ('Business Law', ['business law']),
    ('Contract Review', ['contract review', 'contract', 'agreement']),
    ('Intellectual Property', ['intellectual property', 'patent', 'trademark', 'copyright']),
    ('Personal Injury', ['personal injury', 'injury', 'accident']),
    ('Criminal Law', ['criminal law', 'criminal', 'arrested']),
    ('Civil Law', ['civil law', 'lawsuit']),
    ('Real Estate', ['real estate']),
    ('Estate Planning', ['estate planning', 'probate']),
    ('Immigration Law', ['immigration', 'visa']),
    ('Bankruptcy', ['bankruptcy']),
]

CASE_FACT_KEYWORDS: List[Tuple[List[str], str]] = [
    (['fired', 'terminated'], 'Employment termination'),
    (['divorce', 'separation'], 'Family law matter'),
    (['contract', 'agreement'], 'Contract-related issue'),
    (['injury', 'accident'], 'Personal injury incident'),
]

URGENCY_HIGH_KEYWORDS = ['urgent', 'emergency']
URGENCY_LOW_KEYWORDS = ['not urgent', 'routine']

CASE_NEXT_STEPS = [
    "Please provide more details about your situation",
    "Share any relevant documents or evidence",
    "Let me know about any important dates or timeline",
    "I can help you organize this into a comprehensive case summary",
]

# =============================================================================
# Triggers
# =============================================================================

CASE_DRAFT_KEYWORDS = [
    'build a case draft',
    'case draft',
    'organize my case',
    'case summary',
    'case preparation',
    'prepare my case',
    'case file',
    'case organization',
    'structure my case',
    'case building',
    'organize case information',
]

PDF_KEYWORDS = [
    'generate pdf',
    'create pdf',
    'download pdf',
    'export pdf',
    'pdf summary',
    'case summary pdf',
    'print case summary',
    'save as pdf',
    'get pdf',
    'pdf document',
    'case report',
    'generate report',
    'create report',
    'download case summary',
    'export case summary',
    'generate a pdf',
    'create a pdf',
]

DOCUMENT_CHECKLIST_KEYWORDS = [
    'document checklist',
    'what documents do i need',
    'required documents',
    'gather documents',
    'document requirements',
    'what papers do i need',
    'document preparation',
    'required paperwork',
    'document list',
    'what files do i need',
]

# =============================================================================
# Intent
# =============================================================================

LAWYER_CONTACT_PATTERNS: List[Pattern] = [
    re.compile(r'\b(?:need a lawyer|want a lawyer|talk to a lawyer|speak (?:with|to) (?:an )?attorney|'
               r'hire an attorney|find a lawyer)\b', re.IGNORECASE),
]

GENERAL_INFO_PATTERNS: List[Pattern] = [
    re.compile(r'\b(?:what is|how does|explain|tell me about|information about)\b', re.IGNORECASE),
]

INTAKE_PATTERNS: List[Pattern] = [
    re.compile(r'\b(?:help with|need help|problem with|issue with|situation with)\b', re.IGNORECASE),
]

GENERAL_LEGAL_PATTERNS: List[Pattern] = [
    LAWYER_CONTACT_PATTERNS[0],
    re.compile(r'\b(?:legal consultation|legal guidance|legal help|legal advice|lawyer consultation)\b',
               re.IGNORECASE),
    re.compile(r'\b(?:legal problem|legal issue|legal situation|legal matter|legal question)\b',
               re.IGNORECASE),
]

# =============================================================================
# Geography
# =============================================================================

US_STATES: Dict[str, str] = {
    'AL': 'Alabama', 'AK': 'Alaska', 'AZ': 'Arizona', 'AR': 'Arkansas', 'CA': 'California',
    'CO': 'Colorado', 'CT': 'Connecticut', 'DE': 'Delaware', 'FL': 'Florida', 'GA': 'Georgia',
    'HI': 'Hawaii', 'ID': 'Idaho', 'IL': 'Illinois', 'IN': 'Indiana', 'IA': 'Iowa',
    'KS': 'Kansas', 'KY': 'Kentucky', 'LA': 'Louisiana', 'ME': 'Maine', 'MD': 'Maryland',
    'MA': 'Massachusetts', 'MI': 'Michigan', 'MN': 'Minnesota', 'MS': 'Mississippi', 'MO': 'Missouri',
    'MT': 'Montana', 'NE': 'Nebraska', 'NV': 'Nevada', 'NH': 'New Hampshire', 'NJ': 'New Jersey',
    'NM': 'New Mexico', 'NY': 'New York', 'NC': 'North Carolina', 'ND': 'North Dakota', 'OH': 'Ohio',
    'OK': 'Oklahoma', 'OR': 'Oregon', 'PA': 'Pennsylvania', 'RI': 'Rhode Island', 'SC': 'South Carolina',
    'SD': 'South Dakota', 'TN': 'Tennessee', 'TX': 'Texas', 'UT': 'Utah', 'VT': 'Vermont',
    'VA': 'Virginia', 'WA': 'Washington', 'WV': 'West Virginia', 'WI': 'Wisconsin', 'WY': 'Wyoming',
    'DC': 'District of Columbia', 'AS': 'American Samoa', 'GU': 'Guam',
    'MP': 'Northern Mariana Islands', 'PR': 'Puerto Rico', 'VI': 'U.S. Virgin Islands',
}

# The 50 states, used for free-text extraction
US_STATE_NAMES: List[str] = [name for code, name in US_STATES.items()][:50]

STATE_NAMES_TO_CODES: Dict[str, str] = {name.lower(): code for code, name in US_STATES.items()}

COUNTRIES: Dict[str, str] = {
    'US': 'United States', 'CA': 'Canada', 'MX': 'Mexico', 'GB': 'United Kingdom',
    'IE': 'Ireland', 'DE': 'Germany', 'FR': 'France', 'IT': 'Italy', 'ES': 'Spain',
    'PT': 'Portugal', 'NL': 'Netherlands', 'BE': 'Belgium', 'CH': 'Switzerland',
    'AT': 'Austria', 'SE': 'Sweden', 'NO': 'Norway', 'DK': 'Denmark', 'FI': 'Finland',
    'PL': 'Poland', 'GR': 'Greece', 'AU': 'Australia', 'NZ': 'New Zealand', 'JP': 'Japan',
    'KR': 'South Korea', 'CN': 'China', 'IN': 'India', 'PH': 'Philippines', 'BR': 'Brazil',
    'AR': 'Argentina', 'CL': 'Chile', 'CO': 'Colombia', 'PE': 'Peru', 'ZA': 'South Africa',
    'NG': 'Nigeria', 'KE': 'Kenya', 'EG': 'Egypt', 'IL': 'Israel', 'AE': 'United Arab Emirates',
    'JM': 'Jamaica', 'DO': 'Dominican Republic', 'GT': 'Guatemala', 'SV': 'El Salvador',
    'HN': 'Honduras', 'CU': 'Cuba', 'HT': 'Haiti', 'PR': 'Puerto Rico',
}

COUNTRY_NAMES_TO_CODES: Dict[str, str] = {name.lower(): code for code, name in COUNTRIES.items()}

_STATE_NAME_PATTERN = re.compile(
    r'\b(' + '|'.join(sorted((re.escape(n) for n in US_STATE_NAMES), key=len, reverse=True)) + r')\b',
    re.IGNORECASE,
)


# =============================================================================
# Matching helpers
# =============================================================================

def matches_any(text: str, patterns: List[Pattern]) -> bool:
    """True if any compiled pattern matches text"""
    if not text:
        return False
    return any(p.search(text) for p in patterns)


def first_match_category(text: str, families: Dict[str, List[Pattern]]) -> Optional[str]:
    """Return the first family name whose patterns match text"""
    if not text:
        return None
    for family, patterns in families.items():
        if matches_any(text, patterns):
            return family
    return None


def contains_keyword(text: str, keywords: List[str]) -> bool:
    """Case-insensitive substring match against a keyword list"""
    if not text:
        return False
    lower = text.lower()
    return any(keyword.lower() in lower for keyword in keywords)


def extract_legal_matters(text: str) -> List[str]:
    """All matter types whose pattern matches text, in taxonomy order"""
    if not text:
        return []
    return [matter for matter, pattern in LEGAL_MATTER_PATTERNS.items() if pattern.search(text)]


def find_us_state(text: str) -> Optional[str]:
    """
    Find the first US state named in free text.

    Only full state names count. Two-letter codes in chat ("OK", "HI",
    "ME") are too often ordinary words; codes are read only inside a
    parsed location (see locations.validate_location).

    Returns:
        Canonical state name or None
    """
    if not text:
        return None

    match = _STATE_NAME_PATTERN.search(text)
    if match:
        return US_STATES[STATE_NAMES_TO_CODES[match.group(1).lower()]]
    return None


def state_name(code_or_name: str) -> str:
    """Expand a state code to its name; names pass through unchanged"""
    if not code_or_name:
        return code_or_name
    return US_STATES.get(code_or_name.strip().upper(), code_or_name.strip())
