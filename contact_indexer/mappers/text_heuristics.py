import logging
import re

import phonenumbers
from phonenumbers.phonenumberutil import NumberParseException

logger = logging.getLogger(__name__)

DEFAULT_REGION = "US"

# Separators stay on one line; a country code is "+NN" or a bare trunk "1".
PHONE_RE = re.compile(
    r"(?<![\w+])"
    r"(?:(?:\+\d{1,3}|1)[ \t.\-]*)?"
    r"(?:\(\d{2,4}\)|\d{2,4})[ \t.\-]*"
    r"\d{3,4}[ \t.\-]*\d{3,4}"
    r"(?!\w)"
)

_STREET_SUFFIX = (
    r"(?:street|st|avenue|ave|road|rd|boulevard|blvd|lane|ln|drive|dr|court|ct|"
    r"way|place|pl|parkway|pkwy|highway|hwy|circle|cir|square|sq|terrace|ter|"
    r"trail|trl|plaza|plz|alley|row|crescent|cres)"
)

# Street number, street name ending in a suffix, then optional unit, city,
# state/region and postal code.
ADDRESS_RE = re.compile(
    r"\b\d{1,6}[a-z]?\s+"
    r"(?:[a-z0-9'.\-]+\s+){0,5}?"
    + _STREET_SUFFIX
    + r"\b\.?"
    r"(?:[,\s]+(?:suite|ste|unit|apt|#)\s*[\w\-]+)?"
    r"(?:,\s*[a-z][a-z .'\-]*)?"
    r"(?:,?\s*[a-z]{2})?"
    r"(?:\s*\d{5}(?:-\d{4})?)?",
    re.IGNORECASE,
)

_DIGITS_RE = re.compile(r"\D")


def _digit_count(value: str) -> int:
    return len(_DIGITS_RE.sub("", value))


def canonicalize_phone(raw: str, region: str = DEFAULT_REGION) -> str | None:
    """Return the E.164 form of ``raw``, or None when it is not a possible number."""
    candidate = raw.strip()
    if not candidate:
        return None
    try:
        number = phonenumbers.parse(candidate, region)
    except NumberParseException:
        logger.debug("Unparseable phone candidate: %s", raw)
        return None
    if not phonenumbers.is_possible_number(number):
        return None
    return phonenumbers.format_number(number, phonenumbers.PhoneNumberFormat.E164)


def scan_phones(text: str, region: str = DEFAULT_REGION, digits: tuple[int, int] | None = None) -> list[str]:
    """Canonical phones in discovery order, duplicates included.

    A rejected match (digit count or canonicalization) is retried one
    character after its start.
    """
    phones: list[str] = []
    pos = 0
    while match := PHONE_RE.search(text, pos):
        raw = match.group()
        canonical = None
        if digits is None or digits[0] <= _digit_count(raw) <= digits[1]:
            canonical = canonicalize_phone(raw, region)
        if canonical:
            phones.append(canonical)
            pos = match.end()
        else:
            pos = match.start() + 1
    return phones


def extract_phone_numbers(text: str | None, region: str = DEFAULT_REGION) -> list[str]:
    """Find phone-shaped substrings with 10 or 11 digits, canonicalized and deduplicated."""
    if not text:
        return []
    return list(dict.fromkeys(scan_phones(text, region, digits=(10, 11))))


def extract_address_from_text(text: str | None) -> str | None:
    """Return the first trimmed line that looks like a street address."""
    if not text:
        return None
    for line in re.split(r"[\r\n]+", text):
        line = line.strip()
        if line and ADDRESS_RE.search(line):
            return line
    return None


def looks_like_address(text: str) -> bool:
    return ADDRESS_RE.search(text) is not None
