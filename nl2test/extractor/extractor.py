import logging
import re
from typing import Dict, List, Optional, Pattern, Sequence, Set, Tuple

from nl2test.models.dsl import ExtractedValues, LockedValue, LockType

LOGGER = logging.getLogger(__name__)

# Other unquoted values never end with a period, so "pass sammy." yields "sammy".
VALUE = r"([A-Za-z0-9_.@-]*[A-Za-z0-9_@-])"
SECRET = r"([A-Za-z0-9_.@!-]*[A-Za-z0-9_@!-])"
QUOTED = r"['\"]([^'\"]+)['\"]"
EMAIL = r"([A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,})"
LOGIN = r"(?:login|signin|sign\s+in|log\s+in)"

# "username X and password Y": both slots take the whole token, reserved words included
PAIRED_USERNAME = r"\busername\s+([A-Za-z0-9_.@-]+)(?=\s+and\s+password\s+[A-Za-z0-9_.@!-])"
PAIRED_PASSWORD = r"\busername\s+[A-Za-z0-9_.@-]+\s+and\s+password\s+([A-Za-z0-9_.@!-]+)"
VERBATIM = {PAIRED_USERNAME, PAIRED_PASSWORD}

# Connective words that a loose pattern may run into; never a value.
RESERVED = {
    "a", "an", "and", "as", "at", "button", "expect", "expecting", "field", "for",
    "in", "into", "is", "it", "of", "on", "or", "see", "should", "that", "the",
    "then", "to", "user", "username", "password", "email", "using", "with",
}

FIELD_PATTERNS: Dict[str, List[str]] = {
    "username": [
        PAIRED_USERNAME,
        rf"\b(?:try\s+to\s+)?{LOGIN}\s+with\s+username\s+{VALUE}",
        rf"\b(?:try\s+to\s+)?{LOGIN}\s+with\s+user\s+{VALUE}",
        rf"\b{LOGIN}\s+using\s+{VALUE}",
        rf"\b{LOGIN}\s+as\s+{VALUE}",
        rf"\buser\s*name\s+(?:is\s+|of\s+)?{QUOTED}",
        rf"\b(?:set|use|enter)\s+(?:the\s+)?username\s+(?:to\s+|as\s+)?{VALUE}",
        rf"\busername\s+{VALUE}",
        rf"\buser\s+{VALUE}",
        rf"\bwith\s+{VALUE}\s+and\s+password\b",
    ],
    "password": [
        PAIRED_PASSWORD,
        rf"\band\s+password\s+{SECRET}",
        rf"\bwith\s+password\s+{SECRET}",
        rf"\bpassword\s+(?:is\s+|of\s+)?{QUOTED}",
        rf"\b(?:set|use|enter)\s+(?:the\s+)?password\s+(?:to\s+|as\s+)?{SECRET}",
        rf"\bpassword\s+{SECRET}",
        rf"\bpass\s+{SECRET}",
        rf"\band\s+{SECRET}\s*[,.]?\s*$",
    ],
    "email": [
        rf"\bemail\s+(?:address\s+)?(?:is\s+|of\s+)?['\"]?{EMAIL}",
        rf"\bwith\s+email\s+{EMAIL}",
        rf"\busing\s+email\s+{EMAIL}",
    ],
    "url": [
        r"\b(?:go\s+to|visit|navigate\s+to|open|login\s+to|log\s+in\s+to)\s+['\"]?(https?://[^\s'\"]*[^\s'\".,])",
        r"(https?://[^\s'\"]*[^\s'\".,])",
    ],
    "button": [
        rf"\b(?:click|press|tap|hit)\s+(?:on\s+)?(?:the\s+)?{QUOTED}",
    ],
    "expected": [
        rf"\b(?:expect|expecting)\s+(?:to\s+see\s+)?(?:the\s+)?(?:text\s+|message\s+)?{QUOTED}",
        rf"\bshould\s+(?:see|show|display)\s+(?:the\s+)?(?:text\s+|message\s+)?{QUOTED}",
        rf"\b(?:shows?|displays?|sees?)\s+(?:the\s+)?(?:text\s+|message\s+)?{QUOTED}",
    ],
    "expected_url": [
        rf"\b(?:url|address)\s+(?:contains?|includes?)\s+{QUOTED}",
    ],
}

LOCK_PATTERN = re.compile(r"\[LOCK\s+(\w+)(?:\s+(\w+))?\]\s*(.*)")


class ValueExtractor:
    """Ordered-alternative regex extraction of the semantic fields of an instruction.

    For each field the alternatives are tried in order and the first acceptable
    capture wins; later, looser alternatives only fire as a fallback. Nothing is
    ever invented: an unmatched field is simply absent.
    """

    def __init__(self, patterns: Optional[Dict[str, Sequence[str]]] = None, verbatim: Optional[Set[str]] = None):
        source = patterns or FIELD_PATTERNS
        self.verbatim = VERBATIM if verbatim is None else set(verbatim)
        self.patterns: Dict[str, List[Pattern]] = {
            field: [re.compile(p, re.IGNORECASE) for p in alternatives]
            for field, alternatives in source.items()
        }

    def extract(self, text: str) -> ExtractedValues:
        text = strip_locks(text)
        found: Dict[str, str] = {}
        spans: Dict[str, Tuple[int, int]] = {}

        for field, alternatives in self.patterns.items():
            claimed = spans.get("username") if field == "password" else None
            hit = self._first_match(alternatives, text, claimed)
            if hit:
                found[field], spans[field] = hit

        LOGGER.debug("Extracted values: %s", found)
        return ExtractedValues(**found)

    def _first_match(self, alternatives: List[Pattern], text: str, claimed: Optional[Tuple[int, int]]):
        for pattern in alternatives:
            for match in pattern.finditer(text):
                value = match.group(1)
                if not value:
                    continue
                value = value.strip()
                if value.lower() in RESERVED and pattern.pattern not in self.verbatim:
                    continue
                span = match.span(1)
                if claimed and span[0] < claimed[1] and claimed[0] < span[1]:
                    continue
                return value, span
        return None


_default_extractor = ValueExtractor()


def extract(text: str) -> ExtractedValues:
    return _default_extractor.extract(text)


def extract_locked_values(text: str) -> List[LockedValue]:
    """Parse `[LOCK <TYPE>] value` annotations; the value runs to the end of the line."""
    locks = []
    for match in LOCK_PATTERN.finditer(text):
        first, second, value = match.groups()
        type_name = f"{first}_{second}" if second else first
        try:
            lock_type = LockType(type_name.upper())
        except ValueError:
            LOGGER.warning("Ignoring unknown lock type %r", type_name)
            continue
        locks.append(LockedValue(type=lock_type, key=type_name.lower(), value=value.strip()))
    return locks


def strip_locks(text: str) -> str:
    return LOCK_PATTERN.sub("", text).strip()
