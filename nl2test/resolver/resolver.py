import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from nl2test.compiler.locators import parse_selector
from nl2test.extractor.extractor import strip_locks
from nl2test.models.dsl import (
    ASSERTION_TYPES,
    Assertion,
    ExtractedValues,
    LockedValue,
    LockType,
    Locator,
    TestCase,
    TestMeta,
    TestStep,
    derive_name,
    not_specified,
)

LOGGER = logging.getLogger(__name__)

LOGIN_CUE = r"\b(?:login|log\s*in|sign\s*in|signin)\b"
CLICK_VERB = re.compile(
    r"\b(?:click|press|tap|hit)\s+(?:on\s+)?(?:the\s+)?([A-Za-z]+(?:\s+(?:in|up|out))?)",
    re.IGNORECASE,
)
EXPLICIT_PATHS = [
    r"\b(?:go\s+to|navigate\s+to|visit|open)\s+['\"]?(/(?:[\w./-]*[\w/-])?)",
    r"\b(?:go\s+to|navigate\s+to|visit|open)\s+(?:the\s+)?(\w+)\s+page\b",
]

ERROR_LOCATOR = "[role='alert'], .error, .alert-error"
SUCCESS_LOCATOR = ".success, [role='status'], .alert-success"

LEGACY_DEFAULTS = {"username": "testuser", "password": "password123"}


class Strictness(str, Enum):
    STRICT = "strict"
    LEGACY = "legacy"


@dataclass
class ResolverTables:
    """Ordered (pattern, result) lookup tables. The first matching pattern wins."""

    paths: List[Tuple[str, str]] = field(default_factory=lambda: [
        (LOGIN_CUE, "/login"),
        (r"\b(?:register|registration|sign\s*up|signup)\b", "/register"),
        (r"\bdashboard\b", "/dashboard"),
        (r"\bprofile\b", "/profile"),
        (r"\bsettings\b", "/settings"),
    ])
    buttons: List[Tuple[str, str]] = field(default_factory=lambda: [
        (LOGIN_CUE, "Login"),
        (r"\b(?:submit|send)\b", "Submit"),
        (r"\b(?:register|sign\s*up|signup)\b", "Register"),
        (r"\b(?:save|update)\b", "Save"),
        (r"\b(?:cancel|close)\b", "Cancel"),
    ])
    dashboard_cue: str = r"\bdashboard\b"
    error_cue: str = r"\b(?:error|wrong|invalid|incorrect|fail(?:s|ed|ure)?|denied)\b"
    success_cue: str = r"\b(?:success|successful|successfully|succeeds?|succeeded|welcome)\b"
    credentials_cue: str = LOGIN_CUE + r"|\b(?:username|user\s*name|password|credentials)\b"

    @classmethod
    def from_mapping(cls, data: Dict) -> "ResolverTables":
        tables = cls()
        for name in ("paths", "buttons"):
            if name in data:
                setattr(tables, name, [_pair(item) for item in data[name]])
        for name in ("dashboard_cue", "error_cue", "success_cue", "credentials_cue"):
            if name in data:
                setattr(tables, name, str(data[name]))
        return tables


def _pair(item) -> Tuple[str, str]:
    if isinstance(item, dict):
        return str(item["pattern"]), str(item["result"])
    pattern, result = item
    return str(pattern), str(result)


def _search(pattern: str, text: str) -> bool:
    return re.search(pattern, text, re.IGNORECASE) is not None


def _take(queue: List[str]) -> Optional[str]:
    return queue.pop(0) if queue else None


def _lookup(table: Sequence[Tuple[str, str]], text: str) -> Optional[str]:
    for pattern, result in table:
        if _search(pattern, text):
            return result
    return None


class StepResolver:
    def __init__(
        self,
        tables: Optional[ResolverTables] = None,
        strictness: Strictness = Strictness.STRICT,
        test_data: Optional[Dict[str, str]] = None,
        catalog=None,
    ):
        self.tables = tables or ResolverTables()
        self.strictness = Strictness(strictness)
        self.test_data = dict(test_data or {})
        self.catalog = catalog

    def resolve(
        self,
        text: str,
        values: ExtractedValues,
        base_url: str,
        locks: Optional[List[LockedValue]] = None,
    ) -> TestCase:
        locked = {lock.type: lock.value for lock in (locks or [])}
        # VALUE locks stand in for credentials the text leaves out, in order
        spare = [lock.value for lock in (locks or []) if lock.type is LockType.VALUE]
        text, description = strip_locks(text), text
        steps = [TestStep.goto(self._resolve_path(text, values, locked))]

        if values.username or values.password or _search(self.tables.credentials_cue, text):
            steps.append(self._fill("Username", "username", values.username or _take(spare)))
            steps.append(self._fill("Password", "password", values.password or _take(spare)))
        if values.email:
            steps.append(TestStep.fill(Locator.label("Email"), values.email))

        if values.button or CLICK_VERB.search(text) or _search(r"\bsubmit\b|" + LOGIN_CUE, text):
            steps.append(TestStep.click(Locator.by_role("button", self._resolve_button(text, values))))

        assertion = self._resolve_assertion(text, values, locked)
        if assertion:
            steps.append(TestStep.check(assertion))

        if self.catalog:
            steps = [self.catalog.refine_step(step) for step in steps]

        meta = TestMeta(
            name=derive_name(text),
            base_url=base_url,
            description=description,
            tags=extract_tags(text),
        )
        return TestCase(meta=meta, steps=steps)

    def _resolve_path(self, text: str, values: ExtractedValues, locked: Dict) -> str:
        if values.url:
            return values.url
        if locked.get(LockType.URL):
            return locked[LockType.URL]
        for pattern in EXPLICIT_PATHS:
            match = re.search(pattern, text, re.IGNORECASE)
            if match:
                path = match.group(1)
                return path if path.startswith("/") else f"/{path.lower()}"
        return _lookup(self.tables.paths, text) or "/"

    def _fill(self, label: str, field_name: str, value: Optional[str]) -> TestStep:
        if not value:
            value = self.test_data.get(field_name)
        if not value:
            if self.strictness is Strictness.LEGACY:
                value = LEGACY_DEFAULTS[field_name]
            else:
                LOGGER.info("No %s in instruction; emitting marker", field_name)
                value = not_specified(field_name)
        return TestStep.fill(Locator.label(label), value)

    def _resolve_button(self, text: str, values: ExtractedValues) -> Optional[str]:
        if values.button:
            return values.button
        match = CLICK_VERB.search(text)
        if match:
            clicked = match.group(1)
            name = _lookup(self.tables.buttons, clicked)
            if name:
                return name
            if clicked.lower() not in ("button", "it", "on", "and"):
                return clicked
        # None leaves the role locator unnamed, which renders as unresolved
        return _lookup(self.tables.buttons, text)

    def _resolve_assertion(self, text: str, values: ExtractedValues, locked: Dict) -> Optional[Assertion]:
        t = self.tables
        expected = locked.get(LockType.ASSERTION_TEXT) or values.expected
        if expected:
            selector = locked.get(LockType.SELECTOR)
            locator = parse_selector(selector) if selector else Locator.css("body")
            assertion = Assertion(type="containsText", locator=locator, value=expected)
        elif values.expected_url:
            assertion = Assertion(type="urlContains", value=values.expected_url)
        elif _search(t.dashboard_cue, text):
            assertion = Assertion(type="urlContains", value="/dashboard")
        elif _search(t.error_cue, text):
            assertion = Assertion(type="visible", locator=Locator.css(ERROR_LOCATOR))
        elif _search(t.success_cue, text):
            assertion = Assertion(type="visible", locator=Locator.css(SUCCESS_LOCATOR))
        elif _search(LOGIN_CUE, text):
            # a plain login instruction expects to land on the dashboard
            assertion = Assertion(type="urlContains", value="/dashboard")
        else:
            return None

        kind = locked.get(LockType.ASSERTION_TYPE)
        if kind:
            assertion.type = _canonical_assertion(kind)
        return assertion


def _canonical_assertion(kind: str) -> str:
    aliases = {"tohavetext": "exactText", "exact text": "exactText", "contains": "containsText"}
    lowered = kind.strip().lower()
    for name in ASSERTION_TYPES:
        if name.lower() == lowered:
            return name
    return aliases.get(lowered, kind.strip())


def extract_tags(text: str) -> List[str]:
    tags = []
    if _search(r"login|signin", text):
        tags.append("authentication")
    if _search(r"register|signup", text):
        tags.append("registration")
    if _search(r"error|fail", text):
        tags.append("negative")
    if _search(r"success|\bpass(?:es|ed)?\b", text):
        tags.append("positive")
    if _search(r"form", text):
        tags.append("form")
    return tags


def describe_steps(test_case: TestCase) -> List[str]:
    """Human-readable checklist of the resolved steps."""
    lines = []
    for step in test_case.steps:
        if step.action == "goto":
            lines.append(f"Navigate to {step.path}")
        elif step.action == "fill" and step.locator:
            lines.append(f'Fill {step.locator.describe()} field with "{step.text}"')
        elif step.action == "click" and step.locator:
            lines.append(f"Click {step.locator.describe()}")
        elif step.action == "assert" and step.assertion:
            a = step.assertion
            if a.type == "urlContains":
                lines.append(f"Assert: URL contains '{a.value}'")
            elif a.value:
                lines.append(f"Assert: {a.type} '{a.value}' in {a.locator.describe() if a.locator else 'page'}")
            else:
                lines.append(f"Assert: {a.locator.describe() if a.locator else 'page'} is {a.type}")
        else:
            lines.append(f"Unknown step: {step.action}")
    return lines


_default_resolver = StepResolver()


def resolve(text: str, values: ExtractedValues, base_url: str, locks: Optional[List[LockedValue]] = None) -> TestCase:
    return _default_resolver.resolve(text, values, base_url, locks)
